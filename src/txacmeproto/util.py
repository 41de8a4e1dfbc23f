"""
Utility functions that may prove useful when writing an ACME client.
"""
from datetime import datetime
from functools import wraps

from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID
from josepy.jwk import JWKEC, JWKRSA
from twisted.internet.defer import maybeDeferred
from twisted.python.url import URL

_DATETIME_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


def generate_private_key(key_type):
    """
    Generate a random private key using sensible parameters.

    :param str key_type: The type of key to generate. One of: ``rsa``,
        ``ec``.
    """
    if key_type == u'rsa':
        return rsa.generate_private_key(
            public_exponent=65537, key_size=2048, backend=default_backend())
    if key_type == u'ec':
        return ec.generate_private_key(ec.SECP256R1(), default_backend())
    raise ValueError(key_type)


def jwk_for_key(key):
    """
    Wrap a Cryptography private key in the matching JWK type.
    """
    if isinstance(key, rsa.RSAPrivateKey):
        return JWKRSA(key=key)
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return JWKEC(key=key)
    raise TypeError('Unsupported key type: {!r}'.format(key))


def new_account(email=None, key=None):
    """
    Build an unregistered account with a fresh 2048-bit RSA key.

    :param str email: An optional contact address, stored as a ``mailto:``
        URI.
    :param key: A JWK to use instead of generating one.

    :rtype: `txacmeproto.messages.Account`
    """
    from txacmeproto.messages import Account, Registration
    if key is None:
        key = JWKRSA(key=generate_private_key(u'rsa'))
    contact = None
    if email is not None:
        contact = (u'mailto:' + email,)
    return Account(key=key, registration=Registration(contact=contact))


def new_order(csr):
    """
    Build an order for a CSR, without validity bounds.

    :param csr: A `cryptography.x509.CertificateSigningRequest`, or its DER
        encoding.

    :rtype: `txacmeproto.messages.Order`
    """
    from txacmeproto.messages import Order
    if isinstance(csr, x509.CertificateSigningRequest):
        csr = csr.public_bytes(serialization.Encoding.DER)
    return Order(csr=csr)


def tap(f):
    """
    "Tap" a Deferred callback chain with a function whose return value is
    ignored.
    """
    @wraps(f)
    def _cb(res, *a, **kw):
        d = maybeDeferred(f, res, *a, **kw)
        d.addCallback(lambda ignored: res)
        return d
    return _cb


def csr_for_names(names, key):
    """
    Generate a certificate signing request for the given names and private key.

    ..  seealso:: `generate_private_key`

    :param ``List[str]``: One or more names (subjectAltName) for which to
        request a certificate.
    :param key: A Cryptography private key object.

    :rtype: `cryptography.x509.CertificateSigningRequest`
    :return: The certificate request message.
    """
    if len(names) == 0:
        raise ValueError('Must have at least one name')
    if len(names[0]) > 64:
        common_name = u'san.too.long.invalid'
    else:
        common_name = names[0]
    return (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, common_name)]))
        .add_extension(
            x509.SubjectAlternativeName(list(map(x509.DNSName, names))),
            critical=False)
        .sign(key, hashes.SHA256(), default_backend()))


def encode_datetime(value):
    """
    Encode a naive UTC datetime as an RFC 3339 timestamp.
    """
    return value.strftime(_DATETIME_FORMAT)


def decode_datetime(value):
    """
    Decode an RFC 3339 timestamp, dropping any fractional seconds.
    """
    return datetime.strptime(
        value.split('.')[0].rstrip('Z') + 'Z', _DATETIME_FORMAT)


def check_directory_url_type(url):
    """
    Check that ``url`` is a ``twisted.python.url.URL`` instance, raising
    `TypeError` if it isn't.
    """
    if not isinstance(url, URL):
        raise TypeError(
            'ACME directory URL should be a twisted.python.url.URL, '
            'got {!r} instead'.format(url))


__all__ = [
    'generate_private_key', 'jwk_for_key', 'new_account', 'new_order',
    'csr_for_names', 'encode_datetime', 'decode_datetime',
    'check_directory_url_type', 'tap']
