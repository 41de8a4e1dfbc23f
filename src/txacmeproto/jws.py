"""
Signed ACME request envelopes.

..  seealso:: `acme.jws`
"""
import json

import josepy as jose
from acme.jws import JWS
from josepy.jwa import ES256, ES384, ES512, RS256
from josepy.jwk import JWKEC, JWKRSA

from txacmeproto.errors import SigningFailure
from txacmeproto.logging import LOG_JWS_SIGN

_EC_ALGORITHMS = {256: ES256, 384: ES384, 521: ES512}


def default_alg(key):
    """
    Pick the signature algorithm matching a JWK.

    :raises SigningFailure: For key types without a known algorithm.
    """
    if isinstance(key, JWKRSA):
        return RS256
    if isinstance(key, JWKEC):
        try:
            return _EC_ALGORITHMS[key.key.curve.key_size]
        except KeyError:
            pass
    raise SigningFailure('No signature algorithm for key {!r}'.format(key))


def _serialize(payload):
    if payload is None:
        return b''
    if isinstance(payload, jose.JSONDeSerializable):
        return payload.json_dumps().encode('utf-8')
    return json.dumps(payload).encode('utf-8')


def sign_envelope(payload, url, key, nonce, alg=None):
    """
    Wrap a payload in a JWS addressed to ``url``.

    The protected header carries the algorithm, the public key, ``nonce`` and
    ``url``.

    :param payload: A ``josepy`` serializable object (another `JWS`
        included), a plain JSON value, or ``None`` for an empty payload.
    :param str url: The URL the request will be posted to.
    :param ~josepy.jwk.JWK key: The private signing key.
    :param bytes nonce: A fresh nonce.
    :param alg: The ``josepy.jwa`` algorithm; defaults from the key type.

    :raises SigningFailure: If the payload cannot be serialized or the key
        cannot sign.

    :rtype: `acme.jws.JWS`
    """
    if alg is None:
        alg = default_alg(key)
    if not isinstance(key, alg.kty):
        raise SigningFailure(
            'Algorithm {} cannot sign with key {!r}'.format(alg.name, key))
    with LOG_JWS_SIGN(key_type=key.typ, alg=alg.name, nonce=nonce, url=url):
        try:
            return JWS.sign(
                payload=_serialize(payload),
                key=key,
                alg=alg,
                nonce=nonce,
                url=url,
                )
        except (TypeError, ValueError, AttributeError, jose.Error) as error:
            raise SigningFailure(error)


__all__ = ['default_alg', 'sign_envelope']
