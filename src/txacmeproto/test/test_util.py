from datetime import datetime

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID
from josepy.jwk import JWKEC, JWKRSA
from twisted.internet.defer import succeed
from twisted.python.url import URL
from twisted.trial.unittest import TestCase

from txacmeproto.messages import Account, Order
from txacmeproto.test.test_client import RSA_KEY, RSA_KEY_RAW
from txacmeproto.util import (
    check_directory_url_type, csr_for_names, decode_datetime,
    encode_datetime, generate_private_key, jwk_for_key, new_account,
    new_order, tap)


class GeneratePrivateKeyTests(TestCase):
    """
    `.generate_private_key` generates private keys of various types using
    sensible parameters.
    """
    def test_unknown_key_type(self):
        """
        Passing an unknown key type results in :exc:`.ValueError`.
        """
        with self.assertRaises(ValueError):
            generate_private_key(u'not-a-real-key-type')

    def test_rsa_key(self):
        """
        Passing ``u'rsa'`` results in an RSA private key.
        """
        key1 = generate_private_key(u'rsa')
        self.assertIsInstance(key1, rsa.RSAPrivateKey)
        self.assertEqual(2048, key1.key_size)
        key2 = generate_private_key(u'rsa')
        self.assertNotEqual(
            key1.public_key().public_numbers(),
            key2.public_key().public_numbers()
            )

    def test_ec_key(self):
        """
        Passing ``u'ec'`` results in a P-256 private key.
        """
        key = generate_private_key(u'ec')
        self.assertIsInstance(key, ec.EllipticCurvePrivateKey)
        self.assertEqual(u'secp256r1', key.curve.name)

    def test_jwk_for_key(self):
        self.assertIsInstance(jwk_for_key(RSA_KEY_RAW), JWKRSA)
        self.assertIsInstance(
            jwk_for_key(generate_private_key(u'ec')), JWKEC)
        with self.assertRaises(TypeError):
            jwk_for_key(b'not a key')


class NewAccountTests(TestCase):
    """
    `.new_account` builds unregistered accounts.
    """
    def test_with_email(self):
        account = new_account(u'admin@example.com', key=RSA_KEY)
        self.assertIsInstance(account, Account)
        self.assertIs(RSA_KEY, account.key)
        self.assertEqual(
            (u'mailto:admin@example.com',), account.registration.contact)

    def test_fresh_key(self):
        """
        Without a key, a new RSA key is generated each time.
        """
        account = new_account()
        self.assertIsInstance(account.key, JWKRSA)
        self.assertIsNone(account.registration.contact)
        self.assertNotEqual(
            account.key.thumbprint(), new_account().key.thumbprint())


class CSRTests(TestCase):
    """
    `.csr_for_names` and `.new_order`.
    """
    def test_common_name_too_long(self):
        """
        If the first name provided is too long, `.csr_for_names` uses a dummy
        value for the common name.
        """
        name = u'.'.join([u'a' * 40, u'b' * 40, u'example.com'])
        csr = csr_for_names([name], RSA_KEY_RAW)
        self.assertEqual(
            [x509.NameAttribute(NameOID.COMMON_NAME, u'san.too.long.invalid')],
            list(csr.subject))

    def test_names(self):
        csr = csr_for_names([u'example.com', u'www.example.com'], RSA_KEY_RAW)
        self.assertEqual(
            [x509.NameAttribute(NameOID.COMMON_NAME, u'example.com')],
            list(csr.subject))
        san = csr.extensions.get_extension_for_class(
            x509.SubjectAlternativeName)
        self.assertEqual(
            [u'example.com', u'www.example.com'],
            san.value.get_values_for_type(x509.DNSName))
        self.assertTrue(csr.is_signature_valid)

    def test_no_names(self):
        with self.assertRaises(ValueError):
            csr_for_names([], RSA_KEY_RAW)

    def test_new_order(self):
        """
        Orders can be built from a CSR object or its DER encoding.
        """
        csr = csr_for_names([u'example.com'], RSA_KEY_RAW)
        der = csr.public_bytes(serialization.Encoding.DER)
        self.assertEqual(Order(csr=der), new_order(csr))
        self.assertEqual(Order(csr=der), new_order(der))


class DatetimeTests(TestCase):
    def test_encode(self):
        self.assertEqual(
            u'2016-07-01T12:30:00Z',
            encode_datetime(datetime(2016, 7, 1, 12, 30)))

    def test_decode(self):
        expected = datetime(2016, 7, 1, 12, 30)
        for text in [u'2016-07-01T12:30:00Z', u'2016-07-01T12:30:00.5Z',
                     u'2016-07-01T12:30:00']:
            self.assertEqual(expected, decode_datetime(text))


class DirectoryURLTypeTests(TestCase):
    def test_url(self):
        check_directory_url_type(
            URL.fromText(u'https://acme.example/directory'))

    def test_text(self):
        """
        Text URLs are rejected with `TypeError`.
        """
        with self.assertRaises(TypeError):
            check_directory_url_type(u'https://acme.example/directory')


class TapTests(TestCase):
    def test_result_passed_through(self):
        """
        `.tap` calls the function and passes the original result on.
        """
        seen = []
        d = succeed(42).addCallback(tap(seen.append))
        self.assertEqual(42, self.successResultOf(d))
        self.assertEqual([42], seen)
