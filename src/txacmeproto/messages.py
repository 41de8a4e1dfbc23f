"""
ACME protocol messages.

Wire representations of the objects exchanged with the server.  Field names
follow the server's schema; optional fields are omitted when empty.

..  seealso:: `acme.messages`
"""
import attr
import josepy as jose
from acme import messages

from txacmeproto.util import decode_datetime, encode_datetime

STATUS_PENDING = u'pending'
STATUS_VALID = u'valid'
STATUS_INVALID = u'invalid'

#: Marker for requests that must match an authorization the server already
#: holds.
EXISTING_REQUIRE = u'require'


def fqdn_identifier(fqdn):
    """
    Construct an identifier from an FQDN.

    Trivial implementation, just saves on typing.

    :param str fqdn: The domain name.

    :return: The identifier.
    :rtype: `~acme.messages.Identifier`
    """
    return messages.Identifier(
        typ=messages.IDENTIFIER_FQDN, value=fqdn)


def _decode_challenges(value):
    return tuple(Challenge.from_json(chall) for chall in value)


class Registration(jose.JSONObjectWithFields):
    """
    Account registration body.
    """
    contact = jose.Field('contact', omitempty=True)
    status = jose.Field('status', omitempty=True)
    terms_of_service_agreed = jose.Field(
        'termsOfServiceAgreed', omitempty=True)
    orders = jose.Field('orders', omitempty=True)
    agreement = jose.Field('agreement', omitempty=True)

    def merge(self, other):
        """
        Return a copy with every field ``other`` sets replacing ours.
        """
        return self.update(**{
            name: value for name, value in other.items()
            if value is not None})


@attr.s(frozen=True)
class Account(object):
    """
    An ACME account: the key pair that identifies it, and its registration.

    The server-assigned account URL is not part of this value; it is looked
    up when a flow needs it.

    :ivar ~josepy.jwk.JWK key: The private account key.
    :ivar Registration registration: The registration body.
    """
    key = attr.ib()
    registration = attr.ib(default=attr.Factory(Registration))

    def public_key(self):
        return self.key.public_key()

    def with_registration(self, registration):
        """
        Return a new account with ``registration`` merged into ours.
        """
        return attr.evolve(
            self, registration=self.registration.merge(registration))


class KeyRollover(jose.JSONObjectWithFields):
    """
    Inner payload of a key-change request.
    """
    account = jose.Field('account')
    new_key = jose.Field('newKey', decoder=jose.JWK.from_json)


class NewAuthorization(jose.JSONObjectWithFields):
    """
    Request for an authorization of an identifier.
    """
    identifier = jose.Field(
        'identifier', decoder=messages.Identifier.from_json)
    existing = jose.Field('existing', omitempty=True)


class Challenge(jose.JSONObjectWithFields):
    """
    One proof-of-control mechanism offered within an authorization.

    Servers following RFC 8555 name the resource URL ``url``; earlier drafts
    used ``uri``.  `location` returns whichever is present.
    """
    typ = jose.Field('type')
    status = jose.Field('status', omitempty=True)
    token = jose.Field('token', omitempty=True)
    url = jose.Field('url', omitempty=True)
    uri = jose.Field('uri', omitempty=True)
    error = jose.Field('error', omitempty=True)
    validated = jose.Field('validated', omitempty=True)

    @property
    def location(self):
        return self.url or self.uri


class Authorization(jose.JSONObjectWithFields):
    """
    Server resource recording proof of control over an identifier.
    """
    identifier = jose.Field(
        'identifier', decoder=messages.Identifier.from_json)
    status = jose.Field('status', omitempty=True)
    expires = jose.Field('expires', omitempty=True)
    wildcard = jose.Field('wildcard', omitempty=True)
    challenges = jose.Field(
        'challenges', omitempty=True, default=(),
        decoder=_decode_challenges)


class ChallengeResponse(jose.JSONObjectWithFields):
    """
    Body posted to a challenge URL to ask the server to validate it.

    RFC 8555 servers expect an empty object; earlier drafts expect the type
    and the key authorization.
    """
    typ = jose.Field('type', omitempty=True)
    key_authorization = jose.Field('keyAuthorization', omitempty=True)

    @classmethod
    def for_challenge(cls, challenge, account):
        """
        Build the draft-style response for ``challenge``.

        :raises txacmeproto.errors.NoToken: If the challenge has no token.
        """
        from txacmeproto.client import key_authorization
        return cls(
            typ=challenge.typ,
            key_authorization=key_authorization(challenge, account))


class Order(jose.JSONObjectWithFields):
    """
    Certificate issuance request.

    :ivar bytes csr: The DER-encoded certificate signing request.
    :ivar ~datetime.datetime not_before: Optional start of validity.
    :ivar ~datetime.datetime not_after: Optional end of validity.
    """
    csr = jose.Field(
        'csr', encoder=jose.encode_b64jose, decoder=jose.decode_b64jose)
    not_before = jose.Field(
        'notBefore', omitempty=True,
        encoder=encode_datetime, decoder=decode_datetime)
    not_after = jose.Field(
        'notAfter', omitempty=True,
        encoder=encode_datetime, decoder=decode_datetime)


__all__ = [
    'STATUS_PENDING', 'STATUS_VALID', 'STATUS_INVALID', 'EXISTING_REQUIRE',
    'fqdn_identifier', 'Registration', 'Account', 'KeyRollover',
    'NewAuthorization', 'Challenge', 'Authorization', 'ChallengeResponse',
    'Order']
