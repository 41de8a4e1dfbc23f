"""
The ACME directory, and the choice of endpoint for each flow.

Servers differ in which operations they advertise and in how they spell them.
Each flow asks a small decision function for its endpoint; the function
returns an `EndpointChoice` tagged `PRIMARY`, `FALLBACK` or `UNSUPPORTED`, so
compatibility fallbacks stay explicit and can be tested without HTTP.
"""
from types import MappingProxyType

import attr
from twisted.python.url import URL

from txacmeproto.errors import UnsupportedOperation

LETSENCRYPT_DIRECTORY = URL.fromText(
    u'https://acme-v02.api.letsencrypt.org/directory')

LETSENCRYPT_STAGING_DIRECTORY = URL.fromText(
    u'https://acme-staging-v02.api.letsencrypt.org/directory')

NEW_NONCE = u'new-nonce'
NEW_ACCOUNT = u'new-account'
NEW_AUTHORIZATION = u'new-authorization'
NEW_ORDER = u'new-order'
NEW_CERTIFICATE = u'new-certificate'
KEY_CHANGE = u'key-change'
REVOKE_CERTIFICATE = u'revoke-certificate'

#: Wire keys accepted for each operation, in order of preference.
RESOURCE_KEYS = {
    NEW_NONCE: (u'new-nonce', u'newNonce'),
    NEW_ACCOUNT: (u'new-account', u'new-reg', u'newAccount'),
    NEW_AUTHORIZATION: (u'new-authorization', u'new-authz', u'newAuthz'),
    NEW_ORDER: (u'new-order', u'new-app', u'newOrder'),
    NEW_CERTIFICATE: (u'new-certificate', u'new-cert'),
    KEY_CHANGE: (u'key-change', u'keyChange'),
    REVOKE_CERTIFICATE: (u'revoke-cert', u'revokeCert'),
}


def _frozen_mapping(mapping):
    return MappingProxyType(dict(mapping))


PRIMARY = u'primary'
FALLBACK = u'fallback'
UNSUPPORTED = u'unsupported'


@attr.s(frozen=True)
class Directory(object):
    """
    The server's resource map.

    :ivar str url: The URL the directory was fetched from.
    :ivar resources: Read-only mapping of canonical operation name to
        endpoint URL; absent operations have no entry.
    :ivar meta: The server's ``meta`` object, if any, also read-only.
    """
    url = attr.ib()
    resources = attr.ib(default=attr.Factory(dict), converter=_frozen_mapping)
    meta = attr.ib(default=attr.Factory(dict), converter=_frozen_mapping)

    @classmethod
    def from_json(cls, jobj, url):
        """
        Parse a directory body fetched from ``url``.

        :raises ValueError: If the body is not a JSON object.
        """
        if not isinstance(jobj, dict):
            raise ValueError('Directory is not a JSON object: {!r}'.format(
                jobj))
        resources = {}
        for name, keys in RESOURCE_KEYS.items():
            for key in keys:
                if jobj.get(key):
                    resources[name] = jobj[key]
                    break
        return cls(url=url, resources=resources, meta=jobj.get(u'meta') or {})

    def lookup(self, name):
        """
        Get the endpoint URL for an operation, or ``None`` if the server does
        not advertise it.
        """
        return self.resources.get(name)

    def to_json(self):
        jobj = dict(self.resources)
        jobj[u'url'] = self.url
        if self.meta:
            jobj[u'meta'] = dict(self.meta)
        return jobj


@attr.s(frozen=True)
class EndpointChoice(object):
    """
    The endpoint a flow should use.

    :ivar str operation: The operation the flow performs.
    :ivar str kind: One of `PRIMARY`, `FALLBACK` or `UNSUPPORTED`.
    :ivar str url: The endpoint, or ``None`` when unsupported.
    """
    operation = attr.ib()
    kind = attr.ib()
    url = attr.ib(default=None)

    @property
    def supported(self):
        return self.kind != UNSUPPORTED

    def require(self):
        """
        Get the URL, failing if the operation is unsupported.

        :raises UnsupportedOperation: If no endpoint was found.
        """
        if not self.supported:
            raise UnsupportedOperation(self.operation)
        return self.url


def _choose(directory, operation, fallback=None):
    url = directory.lookup(operation)
    if url is not None:
        return EndpointChoice(operation, PRIMARY, url)
    if fallback is not None:
        return EndpointChoice(operation, FALLBACK, fallback)
    return EndpointChoice(operation, UNSUPPORTED)


def nonce_endpoint(directory):
    """
    Where to get a fresh nonce.

    Some servers (Boulder, notably) never advertised ``new-nonce``; every one
    of their responses carries a nonce, so a ``HEAD`` to the directory URL
    serves instead.
    """
    return _choose(directory, NEW_NONCE, fallback=directory.url)


def order_endpoint(directory):
    """
    Where to submit a certificate order.

    Falls back to the legacy ``new-cert`` endpoint.  That is a compatibility
    shim: it assumes the server accepts the same payload at both.
    """
    return _choose(
        directory, NEW_ORDER,
        fallback=directory.lookup(NEW_CERTIFICATE))


def account_endpoint(directory):
    """
    Where to create, and look up, an account.
    """
    return _choose(directory, NEW_ACCOUNT)


def authorization_endpoint(directory):
    """
    Where to request an authorization.
    """
    return _choose(directory, NEW_AUTHORIZATION)


def key_change_endpoint(directory):
    """
    Where to post a key rollover.
    """
    return _choose(directory, KEY_CHANGE)


__all__ = [
    'LETSENCRYPT_DIRECTORY', 'LETSENCRYPT_STAGING_DIRECTORY',
    'NEW_NONCE', 'NEW_ACCOUNT', 'NEW_AUTHORIZATION', 'NEW_ORDER',
    'NEW_CERTIFICATE', 'KEY_CHANGE', 'REVOKE_CERTIFICATE', 'RESOURCE_KEYS',
    'PRIMARY', 'FALLBACK', 'UNSUPPORTED', 'Directory', 'EndpointChoice',
    'nonce_endpoint', 'order_endpoint', 'account_endpoint',
    'authorization_endpoint', 'key_change_endpoint']
