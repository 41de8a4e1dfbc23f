"""
ACME protocol operations for Twisted.

Every operation that changes server state follows the same sequence:

   1. fetch a fresh nonce (``HEAD`` on the directory's ``new-nonce`` URL, or
      on the directory URL itself for servers without one);
   2. sign the payload into a JWS addressed to the target URL;
   3. ``POST`` the JWS;
   4. interpret the response.

   +-----------------------+------------------------------+---------------+
   | Operation             | Request                      | Result        |
   +-----------------------+------------------------------+---------------+
   | fetch_directory       | GET  directory               | Directory     |
   | get_nonce             | HEAD new-nonce               | Replay-Nonce  |
   | register              | POST new-account             | Account       |
   | locate_account        | POST new-account ``{}``      | Location      |
   | update_account        | POST account URL             | Account       |
   | rollover_key          | POST key-change (nested JWS) | Account       |
   | request_authorization | POST new-authz               | Authorization |
   | respond_to_challenge  | POST challenge URL           | Challenge     |
   | submit_order          | POST new-order / new-cert    | X.509 cert    |
   +-----------------------+------------------------------+---------------+

Accounts and directories are passed to every call; the client itself only
holds the transport, so independent operations may run concurrently.  Nonces
are never cached: each signed request fetches its own.
"""
import json

import josepy as jose
from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from eliot.twisted import DeferredContext
from josepy.errors import DeserializationError
from twisted.internet import defer

from txacmeproto.directory import (
    Directory, account_endpoint, authorization_endpoint, key_change_endpoint,
    nonce_endpoint, order_endpoint)
from txacmeproto.errors import (
    BadNonce, CertificateDecodeError, MalformedResponse, MissingHeader,
    NoChallengeURL, NoPendingChallenge, NoToken, UnsupportedOperation)
from txacmeproto.jws import sign_envelope
from txacmeproto.logging import (
    LOG_ACME_ANSWER_CHALLENGE,
    LOG_ACME_CREATE_AUTHORIZATION,
    LOG_ACME_FETCH_DIRECTORY,
    LOG_ACME_KEY_ROLLOVER,
    LOG_ACME_LOCATE_ACCOUNT,
    LOG_ACME_REGISTER,
    LOG_ACME_SUBMIT_ORDER,
    LOG_ACME_UPDATE_REGISTRATION,
    LOG_JWS_GET_NONCE,
    )
from txacmeproto.messages import (
    EXISTING_REQUIRE, STATUS_PENDING, Authorization, Challenge, KeyRollover,
    NewAuthorization, Registration)
from txacmeproto.transport import (
    LOCATION_HEADER, REPLAY_NONCE_HEADER, HTTPTransport, _fail_and_consume,
    header_value)
from txacmeproto.util import check_directory_url_type, tap


def _json_body(response, url):
    """
    Read and decode a JSON response body.

    :raises MalformedResponse: If the body is not JSON.
    """
    def _decode(body):
        try:
            return json.loads(body.decode('utf-8'))
        except ValueError as error:
            raise MalformedResponse(url, error)
    return response.content().addCallback(_decode)


def _consume(response, result):
    """
    Read the pending data from the response, then fire with ``result``.
    """
    return response.content().addCallback(lambda _: result)


def _parse(message_class, url):
    """
    Callback deserializing a JSON object into ``message_class``.
    """
    def _from_json(jobj):
        try:
            return message_class.from_json(jobj)
        except DeserializationError as error:
            raise MalformedResponse(url, error)
    return _from_json


def maybe_pending_challenge(typ, authorization):
    """
    Find the pending challenge of a given type, if there is one.

    :param str typ: The challenge type, for example ``u'http-01'``.
    :param ~txacmeproto.messages.Authorization authorization: The
        authorization to look in.

    :rtype: `~txacmeproto.messages.Challenge` or ``None``
    """
    for challenge in authorization.challenges:
        if challenge.status == STATUS_PENDING and challenge.typ == typ:
            return challenge
    return None


def find_pending_challenge(typ, authorization):
    """
    Find the pending challenge of a given type.

    A challenge of the right type in any other status (``valid``, say) is
    never returned.

    :raises ~txacmeproto.errors.NoPendingChallenge: If there is none.
    """
    challenge = maybe_pending_challenge(typ, authorization)
    if challenge is None:
        raise NoPendingChallenge(typ, authorization)
    return challenge


def key_authorization(challenge, account):
    """
    Compute the key authorization for a challenge: the token, a dot, and the
    base64url SHA-256 thumbprint of the account key.

    :raises ~txacmeproto.errors.NoToken: If the challenge has no token.

    :rtype: str
    """
    if challenge.token is None:
        raise NoToken(challenge)
    thumbprint = jose.b64encode(
        account.key.thumbprint(hash_function=hashes.SHA256))
    return u'{}.{}'.format(challenge.token, thumbprint.decode('ascii'))


class Client(object):
    """
    ACME protocol client.

    :param transport: An `~txacmeproto.interfaces.ITransport` provider.
    :param alg: Force a ``josepy.jwa`` signature algorithm instead of
        deriving it from each key.
    """
    def __init__(self, transport, alg=None):
        self._transport = transport
        self._alg = alg

    @classmethod
    def from_reactor(cls, reactor, alg=None, **kwargs):
        """
        Construct a client with its own HTTP transport.

        :param reactor: The Twisted reactor to use.
        :param kwargs: Passed on to `~txacmeproto.transport.HTTPTransport`;
            for example ``timeout``.
        """
        return cls(HTTPTransport.from_reactor(reactor, **kwargs), alg=alg)

    def stop(self):
        """
        Release the transport's connections.
        """
        return self._transport.stop()

    def fetch_directory(self, url):
        """
        Fetch the server's directory.

        The URL is recorded on the result: it is the nonce endpoint for
        servers that do not advertise one.

        :param url: The ``twisted.python.url.URL`` of the directory.  See
            `txacmeproto.directory` for well-known ones.

        :rtype: Deferred[`~txacmeproto.directory.Directory`]
        """
        check_directory_url_type(url)
        text_url = url.asText()

        def _from_json(jobj):
            try:
                return Directory.from_json(jobj, text_url)
            except ValueError as error:
                raise MalformedResponse(text_url, error)

        action = LOG_ACME_FETCH_DIRECTORY(url=url)
        with action.context():
            return (
                DeferredContext(self._transport.get(text_url))
                .addCallback(_json_body, text_url)
                .addCallback(_from_json)
                .addCallback(
                    tap(lambda d: action.add_success_fields(directory=d)))
                .addActionFinish())

    def get_nonce(self, directory):
        """
        Fetch a fresh nonce.

        :raises ~txacmeproto.errors.MissingHeader: If the response has no
            ``Replay-Nonce``.
        :raises ~txacmeproto.errors.BadNonce: If the nonce is not base64url.

        :rtype: Deferred[bytes]
        """
        url = nonce_endpoint(directory).require()

        def _extract(response):
            if not response.headers.hasHeader(REPLAY_NONCE_HEADER):
                return _fail_and_consume(
                    response, MissingHeader(u'Replay-Nonce', url))
            raw_nonce = response.headers.getRawHeaders(REPLAY_NONCE_HEADER)[0]
            try:
                return jose.decode_b64jose(header_value(
                    response, REPLAY_NONCE_HEADER))
            except (UnicodeDecodeError, DeserializationError) as error:
                return _fail_and_consume(response, BadNonce(raw_nonce, error))

        action = LOG_JWS_GET_NONCE(url=url)
        with action.context():
            return (
                DeferredContext(self._transport.head(url))
                .addCallback(_extract)
                .addCallback(
                    tap(lambda nonce: action.add_success_fields(nonce=nonce)))
                .addActionFinish())

    def build_envelope(self, url, payload, key, directory):
        """
        Fetch a nonce, then sign ``payload`` for ``url`` with ``key``.

        :rtype: Deferred[`acme.jws.JWS`]
        """
        return self.get_nonce(directory).addCallback(
            lambda nonce: sign_envelope(
                payload, url, key, nonce, alg=self._alg))

    def _signed_post(self, url, payload, key, directory):
        """
        Sign ``payload`` with a fresh nonce and POST it to ``url``.
        """
        return (
            self.build_envelope(url, payload, key, directory)
            .addCallback(
                lambda jws: self._transport.post(
                    url, jws.json_dumps().encode('utf-8'))))

    def _post_for_registration(self, url, payload, key, directory):
        return (
            self._signed_post(url, payload, key, directory)
            .addCallback(_json_body, url)
            .addCallback(_parse(Registration, url)))

    def register(self, account, directory):
        """
        Create an account on the server.

        :param ~txacmeproto.messages.Account account: The account to
            register.

        :raises ~txacmeproto.errors.UnsupportedOperation: If the directory
            has no account-creation endpoint.

        :return: The account, with the server's registration fields merged
            in.
        :rtype: Deferred[`~txacmeproto.messages.Account`]
        """
        try:
            url = account_endpoint(directory).require()
        except UnsupportedOperation:
            return defer.fail()
        action = LOG_ACME_REGISTER(registration=account.registration)
        with action.context():
            return (
                DeferredContext(
                    self._post_for_registration(
                        url, account.registration, account.key, directory))
                .addCallback(account.with_registration)
                .addCallback(
                    tap(lambda a: action.add_success_fields(
                        registration=a.registration)))
                .addActionFinish())

    def locate_account(self, account, directory):
        """
        Find the account's URL.

        Posts an empty update to the account-creation endpoint and reads the
        ``Location`` of the response; this works on servers without a
        dedicated lookup endpoint.

        :raises ~txacmeproto.errors.MissingHeader: If the response has no
            ``Location``.

        :rtype: Deferred[str]
        """
        try:
            url = account_endpoint(directory).require()
        except UnsupportedOperation:
            return defer.fail()

        def _location(response):
            try:
                location = header_value(response, LOCATION_HEADER)
            except UnicodeDecodeError as error:
                return _fail_and_consume(
                    response, MalformedResponse(url, error))
            if location is None:
                return _fail_and_consume(
                    response, MissingHeader(u'Location', url))
            return _consume(response, location)

        action = LOG_ACME_LOCATE_ACCOUNT()
        with action.context():
            return (
                DeferredContext(
                    self._signed_post(
                        url, jose.JSONObjectWithFields(), account.key,
                        directory))
                .addCallback(_location)
                .addCallback(
                    tap(lambda uri: action.add_success_fields(uri=uri)))
                .addActionFinish())

    def update_account(self, account, directory):
        """
        Send the account's registration fields to its URL.

        :rtype: Deferred[`~txacmeproto.messages.Account`]
        """
        action = LOG_ACME_UPDATE_REGISTRATION(
            registration=account.registration)
        with action.context():
            return (
                DeferredContext(self.locate_account(account, directory))
                .addCallback(
                    lambda uri: self._post_for_registration(
                        uri, account.registration, account.key, directory))
                .addCallback(account.with_registration)
                .addCallback(
                    tap(lambda a: action.add_success_fields(
                        registration=a.registration)))
                .addActionFinish())

    def rollover_key(self, current, new, directory):
        """
        Replace the account key.

        The inner JWS, signed with the new key, states the account URL and
        the new public key; the outer JWS, signed with the current key,
        carries the inner one as its payload.

        :param ~txacmeproto.messages.Account current: The account with its
            current key.
        :param ~txacmeproto.messages.Account new: The same account with the
            new key.

        :raises ~txacmeproto.errors.UnsupportedOperation: If the directory
            has no key-change endpoint.  No request is made in that case.

        :rtype: Deferred[`~txacmeproto.messages.Account`]
        """
        try:
            url = key_change_endpoint(directory).require()
        except UnsupportedOperation:
            return defer.fail()

        def _inner(account_url):
            rollover = KeyRollover(
                account=account_url, new_key=new.public_key())
            return self.build_envelope(url, rollover, new.key, directory)

        action = LOG_ACME_KEY_ROLLOVER(new_key=new.public_key())
        with action.context():
            return (
                DeferredContext(self.locate_account(current, directory))
                .addCallback(_inner)
                .addCallback(
                    lambda inner: self._post_for_registration(
                        url, inner, current.key, directory))
                .addCallback(new.with_registration)
                .addCallback(
                    tap(lambda a: action.add_success_fields(
                        registration=a.registration)))
                .addActionFinish())

    def _authorization(self, url, payload, account, directory, existing):
        action = LOG_ACME_CREATE_AUTHORIZATION(
            identifier=payload.identifier, existing=existing)
        with action.context():
            return (
                DeferredContext(
                    self._signed_post(url, payload, account.key, directory))
                .addCallback(_json_body, url)
                .addCallback(_parse(Authorization, url))
                .addCallback(
                    tap(lambda a: action.add_success_fields(
                        authorization=a)))
                .addActionFinish())

    def request_authorization(self, identifier, account, directory):
        """
        Ask for a new authorization of ``identifier``.

        :param ~acme.messages.Identifier identifier: See `fqdn_identifier`.

        :raises ~txacmeproto.errors.UnsupportedOperation: If the directory
            has no new-authorization endpoint.

        :rtype: Deferred[`~txacmeproto.messages.Authorization`]
        """
        try:
            url = authorization_endpoint(directory).require()
        except UnsupportedOperation:
            return defer.fail()
        return self._authorization(
            url, NewAuthorization(identifier=identifier), account, directory,
            existing=False)

    def request_existing_authorization(self, identifier, account, directory,
                                       url=None):
        """
        Fetch an authorization the server already holds for ``identifier``.

        The payload is marked ``existing: require``, so the server must not
        create a new one.

        :param str url: The authorization's own URL; the request is signed
            for and sent there.  Defaults to the new-authorization endpoint.

        :raises ~txacmeproto.errors.UnsupportedOperation: If the directory
            has no new-authorization endpoint.

        :rtype: Deferred[`~txacmeproto.messages.Authorization`]
        """
        try:
            creation_url = authorization_endpoint(directory).require()
        except UnsupportedOperation:
            return defer.fail()
        if url is None:
            url = creation_url
        payload = NewAuthorization(
            identifier=identifier, existing=EXISTING_REQUIRE)
        return self._authorization(
            url, payload, account, directory, existing=True)

    def respond_to_challenge(self, challenge, response, account, directory):
        """
        Tell the server the challenge is ready to be validated.

        :param ~txacmeproto.messages.Challenge challenge: The challenge
            being answered.
        :param ~txacmeproto.messages.ChallengeResponse response: The
            response body.

        :raises ~txacmeproto.errors.NoChallengeURL: If the challenge does
            not have a URL.

        :return: The updated challenge.
        :rtype: Deferred[`~txacmeproto.messages.Challenge`]
        """
        url = challenge.location
        if url is None:
            return defer.fail(NoChallengeURL(challenge))
        action = LOG_ACME_ANSWER_CHALLENGE(
            challenge=challenge, response=response)
        with action.context():
            return (
                DeferredContext(
                    self._signed_post(url, response, account.key, directory))
                .addCallback(_json_body, url)
                .addCallback(_parse(Challenge, url))
                .addCallback(
                    tap(lambda c: action.add_success_fields(challenge=c)))
                .addActionFinish())

    def submit_order(self, order, account, directory):
        """
        Submit a certificate order and decode the issued certificate.

        The ``new-order`` endpoint is used when the server advertises one,
        else the legacy ``new-cert`` endpoint.

        :param ~txacmeproto.messages.Order order: The order.

        :raises ~txacmeproto.errors.UnsupportedOperation: If neither endpoint
            exists.
        :raises ~txacmeproto.errors.CertificateDecodeError: If the response
            is not a DER certificate.

        :rtype: Deferred[`cryptography.x509.Certificate`]
        """
        try:
            url = order_endpoint(directory).require()
        except UnsupportedOperation:
            return defer.fail()

        def _decode(body):
            try:
                return x509.load_der_x509_certificate(body, default_backend())
            except ValueError as error:
                raise CertificateDecodeError(error, body)

        action = LOG_ACME_SUBMIT_ORDER(order=order)
        with action.context():
            return (
                DeferredContext(
                    self._signed_post(url, order, account.key, directory))
                .addCallback(lambda response: response.content())
                .addCallback(_decode)
                .addCallback(
                    tap(lambda cert: action.add_success_fields(
                        subject=cert.subject.rfc4514_string())))
                .addActionFinish())


__all__ = [
    'Client', 'find_pending_challenge', 'maybe_pending_challenge',
    'key_authorization']
