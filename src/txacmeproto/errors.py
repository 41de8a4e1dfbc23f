"""
Exception types for txacmeproto.

Every error raised by the protocol operations derives from `ACMEError` and
belongs to one of five kinds: `UnsupportedOperation`, `SigningFailure`,
`TransportFailure`, `ProtocolViolation` and `NotFound`.
"""
import attr


class ACMEError(Exception):
    """
    Base class for all txacmeproto errors.
    """


class UnsupportedOperation(ACMEError):
    """
    The server directory does not advertise an endpoint for the operation.
    """
    def __init__(self, operation):
        ACMEError.__init__(self, operation)
        self.operation = operation

    def __str__(self):
        return 'Operation not supported by the server: {!r}'.format(
            self.operation)


class SigningFailure(ACMEError):
    """
    A signed envelope could not be built.
    """
    def __init__(self, reason):
        ACMEError.__init__(self, reason)
        self.reason = reason

    def __str__(self):
        return 'Unable to sign request: {}'.format(self.reason)


class TransportFailure(ACMEError):
    """
    The HTTP exchange with the server failed.
    """


class ProtocolViolation(ACMEError):
    """
    The server answered with something the flow cannot interpret.
    """


class NotFound(ACMEError):
    """
    A value expected to be present on a protocol object is missing.
    """


@attr.s(auto_exc=True)
class ConnectionFailure(TransportFailure):
    """
    The request could not be completed at the network level.
    """
    url = attr.ib()
    reason = attr.ib()

    def __str__(self):
        return 'Request to {} failed: {}'.format(self.url, self.reason)


@attr.s(auto_exc=True)
class MissingHeader(TransportFailure):
    """
    A response lacks a header field the protocol requires.
    """
    header = attr.ib()
    url = attr.ib(default=None)

    def __str__(self):
        return 'Response from {} has no {} header'.format(
            self.url, self.header)


@attr.s(auto_exc=True)
class BadNonce(TransportFailure):
    """
    The ``Replay-Nonce`` header is not a valid base64url value.
    """
    nonce = attr.ib()
    error = attr.ib()

    def __str__(self):
        return 'Invalid nonce ({!r}): {}'.format(self.nonce, self.error)


class ServerError(TransportFailure):
    """
    The server answered with an HTTP error status.

    :ivar code: The HTTP status code.
    :ivar problem: The parsed `acme.messages.Error` problem document, or
        ``None`` when the body was not one.
    :ivar response: The HTTP response.
    """
    def __init__(self, code, problem, response, detail=None):
        TransportFailure.__init__(self, code, problem)
        self.code = code
        self.problem = problem
        self.response = response
        self.detail = detail

    @property
    def typ(self):
        """
        The problem type without its URN namespace, if known.
        """
        if self.problem is None or self.problem.typ is None:
            return None
        return self.problem.typ.split(':')[-1]

    def __str__(self):
        if self.problem is not None:
            return 'Server error {}: {}'.format(self.code, self.problem)
        return 'Server error {}: {!r}'.format(self.code, self.detail)

    def __repr__(self):
        return 'ServerError({!r}, {!r})'.format(self.code, self.problem)


@attr.s(auto_exc=True)
class MalformedResponse(ProtocolViolation):
    """
    The response body could not be parsed into the expected object.
    """
    url = attr.ib()
    error = attr.ib()

    def __str__(self):
        return 'Malformed response from {}: {}'.format(self.url, self.error)


@attr.s(auto_exc=True)
class NoPendingChallenge(ProtocolViolation, NotFound):
    """
    The authorization has no pending challenge of the requested type.
    """
    challenge_type = attr.ib()
    authorization = attr.ib(default=None, repr=False)

    def __str__(self):
        return 'No pending challenge of type {!r}'.format(self.challenge_type)


@attr.s(auto_exc=True)
class NoChallengeURL(ProtocolViolation):
    """
    A challenge does not say where to send its response.
    """
    challenge = attr.ib()

    def __str__(self):
        return 'Challenge has no URL: {!r}'.format(self.challenge)


@attr.s(auto_exc=True)
class NoToken(NotFound):
    """
    A challenge expected to carry a token does not.
    """
    challenge = attr.ib()

    def __str__(self):
        return 'Challenge has no token: {!r}'.format(self.challenge)


@attr.s(auto_exc=True)
class CertificateDecodeError(ProtocolViolation):
    """
    The issued certificate could not be decoded as DER.
    """
    error = attr.ib()
    body = attr.ib(repr=False)

    def __str__(self):
        return 'Unable to decode certificate ({}): {!r}'.format(
            self.error, self.body[:64])


__all__ = [
    'ACMEError', 'UnsupportedOperation', 'SigningFailure', 'TransportFailure',
    'ProtocolViolation', 'NotFound', 'ConnectionFailure', 'MissingHeader',
    'BadNonce', 'ServerError', 'MalformedResponse', 'NoPendingChallenge',
    'NoChallengeURL', 'NoToken', 'CertificateDecodeError']
