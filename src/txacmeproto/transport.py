"""
HTTP transport for ACME requests, on top of ``treq``.
"""
import json

import josepy as jose
from acme import messages
from eliot.twisted import DeferredContext
from treq.client import HTTPClient
from twisted.internet import defer
from twisted.web.client import Agent, HTTPConnectionPool
from twisted.web.http_headers import Headers
from zope.interface import implementer

from txacmeproto import __version__
from txacmeproto.errors import ACMEError, ConnectionFailure, ServerError
from txacmeproto.interfaces import ITransport
from txacmeproto.logging import LOG_HTTP_CHECK_RESPONSE, LOG_HTTP_REQUEST
from txacmeproto.util import tap

_DEFAULT_TIMEOUT = 40

JSON_CONTENT_TYPE = u'application/json'
JOSE_CONTENT_TYPE = u'application/jose+json'
JSON_ERROR_CONTENT_TYPE = u'application/problem+json'
DER_CONTENT_TYPE = u'application/pkix-cert'
REPLAY_NONCE_HEADER = b'Replay-Nonce'
LOCATION_HEADER = b'Location'


def header_value(response, name, errors='strict'):
    """
    Get the first value of a response header as text, or ``None``.

    :param str errors: The error handler for decoding the value as ASCII.

    :raises UnicodeDecodeError: If the value is not ASCII and ``errors`` is
        ``'strict'``.
    """
    value = response.headers.getRawHeaders(name, [None])[0]
    if isinstance(value, bytes):
        value = value.decode('ascii', errors)
    return value


def _fail_and_consume(response, error):
    """
    Fail the deferred, but before the read all the pending data from the
    response.
    """
    def fail(_):
        raise error
    return response.content().addBoth(fail)


def check_response(response):
    """
    Turn HTTP error statuses into `ServerError`.

    The body of an error response is read; when it is an RFC 7807 problem
    document it is parsed into an `acme.messages.Error`.

    :return: The response, unmodified, if it is not an error.
    """
    if response.code < 400:
        return response

    content_type = header_value(
        response, b'content-type', errors='replace') or u''

    def _got_body(body):
        problem = None
        if content_type.lower().startswith(JSON_ERROR_CONTENT_TYPE):
            try:
                problem = messages.Error.from_json(
                    json.loads(body.decode('utf-8')))
            except (ValueError, jose.DeserializationError):
                problem = None
        raise ServerError(response.code, problem, response, detail=body)

    with LOG_HTTP_CHECK_RESPONSE(code=response.code).context():
        return (
            DeferredContext(response.content())
            .addCallback(_got_body)
            .addActionFinish())


@implementer(ITransport)
class HTTPTransport(object):
    """
    HTTP client for the ACME server.

    Requests carry a ``User-Agent`` and time out after ``timeout`` seconds.
    There is no retry.
    """
    def __init__(self, treq_client, timeout=_DEFAULT_TIMEOUT,
                 user_agent=u'txacmeproto/{}'.format(__version__).encode(
                     'ascii'),
                 pool=None):
        self._treq = treq_client
        self.timeout = timeout
        self._user_agent = user_agent
        self._pool = pool

    @classmethod
    def from_reactor(cls, reactor, **kwargs):
        """
        Build a transport with its own connection pool.
        """
        pool = HTTPConnectionPool(reactor)
        agent = Agent(reactor, pool=pool)
        return cls(HTTPClient(agent=agent), pool=pool, **kwargs)

    def _send_request(self, method, url, **kwargs):
        """
        Send HTTP request.

        :param str method: The HTTP method to use.
        :param str url: The URL to make the request to.

        :return: Deferred firing with the HTTP response.
        """
        def cb_failed(failure):
            if failure.check(ACMEError):
                return failure
            raise ConnectionFailure(url, failure.value)

        action = LOG_HTTP_REQUEST(method=method, url=url)
        with action.context():
            headers = kwargs.setdefault('headers', Headers())
            headers.setRawHeaders(b'user-agent', [self._user_agent])
            if self.timeout is not None:
                kwargs.setdefault('timeout', self.timeout)
            return (
                DeferredContext(
                    defer.maybeDeferred(
                        self._treq.request, method, url, **kwargs))
                .addErrback(cb_failed)
                .addCallback(
                    tap(lambda r: action.add_success_fields(
                        code=r.code,
                        content_type=header_value(
                            r, b'content-type', errors='replace'))))
                .addCallback(check_response)
                .addActionFinish())

    def head(self, url):
        return self._send_request(u'HEAD', url)

    def get(self, url):
        return self._send_request(u'GET', url)

    def post(self, url, data):
        headers = Headers()
        headers.setRawHeaders(
            b'content-type', [JOSE_CONTENT_TYPE.encode('ascii')])
        return self._send_request(u'POST', url, data=data, headers=headers)

    def stop(self):
        """
        Close any cached connections.

        :return: A deferred which fires when the connections are closed.
        """
        if self._pool is not None:
            return self._pool.closeCachedConnections()
        return defer.succeed(None)


__all__ = [
    'HTTPTransport', 'check_response', 'header_value', 'JSON_CONTENT_TYPE',
    'JOSE_CONTENT_TYPE', 'JSON_ERROR_CONTENT_TYPE', 'DER_CONTENT_TYPE',
    'REPLAY_NONCE_HEADER', 'LOCATION_HEADER']
