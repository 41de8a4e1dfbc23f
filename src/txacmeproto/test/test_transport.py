import json

import attr
from acme import messages
from treq.testing import StubTreq
from twisted.internet.defer import fail, succeed
from twisted.internet.error import ConnectionRefusedError
from twisted.trial.unittest import TestCase
from zope.interface.verify import verifyObject

from txacmeproto.errors import (
    ConnectionFailure, ServerError, TransportFailure)
from txacmeproto.interfaces import ITransport
from txacmeproto.testing import FakeACMEServer
from txacmeproto.transport import (
    JOSE_CONTENT_TYPE, HTTPTransport, header_value)


@attr.s
class RecordingTreq(object):
    """
    A treq stand-in that records requests and returns a canned result.
    """
    result = attr.ib()
    requests = attr.ib(default=attr.Factory(list))

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self.result


class TransportTests(TestCase):
    """
    `.HTTPTransport` sends requests and classifies failures.
    """
    def setUp(self):
        self.server = FakeACMEServer()
        self.transport = self.server.transport()

    def test_interface(self):
        verifyObject(ITransport, self.transport)

    def test_get(self):
        """
        Successful responses are returned unchanged.
        """
        self.server.route(
            u'GET', u'/thing', body=b'hello',
            headers={u'Location': u'https://acme.example/elsewhere'})
        response = self.successResultOf(
            self.transport.get(self.server.url(u'/thing')))
        self.assertEqual(200, response.code)
        self.assertEqual(
            u'https://acme.example/elsewhere',
            header_value(response, b'location'))
        self.assertIsNone(header_value(response, b'x-missing'))
        self.assertEqual(b'hello', self.successResultOf(response.content()))

    def test_post_content_type(self):
        """
        Posted bodies are labelled as JOSE and carry the user agent.
        """
        self.server.route(u'POST', u'/new-reg', code=201)
        self.successResultOf(
            self.transport.post(self.server.url(u'/new-reg'), b'{}'))
        [request] = self.server.requests
        self.assertEqual(b'{}', request.body)
        self.assertEqual(
            [JOSE_CONTENT_TYPE.encode('ascii')],
            request.headers.getRawHeaders(b'content-type'))
        [user_agent] = request.headers.getRawHeaders(b'user-agent')
        self.assertTrue(user_agent.startswith(b'txacmeproto/'))

    def test_head(self):
        self.server.route(u'HEAD', u'/nonce')
        response = self.successResultOf(
            self.transport.head(self.server.url(u'/nonce')))
        self.assertEqual([b'nonce-0'], self.server.nonces)
        self.assertIsNotNone(header_value(response, b'Replay-Nonce'))

    def test_problem_document(self):
        """
        An RFC 7807 problem body is parsed onto the `.ServerError`.
        """
        self.server.route_json(
            u'POST', u'/new-authz',
            {u'type': u'urn:ietf:params:acme:error:unauthorized',
             u'detail': u'No such account'},
            code=403, content_type=u'application/problem+json')
        failure = self.failureResultOf(
            self.transport.post(self.server.url(u'/new-authz'), b'{}'),
            ServerError)
        error = failure.value
        self.assertIsInstance(error, TransportFailure)
        self.assertEqual(403, error.code)
        self.assertIsInstance(error.problem, messages.Error)
        self.assertEqual(u'No such account', error.problem.detail)
        self.assertEqual(u'unauthorized', error.typ)

    def test_plain_error(self):
        """
        Error bodies that are not problem documents are kept as the detail.
        """
        self.server.route(u'GET', u'/directory', code=500, body=b'oops')
        failure = self.failureResultOf(
            self.transport.get(self.server.url(u'/directory')), ServerError)
        self.assertIsNone(failure.value.problem)
        self.assertIsNone(failure.value.typ)
        self.assertEqual(b'oops', failure.value.detail)

    def test_invalid_problem_document(self):
        """
        A problem content type with an unparseable body still fails with
        `.ServerError`.
        """
        self.server.route(
            u'GET', u'/directory', code=400, body=b'{',
            headers={u'Content-Type': u'application/problem+json'})
        failure = self.failureResultOf(
            self.transport.get(self.server.url(u'/directory')), ServerError)
        self.assertIsNone(failure.value.problem)

    def test_not_found(self):
        failure = self.failureResultOf(
            self.transport.get(self.server.url(u'/nowhere')), ServerError)
        self.assertEqual(404, failure.value.code)


class RequestOptionsTests(TestCase):
    """
    Options passed on to ``treq``.
    """
    def test_connection_failure(self):
        """
        Network failures become `.ConnectionFailure`.
        """
        treq = RecordingTreq(fail(ConnectionRefusedError()))
        transport = HTTPTransport(treq)
        failure = self.failureResultOf(
            transport.get(u'https://acme.example/directory'),
            ConnectionFailure)
        self.assertEqual(u'https://acme.example/directory', failure.value.url)
        self.assertIsInstance(failure.value.reason, ConnectionRefusedError)

    def test_timeout(self):
        """
        The configured timeout is passed with every request.
        """
        treq = RecordingTreq(fail(ConnectionRefusedError()))
        self.failureResultOf(
            HTTPTransport(treq, timeout=5).head(u'https://acme.example/'))
        [(method, url, kwargs)] = treq.requests
        self.assertEqual((u'HEAD', 5), (method, kwargs[u'timeout']))

    def test_no_timeout(self):
        treq = RecordingTreq(fail(ConnectionRefusedError()))
        self.failureResultOf(
            HTTPTransport(treq, timeout=None).get(u'https://acme.example/'))
        [(_, _, kwargs)] = treq.requests
        self.assertNotIn(u'timeout', kwargs)

    def test_user_agent(self):
        treq = RecordingTreq(fail(ConnectionRefusedError()))
        transport = HTTPTransport(treq, user_agent=b'my-agent/1.0')
        self.failureResultOf(transport.get(u'https://acme.example/'))
        [(_, _, kwargs)] = treq.requests
        self.assertEqual(
            [b'my-agent/1.0'],
            kwargs[u'headers'].getRawHeaders(b'user-agent'))

    def test_stop_without_pool(self):
        transport = HTTPTransport(RecordingTreq(succeed(None)))
        self.assertIsNone(self.successResultOf(transport.stop()))

    def test_default_json_stub(self):
        """
        A stub treq over a plain resource works as a transport.
        """
        server = FakeACMEServer()
        server.route_json(u'GET', u'/x', {u'a': 1})
        transport = HTTPTransport(StubTreq(server), timeout=None)
        response = self.successResultOf(transport.get(server.url(u'/x')))
        self.assertEqual(
            {u'a': 1},
            json.loads(self.successResultOf(response.content())))
