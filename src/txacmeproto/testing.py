"""
Utilities for testing with txacmeproto.
"""
import json
from itertools import count

import attr
from acme.jws import JWS
from josepy.b64 import b64encode
from treq.testing import StubTreq
from twisted.web import http
from twisted.web.resource import Resource

from txacmeproto.transport import JSON_CONTENT_TYPE, HTTPTransport


@attr.s
class RecordedRequest(object):
    """
    A request received by `FakeACMEServer`.
    """
    method = attr.ib()
    path = attr.ib()
    headers = attr.ib(repr=False)
    body = attr.ib(repr=False)

    def jws(self):
        """
        Parse the body as a signed envelope.

        :rtype: `acme.jws.JWS`
        """
        return JWS.json_loads(self.body.decode('utf-8'))

    def protected(self):
        """
        The combined JWS header of the body: ``nonce``, ``url``, ``jwk``...
        """
        return self.jws().signature.combined

    def payload(self):
        """
        The decoded JSON payload of the envelope.
        """
        return json.loads(self.jws().payload.decode('utf-8'))


class FakeACMEServer(Resource):
    """
    An in-memory ACME server.

    Responses are canned per ``(method, path)`` with `route`; anything else
    gets a 404.  Every request is recorded in `requests`, and every routed
    response carries a fresh ``Replay-Nonce`` (recorded in `nonces`) unless
    told otherwise.

    Use `transport` to talk to it through ``treq.testing.StubTreq``.
    """
    isLeaf = True

    def __init__(self, base=u'http://acme.example'):
        Resource.__init__(self)
        self.base = base
        self.requests = []
        self.nonces = []
        self._routes = {}
        self._counter = count()

    def url(self, path):
        return self.base + path

    def transport(self):
        return HTTPTransport(StubTreq(self), timeout=None)

    def route(self, method, path, code=http.OK, body=b'', headers=None,
              nonce=True):
        """
        Serve a canned response.

        :param dict headers: Extra response headers; values may be text or
            raw bytes.
        :param bool nonce: Whether to add a fresh ``Replay-Nonce``.
        """
        self._routes[(method, path)] = (code, body, headers or {}, nonce)

    def route_json(self, method, path, jobj, code=http.OK, headers=None,
                   content_type=JSON_CONTENT_TYPE):
        """
        Serve a canned JSON response.
        """
        headers = dict(headers or {})
        headers[u'Content-Type'] = content_type
        self.route(
            method, path, code=code, body=json.dumps(jobj).encode('utf-8'),
            headers=headers)

    def serve_directory(self, path=u'/directory', **resources):
        """
        Serve a directory mapping resource names to paths on this server.

        The directory URL also answers ``HEAD`` with a nonce, as Boulder's
        does.
        """
        jobj = {
            name.replace(u'_', u'-'): self.url(resource_path)
            for name, resource_path in resources.items()}
        self.route_json(u'GET', path, jobj)
        self.route(u'HEAD', path)
        return self.url(path)

    def requests_for(self, method, path):
        return [
            request for request in self.requests
            if request.method == method and request.path == path]

    def _new_nonce(self):
        nonce = u'nonce-{}'.format(next(self._counter)).encode('ascii')
        self.nonces.append(nonce)
        return b64encode(nonce)

    def render(self, request):
        method = request.method.decode('ascii')
        path = request.path.decode('ascii')
        self.requests.append(RecordedRequest(
            method=method,
            path=path,
            headers=request.requestHeaders,
            body=request.content.read()))
        try:
            code, body, headers, nonce = self._routes[(method, path)]
        except KeyError:
            request.setResponseCode(http.NOT_FOUND)
            return b''
        request.setResponseCode(code)
        for name, value in headers.items():
            request.setHeader(name, value)
        if nonce:
            request.setHeader(b'Replay-Nonce', self._new_nonce())
        return body


__all__ = ['FakeACMEServer', 'RecordedRequest']
