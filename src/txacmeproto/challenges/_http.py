"""
``http-01`` challenge implementation.
"""
from twisted.web.resource import Resource
from twisted.web.static import Data

from zope.interface import implementer

from txacmeproto.interfaces import IResponder


@implementer(IResponder)
class HTTP01Responder(object):
    """
    An ``http-01`` challenge responder.

    Mount `resource` at ``/.well-known/acme-challenge`` on the web server the
    CA will query.
    """
    challenge_type = u'http-01'

    def __init__(self):
        self.resource = Resource()

    def start_responding(self, server_name, challenge, key_authorization):
        """
        Add the child resource.
        """
        self.resource.putChild(
            challenge.token.encode('ascii'),
            Data(key_authorization.encode('ascii'), 'text/plain'))

    def stop_responding(self, server_name, challenge, key_authorization):
        """
        Remove the child resource.
        """
        encoded_token = challenge.token.encode('ascii')
        if self.resource.getStaticEntity(encoded_token) is not None:
            self.resource.delEntity(encoded_token)


__all__ = ['HTTP01Responder']
