# -*- coding: utf-8 -*-
"""
Interface definitions for txacmeproto.
"""
from zope.interface import Attribute, Interface


class ITransport(Interface):
    """
    The HTTP layer the protocol operations talk through.

    Responses provide ``code``, ``headers`` (a
    ``twisted.web.http_headers.Headers``, so lookups are case-insensitive) and
    the ``treq`` body readers ``content()``, ``json()`` and ``text()``.
    HTTP error statuses and network failures fail the returned deferreds with
    `txacmeproto.errors.TransportFailure` subclasses.
    """
    def head(url):
        """
        Send a HEAD request.

        :param str url: The URL to request.

        :rtype: ``Deferred[IResponse]``
        """

    def get(url):
        """
        Send a GET request.

        :param str url: The URL to request.

        :rtype: ``Deferred[IResponse]``
        """

    def post(url, data):
        """
        POST a signed request body.

        :param str url: The URL to request.
        :param bytes data: The serialized JWS.

        :rtype: ``Deferred[IResponse]``
        """


class IResponder(Interface):
    """
    Configuration for a ACME challenge responder.

    The actual responder may exist somewhere else, this interface is merely for
    an object that knows how to configure it.
    """
    challenge_type = Attribute(
        """
        The type of challenge this responder is able to respond for; for
        example, ``u'http-01'``.
        """)

    def start_responding(server_name, challenge, key_authorization):
        """
        Start responding for a particular challenge.

        :param str server_name: The name being validated.
        :param challenge: The `txacmeproto.messages.Challenge`.
        :param str key_authorization: The key authorization to serve.

        :rtype: ``Deferred``
        :return: A deferred firing when the challenge is ready to be verified.
        """

    def stop_responding(server_name, challenge, key_authorization):
        """
        Stop responding for a particular challenge.

        May be a noop if a particular responder does not need or implement
        explicit cleanup; implementations should not rely on this method always
        being called.
        """


__all__ = ['ITransport', 'IResponder']
