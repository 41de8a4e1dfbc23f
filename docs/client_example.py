"""
Obtain a certificate for one domain with an ``http-01`` challenge.

The challenge is answered on port 5002; point the domain (or the test
server's ``httpPort`` setting) there.  The Eliot log of the whole run is
written to ``eliot-log.json``.

Usage::

    python docs/client_example.py DIRECTORY_URL DOMAIN EMAIL
"""
import sys

from cryptography.hazmat.primitives import serialization
from eliot import to_file
from twisted.internet import defer, task
from twisted.internet.endpoints import TCP4ServerEndpoint
from twisted.python.url import URL
from twisted.web.resource import Resource
from twisted.web.server import Site

from txacmeproto.challenges import HTTP01Responder
from txacmeproto.client import Client, find_pending_challenge
from txacmeproto.errors import ServerError
from txacmeproto.messages import ChallengeResponse, fqdn_identifier
from txacmeproto.util import (
    csr_for_names, generate_private_key, new_account, new_order)

LOG_PATH = 'eliot-log.json'


def start_http01_server(reactor, responder):
    """
    Serve ``responder`` at ``/.well-known/acme-challenge`` on port 5002.
    """
    well_known = Resource()
    well_known.putChild(b'acme-challenge', responder.resource)
    root = Resource()
    root.putChild(b'.well-known', well_known)
    endpoint = TCP4ServerEndpoint(reactor, 5002, interface='0.0.0.0')
    return endpoint.listen(Site(root))


@defer.inlineCallbacks
def main(reactor, directory_url, domain, email):
    to_file(open(LOG_PATH, 'w'))
    responder = HTTP01Responder()
    port = yield start_http01_server(reactor, responder)

    client = Client.from_reactor(reactor)
    try:
        directory = yield client.fetch_directory(URL.fromText(directory_url))
        account = new_account(email)
        account = account.with_registration(
            account.registration.update(terms_of_service_agreed=True))
        try:
            account = yield client.register(account, directory)
        except ServerError as error:
            # Already registered with this key.
            if error.code != 409:
                raise
        print('Account contact: %s' % (account.registration.contact,))

        authorization = yield client.request_authorization(
            fqdn_identifier(domain), account, directory)
        challenge = find_pending_challenge(u'http-01', authorization)
        response = ChallengeResponse.for_challenge(challenge, account)
        responder.start_responding(
            domain, challenge, response.key_authorization)
        try:
            challenge = yield client.respond_to_challenge(
                challenge, response, account, directory)
            print('Challenge status: %s' % (challenge.status,))
            # The server validates asynchronously.
            yield task.deferLater(reactor, 5, lambda: None)
        finally:
            responder.stop_responding(
                domain, challenge, response.key_authorization)

        key = generate_private_key(u'rsa')
        cert = yield client.submit_order(
            new_order(csr_for_names([domain], key)), account, directory)
        print(cert.public_bytes(serialization.Encoding.PEM).decode('ascii'))
    finally:
        yield client.stop()
        yield port.stopListening()


if __name__ == '__main__':
    if len(sys.argv) < 4:
        print('Usage: %s DIRECTORY_URL DOMAIN EMAIL\n' % (sys.argv[0],))
        print('[Production] https://acme-v02.api.letsencrypt.org/directory')
        print(
            '[Staging] https://acme-staging-v02.api.letsencrypt.org/directory')
        sys.exit(1)
    task.react(main, sys.argv[1:4])
