"""
Eliot message and action definitions.
"""
from operator import methodcaller

from eliot import ActionType, Field, fields
from josepy.b64 import b64encode

NONCE = Field(
    u'nonce',
    lambda nonce: b64encode(nonce).decode('ascii'),
    u'A nonce value')

REGISTRATION = Field(
    u'registration',
    methodcaller('to_json'),
    u'An ACME registration')

LOG_JWS_SIGN = ActionType(
    u'txacmeproto:jws:sign',
    fields(NONCE, key_type=str, alg=str, url=str),
    fields(),
    u'Signing a message with JWS')

LOG_JWS_GET_NONCE = ActionType(
    u'txacmeproto:jws:nonce:get',
    fields(url=str),
    fields(NONCE),
    u'Fetching a fresh nonce')

LOG_HTTP_REQUEST = ActionType(
    u'txacmeproto:http:request',
    fields(method=str, url=str),
    fields(Field.for_types(u'content_type',
                           [str, None],
                           u'Content-Type header field'),
           code=int),
    u'An HTTP request to the ACME server')

LOG_HTTP_CHECK_RESPONSE = ActionType(
    u'txacmeproto:http:check-response',
    fields(code=int),
    fields(),
    u'Checking an HTTP response for errors')

DIRECTORY = Field(u'directory', methodcaller('to_json'), u'An ACME directory')

URL = Field(u'url', methodcaller('asText'), u'A URL object')

LOG_ACME_FETCH_DIRECTORY = ActionType(
    u'txacmeproto:acme:directory:fetch',
    fields(URL),
    fields(DIRECTORY),
    u'Fetching the ACME directory')

LOG_ACME_REGISTER = ActionType(
    u'txacmeproto:acme:account:register',
    fields(REGISTRATION),
    fields(Field(u'registration',
                 methodcaller('to_json'),
                 u'The resulting registration')),
    u'Registering with an ACME server')

LOG_ACME_LOCATE_ACCOUNT = ActionType(
    u'txacmeproto:acme:account:locate',
    fields(),
    fields(uri=str),
    u'Looking up the account URL')

LOG_ACME_UPDATE_REGISTRATION = ActionType(
    u'txacmeproto:acme:account:update',
    fields(REGISTRATION),
    fields(Field(u'registration',
                 methodcaller('to_json'),
                 u'The updated registration')),
    u'Updating a registration')

LOG_ACME_KEY_ROLLOVER = ActionType(
    u'txacmeproto:acme:account:key-rollover',
    fields(Field(u'new_key',
                 methodcaller('to_json'),
                 u'The new public key')),
    fields(Field(u'registration',
                 methodcaller('to_json'),
                 u'The registration under the new key')),
    u'Rolling over the account key')

LOG_ACME_CREATE_AUTHORIZATION = ActionType(
    u'txacmeproto:acme:authorization:create',
    fields(Field(u'identifier',
                 methodcaller('to_json'),
                 u'An identifier'),
           existing=bool),
    fields(Field(u'authorization',
                 methodcaller('to_json'),
                 u'The authorization')),
    u'Creating an authorization')

LOG_ACME_ANSWER_CHALLENGE = ActionType(
    u'txacmeproto:acme:challenge:answer',
    fields(Field(u'challenge',
                 methodcaller('to_json'),
                 u'The challenge'),
           Field(u'response',
                 methodcaller('to_json'),
                 u'The challenge response')),
    fields(Field(u'challenge',
                 methodcaller('to_json'),
                 u'The updated challenge')),
    u'Answering an authorization challenge')

LOG_ACME_SUBMIT_ORDER = ActionType(
    u'txacmeproto:acme:order:submit',
    fields(Field(u'order',
                 methodcaller('to_json'),
                 u'The order')),
    fields(subject=str),
    u'Submitting a certificate order')
