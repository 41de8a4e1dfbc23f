"""
Miscellaneous strategies for Hypothesis testing.
"""
from hypothesis import strategies as s
from twisted.python.url import URL

from txacmeproto.messages import Authorization, Challenge, fqdn_identifier

CHALLENGE_TYPES = [u'http-01', u'dns-01', u'tls-alpn-01']

STATUSES = [u'pending', u'processing', u'valid', u'invalid']


def dns_labels():
    """
    Strategy for generating limited charset DNS labels.
    """
    # This is too limited, but whatever
    return s.from_regex(u'\\A[a-z]{3}[a-z0-9-]{0,21}[a-z]\\Z')


def dns_names():
    """
    Strategy for generating limited charset DNS names.
    """
    return (
        s.lists(dns_labels(), min_size=1, max_size=10)
        .map(u'.'.join))


def urls():
    """
    Strategy for generating ``twisted.python.url.URL``\\s.
    """
    return s.builds(
        URL,
        scheme=s.just(u'https'),
        host=dns_names(),
        path=s.lists(s.text(
            max_size=64,
            alphabet=s.characters(exclude_characters=u'/?#',
                                  exclude_categories=('Cs',))
        ), min_size=1, max_size=10))


def tokens():
    """
    Strategy for generating base64url challenge tokens.
    """
    return s.from_regex(u'\\A[A-Za-z0-9_-]{16,43}\\Z')


def challenges():
    """
    Strategy for generating `~txacmeproto.messages.Challenge`\\s.
    """
    return s.builds(
        Challenge,
        typ=s.sampled_from(CHALLENGE_TYPES),
        status=s.sampled_from(STATUSES),
        token=tokens(),
        url=urls().map(lambda url: url.asText()))


def authorizations():
    """
    Strategy for generating `~txacmeproto.messages.Authorization`\\s.
    """
    return s.builds(
        Authorization,
        identifier=dns_names().map(fqdn_identifier),
        status=s.sampled_from(STATUSES),
        challenges=s.lists(challenges(), max_size=6).map(tuple))


def json_payloads():
    """
    Strategy for generating JSON object payloads.
    """
    return s.dictionaries(
        s.text(max_size=16),
        s.one_of(s.none(), s.booleans(), s.integers(), s.text(max_size=32)),
        max_size=8)


__all__ = [
    'dns_labels', 'dns_names', 'urls', 'tokens', 'challenges',
    'authorizations', 'json_payloads']
