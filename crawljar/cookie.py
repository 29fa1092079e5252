'''
The cookie record, and the identity key used to decide when two
cookies occupy the same slot in a store.

Two cookies with the same name, domain, and path are the same cookie as
far as a store is concerned, no matter what their values or expirations
are. Domains are compared case-insensitively, and a bare hostname like
"localhost" gets ".local" tacked on so that it can never collide with a
real domain of the same label.
'''

import email.utils
import http.cookies
import json
import time

LOCAL_DOMAIN_SUFFIX = '.local'


class Cookie(object):
    '''
    One cookie. expires is whole epoch seconds, or None for a session cookie.
    domain_specified is the cookies.txt "include subdomains" flag.
    '''
    fields = ('name', 'value', 'domain', 'path', 'secure', 'expires', 'domain_specified')

    def __init__(self, name, value='', domain='', path='/', secure=False, expires=None,
                 domain_specified=True):
        self.name = name
        self.value = value
        self.domain = domain if domain is not None else ''
        self.path = path
        self.secure = bool(secure)
        self.expires = int(expires) if expires is not None else None
        self.domain_specified = bool(domain_specified)

    @property
    def key(self):
        return make_key(self)

    @property
    def expires_ms(self):
        if self.expires is None:
            return None
        return self.expires * 1000

    def is_session(self):
        return self.expires is None

    def is_expired(self, now=None):
        if self.expires is None:
            return False
        if now is None:
            now = time.time()
        return self.expires <= now

    def to_morsel(self):
        '''
        Render as an http.cookies.Morsel, the currency of aiohttp cookie jars.
        Raises http.cookies.CookieError for names a Morsel will not accept.
        '''
        m = http.cookies.Morsel()
        value = self.value or ''
        m.set(self.name, value, value)
        m['domain'] = self.domain
        m['path'] = self.path or '/'
        if self.secure:
            m['secure'] = True
        if self.expires is not None:
            m['expires'] = email.utils.formatdate(self.expires, usegmt=True)
        return m

    def _astuple(self):
        return tuple(getattr(self, f) for f in self.fields)

    def __eq__(self, other):
        if not isinstance(other, Cookie):
            return NotImplemented
        return self._astuple() == other._astuple()

    def __hash__(self):
        return hash(self._astuple())

    def __repr__(self):
        return 'Cookie({})'.format(', '.join('{}={!r}'.format(f, getattr(self, f)) for f in self.fields))


def normalize_domain(domain):
    if domain is None:
        domain = ''
    elif '.' not in domain:
        domain = domain + LOCAL_DOMAIN_SUFFIX
    return domain.lower()


def make_key(cookie):
    '''
    Identity key for a cookie: a compact json array of
    [name, normalized domain, path]. Never raises.
    '''
    name = getattr(cookie, 'name', None)
    domain = normalize_domain(getattr(cookie, 'domain', None))
    path = getattr(cookie, 'path', None)
    if path is None:
        path = '/'
    return json.dumps([name, domain, path], separators=(',', ':'))
