'''
An aiohttp cookie jar backed by a CookieStore, so that cookies a crawl
picks up go into the persistent store:

    store = CookieStore.from_config()
    store.start()
    session = aiohttp.ClientSession(cookie_jar=StoreCookieJar(store))

Cookie values are kept as they appeared on the wire, which is also how
cookies.txt files hold them. Matching follows the RFC 6265 domain and path
rules and nothing fancier.
'''

import http.cookiejar
import ipaddress
import logging
import time
from collections.abc import Mapping
from http.cookies import CookieError, Morsel, SimpleCookie

from aiohttp.abc import AbstractCookieJar
from yarl import URL

from .cookie import Cookie

LOGGER = logging.getLogger(__name__)


def is_ip_address(hostname):
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return True


def domain_match(domain, hostname):
    domain = (domain or '').lower().lstrip('.')
    hostname = (hostname or '').lower()
    if not domain or not hostname:
        return False
    if hostname == domain:
        return True
    if not hostname.endswith('.' + domain):
        return False
    return not is_ip_address(hostname)


def path_match(req_path, cookie_path):
    if cookie_path is None:
        cookie_path = '/'
    if not req_path.startswith('/'):
        req_path = '/'
    if req_path == cookie_path:
        return True
    if not req_path.startswith(cookie_path):
        return False
    if cookie_path.endswith('/'):
        return True
    return req_path[len(cookie_path)] == '/'


def default_path(url):
    path = url.path
    if not path.startswith('/'):
        return '/'
    return '/' + path[1:path.rfind('/')]


def morsel_expires(morsel, now):
    '''
    Epoch seconds from Max-Age or Expires, Max-Age winning. None if neither.
    '''
    max_age = morsel['max-age']
    if max_age:
        try:
            return int(now) + int(max_age)
        except ValueError:
            LOGGER.debug('ignoring bad max-age %r for cookie %s', max_age, morsel.key)
    expires = morsel['expires']
    if expires:
        t = http.cookiejar.http2time(expires)
        if t is not None:
            return int(t)
        LOGGER.debug('ignoring bad expires %r for cookie %s', expires, morsel.key)
    return None


class StoreCookieJar(AbstractCookieJar):
    def __init__(self, store, quote_cookie=True):
        # AbstractCookieJar.__init__ needs a running loop in some aiohttp releases; the jar never uses one
        self.store = store
        self._quote_cookie = quote_cookie

    @property
    def quote_cookie(self):
        return self._quote_cookie

    @property
    def unsafe(self):
        return False

    @property
    def cookies(self):
        '''
        Snapshot of the store as {(domain, path): SimpleCookie}, the layout
        aiohttp's own CookieJar uses.
        '''
        d = {}
        for cookie in self.store.get_cookies():
            try:
                morsel = cookie.to_morsel()
            except CookieError:
                continue
            d.setdefault((cookie.domain, cookie.path or '/'), SimpleCookie())[cookie.name] = morsel
        return d

    @property
    def host_only_cookies(self):
        return {(cookie.domain, cookie.name) for cookie in self.store.get_cookies()
                if not cookie.domain_specified}

    def __iter__(self):
        for cookie in self.store.get_cookies():
            try:
                yield cookie.to_morsel()
            except CookieError:
                LOGGER.debug('cookie %r cannot be expressed as a Morsel', cookie.name)

    def __len__(self):
        return len(self.store)

    def clear(self, predicate=None):
        if predicate is None:
            self.store.clear()
            return
        for cookie in self.store.get_cookies():
            try:
                morsel = cookie.to_morsel()
            except CookieError:
                continue
            if predicate(morsel):
                self.store.remove_cookie(cookie)

    def clear_domain(self, domain):
        self.clear(lambda m: domain_match(domain, m['domain']))

    def update_cookies(self, cookies, response_url=URL()):
        response_url = URL(response_url)
        hostname = response_url.raw_host
        now = time.time()

        if isinstance(cookies, Mapping):
            cookies = cookies.items()

        for name, morsel in cookies:
            if not isinstance(morsel, Morsel):
                tmp = SimpleCookie()
                tmp[name] = morsel
                morsel = tmp[name]

            domain = morsel['domain']
            if domain.startswith('.'):
                domain = domain[1:]
            if domain:
                domain_specified = True
                if hostname and not domain_match(domain, hostname):
                    LOGGER.debug('rejecting cookie %s for domain %s from host %s', name, domain, hostname)
                    continue
            else:
                domain = hostname or ''
                domain_specified = False

            path = morsel['path']
            if not path or not path.startswith('/'):
                path = default_path(response_url)

            expires = morsel_expires(morsel, now)
            cookie = Cookie(morsel.key, morsel.coded_value, domain=domain, path=path,
                            secure=bool(morsel['secure']), expires=expires,
                            domain_specified=domain_specified)
            if cookie.is_expired(now):
                self.store.remove_cookie(cookie)
            else:
                self.store.add_cookie(cookie)

    def filter_cookies(self, request_url=URL()):
        request_url = URL(request_url)
        hostname = request_url.raw_host or ''
        is_secure = request_url.scheme in ('https', 'wss')
        now = time.time()
        filtered = SimpleCookie()

        for cookie in self.store.get_cookies():
            if cookie.is_expired(now):
                continue
            if cookie.secure and not is_secure:
                continue
            if cookie.domain_specified:
                if not domain_match(cookie.domain, hostname):
                    continue
            elif hostname.lower() != cookie.domain.lower():
                continue
            if not path_match(request_url.path, cookie.path):
                continue
            try:
                filtered[cookie.name] = cookie.to_morsel()
            except CookieError:
                LOGGER.debug('cookie %r cannot be expressed as a Morsel', cookie.name)
        return filtered
