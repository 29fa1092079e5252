'''
Read and write cookies in Netscape's cookies.txt format, the one used by
curl, wget, and browser export extensions. Example entry:

  www.archive.org  FALSE  /  FALSE  1311699995  details-visit  texts-cralond

Each data line has 7 tab-separated fields:

  1. DOMAIN: the domain that created and has access to the cookie
  2. FLAG: TRUE or FALSE, whether hosts within DOMAIN can access the cookie
  3. PATH: the path within the domain that the cookie is valid for
  4. SECURE: TRUE or FALSE, whether a secure connection is needed
  5. EXPIRATION: epoch seconds, or -1 for no expiration
  6. NAME
  7. VALUE

Blank lines and lines starting with optional whitespace and a # are comments.

Reading is lenient by default: a bad line is logged and skipped, and an
i/o error is logged and ends the read with whatever was parsed so far. Pass
strict=True to get exceptions instead.
'''

import logging
import os
import re
import tempfile

from .cookie import Cookie
from .errors import CookieFileError, MalformedCookieLine
from . import stats

LOGGER = logging.getLogger(__name__)

COMMENT_RE = re.compile(r'\s*(?:#.*)?')
FIELD_COUNT = 7
DEFAULT_PRODUCT = 'Crawljar'


def header(product=DEFAULT_PRODUCT):
    return ('# {} Cookie File\n'
            '# This file is the Netscape cookies.txt format\n\n').format(product)


def parse_bool(s):
    return s.lower() == 'true'


def parse_line(line, lineno=None, path=None):
    '''
    Turn one data line into a Cookie, or raise MalformedCookieLine.
    '''
    tokens = line.split('\t')
    if len(tokens) != FIELD_COUNT:
        raise MalformedCookieLine(lineno, line, 'expected 7 tab-delimited tokens, got {}'.format(len(tokens)),
                                  path=path)
    domain, flag, cpath, secure, expiration, name, value = tokens
    try:
        epoch_seconds = int(expiration)
    except ValueError:
        raise MalformedCookieLine(lineno, line, 'expiration {!r} is not an integer'.format(expiration),
                                  path=path) from None
    return Cookie(name, value, domain=domain, path=cpath,
                  secure=parse_bool(secure),
                  expires=epoch_seconds if epoch_seconds >= 0 else None,
                  domain_specified=parse_bool(flag))


def iter_cookies(lines, skipped=None, strict=False, path=None):
    for lineno, line in enumerate(lines, start=1):
        line = line.rstrip('\r\n')
        if COMMENT_RE.fullmatch(line):
            continue
        try:
            cookie = parse_line(line, lineno=lineno, path=path)
        except MalformedCookieLine as e:
            stats.stats_sum('cookies malformed lines', 1)
            if strict:
                raise
            LOGGER.warning('%s', e)
            if skipped is not None:
                skipped.append(e)
            continue
        LOGGER.debug('Adding cookie: domain %s cookie %r', cookie.domain, cookie)
        yield cookie


def decode(text, skipped=None, strict=False):
    '''
    Decode cookies.txt content, a string or an iterable of lines, into a
    list of Cookies. Malformed lines are appended to skipped if it is a list.
    '''
    if isinstance(text, str):
        text = text.split('\n')
    return list(iter_cookies(text, skipped=skipped, strict=strict))


def format_line(cookie, preserve_domain_flag=False):
    if preserve_domain_flag:
        flag = 'TRUE' if cookie.domain_specified else 'FALSE'
    else:
        # legacy files always claim subdomain access
        flag = 'TRUE'
    return '\t'.join((
        cookie.domain or '',
        flag,
        cookie.path if cookie.path is not None else '/',
        'TRUE' if cookie.secure else 'FALSE',
        str(cookie.expires) if cookie.expires is not None else '-1',
        cookie.name,
        cookie.value if cookie.value is not None else '',
    ))


UNWRITABLE = ('\t', '\r', '\n')


def writable_cookies(cookies, strict=False, path=None):
    '''
    Drop cookies with a tab or line break in a text field; written out they
    would split a line or start a new one. Raises CookieFileError if strict.
    '''
    for cookie in cookies:
        bad = [f for f in ('domain', 'path', 'name', 'value')
               if any(c in (getattr(cookie, f) or '') for c in UNWRITABLE)]
        if bad:
            stats.stats_sum('cookies unwritable', 1)
            if strict:
                raise CookieFileError('cookie {!r} has a tab or newline in {}'.format(cookie.name, ', '.join(bad)),
                                      path=path)
            LOGGER.warning('not writing cookie %r, tab or newline in %s', cookie.name, ', '.join(bad))
            continue
        yield cookie


def encode(cookies, product=DEFAULT_PRODUCT, preserve_domain_flag=False, strict=False):
    '''
    Encode cookies, in the order given, as cookies.txt text. Cookies that
    cannot be written are skipped, or raise CookieFileError if strict.
    '''
    parts = [header(product)]
    for cookie in writable_cookies(cookies, strict=strict):
        parts.append(format_line(cookie, preserve_domain_flag=preserve_domain_flag))
        parts.append('\n')
    return ''.join(parts)


def read_cookies(source, skipped=None, strict=False):
    '''
    Read cookies from a filename or an open text file. The file is
    closed on the way out if we opened it.
    '''
    cookies = []
    name = getattr(source, 'name', source)
    try:
        if hasattr(source, 'read'):
            for cookie in iter_cookies(source, skipped=skipped, strict=strict, path=name):
                cookies.append(cookie)
        else:
            with open(source, 'r', encoding='utf-8', newline='') as f:
                for cookie in iter_cookies(f, skipped=skipped, strict=strict, path=name):
                    cookies.append(cookie)
    except (OSError, UnicodeDecodeError) as e:
        stats.stats_sum('cookie file load errors', 1)
        if strict:
            raise CookieFileError('unable to read {}: {}'.format(name, e), path=name) from e
        LOGGER.warning('unable to read cookies from %s, keeping %d cookies read so far: %r',
                       name, len(cookies), e)
    return cookies


def write_cookies(path, cookies, product=DEFAULT_PRODUCT, preserve_domain_flag=False, strict=False):
    '''
    Write cookies to path, replacing it atomically. Does nothing if path
    is empty. Returns the number of cookies written, or None if nothing was.
    '''
    if not path:
        return None

    cookies = list(writable_cookies(cookies, strict=strict, path=path))
    text = encode(cookies, product=product, preserve_domain_flag=preserve_domain_flag)
    directory = os.path.dirname(os.path.abspath(path))

    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmpname = tempfile.mkstemp(dir=directory, prefix='.cookies-', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='\n') as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmpname, path)
        except BaseException:
            if os.path.exists(tmpname):
                os.unlink(tmpname)
            raise
    except (OSError, UnicodeEncodeError) as e:
        stats.stats_sum('cookie file save errors', 1)
        if strict:
            raise CookieFileError('unable to write {}: {}'.format(path, e), path=path) from e
        LOGGER.error('Unable to write %s: %r', path, e)
        return None

    LOGGER.debug('wrote %d cookies to %s', len(cookies), path)
    return len(cookies)
