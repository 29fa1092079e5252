import io
import logging
import os

import pytest

import crawljar.netscape as netscape
from crawljar.cookie import Cookie
from crawljar.errors import CookieFileError, MalformedCookieLine


def test_decode_example():
    cookies = netscape.decode('example.com\tTRUE\t/\tFALSE\t1700000000\tsid\tabc123')
    assert len(cookies) == 1
    c = cookies[0]
    assert c.domain == 'example.com'
    assert c.path == '/'
    assert c.secure is False
    assert c.expires == 1700000000
    assert c.expires_ms == 1700000000000
    assert c.name == 'sid'
    assert c.value == 'abc123'
    assert c.domain_specified is True


def test_decode_skips_comments_and_blanks():
    text = ('# Netscape HTTP Cookie File\n'
            '\n'
            '   \n'
            '  # indented comment\n'
            'example.com\tFALSE\t/\tTRUE\t-1\ta\tb\r\n')
    cookies = netscape.decode(text)
    assert cookies == [Cookie('a', 'b', domain='example.com', path='/', secure=True,
                              expires=None, domain_specified=False)]


def test_decode_malformed_lines(caplog):
    text = ('good.com\tTRUE\t/\tFALSE\t-1\tone\t1\n'
            'too\tfew\tfields\n'
            'good.com\tTRUE\t/\tFALSE\t-1\ttwo\t2\n'
            'too\tmany\tfields\there\t-1\tname\tvalue\textra\n'
            'bad.com\tTRUE\t/\tFALSE\tsoon\tthree\t3\n'
            'good.com\tTRUE\t/\tFALSE\t-1\tfour\t4\n')
    skipped = []
    with caplog.at_level(logging.WARNING):
        cookies = netscape.decode(text, skipped=skipped)
    assert [c.name for c in cookies] == ['one', 'two', 'four']
    assert [s.lineno for s in skipped] == [2, 4, 5]
    assert all(isinstance(s, MalformedCookieLine) for s in skipped)
    assert 'not an integer' in skipped[2].reason
    assert 'line 2 invalid' in caplog.text


def test_decode_strict():
    text = 'good.com\tTRUE\t/\tFALSE\t-1\tone\t1\nbroken line\n'
    with pytest.raises(MalformedCookieLine) as excinfo:
        netscape.decode(text, strict=True)
    assert excinfo.value.lineno == 2
    assert excinfo.value.line == 'broken line'


def test_expiration_boundary():
    cookies = netscape.decode('a.com\tTRUE\t/\tFALSE\t-1\ts\tv\n'
                              'a.com\tTRUE\t/\tFALSE\t0\te\tv\n'
                              'a.com\tTRUE\t/\tFALSE\t-5\tn\tv\n')
    assert cookies[0].expires is None
    assert cookies[1].expires == 0
    assert cookies[1].is_expired()
    assert cookies[2].expires is None


def test_flags_case_insensitive():
    c, d, e = netscape.decode('a.com\ttrue\t/\tTrUe\t-1\tn\tv\n'
                              'a.com\tfalse\t/\tFALSE\t-1\tn\tv\n'
                              'a.com\tyes\t/\t1\t-1\tn\tv\n')
    assert c.domain_specified and c.secure
    assert not d.domain_specified and not d.secure
    assert not e.domain_specified and not e.secure


def test_empty_value():
    cookies = netscape.decode('a.com\tTRUE\t/\tFALSE\t-1\tname\t\n')
    assert cookies[0].value == ''


def test_decode_lines():
    lines = ['# comment\n', 'a.com\tTRUE\t/\tFALSE\t-1\tn\tv\n']
    assert netscape.decode(lines) == [Cookie('n', 'v', domain='a.com')]


def test_encode():
    cookies = [Cookie('sid', 'abc', domain='example.com', path='/', secure=False, expires=1700000000),
               Cookie('z', None, domain='a.com', path=None, secure=True, expires=None,
                      domain_specified=False)]
    text = netscape.encode(cookies, product='Test')
    assert text == ('# Test Cookie File\n'
                    '# This file is the Netscape cookies.txt format\n'
                    '\n'
                    'example.com\tTRUE\t/\tFALSE\t1700000000\tsid\tabc\n'
                    'a.com\tTRUE\t/\tTRUE\t-1\tz\t\n')


def test_encode_keeps_order_and_duplicates():
    cookies = [Cookie('b', '1', domain='x.com'), Cookie('a', '2', domain='x.com'), Cookie('b', '3', domain='x.com')]
    assert [c.value for c in netscape.decode(netscape.encode(cookies))] == ['1', '2', '3']


def test_round_trip():
    cookies = [Cookie('sid', 'abc', domain='example.com', path='/', expires=1700000000),
               Cookie('pref', 'x=y', domain='.sub.example.org', path='/deep/path', secure=True),
               Cookie('host', 'only', domain='localhost', path='/', expires=0, domain_specified=False)]
    decoded = netscape.decode(netscape.encode(cookies))
    assert len(decoded) == len(cookies)
    for before, after in zip(cookies, decoded):
        for field in ('domain', 'path', 'name', 'value', 'secure', 'expires'):
            assert getattr(before, field) == getattr(after, field)
        # the legacy format always writes TRUE
        assert after.domain_specified is True


def test_round_trip_preserving_domain_flag():
    cookies = [Cookie('a', '1', domain='example.com', domain_specified=False),
               Cookie('b', '2', domain='example.com', domain_specified=True)]
    text = netscape.encode(cookies, preserve_domain_flag=True)
    assert netscape.decode(text) == cookies


def test_read_write_file(tmp_path):
    path = str(tmp_path / 'cookies.txt')
    cookies = [Cookie('a', '1', domain='example.com'), Cookie('b', '2', domain='example.com', secure=True)]
    assert netscape.write_cookies(path, cookies) == 2
    assert netscape.read_cookies(path) == cookies
    with open(path) as f:
        assert f.readline() == '# Crawljar Cookie File\n'
    assert os.listdir(str(tmp_path)) == ['cookies.txt']


def test_read_open_file():
    f = io.StringIO('a.com\tTRUE\t/\tFALSE\t-1\tn\tv\n')
    assert netscape.read_cookies(f) == [Cookie('n', 'v', domain='a.com')]


def test_write_creates_directory(tmp_path):
    path = str(tmp_path / 'sub' / 'dir' / 'cookies.txt')
    assert netscape.write_cookies(path, [Cookie('a', domain='x.com')]) == 1
    assert os.path.exists(path)


def test_write_no_path():
    assert netscape.write_cookies(None, [Cookie('a')]) is None
    assert netscape.write_cookies('', [Cookie('a')]) is None


def test_read_missing_file(tmp_path, caplog):
    path = str(tmp_path / 'nope.txt')
    with caplog.at_level(logging.WARNING):
        assert netscape.read_cookies(path) == []
    assert 'unable to read cookies' in caplog.text
    with pytest.raises(CookieFileError) as excinfo:
        netscape.read_cookies(path, strict=True)
    assert excinfo.value.path == path


def test_read_bad_encoding(tmp_path):
    path = tmp_path / 'binary.txt'
    path.write_bytes(b'a.com\tTRUE\t/\tFALSE\t-1\tn\t\xff\xfe\n')
    assert netscape.read_cookies(str(path)) == []
    with pytest.raises(CookieFileError):
        netscape.read_cookies(str(path), strict=True)


class FlakyFile:
    name = 'flaky'

    def __init__(self, lines):
        self.lines = lines

    def read(self, size=-1):
        return ''.join(self.lines)

    def __iter__(self):
        yield from self.lines
        raise OSError('disk went away')


def test_read_keeps_cookies_before_io_error():
    f = FlakyFile(['a.com\tTRUE\t/\tFALSE\t-1\tone\t1\n', 'a.com\tTRUE\t/\tFALSE\t-1\ttwo\t2\n'])
    cookies = netscape.read_cookies(f)
    assert [c.name for c in cookies] == ['one', 'two']


def test_write_failure(tmp_path, caplog):
    blocker = tmp_path / 'afile'
    blocker.write_text('not a directory')
    path = str(blocker / 'cookies.txt')
    with caplog.at_level(logging.ERROR):
        assert netscape.write_cookies(path, [Cookie('a', domain='x.com')]) is None
    assert 'Unable to write' in caplog.text
    with pytest.raises(CookieFileError):
        netscape.write_cookies(path, [Cookie('a', domain='x.com')], strict=True)


def test_encode_skips_tabs_and_newlines(caplog):
    cookies = [Cookie('ok', '1', domain='x.com'),
               Cookie('tab', 'a\tb', domain='x.com'),
               Cookie('evil', 'v\nattacker.com\tTRUE\t/\tFALSE\t-1\tforged\t1', domain='x.com'),
               Cookie('cr', '1', domain='x.com', path='/a\r')]
    with caplog.at_level(logging.WARNING):
        text = netscape.encode(cookies)
    assert [c.name for c in netscape.decode(text)] == ['ok']
    assert 'forged' not in text
    assert 'not writing cookie' in caplog.text
    with pytest.raises(CookieFileError):
        netscape.encode(cookies, strict=True)


def test_write_skips_unwritable(tmp_path):
    path = str(tmp_path / 'cookies.txt')
    cookies = [Cookie('ok', '1', domain='x.com'), Cookie('bad', 'a\nb', domain='x.com')]
    assert netscape.write_cookies(path, cookies) == 1
    assert [c.name for c in netscape.read_cookies(path)] == ['ok']
    with pytest.raises(CookieFileError):
        netscape.write_cookies(str(tmp_path / 'strict.txt'), cookies, strict=True)
    assert not os.path.exists(str(tmp_path / 'strict.txt'))
