'''
Storage backends for the cookie store.

A backend is anything with prepare/insert/insert_all/list_all/remove/clear/
close and a length. Backends own identity: inserting a cookie whose
make_key() matches an existing one replaces it.
'''

import logging
import sqlite3

from .cookie import Cookie, make_key

LOGGER = logging.getLogger(__name__)


class CookieBackend(object):
    name = 'abstract'

    def prepare(self):
        '''Allocate resources. Called once, before any load.'''
        raise NotImplementedError

    def insert(self, cookie):
        raise NotImplementedError

    def insert_all(self, cookies):
        count = 0
        for cookie in cookies:
            self.insert(cookie)
            count += 1
        return count

    def list_all(self):
        raise NotImplementedError

    def remove(self, key):
        '''Remove the cookie with identity key, returning True if there was one.'''
        raise NotImplementedError

    def clear(self):
        raise NotImplementedError

    def close(self):
        pass

    def __len__(self):
        return len(self.list_all())


class MemoryBackend(CookieBackend):
    '''
    Cookies in a dict, in insertion order. A replaced cookie keeps its slot.
    '''
    name = 'memory'

    def __init__(self):
        self.cookies = {}

    def prepare(self):
        pass

    def insert(self, cookie):
        self.cookies[make_key(cookie)] = cookie

    def list_all(self):
        return list(self.cookies.values())

    def remove(self, key):
        return self.cookies.pop(key, None) is not None

    def clear(self):
        self.cookies.clear()

    def __len__(self):
        return len(self.cookies)


class SqliteBackend(CookieBackend):
    '''
    Cookies in an sqlite database, so a big crawl's cookies need not all
    live in memory. The identity key is the primary key.
    '''
    name = 'sqlite'

    schema = '''
    CREATE TABLE IF NOT EXISTS cookies (
        key TEXT PRIMARY KEY,
        seq INTEGER NOT NULL,
        name TEXT NOT NULL,
        value TEXT NOT NULL,
        domain TEXT NOT NULL,
        path TEXT,
        secure INTEGER NOT NULL,
        expires INTEGER,
        domain_specified INTEGER NOT NULL
    )
    '''

    def __init__(self, path=':memory:'):
        self.path = path
        self.db = None
        self.seq = 0

    def prepare(self):
        if self.db is not None:
            return
        LOGGER.debug('opening cookie database %s', self.path)
        self.db = sqlite3.connect(self.path)
        self.db.execute(self.schema)
        self.db.commit()
        row = self.db.execute('SELECT MAX(seq) FROM cookies').fetchone()
        self.seq = row[0] or 0

    def _conn(self):
        if self.db is None:
            raise RuntimeError('sqlite cookie backend used before prepare()')
        return self.db

    def _row(self, cookie):
        self.seq += 1
        return (make_key(cookie), self.seq, cookie.name, cookie.value or '', cookie.domain or '',
                cookie.path, int(cookie.secure), cookie.expires, int(cookie.domain_specified))

    def insert(self, cookie):
        self.insert_all([cookie])

    def insert_all(self, cookies):
        db = self._conn()
        rows = [self._row(c) for c in cookies]
        # keep the original position of a replaced cookie, like MemoryBackend
        with db:
            for row in rows:
                old = db.execute('SELECT seq FROM cookies WHERE key = ?', (row[0],)).fetchone()
                if old is not None:
                    row = row[:1] + (old[0],) + row[2:]
                db.execute('INSERT OR REPLACE INTO cookies VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)', row)
        return len(rows)

    def list_all(self):
        rows = self._conn().execute(
            'SELECT name, value, domain, path, secure, expires, domain_specified FROM cookies ORDER BY seq')
        return [Cookie(name, value, domain=domain, path=path, secure=bool(secure), expires=expires,
                       domain_specified=bool(domain_specified))
                for name, value, domain, path, secure, expires, domain_specified in rows]

    def remove(self, key):
        db = self._conn()
        with db:
            cursor = db.execute('DELETE FROM cookies WHERE key = ?', (key,))
        return cursor.rowcount > 0

    def clear(self):
        db = self._conn()
        with db:
            db.execute('DELETE FROM cookies')

    def close(self):
        if self.db is not None:
            self.db.close()
            self.db = None

    def __len__(self):
        return self._conn().execute('SELECT COUNT(*) FROM cookies').fetchone()[0]


backends = {
    'memory': MemoryBackend,
    'sqlite': SqliteBackend,
}


def make_backend(name, **kwargs):
    try:
        cls = backends[name]
    except KeyError:
        raise ValueError('unknown cookie backend {!r}, expected one of {}'.format(
            name, ', '.join(sorted(backends)))) from None
    return cls(**kwargs)
