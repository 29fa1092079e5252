'''
A persistent cookie store for a crawler.

CookieStore puts the usual add/get/clear operations on top of any backend
from crawljar.backends, and adds loading and saving of cookies.txt files,
a start/stop lifecycle, and checkpointing.

start() prepares the backend and loads the configured load file, once.
stop() does not save anything: call save_cookies(), or let a checkpoint
do it, if you want the cookies on disk.

The cookies.txt "include subdomains" flag is read into
Cookie.domain_specified but, for compatibility with older cookie files,
is always written as TRUE unless preserve_domain_flag is set. With the
default, a FALSE flag does not survive a save and reload.
'''

import logging
import os

from . import backends
from . import config
from . import netscape
from . import stats
from .cookie import make_key

LOGGER = logging.getLogger(__name__)

STOPPED = 'stopped'
STARTING = 'starting'
RUNNING = 'running'

CHECKPOINT_FILENAME = 'cookies.txt'


class CookieStore:
    def __init__(self, backend=None, load_file=None, save_file=None, strict=False,
                 preserve_domain_flag=False, product=netscape.DEFAULT_PRODUCT):
        self.backend = backend if backend is not None else backends.MemoryBackend()
        self.load_file = load_file
        self.save_file = save_file
        self.strict = strict
        self.preserve_domain_flag = preserve_domain_flag
        self.product = product
        self.state = STOPPED
        self.last_skipped = []

    @classmethod
    def from_config(cls):
        '''
        Build a store from the Cookies section of the config.
        '''
        name = config.read('Cookies', 'Backend') or 'memory'
        kwargs = {}
        if name == 'sqlite':
            kwargs['path'] = config.read_path('Cookies', 'DatabasePath') or ':memory:'
        backend = backends.make_backend(name, **kwargs)
        return cls(backend,
                   load_file=config.read_path('Cookies', 'LoadFile'),
                   save_file=config.read_path('Cookies', 'SaveFile'),
                   strict=bool(config.read('Cookies', 'Strict')),
                   preserve_domain_flag=bool(config.read('Cookies', 'PreserveDomainFlag')),
                   product=config.read('Cookies', 'Product') or netscape.DEFAULT_PRODUCT)

    # lifecycle

    def start(self):
        if self.is_running():
            return
        self.state = STARTING
        try:
            self.backend.prepare()
            if self.load_file:
                self.load_cookies(self.load_file)
        except Exception:
            self.state = STOPPED
            raise
        self.state = RUNNING
        LOGGER.info('cookie store started with %d cookies in the %s backend',
                    len(self.backend), self.backend.name)

    def stop(self):
        self.state = STOPPED

    def is_running(self):
        return self.state == RUNNING

    def close(self):
        self.stop()
        self.backend.close()

    # cookie-store contract

    def add_cookie(self, cookie):
        self.backend.insert(cookie)

    def add_cookies(self, cookies):
        return self.backend.insert_all(cookies)

    def get_cookies(self):
        return self.backend.list_all()

    def remove_cookie(self, cookie):
        return self.backend.remove(make_key(cookie))

    def clear(self):
        self.backend.clear()

    def __len__(self):
        return len(self.backend)

    def __iter__(self):
        return iter(self.backend.list_all())

    # files

    def load_cookies(self, source):
        '''
        Load cookies from a cookies.txt filename or open file, replacing
        any cookies with the same identity. Returns the count loaded.
        '''
        skipped = []
        label = getattr(source, 'name', source)
        with stats.record_latency('cookie file load', label=label):
            cookies = netscape.read_cookies(source, skipped=skipped, strict=self.strict)
            count = self.backend.insert_all(cookies)
        self.last_skipped = skipped
        stats.stats_sum('cookies loaded', count)
        if skipped:
            LOGGER.warning('loaded %d cookies from %s, skipped %d malformed lines', count, label, len(skipped))
        else:
            LOGGER.info('loaded %d cookies from %s', count, label)
        return count

    def save_cookies(self, destination=None):
        '''
        Save all cookies to destination, or to the configured save file.
        Does nothing if neither is set. Returns the count written, or None.
        '''
        destination = destination or self.save_file
        if not destination:
            return None
        destination = os.path.abspath(destination)
        with stats.record_latency('cookie file save', label=destination):
            count = netscape.write_cookies(destination, self.backend.list_all(), product=self.product,
                                           preserve_domain_flag=self.preserve_domain_flag, strict=self.strict)
        if count is not None:
            stats.stats_sum('cookies saved', count)
            LOGGER.info('saved %d cookies to %s', count, destination)
        return count

    # checkpointing

    @property
    def checkpoint_name(self):
        return 'cookies'

    def do_checkpoint(self, directory):
        return self.save_cookies(os.path.join(directory, CHECKPOINT_FILENAME))

    def from_checkpoint(self, directory):
        '''
        Load the checkpointed cookies on top of what the store already holds:
        a saved cookie replaces one with the same key, and cookies added since
        the checkpoint stay. Call clear() first to get exactly the saved set.
        Returns the count loaded, 0 if the checkpoint has no cookie file.
        '''
        path = os.path.join(directory, CHECKPOINT_FILENAME)
        if not os.path.exists(path):
            LOGGER.warning('checkpoint %s has no cookie file', directory)
            return 0
        return self.load_cookies(path)

    def summarize(self):
        '''Print a human-readable summary of what's in the store'''
        print('{} cookies in {} backend'.format(len(self.backend), self.backend.name))
