'''
A persistent cookie store for web crawlers
'''

from .cookie import Cookie, make_key
from .store import CookieStore

__title__ = 'crawljar'
__author__ = 'Greg Lindahl and others'
__license__ = 'Apache 2.0'
__version__ = '0.1.0'

__all__ = ['Cookie', 'CookieStore', 'make_key']
