#!/usr/bin/env python

'''
Inspect, check, and merge Netscape cookies.txt files.

  cookies-txt.py dump cookies.txt
  cookies-txt.py check cookies.txt ...
  cookies-txt.py merge --out merged.txt a.txt b.txt ...

merge loads every input into one store, so a cookie that appears in
more than one file ends up once, with the value from the last file.
'''

import sys
import os

import argparse
import logging

import crawljar.config as config
import crawljar.netscape as netscape
import crawljar.stats as stats
from crawljar.store import CookieStore

LOGGER = logging.getLogger(__name__)

ARGS = argparse.ArgumentParser(description='cookies.txt tool')
ARGS.add_argument('--config', action='append')
ARGS.add_argument('--configfile', action='store')
ARGS.add_argument('--printdefault', action='store_true', help='print the default configuration')
ARGS.add_argument('--printfinal', action='store_true', help='print the final configuration')
ARGS.add_argument('--loglevel', action='store', default='WARNING', help='set logging level, default WARNING')
ARGS.add_argument('--verbose', '-v', action='count', help='set logging level to DEBUG')
ARGS.add_argument('--stats', action='store_true', help='print a stats report at the end')
ARGS.add_argument('command', choices=('dump', 'check', 'merge'), nargs='?')
ARGS.add_argument('files', nargs='*')
ARGS.add_argument('--out', action='store', help='output file for merge')


def dump(store):
    for cookie in store:
        print(cookie.key, netscape.format_line(cookie, preserve_domain_flag=True), sep='\t')


def check(files):
    bad = 0
    for f in files:
        skipped = []
        cookies = netscape.read_cookies(f, skipped=skipped)
        print('{}: {} cookies, {} malformed lines'.format(f, len(cookies), len(skipped)))
        for s in skipped:
            print('  line {}: {}'.format(s.lineno, s.reason))
        bad += len(skipped)
    return 1 if bad else 0


def merge(store, files, out):
    for f in files:
        store.load_cookies(f)
    count = store.save_cookies(out)
    if count is None:
        LOGGER.error('nothing written')
        return 1
    print('{} cookies written to {}'.format(count, out))
    return 0


def main():
    args = ARGS.parse_args()

    if args.printdefault:
        config.print_default()
        sys.exit(1)

    loglevel = os.getenv('CRAWLJAR_LOGLEVEL')
    if loglevel is None and args.verbose:
        loglevel = 'DEBUG'
    if loglevel is None:
        loglevel = args.loglevel
    logging.basicConfig(level=loglevel)

    config.config(args.configfile, args.config)

    if args.printfinal:
        config.print_final()
        sys.exit(1)

    if not args.command or not args.files:
        ARGS.print_usage()
        sys.exit(1)

    exitstatus = 0
    if args.command == 'check':
        exitstatus = check(args.files)
    else:
        store = CookieStore.from_config()
        store.start()
        try:
            if args.command == 'dump':
                for f in args.files:
                    store.load_cookies(f)
                dump(store)
            elif args.command == 'merge':
                if not args.out:
                    ARGS.error('merge needs --out')
                exitstatus = merge(store, args.files, args.out)
        finally:
            store.close()

    if args.stats:
        stats.report()
    return exitstatus


if __name__ == '__main__':
    exit(main())
