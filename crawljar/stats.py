'''
A trivial stats system for cookie store activity: counters, cpu burn
per operation, and wall-clock latency of cookie file i/o.
'''

import logging
import pickle
import time
from contextlib import contextmanager

from hdrh.histogram import HdrHistogram
from sortedcollections import ValueSortedDict

LOGGER = logging.getLogger(__name__)

start_time = time.time()
maxes = {}
sums = {}
sets = {}
burners = {}
latencies = {}


def stats_max(name, value):
    maxes[name] = max(maxes.get(name, value), value)


def stats_sum(name, value):
    sums[name] = sums.get(name, 0) + value
    return sums[name]


def stats_set(name, value):
    sets[name] = value


def _remember_slowest(d, label, elapsed):
    if 'list' not in d:
        d['list'] = ValueSortedDict()
    d['list'][label or 'none'] = -elapsed
    length = len(d['list'])
    for _ in range(10, length):
        d['list'].popitem()


def record_a_burn(name, start, label=None):
    elapsed = time.process_time() - start
    burn = burners.get(name, {})
    burn['count'] = burn.get('count', 0) + 1
    burn['time'] = burn.get('time', 0.0) + elapsed
    avg = burn.get('avg', 10000000.)

    # are we exceptional? 10x current average and significant
    if elapsed > avg * 10 and elapsed > 0.015:
        _remember_slowest(burn, label, elapsed)

    burn['avg'] = burn['time']/burn['count']
    burners[name] = burn


def record_a_latency(name, start, label=None, elapsedmin=1.0):
    elapsed = time.time() - start
    latency = latencies.get(name, {})
    latency['count'] = latency.get('count', 0) + 1
    latency['time'] = latency.get('time', 0.0) + elapsed
    if 'hist' not in latency:
        latency['hist'] = HdrHistogram(1, 60 * 1000, 2)  # 1ms-60sec, 2 sig figs
    latency['hist'].record_value(max(int(elapsed * 1000), 1))  # ms

    if elapsed > elapsedmin:
        _remember_slowest(latency, label, elapsed)

    latencies[name] = latency


@contextmanager
def record_burn(name, label=None):
    try:
        start = time.process_time()
        yield
    finally:
        record_a_burn(name, start, label=label)


@contextmanager
def record_latency(name, label=None, elapsedmin=1.0):
    try:
        start = time.time()
        yield
    finally:
        record_a_latency(name, start, label=label, elapsedmin=elapsedmin)


def report():
    LOGGER.info('Stats report:')
    for s in sorted(sums):
        LOGGER.info('  %s: %d', s, sums[s])
    for s in sorted(maxes):
        LOGGER.info('  %s: %d', s, maxes[s])
    for s in sorted(sets):
        LOGGER.info('  %s: %s', s, sets[s])

    LOGGER.info('CPU burn report:')
    for key, burn in sorted(burners.items(), key=lambda x: x[1]['time'], reverse=True):
        LOGGER.info('  %s has %d calls taking %.3f cpu seconds.', key, burn['count'], burn['time'])
        if burn.get('list'):
            LOGGER.info('    biggest burners')
            for label in list(burn['list'].keys())[0:10]:
                LOGGER.info('      %.3fs: %s', -burn['list'][label], label)

    LOGGER.info('Latency report:')
    for key, latency in sorted(latencies.items(), key=lambda x: x[1]['time'], reverse=True):
        LOGGER.info('  %s has %d calls taking %.3f clock seconds.', key, latency['count'], latency['time'])
        if 'hist' in latency:
            t50 = latency['hist'].get_value_at_percentile(50.0) / 1000.
            t99 = latency['hist'].get_value_at_percentile(99.0) / 1000.
            LOGGER.info('  %s 50/99%%tiles are: %.3f/%.3f seconds', key, t50, t99)

    LOGGER.info('Summary:')
    LOGGER.info('  Elapsed time is %.3f seconds', time.time() - start_time)


def stat_value(name):
    if name in maxes:
        return maxes[name]
    if name in sums:
        return sums[name]
    if name in sets:
        return sets[name]
    if name in burners:
        return burners[name].get('time', 0)
    # note, not including latency
    return None


def burners_to_boring():
    '''
    As a wart, ValueSortedDict can't be pickled. Turn it into a dict.
    '''
    d = dict()
    for k in burners:
        d[k] = dict(burners[k])
        d[k]['list'] = dict(burners[k].get('list', dict()))
    return d


def boring_to_burners(d):
    for k in d:
        burners[k] = d[k]
        burners[k]['list'] = ValueSortedDict(d[k].get('list', dict()))


def clear():
    '''
    Forget everything, e.g. between tool runs in one process
    '''
    global maxes
    maxes = {}
    global sums
    sums = {}
    global sets
    sets = {}
    burners.clear()
    latencies.clear()


def save(f):
    pickle.dump('stats', f)
    pickle.dump(start_time, f)
    pickle.dump(burners_to_boring(), f)
    pickle.dump(maxes, f)
    pickle.dump(sums, f)


def load(f):
    if pickle.load(f) != 'stats':
        raise ValueError('invalid stats section in savefile')
    global start_time
    start_time = pickle.load(f)
    boring_to_burners(pickle.load(f))
    global maxes
    maxes = pickle.load(f)
    global sums
    sums = pickle.load(f)
