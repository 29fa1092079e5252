'''
Checkpoint and restore for anything holding crawl state, such as a
CookieStore.

A participant has do_checkpoint(directory) and from_checkpoint(directory).
do_checkpoint returns None when it could not save, and that participant is
left out of the manifest, so a later restore does not touch it.
from_checkpoint merges what was saved into the participant's current state;
clear it first for an exact restore.
Each checkpoint is its own directory under Checkpoint.Dir; the manifest
is written last, so a directory without one is an incomplete checkpoint.
'''

import logging
import os
import pickle
import time

from . import config
from . import stats

LOGGER = logging.getLogger(__name__)
__NAME__ = 'crawljar checkpoint'

MANIFEST = 'MANIFEST.pickle'

participants = []


def register(participant):
    '''
    Register something to be saved at each checkpoint
    '''
    if participant not in participants:
        participants.append(participant)


def unregister(participant):
    if participant in participants:
        participants.remove(participant)


def participant_name(participant):
    return getattr(participant, 'checkpoint_name', type(participant).__name__)


def checkpoint_dir():
    return config.read_path('Checkpoint', 'Dir') or './checkpoints'


def next_name(base):
    name = config.read('Checkpoint', 'Name') or 'cp-$$'
    name = name.replace('$$', str(os.getpid()))
    if os.path.exists(os.path.join(base, name)):
        count = 1
        while os.path.exists(os.path.join(base, name + '.' + str(count))):
            count += 1
        name = name + '.' + str(count)
    return name


def checkpoint(name=None, directory=None):
    '''
    Checkpoint every participant. Returns the checkpoint directory.
    '''
    base = directory or checkpoint_dir()
    name = name or next_name(base)
    cpdir = os.path.join(base, name)
    os.makedirs(cpdir, exist_ok=True)

    LOGGER.info('starting checkpoint %s', cpdir)
    names = []
    with stats.record_latency('checkpoint', label=name):
        for p in participants:
            pname = participant_name(p)
            if p.do_checkpoint(cpdir) is None:
                stats.stats_sum('checkpoint participant failures', 1)
                LOGGER.error('checkpoint %s: %s saved nothing, leaving it out of the manifest', cpdir, pname)
                continue
            names.append(pname)

        with open(os.path.join(cpdir, MANIFEST), 'wb') as f:
            pickle.dump(__NAME__, f)
            pickle.dump({'name': name, 'time': time.time(), 'participants': names}, f)
            stats.save(f)

    stats.stats_sum('checkpoints', 1)
    LOGGER.info('finished checkpoint %s with %d participants', cpdir, len(names))
    return cpdir


def _load_manifest(f, cpdir):
    name = pickle.load(f)
    if name != __NAME__:
        LOGGER.error('checkpoint manifest name does not match: %s != %s', name, __NAME__)
        raise ValueError('invalid checkpoint manifest in ' + cpdir)
    return pickle.load(f)


def read_manifest(cpdir):
    with open(os.path.join(cpdir, MANIFEST), 'rb') as f:
        return _load_manifest(f, cpdir)


def restore(name, directory=None):
    '''
    Restore every participant from a checkpoint. Returns the manifest.
    '''
    cpdir = os.path.join(directory or checkpoint_dir(), name)
    with open(os.path.join(cpdir, MANIFEST), 'rb') as f:
        manifest = _load_manifest(f, cpdir)
        stats.load(f)

    LOGGER.info('restoring from checkpoint %s', cpdir)
    for p in participants:
        pname = participant_name(p)
        if pname not in manifest['participants']:
            LOGGER.warning('checkpoint %s has nothing saved for %s', cpdir, pname)
            continue
        p.from_checkpoint(cpdir)
    return manifest


def latest(directory=None):
    '''
    Name of the most recent complete checkpoint, or None.
    '''
    base = directory or checkpoint_dir()
    if not os.path.isdir(base):
        return None
    best = None
    for entry in os.listdir(base):
        manifest = os.path.join(base, entry, MANIFEST)
        if os.path.exists(manifest):
            mtime = os.path.getmtime(manifest)
            if best is None or mtime > best[0]:
                best = (mtime, entry)
    return best[1] if best else None
