import logging
import os
import yaml

LOGGER = logging.getLogger(__name__)

'''
default_yaml exists to both set defaults and to document all
possible configuration variables.
'''

default_yaml = '''
Cookies:
  Backend: memory
  DatabasePath: ':memory:'
#  LoadFile: cookies.txt
#  SaveFile: cookies-out.txt
  Strict: False
  PreserveDomainFlag: False
  Product: Crawljar

Checkpoint:
  Dir: ./checkpoints
#  Name: cp-$$

Logging:
  LoggingLevel: INFO
'''

_config = {}


def print_default():
    print(default_yaml)


def print_final():
    print(yaml.safe_dump(_config, default_flow_style=False))


def merge_dicts(a, b):
    '''
    Merge 2-level dict b into a.
    Not very general purpose!
    '''
    c = a
    for k1 in b:
        for k2 in b[k1]:
            v = b[k1][k2]
            if k1 not in c or not c[k1]:
                c[k1] = {}
            if k2 not in c[k1]:
                c[k1][k2] = {}
            c[k1][k2] = v
    return c


def type_fixup(rhs):
    '''
    Command-line config values arrive as strings. '[a,b,c]' becomes a list,
    'true' and 'false' become bools.
    '''
    if rhs.startswith('[') and rhs.endswith(']'):
        return [x.strip() for x in rhs[1:-1].split(',')]
    if rhs.lower() in ('true', 'false'):
        return rhs.lower() == 'true'
    return rhs


def config(configfile, configlist):
    '''
    Return a config dict which is the sum of all the various configurations
    '''

    default = yaml.safe_load(default_yaml)

    config_from_file = {}
    if configfile:
        with open(configfile, 'r') as c:
            config_from_file = yaml.safe_load(c) or {}

    combined = merge_dicts(default, config_from_file)

    if configlist:
        for c in configlist:
            # the syntax is... dangerous
            if ':' not in c:
                LOGGER.error('invalid config of %s', c)
                continue
            lhs, rhs = c.split(':', maxsplit=1)
            if '.' not in lhs:
                LOGGER.error('invalid config of %s', c)
                continue
            xpath = lhs.split('.')
            key = xpath.pop()
            try:
                temp = combined
                for x in xpath:
                    temp = temp[x]
                temp[key] = type_fixup(rhs)
            except Exception as e:
                LOGGER.error('invalid config of %s, exception was %r', c, e)
                continue

    set_config(combined)
    return combined


def set_config(c):
    global _config
    _config = c


def read(*keys):
    '''
    Walk down the config dict, returning None for anything missing.
    '''
    c = _config
    for k in keys:
        if not isinstance(c, dict):
            return None
        c = c.get(k)
        if c is None:
            return None
    return c


def read_path(*keys):
    '''
    Like read(), but expands ~ and $VARS for use as a filename.
    '''
    p = read(*keys)
    if not p:
        return None
    return os.path.expanduser(os.path.expandvars(str(p)))
