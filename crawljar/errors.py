'''
Exceptions raised by the cookie file code when it is running strict.
Lenient mode logs these instead of raising them.
'''


class CookieError(Exception):
    pass


class CookieFileError(CookieError):
    '''
    A cookie file could not be read or written.
    '''
    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class MalformedCookieLine(CookieFileError):
    '''
    A cookies.txt data line that could not be turned into a cookie.
    '''
    def __init__(self, lineno, line, reason, path=None):
        super().__init__('cookies input line {} invalid, {}'.format(lineno, reason), path=path)
        self.lineno = lineno
        self.line = line
        self.reason = reason
