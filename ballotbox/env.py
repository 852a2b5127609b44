'''The runtime the election system is hosted in.

The election system does not know who is calling it or what time it is; it
asks an :class:`Environment` on every call. The host provides the caller's
identity (any hashable value, compared only for equality) and a clock that
never goes backwards, both in the same units as the timestamps produced by
:func:`parse_timestamp`.
'''

import abc
import calendar
import datetime
from typing import Hashable

Identity = Hashable
'''An opaque account identifier. Only compared for equality.'''

Timestamp = int
'''Milliseconds since the Unix epoch, UTC.'''

DATE_FORMAT = '%d-%m-%Y %H:%M'


def parse_timestamp(text: str, date_format: str = DATE_FORMAT) -> Timestamp:
    '''Convert a human date string to a timestamp.

    The date is interpreted as UTC.

    :param text: The date string, by default in the ``dd-mm-YYYY HH:MM``
        format.
    :param date_format: A :meth:`datetime.datetime.strptime` format.
    :raises ValueError: If the string does not match the format.
    '''
    parsed = datetime.datetime.strptime(text, date_format)
    return calendar.timegm(parsed.timetuple()) * 1000


class Environment(metaclass=abc.ABCMeta):
    '''Supplies the caller identity and the current time for each call.'''

    @abc.abstractmethod
    def caller(self) -> Identity:
        '''Return the identity of the entity invoking the current operation.'''
        raise NotImplementedError

    @abc.abstractmethod
    def now(self) -> Timestamp:
        '''Return the current time.'''
        raise NotImplementedError


class FixedEnvironment(Environment):
    '''An environment whose caller and time are set explicitly by the host.

    Used by the command line runner and in tests. The clock refuses to move
    backwards.

    :param caller: Identity of the initial caller.
    :param now: Initial time.
    '''
    def __init__(self, caller: Identity, now: Timestamp = 0):
        self._caller = caller
        self._now = now

    def caller(self) -> Identity:
        return self._caller

    def now(self) -> Timestamp:
        return self._now

    def set_caller(self, caller: Identity) -> None:
        self._caller = caller

    def set_time(self, now: Timestamp) -> None:
        if now < self._now:
            raise ValueError(f'clock cannot go back from {self._now} to {now}')
        self._now = now

    def set_date(self, text: str, date_format: str = DATE_FORMAT) -> None:
        self.set_time(parse_timestamp(text, date_format))

    def advance(self, millis: int) -> None:
        self.set_time(self._now + millis)
