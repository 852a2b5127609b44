"""Call scripts: a recorded sequence of calls to replay against the system.

A call script is a JSON-lines file. Each non-empty line that does not start
with ``#`` is an object describing one call::

    {"at": "01-06-2030 10:00", "caller": "alice", "call": "cast_vote", "args": [1, 2]}

``at`` is optional and sets the clock (dates must not go backwards),
``caller`` is optional and defaults to the caller of the previous call (the
administrator for the first call). ``call`` names a method of
:class:`ballotbox.system.ElectionSystem` or of
:class:`ballotbox.report.ReportGenerator`.

The :class:`ScriptRunner` executes the calls one at a time, the way the
host serializes calls.
"""

from __future__ import annotations

import dataclasses
import inspect
import json
import logging
from typing import Any, List, Iterable, Iterator, Optional, TextIO

from ballotbox.env import FixedEnvironment, Identity, Timestamp, DATE_FORMAT, parse_timestamp
from ballotbox.election import RequestedRole
from ballotbox.errors import ElectionSystemError
from ballotbox.report import ReportGenerator
from ballotbox.system import ElectionSystem

logger = logging.getLogger(__name__)

SYSTEM_CALLS = frozenset([
    'request_registration', 'next_pending_user', 'review_next_pending',
    'enable_registration', 'disable_registration', 'transfer_administrator',
    'assign_report_generator', 'lookup_user_info', 'user_status',
    'create_election', 'start_voting', 'join_election',
    'next_election_pending', 'review_next_election_pending', 'cast_vote',
    'candidate_info', 'get_results', 'election_voters',
    'election_candidates',
])
REPORT_CALLS = frozenset([
    'voter_report', 'participation_report', 'result_report',
])
ROLE_NAMES = frozenset(role.value for role in RequestedRole)


class ScriptParseError(Exception):
    """A call script line is invalid."""

    def __init__(self, line_no: int, reason: str):
        self.line_no = line_no
        super().__init__(f'line {line_no}: {reason}')


@dataclasses.dataclass
class ScriptCall:
    line_no: int
    call: str
    args: List[Any]
    caller: Optional[Identity] = None
    at: Optional[Timestamp] = None


@dataclasses.dataclass
class Outcome:
    '''The result of one replayed call.

    :param call: The call replayed.
    :param payload: What the call returned, if it succeeded.
    :param error: What the call raised. Election system errors are ordinary
        outcomes; anything else means the call could not run at all.
    '''
    call: ScriptCall
    payload: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def crashed(self) -> bool:
        return (
            self.error is not None
            and not isinstance(self.error, ElectionSystemError)
        )

    @property
    def error_code(self) -> Optional[str]:
        if self.error is None:
            return None
        elif isinstance(self.error, ElectionSystemError):
            return self.error.code
        else:
            return type(self.error).__name__


def call_signature(call: str) -> inspect.Signature:
    target = ReportGenerator if call in REPORT_CALLS else ElectionSystem
    return inspect.signature(getattr(target, call))


def is_hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True


def argument_matches(value: Any, annotation: Any) -> bool:
    '''Check a JSON argument value against a parameter annotation.

    Only the annotations of the plain JSON types and identities are checked;
    anything else is validated by the call itself.
    '''
    if annotation is bool:
        return isinstance(value, bool)
    elif annotation is int:
        return isinstance(value, int) and not isinstance(value, bool)
    elif annotation is str:
        return isinstance(value, str)
    elif annotation is Identity:
        return value is not None and is_hashable(value)
    else:
        return True


def check_arguments(line_no: int, call: str, args: List[Any]) -> None:
    signature = call_signature(call)
    try:
        bound = signature.bind(None, *args)
    except TypeError as e:
        raise ScriptParseError(line_no, f'bad arguments to {call}: {e}') from e
    for name, value in list(bound.arguments.items())[1:]:
        annotation = signature.parameters[name].annotation
        if not argument_matches(value, annotation):
            raise ScriptParseError(
                line_no, f'bad value {value!r} for {name} of {call}'
            )


def iter_calls(lines: Iterable[str],
               date_format: str = DATE_FORMAT,
               ) -> Iterator[ScriptCall]:
    last_time = None
    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        try:
            record = json.loads(line)
        except ValueError as e:
            raise ScriptParseError(line_no, f'invalid JSON: {e}') from e
        if not isinstance(record, dict):
            raise ScriptParseError(line_no, 'call must be a JSON object')
        call = record.get('call')
        if not isinstance(call, str) or call not in SYSTEM_CALLS | REPORT_CALLS:
            raise ScriptParseError(line_no, f'unknown call {call!r}')
        args = record.get('args', [])
        if not isinstance(args, list):
            raise ScriptParseError(line_no, 'args must be a list')
        if call == 'join_election':
            if len(args) != 2 or str(args[1]) not in ROLE_NAMES:
                raise ScriptParseError(
                    line_no, 'join_election takes an election id and one of '
                    + ', '.join(sorted(ROLE_NAMES))
                )
        check_arguments(line_no, call, args)
        caller = record.get('caller')
        if caller is not None and not is_hashable(caller):
            raise ScriptParseError(line_no, f'invalid caller {caller!r}')
        at = None
        if 'at' in record:
            try:
                at = parse_timestamp(record['at'], date_format)
            except (TypeError, ValueError) as e:
                raise ScriptParseError(
                    line_no, f'invalid date {record["at"]!r}'
                ) from e
            if last_time is not None and at < last_time:
                raise ScriptParseError(line_no, 'dates must not go backwards')
            last_time = at
        yield ScriptCall(
            line_no=line_no,
            call=call,
            args=args,
            caller=caller,
            at=at,
        )


def load(file: TextIO, **kwargs) -> List[ScriptCall]:
    return list(iter_calls(file, **kwargs))


def loads(text: str, **kwargs) -> List[ScriptCall]:
    return list(iter_calls(iter(text.split('\n')), **kwargs))


def start_time(calls: Iterable[ScriptCall]) -> Timestamp:
    '''Return the first date set by a script, 0 if it sets none.'''
    for call in calls:
        if call.at is not None:
            return call.at
    return 0


class ScriptRunner:
    '''Replays calls against a fresh election system and report generator.

    Both are deployed by the administrator, who also becomes the
    administrator of the report generator.

    :param administrator: Identity deploying the system.
    :param start_time: Initial clock reading. Calls dated earlier are
        refused with :class:`ScriptParseError`.
    :param date_format: Date format for :meth:`ElectionSystem.create_election`.
    '''
    def __init__(self,
                 administrator: Identity = 'admin',
                 start_time: Timestamp = 0,
                 date_format: str = DATE_FORMAT,
                 ):
        self.environment = FixedEnvironment(administrator, start_time)
        self.system = ElectionSystem(self.environment, date_format=date_format)
        self.reports = ReportGenerator(self.environment, self.system)

    def run_one(self, call: ScriptCall) -> Outcome:
        if call.at is not None:
            if call.at < self.environment.now():
                raise ScriptParseError(
                    call.line_no, 'date is before the current clock'
                )
            self.environment.set_time(call.at)
        if call.caller is not None:
            self.environment.set_caller(call.caller)
        target = self.reports if call.call in REPORT_CALLS else self.system
        args = list(call.args)
        if call.call == 'join_election':
            args[1] = RequestedRole(args[1])
        logger.debug('line %d: %r calls %s%r', call.line_no,
                     self.environment.caller(), call.call, tuple(args))
        try:
            payload = getattr(target, call.call)(*args)
        except ElectionSystemError as e:
            logger.debug('line %d: %s', call.line_no, e.code)
            return Outcome(call, error=e)
        except (TypeError, ValueError) as e:
            logger.error('line %d: %s could not run: %s',
                         call.line_no, call.call, e)
            return Outcome(call, error=e)
        return Outcome(call, payload=payload)

    def run(self, calls: Iterable[ScriptCall]) -> Iterator[Outcome]:
        for call in calls:
            yield self.run_one(call)
