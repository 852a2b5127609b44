"""A commandline host that replays a call script against a fresh system.

Each call is run to completion before the next one starts. For every call,
one line is printed: ``OK`` followed by the JSON payload, or ``ERR``
followed by the error code and message.
"""

import argparse
import io
import json
import logging
import sys
from typing import Iterable, Tuple

import ballotbox.script
from ballotbox.env import DATE_FORMAT
from ballotbox.persist import to_dict
from ballotbox.script import Outcome, ScriptParseError, ScriptRunner

argparser = argparse.ArgumentParser(
    description=__doc__,
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
argparser.add_argument(
    'input_file',
    nargs='?',
    type=argparse.FileType('r', encoding='utf8'),
    help='call script to replay (JSON lines)',
)
argparser.add_argument(
    '-I', '--use-stdin',
    action='store_true',
    help='read the call script from standard input',
)
argparser.add_argument(
    '-a', '--admin',
    default='admin',
    help='identity deploying the system (becomes its administrator)',
)
argparser.add_argument(
    '-f', '--format',
    default=DATE_FORMAT,
    dest='date_format',
    help='date format used in the script and for election dates',
)
argparser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='show all log messages including individual checks',
)
argparser.add_argument(
    '-q', '--quiet',
    action='store_true',
    help='do not show any log messages',
)


def main(input_file: io.TextIOBase,
         use_stdin: bool = False,
         admin: str = 'admin',
         date_format: str = DATE_FORMAT,
         verbose: bool = False,
         quiet: bool = False,
         ) -> int:
    logging.basicConfig(
        level=(
            logging.DEBUG if verbose
            else (logging.WARNING if quiet else logging.INFO)
        ),
        format='%(levelname)-10s %(message)s'
    )
    if use_stdin:
        input_file = sys.stdin
    try:
        calls = ballotbox.script.load(input_file, date_format=date_format)
    except ScriptParseError as e:
        print(f'invalid call script: {e}', file=sys.stderr)
        return 2
    runner = ScriptRunner(
        administrator=admin,
        start_time=ballotbox.script.start_time(calls),
        date_format=date_format,
    )
    try:
        n_failed, n_crashed = show_outcomes(runner.run(calls))
    except ScriptParseError as e:
        print(f'invalid call script: {e}', file=sys.stderr)
        return 2
    logging.info('%d calls replayed, %d failed', len(calls), n_failed)
    if n_crashed:
        logging.error('%d calls could not run', n_crashed)
        return 1
    return 0


def format_outcome(outcome: Outcome) -> str:
    if outcome.ok:
        return 'OK ' + json.dumps(to_dict(outcome.payload), ensure_ascii=False)
    else:
        return f'ERR {outcome.error_code}: {outcome.error}'


def show_outcomes(outcomes: Iterable[Outcome]) -> Tuple[int, int]:
    """Print one line per outcome.

    :returns: The number of failed calls and, out of those, the number of
        calls that could not run at all.
    """
    n_failed = 0
    n_crashed = 0
    for outcome in outcomes:
        print(f'{outcome.call.line_no:>4} {outcome.call.call:<30}',
              format_outcome(outcome))
        if not outcome.ok:
            n_failed += 1
        if outcome.crashed:
            n_crashed += 1
    return n_failed, n_crashed


if __name__ == '__main__':
    args = argparser.parse_args()
    if not args.input_file and not args.use_stdin:
        argparser.print_usage()
    else:
        sys.exit(main(**vars(args)))
