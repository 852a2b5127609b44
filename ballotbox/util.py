'''Counting helpers shared by the other modules of ballotbox.

There should normally be no need to use these functions directly.
'''

import operator
from typing import Any, List, Tuple, Iterable

U32_MAX = 2 ** 32 - 1
U64_MAX = 2 ** 64 - 1


def checked_add(value: int, addition: int, limit: int) -> int:
    '''Add two counters, refusing to exceed the limit.

    :param value: Current counter value.
    :param addition: Amount to add.
    :param limit: Largest value the counter can hold.
    :raises OverflowError: If the sum exceeds the limit.
    '''
    result = value + addition
    if result > limit:
        raise OverflowError(f'{value} + {addition} exceeds {limit}')
    return result


def ceil_div(numerator: int, denominator: int) -> int:
    '''Integer division rounding up, for non-negative integers.'''
    if denominator == 0:
        raise ZeroDivisionError('ceil_div by zero')
    return -(-numerator // denominator)


def percent_ceil(part: int, whole: int) -> int:
    return ceil_div(part * 100, whole)


def sorted_votes(votes: Iterable[Tuple[Any, int]],
                 descending: bool = True,
                 ) -> List[Tuple[Any, int]]:
    '''Return (candidate, votes) pairs sorted by votes.

    The sort is stable so that candidates with equal votes keep their input
    order.
    '''
    return list(sorted(
        votes,
        key=operator.itemgetter(1),
        reverse=descending
    ))


def top_is_tied(ranked: List[Tuple[Any, int]]) -> bool:
    '''Return True if the first two entries of a ranking have equal votes.'''
    return len(ranked) >= 2 and ranked[0][1] == ranked[1][1]
