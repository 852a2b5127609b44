'''A single election: its admission queue, ballot box and results.

An :class:`Election` goes through the following states, determined by the
current time relative to its start and end (see :meth:`Election.state`):

-   **Open** before the start time. Registered users may ask to be admitted
    as voters or candidates; the administrator reviews the requests in the
    order they came in.
-   **Voting** from the start time until the end time. Admitted voters may
    cast one vote each for one of the admitted candidates, identified by
    their candidate number.
-   **Closed** from the end time on. The results are computed on first
    request and never change afterwards.

Voting may also be marked as started explicitly (by the administrator, or
implicitly by the first vote cast once the start time has passed); after
that, admission is closed regardless of the time.

The methods of this class take the caller identity and the current time as
arguments; role checks are the business of
:class:`ballotbox.system.ElectionSystem`.
'''

import dataclasses
import enum
import logging
from typing import List, Tuple, Set, Optional

import ballotbox.util
from ballotbox.env import Identity, Timestamp
from ballotbox.errors import (
    AlreadyPendingInElection, AlreadyRejectedInElection, AlreadyInElection,
    VotingAlreadyStarted, ElectionEnded, TooEarly, VotingEnded,
    AlreadyStarted, ElectionNotFinished, CandidateNotFound,
    NotRegisteredVoter, AlreadyVoted, Overflow, NoPendingUsers,
)
from ballotbox.persist import simple_serialization

logger = logging.getLogger(__name__)


class RequestedRole(enum.Enum):
    '''The role a user asks to take in an election.'''
    VOTER = 'voter'
    CANDIDATE = 'candidate'


class ElectionState(enum.Enum):
    OPEN = 'open'
    VOTING = 'voting'
    CLOSED = 'closed'


@simple_serialization
@dataclasses.dataclass
class CandidateTally:
    '''An admitted candidate and their running vote count.

    :param owner_id: Identity of the candidate.
    :param candidate_number: 1-based number in the order of admission.
        Voters refer to the candidate by this number.
    :param total_votes: Votes received so far.
    '''
    owner_id: Identity
    candidate_number: int
    total_votes: int = 0


@simple_serialization
@dataclasses.dataclass
class VoterRecord:
    '''An admitted voter and whether they have voted already.'''
    owner_id: Identity
    has_voted: bool = False


@simple_serialization
@dataclasses.dataclass(frozen=True)
class Results:
    '''Final tally of a closed election.

    :param total_voters: Number of admitted voters, whether they voted or not.
    :param votes_cast: Number of voters who voted.
    :param per_candidate_votes: Pairs of candidate identity and their votes,
        in candidate number order.
    '''
    total_voters: int
    votes_cast: int
    per_candidate_votes: Tuple[Tuple[Identity, int], ...]


class Election:
    '''One election and everything cast in it.

    :param id: Sequential id assigned by the repository, starting at 1.
    :param start_time: Time voting opens.
    :param end_time: Time voting closes.
    '''
    def __init__(self, id: int, start_time: Timestamp, end_time: Timestamp):
        self.id = id
        self.start_time = start_time
        self.end_time = end_time
        self.candidates: List[CandidateTally] = []
        self.voters: List[VoterRecord] = []
        self.pending_admission: List[Tuple[Identity, RequestedRole]] = []
        self.rejected_admission: Set[Identity] = set()
        self.voting_started = False
        self.cached_results: Optional[Results] = None

    def __repr__(self) -> str:
        return f'<Election({self.id})>'

    def state(self, now: Timestamp) -> ElectionState:
        if now < self.start_time:
            return ElectionState.OPEN
        elif now < self.end_time:
            return ElectionState.VOTING
        else:
            return ElectionState.CLOSED

    def is_pending(self, identity: Identity) -> bool:
        return any(
            pending_id == identity
            for pending_id, role in self.pending_admission
        )

    def is_admitted(self, identity: Identity) -> bool:
        return (
            any(voter.owner_id == identity for voter in self.voters)
            or any(cand.owner_id == identity for cand in self.candidates)
        )

    def has_candidate(self, candidate_number: int) -> bool:
        return 1 <= candidate_number <= len(self.candidates)

    def get_candidate(self, candidate_number: int) -> CandidateTally:
        if not self.has_candidate(candidate_number):
            raise CandidateNotFound(
                election_id=self.id,
                candidate_number=candidate_number
            )
        return self.candidates[candidate_number - 1]

    def get_voter(self, identity: Identity) -> Optional[VoterRecord]:
        for voter in self.voters:
            if voter.owner_id == identity:
                return voter
        return None

    def request_admission(self,
                          caller: Identity,
                          role: RequestedRole,
                          now: Timestamp,
                          ) -> None:
        '''Queue the caller for admission as a voter or a candidate.

        Admission is only possible while the election is open, i.e. before
        voting has been started and before the start time.
        '''
        if self.is_pending(caller):
            raise AlreadyPendingInElection(caller=caller, election_id=self.id)
        if caller in self.rejected_admission:
            raise AlreadyRejectedInElection(caller=caller, election_id=self.id)
        if self.is_admitted(caller):
            raise AlreadyInElection(caller=caller, election_id=self.id)
        if self.voting_started:
            raise VotingAlreadyStarted(election_id=self.id)
        if now > self.end_time:
            raise ElectionEnded(election_id=self.id)
        if now >= self.start_time:
            raise VotingAlreadyStarted(election_id=self.id)
        self.pending_admission.append((caller, RequestedRole(role)))
        logger.debug('%r asked to join election %d as %s',
                     caller, self.id, RequestedRole(role).value)

    def next_pending(self) -> Tuple[Identity, RequestedRole]:
        if not self.pending_admission:
            raise NoPendingUsers()
        return self.pending_admission[0]

    def review_next_pending(self,
                            accept: bool,
                            ) -> Tuple[Identity, RequestedRole]:
        '''Accept or reject the oldest admission request.

        Accepted voters get a fresh voter record; accepted candidates get the
        next candidate number.

        :returns: The request that was reviewed.
        '''
        if not self.pending_admission:
            raise NoPendingUsers()
        identity, role = self.pending_admission[0]
        if accept and role == RequestedRole.CANDIDATE:
            try:
                number = ballotbox.util.checked_add(
                    len(self.candidates), 1, ballotbox.util.U32_MAX
                )
            except OverflowError as e:
                raise Overflow(counter='candidate number') from e
        del self.pending_admission[0]
        if not accept:
            self.rejected_admission.add(identity)
            logger.info('rejected %r from election %d', identity, self.id)
        elif role == RequestedRole.VOTER:
            self.voters.append(VoterRecord(identity))
            logger.info('admitted %r to election %d as voter',
                        identity, self.id)
        else:
            self.candidates.append(CandidateTally(identity, number))
            logger.info('admitted %r to election %d as candidate %d',
                        identity, self.id, number)
        return identity, role

    def start_voting(self, now: Timestamp) -> None:
        '''Mark voting as started by the administrator.'''
        if now > self.end_time:
            raise VotingEnded(election_id=self.id)
        if self.voting_started:
            raise AlreadyStarted(election_id=self.id)
        if now < self.start_time:
            raise TooEarly(election_id=self.id)
        self.voting_started = True
        logger.info('voting started in election %d', self.id)

    def check_ballot_open(self, now: Timestamp) -> None:
        '''Check that votes can be cast at the given time.

        If voting has not been marked as started and the start time has
        passed, it is marked as started now.
        '''
        if not self.voting_started and now < self.start_time:
            raise TooEarly(election_id=self.id)
        if now > self.end_time:
            raise VotingEnded(election_id=self.id)
        if not self.voting_started:
            self.voting_started = True
            logger.info('voting in election %d started by first ballot',
                        self.id)

    def cast_vote(self, voter_id: Identity, candidate_number: int) -> None:
        '''Record a vote of an admitted voter for a candidate.

        The voter is marked as having voted before the candidate tally is
        incremented; if the increment overflows, the mark is taken back.
        '''
        candidate = self.get_candidate(candidate_number)
        voter = self.get_voter(voter_id)
        if voter is None:
            raise NotRegisteredVoter(caller=voter_id, election_id=self.id)
        if voter.has_voted:
            raise AlreadyVoted(caller=voter_id, election_id=self.id)
        voter.has_voted = True
        try:
            candidate.total_votes = ballotbox.util.checked_add(
                candidate.total_votes, 1, ballotbox.util.U32_MAX
            )
        except OverflowError as e:
            voter.has_voted = False
            logger.warning('vote tally overflow in election %d, vote of %r'
                           ' not counted', self.id, voter_id)
            raise Overflow(counter='candidate votes') from e
        logger.debug('vote recorded in election %d', self.id)

    def results(self, now: Timestamp) -> Results:
        '''Return the final results, computing them on first request.

        Once computed, the results are kept and returned as they are on every
        later request.
        '''
        if now < self.end_time:
            raise ElectionNotFinished(election_id=self.id)
        if self.cached_results is None:
            self.cached_results = Results(
                total_voters=len(self.voters),
                votes_cast=sum(1 for voter in self.voters if voter.has_voted),
                per_candidate_votes=tuple(
                    (cand.owner_id, cand.total_votes)
                    for cand in self.candidates
                ),
            )
            logger.info('results of election %d published: %d of %d voted',
                        self.id, self.cached_results.votes_cast,
                        self.cached_results.total_voters)
        return self.cached_results
