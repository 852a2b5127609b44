'''Reports on closed elections.

The :class:`ReportGenerator` only reads. It does not touch the election
system's storage; it depends on the narrow :class:`ElectionDataSource`
interface, which :class:`ballotbox.system.ElectionSystem` implements and
which tests can replace with a fake. Access control is left to the data
source: the caller of a report must be allowed to read the election data
(the administrator or the report generator role).

Three reports are available for a closed election:

-   the voter report, listing the voters with their personal data,
-   the participation report, giving the number of voters who voted and
    their share of all voters in whole percent, rounded up,
-   the result report, ranking the candidates by votes and naming the
    winner unless the two best candidates are tied.
'''

import abc
import dataclasses
import logging
from typing import List, Tuple, Optional

import ballotbox.util
from ballotbox.env import Environment, Identity
from ballotbox.errors import NotAdministrator, SystemNotSet, NoVoters, NoCandidates
from ballotbox.persist import simple_serialization
from ballotbox.registry import UserProfile, UnknownProfile

logger = logging.getLogger(__name__)


class ElectionDataSource(metaclass=abc.ABCMeta):
    '''Read access to closed elections and user profiles.'''

    @abc.abstractmethod
    def election_voters(self, election_id: int) -> List[Tuple[Identity, bool]]:
        '''Return (voter, has voted) pairs in admission order.'''
        raise NotImplementedError

    @abc.abstractmethod
    def election_candidates(self,
                            election_id: int,
                            ) -> List[Tuple[Identity, int]]:
        '''Return (candidate, total votes) pairs in candidate number order.'''
        raise NotImplementedError

    @abc.abstractmethod
    def lookup_user_info(self, identity: Identity) -> Optional[UserProfile]:
        '''Return the profile of a user, None if unavailable.'''
        raise NotImplementedError


@simple_serialization
@dataclasses.dataclass(frozen=True)
class VoterEntry:
    identity: Identity
    profile: UserProfile

    def as_tuple(self) -> Tuple[Identity, str, str, str]:
        return (self.identity, ) + self.profile.as_tuple()


@simple_serialization
@dataclasses.dataclass(frozen=True)
class CandidateEntry:
    identity: Identity
    profile: UserProfile
    votes: int

    def as_tuple(self) -> Tuple[Identity, str, str, str, int]:
        return (self.identity, ) + self.profile.as_tuple() + (self.votes, )


@simple_serialization
@dataclasses.dataclass(frozen=True)
class ParticipationReport:
    '''Turnout of an election.

    :param votes_cast: Number of voters who voted.
    :param participation_percent: Votes cast as a percentage of all voters,
        rounded up to a whole number.
    '''
    votes_cast: int
    participation_percent: int


@simple_serialization
@dataclasses.dataclass(frozen=True)
class ResultReport:
    '''Candidates ranked by votes.

    :param winner: The best candidate, or None if the two best candidates
        have the same number of votes.
    :param ranking: All candidates from most to fewest votes; candidates
        with equal votes stay in candidate number order.
    '''
    winner: Optional[CandidateEntry]
    ranking: Tuple[CandidateEntry, ...]


class ReportGenerator:
    '''Produces reports from an election data source.

    The caller at construction time becomes the administrator of the report
    generator, who alone can set its data source.

    :param environment: Supplies the caller for every call.
    :param source: The data source, if already known.
    '''
    def __init__(self,
                 environment: Environment,
                 source: Optional[ElectionDataSource] = None,
                 ):
        self.environment = environment
        self.administrator = environment.caller()
        self.source = source

    def set_source(self, source: ElectionDataSource) -> None:
        caller = self.environment.caller()
        if caller != self.administrator:
            raise NotAdministrator(caller=caller)
        self.source = source
        logger.info('report data source set to %r', source)

    def _get_source(self) -> ElectionDataSource:
        if self.source is None:
            raise SystemNotSet()
        return self.source

    def _profile(self, identity: Identity) -> UserProfile:
        profile = self._get_source().lookup_user_info(identity)
        if profile is None:
            logger.debug('no profile available for %r', identity)
            return UnknownProfile(identity)
        return profile

    def voter_report(self, election_id: int) -> List[VoterEntry]:
        '''List the voters of an election with their profiles.'''
        voters = self._get_source().election_voters(election_id)
        return [
            VoterEntry(identity, self._profile(identity))
            for identity, has_voted in voters
        ]

    def participation_report(self, election_id: int) -> ParticipationReport:
        voters = self._get_source().election_voters(election_id)
        if not voters:
            raise NoVoters(election_id=election_id)
        votes_cast = sum(1 for identity, has_voted in voters if has_voted)
        return ParticipationReport(
            votes_cast=votes_cast,
            participation_percent=ballotbox.util.percent_ceil(
                votes_cast, len(voters)
            ),
        )

    def result_report(self, election_id: int) -> ResultReport:
        '''Rank the candidates of an election and determine the winner.'''
        candidates = self._get_source().election_candidates(election_id)
        if not candidates:
            raise NoCandidates(election_id=election_id)
        ranked = ballotbox.util.sorted_votes(candidates)
        ranking = tuple(
            CandidateEntry(identity, self._profile(identity), votes)
            for identity, votes in ranked
        )
        if ballotbox.util.top_is_tied(ranked):
            logger.info('election %d is tied at %d votes',
                        election_id, ranked[0][1])
            winner = None
        else:
            winner = ranking[0]
        return ResultReport(winner=winner, ranking=ranking)
