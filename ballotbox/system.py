'''The election system: the single root object hosting all state.

:class:`ElectionSystem` is what the host calls. It asks its
:class:`ballotbox.env.Environment` who the caller is and what time it is,
checks the caller's role in the :class:`ballotbox.registry.IdentityRegistry`
and then delegates to the addressed :class:`ballotbox.election.Election`
from the :class:`ElectionRepository`.

The host serializes calls; every call either completes or raises one of the
errors from :mod:`ballotbox.errors` without changing any state (the
exceptions are documented in :meth:`ballotbox.election.Election.cast_vote`
and :meth:`ballotbox.election.Election.check_ballot_open`).
'''

import logging
from typing import List, Tuple, Optional, Iterator

import ballotbox.util
from ballotbox.env import (
    Environment, Identity, Timestamp, DATE_FORMAT, parse_timestamp
)
from ballotbox.election import Election, RequestedRole, Results
from ballotbox.errors import (
    ElectionNotFound, ElectionNotFinished, BadStartDate, BadEndDate, Overflow
)
from ballotbox.registry import IdentityRegistry, UserProfile, UserStatus
from ballotbox.report import ElectionDataSource

logger = logging.getLogger(__name__)


class ElectionRepository:
    '''An append-only sequence of elections addressed by 1-based ids.'''
    def __init__(self):
        self._elections: List[Election] = []

    def __len__(self) -> int:
        return len(self._elections)

    def __iter__(self) -> Iterator[Election]:
        return iter(self._elections)

    def __contains__(self, election_id: int) -> bool:
        return 1 <= election_id <= len(self._elections)

    def create(self, start_time: Timestamp, end_time: Timestamp) -> Election:
        try:
            election_id = ballotbox.util.checked_add(
                len(self._elections), 1, ballotbox.util.U64_MAX
            )
        except OverflowError as e:
            raise Overflow(counter='election id') from e
        election = Election(election_id, start_time, end_time)
        self._elections.append(election)
        return election

    def get(self, election_id: int) -> Election:
        if election_id not in self:
            raise ElectionNotFound(election_id=election_id)
        return self._elections[election_id - 1]


class ElectionSystem(ElectionDataSource):
    '''Registration, elections, voting and results under role-based access.

    The caller at construction time becomes the administrator.

    :param environment: Supplies the caller and the time for every call.
    :param date_format: Format of the dates accepted by
        :meth:`create_election`.
    :param registration_open: Whether users may request registration from
        the start.
    '''
    def __init__(self,
                 environment: Environment,
                 date_format: str = DATE_FORMAT,
                 registration_open: bool = False,
                 ):
        self.environment = environment
        self.date_format = date_format
        self.registry = IdentityRegistry(
            environment.caller(),
            registration_open=registration_open,
        )
        self.elections = ElectionRepository()

    @property
    def administrator(self) -> Identity:
        return self.registry.administrator

    @property
    def report_generator(self) -> Optional[Identity]:
        return self.registry.report_generator

    def user_status(self, identity: Identity) -> UserStatus:
        return self.registry.status(identity)

    # user registration

    def request_registration(self,
                             given_name: str,
                             family_name: str,
                             national_id: str,
                             ) -> UserProfile:
        return self.registry.request_registration(
            self.environment.caller(), given_name, family_name, national_id
        )

    def next_pending_user(self) -> UserProfile:
        return self.registry.next_pending(self.environment.caller())

    def review_next_pending(self, accept: bool) -> UserProfile:
        return self.registry.review_next_pending(
            self.environment.caller(), accept
        )

    def enable_registration(self) -> None:
        self.registry.enable_registration(self.environment.caller())

    def disable_registration(self) -> None:
        self.registry.disable_registration(self.environment.caller())

    def transfer_administrator(self, identity: Identity) -> None:
        self.registry.transfer_administrator(self.environment.caller(), identity)

    def assign_report_generator(self, identity: Identity) -> None:
        self.registry.assign_report_generator(self.environment.caller(), identity)

    def lookup_user_info(self, identity: Identity) -> Optional[UserProfile]:
        return self.registry.lookup_user_info(self.environment.caller(), identity)

    # election management

    def create_election(self, start: str, end: str) -> int:
        '''Create an election voting between the two given dates.

        :param start: Start of voting, in the system's date format.
        :param end: End of voting, in the system's date format.
        :returns: Id of the new election.
        '''
        self.registry.require_administrator(self.environment.caller())
        try:
            start_time = parse_timestamp(start, self.date_format)
        except ValueError as e:
            raise BadStartDate(value=start, date_format=self.date_format) from e
        try:
            end_time = parse_timestamp(end, self.date_format)
        except ValueError as e:
            raise BadEndDate(value=end, date_format=self.date_format) from e
        election = self.elections.create(start_time, end_time)
        logger.info('created election %d from %s to %s',
                    election.id, start, end)
        return election.id

    def start_voting(self, election_id: int) -> None:
        self.registry.require_administrator(self.environment.caller())
        self.elections.get(election_id).start_voting(self.environment.now())

    def join_election(self, election_id: int, role: RequestedRole) -> None:
        '''Ask to be admitted to an election as a voter or a candidate.'''
        caller = self.environment.caller()
        self.registry.require_registered(caller)
        self.elections.get(election_id).request_admission(
            caller, role, self.environment.now()
        )

    def next_election_pending(self,
                              election_id: int,
                              ) -> Tuple[Identity, RequestedRole]:
        self.registry.require_administrator(self.environment.caller())
        return self.elections.get(election_id).next_pending()

    def review_next_election_pending(self,
                                     election_id: int,
                                     accept: bool,
                                     ) -> Tuple[Identity, RequestedRole]:
        self.registry.require_administrator(self.environment.caller())
        return self.elections.get(election_id).review_next_pending(accept)

    # voting

    def cast_vote(self, election_id: int, candidate_number: int) -> None:
        '''Vote for the candidate with the given number.'''
        caller = self.environment.caller()
        self.registry.require_registered(caller)
        election = self.elections.get(election_id)
        election.check_ballot_open(self.environment.now())
        election.cast_vote(caller, candidate_number)

    def candidate_info(self,
                       election_id: int,
                       candidate_number: int,
                       ) -> UserProfile:
        candidate = self.elections.get(election_id).get_candidate(
            candidate_number
        )
        return self.registry.registered[candidate.owner_id]

    # results and reporting

    def get_results(self, election_id: int) -> Results:
        return self.elections.get(election_id).results(self.environment.now())

    def _closed_election(self, election_id: int) -> Election:
        self.registry.require_viewer(self.environment.caller())
        election = self.elections.get(election_id)
        if self.environment.now() < election.end_time:
            raise ElectionNotFinished(election_id=election_id)
        return election

    def election_voters(self, election_id: int) -> List[Tuple[Identity, bool]]:
        '''Return the voters of a closed election and whether they voted.'''
        return [
            (voter.owner_id, voter.has_voted)
            for voter in self._closed_election(election_id).voters
        ]

    def election_candidates(self,
                            election_id: int,
                            ) -> List[Tuple[Identity, int]]:
        '''Return the candidates of a closed election and their votes.'''
        return [
            (cand.owner_id, cand.total_votes)
            for cand in self._closed_election(election_id).candidates
        ]
