'''Errors raised by the election system.

Every operation either returns its payload or raises exactly one of the
errors defined here. The errors are grouped into families by their root
cause so that callers can handle e.g. all authorization failures at once:

-   :class:`AuthorizationError` - the caller lacks the role required.
-   :class:`MembershipError` - the caller is already (or was already) in the
    queue or set the operation would put them into.
-   :class:`LifecycleError` - the election or registration is not in a state
    that allows the operation at the current time.
-   :class:`IntegrityError` - the operation would break a counting invariant.
-   :class:`InputError` - an argument could not be interpreted.

The name of the concrete error class is its code, available as
:attr:`ElectionSystemError.code`.
'''

from typing import Any, Optional


class ElectionSystemError(Exception):
    '''Base class of all election system errors.

    :param message: A message overriding the class default.
    :param context: Values describing the failure (e.g. the election id).
        They are stored in :attr:`context` and used to fill in the default
        message template.
    '''
    template: str = 'election system error'

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.context = context
        if message is None:
            message = self.template.format(**context)
        super().__init__(message)

    @property
    def code(self) -> str:
        return type(self).__name__


class AuthorizationError(ElectionSystemError):
    '''The caller does not hold the role required by the operation.'''
    pass


class MembershipError(ElectionSystemError):
    '''The caller is already present in the target queue or set.'''
    pass


class LifecycleError(ElectionSystemError):
    '''The operation is not allowed in the current state.'''
    pass


class IntegrityError(ElectionSystemError):
    '''The operation would violate a counting invariant.'''
    pass


class InputError(ElectionSystemError):
    '''An argument could not be interpreted.'''
    pass


class NotAdministrator(AuthorizationError):
    template = 'caller {caller!r} is not the administrator'


class NotRegistered(AuthorizationError):
    template = 'caller {caller!r} is not a registered user'


class NoPermissionToView(AuthorizationError):
    template = 'caller {caller!r} is neither the administrator nor the report generator'


class IsAdministrator(AuthorizationError):
    template = 'the administrator cannot register as a user'


class AlreadyRegistered(MembershipError):
    template = 'user {caller!r} is already registered'


class AlreadyPending(MembershipError):
    template = 'user {caller!r} is already waiting for review'


class AlreadyRejected(MembershipError):
    template = 'registration of user {caller!r} was rejected'


class AlreadyPendingInElection(MembershipError):
    template = 'user {caller!r} is already waiting for review in election {election_id}'


class AlreadyRejectedInElection(MembershipError):
    template = 'user {caller!r} was rejected in election {election_id}'


class AlreadyInElection(MembershipError):
    template = 'user {caller!r} is already admitted to election {election_id}'


class RegistrationClosed(LifecycleError):
    template = 'user registration is not enabled'


class AlreadyInState(LifecycleError):
    template = 'registration is already {state}'


class ElectionNotFound(LifecycleError):
    template = 'no election with id {election_id}'


class TooEarly(LifecycleError):
    template = 'voting in election {election_id} has not started yet'


class VotingEnded(LifecycleError):
    template = 'voting in election {election_id} has ended'


class AlreadyStarted(LifecycleError):
    template = 'voting in election {election_id} has already started'


class VotingAlreadyStarted(LifecycleError):
    template = 'voting in election {election_id} started, admission is closed'


class ElectionEnded(LifecycleError):
    template = 'election {election_id} has ended, admission is closed'


class ElectionNotFinished(LifecycleError):
    template = 'election {election_id} has not finished yet'


class CandidateNotFound(LifecycleError):
    template = 'no candidate number {candidate_number} in election {election_id}'


class NotRegisteredVoter(LifecycleError):
    template = 'user {caller!r} is not a voter in election {election_id}'


class AlreadyVoted(IntegrityError):
    template = 'user {caller!r} has already voted in election {election_id}'


class Overflow(IntegrityError):
    template = 'counter overflow: {counter}'


class NoVoters(IntegrityError):
    template = 'election {election_id} has no voters'


class NoCandidates(IntegrityError):
    template = 'election {election_id} has no candidates'


class NoPendingUsers(IntegrityError):
    template = 'there are no pending users'


class SystemNotSet(IntegrityError):
    template = 'the report generator has no election data source'


class BadStartDate(InputError):
    template = 'invalid start date {value!r}, expected format {date_format!r}'


class BadEndDate(InputError):
    template = 'invalid end date {value!r}, expected format {date_format!r}'
