'''User identities, roles and the global registration queue.

The :class:`IdentityRegistry` holds the administrator and report generator
role assignments and tracks every user in exactly one of the states of
:class:`UserStatus`. New users enter the FIFO pending queue through
:meth:`IdentityRegistry.request_registration`; the administrator accepts or
rejects them one at a time, oldest first.

The registry does not resolve the caller itself - every method takes the
caller identity as its first argument, as supplied by the root
:class:`ballotbox.system.ElectionSystem`.
'''

import collections
import dataclasses
import enum
import logging
from typing import Dict, Optional, Set, Deque

from ballotbox.env import Identity
from ballotbox.errors import (
    NotAdministrator, NotRegistered, NoPermissionToView, IsAdministrator,
    AlreadyRegistered, AlreadyPending, AlreadyRejected, RegistrationClosed,
    AlreadyInState, NoPendingUsers,
)
from ballotbox.persist import simple_serialization

logger = logging.getLogger(__name__)


class UserStatus(enum.Enum):
    UNREGISTERED = 'unregistered'
    PENDING = 'pending'
    REGISTERED = 'registered'
    REJECTED = 'rejected'


@simple_serialization
@dataclasses.dataclass(frozen=True)
class UserProfile:
    '''Personal data a user submits when asking to be registered.

    :param id: The account identity of the user.
    :param given_name: Given name(s).
    :param family_name: Family name(s).
    :param national_id: National identity document number, kept as text.
    '''
    id: Identity
    given_name: str
    family_name: str
    national_id: str

    serialize_extra = ['is_known']

    @property
    def is_known(self) -> bool:
        return True

    def as_tuple(self):
        return (self.given_name, self.family_name, self.national_id)


class UnknownProfile(UserProfile):
    '''Stand-in for a profile that could not be looked up.

    Reports join identities with profiles for display; where the lookup
    comes back empty, this profile with empty names takes the place of the
    real one. It never compares equal to a real profile, even one with
    empty names.
    '''
    def __init__(self, id: Identity):
        super().__init__(id, '', '', '')

    @property
    def is_known(self) -> bool:
        return False


class IdentityRegistry:
    '''Role holders and the global user registration state.

    :param administrator: Identity of the initial administrator.
    :param registration_open: Whether users may request registration from
        the start.
    '''
    def __init__(self,
                 administrator: Identity,
                 registration_open: bool = False,
                 ):
        self.administrator = administrator
        self.report_generator: Optional[Identity] = None
        self.registration_open = registration_open
        self.pending: Deque[UserProfile] = collections.deque()
        self.registered: Dict[Identity, UserProfile] = {}
        self.rejected: Set[Identity] = set()

    def is_administrator(self, identity: Identity) -> bool:
        return identity == self.administrator

    def is_report_generator(self, identity: Identity) -> bool:
        return (
            self.report_generator is not None
            and identity == self.report_generator
        )

    def is_registered(self, identity: Identity) -> bool:
        return identity in self.registered

    def is_pending(self, identity: Identity) -> bool:
        return any(profile.id == identity for profile in self.pending)

    def status(self, identity: Identity) -> UserStatus:
        if identity in self.registered:
            return UserStatus.REGISTERED
        elif identity in self.rejected:
            return UserStatus.REJECTED
        elif self.is_pending(identity):
            return UserStatus.PENDING
        else:
            return UserStatus.UNREGISTERED

    def require_administrator(self, caller: Identity) -> None:
        if not self.is_administrator(caller):
            raise NotAdministrator(caller=caller)

    def require_registered(self, caller: Identity) -> None:
        if not self.is_registered(caller):
            raise NotRegistered(caller=caller)

    def require_viewer(self, caller: Identity) -> None:
        '''Require the administrator or the report generator.'''
        if not (self.is_administrator(caller)
                or self.is_report_generator(caller)):
            raise NoPermissionToView(caller=caller)

    def request_registration(self,
                             caller: Identity,
                             given_name: str,
                             family_name: str,
                             national_id: str,
                             ) -> UserProfile:
        '''Put the caller at the end of the pending queue.

        :returns: The profile queued for review.
        '''
        if not self.registration_open:
            raise RegistrationClosed()
        if self.is_administrator(caller):
            raise IsAdministrator(caller=caller)
        if caller in self.rejected:
            raise AlreadyRejected(caller=caller)
        if caller in self.registered:
            raise AlreadyRegistered(caller=caller)
        if self.is_pending(caller):
            raise AlreadyPending(caller=caller)
        profile = UserProfile(caller, given_name, family_name, national_id)
        self.pending.append(profile)
        logger.debug('queued registration of %r, %d pending',
                     caller, len(self.pending))
        return profile

    def next_pending(self, caller: Identity) -> UserProfile:
        '''Return the profile at the head of the pending queue.'''
        self.require_administrator(caller)
        if not self.pending:
            raise NoPendingUsers()
        return self.pending[0]

    def review_next_pending(self, caller: Identity, accept: bool) -> UserProfile:
        '''Accept or reject the oldest pending registration.

        :returns: The profile that was reviewed.
        '''
        self.require_administrator(caller)
        if not self.pending:
            raise NoPendingUsers()
        profile = self.pending.popleft()
        if accept:
            self.registered[profile.id] = profile
            logger.info('registered user %r', profile.id)
        else:
            self.rejected.add(profile.id)
            logger.info('rejected registration of %r', profile.id)
        return profile

    def enable_registration(self, caller: Identity) -> None:
        self.require_administrator(caller)
        if self.registration_open:
            raise AlreadyInState(state='enabled')
        self.registration_open = True
        logger.info('user registration enabled')

    def disable_registration(self, caller: Identity) -> None:
        self.require_administrator(caller)
        if not self.registration_open:
            raise AlreadyInState(state='disabled')
        self.registration_open = False
        logger.info('user registration disabled')

    def transfer_administrator(self, caller: Identity, identity: Identity) -> None:
        self.require_administrator(caller)
        self.administrator = identity
        logger.info('administrator role transferred to %r', identity)

    def assign_report_generator(self, caller: Identity, identity: Identity) -> None:
        self.require_administrator(caller)
        self.report_generator = identity
        logger.info('report generator role assigned to %r', identity)

    def lookup_user_info(self,
                         caller: Identity,
                         identity: Identity,
                         ) -> Optional[UserProfile]:
        '''Return the profile of a registered user.

        Only the administrator and the report generator see profiles; for
        anyone else, and for identities that are not registered, the result
        is None. The two cases cannot be told apart.
        '''
        if not (self.is_administrator(caller)
                or self.is_report_generator(caller)):
            return None
        return self.registered.get(identity)
