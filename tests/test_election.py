import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import ballotbox.errors
import ballotbox.util
from ballotbox.election import (
    Election, ElectionState, RequestedRole, CandidateTally, VoterRecord,
    Results
)

START = 1000
END = 2000
BEFORE = 500
DURING = 1500
AFTER = 2500

VOTER = RequestedRole.VOTER
CANDIDATE = RequestedRole.CANDIDATE


def admitted_election(voters=('alice', 'bob', 'carol'),
                      candidates=('dave', 'erin'),
                      ):
    election = Election(1, START, END)
    for identity in voters:
        election.request_admission(identity, VOTER, BEFORE)
    for identity in candidates:
        election.request_admission(identity, CANDIDATE, BEFORE)
    while election.pending_admission:
        election.review_next_pending(True)
    return election


@pytest.mark.parametrize(('now', 'state'), [
    (BEFORE, ElectionState.OPEN),
    (START - 1, ElectionState.OPEN),
    (START, ElectionState.VOTING),
    (END - 1, ElectionState.VOTING),
    (END, ElectionState.CLOSED),
    (AFTER, ElectionState.CLOSED),
])
def test_state(now, state):
    assert Election(1, START, END).state(now) == state


def test_request_admission_queues_fifo():
    election = Election(1, START, END)
    election.request_admission('alice', VOTER, BEFORE)
    election.request_admission('dave', CANDIDATE, BEFORE)
    assert election.pending_admission == [('alice', VOTER), ('dave', CANDIDATE)]
    assert election.next_pending() == ('alice', VOTER)
    assert election.review_next_pending(True) == ('alice', VOTER)
    assert election.next_pending() == ('dave', CANDIDATE)


def test_request_admission_accepts_role_value():
    election = Election(1, START, END)
    election.request_admission('alice', 'candidate', BEFORE)
    assert election.next_pending() == ('alice', CANDIDATE)


def test_request_admission_twice():
    election = Election(1, START, END)
    election.request_admission('alice', VOTER, BEFORE)
    with pytest.raises(ballotbox.errors.AlreadyPendingInElection):
        election.request_admission('alice', CANDIDATE, BEFORE)


def test_request_admission_rejected():
    election = Election(1, START, END)
    election.request_admission('alice', VOTER, BEFORE)
    election.review_next_pending(False)
    assert election.rejected_admission == {'alice'}
    assert not election.voters
    with pytest.raises(ballotbox.errors.AlreadyRejectedInElection):
        election.request_admission('alice', VOTER, BEFORE)


@pytest.mark.parametrize('role', [VOTER, CANDIDATE])
def test_request_admission_already_admitted(role):
    election = admitted_election()
    with pytest.raises(ballotbox.errors.AlreadyInElection):
        election.request_admission('alice', role, BEFORE)
    with pytest.raises(ballotbox.errors.AlreadyInElection):
        election.request_admission('dave', role, BEFORE)


@pytest.mark.parametrize(('voting_started', 'now', 'error'), [
    (True, BEFORE, ballotbox.errors.VotingAlreadyStarted),
    (True, AFTER, ballotbox.errors.VotingAlreadyStarted),
    (False, START, ballotbox.errors.VotingAlreadyStarted),
    (False, DURING, ballotbox.errors.VotingAlreadyStarted),
    (False, END, ballotbox.errors.VotingAlreadyStarted),
    (False, AFTER, ballotbox.errors.ElectionEnded),
])
def test_request_admission_window(voting_started, now, error):
    election = Election(1, START, END)
    election.voting_started = voting_started
    with pytest.raises(error):
        election.request_admission('alice', VOTER, now)
    assert not election.pending_admission


def test_candidate_numbers_follow_admission_order():
    election = Election(1, START, END)
    for identity in ['dave', 'alice', 'erin', 'frank']:
        election.request_admission(
            identity, VOTER if identity == 'alice' else CANDIDATE, BEFORE
        )
    election.review_next_pending(True)
    election.review_next_pending(True)
    election.review_next_pending(False)
    election.review_next_pending(True)
    assert election.candidates == [
        CandidateTally('dave', 1, 0),
        CandidateTally('frank', 2, 0),
    ]
    assert election.voters == [VoterRecord('alice', False)]
    assert election.get_candidate(2).owner_id == 'frank'


def test_review_empty_queue():
    election = Election(1, START, END)
    with pytest.raises(ballotbox.errors.NoPendingUsers):
        election.review_next_pending(True)
    with pytest.raises(ballotbox.errors.NoPendingUsers):
        election.next_pending()


@pytest.mark.parametrize('number', [-1, 0, 3, 100])
def test_get_candidate_out_of_range(number):
    election = admitted_election()
    assert not election.has_candidate(number)
    with pytest.raises(ballotbox.errors.CandidateNotFound) as excinfo:
        election.get_candidate(number)
    assert excinfo.value.context == {
        'election_id': 1,
        'candidate_number': number,
    }


@pytest.mark.parametrize(('voting_started', 'now', 'error'), [
    (False, BEFORE, ballotbox.errors.TooEarly),
    (False, START - 1, ballotbox.errors.TooEarly),
    (False, AFTER, ballotbox.errors.VotingEnded),
    (True, AFTER, ballotbox.errors.VotingEnded),
    (False, END + 1, ballotbox.errors.VotingEnded),
])
def test_ballot_closed(voting_started, now, error):
    election = Election(1, START, END)
    election.voting_started = voting_started
    with pytest.raises(error):
        election.check_ballot_open(now)
    assert election.voting_started == voting_started


@pytest.mark.parametrize('now', [START, DURING, END])
def test_ballot_open_starts_voting(now):
    election = Election(1, START, END)
    election.check_ballot_open(now)
    assert election.voting_started


def test_start_voting():
    election = Election(1, START, END)
    with pytest.raises(ballotbox.errors.TooEarly):
        election.start_voting(BEFORE)
    election.start_voting(START)
    assert election.voting_started
    with pytest.raises(ballotbox.errors.AlreadyStarted):
        election.start_voting(DURING)
    with pytest.raises(ballotbox.errors.VotingEnded):
        election.start_voting(AFTER)


def test_cast_vote():
    election = admitted_election()
    election.cast_vote('alice', 2)
    election.cast_vote('bob', 2)
    election.cast_vote('carol', 1)
    assert [cand.total_votes for cand in election.candidates] == [1, 2]
    assert all(voter.has_voted for voter in election.voters)


def test_cast_vote_twice():
    election = admitted_election()
    election.cast_vote('alice', 1)
    with pytest.raises(ballotbox.errors.AlreadyVoted):
        election.cast_vote('alice', 2)
    assert [cand.total_votes for cand in election.candidates] == [1, 0]


def test_cast_vote_checks():
    election = admitted_election()
    with pytest.raises(ballotbox.errors.CandidateNotFound):
        election.cast_vote('alice', 3)
    with pytest.raises(ballotbox.errors.NotRegisteredVoter):
        election.cast_vote('dave', 1)
    assert not election.get_voter('alice').has_voted
    assert [cand.total_votes for cand in election.candidates] == [0, 0]


def test_cast_vote_overflow_rolls_back():
    election = admitted_election()
    election.candidates[0].total_votes = ballotbox.util.U32_MAX
    with pytest.raises(ballotbox.errors.Overflow):
        election.cast_vote('alice', 1)
    assert not election.get_voter('alice').has_voted
    assert election.candidates[0].total_votes == ballotbox.util.U32_MAX
    election.cast_vote('alice', 2)
    assert election.get_voter('alice').has_voted
    assert election.candidates[1].total_votes == 1


def test_results_not_finished():
    election = admitted_election()
    with pytest.raises(ballotbox.errors.ElectionNotFinished):
        election.results(DURING)
    with pytest.raises(ballotbox.errors.ElectionNotFinished):
        election.results(END - 1)
    assert election.cached_results is None


def test_results():
    election = admitted_election()
    election.cast_vote('alice', 2)
    election.cast_vote('bob', 2)
    assert election.results(END) == Results(
        total_voters=3,
        votes_cast=2,
        per_candidate_votes=(('dave', 0), ('erin', 2)),
    )


def test_results_memoized():
    election = admitted_election()
    election.cast_vote('alice', 1)
    first = election.results(END)
    election.candidates[1].total_votes += 10
    election.get_voter('bob').has_voted = True
    second = election.results(AFTER)
    assert second == first
    assert second.per_candidate_votes == (('dave', 1), ('erin', 0))
    assert second.votes_cast == 1


def test_results_empty_election():
    election = Election(1, START, END)
    assert election.results(END) == Results(0, 0, ())
