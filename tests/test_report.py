import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import ballotbox.errors
import ballotbox.report
from ballotbox.env import FixedEnvironment, parse_timestamp
from ballotbox.election import RequestedRole
from ballotbox.registry import UserProfile, UnknownProfile
from ballotbox.report import ReportGenerator, CandidateEntry, ParticipationReport
from ballotbox.system import ElectionSystem

PROFILES = {
    'v1': UserProfile('v1', 'Alice', 'Wonderland', '54326961'),
    'v2': UserProfile('v2', 'Bob', 'Builder', '64128970'),
    'v3': UserProfile('v3', 'Carlos', 'Caceres', '54326962'),
    'v4': UserProfile('v4', 'Ana', 'Martinez', '45678901'),
    'v6': UserProfile('v6', 'Elena', 'Rodriguez', '67890123'),
    'v7': UserProfile('v7', 'Pedro', 'Fernandez', '78901234'),
    'v8': UserProfile('v8', 'Juan', 'Perez', '12345678'),
    'v9': UserProfile('v9', 'Maria', 'Gonzalez', '23456789'),
    'cA': UserProfile('cA', 'Carlos', 'Gomez', '34567890'),
    'cB': UserProfile('cB', 'Ricardo', 'Palacios', '24218796'),
    'cC': UserProfile('cC', 'Tomas', 'Lopez', '78921353'),
}

VOTERS = {
    1: [('v8', True), ('v1', True), ('v5', False), ('v7', False),
        ('v3', True), ('v9', True), ('v2', True)],
    2: [('v8', True), ('v7', True), ('v9', False), ('v2', True), ('v6', True),
        ('v5', True), ('v3', True), ('v4', True), ('v1', True)],
    3: [('v1', True), ('v8', True), ('v2', False), ('v6', True), ('v4', True)],
    4: [],
}

CANDIDATES = {
    1: [('cA', 2), ('cC', 3)],
    2: [('cB', 1), ('cA', 5), ('cC', 2)],
    3: [('cA', 2), ('cC', 2)],
    4: [],
    5: [('cB', 4)],
    6: [('cA', 1), ('cB', 3), ('cC', 3)],
    7: [('cA', 5), ('cB', 2), ('cC', 2)],
}


class FakeSource(ballotbox.report.ElectionDataSource):
    def election_voters(self, election_id):
        if election_id not in VOTERS:
            raise ballotbox.errors.ElectionNotFound(election_id=election_id)
        return list(VOTERS[election_id])

    def election_candidates(self, election_id):
        if election_id not in CANDIDATES:
            raise ballotbox.errors.ElectionNotFound(election_id=election_id)
        return list(CANDIDATES[election_id])

    def lookup_user_info(self, identity):
        return PROFILES.get(identity)


def make_generator(source=FakeSource()):
    return ReportGenerator(FixedEnvironment('admin'), source)


@pytest.mark.parametrize('report', [
    'voter_report', 'participation_report', 'result_report',
])
def test_no_source(report):
    generator = make_generator(None)
    with pytest.raises(ballotbox.errors.SystemNotSet):
        getattr(generator, report)(1)


@pytest.mark.parametrize('report', [
    'voter_report', 'participation_report', 'result_report',
])
def test_unknown_election(report):
    with pytest.raises(ballotbox.errors.ElectionNotFound):
        getattr(make_generator(), report)(99)


def test_set_source():
    env = FixedEnvironment('deployer')
    generator = ReportGenerator(env)
    assert generator.administrator == 'deployer'
    env.set_caller('mallory')
    with pytest.raises(ballotbox.errors.NotAdministrator):
        generator.set_source(FakeSource())
    assert generator.source is None
    env.set_caller('deployer')
    generator.set_source(FakeSource())
    assert generator.participation_report(3) == ParticipationReport(4, 80)


def test_voter_report():
    report = make_generator().voter_report(1)
    assert len(report) == 7
    assert [entry.identity for entry in report] == [
        'v8', 'v1', 'v5', 'v7', 'v3', 'v9', 'v2'
    ]
    assert report[4].as_tuple() == ('v3', 'Carlos', 'Caceres', '54326962')
    assert report[0].profile == PROFILES['v8']


def test_voter_report_unknown_profile():
    report = make_generator().voter_report(1)
    assert report[2].as_tuple() == ('v5', '', '', '')
    assert report[2].profile == UnknownProfile('v5')
    assert not report[2].profile.is_known
    assert all(entry.profile.is_known for i, entry in enumerate(report) if i != 2)


def test_voter_report_empty():
    assert make_generator().voter_report(4) == []


@pytest.mark.parametrize(('election_id', 'votes_cast', 'percent'), [
    (1, 5, 72),
    (2, 8, 89),
    (3, 4, 80),
])
def test_participation_report(election_id, votes_cast, percent):
    report = make_generator().participation_report(election_id)
    assert report.votes_cast == votes_cast
    assert report.participation_percent == percent


def test_participation_report_no_voters():
    with pytest.raises(ballotbox.errors.NoVoters):
        make_generator().participation_report(4)


def test_result_report_winner():
    report = make_generator().result_report(1)
    assert [entry.as_tuple() for entry in report.ranking] == [
        ('cC', 'Tomas', 'Lopez', '78921353', 3),
        ('cA', 'Carlos', 'Gomez', '34567890', 2),
    ]
    assert report.winner == report.ranking[0]
    assert report.winner.identity == 'cC'


def test_result_report_three_candidates():
    report = make_generator().result_report(2)
    assert [(entry.identity, entry.votes) for entry in report.ranking] == [
        ('cA', 5), ('cC', 2), ('cB', 1)
    ]
    assert report.winner == CandidateEntry('cA', PROFILES['cA'], 5)


def test_result_report_tie():
    report = make_generator().result_report(3)
    assert report.winner is None
    assert [(entry.identity, entry.votes) for entry in report.ranking] == [
        ('cA', 2), ('cC', 2)
    ]


def test_result_report_tie_at_top_of_three():
    report = make_generator().result_report(6)
    assert report.winner is None
    assert [entry.identity for entry in report.ranking] == ['cB', 'cC', 'cA']


def test_result_report_tie_below_top():
    report = make_generator().result_report(7)
    assert report.winner == CandidateEntry('cA', PROFILES['cA'], 5)
    assert [(entry.identity, entry.votes) for entry in report.ranking] == [
        ('cA', 5), ('cB', 2), ('cC', 2)
    ]


def test_result_report_single_candidate():
    report = make_generator().result_report(5)
    assert report.winner.identity == 'cB'
    assert len(report.ranking) == 1


def test_result_report_no_candidates():
    with pytest.raises(ballotbox.errors.NoCandidates):
        make_generator().result_report(4)


def test_reports_from_election_system():
    env = FixedEnvironment('admin', parse_timestamp('01-05-2030 12:00'))
    system = ElectionSystem(env, registration_open=True)
    reports = ReportGenerator(env, system)
    people = [('x', 'Xavier'), ('y', 'Yolanda'), ('v1', 'Vera'),
              ('v2', 'Victor'), ('v3', 'Vlad')]
    for identity, name in people:
        env.set_caller(identity)
        system.request_registration(name, 'Test', 'N-' + identity)
    env.set_caller('admin')
    for person in people:
        system.review_next_pending(True)
    system.assign_report_generator('rita')
    election_id = system.create_election('01-06-2030 08:00', '01-06-2030 18:00')
    for identity, name in people:
        env.set_caller(identity)
        if identity in ('x', 'y'):
            system.join_election(election_id, RequestedRole.CANDIDATE)
        else:
            system.join_election(election_id, RequestedRole.VOTER)
    env.set_caller('admin')
    for person in people:
        system.review_next_election_pending(election_id, True)
    env.set_date('01-06-2030 09:00')
    for identity, number in [('v1', 2), ('v2', 2), ('v3', 1)]:
        env.set_caller(identity)
        system.cast_vote(election_id, number)

    env.set_caller('rita')
    with pytest.raises(ballotbox.errors.ElectionNotFinished):
        reports.result_report(election_id)
    env.set_date('01-06-2030 18:00')
    result = reports.result_report(election_id)
    assert result.winner.as_tuple() == ('y', 'Yolanda', 'Test', 'N-y', 2)
    assert [entry.identity for entry in result.ranking] == ['y', 'x']
    assert reports.participation_report(election_id) == ParticipationReport(3, 100)
    assert [entry.as_tuple() for entry in reports.voter_report(election_id)] == [
        ('v1', 'Vera', 'Test', 'N-v1'),
        ('v2', 'Victor', 'Test', 'N-v2'),
        ('v3', 'Vlad', 'Test', 'N-v3'),
    ]

    env.set_caller('v1')
    with pytest.raises(ballotbox.errors.NoPermissionToView):
        reports.voter_report(election_id)
