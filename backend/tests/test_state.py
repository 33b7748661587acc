import pytest

from quizbuzz.services.game.registry import SessionRegistry
from quizbuzz.services.game.roles import HostRole, PlayerRole, is_authenticated
from quizbuzz.services.game.state import CLOSED, OPEN, WRAP, SessionState
from quizbuzz.services.stores import Question

QUIZ = [Question('Q1', 'A1'), Question('Q2', 'A2'), Question('Q3', 'A3')]


def test_only_first_buzz_is_honoured():
    state = SessionState(status=OPEN)
    assert state.try_buzz('Alice') is True
    assert state.try_buzz('Bob') is False
    assert state.status == CLOSED
    assert state.buzzed_in == 'Alice'


def test_manual_close_leaves_nobody_buzzed():
    state = SessionState(status=OPEN)
    state.record_live_answer('Alice', 'x')
    state.close()
    assert state.status == CLOSED
    assert state.buzzed_in is None
    assert state.live_answers == {}
    assert state.try_buzz('Alice') is False


def test_wrap_policy_cycles_questions():
    state = SessionState(QUIZ, index_policy=WRAP)
    state.move_question(-1)
    assert state.current_question_index == 2
    state.move_question(1)
    assert state.current_question_index == 0
    assert state.status == OPEN


def test_move_without_questions_still_resets():
    state = SessionState(status=CLOSED)
    assert state.move_question(1) is False
    assert state.current_question_index == 0
    assert state.current_question is None
    assert state.status == OPEN


def test_load_questions_keeps_buzzer_status():
    state = SessionState(status=CLOSED)
    state.load_questions(QUIZ)
    assert state.status == CLOSED
    assert state.current_question == QUIZ[0]


def test_invalid_configuration_is_rejected():
    with pytest.raises(ValueError):
        SessionState(status='ajar')
    with pytest.raises(ValueError):
        SessionState(index_policy='bounce')


def test_registry_tracks_roles():
    registry = SessionRegistry()
    registry.add('a')
    registry.add('h')
    registry.add('anon')
    assert not is_authenticated(registry.role_of('a'))
    registry.assign('a', PlayerRole('Alice'))
    registry.assign('h', HostRole('host'))
    assert registry.all_sids() == ['a', 'h', 'anon']
    assert registry.host_sids() == ['h']
    assert registry.active_players() == ['Alice']
    assert registry.sids_for_player('Alice') == ['a']
    registry.detach('a')
    assert registry.active_players() == []
    assert registry.remove('anon') is not None
    assert 'anon' not in registry
    assert len(registry) == 2


def test_registry_assign_requires_connection():
    registry = SessionRegistry()
    with pytest.raises(KeyError):
        registry.assign('ghost', PlayerRole('Ghost'))
