import pytest
from sqlalchemy.exc import OperationalError

from quizbuzz import db
from quizbuzz.errors import StorageFailure
from quizbuzz.services.stores import PlayerStore, Question, QuestionStore, StatDelta


def test_upsert_creates_and_patches(flask_app):
    store = PlayerStore()
    created = store.upsert('Alice', password='pw')
    assert created == {'name': 'Alice', 'totalScore': 0, 'correctAnswers': 0,
                       'incorrectAnswers': 0, 'totalQuestionsAnswered': 0}
    patched = store.upsert('Alice', total_score=3)
    assert patched['totalScore'] == 3
    assert store.check_credential('Alice', 'pw') is True
    assert store.check_credential('Alice', 'PW') is False
    assert store.check_credential('alice', 'pw') is None


def test_upsert_rejects_unknown_fields(flask_app):
    with pytest.raises(ValueError):
        PlayerStore().upsert('Alice', password_hash='x')


def test_apply_deltas_is_one_commit(flask_app, monkeypatch):
    store = PlayerStore()
    store.upsert('Alice', password='pw')

    def broken_commit():
        raise OperationalError('UPDATE player', {}, Exception('boom'))

    monkeypatch.setattr(db.session, 'commit', broken_commit)
    with pytest.raises(StorageFailure):
        store.apply_deltas({'Alice': StatDelta(score=5), 'Bob': StatDelta(score=1)})
    monkeypatch.undo()
    assert store.get('Alice')['totalScore'] == 0
    assert store.get('Bob') is None


def test_question_store_replaces_in_order(flask_app):
    store = QuestionStore()
    store.replace_all([Question('One', '1'), Question('Two', '2')])
    store.replace_all([Question('B', 'b'), Question('A', 'a')])
    assert store.load_all() == [Question('B', 'b'), Question('A', 'a')]
