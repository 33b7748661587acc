"""SQLAlchemy-backed player and question stores.

Every write commits before returning, so callers may broadcast the new
values as soon as a call succeeds. Any database error rolls the session
back and surfaces as :class:`StorageFailure`.
"""
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from quizbuzz import db
from quizbuzz.errors import StorageFailure
from quizbuzz.models import PlayerRecord, QuestionRecord


@dataclass(frozen=True)
class Question:
    prompt: str
    expected_answer: str

    def to_dict(self) -> Dict[str, str]:
        return {'question': self.prompt, 'answer': self.expected_answer}


@dataclass
class StatDelta:
    """Change applied to one player's counters in a single commit."""
    score: int = 0
    correct: int = 0
    incorrect: int = 0
    answered: int = 0


_PATCHABLE_FIELDS = {'total_score', 'correct_answers', 'incorrect_answers', 'total_questions_answered'}


@contextmanager
def _transaction(action: str):
    try:
        yield
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageFailure(f'{action} failed: {exc}') from exc


class PlayerStore:

    def load_all(self) -> List[Dict]:
        with _transaction('load players'):
            rows = PlayerRecord.query.order_by(PlayerRecord.name).all()
            players = [r.to_dict() for r in rows]
        return players

    def get(self, name: str) -> Optional[Dict]:
        with _transaction('get player'):
            row = PlayerRecord.query.filter_by(name=name).first()
            player = row.to_dict() if row else None
        return player

    def check_credential(self, name: str, password: str) -> Optional[bool]:
        """True/False for a known name, None when no such player exists."""
        with _transaction('check credential'):
            row = PlayerRecord.query.filter_by(name=name).first()
            result = None if row is None else row.check_password(password)
        return result

    def upsert(self, name: str, password: Optional[str] = None, **fields) -> Dict:
        """Create the player if absent, then patch the given counters."""
        for key in fields:
            if key not in _PATCHABLE_FIELDS:
                raise ValueError(f'unknown player field: {key}')
        with _transaction('upsert player'):
            row = PlayerRecord.query.filter_by(name=name).first()
            if row is None:
                row = PlayerRecord(name=name, total_score=0, correct_answers=0,
                                   incorrect_answers=0, total_questions_answered=0)
                db.session.add(row)
            if password is not None:
                row.set_password(password)
            for key, value in fields.items():
                setattr(row, key, value)
            db.session.flush()
            player = row.to_dict()
        return player

    def apply_deltas(self, deltas: Dict[str, StatDelta]) -> Dict[str, Dict]:
        """Apply all deltas in one commit; unknown names are created at zero."""
        updated = {}
        with _transaction('apply score deltas'):
            for name, delta in deltas.items():
                row = PlayerRecord.query.filter_by(name=name).first()
                if row is None:
                    row = PlayerRecord(name=name, total_score=0, correct_answers=0,
                                       incorrect_answers=0, total_questions_answered=0)
                    db.session.add(row)
                row.total_score = (row.total_score or 0) + delta.score
                row.correct_answers = (row.correct_answers or 0) + delta.correct
                row.incorrect_answers = (row.incorrect_answers or 0) + delta.incorrect
                row.total_questions_answered = (row.total_questions_answered or 0) + delta.answered
                updated[name] = row.to_dict()
        return updated

    def reset_all_stats(self) -> int:
        with _transaction('reset stats'):
            rows = PlayerRecord.query.all()
            for row in rows:
                row.reset_stats()
            count = len(rows)
        return count


class QuestionStore:

    def load_all(self) -> List[Question]:
        with _transaction('load questions'):
            rows = QuestionRecord.query.order_by(QuestionRecord.position).all()
            questions = [Question(r.prompt, r.expected_answer or '') for r in rows]
        return questions

    def replace_all(self, questions: Iterable[Question]) -> List[Question]:
        questions = list(questions)
        with _transaction('replace questions'):
            QuestionRecord.query.delete()
            for position, q in enumerate(questions):
                db.session.add(QuestionRecord(position=position, prompt=q.prompt,
                                              expected_answer=q.expected_answer))
        return questions
