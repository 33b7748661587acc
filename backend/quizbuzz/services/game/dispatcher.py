"""Snapshot messages and their audiences.

Builders return :class:`Outbound` values; nothing here talks to the socket
layer. The engine resolves audiences to socket ids at delivery time, while
still holding its lock, so every recipient sees the same state.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from quizbuzz.services.game.registry import SessionRegistry
from quizbuzz.services.game.roles import SessionRole
from quizbuzz.services.game.state import SessionState
from quizbuzz.services.stores import PlayerStore

ALL = 'all'
HOSTS = 'hosts'
SESSION = 'session'


@dataclass(frozen=True)
class Outbound:
    payload: Dict[str, Any]
    to: str = ALL
    sid: Optional[str] = None


def to_session(sid: str, payload: Dict[str, Any]) -> Outbound:
    return Outbound(payload, to=SESSION, sid=sid)


_WS = re.compile(r'\s+')


def normalize_answer(text: str) -> str:
    return _WS.sub(' ', (text or '').strip()).casefold()


class BroadcastDispatcher:

    def __init__(self, state: SessionState, registry: SessionRegistry,
                 player_store: PlayerStore) -> None:
        self.state = state
        self.registry = registry
        self.player_store = player_store

    def recipients(self, message: Outbound) -> List[str]:
        if message.to == SESSION:
            return [message.sid] if message.sid in self.registry else []
        if message.to == HOSTS:
            return self.registry.host_sids()
        return self.registry.all_sids()

    # ---- scores & stats ----

    def scores(self, players: Optional[List[Dict]] = None) -> Outbound:
        """Scores of connected players, highest first.

        ``players`` is a player-store snapshot; the store is read when omitted.
        """
        if players is None:
            players = self.player_store.load_all()
        totals = {p['name']: p['totalScore'] for p in players}
        active = self.registry.active_players()
        ranked = sorted(active, key=lambda n: (-totals.get(n, 0), n))
        return Outbound({
            'type': 'updateScores',
            'scores': {name: totals.get(name, 0) for name in ranked},
            'activePlayers': active,
        })

    def stats(self, sid: Optional[str] = None, players: Optional[List[Dict]] = None) -> Outbound:
        if players is None:
            players = self.player_store.load_all()
        stats = {p['name']: {k: v for k, v in p.items() if k != 'name'} for p in players}
        payload = {'type': 'updateStats', 'stats': stats}
        if sid is not None:
            return to_session(sid, payload)
        return Outbound(payload, to=HOSTS)

    # ---- buzzer ----

    def buzzer_status(self) -> Outbound:
        payload = {'type': 'buzzerStatusUpdate'}
        payload.update(self.state.buzzer_dict())
        return Outbound(payload)

    def buzzed_in(self) -> Outbound:
        return Outbound({'type': 'buzzedIn', 'name': self.state.buzzed_in,
                         'status': self.state.status})

    def initial_status(self, sid: str) -> Outbound:
        payload = {'type': 'initialStatus'}
        payload.update(self.state.buzzer_dict())
        return to_session(sid, payload)

    def outcome(self, name: str, correct: bool, awarded: Dict[str, int]) -> Outbound:
        return Outbound({'type': 'correctAnswer' if correct else 'wrongAnswer',
                         'name': name, 'awarded': awarded})

    # ---- questions ----

    def _player_question(self) -> Dict[str, Any]:
        q = self.state.current_question
        return {
            'type': 'questionUpdate',
            'questionIndex': self.state.current_question_index,
            'questionCount': len(self.state.questions),
            'question': q.prompt if q else '',
        }

    def _host_question(self) -> Dict[str, Any]:
        q = self.state.current_question
        return {
            'type': 'hostQuestionUpdate',
            'questions': [item.to_dict() for item in self.state.questions],
            'questionIndex': self.state.current_question_index,
            'currentQuestionText': q.prompt if q else '',
            'correctAnswer': q.expected_answer if q else '',
        }

    def question_updates(self) -> List[Outbound]:
        # Players must never see the expected answer
        return [Outbound(self._player_question()),
                Outbound(self._host_question(), to=HOSTS)]

    def question_for(self, sid: str, role: SessionRole) -> List[Outbound]:
        messages = [to_session(sid, self._player_question())]
        if role.is_host:
            messages.append(to_session(sid, self._host_question()))
        return messages

    def quiz_loaded(self) -> Outbound:
        return Outbound({'type': 'quizLoaded', 'questionCount': len(self.state.questions)})

    # ---- answers ----

    def live_answers(self, sid: Optional[str] = None) -> Outbound:
        payload = {'type': 'liveAnswers', 'liveAnswers': dict(self.state.live_answers)}
        return to_session(sid, payload) if sid else Outbound(payload, to=HOSTS)

    def submitted_answers(self, sid: Optional[str] = None) -> Outbound:
        q = self.state.current_question
        expected = normalize_answer(q.expected_answer) if q and q.expected_answer else None
        grades = {}
        if expected is not None:
            grades = {name: normalize_answer(answer) == expected
                      for name, answer in self.state.submitted_answers.items()}
        payload = {
            'type': 'submittedAnswers',
            'submittedAnswers': dict(self.state.submitted_answers),
            'autoGrades': grades,
        }
        return to_session(sid, payload) if sid else Outbound(payload, to=HOSTS)

    # ---- connection lifecycle ----

    def auth_response(self, sid: str, role: Optional[SessionRole],
                      reason: Optional[str] = None) -> Outbound:
        if role is None:
            payload = {'type': 'authResponse', 'success': False}
            if reason:
                payload['reason'] = reason
            return to_session(sid, payload)
        return to_session(sid, {
            'type': 'authResponse',
            'success': True,
            'name': role.name,
            'isHost': role.is_host,
            'questionCount': len(self.state.questions),
        })

    def full_snapshot(self, sid: str, role: SessionRole) -> List[Outbound]:
        messages = [self.initial_status(sid)]
        messages.extend(self.question_for(sid, role))
        if role.is_host:
            messages.append(self.stats(sid))
            messages.append(self.live_answers(sid))
            messages.append(self.submitted_answers(sid))
        return messages

    def session_replaced(self, sid: str, name: str) -> Outbound:
        return to_session(sid, {'type': 'sessionReplaced', 'name': name})

    def error(self, sid: str, request_type: str) -> Outbound:
        return to_session(sid, {'type': 'error', 'message': 'Request failed',
                                'request': request_type})
