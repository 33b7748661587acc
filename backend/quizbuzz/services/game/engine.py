"""Serialized message handling for the buzzer game.

All inbound traffic (connects, disconnects and messages) goes through
:meth:`GameEngine.process` and friends, which hold one lock across both the
state change and the delivery of the resulting messages. Arrival order at
that lock decides every race, including who buzzed first.
"""
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from flask import current_app

from quizbuzz.errors import MalformedMessage, StorageFailure
from quizbuzz.services.auth import Authenticator
from quizbuzz.services.game.dispatcher import BroadcastDispatcher, Outbound
from quizbuzz.services.game.registry import SessionRegistry
from quizbuzz.services.game.roles import UNAUTHENTICATED, is_authenticated
from quizbuzz.services.game.scoring import ScoringEngine
from quizbuzz.services.game.state import SessionState
from quizbuzz.services.stores import PlayerStore, Question, QuestionStore

Deliver = Callable[[str, Dict[str, Any]], None]

HOST_ONLY = {
    'nextQuestion', 'prevQuestion', 'toggleBuzzer', 'openBuzzer', 'closeBuzzer',
    'reset', 'updatePoints', 'manualScoreChange', 'resetAllPlayerStats',
    'resetAllStats', 'getStats', 'loadQuiz',
}
PLAYER_ONLY = {'submitAnswer', 'liveUpdate'}

ZERO_STATS = {'totalScore': 0, 'correctAnswers': 0, 'incorrectAnswers': 0,
              'totalQuestionsAnswered': 0}


def _merge_players(players: List[Dict], updated: Dict[str, Dict]) -> List[Dict]:
    """Overlay freshly committed rows on a snapshot taken before the write."""
    merged = {p['name']: p for p in players}
    merged.update(updated)
    return sorted(merged.values(), key=lambda p: p['name'])


@dataclass
class Outcome:
    changed: bool = False
    messages: List[Outbound] = field(default_factory=list)


def parse_message(raw) -> Dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise MalformedMessage('payload is not utf-8') from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise MalformedMessage('payload is not JSON') from exc
    if not isinstance(raw, dict):
        raise MalformedMessage('payload must be an object')
    if not isinstance(raw.get('type'), str):
        raise MalformedMessage('payload has no type')
    return raw


def _require_str(message: Dict[str, Any], key: str) -> str:
    value = message.get(key)
    if not isinstance(value, str):
        raise MalformedMessage(f'{key} must be a string')
    return value


def _require_int(message: Dict[str, Any], key: str, optional: bool = False) -> Optional[int]:
    value = message.get(key)
    if value is None and optional:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedMessage(f'{key} must be an integer')
    return value


def _parse_quiz(raw) -> List[Question]:
    if not isinstance(raw, list):
        raise MalformedMessage('quiz must be a list')
    questions = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get('question'), str):
            raise MalformedMessage('quiz entries need a question string')
        answer = item.get('answer', '')
        if not isinstance(answer, str):
            raise MalformedMessage('quiz answers must be strings')
        questions.append(Question(item['question'], answer))
    return questions


class GameEngine:

    def __init__(self, player_store: PlayerStore, question_store: QuestionStore,
                 authenticator: Authenticator, scoring: ScoringEngine,
                 state: Optional[SessionState] = None,
                 registry: Optional[SessionRegistry] = None) -> None:
        self.player_store = player_store
        self.question_store = question_store
        self.authenticator = authenticator
        self.scoring = scoring
        self.state = state if state is not None else SessionState()
        self.registry = registry if registry is not None else SessionRegistry()
        self.dispatcher = BroadcastDispatcher(self.state, self.registry, player_store)
        self.lock = threading.Lock()
        self._questions_loaded = False
        self._handlers: Dict[str, Callable[[str, Dict[str, Any]], Outcome]] = {
            'auth': self._on_auth,
            'login': self._on_auth,
            'buzz': self._on_buzz,
            'submitAnswer': self._on_submit_answer,
            'liveUpdate': self._on_live_update,
            'nextQuestion': lambda sid, m: self._on_move_question(1),
            'prevQuestion': lambda sid, m: self._on_move_question(-1),
            'toggleBuzzer': lambda sid, m: self._on_buzzer_command(self.state.toggle, 'toggled'),
            'openBuzzer': lambda sid, m: self._on_buzzer_command(self.state.reset, 'opened'),
            'reset': lambda sid, m: self._on_buzzer_command(self.state.reset, 'reset'),
            'closeBuzzer': lambda sid, m: self._on_buzzer_command(self.state.close, 'closed'),
            'updatePoints': self._on_update_points,
            'manualScoreChange': self._on_manual_score_change,
            'resetAllPlayerStats': self._on_reset_all_stats,
            'resetAllStats': self._on_reset_all_stats,
            'getStats': self._on_get_stats,
            'loadQuiz': self._on_load_quiz,
        }

    @classmethod
    def from_config(cls, config) -> 'GameEngine':
        player_store = PlayerStore()
        authenticator = Authenticator(
            player_store,
            host_name=config.get('HOST_NAME', 'quizmaster'),
            host_password=config.get('HOST_PASSWORD', 'quizmaster'),
            allow_registration=bool(config.get('ALLOW_PLAYER_REGISTRATION', True)),
        )
        scoring = ScoringEngine(
            player_store,
            correct_points=int(config.get('CORRECT_POINTS', 5)),
            wrong_answer_penalty=int(config.get('WRONG_ANSWER_PENALTY', 0)),
            consolation_points=int(config.get('CONSOLATION_POINTS', 1)),
        )
        state = SessionState(status=config.get('INITIAL_BUZZER_STATUS', 'closed'),
                             index_policy=config.get('QUESTION_INDEX_POLICY', 'clamp'))
        return cls(player_store, QuestionStore(), authenticator, scoring, state=state)

    # ---- serialized entry points ----

    def process_connect(self, sid: str, deliver: Deliver) -> Outcome:
        with self.lock:
            outcome = self.connect(sid)
            self._deliver(outcome, deliver)
        return outcome

    def process_disconnect(self, sid: str, deliver: Deliver) -> Outcome:
        with self.lock:
            outcome = self.disconnect(sid)
            self._deliver(outcome, deliver)
        return outcome

    def process(self, sid: str, raw, deliver: Deliver) -> Outcome:
        with self.lock:
            outcome = self.handle(sid, raw)
            self._deliver(outcome, deliver)
        return outcome

    def _deliver(self, outcome: Outcome, deliver: Deliver) -> None:
        for message in outcome.messages:
            for sid in self.dispatcher.recipients(message):
                deliver(sid, message.payload)

    # ---- lifecycle ----

    def ensure_questions_loaded(self) -> None:
        if self._questions_loaded:
            return
        try:
            questions = self.question_store.load_all()
        except StorageFailure:
            current_app.logger.exception('[quiz] could not load questions, will retry')
            return
        self.state.load_questions(questions)
        self._questions_loaded = True
        current_app.logger.info(f"[quiz] loaded {len(questions)} questions")

    def connect(self, sid: str) -> Outcome:
        self.registry.add(sid)
        self.ensure_questions_loaded()
        current_app.logger.info(f"[connect] sid={sid} clients={len(self.registry)}")
        messages = [self.dispatcher.initial_status(sid)]
        messages.extend(self.dispatcher.question_for(sid, UNAUTHENTICATED))
        return Outcome(changed=True, messages=messages)

    def disconnect(self, sid: str) -> Outcome:
        role = self.registry.remove(sid)
        if role is None:
            return Outcome()
        current_app.logger.info(f"[disconnect] sid={sid} name={role.name}")
        if not role.is_player:
            return Outcome(changed=True)
        try:
            return Outcome(changed=True, messages=[self.dispatcher.scores()])
        except StorageFailure:
            current_app.logger.exception('[disconnect] could not refresh scores')
            return Outcome(changed=True)

    # ---- message dispatch ----

    def handle(self, sid: str, raw) -> Outcome:
        """Apply one inbound message and return the messages it produces.

        Unauthorized and out-of-state requests produce an empty outcome.
        """
        try:
            message = parse_message(raw)
        except MalformedMessage as exc:
            current_app.logger.debug(f"[message] dropped from sid={sid}: {exc}")
            return Outcome()
        kind = message['type']
        handler = self._handlers.get(kind)
        if handler is None:
            current_app.logger.debug(f"[message] unknown type {kind!r} from sid={sid}")
            return Outcome()
        role = self.registry.role_of(sid)
        if kind in HOST_ONLY and not role.is_host:
            return Outcome()
        if kind in PLAYER_ONLY and not role.is_player:
            return Outcome()
        try:
            return handler(sid, message)
        except MalformedMessage as exc:
            current_app.logger.debug(f"[message] dropped {kind} from sid={sid}: {exc}")
            return Outcome()
        except StorageFailure:
            current_app.logger.exception(f"[storage] {kind} from sid={sid} failed")
            return Outcome(messages=[self.dispatcher.error(sid, kind)])

    def _on_auth(self, sid: str, message: Dict[str, Any]) -> Outcome:
        if sid not in self.registry:
            return Outcome()
        if is_authenticated(self.registry.role_of(sid)):
            return Outcome(messages=[
                self.dispatcher.auth_response(sid, None, reason='alreadyAuthenticated')])
        name = message.get('name')
        role = self.authenticator.authenticate(name, message.get('password'))
        if role is None:
            current_app.logger.info(f"[auth] rejected name={name!r}")
            return Outcome(messages=[self.dispatcher.auth_response(sid, None)])

        replaced = self.registry.sids_for_player(role.name) if role.is_player else []
        newly_known = role.is_player and role.name not in self.state.known_players
        self.registry.assign(sid, role)
        if role.is_player:
            self.state.known_players.add(role.name)
        try:
            messages = [self.dispatcher.auth_response(sid, role)]
            messages.extend(self.dispatcher.full_snapshot(sid, role))
            for old_sid in replaced:
                self.registry.detach(old_sid)
                messages.append(self.dispatcher.session_replaced(old_sid, role.name))
            messages.append(self.dispatcher.scores())
            if role.is_player:
                messages.append(self.dispatcher.stats())
        except StorageFailure:
            self.registry.assign(sid, UNAUTHENTICATED)
            for old_sid in replaced:
                self.registry.assign(old_sid, role)
            if newly_known:
                self.state.known_players.discard(role.name)
            raise
        current_app.logger.info(
            f"[auth] {role.name} logged in host={role.is_host} replaced={len(replaced)}")
        return Outcome(changed=True, messages=messages)

    def _on_buzz(self, sid: str, message: Dict[str, Any]) -> Outcome:
        role = self.registry.role_of(sid)
        if not is_authenticated(role):
            return Outcome()
        if not self.state.try_buzz(role.name):
            return Outcome()
        current_app.logger.info(f"[buzz] {role.name} buzzed in")
        return Outcome(changed=True, messages=[self.dispatcher.buzzed_in()])

    def _on_submit_answer(self, sid: str, message: Dict[str, Any]) -> Outcome:
        answer = _require_str(message, 'answer')
        self.state.record_submitted_answer(self.registry.role_of(sid).name, answer)
        return Outcome(changed=True, messages=[self.dispatcher.submitted_answers()])

    def _on_live_update(self, sid: str, message: Dict[str, Any]) -> Outcome:
        text = _require_str(message, 'text')
        self.state.record_live_answer(self.registry.role_of(sid).name, text)
        return Outcome(changed=True, messages=[self.dispatcher.live_answers()])

    def _buzzer_reset_messages(self) -> List[Outbound]:
        return [
            self.dispatcher.buzzer_status(),
            self.dispatcher.live_answers(),
            self.dispatcher.submitted_answers(),
        ]

    def _on_move_question(self, step: int) -> Outcome:
        moved = self.state.move_question(step)
        current_app.logger.info(
            f"[quiz] question index {self.state.current_question_index} moved={moved}")
        messages = self.dispatcher.question_updates()
        messages.extend(self._buzzer_reset_messages())
        return Outcome(changed=True, messages=messages)

    def _on_buzzer_command(self, transition: Callable[[], None], label: str) -> Outcome:
        transition()
        current_app.logger.info(f"[buzzer] {label} by host, now {self.state.status}")
        return Outcome(changed=True, messages=self._buzzer_reset_messages())

    def _on_update_points(self, sid: str, message: Dict[str, Any]) -> Outcome:
        name = self.state.buzzed_in
        if name is None:
            return Outcome()
        correct = message.get('isCorrect')
        if not isinstance(correct, bool):
            raise MalformedMessage('isCorrect must be a boolean')
        points = _require_int(message, 'points', optional=True)
        # Read before writing: once the commit lands nothing below may fail
        players = self.player_store.load_all()
        awarded: Dict[str, int] = {}
        if name in self.state.known_players:
            result = self.scoring.adjudicate(name, correct, self.state.known_players, points=points)
            awarded = result.awarded
            players = _merge_players(players, result.players)
        else:
            current_app.logger.info(f"[score] {name} is not a player, nothing awarded")
        self.state.reset()
        messages = [
            self.dispatcher.outcome(name, correct, awarded),
            self.dispatcher.scores(players),
            self.dispatcher.stats(players=players),
        ]
        messages.extend(self._buzzer_reset_messages())
        return Outcome(changed=True, messages=messages)

    def _on_manual_score_change(self, sid: str, message: Dict[str, Any]) -> Outcome:
        name = _require_str(message, 'name')
        new_score = _require_int(message, 'newScore')
        players = self.player_store.load_all()
        updated = self.scoring.manual_score_change(name, new_score)
        if updated is None:
            return Outcome()
        players = _merge_players(players, {name: updated})
        return Outcome(changed=True, messages=[self.dispatcher.scores(players),
                                               self.dispatcher.stats(players=players)])

    def _on_reset_all_stats(self, sid: str, message: Dict[str, Any]) -> Outcome:
        players = self.player_store.load_all()
        self.scoring.reset_all_stats()
        players = [dict(p, **ZERO_STATS) for p in players]
        return Outcome(changed=True, messages=[self.dispatcher.scores(players),
                                               self.dispatcher.stats(players=players)])

    def _on_get_stats(self, sid: str, message: Dict[str, Any]) -> Outcome:
        return Outcome(messages=[self.dispatcher.stats(sid)])

    def _on_load_quiz(self, sid: str, message: Dict[str, Any]) -> Outcome:
        questions = _parse_quiz(message.get('quiz'))
        self.question_store.replace_all(questions)
        self.state.replace_questions(questions)
        self._questions_loaded = True
        current_app.logger.info(f"[quiz] host loaded {len(questions)} questions")
        messages = [self.dispatcher.quiz_loaded()]
        messages.extend(self.dispatcher.question_updates())
        messages.extend(self._buzzer_reset_messages())
        return Outcome(changed=True, messages=messages)
