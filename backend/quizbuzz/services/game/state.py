"""Shared buzzer state.

One ``SessionState`` exists per engine. It is only mutated while the engine
lock is held, so none of the methods here synchronise on their own.
"""
from typing import Dict, List, Optional, Set

from quizbuzz.services.stores import Question

OPEN = 'open'
CLOSED = 'closed'

CLAMP = 'clamp'
WRAP = 'wrap'


class SessionState:

    def __init__(self, questions: Optional[List[Question]] = None,
                 status: str = CLOSED, index_policy: str = CLAMP) -> None:
        if status not in (OPEN, CLOSED):
            raise ValueError(f'invalid buzzer status: {status}')
        if index_policy not in (CLAMP, WRAP):
            raise ValueError(f'invalid question index policy: {index_policy}')
        self.status: str = status
        self.buzzed_in: Optional[str] = None
        self.submitted_answers: Dict[str, str] = {}
        self.live_answers: Dict[str, str] = {}
        self.questions: List[Question] = list(questions or [])
        self.current_question_index: int = 0
        self.index_policy = index_policy
        # Every player name that authenticated since start-up
        self.known_players: Set[str] = set()

    # ---- buzzer transitions ----

    def try_buzz(self, name: str) -> bool:
        """First buzz while open wins; anything else is a no-op."""
        if self.status != OPEN or self.buzzed_in is not None:
            return False
        self.buzzed_in = name
        self.status = CLOSED
        return True

    def reset(self) -> None:
        self.status = OPEN
        self.buzzed_in = None
        self.submitted_answers = {}
        self.live_answers = {}

    def close(self) -> None:
        """Host-initiated close. Nobody holds the buzz afterwards."""
        self.status = CLOSED
        self.buzzed_in = None
        self.submitted_answers = {}
        self.live_answers = {}

    def toggle(self) -> None:
        if self.status == OPEN:
            self.close()
        else:
            self.reset()

    # ---- questions ----

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_question_index]

    def move_question(self, step: int) -> bool:
        """Move the cursor by ``step`` and reset the buzzer.

        Returns whether the index actually changed. The buzzer is reset in
        either case.
        """
        before = self.current_question_index
        count = len(self.questions)
        if count:
            target = before + step
            if self.index_policy == WRAP:
                target %= count
            else:
                target = max(0, min(count - 1, target))
            self.current_question_index = target
        else:
            self.current_question_index = 0
        self.reset()
        return self.current_question_index != before

    def load_questions(self, questions: List[Question]) -> None:
        """Install questions without touching the buzzer (start-up load)."""
        self.questions = list(questions)
        self.current_question_index = 0

    def replace_questions(self, questions: List[Question]) -> None:
        self.load_questions(questions)
        self.reset()

    # ---- answers ----

    def record_live_answer(self, name: str, text: str) -> None:
        self.live_answers[name] = text

    def record_submitted_answer(self, name: str, answer: str) -> None:
        self.submitted_answers[name] = answer

    def buzzer_dict(self) -> Dict:
        return {'status': self.status, 'buzzedIn': self.buzzed_in}
