from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from flask import current_app

from quizbuzz.services.stores import PlayerStore, StatDelta


@dataclass
class Adjudication:
    name: str
    correct: bool
    # name -> points awarded (negative for a penalty)
    awarded: Dict[str, int] = field(default_factory=dict)
    players: Dict[str, Dict] = field(default_factory=dict)


class ScoringEngine:
    """Apply host decisions to the player store.

    Every method commits before returning. A :class:`StorageFailure` from the
    store leaves every counter as it was.
    """

    def __init__(self, player_store: PlayerStore, correct_points: int = 5,
                 wrong_answer_penalty: int = 0, consolation_points: int = 1) -> None:
        self.player_store = player_store
        self.correct_points = correct_points
        self.wrong_answer_penalty = wrong_answer_penalty
        self.consolation_points = consolation_points

    def adjudicate(self, name: str, correct: bool, known_players: Iterable[str],
                   points: Optional[int] = None) -> Adjudication:
        """Score the buzzed-in player.

        Correct: +points (``correct_points`` unless a positive ``points`` is
        given), +1 correct, +1 answered.
        Wrong: -penalty, +1 incorrect, +1 answered for the guesser, and every
        other known player gets the consolation points with no counter change.
        """
        deltas: Dict[str, StatDelta] = {}
        if correct:
            award = points if points is not None and points > 0 else self.correct_points
            deltas[name] = StatDelta(score=award, correct=1, answered=1)
        else:
            deltas[name] = StatDelta(score=-self.wrong_answer_penalty, incorrect=1, answered=1)
            for other in sorted(set(known_players)):
                if other != name and self.consolation_points:
                    deltas[other] = StatDelta(score=self.consolation_points)
        updated = self.player_store.apply_deltas(deltas)
        result = Adjudication(name=name, correct=correct,
                              awarded={n: d.score for n, d in deltas.items()},
                              players=updated)
        current_app.logger.info(
            f"[score] {name} {'correct' if correct else 'wrong'} awarded={result.awarded}")
        return result

    def manual_score_change(self, name: str, new_score: int) -> Optional[Dict]:
        """Set an absolute score. Returns None for an unknown player."""
        player = self.player_store.get(name)
        if player is None:
            return None
        delta = new_score - player['totalScore']
        updated = self.player_store.apply_deltas({name: StatDelta(score=delta)})[name]
        current_app.logger.info(
            f"[score] manual {name}: {player['totalScore']} -> {new_score} (delta {delta:+d})")
        return updated

    def reset_all_stats(self) -> int:
        count = self.player_store.reset_all_stats()
        current_app.logger.info(f"[score] reset stats for {count} players")
        return count
