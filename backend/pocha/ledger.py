"""
Append-only round history for one match.

Rounds live in a tuple that is replaced, never edited, on every append.
Round models are frozen, so nothing reachable from history() can be
changed after it is committed. Corrections are new rounds that supersede
an earlier one (see Round.amends).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pocha.exceptions import AmendmentError, LedgerOrderError, MatchFinishedError, RoundNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pocha.models import Round

logger = structlog.get_logger()


class MatchLedger:
    """Ordered, gap-free record of committed rounds."""

    def __init__(self, rounds: Iterable[Round] = (), *, finished: bool = False) -> None:
        self._rounds: tuple[Round, ...] = ()
        self._finished = False
        for round_ in rounds:
            self.append(round_)
        self._finished = finished

    def __len__(self) -> int:
        return len(self._rounds)

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def next_index(self) -> int:
        return len(self._rounds) + 1

    @property
    def hands_played(self) -> int:
        """Distinct hands with at least one committed round."""
        return sum(1 for r in self._rounds if not r.is_amendment)

    def history(self) -> tuple[Round, ...]:
        return self._rounds

    def at(self, index: int) -> Round:
        """Return the round committed at ledger position index (1-based)."""
        if not 1 <= index <= len(self._rounds):
            raise RoundNotFoundError(index, len(self._rounds))
        return self._rounds[index - 1]

    def effective_for_hand(self, hand: int, through: int | None = None) -> Round | None:
        """Latest round for hand among rounds 1..through, or None if unplayed."""
        rounds = self._rounds if through is None else self._rounds[:through]
        return next((r for r in reversed(rounds) if r.hand == hand), None)

    def effective_rounds(self, through: int | None = None) -> tuple[Round, ...]:
        """Rounds that count towards totals after round `through`, in hand order.

        An amended hand is represented by its latest correction only.
        """
        rounds = self._rounds if through is None else self._rounds[:through]
        latest: dict[int, Round] = {}
        for round_ in rounds:
            latest[round_.hand] = round_
        return tuple(latest[hand] for hand in sorted(latest))

    def superseded_by(self, round_: Round) -> Round | None:
        """The round that round_ replaces, or None for a first-time hand."""
        if round_.amends is None:
            return None
        return self.at(round_.amends)

    def append(self, round_: Round) -> None:
        """Commit round_ at the end of the ledger.

        Raises MatchFinishedError once the match is finished, LedgerOrderError
        when the index is not the next one, and AmendmentError when an
        amendment does not target the effective round of its hand.
        """
        if self._finished:
            raise MatchFinishedError("match is finished; no more rounds can be recorded")
        if round_.index != self.next_index:
            raise LedgerOrderError(f"expected round index {self.next_index}, got {round_.index}")

        if round_.amends is None:
            if self.effective_for_hand(round_.hand) is not None:
                raise LedgerOrderError(f"hand {round_.hand} already recorded; amend it instead")
            if round_.hand != self.hands_played + 1:
                raise LedgerOrderError(f"expected hand {self.hands_played + 1}, got {round_.hand}")
        else:
            current = self.effective_for_hand(round_.hand)
            if current is None or current.index != round_.amends:
                raise AmendmentError(
                    f"round {round_.amends} is not the current round for hand {round_.hand}",
                )

        self._rounds = (*self._rounds, round_)

    def finish(self) -> None:
        if not self._finished:
            self._finished = True
            logger.debug("ledger closed", rounds=len(self._rounds))
