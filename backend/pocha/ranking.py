"""
Standings derived from the match ledger.

Nothing here holds state between calls: standings for any round index are
a pure function of the ledger, so they can be rebuilt from a stored match
alone. ScoreTotals offers the same result incrementally, one round at a
time, for callers that follow a match as it is played.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pocha.exceptions import PlayerNotFoundError, RoundNotFoundError
from pocha.models import StandingEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pocha.match import Match
    from pocha.models import Player, Round


def _ranking_order(scores: Sequence[int]) -> list[int]:
    """Player positions sorted by score descending, then registration order."""
    return sorted(range(len(scores)), key=lambda i: (-scores[i], i))


def _ranks(scores: Sequence[int]) -> list[int]:
    """1-based rank for each player position."""
    ranks = [0] * len(scores)
    for rank, position in enumerate(_ranking_order(scores), start=1):
        ranks[position] = rank
    return ranks


def _standings(
    players: Sequence[Player],
    scores: Sequence[int],
    previous_scores: Sequence[int],
) -> list[StandingEntry]:
    ranks = _ranks(scores)
    previous_ranks = _ranks(previous_scores)
    return [
        StandingEntry(
            player_id=players[i].player_id,
            name=players[i].name,
            score=scores[i],
            rank=ranks[i],
            previous_rank=previous_ranks[i],
        )
        for i in _ranking_order(scores)
    ]


def totals_through(match: Match, round_index: int) -> tuple[int, ...]:
    """Cumulative score per player (registration order) after round_index."""
    if not 0 <= round_index <= len(match.ledger):
        raise RoundNotFoundError(round_index, len(match.ledger))
    totals = [0] * len(match.players)
    for round_ in match.ledger.effective_rounds(round_index):
        for i, delta in enumerate(round_.deltas):
            totals[i] += delta
    return tuple(totals)


def standings_through(match: Match, round_index: int | None = None) -> list[StandingEntry]:
    """
    Ranked standings after round_index (default: the latest round).

    Ties are broken by registration order, so the ordering is total and
    identical for identical ledgers. Round 0 gives the starting standings.
    """
    if round_index is None:
        round_index = len(match.ledger)
    current = totals_through(match, round_index)
    previous = totals_through(match, round_index - 1) if round_index > 0 else current
    return _standings(match.players, current, previous)


def rank_delta(match: Match, player_id: str, round_index: int | None = None) -> int:
    """Previous rank minus current rank: positive means the player climbed."""
    for entry in standings_through(match, round_index):
        if entry.player_id == player_id:
            return entry.rank_delta
    raise PlayerNotFoundError(player_id)


def leader(match: Match) -> str | None:
    """Name of the current leader, or None before the first round."""
    if len(match.ledger) == 0:
        return None
    return standings_through(match)[0].name


class ScoreTotals:
    """Running totals updated one committed round at a time.

    apply() must be fed rounds in ledger order. For an amendment the
    superseded round's deltas are taken back out before the correction is
    added, which keeps the result equal to totals_through() at every index.
    """

    def __init__(self, players: Sequence[Player]) -> None:
        self._players = tuple(players)
        self._totals = [0] * len(self._players)
        self._previous = tuple(self._totals)
        self.rounds_applied = 0

    @property
    def totals(self) -> tuple[int, ...]:
        return tuple(self._totals)

    def apply(self, round_: Round, superseded: Round | None = None) -> None:
        if round_.index != self.rounds_applied + 1:
            raise ValueError(f"expected round {self.rounds_applied + 1}, got {round_.index}")
        if round_.amends is not None and (superseded is None or superseded.index != round_.amends):
            raise ValueError(f"round {round_.index} amends round {round_.amends}; pass that round as superseded")

        self._previous = tuple(self._totals)
        if superseded is not None:
            for i, delta in enumerate(superseded.deltas):
                self._totals[i] -= delta
        for i, delta in enumerate(round_.deltas):
            self._totals[i] += delta
        self.rounds_applied += 1

    def standings(self) -> list[StandingEntry]:
        return _standings(self._players, self._totals, self._previous)


def standings_incremental(match: Match, round_index: int | None = None) -> list[StandingEntry]:
    """Standings after round_index computed by feeding rounds one by one into ScoreTotals."""
    if round_index is None:
        round_index = len(match.ledger)
    if not 0 <= round_index <= len(match.ledger):
        raise RoundNotFoundError(round_index, len(match.ledger))
    tracker = ScoreTotals(match.players)
    for round_ in match.ledger.history()[:round_index]:
        tracker.apply(round_, match.ledger.superseded_by(round_))
    return tracker.standings()
