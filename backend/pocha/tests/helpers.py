"""Builders for matches and proposals used across pocha tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pocha.enums import ClosedRoundRule
from pocha.match import Match
from pocha.models import Player, RoundProposal
from pocha.settings import MatchSettings

if TYPE_CHECKING:
    from collections.abc import Sequence


def make_players(*names: str) -> tuple[Player, ...]:
    """Players with ids a, b, c... in registration order."""
    names = names or ("Ana", "Bea")
    return tuple(Player(player_id=chr(ord("a") + i), name=name) for i, name in enumerate(names))


def make_settings(
    schedule: Sequence[int] = (3, 3, 3),
    *,
    closed_rounds: ClosedRoundRule = ClosedRoundRule.NEVER,
    **overrides: object,
) -> MatchSettings:
    return MatchSettings(deal_schedule=tuple(schedule), closed_rounds=closed_rounds, **overrides)


def make_match(
    *names: str,
    schedule: Sequence[int] = (3, 3, 3),
    closed_rounds: ClosedRoundRule = ClosedRoundRule.NEVER,
    **overrides: object,
) -> Match:
    players = make_players(*names)
    return Match.create(players, make_settings(schedule, closed_rounds=closed_rounds, **overrides), match_id="m1")


def proposal(bids: Sequence[int], tricks: Sequence[int], ids: Sequence[str] = "abcdefgh") -> RoundProposal:
    """Proposal keyed by ids a, b, c... matching make_players()."""
    return RoundProposal(
        bids=dict(zip(ids, bids, strict=False)),
        tricks=dict(zip(ids, tricks, strict=False)),
    )
