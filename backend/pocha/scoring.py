"""
Scoring calculation for Pocha rounds.

Each player's delta depends only on their own bid, their own tricks and
the hand size. Nothing here reads another player's values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pocha.enums import PenaltyMode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pocha.settings import MatchSettings


def score_player(bid: int, actual: int, cards_dealt: int, settings: MatchSettings) -> int:
    """
    Points for one player in one round.

    Hit: base score plus a bonus per trick won, so a correct bid of 3 is
    worth more than a correct bid of 0. Miss: a penalty per trick of
    difference, negative or zero depending on miss_penalty_mode.
    """
    if not 0 <= bid <= cards_dealt:
        raise ValueError(f"bid {bid} outside [0, {cards_dealt}]")
    if not 0 <= actual <= cards_dealt:
        raise ValueError(f"tricks {actual} outside [0, {cards_dealt}]")

    if bid == actual:
        return settings.hit_base_score + settings.hit_bonus_per_trick * actual

    if settings.miss_penalty_mode == PenaltyMode.ZERO:
        return 0
    return -settings.miss_penalty_per_trick * abs(bid - actual)


def score_round(
    bids: Sequence[int],
    tricks: Sequence[int],
    cards_dealt: int,
    settings: MatchSettings,
) -> tuple[int, ...]:
    """Deltas for every player, in the same order as bids and tricks."""
    if len(bids) != len(tricks):
        raise ValueError(f"got {len(bids)} bids but {len(tricks)} trick counts")
    return tuple(score_player(bid, actual, cards_dealt, settings) for bid, actual in zip(bids, tricks, strict=True))
