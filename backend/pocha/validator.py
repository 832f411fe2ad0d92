"""
Round legality checks.

Checks run in a fixed order and stop at the first failure:

1. every player has exactly one bid and one trick count
2. every bid is within [0, cards_dealt]
3. every trick count is within [0, cards_dealt]
4. trick counts add up to cards_dealt
5. on a closed hand, bids do not add up to cards_dealt

Validation is all-or-nothing: a rejected round is never partially applied.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pocha.enums import RejectionRule
from pocha.exceptions import RoundValidationError
from pocha.models import RoundRejection

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pocha.models import Player, RoundProposal


def _check_complete(players: Sequence[Player], proposal: RoundProposal) -> RoundRejection | None:
    expected = [p.player_id for p in players]
    known = set(expected)
    offenders: list[str] = []
    for values in (proposal.bids, proposal.tricks):
        offenders.extend(pid for pid in expected if pid not in values and pid not in offenders)
        offenders.extend(pid for pid in values if pid not in known and pid not in offenders)
    if not offenders:
        return None
    return RoundRejection(
        rule=RejectionRule.INCOMPLETE,
        player_ids=tuple(offenders),
        message=f"every player needs exactly one bid and one trick count: {', '.join(offenders)}",
    )


def _check_range(
    players: Sequence[Player],
    values: dict[str, int],
    cards_dealt: int,
    rule: RejectionRule,
    label: str,
) -> RoundRejection | None:
    offenders = tuple(p.player_id for p in players if not 0 <= values[p.player_id] <= cards_dealt)
    if not offenders:
        return None
    return RoundRejection(
        rule=rule,
        player_ids=offenders,
        message=f"{label} must be between 0 and {cards_dealt}: {', '.join(offenders)}",
    )


def find_violation(
    players: Sequence[Player],
    proposal: RoundProposal,
    cards_dealt: int,
    *,
    closed: bool,
    dealer: Player | None = None,
) -> RoundRejection | None:
    """Return the first rule the proposal breaks, or None when it is legal.

    dealer bids last, so a closed-hand violation is pinned on them when known.
    """
    rejection = _check_complete(players, proposal)
    if rejection is not None:
        return rejection

    rejection = _check_range(players, proposal.bids, cards_dealt, RejectionRule.BID_OUT_OF_RANGE, "bids")
    if rejection is not None:
        return rejection

    rejection = _check_range(players, proposal.tricks, cards_dealt, RejectionRule.TRICKS_OUT_OF_RANGE, "tricks")
    if rejection is not None:
        return rejection

    total_tricks = sum(proposal.tricks.values())
    if total_tricks != cards_dealt:
        return RoundRejection(
            rule=RejectionRule.TRICKS_NOT_CONSERVED,
            player_ids=tuple(p.player_id for p in players),
            message=f"tricks add up to {total_tricks} but {cards_dealt} were played",
        )

    total_bids = sum(proposal.bids.values())
    if closed and total_bids == cards_dealt:
        return RoundRejection(
            rule=RejectionRule.CLOSED_ROUND_BIDS,
            player_ids=(dealer.player_id,) if dealer is not None else tuple(p.player_id for p in players),
            message=f"bids may not add up to {cards_dealt} on a closed hand",
        )

    return None


def validate_round(
    players: Sequence[Player],
    proposal: RoundProposal,
    cards_dealt: int,
    *,
    closed: bool,
    dealer: Player | None = None,
) -> None:
    """Raise RoundValidationError if the proposal breaks any rule."""
    rejection = find_violation(players, proposal, cards_dealt, closed=closed, dealer=dealer)
    if rejection is not None:
        raise RoundValidationError(rejection)
