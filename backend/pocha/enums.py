"""
String enum definitions for Pocha match concepts.
"""

from enum import Enum


class MatchStatus(str, Enum):
    """Lifecycle state of a match."""

    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class ClosedRoundRule(str, Enum):
    """Which hands forbid the sum of bids from equaling the tricks available."""

    ALWAYS = "always"  # every hand (classic pocha: the last bidder cannot square it)
    LAST_HAND = "last_hand"  # only the final hand of the deal schedule
    NEVER = "never"


class PenaltyMode(str, Enum):
    """How a missed bid is scored."""

    NEGATIVE = "negative"  # lose points per trick of difference
    ZERO = "zero"  # a miss scores nothing


class RejectionRule(str, Enum):
    """Round legality checks, in the order they are evaluated."""

    INCOMPLETE = "incomplete"
    BID_OUT_OF_RANGE = "bid_out_of_range"
    TRICKS_OUT_OF_RANGE = "tricks_out_of_range"
    TRICKS_NOT_CONSERVED = "tricks_not_conserved"
    CLOSED_ROUND_BIDS = "closed_round_bids"
