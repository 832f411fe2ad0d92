"""Tests for round legality checks and their evaluation order."""

import pytest

from pocha.enums import RejectionRule
from pocha.exceptions import RoundValidationError
from pocha.models import RoundProposal
from pocha.tests.helpers import make_players, proposal
from pocha.validator import find_violation, validate_round

PLAYERS = make_players("Ana", "Bea", "Carla")


class TestLegalRounds:
    def test_open_round_accepts_bids_matching_tricks(self):
        assert find_violation(PLAYERS, proposal((1, 1, 1), (1, 1, 1)), 3, closed=False) is None

    def test_closed_round_accepts_bids_not_matching_tricks(self):
        assert find_violation(PLAYERS, proposal((1, 1, 0), (1, 1, 1)), 3, closed=True) is None

    def test_validate_round_returns_none_when_legal(self):
        validate_round(PLAYERS, proposal((0, 0, 0), (1, 1, 1)), 3, closed=True)


class TestCompleteness:
    def test_missing_bid(self):
        bad = RoundProposal(bids={"a": 1, "b": 1}, tricks={"a": 1, "b": 1, "c": 1})
        rejection = find_violation(PLAYERS, bad, 3, closed=False)
        assert rejection is not None
        assert rejection.rule == RejectionRule.INCOMPLETE
        assert rejection.player_ids == ("c",)

    def test_unknown_player(self):
        bad = RoundProposal(
            bids={"a": 1, "b": 1, "c": 1, "zed": 0},
            tricks={"a": 1, "b": 1, "c": 1},
        )
        rejection = find_violation(PLAYERS, bad, 3, closed=False)
        assert rejection is not None
        assert rejection.rule == RejectionRule.INCOMPLETE
        assert rejection.player_ids == ("zed",)

    def test_each_offender_listed_once(self):
        bad = RoundProposal(bids={"a": 1}, tricks={"a": 3})
        rejection = find_violation(PLAYERS, bad, 3, closed=False)
        assert rejection is not None
        assert rejection.player_ids == ("b", "c")


class TestRanges:
    def test_bid_above_cards_dealt(self):
        rejection = find_violation(PLAYERS, proposal((4, 0, 0), (1, 1, 1)), 3, closed=False)
        assert rejection is not None
        assert rejection.rule == RejectionRule.BID_OUT_OF_RANGE
        assert rejection.player_ids == ("a",)

    def test_negative_bid(self):
        rejection = find_violation(PLAYERS, proposal((0, -1, 0), (1, 1, 1)), 3, closed=False)
        assert rejection is not None
        assert rejection.rule == RejectionRule.BID_OUT_OF_RANGE
        assert rejection.player_ids == ("b",)

    def test_tricks_out_of_range(self):
        rejection = find_violation(PLAYERS, proposal((1, 1, 0), (4, -1, 0)), 3, closed=False)
        assert rejection is not None
        assert rejection.rule == RejectionRule.TRICKS_OUT_OF_RANGE
        assert rejection.player_ids == ("a", "b")

    def test_bid_range_checked_before_tricks_range(self):
        rejection = find_violation(PLAYERS, proposal((9, 0, 0), (9, 0, 0)), 3, closed=False)
        assert rejection is not None
        assert rejection.rule == RejectionRule.BID_OUT_OF_RANGE


class TestTrickConservation:
    def test_two_players_winning_four_of_three_tricks(self):
        players = make_players("Ana", "Bea")
        rejection = find_violation(players, proposal((1, 1), (2, 2)), 3, closed=False)
        assert rejection is not None
        assert rejection.rule == RejectionRule.TRICKS_NOT_CONSERVED
        assert "4" in rejection.message
        assert "3" in rejection.message

    def test_tricks_won_by_nobody(self):
        rejection = find_violation(PLAYERS, proposal((1, 1, 0), (1, 1, 0)), 3, closed=False)
        assert rejection is not None
        assert rejection.rule == RejectionRule.TRICKS_NOT_CONSERVED


class TestClosedRound:
    def test_bids_summing_to_cards_dealt_rejected(self):
        players = make_players("Ana", "Bea", "Carla", "Dani")
        rejection = find_violation(players, proposal((2, 1, 1, 1), (2, 1, 1, 1)), 5, closed=True)
        assert rejection is not None
        assert rejection.rule == RejectionRule.CLOSED_ROUND_BIDS

    def test_dealer_named_as_offender(self):
        rejection = find_violation(
            PLAYERS,
            proposal((1, 1, 1), (1, 1, 1)),
            3,
            closed=True,
            dealer=PLAYERS[1],
        )
        assert rejection is not None
        assert rejection.player_ids == ("b",)

    def test_all_players_named_without_dealer(self):
        rejection = find_violation(PLAYERS, proposal((1, 1, 1), (1, 1, 1)), 3, closed=True)
        assert rejection is not None
        assert rejection.player_ids == ("a", "b", "c")

    def test_same_bids_allowed_on_open_round(self):
        assert find_violation(PLAYERS, proposal((1, 1, 1), (1, 1, 1)), 3, closed=False) is None

    def test_conservation_checked_before_closed_rule(self):
        rejection = find_violation(PLAYERS, proposal((1, 1, 1), (2, 2, 2)), 3, closed=True)
        assert rejection is not None
        assert rejection.rule == RejectionRule.TRICKS_NOT_CONSERVED


class TestValidateRound:
    def test_raises_with_rejection_attached(self):
        with pytest.raises(RoundValidationError) as exc_info:
            validate_round(PLAYERS, proposal((1, 1, 1), (1, 1, 1)), 3, closed=True)
        assert exc_info.value.rejection.rule == RejectionRule.CLOSED_ROUND_BIDS
        assert str(exc_info.value) == exc_info.value.rejection.message
