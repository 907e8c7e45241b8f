import pytest

from tipping.scoring import (
    ValidationState,
    Vote,
    crazy_point_verdict,
    resolve_crazy_prediction_state,
    validation_state,
)


class TestValidationState:
    def test_no_votes_is_unvalidated_and_counts_as_accepted(self):
        state = validation_state([])
        assert state is ValidationState.UNVALIDATED
        assert state.counts_as_accepted

    def test_only_accepts(self):
        votes = [Vote(1, True), Vote(2, True)]
        assert validation_state(votes) is ValidationState.ACCEPTED

    def test_a_single_reject_outweighs_accepts(self):
        votes = [Vote(1, True), Vote(2, True), Vote(3, False)]
        state = validation_state(votes)
        assert state is ValidationState.REJECTED
        assert not state.counts_as_accepted

    @pytest.mark.parametrize("override, expected", [(True, ValidationState.ACCEPTED), (False, ValidationState.REJECTED)])
    def test_admin_override_decides(self, override, expected):
        votes = [Vote(1, not override)]
        assert validation_state(votes, admin_override=override) is expected

    def test_accepts_generator_input(self):
        assert validation_state(Vote(i, True) for i in range(3)) is ValidationState.ACCEPTED


class TestResolveCrazyPredictionState:
    def test_both_gates(self):
        accepted = [Vote(1, True)]
        assert resolve_crazy_prediction_state(accepted, happened=True) is ValidationState.ACCEPTED
        assert resolve_crazy_prediction_state(accepted, happened=False) is ValidationState.REJECTED

    def test_rejected_vote_blocks_even_when_happened(self):
        assert resolve_crazy_prediction_state([Vote(1, False)], happened=True) is ValidationState.REJECTED

    def test_no_votes_and_happened(self):
        assert resolve_crazy_prediction_state([], happened=True) is ValidationState.ACCEPTED

    def test_override_accept_rescues_rejected_prediction(self):
        state = resolve_crazy_prediction_state([Vote(1, False)], happened=True, admin_override=True)
        assert state is ValidationState.ACCEPTED


class TestCrazyPointVerdict:
    @pytest.mark.parametrize(
        "state, happened, expected",
        [
            (None, True, ValidationState.ACCEPTED),
            (ValidationState.UNVALIDATED, True, ValidationState.ACCEPTED),
            (ValidationState.ACCEPTED, True, ValidationState.ACCEPTED),
            (ValidationState.ACCEPTED, False, ValidationState.REJECTED),
            (ValidationState.REJECTED, True, ValidationState.REJECTED),
        ],
    )
    def test_gates(self, state, happened, expected):
        assert crazy_point_verdict(state, happened) is expected
