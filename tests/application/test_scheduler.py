"""Tests for the FSRS scheduler: transitions, memory model and fuzz."""

from dataclasses import replace
from datetime import timedelta

import pytest
from conftest import NOW, make_new_state, make_state

from marginalia.application.scheduler import (
    FSRSScheduler,
    apply_rating,
    create_new_card,
    format_interval,
    forgetting_curve,
)
from marginalia.domain.review.models import CardState, InvalidCardStateError, Rating


class TestNewCard:
    def test_create_new_card_defaults(self, now):
        state = create_new_card(now)
        assert state.state == CardState.NEW
        assert state.stability == 0
        assert state.difficulty == 0
        assert state.reps == 0
        assert state.lapses == 0
        assert state.due == now
        assert state.last_review is None

    def test_good_enters_learning(self, no_fuzz_scheduler, now):
        outcome = no_fuzz_scheduler.apply_rating(make_new_state(), Rating.GOOD, now)
        updated = outcome.updated_state

        assert updated.state == CardState.LEARNING
        assert updated.stability > 0
        assert outcome.due == now + timedelta(minutes=10)
        assert updated.reps == 1
        assert updated.last_review == now
        assert updated.scheduled_days == 0
        assert outcome.interval == "10m"

    def test_short_steps(self, no_fuzz_scheduler, now):
        options = no_fuzz_scheduler.compute_all_outcomes(make_new_state(), now)
        assert options.again.due == now + timedelta(minutes=1)
        assert options.hard.due == now + timedelta(minutes=5)
        assert options.again.updated_state.state == CardState.LEARNING
        assert options.hard.updated_state.state == CardState.LEARNING

    def test_easy_graduates_immediately(self, no_fuzz_scheduler, now):
        outcome = no_fuzz_scheduler.apply_rating(make_new_state(), "easy", now)
        updated = outcome.updated_state

        assert updated.state == CardState.REVIEW
        # Initial easy stability is ~15.7 days; at 90% retention interval == stability
        assert updated.scheduled_days == 16
        assert outcome.due == now + timedelta(days=16)

    def test_initial_difficulty_orders_by_rating(self, no_fuzz_scheduler, now):
        options = no_fuzz_scheduler.compute_all_outcomes(make_new_state(), now)
        difficulties = [options.for_rating(r).updated_state.difficulty for r in Rating]
        assert difficulties == sorted(difficulties, reverse=True)
        assert all(1 <= d <= 10 for d in difficulties)

    def test_zero_stability_non_new_card_treated_as_first_review(self, no_fuzz_scheduler, now):
        state = make_state(stability=0.0, difficulty=0.0, state=CardState.REVIEW)
        fresh = no_fuzz_scheduler.compute_all_outcomes(make_new_state(), now)
        odd = no_fuzz_scheduler.compute_all_outcomes(state, now)
        assert odd.good.updated_state.stability == fresh.good.updated_state.stability


class TestLearningCard:
    @pytest.fixture
    def learning_state(self, no_fuzz_scheduler, now):
        return no_fuzz_scheduler.apply_rating(make_new_state(), Rating.GOOD, now).updated_state

    def test_again_and_hard_stay_in_learning(self, no_fuzz_scheduler, learning_state):
        at = learning_state.due
        options = no_fuzz_scheduler.compute_all_outcomes(learning_state, at)

        assert options.again.updated_state.state == CardState.LEARNING
        assert options.again.due == at + timedelta(minutes=5)
        assert options.hard.updated_state.state == CardState.LEARNING
        assert options.hard.due == at + timedelta(minutes=10)

    def test_good_and_easy_graduate(self, no_fuzz_scheduler, learning_state):
        at = learning_state.due
        options = no_fuzz_scheduler.compute_all_outcomes(learning_state, at)
        good = options.good.updated_state
        easy = options.easy.updated_state

        assert good.state == CardState.REVIEW
        assert easy.state == CardState.REVIEW
        assert good.scheduled_days == 4
        assert easy.scheduled_days > good.scheduled_days

    def test_relearning_keeps_state_on_again(self, no_fuzz_scheduler, now):
        state = make_state(state=CardState.RELEARNING, stability=2.0, lapses=1)
        outcome = no_fuzz_scheduler.apply_rating(state, Rating.AGAIN, now)
        assert outcome.updated_state.state == CardState.RELEARNING
        # Lapses only count failures of graduated cards
        assert outcome.updated_state.lapses == 1


class TestReviewCard:
    def test_successful_recall_grows_stability(self, no_fuzz_scheduler, now):
        state = make_state()
        options = no_fuzz_scheduler.compute_all_outcomes(state, now)

        for rating in (Rating.HARD, Rating.GOOD, Rating.EASY):
            assert options.for_rating(rating).updated_state.stability > state.stability

        assert options.good.updated_state.scheduled_days == 33

    def test_intervals_are_ordered(self, no_fuzz_scheduler, now):
        options = no_fuzz_scheduler.compute_all_outcomes(make_state(), now)
        assert options.again.due < options.hard.due <= options.good.due <= options.easy.due
        hard = options.hard.updated_state.scheduled_days
        good = options.good.updated_state.scheduled_days
        easy = options.easy.updated_state.scheduled_days
        assert 0 < hard <= good < easy

    def test_again_is_a_lapse(self, no_fuzz_scheduler, now):
        state = make_state()
        outcome = no_fuzz_scheduler.apply_rating(state, Rating.AGAIN, now)
        updated = outcome.updated_state

        assert updated.state == CardState.RELEARNING
        assert updated.lapses == state.lapses + 1
        assert updated.stability < state.stability
        assert outcome.due == now + timedelta(minutes=5)
        assert updated.scheduled_days == 0

    def test_difficulty_moves_with_rating(self, no_fuzz_scheduler, now):
        state = make_state()
        options = no_fuzz_scheduler.compute_all_outcomes(state, now)
        assert options.again.updated_state.difficulty > state.difficulty
        assert options.easy.updated_state.difficulty < state.difficulty

    def test_every_outcome_counts_a_rep(self, no_fuzz_scheduler, now):
        state = make_state()
        options = no_fuzz_scheduler.compute_all_outcomes(state, now)
        for rating in Rating:
            updated = options.for_rating(rating).updated_state
            assert updated.reps == state.reps + 1
            assert updated.last_review == now
            assert updated.elapsed_days == 10

    def test_maximum_interval_caps_good_and_easy(self, mock_home, now):
        from marginalia.application.config import SchedulerSettings

        scheduler = FSRSScheduler(SchedulerSettings(enable_fuzz=False, maximum_interval=20))
        options = scheduler.compute_all_outcomes(make_state(), now)
        assert options.good.updated_state.scheduled_days <= 20
        assert options.easy.updated_state.scheduled_days <= 20

    def test_early_review_uses_zero_elapsed(self, no_fuzz_scheduler):
        state = make_state(last_review=NOW + timedelta(hours=1))
        outcome = no_fuzz_scheduler.apply_rating(state, Rating.GOOD, NOW)
        assert outcome.updated_state.elapsed_days == 0


class TestDeterminism:
    def test_same_inputs_same_outputs(self, fuzz_scheduler, now):
        state = make_state()
        assert fuzz_scheduler.compute_all_outcomes(state, now) == fuzz_scheduler.compute_all_outcomes(
            state, now
        )

    def test_apply_rating_matches_preview(self, fuzz_scheduler, now):
        state = make_state()
        options = fuzz_scheduler.compute_all_outcomes(state, now)
        for rating in Rating:
            assert fuzz_scheduler.apply_rating(state, rating, now) == options.for_rating(rating)

    def test_input_not_modified(self, no_fuzz_scheduler, now):
        state = make_state()
        snapshot = replace(state)
        no_fuzz_scheduler.apply_rating(state, Rating.GOOD, now)
        assert state == snapshot

    def test_fuzz_stays_near_base_interval(self, fuzz_scheduler, now):
        good = fuzz_scheduler.apply_rating(make_state(), Rating.GOOD, now).updated_state
        assert 29 <= good.scheduled_days <= 37

    @pytest.mark.parametrize("card_state", [CardState.REVIEW, CardState.RELEARNING])
    @pytest.mark.parametrize("stability", [0.5, 3.0, 10.0, 50.0, 400.0])
    @pytest.mark.parametrize("days_since", [1, 7, 30, 180])
    def test_fuzzed_intervals_stay_ordered(self, fuzz_scheduler, card_state, stability, days_since):
        state = make_state(
            state=card_state,
            stability=stability,
            last_review=NOW - timedelta(days=days_since),
        )
        options = fuzz_scheduler.compute_all_outcomes(state, NOW)
        assert options.again.due < options.hard.due <= options.good.due <= options.easy.due

    def test_short_intervals_not_fuzzed(self, fuzz_scheduler):
        assert fuzz_scheduler._apply_fuzz(2, 0, 0.99) == 2

    def test_module_level_apply_rating(self, mock_home, now):
        outcome = apply_rating(make_new_state(), "good", now)
        assert outcome.updated_state.state == CardState.LEARNING


class TestPreconditions:
    def test_unknown_rating(self, no_fuzz_scheduler, now):
        with pytest.raises(ValueError, match="Unknown rating"):
            no_fuzz_scheduler.apply_rating(make_state(), "meh", now)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"stability": -1.0},
            {"difficulty": -0.5},
            {"stability": float("nan")},
            {"reps": -1},
            {"lapses": -2},
        ],
    )
    def test_invalid_state_rejected(self, no_fuzz_scheduler, now, overrides):
        with pytest.raises(InvalidCardStateError):
            no_fuzz_scheduler.compute_all_outcomes(make_state(**overrides), now)

    def test_reviewed_card_needs_last_review(self, no_fuzz_scheduler, now):
        with pytest.raises(InvalidCardStateError, match="last_review"):
            no_fuzz_scheduler.compute_all_outcomes(make_state(last_review=None), now)

    def test_naive_timestamp_rejected(self, no_fuzz_scheduler, now):
        state = make_state(due=NOW.replace(tzinfo=None))
        with pytest.raises(InvalidCardStateError, match="timezone"):
            no_fuzz_scheduler.compute_all_outcomes(state, now)

    def test_naive_now_rejected(self, no_fuzz_scheduler):
        with pytest.raises(ValueError, match="timezone-aware"):
            no_fuzz_scheduler.apply_rating(make_new_state(), Rating.GOOD, NOW.replace(tzinfo=None))

    def test_unreviewed_card_with_last_review_rejected(self, no_fuzz_scheduler, now):
        state = make_state(reps=0, state=CardState.LEARNING)
        with pytest.raises(InvalidCardStateError, match="last_review"):
            no_fuzz_scheduler.compute_all_outcomes(state, now)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"stability": 3.0},
            {"difficulty": 5.0},
            {"reps": 2, "last_review": NOW - timedelta(days=1)},
        ],
    )
    def test_new_card_with_memory_rejected(self, no_fuzz_scheduler, now, overrides):
        with pytest.raises(InvalidCardStateError, match="New card"):
            no_fuzz_scheduler.compute_all_outcomes(make_new_state(**overrides), now)

    def test_invalid_state_error_is_value_error(self):
        assert issubclass(InvalidCardStateError, ValueError)


class TestForgettingCurve:
    def test_retention_at_stability(self):
        assert forgetting_curve(10, 10) == pytest.approx(0.9)

    def test_no_elapsed_time(self):
        assert forgetting_curve(0, 5) == 1.0

    def test_decreasing(self):
        assert forgetting_curve(30, 10) < forgetting_curve(5, 10)


class TestFormatInterval:
    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(seconds=0), "1m"),
            (timedelta(seconds=30), "1m"),
            (timedelta(minutes=10), "10m"),
            (timedelta(hours=3), "3h"),
            (timedelta(days=2), "2d"),
            (timedelta(days=16), "2w"),
            (timedelta(days=60), "2mo"),
        ],
    )
    def test_labels(self, delta, expected):
        assert format_interval(NOW + delta, NOW) == expected
