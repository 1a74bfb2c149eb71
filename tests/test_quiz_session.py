import random

import pytest

from app.services.quiz_session import (
    ActionRejected,
    EndReason,
    IncompleteSubmission,
    NoQuestionsAvailable,
    QuizQuestion,
    QuizSession,
    QuizSettings,
    SessionClock,
    SessionState,
    find_next_unanswered,
    select_questions,
)


def make_questions(n=5, categories=(1,)):
    return [
        QuizQuestion(
            id=i + 1,
            text=f"Question {i + 1}",
            options=("A", "B", "C", "D"),
            correct_answer=i % 4,
            points=10 * (i + 1),
            categories=categories,
        )
        for i in range(n)
    ]


def make_session(
    questions=None,
    review=False,
    lives_enabled=False,
    lives=3,
    duration=300,
    category=1,
    time_bonus=0,
    seed=7,
):
    settings = QuizSettings(
        duration_seconds=duration,
        lives_enabled=lives_enabled,
        lives=lives,
        review_mode_enabled=review,
        time_bonus=time_bonus,
    )
    s = QuizSession(
        session_id="sess_test",
        player_name="Alice",
        category_id=category,
        questions=questions if questions is not None else make_questions(),
        settings=settings,
        rng=random.Random(seed),
        feedback_delay=1.5,
        review_ack_delay=0.5,
    )
    s.start()
    return s


def right(s):
    return s.order[s.current_index].correct_answer


def wrong(s):
    return (right(s) + 1) % 4


# ---------- sélection / recherche ----------

def test_find_next_unanswered_scans_forward_then_wraps():
    answered = {3, 4}
    assert find_next_unanswered(5, 2, lambda i: i in answered) == 0
    assert find_next_unanswered(5, 1, lambda i: i in answered) == 2
    assert find_next_unanswered(5, 4, lambda i: False) == 0


def test_find_next_unanswered_ignores_current_and_terminates():
    assert find_next_unanswered(5, 0, lambda i: i != 0) is None
    assert find_next_unanswered(1, 0, lambda i: False) is None


def test_category_filter_and_fallback_to_full_bank():
    bank = make_questions(3, categories=(1,)) + [
        QuizQuestion(id=10, text="x", options=("a", "b"), correct_answer=0, categories=(2, 3)),
        QuizQuestion(id=11, text="y", options=("a", "b"), correct_answer=1, categories=(2,)),
    ]
    assert {q.id for q in select_questions(bank, 2, random.Random(1))} == {10, 11}

    fallback = select_questions(bank, 5, random.Random(1))
    assert len(fallback) == len(bank)


def test_empty_bank_means_no_questions_available():
    with pytest.raises(NoQuestionsAvailable):
        select_questions([], 1)


def test_order_is_a_fixed_permutation():
    bank = make_questions(6)
    s = make_session(questions=bank)
    order_ids = [q.id for q in s.order]
    assert sorted(order_ids) == [q.id for q in bank]

    s.answer(right(s))
    s.advance_time(1.5)
    assert [q.id for q in s.order] == order_ids


# ---------- horloge ----------

def test_clock_runs_callbacks_in_due_order():
    clock = SessionClock()
    seen = []
    clock.schedule(2.0, lambda: seen.append("b"))
    clock.schedule(1.0, lambda: seen.append("a"))
    clock.schedule(2.0, lambda: seen.append("c"))
    clock.advance(2.0)
    assert seen == ["a", "b", "c"]
    assert clock.now == 2.0


def test_remaining_seconds_non_increasing_and_session_ends_within_duration():
    s = make_session(duration=20)
    previous = s.remaining_seconds
    for _ in range(50):
        s.advance_time(0.7)
        assert s.remaining_seconds <= previous
        previous = s.remaining_seconds
    assert s.state == SessionState.ended
    assert s.end_reason == EndReason.time_up
    assert s.remaining_seconds == 0
    assert s.tally.time_spent_seconds == 20


def test_clock_keeps_ticking_during_feedback_delay():
    s = make_session(duration=10)
    s.answer(right(s))
    s.advance_time(1.5)
    assert s.remaining_seconds == 9
    assert s.current_index == 1


def test_time_up_beats_pending_feedback_and_blocks_further_actions():
    s = make_session(duration=2)
    s.advance_time(1.0)
    s.answer(right(s))  # avance prévue à t=2.5
    s.advance_time(1.0)

    assert s.state == SessionState.ended
    assert s.end_reason == EndReason.time_up
    assert s.current_index == 0
    assert s.clock.pending == 0
    with pytest.raises(ActionRejected):
        s.answer(0)
    with pytest.raises(ActionRejected):
        s.navigate(1)


# ---------- mode feedback immédiat ----------

def test_scenario_all_correct_immediate_mode():
    bank = make_questions(5)
    s = make_session(questions=bank, lives_enabled=False)
    for _ in range(5):
        s.answer(right(s))
        s.advance_time(1.5)

    assert s.state == SessionState.ended
    assert s.end_reason == EndReason.all_answered
    assert s.tally.questions_answered == 5
    assert s.tally.correct_answers == 5
    assert s.tally.score == sum(q.points for q in bank)
    assert s.tally.time_spent_seconds == 7
    assert s.tally.review_payload is None


def test_scenario_single_life_lost_on_first_wrong_answer():
    s = make_session(lives_enabled=True, lives=1)
    outcome = s.answer(wrong(s))
    assert outcome.is_correct is False
    assert s.remaining_lives == 0

    s.advance_time(1.5)
    assert s.state == SessionState.ended
    assert s.end_reason == EndReason.out_of_lives
    assert s.tally.questions_answered == 1
    assert s.tally.correct_answers == 0


def test_wrong_answer_without_lives_keeps_playing():
    s = make_session(lives_enabled=False)
    s.answer(wrong(s))
    s.advance_time(1.5)
    assert s.state == SessionState.running
    assert s.remaining_lives is None
    assert s.current_index == 1


def test_answer_twice_is_rejected_without_side_effects():
    s = make_session()
    s.answer(right(s))
    score = s.score
    with pytest.raises(ActionRejected):
        s.answer(right(s))
    assert s.score == score
    assert s.questions_answered == 1


def test_invalid_choice_index_is_rejected():
    s = make_session()
    with pytest.raises(ActionRejected):
        s.answer(7)
    assert s.questions_answered == 0
    assert s.user_answers == {}


def test_time_bonus_is_never_applied():
    bank = make_questions(1)
    s = make_session(questions=bank, time_bonus=100)
    s.answer(right(s))
    assert s.score == bank[0].points


def test_immediate_mode_tally_identities_hold():
    bank = make_questions(8)
    s = make_session(questions=bank, lives_enabled=False, seed=3)
    rng = random.Random(11)
    while s.state == SessionState.running:
        s.answer(rng.randrange(4))
        s.advance_time(1.5)

    incorrect = sum(1 for i, c in s.user_answers.items() if c != s.order[i].correct_answer)
    expected_score = sum(s.order[i].points for i, c in s.user_answers.items() if c == s.order[i].correct_answer)
    assert s.questions_answered == s.correct_answers + incorrect
    assert s.score == expected_score


def test_submit_is_not_available_in_immediate_mode():
    s = make_session()
    with pytest.raises(ActionRejected):
        s.submit()


# ---------- navigation ----------

def test_navigation_rules_in_immediate_mode():
    s = make_session()
    with pytest.raises(ActionRejected):
        s.navigate(0)  # question courante

    s.answer(right(s))
    s.advance_time(1.5)
    assert s.current_index == 1
    with pytest.raises(ActionRejected):
        s.navigate(0)  # déjà répondue

    score = s.score
    s.navigate(3)
    assert s.current_index == 3
    assert s.visited[3] is True
    assert s.score == score


def test_out_of_order_answers_wrap_around():
    s = make_session()
    s.answer(right(s))
    s.advance_time(1.5)      # 0 -> 1
    s.navigate(3)
    s.answer(right(s))
    s.advance_time(1.5)      # 3 -> 4
    assert s.current_index == 4
    s.answer(right(s))
    s.advance_time(1.5)      # 4 -> retour à 1
    assert s.current_index == 1
    assert s.visited == {0: True, 1: True, 3: True, 4: True}


def test_navigation_is_blocked_while_feedback_is_displayed():
    s = make_session()
    s.answer(right(s))
    with pytest.raises(ActionRejected):
        s.navigate(2)


# ---------- mode révision ----------

def test_review_answers_give_no_feedback_and_cost_no_life():
    s = make_session(review=True, lives_enabled=True, lives=1)
    outcome = s.answer(wrong(s))
    s.advance_time(0.5)
    assert outcome.is_correct is None
    assert s.remaining_lives == 1
    assert s.score == 0
    assert s.state == SessionState.running


def test_review_round_trip_all_correct():
    bank = make_questions(4)
    s = make_session(questions=bank, review=True)
    for _ in range(4):
        s.answer(right(s))
        s.advance_time(0.5)
    assert s.state == SessionState.review_screen

    tally = s.submit()
    assert s.state == SessionState.submitted
    assert tally.end_reason == EndReason.submitted
    assert tally.score == sum(q.points for q in bank)
    assert tally.correct_answers == len(s.order)
    assert tally.questions_answered == len(s.order)
    assert tally.review_payload.user_answers == s.user_answers

    again = s.submit()
    assert again is tally
    assert s.state == SessionState.submitted


def test_review_allows_changing_an_answer():
    s = make_session(questions=make_questions(3), review=True)
    first = s.current_index
    s.answer(wrong(s))
    s.advance_time(0.5)
    s.navigate(first)
    s.answer(right(s))
    s.advance_time(0.5)
    assert s.user_answers[first] == s.order[first].correct_answer
    assert s.current_index != first


def test_scenario_incomplete_review_submission_is_rejected():
    s = make_session(questions=make_questions(3), review=True)
    for _ in range(2):
        s.answer(right(s))
        s.advance_time(0.5)
    s.open_review()

    with pytest.raises(IncompleteSubmission) as exc:
        s.submit()
    assert exc.value.missing == [2]
    assert s.state == SessionState.review_screen


def test_scenario_time_up_on_review_screen_scores_unanswered_as_wrong():
    s = make_session(questions=make_questions(3), review=True, duration=30)
    answered_points = 0
    for _ in range(2):
        answered_points += s.order[s.current_index].points
        s.answer(right(s))
        s.advance_time(0.5)
    s.open_review()

    s.advance_time(30)
    assert s.state == SessionState.ended
    assert s.end_reason == EndReason.time_up
    assert s.tally.score == answered_points
    assert s.tally.correct_answers == 2
    assert s.tally.review_payload is not None
    with pytest.raises(ActionRejected):
        s.navigate(2)


def test_review_screen_allows_jumping_to_any_question():
    s = make_session(questions=make_questions(3), review=True)
    for _ in range(3):
        s.answer(right(s))
        s.advance_time(0.5)
    assert s.state == SessionState.review_screen

    s.navigate(s.current_index)
    assert s.state == SessionState.running


def test_open_review_requires_review_mode():
    s = make_session()
    with pytest.raises(ActionRejected):
        s.open_review()


def test_abandon_tears_down_session():
    s = make_session(review=True)
    s.answer(right(s))
    s.abandon()
    assert s.end_reason == EndReason.abandoned
    assert s.clock.pending == 0
    assert s.tally.review_payload is None
    with pytest.raises(ActionRejected):
        s.answer(0)


def test_settings_are_validated():
    with pytest.raises(ValueError):
        QuizSettings(duration_seconds=0)
    with pytest.raises(ValueError):
        QuizSettings(lives_enabled=True, lives=0)
    assert QuizSettings(lives_enabled=False, lives=0).lives == 0
