"""
Unit tests for the quiz session state machine and answer shuffling.
"""
import random
import unittest
from unittest.mock import Mock

from trivia_quiz.quiz_session import (
    QuizSession,
    EmptyQuestionSetError,
    InvalidSessionStateError,
    SessionDisposedError,
    shuffle_answers,
    SCORE_CORRECT,
    SCORE_INCORRECT,
)
from tests.test_fixtures import TestFixtures, FakeTime


class TestShuffleAnswers(unittest.TestCase):
    """Test cases for answer shuffling."""

    def test_result_is_permutation_of_all_answers(self):
        rng = random.Random(7)
        for _ in range(50):
            answers = shuffle_answers("a", ["b", "c", "d"], rng)
            self.assertEqual(sorted(answers), ["a", "b", "c", "d"])

    def test_duplicate_incorrect_answers_are_dropped(self):
        answers = shuffle_answers("yes", ["no", "no"])
        self.assertEqual(sorted(answers), ["no", "yes"])

    def test_all_orderings_reachable(self):
        rng = random.Random(1)
        seen = {tuple(shuffle_answers("a", ["b", "c"], rng)) for _ in range(200)}
        self.assertEqual(len(seen), 6)

    def test_input_is_not_modified(self):
        incorrect = ["b", "c"]
        shuffle_answers("a", incorrect)
        self.assertEqual(incorrect, ["b", "c"])


class TestQuizSessionScenarios(unittest.TestCase):
    """The end-to-end scoring and progression scenarios."""

    def setUp(self):
        self.time = FakeTime()
        self.session = QuizSession(timer_duration=15, time_source=self.time)
        self.questions = TestFixtures.create_sample_questions()

    def test_two_question_walkthrough(self):
        self.session.reveal_first(self.questions)
        self.assertEqual(self.session.current_index, 0)
        self.assertEqual(len(self.session.revealed), 1)
        self.assertEqual(self.session.score, 0)

        self.assertTrue(self.session.select_answer("4"))
        self.assertEqual(self.session.score, 10)
        self.assertTrue(self.session.revealed[0].is_answered)

        first_deadline = self.session.deadline
        self.time.advance(3)
        self.assertTrue(self.session.advance())
        self.assertEqual(len(self.session.revealed), 2)
        self.assertEqual(self.session.current_index, 1)
        self.assertEqual(self.session.deadline, first_deadline + 3)

        self.session.select_answer("Lyon")
        self.assertEqual(self.session.score, 5)

        self.assertFalse(self.session.advance())
        self.assertEqual(self.session.current_index, 1)
        self.assertTrue(self.session.is_finished)

    def test_double_answer_scores_once(self):
        self.session.reveal_first(self.questions)
        self.assertTrue(self.session.select_answer("4"))
        self.assertFalse(self.session.select_answer("4"))
        self.assertFalse(self.session.select_answer("3"))
        self.assertEqual(self.session.score, SCORE_CORRECT)
        self.assertEqual(self.session.revealed[0].selected_answer, "4")

    def test_timeout_answer_is_penalised(self):
        self.session.reveal_first(self.questions)
        self.assertTrue(self.session.select_answer(None))
        self.assertEqual(self.session.score, SCORE_INCORRECT)
        self.assertTrue(self.session.revealed[0].is_answered)
        self.assertIsNone(self.session.revealed[0].selected_answer)

    def test_answering_replaces_revealed_entry(self):
        self.session.reveal_first(self.questions)
        before = self.session.revealed[0]
        self.session.select_answer("5")
        after = self.session.revealed[0]
        self.assertIsNot(before, after)
        self.assertFalse(before.is_answered)
        self.assertEqual(after.answer_order, before.answer_order)


class TestQuizSessionOperations(unittest.TestCase):
    """Test cases for individual session operations."""

    def setUp(self):
        self.time = FakeTime()
        self.session = QuizSession(timer_duration=15, time_source=self.time)
        self.questions = TestFixtures.create_question_batch(5)

    def _answer_and_advance(self, times: int) -> None:
        for _ in range(times):
            self.session.select_answer(self.session.current_question.question.correct_answer)
            self.session.advance()

    def test_reveal_first_rejects_empty_sequence(self):
        with self.assertRaises(EmptyQuestionSetError):
            self.session.reveal_first([])
        self.assertFalse(self.session.is_loaded)
        self.assertTrue(self.session.current_projection().is_loading)

    def test_reveal_first_only_once(self):
        self.session.reveal_first(self.questions)
        with self.assertRaises(InvalidSessionStateError):
            self.session.reveal_first(self.questions)

    def test_operations_before_loading_are_noops(self):
        self.assertFalse(self.session.select_answer("x"))
        self.assertFalse(self.session.advance())
        self.assertFalse(self.session.retreat())
        self.assertFalse(self.session.expire())
        self.assertEqual(self.session.remaining_seconds(), 0)

    def test_advance_blocked_on_unanswered_frontier(self):
        self.session.reveal_first(self.questions)
        self.assertFalse(self.session.advance())
        self.assertEqual(len(self.session.revealed), 1)

    def test_unknown_answer_rejected(self):
        self.session.reveal_first(self.questions)
        with self.assertRaises(ValueError):
            self.session.select_answer("Not an option")
        self.assertFalse(self.session.revealed[0].is_answered)
        self.assertEqual(self.session.score, 0)

    def test_retreat_at_start_is_noop(self):
        self.session.reveal_first(self.questions)
        self.assertFalse(self.session.retreat())
        self.assertEqual(self.session.current_index, 0)

    def test_navigation_round_trip_keeps_state(self):
        self.session.reveal_first(self.questions)
        self._answer_and_advance(3)
        self.assertEqual(self.session.current_index, 3)
        score = self.session.score
        revealed = self.session.revealed
        deadline = self.session.deadline

        for _ in range(2):
            self.assertTrue(self.session.retreat())
        self.assertEqual(self.session.current_index, 1)
        for _ in range(2):
            self.assertTrue(self.session.advance())

        self.assertEqual(self.session.current_index, 3)
        self.assertEqual(self.session.score, score)
        self.assertEqual(self.session.revealed, revealed)
        self.assertEqual(self.session.deadline, deadline)

    def test_answer_order_stable_across_projections_and_visits(self):
        self.session.reveal_first(self.questions)
        order = self.session.current_projection().answer_order
        self._answer_and_advance(1)
        self.session.retreat()
        self.assertEqual(self.session.current_projection().answer_order, order)
        self.assertEqual(self.session.current_projection().answer_order, order)
        question = self.questions[0]
        self.assertEqual(
            sorted(order),
            sorted([question.correct_answer, *question.incorrect_answers])
        )

    def test_answering_behind_frontier_is_noop(self):
        self.session.reveal_first(self.questions)
        self._answer_and_advance(1)
        self.session.retreat()
        self.assertFalse(self.session.select_answer(None))
        self.assertEqual(self.session.score, SCORE_CORRECT)

    def test_deadline_resets_only_on_new_reveal(self):
        listener = Mock()
        self.session.add_deadline_listener(listener)
        self.session.reveal_first(self.questions)
        self.assertEqual(listener.call_count, 1)

        self._answer_and_advance(1)
        self.assertEqual(listener.call_count, 2)

        self.session.retreat()
        self.session.advance()
        self.session.select_answer(None)
        self.assertEqual(listener.call_count, 2)

        self.session.remove_deadline_listener(listener)
        self.session.advance()
        self.assertEqual(listener.call_count, 2)

    def test_remaining_seconds_counts_down(self):
        self.session.reveal_first(self.questions)
        self.assertEqual(self.session.remaining_seconds(), 15)
        self.time.advance(3.5)
        self.assertEqual(self.session.remaining_seconds(), 11)
        self.time.advance(20)
        self.assertEqual(self.session.remaining_seconds(), 0)

    def test_expire_answers_frontier_and_reveals_next(self):
        self.session.reveal_first(self.questions)
        self.assertTrue(self.session.expire())
        self.assertEqual(self.session.score, SCORE_INCORRECT)
        self.assertEqual(len(self.session.revealed), 2)
        self.assertEqual(self.session.current_index, 1)

    def test_expire_while_reviewing_targets_frontier(self):
        self.session.reveal_first(self.questions)
        self._answer_and_advance(2)
        self.session.retreat()
        self.session.retreat()
        self.assertEqual(self.session.current_index, 0)

        self.assertTrue(self.session.expire())
        self.assertTrue(self.session.revealed[2].is_answered)
        self.assertEqual(len(self.session.revealed), 4)
        self.assertEqual(self.session.current_index, 3)

    def test_expire_after_answer_only_advances(self):
        self.session.reveal_first(self.questions)
        self.session.select_answer(self.questions[0].correct_answer)
        self.assertFalse(self.session.expire())
        self.assertEqual(self.session.score, SCORE_CORRECT)
        self.assertEqual(len(self.session.revealed), 2)

    def test_disposed_session_rejects_mutation(self):
        self.session.reveal_first(self.questions)
        self.session.dispose()
        for operation in (
            lambda: self.session.select_answer(None),
            self.session.advance,
            self.session.retreat,
            self.session.expire,
        ):
            with self.assertRaises(SessionDisposedError):
                operation()

    def test_random_walk_never_leaves_unanswered_question_behind(self):
        rng = random.Random(42)
        self.session.reveal_first(self.questions)
        previous_revealed = 1
        for _ in range(300):
            action = rng.choice(["answer", "timeout", "advance", "retreat", "expire"])
            if action == "answer":
                choices = self.session.current_question.answer_order
                self.session.select_answer(rng.choice(choices))
            elif action == "timeout":
                self.session.select_answer(None)
            elif action == "advance":
                self.session.advance()
            elif action == "retreat":
                self.session.retreat()
            else:
                self.session.expire()

            revealed = self.session.revealed
            self.assertGreaterEqual(len(revealed), previous_revealed)
            previous_revealed = len(revealed)
            self.assertTrue(0 <= self.session.current_index < len(revealed))
            self.assertTrue(all(entry.is_answered for entry in revealed[:-1]))
            expected_score = sum(
                SCORE_CORRECT if entry.is_correct else SCORE_INCORRECT
                for entry in revealed if entry.is_answered
            )
            self.assertEqual(self.session.score, expected_score)


class TestSessionProjection(unittest.TestCase):
    """Test cases for the projected view state."""

    def setUp(self):
        self.time = FakeTime()
        self.session = QuizSession(timer_duration=15, time_source=self.time)
        self.session.reveal_first(TestFixtures.create_sample_questions())

    def test_unanswered_projection_hides_correct_answer(self):
        projection = self.session.current_projection()
        self.assertFalse(projection.is_loading)
        self.assertEqual(projection.text, "2+2?")
        self.assertEqual(projection.category, "Math")
        self.assertEqual(projection.difficulty, "easy")
        self.assertIsNone(projection.correct_answer)
        self.assertEqual(projection.revealed_count, 1)
        self.assertEqual(projection.total_questions, 2)
        self.assertEqual(projection.remaining_seconds, 15)
        self.assertTrue(projection.is_frontier)
        self.assertFalse(projection.can_retreat)
        self.assertFalse(projection.can_advance)

    def test_answered_projection(self):
        self.session.select_answer("3")
        projection = self.session.current_projection()
        self.assertTrue(projection.is_answered)
        self.assertEqual(projection.selected_answer, "3")
        self.assertEqual(projection.correct_answer, "4")
        self.assertEqual(projection.score, -5)
        self.assertTrue(projection.can_advance)

    def test_reviewing_projection(self):
        self.session.select_answer("4")
        self.session.advance()
        self.session.retreat()
        projection = self.session.current_projection()
        self.assertFalse(projection.is_frontier)
        self.assertTrue(projection.can_advance)
        self.assertFalse(projection.can_retreat)

    def test_finished_projection(self):
        self.session.select_answer("4")
        self.session.advance()
        self.session.select_answer("Paris")
        projection = self.session.current_projection()
        self.assertTrue(projection.is_finished)
        self.assertFalse(projection.can_advance)
        self.assertEqual(projection.score, 20)


if __name__ == '__main__':
    unittest.main()
