from datetime import date

import pytest
from conftest import TWO_SUM_HASH, TWO_SUM_NESTED, FakeExecutor, FixedCorpus

from practice_judge import (
    InMemoryProblemStore,
    InMemoryStatisticsStore,
    InMemorySubmissionStore,
    Judge,
    JsonSubmissionStore,
    Submitter,
    UserStatistics,
)
from practice_judge.result_type import SubmissionStatus
from practice_judge.stores import update_rankings


class FlakyProblemStore(InMemoryProblemStore):
    """Serves the first lookup, then loses its connection."""

    def __init__(self, problems, working_calls=1):
        super().__init__(problems)
        self.working_calls = working_calls

    def get_problem(self, problem_id):
        if self.working_calls <= 0:
            raise ConnectionError("database unreachable")
        self.working_calls -= 1
        return super().get_problem(problem_id)


class BrokenStatisticsStore(InMemoryStatisticsStore):
    def save(self, stats):
        raise IOError("statistics database unavailable")


@pytest.fixture
def submitter(make_judge, correct_answers):
    def factory(answers=None, corpus=None, statistics_store=None, submission_store=None):
        judge = make_judge(FakeExecutor(correct_answers if answers is None else answers), corpus)
        return Submitter(
            judge,
            submission_store=submission_store or InMemorySubmissionStore(),
            statistics_store=statistics_store or InMemoryStatisticsStore(),
        )
    return factory


def test_accepted_submission_is_persisted_and_scored(submitter):
    s = submitter()
    outcome = s.submit("alice", "1", TWO_SUM_HASH, "python")

    assert outcome.success
    assert outcome.points_earned == 100
    assert outcome.submission.status is SubmissionStatus.ACCEPTED
    assert outcome.submission.time_complexity == "O(n)"
    assert len(s.submission_store.submissions) == 1
    assert len(s.submission_store.solutions) == 1
    assert all(effect.ok for effect in outcome.side_effects)

    stats = s.statistics_store.get("alice")
    assert (stats.problems_solved, stats.easy_solved, stats.total_points) == (1, 1, 100)
    assert (stats.total_submissions, stats.accepted_submissions) == (1, 1)
    assert stats.rank == 1
    assert outcome.improvement_suggestions == [
        "Keep practicing to improve your problem-solving skills!",
        "Try solving this problem using a different approach or algorithm.",
    ]


def test_second_accepted_solve_does_not_count_twice(submitter):
    s = submitter()
    s.submit("alice", "1", TWO_SUM_HASH, "python")
    s.submit("alice", "1", TWO_SUM_HASH, "python")

    stats = s.statistics_store.get("alice")
    assert stats.total_submissions == 2
    assert stats.accepted_submissions == 2
    assert stats.problems_solved == 1
    assert stats.total_points == 100


def test_non_optimal_solution_gets_language_hint(submitter):
    outcome = submitter().submit("alice", "1", TWO_SUM_NESTED, "python")
    assert outcome.success
    assert outcome.improvement_suggestions == [
        "Your solution works correctly, but could be optimized to O(n) time complexity.",
        "Consider using dictionaries for O(1) lookups instead of nested loops.",
    ]


def test_wrong_answer_counts_only_its_own_status(submitter):
    s = submitter(answers={})
    outcome = s.submit("bob", "1", TWO_SUM_HASH, "python")

    assert outcome.success
    assert outcome.points_earned == 0
    assert outcome.submission.status is SubmissionStatus.WRONG_ANSWER
    assert s.submission_store.solutions == []
    stats = s.statistics_store.get("bob")
    assert stats.wrong_submissions == 1
    assert stats.accepted_submissions == 0
    assert stats.runtime_errors == 0
    assert stats.problems_solved == 0


def test_index_mismatch_suggests_off_by_one(submitter, correct_answers):
    answers = dict(correct_answers, **{"[3,2,4]\n6": "[0,2]"})
    outcome = submitter(answers=answers).submit("bob", "1", TWO_SUM_HASH, "python")
    assert outcome.submission.status is SubmissionStatus.WRONG_ANSWER
    assert outcome.improvement_suggestions == [
        "Check for off-by-one errors in your array indexing or loop conditions.",
    ]


def test_compilation_error_is_recorded_without_points(submitter):
    s = submitter()
    outcome = s.submit("carol", "1", "public class Main {}", "java")

    assert not outcome.success
    assert outcome.message.startswith("Compilation Error: ")
    assert outcome.submission.status is SubmissionStatus.COMPILATION_ERROR
    assert outcome.execution_result.total_tests == 0
    assert s.statistics_store.get("carol").compilation_errors == 1


def test_plagiarism_block_is_rejected(submitter):
    s = submitter(corpus=FixedCorpus(0.85))
    outcome = s.submit("mallory", "1", TWO_SUM_HASH, "python")

    assert not outcome.success
    assert outcome.message == ("Potential plagiarism detected with 85% similarity to existing solutions. "
                               "Please submit your own work.")
    assert outcome.points_earned == 0
    assert outcome.submission.status is SubmissionStatus.PLAGIARISM_BLOCKED
    assert s.submission_store.solutions == []
    assert s.statistics_store.get("mallory").problems_solved == 0


def test_plagiarism_warning_still_accepts(submitter):
    corpus = FixedCorpus(0.6)
    outcome = submitter(corpus=corpus).submit("dave", "1", TWO_SUM_HASH, "python")
    assert outcome.success
    assert outcome.points_earned == 100
    assert any(line.startswith("Warning: Your solution has a high similarity (60%)")
               for line in outcome.execution_result.feedback)
    assert corpus.registered and corpus.registered[0][2] == "dave"


def test_abort_persists_nothing(submitter):
    s = submitter()
    outcome = s.submit("erin", "404", TWO_SUM_HASH, "python")

    assert not outcome.success
    assert outcome.message.startswith("Could not judge this submission, please try again")
    assert outcome.submission is None
    assert s.submission_store.submissions == []
    assert s.statistics_store.get("erin") is None


def test_bookkeeping_failure_never_fails_submission(submitter):
    outcome = submitter(statistics_store=BrokenStatisticsStore()).submit("alice", "1", TWO_SUM_HASH, "python")

    assert outcome.success
    assert outcome.points_earned == 100
    failures = [effect for effect in outcome.side_effects if not effect.ok]
    assert [effect.name for effect in failures] == ["user_statistics"]
    assert "statistics database unavailable" in failures[0].error


def test_json_submission_store(tmp_path, submitter):
    path = tmp_path / "submissions.json"
    s = submitter(submission_store=JsonSubmissionStore(str(path)))
    s.submit("alice", "1", TWO_SUM_HASH, "python")

    reloaded = JsonSubmissionStore(str(path))
    assert reloaded.has_solution("alice", "1")
    assert not reloaded.has_solution("bob", "1")


def test_streak_rules():
    stats = UserStatistics("u")
    stats.apply(SubmissionStatus.ACCEPTED, "easy", 100, first_solve=True, today=date(2024, 3, 1))
    assert (stats.streak, stats.last_solved_date) == (1, date(2024, 3, 1))

    stats.apply(SubmissionStatus.ACCEPTED, "medium", 100, first_solve=True, today=date(2024, 3, 1))
    assert stats.streak == 1

    stats.apply(SubmissionStatus.ACCEPTED, "hard", 100, first_solve=True, today=date(2024, 3, 2))
    assert stats.streak == 2

    stats.apply(SubmissionStatus.WRONG_ANSWER, "hard", 0, today=date(2024, 3, 3))
    assert stats.streak == 2

    stats.apply(SubmissionStatus.ACCEPTED, "easy", 100, first_solve=True, today=date(2024, 3, 10))
    assert stats.streak == 1
    assert (stats.easy_solved, stats.medium_solved, stats.hard_solved) == (2, 1, 1)
    assert stats.total_points == 400
    assert stats.total_submissions == 5


def test_rankings_order_by_points():
    store = InMemoryStatisticsStore()
    store.save(UserStatistics("low", total_points=100))
    store.save(UserStatistics("high", total_points=300))
    store.save(UserStatistics("mid", total_points=200))

    update_rankings(store)
    assert {s.user_id: s.rank for s in store.all()} == {"high": 1, "mid": 2, "low": 3}


def test_problem_store_outage_is_reported_not_raised(two_sum_problem, correct_answers):
    judge = Judge(FlakyProblemStore([two_sum_problem], working_calls=0), FakeExecutor(correct_answers))
    s = Submitter(judge)
    outcome = s.submit("erin", "1", TWO_SUM_HASH, "python")

    assert not outcome.success
    assert outcome.message.startswith("Could not judge this submission, please try again")
    assert "database unreachable" in outcome.message
    assert s.submission_store.submissions == []


def test_problem_store_outage_after_judging_keeps_the_verdict(two_sum_problem, correct_answers):
    judge = Judge(FlakyProblemStore([two_sum_problem]), FakeExecutor(correct_answers))
    s = Submitter(judge)
    outcome = s.submit("erin", "1", TWO_SUM_HASH, "python")

    assert outcome.success
    assert outcome.submission.status is SubmissionStatus.ACCEPTED
    assert outcome.points_earned == 100
    failures = [effect.name for effect in outcome.side_effects if not effect.ok]
    assert failures == ["user_statistics"]
    assert outcome.improvement_suggestions
