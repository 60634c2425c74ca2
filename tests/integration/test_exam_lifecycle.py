"""
Integration tests for the exam lifecycle against the SQLAlchemy store.
"""

from datetime import timedelta, timezone

import pytest

from exam_grader.core.exceptions import (
    AlreadySubmittedError, AttemptNotAllowedError, NotFoundError, NotReadyError,
    NotSubmittedError, UnknownQuestionError, ValidationError,
)
from exam_grader.exams.lifecycle import ExamLifecycleController
from exam_grader.exams.types import ExamStatus


class TestExamLifecycle:
    """End-to-end flow through generation, submission, manual grading and results."""

    def test_full_flow(self, controller, sample_questions_data, sample_submission):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        assert exam.status is ExamStatus.GENERATED

        graded = controller.submit_answers(exam.id, sample_submission)
        assert graded.status is ExamStatus.GRADED
        assert graded.auto_score == 2
        assert graded.question_results[:3] == [True, True, False]

        manual = controller.record_manual_grade(exam.id, "q4", 0.5, "Partially correct")
        assert manual.status is ExamStatus.MANUALLY_GRADED
        assert manual.final_score == 2.5

        result = controller.compute_result(exam.id)
        assert result.score == 2.5
        assert result.total == 4
        assert result.percentage == 62.5
        assert result.qualified is False
        assert result.status is ExamStatus.MANUALLY_GRADED

    def test_submission_stamps_timestamps(self, controller, clock, sample_questions_data,
                                          sample_submission):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        clock.advance(hours=1)
        graded = controller.submit_answers(exam.id, sample_submission)
        stored = controller.get_exam(exam.id)
        assert stored.generated_at == exam.generated_at
        assert stored.submitted_at == clock.now
        assert stored.graded_at == clock.now
        assert graded.submitted_answers == stored.submitted_answers

    def test_missing_answer_leaves_exam_generated(self, controller, sample_questions_data,
                                                  sample_submission):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        del sample_submission["2"]

        with pytest.raises(ValidationError) as exc_info:
            controller.submit_answers(exam.id, sample_submission)
        assert exc_info.value.details['problems'] == {"2": "missing answer"}

        stored = controller.get_exam(exam.id)
        assert stored.status is ExamStatus.GENERATED
        assert stored.submitted_answers == {}

    def test_resubmission_rejected(self, controller, sample_questions_data, sample_submission):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        controller.submit_answers(exam.id, sample_submission)

        changed = dict(sample_submission, **{"2": ["tuple", "str"]})
        with pytest.raises(AlreadySubmittedError):
            controller.submit_answers(exam.id, changed)
        assert controller.get_exam(exam.id).auto_score == 2

    def test_concurrent_submission_loses_race(self, controller, repository,
                                              sample_questions_data, sample_submission):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        stale = controller.get_exam(exam.id)
        controller.submit_answers(exam.id, sample_submission)

        # A second caller still holding the generated exam
        controller.store.find_exam = lambda exam_id: stale
        with pytest.raises(AlreadySubmittedError):
            controller.submit_answers(exam.id, sample_submission)

    def test_unknown_exam(self, controller, sample_submission):
        with pytest.raises(NotFoundError):
            controller.submit_answers("nope", sample_submission)
        with pytest.raises(NotFoundError):
            controller.compute_result("nope")

    def test_result_not_ready_before_grading(self, controller, sample_questions_data):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        with pytest.raises(NotReadyError):
            controller.compute_result(exam.id)

    def test_result_is_stable(self, controller, sample_questions_data, sample_submission):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        controller.submit_answers(exam.id, sample_submission)
        assert controller.compute_result(exam.id) == controller.compute_result(exam.id)


class TestManualGrading:
    """Manual grading through the controller."""

    @pytest.fixture(autouse=True)
    def graded_exam(self, controller, sample_questions_data, sample_submission):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        controller.submit_answers(exam.id, sample_submission)
        self.exam_id = exam.id

    def test_replace_semantics(self, controller):
        controller.record_manual_grade(self.exam_id, "q4", 0.5, "first")
        exam = controller.record_manual_grade(self.exam_id, "q4", 1.0, "second")

        stored = controller.get_exam(self.exam_id)
        assert len(stored.manual_grading_records) == 1
        assert stored.manual_grades["q4"].score == 1.0
        assert stored.manual_grades["q4"].feedback == "second"
        assert exam.final_score == 3.0
        assert controller.compute_result(self.exam_id).percentage == 75.0

    def test_grade_racing_review_hold_is_rejected(self, controller, monkeypatch):
        stale = controller.get_exam(self.exam_id)
        controller.hold_for_review(self.exam_id)

        # A reviewer still holding the graded exam
        monkeypatch.setattr(controller.store, "find_exam", lambda exam_id: stale)
        with pytest.raises(ValidationError):
            controller.record_manual_grade(self.exam_id, "q4", 1.0)
        monkeypatch.undo()

        stored = controller.get_exam(self.exam_id)
        assert stored.status is ExamStatus.UNDER_REVIEW
        assert stored.manual_grades == {}

    def test_out_of_range_score_leaves_exam_unchanged(self, controller):
        with pytest.raises(ValidationError):
            controller.record_manual_grade(self.exam_id, "q4", 1.5)
        stored = controller.get_exam(self.exam_id)
        assert stored.status is ExamStatus.GRADED
        assert stored.manual_grades == {}

    def test_auto_gradable_question_rejected(self, controller):
        with pytest.raises(ValidationError):
            controller.record_manual_grade(self.exam_id, "q1", 1.0)

    def test_unknown_question(self, controller):
        with pytest.raises(UnknownQuestionError):
            controller.record_manual_grade(self.exam_id, "q99", 1.0)

    def test_manual_grade_before_submission(self, controller, clock, sample_questions_data):
        clock.advance(days=30)
        fresh = controller.generate_exam("cand-2", sample_questions_data)
        with pytest.raises(NotSubmittedError):
            controller.record_manual_grade(fresh.id, "q4", 0.5)

    def test_provisional_credit_when_review_not_required(self, repository, test_config, clock):
        test_config.grading.require_manual_review = False
        lenient = ExamLifecycleController(repository, test_config, clock)

        result = lenient.compute_result(self.exam_id)
        # The descriptive answer matched its reference by keyword overlap
        assert result.auto_score == 3
        assert result.percentage == 75.0
        assert result.qualified is True

        lenient.record_manual_grade(self.exam_id, "q4", 0.0)
        assert lenient.compute_result(self.exam_id).score == 2.0


class TestAttemptGate:
    """Re-attempt cooldown enforced at generation."""

    def test_cooldown_blocks_new_exam(self, controller, clock, sample_questions_data):
        controller.generate_exam("cand-1", sample_questions_data)
        clock.advance(days=9)

        assert not controller.check_attempt_eligibility("cand-1")
        with pytest.raises(AttemptNotAllowedError) as exc_info:
            controller.generate_exam("cand-1", sample_questions_data)
        assert exc_info.value.next_eligible_at == clock.now + timedelta(days=1)

    def test_new_exam_allowed_after_cooldown(self, controller, clock, sample_questions_data):
        first = controller.generate_exam("cand-1", sample_questions_data)
        clock.advance(days=10)
        assert controller.check_attempt_eligibility("cand-1")
        second = controller.generate_exam("cand-1", sample_questions_data)
        assert second.id != first.id

    def test_explicit_last_attempt(self, controller, clock):
        assert controller.check_attempt_eligibility("cand-9", None)
        assert not controller.check_attempt_eligibility("cand-9", clock.now - timedelta(days=9))
        assert controller.check_attempt_eligibility("cand-9", clock.now - timedelta(days=10))

    def test_older_explicit_attempt_does_not_skip_stored_exam(self, controller, clock,
                                                               sample_questions_data):
        first = controller.generate_exam("cand-1", sample_questions_data)
        clock.advance(days=1)

        older = clock.now - timedelta(days=30)
        assert not controller.check_attempt_eligibility("cand-1", older)
        with pytest.raises(AttemptNotAllowedError) as exc_info:
            controller.generate_exam("cand-1", sample_questions_data, last_attempt_at=older)
        assert exc_info.value.next_eligible_at == first.generated_at + timedelta(days=10)
        assert len(controller.list_exams(candidate_id="cand-1")) == 1

    def test_newer_explicit_attempt_extends_cooldown(self, controller, clock, sample_questions_data):
        controller.generate_exam("cand-1", sample_questions_data)
        clock.advance(days=12)
        with pytest.raises(AttemptNotAllowedError):
            controller.generate_exam("cand-1", sample_questions_data,
                                     last_attempt_at=clock.now - timedelta(days=2))

    def test_aware_last_attempt(self, controller, clock):
        recent = (clock.now - timedelta(days=3)).replace(tzinfo=timezone.utc)
        assert not controller.check_attempt_eligibility("cand-9", recent)
        assert controller.check_attempt_eligibility("cand-9", recent - timedelta(days=7))

    def test_other_candidates_unaffected(self, controller, sample_questions_data):
        controller.generate_exam("cand-1", sample_questions_data)
        assert controller.check_attempt_eligibility("cand-2")


class TestGeneration:
    """Question set validation at generation."""

    def test_invalid_question_set(self, controller, sample_questions_data):
        sample_questions_data[0]["options"] = ["Paris"]
        with pytest.raises(ValidationError):
            controller.generate_exam("cand-1", sample_questions_data)
        assert controller.list_exams(candidate_id="cand-1") == []

    def test_unknown_type(self, controller, sample_questions_data):
        sample_questions_data[0]["type"] = "essay"
        with pytest.raises(ValidationError):
            controller.generate_exam("cand-1", sample_questions_data)

    def test_skewed_question_reconciled_at_grading(self, controller):
        questions = [{
            "id": "s1", "text": "Pick both", "type": "single-choice",
            "options": ["A", "B", "C"], "correct_answer": ["A", "B"],
        }]
        exam = controller.generate_exam("cand-1", questions)
        graded = controller.submit_answers(exam.id, {"0": ["B", "A"]})
        assert graded.auto_score == 1

    def test_skewed_question_rejected_when_strict(self, repository, test_config, clock):
        test_config.grading.strict_question_schema = True
        strict = ExamLifecycleController(repository, test_config, clock)
        with pytest.raises(ValidationError):
            strict.generate_exam("cand-1", [{
                "text": "Pick both", "type": "mcq",
                "options": ["A", "B"], "correct_answer": ["A", "B"],
            }])


class TestReviewAndApproval:
    """Result visibility hold and approval."""

    @pytest.fixture(autouse=True)
    def graded_exam(self, controller, sample_questions_data, sample_submission):
        exam = controller.generate_exam("cand-1", sample_questions_data)
        controller.submit_answers(exam.id, sample_submission)
        self.exam_id = exam.id

    def test_hold_hides_result(self, controller):
        held = controller.hold_for_review(self.exam_id)
        assert held.status is ExamStatus.UNDER_REVIEW
        with pytest.raises(NotReadyError):
            controller.compute_result(self.exam_id)
        with pytest.raises(AlreadySubmittedError):
            controller.submit_answers(self.exam_id, {})

    def test_manual_grade_keeps_review_hold(self, controller):
        controller.hold_for_review(self.exam_id)
        exam = controller.record_manual_grade(self.exam_id, "q4", 1.0)
        assert exam.status is ExamStatus.UNDER_REVIEW
        assert controller.get_exam(self.exam_id).status is ExamStatus.UNDER_REVIEW

    def test_approve_releases_hold(self, controller, clock):
        controller.hold_for_review(self.exam_id)
        controller.record_manual_grade(self.exam_id, "q4", 1.0)
        approved = controller.approve_exam(self.exam_id, delay_minutes=30)

        assert approved.status is ExamStatus.MANUALLY_GRADED
        assert approved.approved is True
        assert approved.approved_at == clock.now
        assert approved.visible_at == clock.now + timedelta(minutes=30)
        assert controller.compute_result(self.exam_id).score == 3.0

    def test_approve_uses_configured_delay(self, controller, clock, test_config):
        approved = controller.approve_exam(self.exam_id)
        delay = test_config.review.visibility_delay_minutes
        assert approved.visible_at == clock.now + timedelta(minutes=delay)
        assert controller.get_exam(self.exam_id).approved is True

    def test_negative_delay_rejected(self, controller):
        with pytest.raises(ValidationError):
            controller.approve_exam(self.exam_id, delay_minutes=-5)

    def test_review_requires_submission(self, controller, clock, sample_questions_data):
        clock.advance(days=30)
        fresh = controller.generate_exam("cand-1", sample_questions_data)
        with pytest.raises(NotSubmittedError):
            controller.hold_for_review(fresh.id)
        with pytest.raises(NotSubmittedError):
            controller.approve_exam(fresh.id)

    def test_hold_is_idempotent(self, controller):
        controller.hold_for_review(self.exam_id)
        assert controller.hold_for_review(self.exam_id).status is ExamStatus.UNDER_REVIEW


class TestListing:
    """Listing through the controller."""

    def test_list_by_status(self, controller, clock, sample_questions_data, sample_submission):
        first = controller.generate_exam("cand-1", sample_questions_data)
        controller.generate_exam("cand-2", sample_questions_data)
        controller.submit_answers(first.id, sample_submission)

        graded = controller.list_exams(status="graded")
        assert [e.id for e in graded] == [first.id]
        assert len(controller.list_exams()) == 2
        assert controller.list_exams(qualified=False)[0].id == first.id
