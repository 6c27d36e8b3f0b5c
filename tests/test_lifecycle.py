from types import SimpleNamespace

import pytest

from inspection.enums import AssessmentPhase, AssessmentStatus
from inspection.services import lifecycle
from inspection.utils.exceptions import InvalidTransitionError, PreconditionFailedError


def test_advance_moves_forward():
    assert lifecycle.advance(AssessmentStatus.PICKUP_IN_PROGRESS, AssessmentStatus.PICKUP_COMPLETE) == (
        AssessmentStatus.PICKUP_COMPLETE
    )
    assert lifecycle.advance("return_in_progress", "completed") == AssessmentStatus.COMPLETED


def test_advance_to_same_status_is_allowed():
    assert lifecycle.advance("completed", "completed") == AssessmentStatus.COMPLETED


def test_advance_never_regresses():
    with pytest.raises(InvalidTransitionError):
        lifecycle.advance(AssessmentStatus.COMPLETED, AssessmentStatus.PICKUP_COMPLETE)


def test_return_upload_starts_return_phase_only_after_pickup_complete():
    assert lifecycle.status_after_upload("pickup_complete", AssessmentPhase.RETURN) == (
        AssessmentStatus.RETURN_IN_PROGRESS
    )
    assert lifecycle.status_after_upload("pickup_in_progress", AssessmentPhase.RETURN) == (
        AssessmentStatus.PICKUP_IN_PROGRESS
    )
    assert lifecycle.status_after_upload("pickup_complete", AssessmentPhase.PICKUP) == (
        AssessmentStatus.PICKUP_COMPLETE
    )


def test_completed_assessment_rejects_uploads():
    with pytest.raises(PreconditionFailedError):
        lifecycle.ensure_accepts_uploads(SimpleNamespace(status="completed"), AssessmentPhase.RETURN)


def test_pickup_cannot_be_reanalyzed_after_return_started():
    lifecycle.ensure_can_analyze_pickup(SimpleNamespace(status="pickup_complete"))
    with pytest.raises(PreconditionFailedError):
        lifecycle.ensure_can_analyze_pickup(SimpleNamespace(status="return_in_progress"))


def test_return_requires_analyzed_pickup():
    with pytest.raises(PreconditionFailedError):
        lifecycle.ensure_can_analyze_return(SimpleNamespace(status="pickup_in_progress", pickup_analyzed_at=None))


def test_compare_requires_both_phases():
    with pytest.raises(PreconditionFailedError):
        lifecycle.ensure_can_compare(SimpleNamespace(pickup_analyzed_at="t", return_analyzed_at=None))
    lifecycle.ensure_can_compare(SimpleNamespace(pickup_analyzed_at="t", return_analyzed_at="t"))


def test_pickup_photos_frozen_once_return_started():
    lifecycle.ensure_accepts_uploads(SimpleNamespace(status="pickup_complete"), AssessmentPhase.PICKUP)
    lifecycle.ensure_accepts_uploads(SimpleNamespace(status="return_in_progress"), AssessmentPhase.RETURN)
    with pytest.raises(PreconditionFailedError):
        lifecycle.ensure_accepts_uploads(SimpleNamespace(status="return_in_progress"), AssessmentPhase.PICKUP)


def test_return_upload_waits_for_pickup_reanalysis():
    assert lifecycle.status_after_upload("pickup_complete", AssessmentPhase.RETURN, pickup_analyzed=False) == (
        AssessmentStatus.PICKUP_COMPLETE
    )


def test_invalidate_phase_analysis_clears_only_that_phase():
    assessment = SimpleNamespace(status="return_in_progress", pickup_analyzed_at="t1", return_analyzed_at="t2")

    assert lifecycle.invalidate_phase_analysis(assessment, AssessmentPhase.RETURN)
    assert assessment.return_analyzed_at is None
    assert assessment.pickup_analyzed_at == "t1"
    assert assessment.status == "return_in_progress"
    assert not lifecycle.invalidate_phase_analysis(assessment, AssessmentPhase.RETURN)
