"""Assessment status transitions.

pickup_in_progress -> pickup_complete -> return_in_progress -> completed.
Status never moves backwards.
"""
from inspection.enums import AssessmentPhase, AssessmentStatus
from inspection.utils.exceptions import InvalidTransitionError, PreconditionFailedError

STATUS_ORDER: tuple[AssessmentStatus, ...] = (
    AssessmentStatus.PICKUP_IN_PROGRESS,
    AssessmentStatus.PICKUP_COMPLETE,
    AssessmentStatus.RETURN_IN_PROGRESS,
    AssessmentStatus.COMPLETED,
)


def rank(status) -> int:
    return STATUS_ORDER.index(AssessmentStatus(status))


def advance(current, target) -> AssessmentStatus:
    """Return the status to store when moving from ``current`` towards ``target``.

    Moving to the same status is a no-op; moving backwards raises.
    """
    current = AssessmentStatus(current)
    target = AssessmentStatus(target)
    if rank(target) < rank(current):
        raise InvalidTransitionError(
            f"Cannot move assessment from {current.value} back to {target.value}"
        )
    return target


def status_after_upload(current, phase: AssessmentPhase, pickup_analyzed: bool = True) -> AssessmentStatus:
    """Return photos start the return phase once pickup is complete and still analyzed."""
    current = AssessmentStatus(current)
    if (
        AssessmentPhase(phase) == AssessmentPhase.RETURN
        and current == AssessmentStatus.PICKUP_COMPLETE
        and pickup_analyzed
    ):
        return advance(current, AssessmentStatus.RETURN_IN_PROGRESS)
    return current


def ensure_accepts_uploads(assessment, phase: AssessmentPhase) -> None:
    status = AssessmentStatus(assessment.status)
    if status == AssessmentStatus.COMPLETED:
        raise PreconditionFailedError("Assessment is completed; photos can no longer be changed")
    if AssessmentPhase(phase) == AssessmentPhase.PICKUP and rank(status) > rank(AssessmentStatus.PICKUP_COMPLETE):
        raise PreconditionFailedError("Return phase has started; pickup photos can no longer be changed")


def invalidate_phase_analysis(assessment, phase: AssessmentPhase) -> bool:
    """Clear the phase's analysis stamp after one of its photos changed.

    Returns True if the phase had been analyzed. Status is left as is.
    """
    attr = "pickup_analyzed_at" if AssessmentPhase(phase) == AssessmentPhase.PICKUP else "return_analyzed_at"
    if not getattr(assessment, attr):
        return False
    setattr(assessment, attr, None)
    return True


def ensure_can_analyze_pickup(assessment) -> None:
    if rank(assessment.status) > rank(AssessmentStatus.PICKUP_COMPLETE):
        raise PreconditionFailedError(
            f"Pickup can no longer be analyzed (assessment is {assessment.status})"
        )


def ensure_can_analyze_return(assessment) -> None:
    if AssessmentStatus(assessment.status) == AssessmentStatus.COMPLETED:
        raise PreconditionFailedError("Return can no longer be analyzed (assessment is completed)")
    if not assessment.pickup_analyzed_at:
        raise PreconditionFailedError("Pickup photos must be analyzed before return photos")


def ensure_can_compare(assessment) -> None:
    if not assessment.pickup_analyzed_at:
        raise PreconditionFailedError("Pickup photos must be analyzed before comparison")
    if not assessment.return_analyzed_at:
        raise PreconditionFailedError("Return photos must be analyzed before comparison")
