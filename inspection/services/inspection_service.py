"""Two-phase inspection workflow: uploads, per-phase analysis and comparison.

Analyze and compare calls on the same assessment are serialized with a
per-assessment lock; uploads lock per (assessment, angle, phase) key. Detection
for the five angles of a phase fans out concurrently and nothing is persisted
until every angle has an analysis.
"""
import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, func, select

from inspection.config import settings
from inspection.database import async_session
from inspection.enums import REQUIRED_ANGLES, AssessmentPhase, AssessmentStatus, VehicleAngle
from inspection.models import Assessment, Comparison, Damage, Photo
from inspection.schemas.assessment import (
    AssessmentListItem,
    AssessmentResponse,
    DamageSummary,
    PhotoResponse,
)
from inspection.schemas.detection import PhotoAnalysis
from inspection.services import completeness, lifecycle, matching, report, storage
from inspection.services.completeness import PhaseStatus
from inspection.services.providers.registry import ProviderRegistry
from inspection.utils.exceptions import (
    AnalysisFailedError,
    InvalidInputError,
    NotFoundError,
    PhaseIncompleteError,
    PreconditionFailedError,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_angle(value) -> VehicleAngle:
    try:
        return VehicleAngle(value)
    except ValueError:
        allowed = ", ".join(a.value for a in VehicleAngle)
        raise InvalidInputError(f"Invalid angle. Must be one of: {allowed}")


def parse_phase(value) -> AssessmentPhase:
    try:
        return AssessmentPhase(value)
    except ValueError:
        allowed = ", ".join(p.value for p in AssessmentPhase)
        raise InvalidInputError(f"Invalid phase. Must be one of: {allowed}")


class InspectionService:
    def __init__(
        self,
        registry: ProviderRegistry,
        session_factory=async_session,
        max_concurrency: int | None = None,
        match_threshold: float | None = None,
    ):
        self.registry = registry
        self._session_factory = session_factory
        self._max_concurrency = max(1, max_concurrency or settings.analysis_concurrency)
        self._match_threshold = (
            settings.match_distance_threshold if match_threshold is None else match_threshold
        )
        self._locks: dict[tuple, asyncio.Lock] = {}

    def _lock(self, *key) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    # -- queries ---------------------------------------------------------

    async def _get_assessment(self, db, assessment_id: str) -> Assessment:
        assessment = await db.get(Assessment, assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment not found")
        return assessment

    async def _photos(self, db, assessment_id: str, phase: AssessmentPhase | None = None) -> list[Photo]:
        query = select(Photo).where(Photo.assessment_id == assessment_id)
        if phase is not None:
            query = query.where(Photo.phase == phase.value)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def _damages(self, db, assessment_id: str) -> list[Damage]:
        result = await db.execute(
            select(Damage).where(Damage.assessment_id == assessment_id).order_by(Damage.created_at)
        )
        return list(result.scalars().all())

    async def _response(self, db, assessment: Assessment) -> AssessmentResponse:
        photos = await self._photos(db, assessment.id)
        damages = await self._damages(db, assessment.id)
        result = await db.execute(select(Comparison).where(Comparison.assessment_id == assessment.id))
        comparisons = sorted(result.scalars().all(), key=lambda c: REQUIRED_ANGLES.index(VehicleAngle(c.angle)))
        return report.build_assessment_response(assessment, photos, damages, comparisons)

    @staticmethod
    def _refresh_costs(assessment: Assessment, damages: list[Damage]) -> None:
        assessment.total_damage_cost = report.total_damage_cost(damages)
        assessment.new_damage_cost = report.new_damage_cost(damages)

    # -- assessments -----------------------------------------------------

    async def start_assessment(self, vehicle_id: str, vehicle_name: str) -> AssessmentResponse:
        vehicle_id = (vehicle_id or "").strip()
        vehicle_name = (vehicle_name or "").strip()
        if not vehicle_id or not vehicle_name:
            raise InvalidInputError("vehicle_id and vehicle_name are required")

        async with self._session_factory() as db:
            assessment = Assessment(
                id=str(uuid.uuid4()),
                vehicle_id=vehicle_id,
                vehicle_name=vehicle_name,
                status=AssessmentStatus.PICKUP_IN_PROGRESS.value,
                total_damage_cost=0.0,
                new_damage_cost=0.0,
                created_at=_now(),
            )
            db.add(assessment)
            await db.commit()
            logger.info("Assessment %s started for vehicle %s", assessment.id, vehicle_id)
            return report.build_assessment_response(assessment, [], [])

    async def get_assessment(self, assessment_id: str) -> AssessmentResponse:
        async with self._session_factory() as db:
            assessment = await self._get_assessment(db, assessment_id)
            return await self._response(db, assessment)

    async def list_assessments(self, page: int = 1, limit: int = 10) -> tuple[list[AssessmentListItem], int]:
        page = max(page, 1)
        limit = max(limit, 1)
        async with self._session_factory() as db:
            total = await db.scalar(select(func.count()).select_from(Assessment))
            result = await db.execute(
                select(Assessment)
                .order_by(Assessment.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            items = [AssessmentListItem.model_validate(a) for a in result.scalars().all()]
        return items, total or 0

    async def delete_assessment(self, assessment_id: str) -> None:
        async with self._lock(assessment_id):
            async with self._session_factory() as db:
                assessment = await self._get_assessment(db, assessment_id)
                await db.execute(delete(Comparison).where(Comparison.assessment_id == assessment_id))
                await db.execute(delete(Damage).where(Damage.assessment_id == assessment_id))
                await db.execute(delete(Photo).where(Photo.assessment_id == assessment_id))
                await db.delete(assessment)
                await db.commit()
        storage.discard_assessment_files(assessment_id)
        for key in [k for k in self._locks if k[0] == assessment_id]:
            del self._locks[key]
        logger.info("Assessment %s deleted", assessment_id)

    # -- photos ----------------------------------------------------------

    async def _retire(self, db, assessment: Assessment, photo: Photo) -> None:
        await db.execute(
            delete(Damage).where(
                Damage.assessment_id == assessment.id,
                Damage.angle == photo.angle,
                Damage.phase == photo.phase,
            )
        )
        await db.delete(photo)
        if lifecycle.invalidate_phase_analysis(assessment, photo.phase):
            logger.info("Photo change on %s/%s invalidated the analysis of assessment %s",
                        photo.phase, photo.angle, assessment.id)
        await db.flush()

    async def upload_photo(
        self,
        assessment_id: str,
        angle,
        phase,
        filename: str,
        storage_path: str,
        file_size: int = 0,
    ) -> PhotoResponse:
        """Store the photo for (angle, phase), replacing any previous one and its damages."""
        angle = parse_angle(angle)
        phase = parse_phase(phase)
        if not filename or not storage_path:
            raise InvalidInputError("filename and storage_path are required")

        retired_path = None
        async with self._lock(assessment_id, angle, phase):
            async with self._session_factory() as db:
                assessment = await self._get_assessment(db, assessment_id)
                lifecycle.ensure_accepts_uploads(assessment, phase)

                result = await db.execute(
                    select(Photo).where(
                        Photo.assessment_id == assessment_id,
                        Photo.angle == angle.value,
                        Photo.phase == phase.value,
                    )
                )
                existing = result.scalars().first()
                if existing is not None:
                    retired_path = existing.storage_path
                    await self._retire(db, assessment, existing)
                    logger.info("Replacing %s/%s photo %s on assessment %s",
                                phase.value, angle.value, existing.id, assessment_id)

                photo = Photo(
                    id=str(uuid.uuid4()),
                    assessment_id=assessment_id,
                    angle=angle.value,
                    phase=phase.value,
                    filename=filename,
                    storage_path=storage_path,
                    file_size=file_size or 0,
                    uploaded_at=_now(),
                )
                db.add(photo)
                assessment.status = lifecycle.status_after_upload(
                    assessment.status, phase, pickup_analyzed=bool(assessment.pickup_analyzed_at)
                ).value
                if existing is not None:
                    await db.flush()
                    self._refresh_costs(assessment, await self._damages(db, assessment_id))
                await db.commit()

        if retired_path and retired_path != storage_path:
            storage.discard_photo_file(retired_path)
        return PhotoResponse.model_validate(photo)

    async def delete_photo(self, assessment_id: str, angle, phase) -> None:
        angle = parse_angle(angle)
        phase = parse_phase(phase)
        async with self._lock(assessment_id, angle, phase):
            async with self._session_factory() as db:
                assessment = await self._get_assessment(db, assessment_id)
                lifecycle.ensure_accepts_uploads(assessment, phase)
                result = await db.execute(
                    select(Photo).where(
                        Photo.assessment_id == assessment_id,
                        Photo.angle == angle.value,
                        Photo.phase == phase.value,
                    )
                )
                photo = result.scalars().first()
                if photo is None:
                    raise NotFoundError("Photo not found")
                storage_path = photo.storage_path
                await self._retire(db, assessment, photo)
                self._refresh_costs(assessment, await self._damages(db, assessment_id))
                await db.commit()
        storage.discard_photo_file(storage_path)

    # -- completeness ----------------------------------------------------

    async def phase_status(self, assessment_id: str, phase) -> PhaseStatus:
        phase = parse_phase(phase)
        async with self._session_factory() as db:
            await self._get_assessment(db, assessment_id)
            photos = await self._photos(db, assessment_id, phase)
        return completeness.phase_status(photos, phase)

    async def is_phase_complete(self, assessment_id: str, phase) -> bool:
        return (await self.phase_status(assessment_id, phase)).is_complete

    async def missing_angles(self, assessment_id: str, phase) -> list[VehicleAngle]:
        return (await self.phase_status(assessment_id, phase)).missing_angles

    # -- analysis --------------------------------------------------------

    async def _detect(self, photos: list[Photo], phase: AssessmentPhase) -> list[tuple[Photo, PhotoAnalysis]]:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _run(photo: Photo):
            async with semaphore:
                return photo, await self.registry.analyze(photo, VehicleAngle(photo.angle), phase)

        results = await asyncio.gather(*(_run(p) for p in photos), return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error("%d of %d %s analyses failed", len(failures), len(photos), phase.value)
            raise failures[0]

        for photo, analysis in results:
            if analysis.angle.value != photo.angle or analysis.phase != phase:
                raise AnalysisFailedError(
                    self.registry.active_name or "unknown",
                    f"analysis for photo {photo.id} attributed to {analysis.phase.value}/{analysis.angle.value}",
                )
        return results

    async def _analyze_phase(self, assessment_id: str, phase: AssessmentPhase) -> AssessmentResponse:
        async with self._lock(assessment_id):
            async with self._session_factory() as db:
                assessment = await self._get_assessment(db, assessment_id)
                if phase == AssessmentPhase.PICKUP:
                    lifecycle.ensure_can_analyze_pickup(assessment)
                else:
                    lifecycle.ensure_can_analyze_return(assessment)
                photos = await self._photos(db, assessment_id, phase)
                missing = completeness.missing_angles(photos, phase)
                if missing:
                    raise PhaseIncompleteError(phase, missing)

            photos.sort(key=lambda p: REQUIRED_ANGLES.index(VehicleAngle(p.angle)))
            analyses = await self._detect(photos, phase)

            async with self._session_factory() as db:
                assessment = await self._get_assessment(db, assessment_id)
                current = {p.id for p in await self._photos(db, assessment_id, phase)}
                if current != {p.id for p in photos}:
                    raise PreconditionFailedError(
                        f"{phase.value.capitalize()} photos changed during analysis, retry the analysis"
                    )

                await db.execute(
                    delete(Damage).where(Damage.assessment_id == assessment_id, Damage.phase == phase.value)
                )
                created_at = _now()
                count = 0
                for photo, analysis in analyses:
                    for detection in analysis.detections:
                        db.add(Damage(
                            id=str(uuid.uuid4()),
                            assessment_id=assessment_id,
                            photo_id=photo.id,
                            angle=photo.angle,
                            phase=phase.value,
                            description=detection.description,
                            severity=detection.severity.value,
                            location=detection.location,
                            bounding_box=(
                                json.dumps(detection.bounding_box.model_dump())
                                if detection.bounding_box is not None else None
                            ),
                            estimated_cost=detection.estimated_cost,
                            confidence=detection.confidence,
                            is_new=False,
                            created_at=created_at,
                        ))
                        count += 1
                await db.flush()

                self._refresh_costs(assessment, await self._damages(db, assessment_id))
                if phase == AssessmentPhase.PICKUP:
                    assessment.status = lifecycle.advance(
                        assessment.status, AssessmentStatus.PICKUP_COMPLETE
                    ).value
                    assessment.pickup_analyzed_at = created_at
                else:
                    assessment.status = lifecycle.advance(
                        assessment.status, AssessmentStatus.RETURN_IN_PROGRESS
                    ).value
                    assessment.return_analyzed_at = created_at
                await db.commit()

                logger.info("Analyzed %s phase of assessment %s: %d damages, total cost %.2f",
                            phase.value, assessment_id, count, assessment.total_damage_cost)
                return await self._response(db, assessment)

    async def analyze_pickup(self, assessment_id: str) -> AssessmentResponse:
        return await self._analyze_phase(assessment_id, AssessmentPhase.PICKUP)

    async def analyze_return(self, assessment_id: str) -> AssessmentResponse:
        return await self._analyze_phase(assessment_id, AssessmentPhase.RETURN)

    # -- comparison ------------------------------------------------------

    async def compare(self, assessment_id: str) -> AssessmentResponse:
        """Flag return damages without a nearby pickup counterpart as new and complete the assessment."""
        async with self._lock(assessment_id):
            async with self._session_factory() as db:
                assessment = await self._get_assessment(db, assessment_id)
                lifecycle.ensure_can_compare(assessment)

                damages = await self._damages(db, assessment_id)
                photos = await self._photos(db, assessment_id)
                result = matching.compare_damages(
                    report.group_damages(damages, AssessmentPhase.PICKUP),
                    report.group_damages(damages, AssessmentPhase.RETURN),
                    self._match_threshold,
                )

                new_ids = result.new_damage_ids
                for damage in damages:
                    if damage.phase == AssessmentPhase.RETURN.value:
                        damage.is_new = damage.id in new_ids

                await db.execute(delete(Comparison).where(Comparison.assessment_id == assessment_id))
                await db.flush()

                pickup_photos = report.group_photos(photos, AssessmentPhase.PICKUP)
                return_photos = report.group_photos(photos, AssessmentPhase.RETURN)
                compared_at = _now()
                for angle, outcome in result.angles.items():
                    db.add(Comparison(
                        id=str(uuid.uuid4()),
                        assessment_id=assessment_id,
                        angle=angle.value,
                        pickup_photo_id=pickup_photos[angle].id if pickup_photos[angle] else None,
                        return_photo_id=return_photos[angle].id if return_photos[angle] else None,
                        matched_count=len(outcome.matched),
                        new_damages_count=len(outcome.new),
                        new_damages_cost=outcome.new_cost,
                        compared_at=compared_at,
                    ))

                self._refresh_costs(assessment, damages)
                assessment.status = lifecycle.advance(assessment.status, AssessmentStatus.COMPLETED).value
                if not assessment.completed_at:
                    assessment.completed_at = compared_at
                await db.commit()

                logger.info("Compared assessment %s: %d new damages, new cost %.2f",
                            assessment_id, len(new_ids), assessment.new_damage_cost)
                return await self._response(db, assessment)

    # -- reporting -------------------------------------------------------

    async def summary(self, assessment_id: str) -> DamageSummary:
        async with self._session_factory() as db:
            await self._get_assessment(db, assessment_id)
            damages = await self._damages(db, assessment_id)
        return report.build_summary(damages)
