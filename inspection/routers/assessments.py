from dataclasses import asdict

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from inspection.config import settings
from inspection.dependencies import get_inspection_service
from inspection.enums import AssessmentPhase, VehicleAngle
from inspection.schemas.assessment import AssessmentCreate, PhaseStatusResponse
from inspection.services import storage
from inspection.services.inspection_service import InspectionService
from inspection.utils.exceptions import AppException, InvalidInputError
from inspection.utils.response import paginated, success_response

router = APIRouter(prefix="/assessments", tags=["assessments"])


@router.post("", status_code=201)
async def create_assessment(
    payload: AssessmentCreate,
    service: InspectionService = Depends(get_inspection_service),
):
    assessment = await service.start_assessment(payload.vehicle_id, payload.vehicle_name)
    return success_response(data=assessment.model_dump(mode="json"))


@router.get("")
async def list_assessments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: InspectionService = Depends(get_inspection_service),
):
    items, total = await service.list_assessments(page, limit)
    data = paginated([item.model_dump(mode="json") for item in items], page, limit, total)
    return success_response(data=data)


@router.get("/{assessment_id}")
async def get_assessment(assessment_id: str, service: InspectionService = Depends(get_inspection_service)):
    assessment = await service.get_assessment(assessment_id)
    return success_response(data=assessment.model_dump(mode="json"))


@router.delete("/{assessment_id}")
async def delete_assessment(assessment_id: str, service: InspectionService = Depends(get_inspection_service)):
    await service.delete_assessment(assessment_id)
    return success_response(data={"id": assessment_id}, message="Assessment deleted")


@router.post("/{assessment_id}/photos/{angle}/{phase}", status_code=201)
async def upload_photo(
    assessment_id: str,
    angle: VehicleAngle,
    phase: AssessmentPhase,
    file: UploadFile | None = File(default=None),
    storage_url: str | None = Form(default=None),
    filename: str | None = Form(default=None),
    service: InspectionService = Depends(get_inspection_service),
):
    if file is None and not storage_url:
        raise InvalidInputError("Either a file or a storage_url is required")

    if file is not None:
        name = file.filename or filename or "photo.jpg"
        if not storage.is_allowed_image(name):
            raise InvalidInputError(
                f"Unsupported image type. Allowed: {', '.join(sorted(storage.ALLOWED_EXTENSIONS))}"
            )
        content = await file.read()
        if not content:
            raise InvalidInputError("Uploaded file is empty")
        if len(content) > settings.max_photo_size_bytes:
            raise AppException("Photo exceeds maximum allowed size", status_code=413)
        storage_path = storage.save_photo_file(assessment_id, angle.value, phase.value, name, content)
        file_size = len(content)
    else:
        if not storage_url.startswith(("http://", "https://")):
            raise InvalidInputError("storage_url must be an http(s) URL")
        name = filename or storage_url.rsplit("/", 1)[-1] or "photo.jpg"
        storage_path = storage_url
        file_size = 0

    try:
        photo = await service.upload_photo(assessment_id, angle, phase, name, storage_path, file_size)
    except Exception:
        if file is not None:
            storage.discard_photo_file(storage_path)
        raise
    return success_response(data=photo.model_dump(mode="json"))


@router.delete("/{assessment_id}/photos/{angle}/{phase}")
async def delete_photo(
    assessment_id: str,
    angle: VehicleAngle,
    phase: AssessmentPhase,
    service: InspectionService = Depends(get_inspection_service),
):
    await service.delete_photo(assessment_id, angle, phase)
    return success_response(data={"angle": angle.value, "phase": phase.value}, message="Photo deleted")


@router.get("/{assessment_id}/phase-status/{phase}")
async def get_phase_status(
    assessment_id: str,
    phase: AssessmentPhase,
    service: InspectionService = Depends(get_inspection_service),
):
    status = await service.phase_status(assessment_id, phase)
    data = PhaseStatusResponse(**asdict(status)).model_dump(mode="json")
    return success_response(data=data)


@router.post("/{assessment_id}/analyze/pickup")
async def analyze_pickup(assessment_id: str, service: InspectionService = Depends(get_inspection_service)):
    assessment = await service.analyze_pickup(assessment_id)
    return success_response(data=assessment.model_dump(mode="json"), message="Pickup photos analyzed")


@router.post("/{assessment_id}/analyze/return")
async def analyze_return(assessment_id: str, service: InspectionService = Depends(get_inspection_service)):
    assessment = await service.analyze_return(assessment_id)
    return success_response(data=assessment.model_dump(mode="json"), message="Return photos analyzed")


@router.post("/{assessment_id}/compare")
async def compare(assessment_id: str, service: InspectionService = Depends(get_inspection_service)):
    assessment = await service.compare(assessment_id)
    return success_response(data=assessment.model_dump(mode="json"), message="Comparison completed")


@router.get("/{assessment_id}/summary")
async def get_summary(assessment_id: str, service: InspectionService = Depends(get_inspection_service)):
    summary = await service.summary(assessment_id)
    return success_response(data=summary.model_dump(mode="json"))
