import logging
import os
import shutil
import uuid

from inspection.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def is_allowed_image(filename: str) -> bool:
    return file_extension(filename) in ALLOWED_EXTENSIONS


def assessment_dir(assessment_id: str) -> str:
    return os.path.join(settings.data_dir, "assessments", assessment_id)


def save_photo_file(assessment_id: str, angle: str, phase: str, filename: str, content: bytes) -> str:
    """Write an uploaded photo under the assessment folder and return its path."""
    folder = assessment_dir(assessment_id)
    os.makedirs(folder, exist_ok=True)
    stored_name = f"{phase}_{angle}_{uuid.uuid4().hex}{file_extension(filename) or '.jpg'}"
    file_path = os.path.abspath(os.path.join(folder, stored_name))
    with open(file_path, "wb") as f:
        f.write(content)
    return file_path


def discard_photo_file(storage_path: str | None) -> None:
    """Remove a locally stored photo; remote locators are left alone."""
    if not storage_path or storage_path.startswith(("http://", "https://")):
        return
    try:
        os.remove(storage_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove photo file %s: %s", storage_path, e)


def discard_assessment_files(assessment_id: str) -> None:
    shutil.rmtree(assessment_dir(assessment_id), ignore_errors=True)
