import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from inspection.utils.response import error_response

logger = logging.getLogger(__name__)


class AppException(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str, status_code: int | None = None, data: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.data = data


class InvalidInputError(AppException):
    status_code = 400
    code = "validation_error"


class NotFoundError(AppException):
    status_code = 404
    code = "not_found"


class PreconditionFailedError(AppException):
    status_code = 409
    code = "precondition_failed"


class PhaseIncompleteError(PreconditionFailedError):
    code = "phase_incomplete"

    def __init__(self, phase, missing_angles: list):
        self.phase = phase
        self.missing_angles = list(missing_angles)
        names = ", ".join(a.value for a in self.missing_angles)
        super().__init__(
            f"Not all angles captured for {phase.value} phase (missing: {names})",
            data={"phase": phase.value, "missing_angles": [a.value for a in self.missing_angles]},
        )


class InvalidTransitionError(PreconditionFailedError):
    code = "invalid_transition"


class AnalysisFailedError(AppException):
    status_code = 502
    code = "analysis_failed"

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider} analysis failed: {message}", data={"provider": provider})


class ProviderNotFoundError(NotFoundError):
    pass


class ProviderInvalidError(AppException):
    status_code = 400
    code = "provider_invalid"


class NoActiveProviderError(AppException):
    status_code = 503
    code = "no_active_provider"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.message, data=exc.data, code=exc.code),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=error_response(
                "Invalid request",
                data=jsonable_encoder(exc.errors()),
                code=InvalidInputError.code,
            ),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_response("Internal server error", code="internal_error"),
        )
