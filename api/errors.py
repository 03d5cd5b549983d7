"""Map domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.schemas import ConflictResponse, RoundStateResponse
from core.errors import (
    DeckExhausted,
    InvalidCardCode,
    InvalidInput,
    NotFound,
    StateConflict,
    Unauthenticated,
)

logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra}, headers=NO_STORE)


async def _unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
    return _error(401, exc.message)


async def _not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return _error(404, exc.message)


async def _invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    return _error(400, exc.message)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle malformed request bodies."""
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
    ]
    return _error(400, InvalidInput.message, details=details)


async def _state_conflict_handler(request: Request, exc: StateConflict) -> JSONResponse:
    """Return the current snapshot so the client can resync."""
    body = ConflictResponse(
        error=exc.message,
        reason=exc.reason.value,
        current=RoundStateResponse.from_snapshot(exc.snapshot) if exc.snapshot else None,
    )
    return JSONResponse(
        status_code=409,
        content=body.model_dump(mode="json", by_alias=True),
        headers=NO_STORE,
    )


async def _deck_exhausted_handler(request: Request, exc: DeckExhausted) -> JSONResponse:
    body = ConflictResponse(
        error=exc.message,
        current=RoundStateResponse.from_snapshot(exc.snapshot) if exc.snapshot else None,
    )
    return JSONResponse(
        status_code=410,
        content=body.model_dump(mode="json", by_alias=True),
        headers=NO_STORE,
    )


async def _invalid_card_code_handler(request: Request, exc: InvalidCardCode) -> JSONResponse:
    """Corrupt stored hand data: fail closed without details."""
    logger.error("%s %s: stored round data is corrupt: %s", request.method, request.url.path, exc)
    return _error(500, "Internal Server Error")


async def _internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s error", request.method, request.url.path, exc_info=exc)
    return _error(500, "Internal Server Error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain error handlers on an app."""
    app.add_exception_handler(Unauthenticated, _unauthenticated_handler)
    app.add_exception_handler(NotFound, _not_found_handler)
    app.add_exception_handler(InvalidInput, _invalid_input_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StateConflict, _state_conflict_handler)
    app.add_exception_handler(DeckExhausted, _deck_exhausted_handler)
    app.add_exception_handler(InvalidCardCode, _invalid_card_code_handler)
    app.add_exception_handler(Exception, _internal_error_handler)
