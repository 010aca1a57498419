"""
Domain errors raised by the game lifecycle services.

Routers do not translate these one by one; `register_exception_handlers`
maps every `GameConsoleError` to a JSON response with its status code.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class GameConsoleError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(GameConsoleError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Forbidden(GameConsoleError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class InvalidState(GameConsoleError):
    code = "invalid_state"


class InvalidInput(GameConsoleError):
    code = "invalid_input"


class DuplicateVersionError(GameConsoleError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_version"


class DuplicateGameError(GameConsoleError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_game"


class ConcurrentUpdateError(GameConsoleError):
    status_code = status.HTTP_409_CONFLICT
    code = "concurrent_update"


class ExtractionError(GameConsoleError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "extraction_failed"


class PayloadTooLarge(GameConsoleError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = "payload_too_large"


def _handle_game_console_error(_request: Request, exc: GameConsoleError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GameConsoleError, _handle_game_console_error)
