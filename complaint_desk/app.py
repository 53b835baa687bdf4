"""Application factory."""

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from complaint_desk.api import ROUTERS
from complaint_desk.config import Settings
from complaint_desk.database import init_db, make_engine
from complaint_desk.exceptions import ComplaintDeskError

logger = logging.getLogger(__name__)

_REQUEST_PARTS = {"body", "query", "path", "header", "cookie"}


def _field_name(loc) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in _REQUEST_PARTS:
        parts = parts[1:]
    return ".".join(parts) or "request"


def _message(error: dict) -> str:
    message = error.get("msg", "Invalid value.")
    # pydantic prefixes messages raised from custom validators
    prefix = "Value error, "
    return message[len(prefix) :] if message.startswith(prefix) else message


def validation_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    """Group pydantic errors by field name."""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        errors.setdefault(_field_name(error.get("loc", ())), []).append(_message(error))
    return errors


async def handle_app_error(request: Request, exc: ComplaintDeskError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = validation_errors(exc)
    first = next(iter(errors.values()))[0] if errors else "The given data was invalid."
    return JSONResponse(status_code=422, content={"message": first, "errors": errors})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to ``Settings.from_env()``)

    Returns:
        FastAPI: Application with routes, exception handlers and an
        initialized database
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("complaint_desk").setLevel(settings.log_level)

    engine = make_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title="complaint-desk")
    app.state.settings = settings
    app.state.engine = engine

    for router in ROUTERS:
        app.include_router(router)

    app.add_exception_handler(ComplaintDeskError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)

    logger.info("complaint-desk started with database %s", engine.url.render_as_string())
    return app
