# assignment_scraper/server.py
"""
HTTP boundary: one authenticated action for the workflow caller and a
liveness probe.

    POST /scrape   header X-Webhook-Secret  ->  ScrapeResult JSON
    GET  /         -> "OK"
"""
import hmac
import logging
import os
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from .config import Settings, load_settings
from .errors import ConfigurationMissing, ScraperError, Unauthorized
from .mirror import DriveMirror, mirror_from_settings
from .models import ScrapeResult
from .runner import configure_logging, run_scrape

logger = logging.getLogger(__name__)

Scraper = Callable[[Settings, Optional[DriveMirror]], Awaitable[ScrapeResult]]

_UNSET = object()


class ErrorBody(BaseModel):
    error: str


ERROR_RESPONSES = {code: {"model": ErrorBody} for code in (400, 401, 500)}


def _error(exc: ScraperError) -> JSONResponse:
    if exc.status_code < 500:  # caller mistakes carry a plain message
        body = ErrorBody(error=str(exc))
    else:
        body = ErrorBody(error=f"{type(exc).__name__}: {exc}")
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def secret_matches(expected: str, supplied: Optional[str]) -> bool:
    """Constant-time, case-sensitive; an unset secret never matches."""
    if not expected or supplied is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


def create_app(settings: Optional[Settings] = None, mirror=_UNSET,
               scraper: Optional[Scraper] = None) -> FastAPI:
    """Build the app; anything not passed in is loaded once at start-up."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.settings is None:
            app.state.settings = load_settings()
        if app.state.mirror is _UNSET:
            app.state.mirror = mirror_from_settings(app.state.settings)
        yield

    app = FastAPI(title="Assignment Center Scraper", lifespan=lifespan)
    app.state.settings = settings
    app.state.mirror = mirror
    app.state.scraper = scraper or run_scrape

    @app.get("/", response_class=PlainTextResponse)
    async def health() -> str:
        return "OK"

    @app.post("/scrape", responses=ERROR_RESPONSES)
    async def scrape(x_webhook_secret: Optional[str] = Header(default=None)):
        cfg: Settings = app.state.settings
        active_mirror = None if app.state.mirror is _UNSET else app.state.mirror

        if not secret_matches(cfg.webhook_secret, x_webhook_secret):
            logger.warning("rejected /scrape call with a bad or missing secret")
            return _error(Unauthorized())
        missing = cfg.missing()
        if missing:
            return _error(ConfigurationMissing(missing))

        try:
            result = await app.state.scraper(cfg, active_mirror)
        except ScraperError as e:
            logger.error("scrape failed: %s: %s", type(e).__name__, e)
            return _error(e)
        except Exception as e:
            logger.exception("unexpected scrape failure")
            body = ErrorBody(error=f"{type(e).__name__}: {e}")
            return JSONResponse(status_code=500, content=body.model_dump())

        logger.info("scrape finished with %d assignments", len(result.assignments))
        return JSONResponse(status_code=200, content=result.to_dict())

    return app


def main() -> None:
    load_dotenv()
    configure_logging()
    port = int(os.getenv("PORT", "3000"))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
