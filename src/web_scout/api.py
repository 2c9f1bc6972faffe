"""HTTP surface for the proxy, the scrape endpoints, and preview records.

Single-URL endpoints degrade to ``200`` with empty or partial data so a UI
never breaks on one bad site. The batch endpoint is stricter and answers
``400``/``500`` for problems with the request as a whole.
"""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence
from typing import Annotated, Any

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel, Field, field_validator

from .config import DEFAULT_DATA_DIR, ScoutConfig
from .errors import BudgetExceededError, FetchError, ScoutError, ValidationError
from .extraction import derive_first_name, pick_best_email
from .logging_utils import configure_logging, get_logger
from .models import EnrichmentResult
from .pipeline import Services, build_services
from .previews import DEFAULT_CATEGORY
from .validation import is_supported_url

PROXY_CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=60"

router = APIRouter()


class CreatePreviewRequest(BaseModel):
    website_url: str
    chatbot_script: str = Field(min_length=1, max_length=20000)
    category: str = Field(default=DEFAULT_CATEGORY, min_length=1, max_length=100)
    name: str | None = Field(default=None, min_length=1, max_length=100)
    id: str | None = Field(default=None, min_length=6)

    @field_validator("website_url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        if not is_supported_url(value.strip()):
            raise ValueError("website_url must be an absolute http(s) URL")
        return value.strip()


class ScrapeBatchRequest(BaseModel):
    urls: list[str] = Field(default_factory=list)


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


def _error(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def scrape_payload(result: EnrichmentResult) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "emails": list(result.emails),
        "socials": [social.to_dict() for social in result.socials],
    }
    if result.error:
        payload["error"] = result.error
    return payload


def batch_result_payload(result: EnrichmentResult) -> dict[str, Any]:
    payload: dict[str, Any] = {"domain": result.domain, "status": result.status.value}
    email = pick_best_email(list(result.emails))
    if email:
        payload["email"] = email
        first_name = derive_first_name(email)
        if first_name:
            payload["firstName"] = first_name
    if result.socials:
        payload["socials"] = [social.to_dict() for social in result.socials]
    if result.error:
        payload["error"] = result.error
    return payload


@router.get("/proxy")
def proxy_page(
    request: Request,
    services: ServicesDep,
    url: Annotated[str | None, Query()] = None,
    fast: Annotated[str, Query()] = "0",
) -> Response:
    if not url:
        return _error("Missing url", status.HTTP_400_BAD_REQUEST)
    try:
        rendered = services.proxy.render(
            url,
            fast=fast.lower() in {"1", "true", "yes"},
            if_none_match=request.headers.get("if-none-match"),
        )
    except ValidationError as exc:
        return _error(str(exc), status.HTTP_400_BAD_REQUEST)
    except FetchError as exc:
        get_logger().warning("Proxy fetch failed for %s: %s", url, exc)
        return _error(str(exc) or "Proxy error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    headers = {"Cache-Control": PROXY_CACHE_CONTROL, "ETag": rendered.etag}
    if rendered.status == status.HTTP_304_NOT_MODIFIED:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)
    return HTMLResponse(rendered.body, headers=headers)


@router.get("/scrape-emails")
def scrape_emails(services: ServicesDep, url: Annotated[str | None, Query()] = None) -> JSONResponse:
    if not url:
        return _error("Missing url", status.HTTP_400_BAD_REQUEST)
    try:
        result = services.crawler.enrich(url.strip())
    except BudgetExceededError as exc:
        partial = scrape_payload(exc.partial) if isinstance(exc.partial, EnrichmentResult) else {}
        partial.pop("error", None)
        return JSONResponse(
            {"error": str(exc), "emails": [], "socials": [], **partial},
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(exc.retry_after)},
        )
    return JSONResponse(scrape_payload(result))


@router.post("/scrape-emails/batch")
def scrape_emails_batch(body: ScrapeBatchRequest, services: ServicesDep) -> JSONResponse:
    try:
        results = services.orchestrator.scrape_batch(body.urls)
    except ValidationError as exc:
        return _error(str(exc), status.HTTP_400_BAD_REQUEST, results=[])
    except ScoutError as exc:
        get_logger().error("Batch scrape failed: %s", exc)
        return _error(str(exc) or "Batch error", status.HTTP_500_INTERNAL_SERVER_ERROR, results=[])
    return JSONResponse({"results": [batch_result_payload(result) for result in results]})


@router.post("/create-preview", status_code=status.HTTP_201_CREATED)
def create_preview(body: CreatePreviewRequest, services: ServicesDep) -> dict[str, str]:
    record = services.previews.create(
        body.website_url,
        body.chatbot_script,
        category=body.category,
        name=body.name,
        record_id=body.id,
    )
    return {"id": record.id}


@router.get("/preview/{record_id}")
def get_preview(record_id: str, services: ServicesDep) -> JSONResponse:
    record = services.previews.get(record_id)
    if record is None:
        return _error("Not found", status.HTTP_404_NOT_FOUND)
    return JSONResponse(record.to_dict())


@router.delete("/preview/{record_id}")
def delete_preview(record_id: str, services: ServicesDep) -> dict[str, bool]:
    services.previews.delete(record_id)
    return {"ok": True}


@router.get("/previews")
def list_previews(services: ServicesDep) -> dict[str, Any]:
    return {"previews": [record.to_dict() for record in services.previews.list_records()]}


@router.get("/healthz")
def healthz(services: ServicesDep) -> dict[str, Any]:
    return {
        "status": "ok",
        "caches": {
            services.proxy_cache.name: len(services.proxy_cache),
            services.enrichment_cache.name: len(services.enrichment_cache),
        },
    }


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg', 'invalid')}" if field else str(first.get("msg", "invalid"))
    else:
        message = "Invalid request"
    return _error(message, status.HTTP_400_BAD_REQUEST)


def create_app(
    config: ScoutConfig | None = None,
    *,
    services: Services | None = None,
    logger: logging.Logger | None = None,
) -> FastAPI:
    """Create the app around one ``Services`` bundle shared by every request."""
    logger = logger or get_logger()
    config = config or (services.config if services else ScoutConfig())
    app = FastAPI(title="web-scout", description="Site proxy and contact enrichment API.")
    app.state.services = services or build_services(config, logger=logger)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)
    return app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="web-scout HTTP server.")
    parser.add_argument("--host", default=os.getenv("WEB_SCOUT_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("WEB_SCOUT_PORT", "8000")))
    parser.add_argument(
        "--data-dir",
        default=os.getenv("WEB_SCOUT_DATA_DIR", DEFAULT_DATA_DIR),
        help="Directory for preview records.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def serve(argv: Sequence[str] | None = None) -> int:
    """Server entrypoint."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    app = create_app(ScoutConfig(data_dir=args.data_dir, show_progress=False))
    uvicorn.run(app, host=args.host, port=args.port, log_level="debug" if args.verbose else "info")
    return 0


if __name__ == "__main__":
    raise SystemExit(serve())
