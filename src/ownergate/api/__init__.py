"""FastAPI application factory for the ownergate webhook server."""

from __future__ import annotations

import logging
import os
from typing import Awaitable, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from ownergate.api.routers import health, webhooks
from ownergate.codeowners import RuleCache
from ownergate.models import CheckOutcome
from ownergate.observability import add_observability_middleware

log = logging.getLogger("ownergate.api")

Checker = Callable[..., Awaitable[CheckOutcome]]


def create_app(
    webhook_secret: str = "",
    checker: Checker | None = None,
    rule_cache: RuleCache | None = None,
) -> FastAPI:
    """Build and return a configured FastAPI application.

    ``checker(ctx, cache=...)`` runs one PR check; it defaults to the GitHub
    implementation.
    """
    app = FastAPI(
        title="ownergate",
        description="Code owner approval gate for pull requests",
        version="0.1.0",
    )

    if checker is None:
        from ownergate.integrations.github_host import check_pull_request
        checker = check_pull_request

    app.state.webhook_secret = webhook_secret or os.environ.get(
        "OWNERGATE_GITHUB_WEBHOOK_SECRET", ""
    )
    app.state.checker = checker
    app.state.rule_cache = rule_cache if rule_cache is not None else RuleCache()

    if not app.state.webhook_secret:
        log.warning(
            "OWNERGATE_GITHUB_WEBHOOK_SECRET not set; webhook signature verification is DISABLED"
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        log.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": str(exc)},
        )

    add_observability_middleware(app)

    app.include_router(health.router)
    app.include_router(webhooks.router)

    return app
