"""GitHub webhook receiver endpoint.

Handles:
  - pull_request opened/synchronize/reopened/ready_for_review → run the check
  - pull_request_review submitted/edited/dismissed → re-run the check
Other deliveries are acknowledged and ignored.
"""

from __future__ import annotations

import json
import logging
import os

from fastapi import APIRouter, HTTPException, Request

from ownergate.api.auth import auth_required, verify_github_signature
from ownergate.context import NotAPullRequest, PullRequestContext
from ownergate.defaults import DEFAULT_WEBHOOK_MAX_BODY_BYTES

log = logging.getLogger("ownergate.webhooks")

router = APIRouter(tags=["webhooks"])

_HANDLED_ACTIONS: dict[str, frozenset[str]] = {
    "pull_request": frozenset({"opened", "synchronize", "reopened", "ready_for_review"}),
    "pull_request_review": frozenset({"submitted", "edited", "dismissed"}),
}


def _parse_max_body() -> int:
    """Parse OWNERGATE_WEBHOOK_MAX_BODY_BYTES safely; default 1 MiB."""
    raw = os.environ.get("OWNERGATE_WEBHOOK_MAX_BODY_BYTES", str(DEFAULT_WEBHOOK_MAX_BODY_BYTES))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return DEFAULT_WEBHOOK_MAX_BODY_BYTES


_MAX_WEBHOOK_BODY = _parse_max_body()


@router.post("/integrations/github/webhook")
async def github_webhook(request: Request):
    """Receive a GitHub delivery and, for PR activity, run the code owners check."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > _MAX_WEBHOOK_BODY:
        raise HTTPException(status_code=413, detail="Payload too large")
    body = await request.body()
    if len(body) > _MAX_WEBHOOK_BODY:
        raise HTTPException(status_code=413, detail="Payload too large")
    headers = {k.lower(): v for k, v in request.headers.items()}

    sig = headers.get("x-hub-signature-256", "")
    event_type = headers.get("x-github-event", "")
    delivery_id = headers.get("x-github-delivery", "")

    webhook_secret = request.app.state.webhook_secret
    if not webhook_secret:
        if auth_required():
            raise HTTPException(
                status_code=403,
                detail="Webhook signature verification not configured",
            )
        log.warning("Webhook accepted without signature verification (no secret configured)")
    elif not verify_github_signature(webhook_secret, body, sig):
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        data = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    action = data.get("action", "")
    if action not in _HANDLED_ACTIONS.get(event_type, frozenset()):
        return {"ok": True, "delivery_id": delivery_id, "action": "ignored"}

    try:
        ctx = PullRequestContext.from_event(event_type, data)
    except NotAPullRequest as exc:
        log.warning("Ignoring delivery %s: %s", delivery_id, exc)
        return {"ok": True, "delivery_id": delivery_id, "action": "ignored", "reason": str(exc)}

    log.info(
        "Checking %s#%d (%s.%s)", ctx.full_name, ctx.number, event_type, action,
        extra={"repo": ctx.full_name, "pr_number": ctx.number, "delivery_id": delivery_id},
    )
    checker = request.app.state.checker
    outcome = await checker(ctx, cache=request.app.state.rule_cache)

    return {
        "ok": True,
        "delivery_id": delivery_id,
        "action": "checked",
        "repo": ctx.full_name,
        "pr_number": ctx.number,
        "outcome": outcome.to_dict(),
    }
