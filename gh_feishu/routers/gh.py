"""Ruter GH?"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse

from gh_feishu.config import Settings
from gh_feishu.errors import AuthError, ConfigError, DecodeError, RelayError
from gh_feishu.schemas import NotificationJob
from gh_feishu.services.feishu import deliver
from gh_feishu.services.github import decode_event, route
from gh_feishu.utils import gh_verify, repo_allowed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/github", tags=["github"])


def _accept(
    settings: Settings,
    body: bytes,
    signature: str | None,
    event: str | None,
    delivery_id: str | None,
) -> NotificationJob | str:
    """
    Run the synchronous part of the pipeline.

    Returns the job to dispatch, or the plain-text reason it was ignored.
    """
    if not settings.is_configured:
        raise ConfigError("Server not configured")

    if not gh_verify(settings.github_webhook_secret, body, signature):
        raise AuthError("Invalid signature")

    try:
        envelope = decode_event(
            body, event_type=event, delivery_id=delivery_id, signature=signature
        )
    except DecodeError as exc:
        logger.warning("Rejecting delivery %s: %s", delivery_id or "-", exc)
        raise DecodeError("Bad JSON") from exc

    if not repo_allowed(envelope.repository_full_name, settings.allowed_repos):
        logger.info(
            "Ignoring delivery %s from repo %r (not allowed)",
            delivery_id or "-",
            envelope.repository_full_name,
        )
        return "Ignored repo"

    job = route(envelope.event_type, envelope.action, envelope, settings.identities)
    if job is None:
        logger.info(
            "Ignoring delivery %s: %s.%s has no handler",
            delivery_id or "-",
            envelope.event_type or "unknown",
            envelope.action or "-",
        )
        return "Ignored event"
    return job


@router.post("/webhook", response_class=PlainTextResponse)
async def github_webhook(
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    x_hub_signature_256: str | None = Header(None),
    x_github_event: str | None = Header(None),
    x_github_delivery: str | None = Header(None),
):
    """
    GitHub webhook endpoint.

    The signature is validated against `X-Hub-Signature-256` using the raw body.
    Accepted events are answered with 202 and forwarded to Feishu in the
    background; the outcome of that call is only logged.
    """
    settings: Settings = request.app.state.settings
    body = await request.body()

    try:
        outcome = _accept(
            settings, body, x_hub_signature_256, x_github_event, x_github_delivery
        )
    except ConfigError as exc:
        logger.error("GITHUB_WEBHOOK_SECRET or FEISHU_WEBHOOK_URL not configured")
        raise HTTPException(exc.status_code, str(exc)) from exc
    except AuthError as exc:
        logger.warning("Invalid signature for delivery %s", x_github_delivery or "-")
        raise HTTPException(exc.status_code, str(exc)) from exc
    except RelayError as exc:
        raise HTTPException(exc.status_code, str(exc)) from exc

    if isinstance(outcome, str):
        return outcome

    logger.info(
        "Accepted %s for %s (delivery %s)",
        outcome.label,
        outcome.repository_full_name,
        outcome.delivery_id or "-",
    )
    background_tasks.add_task(
        deliver,
        outcome,
        settings.feishu_webhook_url,
        settings.feishu_sign_secret or None,
        transport=getattr(request.app.state, "feishu_transport", None),
    )
    response.status_code = 202
    return "Accepted"
