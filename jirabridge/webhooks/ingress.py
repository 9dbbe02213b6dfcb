"""Transport-independent handling of one inbound Jira webhook request."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass

from jirabridge.utils.logging import get_logger
from jirabridge.webhooks.dispatch import Dispatcher
from jirabridge.webhooks.handlers import (
    SIGNATURE_HEADER,
    classify,
    normalize_event,
    validate_signature,
)

log = get_logger(__name__)


@dataclass(frozen=True)
class WebhookResponse:
    status: int
    text: str


OK = WebhookResponse(200, "OK")
UNAUTHORIZED = WebhookResponse(401, "Unauthorized")
BAD_REQUEST = WebhookResponse(400, "Bad Request")


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


class WebhookIngress:
    """Verify, classify, normalize and dispatch a raw webhook body."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    async def handle(
        self,
        body: bytes,
        headers: Mapping[str, str],
        secret: str | None = None,
    ) -> WebhookResponse:
        if secret:
            signature = _header(headers, SIGNATURE_HEADER)
            if not signature:
                log.warning("webhook_rejected", reason="missing_signature")
                return UNAUTHORIZED
            if not validate_signature(body, signature, secret):
                log.warning("webhook_rejected", reason="invalid_signature")
                return UNAUTHORIZED

        try:
            payload = json.loads(body)
            if not isinstance(payload, dict):
                raise ValueError("webhook body is not a JSON object")
            log.debug("webhook_payload", payload=payload)

            kind = classify(payload)
            if kind is None:
                log.info("webhook_event_unsupported", webhook_event=payload.get("webhookEvent"))
                return OK

            event = normalize_event(kind, payload)
            block_ids = await self._dispatcher.dispatch(event.kind, event.payload)
        except Exception as e:
            log.error("webhook_processing_failed", error=str(e), exc_info=True)
            return BAD_REQUEST

        log.info(
            "webhook_received",
            webhook_event=event.raw_event,
            kind=event.kind.value,
            delivered=len(block_ids),
        )
        return OK
