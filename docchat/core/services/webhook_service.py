"""Webhook service - signed content-change notifications that trigger a re-index."""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..models.indexing import IndexResult
from .index_registry import IndexRegistry
from .ingest_service import IngestService

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"
MAIN_REFS = ("refs/heads/main", "refs/heads/master")


def sign_payload(payload: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """Check a ``sha256=<hex>`` HMAC header in constant time."""
    if not signature or not secret:
        return False
    return hmac.compare_digest(signature.encode("utf-8"), sign_payload(payload, secret).encode("utf-8"))


def is_main_branch_push(event: Optional[str], payload: Any) -> bool:
    if event != "push" or not isinstance(payload, dict):
        return False
    return payload.get("ref") in MAIN_REFS


@dataclass
class WebhookResponse:
    http_status: int
    status: str
    message: str
    result: Optional[IndexResult] = None
    errors: list[str] = field(default_factory=list)


class WebhookService:
    """Turns a verified push notification into a re-index run."""

    def __init__(self, ingest: IngestService, registry: IndexRegistry, secret: Optional[str]):
        self._ingest = ingest
        self._registry = registry
        self._secret = secret

    def handle(self, body: bytes, headers: Mapping[str, str]) -> WebhookResponse:
        """Verify and act on one delivery.

        Args:
            body: Raw request body, exactly as received.
            headers: Request headers (names matched case-insensitively).

        Returns:
            Response status and, when a run happened, its result.
        """
        if not self._secret:
            logger.error("Webhook secret not configured")
            return WebhookResponse(500, "error", "Webhook not configured")

        lowered = {k.lower(): v for k, v in headers.items()}
        event = lowered.get(EVENT_HEADER.lower())
        delivery = lowered.get(DELIVERY_HEADER.lower())
        logger.info(f"Webhook received: event={event}, delivery={delivery}")

        if not verify_signature(body, lowered.get(SIGNATURE_HEADER.lower()), self._secret):
            logger.error("Invalid webhook signature")
            return WebhookResponse(401, "error", "Invalid signature")

        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return WebhookResponse(400, "error", "Invalid JSON payload")

        if event == "ping":
            return WebhookResponse(200, "ok", "Webhook configured successfully")

        if not is_main_branch_push(event, payload):
            logger.info(f"Ignoring event: {event} (not a main branch push)")
            return WebhookResponse(200, "ignored", "Not a main branch push event")

        logger.info("Starting documentation re-index...")
        result = self._ingest.run()

        if result.skipped:
            return WebhookResponse(200, "skipped", "Indexing already in progress", result=result)
        if not result.success:
            logger.error(f"Indexing failed: {result.errors}")
            return WebhookResponse(500, "error", "Indexing failed", result=result, errors=result.errors)
        return WebhookResponse(200, "success", "Documentation re-indexed successfully", result=result)

    def status(self) -> dict:
        last = self._registry.last_status()
        return {
            "status": "ok",
            "isIndexing": self._registry.is_indexing(),
            "snapshot": self._registry.current_snapshot(),
            "lastResult": last.to_dict() if last else None,
        }
