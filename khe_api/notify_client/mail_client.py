# khe_api/notify_client/mail_client.py
"""
Outbound email client

Supports:
- MAIL_PROVIDER=mock -> no network, logs subject + recipients
- MAIL_PROVIDER=http -> POST {"from", "to", "subject", "text"} to MAIL_API_URL

Retry and circuit-breaker policy match the push client.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx
from aiobreaker import CircuitBreaker, CircuitBreakerError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from khe_api.config import (
    MAIL_API_KEY,
    MAIL_API_URL,
    MAIL_FROM,
    MAIL_PROVIDER,
    MAIL_TIMEOUT_SECONDS,
    validate_mail_config,
)
from khe_api.errors import DeliveryError
from khe_api.metrics import MAIL_REQUESTS

logger = logging.getLogger("khe-api.mail_client")

breaker = CircuitBreaker(
    fail_max=5,
    timeout_duration=timedelta(seconds=30),
    exclude=(httpx.HTTPStatusError,),
)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout, httpx.ReadTimeout))


@retry(
    reraise=True,
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception(_is_retryable),
)
async def _post_with_retry(client: httpx.AsyncClient, url: str, json_payload: Dict[str, Any]) -> httpx.Response:
    try:
        resp = await client.post(url, json=json_payload)
        resp.raise_for_status()
        MAIL_REQUESTS.labels(outcome="success").inc()
        return resp
    except Exception:
        MAIL_REQUESTS.labels(outcome="failure").inc()
        raise


class MailClient:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        validate_mail_config()

        self.provider = MAIL_PROVIDER
        self.timeout = httpx.Timeout(float(MAIL_TIMEOUT_SECONDS))
        self.transport = transport
        self.headers: Dict[str, str] = {"Content-Type": "application/json"}
        if MAIL_API_KEY:
            self.headers["Authorization"] = f"Bearer {MAIL_API_KEY}"

    async def send(self, subject: str, body: str, recipients: List[str]) -> None:
        recipients = [r for r in recipients if r]
        if not recipients:
            return

        if self.provider == "mock":
            MAIL_REQUESTS.labels(outcome="mock").inc()
            logger.info(f"[Mail mock] '{subject}' → {', '.join(recipients)}")
            return

        payload = {"from": MAIL_FROM, "to": recipients, "subject": subject, "text": body}
        async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout, transport=self.transport) as client:
            try:
                await breaker.call_async(_post_with_retry, client, MAIL_API_URL, payload)
            except CircuitBreakerError:
                logger.warning("Mail circuit breaker OPEN – message dropped")
                MAIL_REQUESTS.labels(outcome="circuit_breaker").inc()
                raise DeliveryError("Mail service temporarily unavailable (circuit breaker open).")
            except httpx.HTTPStatusError as exc:
                logger.error(f"Mail HTTP error {exc.response.status_code}: {exc.response.text}")
                raise DeliveryError(f"Mail HTTP error {exc.response.status_code}")
            except Exception as exc:
                logger.error(f"Mail request failed: {exc}")
                raise DeliveryError(f"Mail request failed: {exc}")

        logger.info(f"[Mail] '{subject}' sent to {len(recipients)} recipient(s)")


async def mail_quietly(subject: str, body: str, recipients: List[str]) -> None:
    """Background-task entry point: delivery failures are logged, never raised."""
    try:
        await MailClient().send(subject, body, recipients)
    except (DeliveryError, RuntimeError) as exc:
        logger.error(f"[Mail error] '{subject}': {exc}")
