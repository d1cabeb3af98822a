# khe_api/notify_client/push_client.py
"""
GCM topic push client

Supports:
- PUSH_PROVIDER=mock -> no network, logs the message
- PUSH_PROVIDER=gcm  -> legacy GCM/FCM HTTP send endpoint, topic messaging

Includes:
- httpx async
- tenacity retry
- aiobreaker circuit breaker
- Prometheus metrics (requests + latency)

Usage:
    push = PushClient("/tickets")
    await push.send("create", ticket_dict)
"""

import json
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import httpx
from aiobreaker import CircuitBreaker, CircuitBreakerError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from khe_api.config import (
    GCM_API_KEY,
    GCM_SEND_URL,
    PUSH_PROVIDER,
    PUSH_TIMEOUT_SECONDS,
    validate_push_config,
)
from khe_api.errors import DeliveryError
from khe_api.metrics import PUSH_LATENCY, PUSH_REQUESTS

logger = logging.getLogger("khe-api.push_client")

# Circuit breaker: 5 failures -> open for 30s
breaker = CircuitBreaker(
    fail_max=5,
    timeout_duration=timedelta(seconds=30),
    exclude=(httpx.HTTPStatusError,),
)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(
        exc,
        (
            httpx.ConnectError,
            httpx.ReadTimeout,
            httpx.WriteTimeout,
            httpx.RemoteProtocolError,
            httpx.ConnectTimeout,
        ),
    )


@retry(
    reraise=True,
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception(_is_retryable),
)
async def _post_with_retry(
    client: httpx.AsyncClient,
    url: str,
    json_payload: Dict[str, Any],
) -> httpx.Response:
    with PUSH_LATENCY.time():
        try:
            resp = await client.post(url, json=json_payload)
            resp.raise_for_status()
            PUSH_REQUESTS.labels(outcome="success").inc()
            return resp
        except Exception:
            PUSH_REQUESTS.labels(outcome="failure").inc()
            raise


def build_message(topic: str, action: str, document: Any) -> Dict[str, Any]:
    """Topic names are stored without the /topics prefix ("/tickets")."""
    if not topic.startswith("/"):
        topic = f"/{topic}"
    return {
        "to": f"/topics{topic}",
        "data": {"action": action, "document": document},
    }


class PushClient:
    """One client per topic."""

    def __init__(self, topic: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        validate_push_config()

        self.topic = topic
        self.provider = PUSH_PROVIDER
        self.timeout = httpx.Timeout(float(PUSH_TIMEOUT_SECONDS))
        self.transport = transport
        self.headers = {
            "Authorization": f"key={GCM_API_KEY}",
            "Content-Type": "application/json",
        }

    async def send(self, action: str, document: Any) -> Optional[Dict[str, Any]]:
        """
        Push `document` to every device subscribed to the topic.
        Returns the provider's JSON result (None for mock).
        """
        message = build_message(self.topic, action, document)

        if self.provider == "mock":
            PUSH_REQUESTS.labels(outcome="mock").inc()
            logger.info(f"[GCM mock] {message['to']} action={action}")
            return None

        async with httpx.AsyncClient(
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            logger.debug(f"GCM → POST {GCM_SEND_URL} | payload={json.dumps(message, default=str)[:500]}")
            try:
                resp = await breaker.call_async(_post_with_retry, client, GCM_SEND_URL, message)
            except CircuitBreakerError:
                logger.warning("GCM circuit breaker OPEN – push dropped")
                PUSH_REQUESTS.labels(outcome="circuit_breaker").inc()
                raise DeliveryError("Push service temporarily unavailable (circuit breaker open).")
            except httpx.HTTPStatusError as exc:
                logger.error(f"GCM HTTP error {exc.response.status_code}: {exc.response.text}")
                raise DeliveryError(f"GCM HTTP error {exc.response.status_code}")
            except Exception as exc:
                logger.error(f"GCM request failed: {exc}")
                raise DeliveryError(f"GCM request failed: {exc}")

        try:
            result = resp.json()
        except json.JSONDecodeError:
            result = {"raw": resp.text}
        logger.info(f"[GCM result] {message['to']} {result}")
        return result


async def push_quietly(topic: str, action: str, document: Any) -> None:
    """Background-task entry point: delivery failures are logged, never raised."""
    try:
        await PushClient(topic).send(action, document)
    except (DeliveryError, RuntimeError) as exc:
        logger.error(f"[GCM error] {topic} {action}: {exc}")
