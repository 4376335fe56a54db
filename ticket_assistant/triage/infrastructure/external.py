"""
Triage External Service Adapters
==================================

Adapters for external services used by the triage module:
- LLM classification providers
- Transactional mail notifications
- APScheduler job that requeues stalled triage runs
"""

import time
from typing import Any, Awaitable, Callable, List, Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ticket_assistant.config import Settings
from ticket_assistant.core import NotificationError
from ticket_assistant.infrastructure.llm import ILLMClient, create_llm_client
from ticket_assistant.shared.infrastructure.logging import get_logger
from ticket_assistant.triage.application import IClassificationProvider, INotifier

logger = get_logger(__name__)


# ========== Classification Providers ==========

class LLMClassificationProvider(IClassificationProvider):
    """
    Adapter that exposes an infrastructure LLM client as a classification
    provider. Returns the SDK response as-is for normalization upstream.
    """

    def __init__(
        self,
        name: str,
        client: ILLMClient,
        temperature: float = 0.3,
        max_tokens: int = 800
    ):
        self._name = name
        self._client = client
        self._temperature = temperature
        self._max_tokens = max_tokens

    @property
    def name(self) -> str:
        return self._name

    async def generate(self, system_prompt: str, prompt: str) -> Any:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt}
        ]
        return await self._client.chat_completion(
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens
        )


def build_classification_providers(settings: Settings) -> List[IClassificationProvider]:
    """
    Primary then secondary provider, each enabled only when its API key is set.
    """
    providers: List[IClassificationProvider] = []
    slots = [
        ("primary", settings.primary_provider, settings.primary_api_key,
         settings.primary_model, settings.primary_base_url),
        ("secondary", settings.secondary_provider, settings.secondary_api_key,
         settings.secondary_model, settings.secondary_base_url),
    ]

    for slot, kind, api_key, model, base_url in slots:
        if not api_key:
            logger.info("Classification provider disabled (no API key)", extra={"slot": slot, "provider": kind})
            continue
        client = create_llm_client(kind, api_key, model, base_url)
        providers.append(LLMClassificationProvider(
            name=f"{slot}:{kind}",
            client=client,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens
        ))
        logger.info("Classification provider enabled", extra={"slot": slot, "provider": kind, "model": model})

    return providers


# ========== Notifications ==========

class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class EmailNotifier(INotifier):
    """
    Sends plain-text email through a transactional mail HTTP API.

    One attempt per message; triage never retries notifications.
    """

    def __init__(
        self,
        api_url: Optional[str],
        api_token: Optional[str],
        sender: str,
        timeout_seconds: float = 5.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._api_url = api_url
        self._api_token = api_token
        self._sender = sender
        self._timeout = timeout_seconds
        self._circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailNotifier":
        return cls(
            api_url=settings.mail_api_url,
            api_token=settings.mail_api_token,
            sender=settings.mail_from,
            timeout_seconds=settings.mail_timeout_seconds
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def _build_message(self, to_address: str, subject: str, body: str) -> dict:
        return {
            "from": {"email": self._sender},
            "to": [{"email": to_address}],
            "subject": subject,
            "text": body,
        }

    async def send(self, to_address: str, subject: str, body: str) -> bool:
        """
        Send one email.

        Returns:
            True when accepted by the mail API, False when mail is not configured

        Raises:
            NotificationError: circuit open, transport error or non-2xx answer
        """
        if not self.is_configured:
            logger.info("Mail API not configured, skipping notification", extra={"to": to_address})
            return False

        if not self._circuit_breaker.allow_request():
            raise NotificationError("circuit open, notification skipped", {"to": to_address})

        headers = {"Authorization": f"Bearer {self._api_token}"} if self._api_token else {}
        try:
            response = await self._get_client().post(
                self._api_url,
                json=self._build_message(to_address, subject, body),
                headers=headers
            )
        except httpx.HTTPError as e:
            self._circuit_breaker.record_failure()
            raise NotificationError(f"mail API unreachable: {e}", {"to": to_address}) from e

        if response.status_code >= 300:
            self._circuit_breaker.record_failure()
            raise NotificationError(
                f"mail API returned {response.status_code}",
                {"to": to_address, "status_code": response.status_code}
            )

        self._circuit_breaker.record_success()
        logger.info("Notification sent", extra={"to": to_address, "subject": subject})
        return True

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


# ========== Scheduling ==========

class TriageRecoveryScheduler:
    """
    Wrapper for APScheduler running the stalled-triage sweep.

    Manages the lifecycle of the scheduler and its single job.
    """

    def __init__(self, interval_seconds: int = 120):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[Any]]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("Triage recovery scheduler already running")
            return

        if self.interval_seconds <= 0:
            logger.info("Triage recovery scheduler disabled")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="triage_recovery",
            name="Stalled Triage Recovery",
            misfire_grace_time=60,
            max_instances=1,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info(
            "Triage recovery scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("Triage recovery scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
