"""
Message pipeline: one user send from limit check to stored reply.

    IDLE -> LIMIT_CHECK -> REJECTED
                        -> SENDING -> DELIVERED
                                   -> FAILED

send() validates its input and the session up front (those errors reach the
router as typed errors). After that it never raises: rate limits, exhausted
quotas, missing API configuration, timeouts and upstream errors all end with
exactly one bot message appended to the session and a SendResult describing
what happened.
"""

import asyncio
import logging
import random
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, Optional, Set

import sentry_sdk
from sqlalchemy.orm import Session

from .admin_config import AdminConfigStore, admin_config_store
from .config import settings
from .config.constants import (
    CONFIG_ERROR_NOTICE,
    FALLBACK_ERROR_NOTICES,
    GUEST_LIMIT_NOTICE,
    IMAGE_ONLY_CAPTION,
    PLAN_LIMIT_NOTICE,
    RATE_LIMIT_NOTICE,
)
from .exceptions import ConfigMissingError, QuotaExceededError, SessionBusyError, UpstreamUnavailableError, ValidationError
from .llm import CompletionClient, OpenRouterClient, estimate_tokens
from .models import AdminApiConfig, ChatSession, Message, UsageLog
from .owner import Owner
from .session_store import append_message, get_session
from .usage_meter import UsageMeter, usage_meter

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60.0

ClientFactory = Callable[[AdminApiConfig], CompletionClient]


class SendState(str, Enum):
    IDLE = "idle"
    LIMIT_CHECK = "limit_check"
    REJECTED = "rejected"
    SENDING = "sending"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class SendResult:
    state: SendState
    session: ChatSession
    bot_message: Message
    user_message: Optional[Message] = None
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.state == SendState.DELIVERED


class SlidingWindowRateLimiter:
    """Per-owner request limit over a sliding one-minute window."""

    def __init__(self, window_seconds: float = RATE_LIMIT_WINDOW_SECONDS):
        self.window_seconds = window_seconds
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep: Optional[float] = None

    def allow(self, key: str, limit: int, now: Optional[float] = None) -> bool:
        """Record a hit for key and return False if it exceeds limit. A limit of 0 disables the check."""
        if not limit or limit <= 0:
            return True
        now = time.monotonic() if now is None else now
        with self._lock:
            self._sweep(now)
            hits = self._hits[key]
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def _sweep(self, now: float) -> None:
        """Forget keys with no hit inside the window, at most once per window. Caller holds the lock."""
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        idle = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for key in idle:
            del self._hits[key]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


class InFlightRegistry:
    """Sessions currently waiting for a reply; drives the typing indicator."""

    def __init__(self):
        self._sessions: Set[int] = set()
        self._lock = threading.Lock()

    def acquire(self, session_id: int) -> bool:
        with self._lock:
            if session_id in self._sessions:
                return False
            self._sessions.add(session_id)
            return True

    def release(self, session_id: int) -> None:
        with self._lock:
            self._sessions.discard(session_id)

    def is_busy(self, session_id: int) -> bool:
        with self._lock:
            return session_id in self._sessions


def canonicalize_text(text: Optional[str], has_image: bool) -> str:
    """
    Strip the text; an image without text gets the default caption.

    Raises:
        ValidationError: If there is neither text nor an image
    """
    text = (text or "").strip()
    if text:
        return text
    if has_image:
        return IMAGE_ONLY_CAPTION
    raise ValidationError("Message cannot be empty")


def _default_client_factory(config: AdminApiConfig) -> CompletionClient:
    return OpenRouterClient.from_config(config)


class MessagePipeline:
    """
    Runs sends through limit check, the completion call and reply storage.

    The admin configuration is loaded from the database at the start of each
    send, and a fresh completion client is built from it.
    """

    def __init__(
        self,
        meter: Optional[UsageMeter] = None,
        client_factory: Optional[ClientFactory] = None,
        config_store: Optional[AdminConfigStore] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        in_flight: Optional[InFlightRegistry] = None,
        timeout: Optional[float] = None,
    ):
        self.meter = meter or usage_meter
        self.client_factory = client_factory or _default_client_factory
        self.config_store = config_store or admin_config_store
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self.in_flight = in_flight or InFlightRegistry()
        self.timeout = timeout

    def is_typing(self, session_id: int) -> bool:
        return self.in_flight.is_busy(session_id)

    async def send(
        self,
        db: Session,
        owner: Owner,
        session_id: int,
        text: Optional[str],
        image_url: Optional[str] = None,
        image_data: Optional[str] = None,
    ) -> SendResult:
        """
        Send one user message and store the reply.

        Raises (before anything is written):
            ValidationError: Empty text and no image
            SessionNotFoundError: Session missing or not the owner's
            SessionBusyError: A reply for this session is still being generated
        """
        image = image_data or image_url
        text = canonicalize_text(text, has_image=bool(image))
        session = get_session(db, owner, session_id)

        if not self.in_flight.acquire(session.id):
            raise SessionBusyError()
        try:
            return await self._run(db, owner, session, text, image_url, image_data)
        finally:
            self.in_flight.release(session.id)

    async def _run(
        self,
        db: Session,
        owner: Owner,
        session: ChatSession,
        text: str,
        image_url: Optional[str],
        image_data: Optional[str],
    ) -> SendResult:
        config = self.config_store.get(db)

        # LIMIT_CHECK
        try:
            self._check_limits(db, owner, config)
        except QuotaExceededError as e:
            bot_message = append_message(db, session, e.detail, "bot")
            return SendResult(SendState.REJECTED, session, bot_message, error=type(e).__name__)

        # SENDING
        user_message = append_message(db, session, text, "user", image_url=image_url, image_data=image_data)

        if config is None or not (config.api_key or "").strip():
            return self._config_missing(db, session, user_message)

        image = image_data or image_url
        model = config.vision_model if image else config.selected_model
        timeout = self.timeout or settings.completion_timeout_seconds
        start_time = time.time()

        try:
            # Client construction fails like the call itself
            client = self.client_factory(config)
            if image:
                call = client.complete_with_image(text, image)
            else:
                call = client.complete(text)
            response = await asyncio.wait_for(call, timeout=timeout)
        except ConfigMissingError:
            return self._config_missing(db, session, user_message)
        except asyncio.TimeoutError:
            error = f"Timeout after {timeout:.0f}s calling model {model}"
        except UpstreamUnavailableError as e:
            error = e.detail
        except Exception as e:
            logger.exception(f"[PIPELINE] Unexpected error calling model {model}")
            sentry_sdk.capture_exception(e)
            error = str(e) or type(e).__name__
        else:
            response_time_ms = int((time.time() - start_time) * 1000)
            self._log_usage(
                db, owner, session, response.model or model, response.tokens_estimate, response_time_ms, "success"
            )
            bot_message = append_message(db, session, response.text, "bot")
            logger.info(f"[PIPELINE] Delivered reply for session {session.id} ({response_time_ms}ms)")
            return SendResult(SendState.DELIVERED, session, bot_message, user_message)

        response_time_ms = int((time.time() - start_time) * 1000)
        logger.error(f"[PIPELINE] Completion failed for session {session.id}: {error}")
        self._log_usage(db, owner, session, model, estimate_tokens(text), response_time_ms, "error", error)
        bot_message = append_message(db, session, random.choice(FALLBACK_ERROR_NOTICES), "bot")
        return SendResult(SendState.FAILED, session, bot_message, user_message, error=error)

    def _config_missing(self, db: Session, session: ChatSession, user_message: Message) -> SendResult:
        logger.warning(f"[PIPELINE] No API key configured; session {session.id} gets the config notice")
        bot_message = append_message(db, session, CONFIG_ERROR_NOTICE, "bot")
        return SendResult(SendState.FAILED, session, bot_message, user_message, error=ConfigMissingError.detail)

    def _check_limits(self, db: Session, owner: Owner, config: Optional[AdminApiConfig]) -> None:
        """Rate limit first, then the usage meter. Raises QuotaExceededError with the notice to show."""
        rate_limit = config.rate_limit if config is not None else 0
        if not self.rate_limiter.allow(owner.key, rate_limit):
            logger.info(f"[PIPELINE] Rate limit hit for {owner.key}")
            raise QuotaExceededError(RATE_LIMIT_NOTICE)

        result = self.meter.try_consume(db, owner)
        if not result.allowed:
            notice = GUEST_LIMIT_NOTICE if result.reason == "guest_limit" else PLAN_LIMIT_NOTICE
            raise QuotaExceededError(notice)

    def _log_usage(
        self,
        db: Session,
        owner: Owner,
        session: ChatSession,
        model: str,
        tokens_estimate: int,
        response_time_ms: int,
        status: str,
        error_message: Optional[str] = None,
    ) -> None:
        # Committed together with the bot message that follows
        db.add(
            UsageLog(
                user_id=owner.user_id,
                guest_id=owner.guest_id,
                session_id=session.id,
                model_used=model,
                tokens_estimate=tokens_estimate,
                response_time_ms=response_time_ms,
                status=status,
                error_message=error_message,
            )
        )


message_pipeline = MessagePipeline()
