"""Sliding-window rate limiter with tiered retry for the generative-AI backend.

Local admission control counts the successful calls of the trailing window
(per user, persisted in the user-scoped store). Remote 429 rejections still
happen under shared credentials or clock skew; they get their own, longer
backoff track that does not consume the general retry budget.
"""

import asyncio
import json
import time
from typing import Awaitable, Callable, TypeVar

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.models.cache import AdmissionResult
from shared.models.errors import RateLimitedError, RemoteError, TransientError
from shared.storage.StoreInterface import StoreInterface

T = TypeVar("T")

DEFAULT_MAX_REQUESTS = 15
DEFAULT_WINDOW_MS = 60_000
MIN_WAIT_MS = 1_000

RATE_LIMIT_DELAYS_MS = (5_000, 15_000, 30_000)
RATE_LIMIT_MAX_DELAY_MS = 60_000
RATE_LIMIT_MAX_RETRIES = len(RATE_LIMIT_DELAYS_MS)

GENERAL_BASE_DELAY_MS = 2_000      # 2s, 4s, 8s, 16s ...
GENERAL_MAX_ATTEMPTS = 5

TIMESTAMPS_KEY = "ai_request_timestamps"


def rate_limit_delay_ms(attempt: int) -> int:
    """Backoff before the given (1-based) rate-limit retry: 5s, 15s, 30s, then capped at 60s."""
    if attempt <= len(RATE_LIMIT_DELAYS_MS):
        return RATE_LIMIT_DELAYS_MS[attempt - 1]
    return RATE_LIMIT_MAX_DELAY_MS


def general_delay_ms(attempt: int) -> int:
    """Backoff after the given (1-based) failed attempt: 2s, 4s, 8s, 16s ..."""
    return GENERAL_BASE_DELAY_MS * 2 ** (attempt - 1)


class RateLimiter:
    def __init__(
        self,
        helper_config: HelperConfig,
        store: StoreInterface,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        storage_key: str = TIMESTAMPS_KEY,
    ):
        self.logging = helper_config.get_logger()
        self._store = store
        self._clock = clock
        self._sleep = sleep
        self._storage_key = storage_key
        self.max_requests = int(helper_config.get_number_val("RATE_LIMIT_MAX_REQUESTS", default=DEFAULT_MAX_REQUESTS))
        self.window_ms = int(helper_config.get_number_val("RATE_LIMIT_WINDOW_MS", default=DEFAULT_WINDOW_MS))
        self.max_attempts = int(helper_config.get_number_val("RATE_LIMIT_MAX_ATTEMPTS", default=GENERAL_MAX_ATTEMPTS))

    ##########################################
    ############### ADMISSION ################
    ##########################################

    def check_admission(self) -> AdmissionResult:
        """Check whether another request fits into the trailing window.

        Returns:
            AdmissionResult: can_proceed with wait_ms=0, or the time until the
            oldest in-window request leaves the window (at least one second).
        """
        now = self._now_ms()
        in_window = self._timestamps_in_window(now)
        if len(in_window) < self.max_requests:
            return AdmissionResult(can_proceed=True, wait_ms=0, requests_in_window=len(in_window))

        oldest = min(in_window)
        wait_ms = max(self.window_ms - (now - oldest), MIN_WAIT_MS)
        return AdmissionResult(can_proceed=False, wait_ms=wait_ms, requests_in_window=len(in_window))

    async def admit(self) -> None:
        """Wait until the caller may proceed.

        The computed delay is trusted; the window is not re-checked after waking.
        """
        admission = self.check_admission()
        if admission.can_proceed:
            return
        self.logging.warning(
            "Local rate limit reached (%d requests in %d ms), waiting %d ms.",
            admission.requests_in_window, self.window_ms, admission.wait_ms,
        )
        await self._sleep(admission.wait_ms / 1000)

    def record_success(self) -> None:
        """Append now to the window. Only successful requests are recorded."""
        now = self._now_ms()
        timestamps = self._timestamps_in_window(now)
        timestamps.append(now)
        self._store.set_property(self._storage_key, json.dumps(timestamps))

    def reset(self) -> None:
        self._store.delete_property(self._storage_key)

    ##########################################
    ################ RETRY ###################
    ##########################################

    async def execute_with_retry(self, operation: Callable[[], Awaitable[T]], max_attempts: int | None = None) -> T:
        """Run operation under admission control with tiered retry.

        - RateLimitedError: waits 5s, 15s, 30s; the fourth rejection is terminal.
          These retries do not count against max_attempts.
        - TransientError, transport errors and 5xx RemoteError: exponential backoff from 2s, at most
          max_attempts calls in total.
        - Everything else (auth, configuration, validation, not found) propagates
          on first occurrence.

        Retries skip local admission; the backoff wait already throttles them.

        Raises:
            RateLimitedError: terminal, after RATE_LIMIT_MAX_RETRIES waited retries.
            TransientError: after max_attempts failed attempts.
        """
        max_attempts = max_attempts or self.max_attempts
        general_failures = 0
        rate_limit_retries = 0
        is_retry = False

        while True:
            if not is_retry:
                await self.admit()

            try:
                result = await operation()
            except RateLimitedError as e:
                rate_limit_retries += 1
                if rate_limit_retries > RATE_LIMIT_MAX_RETRIES:
                    self.logging.error("Remote rate limit hit %d times in a row, giving up.", rate_limit_retries)
                    raise RateLimitedError(
                        "The AI service rate limit was exceeded multiple times.",
                        next_step="Please wait a few minutes before trying again.",
                        terminal=True,
                    ) from e
                delay_ms = rate_limit_delay_ms(rate_limit_retries)
                self.logging.warning(
                    "Remote rate limit (retry %d/%d), waiting %d ms.",
                    rate_limit_retries, RATE_LIMIT_MAX_RETRIES, delay_ms,
                )
                await self._sleep(delay_ms / 1000)
                is_retry = True
                continue
            except (TransientError, RemoteError, httpx.TransportError) as e:
                if isinstance(e, RemoteError) and not e.retryable:
                    raise
                general_failures += 1
                if general_failures >= max_attempts:
                    self.logging.error("Request failed after %d attempts: %s", general_failures, e)
                    raise TransientError(
                        f"The request failed after {general_failures} attempts.",
                        next_step="Check your connection and try again in a few minutes.",
                    ) from e
                delay_ms = general_delay_ms(general_failures)
                self.logging.warning(
                    "Attempt %d/%d failed (%s), retrying in %d ms.",
                    general_failures, max_attempts, type(e).__name__, delay_ms,
                )
                await self._sleep(delay_ms / 1000)
                is_retry = True
                continue

            self.record_success()
            return result

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _timestamps_in_window(self, now_ms: int) -> list[int]:
        raw = self._store.get_property(self._storage_key)
        if not raw:
            return []
        try:
            timestamps = json.loads(raw)
        except ValueError:
            self.logging.warning("Stored request timestamps are corrupt, resetting window.")
            return []
        if not isinstance(timestamps, list):
            return []
        return [int(ts) for ts in timestamps if isinstance(ts, (int, float)) and now_ms - ts < self.window_ms]
