from typing import Any

from pydantic import BaseModel, model_validator


class CacheEntry(BaseModel):
    """A cached value with its lifetime, timestamps in epoch milliseconds.

    An entry is valid while now < expires_at; expires_at is always cached_at + ttl.
    """

    value: Any
    cached_at: int
    expires_at: int

    @model_validator(mode="after")
    def _check_lifetime(self) -> "CacheEntry":
        if self.expires_at < self.cached_at:
            raise ValueError("expires_at must not precede cached_at")
        return self

    def is_valid(self, now_ms: int) -> bool:
        return now_ms < self.expires_at


class AdmissionResult(BaseModel):
    """Outcome of a sliding-window admission check."""

    can_proceed: bool
    wait_ms: int = 0
    requests_in_window: int = 0
