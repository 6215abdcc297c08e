"""PLM authentication state persisted in the user scope."""

from pydantic import BaseModel


class PLMSession(BaseModel):
    """
    A session is usable only while its id is non-empty; whether the server
    still accepts it is discovered lazily (liveness probe or a 401).
    Timestamps are epoch seconds.
    """
    session_id: str
    email: str
    workspace_id: str
    created_at: float
    last_validated_at: float

    def is_usable(self) -> bool:
        return bool(self.session_id)
