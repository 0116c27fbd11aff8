"""Per-session cap on how many times the user may re-roll results."""

import logging
from dataclasses import dataclass

from lunchtube.models.state import RefreshSession
from lunchtube.utils.config import MAX_REFRESHES
from lunchtube.utils.storage import JsonStore

logger = logging.getLogger(__name__)

SESSION_KEY = "refresh_session"


@dataclass(frozen=True)
class RefreshDecision:
    allowed: bool
    remaining: int


class RefreshLimiter:
    """Counts accepted re-rolls per ``(date, lunch start)`` session.

    A session whose key differs from the stored one starts at zero. Once
    ``max_refreshes`` re-rolls have been accepted, further requests are
    rejected until the key changes.
    """

    def __init__(self, store: JsonStore, max_refreshes: int = MAX_REFRESHES):
        self.store = store
        self.max_refreshes = max_refreshes

    def _session_from(self, raw, session_key: str) -> RefreshSession:
        if isinstance(raw, dict):
            try:
                session = RefreshSession.from_dict(raw)
            except (KeyError, TypeError, ValueError):
                session = None
            if session is not None and session.session_key == session_key:
                return session
        return RefreshSession(session_key=session_key)

    def peek_remaining(self, session_key: str) -> int:
        """Remaining re-rolls for the session without consuming one."""
        session = self._session_from(self.store.get(SESSION_KEY), session_key)
        return max(self.max_refreshes - session.count, 0)

    def try_consume(self, session_key: str) -> RefreshDecision:
        """Consume one re-roll if any remain."""
        with self.store.transaction() as data:
            session = self._session_from(data.get(SESSION_KEY), session_key)
            if session.count >= self.max_refreshes:
                logger.info(f"Refresh limit reached for session {session_key}")
                return RefreshDecision(allowed=False, remaining=0)

            session.count += 1
            data[SESSION_KEY] = session.to_dict()

        remaining = self.max_refreshes - session.count
        logger.info(f"Refresh accepted for session {session_key}, {remaining} remaining")
        return RefreshDecision(allowed=True, remaining=remaining)
