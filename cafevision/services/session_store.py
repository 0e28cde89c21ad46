"""
In-memory registry of design workflow sessions
"""
import logging
from collections import OrderedDict
from typing import Any, Optional

from cafevision.core.config import settings
from cafevision.core.exceptions import SessionNotFoundError
from cafevision.engines.workflow import DesignWorkflow

logger = logging.getLogger(__name__)


class SessionStore:
    """Holds one DesignWorkflow per session id for the life of the process"""

    def __init__(self, max_sessions: Optional[int] = None, client: Optional[Any] = None):
        self.max_sessions = settings.max_sessions if max_sessions is None else max_sessions
        self._client = client
        self._sessions: "OrderedDict[str, DesignWorkflow]" = OrderedDict()

    def create(self) -> DesignWorkflow:
        workflow = DesignWorkflow(client=self._client)
        self._sessions[workflow.session_id] = workflow
        self._evict()
        logger.info(f"Created session {workflow.session_id} ({len(self._sessions)} active)")
        return workflow

    def get(self, session_id: str) -> DesignWorkflow:
        workflow = self._sessions.get(session_id)
        if workflow is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        self._sessions.move_to_end(session_id)
        return workflow

    def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        logger.info(f"Deleted session {session_id}")

    def __len__(self) -> int:
        return len(self._sessions)

    def _evict(self) -> None:
        while len(self._sessions) > self.max_sessions:
            # The newest session is never a candidate. Least recently used idle
            # session goes first, then the least recently used busy one.
            candidates = list(self._sessions.items())[:-1]
            if not candidates:
                break
            victim = next((sid for sid, wf in candidates if not wf.snapshot().busy), candidates[0][0])
            self._sessions.pop(victim)
            logger.info(f"Evicted session {victim} (limit {self.max_sessions})")


# Global session store
session_store = SessionStore()
