from typing import Dict, List, Any, Optional
from datetime import datetime, timezone
import asyncio
import copy

from baton.domain.context.run_context import Context
from baton.infrastructure.observability.logging import AgentLogger, MetricsCollector, metrics as default_metrics


class SessionStore:
    """Keeps conversation records between turns of a session

    Only serialized records are stored, so a loaded Context never shares
    state with the one that was saved or with other sessions.
    """

    def __init__(self, max_messages: Optional[int] = None, metrics: Optional[MetricsCollector] = None):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.max_messages = max_messages
        self.metrics = metrics or default_metrics
        self.logger = AgentLogger(__name__)
        self._lock = asyncio.Lock()

    async def save(self, session_id: str, context: Context) -> None:
        """Persist the context of a session"""

        record = context.to_record()
        history = record["conversation_history"]
        if self.max_messages is not None and len(history) > self.max_messages:
            history = history[-self.max_messages:]
            # Tool results whose call was cut off would break call/result pairing
            while history and history[0]["role"] == "tool":
                history = history[1:]
            record["conversation_history"] = history

        async with self._lock:
            self.sessions[session_id] = {
                "record": record,
                "saved_at": datetime.now(timezone.utc).isoformat()
            }
            self.metrics.set_gauge("sessions.active", len(self.sessions))

        self.logger.log_context_update(
            "session",
            "save",
            {
                "session_id": session_id,
                "messages": len(record["conversation_history"]),
                "transitions": len(record["agent_history"])
            }
        )

    async def load(self, session_id: str) -> Optional[Context]:
        """Restore the context of a session, or None when unknown"""

        async with self._lock:
            entry = self.sessions.get(session_id)
            if entry is None:
                return None
            record = copy.deepcopy(entry["record"])

        return Context.from_record(record)

    async def load_or_create(self, session_id: str) -> Context:
        context = await self.load(session_id)
        return context if context is not None else Context()

    async def delete(self, session_id: str) -> bool:
        """Clear all data for a session"""

        async with self._lock:
            removed = self.sessions.pop(session_id, None) is not None
            self.metrics.set_gauge("sessions.active", len(self.sessions))

        if removed:
            self.logger.log_context_update("session", "delete", {"session_id": session_id})
        return removed

    async def list_sessions(self) -> List[str]:
        async with self._lock:
            return list(self.sessions.keys())
