"""
Per-session memory: recent searches and agent state, kept in the cache.
"""

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.models.requests import TripRequest
from app.models.responses import AnalysisResult
from app.services.cache_manager import AGENT_PREFIX, SESSION_PREFIX, CacheManager


MAX_RECENT_SEARCHES = 10
MAX_RECENT_DESTINATIONS = 5


def make_session_id(client_ip: Optional[str], user_agent: Optional[str]) -> str:
    """Anonymous session id derived from the caller's IP and User-Agent."""
    raw = f"{client_ip or 'unknown'}:{user_agent or 'unknown'}"
    return hashlib.md5(raw.encode('utf-8')).hexdigest()[:16]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionStore:
    """
    Session context and agent state stored in a CacheManager.

    Session context remembers what the caller searched for; agent state is
    the short memory handed to remote AI analyzers as prompt context.
    """

    def __init__(self, cache: CacheManager, session_ttl: int = 3600, agent_state_ttl: int = 1800):
        self.cache = cache
        self.session_ttl = session_ttl
        self.agent_state_ttl = agent_state_ttl
        self.logger = logging.getLogger(__name__)

    async def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        return await self.cache.get(f"{SESSION_PREFIX}{session_id}")

    async def get_agent_state(self, session_id: str) -> Optional[Dict[str, Any]]:
        return await self.cache.get(f"{AGENT_PREFIX}{session_id}")

    async def record_search(self, session_id: str, request: TripRequest, result: AnalysisResult) -> Dict[str, Any]:
        """
        Prepend a search to the session's history.

        Args:
            session_id: Session identifier
            request: Trip request that was analyzed
            result: Analysis returned to the caller

        Returns:
            Updated session context
        """
        existing = await self.get_session(session_id) or {"recentSearches": [], "preferences": {}}

        search = {
            "destination": request.destination_name,
            "fullAddress": request.full_address,
            "status": result.overall_status,
            "timestamp": _now_iso(),
        }
        session = {
            **existing,
            "recentSearches": [search] + list(existing.get("recentSearches", []))[:MAX_RECENT_SEARCHES - 1],
            "lastTransportMode": request.transport_mode.value,
            "lastLocation": request.current_location,
            "updatedAt": _now_iso(),
        }

        await self.cache.set(f"{SESSION_PREFIX}{session_id}", session, ttl=self.session_ttl)
        return session

    async def record_agent_state(
        self,
        session_id: str,
        request: TripRequest,
        result: AnalysisResult,
        previous_state: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Update the agent's memory of this caller after a fresh analysis."""
        previous_state = previous_state or {}
        recent = list(previous_state.get("recentDestinations", []))[:MAX_RECENT_DESTINATIONS - 1]

        state = {
            "lastDestination": request.destination_name,
            "lastAnalysis": result.overall_status,
            "lastQuery": _now_iso(),
            "queryCount": int(previous_state.get("queryCount", 0)) + 1,
            "recentDestinations": [request.destination_name] + recent,
        }

        await self.cache.set(f"{AGENT_PREFIX}{session_id}", state, ttl=self.agent_state_ttl)
        self.logger.debug(f"Agent state for {session_id}: {state['queryCount']} queries")
        return state
