"""
Trip analysis orchestration: cache, analyzer strategy with heuristic
fallback, and per-session memory.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.core.config import AnalyzerBackend, Settings
from app.core.error_handler import error_handler
from app.models.requests import TripRequest
from app.models.responses import AnalysisOutcome, AnalysisResult, TripContext
from app.services.cache_manager import CacheManager
from app.services.context_builder import build_context
from app.services.heuristic_analyzer import HeuristicAnalyzer
from app.services.llm_trip_analyzer import ClaudeTripAnalyzer
from app.services.remote_analyzer import RemoteAnalyzer, TinyFishAnalyzer
from app.services.session_store import SessionStore


def select_remote_analyzer(settings: Settings) -> Optional[RemoteAnalyzer]:
    """Remote analyzer for the configured keys, or None for heuristic-only mode."""
    backend = settings.analyzer_backend
    if backend == AnalyzerBackend.TINYFISH:
        return TinyFishAnalyzer(
            api_key=settings.TINYFISH_API_KEY,
            api_url=settings.TINYFISH_API_URL,
            timeout=settings.REQUEST_TIMEOUT,
            max_retries=settings.REMOTE_MAX_RETRIES
        )
    if backend == AnalyzerBackend.CLAUDE:
        return ClaudeTripAnalyzer(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            timeout=settings.REQUEST_TIMEOUT
        )
    return None


class TripAnalysisService:
    """
    Owns the cache, the session store and the analyzer strategies.

    One instance lives for the lifetime of the application and is handed to
    the endpoints through a FastAPI dependency.
    """

    def __init__(
        self,
        settings: Settings,
        cache: Optional[CacheManager] = None,
        session_store: Optional[SessionStore] = None,
        remote_analyzer: Optional[RemoteAnalyzer] = None
    ):
        self.settings = settings
        self.cache = cache or CacheManager(
            ttl=settings.CACHE_TTL,
            enabled=settings.ENABLE_CACHE,
            max_size=settings.CACHE_MAX_SIZE
        )
        self.session_store = session_store or SessionStore(
            self.cache,
            session_ttl=settings.SESSION_TTL,
            agent_state_ttl=settings.AGENT_STATE_TTL
        )
        self.remote_analyzer = remote_analyzer if remote_analyzer is not None else select_remote_analyzer(settings)
        self.heuristic_analyzer = HeuristicAnalyzer()
        self.logger = logging.getLogger(__name__)

        self.logger.info(
            f"Trip analysis service ready: analyzer="
            f"{self.remote_analyzer.name if self.remote_analyzer else 'heuristic'}, "
            f"cache={'on' if self.cache.enabled else 'off'}"
        )

    @property
    def analyzer_name(self) -> str:
        return self.remote_analyzer.name if self.remote_analyzer else self.heuristic_analyzer.name

    async def analyze_trip(self, request: TripRequest, session_id: str) -> AnalysisResult:
        """
        Analyze a trip plan, serving repeated requests from the cache.

        Args:
            request: Validated trip request
            session_id: Anonymous caller id used for session and agent memory

        Returns:
            AnalysisResult: Context plus risks, suggestions, reasoning and status
        """
        cache_key = self.cache.generate_cache_key(request)

        result = await self._cached_result(cache_key)
        if result is not None:
            self.logger.info(f"Serving cached analysis for {request.destination_name}")
            await self.session_store.record_search(session_id, request, result)
            return result

        context = build_context(request)
        previous_state = await self.session_store.get_agent_state(session_id)

        outcome = await self._run_analyzers(request, context, previous_state)
        result = AnalysisResult.from_outcome(context, outcome)

        await self.cache.set(cache_key, result.to_json_dict(), ttl=self.settings.CACHE_TTL)
        await self.session_store.record_search(session_id, request, result)
        await self.session_store.record_agent_state(session_id, request, result, previous_state)

        self.logger.info(
            f"Analysis for {request.destination_name}: {result.overall_status} "
            f"({len(result.risks)} risks, {len(result.suggestions)} suggestions)"
        )
        return result

    async def _cached_result(self, cache_key: str) -> Optional[AnalysisResult]:
        cached = await self.cache.get(cache_key)
        if cached is None:
            return None
        try:
            return AnalysisResult.model_validate(cached)
        except ValidationError as e:
            self.logger.warning(f"Discarding unreadable cache entry {cache_key}: {e}")
            await self.cache.invalidate(cache_key)
            return None

    async def _run_analyzers(
        self,
        request: TripRequest,
        context: TripContext,
        previous_state: Optional[Dict[str, Any]]
    ) -> AnalysisOutcome:
        if self.remote_analyzer is not None:
            try:
                outcome = await asyncio.wait_for(
                    self.remote_analyzer.analyze(request, context, previous_state),
                    timeout=self.settings.REQUEST_TIMEOUT
                )
                self.logger.info(f"{self.remote_analyzer.name} analysis succeeded for {request.destination_name}")
                return outcome
            except Exception as e:
                error_handler.handle_remote_error(
                    e,
                    analyzer=self.remote_analyzer.name,
                    destination=request.destination_name
                )
                self.logger.warning(f"Falling back to heuristic analysis for {request.destination_name}")

        return await self.heuristic_analyzer.analyze(request, context, previous_state)

    async def get_memory(self, session_id: str) -> dict:
        """Session context and agent state for a caller."""
        return {
            "sessionId": session_id,
            "sessionContext": await self.session_store.get_session(session_id),
            "agentState": await self.session_store.get_agent_state(session_id),
        }

    def get_cache_status(self) -> dict:
        return {
            "available": self.cache.available,
            "analyzer": self.analyzer_name,
            "stats": self.cache.get_stats(),
        }

    async def close(self) -> None:
        if self.remote_analyzer is not None:
            await self.remote_analyzer.close()
