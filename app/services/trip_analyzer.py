"""
Common contract for trip analyzers.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from app.models.requests import TripRequest
from app.models.responses import AnalysisOutcome, TripContext


class TripAnalyzer(ABC):
    """
    Strategy that turns a trip request and its context into an analysis.

    Implementations: the local HeuristicAnalyzer and the remote AI analyzers.
    """

    name: str = "analyzer"

    @abstractmethod
    async def analyze(
        self,
        request: TripRequest,
        context: TripContext,
        previous_state: Optional[Dict[str, Any]] = None
    ) -> AnalysisOutcome:
        """
        Analyze a trip plan.

        Args:
            request: Validated trip request
            context: Context built from the request
            previous_state: Agent memory of the caller, if any

        Returns:
            AnalysisOutcome with risks, suggestions, reasoning and status

        Raises:
            Exception: Remote analyzers raise on any failure so the caller can
                fall back to the heuristic analyzer
        """

    async def close(self) -> None:
        """Release any resources held by the analyzer."""
        return None
