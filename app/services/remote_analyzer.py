"""
Remote AI analyzers and the shared response parsing they rely on.
"""

import json
import logging
from abc import abstractmethod
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from app.models.requests import TripRequest
from app.models.responses import AnalysisOutcome, TripContext
from app.services.http_client import AsyncHttpClient
from app.services.prompt_builder import build_analysis_prompt, search_url
from app.services.trip_analyzer import TripAnalyzer


REQUIRED_KEYS = ("risks", "suggestions", "reasoning")


def has_analysis_shape(payload: Any) -> bool:
    """True if the payload looks like an analysis (risks, suggestions and reasoning present)."""
    return isinstance(payload, dict) and all(payload.get(key) is not None for key in REQUIRED_KEYS)


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Pull the outermost JSON object out of free text.

    Raises:
        ValueError: If no JSON object can be decoded
    """
    start_idx = text.find('{')
    end_idx = text.rfind('}') + 1

    if start_idx == -1 or end_idx == 0:
        raise ValueError("No JSON object found in response")

    try:
        return json.loads(text[start_idx:end_idx])
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON response: {e}")


class RemoteAnalyzer(TripAnalyzer):
    """
    Base class for analyzers that delegate to an external AI service.

    Subclasses only fetch a raw payload; validation into an AnalysisOutcome
    happens here so every remote strategy fails the same way.
    """

    name = "remote"

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def analyze(
        self,
        request: TripRequest,
        context: TripContext,
        previous_state: Optional[Dict[str, Any]] = None
    ) -> AnalysisOutcome:
        prompt = build_analysis_prompt(request, context, previous_state)
        payload = await self.fetch_analysis(request, prompt)
        return self.validate_outcome(payload)

    @abstractmethod
    async def fetch_analysis(self, request: TripRequest, prompt: str) -> Dict[str, Any]:
        """Raw analysis payload from the remote service."""

    def validate_outcome(self, payload: Dict[str, Any]) -> AnalysisOutcome:
        """
        Validate a raw payload against the AnalysisOutcome shape.

        Raises:
            ValueError: If the payload is missing fields or has invalid values
        """
        if not has_analysis_shape(payload):
            raise ValueError(f"{self.name} response is missing risks, suggestions or reasoning")

        data = dict(payload)
        data.setdefault("overallStatus", "good")
        data.setdefault("statusMessage", "")
        try:
            return AnalysisOutcome.model_validate(data)
        except ValidationError as e:
            self.logger.error(f"{self.name} response validation failed: {e}")
            raise ValueError(f"Invalid {self.name} analysis: {e}")


class TinyFishAnalyzer(RemoteAnalyzer):
    """
    Browsing agent that reads a live search page (flight status or venue
    hours) and answers with the analysis JSON over a server-sent event stream.
    """

    name = "tinyfish"

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://agent.tinyfish.ai/v1/automation/run-sse",
        http_client: Optional[AsyncHttpClient] = None,
        timeout: int = 60,
        max_retries: int = 2
    ):
        super().__init__()
        self.api_key = api_key
        self.api_url = api_url
        self.http_client = http_client or AsyncHttpClient(timeout=timeout, max_retries=max_retries)

    async def fetch_analysis(self, request: TripRequest, prompt: str) -> Dict[str, Any]:
        payload = {
            "url": search_url(request),
            "goal": prompt,
            "proxy_config": {"enabled": False},
        }
        response = await self.http_client.post_json(
            self.api_url,
            payload,
            headers={"X-API-Key": self.api_key}
        )
        return self.parse_event_stream(response.text.splitlines())

    def parse_event_stream(self, lines: Iterable[str]) -> Dict[str, Any]:
        """
        Find the analysis in an SSE body.

        Each non-empty line may carry a "data:" prefix. The first event whose
        resultJson (string or object), or which itself, has the analysis
        shape wins.

        Raises:
            ValueError: If no event contains an analysis
        """
        for line in lines:
            line = line.strip()
            if not line:
                continue
            if line.startswith("data:"):
                line = line[5:].strip()

            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(event, dict):
                continue

            result = event.get("resultJson")
            if isinstance(result, str):
                try:
                    result = json.loads(result)
                except json.JSONDecodeError:
                    result = None
            if has_analysis_shape(result):
                self.logger.debug(f"Analysis found in {event.get('type', 'unknown')} event")
                return result

            if has_analysis_shape(event):
                return event

        raise ValueError("Could not parse TinyFish response")

    async def close(self) -> None:
        await self.http_client.close()
