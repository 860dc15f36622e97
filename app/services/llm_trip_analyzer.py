"""
Trip analyzer backed by the Anthropic Claude API.
"""

from typing import Any, Dict

import anthropic

from app.models.requests import TripRequest
from app.services.remote_analyzer import RemoteAnalyzer, extract_json_object


class ClaudeTripAnalyzer(RemoteAnalyzer):
    """
    Remote analyzer that asks Claude for the analysis JSON.

    Unlike the browsing agent it has no live page, so it reasons over the
    locally computed context only.
    """

    name = "claude"

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-20241022", timeout: int = 60):
        """
        Initialize the Claude analyzer.

        Args:
            api_key: Anthropic API key
            model: Claude model to use
            timeout: Request timeout in seconds
        """
        super().__init__()
        self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout)
        self.model = model

    async def fetch_analysis(self, request: TripRequest, prompt: str) -> Dict[str, Any]:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=1500,
            temperature=0.2,
            messages=[
                {
                    "role": "user",
                    "content": prompt
                }
            ]
        )

        response_text = response.content[0].text.strip()
        self.logger.info(f"Claude response for {request.destination_name}: {len(response_text)} characters")

        return extract_json_object(response_text)

    async def close(self) -> None:
        await self.client.close()
