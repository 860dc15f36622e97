"""
Tests for the trip analysis, cache status and agent memory endpoints.
"""

import httpx
import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock

from app.core.config import Settings
from app.main import app, get_analysis_service
from app.models.responses import AnalysisOutcome
from app.services.remote_analyzer import RemoteAnalyzer
from app.services.trip_analysis_service import TripAnalysisService
from tests.fixtures import SAMPLE_OUTCOME, TripPayloadFixtures


ANALYZE_URL = "/api/agent/analyze-plan"


def make_settings(**overrides):
    return Settings(_env_file=None, TINYFISH_API_KEY="", ANTHROPIC_API_KEY="", **overrides)


def make_remote():
    remote = Mock(spec=RemoteAnalyzer)
    remote.name = "tinyfish"
    remote.analyze = AsyncMock(return_value=AnalysisOutcome.model_validate(SAMPLE_OUTCOME))
    remote.close = AsyncMock()
    return remote


@pytest.fixture
def remote():
    return make_remote()


def client_for(service):
    app.dependency_overrides[get_analysis_service] = lambda: service
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def heuristic_client():
    return client_for(TripAnalysisService(make_settings()))


class TestAnalyzePlanHeuristic:
    """Analysis with no remote analyzer configured."""

    def test_venue_visit(self, heuristic_client):
        response = heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.VENUE_VISIT)
        assert response.status_code == 200

        data = response.json()
        assert data["overallStatus"] == "good"
        assert data["statusMessage"].startswith("Your plan looks solid!")
        assert data["risks"][0]["title"] == "Good Timing"
        assert data["reasoning"]

        context = data["context"]
        assert context["destination"] == "Central Park"
        assert context["estimatedTravelMinutes"] == 17
        assert context["userArrivalTime"] == "14:17"
        assert context["venueClosingTime"] == "8:00 PM"
        assert context["distanceKm"] == 13
        assert context["transportMode"] == "driving"
        assert "flightMode" not in context

    def test_catching_flight(self, heuristic_client):
        response = heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.CATCHING_FLIGHT)
        assert response.status_code == 200

        data = response.json()
        assert data["context"]["flightMode"] == "catching"
        assert data["context"]["venueHours"] == "Airport - 24/7"
        assert data["overallStatus"] in ("good", "caution", "danger")

    def test_response_is_camel_case(self, heuristic_client):
        data = heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.AIRPORT_PICKUP).json()

        assert set(data) == {"context", "risks", "suggestions", "reasoning", "overallStatus", "statusMessage"}
        for key in data["context"]:
            assert "_" not in key

    def test_repeated_request_served_from_cache(self, heuristic_client):
        first = heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.VENUE_VISIT).json()
        second = heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.VENUE_VISIT).json()

        assert first == second
        info = heuristic_client.get("/cache/info").json()
        analysis_keys = [entry for entry in info["entries"] if entry["namespace"] == "analysis"]
        assert len(analysis_keys) == 1
        assert analysis_keys[0]["access_count"] == 2

    @pytest.mark.parametrize("payload", TripPayloadFixtures.INVALID_PAYLOADS)
    def test_invalid_payloads(self, heuristic_client, payload):
        response = heuristic_client.post(ANALYZE_URL, json=payload)

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestAnalyzePlanRemote:
    """Analysis with a remote analyzer and heuristic fallback."""

    def test_remote_result_returned(self, remote):
        client = client_for(TripAnalysisService(make_settings(), remote_analyzer=remote))

        response = client.post(ANALYZE_URL, json=TripPayloadFixtures.CATCHING_FLIGHT)
        assert response.status_code == 200

        data = response.json()
        assert data["overallStatus"] == "caution"
        assert data["risks"][0]["title"] == "Flight Delayed"
        assert data["statusMessage"] == SAMPLE_OUTCOME["statusMessage"]
        assert data["context"]["destination"] == "JFK Airport"
        remote.analyze.assert_awaited_once()

    def test_remote_failure_falls_back_to_heuristic(self, remote):
        remote.analyze.side_effect = httpx.ConnectError("Connection refused")
        client = client_for(TripAnalysisService(make_settings(), remote_analyzer=remote))

        response = client.post(ANALYZE_URL, json=TripPayloadFixtures.VENUE_VISIT)

        assert response.status_code == 200
        data = response.json()
        assert data["overallStatus"] == "good"
        assert data["risks"][0]["title"] == "Good Timing"

    def test_invalid_remote_response_falls_back(self, remote):
        remote.analyze.side_effect = ValueError("Could not parse TinyFish response")
        client = client_for(TripAnalysisService(make_settings(), remote_analyzer=remote))

        response = client.post(ANALYZE_URL, json=TripPayloadFixtures.LATE_NIGHT_BAR)

        assert response.status_code == 200
        assert response.json()["context"]["destination"] == "Downtown Bar"

    def test_cache_hit_skips_remote(self, remote):
        client = client_for(TripAnalysisService(make_settings(), remote_analyzer=remote))

        client.post(ANALYZE_URL, json=TripPayloadFixtures.CATCHING_FLIGHT)
        response = client.post(ANALYZE_URL, json=TripPayloadFixtures.CATCHING_FLIGHT)

        assert response.json()["risks"][0]["title"] == "Flight Delayed"
        remote.analyze.assert_awaited_once()

    def test_cache_disabled_calls_remote_every_time(self, remote):
        client = client_for(TripAnalysisService(make_settings(ENABLE_CACHE=False), remote_analyzer=remote))

        client.post(ANALYZE_URL, json=TripPayloadFixtures.CATCHING_FLIGHT)
        client.post(ANALYZE_URL, json=TripPayloadFixtures.CATCHING_FLIGHT)

        assert remote.analyze.await_count == 2

    def test_health_reports_remote_analyzer(self, remote):
        client = client_for(TripAnalysisService(make_settings(), remote_analyzer=remote))

        assert client.get("/health").json()["analyzer"] == "tinyfish"


class TestMemoryEndpoints:
    """Session memory and cache status endpoints."""

    def test_agent_memory_empty(self, heuristic_client):
        data = heuristic_client.get("/api/agent-memory").json()

        assert data["sessionId"]
        assert data["sessionContext"] is None
        assert data["agentState"] is None

    def test_agent_memory_after_analysis(self, heuristic_client):
        heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.VENUE_VISIT)
        heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.LATE_NIGHT_BAR)

        data = heuristic_client.get("/api/agent-memory").json()

        searches = data["sessionContext"]["recentSearches"]
        assert [search["destination"] for search in searches] == ["Downtown Bar", "Central Park"]
        assert data["sessionContext"]["lastTransportMode"] == "walking"
        assert data["agentState"]["queryCount"] == 2
        assert data["agentState"]["recentDestinations"] == ["Downtown Bar", "Central Park"]

    def test_cached_analysis_still_recorded_in_session(self, heuristic_client):
        heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.VENUE_VISIT)
        heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.VENUE_VISIT)

        data = heuristic_client.get("/api/agent-memory").json()

        assert len(data["sessionContext"]["recentSearches"]) == 2
        assert data["agentState"]["queryCount"] == 1

    def test_sessions_separated_by_user_agent(self, heuristic_client):
        heuristic_client.post(ANALYZE_URL, json=TripPayloadFixtures.VENUE_VISIT)

        data = heuristic_client.get("/api/agent-memory", headers={"User-Agent": "other-browser"}).json()

        assert data["sessionContext"] is None

    def test_cache_status(self, heuristic_client):
        data = heuristic_client.get("/api/cache-status").json()

        assert data["available"] is True
        assert data["analyzer"] == "heuristic"
        assert data["stats"]["enabled"] is True
        assert "hit_rate" in data["stats"]
