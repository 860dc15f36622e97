"""
Tests for configuration management and environment variable handling
"""

import os
import pytest
from unittest.mock import patch
from pydantic import ValidationError

from app.core.config import AnalyzerBackend, Settings, Environment, LogLevel, get_settings


VALID_ANTHROPIC_KEY = "sk-ant-REDACTED"


def load_settings(env=None):
    """Settings built from the given environment only, ignoring any .env file."""
    with patch.dict(os.environ, env or {}, clear=True):
        return Settings(_env_file=None)


class TestSettings:
    """Test Settings class validation and functionality"""

    def test_default_settings(self):
        """Test default settings values"""
        settings = load_settings()

        assert settings.API_TITLE == "Trip Analysis API"
        assert settings.API_VERSION == "1.0.0"
        assert settings.API_HOST == "0.0.0.0"
        assert settings.API_PORT == 8000
        assert settings.CORS_ORIGINS == ["http://localhost:3000", "http://localhost:5000"]
        assert settings.REQUEST_TIMEOUT == 60
        assert settings.CACHE_TTL == 600
        assert settings.SESSION_TTL == 3600
        assert settings.AGENT_STATE_TTL == 1800
        assert settings.ENABLE_CACHE is True
        assert settings.CACHE_MAX_SIZE == 1000
        assert settings.LOG_LEVEL == LogLevel.INFO
        assert settings.ENVIRONMENT == Environment.DEVELOPMENT
        assert settings.TINYFISH_API_KEY == ""
        assert settings.ANTHROPIC_API_KEY == ""

    def test_runs_without_any_api_key(self):
        """Test that no key is required; the heuristic engine is used instead"""
        settings = load_settings()
        assert settings.analyzer_backend == AnalyzerBackend.HEURISTIC

    def test_environment_variable_override(self):
        """Test that environment variables override defaults"""
        settings = load_settings({
            "API_TITLE": "Custom API Title",
            "API_PORT": "9000",
            "REQUEST_TIMEOUT": "120",
            "CACHE_TTL": "7200",
            "SESSION_TTL": "600",
            "ENABLE_CACHE": "false",
            "LOG_LEVEL": "DEBUG",
            "ENVIRONMENT": "production",
            "TINYFISH_API_URL": "https://agent.example/run-sse",
        })

        assert settings.API_TITLE == "Custom API Title"
        assert settings.API_PORT == 9000
        assert settings.REQUEST_TIMEOUT == 120
        assert settings.CACHE_TTL == 7200
        assert settings.SESSION_TTL == 600
        assert settings.ENABLE_CACHE is False
        assert settings.LOG_LEVEL == LogLevel.DEBUG
        assert settings.ENVIRONMENT == Environment.PRODUCTION
        assert settings.TINYFISH_API_URL == "https://agent.example/run-sse"

    def test_anthropic_api_key_validation_invalid_format(self):
        """Test that invalid Anthropic API key format raises validation error"""
        with pytest.raises(ValidationError) as exc_info:
            load_settings({"ANTHROPIC_API_KEY": "invalid-key"})

        assert "must start with 'sk-ant-'" in str(exc_info.value)

    def test_anthropic_api_key_validation_too_short(self):
        """Test that too short Anthropic API key raises validation error"""
        with pytest.raises(ValidationError) as exc_info:
            load_settings({"ANTHROPIC_API_KEY": "sk-ant-short"})

        assert "too short" in str(exc_info.value)

    def test_anthropic_api_key_validation_valid(self):
        """Test that valid Anthropic API key passes validation"""
        settings = load_settings({"ANTHROPIC_API_KEY": VALID_ANTHROPIC_KEY})
        assert settings.ANTHROPIC_API_KEY == VALID_ANTHROPIC_KEY

    def test_api_keys_are_stripped(self):
        """Test surrounding whitespace is removed from keys"""
        settings = load_settings({"TINYFISH_API_KEY": "  tf-key  ", "ANTHROPIC_API_KEY": "   "})
        assert settings.TINYFISH_API_KEY == "tf-key"
        assert settings.ANTHROPIC_API_KEY == ""

    def test_cors_origins_with_spaces(self):
        """Test CORS origins parsing with spaces"""
        settings = load_settings({
            "CORS_ORIGINS": " http://localhost:3000 , https://example.com , https://app.example.com "
        })

        expected = ["http://localhost:3000", "https://example.com", "https://app.example.com"]
        assert settings.CORS_ORIGINS == expected

    def test_log_level_case_insensitive(self):
        """Test that log level is case insensitive"""
        settings = load_settings({"LOG_LEVEL": "debug"})
        assert settings.LOG_LEVEL == LogLevel.DEBUG

    def test_port_validation_bounds(self):
        """Test API port validation bounds"""
        with pytest.raises(ValidationError):
            load_settings({"API_PORT": "0"})
        with pytest.raises(ValidationError):
            load_settings({"API_PORT": "65536"})
        assert load_settings({"API_PORT": "8080"}).API_PORT == 8080

    def test_timeout_validation_bounds(self):
        """Test request timeout validation bounds"""
        with pytest.raises(ValidationError):
            load_settings({"REQUEST_TIMEOUT": "4"})
        with pytest.raises(ValidationError):
            load_settings({"REQUEST_TIMEOUT": "400"})

    def test_ttl_validation_bounds(self):
        """Test cache and session TTL validation bounds"""
        with pytest.raises(ValidationError):
            load_settings({"CACHE_TTL": "5"})
        with pytest.raises(ValidationError):
            load_settings({"CACHE_TTL": "90000"})
        with pytest.raises(ValidationError):
            load_settings({"SESSION_TTL": "30"})
        with pytest.raises(ValidationError):
            load_settings({"REMOTE_MAX_RETRIES": "6"})


class TestAnalyzerSelection:
    """Test which analyzer the configured keys select"""

    def test_tinyfish_preferred(self):
        """Test TinyFish wins when both keys are configured"""
        settings = load_settings({"TINYFISH_API_KEY": "tf-key", "ANTHROPIC_API_KEY": VALID_ANTHROPIC_KEY})
        assert settings.analyzer_backend == AnalyzerBackend.TINYFISH

    def test_claude_when_only_anthropic_key(self):
        """Test Claude is used with only an Anthropic key"""
        settings = load_settings({"ANTHROPIC_API_KEY": VALID_ANTHROPIC_KEY})
        assert settings.analyzer_backend == AnalyzerBackend.CLAUDE

    def test_analyzer_config(self):
        """Test analyzer configuration helper"""
        config = load_settings({"TINYFISH_API_KEY": "tf-key", "REMOTE_MAX_RETRIES": "3"}).get_analyzer_config()

        assert config == {
            'backend': 'tinyfish',
            'timeout': 60,
            'max_retries': 3,
            'tinyfish_configured': True,
            'anthropic_configured': False,
        }


class TestEnvironmentSpecificSettings:
    """Test environment-specific configuration behavior"""

    def test_development_environment_config(self):
        """Test development environment configuration"""
        config = load_settings({"ENVIRONMENT": "development"}).get_environment_config()

        assert config['debug'] is True
        assert config['enable_docs'] is True

    def test_production_environment_config(self):
        """Test production environment configuration"""
        config = load_settings({"ENVIRONMENT": "production", "LOG_LEVEL": "DEBUG"}).get_environment_config()

        assert config['debug'] is False
        assert config['enable_docs'] is False
        assert config['log_level'] == "INFO"

    def test_production_localhost_cors_warning(self):
        """Test that production with localhost CORS logs a warning"""
        with patch('logging.warning') as mock_warning:
            load_settings({"ENVIRONMENT": "production"})

        assert any("localhost CORS" in call.args[0] for call in mock_warning.call_args_list)

    def test_cache_config(self):
        """Test cache configuration helper"""
        config = load_settings({"CACHE_TTL": "300", "CACHE_MAX_SIZE": "50"}).get_cache_config()

        assert config == {'enabled': True, 'ttl': 300, 'max_size': 50}


class TestSensitiveData:
    """Test masking of API keys"""

    def test_mask_sensitive_data(self):
        """Test that keys are truncated in loggable config"""
        masked = load_settings({
            "TINYFISH_API_KEY": "tf-live-abcdefghijklmnop",
            "ANTHROPIC_API_KEY": VALID_ANTHROPIC_KEY,
        }).mask_sensitive_data()

        assert masked['TINYFISH_API_KEY'] == "tf-live-ab***"
        assert masked['ANTHROPIC_API_KEY'] == "sk-ant-tes***"
        assert VALID_ANTHROPIC_KEY not in str(masked)

    def test_empty_keys_left_empty(self):
        """Test that unset keys stay empty"""
        masked = load_settings().mask_sensitive_data()
        assert masked['TINYFISH_API_KEY'] == ""


class TestGetSettings:
    """Test settings factory"""

    def test_get_settings_returns_settings(self):
        """Test get_settings builds a validated instance"""
        with patch.dict(os.environ, {"API_PORT": "8001"}, clear=True):
            settings = get_settings()

        assert isinstance(settings, Settings)
        assert settings.API_PORT == 8001
