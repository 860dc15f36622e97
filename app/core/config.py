"""
Configuration settings for the Trip Analysis API
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Supported environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Supported log levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AnalyzerBackend(str, Enum):
    """Which analyzer answers first; the heuristic engine is always the fallback"""
    TINYFISH = "tinyfish"
    CLAUDE = "claude"
    HEURISTIC = "heuristic"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation"""

    # API Configuration
    API_TITLE: str = Field(default="Trip Analysis API", description="API title")
    API_VERSION: str = Field(default="1.0.0", description="API version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, ge=1, le=65535, description="API port")

    # CORS Configuration (stored as string, parsed to list)
    CORS_ORIGINS_STR: str = Field(
        default="http://localhost:3000,http://localhost:5000",
        description="Allowed CORS origins (comma-separated)",
        alias="CORS_ORIGINS"
    )

    # Remote analysis budget
    REQUEST_TIMEOUT: int = Field(
        default=60,
        ge=5,
        le=300,
        description="Timeout for a remote analysis in seconds"
    )
    REMOTE_MAX_RETRIES: int = Field(
        default=1,
        ge=0,
        le=5,
        description="Retries for transient remote agent failures"
    )

    # Cache Configuration
    CACHE_TTL: int = Field(
        default=600,
        ge=10,
        le=86400,
        description="Analysis cache TTL in seconds"
    )
    SESSION_TTL: int = Field(
        default=3600,
        ge=60,
        le=86400,
        description="Session context TTL in seconds"
    )
    AGENT_STATE_TTL: int = Field(
        default=1800,
        ge=60,
        le=86400,
        description="Agent state TTL in seconds"
    )
    ENABLE_CACHE: bool = Field(
        default=True,
        description="Enable/disable caching of analysis results and session memory"
    )
    CACHE_MAX_SIZE: int = Field(
        default=1000,
        ge=10,
        le=100000,
        description="Maximum number of cache entries"
    )

    # Logging Configuration
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )

    # External API Keys
    TINYFISH_API_KEY: str = Field(
        default="",
        description="TinyFish browsing agent API key; enables live flight status and venue hours"
    )
    TINYFISH_API_URL: str = Field(
        default="https://agent.tinyfish.ai/v1/automation/run-sse",
        description="TinyFish automation endpoint (server-sent events)"
    )
    ANTHROPIC_API_KEY: str = Field(
        default="",
        description="Anthropic Claude API key for LLM trip analysis"
    )
    ANTHROPIC_MODEL: str = Field(
        default="claude-3-5-sonnet-20241022",
        description="Claude model used for trip analysis"
    )

    # Environment Configuration
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Get CORS origins as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(',') if origin.strip()]

    @property
    def analyzer_backend(self) -> AnalyzerBackend:
        """Analyzer selected at startup from the configured keys"""
        if self.TINYFISH_API_KEY:
            return AnalyzerBackend.TINYFISH
        if self.ANTHROPIC_API_KEY:
            return AnalyzerBackend.CLAUDE
        return AnalyzerBackend.HEURISTIC

    @field_validator('ANTHROPIC_API_KEY')
    @classmethod
    def validate_anthropic_api_key(cls, v: str) -> str:
        """Anthropic key is optional, but a configured one must look like a key"""
        if not v:
            return v

        if not v.startswith('sk-ant-'):
            raise ValueError("ANTHROPIC_API_KEY must start with 'sk-ant-'")

        if len(v) < 50:
            raise ValueError("ANTHROPIC_API_KEY appears to be invalid (too short)")

        return v

    @field_validator('TINYFISH_API_KEY', 'ANTHROPIC_API_KEY', mode='before')
    @classmethod
    def strip_api_key(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('LOG_LEVEL', mode='before')
    @classmethod
    def validate_log_level(cls, v) -> str:
        """Validate and normalize log level"""
        if isinstance(v, str):
            return v.upper()
        return v

    @model_validator(mode='after')
    def validate_environment_specific_settings(self) -> 'Settings':
        """Validate environment-specific configuration"""
        if self.ENVIRONMENT == Environment.PRODUCTION:
            if any('localhost' in origin for origin in self.CORS_ORIGINS):
                logging.warning(
                    "Production environment detected with localhost CORS origins. "
                    "Consider updating CORS_ORIGINS for production."
                )

            if self.LOG_LEVEL == LogLevel.DEBUG:
                logging.warning(
                    "DEBUG log level detected in production environment. "
                    "Consider using INFO or WARNING for production."
                )

        return self

    def get_environment_config(self) -> Dict[str, Any]:
        """Get environment-specific configuration"""
        base_config = {
            'api_title': self.API_TITLE,
            'api_version': self.API_VERSION,
            'environment': self.ENVIRONMENT,
            'debug': self.ENVIRONMENT == Environment.DEVELOPMENT,
        }

        if self.ENVIRONMENT == Environment.PRODUCTION:
            base_config.update({
                'log_level': LogLevel.INFO.value,
                'enable_docs': False,
            })
        else:
            base_config.update({
                'log_level': self.LOG_LEVEL,
                'enable_docs': True,
            })

        return base_config

    def get_cache_config(self) -> Dict[str, Any]:
        """Get cache-specific configuration"""
        return {
            'enabled': self.ENABLE_CACHE,
            'ttl': self.CACHE_TTL,
            'max_size': self.CACHE_MAX_SIZE,
        }

    def get_analyzer_config(self) -> Dict[str, Any]:
        """Get analyzer selection and remote call configuration"""
        return {
            'backend': self.analyzer_backend.value,
            'timeout': self.REQUEST_TIMEOUT,
            'max_retries': self.REMOTE_MAX_RETRIES,
            'tinyfish_configured': bool(self.TINYFISH_API_KEY),
            'anthropic_configured': bool(self.ANTHROPIC_API_KEY),
        }

    def mask_sensitive_data(self) -> Dict[str, Any]:
        """Get configuration with sensitive data masked for logging"""
        config = self.model_dump()

        for key in ('TINYFISH_API_KEY', 'ANTHROPIC_API_KEY'):
            if config.get(key):
                config[key] = f"{config[key][:10]}***"

        return config

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "validate_assignment": True,
        "use_enum_values": True,
        "env_parse_none_str": "None",
        "extra": "ignore",
    }


def get_settings() -> Settings:
    """Get validated settings instance"""
    return Settings()


# Global settings instance - initialized when first accessed
settings: Optional[Settings] = None


def get_global_settings() -> Settings:
    """Get or create global settings instance"""
    global settings
    if settings is None:
        settings = get_settings()
    return settings
