"""
Text-service provider configuration (bring your own key).
Supports OpenAI, OpenRouter, Google Gemini, and Anthropic Claude.
"""

import os
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, SecretStr


class LLMProvider(str, Enum):
    """Supported text-service providers."""
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    GEMINI = "gemini"
    CLAUDE = "claude"


# ============================================================================
# Model Definitions by Provider
# ============================================================================

# Extraction needs reliable JSON; revision benefits from a stronger editor.
OPENAI_MODELS: Dict[str, Dict[str, Any]] = {
    "gpt-4o": {
        "name": "GPT-4o",
        "context_window": 128000,
        "max_output": 16384,
        "recommended_for": ["revision"],
    },
    "gpt-4o-mini": {
        "name": "GPT-4o Mini",
        "context_window": 128000,
        "max_output": 16384,
        "recommended_for": ["extraction"],
    },
}

OPENROUTER_MODELS: Dict[str, Dict[str, Any]] = {
    "anthropic/claude-3.5-sonnet": {
        "name": "Claude 3.5 Sonnet (via OpenRouter)",
        "context_window": 200000,
        "max_output": 8192,
        "recommended_for": ["revision"],
    },
    "openai/gpt-4o-mini": {
        "name": "GPT-4o Mini (via OpenRouter)",
        "context_window": 128000,
        "max_output": 16384,
        "recommended_for": ["extraction"],
    },
}

GEMINI_MODELS: Dict[str, Dict[str, Any]] = {
    "gemini-1.5-pro": {
        "name": "Gemini 1.5 Pro",
        "context_window": 2000000,
        "max_output": 8192,
        "recommended_for": ["revision"],
    },
    "gemini-1.5-flash": {
        "name": "Gemini 1.5 Flash",
        "context_window": 1000000,
        "max_output": 8192,
        "recommended_for": ["extraction"],
    },
}

CLAUDE_MODELS: Dict[str, Dict[str, Any]] = {
    "claude-3-5-sonnet-20241022": {
        "name": "Claude 3.5 Sonnet",
        "context_window": 200000,
        "max_output": 8192,
        "recommended_for": ["revision"],
    },
    "claude-3-5-haiku-20241022": {
        "name": "Claude 3.5 Haiku",
        "context_window": 200000,
        "max_output": 8192,
        "recommended_for": ["extraction"],
    },
}


# ============================================================================
# Provider Configuration Models
# ============================================================================

class ProviderConfig(BaseModel):
    """Base configuration for a text-service provider."""
    provider: LLMProvider
    api_key: SecretStr
    base_url: Optional[str] = None
    default_model: str
    enabled: bool = True


class OpenAIConfig(ProviderConfig):
    provider: LLMProvider = LLMProvider.OPENAI
    base_url: str = "https://api.openai.com/v1"
    default_model: str = "gpt-4o-mini"
    organization_id: Optional[str] = None

    @property
    def available_models(self) -> Dict[str, Dict[str, Any]]:
        return OPENAI_MODELS


class OpenRouterConfig(ProviderConfig):
    provider: LLMProvider = LLMProvider.OPENROUTER
    base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "anthropic/claude-3.5-sonnet"

    @property
    def available_models(self) -> Dict[str, Dict[str, Any]]:
        return OPENROUTER_MODELS


class GeminiConfig(ProviderConfig):
    provider: LLMProvider = LLMProvider.GEMINI
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    default_model: str = "gemini-1.5-flash"

    @property
    def available_models(self) -> Dict[str, Dict[str, Any]]:
        return GEMINI_MODELS


class ClaudeConfig(ProviderConfig):
    provider: LLMProvider = LLMProvider.CLAUDE
    base_url: str = "https://api.anthropic.com/v1"
    default_model: str = "claude-3-5-haiku-20241022"

    @property
    def available_models(self) -> Dict[str, Dict[str, Any]]:
        return CLAUDE_MODELS


# ============================================================================
# Role Model Assignment
# ============================================================================

class RoleModelConfig(BaseModel):
    """Which provider/model serves extraction and which serves revision."""
    extraction_provider: LLMProvider = LLMProvider.OPENAI
    extraction_model: str = "gpt-4o-mini"

    revision_provider: LLMProvider = LLMProvider.OPENAI
    revision_model: str = "gpt-4o"


# ============================================================================
# Master Configuration
# ============================================================================

class LLMConfiguration(BaseModel):
    """Master text-service configuration with all providers."""

    openai: Optional[OpenAIConfig] = None
    openrouter: Optional[OpenRouterConfig] = None
    gemini: Optional[GeminiConfig] = None
    claude: Optional[ClaudeConfig] = None

    role_models: RoleModelConfig = Field(default_factory=RoleModelConfig)

    timeout_seconds: int = Field(default=120, ge=10, le=600)

    def get_provider_config(self, provider: LLMProvider) -> Optional[ProviderConfig]:
        provider_map = {
            LLMProvider.OPENAI: self.openai,
            LLMProvider.OPENROUTER: self.openrouter,
            LLMProvider.GEMINI: self.gemini,
            LLMProvider.CLAUDE: self.claude,
        }
        return provider_map.get(provider)

    def get_enabled_providers(self) -> List[LLMProvider]:
        enabled = []
        for provider in LLMProvider:
            provider_config = self.get_provider_config(provider)
            if provider_config and provider_config.enabled:
                enabled.append(provider)
        return enabled

    def validate_role_models(self) -> List[str]:
        """Check that the extraction and revision models come from enabled providers."""
        errors = []
        role_configs = [
            ("extraction", self.role_models.extraction_provider, self.role_models.extraction_model),
            ("revision", self.role_models.revision_provider, self.role_models.revision_model),
        ]

        for role, provider, model in role_configs:
            provider_config = self.get_provider_config(provider)
            if not provider_config:
                errors.append(f"{role}: Provider {provider.value} is not configured")
            elif not provider_config.enabled:
                errors.append(f"{role}: Provider {provider.value} is disabled")
            elif model not in provider_config.available_models:
                errors.append(f"{role}: Model {model} not available for {provider.value}")

        return errors


# ============================================================================
# Helper Functions
# ============================================================================

def create_default_config_from_env() -> LLMConfiguration:
    """Create configuration from environment variables."""
    config = LLMConfiguration()

    if os.getenv("OPENAI_API_KEY"):
        config.openai = OpenAIConfig(
            api_key=SecretStr(os.getenv("OPENAI_API_KEY")),
            organization_id=os.getenv("OPENAI_ORG_ID"),
        )

    if os.getenv("OPENROUTER_API_KEY"):
        config.openrouter = OpenRouterConfig(
            api_key=SecretStr(os.getenv("OPENROUTER_API_KEY")),
        )

    if os.getenv("GEMINI_API_KEY"):
        config.gemini = GeminiConfig(
            api_key=SecretStr(os.getenv("GEMINI_API_KEY")),
        )

    if os.getenv("ANTHROPIC_API_KEY"):
        config.claude = ClaudeConfig(
            api_key=SecretStr(os.getenv("ANTHROPIC_API_KEY")),
        )

    # The first enabled provider serves both roles unless overridden.
    enabled = config.get_enabled_providers()
    if enabled and LLMProvider.OPENAI not in enabled:
        provider = enabled[0]
        default_model = config.get_provider_config(provider).default_model
        config.role_models = RoleModelConfig(
            extraction_provider=provider,
            extraction_model=os.getenv("STORY_EVOLUTION_EXTRACTION_MODEL", default_model),
            revision_provider=provider,
            revision_model=os.getenv("STORY_EVOLUTION_REVISION_MODEL", default_model),
        )
    else:
        config.role_models = RoleModelConfig(
            extraction_model=os.getenv("STORY_EVOLUTION_EXTRACTION_MODEL", "gpt-4o-mini"),
            revision_model=os.getenv("STORY_EVOLUTION_REVISION_MODEL", "gpt-4o"),
        )

    timeout = os.getenv("STORY_EVOLUTION_TIMEOUT_SECONDS")
    if timeout:
        config.timeout_seconds = int(timeout)

    return config
