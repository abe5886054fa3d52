"""
Story Evolution Configuration Module
Text-service provider configuration and engine settings.
"""

from .llm_providers import (
    CLAUDE_MODELS,
    GEMINI_MODELS,
    # Model Definitions
    OPENAI_MODELS,
    OPENROUTER_MODELS,
    ClaudeConfig,
    GeminiConfig,
    LLMConfiguration,
    # Enums
    LLMProvider,
    OpenAIConfig,
    OpenRouterConfig,
    # Configuration Models
    ProviderConfig,
    RoleModelConfig,
    # Helper Functions
    create_default_config_from_env,
)
from .settings import EvolutionSettings, create_settings_from_env

__all__ = [
    "LLMProvider",
    "OPENAI_MODELS",
    "OPENROUTER_MODELS",
    "GEMINI_MODELS",
    "CLAUDE_MODELS",
    "ProviderConfig",
    "OpenAIConfig",
    "OpenRouterConfig",
    "GeminiConfig",
    "ClaudeConfig",
    "RoleModelConfig",
    "LLMConfiguration",
    "create_default_config_from_env",
    "EvolutionSettings",
    "create_settings_from_env",
]
