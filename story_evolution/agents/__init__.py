"""
Story Evolution Agents Module
Text-service clients used by extraction and revision.
"""

from .base import (
    LLMClient,
    OpenAIClient,
    ClaudeClient,
    GeminiClient,
    create_llm_client,
    create_role_clients,
)

__all__ = [
    "LLMClient",
    "OpenAIClient",
    "ClaudeClient",
    "GeminiClient",
    "create_llm_client",
    "create_role_clients",
]
