"""
Text-service clients for the story evolution engine.
The extraction engine and revision planner only ever call `generate`; the
concrete clients wrap the OpenAI, Anthropic and Gemini SDKs.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..config import LLMConfiguration, LLMProvider


class LLMClient(ABC):
    """Abstract base class for text-generation clients."""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Generate a response from the text service."""
        pass


class OpenAIClient(LLMClient):
    """OpenAI (and OpenAI-compatible) chat completions client."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 120.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._client = None

    async def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout_seconds, connect=10.0),
            )
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        client = await self._get_client()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""


class ClaudeClient(LLMClient):
    """Anthropic Claude messages client."""

    def __init__(self, api_key: str, model: str, timeout_seconds: float = 120.0):
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._client = None

    async def _get_client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic
            self._client = AsyncAnthropic(api_key=self.api_key, timeout=self.timeout_seconds)
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        client = await self._get_client()
        response = await client.messages.create(
            model=self.model,
            max_tokens=max_tokens or 4096,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=temperature,
        )
        return response.content[0].text


class GeminiClient(LLMClient):
    """Google Gemini client."""

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self.model = model
        self._client = None

    async def _get_client(self):
        if self._client is None:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(self.model)
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        client = await self._get_client()
        full_prompt = f"{system_prompt}\n\n---\n\n{user_prompt}"
        generation_config = {"temperature": temperature}
        if max_tokens:
            generation_config["max_output_tokens"] = max_tokens
        response = await client.generate_content_async(
            full_prompt,
            generation_config=generation_config,
        )
        return response.text


def create_llm_client(
    provider: LLMProvider,
    config: LLMConfiguration,
    model: str,
) -> LLMClient:
    """Factory function to create the client for a configured provider."""

    if provider == LLMProvider.OPENAI:
        if not config.openai:
            raise ValueError("OpenAI configuration not provided")
        return OpenAIClient(
            api_key=config.openai.api_key.get_secret_value(),
            model=model,
            base_url=config.openai.base_url,
            timeout_seconds=config.timeout_seconds,
        )

    elif provider == LLMProvider.OPENROUTER:
        if not config.openrouter:
            raise ValueError("OpenRouter configuration not provided")
        return OpenAIClient(  # OpenRouter uses OpenAI-compatible API
            api_key=config.openrouter.api_key.get_secret_value(),
            model=model,
            base_url=config.openrouter.base_url,
            timeout_seconds=config.timeout_seconds,
        )

    elif provider == LLMProvider.CLAUDE:
        if not config.claude:
            raise ValueError("Claude configuration not provided")
        return ClaudeClient(
            api_key=config.claude.api_key.get_secret_value(),
            model=model,
            timeout_seconds=config.timeout_seconds,
        )

    elif provider == LLMProvider.GEMINI:
        if not config.gemini:
            raise ValueError("Gemini configuration not provided")
        return GeminiClient(
            api_key=config.gemini.api_key.get_secret_value(),
            model=model,
        )

    else:
        raise ValueError(f"Unsupported provider: {provider}")


def create_role_clients(config: LLMConfiguration):
    """Build the (extraction, revision) client pair from the role assignments."""
    roles = config.role_models
    extraction_client = create_llm_client(roles.extraction_provider, config, roles.extraction_model)
    if (roles.revision_provider, roles.revision_model) == (roles.extraction_provider, roles.extraction_model):
        return extraction_client, extraction_client
    revision_client = create_llm_client(roles.revision_provider, config, roles.revision_model)
    return extraction_client, revision_client
