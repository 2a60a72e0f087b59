"""
Response Generator

LLM integration for LUZ IA with multi-provider support.
"""

import asyncio
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    MOCK = "mock"


DEFAULT_MODELS = {
    LLMProvider.OPENAI: "gpt-4o-mini",
    LLMProvider.ANTHROPIC: "claude-sonnet-4-20250514",
    LLMProvider.GOOGLE: "gemini-1.5-flash",
    LLMProvider.MOCK: "mock-v1",
}

API_KEY_ENV = {
    LLMProvider.OPENAI: ("OPENAI_API_KEY",),
    LLMProvider.ANTHROPIC: ("ANTHROPIC_API_KEY",),
    LLMProvider.GOOGLE: ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
}


@dataclass
class GeneratedResponse:
    """Complete response from the generator."""

    content: str

    # Metadata
    model: str = ""
    provider: LLMProvider = LLMProvider.OPENAI
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    # Timing
    generation_time_ms: float = 0.0


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    provider: LLMProvider
    model: str

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> GeneratedResponse:
        """Generate a complete response."""
        pass


class OpenAIClient(BaseLLMClient):
    """
    OpenAI chat completions client.

    Default client for LUZ IA (``gpt-4o-mini``).
    """

    provider = LLMProvider.OPENAI

    def __init__(self, api_key: str, model: str = DEFAULT_MODELS[LLMProvider.OPENAI]):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            import openai
            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> GeneratedResponse:
        start_time = time.time()
        client = self._get_client()

        try:
            response = await client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except Exception as e:
            logger.error(f"OpenAI generation failed: {e}")
            raise

        usage = response.usage
        return GeneratedResponse(
            content=response.choices[0].message.content or "",
            model=self.model,
            provider=self.provider,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
            generation_time_ms=(time.time() - start_time) * 1000,
        )


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client."""

    provider = LLMProvider.ANTHROPIC

    def __init__(self, api_key: str, model: str = DEFAULT_MODELS[LLMProvider.ANTHROPIC]):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> GeneratedResponse:
        start_time = time.time()
        client = self._get_client()

        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except Exception as e:
            logger.error(f"Anthropic generation failed: {e}")
            raise

        return GeneratedResponse(
            content=response.content[0].text,
            model=self.model,
            provider=self.provider,
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            generation_time_ms=(time.time() - start_time) * 1000,
        )


class GoogleClient(BaseLLMClient):
    """Google Gemini client."""

    provider = LLMProvider.GOOGLE

    def __init__(self, api_key: str, model: str = DEFAULT_MODELS[LLMProvider.GOOGLE]):
        self.api_key = api_key
        self.model = model
        self._model = None

    def _get_model(self):
        """Lazy initialization of Google model."""
        if self._model is None:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model)
        return self._model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> GeneratedResponse:
        start_time = time.time()
        model = self._get_model()

        # Per-request system prompt is combined with the user prompt
        full_prompt = f"{system_prompt}\n\n{user_prompt}"

        try:
            response = await model.generate_content_async(
                full_prompt,
                generation_config={
                    "max_output_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
        except Exception as e:
            logger.error(f"Google generation failed: {e}")
            raise

        return GeneratedResponse(
            content=response.text,
            model=self.model,
            provider=self.provider,
            generation_time_ms=(time.time() - start_time) * 1000,
        )


class MockLLMClient(BaseLLMClient):
    """
    Offline client used when no API key is configured.
    """

    provider = LLMProvider.MOCK
    model = DEFAULT_MODELS[LLMProvider.MOCK]

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> GeneratedResponse:
        content = (
            "A LUZ IA está funcionando em **modo offline** porque nenhuma chave de API "
            "foi configurada. Respire fundo, confie no seu processo e volte a perguntar "
            "assim que a conexão com o modelo estiver ativa.\n\n"
            "Para habilitar respostas completas, configure `OPENAI_API_KEY` no arquivo `.env`."
        )
        return GeneratedResponse(
            content=content,
            model=self.model,
            provider=self.provider,
            generation_time_ms=1.0,
        )


class ResponseGenerator:
    """
    Provider-agnostic generator with bounded retry.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        max_retries: int = 2,
        retry_delay: float = 1.0,
    ):
        """
        Initialize response generator.

        Args:
            llm_client: LLM client
            max_tokens: Max output tokens per call
            temperature: Sampling temperature
            max_retries: Retries after the first failed attempt
            retry_delay: Base delay in seconds, doubled on each retry
        """
        self.llm_client = llm_client
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @property
    def model(self) -> str:
        return self.llm_client.model

    @property
    def provider(self) -> LLMProvider:
        return self.llm_client.provider

    @property
    def is_offline(self) -> bool:
        return isinstance(self.llm_client, MockLLMClient)

    async def generate(self, system_prompt: str, user_prompt: str) -> GeneratedResponse:
        return await self.llm_client.generate(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    async def generate_with_retry(
        self,
        system_prompt: str,
        user_prompt: str,
        max_retries: Optional[int] = None,
    ) -> GeneratedResponse:
        """
        Generate with exponential backoff between attempts.

        Raises:
            The last provider error once all attempts fail
        """
        retries = self.max_retries if max_retries is None else max_retries
        last_error: Optional[Exception] = None

        for attempt in range(retries + 1):
            try:
                return await self.generate(system_prompt, user_prompt)
            except Exception as e:
                last_error = e
                logger.warning(f"Generation attempt {attempt + 1} failed: {e}")

                if attempt < retries:
                    await asyncio.sleep(self.retry_delay * 2 ** attempt)

        raise last_error


def _resolve_api_key(provider: LLMProvider, api_key: Optional[str]) -> Optional[str]:
    if api_key:
        return api_key
    for name in API_KEY_ENV.get(provider, ()):
        value = os.environ.get(name)
        if value:
            return value
    return None


def create_generator(
    provider: LLMProvider | str = LLMProvider.OPENAI,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> ResponseGenerator:
    """
    Factory function to create a ResponseGenerator.

    Args:
        provider: LLM provider
        api_key: API key (or from env)
        model: Model name (uses the provider default if not specified)
        **kwargs: Additional ResponseGenerator params

    Returns:
        Configured ResponseGenerator, backed by the offline client when
        no key is available
    """
    try:
        provider = LLMProvider(provider)
    except ValueError:
        logger.warning(f"Unknown LLM provider '{provider}'. Using MockLLMClient.")
        provider = LLMProvider.MOCK

    client: Optional[BaseLLMClient] = None
    key = _resolve_api_key(provider, api_key)

    if key:
        model = model or DEFAULT_MODELS[provider]
        if provider == LLMProvider.OPENAI:
            client = OpenAIClient(api_key=key, model=model)
        elif provider == LLMProvider.ANTHROPIC:
            client = AnthropicClient(api_key=key, model=model)
        elif provider == LLMProvider.GOOGLE:
            client = GoogleClient(api_key=key, model=model)

    if client is None:
        if provider != LLMProvider.MOCK:
            logger.warning(f"No API key found for provider {provider.value}. Using MockLLMClient.")
        client = MockLLMClient()

    return ResponseGenerator(llm_client=client, **kwargs)
