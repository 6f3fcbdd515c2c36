"""
Generation client for Anthropic and OpenAI models.

Three entry points, one per request variant. Each builds its instruction
payload from its inputs, calls the provider exactly once (SDK retries are
disabled), and parses the raw text into a GeneratedPair.

Provider exceptions are mapped onto the generation error taxonomy so the
session controller only ever sees GenerationError subclasses.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Any

import anthropic
import openai

from backend.config import settings
from backend.services.prompt_builder import build_messages, build_system_prompt
from engine.kernel.errors import GenerationError, RateLimited, ServerError, Timeout, Unauthorized, Unknown
from engine.kernel.mock_llm import MockLLM
from engine.kernel.response_parser import parse_response
from engine.kernel.types import GeneratedPair, GenerationRequest, InitialRequest, InteractRequest, RefineRequest

logger = logging.getLogger(__name__)

PROVIDERS = ("anthropic", "openai", "mock")


@dataclass(frozen=True)
class GenerationConfig:
    """Everything needed to build a client. Re-create the client to change it."""

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key: str = ""
    max_tokens: int = 16384
    temperature: float = 0.7
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls) -> GenerationConfig:
        provider = "mock" if settings.USE_MOCK_LLM else settings.GENERATION_PROVIDER
        api_key = settings.OPENAI_API_KEY if provider == "openai" else settings.ANTHROPIC_API_KEY
        return cls(
            provider=provider,
            model=settings.GENERATION_MODEL,
            api_key=api_key,
            max_tokens=settings.GENERATION_MAX_TOKENS,
            temperature=settings.GENERATION_TEMPERATURE,
            timeout_seconds=settings.GENERATION_TIMEOUT_SECONDS,
        )

    def with_api_key(self, api_key: str) -> GenerationConfig:
        return dataclasses.replace(self, api_key=api_key.strip())

    @property
    def key_snippet(self) -> str:
        """Last four characters of the key, for logs."""
        if len(self.api_key) > 4:
            return f"...{self.api_key[-4:]}"
        return "(key too short to snip)" if self.api_key else "(no key)"


class GenerationClient:
    """Unified generation interface over Anthropic, OpenAI or the mock LLM."""

    def __init__(self, config: GenerationConfig, llm: MockLLM | None = None) -> None:
        """
        Initialize the provider client.

        Args:
            config: Provider, model and credentials
            llm: Scripted backend used when provider is "mock"

        Raises:
            ValueError: Unknown provider
        """
        if config.provider not in PROVIDERS:
            raise ValueError(f"Unknown generation provider: {config.provider!r}. Valid providers: {list(PROVIDERS)}")

        self.config = config
        self.anthropic_client: anthropic.AsyncAnthropic | None = None
        self.openai_client: openai.AsyncOpenAI | None = None
        self.mock: MockLLM | None = None

        if config.provider == "anthropic":
            self.anthropic_client = anthropic.AsyncAnthropic(
                api_key=config.api_key,
                max_retries=0,
                timeout=config.timeout_seconds,
            )
        elif config.provider == "openai":
            self.openai_client = openai.AsyncOpenAI(
                api_key=config.api_key,
                max_retries=0,
                timeout=config.timeout_seconds,
            )
        else:
            self.mock = llm or MockLLM()

        logger.info(
            "Generation client ready: provider=%s model=%s key=%s",
            config.provider,
            config.model,
            config.key_snippet,
        )

    # -----------------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------------

    async def generate_initial(self, prompt: str) -> GeneratedPair:
        return await self.generate(InitialRequest(prompt))

    async def refine(self, prior_source: str, prior_markup: str, instruction: str) -> GeneratedPair:
        return await self.generate(RefineRequest(prior_source, prior_markup, instruction))

    async def interact(
        self,
        prior_source: str,
        prior_markup: str,
        action_id: str,
        action_description: str,
    ) -> GeneratedPair:
        return await self.generate(InteractRequest(prior_source, prior_markup, action_id, action_description))

    async def generate(self, request: GenerationRequest) -> GeneratedPair:
        """
        Run one request end to end.

        Raises:
            GenerationError: any provider or parsing failure
        """
        started = time.perf_counter()
        raw = await self.complete(request)
        total_ms = int((time.perf_counter() - started) * 1000)
        logger.info("%s completed in %dms (%d chars)", type(request).__name__, total_ms, len(raw))
        return parse_response(raw)

    async def complete(self, request: GenerationRequest) -> str:
        """Raw response text for a request. Exactly one provider call."""
        try:
            if self.mock is not None:
                return await self.mock.complete(request)

            system = build_system_prompt()
            messages = build_messages(request)
            if self.anthropic_client is not None:
                return await self._call_claude(self.anthropic_client, system, messages)
            return await self._call_gpt(self.openai_client, system, messages)
        except GenerationError:
            raise
        except Exception as e:
            error = classify_error(e)
            logger.warning("Generation call failed (%s): %s", error.kind.value, e)
            raise error from e

    async def check_connection(self) -> bool:
        """
        Send a tiny request to verify credentials and connectivity.

        Never raises.
        """
        if self.mock is not None:
            return True
        try:
            if self.anthropic_client is not None:
                await self.anthropic_client.messages.create(
                    model=self.config.model,
                    max_tokens=16,
                    messages=[{"role": "user", "content": "Reply with 'API is working'."}],
                )
            elif self.openai_client is not None:
                await self.openai_client.chat.completions.create(
                    model=self.config.model,
                    max_tokens=16,
                    messages=[{"role": "user", "content": "Reply with 'API is working'."}],
                )
            return True
        except Exception as e:
            logger.warning("Connection check failed (%s): %s", classify_error(e).kind.value, e)
            return False

    # -----------------------------------------------------------------------
    # Providers
    # -----------------------------------------------------------------------

    async def _call_claude(
        self, client: anthropic.AsyncAnthropic, system: str, messages: list[dict[str, Any]]
    ) -> str:
        request_sent_at = time.perf_counter()
        first_token_at: float | None = None
        parts: list[str] = []

        # Use prompt caching for system prompt (5 min cache)
        system_with_cache = [
            {
                "type": "text",
                "text": system,
                "cache_control": {"type": "ephemeral"},
            }
        ]

        async with client.messages.stream(
            model=self.config.model,
            system=system_with_cache,
            messages=messages,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        ) as stream:
            async for text in stream.text_stream:
                if first_token_at is None:
                    first_token_at = time.perf_counter()
                parts.append(text)

            final_message = await stream.get_final_message()

        if final_message is not None and getattr(final_message, "usage", None) is not None:
            ttft_ms = int(((first_token_at or time.perf_counter()) - request_sent_at) * 1000)
            logger.info(
                "Claude usage: input=%s output=%s ttft=%dms",
                final_message.usage.input_tokens,
                final_message.usage.output_tokens,
                ttft_ms,
            )

        return "".join(parts)

    async def _call_gpt(self, client: openai.AsyncOpenAI, system: str, messages: list[dict[str, Any]]) -> str:
        # Prepend system message
        full_messages = [{"role": "system", "content": system}] + messages
        response = await client.chat.completions.create(
            model=self.config.model,
            messages=full_messages,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        if response.usage is not None:
            logger.info(
                "OpenAI usage: input=%s output=%s",
                response.usage.prompt_tokens,
                response.usage.completion_tokens,
            )
        return response.choices[0].message.content or ""


def classify_error(exc: BaseException) -> GenerationError:
    """Map a provider exception onto the generation error taxonomy."""
    if isinstance(exc, GenerationError):
        return exc
    if isinstance(
        exc,
        (
            anthropic.AuthenticationError,
            anthropic.PermissionDeniedError,
            openai.AuthenticationError,
            openai.PermissionDeniedError,
        ),
    ):
        return Unauthorized()
    if isinstance(exc, (anthropic.RateLimitError, openai.RateLimitError)):
        return RateLimited()
    # Timeout errors subclass the connection errors, so check them first.
    if isinstance(exc, (anthropic.APITimeoutError, openai.APITimeoutError, TimeoutError)):
        return Timeout()
    if isinstance(exc, (anthropic.InternalServerError, openai.InternalServerError)):
        return ServerError()
    if isinstance(exc, (anthropic.APIStatusError, openai.APIStatusError)) and exc.status_code >= 500:
        return ServerError()
    return Unknown(str(exc) or None)


def build_generation_client(config: GenerationConfig | None = None, llm: MockLLM | None = None) -> GenerationClient:
    """
    Return a client for the given config, or for the configured settings.

    - USE_MOCK_LLM=true        → mock provider (deterministic, no API calls)
    - GENERATION_PROVIDER      → anthropic (default) or openai
    """
    return GenerationClient(config or GenerationConfig.from_settings(), llm=llm)
