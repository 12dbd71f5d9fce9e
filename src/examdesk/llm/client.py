"""LLM client for OpenAI-compatible chat-completion APIs.

Provides a unified interface for LLM interactions used by question
generation, paper analysis, reports, OCR and answer-sheet evaluation.

Supported providers:
- openai: OpenAI API (default)
- lmstudio: Local LM Studio server (OpenAI-compatible API)
"""

from __future__ import annotations

import json
import os
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import structlog
import yaml
from openai import OpenAI

from examdesk.config import get_provider_config, load_app_config

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

Provider = Literal["openai", "lmstudio"]

DEFAULT_CONFIG_PATH = Path("configs/models.yaml")

# Provider-specific defaults
PROVIDER_DEFAULTS: dict[str, dict[str, Any]] = {
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
    },
    "lmstudio": {
        "base_url": "http://localhost:1234/v1",
        "api_key": "lm-studio",  # LM Studio doesn't need a real key
    },
}

# lmstudio rejects {"type": "json_object"}
PROVIDER_CAPABILITIES_DEFAULTS: dict[str, dict[str, bool]] = {
    "openai": {"supports_json_object": True},
    "lmstudio": {"supports_json_object": False},
}

JSON_REPAIR_PROMPT = """Fix the following text and return ONLY valid JSON:
<<<
{invalid_output}
>>>

Reply with the corrected JSON only, no explanations and no markdown."""

# Some models emit reasoning blocks that break JSON extraction
SANITIZE_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<analysis>.*?</analysis>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]


def _sanitize_for_json(text: str) -> str:
    """Remove thinking/reasoning tags before JSON parsing."""
    result = text
    for pattern in SANITIZE_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


def extract_json(content: str) -> Any | None:
    """Parse JSON from model output, with multiple extraction strategies.

    Tries:
    1. Direct parse
    2. Extract from ```json ... ``` blocks
    3. Extract first {...} object or [...] array

    Returns parsed value or None if all strategies fail.
    """
    content = _sanitize_for_json(content)

    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", content)
    if fenced:
        try:
            return json.loads(fenced.group(1).strip())
        except json.JSONDecodeError:
            pass

    for open_char, close_char in (("{", "}"), ("[", "]")):
        start = content.find(open_char)
        end = content.rfind(close_char) + 1
        if start >= 0 and end > start:
            try:
                return json.loads(content[start:end])
            except json.JSONDecodeError:
                continue

    return None


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    provider: Provider = "openai"
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: int = 120
    api_key: str | None = None
    supports_json_object: bool | None = None

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> LLMConfig:
        """Load configuration from YAML file (``llm:`` block)."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if not config_path.exists():
            logger.debug("llm_config_not_found", path=str(config_path))
            return cls.from_app_config()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        llm_config = data.get("llm", {})

        provider = llm_config.get("provider", "openai")
        defaults = PROVIDER_DEFAULTS.get(provider, {})

        api_key = None
        if "api_key_env" in defaults:
            api_key = os.environ.get(defaults["api_key_env"])
        elif "api_key" in defaults:
            api_key = defaults["api_key"]

        return cls(
            provider=provider,
            base_url=llm_config.get("base_url", defaults.get("base_url", "")),
            model=llm_config.get("model", "gpt-4o-mini"),
            temperature=llm_config.get("temperature", 0.7),
            max_tokens=llm_config.get("max_tokens", 4096),
            timeout=llm_config.get("timeout", 120),
            api_key=api_key,
            supports_json_object=llm_config.get("supports_json_object", None),
        )

    @classmethod
    def from_app_config(cls) -> LLMConfig:
        """Build from the app config's default provider."""
        app_config = load_app_config()
        provider = app_config.default_provider
        defaults = PROVIDER_DEFAULTS.get(provider, PROVIDER_DEFAULTS["openai"])
        provider_config = get_provider_config(provider)

        if provider_config is None:
            logger.warning("llm_provider_not_configured", provider=provider)
            return cls(api_key=os.environ.get(PROVIDER_DEFAULTS["openai"]["api_key_env"]))

        return cls(
            provider=provider,
            base_url=provider_config.base_url or defaults.get("base_url", ""),
            model=provider_config.default_model,
            api_key=provider_config.get_api_key() or defaults.get("api_key"),
        )


@dataclass
class Message:
    """A chat message.

    ``content`` is plain text or a list of content parts
    (``{"type": "text", ...}`` / ``{"type": "image_url", ...}``).
    """

    role: Literal["system", "user", "assistant"]
    content: str | list[dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API call."""
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: int = 0

    @property
    def prompt_tokens(self) -> int:
        return self.usage.get("prompt_tokens", 0)

    @property
    def completion_tokens(self) -> int:
        return self.usage.get("completion_tokens", 0)

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)


class LLMError(Exception):
    """Error during LLM interaction."""

    pass


class LLMConnectionError(LLMError):
    """Error connecting to LLM server."""

    pass


class LLMResponseError(LLMError):
    """Error in LLM response."""

    pass


# =============================================================================
# LLM CLIENT
# =============================================================================


class LLMClient:
    """Unified client for LLM interactions via the OpenAI SDK."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        provider: Provider | None = None,
        model: str | None = None,
    ):
        """Initialize LLM client.

        Args:
            config: LLM configuration (loads from YAML if not provided)
            provider: Override provider from config
            model: Override model from config
        """
        if config is None:
            config = LLMConfig.from_yaml()

        self.config = config

        if provider is not None:
            self.config.provider = provider
            defaults = PROVIDER_DEFAULTS.get(provider, {})
            if "base_url" in defaults:
                self.config.base_url = defaults["base_url"]
            if "api_key_env" in defaults:
                self.config.api_key = os.environ.get(defaults["api_key_env"])
            elif "api_key" in defaults:
                self.config.api_key = defaults["api_key"]

        if model is not None:
            self.config.model = model

        self._client = OpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key or "not-needed",
            timeout=self.config.timeout,
        )

        logger.info(
            "llm_client_initialized",
            provider=self.config.provider,
            model=self.config.model,
            base_url=self.config.base_url,
        )

    def _supports_json_object(self) -> bool:
        """Check if current provider supports response_format json_object."""
        if self.config.supports_json_object is not None:
            return self.config.supports_json_object

        caps = PROVIDER_CAPABILITIES_DEFAULTS.get(self.config.provider, {})
        return caps.get("supports_json_object", False)

    def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
        model: str | None = None,
    ) -> LLMResponse:
        """Send chat completion request.

        Args:
            messages: List of messages in conversation
            temperature: Override default temperature
            max_tokens: Override default max tokens
            json_mode: Request JSON response format (only if provider supports it)
            model: Override the configured model for this call

        Returns:
            LLMResponse with content and metadata

        Raises:
            LLMConnectionError: If cannot connect to server
            LLMResponseError: If response is invalid
        """
        if temperature is None:
            temperature = self.config.temperature
        if max_tokens is None:
            max_tokens = self.config.max_tokens

        request_kwargs: dict[str, Any] = {
            "model": model or self.config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if json_mode and self._supports_json_object():
            request_kwargs["response_format"] = {"type": "json_object"}

        start_time = time.time()

        try:
            response = self._client.chat.completions.create(**request_kwargs)
        except Exception as e:
            error_msg = str(e)
            if "Connection" in error_msg or "connect" in error_msg.lower():
                raise LLMConnectionError(
                    f"Could not connect to {self.config.provider} at {self.config.base_url}: {e}"
                ) from e
            raise LLMError(f"LLM call failed: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.choices:
            raise LLMResponseError("Empty response from LLM")

        content = response.choices[0].message.content or ""

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.debug(
            "llm_response",
            provider=self.config.provider,
            model=response.model,
            tokens=usage.get("total_tokens", 0),
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self.config.provider,
            usage=usage,
            latency_ms=latency_ms,
        )

    def chat_json(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        max_retries: int = 1,
        model: str | None = None,
    ) -> Any:
        """Send chat request expecting a JSON response.

        Uses robust parsing with one repair retry on failure.

        Raises:
            LLMResponseError: If response is not valid JSON after retries
        """
        response = self.chat(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
            model=model,
        )

        parsed = extract_json(response.content)
        if parsed is not None:
            return parsed

        if max_retries > 0:
            logger.warning(
                "json_parse_failed_retrying",
                content=response.content[:100],
                provider=self.config.provider,
            )

            repair_prompt = JSON_REPAIR_PROMPT.format(
                invalid_output=response.content[:1000]
            )
            retry_messages = messages + [Message(role="user", content=repair_prompt)]

            retry_response = self.chat(
                retry_messages,
                temperature=temperature,
                max_tokens=max_tokens,
                json_mode=True,
                model=model,
            )

            parsed = extract_json(retry_response.content)
            if parsed is not None:
                logger.info("json_parse_recovered_after_retry")
                return parsed

        raise LLMResponseError(f"Could not obtain valid JSON: {response.content[:200]}...")

    def simple_chat(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> str:
        """Single-turn chat with system prompt and user message."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]
        response = self.chat(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            model=model,
        )
        return response.content

    def simple_json(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> Any:
        """Single-turn chat expecting a JSON response."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]
        return self.chat_json(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            model=model,
        )

    def vision_text(
        self,
        system_prompt: str,
        instruction: str,
        image_url: str,
        temperature: float | None = None,
        model: str | None = None,
    ) -> str:
        """Ask a vision-capable model about one image.

        Args:
            system_prompt: System prompt
            instruction: Text shown alongside the image
            image_url: Public URL or ``data:`` URL of the image
        """
        messages = [
            Message(role="system", content=system_prompt),
            Message(
                role="user",
                content=[
                    {"type": "text", "text": instruction},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            ),
        ]
        response = self.chat(messages, temperature=temperature, model=model)
        return response.content

    def is_available(self) -> bool:
        """Check if LLM server is available."""
        try:
            self._client.models.list()
            return True
        except Exception:
            return False
