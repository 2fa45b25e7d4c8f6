"""LLM model configuration and the ModelGateway used by every node.

Provider routing is done via model name prefix:
  - "ollama:<model>"  → local Ollama  (e.g. "ollama:llama3.1:8b")
  - "claude-*"        → Anthropic API
  - anything else     → OpenAI API   (e.g. "gpt-4o", "gpt-4o-mini")

Set AGENT_MODEL in .env to choose freely.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from app.core.config import Settings, get_settings
from app.core.errors import ConfigurationError, GatewayError
from app.core.logging import get_logger

logger = get_logger("agents.models")

PROMPTS_DIR = Path(__file__).parent / "prompts"


class ModelGateway(Protocol):
    """Opaque prompt-in / text-out completion service."""

    def complete(self, prompt: str, system_prompt: str = "", *, stage: str = "llm") -> str: ...


# ---------------------------------------------------------------------------
# Provider detection
# ---------------------------------------------------------------------------

def _is_ollama_model(model_name: str) -> bool:
    """Models prefixed with 'ollama:' are served by local Ollama."""
    return model_name.lower().startswith("ollama:")


def _is_anthropic_model(model_name: str) -> bool:
    """Anthropic models contain 'claude' in their name."""
    return "claude" in model_name.lower()


def _strip_ollama_prefix(model_name: str) -> str:
    """Return the bare model name without the 'ollama:' prefix."""
    return model_name[len("ollama:"):]


# ---------------------------------------------------------------------------
# LLM constructors
# ---------------------------------------------------------------------------

def _make_ollama(model: str, base_url: str, temperature: float = 0.1) -> BaseChatModel:
    """Create a ChatOllama instance. langchain-ollama must be installed."""
    try:
        from langchain_ollama import ChatOllama  # type: ignore[import-untyped]
    except ImportError as exc:
        raise ConfigurationError(
            "langchain-ollama is not installed. Run: pip install 'aiagent[ollama]'"
        ) from exc

    bare_model = _strip_ollama_prefix(model)
    logger.info("Using Ollama model '%s' at %s", bare_model, base_url)
    return ChatOllama(model=bare_model, base_url=base_url, temperature=temperature)


def _make_anthropic(
    model: str, api_key: str, temperature: float = 0.1, max_tokens: int = 1000, timeout: float = 60.0
) -> BaseChatModel:
    from langchain_anthropic import ChatAnthropic

    logger.info("Using Anthropic model '%s'", model)
    return ChatAnthropic(
        model=model, api_key=api_key, temperature=temperature, max_tokens=max_tokens, timeout=timeout
    )


def _make_openai(
    model: str, api_key: str, temperature: float = 0.1, max_tokens: int = 1000, timeout: float = 60.0
) -> BaseChatModel:
    from langchain_openai import ChatOpenAI

    logger.info("Using OpenAI model '%s'", model)
    return ChatOpenAI(
        model=model, api_key=api_key, temperature=temperature, max_tokens=max_tokens, timeout=timeout
    )


# ---------------------------------------------------------------------------
# Key validation helpers
# ---------------------------------------------------------------------------

def _normalized_secret(value: str | None) -> str:
    return (value or "").strip()


def _require_openai_key(model: str, api_key: str) -> str:
    key = _normalized_secret(api_key)
    if key:
        return key
    raise ConfigurationError(
        f"Missing OPENAI_API_KEY for model '{model}'. "
        "Set OPENAI_API_KEY in .env, switch to an Ollama / Anthropic model, or run with --mock."
    )


def _require_anthropic_key(model: str, api_key: str) -> str:
    key = _normalized_secret(api_key)
    if key:
        return key
    raise ConfigurationError(
        f"Missing ANTHROPIC_API_KEY for model '{model}'. "
        "Set ANTHROPIC_API_KEY in .env, switch to an OpenAI / Ollama model, or run with --mock."
    )


def credential_warning(settings: Settings | None = None) -> str | None:
    """Return a warning if the configured model has no credential, else None.

    A missing key is not fatal at startup; the first real call raises.
    """
    settings = settings or get_settings()
    model = settings.agent_model
    if _is_ollama_model(model):
        return None
    if _is_anthropic_model(model):
        if not _normalized_secret(settings.anthropic_api_key):
            return f"ANTHROPIC_API_KEY not set - calls to '{model}' will fail"
        return None
    if not _normalized_secret(settings.openai_api_key):
        return f"OPENAI_API_KEY not set - calls to '{model}' will fail"
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def get_llm(settings: Settings | None = None) -> BaseChatModel:
    """Create the chat model configured by AGENT_MODEL.

    The provider is determined entirely by the model string in .env;
    no provider is hardcoded.
    """
    settings = settings or get_settings()
    model = settings.agent_model

    if _is_ollama_model(model):
        return _make_ollama(model, base_url=settings.ollama_base_url)

    if _is_anthropic_model(model):
        key = _require_anthropic_key(model, settings.anthropic_api_key)
        return _make_anthropic(
            model, key, max_tokens=settings.llm_max_tokens, timeout=settings.llm_timeout_seconds
        )

    # Default: OpenAI-compatible
    key = _require_openai_key(model, settings.openai_api_key)
    return _make_openai(model, key, max_tokens=settings.llm_max_tokens, timeout=settings.llm_timeout_seconds)


def _content_text(content: object) -> str:
    """Flatten a chat message's content (string or list of content blocks)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content or "")


class ChatModelGateway:
    """ModelGateway backed by a LangChain chat model.

    The underlying model is built lazily so a missing credential only becomes
    fatal when a real call is attempted.
    """

    def __init__(self, llm: BaseChatModel | None = None, settings: Settings | None = None) -> None:
        self._llm = llm
        self._settings = settings

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = get_llm(self._settings)
        return self._llm

    def complete(self, prompt: str, system_prompt: str = "", *, stage: str = "llm") -> str:
        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))

        logger.debug("LLM call | stage=%s | prompt=%s", stage, prompt[:200])
        try:
            response = self.llm.invoke(messages)
        except ConfigurationError:
            raise
        except Exception as exc:
            raise GatewayError(stage, f"model call failed: {exc}") from exc

        text = _content_text(response.content).strip()
        logger.debug("LLM reply | stage=%s | %s", stage, text[:200])
        return text


def load_system_prompt(name: str) -> str:
    """Load a node's system prompt from ``app/agents/prompts/<name>.txt``."""
    prompt_file = PROMPTS_DIR / f"{name}.txt"
    if not prompt_file.exists():
        raise FileNotFoundError(f"System prompt not found: {prompt_file}")
    return prompt_file.read_text(encoding="utf-8")
