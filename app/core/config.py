"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings

from app.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Central configuration for aiagent. Reads from .env automatically."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # LLM API keys (only required for the provider you actually use)
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # Ollama base URL, set this when using local Ollama models
    # Example: OLLAMA_BASE_URL=http://localhost:11434
    ollama_base_url: str = "http://localhost:11434"

    # Model identifier; the prefix determines the provider:
    #   "ollama:<model>"     → local Ollama  (e.g. "ollama:llama3.1:8b")
    #   "claude-*" / "claude" → Anthropic API
    #   anything else        → OpenAI API    (e.g. "gpt-4o", "gpt-4o-mini")
    agent_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 1000
    llm_timeout_seconds: float = 60.0

    # Shell execution
    shell_timeout_seconds: int = 120
    max_output_chars: int = 12_000

    # ── Loop bounds ───────────────────────────────────────────────────
    # Classifier visits per run. Each work node returns to the classifier,
    # so this is roughly the number of sub-tasks a run may attempt.
    max_classifier_rounds: int = 10
    # Hard ceiling on graph super-steps (LangGraph recursion_limit).
    max_graph_steps: int = 50
    # Alternative commands the validator may try after a failure.
    max_command_retries: int = 3

    # ── Content collection ────────────────────────────────────────────
    file_count_limit: int = 500
    file_size_limit: int = 100 * 1024

    @field_validator(
        "max_classifier_rounds", "max_graph_steps", "file_count_limit", "file_size_limit",
        "shell_timeout_seconds", "llm_timeout_seconds", "max_output_chars",
    )
    @classmethod
    def _positive(cls, value):
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("max_command_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    # Logging
    log_level: str = "WARNING"
    log_file: str = ""


_settings: Settings | None = None


def get_settings() -> Settings:
    """Singleton accessor."""
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']).upper()}: {err['msg']}" for err in exc.errors()
            )
            raise ConfigurationError(f"Invalid settings: {problems}") from exc
    return _settings
