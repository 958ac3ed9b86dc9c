"""Assistant configuration for a deployment."""

import os
from dataclasses import dataclass, field

MAX_TOOL_ROUNDS = 10


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class AgentSettings:
    """Per-deployment assistant configuration."""

    brand_name: str = "Console"
    agent_name: str = "Assistant"
    custom_prompt: str | None = None
    # Empty means every tool the role is allowed to use.
    enabled_tools: list[str] = field(default_factory=list)

    model: str = "claude-sonnet-4-6"
    max_tokens: int = 4096
    temperature: float = 0.7
    summary_model: str = "claude-haiku-4-5-20251001"
    summary_max_tokens: int = 300

    max_tool_rounds: int = MAX_TOOL_ROUNDS

    turn_rate_limit: int = 30
    tool_rate_limit: int = 50
    rate_limit_window_ms: int = 60_000

    # History compaction thresholds
    summary_trigger_messages: int = 30
    summary_tail_messages: int = 20
    history_max_messages: int = 50
    summary_source_messages: int = 20
    summary_min_messages: int = 10

    max_message_chars: int = 8000

    @classmethod
    def from_env(cls) -> "AgentSettings":
        """Build settings from AI_* environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            brand_name=os.getenv("AI_BRAND_NAME", defaults.brand_name),
            agent_name=os.getenv("AI_AGENT_NAME", defaults.agent_name),
            custom_prompt=os.getenv("AI_CUSTOM_PROMPT") or None,
            enabled_tools=_env_list("AI_ENABLED_TOOLS"),
            model=os.getenv("AI_DEFAULT_MODEL", defaults.model),
            max_tokens=int(os.getenv("AI_MAX_TOKENS", str(defaults.max_tokens))),
            temperature=float(os.getenv("AI_TEMPERATURE", str(defaults.temperature))),
            summary_model=os.getenv("AI_SUMMARY_MODEL", defaults.summary_model),
            max_tool_rounds=int(os.getenv("AI_MAX_TOOL_ROUNDS", str(defaults.max_tool_rounds))),
        )
