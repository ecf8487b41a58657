"""Run configuration and environment-driven classifier settings."""

import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

PROVIDERS = ("gemini", "mlx")
DEFAULT_PROVIDER = "gemini"
DEFAULT_DELAY = 1.0
DEFAULT_TIMEOUT = 30.0

API_KEY_ENV_VARS = ("GOOGLE_GENERATIVE_AI_API_KEY", "GEMINI_API_KEY")


@dataclass(frozen=True)
class SearchConfig:
    """Everything a single invocation needs, built once from the command line."""

    file_path: str
    query: str
    debug: bool = False
    commit_range: Optional[str] = None


@dataclass(frozen=True)
class ClassifierSettings:
    provider: str = DEFAULT_PROVIDER
    model: Optional[str] = None
    api_key: Optional[str] = None
    delay: float = DEFAULT_DELAY
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ=None, dotenv=True):
        """Read settings from the environment (and a `.env` file when present)."""
        if dotenv:
            load_dotenv()
        env = os.environ if environ is None else environ

        provider = (env.get("COMMIT_SLEUTH_PROVIDER", "") or DEFAULT_PROVIDER).strip().lower()
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown provider '{provider}', expected one of: {', '.join(PROVIDERS)}")

        api_key = None
        for name in API_KEY_ENV_VARS:
            value = (env.get(name, "") or "").strip()
            if value:
                api_key = value
                break

        return cls(
            provider=provider,
            model=(env.get("COMMIT_SLEUTH_MODEL", "") or "").strip() or None,
            api_key=api_key,
            delay=_float_setting(env, "COMMIT_SLEUTH_DELAY", DEFAULT_DELAY),
            timeout=_float_setting(env, "COMMIT_SLEUTH_TIMEOUT", DEFAULT_TIMEOUT),
        )

    def override(self, provider=None, model=None, delay=None):
        """Apply command line overrides; `None` keeps the current value."""
        changes = {}
        if provider:
            changes["provider"] = provider
        if model:
            changes["model"] = model
        if delay is not None:
            changes["delay"] = max(0.0, delay)
        return replace(self, **changes) if changes else self


def _float_setting(env, name, default):
    raw = (env.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None
    return max(0.0, value)
