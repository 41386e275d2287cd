"""Environment-driven settings and logging setup."""

import logging
import os
from dataclasses import dataclass

DEFAULT_MODEL = "claude-sonnet-4-6"
GEOCODERS = ("nominatim", "llm")


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: str | None
    model: str = DEFAULT_MODEL
    max_tokens: int = 2048
    geocoder: str = "nominatim"  # One of GEOCODERS
    http_timeout: float = 10.0  # Seconds
    nominatim_user_agent: str = "RainfallRetriever/1.0"
    radius_scale: float = 500.0  # Overlay metres per in/hr of 100-yr intensity
    log_level: str = "INFO"


def _env_number(env: dict[str, str], name: str, default: float, cast: type) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(env: dict[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    Args:
        env: Mapping to read from. Defaults to ``os.environ`` (call
            ``dotenv.load_dotenv()`` first to pick up a ``.env`` file).

    Returns:
        Frozen Settings.

    Raises:
        ValueError: On a non-numeric/non-positive number or an unknown geocoder.
    """
    if env is None:
        env = dict(os.environ)

    geocoder = env.get("RAINFALL_GEOCODER", "nominatim").strip().lower()
    if geocoder not in GEOCODERS:
        raise ValueError(
            f"RAINFALL_GEOCODER must be one of {', '.join(GEOCODERS)}, got {geocoder!r}"
        )

    return Settings(
        anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
        model=env.get("RAINFALL_MODEL") or DEFAULT_MODEL,
        max_tokens=int(_env_number(env, "RAINFALL_MAX_TOKENS", 2048, int)),
        geocoder=geocoder,
        http_timeout=_env_number(env, "RAINFALL_HTTP_TIMEOUT", 10.0, float),
        nominatim_user_agent=env.get("NOMINATIM_USER_AGENT") or "RainfallRetriever/1.0",
        radius_scale=_env_number(env, "RAINFALL_RADIUS_SCALE", 500.0, float),
        log_level=(env.get("RAINFALL_LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
