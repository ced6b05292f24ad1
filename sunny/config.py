"""
Centralized configuration with environment variable overrides.

Business name, knowledge document locations, guardrail thresholds and
reporting targets are configurable here. Reference data itself (services,
prices, hours) lives in the knowledge documents, never in code.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BusinessConfig:
    """Business-specific settings loaded from environment or defaults."""

    name: str = os.getenv("BUSINESS_NAME", "SunSweeper")
    assistant_name: str = os.getenv("ASSISTANT_NAME", "Sunny")
    currency: str = os.getenv("CURRENCY", "USD")


@dataclass(frozen=True)
class KnowledgeConfig:
    """Locations of the reference-data documents."""

    knowledge_dir: str = os.getenv("KNOWLEDGE_DIR", str(PROJECT_ROOT / "knowledge"))
    services_file: str = os.getenv("SERVICES_FILE", "services.json")
    hours_file: str = os.getenv("HOURS_FILE", "business_hours.json")
    pricing_file: str = os.getenv("PRICING_FILE", "pricing/solar-pricing-v1.json")
    priced_service_id: str = os.getenv("PRICED_SERVICE_ID", "solar_panel_cleaning")


@dataclass(frozen=True)
class GuardrailConfig:
    """Thresholds for escalation triggers."""

    max_field_prompts: int = _safe_int("MAX_FIELD_PROMPTS", "3")


@dataclass(frozen=True)
class RecorderConfig:
    """Outcome log settings."""

    outcome_log_path: str = os.getenv("OUTCOME_LOG_PATH", "logs/outcomes.jsonl")


@dataclass(frozen=True)
class EvalConfig:
    """Outcome report targets."""

    target_booking_rate: float = _safe_float("TARGET_BOOKING_RATE", "0.40")
    target_escalation_rate: float = _safe_float("TARGET_ESCALATION_RATE", "0.25")
    target_max_turns: int = _safe_int("TARGET_MAX_TURNS", "12")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    knowledge: KnowledgeConfig = field(default_factory=KnowledgeConfig)
    guardrails: GuardrailConfig = field(default_factory=GuardrailConfig)
    recorder: RecorderConfig = field(default_factory=RecorderConfig)
    evaluation: EvalConfig = field(default_factory=EvalConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.guardrails.max_field_prompts < 1:
        raise ValueError(
            f"MAX_FIELD_PROMPTS must be >= 1, got {config.guardrails.max_field_prompts}"
        )
    if len(config.business.currency) != 3 or not config.business.currency.isalpha():
        raise ValueError(
            f"CURRENCY must be a 3-letter ISO code, got {config.business.currency!r}"
        )
    if not config.knowledge.priced_service_id:
        raise ValueError("PRICED_SERVICE_ID must not be empty")

    for rate_name, rate_value in [
        ("TARGET_BOOKING_RATE", config.evaluation.target_booking_rate),
        ("TARGET_ESCALATION_RATE", config.evaluation.target_escalation_rate),
    ]:
        if not 0.0 <= rate_value <= 1.0:
            raise ValueError(f"{rate_name} must be between 0.0 and 1.0, got {rate_value}")

    if config.evaluation.target_max_turns < 1:
        raise ValueError(
            f"TARGET_MAX_TURNS must be >= 1, got {config.evaluation.target_max_turns}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
