"""Configuration loader and validation for reconciliation settings."""

from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

WEIGHT_SUM_TOLERANCE = 1e-6


class DateProfile(str, Enum):
    """What to do with a date value that cannot be parsed."""

    STRICT = "strict"  # leave the date unset
    LENIENT = "lenient"  # fall back to the run date


class ScoringProfile(str, Enum):
    """Named weighting schemes for the similarity scorer."""

    INVOICE = "invoice"  # identifier + amount + counterparty name
    LEDGER = "ledger"  # identifier + amount + issue date


class SignConvention(str, Enum):
    """How amounts on the two sides relate for a true match."""

    OPPOSITE = "opposite"  # receivable on one side, payable on the other
    ABSOLUTE = "absolute"  # compare magnitudes only


class InputConfig(BaseModel):
    """Configuration for turning raw rows into canonical records."""

    date_format_a: str = "%Y-%m-%d"
    date_format_b: str = "%Y-%m-%d"
    date_profile: DateProfile = DateProfile.STRICT
    extra_aliases: dict[str, list[str]] = Field(default_factory=dict)
    encoding: str = "utf-8"
    delimiter: str = ","


class ScoringWeights(BaseModel):
    """Weights of the four similarity signals; must sum to 1.0."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    identifier: float = Field(ge=0.0, le=1.0)
    amount: float = Field(ge=0.0, le=1.0)
    date: float = Field(ge=0.0, le=1.0)
    vendor: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_sum(self) -> "ScoringWeights":
        total = self.identifier + self.amount + self.date + self.vendor
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")
        return self

    def as_dict(self) -> dict[str, float]:
        return {
            "identifier": self.identifier,
            "amount": self.amount,
            "date": self.date,
            "vendor": self.vendor,
        }


PROFILE_WEIGHTS: dict[ScoringProfile, ScoringWeights] = {
    ScoringProfile.INVOICE: ScoringWeights(identifier=0.5, amount=0.3, date=0.0, vendor=0.2),
    ScoringProfile.LEDGER: ScoringWeights(identifier=0.4, amount=0.3, date=0.3, vendor=0.0),
}


class MatchingConfig(BaseModel):
    """Configuration for the exact and fuzzy matching passes."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    profile: ScoringProfile = ScoringProfile.INVOICE
    weights: Optional[ScoringWeights] = None
    amount_epsilon: Decimal = Field(default=Decimal("0.01"), ge=0)
    date_tolerance_days: int = Field(default=7, ge=0)
    sign_convention: SignConvention = SignConvention.OPPOSITE
    max_records_per_side: Optional[int] = Field(default=None, ge=1)

    @property
    def effective_weights(self) -> ScoringWeights:
        """Explicit weights when given, otherwise the profile's weights."""
        return self.weights if self.weights is not None else PROFILE_WEIGHTS[self.profile]


class HintsConfig(BaseModel):
    """Configuration for historical match hints."""

    enabled: bool = True
    boost: float = Field(default=0.05, ge=0.0, le=1.0)
    borderline_band: float = Field(default=0.1, ge=0.0, le=1.0)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    hints: HintsConfig = Field(default_factory=HintsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "date_format_a": "%Y-%m-%d",
            "date_format_b": "%Y-%m-%d",
            "date_profile": "strict",
            "extra_aliases": {},
            "encoding": "utf-8",
            "delimiter": ",",
        },
        "matching": {
            "min_confidence": 0.7,
            "profile": "invoice",
            "weights": None,
            "amount_epsilon": "0.01",
            "date_tolerance_days": 7,
            "sign_convention": "opposite",
            "max_records_per_side": None,
        },
        "hints": {
            "enabled": True,
            "boost": 0.05,
            "borderline_band": 0.1,
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }


def build_config(overrides: Optional[dict[str, Any]] = None) -> ReconConfig:
    """
    Build a validated configuration from defaults plus overrides.

    Args:
        overrides: Nested dictionary merged on top of the defaults

    Returns:
        ReconConfig object

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    config_dict = get_default_config()
    if overrides:
        config_dict = _deep_merge(config_dict, overrides)

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)
        overrides: Values applied after the file, e.g. from the command line

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    merged: dict[str, Any] = {}

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at top level")
        merged = _deep_merge(merged, user_config)
        merged["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    if overrides:
        merged = _deep_merge(merged, overrides)

    return build_config(merged)


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Ledger reconciliation configuration
# matching.profile: "invoice" weighs identifier 0.5, amount 0.3, counterparty 0.2
#                   "ledger" weighs identifier 0.4, amount 0.3, issue date 0.3
# matching.weights: optional explicit {identifier, amount, date, vendor}, must sum to 1.0

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
