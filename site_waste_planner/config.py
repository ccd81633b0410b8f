"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      - committed static defaults
  2. ``config/local.toml``        - optional local overrides (gitignored)
  3. ``.env``                     - local secrets and env overrides (gitignored)
  4. Environment variables        - ``SITE_WASTE_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Planning stages and CLI commands receive an ``AppConfig`` instance. The pure
engine functions take the individual sub-configs (or plain values) they need,
so they stay callable without a config file.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/site_waste.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class DataConfig(BaseModel):
    """Filesystem paths for exported results."""

    model_config = ConfigDict(frozen=True)

    output_dir: str = "data/outputs"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/site_waste.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class PlanningConfig(BaseModel):
    """Stream classification and narrative settings.

    Attributes:
        catch_all_stream: Name of the stream that absorbs everything not
            separated onsite. Never recommended for separation.
        major_stream_tonnes: Tonnage at or above which a stream is "major".
        medium_stream_tonnes: Tonnage at or above which a stream is "medium".
        recommendation_display_limit: How many recommendation titles the
            narrative lists.
    """

    model_config = ConfigDict(frozen=True)

    catch_all_stream: str = "Mixed C&D"
    major_stream_tonnes: float = 1.0
    medium_stream_tonnes: float = 0.2
    recommendation_display_limit: int = 6

    @model_validator(mode="after")
    def validate_thresholds(self) -> "PlanningConfig":
        if not 0.0 <= self.medium_stream_tonnes <= self.major_stream_tonnes:
            raise ValueError(
                "Expected 0 <= medium_stream_tonnes <= major_stream_tonnes, got "
                f"{self.medium_stream_tonnes} / {self.major_stream_tonnes}."
            )
        if self.recommendation_display_limit < 0:
            raise ValueError("recommendation_display_limit must be >= 0.")
        return self


class OptimiserConfig(BaseModel):
    """Default facility-optimiser weights.

    A weight of 0 switches the dimension off. When every usable dimension is
    switched off the scorer falls back to distance-only ranking.
    """

    model_config = ConfigDict(frozen=True)

    distance_weight: float = 1.0
    cost_weight: float = 0.0
    carbon_weight: float = 0.0
    diversion_weight: float = 0.0
    alternatives_count: int = 3

    @field_validator("distance_weight", "cost_weight", "carbon_weight", "diversion_weight")
    @classmethod
    def validate_weight(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Optimiser weights must be >= 0, got {v}.")
        return v

    @field_validator("alternatives_count")
    @classmethod
    def validate_alternatives(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"alternatives_count must be >= 0, got {v}.")
        return v


class ImpactConfig(BaseModel):
    """Approximate cost and carbon constants used for impact ranges.

    Costs are per tonne in ``currency``. Emission and displacement factors are
    tCO2e per tonne. Recycling cost may be negative (rebate).
    """

    model_config = ConfigDict(frozen=True)

    currency: str = "NZD"
    landfill_cost_min: float = 80.0
    landfill_cost_max: float = 180.0
    recycling_cost_min: float = -50.0
    recycling_cost_max: float = 80.0
    landfill_emission_factor: float = 0.3
    recycling_displacement_min: float = 0.1
    recycling_displacement_max: float = 0.6
    approximate_note: str = (
        "Ranges are approximate and based on typical NZ construction waste "
        "rates; actual savings depend on contracts, facilities and contamination."
    )

    @model_validator(mode="after")
    def validate_ranges(self) -> "ImpactConfig":
        pairs = [
            ("landfill_cost", self.landfill_cost_min, self.landfill_cost_max),
            ("recycling_cost", self.recycling_cost_min, self.recycling_cost_max),
            (
                "recycling_displacement",
                self.recycling_displacement_min,
                self.recycling_displacement_max,
            ),
        ]
        for name, low, high in pairs:
            if low > high:
                raise ValueError(f"{name}_min ({low}) must not exceed {name}_max ({high}).")
        if self.landfill_emission_factor < 0:
            raise ValueError("landfill_emission_factor must be >= 0.")
        return self


# ── Root config ───────────────────────────────────────────────────────────────


class AppConfig(BaseModel):
    """Root application configuration. Immutable after construction."""

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    data: DataConfig = DataConfig()
    logging: LoggingConfig = LoggingConfig()
    planning: PlanningConfig = PlanningConfig()
    optimiser: OptimiserConfig = OptimiserConfig()
    impact: ImpactConfig = ImpactConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply SITE_WASTE_* env vars to the raw config dict.

    Supported overrides:
      SITE_WASTE_DB_PATH    → raw["database"]["db_path"]
      SITE_WASTE_LOG_LEVEL  → raw["logging"]["level"]
      SITE_WASTE_DEBUG      → raw["debug"]
    """
    if db_path := os.environ.get("SITE_WASTE_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("SITE_WASTE_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("SITE_WASTE_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        data=DataConfig(**raw.get("data", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        planning=PlanningConfig(**raw.get("planning", {})),
        optimiser=OptimiserConfig(**raw.get("optimiser", {})),
        impact=ImpactConfig(**raw.get("impact", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
