"""Configuration management for the church ledger."""

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11

from .models.deed import DeedCategory


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent

        # Stop if we reach filesystem root
        if parent_dir == current_dir:
            return start_dir

        current_dir = parent_dir


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Load repo config data from .church/config.toml if it exists."""
    config_file = repo_root / ".church" / "config.toml"

    if not config_file.exists():
        return None

    with open(config_file, "rb") as f:
        return tomllib.load(f)


def _as_int(value: Any, *, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid config: {name} must be an int")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(f"Invalid config: {name} must be an int")


def _as_float(value: Any, *, name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Invalid config: {name} must be a float")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise ValueError(f"Invalid config: {name} must be a float")


def _default_base_weights() -> dict[DeedCategory, float]:
    return {
        DeedCategory.ECOLOGICAL_SUSTAINABILITY: 0.35,
        DeedCategory.HOMELESSNESS_RELIEF: 0.35,
        DeedCategory.MATH_SCIENCE_EDUCATION: 0.25,
        DeedCategory.OPEN_SOURCE_CONTRIBUTION: 0.20,
        DeedCategory.FORGIVENESS: 0.15,
    }


class ScoringPolicy(BaseModel):
    """Constants for eco scoring, forgiveness quorum and minting."""

    half_life_seconds: float = Field(default=30 * 24 * 3600, gt=0)
    base_weights: dict[DeedCategory, float] = Field(default_factory=_default_base_weights)
    life_harm_penalty: float = Field(default=0.3, ge=0.0)
    flag_penalty: float = Field(default=0.15, ge=0.0)
    forgiveness_quorum: int = Field(default=3, ge=1)
    role_quorum: int = Field(default=2, ge=1)
    mint_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    mint_scale: float = Field(default=10.0, ge=0.0)
    harm_cap: int = Field(default=10, ge=1)

    model_config = {"frozen": True}

    def base_weight(self, category: DeedCategory) -> float:
        return self.base_weights.get(category, 0.0)


_SCORING_FLOAT_KEYS = (
    "half_life_seconds",
    "life_harm_penalty",
    "flag_penalty",
    "mint_threshold",
    "mint_scale",
)
_SCORING_INT_KEYS = ("forgiveness_quorum", "role_quorum", "harm_cap")


def _scoring_overrides(section: dict) -> dict[str, Any]:
    """Collect scoring overrides from a [scoring] table, then CHURCH_* env vars."""
    overrides: dict[str, Any] = {}
    for key in _SCORING_FLOAT_KEYS:
        env_value = os.environ.get(f"CHURCH_{key.upper()}")
        if env_value is not None:
            overrides[key] = _as_float(env_value, name=f"CHURCH_{key.upper()}")
        elif key in section:
            overrides[key] = _as_float(section[key], name=f"[scoring].{key}")
    for key in _SCORING_INT_KEYS:
        env_value = os.environ.get(f"CHURCH_{key.upper()}")
        if env_value is not None:
            overrides[key] = _as_int(env_value, name=f"CHURCH_{key.upper()}")
        elif key in section:
            overrides[key] = _as_int(section[key], name=f"[scoring].{key}")

    weights_section = section.get("base_weights")
    if isinstance(weights_section, dict):
        weights = _default_base_weights()
        for label, value in weights_section.items():
            category = DeedCategory.parse(str(label))
            if category is DeedCategory.UNRECOGNIZED:
                raise ValueError(f"Invalid config: [scoring.base_weights] unknown category {label!r}")
            weights[category] = _as_float(value, name=f"[scoring.base_weights].{label}")
        overrides["base_weights"] = weights
    return overrides


class ChurchConfig(BaseModel):
    """Configuration for the ledger file and scoring policy."""

    ledger_path: Path = Field(
        default_factory=lambda: Path(os.environ.get("CHURCH_LEDGER_PATH", "./church_ledger.jsonl"))
    )
    scoring: ScoringPolicy = Field(default_factory=ScoringPolicy)

    @classmethod
    def from_env(cls, cli_ledger_path: Optional[str] = None) -> "ChurchConfig":
        """Load configuration with the following precedence:

        1. CLI --ledger option
        2. repo-local .church/config.toml
        3. CHURCH_LEDGER_PATH / CHURCH_* environment variables
        4. Defaults

        Scoring values follow env-over-file, since they are tuning knobs
        rather than locations.

        Args:
            cli_ledger_path: Ledger path from CLI --ledger option
        """
        repo_root = _find_repo_root(Path.cwd())
        data = _load_repo_config_data(repo_root) or {}

        ledger_section = data.get("ledger") if isinstance(data.get("ledger"), dict) else {}
        scoring_section = data.get("scoring") if isinstance(data.get("scoring"), dict) else {}

        if cli_ledger_path:
            ledger_path = Path(cli_ledger_path).expanduser()
        elif ledger_section.get("path"):
            ledger_path = Path(str(ledger_section["path"])).expanduser()
            if not ledger_path.is_absolute():
                ledger_path = (repo_root / ledger_path).resolve()
        else:
            ledger_path = Path(os.environ.get("CHURCH_LEDGER_PATH", "./church_ledger.jsonl"))

        return cls(
            ledger_path=ledger_path,
            scoring=ScoringPolicy(**_scoring_overrides(scoring_section)),
        )
