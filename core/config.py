"""Engine configuration.

Settings are read from environment variables, optionally seeded from a
``.env`` file at the repository root. Every value has a default so the
engine runs with no configuration at all.

Variables:
    LOG_LEVEL                 Logging level name (default INFO)
    LOG_JSON                  "1"/"true" for JSON log lines (default off)
    PRICE_DATE_WINDOW_DAYS    Max day distance for nearest-date lookup (default 7)
    PRICE_COLUMN_TEMPLATES    Path to an alternative column template JSON file
    WEIGHT_TOLERANCE_KG       Net weight match tolerance (default 50)
    WEIGHT_ERROR_BAND_KG      Net weight difference above which it is an error (default 100)
    VOLUME_TOLERANCE_L        Volume match tolerance (default 100)
    VOLUME_ERROR_BAND_L       Volume difference above which it is an error (default 200)
    PLAUSIBLE_QUANTITY_MIN    Smallest quantity accepted by the quantity chain (default 100)
"""

import os
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


REPO_ROOT = Path(__file__).resolve().parents[1]


def load_env_var(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read an environment variable, treating blank values as unset."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _as_bool(value: Optional[str]) -> bool:
    return (value or "").lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime settings for extraction, reconciliation and pricing."""
    log_level: str = Field(default="INFO", description="Logging level name")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    price_date_window_days: int = Field(default=7, ge=0, description="Nearest-date window in days")
    price_column_templates: Optional[Path] = Field(default=None, description="Column template override")

    weight_tolerance_kg: Decimal = Field(default=Decimal("50"), ge=0)
    weight_error_band_kg: Decimal = Field(default=Decimal("100"), ge=0)
    volume_tolerance_l: Decimal = Field(default=Decimal("100"), ge=0)
    volume_error_band_l: Decimal = Field(default=Decimal("200"), ge=0)

    plausible_quantity_min: Decimal = Field(default=Decimal("100"), ge=0)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        env_path = REPO_ROOT / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        values = {
            "log_level": load_env_var("LOG_LEVEL"),
            "log_json": _as_bool(load_env_var("LOG_JSON")),
            "price_date_window_days": load_env_var("PRICE_DATE_WINDOW_DAYS"),
            "price_column_templates": load_env_var("PRICE_COLUMN_TEMPLATES"),
            "weight_tolerance_kg": load_env_var("WEIGHT_TOLERANCE_KG"),
            "weight_error_band_kg": load_env_var("WEIGHT_ERROR_BAND_KG"),
            "volume_tolerance_l": load_env_var("VOLUME_TOLERANCE_L"),
            "volume_error_band_l": load_env_var("VOLUME_ERROR_BAND_L"),
            "plausible_quantity_min": load_env_var("PLAUSIBLE_QUANTITY_MIN"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings (read once)."""
    return Settings.from_env()


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
