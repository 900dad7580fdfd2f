"""
Configuration Loader & Validation

Device thresholds and calibration timings live here as an explicit table
that is handed to CalibrationCheck / CalibrationSequence constructors.
Nothing is loaded at import time.
"""

import math
import os
import yaml
from pathlib import Path
from typing import Dict, Optional, Any
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.drivers.glove_source import DeviceKind
from src.platform.logging_utils import get_logger

logger = get_logger(__name__)

# =============================================================================
# Configuration Models
# =============================================================================

class SystemConfig(BaseModel):
    log_level: str = "INFO"
    log_file: Optional[str] = None


class DeviceThresholds(BaseModel):
    """Per-family sensor tolerances, in the family's own units."""
    model_config = ConfigDict(frozen=True)

    flex_threshold: float = Field(..., gt=0)   # Out-of-bounds margin on flexion
    min_flex: float = Field(..., gt=0)         # Minimum flexion range to count as "moved"


SENSEGLOVE_THRESHOLDS = DeviceThresholds(
    flex_threshold=math.radians(15),
    min_flex=math.radians(90),
)
NOVA_THRESHOLDS = DeviceThresholds(
    flex_threshold=350.0,
    min_flex=1500.0,
)


def default_device_table() -> Dict[DeviceKind, DeviceThresholds]:
    return {
        DeviceKind.SENSEGLOVE: SENSEGLOVE_THRESHOLDS,
        DeviceKind.NOVA: NOVA_THRESHOLDS,
    }


class CheckTimingConfig(BaseModel):
    perfect_threshold_time: float = Field(0.5, gt=0)
    min_move_time: float = Field(3.0, gt=0)
    out_of_bounds_time: float = Field(0.1, ge=0)
    match_tolerance_factor: float = Field(2.5, ge=0)


class QuickCalibrationConfig(BaseModel):
    auto_end_time: float = Field(10.0, gt=0)
    smoothing_samples: int = Field(0, ge=0)


class BufferConfig(BaseModel):
    max_data_points: int = Field(60000, ge=2)


class CalibrationConfig(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    devices: Dict[DeviceKind, DeviceThresholds] = Field(default_factory=default_device_table)
    check: CheckTimingConfig = Field(default_factory=CheckTimingConfig)
    quick: QuickCalibrationConfig = Field(default_factory=QuickCalibrationConfig)
    buffer: BufferConfig = Field(default_factory=BufferConfig)

    @field_validator("devices")
    @classmethod
    def _fill_missing_devices(cls, value: Dict[DeviceKind, DeviceThresholds]):
        table = default_device_table()
        table.update(value)
        return table

    def thresholds_for(self, device_kind: DeviceKind) -> DeviceThresholds:
        """Thresholds for a family; unknown families use the SenseGlove entry."""
        thresholds = self.devices.get(device_kind)
        if thresholds is None:
            return self.devices[DeviceKind.SENSEGLOVE]
        return thresholds

# =============================================================================
# Loader
# =============================================================================

_FLOAT_OVERRIDES = {
    "CALIBRATION_AUTO_END_TIME": ("quick", "auto_end_time"),
    "CALIBRATION_MIN_MOVE_TIME": ("check", "min_move_time"),
    "CALIBRATION_OUT_OF_BOUNDS_TIME": ("check", "out_of_bounds_time"),
}


def _apply_env_overrides(config_data: Dict[str, Any]) -> None:
    if os.getenv("LOG_LEVEL"):
        config_data.setdefault("system", {})["log_level"] = os.getenv("LOG_LEVEL").upper()

    if os.getenv("LOG_FILE"):
        config_data.setdefault("system", {})["log_file"] = os.getenv("LOG_FILE")

    for env_name, (section, key) in _FLOAT_OVERRIDES.items():
        raw = os.getenv(env_name)
        if not raw:
            continue
        try:
            config_data.setdefault(section, {})[key] = float(raw)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {env_name}={raw!r}")


def load_and_validate_config(config_path: str = "config/config.yaml") -> CalibrationConfig:
    """
    Load configuration from YAML, apply env overrides, and validate.
    """
    path = Path(config_path)
    config_data: Dict[str, Any] = {}

    # 1. Load YAML
    if path.exists():
        try:
            with open(path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
            logger.info(f"Loaded config from {path}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config file: {e}")
            config_data = {}
    else:
        logger.warning(f"Config file {path} not found. Using defaults.")

    if not isinstance(config_data, dict):
        logger.error(f"Config file {path} does not contain a mapping. Using defaults.")
        config_data = {}

    # 2. Environment Overrides
    _apply_env_overrides(config_data)

    # 3. Validation
    try:
        config = CalibrationConfig(**config_data)
        logger.info("Configuration validated successfully.")
        return config
    except ValidationError as e:
        logger.error(f"Configuration validation failed: {e}")
        logger.warning("Falling back to default configuration due to validation errors.")
        return CalibrationConfig()
