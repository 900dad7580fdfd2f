"""
Core Module - Configuration

Usage:
    from src.core import load_and_validate_config

    config = load_and_validate_config("config/config.yaml")
    thresholds = config.thresholds_for(glove.device_kind)
"""

from .config_loader import (
    BufferConfig,
    CalibrationConfig,
    CheckTimingConfig,
    DeviceThresholds,
    QuickCalibrationConfig,
    SystemConfig,
    load_and_validate_config,
)

__all__ = [
    'BufferConfig',
    'CalibrationConfig',
    'CheckTimingConfig',
    'DeviceThresholds',
    'QuickCalibrationConfig',
    'SystemConfig',
    'load_and_validate_config',
]
