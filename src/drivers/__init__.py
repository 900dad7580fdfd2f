"""
Drivers Module - Glove Interface Layer

The calibration code only sees gloves through GloveSampleSource. Hardware
drivers implement it; SimulatedGlove replays scripted samples.

Usage:
    from src.drivers import DeviceKind, SimulatedGlove

    glove = SimulatedGlove.open_close(DeviceKind.NOVA, flex_min=200.0, flex_max=2400.0)
"""

from .glove_source import (
    NUM_AXES,
    NUM_FINGERS,
    DeviceKind,
    GloveSampleSource,
    SimulatedGlove,
)

__all__ = [
    'NUM_AXES',
    'NUM_FINGERS',
    'DeviceKind',
    'GloveSampleSource',
    'SimulatedGlove',
]
