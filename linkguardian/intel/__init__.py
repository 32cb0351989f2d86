"""External threat intelligence for LinkGuardian."""

from .external_intel import (
    IPQSSource,
    SignalGatherer,
    SignalSource,
    VirusTotalSource,
    build_signal_sources,
)
from .signals import ExternalSignal
from .simulated import SimulatedIPQSSource, SimulatedVirusTotalSource

__all__ = [
    "ExternalSignal",
    "IPQSSource",
    "SignalGatherer",
    "SignalSource",
    "SimulatedIPQSSource",
    "SimulatedVirusTotalSource",
    "VirusTotalSource",
    "build_signal_sources",
]
