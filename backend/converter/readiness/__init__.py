"""
Readiness gating for the transcode engine.

Polls for the engine with a fixed spacing and attempt budget, so startup
either resolves or fails with an explicit EngineLoadTimeout.
"""

from .gate import (
    EngineReadinessGate,
    GateCancelled,
    await_engine,
)

__all__ = [
    "EngineReadinessGate",
    "GateCancelled",
    "await_engine",
]
