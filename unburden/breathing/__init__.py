"""
Breathing module for timed zen sessions.

Provides the phase state machine, its event stream and the persisted count
of completed sessions.
"""

from unburden.breathing.engine import BreathingSession, PhaseStream
from unburden.breathing.history import SessionHistory
from unburden.breathing.phases import (
    CYCLE_MS,
    PHASE_DURATIONS_MS,
    PHASE_PROMPTS,
    FinalizeResult,
    Phase,
    PhaseEvent,
    SessionResult,
)

__all__ = [
    "BreathingSession",
    "PhaseStream",
    "SessionHistory",
    "Phase",
    "PhaseEvent",
    "SessionResult",
    "FinalizeResult",
    "PHASE_DURATIONS_MS",
    "PHASE_PROMPTS",
    "CYCLE_MS",
]
