"""
Breathing phases, their durations and the events the engine emits.
"""

from dataclasses import dataclass
from enum import Enum

from unburden.config import EXHALE_MS, HOLD_IN_MS, HOLD_OUT_MS, INHALE_MS


class Phase(str, Enum):
    INHALE = "inhale"
    HOLD_IN = "hold-in"
    EXHALE = "exhale"
    HOLD_OUT = "hold-out"


PHASE_DURATIONS_MS: dict[Phase, int] = {
    Phase.INHALE: INHALE_MS,
    Phase.HOLD_IN: HOLD_IN_MS,
    Phase.EXHALE: EXHALE_MS,
    Phase.HOLD_OUT: HOLD_OUT_MS,
}

NEXT_PHASE: dict[Phase, Phase] = {
    Phase.INHALE: Phase.HOLD_IN,
    Phase.HOLD_IN: Phase.EXHALE,
    Phase.EXHALE: Phase.HOLD_OUT,
    Phase.HOLD_OUT: Phase.INHALE,
}

# (main, sub) prompt shown while a phase is active
PHASE_PROMPTS: dict[Phase, tuple[str, str]] = {
    Phase.INHALE: ("BREATHE IN...", "FILLING YOUR LUNGS SLOWLY"),
    Phase.HOLD_IN: ("HOLD...", "KEEPING IT IN"),
    Phase.EXHALE: ("BREATHE OUT...", "RELEASING SLOWLY"),
    Phase.HOLD_OUT: ("HOLD...", "EMPTY YOUR LUNGS"),
}

CYCLE_MS: int = sum(PHASE_DURATIONS_MS.values())


@dataclass(frozen=True)
class PhaseEvent:
    """Emitted each time the session enters a phase."""

    phase: Phase
    cycles_completed: int

    @property
    def prompt(self) -> tuple[str, str]:
        return PHASE_PROMPTS[self.phase]


@dataclass(frozen=True)
class SessionResult:
    cycles_completed: int


@dataclass(frozen=True)
class FinalizeResult:
    """Outcome of crediting a finished session."""

    credited_as_complete: bool
    total_sessions: int
    write_failed: bool = False
