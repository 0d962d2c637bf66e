"""
dmg_timer - Timer de la Game Boy con precisión de T-Cycle

Modelo del periférico Timer (DIV, TIMA, TMA, TAC) con el pipeline de overflow,
las escrituras que colisionan con la recarga y el reloj del frame sequencer del APU.
"""

from .io import RegisterRequest, Timer, TimerOutput, TimerState
from .savestate import SaveStateError, pack_state, unpack_state
from .system_clock import SystemClock

__version__ = "0.1.0"

__all__ = [
    "RegisterRequest",
    "SaveStateError",
    "SystemClock",
    "Timer",
    "TimerOutput",
    "TimerState",
    "pack_state",
    "unpack_state",
]
