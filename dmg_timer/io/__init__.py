"""
Módulo de Entrada/Salida (I/O)

Contiene el periférico Timer de la Game Boy:
- Timer: Sistema de temporización (DIV, TIMA, TMA, TAC)
- TimerState: Instantánea de todos sus registros internos
"""

from .timer import RegisterRequest, Timer, TimerOutput
from .timer_state import TimerState

__all__ = ["RegisterRequest", "Timer", "TimerOutput", "TimerState"]
