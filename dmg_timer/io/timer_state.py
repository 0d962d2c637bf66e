"""
TimerState - Estado interno completo del Timer

Agrupa todos los registros que posee el periférico Timer para poder tomar una
instantánea (snapshot) y restaurarla más tarde sin perder un solo ciclo:

- divider (16 bits): Contador interno libre. DIV (0xFF04) expone sus 8 bits altos
- counter (8 bits): TIMA (0xFF05)
- modulo (8 bits): TMA (0xFF06)
- control (3 bits): TAC (0xFF07), bit 2 = enable, bits 1-0 = frecuencia
- overflow_pipeline (5 etapas): Ticks transcurridos desde el overflow de TIMA
- prior_timer_clock (1 bit): Última muestra del bit de DIV seleccionado por TAC
- sound_clock_latch (1 bit): Última muestra del bit de DIV que alimenta al APU

Fuente: Pan Docs - Timer and Divider Registers, Timer Obscure Behaviour
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Valor del contador interno tras la Boot ROM de DMG (DIV se lee como 0xAB)
DIV_RESET_VALUE = 0xABCC

# Número de etapas del pipeline de overflow (1 M-Cycle = 4 T-Cycles + la etapa del overflow)
PIPELINE_STAGES = 5

# Etapa en la que se solicita la interrupción y se recarga TIMA desde TMA
PIPELINE_IRQ_STAGE = PIPELINE_STAGES - 1


def _empty_pipeline() -> list[bool]:
    return [False] * PIPELINE_STAGES


@dataclass
class TimerState:
    """
    Instantánea de todos los registros del Timer.

    Los valores se guardan tal cual, sin validar: la validación del formato
    empaquetado es responsabilidad de dmg_timer.savestate.
    """

    divider: int = DIV_RESET_VALUE
    counter: int = 0
    modulo: int = 0
    control: int = 0
    overflow_pipeline: list[bool] = field(default_factory=_empty_pipeline)
    prior_timer_clock: bool = False
    sound_clock_latch: bool = False

    def copy(self) -> TimerState:
        """Devuelve una copia independiente (el pipeline no se comparte)."""
        return TimerState(
            divider=self.divider,
            counter=self.counter,
            modulo=self.modulo,
            control=self.control,
            overflow_pipeline=list(self.overflow_pipeline),
            prior_timer_clock=self.prior_timer_clock,
            sound_clock_latch=self.sound_clock_latch,
        )
