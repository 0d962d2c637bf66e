"""
Trazas del Timer tick a tick

Registra en arrays de NumPy el valor del contador interno, TIMA, la línea de
interrupción y el pulso de audio de cada tick. Comparar dos trazas con
numpy.array_equal es la forma más directa de comprobar que una ejecución
restaurada desde un save state es idéntica a la original.
"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from .io.timer import RegisterRequest, Timer

logger = logging.getLogger(__name__)


class TimerTrace:
    """
    Traza de ejecución del Timer.

    Cada tick ocupa una posición en cuatro arrays:
    - divider (uint16): contador interno tras el tick
    - counter (uint8): TIMA tras el tick
    - interrupt (uint8): nivel de la línea de interrupción
    - audio_edge (uint8): pulso del reloj de audio
    """

    def __init__(self) -> None:
        self.divider = np.zeros(0, dtype=np.uint16)
        self.counter = np.zeros(0, dtype=np.uint8)
        self.interrupt = np.zeros(0, dtype=np.uint8)
        self.audio_edge = np.zeros(0, dtype=np.uint8)

    def __len__(self) -> int:
        return len(self.divider)

    def record(
        self,
        timer: Timer,
        ticks: int,
        request_at: Callable[[int], RegisterRequest | None] | None = None,
    ) -> TimerTrace:
        """
        Ejecuta `ticks` ticks habilitados y los añade a la traza.

        Args:
            timer: Timer a ejecutar
            ticks: Número de ticks
            request_at: Función opcional que devuelve la transacción de bus
                para el índice de tick dado (relativo a esta llamada)

        Returns:
            La propia traza (para encadenar llamadas)
        """
        divider = np.zeros(ticks, dtype=np.uint16)
        counter = np.zeros(ticks, dtype=np.uint8)
        interrupt = np.zeros(ticks, dtype=np.uint8)
        audio_edge = np.zeros(ticks, dtype=np.uint8)

        for index in range(ticks):
            request = request_at(index) if request_at is not None else None
            output = timer.step(request=request)
            divider[index] = timer.divider
            counter[index] = timer.read_tima()
            interrupt[index] = output.interrupt
            audio_edge[index] = output.audio_edge

        self.divider = np.concatenate([self.divider, divider])
        self.counter = np.concatenate([self.counter, counter])
        self.interrupt = np.concatenate([self.interrupt, interrupt])
        self.audio_edge = np.concatenate([self.audio_edge, audio_edge])
        logger.debug(
            f"TimerTrace: {ticks} ticks grabados (total {len(self)}, "
            f"interrupciones={int(np.count_nonzero(interrupt))})"
        )
        return self

    def equals(self, other: TimerTrace) -> bool:
        """True si ambas trazas son idénticas tick a tick."""
        return (
            np.array_equal(self.divider, other.divider)
            and np.array_equal(self.counter, other.counter)
            and np.array_equal(self.interrupt, other.interrupt)
            and np.array_equal(self.audio_edge, other.audio_edge)
        )

    def interrupt_ticks(self) -> list[int]:
        """Índices de los ticks en los que la línea de interrupción está activa."""
        return [int(index) for index in np.flatnonzero(self.interrupt)]

    def audio_edge_count(self) -> int:
        return int(np.count_nonzero(self.audio_edge))

    def summary(self) -> dict[str, int | list[int]]:
        """Resumen de la traza para la línea de comandos."""
        return {
            "ticks": len(self),
            "interrupts": self.interrupt_ticks(),
            "audio_edges": self.audio_edge_count(),
            "tima_min": int(self.counter.min()) if len(self) else 0,
            "tima_max": int(self.counter.max()) if len(self) else 0,
        }
