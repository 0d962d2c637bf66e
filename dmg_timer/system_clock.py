"""
SystemClock: Centralización del contrato de ciclos y del enable del Timer.

Este módulo implementa el patrón "Clock Domain" para garantizar que:
1. El Timer solo ve ticks (T-Cycles) y una línea de enable
2. La conversión M→T (factor 4) se hace en UN SOLO LUGAR
3. Un reloj físico más rápido que el periférico se modela con la línea de enable,
   no con un segundo planificador

Basado en Pan Docs:
- CPU opera en M-cycles (1 M-cycle = 4 T-cycles)
- Timer opera en T-cycles

Licencia: MIT
"""

from __future__ import annotations

import logging
from typing import Callable

from .io.timer import Timer

logger = logging.getLogger(__name__)

# Bit 2 de IF (0xFF0F): interrupción del Timer
IF_TIMER_BIT = 0x04


class SystemClock:
    """
    Reloj maestro que entrega ticks al Timer.

    Responsabilidades:
    - Convertir M-cycles a T-cycles (factor 4)
    - Activar el enable del Timer una vez cada `clock_ratio` ticks físicos
    - Contar interrupciones (flancos de subida de la línea) y pulsos de audio
    - Avisar al controlador de interrupciones externo mediante un callback
    """

    # En Game Boy: 1 M-cycle = 4 T-cycles (4.19 MHz / 1.05 MHz)
    M_TO_T_FACTOR = 4

    def __init__(
        self,
        timer: Timer | None,
        clock_ratio: int = 1,
        interrupt_callback: Callable[[], None] | None = None,
    ) -> None:
        """
        Inicializa el reloj del sistema.

        Args:
            timer: Instancia de Timer
            clock_ratio: Ticks físicos por tick habilitado del Timer (>= 1)
            interrupt_callback: Función que se llama una vez por cada interrupción del Timer

        Raises:
            ValueError: Si clock_ratio es menor que 1
        """
        if clock_ratio < 1:
            raise ValueError(f"clock_ratio debe ser >= 1 (recibido {clock_ratio})")

        self._timer = timer
        self._clock_ratio = clock_ratio
        self._interrupt_callback = interrupt_callback

        self._phase = 0  # Ticks físicos desde el último tick habilitado
        self._total_ticks = 0  # Ticks habilitados entregados al Timer
        self._interrupt_count = 0
        self._audio_edge_count = 0
        self._last_interrupt = timer.interrupt if timer is not None else False

    def run_physical(self, ticks: int) -> int:
        """
        Entrega ticks del reloj físico al Timer.

        Solo uno de cada `clock_ratio` ticks físicos lleva el enable activo.

        Args:
            ticks: Número de ticks físicos

        Returns:
            int: Número de ticks habilitados entregados

        Raises:
            RuntimeError: Si no hay Timer conectado
        """
        timer = self._require_timer()
        enabled_ticks = 0

        for _ in range(ticks):
            self._phase += 1
            enable = self._phase == self._clock_ratio
            if enable:
                self._phase = 0
                enabled_ticks += 1

            output = timer.step(enable=enable)
            self._observe(output.interrupt, output.audio_edge)

        self._total_ticks += enabled_ticks
        return enabled_ticks

    def tick_m_cycles(self, m_cycles: int) -> int:
        """
        Avanza el Timer el equivalente a `m_cycles` ciclos de máquina.

        Args:
            m_cycles: M-cycles ejecutados por la CPU

        Returns:
            int: T-cycles habilitados entregados al Timer
        """
        # ÚNICO PUNTO DE CONVERSIÓN M→T
        t_cycles = m_cycles * self.M_TO_T_FACTOR
        return self.run_physical(t_cycles * self._clock_ratio)

    def get_total_ticks(self) -> int:
        """Total de ticks habilitados entregados desde el inicio."""
        return self._total_ticks

    def get_interrupt_count(self) -> int:
        return self._interrupt_count

    def get_audio_edge_count(self) -> int:
        return self._audio_edge_count

    def reset_counters(self) -> None:
        """Reinicia los contadores de ticks, interrupciones y pulsos de audio."""
        self._total_ticks = 0
        self._interrupt_count = 0
        self._audio_edge_count = 0

    def set_timer(self, timer: Timer) -> None:
        """
        Conecta una instancia de Timer al reloj del sistema.

        Args:
            timer: Instancia de Timer
        """
        self._timer = timer
        self._last_interrupt = timer.interrupt

    def _observe(self, interrupt: bool, audio_edge: bool) -> None:
        if interrupt and not self._last_interrupt:
            self._interrupt_count += 1
            logger.debug(f"SystemClock: Interrupción del Timer (IF |= 0x{IF_TIMER_BIT:02X})")
            if self._interrupt_callback is not None:
                self._interrupt_callback()
        self._last_interrupt = interrupt

        if audio_edge:
            self._audio_edge_count += 1

    def _require_timer(self) -> Timer:
        if self._timer is None:
            raise RuntimeError("Timer no inicializado en SystemClock")
        return self._timer
