"""
Timer - Sistema de Temporización de la Game Boy (precisión de T-Cycle)

El Timer de la Game Boy incluye varios registros:
- DIV (0xFF04): Divider Register - 8 bits altos de un contador interno de 16 bits
- TIMA (0xFF05): Timer Counter - Contador configurable que puede generar interrupciones
- TMA (0xFF06): Timer Modulo - Valor de recarga cuando TIMA desborda
- TAC (0xFF07): Timer Control - Controla si TIMA está activo y su frecuencia

Concepto de DIV:
- El contador interno de 16 bits incrementa una vez por tick (T-Cycle) habilitado
- El registro DIV expone solo los 8 bits altos del contador interno
- Cualquier escritura en DIV (independientemente del valor) deja el contador
  interno en 0x0002, no en 0. Es el valor observado en hardware real

Concepto de TIMA/TMA/TAC:
- TIMA no usa un acumulador de ciclos: incrementa en cada flanco de bajada de un
  bit del contador interno, seleccionado por TAC bits 1-0:
  - 00: bit 9 (4096 Hz)
  - 01: bit 3 (262144 Hz)
  - 10: bit 5 (65536 Hz)
  - 11: bit 7 (16384 Hz)
- Cuando TIMA hace overflow (pasa de 0xFF a 0x00) NO se recarga inmediatamente.
  El overflow recorre un pipeline de 5 etapas:
  1. Ticks 0-3 tras el overflow: TIMA se lee como 0x00, sin interrupción
  2. Tick 4: se activa la línea de interrupción (un solo tick)
  3. Tick 5: la etapa 4 del pipeline carga TIMA con TMA
- Escribir TIMA durante los ticks 0-3 cancela la interrupción y la recarga.
  Escribir TIMA durante los ticks 4-5 se ignora (gana TMA).
  Escribir TMA durante los ticks 4-5 hace que se cargue el valor nuevo.

Concepto de reloj de audio:
- El APU usa el flanco de bajada del bit 4 de DIV (bit 5 en doble velocidad)
  para avanzar su frame sequencer. El Timer solo expone ese pulso.

Todas las señales de un tick se calculan a partir del estado latcheado del tick
anterior y después se aplican todas las mutaciones a la vez (fase de cálculo y
fase de commit), igual que en un circuito síncrono.

Fuente: Pan Docs - Timer and Divider Registers, Timer Obscure Behaviour
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from .timer_state import (
    DIV_RESET_VALUE,
    PIPELINE_IRQ_STAGE,
    PIPELINE_STAGES,
    TimerState,
)

logger = logging.getLogger(__name__)

# Direcciones de los registros del Timer en el mapa de memoria (I/O Ports)
IO_DIV = 0xFF04   # Divider Register
IO_TIMA = 0xFF05  # Timer Counter
IO_TMA = 0xFF06   # Timer Modulo
IO_TAC = 0xFF07   # Timer Control

# Puertos del Timer (dirección de 2 bits cuando la línea de selección está activa)
PORT_DIV = 0b00
PORT_TIMA = 0b01
PORT_TMA = 0b10
PORT_TAC = 0b11

# Valor que queda en el contador interno tras escribir en DIV
DIV_WRITE_VALUE = 0x0002

# Máscaras de bits para TAC
TAC_ENABLE_MASK = 0x04  # Bit 2: Enable
TAC_FREQ_MASK = 0x03  # Bits 1-0: Frecuencia
TAC_WRITABLE_MASK = 0x07
TAC_UNUSED_BITS = 0xF8  # Bits 3-7 siempre se leen como 1

# Bits de DIV que alimentan el reloj del frame sequencer del APU
SOUND_CLOCK_BIT_NORMAL = 4
SOUND_CLOCK_BIT_DOUBLE_SPEED = 5

# Valor devuelto cuando la línea de selección no está activa
OPEN_BUS = 0xFF


class RegisterRequest(NamedTuple):
    """Transacción de bus de un tick (selección, dirección de 2 bits, escritura, dato)."""

    address: int
    write: bool = False
    data: int = 0
    select: bool = True


class TimerOutput(NamedTuple):
    """Salidas del Timer tras un tick."""

    read_data: int
    interrupt: bool
    audio_edge: bool


class Timer:
    """
    Sistema de temporización de la Game Boy con precisión de T-Cycle.

    Implementa cuatro sub-máquinas de estado que avanzan con un único tick:
    - Divisor de reloj (DIV)
    - Selector del reloj del Timer (flanco de bajada del bit elegido por TAC)
    - Contador TIMA con su pipeline de overflow de 5 etapas
    - Banco de registros (DIV, TIMA, TMA, TAC) con arbitraje de escrituras

    Además genera el pulso de reloj que consume el APU.
    """

    def __init__(self, double_speed: bool = False, initial_state: TimerState | None = None) -> None:
        """
        Inicializa el Timer.

        Args:
            double_speed: Si es True (modo doble velocidad de CGB), el reloj de audio
                usa el bit 5 de DIV en lugar del bit 4
            initial_state: Estado que se carga en el reset. Si es None se usan los
                valores post-boot (DIV interno = 0xABCC, resto a 0)
        """
        self.double_speed = double_speed

        self._reset_state = initial_state.copy() if initial_state is not None else TimerState()

        # Contador interno de 16 bits para DIV
        self._divider: int = DIV_RESET_VALUE

        # Registros del Timer
        self._tima: int = 0  # Timer Counter (8 bits, 0x00-0xFF)
        self._tma: int = 0  # Timer Modulo (8 bits, 0x00-0xFF)
        self._tac: int = 0  # Timer Control (solo bits 0-2)

        # Pipeline de overflow: etapa N = N ticks desde el overflow de TIMA
        self._pipeline: list[bool] = [False] * PIPELINE_STAGES

        # Muestras del tick anterior para detectar flancos de bajada
        self._prior_timer_clock: bool = False  # Bit de DIV seleccionado por TAC
        self._sound_clock_latch: bool = False  # Bit 4/5 de DIV para el APU

        self._load(self._reset_state)

        logger.debug(f"Timer inicializado (DIV interno=0x{self._divider:04X}, double_speed={double_speed})")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def step(
        self,
        enable: bool = True,
        reset: bool = False,
        request: RegisterRequest | None = None,
    ) -> TimerOutput:
        """
        Avanza el Timer un tick del reloj físico.

        Args:
            enable: Si es False el tick no cuenta (el reloj físico va más rápido que
                el periférico) y no cambia ningún registro
            reset: Reset síncrono por nivel. Mientras está activo todos los registros
                se fuerzan al estado de reset y no se ejecuta ninguna otra lógica
            request: Transacción de bus de este tick (o None si no hay acceso)

        Returns:
            TimerOutput con el dato leído, el nivel de interrupción y el pulso de audio
        """
        selected = request is not None and request.select
        read_data = self.read(request.address) if selected else OPEN_BUS

        if reset:
            self._load(self._reset_state)
            return TimerOutput(read_data, self.interrupt, False)

        if not enable:
            return TimerOutput(read_data, self.interrupt, False)

        writing = selected and request.write
        port = request.address & 0x03 if selected else None
        data = request.data & 0xFF if selected else 0

        # Fase 1: señales derivadas del estado latcheado del tick anterior
        enabled = (self._tac & TAC_ENABLE_MASK) != 0
        timer_clock = self._divider_bit(self._get_timer_clock_bit(self._tac & TAC_FREQ_MASK))
        falling_edge = enabled and self._prior_timer_clock and not timer_clock
        reload_pending = enabled and self._pipeline[PIPELINE_IRQ_STAGE]
        irq_arriving = enabled and self._pipeline[PIPELINE_IRQ_STAGE - 1]

        sound_clock = self._divider_bit(
            SOUND_CLOCK_BIT_DOUBLE_SPEED if self.double_speed else SOUND_CLOCK_BIT_NORMAL
        )
        audio_edge = self._sound_clock_latch and not sound_clock

        # Fase 2: siguiente estado
        if writing and port == PORT_DIV:
            next_divider = DIV_WRITE_VALUE
            logger.debug(f"Timer: DIV reseteado a 0x{DIV_WRITE_VALUE:04X} (valor escrito ignorado: 0x{data:02X})")
        else:
            next_divider = (self._divider + 1) & 0xFFFF

        next_tma = self._tma
        if writing and port == PORT_TMA:
            next_tma = data
            logger.debug(f"Timer: TMA escrito = 0x{next_tma:02X}")

        next_tac = self._tac
        if writing and port == PORT_TAC:
            next_tac = data & TAC_WRITABLE_MASK
            logger.debug(
                f"Timer: TAC escrito = 0x{next_tac:02X} "
                f"(Enable={bool(next_tac & TAC_ENABLE_MASK)}, Freq={next_tac & TAC_FREQ_MASK})"
            )

        tima_write = writing and port == PORT_TIMA
        overflow = False
        next_tima = self._tima
        if reload_pending:
            # La recarga gana a la escritura de TIMA, pero usa el TMA escrito en este tick
            next_tima = next_tma
            logger.debug(f"Timer: Interrupción solicitada, TIMA recargado con TMA=0x{next_tma:02X}")
        elif tima_write and irq_arriving:
            # Tick 4: la interrupción ya no se puede cancelar, la recarga del tick 5 gana
            logger.debug(f"Timer: Escritura en TIMA ignorada en el tick de interrupción (0x{data:02X})")
        elif tima_write:
            next_tima = data
            logger.debug(f"Timer: TIMA escrito = 0x{next_tima:02X}")
        elif falling_edge:
            next_tima = (self._tima + 1) & 0xFF
            overflow = next_tima == 0x00
            if overflow:
                logger.debug("Timer: Overflow de TIMA, interrupción y recarga en 4 ticks")

        next_pipeline = list(self._pipeline)
        if enabled:
            next_pipeline = [overflow] + self._pipeline[:-1]
        if tima_write:
            if any(self._pipeline[: PIPELINE_IRQ_STAGE - 1]) and not irq_arriving:
                logger.debug("Timer: Escritura en TIMA cancela la interrupción pendiente")
            next_pipeline[1:PIPELINE_IRQ_STAGE] = [False] * (PIPELINE_IRQ_STAGE - 1)
            if not irq_arriving:
                next_pipeline[PIPELINE_IRQ_STAGE] = False

        # Fase 3: commit atómico
        self._divider = next_divider
        self._tima = next_tima
        self._tma = next_tma
        self._tac = next_tac
        self._pipeline = next_pipeline
        self._prior_timer_clock = timer_clock
        self._sound_clock_latch = sound_clock

        return TimerOutput(read_data, self.interrupt, audio_edge)

    def tick(self, count: int = 1) -> None:
        """
        Avanza el Timer varios ticks habilitados sin accesos de bus.

        Args:
            count: Número de ticks
        """
        for _ in range(count):
            self.step()

    # ------------------------------------------------------------------
    # Interfaz de registros
    # ------------------------------------------------------------------

    def read(self, port: int) -> int:
        """
        Lectura combinacional de un puerto del Timer (no depende del tick).

        Args:
            port: Dirección de 2 bits (0=DIV, 1=TIMA, 2=TMA, 3=TAC)

        Returns:
            Valor del registro (0x00 a 0xFF)
        """
        match port & 0x03:
            case 0:
                return self.read_div()
            case 1:
                return self.read_tima()
            case 2:
                return self.read_tma()
            case _:
                return self.read_tac()

    def write(self, port: int, value: int) -> TimerOutput:
        """
        Escribe un puerto del Timer. La escritura consume un tick completo.

        Args:
            port: Dirección de 2 bits (0=DIV, 1=TIMA, 2=TMA, 3=TAC)
            value: Valor a escribir (se enmascara a 8 bits)

        Returns:
            Salidas del tick en que se aplicó la escritura
        """
        return self.step(request=RegisterRequest(port & 0x03, write=True, data=value))

    def read_byte(self, address: int) -> int:
        """
        Lee un registro del Timer por su dirección de memoria (0xFF04-0xFF07).

        Raises:
            ValueError: Si la dirección no pertenece al Timer
        """
        return self.read(self._address_to_port(address))

    def write_byte(self, address: int, value: int) -> TimerOutput:
        """
        Escribe un registro del Timer por su dirección de memoria (0xFF04-0xFF07).

        Raises:
            ValueError: Si la dirección no pertenece al Timer
        """
        return self.write(self._address_to_port(address), value)

    def read_div(self) -> int:
        """
        Lee el registro DIV (0xFF04).

        DIV expone solo los 8 bits altos del contador interno.

        Returns:
            Valor del registro DIV (0x00 a 0xFF)
        """
        return (self._divider >> 8) & 0xFF

    def read_tima(self) -> int:
        """Lee el registro TIMA (0xFF05)."""
        return self._tima & 0xFF

    def read_tma(self) -> int:
        """Lee el registro TMA (0xFF06)."""
        return self._tma & 0xFF

    def read_tac(self) -> int:
        """
        Lee el registro TAC (0xFF07).

        Solo los bits 0-2 son significativos, los bits 3-7 siempre se leen como 1.
        """
        return (self._tac & TAC_WRITABLE_MASK) | TAC_UNUSED_BITS

    def write_div(self, value: int = 0) -> TimerOutput:
        """Escribe DIV (el valor se ignora, el contador interno pasa a 0x0002)."""
        return self.write(PORT_DIV, value)

    def write_tima(self, value: int) -> TimerOutput:
        """Escribe TIMA respetando las reglas del pipeline de overflow."""
        return self.write(PORT_TIMA, value)

    def write_tma(self, value: int) -> TimerOutput:
        """Escribe TMA."""
        return self.write(PORT_TMA, value)

    def write_tac(self, value: int) -> TimerOutput:
        """Escribe TAC (solo bits 0-2)."""
        return self.write(PORT_TAC, value)

    # ------------------------------------------------------------------
    # Reset y estado persistente
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Aplica un tick con la línea de reset activa."""
        self.step(reset=True)

    def set_reset_state(self, state: TimerState) -> None:
        """
        Establece el estado que se carga mientras reset está activo.

        Args:
            state: Estado restaurado (por ejemplo, desde un save state)
        """
        self._reset_state = state.copy()

    def snapshot(self) -> TimerState:
        """Devuelve una copia de todos los registros internos."""
        return TimerState(
            divider=self._divider,
            counter=self._tima,
            modulo=self._tma,
            control=self._tac,
            overflow_pipeline=list(self._pipeline),
            prior_timer_clock=self._prior_timer_clock,
            sound_clock_latch=self._sound_clock_latch,
        )

    def restore(self, state: TimerState) -> None:
        """
        Carga un estado tal cual, sin validar. El siguiente tick continúa
        exactamente como si no se hubiera interrumpido la ejecución.
        """
        self._load(state)
        logger.debug(f"Timer: Estado restaurado (DIV interno=0x{self._divider:04X}, TIMA=0x{self._tima:02X})")

    # ------------------------------------------------------------------
    # Propiedades de solo lectura
    # ------------------------------------------------------------------

    @property
    def divider(self) -> int:
        """Contador interno completo (16 bits). Útil para tests y debugging."""
        return self._divider

    @property
    def interrupt(self) -> bool:
        """Línea de interrupción: etapa 4 del pipeline de overflow (combinacional)."""
        return self._pipeline[PIPELINE_IRQ_STAGE]

    @property
    def overflow_pipeline(self) -> tuple[bool, ...]:
        return tuple(self._pipeline)

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _load(self, state: TimerState) -> None:
        self._divider = state.divider & 0xFFFF
        self._tima = state.counter & 0xFF
        self._tma = state.modulo & 0xFF
        self._tac = state.control & TAC_WRITABLE_MASK
        # Listas más cortas se completan con etapas vacías, las sobrantes se descartan
        stages = [bool(stage) for stage in state.overflow_pipeline[:PIPELINE_STAGES]]
        self._pipeline = stages + [False] * (PIPELINE_STAGES - len(stages))
        self._prior_timer_clock = bool(state.prior_timer_clock)
        self._sound_clock_latch = bool(state.sound_clock_latch)

    def _divider_bit(self, bit: int) -> bool:
        return (self._divider >> bit) & 1 == 1

    def _get_timer_clock_bit(self, freq_select: int) -> int:
        """
        Obtiene el bit de DIV que actúa como reloj de TIMA según la frecuencia.

        Args:
            freq_select: Bits 1-0 de TAC (0-3)

        Returns:
            Índice del bit del contador interno
        """
        match freq_select:
            case 0:  # 4096 Hz
                return 9
            case 1:  # 262144 Hz
                return 3
            case 2:  # 65536 Hz
                return 5
            case _:  # 16384 Hz
                return 7

    @staticmethod
    def _address_to_port(address: int) -> int:
        if not IO_DIV <= address <= IO_TAC:
            raise ValueError(f"Dirección 0x{address:04X} fuera del rango del Timer (0xFF04-0xFF07)")
        return address - IO_DIV
