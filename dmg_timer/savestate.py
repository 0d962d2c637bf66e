"""
Save States del Timer

Empaqueta el estado completo del Timer en un registro fijo de 8 bytes
(entero de 64 bits little-endian). El layout es estable entre versiones:

    bits  0-15  divider (contador interno de DIV)
    bits 16-23  counter (TIMA)
    bits 24-31  modulo (TMA)
    bits 32-34  control (TAC bits 0-2)
    bits 35-39  overflow_pipeline (bit 35 = etapa 0, bit 39 = etapa 4)
    bit  40     prior_timer_clock
    bit  41     sound_clock_latch
    bits 42-63  reservados (siempre 0, no se deben reutilizar)

El Timer no valida nada: es aquí donde se rechazan registros mal formados
antes de llegar al periférico.

Los archivos de save state añaden una cabecera de 8 bytes (magic de 7 bytes
y un byte de versión) delante del registro.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .io.timer_state import PIPELINE_STAGES, TimerState

logger = logging.getLogger(__name__)

STATE_RECORD_SIZE = 8

DIVIDER_SHIFT = 0
COUNTER_SHIFT = 16
MODULO_SHIFT = 24
CONTROL_SHIFT = 32
PIPELINE_SHIFT = 35
PRIOR_TIMER_CLOCK_SHIFT = 40
SOUND_CLOCK_LATCH_SHIFT = 41
RESERVED_SHIFT = 42

RESERVED_MASK = ((1 << 64) - 1) & ~((1 << RESERVED_SHIFT) - 1)

FILE_MAGIC = b"DMGTIMR"
FILE_VERSION = 1
FILE_HEADER_SIZE = len(FILE_MAGIC) + 1


class SaveStateError(ValueError):
    """Registro de save state mal formado (tamaño, bits reservados, cabecera)."""


def pack_state(state: TimerState) -> bytes:
    """
    Empaqueta un TimerState en el registro de 8 bytes.

    Los campos se enmascaran a su ancho, igual que hace el Timer al cargarlos.

    Args:
        state: Estado a empaquetar

    Returns:
        Registro de STATE_RECORD_SIZE bytes
    """
    word = (state.divider & 0xFFFF) << DIVIDER_SHIFT
    word |= (state.counter & 0xFF) << COUNTER_SHIFT
    word |= (state.modulo & 0xFF) << MODULO_SHIFT
    word |= (state.control & 0x07) << CONTROL_SHIFT
    for stage, marked in enumerate(state.overflow_pipeline[:PIPELINE_STAGES]):
        if marked:
            word |= 1 << (PIPELINE_SHIFT + stage)
    if state.prior_timer_clock:
        word |= 1 << PRIOR_TIMER_CLOCK_SHIFT
    if state.sound_clock_latch:
        word |= 1 << SOUND_CLOCK_LATCH_SHIFT
    return word.to_bytes(STATE_RECORD_SIZE, "little")


def unpack_state(blob: bytes) -> TimerState:
    """
    Desempaqueta un registro de 8 bytes en un TimerState.

    Args:
        blob: Registro empaquetado por pack_state

    Returns:
        TimerState con todos los campos cargados tal cual

    Raises:
        SaveStateError: Si el tamaño no es STATE_RECORD_SIZE o hay bits reservados activos
    """
    if len(blob) != STATE_RECORD_SIZE:
        raise SaveStateError(
            f"Registro de save state inválido: {len(blob)} bytes (se esperaban {STATE_RECORD_SIZE})"
        )
    word = int.from_bytes(blob, "little")
    if word & RESERVED_MASK:
        raise SaveStateError(f"Bits reservados activos en el save state: 0x{word & RESERVED_MASK:016X}")

    return TimerState(
        divider=(word >> DIVIDER_SHIFT) & 0xFFFF,
        counter=(word >> COUNTER_SHIFT) & 0xFF,
        modulo=(word >> MODULO_SHIFT) & 0xFF,
        control=(word >> CONTROL_SHIFT) & 0x07,
        overflow_pipeline=[
            (word >> (PIPELINE_SHIFT + stage)) & 1 == 1 for stage in range(PIPELINE_STAGES)
        ],
        prior_timer_clock=(word >> PRIOR_TIMER_CLOCK_SHIFT) & 1 == 1,
        sound_clock_latch=(word >> SOUND_CLOCK_LATCH_SHIFT) & 1 == 1,
    )


def save_state_file(path: str | Path, state: TimerState) -> None:
    """
    Guarda un save state del Timer en disco (cabecera + registro).

    Raises:
        IOError: Si hay un error al escribir el archivo
    """
    path = Path(path)
    path.write_bytes(FILE_MAGIC + bytes([FILE_VERSION]) + pack_state(state))
    logger.info(f"Save state del Timer guardado en {path}")


def load_state_file(path: str | Path) -> TimerState:
    """
    Carga un save state del Timer desde disco.

    Raises:
        FileNotFoundError: Si el archivo no existe
        SaveStateError: Si la cabecera o el registro no son válidos
    """
    path = Path(path)
    data = path.read_bytes()

    if data[: len(FILE_MAGIC)] != FILE_MAGIC:
        raise SaveStateError(f"{path}: no es un save state del Timer (magic incorrecto)")
    if len(data) < FILE_HEADER_SIZE:
        raise SaveStateError(f"{path}: cabecera truncada")
    version = data[len(FILE_MAGIC)]
    if version != FILE_VERSION:
        raise SaveStateError(f"{path}: versión de save state no soportada ({version})")

    state = unpack_state(data[FILE_HEADER_SIZE:])
    logger.info(f"Save state del Timer cargado desde {path}")
    return state
