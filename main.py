#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
dmg-timer - Timer de la Game Boy con precisión de T-Cycle
Punto de entrada: ejecuta el Timer N ticks y muestra un resumen de la traza
"""

import argparse
import logging
import sys

from dmg_timer.io.timer import Timer
from dmg_timer.io.timer_state import DIV_RESET_VALUE, TimerState
from dmg_timer.savestate import SaveStateError, load_state_file, save_state_file
from dmg_timer.trace import TimerTrace

# Configurar logging básico
# ERROR: Solo errores fatales
logging.basicConfig(
    level=logging.ERROR,
    format="%(message)s",
    force=True,  # Forzar reconfiguración
)


def _byte(text: str) -> int:
    """Convierte '0x12', '18' o '0b10010' a un entero."""
    return int(text, 0)


def _tick_count(text: str) -> int:
    """Número de ticks (entero >= 0)."""
    value = int(text, 0)
    if value < 0:
        raise argparse.ArgumentTypeError(f"el número de ticks no puede ser negativo ({value})")
    return value


def main(argv: list[str] | None = None) -> None:
    """Función principal"""
    parser = argparse.ArgumentParser(
        description="dmg-timer - Traza del Timer de la Game Boy (DIV/TIMA/TMA/TAC)"
    )
    parser.add_argument("--ticks", type=_tick_count, default=1024, help="Número de T-Cycles a ejecutar")
    parser.add_argument("--div", type=_byte, default=DIV_RESET_VALUE, help="Valor inicial del contador interno (16 bits)")
    parser.add_argument("--tima", type=_byte, default=0, help="Valor inicial de TIMA")
    parser.add_argument("--tma", type=_byte, default=0, help="Valor inicial de TMA")
    parser.add_argument("--tac", type=_byte, default=0, help="Valor inicial de TAC (bit 2 = enable)")
    parser.add_argument(
        "--double-speed",
        action="store_true",
        help="Modo doble velocidad de CGB (el reloj de audio usa el bit 5 de DIV)",
    )
    parser.add_argument("--load", type=str, help="Cargar el estado inicial desde un save state")
    parser.add_argument("--save", type=str, help="Guardar el estado final en un save state")
    parser.add_argument("--debug", action="store_true", help="Activar trazas detalladas del Timer")
    parser.add_argument("--verbose", action="store_true", help="Mostrar mensajes INFO")

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        if args.load:
            state = load_state_file(args.load)
        else:
            state = TimerState(
                divider=args.div & 0xFFFF,
                counter=args.tima & 0xFF,
                modulo=args.tma & 0xFF,
                control=args.tac & 0x07,
            )

        timer = Timer(double_speed=args.double_speed, initial_state=state)
        trace = TimerTrace().record(timer, args.ticks)

        if args.save:
            save_state_file(args.save, timer.snapshot())
    except (SaveStateError, OSError) as e:
        print(f"Error de save state: {e}")
        sys.exit(1)

    summary = trace.summary()
    interrupts = summary["interrupts"]

    print("dmg-timer - Traza del Timer")
    print("=" * 50)
    print(f"Ticks ejecutados: {summary['ticks']}")
    print(
        f"DIV=0x{timer.read_div():02X} (interno 0x{timer.divider:04X})  "
        f"TIMA=0x{timer.read_tima():02X}  TMA=0x{timer.read_tma():02X}  TAC=0x{timer.read_tac():02X}"
    )
    print(f"Interrupciones: {len(interrupts)}")
    if interrupts:
        shown = ", ".join(str(tick) for tick in interrupts[:10])
        suffix = ", ..." if len(interrupts) > 10 else ""
        print(f"   Ticks: {shown}{suffix}")
    print(f"Pulsos de audio: {summary['audio_edges']}")


if __name__ == "__main__":
    main()
