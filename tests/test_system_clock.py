"""
Tests para SystemClock: enable del Timer, conversión M→T e interrupciones.
"""

import pytest

from dmg_timer.io.timer import Timer
from dmg_timer.system_clock import SystemClock
from tests.helpers_timer import make_timer, overflow_timer


class TestSystemClock:
    """Tests para la entrega de ticks al Timer."""

    def test_clock_ratio_gates_enable(self) -> None:
        """Con clock_ratio=4 solo uno de cada 4 ticks físicos cuenta."""
        timer = make_timer(divider=0x0000)
        clock = SystemClock(timer, clock_ratio=4)

        assert clock.run_physical(400) == 100
        assert timer.divider == 100
        assert clock.get_total_ticks() == 100

    def test_partial_ratio_carries_phase(self) -> None:
        timer = make_timer(divider=0x0000)
        clock = SystemClock(timer, clock_ratio=3)
        clock.run_physical(2)
        assert timer.divider == 0
        clock.run_physical(1)
        assert timer.divider == 1

    def test_m_cycles_convert_to_t_cycles(self) -> None:
        timer = make_timer(divider=0x0000)
        clock = SystemClock(timer)
        assert clock.tick_m_cycles(10) == 40
        assert timer.divider == 40

    def test_m_cycles_with_fast_physical_clock(self) -> None:
        timer = make_timer(divider=0x0000)
        clock = SystemClock(timer, clock_ratio=2)
        assert clock.tick_m_cycles(64) == 256
        assert timer.read_div() == 1

    def test_interrupt_callback_called_once_per_overflow(self) -> None:
        requests = []
        timer = overflow_timer(modulo=0xFF)
        clock = SystemClock(timer, interrupt_callback=lambda: requests.append(True))

        clock.run_physical(64)
        assert len(requests) == 4
        assert clock.get_interrupt_count() == 4

    def test_interrupt_level_held_across_disabled_ticks(self) -> None:
        """La línea sigue alta durante los ticks sin enable: cuenta como una sola interrupción."""
        timer = overflow_timer()
        clock = SystemClock(timer, clock_ratio=8)
        clock.run_physical(8 * 10)
        assert clock.get_interrupt_count() == 1

    def test_audio_edges_counted(self) -> None:
        clock = SystemClock(make_timer(divider=0x0000))
        clock.run_physical(256)
        assert clock.get_audio_edge_count() == 7

    def test_reset_counters(self) -> None:
        clock = SystemClock(overflow_timer())
        clock.run_physical(10)
        clock.reset_counters()
        assert clock.get_total_ticks() == 0
        assert clock.get_interrupt_count() == 0
        assert clock.get_audio_edge_count() == 0

    def test_set_timer(self) -> None:
        clock = SystemClock(None)
        timer = Timer()
        clock.set_timer(timer)
        clock.run_physical(5)
        assert timer.divider == 0xABCC + 5

    def test_missing_timer_raises(self) -> None:
        clock = SystemClock(None)
        with pytest.raises(RuntimeError):
            clock.run_physical(1)

    @pytest.mark.parametrize("ratio", [0, -1])
    def test_invalid_ratio_raises(self, ratio: int) -> None:
        with pytest.raises(ValueError):
            SystemClock(Timer(), clock_ratio=ratio)
