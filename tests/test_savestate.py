"""
Tests para los save states del Timer.

Valida:
- Layout estable del registro empaquetado de 8 bytes
- Rechazo de registros mal formados (tamaño y bits reservados)
- Archivos de save state (cabecera + registro)
- Restaurar a mitad de ejecución produce exactamente la misma traza
"""

import pytest

from dmg_timer.io.timer import PORT_TIMA, PORT_TMA, RegisterRequest, Timer
from dmg_timer.io.timer_state import TimerState
from dmg_timer.savestate import (
    FILE_MAGIC,
    STATE_RECORD_SIZE,
    SaveStateError,
    load_state_file,
    pack_state,
    save_state_file,
    unpack_state,
)
from dmg_timer.trace import TimerTrace
from tests.helpers_timer import overflow_timer, run


class TestStateRecord:
    """Tests para pack_state / unpack_state."""

    def test_record_layout(self) -> None:
        state = TimerState(
            divider=0x1234,
            counter=0xAB,
            modulo=0xCD,
            control=0x05,
            overflow_pipeline=[True, False, False, False, True],
            prior_timer_clock=True,
            sound_clock_latch=False,
        )
        blob = pack_state(state)
        assert len(blob) == STATE_RECORD_SIZE == 8
        assert blob == bytes([0x34, 0x12, 0xAB, 0xCD, 0x8D, 0x01, 0x00, 0x00])

    def test_sound_latch_bit(self) -> None:
        blob = pack_state(TimerState(divider=0, sound_clock_latch=True))
        assert blob == bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x02, 0x00, 0x00])

    def test_unpack_restores_every_field(self) -> None:
        timer = overflow_timer()
        run(timer, 2)
        state = timer.snapshot()
        assert unpack_state(pack_state(state)) == state

    @pytest.mark.parametrize("size", [0, 7, 9, 16])
    def test_wrong_size_rejected(self, size: int) -> None:
        with pytest.raises(SaveStateError):
            unpack_state(bytes(size))

    @pytest.mark.parametrize("reserved_bit", [42, 50, 63])
    def test_reserved_bits_rejected(self, reserved_bit: int) -> None:
        blob = (1 << reserved_bit).to_bytes(8, "little")
        with pytest.raises(SaveStateError):
            unpack_state(blob)

    def test_save_state_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            unpack_state(b"\x00")


class TestStateFile:
    """Tests para save_state_file / load_state_file."""

    def test_file_round_trip(self, tmp_path) -> None:
        path = tmp_path / "timer.state"
        state = TimerState(divider=0xBEEF, counter=0x01, modulo=0x02, control=0x07)
        save_state_file(path, state)

        data = path.read_bytes()
        assert data.startswith(FILE_MAGIC)
        assert len(data) == len(FILE_MAGIC) + 1 + STATE_RECORD_SIZE
        assert load_state_file(path) == state

    def test_bad_magic_rejected(self, tmp_path) -> None:
        path = tmp_path / "bad.state"
        path.write_bytes(b"NOTATMR\x01" + bytes(8))
        with pytest.raises(SaveStateError):
            load_state_file(path)

    def test_unsupported_version_rejected(self, tmp_path) -> None:
        path = tmp_path / "v2.state"
        path.write_bytes(FILE_MAGIC + b"\x02" + bytes(8))
        with pytest.raises(SaveStateError):
            load_state_file(path)

    def test_truncated_file_rejected(self, tmp_path) -> None:
        path = tmp_path / "short.state"
        path.write_bytes(FILE_MAGIC + b"\x01" + bytes(3))
        with pytest.raises(SaveStateError):
            load_state_file(path)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_state_file(tmp_path / "missing.state")


class TestRestoreTrace:
    """Restaurar a mitad de ejecución no se puede distinguir de no haber parado."""

    @staticmethod
    def _requests(index: int) -> RegisterRequest | None:
        # Escrituras que colisionan con la ventana del overflow
        if index == 30:
            return RegisterRequest(PORT_TMA, write=True, data=0xF8)
        if index == 70:
            return RegisterRequest(PORT_TIMA, write=True, data=0xFF)
        return None

    def test_restore_mid_overflow_produces_identical_trace(self) -> None:
        original = overflow_timer(modulo=0xFE)
        run(original, 2)  # El pipeline lleva la marca del overflow
        blob = pack_state(original.snapshot())

        restored = Timer()
        restored.restore(unpack_state(blob))

        expected = TimerTrace().record(original, 400, self._requests)
        actual = TimerTrace().record(restored, 400, self._requests)
        assert actual.equals(expected)
        assert len(expected.interrupt_ticks()) > 0

    def test_reset_from_restored_state(self) -> None:
        original = overflow_timer()
        run(original, 1)
        state = unpack_state(pack_state(original.snapshot()))

        restored = Timer(initial_state=state)
        assert run(restored, 20) == run(original, 20)
