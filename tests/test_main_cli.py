"""
Tests para el punto de entrada main.py.
"""

import pytest

import main
from dmg_timer.savestate import load_state_file


class TestMainCLI:
    """Tests para la línea de comandos."""

    def test_overflow_summary(self, capsys) -> None:
        """DIV=0x000F con TAC=0x05: overflow en el tick 1 e interrupción en el tick 5."""
        main.main(["--ticks", "10", "--div", "0x0F", "--tima", "0xFF", "--tma", "0x12", "--tac", "0x05"])
        out = capsys.readouterr().out

        assert "Ticks ejecutados: 10" in out
        assert "TIMA=0x12" in out
        assert "Interrupciones: 1" in out
        assert "Ticks: 5" in out

    def test_save_and_load(self, tmp_path, capsys) -> None:
        path = tmp_path / "timer.state"
        main.main(["--ticks", "100", "--div", "0", "--save", str(path)])
        assert load_state_file(path).divider == 100

        main.main(["--ticks", "28", "--load", str(path)])
        assert "interno 0x0080" in capsys.readouterr().out

    def test_negative_ticks_rejected(self, capsys) -> None:
        """argparse rechaza --ticks negativo con código 2."""
        with pytest.raises(SystemExit) as excinfo:
            main.main(["--ticks", "-1"])
        assert excinfo.value.code == 2
        assert "no puede ser negativo" in capsys.readouterr().err

    def test_missing_state_file_exits(self, tmp_path, capsys) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main.main(["--load", str(tmp_path / "missing.state")])
        assert excinfo.value.code == 1
        assert "Error de save state" in capsys.readouterr().out
