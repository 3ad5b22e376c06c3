import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import config
import main


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for name in ("PAYMENTS_LOG_LEVEL", "PAYMENTS_NUM_WORKERS", "PAYMENTS_OUTPUT_PRECISION"):
        monkeypatch.delenv(name, raising=False)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


class TestMain:
    def test_prints_sorted_snapshot(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "transactions.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 2, 1, 100",
            "deposit, 1, 2, 20",
            "withdrawal, 2, 3, 100",
            "deposit, 2, 4, 5",
            "dispute, 2, 4,",
            "chargeback, 2, 4,",
            "deposit, 1, 5, 30",
        ]))
        monkeypatch.setattr(sys, "argv", ["main.py", str(csv_file)])

        main.main()

        assert capsys.readouterr().out == (
            "client,available,held,total,locked\n"
            "1,50.0000,0.0000,50.0000,false\n"
            "2,0.0000,0.0000,0.0000,true\n"
        )

    def test_partitioned_workers_from_environment(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "transactions.csv"
        csv_file.write_text("type,client,tx,amount\ndeposit,1,1,1.5\ndeposit,2,2,2\n")
        monkeypatch.setenv("PAYMENTS_NUM_WORKERS", "4")
        monkeypatch.setattr(sys, "argv", ["main.py", str(csv_file)])

        main.main()

        assert capsys.readouterr().out.splitlines()[1:] == [
            "1,1.5000,0.0000,1.5000,false",
            "2,2.0000,0.0000,2.0000,false",
        ]

    def test_usage_error(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["main.py"])

        with pytest.raises(SystemExit) as exc_info:
            main.main()

        assert exc_info.value.code == 1
        assert "Usage" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["main.py", str(tmp_path / "missing.csv")])

        with pytest.raises(SystemExit) as exc_info:
            main.main()

        assert exc_info.value.code == 1

    def test_largest_output_precision(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "transactions.csv"
        csv_file.write_text("type,client,tx,amount\ndeposit,1,1,12345.5\n")
        monkeypatch.setenv("PAYMENTS_OUTPUT_PRECISION", "28")
        monkeypatch.setattr(sys, "argv", ["main.py", str(csv_file)])

        main.main()

        amount = "12345.5" + "0" * 27
        assert capsys.readouterr().out.splitlines()[1] == f"1,{amount},0.{'0' * 28},{amount},false"

    def test_invalid_log_level(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("PAYMENTS_LOG_LEVEL", "LOUD")
        monkeypatch.setattr(sys, "argv", ["main.py", str(tmp_path / "transactions.csv")])

        with pytest.raises(SystemExit) as exc_info:
            main.main()

        assert exc_info.value.code == 1
        assert "Invalid configuration" in capsys.readouterr().err
