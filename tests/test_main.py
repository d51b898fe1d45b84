import sys
import os
import io
import logging
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import main
from errors import AmountOutOfRange
from models import AccountSnapshot
from payments_engine import PaymentsEngine


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["payments-engine", *args])
    return main.main()


class TestFormatAmount:
    @pytest.mark.parametrize("value,expected", [
        (Decimal("1.5"), "1.5000"),
        (Decimal("0"), "0.0000"),
        (Decimal("-30"), "-30.0000"),
        (Decimal("100000000000000000000000000"), "100000000000000000000000000.0000"),
    ])
    def test_four_decimal_places(self, value, expected):
        assert main.format_amount(value) == expected

    def test_refuses_to_round(self):
        with pytest.raises(AmountOutOfRange):
            main.format_amount(Decimal("1.23456"))


class TestRenderAccounts:
    def test_rows_sorted_by_client(self):
        accounts = {
            2: AccountSnapshot(2, Decimal("2"), Decimal("0"), Decimal("2"), False),
            1: AccountSnapshot(1, Decimal("0"), Decimal("5"), Decimal("5"), True),
        }
        stream = io.StringIO()

        main.write_rows(main.render_accounts(accounts), stream)

        assert stream.getvalue() == (
            "client,available,held,total,locked\n"
            "1,0.0000,5.0000,5.0000,true\n"
            "2,2.0000,0.0000,2.0000,false\n"
        )


class TestMain:
    def test_success(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 1, 1, 1.0",
            "deposit, 2, 2, 2.0",
            "deposit, 1, 3, 2.0",
            "withdrawal, 1, 4, 1.5",
            "dispute, 2, 2,",
        ]))

        exit_code = run_cli(monkeypatch, str(csv_file))

        assert exit_code == 0
        assert capsys.readouterr().out == (
            "client,available,held,total,locked\n"
            "1,1.5000,0.0000,1.5000,false\n"
            "2,0.0000,2.0000,2.0000,false\n"
        )

    def test_failure_writes_no_output(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 1, 7, 1.0",
            "deposit, 1, 7, 1.0",
        ]))

        exit_code = run_cli(monkeypatch, str(csv_file))

        captured = capsys.readouterr()
        assert exit_code == 1
        assert captured.out == ""
        assert captured.err.strip().splitlines()[-1] == "Error: Duplicate transaction: 7"

    def test_missing_file(self, tmp_path, monkeypatch, capsys):
        exit_code = run_cli(monkeypatch, str(tmp_path / "missing.csv"))

        captured = capsys.readouterr()
        assert exit_code == 1
        assert captured.out == ""
        assert "Error: Unable to read" in captured.err

    def test_large_balance_printed_in_full(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 1, 1, 100000000000000000000000000",
        ]))

        exit_code = run_cli(monkeypatch, str(csv_file))

        assert exit_code == 0
        assert capsys.readouterr().out == (
            "client,available,held,total,locked\n"
            "1,100000000000000000000000000.0000,0.0000,100000000000000000000000000.0000,false\n"
        )

    def test_sub_precision_amount_fails(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 1, 1, 0.00005",
        ]))

        exit_code = run_cli(monkeypatch, str(csv_file))

        captured = capsys.readouterr()
        assert exit_code == 1
        assert captured.out == ""
        assert "more than 4 decimal places" in captured.err

    def test_non_utf8_input_fails(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_bytes(b"type,client,tx,amount\ndeposit,1,1,1.0\xff\xfe\n")

        exit_code = run_cli(monkeypatch, str(csv_file))

        captured = capsys.readouterr()
        assert exit_code == 1
        assert captured.out == ""
        assert captured.err.strip().splitlines()[-1].startswith("Error: Unable to parse csv")

    def test_render_failure_writes_no_output(self, tmp_path, monkeypatch, capsys):
        accounts = {
            1: AccountSnapshot(1, Decimal("1"), Decimal("0"), Decimal("1"), False),
            2: AccountSnapshot(2, Decimal("1e70"), Decimal("0"), Decimal("1e70"), False),
        }
        monkeypatch.setattr(PaymentsEngine, "process_file", lambda self, filepath: accounts)

        exit_code = run_cli(monkeypatch, str(tmp_path / "unused.csv"))

        captured = capsys.readouterr()
        assert exit_code == 1
        assert captured.out == ""
        assert captured.err.strip().splitlines()[-1].startswith("Error: Amount exceeds")

    def test_usage(self, monkeypatch, capsys):
        exit_code = run_cli(monkeypatch)

        assert exit_code == 1
        assert "Usage" in capsys.readouterr().err


class TestParseLogLevel:
    def test_default_level(self):
        assert main.parse_log_level(None) == logging.WARNING
        assert main.parse_log_level("") == logging.WARNING

    @pytest.mark.parametrize("value,expected", [
        ("debug", logging.DEBUG),
        (" INFO ", logging.INFO),
        ("40", logging.ERROR),
        ("nonsense", logging.WARNING),
        ("basicConfig", logging.WARNING),
    ])
    def test_named_and_numeric_levels(self, value, expected):
        assert main.parse_log_level(value) == expected
