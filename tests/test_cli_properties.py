"""
Tests for the command-line interface.

Only simulation mode is exercised, so no test reaches the registry.
"""

import json

import pytest

from vat_checker.cli import create_parser, main


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("VAT_CHECKER_VIES_BASE_URL", "VAT_CHECKER_LANG", "VAT_CHECKER_SIMULATION_MODE"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_dry_run_json_output(capsys) -> None:
    exit_code = main(["check", "de 123 456 789", "--dry-run", "--json"])

    body = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert body["vatId"] == "DE123456789"
    assert body["valid"] is True
    assert body["formatValid"] is True


def test_format_failure_exit_code(capsys) -> None:
    exit_code = main(["check", "XX999", "--dry-run", "--json"])

    body = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert body["formatValid"] is False


def test_text_output_in_english(capsys) -> None:
    exit_code = main(["check", "DE123456789", "--dry-run", "--language", "en"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Simulation mode enabled" in out
    assert "Checking VAT ID: DE123456789" in out
    assert "DE123456789: Valid" in out


def test_missing_config_file(tmp_path, capsys) -> None:
    exit_code = main(["check", "DE123456789", "--config", str(tmp_path / "missing.json")])
    assert exit_code == 2
    assert "Could not load config" in capsys.readouterr().err


def test_insecure_config_file(tmp_path, capsys) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"vies": {"base_url": "http://registry.example"}}), encoding="utf-8")
    assert main(["check", "DE123456789", "--config", str(path)]) == 2


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 0
    assert "vat-checker" in capsys.readouterr().out


def test_serve_defaults() -> None:
    args = create_parser().parse_args(["serve"])
    assert args.host == "127.0.0.1"
    assert args.port == 8000
