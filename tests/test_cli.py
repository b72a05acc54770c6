"""Tests for CLI subcommands."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

from envfile.__main__ import (
    _build_options,
    _create_parser,
    _print_json,
    _print_table,
    main,
)
from envfile.exceptions import ConfigValidationError, error_stats


@pytest.fixture(autouse=True)
def reset_cli_state():
    """Keep error stats and CLI log handlers isolated between tests."""
    error_stats.reset()
    yield
    error_stats.reset()
    # main() attaches a handler to the captured stderr of the finished test
    package_logger = logging.getLogger("envfile")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run each command from an empty directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestArgumentParser:
    """Test argument parser configuration."""

    def test_parser_has_subcommands(self) -> None:
        """--help exits after listing subcommands."""
        parser = _create_parser()

        with pytest.raises(SystemExit):
            parser.parse_args(["--help"])

    def test_global_defaults(self) -> None:
        """Global flags default to quiet console logging."""
        args = _create_parser().parse_args(["parse", ".env"])
        assert args.debug is False
        assert args.log_level == "WARNING"
        assert args.log_file is False

    def test_parse_subcommand(self) -> None:
        """Test parse subcommand parsing."""
        args = _create_parser().parse_args(["parse", "a.env", "--format", "json"])
        assert args.command_name == "parse"
        assert args.file == "a.env"
        assert args.format == "json"

    def test_load_subcommand_defaults(self) -> None:
        """Unset load flags are None so options file values survive."""
        args = _create_parser().parse_args(["load"])
        assert args.command_name == "load"
        assert args.path is None
        assert args.defaults is None
        assert args.example is None
        assert args.safe is False
        assert args.no_defaults is False
        assert args.format == "table"

    def test_check_has_no_safe_flag(self) -> None:
        """check always runs in safe mode."""
        with pytest.raises(SystemExit):
            _create_parser().parse_args(["check", "--safe"])

    def test_run_collects_command(self) -> None:
        """Everything after the options is the command."""
        args = _create_parser().parse_args(["run", "--safe", "--", "echo", "-n", "hi"])
        assert args.safe is True
        assert [part for part in args.command if part != "--"] == ["echo", "-n", "hi"]

    def test_invalid_format(self) -> None:
        """Unknown formats are rejected."""
        with pytest.raises(SystemExit):
            _create_parser().parse_args(["parse", ".env", "--format", "yaml"])


class TestBuildOptions:
    """Test combining options files, flags and forced values."""

    def test_flags_override_defaults(self) -> None:
        args = _create_parser().parse_args(["load", "--path", "x.env", "--allow-empty-values"])
        options = _build_options(args)
        assert options.path == "x.env"
        assert options.allow_empty_values is True
        assert options.defaults == ".env.defaults"

    def test_no_defaults_clears_defaults_path(self) -> None:
        args = _create_parser().parse_args(["load", "--no-defaults"])
        assert _build_options(args).defaults == ""

    def test_options_file_then_flags(self, tmp_path: Path) -> None:
        """Flags win over the options file."""
        options_file = tmp_path / "options.json"
        options_file.write_text(json.dumps({"path": "file.env", "example": "file.example"}))

        args = _create_parser().parse_args(
            ["load", "--options", str(options_file), "--path", "flag.env"]
        )
        options = _build_options(args)
        assert options.path == "flag.env"
        assert options.example == "file.example"

    def test_forced_values_win(self) -> None:
        args = _create_parser().parse_args(["load"])
        options = _build_options(args, export=True, safe=True)
        assert options.export is True
        assert options.safe is True

    def test_unknown_forced_value(self) -> None:
        args = _create_parser().parse_args(["load"])
        with pytest.raises(ConfigValidationError):
            _build_options(args, verbose=True)


class TestOutputFormatting:
    """Test output formatting helpers."""

    def test_print_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test JSON output."""
        _print_json({"key": "value", "number": 42})
        captured = capsys.readouterr()
        assert json.loads(captured.out) == {"key": "value", "number": 42}

    def test_print_table_empty(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test table output with no rows."""
        _print_table([], ["Key", "Value"])
        assert "No results" in capsys.readouterr().out

    def test_print_table_keeps_markup_literal(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Values are not interpreted as rich markup."""
        _print_table([{"Key": "A", "Value": "[bold]x[/bold]"}], ["Key", "Value"])
        out = capsys.readouterr().out
        assert "Key" in out
        assert "[bold]x[/bold]" in out


class TestParseCommand:
    """Test the parse command."""

    def test_parse_json(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (project / "a.env").write_text("A=1\nB='${A}'\nC=\"line\\n\"\n")

        assert main(["parse", "a.env", "--format", "json"]) == 0

        assert json.loads(capsys.readouterr().out) == {"A": "1", "B": "${A}", "C": "line\n"}

    def test_parse_missing_file_is_empty(
        self, project: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["parse", "absent.env", "--format", "json"]) == 0
        assert json.loads(capsys.readouterr().out) == {}

    def test_parse_cycle_fails(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (project / "a.env").write_text("ENVFILE_CLI_A=$ENVFILE_CLI_B\nENVFILE_CLI_B=$ENVFILE_CLI_A\n")

        assert main(["parse", "a.env"]) == 1
        assert "Cyclic variable reference" in capsys.readouterr().err

    def test_parse_entries_json(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """--entries lists raw assignments with line numbers."""
        (project / "a.env").write_text("A=1\n\nB='${A}'\n")

        assert main(["parse", "a.env", "--entries", "--format", "json"]) == 0

        assert json.loads(capsys.readouterr().out) == [
            {"key": "A", "quote_kind": "unquoted", "raw_value": "1", "line": 1},
            {"key": "B", "quote_kind": "single", "raw_value": "${A}", "line": 3},
        ]

    def test_parse_entries_table(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (project / "a.env").write_text("A=\"x\"\n")

        assert main(["parse", "a.env", "--entries"]) == 0

        out = capsys.readouterr().out
        assert "Line" in out
        assert "double" in out

    def test_parse_entries_rejects_dotenv(
        self, project: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["parse", "a.env", "--entries", "--format", "dotenv"]) == 1
        assert "--entries" in capsys.readouterr().err


class TestLoadCommand:
    """Test the load command."""

    def test_load_fills_defaults(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (project / ".env").write_text("ENVFILE_CLI_HOST=example.org\n")
        (project / ".env.defaults").write_text("ENVFILE_CLI_HOST=localhost\nENVFILE_CLI_PORT=8000\n")

        assert main(["load", "--format", "json"]) == 0

        assert json.loads(capsys.readouterr().out) == {
            "ENVFILE_CLI_HOST": "example.org",
            "ENVFILE_CLI_PORT": "8000",
        }

    def test_load_dotenv_format_round_trips(
        self, project: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (project / ".env").write_text("A=plain\nB='with $dollar'\n")

        assert main(["load", "--format", "dotenv", "--no-defaults"]) == 0

        assert capsys.readouterr().out == "A=plain\nB='with $dollar'\n"

    def test_load_safe_reports_missing(
        self, project: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("ENVFILE_CLI_NEEDED", raising=False)
        (project / ".env.example").write_text("ENVFILE_CLI_NEEDED=\n")

        assert main(["load", "--safe"]) == 1
        assert "ENVFILE_CLI_NEEDED" in capsys.readouterr().err

    def test_load_bad_options_file(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (project / "options.json").write_text("{not json")

        assert main(["load", "--options", "options.json"]) == 1
        assert "Invalid JSON" in capsys.readouterr().err


class TestCheckCommand:
    """Test the check command."""

    def test_check_json_lists_missing(
        self, project: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("ENVFILE_CLI_FIRST", raising=False)
        monkeypatch.delenv("ENVFILE_CLI_SECOND", raising=False)
        (project / ".env").write_text("ENVFILE_CLI_SET=1\n")
        (project / ".env.example").write_text(
            "ENVFILE_CLI_FIRST=\nENVFILE_CLI_SET=\nENVFILE_CLI_SECOND=\n"
        )

        assert main(["check", "--json"]) == 1

        assert json.loads(capsys.readouterr().out) == {
            "success": False,
            "missing": ["ENVFILE_CLI_FIRST", "ENVFILE_CLI_SECOND"],
        }

    def test_check_allow_empty_values(
        self, project: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (project / ".env").write_text("ENVFILE_CLI_EMPTY=\n")
        (project / ".env.example").write_text("ENVFILE_CLI_EMPTY=\n")

        assert main(["check"]) == 1
        assert main(["check", "--allow-empty-values"]) == 0
        assert "OK" in capsys.readouterr().out

    def test_check_success_json(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (project / ".env").write_text("ENVFILE_CLI_OK=1\n")
        (project / ".env.example").write_text("ENVFILE_CLI_OK=\n")

        assert main(["check", "--json"]) == 0

        assert json.loads(capsys.readouterr().out) == {"success": True, "missing": [], "keys": 1}


class TestRunCommand:
    """Test the run command."""

    def test_run_exports_to_child(
        self, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Registered with monkeypatch so the exported value is removed afterwards
        monkeypatch.setenv("ENVFILE_CLI_RUN", "placeholder")
        monkeypatch.delenv("ENVFILE_CLI_RUN")
        (project / ".env").write_text("ENVFILE_CLI_RUN=hello\n")

        code = main(
            [
                "run",
                "--",
                sys.executable,
                "-c",
                "import os, sys; sys.exit(0 if os.environ.get('ENVFILE_CLI_RUN') == 'hello' else 3)",
            ]
        )

        assert code == 0

    def test_run_returns_child_exit_code(self, project: Path) -> None:
        assert main(["run", "--", sys.executable, "-c", "import sys; sys.exit(7)"]) == 7

    def test_run_without_command(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["run"]) == 1
        assert "No command given" in capsys.readouterr().err

    def test_run_missing_program(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["run", "--", "envfile-test-no-such-program"]) == 1
        assert "Failed to run" in capsys.readouterr().err


class TestMain:
    """Test the entry point."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()
