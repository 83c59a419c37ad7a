"""Tests for the systems-run command line."""

import io
import json
import logging
from pathlib import Path

import pytest

from systems.cli import build_parser, build_run_spec, main, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def chain_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "chain.txt"


class TestRunCommand:
    """Test running specs from the command line."""

    def test_table(self, chain_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(chain_path), "-r", "2"]) == 0
        out = capsys.readouterr().out
        assert out == "\ta\tb\tc\n0\t20\t0\t0\n1\t15\t5\t0\n2\t10\t7\t3\n"

    def test_csv(self, chain_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(chain_path), "--rounds", "1", "--csv"]) == 0
        assert capsys.readouterr().out == ",a,b,c\n0,20,0,0\n1,15,5,0\n"

    def test_json(self, chain_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(chain_path), "-r", "1", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["rounds"] == 1
        assert data["snapshots"][1] == {"a": 15, "b": 5, "c": 0}

    def test_stdin(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO("a(4) > b @ 4\n"))
        assert main(["-r", "1", "--csv"]) == 0
        assert capsys.readouterr().out.splitlines()[-1] == "1,0,4"

    def test_default_rounds(self, chain_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(chain_path)]) == 0
        assert len(capsys.readouterr().out.splitlines()) == 12


class TestErrors:
    """Test error reporting."""

    def test_parse_error(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        spec = tmp_path / "bad.txt"
        spec.write_text("a(10) > b @ Fake(2)\n")
        assert main([str(spec)]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.startswith("error: line 1 has invalid flow type")
        assert len(captured.err.splitlines()) == 1

    def test_cycle(self, fixtures_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(fixtures_dir / "circular.txt")]) == 1
        assert "found cycle" in capsys.readouterr().err

    def test_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(tmp_path / "nope.txt")]) == 1
        assert capsys.readouterr().err.startswith("error:")

    def test_bad_rounds(self, chain_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([str(chain_path), "-r", "-3"])
        assert exc_info.value.code == 2


class TestCheckCommand:
    """Test --check."""

    def test_clean(self, chain_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(chain_path), "--check"]) == 0
        assert capsys.readouterr().out == "No issues found.\n"

    def test_warning_only(self, fixtures_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(fixtures_dir / "illegal_maximum.txt"), "--check"]) == 0
        assert capsys.readouterr().out.startswith("warning [c]:")

    def test_errors(self, fixtures_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(fixtures_dir / "circular.txt"), "--check", "--json"]) == 1
        issues = json.loads(capsys.readouterr().out)
        assert {issue["variable"] for issue in issues} == {"a", "b"}


class TestConfiguration:
    def test_run_spec(self) -> None:
        args = build_parser().parse_args(["spec.txt", "-r", "4", "--csv"])
        spec = build_run_spec(args)
        assert (spec.rounds, spec.sep, spec.pad, spec.output) == (4, ",", False, "table")

    def test_setup_logging(self) -> None:
        setup_logging(verbose=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
