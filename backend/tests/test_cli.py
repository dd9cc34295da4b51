"""
Command Line Tests.

Tests for converting algorithm files from the command line.
"""
import io
import json

from quconvert import cli


class TestCli:
    """Tests for the quconvert command."""

    def test_usage_without_arguments(self, capsys):
        """Test usage is printed and the exit code is 1."""
        assert cli.main([]) == 1
        assert "Usage" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        """Test a missing input file fails."""
        assert cli.main([str(tmp_path / "missing.txt")]) == 1

    def test_convert_file(self, tmp_path):
        """Test output JSON and log are written next to the input."""
        source = tmp_path / "exercise.txt"
        source.write_text("$x=rint(5);$p=2*pi;", encoding="utf-8")

        assert cli.main([str(source)]) == 0

        payload = json.loads((tmp_path / "exercise_converted.json").read_text(encoding="utf-8"))
        assert payload["results"][0]["definition"] == "rand(0, 4)"
        assert payload["statistics"]["fallback"] == 1
        assert "summary" in payload

        log = (tmp_path / "exercise_log.md").read_text(encoding="utf-8")
        assert log.startswith("# Conversion Log")
        assert "| `$x` | `$a` | ok |" in log
        assert "## Issues" in log

    def test_stdin(self, tmp_path, monkeypatch):
        """Test '-' reads the algorithm from stdin."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("sys.stdin", io.StringIO("$a=max(1,2);"))

        assert cli.main(["-"]) == 0
        payload = json.loads((tmp_path / "stdin_converted.json").read_text(encoding="utf-8"))
        assert payload["results"][0]["definition"] == "sw_max([1, 2])"

    def test_fatal_error_writes_log(self, tmp_path):
        """Test a fatal conversion error still writes the log."""
        source = tmp_path / "big.txt"
        source.write_text("".join(f"$v{n}={n};" for n in range(126)), encoding="utf-8")

        assert cli.main([str(source)]) == 1
        log = (tmp_path / "big_log.md").read_text(encoding="utf-8")
        assert "## Errors" in log
        assert not (tmp_path / "big_converted.json").exists()


class TestConversionLog:
    """Tests for the markdown log."""

    def test_log_without_conversion(self):
        """Test a log with only errors."""
        log = cli.ConversionLog("input.txt")
        log.add_error("boom")
        text = log.generate_markdown()
        assert "| Input | `input.txt` |" in text
        assert "- `boom`" in text
        assert "## Variables" not in text
