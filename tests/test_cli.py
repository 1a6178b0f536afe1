"""Tests for the command-line interface."""

import logging
import os

import pytest

import main


class TestCompactArguments:
    """Tests for compact argument handling."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = main.build_parser()

    def test_split_session_and_target(self):
        """Test positionals are told apart by shape."""
        assert main.split_compact_args(["abc.jsonl", "40%"], self.parser) == ("abc.jsonl", "40%")
        assert main.split_compact_args(["120000"], self.parser) == (None, "120000")
        assert main.split_compact_args([], self.parser) == (None, None)

    def test_two_targets_rejected(self):
        """Test only one target may be given."""
        with pytest.raises(SystemExit):
            main.split_compact_args(["40%", "50%"], self.parser)

    def test_describe_target(self):
        """Test target descriptions."""
        assert main.describe_target("40%", 120000, 200000) == (
            "Compress by 40% → Keep 60% (120,000 tokens)"
        )
        assert main.describe_target("150000", 150000, 200000) == (
            "Target: 150,000 tokens (compress by 25.0%)"
        )


class TestCommands:
    """Tests for running commands end to end."""

    def write_log(self, tmp_path, lines):
        path = tmp_path / "session.jsonl"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    def test_compact_preview(self, tmp_path, ten_turn_lines, capsys):
        """Test preview prints the plan and leaves the file alone."""
        path = self.write_log(tmp_path, ten_turn_lines)
        before = path.read_bytes()

        assert main.main(["compact", str(path), "70%", "--preview"]) == 0

        out = capsys.readouterr().out
        assert "[PREVIEW] Optimization Plan:" in out
        assert "Final tokens (projected): 60,000" in out
        assert path.read_bytes() == before

    def test_compact_apply(self, tmp_path, ten_turn_lines, capsys, caplog):
        """Test apply mode reports the backup once."""
        caplog.set_level(logging.DEBUG)
        path = self.write_log(tmp_path, ten_turn_lines)

        assert main.main(["compact", str(path), "60000"]) == 0

        out = capsys.readouterr().out
        assert out.count("[BACKUP] Created:") == 1
        assert not any("[BACKUP]" in record.getMessage() for record in caplog.records)
        assert "[DONE] Optimization complete" in out
        assert any(".backup." in name for name in os.listdir(tmp_path))

    def test_context(self, tmp_path, ten_turn_lines, capsys):
        """Test the usage grid is printed."""
        path = self.write_log(tmp_path, ten_turn_lines)

        assert main.main(["context", str(path)]) == 0
        assert "100,000/200,000 tokens (50%)" in capsys.readouterr().out

    def test_restore_without_backup(self, tmp_path, ten_turn_lines, capsys):
        """Test session errors exit with status 1."""
        path = self.write_log(tmp_path, ten_turn_lines)

        assert main.main(["restore", str(path)]) == 1
        assert "[ERROR]" in capsys.readouterr().out

    def test_invalid_target(self, tmp_path, ten_turn_lines):
        """Test a malformed target is a usage error."""
        path = self.write_log(tmp_path, ten_turn_lines)

        with pytest.raises(SystemExit):
            main.main(["compact", str(path), "150%"])

    @pytest.mark.parametrize("command", ["compact", "context"])
    def test_zero_ctx_limit_rejected(self, tmp_path, ten_turn_lines, command):
        """Test a zero context limit is a usage error, not the default."""
        path = self.write_log(tmp_path, ten_turn_lines)

        with pytest.raises(SystemExit) as exc:
            main.main([command, str(path), "--ctx-limit", "0"])
        assert exc.value.code == 2

    def test_invalid_utf8_log_compacts(self, tmp_path, ten_turn_lines, capsys):
        """Test a log with invalid UTF-8 bytes is compacted, not rejected."""
        path = tmp_path / "session.jsonl"
        path.write_bytes(
            ("\n".join(ten_turn_lines) + "\n").encode("utf-8") + b'{"type":"x","text":"\xff\xfe"}\n'
        )

        assert main.main(["compact", str(path), "70%", "--preview"]) == 0
        assert "[PREVIEW] Optimization Plan:" in capsys.readouterr().out
