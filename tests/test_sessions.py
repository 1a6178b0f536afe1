"""Tests for session discovery, file access and backups."""

import os
import stat

import pytest

from sessions.errors import BackupNotFoundError, SessionNotFoundError
from sessions.store import SessionStore


OLD_ID = "11111111-2222-3333-4444-555555555555"
NEW_ID = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"


class TestSessionStore:
    """Tests for SessionStore."""

    @pytest.fixture(autouse=True)
    def setup_store(self, tmp_path, session_lines):
        """Create a project with two sessions, the second one newer."""
        self.store = SessionStore(projects_dir=str(tmp_path), project_path="/home/dev/app")
        self.project_dir = tmp_path / "-home-dev-app"
        self.project_dir.mkdir()

        self.old_path = self.project_dir / f"{OLD_ID}.jsonl"
        self.new_path = self.project_dir / f"{NEW_ID}.jsonl"
        self.old_path.write_text(
            "\n".join(session_lines([("hello", 1000)])) + "\n", encoding="utf-8"
        )
        self.new_path.write_text(
            "\n".join(session_lines([("one", 40000), ("two", 130000), ("three", 170000)])) + "\n",
            encoding="utf-8"
        )
        os.utime(self.old_path, (1_700_000_000, 1_700_000_000))
        os.utime(self.new_path, (1_700_000_500, 1_700_000_500))

    def test_project_dir(self):
        """Test project paths map to dashed folder names."""
        assert self.store.project_dir == str(self.project_dir)

    def test_session_files_newest_first(self):
        """Test logs are ordered by modification time."""
        assert self.store.session_files() == [str(self.new_path), str(self.old_path)]

    def test_missing_project_dir(self, tmp_path):
        """Test an unknown project raises."""
        store = SessionStore(projects_dir=str(tmp_path), project_path="/nowhere")

        with pytest.raises(SessionNotFoundError):
            store.session_files()

    def test_empty_project_dir(self, tmp_path):
        """Test a project without logs has no most recent session."""
        (tmp_path / "-empty").mkdir()
        store = SessionStore(projects_dir=str(tmp_path), project_path="/empty")

        with pytest.raises(SessionNotFoundError):
            store.most_recent()

    def test_resolve_default(self):
        """Test no argument resolves to the newest log."""
        assert self.store.resolve() == str(self.new_path)

    def test_resolve_uuid(self):
        """Test a session ID resolves inside the project."""
        assert self.store.resolve(OLD_ID) == str(self.old_path)

    def test_resolve_path(self, tmp_path):
        """Test an existing file is used as is."""
        other = tmp_path / "elsewhere.jsonl"
        other.write_text("", encoding="utf-8")

        assert self.store.resolve(str(other)) == str(other)

    def test_resolve_unknown(self):
        """Test unknown IDs and names raise."""
        with pytest.raises(SessionNotFoundError):
            self.store.resolve("99999999-9999-9999-9999-999999999999")
        with pytest.raises(SessionNotFoundError):
            self.store.resolve("not-a-session")

    def test_find_rejects_paths(self):
        """Test find only accepts session IDs."""
        with pytest.raises(SessionNotFoundError):
            self.store.find(str(self.old_path))

    def test_list_sessions(self):
        """Test session summaries."""
        sessions = self.store.list_sessions(ctx_limit=200000)

        assert [s.session_id for s in sessions] == [NEW_ID, OLD_ID]
        newest = sessions[0]
        assert newest.tokens == 170000
        # Three user turns plus three tool results
        assert newest.messages == 6
        assert newest.usage_pct == 85
        assert newest.to_dict()["modified_at"].startswith("20")

    def test_read_lines_line_endings(self, tmp_path):
        """Test CRLF endings and the trailing newline are handled."""
        path = tmp_path / "crlf.jsonl"
        path.write_bytes(b'{"a":1}\r\n{"b":2}\r\n')

        assert self.store.read_lines(str(path)) == ['{"a":1}', '{"b":2}']

    def test_read_lines_without_trailing_newline(self, tmp_path):
        """Test the last line is kept without a final newline."""
        path = tmp_path / "plain.jsonl"
        path.write_bytes(b'{"a":1}\n{"b":2}')

        assert self.store.read_lines(str(path)) == ['{"a":1}', '{"b":2}']

    def test_write_lines(self):
        """Test logs are replaced with a trailing newline and same mode."""
        os.chmod(self.old_path, 0o600)
        self.store.write_lines(str(self.old_path), ["x", "y"])

        assert self.old_path.read_bytes() == b"x\ny\n"
        assert stat.S_IMODE(os.stat(self.old_path).st_mode) == 0o600
        assert [name for name in os.listdir(self.project_dir) if name.endswith(".tmp")] == []

    def test_backup(self):
        """Test a backup copies the log under a timestamped name."""
        backup_path = self.store.backup(str(self.old_path))

        assert backup_path.startswith(f"{self.old_path}.backup.")
        assert backup_path.rsplit(".", 1)[1].isdigit()
        assert open(backup_path, "rb").read() == self.old_path.read_bytes()

    def test_list_backups_newest_first(self):
        """Test backups sort by their timestamp suffix."""
        for suffix in ("1000", "3000", "2000", "notanumber"):
            (self.project_dir / f"{OLD_ID}.jsonl.backup.{suffix}").write_text(suffix, encoding="utf-8")

        backups = self.store.list_backups(str(self.old_path))

        assert [b.timestamp_ms for b in backups] == [3000, 2000, 1000]
        assert backups[0].name == f"{OLD_ID}.jsonl.backup.3000"

    def test_restore_uses_newest_backup(self):
        """Test restore copies the newest backup over the log."""
        (self.project_dir / f"{OLD_ID}.jsonl.backup.1000").write_text("older\n", encoding="utf-8")
        (self.project_dir / f"{OLD_ID}.jsonl.backup.2000").write_text("newer\n", encoding="utf-8")

        restored = self.store.restore(str(self.old_path))

        assert restored.timestamp_ms == 2000
        assert self.old_path.read_text(encoding="utf-8") == "newer\n"

    def test_restore_without_backup(self):
        """Test restoring a log that was never backed up raises."""
        with pytest.raises(BackupNotFoundError):
            self.store.restore(str(self.new_path))

    def test_backups_not_listed_as_sessions(self):
        """Test backup files are not mistaken for sessions."""
        self.store.backup(str(self.old_path))

        assert len(self.store.session_files()) == 2

    def test_invalid_utf8_round_trip(self, tmp_path):
        """Test lines with invalid UTF-8 bytes read and write back unchanged."""
        path = tmp_path / "binary.jsonl"
        original = b'{"a":1}\n{"type":"x","text":"\xff\xfe"}\n'
        path.write_bytes(original)

        lines = self.store.read_lines(str(path))
        assert len(lines) == 2

        self.store.write_lines(str(path), lines)
        assert path.read_bytes() == original
