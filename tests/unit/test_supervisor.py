"""Unit tests for the POSIX process supervisor."""

import os
import signal
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from bloat_sentinel.supervisor import PosixProcessSupervisor, pid_alive


class TestPidAlive:
    def test_own_process(self):
        assert pid_alive(os.getpid())

    def test_nonexistent(self):
        assert not pid_alive(99999999)

    def test_non_positive(self):
        assert not pid_alive(0)
        assert not pid_alive(-1)

    def test_permission_denied_counts_as_alive(self):
        with patch("bloat_sentinel.supervisor.os.kill", side_effect=PermissionError):
            assert pid_alive(1)


class TestFindByPattern:
    """Tests for PosixProcessSupervisor.find_by_pattern()."""

    def _run(self, stdout):
        return MagicMock(stdout=stdout, returncode=0)

    def test_first_match(self):
        with patch("bloat_sentinel.supervisor.subprocess.run", return_value=self._run("311\n312\n")) as run:
            assert PosixProcessSupervisor().find_by_pattern("openclaw-gateway") == 311
        assert run.call_args.args[0] == ["pgrep", "-f", "openclaw-gateway"]

    def test_own_pid_excluded(self):
        stdout = f"{os.getpid()}\n512\n"
        with patch("bloat_sentinel.supervisor.subprocess.run", return_value=self._run(stdout)):
            assert PosixProcessSupervisor().find_by_pattern("bloat_sentinel") == 512

    def test_no_match(self):
        with patch("bloat_sentinel.supervisor.subprocess.run", return_value=self._run("")):
            assert PosixProcessSupervisor().find_by_pattern("openclaw-gateway") is None

    def test_pgrep_missing(self):
        with patch("bloat_sentinel.supervisor.subprocess.run", side_effect=FileNotFoundError("pgrep")):
            assert PosixProcessSupervisor().find_by_pattern("openclaw-gateway") is None

    def test_pgrep_timeout(self):
        error = subprocess.TimeoutExpired(["pgrep"], 5)
        with patch("bloat_sentinel.supervisor.subprocess.run", side_effect=error):
            assert PosixProcessSupervisor().find_by_pattern("openclaw-gateway") is None


class TestSignals:
    def test_terminate_sends_sigterm(self):
        with patch("bloat_sentinel.supervisor.os.kill") as kill:
            assert PosixProcessSupervisor().terminate(1234)
        kill.assert_called_once_with(1234, signal.SIGTERM)

    def test_force_kill_gone_process(self):
        with patch("bloat_sentinel.supervisor.os.kill", side_effect=ProcessLookupError):
            assert not PosixProcessSupervisor().force_kill(1234)


class TestLaunch:
    def test_detached_with_log_redirect(self, tmp_path):
        log_path = tmp_path / "logs" / "gateway.log"
        with patch("bloat_sentinel.supervisor.subprocess.Popen") as popen:
            popen.return_value = MagicMock(pid=777)
            pid = PosixProcessSupervisor().launch(["openclaw", "gateway", "start"], Path(tmp_path), log_path)

        assert pid == 777
        assert log_path.parent.is_dir()
        kwargs = popen.call_args.kwargs
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["stderr"] == subprocess.STDOUT
        assert kwargs["start_new_session"] is True
