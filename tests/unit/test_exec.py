"""
Unit tests for the shell command runner.
"""
from unittest.mock import patch

from launchpad.exec import CommandRunner


class TestCommandRunner:

    def test_exit_status(self):
        assert CommandRunner().run("exit 3") == 3

    def test_success(self):
        assert CommandRunner().run("true") == 0

    def test_cwd(self, tmp_path):
        (tmp_path / "marker").write_text("x")

        assert CommandRunner(cwd=tmp_path).run("test -f marker") == 0
        assert CommandRunner().run("test -f marker", cwd=tmp_path) == 0

    @patch('launchpad.exec.subprocess.run', side_effect=OSError("no shell"))
    def test_shell_unavailable(self, mock_run):
        assert CommandRunner().run("true") == 127

    def test_logs_command(self, caplog):
        with caplog.at_level("DEBUG", logger="launchpad.exec"):
            CommandRunner().run("true")

        assert "Running command: true" in caplog.text

    @patch('launchpad.exec.subprocess.run', side_effect=OSError("no shell"))
    def test_logs_shell_failure(self, mock_run, caplog):
        CommandRunner().run("exit 0")

        assert "Failed to run 'exit 0': no shell" in caplog.text
