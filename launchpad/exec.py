"""
Command execution for the launcher.

Every step that shells out (copy, hadoop transfer, extraction, container
stop) goes through a CommandRunner so tests can swap in a fake.
"""
import logging
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs shell commands synchronously and reports their exit status."""

    def __init__(self, cwd: Optional[Path] = None):
        self.cwd = cwd

    def run(self, command: str, cwd: Optional[Path] = None) -> int:
        """
        Run a shell command and wait for it.

        Output is not captured; it goes wherever the launcher's own
        stdout/stderr point.

        Args:
            command: Shell command line
            cwd: Working directory (defaults to the runner's cwd, then the
                process's current directory)

        Returns:
            Exit status of the command; 127 if the shell could not be started
        """
        if cwd is None:
            cwd = self.cwd

        logger.debug(f"Running command: {command}")
        try:
            result = subprocess.run(command, shell=True, cwd=cwd, check=False)
        except OSError as e:
            logger.error(f"Failed to run '{command}': {e}")
            return 127

        return result.returncode
