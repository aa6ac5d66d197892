"""
Configuration for the executor launcher.

Loads configuration from environment variables.
"""
import os
from typing import Optional


DEFAULT_CONTAINER_STOP_COMMAND = "lxc-stop -n {container}"


class LauncherConfig:
    """Configuration for the executor launcher."""

    def __init__(self):
        """Load configuration from environment."""
        # Resource root for relative URIs when the spec comes from the handoff environment
        self.frameworks_home = os.getenv("LAUNCHPAD_FRAMEWORKS_HOME", "")

        # Fallback hadoop home when the launch spec has none
        self.hadoop_home = os.getenv("HADOOP_HOME", "")

        self.download_timeout = float(os.getenv("LAUNCHPAD_DOWNLOAD_TIMEOUT", "300"))

        # Container cleanup
        self.container_stop_command = os.getenv(
            "LAUNCHPAD_CONTAINER_STOP_COMMAND",
            DEFAULT_CONTAINER_STOP_COMMAND
        )
        wait_timeout = os.getenv("LAUNCHPAD_CONTAINER_WAIT_TIMEOUT")
        self.container_wait_timeout: Optional[float] = float(wait_timeout) if wait_timeout else None

        self.log_level = os.getenv("LAUNCHPAD_LOG_LEVEL", "INFO").upper()


def get_config() -> LauncherConfig:
    """Get launcher configuration."""
    return LauncherConfig()
