"""
Pytest configuration for unit tests.

Provides fakes for every collaborator that would otherwise run external
tools, touch the network, or change the process identity.
"""
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from launchpad.config import LauncherConfig
from launchpad.launch_spec import CommandInfo, LaunchSpec, ResourceURI


class FakeRunner:
    """Records shell commands instead of running them."""

    def __init__(self, codes: Optional[Dict[str, int]] = None):
        # Map of command prefix -> exit code; anything else exits 0
        self.codes = codes or {}
        self.commands: List[str] = []

    def run(self, command: str, cwd=None) -> int:
        self.commands.append(command)
        for prefix, code in self.codes.items():
            if command.startswith(prefix):
                return code
        return 0


class FakeDownloader:
    """Records downloads and writes a small file on success."""

    def __init__(self, status: int = 200, error: Exception = None):
        self.status = status
        self.error = error
        self.downloads: List[Tuple[str, str]] = []

    def download(self, url: str, path) -> int:
        self.downloads.append((url, str(path)))
        if self.error is not None:
            raise self.error
        if self.status == 200:
            Path(path).write_bytes(b"payload")
        return self.status


class FakeIdentity:
    """Records ownership transfers and user switches."""

    def __init__(self, chown_ok: bool = True, switch_ok: bool = True):
        self.chown_ok = chown_ok
        self.switch_ok = switch_ok
        self.chowned: List[Tuple[str, str]] = []
        self.switched: List[str] = []

    def transfer_ownership(self, path: str, user: str) -> bool:
        self.chowned.append((path, user))
        return self.chown_ok

    def switch_user(self, user: str) -> bool:
        self.switched.append(user)
        return self.switch_ok


def make_spec(work_directory, uris=(), **overrides) -> LaunchSpec:
    """Build a LaunchSpec with test defaults."""
    command = overrides.pop('command', None) or CommandInfo(
        value="./run-executor",
        uris=tuple(uri if isinstance(uri, ResourceURI) else ResourceURI(uri) for uri in uris)
    )
    fields = dict(
        framework_id="framework-001",
        executor_id="executor-abc",
        command=command,
        user="nobody",
        work_directory=str(work_directory),
        slave_pid="slave(1)@10.0.0.1:5051"
    )
    fields.update(overrides)
    return LaunchSpec(**fields)


@pytest.fixture
def config(monkeypatch):
    """Launcher config built from a clean environment."""
    for var in (
        "HADOOP_HOME",
        "LAUNCHPAD_FRAMEWORKS_HOME",
        "LAUNCHPAD_DOWNLOAD_TIMEOUT",
        "LAUNCHPAD_CONTAINER_STOP_COMMAND",
        "LAUNCHPAD_CONTAINER_WAIT_TIMEOUT",
        "LAUNCHPAD_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    return LauncherConfig()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def sandbox(tmp_path, monkeypatch):
    """An empty working directory that is also the current directory."""
    work_dir = tmp_path / "sandbox"
    work_dir.mkdir()
    monkeypatch.chdir(work_dir)
    return work_dir


@pytest.fixture
def restore_environ():
    """Undo os.environ changes made by install_environment()."""
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def spec_factory():
    """Factory for LaunchSpecs with test defaults (see make_spec)."""
    return make_spec
