"""
Executor launcher.

setup() prepares the sandbox and can fail without harming the host
process. launch() is the point of no return: it enters the sandbox, drops
privilege, redirects output, installs the environment and replaces the
process with the executor command. Any failure inside launch() is fatal.

Usage:
    launcher = ExecutorLauncher(spec)
    sys.exit(launcher.run())
"""
import logging
import os
import subprocess
import sys
import threading
import time
from enum import Enum
from typing import Callable, Dict, List, Optional

from launchpad.config import DEFAULT_CONTAINER_STOP_COMMAND, LauncherConfig, get_config
from launchpad.download import Downloader
from launchpad.environment import build_environment, build_handoff_environment, environment_dict
from launchpad.errors import (
    DirectoryEntryFailed,
    ExecFailed,
    ForkFailed,
    IORedirectFailed,
    LaunchError,
    OwnershipFailed,
    PrivilegeSwitchFailed,
    SetupError,
)
from launchpad.exec import CommandRunner
from launchpad.fetcher import ResourceFetcher
from launchpad.identity import IdentityManager
from launchpad.launch_spec import LaunchSpec

logger = logging.getLogger(__name__)

SHELL = "/bin/sh"
EXIT_FAILURE = 1


class LaunchState(Enum):
    """Where the launcher is in giving up the process identity."""
    IDLE = "idle"
    DIRECTORY_ENTERED = "directory_entered"
    PRIVILEGE_DROPPED = "privilege_dropped"
    IO_REDIRECTED = "io_redirected"
    ENVIRONMENT_INSTALLED = "environment_installed"
    EXECED = "execed"
    CONTAINER_WRAPPED = "container_wrapped"
    TERMINATED = "terminated"


def exit_status(returncode: int) -> int:
    """Map a Popen returncode to a shell-style exit status (signals -> 128+N)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


class ContainerWrapper:
    """
    Runs the executor command as a child and stops its container afterwards.

    The parent waits for the child, then issues exactly one stop command for
    the container and reports the child's exit status. By default the wait
    is unbounded; wait_timeout and cancel_event bound it, in which case the
    child is killed before the container is stopped.
    """

    def __init__(
        self,
        runner: CommandRunner = None,
        stop_command: str = DEFAULT_CONTAINER_STOP_COMMAND,
        wait_timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        poll_interval: float = 0.5,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen
    ):
        self.runner = runner or CommandRunner()
        self.stop_command = stop_command
        self.wait_timeout = wait_timeout
        self.cancel_event = cancel_event
        self.poll_interval = poll_interval
        self.popen = popen

    def stop_command_for(self, container: str) -> str:
        return self.stop_command.format(container=container)

    def wrap(self, container: str, argv: List[str], env: Dict[str, str]) -> int:
        """
        Run argv as the single child process, wait, then stop the container.

        Returns:
            The child's exit status

        Raises:
            ForkFailed: If the child could not be started
        """
        try:
            child = self.popen(argv, env=env)
        except OSError as e:
            raise ForkFailed(f"Failed to fork to run '{' '.join(argv)}': {e}")

        logger.info(f"Waiting for executor (pid {child.pid}) in container {container}")
        try:
            return self.wait(child)
        finally:
            self.stop(container)

    def stop(self, container: str) -> None:
        """Issue the stop command for container; a failure is only logged."""
        command = self.stop_command_for(container)
        logger.info(f"Stopping container: {command}")
        code = self.runner.run(command)
        if code != 0:
            logger.warning(f"Container stop exited with {code} for {container}")

    def wait(self, child: subprocess.Popen) -> int:
        """Wait for the child, honoring the timeout and cancel hooks if set."""
        if self.wait_timeout is None and self.cancel_event is None:
            return exit_status(child.wait())

        deadline = None
        if self.wait_timeout is not None:
            deadline = time.monotonic() + self.wait_timeout

        while True:
            try:
                return exit_status(child.wait(timeout=self.poll_interval))
            except subprocess.TimeoutExpired:
                pass

            if self.cancel_event is not None and self.cancel_event.is_set():
                logger.warning(f"Wait for pid {child.pid} cancelled, killing executor")
                break
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(f"Executor pid {child.pid} exceeded {self.wait_timeout}s, killing")
                break

        child.kill()
        return exit_status(child.wait())


class ExecutorLauncher:
    """
    Prepares a sandbox and launches one executor into it.

    Collaborators (command runner, downloader, identity manager, container
    wrapper, execve, terminate) are injectable so tests never touch real
    tools, users or the process image.
    """

    def __init__(
        self,
        spec: LaunchSpec,
        runner: CommandRunner = None,
        downloader: Downloader = None,
        identity: IdentityManager = None,
        config: LauncherConfig = None,
        container_wrapper: ContainerWrapper = None,
        execve: Callable = os.execve,
        terminate: Callable[[int], None] = os._exit
    ):
        if config is None:
            config = get_config()

        self.spec = spec
        self.config = config
        self.runner = runner or CommandRunner()
        self.identity = identity or IdentityManager()
        self.fetcher = ResourceFetcher(
            spec,
            runner=self.runner,
            downloader=downloader,
            identity=self.identity,
            config=config
        )
        self.container_wrapper = container_wrapper or ContainerWrapper(
            runner=self.runner,
            stop_command=config.container_stop_command,
            wait_timeout=config.container_wait_timeout
        )
        self.execve = execve
        self.terminate = terminate

        self.state = LaunchState.IDLE
        self.setup_error: Optional[Exception] = None

    def run(self) -> int:
        """Set up, then launch if setup succeeded."""
        ret = self.setup()
        if ret < 0:
            return ret
        return self.launch()

    def setup(self) -> int:
        """
        Fetch the executor's resources into the working directory.

        Never terminates the process: failures are logged, kept on
        self.setup_error, and reported as -1.

        Returns:
            0 on success, -1 on failure
        """
        self.setup_error = None
        try:
            cwd = os.getcwd()
            if self.spec.switch_user and not self.identity.transfer_ownership(
                self.spec.work_directory, self.spec.user
            ):
                raise OwnershipFailed(
                    f"Failed to change ownership of framework's working directory "
                    f"{self.spec.work_directory} to user {self.spec.user}"
                )
            self._enter_work_directory()
        except (SetupError, DirectoryEntryFailed, OSError) as e:
            return self._setup_failed(e)

        result = 0
        try:
            self.fetcher.fetch_all()
        except SetupError as e:
            logger.error("Failed to fetch executors")
            result = self._setup_failed(e)
        finally:
            try:
                os.chdir(cwd)
            except OSError as e:
                logger.error(f"Failed to chdir (back) into {cwd}: {e}")

        return result

    def _setup_failed(self, error: Exception) -> int:
        logger.error(str(error))
        self.setup_error = error
        return -1

    def launch(self) -> int:
        """
        Launch the executor command.

        Without a container this does not return: the process image is
        replaced by '/bin/sh -c <command>'. With a container it returns the
        wrapped child's exit status. Errors terminate the process.
        """
        try:
            return self._launch()
        except LaunchError as e:
            self._fatal(e)
            return EXIT_FAILURE

    def _launch(self) -> int:
        self._enter_work_directory()
        self.state = LaunchState.DIRECTORY_ENTERED

        if self.spec.switch_user:
            self.switch_user()
            self.state = LaunchState.PRIVILEGE_DROPPED

        if self.spec.redirect_io:
            self.redirect_io()
            self.state = LaunchState.IO_REDIRECTED

        env = self.install_environment()
        self.state = LaunchState.ENVIRONMENT_INSTALLED

        command = self.spec.command.value

        if self.spec.container:
            self.state = LaunchState.CONTAINER_WRAPPED
            status = self.container_wrapper.wrap(self.spec.container, [SHELL, "-c", command], env)
            self.state = LaunchState.TERMINATED
            return status

        self.state = LaunchState.EXECED
        try:
            self.execve(SHELL, ["sh", "-c", command], env)
        except OSError as e:
            raise ExecFailed(f"Could not execute '{SHELL} -c {command}': {e}")

        # execve only comes back on failure
        raise ExecFailed(f"Could not execute '{SHELL} -c {command}'")

    def _enter_work_directory(self) -> None:
        try:
            os.chdir(self.spec.work_directory)
        except OSError as e:
            raise DirectoryEntryFailed(
                f"Failed to chdir into framework working directory {self.spec.work_directory}: {e}"
            )

    def switch_user(self) -> None:
        if not self.identity.switch_user(self.spec.user):
            raise PrivilegeSwitchFailed(
                f"Failed to switch to user {self.spec.user} for executor "
                f"{self.spec.executor_id} of framework {self.spec.framework_id}"
            )

    def redirect_io(self) -> None:
        """Point fds 1 and 2 at ./stdout and ./stderr (truncated)."""
        for name, stream, fd in (("stdout", sys.stdout, 1), ("stderr", sys.stderr, 2)):
            try:
                stream.flush()
                target = os.open(name, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
                try:
                    os.dup2(target, fd)
                finally:
                    os.close(target)
            except OSError as e:
                raise IORedirectFailed(f"Failed to redirect {name}: {e}")

    def install_environment(self) -> Dict[str, str]:
        """
        Apply the executor environment to this process in one step.

        Returns:
            The complete resulting environment
        """
        os.environ.update(environment_dict(build_environment(self.spec)))
        return dict(os.environ)

    def _fatal(self, error: LaunchError) -> None:
        logger.critical(str(error))
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.flush()
            except (OSError, ValueError):
                pass
        self.terminate(EXIT_FAILURE)


def delegate(spec: LaunchSpec, popen: Callable[..., subprocess.Popen] = subprocess.Popen) -> subprocess.Popen:
    """
    Hand a launch to a secondary launcher process ('python -m launchpad').

    The child rebuilds the LaunchSpec from the MESOS_* handoff environment.
    Used by callers that must not give up their own process, e.g. an
    isolation module that forks before launching.

    Returns:
        The started launcher process
    """
    env = dict(os.environ)
    env.update(environment_dict(build_handoff_environment(spec)))
    logger.info(f"Delegating executor {spec.executor_id} of framework {spec.framework_id} to a secondary launcher")
    return popen([sys.executable, "-m", "launchpad"], env=env)
