"""
Error types for the executor launcher.

Two families:
- SetupError: raised while preparing the sandbox. Always reported back to
  the caller as a failed setup; the host process keeps running.
- LaunchError: raised once launch() has started giving up the process
  identity. Always fatal: the launcher prints a diagnostic and exits.
"""
from typing import Optional


class LauncherError(Exception):
    """Base class for launcher errors."""
    pass


class SetupError(LauncherError):
    """Recoverable error raised while fetching resources into the sandbox."""

    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(message)
        self.resource = resource


class InvalidResource(SetupError):
    """Resource value contains characters that are unsafe in shell commands."""
    pass


class MalformedURL(SetupError):
    """Download URL has no path or no file name."""
    pass


class MissingResourceRoot(SetupError):
    """Relative local resource given but no frameworks home is configured."""
    pass


class TransferFailed(SetupError):
    """Copy, download or distributed filesystem transfer failed."""
    pass


class OwnershipFailed(SetupError):
    """Could not chown a fetched resource (or the sandbox) to the target user."""
    pass


class PermissionFailed(SetupError):
    """Could not mark a fetched resource executable."""
    pass


class ExtractionFailed(SetupError):
    """Archive extraction tool exited non-zero."""
    pass


class LaunchError(LauncherError):
    """Fatal error raised after launch() has begun."""
    pass


class DirectoryEntryFailed(LaunchError):
    """Could not chdir into the working directory."""
    pass


class PrivilegeSwitchFailed(LaunchError):
    """Could not switch to the target user."""
    pass


class IORedirectFailed(LaunchError):
    """Could not redirect stdout/stderr into the working directory."""
    pass


class ForkFailed(LaunchError):
    """Could not spawn the container-wrapped child process."""
    pass


class ExecFailed(LaunchError):
    """Replacing the process image with the executor command failed."""
    pass


class DownloadError(Exception):
    """Transport-level failure while downloading a resource."""
    pass
