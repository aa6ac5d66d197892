"""
Resource fetching into the executor sandbox.

Each resource URI is validated, retrieved (hadoop, URL download, or local
copy), chowned/chmodded as requested, and extracted if it is an archive.
All paths are relative to the current directory, which the launcher has
already made the working directory.
"""
import logging
import os
from typing import Optional

from launchpad.config import LauncherConfig, get_config
from launchpad.download import Downloader
from launchpad.errors import (
    DownloadError,
    ExtractionFailed,
    InvalidResource,
    MalformedURL,
    MissingResourceRoot,
    OwnershipFailed,
    PermissionFailed,
    TransferFailed,
)
from launchpad.exec import CommandRunner
from launchpad.identity import IdentityManager
from launchpad.launch_spec import LaunchSpec, ResourceURI

logger = logging.getLogger(__name__)

HDFS_PREFIXES = ('hdfs://', 'hftp://')
DOWNLOAD_PREFIXES = ('http://', 'https://', 'ftp://', 'ftps://')
ILLEGAL_CHARACTERS = ('\\', "'", '\0')

EXECUTABLE_MODE = 0o755  # rwxr-xr-x


def validate_resource(resource: str) -> None:
    """
    Reject resource values that would break out of single-quoted shell words.

    Raises:
        InvalidResource: If the value contains a backslash, quote or NUL
    """
    if any(ch in resource for ch in ILLEGAL_CHARACTERS):
        raise InvalidResource(f"Illegal characters in URI: {resource!r}", resource=resource)


def download_filename(resource: str) -> str:
    """
    File name a URL downloads to.

    Raises:
        MalformedURL: If the URL has no path after the host or no file name
    """
    path = resource[resource.find('://') + 3:]
    slash = path.find('/')
    if slash == -1 or len(path) <= slash + 1:
        raise MalformedURL(f"Malformed URL (missing path): {resource}", resource=resource)

    filename = path[path.rfind('/') + 1:]
    if not filename:
        raise MalformedURL(f"Malformed URL (missing file name): {resource}", resource=resource)
    return filename


class ResourceFetcher:
    """Fetches a launch's resources into the current directory."""

    def __init__(
        self,
        spec: LaunchSpec,
        runner: CommandRunner = None,
        downloader: Downloader = None,
        identity: IdentityManager = None,
        config: LauncherConfig = None
    ):
        if config is None:
            config = get_config()

        self.spec = spec
        self.config = config
        self.runner = runner or CommandRunner()
        self.downloader = downloader or Downloader(timeout=config.download_timeout)
        self.identity = identity or IdentityManager()

    def fetch_all(self) -> None:
        """
        Fetch every resource in declared order.

        Stops at the first failure; resources fetched before it are left in
        place.

        Raises:
            SetupError: Subclass describing the first failure
        """
        logger.info(f"Fetching resources into {self.spec.work_directory}")

        # Nothing is transferred if any value is unsafe
        for uri in self.spec.command.uris:
            validate_resource(uri.value)

        for uri in self.spec.command.uris:
            self.fetch(uri)

    def fetch(self, uri: ResourceURI) -> str:
        """
        Fetch a single resource.

        Returns:
            Local path of the fetched file (relative to the sandbox)
        """
        resource = uri.value
        logger.info(f"Fetching resource {resource}")

        validate_resource(resource)

        if resource.startswith(HDFS_PREFIXES):
            local = self._fetch_hdfs(resource)
        elif resource.startswith(DOWNLOAD_PREFIXES):
            local = self._fetch_url(resource)
        else:
            local = self._fetch_local(resource)

        if self.spec.switch_user and not self.identity.transfer_ownership(local, self.spec.user):
            raise OwnershipFailed(f"Failed to chown {local} to {self.spec.user}", resource=resource)

        if uri.executable:
            try:
                os.chmod(local, EXECUTABLE_MODE)
            except OSError as e:
                raise PermissionFailed(f"Failed to chmod {local}: {e}", resource=resource)

        self._extract(local, resource)
        return local

    def hadoop_script(self) -> str:
        """Locate bin/hadoop: spec's hadoop home, then HADOOP_HOME, then PATH."""
        if self.spec.hadoop_home:
            return os.path.join(self.spec.hadoop_home, "bin/hadoop")
        if self.config.hadoop_home:
            return os.path.join(self.config.hadoop_home, "bin/hadoop")
        return "hadoop"

    def _fetch_hdfs(self, resource: str) -> str:
        base = os.path.basename(resource.rstrip('/'))
        if not base:
            raise MalformedURL(f"Cannot determine file name for {resource}", resource=resource)

        local = os.path.join(".", base)
        command = f"{self.hadoop_script()} fs -copyToLocal '{resource}' '{local}'"
        logger.info(f"Downloading resource from {resource}")
        logger.info(f"HDFS command: {command}")

        code = self.runner.run(command)
        if code != 0:
            raise TransferFailed(f"HDFS copyToLocal failed: return code {code}", resource=resource)
        return local

    def _fetch_url(self, resource: str) -> str:
        local = os.path.join(".", download_filename(resource))
        logger.info(f"Downloading {resource} to {local}")

        try:
            code = self.downloader.download(resource, local)
        except DownloadError as e:
            raise TransferFailed(f"Error downloading resource: {e}", resource=resource)

        if code != 200:
            raise TransferFailed(
                f"Error downloading resource, received HTTP/FTP return code {code}",
                resource=resource
            )
        return local

    def _fetch_local(self, resource: str) -> str:
        source = resource
        if not source.startswith('/'):
            if not self.spec.frameworks_home:
                raise MissingResourceRoot(
                    "A relative path was passed for the resource, but no frameworks "
                    f"home is configured: {resource}",
                    resource=resource
                )
            source = os.path.join(self.spec.frameworks_home, source)
            logger.info(f"Prepended frameworks home to resource path, making it: {source}")

        logger.info(f"Copying resource from {source} to .")
        code = self.runner.run(f"cp {source} .")
        if code != 0:
            raise TransferFailed(f"Failed to copy {source}: exit code {code}", resource=resource)

        return os.path.join(".", os.path.basename(source))

    def _extract(self, local: str, resource: str) -> Optional[str]:
        if local.endswith(('.tgz', '.tar.gz')):
            command = f"tar xzf '{local}'"
        elif local.endswith('.zip'):
            command = f"unzip '{local}'"
        else:
            return None

        logger.info(f"Extracting resource: {command}")
        code = self.runner.run(command)
        if code != 0:
            raise ExtractionFailed(
                f"Failed to extract resource: {command.split()[0]} exit code {code}",
                resource=resource
            )
        return command
