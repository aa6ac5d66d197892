"""
URL downloads for HTTP-family resources.

http/https go through requests; ftp/ftps through ftplib. The result is a
status code in HTTP terms (a completed FTP transfer reports 200) so the
fetcher can apply a single "200 or fail" rule.
"""
import ftplib
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import requests

from launchpad.errors import DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class Downloader:
    """Downloads a URL to a local file."""

    def __init__(self, timeout: float = 300.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def download(self, url: str, path: Path) -> int:
        """
        Download url into path.

        Args:
            url: http, https, ftp or ftps URL
            path: Local destination (overwritten)

        Returns:
            Status code of the transfer

        Raises:
            DownloadError: On transport errors (DNS, connection, TLS, I/O)
        """
        scheme = urlparse(url).scheme.lower()
        if scheme in ('http', 'https'):
            return self._download_http(url, Path(path))
        if scheme in ('ftp', 'ftps'):
            return self._download_ftp(url, Path(path))
        raise DownloadError(f"Unsupported URL scheme: {scheme or url}")

    def _download_http(self, url: str, path: Path) -> int:
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                if response.status_code != 200:
                    return response.status_code
                with open(path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                return response.status_code
        except requests.exceptions.RequestException as e:
            raise DownloadError(f"Failed to download {url}: {e}")
        except OSError as e:
            raise DownloadError(f"Failed to write {path}: {e}")

    def _download_ftp(self, url: str, path: Path) -> int:
        parsed = urlparse(url)
        ftp_class = ftplib.FTP_TLS if parsed.scheme.lower() == 'ftps' else ftplib.FTP
        ftp = ftp_class(timeout=self.timeout)
        try:
            port = parsed.port or 21
            ftp.connect(parsed.hostname or '', port)
            ftp.login(unquote(parsed.username or 'anonymous'), unquote(parsed.password or ''))
            if isinstance(ftp, ftplib.FTP_TLS):
                ftp.prot_p()
            with open(path, 'wb') as f:
                ftp.retrbinary(f"RETR {unquote(parsed.path)}", f.write, blocksize=CHUNK_SIZE)
        except ftplib.error_perm as e:
            logger.warning(f"FTP server refused {url}: {e}")
            # Permanent FTP replies carry their own code (e.g. 550 file unavailable)
            code = str(e)[:3]
            return int(code) if code.isdigit() else 550
        except ValueError as e:
            raise DownloadError(f"Invalid FTP URL {url}: {e}")
        except (ftplib.Error, OSError, EOFError) as e:
            raise DownloadError(f"Failed to download {url}: {e}")
        finally:
            if ftp.sock is not None:
                try:
                    ftp.quit()
                except (ftplib.Error, OSError, EOFError):
                    ftp.close()
        return 200
