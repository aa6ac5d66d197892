"""
Unit tests for URL downloads.
"""
import ftplib
from unittest.mock import MagicMock, patch

import pytest
import requests

from launchpad.download import Downloader
from launchpad.errors import DownloadError


def mock_session(status_code=200, chunks=(b"exec", b"", b"utor")):
    session = MagicMock()
    response = MagicMock()
    response.status_code = status_code
    response.iter_content.return_value = list(chunks)
    session.get.return_value.__enter__.return_value = response
    return session


class TestHttpDownload:

    def test_writes_body(self, tmp_path):
        session = mock_session()
        target = tmp_path / "executor.jar"

        code = Downloader(timeout=5, session=session).download("http://host/dist/executor.jar", target)

        assert code == 200
        assert target.read_bytes() == b"executor"
        session.get.assert_called_once_with("http://host/dist/executor.jar", stream=True, timeout=5)

    def test_non_200_leaves_no_file(self, tmp_path):
        target = tmp_path / "missing.jar"

        code = Downloader(session=mock_session(status_code=404)).download("https://host/missing.jar", target)

        assert code == 404
        assert not target.exists()

    def test_connection_error(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(DownloadError):
            Downloader(session=session).download("http://host/a.tgz", tmp_path / "a.tgz")

    def test_unsupported_scheme(self, tmp_path):
        with pytest.raises(DownloadError):
            Downloader(session=MagicMock()).download("gopher://host/a", tmp_path / "a")


class TestFtpDownload:

    @patch('launchpad.download.ftplib.FTP')
    def test_retrieves_file(self, mock_ftp_class, tmp_path):
        ftp = mock_ftp_class.return_value
        ftp.retrbinary.side_effect = lambda cmd, callback, blocksize: callback(b"data")

        code = Downloader(session=MagicMock()).download("ftp://user:pw@host:2121/pub/a.zip", tmp_path / "a.zip")

        assert code == 200
        assert (tmp_path / "a.zip").read_bytes() == b"data"
        ftp.connect.assert_called_once_with("host", 2121)
        ftp.login.assert_called_once_with("user", "pw")
        assert ftp.retrbinary.call_args[0][0] == "RETR /pub/a.zip"

    @patch('launchpad.download.ftplib.FTP')
    def test_permanent_error_code(self, mock_ftp_class, tmp_path):
        ftp = mock_ftp_class.return_value
        ftp.retrbinary.side_effect = ftplib.error_perm("550 No such file")

        code = Downloader(session=MagicMock()).download("ftp://host/pub/none.zip", tmp_path / "none.zip")

        assert code == 550

    @patch('launchpad.download.ftplib.FTP')
    def test_connection_failure(self, mock_ftp_class, tmp_path):
        ftp = mock_ftp_class.return_value
        ftp.connect.side_effect = OSError("unreachable")

        with pytest.raises(DownloadError):
            Downloader(session=MagicMock()).download("ftp://host/pub/a.zip", tmp_path / "a.zip")

    @pytest.mark.parametrize("url", [
        "ftp://host:99999/pub/a.zip",
        "ftp://host:abc/pub/a.zip",
    ])
    def test_invalid_port(self, url, tmp_path):
        with pytest.raises(DownloadError):
            Downloader(session=MagicMock()).download(url, tmp_path / "a.zip")
