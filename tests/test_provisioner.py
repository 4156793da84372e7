"""
Tests for the provisioner: layered cache lookup, fetch and populate.

All network traffic is mocked with ``responses``; an unregistered URL makes
the request fail, so tests that register nothing prove no download happened.
"""

import io
import logging
import stat
import sys
import threading
from pathlib import Path
from unittest.mock import patch

import pytest
import requests
import responses

from chromiumkit.core.exceptions import ArchiveExtractionError, UnsupportedPlatformError
from chromiumkit.core.platform import PlatformTag
from chromiumkit.provisioner import ProvisionOptions, Provisioner, provision
from tests.fixtures.builds import EXECUTABLE_CONTENT, populate_build

LINUX_URL = (
    "https://storage.googleapis.com/chromium-browser-snapshots/"
    "Linux_x64/499413/chrome-linux.zip"
)

unix_only = pytest.mark.skipif(sys.platform == "win32", reason="Unix permissions")


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestLocalHit:
    """The executable is already in the install folder."""

    @responses.activate
    def test_returns_without_other_work(self, provisioner_config):
        """Test a local hit touches neither shared cache, lock nor network."""
        local = populate_build(provisioner_config.install_root, PlatformTag.LINUX, "499413")
        provisioner = Provisioner(provisioner_config)

        with patch.object(Provisioner, "populate") as mock_populate, patch.object(
            Provisioner, "fetch"
        ) as mock_fetch:
            result = provisioner.provision(
                ProvisionOptions(platform="linux", revision="499413")
            )

        assert result == local
        mock_populate.assert_not_called()
        mock_fetch.assert_not_called()
        assert len(responses.calls) == 0
        assert not provisioner_config.cache_root.exists()

    def test_probes_shared_cache_only_on_local_miss(self, provisioner_config):
        """Test the shared executable is never probed after a local hit."""
        local = populate_build(provisioner_config.install_root, PlatformTag.LINUX, "1")
        provisioner = Provisioner(provisioner_config)
        probed = []

        def fake_exists(path):
            probed.append(Path(path))
            return Path(path) == local

        with patch("chromiumkit.provisioner.exists", side_effect=fake_exists):
            provisioner.provision(ProvisionOptions(platform="linux", revision="1"))

        assert probed == [local]


class TestSharedHit:
    """The build is in the shared cache but not installed locally."""

    @responses.activate
    def test_mac_copies_from_shared_cache(self, provisioner_config):
        """Test a shared hit copies the build and returns the app bundle binary."""
        shared = populate_build(provisioner_config.cache_root, PlatformTag.MAC, "X")
        provisioner = Provisioner(provisioner_config)

        result = provisioner.provision(ProvisionOptions(platform="mac", revision="X"))

        expected = (
            provisioner_config.install_root
            / "chromium-mac-X/chrome-mac/Chromium.app/Contents/MacOS/Chromium"
        )
        assert result == expected
        assert result.read_bytes() == shared.read_bytes()
        assert (result.parent / "resources.pak").exists()
        assert len(responses.calls) == 0

    @unix_only
    def test_permission_fixed_after_copy(self, provisioner_config):
        """Test the local executable ends with mode 755 even if the source was 644."""
        shared = populate_build(provisioner_config.cache_root, PlatformTag.LINUX, "1")
        assert _mode(shared) == 0o644

        result = Provisioner(provisioner_config).provision(
            ProvisionOptions(platform="linux", revision="1")
        )

        assert _mode(result) == 0o755

    def test_no_fetch_on_shared_hit(self, provisioner_config):
        """Test fetch is skipped and populate runs exactly once."""
        populate_build(provisioner_config.cache_root, PlatformTag.WIN64, "7")
        provisioner = Provisioner(provisioner_config)

        with patch.object(Provisioner, "fetch") as mock_fetch, patch.object(
            Provisioner, "populate", autospec=True
        ) as mock_populate:
            provisioner.provision(ProvisionOptions(platform="win64", revision="7"))

        mock_fetch.assert_not_called()
        mock_populate.assert_called_once_with(provisioner, PlatformTag.WIN64, "7")


class TestFullMiss:
    """Nothing is cached: download, extract, clean up, copy."""

    @responses.activate
    def test_linux_scenario(self, provisioner_config, linux_zip):
        """Test the complete download path for linux r499413."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)
        provisioner = Provisioner(provisioner_config)

        result = provisioner.provision(
            ProvisionOptions(platform="linux", revision="499413")
        )

        assert len(responses.calls) == 1
        assert responses.calls[0].request.url == LINUX_URL

        cache_root = provisioner_config.cache_root
        assert (cache_root / "chromium-linux-499413/chrome-linux/chrome").exists()
        assert not (cache_root / "chromium-linux-499413.zip").exists()
        assert not (cache_root / "chromium-linux-499413.partial").exists()

        assert result == (
            provisioner_config.install_root / "chromium-linux-499413/chrome-linux/chrome"
        )
        assert result.read_bytes() == EXECUTABLE_CONTENT

    @unix_only
    @responses.activate
    def test_permission_fixed_after_download(self, provisioner_config, linux_zip):
        """Test the executable is 755 even though the archive stored 644."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)

        result = Provisioner(provisioner_config).provision(
            ProvisionOptions(platform="linux", revision="499413")
        )

        assert _mode(result) == 0o755

    @responses.activate
    def test_idempotent(self, provisioner_config, linux_zip):
        """Test a second call returns the same path without downloading."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)
        provisioner = Provisioner(provisioner_config)
        options = ProvisionOptions(platform="linux", revision="499413")

        first = provisioner.provision(options)
        with patch.object(Provisioner, "populate") as mock_populate:
            second = provisioner.provision(options)

        assert first == second
        assert len(responses.calls) == 1
        mock_populate.assert_not_called()

    @responses.activate
    def test_default_revision(self, provisioner_config, linux_zip):
        """Test the configured default revision is used when none is given."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)

        result = Provisioner(provisioner_config).provision(
            ProvisionOptions(platform="linux")
        )

        assert "chromium-linux-499413" in result.parts

    @responses.activate
    def test_integer_revision(self, provisioner_config, linux_zip):
        """Test integer revisions are treated as their string form."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)

        result = Provisioner(provisioner_config).provision(
            ProvisionOptions(platform="linux", revision=499413)
        )

        assert "chromium-linux-499413" in result.parts

    @responses.activate
    def test_host_platform_default(self, provisioner_config, linux_zip):
        """Test the detected host platform is used when none is given."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)

        with patch(
            "chromiumkit.provisioner.detect_platform", return_value=PlatformTag.LINUX
        ):
            result = Provisioner(provisioner_config).provision()

        assert "chromium-linux-499413" in result.parts

    @responses.activate
    def test_custom_url_template(self, provisioner_config, linux_zip):
        """Test configured templates replace the snapshot bucket."""
        mirror = "https://mirror.example.com/{revision}/linux.zip"
        provisioner_config.url_templates[PlatformTag.LINUX] = mirror
        responses.add(
            responses.GET, "https://mirror.example.com/5/linux.zip", body=linux_zip
        )

        Provisioner(provisioner_config).provision(
            ProvisionOptions(platform="linux", revision="5")
        )

        assert len(responses.calls) == 1

    @responses.activate
    def test_replaces_stale_shared_folder(self, provisioner_config, linux_zip):
        """Test a shared folder without an executable is replaced by the download."""
        stale = provisioner_config.cache_root / "chromium-linux-499413"
        stale.mkdir(parents=True)
        (stale / "leftover").write_text("x")
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)

        Provisioner(provisioner_config).provision(
            ProvisionOptions(platform="linux", revision="499413")
        )

        assert not (stale / "leftover").exists()
        assert (stale / "chrome-linux" / "chrome").exists()

    @responses.activate
    def test_without_lock(self, provisioner_config, linux_zip):
        """Test provisioning works with locking disabled."""
        provisioner_config.use_lock = False
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)

        Provisioner(provisioner_config).provision(
            ProvisionOptions(platform="linux", revision="499413")
        )

        assert not (provisioner_config.cache_root / "lock").exists()

    @responses.activate
    def test_concurrent_calls_download_once(self, provisioner_config, linux_zip):
        """Test two threads provisioning one build share a single download."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)
        options = ProvisionOptions(platform="linux", revision="499413")
        results = []
        errors = []

        def worker():
            try:
                results.append(Provisioner(provisioner_config).provision(options))
            except Exception as e:  # collected for the main thread
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(results) == 2 and results[0] == results[1]
        assert len(responses.calls) == 1


class TestNotices:
    """Start/done notices with log=True."""

    @responses.activate
    def test_notices_around_download(self, provisioner_config, linux_zip):
        """Test both notices are written on the download path."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)
        stream = io.StringIO()

        Provisioner(provisioner_config, notice_stream=stream).provision(
            ProvisionOptions(platform="linux", revision="499413", log=True)
        )

        assert stream.getvalue() == "Downloading Chromium r499413...Done!\n"

    @responses.activate
    def test_silent_by_default(self, provisioner_config, linux_zip):
        """Test no notices without log=True."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)
        stream = io.StringIO()

        Provisioner(provisioner_config, notice_stream=stream).provision(
            ProvisionOptions(platform="linux", revision="499413")
        )

        assert stream.getvalue() == ""

    def test_no_notice_on_cache_hit(self, provisioner_config):
        """Test cache hits stay quiet even with log=True."""
        populate_build(provisioner_config.cache_root, PlatformTag.LINUX, "1")
        stream = io.StringIO()

        Provisioner(provisioner_config, notice_stream=stream).provision(
            ProvisionOptions(platform="linux", revision="1", log=True)
        )

        assert stream.getvalue() == ""

    @responses.activate
    def test_default_stream_is_stderr(self, provisioner_config, linux_zip, capsys):
        """Test notices go to stderr, keeping stdout clean."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)

        Provisioner(provisioner_config).provision(
            ProvisionOptions(platform="linux", revision="499413", log=True)
        )

        captured = capsys.readouterr()
        assert "Downloading Chromium r499413..." in captured.err
        assert captured.out == ""


class TestFailures:
    """Validation and error propagation."""

    @responses.activate
    def test_unsupported_platform(self, provisioner_config):
        """Test plan9 fails before any filesystem or network access."""
        with pytest.raises(UnsupportedPlatformError, match="Unsupported platform: plan9"):
            Provisioner(provisioner_config).provision(ProvisionOptions(platform="plan9"))

        assert len(responses.calls) == 0
        assert not provisioner_config.cache_root.exists()
        assert not provisioner_config.install_root.exists()

    def test_unsupported_host(self, provisioner_config):
        """Test an undetectable host platform is reported."""
        with patch("chromiumkit.provisioner.detect_platform", return_value=None):
            with pytest.raises(UnsupportedPlatformError):
                Provisioner(provisioner_config).provision()

    def test_missing_url_template(self, provisioner_config):
        """Test fetch rejects a platform without a template."""
        del provisioner_config.url_templates[PlatformTag.WIN32]

        with pytest.raises(UnsupportedPlatformError, match="win32"):
            Provisioner(provisioner_config).provision(
                ProvisionOptions(platform="win32", revision="1")
            )

    @responses.activate
    def test_http_error_propagates(self, provisioner_config):
        """Test download errors reach the caller unwrapped."""
        responses.add(responses.GET, LINUX_URL, body=b"NoSuchKey", status=404)

        with pytest.raises(requests.HTTPError):
            Provisioner(provisioner_config).provision(
                ProvisionOptions(platform="linux", revision="499413")
            )

        assert not (provisioner_config.install_root / "chromium-linux-499413").exists()

    @responses.activate
    def test_corrupt_archive_propagates(self, provisioner_config):
        """Test extraction errors abort before anything is installed."""
        responses.add(responses.GET, LINUX_URL, body=b"not a zip", status=200)

        with pytest.raises(ArchiveExtractionError):
            Provisioner(provisioner_config).provision(
                ProvisionOptions(platform="linux", revision="499413")
            )

        assert not (provisioner_config.cache_root / "chromium-linux-499413").exists()
        assert not (provisioner_config.install_root / "chromium-linux-499413").exists()

    @responses.activate
    def test_archive_cleanup_failure_is_not_fatal(
        self, provisioner_config, linux_zip, caplog
    ):
        """Test a failed archive deletion is logged and provisioning succeeds."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)
        original_unlink = Path.unlink

        def failing_unlink(self, *args, **kwargs):
            if self.suffix == ".zip":
                raise PermissionError("file in use")
            return original_unlink(self, *args, **kwargs)

        with patch.object(Path, "unlink", failing_unlink):
            with caplog.at_level(logging.WARNING, logger="chromiumkit.provisioner"):
                result = Provisioner(provisioner_config).provision(
                    ProvisionOptions(platform="linux", revision="499413")
                )

        assert result.exists()
        assert "Failed to remove archive" in caplog.text

    @responses.activate
    def test_cache_root_creation_failure_is_swallowed(
        self, provisioner_config, linux_zip, caplog
    ):
        """Test a failing cache root mkdir does not stop the download."""
        responses.add(responses.GET, LINUX_URL, body=linux_zip, status=200)
        cache_root = provisioner_config.cache_root
        cache_root.mkdir(parents=True)
        real_mkdir = Path.mkdir

        def failing_mkdir(self, *args, **kwargs):
            if self == cache_root:
                raise PermissionError("read-only")
            return real_mkdir(self, *args, **kwargs)

        with caplog.at_level(logging.DEBUG, logger="chromiumkit.provisioner"):
            with patch.object(Path, "mkdir", failing_mkdir):
                result = Provisioner(provisioner_config).provision(
                    ProvisionOptions(platform="linux", revision="499413")
                )

        assert "Could not create cache root" in caplog.text
        assert len(responses.calls) == 1
        assert result.read_bytes() == EXECUTABLE_CONTENT

    def test_populate_without_shared_build(self, provisioner_config):
        """Test populate fails when the shared folder is missing."""
        with pytest.raises(FileNotFoundError):
            Provisioner(provisioner_config).populate(PlatformTag.LINUX, "1")


class TestClean:
    """Tests for Provisioner.clean()."""

    def test_removes_local_build(self, provisioner_config):
        populate_build(provisioner_config.install_root, PlatformTag.LINUX, "1")
        provisioner = Provisioner(provisioner_config)

        assert provisioner.clean(PlatformTag.LINUX, "1") is True
        assert not (provisioner_config.install_root / "chromium-linux-1").exists()

    def test_removes_shared_build(self, provisioner_config):
        populate_build(provisioner_config.cache_root, PlatformTag.MAC, "1")
        provisioner = Provisioner(provisioner_config)

        assert provisioner.clean(PlatformTag.MAC, "1", shared=True) is True
        assert not (provisioner_config.cache_root / "chromium-mac-1").exists()

    def test_nothing_to_remove(self, provisioner_config):
        assert Provisioner(provisioner_config).clean(PlatformTag.LINUX, "1") is False


class TestConvenienceFunction:
    """Tests for the module-level provision()."""

    def test_provision_function(self, provisioner_config):
        """Test the convenience wrapper returns the local executable."""
        populate_build(provisioner_config.cache_root, PlatformTag.WIN32, "9")

        result = provision(platform="win32", revision="9", config=provisioner_config)

        assert result == (
            provisioner_config.install_root / "chromium-win32-9/chrome-win32/chrome.exe"
        )
        assert result.exists()

    @pytest.mark.integration
    def test_real_download(self, tmp_path):
        """Test provisioning against the real snapshot bucket."""
        from chromiumkit.config import ProvisionerConfig

        config = ProvisionerConfig(
            cache_root=tmp_path / "cache", install_root=tmp_path / "install"
        )
        result = provision(platform="linux", config=config)

        assert result.exists()
