# ABOUTME: Unit tests for settings resolution, the disk cache and the shared HTTP client
# ABOUTME: Covers config precedence, cache keys/clearing, file info and download failure handling

import json
import logging

import pytest
import requests

from noaa_fetch.core import config_loader
from noaa_fetch.core.cache import cache_get, cache_key, clear_cache, disk, file_info, memory, normalize_fmt, write_path
from noaa_fetch.core.http_client import USER_AGENT, NOAAHTTPClient
from noaa_fetch.utils.logging_config import setup_main_logger


class TestSettings:
    """Tests for configuration precedence"""

    @pytest.mark.unit
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("NOAA_FETCH_CACHE_DIR")
        settings = config_loader.get_settings()

        assert settings["cache_dir"] == str(config_loader.DEFAULT_CACHE_ROOT)
        assert settings["erddap_url"] == config_loader.DEFAULT_ERDDAP_URL
        assert settings["noaa_key"] is None

    @pytest.mark.unit
    def test_precedence(self, monkeypatch, tmp_path):
        config_file = tmp_path / "noaa_fetch.json"
        config_file.write_text(json.dumps({"erddap_url": "https://file.example/erddap", "noaa_key": "from-file"}))
        monkeypatch.setenv(config_loader.CONFIG_ENV_VAR, str(config_file))

        assert config_loader.get_settings()["noaa_key"] == "from-file"

        monkeypatch.setenv("NOAA_KEY", "from-env")
        assert config_loader.get_settings()["noaa_key"] == "from-env"
        assert config_loader.get_settings()["erddap_url"] == "https://file.example/erddap"

        config_loader.set_option("noaa_key", "from-session")
        assert config_loader.get_settings()["noaa_key"] == "from-session"

    @pytest.mark.unit
    def test_unreadable_config_file_is_ignored(self, monkeypatch, tmp_path, caplog):
        monkeypatch.setenv(config_loader.CONFIG_ENV_VAR, str(tmp_path / "missing.json"))

        with caplog.at_level(logging.WARNING):
            settings = config_loader.get_settings()

        assert settings["erddap_url"] == config_loader.DEFAULT_ERDDAP_URL
        assert "Ignoring unreadable config file" in caplog.text

    @pytest.mark.unit
    def test_load_config_returns_none_on_bad_json(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        assert config_loader.load_config(bad) is None

    @pytest.mark.unit
    def test_erddap_url_gets_trailing_slash(self, monkeypatch):
        monkeypatch.setenv("ERDDAP_URL", "https://coastwatch.pfeg.noaa.gov/erddap")
        assert config_loader.get_erddap_url() == "https://coastwatch.pfeg.noaa.gov/erddap/"

    @pytest.mark.unit
    def test_cache_dir(self, tmp_path):
        assert config_loader.get_cache_dir("ghcnd") == tmp_path / "cache" / "ghcnd"
        assert config_loader.get_cache_dir("ghcnd", tmp_path / "elsewhere") == tmp_path / "elsewhere"


class TestCache:
    """Tests for the response file cache"""

    @pytest.mark.unit
    def test_stores(self, tmp_path):
        assert disk().path == tmp_path / "cache" / "erddap"
        assert disk(tmp_path, overwrite=True).overwrite is True
        assert memory().store == "memory"
        assert memory().path is None

    @pytest.mark.unit
    def test_key_is_deterministic(self):
        url = "https://example.org/erddap/griddap/air.csv"
        assert cache_key(url, "air[(1):1:(2)]") == cache_key(url, "air[(1):1:(2)]")
        assert cache_key(url, "air[(1):1:(2)]") != cache_key(url, "air[(1):1:(3)]")
        assert len(cache_key(url, "")) == 32

    @pytest.mark.unit
    def test_write_path_uses_extension(self, tmp_path):
        path = write_path(tmp_path, "u", "a", "ncdf")
        assert path.parent == tmp_path
        assert path.suffix == ".nc"

    @pytest.mark.unit
    def test_normalize_fmt(self):
        assert normalize_fmt("csv") == "csv"
        assert normalize_fmt("nc") == "nc"
        with pytest.raises(ValueError):
            normalize_fmt("json")

    @pytest.mark.unit
    def test_cache_get(self, tmp_path):
        assert cache_get(tmp_path, "u", "a", "csv") is None
        write_path(tmp_path, "u", "a", "csv").write_text("x")
        assert cache_get(tmp_path, "u", "a", "csv") == write_path(tmp_path, "u", "a", "csv")

    @pytest.mark.unit
    def test_clear_cache(self, tmp_path):
        for name in ("a.csv", "b.csv", "c.nc"):
            (tmp_path / name).write_text("x")

        assert clear_cache(tmp_path, pattern="*.csv") == 2
        assert clear_cache(tmp_path) == 1
        assert clear_cache(tmp_path / "never-created") == 0

    @pytest.mark.unit
    def test_file_info_sizes(self, tmp_path):
        small = tmp_path / "small.csv"
        small.write_bytes(b"x" * 5000)
        large = tmp_path / "large.csv"
        large.write_bytes(b"x" * 2500000)

        assert file_info(small)["size"] == "5.0 KB"
        assert file_info(large)["size"] == "2.5 MB"
        assert file_info(small)["mtime"].year >= 2000


class TestHTTPClient:
    """Tests for the shared request plumbing"""

    @pytest.fixture
    def http(self, mock_session):
        return NOAAHTTPClient(session=mock_session, min_request_interval=0)

    @pytest.mark.unit
    def test_user_agent_and_timeout(self, http, mock_session, response):
        mock_session.get.return_value = response(text="ok")

        assert http._get_text("https://example.org/x", {"a": 1}) == "ok"
        mock_session.headers.update.assert_called_with({"User-Agent": USER_AGENT})
        assert mock_session.get.call_args[1]["timeout"] == NOAAHTTPClient.default_timeout
        assert mock_session.get.call_args[1]["params"] == {"a": 1}

    @pytest.mark.unit
    def test_request_errors_are_logged_and_raised(self, http, mock_session, caplog):
        mock_session.get.side_effect = requests.exceptions.ConnectionError("no route")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(requests.exceptions.ConnectionError):
                http._make_request("https://example.org/x")

        assert "Request to https://example.org/x failed" in caplog.text

    @pytest.mark.unit
    def test_cached_download(self, http, mock_session, response, tmp_path):
        mock_session.get.return_value = response(content=b"payload")
        target = tmp_path / "sub" / "file.txt"

        assert http._cached_download("https://example.org/f", target) == target
        assert http._cached_download("https://example.org/f", target) == target
        assert target.read_bytes() == b"payload"
        assert mock_session.get.call_count == 1

        http._cached_download("https://example.org/f", target, overwrite=True)
        assert mock_session.get.call_count == 2

    @pytest.mark.unit
    def test_failed_download_removes_file(self, http, mock_session, response, tmp_path):
        mock_session.get.return_value = response(status_code=404, content=b"Not Found")
        target = tmp_path / "file.txt"

        with pytest.raises(requests.HTTPError):
            http._cached_download("https://example.org/f", target)

        assert not target.exists()

    @pytest.mark.unit
    def test_interrupted_download_leaves_no_cache_file(
        self, http, mock_session, interrupted_response, response, tmp_path
    ):
        mock_session.get.return_value = interrupted_response
        target = tmp_path / "file.txt"

        with pytest.raises(requests.exceptions.ChunkedEncodingError):
            http._cached_download("https://example.org/f", target)

        assert not target.exists()

        # The next call fetches again instead of reading a truncated file
        mock_session.get.return_value = response(content=b"payload")
        assert http._cached_download("https://example.org/f", target).read_bytes() == b"payload"
        assert mock_session.get.call_count == 2


class TestLogging:
    """Tests for the command line logger setup"""

    @pytest.mark.unit
    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "noaa_fetch.log"
        root = setup_main_logger(log_file, logging.WARNING)

        try:
            assert log_file.exists()
            assert len(root.handlers) == 2
            assert root.handlers[0].level == logging.WARNING
            assert logging.getLogger("urllib3").level == logging.WARNING
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
