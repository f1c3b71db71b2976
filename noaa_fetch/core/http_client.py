# ABOUTME: Shared HTTP plumbing for the NOAA service clients
# ABOUTME: Wraps a requests session with a User-Agent, rate limiting and logged failures

import logging
import time
from pathlib import Path
from typing import Dict, Optional

import requests

USER_AGENT = "noaa-fetch/0.1 (Research Application)"


class NOAAHTTPClient:
    """
    Base class for the service clients.

    Holds one ``requests.Session`` and spaces requests by
    ``min_request_interval`` seconds. Extra keyword arguments given to
    ``_make_request`` (``timeout``, ``proxies``, ...) go straight to requests.
    """

    default_timeout = 60

    def __init__(self, session: Optional[requests.Session] = None, min_request_interval: float = 0.1):
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

        # API rate limiting (be respectful)
        self.min_request_interval = min_request_interval
        self.last_request_time = 0

        self.logger = logging.getLogger(self.__class__.__module__)

    def _rate_limit(self):
        """Implement respectful rate limiting."""
        current_time = time.time()
        time_since_last = current_time - self.last_request_time

        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)

        self.last_request_time = time.time()

    def _make_request(
        self, url: str, params: Optional[Dict] = None, check: bool = True, **request_kwargs
    ) -> requests.Response:
        """
        Make a rate-limited GET request with error handling.

        Args:
            url: Endpoint URL
            params: Query parameters
            check: Raise for 4xx/5xx statuses when True
            **request_kwargs: Passed through to ``Session.get``

        Returns:
            Response object

        Raises:
            requests.RequestException: If the request fails
        """
        self._rate_limit()
        request_kwargs.setdefault("timeout", self.default_timeout)

        try:
            response = self.session.get(url, params=params, **request_kwargs)
            if check:
                response.raise_for_status()
            return response
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Request to {url} failed: {e}")
            raise

    def _get_text(self, url: str, params: Optional[Dict] = None, **request_kwargs) -> str:
        return self._make_request(url, params, **request_kwargs).text

    def _download(self, url: str, target, params: Optional[Dict] = None, **request_kwargs) -> requests.Response:
        """
        Stream a response body to ``target`` whatever its status.

        The caller decides what a bad status means; the file is left in place.
        A body that fails mid-stream leaves no file behind.
        """
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)

        response = self._make_request(url, params, check=False, stream=True, **request_kwargs)
        try:
            with open(target, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:  # filter out keep-alive chunks
                        f.write(chunk)
        except BaseException:
            target.unlink(missing_ok=True)
            self.logger.error(f"Download of {url} was interrupted; removed partial file {target}")
            raise
        return response

    def _cached_download(
        self, url: str, target, overwrite: bool = False, params: Optional[Dict] = None, **request_kwargs
    ) -> Path:
        """
        Return ``target``, downloading ``url`` into it unless it already exists.

        A non-200 response removes the partial file and raises ``requests.HTTPError``.
        """
        target = Path(target)
        if target.exists() and not overwrite:
            self.logger.info(f"Using cached file {target}")
            return target

        self.logger.info(f"Downloading {url} to {target}")
        response = self._download(url, target, params, **request_kwargs)
        if response.status_code != 200:
            target.unlink(missing_ok=True)
            self.logger.error(f"Download of {url} failed with status {response.status_code}")
            response.raise_for_status()
            raise requests.HTTPError(f"Unexpected status {response.status_code} for {url}", response=response)
        return target
