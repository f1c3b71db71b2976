# ABOUTME: Exception types raised by the NOAA data clients
# ABOUTME: Request failures from requests itself propagate unchanged


class NOAAFetchError(Exception):
    """Base class for errors raised by noaa_fetch."""


class ConfigurationError(NOAAFetchError):
    """A required setting (e.g. an API token) is missing."""


class ERDDAPRequestError(NOAAFetchError):
    """ERDDAP returned a non-success status or an error page."""

    def __init__(self, message, status_code=None, url=None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class NCDCLegacyError(NOAAFetchError):
    """The NCDC Legacy API answered with an error message."""
