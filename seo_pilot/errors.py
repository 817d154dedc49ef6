# seo_pilot/errors.py

from typing import Optional


class SeoPilotError(Exception):
    """Base class for every error seo-pilot raises on purpose."""


class ConfigError(SeoPilotError):
    """Config file missing, unparsable, invalid, or referencing unset env vars."""


class AuthError(SeoPilotError):
    """Service-account credentials could not be read or used."""


class ApiError(SeoPilotError):
    """
    A remote API answered with a non-success status.

    `status` is None when the failure happened before any HTTP status was
    available (e.g. the response body could not be decoded).
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
