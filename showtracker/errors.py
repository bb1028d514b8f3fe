"""
errors — Exception taxonomy shared by the catalog client, sync store and web layer.
"""
from __future__ import annotations


class ShowTrackerError(Exception):
    """Base exception for showtracker."""

    code = "SHOWTRACKER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": True, "code": self.code, "message": self.message}


class CatalogError(ShowTrackerError):
    """A catalog fetch failed and no cached copy could stand in for it."""

    code = "FETCH_FAILED"


class MissingCredential(CatalogError):
    code = "MISSING_CREDENTIAL"

    def __init__(self, message: str = "Watchmode API key is missing. Configure it in the settings."):
        super().__init__(message)


class UpstreamError(CatalogError):
    """Transport failure: connection error, timeout or HTTP error status."""

    code = "UPSTREAM_ERROR"


class DecodeError(CatalogError):
    code = "DECODE_ERROR"

    def __init__(self, message: str = "Failed to decode API response JSON."):
        super().__init__(message)


class ApiError(CatalogError):
    """The API answered with an embedded error object (quota, bad id, ...)."""

    code = "API_ERROR"

    def __init__(self, api_code, api_message):
        self.api_code = api_code
        self.api_message = api_message
        super().__init__(f"API Error: {api_code} - {api_message}")


class NotTracked(ShowTrackerError):
    code = "NOT_TRACKED"

    def __init__(self, user_id: int, title_id: int):
        self.user_id = user_id
        self.title_id = title_id
        super().__init__("Show must be added to tracker first.")


class InvalidParameters(ShowTrackerError):
    code = "INVALID_PARAMETERS"
