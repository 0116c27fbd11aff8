"""Error taxonomy and classification for the fetch pipeline."""

import logging
from enum import Enum
from typing import Optional

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)


class ApiErrorReason(Enum):
    """Classified reason attached to a degraded result."""
    NOT_AUTHENTICATED = "not_authenticated"
    API_DISABLED = "youtube_api_disabled"
    NO_RESULTS = "no_results"
    UNKNOWN = "unknown"


class LunchTubeError(Exception):
    """Base class for errors raised by LunchTube services."""

    reason = ApiErrorReason.UNKNOWN


class NotAuthenticatedError(LunchTubeError):
    """Raised when no usable Google credential is available."""

    reason = ApiErrorReason.NOT_AUTHENTICATED


class ApiDisabledError(LunchTubeError):
    """Raised when YouTube rejects a call with a permission/activation error."""

    reason = ApiErrorReason.API_DISABLED


class MetadataServiceError(LunchTubeError):
    """Raised for any other transport or status failure of the metadata service."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def error_from_http(error: HttpError, operation: str) -> LunchTubeError:
    """Translate a googleapiclient HttpError into the LunchTube hierarchy."""
    status = getattr(error.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None

    if status == 401:
        return NotAuthenticatedError(f"{operation} rejected credential: {error}")
    if status == 403:
        return ApiDisabledError(f"{operation} forbidden: {error}")
    return MetadataServiceError(f"{operation} failed: {error}", status=status)


def classify_error(error: BaseException) -> ApiErrorReason:
    """Map any exception raised by an orchestration onto the taxonomy."""
    if isinstance(error, LunchTubeError):
        return error.reason
    if isinstance(error, RefreshError):
        return ApiErrorReason.NOT_AUTHENTICATED
    if isinstance(error, HttpError):
        return error_from_http(error, "request").reason
    return ApiErrorReason.UNKNOWN
