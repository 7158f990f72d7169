"""
Classification of provider failures into the stable ErrorKind taxonomy.

Classification walks an ordered table of (predicate, ErrorKind) pairs and
returns the first match. The last row always matches, so every failure maps
to exactly one kind.
"""

from typing import Callable, Optional

from ..models import ErrorKind, ProviderFailure

NETWORK_MARKERS = (
    "connection",
    "connect error",
    "failed to connect",
    "network",
    "name resolution",
    "fetch failed",
)
TIMEOUT_MARKERS = ("timeout", "timed out")
AUTH_MARKERS = ("unauthorized", "forbidden", "authentication", "invalid api key", "api key not configured")
RATE_LIMIT_MARKERS = ("rate limit", "too many requests")

Predicate = Callable[[ProviderFailure], bool]


def _message(failure: ProviderFailure) -> str:
    return failure.raw_message.lower()


def _has_marker(failure: ProviderFailure, markers: tuple[str, ...]) -> bool:
    text = _message(failure)
    return any(marker in text for marker in markers)


def _status_in(*codes: int) -> Predicate:
    return lambda failure: failure.status_code in codes


def _is_network(failure: ProviderFailure) -> bool:
    if failure.transport == "network":
        return True
    # Message markers only apply when nothing more specific is known
    return (
        failure.transport is None
        and failure.status_code is None
        and _has_marker(failure, NETWORK_MARKERS)
        and not _has_marker(failure, TIMEOUT_MARKERS)
    )


def _is_timeout(failure: ProviderFailure) -> bool:
    if failure.transport == "timeout":
        return True
    return failure.status_code is None and _has_marker(failure, TIMEOUT_MARKERS)


def _is_auth(failure: ProviderFailure) -> bool:
    return failure.status_code in (401, 403) or (
        failure.status_code is None and _has_marker(failure, AUTH_MARKERS)
    )


def _is_rate_limited(failure: ProviderFailure) -> bool:
    return failure.status_code == 429 or (
        failure.status_code is None and _has_marker(failure, RATE_LIMIT_MARKERS)
    )


def _is_server_error(failure: ProviderFailure) -> bool:
    return failure.status_code is not None and 500 <= failure.status_code <= 599


def _has_message(failure: ProviderFailure) -> bool:
    return bool(failure.error)


CLASSIFICATION_TABLE: tuple[tuple[Predicate, ErrorKind], ...] = (
    (_is_network, ErrorKind.NETWORK_ERROR),
    (_is_timeout, ErrorKind.TIMEOUT),
    (_is_auth, ErrorKind.AUTH_ERROR),
    (_is_rate_limited, ErrorKind.RATE_LIMITED),
    (_status_in(400), ErrorKind.BAD_REQUEST),
    (_status_in(422), ErrorKind.UNPROCESSABLE_ENTITY),
    (_is_server_error, ErrorKind.UPSTREAM_SERVER_ERROR),
    (_has_message, ErrorKind.API_ERROR),
    (lambda failure: True, ErrorKind.UNKNOWN),
)


def classify(failure: Optional[ProviderFailure]) -> ErrorKind:
    """
    Map a raw provider failure to its ErrorKind.

    Args:
        failure: The uninterpreted failure, or None when nothing is known

    Returns:
        The first matching ErrorKind from CLASSIFICATION_TABLE

    Examples:
        >>> classify(ProviderFailure(status_code=429, body="slow down"))
        <ErrorKind.RATE_LIMITED: 'RATE_LIMITED'>

        >>> classify(ProviderFailure())
        <ErrorKind.UNKNOWN: 'UNKNOWN'>
    """
    if failure is None:
        return ErrorKind.UNKNOWN

    for predicate, kind in CLASSIFICATION_TABLE:
        if predicate(failure):
            return kind

    return ErrorKind.UNKNOWN
