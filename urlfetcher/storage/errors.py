"""Classification of store failures into transient and fatal."""

from __future__ import annotations

from typing import NoReturn

import structlog
from sqlalchemy import exc as sa_exc

from urlfetcher.exceptions import ServiceUnavailableError

logger = structlog.get_logger(__name__)

# SQLSTATE codes for conditions a caller should back off and retry
TRANSIENT_SQLSTATES = frozenset(
    {
        "08000",  # connection_exception
        "08001",  # sqlclient_unable_to_establish_sqlconnection
        "08003",  # connection_does_not_exist
        "08004",  # sqlserver_rejected_establishment_of_sqlconnection
        "08006",  # connection_failure
        "08007",  # transaction_resolution_unknown
        "40P01",  # deadlock_detected
        "55P03",  # lock_not_available
        "57014",  # query_canceled (statement timeout)
        "57P01",  # admin_shutdown
        "57P02",  # crash_shutdown
        "57P03",  # cannot_connect_now
    }
)

TRANSIENT_MESSAGE_MARKERS = ("timeout", "connection", "deadlock", "lock", "transaction")


def _sqlstate(error: BaseException) -> str | None:
    """Pull the SQLSTATE from a DBAPI error, whichever driver raised it."""
    for attr in ("sqlstate", "pgcode", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, str) and len(value) == 5:
            return value
    return None


def is_transient_db_error(error: BaseException) -> bool:
    """Return True for store errors that indicate a temporary outage."""
    if isinstance(error, sa_exc.DBAPIError):
        if error.connection_invalidated:
            return True
        code = _sqlstate(error.orig) if error.orig is not None else None
        if code in TRANSIENT_SQLSTATES:
            return True
        message = str(error.orig if error.orig is not None else error).lower()
        return any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS)
    if isinstance(error, sa_exc.TimeoutError | sa_exc.DisconnectionError):
        return True
    return isinstance(error, ConnectionError | TimeoutError)


def handle_database_error(error: Exception, context: str) -> NoReturn:
    """Re-raise ``error``, translated to ServiceUnavailableError when transient."""
    logger.error("database_error", context=context, error=str(error), error_type=type(error).__name__)
    if is_transient_db_error(error):
        raise ServiceUnavailableError() from error
    raise error
