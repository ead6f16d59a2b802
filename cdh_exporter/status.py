"""Mapping of Cloudera Manager health tokens to ordinal gauge values."""

import logging
from enum import IntEnum

logger = logging.getLogger(__name__)


class StatusOrdinal(IntEnum):
    """Ordinal scale exported for every health summary and health check.

    Lower is healthier. UNKNOWN is reserved for tokens outside the
    vocabulary the upstream API documents.
    """

    GOOD = 0
    DISABLED = 1
    HISTORY_NOT_AVAILABLE = 2
    NOT_AVAILABLE = 3
    CONCERNING = 4
    BAD = 5
    UNKNOWN = 6


# Rendered into every health family's help text
STATUS_SCALE_HELP = ", ".join(f"{s.name}: {s.value}" for s in StatusOrdinal)


def status_ordinal(token: str) -> int:
    """Map a health token to its ordinal value.

    Args:
        token: Status token as reported upstream (e.g. "GOOD", "BAD")

    Returns:
        The ordinal for known tokens, StatusOrdinal.UNKNOWN otherwise
    """
    member = StatusOrdinal.__members__.get(token)
    if member is not None and member is not StatusOrdinal.UNKNOWN:
        return int(member)

    logger.warning(f"Unknown health status token: {token!r}")
    return int(StatusOrdinal.UNKNOWN)
