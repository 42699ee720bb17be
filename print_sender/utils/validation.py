"""Validation utilities for Print Sender.

Connection parameters and tunables pass through these before they reach
the serial port or the session thread.
"""

from typing import Optional

from .constants import VALID_BAUD_RATES
from .exceptions import InvalidParameterError, InvalidRangeError


def validate_port_name(port: str) -> str:
    """Validate serial port name.

    Args:
        port: Serial port name (e.g., "COM3" or "/dev/ttyUSB0")

    Returns:
        The validated port name

    Raises:
        InvalidParameterError: If port name is invalid
    """
    if not port or not isinstance(port, str):
        raise InvalidParameterError("port", port, "must be non-empty string")

    port = port.strip()
    if not port:
        raise InvalidParameterError("port", port, "must be non-empty")

    return port


def validate_baud_rate(baud: int) -> int:
    """Validate baud rate.

    Args:
        baud: Baud rate value

    Returns:
        The validated baud rate

    Raises:
        InvalidParameterError: If baud rate is invalid
    """
    try:
        baud = int(baud)
    except (TypeError, ValueError):
        raise InvalidParameterError("baud_rate", baud, "must be integer")

    if baud not in VALID_BAUD_RATES:
        raise InvalidParameterError(
            "baud_rate",
            baud,
            f"must be one of {list(VALID_BAUD_RATES)}"
        )

    return baud


def validate_interval(interval: float, min_val: float = 0.0) -> float:
    """Validate time interval.

    Args:
        interval: Time interval in seconds
        min_val: Minimum allowed value (default 0.0)

    Returns:
        The validated interval

    Raises:
        InvalidParameterError: If interval is invalid
    """
    try:
        interval = float(interval)
    except (TypeError, ValueError):
        raise InvalidParameterError("interval", interval, "must be numeric")

    if interval < min_val:
        raise InvalidParameterError(
            "interval",
            interval,
            f"must be >= {min_val}"
        )

    return interval


def validate_timeout(timeout: float) -> float:
    """Validate a wait timeout, which must be strictly positive.

    A zero timeout would expire on the first empty read.
    """
    timeout = validate_interval(timeout)
    if timeout <= 0:
        raise InvalidParameterError("timeout", timeout, "must be > 0")
    return timeout


def validate_attempt_limit(
    limit: Optional[int],
    max_val: int = 1_000_000
) -> Optional[int]:
    """Validate a retry ceiling.

    ``None`` and ``0`` both mean unbounded and normalize to ``None``.

    Raises:
        InvalidParameterError: If the limit is not an integer
        InvalidRangeError: If the limit is negative or absurdly large
    """
    if limit is None:
        return None
    if isinstance(limit, bool):
        raise InvalidParameterError("max_attempts", limit, "must be integer")
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise InvalidParameterError("max_attempts", limit, "must be integer")
    if limit == 0:
        return None
    if limit < 0 or limit > max_val:
        raise InvalidRangeError(limit, 0, max_val)
    return limit
