"""Exponential backoff shared by reconnects and delivery retries."""


def exponential_backoff(attempt: int, base_delay: float, max_exponent: int) -> float:
    """Return ``base_delay * 2 ** min(attempt, max_exponent)``.

    Args:
        attempt: Number of consecutive failures so far (0 = first retry)
        base_delay: Delay for the first retry in seconds
        max_exponent: Cap on the exponent, bounding the maximum delay

    Returns:
        Delay in seconds
    """
    exponent = min(max(attempt, 0), max(max_exponent, 0))
    return base_delay * (2**exponent)
