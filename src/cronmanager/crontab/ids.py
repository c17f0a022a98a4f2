"""Time-ordered job identifiers.

IDs look like ``20240215-163045-a1b2c3``: local creation time followed by a
random lowercase suffix, so they sort by creation time and stay readable
in the crontab file.
"""

import secrets
import string
from datetime import datetime

_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_job_id(random_length: int = 6, now: datetime | None = None) -> str:
    """Generate a new job ID.

    Args:
        random_length: Length of the random suffix.
        now: Timestamp to embed (defaults to local now).

    Returns:
        ID in ``YYYYMMDD-HHMMSS-<suffix>`` form.
    """
    now = now or datetime.now()
    return f"{now:%Y%m%d-%H%M%S}-{_random_suffix(random_length)}"
