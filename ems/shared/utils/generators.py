"""Public identifier generators (event EIDs, organizer codes)."""

import secrets
import string
from datetime import datetime

from ems.shared.utils.datetime import utc_now

_BASE36 = string.digits + string.ascii_uppercase

_rng = secrets.SystemRandom()


def to_base36(value: int) -> str:
    """Encode a non-negative integer in upper-case base 36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
        if value == 0:
            return "".join(reversed(digits))


def _random_suffix(length: int) -> str:
    return "".join(_rng.choice(_BASE36) for _ in range(length))


def generate_eid(now: datetime | None = None) -> str:
    """Generate a public event id: EV-<base36 epoch millis>-<3 random chars>.

    Args:
        now: Creation instant; defaults to utc_now().

    Returns:
        Upper-case id such as "EV-M7Q2K1ZC-4XF".
    """
    millis = int((now or utc_now()).timestamp() * 1000)
    return f"EV-{to_base36(millis)}-{_random_suffix(3)}"


def generate_organizer_code() -> str:
    """Generate an organizer code of the form ORG-XXXXXX."""
    return f"ORG-{_random_suffix(6)}"
