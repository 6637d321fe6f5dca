"""Short, human-shareable device codes."""

import secrets

# No 0/O, 1/I look-alikes.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6


def make_device_code(length: int = CODE_LENGTH) -> str:
    """Draw a random device code, e.g. ``K7QX2M``."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
