# attendancr/tools/security.py

import re
import logging

from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)

_PIN_PATTERN = re.compile(r"^[0-9]{6}$")


def is_valid_pin(pin) -> bool:
    """A kiosk PIN is exactly six ASCII digits."""
    return isinstance(pin, str) and bool(_PIN_PATTERN.match(pin))


def hash_secret(secret: str) -> str:
    """Salted hash for PINs and admin passwords."""
    return generate_password_hash(secret)


def verify_secret(secret: str, secret_hash: str) -> bool:
    """
    Checks a PIN or password against a stored hash.
    Placeholder or corrupted hashes never match.
    """
    try:
        return check_password_hash(secret_hash, secret)
    except (ValueError, TypeError):
        logger.warning("Stored credential hash could not be parsed; treating as non-matching.")
        return False


hash_pin = hash_secret
verify_pin = verify_secret
