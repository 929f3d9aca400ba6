# attendancr/tools/link_codes.py

import secrets

# I, O, 0 and 1 are left out so a code can be read aloud or copied by hand.
LINK_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
LINK_CODE_LENGTH = 6


def generate_link_code(length: int = LINK_CODE_LENGTH) -> str:
    return "".join(secrets.choice(LINK_CODE_ALPHABET) for _ in range(length))


def build_deep_link(bot_username: str, code: str) -> str:
    """Telegram deep link that opens the bot and sends '/start <code>'."""
    return f"https://t.me/{bot_username}?start={code}"
