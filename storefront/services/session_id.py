import secrets
import string
import time
from typing import MutableMapping

SESSION_STORAGE_KEY = "cart_session_id"

_ALPHABET = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_session_id() -> str:
    """Random base-36 suffix followed by the current time in base 36."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(11))
    return suffix + _to_base36(int(time.time() * 1000))


def ensure_session_id(storage: MutableMapping[str, str], key: str = SESSION_STORAGE_KEY) -> str:
    """Return the session id held in ``storage``, creating and storing one if absent."""
    session_id = storage.get(key)
    if not session_id:
        session_id = generate_session_id()
        storage[key] = session_id
    return session_id
