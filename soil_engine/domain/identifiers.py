from __future__ import annotations

import random
import uuid


_UUID_TEMPLATE = "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx"


def _manual_uuid4() -> str:
    chars = []
    for character in _UUID_TEMPLATE:
        if character == "x":
            chars.append(format(random.randrange(16), "x"))
        elif character == "y":
            # variant nibble: 8, 9, a or b
            chars.append(format((random.randrange(16) & 0x3) | 0x8, "x"))
        else:
            chars.append(character)
    return "".join(chars)


def generate_uuid() -> str:
    """Random v4 UUID; falls back to a hex template when os.urandom is unavailable."""
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        return _manual_uuid4()
