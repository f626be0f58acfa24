"""Note id and delete-token generation.

Both values come from the OS CSPRNG; a predictable id allows note
enumeration and a predictable token hands out delete authority.
"""

import base64
import re
import secrets
import uuid

NOTE_ID_LENGTH = 22
DELETE_TOKEN_LENGTH = 32

ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{22}$")


def new_id() -> str:
    """22-char base64url id from the 128 bits of a random UUID."""
    return base64.urlsafe_b64encode(uuid.uuid4().bytes).decode().rstrip("=")


def new_delete_token() -> str:
    # 24 random bytes encode to exactly 32 base64url chars
    return secrets.token_urlsafe(24)[:DELETE_TOKEN_LENGTH]


def is_valid_id(value: object) -> bool:
    return isinstance(value, str) and ID_PATTERN.fullmatch(value) is not None


def is_valid_delete_token(value: object) -> bool:
    """Exactly 32 chars. The charset is not checked so any syntactically
    plausible token reaches the conditional delete and fails there."""
    return isinstance(value, str) and len(value) == DELETE_TOKEN_LENGTH
