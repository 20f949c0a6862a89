"""TaskDesk authentication module."""

from taskdesk.auth.context import Caller
from taskdesk.auth.passwords import hash_password, verify_password
from taskdesk.auth.token import create_access_token, decode_access_token

__all__ = [
    "Caller",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "verify_password",
]
