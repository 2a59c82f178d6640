"""
Caller authorization.

The bot is private: only Telegram user ids listed in AUTHORIZED_TELEGRAM_IDS
may run commands. An empty list denies everyone.
"""

from typing import AbstractSet, Union

# Shared by "not on the list" and "no list configured".
UNAUTHORIZED_MESSAGE = "⛔ Unauthorized. This bot is private or not configured for your account."


def is_authorized(caller_id: Union[int, str], allow_list: AbstractSet[str]) -> bool:
    if not allow_list:
        return False
    return str(caller_id).strip() in allow_list
