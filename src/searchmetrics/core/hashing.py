"""
Content hashing for derived lookup keys.

Click-buoy counters are not linked to a query through a stored foreign key.
Their key is a one-way hash of the query text, so whoever needs the key
recomputes it from the text::

    counter_key("wp_swpext_metrics_click_buoy", "hello")
    → "wp_swpext_metrics_click_buoy_5d41402abc4b2a76b9719d911017c592"

The hash is MD5 rendered as 32 lowercase hex characters (128 bits), the
format existing click-buoy keys were written with. Nothing here is cached:
both helpers are pure functions of their arguments.

Tags:
    hashing, derived-key, click-buoy, searchmetrics
"""

import hashlib
from collections.abc import Callable

KeyFunction = Callable[[str], str]


def content_hash(text: str) -> str:
    """
    Compute the 128-bit content hash of *text* as lowercase hex.

    Examples:
        >>> content_hash("hello")
        '5d41402abc4b2a76b9719d911017c592'

    Args:
        text: Query text (hashed as UTF-8)

    Returns:
        32-char lowercase hex string
    """
    return hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest()


def counter_key(prefix: str, text: str, key_fn: KeyFunction = content_hash) -> str:
    """
    Derive the click-buoy key for a query.

    Args:
        prefix: Counter prefix (``<table_prefix>click_buoy``)
        text: Query text
        key_fn: Content hash function (defaults to :func:`content_hash`)

    Returns:
        ``"<prefix>_<key_fn(text)>"``
    """
    return f"{prefix}_{key_fn(text)}"
