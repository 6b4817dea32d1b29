from __future__ import annotations

import re


SESSION_PREFIX = "levanter_"

_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


def sanitize(name: str) -> str:
    # Empty output is allowed; callers do not special-case it.
    return _UNSAFE.sub("", name or "")


def session_id(sanitized: str) -> str:
    return f"{SESSION_PREFIX}{sanitized}"
