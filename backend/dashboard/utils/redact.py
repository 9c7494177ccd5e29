"""Mask credential values for display and redact secrets from free text before logging."""
import re
from typing import Dict, Iterable, Optional

MASK = "********"

SK_PATTERN = re.compile(r"sk-[a-zA-Z0-9-_]{20,}", re.IGNORECASE)
# Generic env-like key=value where value looks like a key
ENV_SECRET_PATTERN = re.compile(
    r"(\b(?:api[_-]?key|secret|password|token)\s*[:=]\s*[\"']?)([a-zA-Z0-9-_]{20,})([\"']?)",
    re.IGNORECASE,
)


def mask_value(value: Optional[str]) -> str:
    # Fixed-width mask so the secret's length is not exposed
    if not value:
        return ""
    return MASK


def mask_fields(fields: Dict[str, str], secret_fields: Iterable[str]) -> Dict[str, str]:
    secret = set(secret_fields)
    return {
        name: mask_value(value) if name in secret else value
        for name, value in fields.items()
    }


def redact_secrets(text: Optional[str]) -> str:
    if not text:
        return ""
    out = SK_PATTERN.sub("sk-***REDACTED***", text)
    out = ENV_SECRET_PATTERN.sub(r"\g<1>***REDACTED***\g<3>", out)
    return out
