"""Redact sensitive data from structured logs. Never log AWS credentials, presign signatures, cookies or secrets."""
import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Keys (case-insensitive) that must be redacted in dicts and query strings
REDACT_KEYS = frozenset({
    "secret", "token", "authorization", "cookie", "signature", "credential",
    "x-amz-security-token", "aws_secret_access_key", "metrics_secret",
})


def _redact_key(key: str) -> bool:
    k = key.lower()
    return any(r in k for r in REDACT_KEYS)


def redact_for_log(obj: Any) -> Any:
    """Return a copy of obj safe for logging: sensitive keys replaced with '[REDACTED]'."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if _redact_key(k) else redact_for_log(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact_for_log(x) for x in obj)
    if isinstance(obj, str) and _looks_like_secret(obj):
        return "[REDACTED]"
    return obj


def redact_url(url: str | None) -> str | None:
    """Strip signature/credential query params from a (presigned) URL; keep expiry params for debugging."""
    if not url:
        return url
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (k, "[REDACTED]" if _redact_key(k) else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="[]:")))


def _looks_like_secret(s: str) -> bool:
    """Heuristic: AWS access key ids and bearer tokens."""
    if re.match(r"^(AKIA|ASIA)[A-Z0-9]{16}$", s):
        return True
    if s.lower().startswith("bearer "):
        return True
    return False
