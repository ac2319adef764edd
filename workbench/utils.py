"""Shared utility functions."""
import re
import uuid
from datetime import datetime, timezone

MAX_SLUG_LENGTH = 100


def gen_id(prefix: str = "") -> str:
    """Generate a short prefixed ID."""
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def now_ms() -> int:
    """Get current timestamp in milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def slugify(name: str) -> str:
    """Turn a display name into a URL-safe slug ("My Project!" -> "my-project")."""
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower())
    return slug.strip("-")[:MAX_SLUG_LENGTH]


def sanitize_name(name: str) -> str:
    """Reduce a name to the characters usable in a file or directory name."""
    cleaned = re.sub(r"[^A-Za-z0-9 _.-]+", "", name or "")
    return re.sub(r"\s+", "-", cleaned.strip()).strip("-.")
