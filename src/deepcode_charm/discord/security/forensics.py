"""Forensic logging for security events.

Every event is emitted at WARNING so it lands in the error stream. The raw
content is hashed and only a short preview is kept.
"""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from typing import Any

from deepcode_charm.logging import get_logger

log = get_logger("deepcode_charm.discord.security.forensics")


def log_security_event(
    *,
    event_type: str,
    user_id: str | None,
    guild_id: str | None = None,
    content: str | None = None,
    **details: Any,
) -> None:
    """Log a detailed forensic record for a security event."""
    record: dict[str, Any] = {
        "event_type": event_type,
        "user_id": user_id,
        "guild_id": guild_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if content is not None:
        record["content_hash"] = hashlib.sha256(content.encode("utf-8")).hexdigest()
        record["content_length"] = len(content)
        record["content_preview"] = content[:200]
    record.update(details)

    log.warning("security_event", **record)
