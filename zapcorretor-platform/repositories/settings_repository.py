"""
Global settings repository.

Key/value platform settings managed by the superadmin (e.g. the automation
webhook every tenant instance reports to).
"""

from __future__ import annotations

from typing import Optional

from supabase import Client

_SETTINGS_TABLE: str = "global_settings"

N8N_WEBHOOK_URL_KEY: str = "n8n_webhook_url"


def get_global_setting(db: Client, key: str) -> Optional[str]:
    """
    Read a single global setting.

    Returns:
        The stored value, or None when the key is not configured.
    """

    response = (
        db.table(_SETTINGS_TABLE)
        .select("value")
        .eq("key", key)
        .limit(1)
        .execute()
    )

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch global setting {key!r}: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None

    value = rows[0].get("value")
    return str(value) if value else None


__all__ = ["N8N_WEBHOOK_URL_KEY", "get_global_setting"]
