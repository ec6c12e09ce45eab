"""
Supabase client initialization.

This module contains *only* the database connection setup. The client is
built on first use and cached, so importing repositories never requires
credentials (tests inject their own client).

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Service role key. The instance columns of `profiles` are
  written by the backend only, so this must never be the anon key.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from supabase import Client, create_client

# Look for .env in the zapcorretor-platform directory
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Return the process-wide Supabase client."""

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase service role key."
        )

    return create_client(supabase_url, supabase_key)


def get_service_role_key() -> str | None:
    """Key internal callers present to act on behalf of another user."""

    return os.getenv("SUPABASE_KEY")


__all__ = ["get_supabase", "get_service_role_key"]
