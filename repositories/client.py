"""
Supabase client initialization.

This module contains *only* the remote connection setup. The async client is
created lazily on first use so the engine can start (and keep working from
local storage) without credentials or connectivity.

Environment variables required for remote access:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (anon key for client sessions)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import AsyncClient, acreate_client  # type: ignore[import-not-found]

# Load environment variables from the project's .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_client: Optional[AsyncClient] = None


async def get_supabase() -> AsyncClient:
    """Return the shared async Supabase client, creating it on first call."""

    global _client
    if _client is not None:
        return _client

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
            "Set SUPABASE_KEY to your Supabase API key."
        )

    _client = await acreate_client(supabase_url, supabase_key)
    return _client


__all__ = ["get_supabase"]
