"""
Supabase access for services.

The service-role key bypasses row level security, so services that act for
a player check ownership themselves (see ReactionService.authorize).
"""

from typing import Optional

from supabase import Client, create_client

from flick.core.config import get_settings

_supabase_client: Optional[Client] = None


def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        settings = get_settings()
        _supabase_client = create_client(settings.supabase_url, settings.supabase_service_role_key)
    return _supabase_client


def _reset_supabase() -> None:
    global _supabase_client
    _supabase_client = None
