"""
Supabase client factories.

The anon client is shared for table access and ownership is checked in the
services. It never holds a user session: sign in, sign up and sign out run on a
fresh client each time so auth state never crosses requests.
"""
from supabase import create_client, Client, ClientOptions
from curated_discoveries.config import settings
from typing import Optional


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        """Shared anon-key client. Never call auth sign-in methods on it."""
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Optional[Client]:
        """Client with service_role key; bypasses RLS. Needed for auth admin calls.

        Returns None when no service role key is configured.
        """
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_admin_supabase() -> Optional[Client]:
    return SupabaseClient.get_service_client()


def new_supabase() -> Client:
    """Fresh anon client that keeps no session between calls. Used for per-request sign in/up/out."""
    return create_client(
        settings.supabase_url,
        settings.supabase_key,
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )
