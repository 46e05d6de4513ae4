# webhook_trigger/core/supabase_client.py

from functools import lru_cache

from supabase import create_client, Client

from webhook_trigger.core.config import get_settings


@lru_cache
def get_service_supabase() -> Client:
    """
    Cliente con Service Role: el trigger necesita leer y actualizar todas las
    filas de schedules sin pasar por RLS.
    """
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_role_key)
