"""
Process configuration for the create-user service.

Settings are read from the environment on every request and injected into
the provisioning handler, so tests can swap them without touching os.environ.
"""
import os
import logging

from pydantic import BaseModel

logger = logging.getLogger("create-user-api.config")


class SupabaseSettings(BaseModel):
    """Connection settings for the Supabase project (service role)."""
    url: str = ""
    service_role_key: str = ""
    profiles_table: str = "users"

    @classmethod
    def from_env(cls) -> "SupabaseSettings":
        # SUPABASE_SERVICE_KEY é o nome legado usado pelo resto do backend
        service_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_SERVICE_KEY", "")
        return cls(
            url=os.getenv("SUPABASE_URL", "").strip(),
            service_role_key=service_key.strip(),
            profiles_table=os.getenv("SUPABASE_PROFILES_TABLE", "users"),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.url and self.service_role_key)

    def masked_key(self) -> str:
        if not self.service_role_key:
            return "(not set)"
        return f"{self.service_role_key[:5]}...{self.service_role_key[-5:]}"


def get_settings() -> SupabaseSettings:
    """
    FastAPI dependency. No caching: each invocation reads the environment again.
    """
    settings = SupabaseSettings.from_env()
    logger.debug("Settings carregadas url=%s key=%s", settings.url or "(not set)", settings.masked_key())
    return settings


__all__ = ["SupabaseSettings", "get_settings"]
