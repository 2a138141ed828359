"""
Gateway to the Supabase project (Auth admin API + PostgREST).

The provisioning handler only talks to the ``IdentityGateway`` protocol; the
Supabase implementation lives here so the handler can be exercised with fakes.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, AsyncClientOptions, acreate_client
from supabase_auth.errors import AuthError

from api.config import SupabaseSettings
from api.errors import ConfigurationError, GatewayError
from api.utils import hash_user_id_for_logging

logger = logging.getLogger("create-user-api.gateway")

# Códigos do GoTrue para e-mail já cadastrado
DUPLICATE_EMAIL_CODES = {"email_exists", "user_already_exists"}


@dataclass(frozen=True)
class Requester:
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class RequesterProfile:
    role: Optional[str]
    sede: Optional[str]


class CreateIdentityErrorKind(enum.Enum):
    DUPLICATE_EMAIL = "duplicate_email"
    OTHER = "other"


@dataclass(frozen=True)
class IdentityCreation:
    """Tagged result of ``create_identity``: either a user id or an error kind."""
    user_id: Optional[str] = None
    error_kind: Optional[CreateIdentityErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def created(cls, user_id: str) -> "IdentityCreation":
        return cls(user_id=user_id)

    @classmethod
    def failed(cls, kind: CreateIdentityErrorKind, message: str) -> "IdentityCreation":
        return cls(error_kind=kind, error_message=message)

    @property
    def ok(self) -> bool:
        return self.error_kind is None


class IdentityGateway(Protocol):
    async def verify_token(self, token: str) -> Requester: ...

    async def get_profile(self, user_id: str) -> Optional[RequesterProfile]: ...

    async def create_identity(self, email: str, password: str, full_name: str) -> IdentityCreation: ...

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> None: ...

    async def delete_identity(self, user_id: str) -> None: ...

    async def aclose(self) -> None: ...


def _error_message(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc)


def is_duplicate_email_error(exc: AuthError) -> bool:
    code = getattr(exc, "code", None)
    if code in DUPLICATE_EMAIL_CODES:
        return True
    # Versões antigas do GoTrue não retornam code, apenas a mensagem
    return "already registered" in _error_message(exc).lower()


class SupabaseIdentityGateway:
    """``IdentityGateway`` backed by a service-role ``AsyncClient``."""

    def __init__(self, client: AsyncClient, profiles_table: str = "users"):
        self.client = client
        self.profiles_table = profiles_table

    @classmethod
    async def connect(cls, settings: SupabaseSettings) -> "SupabaseIdentityGateway":
        """
        Build an admin client for a single invocation.

        Session persistence and token auto-refresh are disabled: the client
        lives only as long as one request.
        """
        if not settings.is_complete:
            logger.error("SUPABASE_URL ou SUPABASE_SERVICE_ROLE_KEY ausentes.")
            raise ConfigurationError()

        logger.debug("Inicializando cliente SERVICE (async) key=%s", settings.masked_key())
        client = await acreate_client(
            settings.url,
            settings.service_role_key,
            options=AsyncClientOptions(auto_refresh_token=False, persist_session=False),
        )
        return cls(client, profiles_table=settings.profiles_table)

    async def verify_token(self, token: str) -> Requester:
        try:
            user_resp = await self.client.auth.get_user(token)
        except (AuthError, httpx.HTTPError) as e:
            logger.warning("Falha Supabase auth: %s", str(e)[:200])
            raise GatewayError(_error_message(e), code=getattr(e, "code", None)) from e

        user = getattr(user_resp, "user", None)
        if not user or not getattr(user, "id", None):
            raise GatewayError("Token sem usuário")
        return Requester(id=str(user.id), email=getattr(user, "email", None))

    async def get_profile(self, user_id: str) -> Optional[RequesterProfile]:
        try:
            resp = await (
                self.client.table(self.profiles_table)
                .select("role, sede")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            logger.warning("Erro lendo perfil user_hash=%s: %s", hash_user_id_for_logging(user_id), e)
            raise GatewayError(_error_message(e), code=getattr(e, "code", None)) from e

        if not resp.data:
            return None
        row = resp.data[0]
        return RequesterProfile(role=row.get("role"), sede=row.get("sede"))

    async def create_identity(self, email: str, password: str, full_name: str) -> IdentityCreation:
        try:
            auth_resp = await self.client.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"full_name": full_name},
            })
        except AuthError as e:
            if is_duplicate_email_error(e):
                return IdentityCreation.failed(CreateIdentityErrorKind.DUPLICATE_EMAIL, _error_message(e))
            logger.warning("Erro Auth criando usuário: %s", _error_message(e))
            return IdentityCreation.failed(CreateIdentityErrorKind.OTHER, _error_message(e))
        except httpx.HTTPError as e:
            logger.warning("Erro de rede criando usuário: %s", e)
            return IdentityCreation.failed(CreateIdentityErrorKind.OTHER, str(e))

        user = getattr(auth_resp, "user", None)
        user_id = getattr(user, "id", None)
        if not user_id:
            logger.error("Falha extraindo user_id. Resp=%s", auth_resp)
            return IdentityCreation.failed(CreateIdentityErrorKind.OTHER, "Respuesta sin id de usuario")
        return IdentityCreation.created(str(user_id))

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> None:
        """
        Update the profile row created by the ``on_auth_user_created`` trigger.

        If the trigger did not create the row, the row is inserted instead.
        """
        table = self.profiles_table
        try:
            upd = await self.client.table(table).update(fields).eq("id", user_id).execute()
            if not upd.data:
                logger.warning(
                    "Perfil não encontrado após trigger, insert fallback user_hash=%s",
                    hash_user_id_for_logging(user_id),
                )
                await self.client.table(table).insert({"id": user_id, **fields}).execute()
        except (APIError, httpx.HTTPError) as e:
            raise GatewayError(_error_message(e), code=getattr(e, "code", None)) from e

    async def delete_identity(self, user_id: str) -> None:
        try:
            await self.client.auth.admin.delete_user(user_id)
        except (AuthError, httpx.HTTPError) as e:
            raise GatewayError(_error_message(e), code=getattr(e, "code", None)) from e

    async def aclose(self) -> None:
        """Close the auth (shared with auth.admin) and PostgREST HTTP sessions."""
        await self.client.auth.close()
        await self.client.postgrest.aclose()


__all__ = [
    "Requester",
    "RequesterProfile",
    "CreateIdentityErrorKind",
    "IdentityCreation",
    "IdentityGateway",
    "SupabaseIdentityGateway",
    "is_duplicate_email_error",
]
