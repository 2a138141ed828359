"""
User provisioning workflow.

``UserProvisioningHandler`` authenticates the caller, checks their role and
site scope, creates the Supabase Auth account and fills in the profile row.
If the profile update fails, the freshly created account is deleted again.

Known limitation: account creation and profile update are not one
transaction. A crash between the two leaves an account without an active
profile; nothing here cleans that up.
"""
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from api.config import SupabaseSettings
from api.errors import (
    DuplicateEmail,
    Forbidden,
    GatewayError,
    IdentityCreationFailed,
    InvalidPayload,
    ProfileUnavailable,
    ProfileUpdateFailed,
    ProvisioningError,
    Unauthenticated,
)
from api.gateway import (
    CreateIdentityErrorKind,
    IdentityGateway,
    Requester,
    RequesterProfile,
    SupabaseIdentityGateway,
)
from api.schemas.users import CreateUserRequest, CreateUserResponse, ErrorResponse
from api.utils import extract_bearer_token, hash_user_id_for_logging, mask_email

logger = logging.getLogger("create-user-api.provisioning")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

CREATOR_ROLES = ("owner", "supervisor")
SUPERVISOR_ROLE = "supervisor"
WORKER_ROLE = "mercaderista"

REGION_BY_SEDE = {
    "grupo_disbattery": "centro_capital",
    "disbattery": "oriente",
    "blitz_2000": "centro_los_llanos",
    "grupo_victoria": "occidente",
}

SUCCESS_MESSAGE = "Usuario creado exitosamente"
UNEXPECTED_ERROR_MESSAGE = "Error al crear usuario"

GatewayFactory = Callable[[SupabaseSettings], Awaitable[IdentityGateway]]


def derive_region(sede: Optional[str]) -> Optional[str]:
    """Region for a sede; unknown sedes have no region."""
    return REGION_BY_SEDE.get(sede)


def json_response(content: Dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


def error_response(message: str) -> JSONResponse:
    return json_response(ErrorResponse(error=message).model_dump(), status_code=400)


class UserProvisioningHandler:
    """
    Stateless handler for one create-user invocation.

    Args:
        settings: Supabase URL and service-role secret for this invocation
        gateway_factory: Builds the admin gateway from the settings
            (``SupabaseIdentityGateway.connect`` in production)
    """

    def __init__(self, settings: SupabaseSettings, gateway_factory: Optional[GatewayFactory] = None):
        self.settings = settings
        self.gateway_factory = gateway_factory or SupabaseIdentityGateway.connect

    async def handle(self, request: Request) -> Response:
        if request.method == "OPTIONS":
            return PlainTextResponse("ok", headers=CORS_HEADERS)

        start_time = time.monotonic()
        try:
            user_id = await self.provision(request)
        except ProvisioningError as e:
            logger.info("[CreateUser] rejeitado code=%s error=%s", e.code, e.message)
            return error_response(e.message)
        except Exception:
            logger.exception("[CreateUser] Erro inesperado")
            return error_response(UNEXPECTED_ERROR_MESSAGE)

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            "[CreateUser] sucesso user_hash=%s duration=%.2fms",
            hash_user_id_for_logging(user_id), duration_ms,
        )
        return json_response(CreateUserResponse(user_id=user_id, message=SUCCESS_MESSAGE).model_dump())

    async def provision(self, request: Request) -> str:
        """Run the pipeline and return the new user's id. Raises ProvisioningError."""
        gateway = await self.gateway_factory(self.settings)
        try:
            return await self._run(gateway, request)
        finally:
            await self._close(gateway)

    async def _run(self, gateway: IdentityGateway, request: Request) -> str:
        requester = await self._authenticate(gateway, request.headers.get("Authorization"))
        profile = await self._load_requester_profile(gateway, requester)

        if profile.role not in CREATOR_ROLES:
            raise Forbidden()

        payload = await self._parse_payload(request)
        self._check_scope(profile, payload)

        user_id = await self._create_identity(gateway, payload)

        fields = {
            "full_name": payload.full_name,
            "role": payload.role,
            "sede": payload.sede,
            "region": derive_region(payload.sede),
            "phone": payload.phone,
            "status": "active",
            "created_by": self._resolve_created_by(requester, payload),
        }
        try:
            await gateway.update_profile(user_id, fields)
        except Exception as e:
            logger.error(
                "[CreateUser] Erro atualizando perfil user_hash=%s: %s",
                hash_user_id_for_logging(user_id), e,
            )
            await self._compensate(gateway, user_id)
            if isinstance(e, GatewayError):
                raise ProfileUpdateFailed(e.message) from e
            raise

        return user_id

    async def _authenticate(self, gateway: IdentityGateway, authorization: Optional[str]) -> Requester:
        if not authorization:
            raise Unauthenticated("No authorization header")

        token = extract_bearer_token(authorization)
        if not token:
            raise Unauthenticated()

        try:
            requester = await gateway.verify_token(token)
        except GatewayError as e:
            raise Unauthenticated() from e
        if requester is None:
            raise Unauthenticated()
        return requester

    async def _load_requester_profile(self, gateway: IdentityGateway, requester: Requester) -> RequesterProfile:
        try:
            profile = await gateway.get_profile(requester.id)
        except GatewayError as e:
            raise ProfileUnavailable() from e
        if profile is None:
            logger.warning("Perfil ausente user_hash=%s", hash_user_id_for_logging(requester.id))
            raise ProfileUnavailable()
        return profile

    async def _parse_payload(self, request: Request) -> CreateUserRequest:
        try:
            body = await request.json()
        except ValueError as e:
            raise InvalidPayload() from e
        if not isinstance(body, dict):
            raise InvalidPayload()

        try:
            payload = CreateUserRequest.model_validate(body)
        except ValidationError as e:
            raise InvalidPayload() from e

        missing = payload.missing_fields()
        if missing:
            logger.info("Payload incompleto, faltando: %s", ", ".join(missing))
            raise InvalidPayload()
        return payload

    def _check_scope(self, profile: RequesterProfile, payload: CreateUserRequest) -> None:
        if profile.role != SUPERVISOR_ROLE:
            return
        if profile.sede != payload.sede:
            raise Forbidden("Solo puedes crear usuarios para tu sede")
        if payload.role != WORKER_ROLE:
            raise Forbidden("Solo puedes crear mercaderistas")

    async def _create_identity(self, gateway: IdentityGateway, payload: CreateUserRequest) -> str:
        logger.info("[CreateUser] criando email=%s role=%s sede=%s", mask_email(payload.email), payload.role, payload.sede)
        result = await gateway.create_identity(payload.email, payload.password, payload.full_name)
        if result.ok:
            return result.user_id
        if result.error_kind is CreateIdentityErrorKind.DUPLICATE_EMAIL:
            raise DuplicateEmail()
        raise IdentityCreationFailed(result.error_message)

    def _resolve_created_by(self, requester: Requester, payload: CreateUserRequest) -> str:
        # created_by vindo do cliente é aceito como está
        if not payload.created_by:
            return requester.id
        if payload.created_by != requester.id:
            logger.warning(
                "created_by difere do solicitante requester_hash=%s created_by_hash=%s",
                hash_user_id_for_logging(requester.id),
                hash_user_id_for_logging(payload.created_by),
            )
        return payload.created_by

    async def _compensate(self, gateway: IdentityGateway, user_id: str) -> None:
        try:
            await gateway.delete_identity(user_id)
            logger.info("[CreateUser] rollback ok user_hash=%s", hash_user_id_for_logging(user_id))
        except Exception as e:
            # Falha no rollback não é reportada ao cliente
            logger.error(
                "[CreateUser] rollback falhou, conta órfã user_hash=%s: %s",
                hash_user_id_for_logging(user_id), e,
            )

    async def _close(self, gateway: IdentityGateway) -> None:
        try:
            await gateway.aclose()
        except Exception as e:
            logger.warning("Falha fechando conexões Supabase: %s", e)


__all__ = [
    "CORS_HEADERS",
    "REGION_BY_SEDE",
    "SUCCESS_MESSAGE",
    "UserProvisioningHandler",
    "derive_region",
]
