"""
HTTP surface of the create-user function.

Mounted at ``/functions/v1/create-user`` (the Edge Function path existing
frontends call) and at the short alias ``/create-user``.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response

from api.config import SupabaseSettings, get_settings
from api.gateway import SupabaseIdentityGateway
from api.provisioning import UserProvisioningHandler
from api.rate_limiter import CREATE_USER_RATE_LIMIT, limiter

logger = logging.getLogger("create-user-api.users")

router = APIRouter(tags=["Users"])


def get_provisioning_handler(settings: SupabaseSettings = Depends(get_settings)) -> UserProvisioningHandler:
    """New handler per request; tests override this dependency with fakes."""
    return UserProvisioningHandler(settings, gateway_factory=SupabaseIdentityGateway.connect)


@router.post("/functions/v1/create-user")
@router.post("/create-user", include_in_schema=False)
@limiter.limit(CREATE_USER_RATE_LIMIT)
async def create_user(
    request: Request,
    handler: UserProvisioningHandler = Depends(get_provisioning_handler),
) -> Response:
    """
    Provision a user.

    Answers 200 on success and 400 with ``{"success": false, "error": ...}``
    on any failure.
    """
    return await handler.handle(request)


@router.options("/functions/v1/create-user", include_in_schema=False)
@router.options("/create-user", include_in_schema=False)
async def create_user_preflight(
    request: Request,
    handler: UserProvisioningHandler = Depends(get_provisioning_handler),
) -> Response:
    """CORS preflight; not rate limited."""
    return await handler.handle(request)
