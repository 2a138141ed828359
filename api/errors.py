"""
Error taxonomy for user provisioning.

Every error is reported to the caller with the same 400 shape
({"success": false, "error": message}); the ``code`` is only used in logs.
"""
from typing import Optional


class ProvisioningError(Exception):
    """Base class for failures that abort the provisioning pipeline."""
    code = "provisioning_error"
    default_message = "Error al crear usuario"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(ProvisioningError):
    code = "configuration_error"
    default_message = "Configuración de Supabase incompleta"


class Unauthenticated(ProvisioningError):
    code = "unauthenticated"
    default_message = "Usuario no autenticado"


class ProfileUnavailable(ProvisioningError):
    code = "profile_unavailable"
    default_message = "No se pudo obtener el perfil del usuario"


class Forbidden(ProvisioningError):
    code = "forbidden"
    default_message = "No tienes permisos para crear usuarios"


class InvalidPayload(ProvisioningError):
    code = "invalid_payload"
    default_message = "Todos los campos son requeridos"


class DuplicateEmail(ProvisioningError):
    code = "duplicate_email"
    default_message = "El correo electrónico ya está registrado"


class IdentityCreationFailed(ProvisioningError):
    code = "identity_creation_failed"


class ProfileUpdateFailed(ProvisioningError):
    code = "profile_update_failed"

    def __init__(self, db_message: str):
        self.db_message = db_message
        super().__init__(f"Error al actualizar perfil: {db_message}")


class GatewayError(Exception):
    """Raised by the Supabase gateway when an external call fails."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(message)


__all__ = [
    "ProvisioningError",
    "ConfigurationError",
    "Unauthenticated",
    "ProfileUnavailable",
    "Forbidden",
    "InvalidPayload",
    "DuplicateEmail",
    "IdentityCreationFailed",
    "ProfileUpdateFailed",
    "GatewayError",
]
