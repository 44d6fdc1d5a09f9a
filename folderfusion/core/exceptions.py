"""
Excepciones personalizadas del motor de adquisición de árboles.

Este módulo define una jerarquía de excepciones tipadas que facilitan
el manejo de errores específicos del dominio y mejoran la observabilidad.

Features:
- Enumeración cerrada de tipos de error (ErrorKind) asignada una sola vez
  en el punto de clasificación
- Distinción terminal / reintentable usada por el wrapper de reintentos
- Context adicional para debugging
- Mapeo directo a códigos HTTP

Version: 1.0.0
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Mapping

from folderfusion.core.constants import ErrorCodes


class ErrorKind(Enum):
    """Clasificación cerrada de los fallos posibles durante una construcción."""

    INVALID_INPUT = "invalid_input"
    QUOTA_EXCEEDED = "quota_exceeded"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT_NETWORK = "transient_network"

    @property
    def is_terminal(self) -> bool:
        """Nunca se reintenta y aborta la construcción completa."""
        return self in _TERMINAL_KINDS

    @property
    def is_retryable(self) -> bool:
        return self in (ErrorKind.TIMEOUT, ErrorKind.TRANSIENT_NETWORK)


_TERMINAL_KINDS = frozenset({
    ErrorKind.INVALID_INPUT,
    ErrorKind.QUOTA_EXCEEDED,
    ErrorKind.NOT_FOUND,
    ErrorKind.PERMISSION_DENIED,
})


class SourceCodeError(Exception):
    """
    Excepción base para todos los errores del motor.

    Proporciona un punto central para el manejo de errores específicos del dominio,
    facilitando la captura y el manejo diferenciado de errores con contexto rico.

    Attributes:
        message: Mensaje descriptivo del error para el usuario
        kind: Clasificación del error (ver ErrorKind)
        error_code: Código de error estandarizado (ver ErrorCodes)
        details: Información adicional del error para debugging
        http_status: Código HTTP sugerido para la respuesta
        provider: Fuente relacionada con el error (opcional)

    Example:
        raise NotFoundError(
            "Ruta no encontrada en el repositorio",
            details={"path": "docs"},
            provider="github"
        )
    """

    kind: ErrorKind = ErrorKind.TRANSIENT_NETWORK
    default_code: Optional[str] = None
    default_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None,
        provider: Optional[str] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.http_status = http_status or self.default_status
        self.provider = provider

        if provider and 'provider' not in self.details:
            self.details['provider'] = provider

        super().__init__(self.message)

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal

    @property
    def is_retryable(self) -> bool:
        return self.kind.is_retryable

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario para serialización.

        Returns:
            Dict con información estructurada del error
        """
        return {
            "error": self.message,
            "error_kind": self.kind.value,
            "error_code": self.error_code,
            "details": self.details,
            "http_status": self.http_status,
            "provider": self.provider
        }

    def __str__(self) -> str:
        """Representación string con contexto adicional"""
        parts = [self.message]
        if self.error_code:
            parts.append(f"Code: {self.error_code}")
        if self.provider:
            parts.append(f"Provider: {self.provider}")
        return " | ".join(parts)


class InvalidInputError(SourceCodeError):
    """
    Error de validación de entrada del usuario.

    HTTP Status: 400 Bad Request

    Common Scenarios:
        - Referencia de repositorio mal formada
        - Opciones de construcción inválidas
        - Ruta local que no es un directorio
    """

    kind = ErrorKind.INVALID_INPUT
    default_code = ErrorCodes.INVALID_REFERENCE
    default_status = 400

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        field_name: Optional[str] = None,
        received_value: Any = None
    ):
        enhanced_details = details or {}
        if field_name:
            enhanced_details['field_name'] = field_name
        if received_value is not None:
            enhanced_details['received_value'] = str(received_value)
            enhanced_details['received_type'] = type(received_value).__name__

        super().__init__(message=message, error_code=error_code, details=enhanced_details)

        self.field_name = field_name
        self.received_value = received_value


class QuotaExceededError(SourceCodeError):
    """
    La cuota de peticiones del proveedor remoto está agotada.

    El mensaje cambia cuando no se proporcionó credencial para guiar al
    usuario a configurar un token personal.

    HTTP Status: 429 Too Many Requests
    """

    kind = ErrorKind.QUOTA_EXCEEDED
    default_code = ErrorCodes.QUOTA_EXCEEDED
    default_status = 429

    def __init__(
        self,
        message: Optional[str] = None,
        reset_at: Optional[datetime] = None,
        has_token: bool = False,
        details: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = "github"
    ):
        enhanced_details = details or {}
        if reset_at is not None:
            enhanced_details['reset_at'] = reset_at.isoformat()
        enhanced_details['has_token'] = has_token

        super().__init__(
            message=message or quota_message(reset_at, has_token),
            details=enhanced_details,
            provider=provider
        )

        self.reset_at = reset_at
        self.has_token = has_token


class NotFoundError(SourceCodeError):
    """Recurso inexistente (repositorio, rama, ruta o directorio local). HTTP 404."""

    kind = ErrorKind.NOT_FOUND
    default_code = ErrorCodes.NOT_FOUND
    default_status = 404


class PermissionDeniedError(SourceCodeError):
    """Acceso rechazado: token inválido, permisos insuficientes o carpeta protegida. HTTP 403."""

    kind = ErrorKind.PERMISSION_DENIED
    default_code = ErrorCodes.ACCESS_DENIED
    default_status = 403


class RequestTimeoutError(SourceCodeError):
    """
    Una llamada (o la construcción completa) excedió su tiempo límite.

    También es el resultado de agotar los reintentos de un fallo transitorio.

    HTTP Status: 504 Gateway Timeout
    """

    kind = ErrorKind.TIMEOUT
    default_code = ErrorCodes.PROVIDER_TIMEOUT
    default_status = 504

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        operation: Optional[str] = None
    ):
        enhanced_details = details or {}
        if timeout_seconds:
            enhanced_details['timeout_seconds'] = timeout_seconds
        if operation:
            enhanced_details['operation'] = operation

        super().__init__(message=message, error_code=error_code, details=enhanced_details, provider=provider)

        self.timeout_seconds = timeout_seconds
        self.operation = operation


class BuildCancelledError(SourceCodeError):
    """
    La construcción fue cancelada por el usuario o por el watchdog global.

    Siempre tiene prioridad sobre cualquier otra clasificación una vez que
    el token ha sido señalizado.
    """

    kind = ErrorKind.CANCELLED
    default_code = ErrorCodes.BUILD_CANCELLED
    default_status = 499

    def __init__(self, message: str = "Operación cancelada por el usuario", reason: Optional[str] = None):
        super().__init__(message=message, details={"reason": reason} if reason else None)
        self.reason = reason


class TransientNetworkError(SourceCodeError):
    """Fallo de red o 5xx del proveedor; se reintenta y normalmente no llega al usuario. HTTP 502."""

    kind = ErrorKind.TRANSIENT_NETWORK
    default_code = ErrorCodes.PROVIDER_UNAVAILABLE
    default_status = 502


# ========================================
# FUNCIONES DE UTILIDAD PARA EXCEPCIONES
# ========================================

def quota_message(reset_at: Optional[datetime], has_token: bool) -> str:
    """Mensaje legible para una cuota agotada, según haya o no credencial."""
    reset_human = reset_at.strftime("%Y-%m-%d %H:%M:%S UTC") if reset_at else "desconocido"
    if has_token:
        return f"Límite de peticiones de GitHub excedido. Intenta nuevamente después de: {reset_human}."
    return (
        f"Límite de peticiones de GitHub excedido (reinicio: {reset_human}). "
        "Agrega un token de acceso personal en la configuración para ampliar la cuota."
    )


def parse_reset_header(value: Optional[str]) -> Optional[datetime]:
    """Convierte el header X-RateLimit-Reset (epoch en segundos) a datetime UTC."""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError):
        return None


def classify_http_error(
    status_code: int,
    headers: Optional[Mapping[str, str]] = None,
    provider: str = "github",
    has_token: bool = False,
    context: Optional[Dict[str, Any]] = None
) -> SourceCodeError:
    """
    Convierte una respuesta HTTP fallida en la excepción tipada correspondiente.

    La clasificación se hace una única vez aquí; el resto del sistema
    (reintentos, propagación, estados de progreso) sólo mira `kind`.

    Args:
        status_code: Código HTTP de la respuesta
        headers: Headers de la respuesta (para detectar rate limit)
        provider: Proveedor donde ocurrió el error
        has_token: Si la petición llevaba credencial
        context: Contexto adicional (path, repo, etc.)

    Returns:
        SourceCodeError apropiado para la respuesta
    """
    headers = headers or {}
    details = dict(context or {})
    details['api_response_code'] = status_code

    if status_code in (403, 429) and (headers.get("X-RateLimit-Remaining") == "0" or status_code == 429):
        return QuotaExceededError(
            reset_at=parse_reset_header(headers.get("X-RateLimit-Reset")),
            has_token=has_token,
            details=details,
            provider=provider
        )

    if status_code == 401:
        return PermissionDeniedError(
            "Token inválido o expirado. Verifica tu token de acceso.",
            error_code=ErrorCodes.ACCESS_DENIED,
            details=details,
            provider=provider
        )

    if status_code == 403:
        return PermissionDeniedError(
            "Permiso denegado. El token no tiene permisos suficientes.",
            details=details,
            provider=provider
        )

    if status_code == 404:
        return NotFoundError(
            "Recurso no encontrado en el repositorio.",
            details=details,
            provider=provider
        )

    if status_code >= 500:
        return TransientNetworkError(
            f"El proveedor respondió con error {status_code}.",
            details=details,
            provider=provider
        )

    return InvalidInputError(
        f"Petición rechazada por el proveedor ({status_code}).",
        error_code=ErrorCodes.INVALID_REFERENCE,
        details=details
    )
