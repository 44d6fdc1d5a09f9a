"""
Sistema de respuestas HTTP estandarizadas para AWS Lambda.

Este módulo proporciona funciones para crear respuestas HTTP consistentes:
- Respuestas de éxito con datos JSON
- Respuesta especializada para GET_TREE
- Respuestas de error categorizadas por tipo de error
- Headers de seguridad y CORS automáticos

Version: 1.0.0
"""

import json
from typing import Dict, Any, Optional, List
from datetime import datetime, timezone

from folderfusion.core.constants import COMMON_HEADERS, JSON_HEADERS, ErrorCodes
from folderfusion.core.exceptions import SourceCodeError
from folderfusion.core.logger import get_logger, log_business_metric

# Logger para el módulo
logger = get_logger(__name__)

# Campos de `details` que son seguros de exponer al cliente
_SAFE_DETAIL_FIELDS = {
    'field_name', 'received_type', 'provider', 'operation', 'path',
    'reset_at', 'has_token', 'timeout_seconds', 'reason', 'api_response_code'
}

# ========================================
# RESPUESTAS DE ÉXITO
# ========================================

def create_success_response(
    data: Dict[str, Any],
    status_code: int = 200,
    extra_headers: Optional[Dict[str, str]] = None,
    compress: bool = True
) -> Dict[str, Any]:
    """
    Crea una respuesta de éxito estandarizada con datos JSON.

    Args:
        data: Datos a incluir en la respuesta
        status_code: Código de estado HTTP (default: 200)
        extra_headers: Headers adicionales (opcional)
        compress: Si comprimir la respuesta JSON (default: True)

    Returns:
        Dict[str, Any]: Respuesta HTTP completa (statusCode, headers, body)

    Example:
        >>> response = create_success_response({"mensaje": "Operación exitosa"})
    """
    headers = JSON_HEADERS.copy()
    if extra_headers:
        headers.update(extra_headers)

    response_data = {
        **data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "success": True
    }

    if compress:
        json_body = json.dumps(response_data, ensure_ascii=False, separators=(',', ':'))
    else:
        json_body = json.dumps(response_data, ensure_ascii=False, indent=2)

    response_size = len(json_body.encode('utf-8'))
    log_business_metric("response_size", response_size, "bytes")

    logger.debug("Success response created", extra={
        "status_code": status_code,
        "response_size": response_size,
        "data_keys": list(data.keys())
    })

    return {
        "statusCode": status_code,
        "headers": headers,
        "body": json_body
    }


def create_tree_response(
    tree: Dict[str, Any],
    source: str,
    target: str,
    text: str,
    analysis: Dict[str, Any],
    progress: Optional[Dict[str, Any]] = None,
    files: Optional[List[str]] = None
) -> Dict[str, Any]:
    """
    Crea respuesta especializada para la operación GET_TREE.

    Args:
        tree: Árbol serializado (dict anidado)
        source: Fuente del árbol (github | local)
        target: Repositorio/ruta recorrida
        text: Esquema textual indentado
        analysis: Resumen de análisis del árbol
        progress: Estado final del progreso (opcional)
        files: Rutas de todos los archivos (opcional)

    Example:
        >>> response = create_tree_response(
        ...     tree=serialize_tree(root), source="github", target="acme/widgets",
        ...     text=format_text_tree(root), analysis=analyze_tree(root)
        ... )
    """
    response_data = {
        "source": source,
        "target": target,
        "tree": tree,
        "text": text,
        "analysis": analysis,
    }
    if progress is not None:
        response_data["progress"] = progress
    if files is not None:
        response_data["files"] = files

    return create_success_response(response_data)


# ========================================
# RESPUESTAS DE ERROR
# ========================================

def create_error_response(
    status_code: int,
    error_message: str,
    error_type: str = "error",
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    provider: Optional[str] = None
) -> Dict[str, Any]:
    """
    Crea una respuesta de error estandarizada.

    Args:
        status_code: Código de estado HTTP
        error_message: Mensaje de error para el usuario
        error_type: Tipo de error para categorización
        error_code: Código de error específico (opcional)
        details: Detalles adicionales del error (opcional, se sanitizan)
        provider: Proveedor relacionado (opcional)

    Example:
        >>> response = create_error_response(
        ...     400, "Campo requerido faltante", "invalid_input",
        ...     error_code="MISSING_SOURCE", details={"field_name": "source"}
        ... )
    """
    safe_details = _sanitize_error_details(details) if details else None

    error_data = {
        "error": error_message,
        "error_type": error_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "success": False
    }

    if error_code:
        error_data["error_code"] = error_code
    if safe_details:
        error_data["details"] = safe_details
    if provider:
        error_data["provider"] = provider

    json_body = json.dumps(error_data, ensure_ascii=False, separators=(',', ':'))

    log_business_metric("error_responses", 1, "count")
    log_business_metric(f"errors_{error_type}", 1, "count")

    logger.warning("Error response created", extra={
        "status_code": status_code,
        "error_type": error_type,
        "error_code": error_code,
        "provider": provider
    })

    return {
        "statusCode": status_code,
        "headers": JSON_HEADERS.copy(),
        "body": json_body
    }


def create_exception_response(exception: Exception) -> Dict[str, Any]:
    """
    Crea respuesta desde una excepción del sistema.

    Las excepciones del dominio conservan su código HTTP, su clasificación
    (error_type = kind) y su código de error. Cualquier otra excepción se
    traduce a un 500 genérico sin exponer detalles internos.
    """
    if isinstance(exception, SourceCodeError):
        return create_error_response(
            status_code=exception.http_status,
            error_message=exception.message,
            error_type=exception.kind.value,
            error_code=exception.error_code,
            details=exception.details,
            provider=exception.provider
        )

    logger.exception("Unhandled exception converted to response")
    return create_error_response(
        status_code=500,
        error_message="Error interno del servidor",
        error_type="internal_error",
        error_code=ErrorCodes.BUILD_FAILED
    )


# ========================================
# RESPUESTAS ESPECIALIZADAS
# ========================================

def create_cors_preflight_response() -> Dict[str, Any]:
    """Crea respuesta para requests CORS preflight (OPTIONS)."""
    headers = COMMON_HEADERS.copy()
    headers["Access-Control-Max-Age"] = "86400"  # 24 horas

    return {
        "statusCode": 200,
        "headers": headers,
        "body": ""
    }


# ========================================
# FUNCIONES AUXILIARES
# ========================================

def _sanitize_error_details(details: Dict[str, Any]) -> Dict[str, Any]:
    """Sanitiza detalles de error para producción"""
    sanitized = {}

    for key, value in details.items():
        if key in _SAFE_DETAIL_FIELDS:
            sanitized[key] = value
        elif key == 'received_value':
            # Truncar valores largos
            sanitized[key] = str(value)[:50] + "..." if len(str(value)) > 50 else str(value)

    return sanitized
