"""
AWS Lambda Handler para la obtención de árboles de archivos
===========================================================

Este módulo actúa como router principal para AWS Lambda.
Toda la lógica de negocio está organizada en módulos especializados.

Componentes:
- Parsing y validación:       folderfusion.utils.request_parser
- Lógica de negocio:          folderfusion.handlers.structure_handler
- Respuestas HTTP:            folderfusion.utils.http_responses
- Logging y métricas:         folderfusion.core.logger
- Manejo de errores:          folderfusion.core.exceptions

Ejemplo de evento (GET_TREE):
{
  "operation": "GET_TREE",
  "source": "github",
  "reference": "https://github.com/org/repo/tree/main/docs",
  "token": "ghp_abc123...",
  "options": {
    "excludedFolders": ["node_modules", ".git"],
    "showHidden": false
  }
}

Versión: 1.0.0
"""

import unicodedata
from typing import Dict, Any

from folderfusion.core.constants import Operations, ErrorCodes
from folderfusion.core.exceptions import InvalidInputError
from folderfusion.core.logger import get_logger, set_request_context, clear_request_context
from folderfusion.utils.request_parser import parse_lambda_event
from folderfusion.utils.http_responses import create_exception_response, create_cors_preflight_response
from folderfusion.handlers.structure_handler import handle_get_tree

logger = get_logger(__name__)


def _normalize_event_encoding(event: Any) -> Any:
    """
    Normaliza (NFC) las cadenas del evento para evitar rutas con
    caracteres compuestos distintos (ej: ñ).
    """
    if isinstance(event, str):
        return unicodedata.normalize('NFC', event)
    if isinstance(event, dict):
        return {key: _normalize_event_encoding(value) for key, value in event.items()}
    if isinstance(event, list):
        return [_normalize_event_encoding(value) for value in event]
    return event


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Punto de entrada principal para AWS Lambda.

    Recibe un evento, valida los parámetros y delega la ejecución en el
    handler especializado de la operación.

    Args:
        event (Dict[str, Any]): Evento Lambda con la operación, fuente y opciones
        context (Any): Objeto de contexto Lambda (contiene aws_request_id)

    Returns:
        Dict[str, Any]: Respuesta HTTP estándar (statusCode, body, headers)
    """
    request_id = getattr(context, 'aws_request_id', 'unknown')

    try:
        set_request_context(request_id=request_id, environment="lambda")
        logger.info("🚀 Lambda execution started", extra={"request_id": request_id})

        if isinstance(event, dict) and event.get("httpMethod") == "OPTIONS":
            return create_cors_preflight_response()

        request = parse_lambda_event(_normalize_event_encoding(event), context)
        operation = request.operation

        logger.info("🔁 Routing operation", extra={
            "request_id": request_id,
            "operation": operation,
            "source": request.source,
            "target": request.target
        })

        if operation == Operations.GET_TREE:
            return handle_get_tree(request)

        raise InvalidInputError(f"Operación no reconocida: {operation}", error_code=ErrorCodes.INVALID_OPERATION)

    except Exception as e:
        logger.error("💥 Lambda execution failed", extra={
            "request_id": request_id,
            "error": str(e),
            "error_type": type(e).__name__
        })
        return create_exception_response(e)

    finally:
        clear_request_context()
        logger.info("✅ Lambda execution completed", extra={"request_id": request_id})
