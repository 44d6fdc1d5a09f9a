"""
Sistema de parseo de requests para AWS Lambda y ejecución local.

Este módulo maneja el parseo y validación de eventos desde múltiples fuentes:
- AWS Lambda (API Gateway, invocación directa)
- Ejecución local (archivos JSON, argumentos de línea de comandos)

Features:
- Auto-detección del formato de entrada
- Validación integral usando el sistema de validators
- Contexto de request para logging

Version: 1.0.0
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from folderfusion.core.constants import ErrorCodes, Operations
from folderfusion.core.exceptions import InvalidInputError
from folderfusion.core.logger import get_logger, set_request_context, log_request_lifecycle
from folderfusion.core.validators import validate_request_data
from folderfusion.models.build_options import BuildRequest

# Logger para el módulo
logger = get_logger(__name__)

# Flags de la CLI que no llevan valor
_BOOLEAN_FLAGS = {"show-hidden", "no-content"}

# Flags de la CLI que se copian dentro de `options`
_OPTION_FLAGS = {
    "exclude": "excludedFolders",
    "extensions": "customExtensions",
    "max-depth": "maxDepth",
    "show-hidden": "showHidden",
}

_USAGE = (
    "✅ Formato esperado:\n"
    "    python main.py --source github --reference https://github.com/org/repo [--token xxx]\n"
    "    python main.py --source local --path ./mi-proyecto [--exclude node_modules,dist] [--format json]"
)

# ========================================
# PARSERS PARA AWS LAMBDA
# ========================================

def parse_lambda_event(event: Dict[str, Any], context: Any) -> BuildRequest:
    """
    Parsea y valida un evento completo de AWS Lambda.

    Args:
        event: Evento de AWS Lambda
        context: Contexto de AWS Lambda

    Returns:
        BuildRequest: Petición validada

    Raises:
        InvalidInputError: Si el evento es inválido

    Example:
        >>> request = parse_lambda_event(event, context)
        >>> tree = build_tree(request, cache=cache)
    """
    request_id = getattr(context, 'aws_request_id', 'unknown')

    set_request_context(request_id=request_id, environment="lambda")
    log_request_lifecycle("PARSE_START", request_id, event_keys=list(event.keys()) if isinstance(event, dict) else [])

    try:
        body = _extract_event_body(event)
        request = validate_request_data(body)

        set_request_context(source=request.source)
        log_request_lifecycle("PARSE_SUCCESS", request_id, source=request.source, target=request.target)
        return request

    except Exception as e:
        log_request_lifecycle("PARSE_ERROR", request_id, error=str(e), error_type=type(e).__name__)
        raise


def _extract_event_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extrae el body del evento Lambda con manejo de formatos.

    Maneja múltiples formatos de entrada:
    - API Gateway: {"body": "json_string"}
    - Invocación directa: {"body": {...}}
    - Testing: {...} (sin wrapper body)
    """
    if not isinstance(event, dict):
        raise InvalidInputError(
            "El evento debe ser un diccionario",
            field_name="event",
            received_value=type(event).__name__,
            error_code=ErrorCodes.INVALID_JSON
        )

    body = event.get("body")

    # Sin body: usar el evento directamente (invocación directa)
    if body is None:
        if "operation" in event:
            logger.debug("Using event as body directly (direct invocation)")
            return event
        raise InvalidInputError(
            "El evento debe contener un 'body' o campos de operación directos",
            field_name="body",
            error_code=ErrorCodes.MISSING_OPERATION
        )

    if isinstance(body, str):
        try:
            parsed_body = json.loads(body)
        except json.JSONDecodeError as e:
            raise InvalidInputError(
                f"Body JSON inválido: {e}",
                field_name="body",
                received_value=body[:100] + "..." if len(body) > 100 else body,
                error_code=ErrorCodes.INVALID_JSON
            ) from e
        logger.debug("Parsed string body as JSON (API Gateway)")
        return parsed_body

    if isinstance(body, dict):
        return body

    raise InvalidInputError(
        "Formato de body no reconocido",
        field_name="body",
        received_value=type(body).__name__,
        error_code=ErrorCodes.INVALID_JSON
    )


# ========================================
# PARSERS PARA EJECUCIÓN LOCAL
# ========================================

def parse_local_event(argv: Optional[List[str]] = None) -> Tuple[BuildRequest, Dict[str, Any]]:
    """
    Parsea la ejecución local desde un archivo de evento o argumentos CLI.

    Args:
        argv: Argumentos (sin el nombre del programa); por defecto sys.argv[1:]

    Returns:
        Tuple[BuildRequest, Dict]: (petición validada, ajustes de salida
        {"format": "text"|"json", "include_content": bool})

    Example:
        >>> request, output = parse_local_event(["--source", "local", "--path", "."])
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    event_file = argv[0] if argv and not argv[0].startswith("--") else None

    request_id = f"local-{abs(hash(tuple(argv))) % 10000}"
    set_request_context(request_id=request_id, environment="local")
    log_request_lifecycle("PARSE_START", request_id, event_file=event_file, arg_count=len(argv))

    try:
        if event_file:
            event_data = _load_event_from_file(event_file)
            output = {"format": "text", "include_content": True}
        else:
            event_data, output = _parse_command_line_args(argv)

        event_data.setdefault("operation", Operations.GET_TREE)
        request = validate_request_data(event_data)

        set_request_context(source=request.source)
        log_request_lifecycle("PARSE_SUCCESS", request_id, source=request.source, target=request.target)
        return request, output

    except Exception as e:
        log_request_lifecycle("PARSE_ERROR", request_id, error=str(e), error_type=type(e).__name__)
        raise


def _load_event_from_file(file_path: str) -> Dict[str, Any]:
    """
    Carga un evento desde un archivo JSON.

    Raises:
        InvalidInputError: Si el archivo no existe o no es JSON válido
    """
    path = Path(file_path)

    if not path.is_file():
        raise InvalidInputError(
            f"Archivo de evento no encontrado: {file_path}",
            field_name="event_file",
            received_value=file_path,
            error_code=ErrorCodes.INVALID_JSON
        )

    try:
        with path.open('r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInputError(
            f"Error parseando JSON en {file_path}: {e}",
            field_name="event_file",
            received_value=file_path,
            error_code=ErrorCodes.INVALID_JSON
        ) from e

    logger.debug(f"Loaded event from file: {file_path}")
    return data


def _parse_command_line_args(argv: List[str]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Parsea argumentos de línea de comandos como evento.

    Formato esperado:
        --source github --reference URL [--token xxx] [--exclude a,b]
        [--extensions .ext,.ext2] [--max-depth N] [--show-hidden]
        [--format text|json] [--no-content]
    """
    if not argv:
        raise InvalidInputError(
            "❌ No se pasaron argumentos suficientes.\n\n" + _USAGE,
            field_name="command_args",
            error_code=ErrorCodes.MISSING_SOURCE
        )

    args: Dict[str, Any] = {}
    i = 0
    while i < len(argv):
        if not argv[i].startswith('--'):
            i += 1
            continue

        key = argv[i][2:]
        if key in _BOOLEAN_FLAGS:
            args[key] = True
            i += 1
        elif i + 1 < len(argv) and not argv[i + 1].startswith('--'):
            args[key] = argv[i + 1]
            i += 2
        else:
            raise InvalidInputError(
                f"❌ Falta el valor para la opción '--{key}'\n\n" + _USAGE,
                field_name="command_args",
                error_code=ErrorCodes.INVALID_OPTIONS
            )

    if "source" not in args:
        raise InvalidInputError(
            "❌ Argumento obligatorio faltante: source\n\n" + _USAGE,
            field_name="command_args",
            error_code=ErrorCodes.MISSING_SOURCE
        )

    output_format = args.pop("format", "text").lower()
    if output_format not in ("text", "json"):
        raise InvalidInputError(
            f"Formato de salida no soportado: {output_format}",
            field_name="format",
            received_value=output_format,
            error_code=ErrorCodes.INVALID_OPTIONS
        )
    output = {"format": output_format, "include_content": not args.pop("no-content", False)}

    event: Dict[str, Any] = {"operation": args.pop("operation", Operations.GET_TREE)}
    options: Dict[str, Any] = {}
    for key, value in args.items():
        if key in _OPTION_FLAGS:
            options[_OPTION_FLAGS[key]] = value
        else:
            event[key] = value
    if options:
        event["options"] = options

    logger.debug(f"Parsed command line args: {list(args.keys())}")
    return event, output
