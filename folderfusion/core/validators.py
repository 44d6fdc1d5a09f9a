"""
Sistema de validación para entrada de usuarios y referencias de fuentes.

Este módulo proporciona validadores reutilizables y componibles para:
- Validación de operación y fuente solicitadas
- Parseo de referencias de repositorios remotos (Source Locator)
- Validación de rutas locales y opciones de construcción
- Validación integral de requests

Todas las funciones son puras (sin I/O de red) y lanzan InvalidInputError
ante cualquier entrada inválida.

Version: 1.0.0
"""

import re
from typing import Dict, Any, Optional

from folderfusion.core.constants import (
    SUPPORTED_SOURCES,
    SOURCE_NAMES,
    Operations,
    ErrorCodes
)
from folderfusion.core.exceptions import InvalidInputError
from folderfusion.core.logger import get_logger
from folderfusion.models.build_options import BuildOptions, BuildRequest, RepositoryReference

# Logger para el módulo
logger = get_logger(__name__)

# owner/repo[/tree/<branch>][/<subpath>]; el esquema es opcional
_GITHUB_REFERENCE_PATTERN = re.compile(
    r'github\.com/([^/]+)/([^/]+)(?:/tree/([^/]+))?(?:/(.*))?'
)

# ========================================
# VALIDADORES DE ENTRADA PRINCIPAL
# ========================================

def validate_operation(operation: str) -> str:
    """
    Valida que la operación solicitada sea soportada.

    Args:
        operation: Operación a validar

    Returns:
        str: Operación validada (mayúsculas)

    Raises:
        InvalidInputError: Si la operación es inválida

    Example:
        >>> validate_operation("get_tree")
        'GET_TREE'
    """
    if not operation or not isinstance(operation, str):
        raise InvalidInputError(
            "El campo 'operation' es requerido y debe ser una cadena",
            field_name="operation",
            received_value=operation,
            error_code=ErrorCodes.MISSING_OPERATION
        )

    operation = operation.strip().upper()

    if operation not in Operations.ALL:
        available_ops = ", ".join(Operations.ALL)
        raise InvalidInputError(
            f"Operación '{operation}' no soportada. Disponibles: {available_ops}",
            field_name="operation",
            received_value=operation,
            error_code=ErrorCodes.INVALID_OPERATION
        )

    logger.debug(f"Operation validated: {operation}")
    return operation


def validate_source(source: str) -> str:
    """
    Valida que la fuente sea soportada.

    Example:
        >>> validate_source("GitHub")
        'github'
    """
    if not source or not isinstance(source, str):
        raise InvalidInputError(
            "El campo 'source' es requerido y debe ser una cadena",
            field_name="source",
            received_value=source,
            error_code=ErrorCodes.MISSING_SOURCE
        )

    source_lower = source.strip().lower()

    if source_lower not in SOURCE_NAMES:
        raise InvalidInputError(
            f"Fuente '{source}' no soportada. Disponibles: {', '.join(SOURCE_NAMES)}",
            field_name="source",
            received_value=source,
            error_code=ErrorCodes.INVALID_SOURCE
        )

    return source_lower


# ========================================
# SOURCE LOCATOR
# ========================================

def parse_repository_reference(reference: str) -> RepositoryReference:
    """
    Extrae owner, repo, sub-ruta y rama de una referencia de GitHub.

    Acepta `github.com/owner/repo[/tree/branch][/subpath]` con o sin esquema.
    El sufijo `.git` del repositorio y las barras finales de la sub-ruta se eliminan.

    Args:
        reference: URL o referencia textual del repositorio

    Returns:
        RepositoryReference: Ubicación validada

    Raises:
        InvalidInputError: Si la referencia está vacía o no coincide con el patrón

    Example:
        >>> parse_repository_reference("https://github.com/acme/widgets/tree/main/docs/")
        RepositoryReference(owner='acme', repo='widgets', path='docs', branch='main')
    """
    if not reference or not isinstance(reference, str) or not reference.strip():
        raise InvalidInputError(
            "La referencia del repositorio es requerida",
            field_name="reference",
            received_value=reference,
            error_code=ErrorCodes.INVALID_REFERENCE
        )

    match = _GITHUB_REFERENCE_PATTERN.search(reference.strip())
    if not match:
        raise InvalidInputError(
            "URL de GitHub inválida",
            field_name="reference",
            received_value=reference,
            error_code=ErrorCodes.INVALID_REFERENCE
        )

    owner, repo, branch, subpath = match.groups()
    if repo.endswith(".git"):
        repo = repo[:-len(".git")]

    if not repo:
        raise InvalidInputError(
            "URL de GitHub inválida",
            field_name="reference",
            received_value=reference,
            error_code=ErrorCodes.INVALID_REFERENCE
        )

    return RepositoryReference(
        owner=owner,
        repo=repo,
        path=(subpath or "").strip("/"),
        branch=branch or None
    )


# ========================================
# VALIDADORES DE OPCIONES Y RUTAS
# ========================================

def validate_local_path(path: Any) -> str:
    """Valida que la ruta local sea una cadena no vacía. La existencia se comprueba al recorrer."""
    if not path or not isinstance(path, str) or not path.strip():
        raise InvalidInputError(
            "El campo 'path' es requerido para la fuente local",
            field_name="path",
            received_value=path,
            error_code=ErrorCodes.NOT_A_DIRECTORY
        )
    return path.strip()


def validate_options(options: Optional[Dict[str, Any]]) -> BuildOptions:
    """
    Construye BuildOptions a partir del diccionario recibido.

    Raises:
        InvalidInputError: Si el tipo o algún valor es inválido
    """
    if options is None:
        return BuildOptions()

    if not isinstance(options, dict):
        raise InvalidInputError(
            "El campo 'options' debe ser un objeto",
            field_name="options",
            received_value=type(options).__name__,
            error_code=ErrorCodes.INVALID_OPTIONS
        )

    try:
        built = BuildOptions.from_dict(options)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(
            f"Opciones de construcción inválidas: {e}",
            field_name="options",
            error_code=ErrorCodes.INVALID_OPTIONS
        ) from e

    if built.max_depth is not None and built.max_depth < 1:
        raise InvalidInputError(
            "maxDepth debe ser un entero positivo",
            field_name="maxDepth",
            received_value=built.max_depth,
            error_code=ErrorCodes.INVALID_OPTIONS
        )

    return built


# ========================================
# VALIDADORES COMPUESTOS
# ========================================

def validate_request_data(data: Dict[str, Any]) -> BuildRequest:
    """
    Valida todos los datos de un request de manera integral.

    Args:
        data: Datos del request a validar

    Returns:
        BuildRequest: Petición lista para el orquestador

    Raises:
        InvalidInputError: Si algún dato es inválido

    Example:
        >>> data = {
        ...     "operation": "GET_TREE",
        ...     "source": "github",
        ...     "reference": "https://github.com/acme/widgets",
        ...     "options": {"excludedFolders": ["node_modules"]}
        ... }
        >>> request = validate_request_data(data)
    """
    logger.debug("Starting comprehensive request validation", extra={
        "data_keys": list(data.keys()) if isinstance(data, dict) else "not_dict"
    })

    if not isinstance(data, dict):
        raise InvalidInputError(
            "Los datos del request deben ser un diccionario",
            field_name="request_data",
            received_value=type(data).__name__,
            error_code=ErrorCodes.INVALID_JSON
        )

    operation = validate_operation(data.get("operation"))
    source = validate_source(data.get("source"))

    missing_keys = [key for key in SUPPORTED_SOURCES[source]["required_keys"] if not data.get(key)]
    if missing_keys:
        logger.warning(f"Missing required keys for {source}: {missing_keys}")
        raise InvalidInputError(
            f"Faltan claves requeridas para {source}: {', '.join(missing_keys)}",
            field_name=missing_keys[0],
            error_code=(
                ErrorCodes.INVALID_REFERENCE if source == "github" else ErrorCodes.NOT_A_DIRECTORY
            )
        )

    # El token puede venir en la raíz del request o dentro de options
    options_data = data.get("options")
    if isinstance(options_data, dict) and data.get("token") and not options_data.get("token"):
        options_data = {**options_data, "token": data["token"]}
    elif options_data is None and data.get("token"):
        options_data = {"token": data["token"]}
    options = validate_options(options_data)

    if source == "github":
        request = BuildRequest(
            source=source,
            operation=operation,
            options=options,
            reference=parse_repository_reference(data["reference"])
        )
    else:
        request = BuildRequest(
            source=source,
            operation=operation,
            options=options,
            path=validate_local_path(data["path"])
        )

    logger.info("Request validation completed successfully", extra={
        "source": source,
        "target": request.target,
        "has_token": bool(request.options.token)
    })

    return request
