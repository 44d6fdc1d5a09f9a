"""
Manejador especializado para la operación GET_TREE.

Este módulo orquesta una construcción completa del árbol de archivos:
valida la fuente, consulta la cuota remota, delega en el constructor
correspondiente, aplica el filtro de visualización y mantiene el estado
del progreso hasta su estado terminal.

Responsabilidades:
- Derivar el token de la construcción con el watchdog global.
- Traducir cada resultado a su estado de progreso (COMPLETE, ERROR, TIMEOUT, CANCELLED).
- Generar la respuesta enriquecida (JSON, esquema textual y análisis).
- Registrar métricas para monitoreo y performance.

Versión: 1.0.0
"""

import json
from typing import Any, Dict, Optional

from folderfusion.core.cache import ResponseCache
from folderfusion.core.cancellation import CancellationToken
from folderfusion.core.constants import BUILD_TIMEOUT, HTTP_SOURCE_NAMES, ErrorCodes, MetricNames
from folderfusion.core.exceptions import (
    SourceCodeError,
    BuildCancelledError,
    RequestTimeoutError,
    InvalidInputError
)
from folderfusion.core.logger import (
    get_logger,
    log_performance,
    log_business_metric
)
from folderfusion.core.retry import call_with_retry
from folderfusion.factory.tree_source_factory import TreeSourceFactory
from folderfusion.managers.github_client import GitHubClient
from folderfusion.managers.quota_guard import check_quota, validate_token
from folderfusion.models.build_options import BuildRequest
from folderfusion.models.progress import BuildStatus, ProgressReporter
from folderfusion.models.tree_node import TreeNode
from folderfusion.services.structure_formatter import analyze_tree, format_text_tree
from folderfusion.services.tree_filter import filter_tree
from folderfusion.utils.http_responses import create_tree_response, create_exception_response
from folderfusion.utils.serializers import serialize_progress, serialize_tree
from folderfusion.utils.tree_utils import flatten_file_paths

# Inicialización del logger del módulo
logger = get_logger(__name__)

# Cache compartido entre invocaciones del mismo proceso (contenedor Lambda caliente)
shared_cache = ResponseCache()


@log_performance(operation_name="build_tree")
def build_tree(
    request: BuildRequest,
    *,
    cache: Optional[ResponseCache] = None,
    reporter: Optional[ProgressReporter] = None,
    token: Optional[CancellationToken] = None,
    client: Optional[GitHubClient] = None,
    build_timeout: Optional[float] = BUILD_TIMEOUT
) -> TreeNode:
    """
    Ejecuta una construcción completa y devuelve el árbol filtrado.

    Argumentos:
        request (BuildRequest): Petición validada (fuente, referencia/ruta, opciones).
        cache (ResponseCache): Cache compartido entre construcciones.
        reporter (ProgressReporter): Progreso de esta construcción (uno nuevo si se omite).
        token (CancellationToken): Token del llamador; se deriva un hijo con watchdog.
        client (GitHubClient): Cliente a reutilizar para la fuente remota.
        build_timeout (float): Segundos máximos para la construcción completa.

    Retorna:
        TreeNode: Directorio raíz ya filtrado.

    Lanza:
        BuildCancelledError: Cancelación del usuario (estado CANCELLED).
        RequestTimeoutError: Watchdog vencido o llamadas agotadas (estado TIMEOUT).
        SourceCodeError: Cualquier otro error clasificado (estado ERROR).
    """
    reporter = reporter or ProgressReporter()
    parent_token = token or CancellationToken()

    reporter.start()
    build_token = parent_token.child(timeout=build_timeout)

    logger.info("Iniciando construcción del árbol", extra={
        "source": request.source,
        "target": request.target,
        "has_token": bool(request.options.token)
    })

    try:
        if request.source == "github":
            client = client or GitHubClient(token=request.options.token)
            _prepare_remote(client, build_token)

        manager = TreeSourceFactory.create(request, cache=cache, client=client)
        raw_tree = manager.build_tree(reporter, build_token)
        build_token.raise_if_cancelled()
        tree = filter_tree(raw_tree, request.options)

    except Exception as e:
        outcome = _record_failure(reporter, build_token, e)
        if outcome is e:
            raise
        raise outcome from e

    finally:
        build_token.dispose()

    reporter.complete()
    _log_tree_metrics(tree, request.source, cache)
    return tree


def _prepare_remote(client: GitHubClient, token: CancellationToken) -> None:
    """Validación del token (si existe) y consulta de cuota previas al recorrido."""
    if client.has_token:
        call_with_retry(lambda: validate_token(client), token, description="validate token")

    token.raise_if_cancelled()
    check_quota(client)


def _record_failure(reporter: ProgressReporter, build_token: CancellationToken,
                    error: Exception) -> SourceCodeError:
    """
    Traduce el error al estado terminal del progreso y devuelve la excepción a propagar.

    La cancelación tiene prioridad sobre cualquier otra clasificación una vez
    señalizado el token.
    """
    if build_token.is_cancelled() or isinstance(error, BuildCancelledError):
        if build_token.timed_out:
            outcome: SourceCodeError = RequestTimeoutError(
                "La construcción excedió el tiempo máximo permitido",
                error_code=ErrorCodes.BUILD_TIMEOUT,
                operation="build_tree"
            )
            reporter.fail(BuildStatus.TIMEOUT, outcome.message, outcome.error_code)
        else:
            outcome = error if isinstance(error, BuildCancelledError) else build_token.cancelled_error()
            reporter.fail(BuildStatus.CANCELLED, outcome.message, outcome.error_code)
        logger.info(f"🛑 Construcción interrumpida: {outcome.message}")
        return outcome

    if isinstance(error, RequestTimeoutError):
        reporter.fail(BuildStatus.TIMEOUT, error.message, error.error_code)
        outcome = error
    elif isinstance(error, SourceCodeError):
        reporter.fail(BuildStatus.ERROR, error.message, error.error_code)
        outcome = error
    else:
        outcome = SourceCodeError(
            f"Error inesperado construyendo el árbol: {error}",
            error_code=ErrorCodes.BUILD_FAILED
        )
        reporter.fail(BuildStatus.ERROR, outcome.message, outcome.error_code)

    logger.error("Error crítico durante la construcción del árbol", extra={
        "error": str(error),
        "error_type": type(error).__name__,
        "error_kind": outcome.kind.value
    })
    return outcome


def _log_tree_metrics(tree: TreeNode, source: str, cache: Optional[ResponseCache] = None) -> None:
    analysis = analyze_tree(tree)
    log_business_metric(MetricNames.TREES_BUILT, 1, "count", source=source)
    log_business_metric(MetricNames.TREE_FILES, analysis["total_files"], "count")
    log_business_metric(MetricNames.TREE_DIRECTORIES, analysis["total_directories"], "count")
    if cache is not None:
        stats = cache.stats()
        log_business_metric(MetricNames.CACHE_HITS, stats["hits"], "count",
                            misses=stats["misses"], entries=stats["entries"])


def handle_get_tree(
    request: BuildRequest,
    *,
    cache: Optional[ResponseCache] = None,
    token: Optional[CancellationToken] = None,
    client: Optional[GitHubClient] = None,
    include_content: bool = True
) -> Dict[str, Any]:
    """
    Ejecuta GET_TREE y devuelve una respuesta HTTP estándar.

    Sólo admite fuentes remotas: la fuente local queda reservada a la CLI.
    Los errores se convierten en respuestas de error con el código HTTP
    asociado a su clasificación.
    """
    reporter = ProgressReporter()
    try:
        _require_http_source(request.source)
        tree = build_tree(
            request,
            cache=shared_cache if cache is None else cache,
            reporter=reporter,
            token=token,
            client=client
        )
    except SourceCodeError as e:
        return create_exception_response(e)

    return create_tree_response(
        tree=serialize_tree(tree, include_content=include_content),
        source=request.source,
        target=request.target,
        text=format_text_tree(tree),
        analysis=analyze_tree(tree),
        progress=serialize_progress(reporter.snapshot()),
        files=flatten_file_paths(tree)
    )


def _require_http_source(source: str) -> None:
    if source not in HTTP_SOURCE_NAMES:
        logger.warning(f"🚫 Fuente '{source}' rechazada en la entrada HTTP")
        raise InvalidInputError(
            f"La fuente '{source}' sólo está disponible en ejecución local. "
            f"Disponibles: {', '.join(HTTP_SOURCE_NAMES)}",
            field_name="source",
            received_value=source,
            error_code=ErrorCodes.INVALID_SOURCE
        )


def handle_get_tree_local(
    request: BuildRequest,
    output_format: str = "text",
    include_content: bool = True,
    *,
    cache: Optional[ResponseCache] = None,
    token: Optional[CancellationToken] = None
) -> int:
    """
    Ejecuta GET_TREE en modo local (CLI) e imprime el resultado en consola.

    Retorna:
        int: Código de salida del proceso (0 en éxito).
    """
    reporter = ProgressReporter()
    reporter.subscribe(_print_progress)

    logger.info("=== INICIANDO GET_TREE (LOCAL) ===")
    try:
        tree = build_tree(
            request,
            cache=shared_cache if cache is None else cache,
            reporter=reporter,
            token=token
        )
    except SourceCodeError as e:
        print(f"\n❌ Error: {e.message}")
        print(f"🔧 Tipo: {e.kind.value} ({e.error_code})")
        return 1

    if output_format == "json":
        print(json.dumps(serialize_tree(tree, include_content=include_content), ensure_ascii=False, indent=2))
        return 0

    analysis = analyze_tree(tree)
    print("\n" + "=" * 60)
    print("📦 ESTRUCTURA")
    print("=" * 60)
    print(f"🔧 Fuente: {request.source} ({request.target})")
    print(f"📄 Archivos: {analysis['total_files']}")
    print(f"📁 Carpetas: {analysis['total_directories']}")
    print(f"🏗️ Profundidad máxima: {analysis['max_depth']}")
    print("\n" + format_text_tree(tree))
    print("\n✅ GET_TREE completado exitosamente")
    return 0


def _print_progress(state) -> None:
    if state.total:
        print(f"\r⏳ {state.processed}/{state.total} ({state.percent}%)", end="", flush=True)
