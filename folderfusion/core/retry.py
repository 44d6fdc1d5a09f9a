"""
Wrapper resiliente para llamadas a fuentes remotas.

Ejecuta una operación con tiempo límite por intento, reintentos con
backoff exponencial para fallos reintentables y respeto del token de
cancelación antes de cada intento y durante cada espera.

Política:
- Errores terminales (cuota, no encontrado, permiso, entrada inválida): se
  relanzan sin reintentar.
- Timeouts y fallos transitorios: hasta `max_retries` reintentos con espera
  `base_delay * 2**intento`.
- Excepciones no clasificadas: se tratan como fallo transitorio de red.
- Reintentos agotados: RequestTimeoutError encadenado al último error.

Version: 1.0.0
"""

import threading
import time
from typing import Any, Callable, Optional

from folderfusion.core.cancellation import CancellationToken
from folderfusion.core.constants import (
    REQUEST_TIMEOUT,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    CANCELLATION_POLL_INTERVAL,
    MetricNames
)
from folderfusion.core.exceptions import (
    SourceCodeError,
    BuildCancelledError,
    RequestTimeoutError,
    TransientNetworkError
)
from folderfusion.core.logger import get_logger, log_business_metric

logger = get_logger(__name__)


def call_with_retry(
    operation: Callable[[], Any],
    token: CancellationToken,
    *,
    timeout: Optional[float] = REQUEST_TIMEOUT,
    max_retries: int = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    on_retry: Optional[Callable[[int, SourceCodeError], None]] = None,
    description: str = ""
) -> Any:
    """
    Ejecuta `operation` aplicando timeout, reintentos y cancelación.

    Args:
        operation: Callable sin argumentos que realiza la llamada
        token: Token de cancelación de la construcción
        timeout: Segundos máximos por intento (None = sin límite)
        max_retries: Reintentos adicionales tras el primer intento
        base_delay: Espera base del backoff exponencial
        on_retry: Callback (intento, error) invocado antes de cada reintento
        description: Nombre de la operación para logs y errores

    Returns:
        Any: Resultado de la operación

    Raises:
        BuildCancelledError: Si el token se cancela antes o durante la llamada
        SourceCodeError: Errores terminales, sin reintento
        RequestTimeoutError: Si se agotan los reintentos

    Example:
        >>> call_with_retry(lambda: client.list_directory("acme", "widgets", "src"), token,
        ...                 description="list src")
    """
    attempt = 0
    last_error: Optional[SourceCodeError] = None

    while True:
        token.raise_if_cancelled()

        try:
            return _run_attempt(operation, token, timeout, description)
        except BuildCancelledError:
            raise
        except SourceCodeError as e:
            if e.is_terminal:
                raise
            last_error = e
        except Exception as e:
            last_error = TransientNetworkError(f"Fallo no clasificado en '{description}': {e}")
            last_error.__cause__ = e

        if attempt >= max_retries:
            break

        delay = base_delay * (2 ** attempt)
        attempt += 1

        logger.warning(f"🔁 Retrying '{description}' ({attempt}/{max_retries}) in {delay:.2f}s", extra={
            "attempt": attempt,
            "delay_seconds": delay,
            "error_kind": last_error.kind.value,
            "error_message": last_error.message
        })
        log_business_metric(MetricNames.RETRIES, 1, "count", operation=description)

        if on_retry is not None:
            on_retry(attempt, last_error)

        if token.wait(delay):
            raise token.cancelled_error()

    raise RequestTimeoutError(
        f"La operación '{description}' falló tras {max_retries + 1} intentos: {last_error.message}",
        timeout_seconds=timeout,
        operation=description,
        provider=last_error.provider
    ) from last_error


def _run_attempt(
    operation: Callable[[], Any],
    token: CancellationToken,
    timeout: Optional[float],
    description: str
) -> Any:
    """
    Ejecuta un intento en un hilo auxiliar y espera su resultado.

    El token se consulta cada CANCELLATION_POLL_INTERVAL segundos; si se
    cancela, el resultado del hilo (cuando termine) se descarta.
    """
    outcome = {}
    done = threading.Event()

    def runner():
        try:
            outcome["result"] = operation()
        except BaseException as e:
            outcome["error"] = e
        finally:
            done.set()

    worker = threading.Thread(target=runner, name=f"call-{description or 'op'}", daemon=True)
    worker.start()

    deadline = None if timeout is None else time.monotonic() + timeout
    while not done.wait(CANCELLATION_POLL_INTERVAL):
        if token.is_cancelled():
            raise token.cancelled_error()
        if deadline is not None and time.monotonic() >= deadline:
            raise RequestTimeoutError(
                f"Tiempo de espera agotado en '{description}' ({timeout}s)",
                timeout_seconds=timeout,
                operation=description
            )

    token.raise_if_cancelled()

    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")
