"""
Runner por lotes con concurrencia acotada.

Procesa una secuencia de elementos en grupos de `batch_size` que se ejecutan
en paralelo sobre un ThreadPoolExecutor. El siguiente grupo empieza cuando
el anterior terminó por completo, más una pausa opcional.

- Un fallo por elemento se registra (WARNING) y el elemento se descarta
- Los resultados None se descartan
- El orden del resultado sigue al de la entrada, no al de finalización
- Errores terminales y la cancelación se propagan

Version: 1.0.0
"""

import concurrent.futures
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from folderfusion.core.cancellation import CancellationToken
from folderfusion.core.constants import BATCH_PAUSE, MetricNames
from folderfusion.core.exceptions import SourceCodeError, BuildCancelledError
from folderfusion.core.logger import get_logger, log_business_metric

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_in_batches(
    items: Iterable[T],
    processor: Callable[[T], Optional[R]],
    token: CancellationToken,
    *,
    batch_size: int,
    pause: float = BATCH_PAUSE,
    executor: Optional[concurrent.futures.Executor] = None,
    on_item_done: Optional[Callable[[T, R], None]] = None
) -> List[R]:
    """
    Aplica `processor` a cada elemento con como máximo `batch_size` en vuelo.

    Args:
        items: Elementos a procesar
        processor: Función por elemento; None significa "sin resultado"
        token: Token de cancelación, consultado antes de cada grupo y
               antes/después de cada elemento
        batch_size: Tamaño de cada grupo concurrente
        pause: Segundos de espera entre grupos
        executor: Executor externo; si no se indica se crea uno propio.
                  No compartir un executor acotado entre niveles recursivos.
        on_item_done: Callback (elemento, resultado) por cada resultado conservado

    Returns:
        List: Resultados no nulos en el orden de entrada

    Raises:
        BuildCancelledError: Si el token se cancela
        SourceCodeError: Si algún elemento falla con un error terminal
    """
    if batch_size < 1:
        raise ValueError("batch_size debe ser >= 1")

    pending = list(items)
    results: List[R] = []
    if not pending:
        return results

    own_executor = executor is None
    if own_executor:
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=min(batch_size, len(pending)),
            thread_name_prefix="batch"
        )

    try:
        for start in range(0, len(pending), batch_size):
            token.raise_if_cancelled()

            group = pending[start:start + batch_size]
            futures = [executor.submit(_process_item, processor, item, token) for item in group]

            kept = []
            fatal: Optional[SourceCodeError] = None
            dropped = 0

            # Esperar a todo el grupo antes de decidir
            for item, future in zip(group, futures):
                try:
                    value = future.result()
                except BuildCancelledError as e:
                    fatal = fatal or e
                    continue
                except SourceCodeError as e:
                    if e.is_terminal:
                        fatal = fatal or e
                    else:
                        dropped += 1
                        logger.warning(f"⚠️ Item dropped after failure: {e.message}", extra={
                            "item": str(item),
                            "error_kind": e.kind.value
                        })
                    continue
                except Exception as e:
                    dropped += 1
                    logger.warning(f"⚠️ Item dropped after unexpected error: {e}", extra={
                        "item": str(item),
                        "error_type": type(e).__name__
                    })
                    continue

                if value is not None:
                    kept.append((item, value))

            if token.is_cancelled():
                raise token.cancelled_error()
            if fatal is not None:
                raise fatal

            if dropped:
                log_business_metric(MetricNames.ITEMS_DROPPED, dropped, "count")

            for item, value in kept:
                results.append(value)
                if on_item_done is not None:
                    on_item_done(item, value)

            is_last_group = start + batch_size >= len(pending)
            if pause and not is_last_group and token.wait(pause):
                raise token.cancelled_error()
    finally:
        if own_executor:
            executor.shutdown(wait=True)

    return results


def _process_item(processor: Callable[[Any], Any], item: Any, token: CancellationToken) -> Any:
    token.raise_if_cancelled()
    value = processor(item)
    token.raise_if_cancelled()
    return value
