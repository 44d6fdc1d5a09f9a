# folderfusion/models/progress.py

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional

from folderfusion.core.logger import get_logger

logger = get_logger(__name__)


class BuildStatus(Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildStatus.COMPLETE, BuildStatus.ERROR, BuildStatus.TIMEOUT, BuildStatus.CANCELLED)


@dataclass(frozen=True)
class ProgressState:
    """
    Instantánea inmutable del progreso de una construcción.

    Atributos:
        total: Archivos estimados por el pre-conteo (0 hasta conocerse)
        total_known: Si el pre-conteo ya fijó el total (aunque sea 0)
        processed: Archivos procesados; monótono y nunca mayor que total
        status: Estado del ciclo de vida
        error: Mensaje legible si terminó con error
        error_code: Código estandarizado si terminó con error
    """
    total: int = 0
    processed: int = 0
    status: BuildStatus = BuildStatus.IDLE
    error: Optional[str] = None
    error_code: Optional[str] = None
    total_known: bool = False

    @property
    def percent(self) -> float:
        if not self.total:
            return 0.0
        return round(100.0 * self.processed / self.total, 1)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "processed": self.processed,
            "status": self.status.value,
            "error": self.error,
            "error_code": self.error_code,
        }


ProgressListener = Callable[[ProgressState], None]


class ProgressReporter:
    """
    Dueño único del ProgressState de una construcción.

    Máquina de estados: IDLE -> PROCESSING -> {COMPLETE | ERROR | TIMEOUT | CANCELLED}.
    Las transiciones desde un estado terminal se rechazan con ValueError,
    salvo `reset()` sobre CANCELLED, que vuelve a IDLE para reintentar.

    Cada mutación notifica a los suscriptores con una instantánea; si un
    suscriptor falla se registra y la construcción continúa.
    """

    def __init__(self):
        self._state = ProgressState()
        self._lock = threading.Lock()
        self._listeners: List[ProgressListener] = []

    def snapshot(self) -> ProgressState:
        with self._lock:
            return self._state

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Registra un suscriptor y devuelve la función para darlo de baja."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> None:
        self._transition(lambda s: self._to_status(s, BuildStatus.PROCESSING))

    def set_total(self, total: int) -> None:
        if total < 0:
            raise ValueError("total no puede ser negativo")

        def update(state: ProgressState) -> ProgressState:
            self._require_processing(state, "set_total")
            return replace(state, total=total, processed=min(state.processed, total), total_known=True)

        self._transition(update)

    def advance(self, count: int = 1) -> None:
        if count < 0:
            raise ValueError("processed es monótono")

        def update(state: ProgressState) -> ProgressState:
            self._require_processing(state, "advance")
            processed = state.processed + count
            if state.total_known:
                processed = min(processed, state.total)
            return replace(state, processed=processed)

        self._transition(update)

    def complete(self) -> None:
        self._transition(lambda s: self._to_status(s, BuildStatus.COMPLETE))

    def fail(self, status: BuildStatus, message: Optional[str] = None, code: Optional[str] = None) -> None:
        if status not in (BuildStatus.ERROR, BuildStatus.TIMEOUT, BuildStatus.CANCELLED):
            raise ValueError(f"Estado de fallo inválido: {status.value}")
        self._transition(lambda s: replace(self._to_status(s, status), error=message, error_code=code))

    def reset(self) -> None:
        """Devuelve un reporter CANCELLED a IDLE."""
        def update(state: ProgressState) -> ProgressState:
            if state.status is not BuildStatus.CANCELLED:
                raise ValueError(f"Sólo se puede reiniciar desde CANCELLED (actual: {state.status.value})")
            return ProgressState()

        self._transition(update)

    # ----------------------------------------
    # Internos
    # ----------------------------------------

    @staticmethod
    def _require_processing(state: ProgressState, action: str) -> None:
        if state.status is not BuildStatus.PROCESSING:
            raise ValueError(f"'{action}' requiere estado PROCESSING (actual: {state.status.value})")

    @staticmethod
    def _to_status(state: ProgressState, status: BuildStatus) -> ProgressState:
        allowed = {
            BuildStatus.IDLE: {BuildStatus.PROCESSING},
            BuildStatus.PROCESSING: {
                BuildStatus.COMPLETE, BuildStatus.ERROR, BuildStatus.TIMEOUT, BuildStatus.CANCELLED
            },
        }
        if status not in allowed.get(state.status, set()):
            raise ValueError(f"Transición inválida: {state.status.value} -> {status.value}")
        return replace(state, status=status)

    def _transition(self, update: Callable[[ProgressState], ProgressState]) -> None:
        with self._lock:
            self._state = update(self._state)
            snapshot = self._state
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning(f"Progress listener failed: {e}", exc_info=True)
