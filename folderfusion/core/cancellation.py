"""
Token de cancelación cooperativa para construcciones de árboles.

Un único token se crea por construcción y se pasa a cada llamada recursiva,
al runner por lotes y al wrapper de reintentos. La cancelación es
cooperativa: el token se consulta en los límites de cada lote y antes de
cada llamada de red.

Un token hijo (`child`) queda cancelado cuando su padre se cancela o cuando
vence su watchdog opcional; en ese caso registra el motivo "timeout".

Version: 1.0.0
"""

import threading
from typing import List, Optional

from folderfusion.core.exceptions import BuildCancelledError
from folderfusion.core.logger import get_logger

logger = get_logger(__name__)

REASON_USER = "user"
REASON_TIMEOUT = "timeout"


class CancellationToken:
    """
    Señal de cancelación basada en threading.Event.

    El primer motivo registrado gana; cancelar dos veces no tiene efecto.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._children: List["CancellationToken"] = []
        self._timer: Optional[threading.Timer] = None
        self._parent = parent

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def timed_out(self) -> bool:
        return self._reason == REASON_TIMEOUT

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = REASON_USER) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            children = list(self._children)

        logger.info(f"🛑 Cancellation requested ({reason})")
        for child in children:
            child.cancel(reason)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise self.cancelled_error()

    def cancelled_error(self) -> BuildCancelledError:
        if self.timed_out:
            return BuildCancelledError("La construcción excedió el tiempo máximo permitido", reason=REASON_TIMEOUT)
        return BuildCancelledError(reason=self._reason or REASON_USER)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Espera hasta `timeout` segundos o hasta la cancelación.

        Returns:
            bool: True si el token fue cancelado durante (o antes de) la espera
        """
        return self._event.wait(timeout)

    def child(self, timeout: Optional[float] = None) -> "CancellationToken":
        """
        Deriva un token que se cancela con este o al vencer `timeout` segundos.
        """
        token = CancellationToken(parent=self)
        with self._lock:
            already_cancelled = self._event.is_set()
            if not already_cancelled:
                self._children.append(token)

        if already_cancelled:
            token.cancel(self._reason or REASON_USER)
            return token

        if timeout is not None:
            token._timer = threading.Timer(timeout, token.cancel, args=(REASON_TIMEOUT,))
            token._timer.daemon = True
            token._timer.start()

        return token

    def dispose(self) -> None:
        """Detiene el watchdog y se desvincula del padre."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        if self._parent is not None:
            with self._parent._lock:
                if self in self._parent._children:
                    self._parent._children.remove(self)
            self._parent = None

    def __enter__(self) -> "CancellationToken":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
