"""
Sistema de logging centralizado para el motor de adquisición.

Este módulo proporciona:
- Configuración única por proceso (loggers cacheados)
- Logging estructurado con campos separados por pipes
- Decorador de performance para operaciones completas
- Contexto de request/build automático en cada línea

Version: 1.0.0
"""

import logging
import time
import json
import threading
import functools
from typing import Dict, Any, Optional, Union, Callable
from datetime import datetime

from folderfusion.core.constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_SIMPLE_FORMAT,
    IS_LAMBDA,
    ENABLE_DETAILED_LOGGING,
    MetricNames
)

# ========================================
# CONFIGURACIÓN GLOBAL DE LOGGING
# ========================================

_configured_loggers: Dict[str, logging.Logger] = {}
_configure_lock = threading.Lock()

# Contexto global del request/build en curso
_request_context: Dict[str, Any] = {}

# Campos estándar de LogRecord que no se repiten como extra
_STANDARD_FIELDS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'stack_info', 'exc_info', 'exc_text',
    'taskName', 'message', 'asctime'
})


def get_logger(name: str = __name__) -> logging.Logger:
    """
    Obtiene o crea un logger con configuración única.

    Es el punto de entrada para obtener loggers en todo el sistema.
    Los loggers se cachean para evitar reconfiguración.

    Args:
        name: Nombre del logger (típicamente __name__ del módulo)

    Returns:
        logging.Logger: Logger configurado y listo para uso

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Message", extra={"key": "value"})
    """
    if name in _configured_loggers:
        return _configured_loggers[name]

    with _configure_lock:
        if name in _configured_loggers:
            return _configured_loggers[name]

        logger = logging.getLogger(name)

        if not logger.handlers:
            logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
            handler = logging.StreamHandler()
            if not IS_LAMBDA and ENABLE_DETAILED_LOGGING:
                handler.setLevel(logging.DEBUG)
            handler.setFormatter(_create_formatter())
            logger.addHandler(handler)
            logger.propagate = False  # Evitar logs duplicados

        _configured_loggers[name] = logger
        return logger


def _create_formatter() -> logging.Formatter:
    """Crea formatter apropiado según configuración."""
    if LOG_FORMAT == 'structured':
        return StructuredFormatter()
    return logging.Formatter(LOG_SIMPLE_FORMAT)


class StructuredFormatter(logging.Formatter):
    """
    Formatter para logging estructurado.

    Genera líneas semi-JSON fáciles de parsear tanto por humanos como por
    sistemas de análisis: campos separados por pipes, contexto del request,
    campos extra del record y traza de excepción.
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"[{record.levelname}]",
            self._format_timestamp(record.created),
            f"thread={record.threadName}",
            f"module={record.name}"
        ]

        for key, value in _request_context.items():
            parts.append(f"{key}={value}")

        for key, value in self._extract_extra_fields(record).items():
            parts.append(f"{key}={value}")

        parts.append(f"message={record.getMessage()}")

        if record.exc_info:
            parts.append(f"exception={self.formatException(record.exc_info)}")

        return " | ".join(parts)

    def _format_timestamp(self, created: float) -> str:
        dt = datetime.fromtimestamp(created)
        if IS_LAMBDA:
            # CloudWatch agrega su propio timestamp
            return dt.strftime("%H:%M:%S.%f")[:-3]
        return dt.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

    def _extract_extra_fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        extra = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_FIELDS:
                continue
            if isinstance(value, (dict, list)):
                extra[key] = json.dumps(value, default=str)
            else:
                extra[key] = str(value)
        return extra


# ========================================
# CONTEXTO DE REQUEST
# ========================================

def set_request_context(**kwargs) -> None:
    """
    Establece contexto global para el request actual.

    Este contexto se incluye automáticamente en todos los logs.

    Example:
        >>> set_request_context(request_id="123-456", source="github")
    """
    _request_context.update(kwargs)


def clear_request_context() -> None:
    """Limpia el contexto del request actual"""
    _request_context.clear()


def get_request_context() -> Dict[str, Any]:
    """Obtiene una copia del contexto actual del request"""
    return _request_context.copy()


# ========================================
# DECORADORES DE PERFORMANCE
# ========================================

def log_performance(func: Optional[Callable] = None, *,
                    operation_name: Optional[str] = None,
                    log_level: int = logging.INFO) -> Callable:
    """
    Decorator para logging automático de performance.

    Mide tiempo de ejecución y registra inicio, éxito o error con la duración.
    La excepción original siempre se re-lanza.

    Example:
        >>> @log_performance(operation_name="build_tree")
        >>> def build(...):
        >>>     ...
    """
    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            logger = get_logger(f.__module__)
            op_name = operation_name or f.__name__
            start_time = time.time()
            context = {"operation": op_name, "function": f.__name__}

            logger.log(log_level, "PERF_START", extra=context)

            try:
                result = f(*args, **kwargs)
            except Exception as e:
                duration = time.time() - start_time
                logger.error("PERF_ERROR", extra={
                    **context,
                    "duration_seconds": round(duration, 3),
                    "status": "error",
                    "error_type": type(e).__name__,
                    "error_message": str(e)
                })
                raise

            duration = time.time() - start_time
            logger.log(log_level, "PERF_SUCCESS", extra={
                **context,
                "duration_seconds": round(duration, 3),
                "status": "success"
            })
            log_business_metric(MetricNames.BUILD_DURATION, duration, "seconds", operation=op_name)
            return result

        return wrapper

    if func is None:
        return decorator
    return decorator(func)


# ========================================
# LOGGING ESPECIALIZADO
# ========================================

def log_api_call(provider: str, operation: str, **kwargs) -> None:
    """
    Logea llamadas a APIs externas con contexto estructurado.

    Example:
        >>> log_api_call("github", "list_directory", path="src")
    """
    get_logger("api_calls").info("External API call", extra={
        "event_type": "API_CALL",
        "provider": provider,
        "operation": operation,
        **kwargs
    })


def log_business_metric(metric_name: str, value: Union[int, float],
                        unit: str = "count", **kwargs) -> None:
    """
    Logea métricas de negocio para dashboard y alertas.

    Example:
        >>> log_business_metric("tree_files", 42, "count")
    """
    get_logger("metrics").info(f"Metric: {metric_name}={value}{unit}", extra={
        "event_type": "BUSINESS_METRIC",
        "metric_name": metric_name,
        "metric_value": value,
        "metric_unit": unit,
        **kwargs
    })


def log_request_lifecycle(phase: str, request_id: str, **kwargs) -> None:
    """
    Logea fases del ciclo de vida del request (START, END, ERROR...).
    """
    logger = get_logger("request_lifecycle")

    # Renombrar claves que colisionan con atributos de LogRecord
    safe_context = {
        (f"context_{k}" if k in _STANDARD_FIELDS else k): v
        for k, v in kwargs.items()
    }
    context = {
        "event_type": "REQUEST_LIFECYCLE",
        "lifecycle_phase": phase,
        "request_id": request_id,
        **safe_context
    }

    if phase.endswith("ERROR"):
        logger.error(f"Request {phase}: {request_id}", extra=context)
    else:
        logger.info(f"Request {phase}: {request_id}", extra=context)
