"""
Constantes globales del motor de adquisición de árboles de archivos.

Este módulo centraliza todas las constantes del sistema para facilitar
la configuración y mantenimiento. Separadas por categorías lógicas.
Todos los valores numéricos pueden sobreescribirse vía variables de entorno.

Version: 1.0.0
"""

import os
from typing import Dict, List, Tuple

# ========================================
# CACHE Y CONCURRENCIA
# ========================================

# Tiempo de vida de las respuestas memoizadas (listados, contenidos, conteos)
CACHE_TTL_SECONDS = float(os.getenv('CACHE_TTL_SECONDS', '300'))  # Default: 5 minutos

# Tamaño de grupo del runner por lotes
REMOTE_BATCH_SIZE = int(os.getenv('REMOTE_BATCH_SIZE', '10'))
LOCAL_BATCH_SIZE = int(os.getenv('LOCAL_BATCH_SIZE', '20'))

# Pausa entre grupos para no saturar el rate limit del proveedor
BATCH_PAUSE = float(os.getenv('BATCH_PAUSE', '0.1'))  # Default: 100ms

# ========================================
# TIMEOUTS Y REINTENTOS
# ========================================

REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', '8'))  # Por llamada
BUILD_TIMEOUT = float(os.getenv('BUILD_TIMEOUT', '60'))  # Watchdog de la construcción completa

MAX_RETRIES = int(os.getenv('MAX_RETRIES', '2'))
RETRY_BASE_DELAY = float(os.getenv('RETRY_BASE_DELAY', '1.0'))  # base_delay * 2^intento

# Intervalo con el que se revisa el token de cancelación mientras se espera una llamada
CANCELLATION_POLL_INTERVAL = 0.05

# Pool de conexiones HTTP
CONNECTION_POOL_SIZE = int(os.getenv('CONNECTION_POOL_SIZE', '10'))
CONNECTION_POOL_MAXSIZE = int(os.getenv('CONNECTION_POOL_MAXSIZE', '20'))

# ========================================
# CONTENIDO Y FORMATOS
# ========================================

# Sólo se incrusta el contenido de archivos de texto por debajo de este tamaño
TEXT_CONTENT_MAX_BYTES = int(os.getenv('TEXT_CONTENT_MAX_BYTES', '100000'))

TEXT_EXTENSIONS = frozenset({
    'txt', 'md', 'js', 'jsx', 'ts', 'tsx', 'json', 'html', 'css', 'scss',
    'xml', 'yaml', 'yml', 'csv', 'py', 'java', 'c', 'cpp', 'h', 'sh', 'bat'
})

# Categorías de formato habilitables desde la configuración
DEFAULT_FILE_FORMATS: Dict[str, Tuple[str, ...]] = {
    'Source Code': ('.js', '.ts', '.jsx', '.tsx', '.py', '.java', '.cpp', '.c', '.h', '.css', '.scss', '.html'),
    'Documents': ('.md', '.txt', '.pdf', '.doc', '.docx'),
    'Images': ('.jpg', '.jpeg', '.png', '.gif', '.svg'),
    'Data': ('.json', '.xml', '.csv', '.yml', '.yaml'),
    'Configuration': ('.env', '.config', '.ini', '.conf'),
}

# Carpetas que se excluyen por defecto (nombre exacto del segmento)
DEFAULT_EXCLUDED_FOLDERS: List[str] = [
    'node_modules', '.git', 'dist', 'build', '.next',
    'coverage', '__pycache__', '.venv', 'venv'
]

# ========================================
# PROVEEDOR REMOTO
# ========================================

GITHUB_API_BASE = os.getenv('GITHUB_API_BASE', 'https://api.github.com')
GITHUB_PAGE_SIZE = 100
USER_AGENT = 'folderfusion/1.0'

# Por debajo de este número de peticiones restantes se emite un warning
LOW_QUOTA_THRESHOLD = int(os.getenv('LOW_QUOTA_THRESHOLD', '10'))

# ========================================
# CONFIGURACIÓN DE LOGGING
# ========================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = os.getenv('LOG_FORMAT', 'structured')  # 'structured' o 'simple'

LOG_SIMPLE_FORMAT = '[%(levelname)s] %(asctime)s - %(message)s'

# ========================================
# FUENTES Y OPERACIONES SOPORTADAS
# ========================================

SUPPORTED_SOURCES = {
    "github": {
        "name": "GitHub",
        "required_keys": ["reference"],
        "optional_keys": ["token"],
        "description": "Repositorio GitHub vía REST API (contents)",
        "http_allowed": True
    },
    "local": {
        "name": "Local",
        "required_keys": ["path"],
        "optional_keys": [],
        "description": "Directorio local concedido por el usuario",
        "http_allowed": False
    }
}

SOURCE_NAMES = list(SUPPORTED_SOURCES.keys())

# Fuentes admitidas por la entrada HTTP; "local" leería el disco del propio servidor
HTTP_SOURCE_NAMES = [name for name, config in SUPPORTED_SOURCES.items() if config["http_allowed"]]


class Operations:
    """Constantes para operaciones soportadas"""
    GET_TREE = "GET_TREE"

    ALL = [GET_TREE]

    DESCRIPTIONS = {
        GET_TREE: "Obtiene el árbol jerárquico de archivos de la fuente indicada"
    }

# ========================================
# CÓDIGOS DE ERROR ESTANDARIZADOS
# ========================================

class ErrorCodes:
    """Códigos de error estandarizados para mejor categorización"""

    # Errores de validación (4xx)
    MISSING_OPERATION = "MISSING_OPERATION"
    MISSING_SOURCE = "MISSING_SOURCE"
    INVALID_OPERATION = "UNSUPPORTED_OPERATION"
    INVALID_SOURCE = "UNSUPPORTED_SOURCE"
    INVALID_REFERENCE = "INVALID_REPOSITORY_REFERENCE"
    INVALID_OPTIONS = "INVALID_BUILD_OPTIONS"
    INVALID_JSON = "INVALID_JSON"
    NOT_A_DIRECTORY = "NOT_A_DIRECTORY"

    # Errores de proveedor
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"

    # Errores del ciclo de construcción
    BUILD_CANCELLED = "BUILD_CANCELLED"
    BUILD_TIMEOUT = "BUILD_TIMEOUT"
    BUILD_FAILED = "BUILD_FAILED"

# ========================================
# HEADERS HTTP ESTANDARIZADOS
# ========================================

COMMON_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "X-Content-Type-Options": "nosniff"
}

JSON_HEADERS = {
    **COMMON_HEADERS,
    "Content-Type": "application/json; charset=utf-8",
    "Cache-Control": "no-cache, no-store, must-revalidate"
}

# ========================================
# CONFIGURACIÓN DE ENTORNO
# ========================================

IS_LAMBDA = bool(os.getenv('AWS_LAMBDA_FUNCTION_NAME'))
IS_LOCAL = not IS_LAMBDA

if IS_LAMBDA:
    ENABLE_DETAILED_LOGGING = False
else:
    ENABLE_DETAILED_LOGGING = True

# ========================================
# MÉTRICAS Y MONITORING
# ========================================

class MetricNames:
    """Nombres estandarizados de métricas para observabilidad"""

    TREES_BUILT = "trees_built"
    BUILD_DURATION = "build_duration"
    TREE_FILES = "tree_files"
    TREE_DIRECTORIES = "tree_directories"
    ESTIMATED_FILES = "estimated_files"
    ITEMS_DROPPED = "batch_items_dropped"
    RETRIES = "call_retries"
    CACHE_HITS = "cache_hits"
    QUOTA_REMAINING = "quota_remaining"
