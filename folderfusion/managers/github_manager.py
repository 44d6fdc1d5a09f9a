from typing import Any, Dict, List, Optional

from folderfusion.interfaces.tree_source_interface import ITreeSourceManager
from folderfusion.models.build_options import BuildOptions, RepositoryReference
from folderfusion.models.progress import ProgressReporter
from folderfusion.models.tree_node import TreeNode, file_extension
from folderfusion.core.batch import run_in_batches
from folderfusion.core.cache import (
    ResponseCache,
    cached_call,
    make_key,
    credential_scope,
    LIST_NAMESPACE,
    CONTENT_NAMESPACE,
    COUNT_NAMESPACE
)
from folderfusion.core.cancellation import CancellationToken
from folderfusion.core.constants import (
    REMOTE_BATCH_SIZE,
    BATCH_PAUSE,
    REQUEST_TIMEOUT,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    TEXT_CONTENT_MAX_BYTES,
    TEXT_EXTENSIONS,
    ErrorCodes,
    MetricNames
)
from folderfusion.core.exceptions import (
    SourceCodeError,
    BuildCancelledError,
    QuotaExceededError,
    InvalidInputError
)
from folderfusion.core.logger import get_logger, log_business_metric
from folderfusion.core.retry import call_with_retry
from folderfusion.managers.github_client import GitHubClient, DirectoryListing

logger = get_logger(__name__)


class GitHubTreeManager(ITreeSourceManager):
    """
    Constructor del árbol de un repositorio GitHub vía endpoint contents.

    Recorre en dos pasadas que comparten reglas de exclusión y cache:
    1. Conteo (`count_files`): estima el total de archivos para el progreso
    2. Obtención (`fetch_directory`): construye los nodos, directorio a directorio,
       en lotes concurrentes acotados

    Los listados se memoizan bajo `list:`, de modo que la segunda pasada no
    repite llamadas. Los directorios excluidos nunca se listan.
    """

    def __init__(
        self,
        client: GitHubClient,
        reference: RepositoryReference,
        options: Optional[BuildOptions] = None,
        cache: Optional[ResponseCache] = None,
        *,
        batch_size: int = REMOTE_BATCH_SIZE,
        pause: float = BATCH_PAUSE,
        request_timeout: Optional[float] = REQUEST_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        base_delay: float = RETRY_BASE_DELAY
    ):
        self.client = client
        self.reference = reference
        self.options = options or BuildOptions()
        self.cache = cache
        self.batch_size = batch_size
        self.pause = pause
        self.request_timeout = request_timeout
        self.max_retries = max_retries
        self.base_delay = base_delay

        self.source = reference.full_name
        if reference.branch:
            self.source = f"{self.source}@{reference.branch}"

        # Las claves de cache se aíslan por credencial
        self.cache_scope = f"{self.source}~{credential_scope(client.token)}"

    def build_tree(self, reporter: ProgressReporter, token: CancellationToken) -> TreeNode:
        root_path = self.reference.path
        logger.info(f"🌳 Building GitHub tree for {self.source}/{root_path}")

        # La raíz se lista primero; sus errores siempre llegan al llamador
        self._require_directory(self._list(root_path, token), root_path)

        total = self.count_files(root_path, token)
        log_business_metric(MetricNames.ESTIMATED_FILES, total, "files", source=self.source)
        reporter.set_total(total)

        children = self.fetch_directory(root_path, 0, token, reporter)
        root_name = root_path.rsplit("/", 1)[-1] if root_path else self.reference.repo
        return TreeNode.directory(root_name, root_path, children)

    # ----------------------------------------
    # Pasada de conteo
    # ----------------------------------------

    def count_files(self, path: str, token: CancellationToken, depth: int = 0) -> int:
        """
        Cuenta los archivos bajo `path` respetando exclusiones y profundidad.

        Una respuesta que no es lista (la ruta es un archivo) cuenta 1. Los
        fallos no terminales se registran y cuentan 0 (sin cachear).
        """
        key = make_key(COUNT_NAMESPACE, f"{self.cache_scope}#{self.options.fingerprint()}", path)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        try:
            listing = self._list(path, token)
        except BuildCancelledError:
            raise
        except SourceCodeError as e:
            if e.is_terminal:
                raise
            logger.warning(f"⚠️ Could not count files in '{path or '/'}': {e.message}")
            return 0

        if not isinstance(listing, list):
            count = 1
        else:
            count = 0
            subdirectories = []
            for entry in listing:
                if entry.get("type") != "dir":
                    count += 1
                elif not self.options.is_excluded(entry["name"]) and self.options.allows_depth(depth + 1):
                    subdirectories.append(entry["path"])

            count += sum(run_in_batches(
                subdirectories,
                lambda sub_path: self.count_files(sub_path, token, depth + 1),
                token,
                batch_size=self.batch_size,
                pause=self.pause
            ))

        if self.cache is not None:
            self.cache.put(key, count)
        return count

    # ----------------------------------------
    # Pasada de obtención
    # ----------------------------------------

    def fetch_directory(self, path: str, depth: int, token: CancellationToken,
                        reporter: Optional[ProgressReporter] = None) -> List[TreeNode]:
        """
        Construye los hijos del directorio `path` (profundidad `depth`, raíz = 0).

        Raises:
            InvalidInputError: Si `path` no es un directorio
        """
        listing = self._require_directory(self._list(path, token), path)
        entries = [
            entry for entry in listing
            if not (entry.get("type") == "dir" and self.options.is_excluded(entry["name"]))
        ]

        def on_item_done(entry: Dict[str, Any], node: TreeNode) -> None:
            if reporter is not None and node.is_file:
                reporter.advance()

        return run_in_batches(
            entries,
            lambda entry: self._build_entry(entry, depth, token, reporter),
            token,
            batch_size=self.batch_size,
            pause=self.pause,
            on_item_done=on_item_done
        )

    def _build_entry(self, entry: Dict[str, Any], depth: int, token: CancellationToken,
                     reporter: Optional[ProgressReporter]) -> TreeNode:
        name = entry["name"]
        path = entry["path"]

        if entry.get("type") == "dir":
            child_depth = depth + 1
            if not self.options.allows_depth(child_depth):
                return TreeNode.directory(name, path)
            return TreeNode.directory(name, path, self.fetch_directory(path, child_depth, token, reporter))

        size = int(entry.get("size") or 0)
        extension = file_extension(name)
        content = None
        if size < TEXT_CONTENT_MAX_BYTES and extension in TEXT_EXTENSIONS:
            content = self._fetch_content(path, token)

        return TreeNode.file(name, path, size=size, extension=extension, content=content)

    def _fetch_content(self, path: str, token: CancellationToken) -> Optional[str]:
        """Obtiene el contenido de texto; un fallo se registra y el nodo queda sin contenido."""
        try:
            return cached_call(
                self.cache,
                make_key(CONTENT_NAMESPACE, self.cache_scope, path),
                lambda: self._call(
                    lambda: self.client.get_file_content(
                        self.reference.owner, self.reference.repo, path, ref=self.reference.branch
                    ),
                    token,
                    f"content {path}"
                )
            )
        except (BuildCancelledError, QuotaExceededError):
            raise
        except SourceCodeError as e:
            logger.warning(f"⚠️ Could not fetch content of '{path}': {e.message}", extra={
                "error_kind": e.kind.value
            })
            return None

    # ----------------------------------------
    # Utilidades
    # ----------------------------------------

    def _list(self, path: str, token: CancellationToken) -> DirectoryListing:
        return cached_call(
            self.cache,
            make_key(LIST_NAMESPACE, self.cache_scope, path),
            lambda: self._call(
                lambda: self.client.list_directory(
                    self.reference.owner, self.reference.repo, path, ref=self.reference.branch
                ),
                token,
                f"list {path or '/'}"
            )
        )

    def _call(self, operation, token: CancellationToken, description: str):
        return call_with_retry(
            operation,
            token,
            timeout=self.request_timeout,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            description=description
        )

    @staticmethod
    def _require_directory(listing: DirectoryListing, path: str) -> List[Dict[str, Any]]:
        if not isinstance(listing, list):
            raise InvalidInputError(
                f"Not a directory: {path or '/'}",
                error_code=ErrorCodes.NOT_A_DIRECTORY,
                field_name="path",
                received_value=path
            )
        return listing
