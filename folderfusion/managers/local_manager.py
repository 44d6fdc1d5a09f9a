import os
from pathlib import Path
from typing import List, Optional, Union

from folderfusion.interfaces.tree_source_interface import ITreeSourceManager
from folderfusion.models.build_options import BuildOptions
from folderfusion.models.progress import ProgressReporter
from folderfusion.models.tree_node import TreeNode, file_extension
from folderfusion.core.batch import run_in_batches
from folderfusion.core.cancellation import CancellationToken
from folderfusion.core.constants import (
    LOCAL_BATCH_SIZE,
    TEXT_CONTENT_MAX_BYTES,
    TEXT_EXTENSIONS,
    ErrorCodes,
    MetricNames
)
from folderfusion.core.exceptions import (
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError
)
from folderfusion.core.logger import get_logger, log_business_metric

logger = get_logger(__name__)


class LocalTreeManager(ITreeSourceManager):
    """
    Constructor del árbol de un directorio local concedido por el usuario.

    Las entradas se ordenan por nombre; los directorios excluidos no se
    recorren y los enlaces simbólicos a directorios no se siguen. Un fallo
    leyendo una entrada concreta se registra y la entrada se omite.
    """

    def __init__(self, root: Union[str, Path], options: Optional[BuildOptions] = None,
                 *, batch_size: int = LOCAL_BATCH_SIZE, pause: float = 0.0):
        self.root = Path(root).expanduser()
        self.options = options or BuildOptions()
        self.batch_size = batch_size
        self.pause = pause

    def build_tree(self, reporter: ProgressReporter, token: CancellationToken) -> TreeNode:
        token.raise_if_cancelled()
        self._check_root()

        root_name = self.root.resolve().name or str(self.root)
        logger.info(f"📂 Building local tree for {self.root}")

        if self.options.is_excluded(root_name):
            reporter.set_total(0)
            return TreeNode.directory(root_name, root_name)

        total = self.count_files(self.root, token)
        log_business_metric(MetricNames.ESTIMATED_FILES, total, "files", source="local")
        reporter.set_total(total)

        children = self._read_directory(self.root, root_name, 0, token, reporter)
        return TreeNode.directory(root_name, root_name, children)

    def count_files(self, directory: Path, token: CancellationToken, depth: int = 0) -> int:
        """Pre-conteo aproximado con os.scandir; los errores cuentan 0."""
        token.raise_if_cancelled()
        count = 0
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if entry.is_dir(follow_symlinks=False):
                        if not self.options.is_excluded(entry.name) and self.options.allows_depth(depth + 1):
                            count += self.count_files(Path(entry.path), token, depth + 1)
                    else:
                        count += 1
        except OSError as e:
            logger.debug(f"Could not pre-count '{directory}': {e}")
        return count

    def _check_root(self) -> None:
        if not self.root.exists():
            raise NotFoundError(
                f"El directorio no existe: {self.root}",
                details={"path": str(self.root)},
                provider="local"
            )
        if not self.root.is_dir():
            raise InvalidInputError(
                f"Not a directory: {self.root}",
                error_code=ErrorCodes.NOT_A_DIRECTORY,
                field_name="path",
                received_value=str(self.root)
            )
        try:
            with os.scandir(self.root):
                pass
        except PermissionError as e:
            raise PermissionDeniedError(
                f"Sin permisos para leer el directorio: {self.root}",
                details={"path": str(self.root)},
                provider="local"
            ) from e

    def _read_directory(self, directory: Path, node_path: str, depth: int,
                        token: CancellationToken, reporter: Optional[ProgressReporter]) -> List[TreeNode]:
        token.raise_if_cancelled()

        entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        entries = [
            entry for entry in entries
            if not (self._is_real_directory(entry) and self.options.is_excluded(entry.name))
        ]

        def on_item_done(entry: Path, node: TreeNode) -> None:
            if reporter is not None and node.is_file:
                reporter.advance()

        return run_in_batches(
            entries,
            lambda entry: self._build_entry(entry, f"{node_path}/{entry.name}", depth, token, reporter),
            token,
            batch_size=self.batch_size,
            pause=self.pause,
            on_item_done=on_item_done
        )

    def _build_entry(self, entry: Path, node_path: str, depth: int,
                     token: CancellationToken, reporter: Optional[ProgressReporter]) -> TreeNode:
        if self._is_real_directory(entry):
            child_depth = depth + 1
            if not self.options.allows_depth(child_depth):
                return TreeNode.directory(entry.name, node_path)
            return TreeNode.directory(
                entry.name,
                node_path,
                self._read_directory(entry, node_path, child_depth, token, reporter)
            )

        size = entry.stat().st_size
        extension = file_extension(entry.name)
        content = None
        if size < TEXT_CONTENT_MAX_BYTES and extension in TEXT_EXTENSIONS:
            content = entry.read_text(encoding="utf-8", errors="replace")

        return TreeNode.file(entry.name, node_path, size=size, extension=extension, content=content)

    @staticmethod
    def _is_real_directory(entry: Path) -> bool:
        return entry.is_dir() and not entry.is_symlink()
