"""
Filtro de visualización del árbol según la configuración del usuario.

Se aplica sobre el árbol crudo devuelto por un constructor:
- Carpetas excluidas: se eliminan con todo su subárbol
- Archivos ocultos (".algo"): se eliminan salvo show_hidden
- Archivos sin extensión: siempre se conservan
- Resto de archivos: se conservan si su extensión está en las extensiones
  personalizadas o en alguna categoría de formato habilitada

Si no hay ninguna categoría habilitada ni extensiones personalizadas, se
permiten todos los archivos. Los directorios se conservan aunque queden vacíos.
"""

from typing import FrozenSet, Optional

from folderfusion.core.constants import DEFAULT_FILE_FORMATS
from folderfusion.models.build_options import BuildOptions
from folderfusion.models.tree_node import TreeNode


def allowed_extensions(options: BuildOptions) -> Optional[FrozenSet[str]]:
    """Extensiones permitidas (".ext"), o None si se permite todo."""
    allowed = set(options.custom_extensions)
    for category, extensions in DEFAULT_FILE_FORMATS.items():
        if options.enabled_formats.get(category):
            allowed.update(extensions)
    return frozenset(allowed) if allowed else None


def filter_tree(node: TreeNode, options: BuildOptions) -> TreeNode:
    """
    Devuelve una copia filtrada del árbol; el original no se modifica.

    Example:
        >>> filtered = filter_tree(root, BuildOptions(show_hidden=True))
    """
    return _filter_directory(node, options, allowed_extensions(options))


def _filter_directory(node: TreeNode, options: BuildOptions, allowed: Optional[FrozenSet[str]]) -> TreeNode:
    if node.is_file:
        return node

    children = []
    for child in node.children or []:
        if child.is_directory:
            if options.is_excluded(child.name):
                continue
            children.append(_filter_directory(child, options, allowed))
        elif _keep_file(child, options, allowed):
            children.append(child)

    return TreeNode.directory(node.name, node.path, children)


def _keep_file(node: TreeNode, options: BuildOptions, allowed: Optional[FrozenSet[str]]) -> bool:
    if node.name.startswith(".") and not options.show_hidden:
        return False
    if not node.extension or allowed is None:
        return True
    return f".{node.extension}" in allowed
