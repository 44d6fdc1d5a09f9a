"""
Utilidades para recorrer árboles de TreeNode y aplanar rutas de archivos.
"""

from typing import Iterator, List, Optional

from folderfusion.models.tree_node import TreeNode

__all__ = ["iter_nodes", "flatten_file_paths", "find_node", "count_files"]


def iter_nodes(node: TreeNode) -> Iterator[TreeNode]:
    """Recorre el árbol en preorden, incluyendo la raíz."""
    yield node
    for child in node.children or []:
        yield from iter_nodes(child)


def flatten_file_paths(node: TreeNode) -> List[str]:
    """
    Devuelve las rutas de todos los archivos del árbol en orden de recorrido.

    Args:
        node: Nodo raíz.
    Returns:
        List[str]: Rutas de los nodos de tipo archivo.
    """
    return [current.path for current in iter_nodes(node) if current.is_file]


def find_node(node: TreeNode, path: str) -> Optional[TreeNode]:
    """Busca un nodo por su ruta exacta."""
    for current in iter_nodes(node):
        if current.path == path:
            return current
    return None


def count_files(node: TreeNode) -> int:
    return sum(1 for current in iter_nodes(node) if current.is_file)
