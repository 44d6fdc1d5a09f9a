from typing import Any, Dict, Union

from folderfusion.models.progress import ProgressState
from folderfusion.models.tree_node import TreeNode


def serialize_tree(node: Union[TreeNode, dict], include_content: bool = True) -> Dict[str, Any]:
    """
    Convierte recursivamente un TreeNode a dict serializable en JSON.

    Soporta nodos que ya hayan sido previamente serializados para evitar doble transformación.
    """
    if isinstance(node, dict):
        # Ya está serializado
        return node

    data = node.to_dict()
    if not include_content:
        _strip_content(data)
    return data


def _strip_content(data: Dict[str, Any]) -> None:
    data.pop("content", None)
    for child in data.get("children", []):
        _strip_content(child)


def serialize_progress(state: ProgressState) -> Dict[str, Any]:
    """Instantánea del progreso tal como viaja en la respuesta HTTP."""
    return state.to_dict()
