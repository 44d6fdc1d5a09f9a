# folderfusion/models/tree_node.py

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class NodeKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class TreeNode:
    """
    Modelo de datos que representa un nodo dentro del árbol jerárquico
    obtenido de una fuente (repositorio remoto o directorio local).

    Atributos:
    ----------
    name : str
        Nombre del segmento (ej: "main.py", "src"). Nunca vacío.

    path : str
        Ruta completa desde la raíz del recorrido (ej: "src/utils/main.py").
        Única dentro de una misma construcción.

    kind : NodeKind
        FILE o DIRECTORY.

    size : Optional[int]
        Tamaño en bytes (sólo archivos).

    children : Optional[List[TreeNode]]
        Hijos del directorio (posiblemente vacía). None para archivos.

    extension : Optional[str]
        Sufijo en minúsculas sin el punto (sólo archivos).

    content : Optional[str]
        Texto incrustado para archivos de texto pequeños (sólo archivos).

    Usar las factories `TreeNode.file` y `TreeNode.directory` garantiza que un
    archivo nunca tenga hijos y que un directorio nunca tenga size/extension/content.
    """
    name: str
    path: str
    kind: NodeKind
    size: Optional[int] = None
    children: Optional[List["TreeNode"]] = None
    extension: Optional[str] = None
    content: Optional[str] = None

    @classmethod
    def file(cls, name: str, path: str, size: int = 0,
             extension: Optional[str] = None, content: Optional[str] = None) -> "TreeNode":
        return cls(
            name=name,
            path=path,
            kind=NodeKind.FILE,
            size=size,
            extension=extension,
            content=content
        )

    @classmethod
    def directory(cls, name: str, path: str, children: Optional[List["TreeNode"]] = None) -> "TreeNode":
        return cls(name=name, path=path, kind=NodeKind.DIRECTORY, children=list(children or []))

    @property
    def is_file(self) -> bool:
        return self.kind is NodeKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is NodeKind.DIRECTORY

    def to_dict(self) -> Dict[str, Any]:
        """Forma JSON del nodo; las claves ausentes se omiten."""
        data: Dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "type": self.kind.value,
        }
        if self.is_directory:
            data["children"] = [child.to_dict() for child in self.children or []]
            return data

        data["size"] = self.size
        if self.extension is not None:
            data["extension"] = self.extension
        if self.content is not None:
            data["content"] = self.content
        return data


def file_extension(name: str) -> Optional[str]:
    """
    Extrae la extensión en minúsculas de un nombre de archivo.

    >>> file_extension("README.MD")
    'md'
    >>> file_extension("Makefile") is None
    True
    """
    if "." not in name:
        return None
    suffix = name.rsplit(".", 1)[-1].lower()
    return suffix or None
