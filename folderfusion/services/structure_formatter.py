"""
Servicio de Formateo y Análisis de la Estructura
================================================

Convierte un árbol de TreeNode en:
- Un esquema textual indentado, apto para lectura humana y modelos de IA
- Un resumen de análisis (totales, tipos de archivo, tamaño medio, profundidad)

Cada carpeta se muestra con 📁 y cada archivo con 📄 seguido de su extensión.

Versión: 1.0.0
"""

from collections import Counter
from typing import Any, Dict, List

from folderfusion.models.tree_node import TreeNode


def format_text_tree(node: TreeNode, indent: int = 0) -> str:
    """
    Convierte un árbol en un esquema indentado.

    Argumentos:
        node (TreeNode): Nodo raíz (o subárbol).
        indent (int): Nivel de indentación inicial (para recursividad).

    Retorna:
        str: Representación textual de la estructura.

    Ejemplo de salida:
        📁 widgets
          📁 src
            📄 main.py (py)
          📄 Makefile
    """
    lines: List[str] = []
    prefix = "  " * indent

    if node.is_directory:
        lines.append(f"{prefix}📁 {node.name}")
        for child in node.children or []:
            lines.append(format_text_tree(child, indent + 1))
    else:
        suffix = f" ({node.extension})" if node.extension else ""
        lines.append(f"{prefix}📄 {node.name}{suffix}")

    return "\n".join(lines)


def analyze_tree(node: TreeNode) -> Dict[str, Any]:
    """
    Resume el árbol: total_files, total_directories, file_types,
    average_file_size y max_depth (la raíz tiene profundidad 0).

    La raíz no cuenta como directorio.
    """
    file_types: Counter = Counter()
    totals = {"files": 0, "directories": 0, "size": 0, "max_depth": 0}

    def walk(current: TreeNode, depth: int) -> None:
        totals["max_depth"] = max(totals["max_depth"], depth)
        for child in current.children or []:
            if child.is_directory:
                totals["directories"] += 1
                walk(child, depth + 1)
            else:
                totals["files"] += 1
                totals["size"] += child.size or 0
                file_types[child.extension or "sin extensión"] += 1
                totals["max_depth"] = max(totals["max_depth"], depth + 1)

    walk(node, 0)

    return {
        "total_files": totals["files"],
        "total_directories": totals["directories"],
        "file_types": dict(file_types),
        "average_file_size": round(totals["size"] / totals["files"]) if totals["files"] else 0,
        "max_depth": totals["max_depth"],
    }
