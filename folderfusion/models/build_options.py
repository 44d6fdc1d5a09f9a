# folderfusion/models/build_options.py

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from folderfusion.core.constants import DEFAULT_EXCLUDED_FOLDERS, DEFAULT_FILE_FORMATS, Operations


def _default_formats() -> Dict[str, bool]:
    return {category: True for category in DEFAULT_FILE_FORMATS}


def _as_name_set(values: Optional[Iterable[str]]) -> FrozenSet[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        values = values.split(",")
    return frozenset(value.strip() for value in values if value and value.strip())


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "si", "sí")
    return bool(value)


def _normalize_extension(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


@dataclass(frozen=True)
class RepositoryReference:
    """
    Ubicación de un repositorio remoto ya validada.

    Atributos:
        owner: Usuario u organización dueña del repositorio
        repo: Nombre del repositorio (sin sufijo .git)
        path: Sub-ruta dentro del repositorio ("" para la raíz)
        branch: Rama indicada con /tree/<branch>, si la hay
    """
    owner: str
    repo: str
    path: str = ""
    branch: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class BuildOptions:
    """
    Opciones de construcción y filtrado del árbol.

    Atributos:
        exclude_patterns: Nombres de carpeta que se omiten junto con su subárbol
        custom_extensions: Extensiones adicionales permitidas (".ext")
        enabled_formats: Categoría de formato -> habilitada
        show_hidden: Conservar archivos que empiezan con "." en la vista filtrada
        token: Credencial bearer; sólo se envía al host de la API
        max_depth: Profundidad máxima de directorios a listar (None = ilimitada)
    """
    exclude_patterns: FrozenSet[str] = field(default_factory=lambda: frozenset(DEFAULT_EXCLUDED_FOLDERS))
    custom_extensions: FrozenSet[str] = field(default_factory=frozenset)
    enabled_formats: Mapping[str, bool] = field(default_factory=_default_formats)
    show_hidden: bool = False
    token: Optional[str] = field(default=None, repr=False)
    max_depth: Optional[int] = None

    def is_excluded(self, name: str) -> bool:
        return name in self.exclude_patterns

    def allows_depth(self, depth: int) -> bool:
        """Indica si un directorio a esta profundidad (raíz = 0) puede listarse."""
        return self.max_depth is None or depth < self.max_depth

    def fingerprint(self) -> str:
        """Identificador estable de las opciones que afectan al recorrido (no al filtro)."""
        excluded = ",".join(sorted(self.exclude_patterns))
        depth = "" if self.max_depth is None else str(self.max_depth)
        return f"x={excluded};d={depth}"

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BuildOptions":
        """
        Construye opciones desde un diccionario de request o configuración.

        Claves reconocidas (camelCase o snake_case):
            excludedFolders / exclude_patterns: lista o cadena separada por comas
            customExtensions / custom_extensions
            fileFormats / enabled_formats: {categoria: bool}
            showHidden / show_hidden
            token
            maxDepth / max_depth

        Example:
            >>> BuildOptions.from_dict({"excludedFolders": "node_modules,dist"}).exclude_patterns
            frozenset({'node_modules', 'dist'})
        """
        data = data or {}

        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        excluded = pick("excludedFolders", "exclude_patterns", "exclude")
        custom = pick("customExtensions", "custom_extensions")
        formats = pick("fileFormats", "enabled_formats")
        max_depth = pick("maxDepth", "max_depth")

        enabled = _default_formats()
        if formats:
            enabled.update({str(k): bool(v) for k, v in dict(formats).items()})

        return cls(
            exclude_patterns=(
                frozenset(DEFAULT_EXCLUDED_FOLDERS) if excluded is None else _as_name_set(excluded)
            ),
            custom_extensions=frozenset(_normalize_extension(ext) for ext in _as_name_set(custom)),
            enabled_formats=enabled,
            show_hidden=_as_bool(pick("showHidden", "show_hidden", default=False)),
            token=pick("token") or None,
            max_depth=None if max_depth is None else int(max_depth),
        )


@dataclass(frozen=True)
class BuildRequest:
    """
    Petición de construcción ya validada.

    `reference` es obligatoria para source="github" y `path` para source="local".
    """
    source: str
    options: BuildOptions = field(default_factory=BuildOptions)
    reference: Optional[RepositoryReference] = None
    path: Optional[str] = None
    operation: str = Operations.GET_TREE

    @property
    def target(self) -> str:
        if self.reference is not None:
            suffix = f"/{self.reference.path}" if self.reference.path else ""
            return f"{self.reference.full_name}{suffix}"
        return self.path or ""
