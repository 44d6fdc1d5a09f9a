from typing import Optional

from folderfusion.core.cache import ResponseCache
from folderfusion.core.exceptions import InvalidInputError
from folderfusion.core.constants import ErrorCodes
from folderfusion.interfaces.tree_source_interface import ITreeSourceManager
from folderfusion.managers.github_client import GitHubClient
from folderfusion.managers.github_manager import GitHubTreeManager
from folderfusion.managers.local_manager import LocalTreeManager
from folderfusion.models.build_options import BuildRequest


class TreeSourceFactory:
    @staticmethod
    def create(request: BuildRequest, cache: Optional[ResponseCache] = None,
               client: Optional[GitHubClient] = None) -> ITreeSourceManager:
        source = request.source.lower()
        if source == "github":
            if request.reference is None:
                raise InvalidInputError("Falta la referencia del repositorio", field_name="reference")
            return GitHubTreeManager(
                client or GitHubClient(token=request.options.token),
                request.reference,
                request.options,
                cache
            )
        elif source == "local":
            if not request.path:
                raise InvalidInputError(
                    "Falta la ruta del directorio local",
                    field_name="path",
                    error_code=ErrorCodes.NOT_A_DIRECTORY
                )
            return LocalTreeManager(request.path, request.options)
        else:
            raise InvalidInputError(
                f"Fuente no soportada: {source}",
                field_name="source",
                received_value=source,
                error_code=ErrorCodes.INVALID_SOURCE
            )
