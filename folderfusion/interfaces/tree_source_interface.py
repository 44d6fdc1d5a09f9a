from abc import ABC, abstractmethod

from folderfusion.core.cancellation import CancellationToken
from folderfusion.models.progress import ProgressReporter
from folderfusion.models.tree_node import TreeNode


class ITreeSourceManager(ABC):
    """
    Interfaz base para los constructores de árboles de archivos.

    Define el contrato que cumplen las implementaciones específicas de cada
    fuente (repositorio GitHub, directorio local), desacoplando la
    orquestación de la fuente real de los datos.
    """

    @abstractmethod
    def build_tree(self, reporter: ProgressReporter, token: CancellationToken) -> TreeNode:
        """
        Recorre la fuente y devuelve el nodo raíz del árbol.

        El reporter debe estar en estado PROCESSING; el builder fija `total`
        y avanza `processed` por cada archivo, pero no cambia el estado.

        Args:
            reporter: Progreso de la construcción en curso
            token: Token de cancelación de la construcción

        Returns:
            TreeNode: Directorio raíz con sus descendientes

        Raises:
            SourceCodeError: Errores terminales de la fuente
            BuildCancelledError: Si el token se cancela
        """
        pass
