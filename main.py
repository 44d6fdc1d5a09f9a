"""
Ejecución local del motor de adquisición de árboles
===================================================

Permite probar de forma local la operación principal del servicio
(GET_TREE) sobre un repositorio GitHub o un directorio local,
mostrando el progreso y el resultado en consola.

Uso:
-----
Desde archivo de evento:
    python main.py events/github_event.json

Desde argumentos CLI:
    python main.py --source github --reference https://github.com/org/repo [--token xxx]
    python main.py --source local --path ./proyecto --exclude node_modules,dist --format json

Ctrl-C cancela la construcción en curso.

Versión: 1.0.0
"""

import concurrent.futures
import sys
from typing import List, Optional

from folderfusion.core.cancellation import CancellationToken
from folderfusion.core.exceptions import SourceCodeError
from folderfusion.core.logger import (
    get_logger,
    set_request_context,
    clear_request_context
)
from folderfusion.utils.request_parser import parse_local_event
from folderfusion.handlers.structure_handler import handle_get_tree_local

# Logger central
logger = get_logger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Función principal de ejecución local.

    Parsea el evento (archivo o argumentos), ejecuta la construcción en un
    hilo de trabajo y traduce Ctrl-C en la cancelación del token.

    Returns:
        int: Código de salida (0 éxito, 1 error, 130 cancelado)
    """
    token = CancellationToken()

    try:
        set_request_context(environment="local", source="main")
        logger.info("🧪 Inicio de ejecución local")

        request, output = parse_local_event(argv)

        with concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="build") as executor:
            future = executor.submit(
                handle_get_tree_local,
                request,
                output["format"],
                output["include_content"],
                token=token
            )
            try:
                while True:
                    done, _ = concurrent.futures.wait([future], timeout=0.2)
                    if done:
                        break
            except KeyboardInterrupt:
                print("\n⏹️ Cancelando construcción...")
                token.cancel()
                future.result()
                return 130

            return future.result()

    except SourceCodeError as e:
        print(f"\n❌ Error: {e.message}")
        print(f"🔧 Tipo: {e.kind.value} ({e.error_code})")
        return 1

    except Exception as e:
        logger.exception("🛑 Fallo durante ejecución local")
        print(f"\n❌ Error inesperado: {str(e)}")
        print(f"🔧 Tipo: {type(e).__name__}")
        return 1

    finally:
        clear_request_context()
        logger.info("✅ Ejecución local finalizada")


# Entry point
if __name__ == "__main__":
    sys.exit(main())
