import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter

from folderfusion.core.constants import (
    GITHUB_API_BASE,
    GITHUB_PAGE_SIZE,
    USER_AGENT,
    REQUEST_TIMEOUT,
    CONNECTION_POOL_SIZE,
    CONNECTION_POOL_MAXSIZE
)
from folderfusion.core.exceptions import (
    SourceCodeError,
    RequestTimeoutError,
    TransientNetworkError,
    classify_http_error,
    parse_reset_header
)
from folderfusion.core.logger import get_logger, log_api_call

logger = get_logger(__name__)

DirectoryListing = Union[List[Dict[str, Any]], Dict[str, Any]]


@dataclass(frozen=True)
class RateLimit:
    limit: int
    remaining: int
    reset_at: Optional[datetime]


class GitHubClient:
    """
    Cliente REST de GitHub (API v3) sobre una requests.Session.

    - El header Authorization sólo se envía cuando hay token y sólo a `api_base`
    - Cada respuesta fallida se clasifica una vez en la jerarquía de excepciones
    - Los listados de directorio siguen la paginación por header Link
    """

    def __init__(self, token: Optional[str] = None, api_base: str = GITHUB_API_BASE,
                 session: Optional[requests.Session] = None, timeout: float = REQUEST_TIMEOUT):
        self.token = token or None
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or self._create_session()

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'User-Agent': USER_AGENT,
            'Accept': 'application/vnd.github.v3+json',
            'Connection': 'keep-alive'
        })

        # Los reintentos los gestiona call_with_retry
        session.mount('https://', HTTPAdapter(
            pool_connections=CONNECTION_POOL_SIZE,
            pool_maxsize=CONNECTION_POOL_MAXSIZE,
            max_retries=0
        ))

        return session

    # ----------------------------------------
    # Endpoints
    # ----------------------------------------

    def get_rate_limit(self) -> RateLimit:
        log_api_call("github", "rate_limit")
        data = self._get_json(f"{self.api_base}/rate_limit")
        core = data.get("resources", {}).get("core") or data.get("rate", {})
        return RateLimit(
            limit=int(core.get("limit", 0)),
            remaining=int(core.get("remaining", 0)),
            reset_at=parse_reset_header(str(core["reset"])) if core.get("reset") else None
        )

    def get_authenticated_user(self) -> Dict[str, Any]:
        log_api_call("github", "get_authenticated_user")
        return self._get_json(f"{self.api_base}/user")

    def list_directory(self, owner: str, repo: str, path: str = "", ref: Optional[str] = None) -> DirectoryListing:
        """
        Lista el contenido de un directorio (endpoint contents).

        Returns:
            List[dict] con las entradas del directorio, o un dict si la ruta es un archivo
        """
        log_api_call("github", "list_directory", repository=f"{owner}/{repo}", path=path or "/")

        url = self._contents_url(owner, repo, path)
        params: Dict[str, Any] = {"per_page": GITHUB_PAGE_SIZE}
        if ref:
            params["ref"] = ref

        response = self._request(url, params=params)
        data = response.json()
        if not isinstance(data, list):
            return data

        entries = list(data)
        next_url = response.links.get("next", {}).get("url")
        while next_url:
            response = self._request(next_url)
            entries.extend(response.json())
            next_url = response.links.get("next", {}).get("url")

        return entries

    def get_file_content(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> Optional[str]:
        """Devuelve el contenido de texto decodificado, o None si no viene incluido."""
        log_api_call("github", "get_file_content", repository=f"{owner}/{repo}", path=path)

        params = {"ref": ref} if ref else None
        data = self._get_json(self._contents_url(owner, repo, path), params=params)
        if not isinstance(data, dict) or not data.get("content"):
            return None

        if data.get("encoding") == "base64":
            return base64.b64decode(data["content"]).decode("utf-8", errors="replace")
        return data["content"]

    # ----------------------------------------
    # Transporte
    # ----------------------------------------

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        safe_path = quote(path.strip("/"), safe="/")
        base = f"{self.api_base}/repos/{owner}/{repo}/contents"
        return f"{base}/{safe_path}" if safe_path else base

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request(url, params=params).json()

    def _request(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        headers = {}
        if self.token and url.startswith(self.api_base):
            headers["Authorization"] = f"token {self.token}"

        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            raise RequestTimeoutError(
                f"Tiempo de espera agotado consultando GitHub: {url}",
                provider="github",
                timeout_seconds=self.timeout,
                operation="GET"
            ) from e
        except requests.ConnectionError as e:
            raise TransientNetworkError(f"Error de conexión con GitHub: {e}", provider="github") from e

        if response.status_code >= 400:
            raise self.classify_response(response)

        return response

    def classify_response(self, response: requests.Response) -> SourceCodeError:
        """Convierte una respuesta fallida en la excepción tipada correspondiente."""
        error = classify_http_error(
            response.status_code,
            headers=response.headers,
            provider="github",
            has_token=self.has_token,
            context={"url": response.url}
        )
        logger.debug(f"GitHub response classified as {error.kind.value}", extra={
            "status_code": response.status_code,
            "error_code": error.error_code
        })
        return error
