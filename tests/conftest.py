"""
Shared fixtures for folderfusion tests.

This module provides reusable pytest fixtures and fakes: an in-memory
GitHub client that records every call, sample repository listings,
fresh caches, progress reporters and cancellation tokens.
"""

import threading
import time

import pytest

from folderfusion.core.cache import ResponseCache
from folderfusion.core.cancellation import CancellationToken
from folderfusion.core.exceptions import NotFoundError
from folderfusion.core.logger import get_logger
from folderfusion.managers.github_client import RateLimit
from folderfusion.models.build_options import BuildOptions, RepositoryReference
from folderfusion.models.progress import ProgressReporter

# Crear los loggers auxiliares antes de que capsys sustituya los streams
for _name in ("api_calls", "metrics", "request_lifecycle"):
    get_logger(_name)


# ============================================================================
# Builders de listados
# ============================================================================


def dir_entry(path):
    return {"name": path.rsplit("/", 1)[-1], "path": path, "type": "dir", "size": 0}


def file_entry(path, size=10):
    return {"name": path.rsplit("/", 1)[-1], "path": path, "type": "file", "size": size}


# ============================================================================
# Fake GitHub client
# ============================================================================


class FakeGitHubClient:
    """
    Cliente en memoria con la misma interfaz que GitHubClient.

    `listings` mapea ruta -> lista de entradas (o dict si la ruta es un archivo).
    `failures` y `content_failures` mapean ruta -> excepción a lanzar.
    `on_list` se invoca con la ruta antes de responder cada listado.
    """

    def __init__(self, listings, contents=None, token=None, remaining=5000,
                 failures=None, content_failures=None, delay=0.0, on_list=None):
        self.listings = listings
        self.contents = contents or {}
        self.token = token
        self.remaining = remaining
        self.failures = failures or {}
        self.content_failures = content_failures or {}
        self.delay = delay
        self.on_list = on_list
        self.calls = []
        self._lock = threading.Lock()

    @property
    def has_token(self):
        return bool(self.token)

    def _record(self, kind, path=None):
        with self._lock:
            self.calls.append((kind, path))

    def calls_of(self, kind):
        with self._lock:
            return [path for call_kind, path in self.calls if call_kind == kind]

    def get_rate_limit(self):
        self._record("rate_limit")
        return RateLimit(limit=5000, remaining=self.remaining, reset_at=None)

    def get_authenticated_user(self):
        self._record("user")
        return {"login": "octocat"}

    def list_directory(self, owner, repo, path="", ref=None):
        self._record("list", path)
        if self.on_list is not None:
            self.on_list(path)
        if self.delay:
            time.sleep(self.delay)
        if path in self.failures:
            raise self.failures[path]
        if path not in self.listings:
            raise NotFoundError(f"Ruta inexistente: {path}", provider="github")
        return self.listings[path]

    def get_file_content(self, owner, repo, path, ref=None):
        self._record("content", path)
        if path in self.content_failures:
            raise self.content_failures[path]
        return self.contents.get(path)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def sample_listings():
    """Repositorio de ejemplo con una carpeta excluida por defecto."""
    return {
        "": [
            dir_entry("src"),
            dir_entry("node_modules"),
            file_entry("README.md", size=6),
            file_entry("LICENSE", size=20),
        ],
        "src": [
            file_entry("src/main.py", size=13),
            file_entry("src/util.py", size=5),
        ],
        "node_modules": [
            file_entry("node_modules/left-pad.js"),
        ],
        "README.md": file_entry("README.md", size=6),
    }


@pytest.fixture
def sample_contents():
    return {
        "README.md": "# Demo",
        "src/main.py": "print('hola')",
        "src/util.py": "x = 1",
    }


@pytest.fixture
def make_client(sample_listings, sample_contents):
    """Factory de FakeGitHubClient sobre el repositorio de ejemplo."""

    def _factory(**kwargs):
        listings = kwargs.pop("listings", sample_listings)
        contents = kwargs.pop("contents", sample_contents)
        return FakeGitHubClient(listings, contents, **kwargs)

    return _factory


@pytest.fixture
def fake_client(make_client):
    return make_client()


@pytest.fixture
def reference():
    return RepositoryReference(owner="acme", repo="widgets")


@pytest.fixture
def options():
    return BuildOptions()


@pytest.fixture
def cache():
    return ResponseCache(ttl=60)


@pytest.fixture
def reporter():
    """Reporter ya en PROCESSING, como lo deja el orquestador antes del builder."""
    progress = ProgressReporter()
    progress.start()
    return progress


@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def local_project(tmp_path):
    """
    Directorio local de ejemplo:

        project/
          a.txt
          src/main.py
          node_modules/x.js
    """
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "node_modules").mkdir()
    (root / "a.txt").write_text("hola", encoding="utf-8")
    (root / "src" / "main.py").write_text("print(1)", encoding="utf-8")
    (root / "node_modules" / "x.js").write_text("module.exports = 1", encoding="utf-8")
    return root
