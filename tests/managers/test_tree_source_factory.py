"""
Tests for TreeSourceFactory.
"""

import pytest

from folderfusion.core.exceptions import InvalidInputError
from folderfusion.factory.tree_source_factory import TreeSourceFactory
from folderfusion.managers.github_client import GitHubClient
from folderfusion.managers.github_manager import GitHubTreeManager
from folderfusion.managers.local_manager import LocalTreeManager
from folderfusion.models.build_options import BuildOptions, BuildRequest, RepositoryReference


@pytest.mark.unit
def test_creates_github_manager_with_given_client_and_cache(fake_client, cache, reference):
    request = BuildRequest(source="github", reference=reference)

    manager = TreeSourceFactory.create(request, cache=cache, client=fake_client)

    assert isinstance(manager, GitHubTreeManager)
    assert manager.client is fake_client
    assert manager.cache is cache


@pytest.mark.unit
def test_github_manager_gets_a_client_with_the_request_token():
    request = BuildRequest(
        source="github",
        reference=RepositoryReference("acme", "widgets"),
        options=BuildOptions(token="ghp_x")
    )

    manager = TreeSourceFactory.create(request)

    assert isinstance(manager.client, GitHubClient)
    assert manager.client.token == "ghp_x"


@pytest.mark.unit
def test_creates_local_manager(tmp_path):
    manager = TreeSourceFactory.create(BuildRequest(source="local", path=str(tmp_path)))

    assert isinstance(manager, LocalTreeManager)
    assert manager.root == tmp_path


@pytest.mark.unit
@pytest.mark.parametrize("request_", [
    BuildRequest(source="github"),
    BuildRequest(source="local"),
    BuildRequest(source="svn", path="x"),
])
def test_incomplete_or_unknown_requests_are_rejected(request_):
    with pytest.raises(InvalidInputError):
        TreeSourceFactory.create(request_)
