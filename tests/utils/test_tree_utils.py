"""
Tests for tree traversal helpers and serializers.
"""

import pytest

from folderfusion.models.progress import BuildStatus, ProgressState
from folderfusion.models.tree_node import TreeNode
from folderfusion.utils.serializers import serialize_progress, serialize_tree
from folderfusion.utils.tree_utils import count_files, find_node, flatten_file_paths, iter_nodes


@pytest.fixture
def tree():
    return TreeNode.directory("repo", "", [
        TreeNode.directory("docs", "docs", [
            TreeNode.file("guide.md", "docs/guide.md", size=5, extension="md", content="hola"),
        ]),
        TreeNode.file("README.md", "README.md", size=3, extension="md", content="# x"),
    ])


# ============================================================================
# Tests for tree_utils
# ============================================================================


@pytest.mark.unit
def test_iter_nodes_is_preorder(tree):
    assert [node.path for node in iter_nodes(tree)] == ["", "docs", "docs/guide.md", "README.md"]


@pytest.mark.unit
def test_flatten_file_paths(tree):
    assert flatten_file_paths(tree) == ["docs/guide.md", "README.md"]


@pytest.mark.unit
def test_find_node(tree):
    assert find_node(tree, "docs").is_directory
    assert find_node(tree, "missing") is None


@pytest.mark.unit
def test_count_files(tree):
    assert count_files(tree) == 2


# ============================================================================
# Tests for serializers
# ============================================================================


@pytest.mark.unit
def test_serialize_tree_keeps_content_by_default(tree):
    data = serialize_tree(tree)
    assert data["children"][0]["children"][0]["content"] == "hola"


@pytest.mark.unit
def test_serialize_tree_can_strip_content(tree):
    data = serialize_tree(tree, include_content=False)

    assert "content" not in data["children"][0]["children"][0]
    assert "content" not in data["children"][1]
    assert tree.children[1].content == "# x"


@pytest.mark.unit
def test_serialize_tree_passes_dicts_through():
    data = {"name": "x", "path": "x", "type": "file", "size": 1}
    assert serialize_tree(data) is data


@pytest.mark.unit
def test_serialize_progress():
    state = ProgressState(total=1, processed=1, status=BuildStatus.COMPLETE)
    assert serialize_progress(state)["status"] == "complete"
