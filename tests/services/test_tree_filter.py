"""
Tests for the display filter.
"""

import pytest

from folderfusion.core.constants import DEFAULT_FILE_FORMATS
from folderfusion.models.build_options import BuildOptions
from folderfusion.models.tree_node import TreeNode, file_extension
from folderfusion.services.tree_filter import allowed_extensions, filter_tree
from folderfusion.utils.tree_utils import flatten_file_paths


def f(path):
    name = path.rsplit("/", 1)[-1]
    return TreeNode.file(name, path, size=1, extension=file_extension(name))


@pytest.fixture
def raw_tree():
    return TreeNode.directory("repo", "", [
        TreeNode.directory("src", "src", [f("src/app.py"), f("src/lib.rs")]),
        TreeNode.directory("dist", "dist", [f("dist/bundle.js")]),
        TreeNode.directory("empty", "empty"),
        f(".gitignore"),
        f("Makefile"),
        f("README.md"),
        f("logo.png"),
    ])


# ============================================================================
# Tests for allowed_extensions
# ============================================================================


@pytest.mark.unit
def test_all_categories_enabled_by_default():
    allowed = allowed_extensions(BuildOptions())

    assert ".py" in allowed
    assert ".png" in allowed
    assert ".rs" not in allowed


@pytest.mark.unit
def test_nothing_enabled_allows_everything():
    options = BuildOptions(enabled_formats={category: False for category in DEFAULT_FILE_FORMATS})
    assert allowed_extensions(options) is None


# ============================================================================
# Tests for filter_tree
# ============================================================================


@pytest.mark.unit
def test_default_filter(raw_tree):
    filtered = filter_tree(raw_tree, BuildOptions())

    assert [child.name for child in filtered.children] == ["src", "empty", "Makefile", "README.md", "logo.png"]
    assert flatten_file_paths(filtered) == ["src/app.py", "Makefile", "README.md", "logo.png"]


@pytest.mark.unit
def test_show_hidden_keeps_dot_files(raw_tree):
    filtered = filter_tree(raw_tree, BuildOptions(show_hidden=True, custom_extensions=frozenset({".gitignore"})))
    assert ".gitignore" in flatten_file_paths(filtered)


@pytest.mark.unit
def test_custom_extensions_are_allowed(raw_tree):
    filtered = filter_tree(raw_tree, BuildOptions(custom_extensions=frozenset({".rs"})))
    assert "src/lib.rs" in flatten_file_paths(filtered)


@pytest.mark.unit
def test_disabled_category_is_removed(raw_tree):
    formats = {category: True for category in DEFAULT_FILE_FORMATS}
    formats["Images"] = False

    filtered = filter_tree(raw_tree, BuildOptions(enabled_formats=formats))

    assert "logo.png" not in flatten_file_paths(filtered)
    assert "README.md" in flatten_file_paths(filtered)


@pytest.mark.unit
def test_empty_exclusions_keep_every_folder(raw_tree):
    filtered = filter_tree(raw_tree, BuildOptions(exclude_patterns=frozenset()))
    assert "dist/bundle.js" in flatten_file_paths(filtered)


@pytest.mark.unit
def test_original_tree_is_not_modified(raw_tree):
    before = raw_tree.to_dict()

    filter_tree(raw_tree, BuildOptions())

    assert raw_tree.to_dict() == before
