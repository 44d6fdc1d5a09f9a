"""
Tests for the local directory tree builder.

Uses pytest's tmp_path to build real directory trees.
"""

import os

import pytest

from folderfusion.core.constants import ErrorCodes
from folderfusion.core.exceptions import BuildCancelledError, InvalidInputError, NotFoundError
from folderfusion.managers.local_manager import LocalTreeManager
from folderfusion.models.build_options import BuildOptions
from folderfusion.utils.tree_utils import find_node, flatten_file_paths


# ============================================================================
# Tests for a complete build
# ============================================================================


@pytest.mark.unit
def test_builds_sorted_tree_without_excluded_folders(local_project, reporter, token):
    tree = LocalTreeManager(local_project).build_tree(reporter, token)

    assert tree.name == "project"
    assert tree.path == "project"
    assert [child.name for child in tree.children] == ["a.txt", "src"]
    assert flatten_file_paths(tree) == ["project/a.txt", "project/src/main.py"]


@pytest.mark.unit
def test_embeds_small_text_files(local_project, reporter, token):
    tree = LocalTreeManager(local_project).build_tree(reporter, token)

    a_txt = find_node(tree, "project/a.txt")
    assert a_txt.content == "hola"
    assert a_txt.size == 4
    assert a_txt.extension == "txt"


@pytest.mark.unit
def test_binary_extensions_have_no_content(local_project, reporter, token):
    (local_project / "logo.png").write_bytes(b"\x89PNG")

    tree = LocalTreeManager(local_project).build_tree(reporter, token)

    assert find_node(tree, "project/logo.png").content is None


@pytest.mark.unit
def test_progress_matches_precount(local_project, reporter, token):
    LocalTreeManager(local_project).build_tree(reporter, token)

    state = reporter.snapshot()
    assert state.total == 2
    assert state.processed == 2


@pytest.mark.unit
def test_count_files_skips_excluded_folders(local_project, token):
    assert LocalTreeManager(local_project).count_files(local_project, token) == 2
    assert LocalTreeManager(local_project, BuildOptions(exclude_patterns=frozenset())).count_files(local_project, token) == 3


@pytest.mark.unit
def test_count_files_stops_once_cancelled(local_project, token, monkeypatch):
    for name in ("b", "c", "d"):
        (local_project / "src" / name).mkdir()
        (local_project / "src" / name / "f.txt").write_text("x", encoding="utf-8")

    real_scandir = os.scandir
    scanned = []

    def cancelling_scandir(path):
        scanned.append(path)
        token.cancel()
        return real_scandir(path)

    monkeypatch.setattr("folderfusion.managers.local_manager.os.scandir", cancelling_scandir)

    with pytest.raises(BuildCancelledError):
        LocalTreeManager(local_project).count_files(local_project, token)

    assert len(scanned) == 1


@pytest.mark.unit
def test_build_is_cancelled_during_the_count(local_project, reporter, token, monkeypatch):
    real_scandir = os.scandir

    def cancelling_scandir(path):
        token.cancel()
        return real_scandir(path)

    monkeypatch.setattr("folderfusion.managers.local_manager.os.scandir", cancelling_scandir)

    with pytest.raises(BuildCancelledError):
        LocalTreeManager(local_project).build_tree(reporter, token)

    assert reporter.snapshot().total_known is False


@pytest.mark.unit
def test_max_depth_leaves_deeper_directories_empty(local_project, reporter, token):
    tree = LocalTreeManager(local_project, BuildOptions(max_depth=1)).build_tree(reporter, token)

    assert find_node(tree, "project/src").children == []
    assert reporter.snapshot().total == 1


@pytest.mark.unit
def test_small_batches_keep_order(local_project, reporter, token):
    for name in ("c.md", "b.md"):
        (local_project / name).write_text(name, encoding="utf-8")

    tree = LocalTreeManager(local_project, batch_size=1).build_tree(reporter, token)

    assert [child.name for child in tree.children] == ["a.txt", "b.md", "c.md", "src"]


@pytest.mark.unit
@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_directory_symlinks_are_not_followed(local_project, reporter, token):
    try:
        (local_project / "loop").symlink_to(local_project, target_is_directory=True)
    except OSError:
        pytest.skip("cannot create symlinks here")

    tree = LocalTreeManager(local_project).build_tree(reporter, token)

    loop = find_node(tree, "project/loop")
    assert loop is not None
    assert loop.is_file


# ============================================================================
# Tests for roots and failures
# ============================================================================


@pytest.mark.unit
def test_missing_root_is_not_found(tmp_path, reporter, token):
    with pytest.raises(NotFoundError):
        LocalTreeManager(tmp_path / "missing").build_tree(reporter, token)


@pytest.mark.unit
def test_file_root_is_not_a_directory(local_project, reporter, token):
    with pytest.raises(InvalidInputError) as exc_info:
        LocalTreeManager(local_project / "a.txt").build_tree(reporter, token)
    assert exc_info.value.error_code == ErrorCodes.NOT_A_DIRECTORY


@pytest.mark.unit
def test_excluded_root_is_empty(local_project, reporter, token):
    tree = LocalTreeManager(local_project / "node_modules").build_tree(reporter, token)

    assert tree.name == "node_modules"
    assert tree.children == []
    assert reporter.snapshot().total == 0


@pytest.mark.unit
def test_cancelled_token_aborts(local_project, reporter, token):
    token.cancel()

    with pytest.raises(BuildCancelledError):
        LocalTreeManager(local_project).build_tree(reporter, token)
