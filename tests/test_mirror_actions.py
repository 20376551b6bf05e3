from pathlib import Path

import pytest

from changemonitor.events import ChangeKind, ChangeRecord
from changemonitor.mirror_actions import MirrorActionFactory, mirror_factory
from changemonitor.pipeline import ChangePipeline


@pytest.fixture
def tree(tmp_path):
    source = tmp_path / "source"
    target = tmp_path / "mirror"
    source.mkdir()
    return source, target, MirrorActionFactory(source, target)


def test_created_file_is_copied_with_parents(tree):
    source, target, factory = tree
    (source / "nested").mkdir()
    (source / "nested" / "f.txt").write_text("hello")

    action = factory.create_action(ChangeRecord(kind=ChangeKind.CREATED, path=source / "nested" / "f.txt"))
    action()

    assert (target / "nested" / "f.txt").read_text() == "hello"


def test_modified_file_overwrites_mirror(tree):
    source, target, factory = tree
    (source / "f.txt").write_text("v1")
    factory.create_action(ChangeRecord(kind=ChangeKind.CREATED, path=source / "f.txt"))()
    (source / "f.txt").write_text("v2")

    factory.create_action(ChangeRecord(kind=ChangeKind.MODIFIED, path=source / "f.txt"))()

    assert (target / "f.txt").read_text() == "v2"


def test_factory_call_has_no_side_effect(tree):
    source, target, factory = tree
    (source / "f.txt").write_text("hello")

    factory.create_action(ChangeRecord(kind=ChangeKind.CREATED, path=source / "f.txt"))

    assert not target.exists()


def test_created_directory_is_mirrored(tree):
    source, target, factory = tree
    (source / "sub").mkdir()

    factory.create_action(ChangeRecord(kind=ChangeKind.CREATED, path=source / "sub", is_directory=True))()

    assert (target / "sub").is_dir()


def test_vanished_source_is_skipped(tree):
    source, target, factory = tree

    factory.create_action(ChangeRecord(kind=ChangeKind.MODIFIED, path=source / "gone.txt"))()

    assert not (target / "gone.txt").exists()


def test_deleted_file_and_directory_are_removed(tree):
    source, target, factory = tree
    (target / "sub").mkdir(parents=True)
    (target / "sub" / "f.txt").write_text("x")
    (target / "g.txt").write_text("y")

    factory.create_action(ChangeRecord(kind=ChangeKind.DELETED, path=source / "g.txt"))()
    factory.create_action(ChangeRecord(kind=ChangeKind.DELETED, path=source / "sub"))()
    factory.create_action(ChangeRecord(kind=ChangeKind.DELETED, path=source / "never.txt"))()

    assert not (target / "g.txt").exists()
    assert not (target / "sub").exists()


def test_rename_moves_existing_mirror_entry(tree):
    source, target, factory = tree
    target.mkdir()
    (target / "old.txt").write_text("payload")
    (source / "new.txt").write_text("payload")

    factory.create_action(
        ChangeRecord(kind=ChangeKind.RENAMED, path=source / "new.txt", previous_path=source / "old.txt")
    )()

    assert not (target / "old.txt").exists()
    assert (target / "new.txt").read_text() == "payload"


def test_rename_without_mirror_entry_copies_source(tree):
    source, target, factory = tree
    (source / "dir").mkdir()
    (source / "dir" / "inner.txt").write_text("inner")

    factory.create_action(
        ChangeRecord(kind=ChangeKind.RENAMED, path=source / "dir", previous_path=source / "was", is_directory=True)
    )()

    assert (target / "dir" / "inner.txt").read_text() == "inner"


def test_paths_outside_source_or_inside_mirror_are_ignored(tmp_path):
    source = tmp_path
    target = tmp_path / ".mirror"
    factory = MirrorActionFactory(source, target)

    assert factory.create_action(ChangeRecord(kind=ChangeKind.CREATED, path=target / "f.txt")) is None
    assert factory.create_action(ChangeRecord(kind=ChangeKind.CREATED, path=Path("/elsewhere/f.txt"))) is None
    assert factory.create_action(ChangeRecord(kind=ChangeKind.MODIFIED, path=source)) is None


def test_builder_resolves_relative_target(tmp_path):
    factory = mirror_factory(tmp_path / "source", {"target": "../mirror"})

    assert factory.target_root == (tmp_path / "mirror").resolve()


def test_builder_requires_target(tmp_path):
    with pytest.raises(ValueError, match="target"):
        mirror_factory(tmp_path, {})


def test_modified_then_renamed_mirrors_latest_content(tree):
    source, target, factory = tree
    target.mkdir()
    (target / "x.txt").write_text("old")
    (source / "x.txt").write_text("new")
    pipeline = ChangePipeline(factory, quiet_window=10)

    pipeline.submit(ChangeRecord(kind=ChangeKind.MODIFIED, path=source / "x.txt"))
    (source / "x.txt").rename(source / "y.txt")
    pipeline.submit(
        ChangeRecord(kind=ChangeKind.RENAMED, path=source / "y.txt", previous_path=source / "x.txt")
    )
    pipeline.scheduler.flush()

    assert (target / "y.txt").read_text() == "new"
    assert not (target / "x.txt").exists()


def test_rename_moves_mirror_entry_when_source_vanished(tree):
    source, target, factory = tree
    target.mkdir()
    (target / "old.txt").write_text("payload")

    factory.create_action(
        ChangeRecord(kind=ChangeKind.RENAMED, path=source / "new.txt", previous_path=source / "old.txt")
    )()

    assert not (target / "old.txt").exists()
    assert (target / "new.txt").read_text() == "payload"
