import pytest

from core.errors import NotFoundError, ValidationError
from services import file_history as history_service
from utils.storage import theme_file_key, write_text_key

PATH = "assets/theme.css"


@pytest.fixture
def saved_versions(db, store, local_storage):
    return [history_service.save_file(db, store.id, "base", PATH, body) for body in ("v1", "v2", "v3")]


def test_save_appends_create_then_updates(db, store, saved_versions):
    assert [(e.version, e.change_type) for e in saved_versions] == [(1, "create"), (2, "update"), (3, "update")]
    assert history_service.read_file(store.id, "base", PATH) == "v3"
    listed = history_service.list_file_history(db, store.id, "base", PATH)
    assert [e.version for e in listed] == [3, 2, 1]


def test_restore_snapshots_current_content_first(db, store, saved_versions):
    v1_id = saved_versions[0].id

    result = history_service.restore_file(db, store.id, "base", PATH, v1_id)

    assert result["preRestore"]["changeType"] == "pre-restore"
    assert result["entry"]["restoredFromId"] == v1_id
    assert history_service.read_file(store.id, "base", PATH) == "v1"
    pre_restore = history_service.get_history_entry(db, result["preRestore"]["id"])
    assert pre_restore.content == "v3"


def test_undo_of_undo_returns_to_latest(db, store, saved_versions):
    first = history_service.restore_file(db, store.id, "base", PATH, saved_versions[0].id)

    history_service.restore_file(db, store.id, "base", PATH, first["preRestore"]["id"])

    assert history_service.read_file(store.id, "base", PATH) == "v3"
    history = history_service.list_file_history(db, store.id, "base", PATH)
    assert [e.change_type for e in history][:4] == ["restore", "pre-restore", "restore", "pre-restore"]
    # Nothing was rewritten
    assert [e.content for e in reversed(history)][:3] == ["v1", "v2", "v3"]


def test_untracked_file_gets_a_baseline_entry(db, store, local_storage):
    write_text_key(theme_file_key(store.id, "base", "layout/theme.liquid"), "original")

    entry = history_service.save_file(db, store.id, "base", "layout/theme.liquid", "edited")

    history = history_service.list_file_history(db, store.id, "base", "layout/theme.liquid")
    assert entry.change_type == "update"
    assert [(e.change_type, e.content) for e in reversed(history)] == [("create", "original"), ("update", "edited")]


def test_diff_between_versions(db, store, saved_versions):
    diff = history_service.diff_file_versions(db, saved_versions[0].id, saved_versions[2].id)

    assert diff["fromVersion"] == 1
    assert diff["toVersion"] == 3
    assert "-v1" in diff["diff"]
    assert "+v3" in diff["diff"]


def test_paths_must_be_relative(db, store, local_storage):
    for bad in ("../secrets.env", "/etc/passwd", "assets/../../x", ""):
        with pytest.raises(ValidationError):
            history_service.save_file(db, store.id, "base", bad, "x")


def test_missing_file_and_entry(db, store, local_storage):
    with pytest.raises(NotFoundError):
        history_service.read_file(store.id, "base", "nope.css")
    with pytest.raises(NotFoundError):
        history_service.get_history_entry(db, "missing")


def test_restore_rejects_entry_of_another_file(db, store, saved_versions):
    other = history_service.save_file(db, store.id, "base", "assets/other.css", "x")
    with pytest.raises(ValidationError):
        history_service.restore_file(db, store.id, "base", PATH, other.id)
