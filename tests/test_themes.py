import pytest

from core.errors import ConflictError, NotFoundError
from models.backup import ThemeBackup
from services import themes as theme_service
from services.templates import get_store


def test_register_reads_manifest_and_schema(db, reader):
    theme = theme_service.register_theme(db, "base", reader)

    assert theme.name == "Base"
    assert theme.version == "1.2.0"
    assert theme.settings_schema[0]["key"] == "colors.primary"
    assert theme_service.register_theme(db, "base", reader).id == theme.id


def test_register_unknown_package_is_not_found(db, reader):
    with pytest.raises(NotFoundError):
        theme_service.register_theme(db, "ghost", reader)


def test_duplicate_copies_row_and_package(db, reader, themes_dir):
    theme_service.register_theme(db, "base", reader)
    theme_service.publish_theme(db, "base")

    copy_row = theme_service.duplicate_theme(db, "base", "base-custom", reader=reader)

    assert copy_row.is_published is False
    assert copy_row.name == "Base (copy)"
    assert (themes_dir / "base-custom" / "templates" / "homepage.json").is_file()
    with pytest.raises(ConflictError):
        theme_service.duplicate_theme(db, "base", "base-custom", reader=reader)


def test_published_theme_is_immutable(db, reader):
    theme_service.register_theme(db, "minimal", reader)
    theme_service.update_theme(db, "minimal", name="Minimal Pro")
    theme_service.publish_theme(db, "minimal")

    with pytest.raises(ConflictError):
        theme_service.update_theme(db, "minimal", name="Renamed")
    assert theme_service.get_theme(db, "minimal").name == "Minimal Pro"


def test_settings_overlay_defaults(db, store, reader):
    before = theme_service.get_theme_settings(db, store.id, reader=reader)
    assert before["customized"] is False
    assert before["settings"]["colors"]["primary"] == "#111827"

    theme_service.update_theme_settings(db, store.id, {"colors.primary": "#ff0000"}, custom_css="body{}")
    theme_service.update_theme_settings(db, store.id, {"layout": {"containerWidth": 960}})

    after = theme_service.get_theme_settings(db, store.id, reader=reader)
    assert after["settings"]["colors"]["primary"] == "#ff0000"
    assert after["settings"]["layout"]["containerWidth"] == 960
    assert after["settings"]["cart"]["style"] == "drawer"
    assert after["customCss"] == "body{}"

    theme_service.update_theme_settings(db, store.id, {"colors": {"text": "#000"}}, replace=True)
    saved = theme_service.get_customization(db, store.id, "base").settings
    assert saved == {"colors": {"text": "#000"}}


def test_activation_migrates_settings_and_backs_up(db, store, reader):
    theme_service.update_theme_settings(db, store.id, {
        "colors": {"primary": "#222222", "secondary": "#333333"},
        "cart": {"style": "page"},
    })

    result = theme_service.activate_theme(db, store.id, "minimal", reader=reader, created_by="owner-1")

    assert result["fromTheme"] == "base"
    assert result["toTheme"] == "minimal"
    assert get_store(db, store.id).active_theme_code == "minimal"
    migrated = theme_service.get_customization(db, store.id, "minimal").settings
    assert migrated["colors"] == {"primary": "#222222", "background": "#fafafa"}
    assert migrated["layout"] == {"spacing": "relaxed"}
    assert "cart" not in migrated

    backup = db.query(ThemeBackup).filter(ThemeBackup.id == result["backupId"]).one()
    assert backup.theme_code == "base"
    assert backup.settings["cart"] == {"style": "page"}


def test_reactivating_same_theme_changes_nothing(db, store, reader):
    theme_service.update_theme_settings(db, store.id, {"colors": {"primary": "#222222"}, "legacy": True})

    result = theme_service.activate_theme(db, store.id, "base", reader=reader)

    assert result["backupId"] is None
    assert result["settings"] == {"colors": {"primary": "#222222"}, "legacy": True}
    assert db.query(ThemeBackup).count() == 0


def test_activation_without_backup(db, store, reader):
    result = theme_service.activate_theme(db, store.id, "minimal", create_backup=False, reader=reader)
    assert result["backupId"] is None
    assert db.query(ThemeBackup).count() == 0


def test_activating_unknown_theme_is_not_found(db, store, reader):
    with pytest.raises(NotFoundError):
        theme_service.activate_theme(db, store.id, "ghost", reader=reader)
    assert get_store(db, store.id).active_theme_code == "base"
