import pytest

from core.errors import IntegrityWarning, ValidationError, NotFoundError
from models.template import StoreTemplate
from services import backups as backup_service
from services.global_sections import upsert_global_section, find_global_section
from services.sections import delete_section
from services.template_loader import HybridTemplateLoader
from services.templates import find_default_template
from services.themes import update_theme_settings, get_customization

SETTINGS = {"colors": {"primary": "#101010"}, "layout": {"containerWidth": 1100}}
CUSTOMIZATIONS = {"styles": {"customCss": ".hero{color:red}"}}


def test_identical_content_gives_distinct_ids_and_same_checksum(db, store):
    first = backup_service.create_backup(db, store.id, settings=SETTINGS, customizations=CUSTOMIZATIONS)
    second = backup_service.create_backup(db, store.id, settings=SETTINGS, customizations=CUSTOMIZATIONS)

    assert first.id != second.id
    assert first.checksum == second.checksum
    assert (first.version, second.version) == (1, 2)
    assert backup_service.get_backup(db, first.id)[1] == []


def test_tampered_checksum_is_detected(db, store):
    backup = backup_service.create_backup(db, store.id, settings=SETTINGS, customizations=CUSTOMIZATIONS)
    backup.checksum = "0" * 64
    db.commit()

    _, warnings = backup_service.get_backup(db, backup.id)
    assert warnings
    with pytest.raises(IntegrityWarning):
        backup_service.export_backup(db, backup.id)
    with pytest.raises(IntegrityWarning):
        backup_service.restore_backup(db, backup.id)

    result = backup_service.restore_backup(db, backup.id, force=True)
    assert result["warnings"] == warnings


def test_sensitive_keys_are_stripped_before_checksumming(db, store):
    settings = {"payments": {"apiKey": "sk_live", "api_secret": "s"}, "colors": {"primary": "#000"}, "Token": "t"}
    backup = backup_service.create_backup(db, store.id, settings=settings, customizations={})

    assert backup.settings == {"payments": {}, "colors": {"primary": "#000"}}
    assert backup.checksum == backup_service.compute_checksum(backup.settings, {})


def test_snapshot_covers_templates_globals_and_styles(db, store, reader):
    HybridTemplateLoader(reader).materialize_template(db, store.id, "base", "homepage")
    upsert_global_section(db, store.id, "base", "header", settings={"sticky": False})
    update_theme_settings(db, store.id, custom_css="h1{}")

    snapshot = backup_service.snapshot_customizations(db, store.id, "base")

    homepage = snapshot["templates"]["homepage"][0]
    assert homepage["isDefault"] is True
    assert [s["type"] for s in homepage["sections"]] == ["hero", "featured-collection", "rich-text"]
    assert "id" not in homepage["sections"][2]["blocks"][0]
    assert snapshot["sections"]["header"]["settings"] == {"sticky": False}
    assert snapshot["styles"] == {"customCss": "h1{}"}

    only_styles = backup_service.snapshot_customizations(
        db, store.id, "base", backup_service.BackupOptions(include_templates=False, include_sections=False),
    )
    assert set(only_styles) == {"styles"}


def test_restore_replaces_state_and_keeps_live_secrets(db, store, reader):
    loader = HybridTemplateLoader(reader)
    template = loader.materialize_template(db, store.id, "base", "homepage")
    upsert_global_section(db, store.id, "base", "footer", settings={"copyright": "Before"})
    update_theme_settings(db, store.id, {"colors": {"primary": "#111111"}, "payments": {"apiKey": "old"}},
                          custom_css="a{}")
    backup = backup_service.create_backup(db, store.id)

    delete_section(db, template.sections[0].id)
    upsert_global_section(db, store.id, "base", "footer", settings={"copyright": "After"})
    upsert_global_section(db, store.id, "base", "header", settings={"sticky": False})
    update_theme_settings(db, store.id, {"colors": {"primary": "#999999"}, "payments": {"apiKey": "live"}},
                          custom_css="b{}")

    result = backup_service.restore_backup(db, backup.id, store.id)

    assert result["restored"] == ["settings", "templates", "sections", "styles"]
    restored = find_default_template(db, store.id, "homepage")
    assert [s.section_type for s in restored.sections] == ["hero", "featured-collection", "rich-text"]
    assert db.query(StoreTemplate).filter(StoreTemplate.store_id == store.id).count() == 1
    assert find_global_section(db, store.id, "base", "footer").settings == {"copyright": "Before"}
    assert find_global_section(db, store.id, "base", "header") is None
    customization = get_customization(db, store.id, "base")
    assert customization.settings["colors"]["primary"] == "#111111"
    assert customization.settings["payments"]["apiKey"] == "live"
    assert customization.custom_css == "a{}"


def test_restore_keeps_live_secrets_nested_under_a_sensitive_key(db, store):
    update_theme_settings(db, store.id, {"colors": {"primary": "#111111"},
                                         "payments": {"secretKeys": {"live": "sk_old"}}})
    backup = backup_service.create_backup(db, store.id)
    assert backup.settings == {"colors": {"primary": "#111111"}, "payments": {}}

    update_theme_settings(db, store.id, {"payments": {"secretKeys": {"live": "sk_live"}}})
    backup_service.restore_backup(db, backup.id, store.id)

    settings = get_customization(db, store.id, "base").settings
    assert settings["payments"] == {"secretKeys": {"live": "sk_live"}}
    assert settings["colors"]["primary"] == "#111111"


def test_list_is_newest_first_and_capped(db, store):
    for i in range(5):
        backup_service.create_backup(db, store.id, settings={"n": i}, customizations={})

    listed = backup_service.list_backups(db, store.id, "base", limit=3)
    assert [b.version for b in listed] == [5, 4, 3]
    assert len(backup_service.list_backups(db, store.id, limit=0)) == 1


def test_diff_reports_changed_keys(db, store):
    a = backup_service.create_backup(db, store.id, settings={"colors": {"primary": "#000"}}, customizations={})
    b = backup_service.create_backup(db, store.id, settings={"colors": {"primary": "#fff"}, "x": 1}, customizations={})

    diff = backup_service.diff_backups(db, a.id, b.id)

    assert diff["settings"]["changed"] == {"colors.primary": {"from": "#000", "to": "#fff"}}
    assert diff["settings"]["added"] == {"x": 1}


def test_export_import_round_trip(db, store):
    original = backup_service.create_backup(db, store.id, settings=SETTINGS, customizations=CUSTOMIZATIONS)
    exported = backup_service.export_backup(db, original.id)

    imported = backup_service.import_backup(db, store.id, exported)

    assert imported.id != original.id
    assert imported.version == 2
    assert imported.checksum == original.checksum


def test_import_rejects_bad_payloads(db, store):
    exported = backup_service.export_backup(
        db, backup_service.create_backup(db, store.id, settings=SETTINGS, customizations={}).id,
    )

    with pytest.raises(ValidationError):
        backup_service.import_backup(db, store.id, {"themeCode": "base"})
    with pytest.raises(ValidationError):
        backup_service.import_backup(db, store.id, dict(exported, format="zip"))
    with pytest.raises(ValidationError):
        backup_service.import_backup(db, store.id, exported, theme_code="minimal")
    with pytest.raises(IntegrityWarning):
        backup_service.import_backup(db, store.id, dict(exported, settings={"colors": {"primary": "#bad"}}))


def test_unknown_backup_is_not_found(db, store):
    with pytest.raises(NotFoundError):
        backup_service.get_backup(db, "missing")
