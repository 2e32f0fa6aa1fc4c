import pytest

from core.errors import NotFoundError, ValidationError
from models.template import StoreTemplate, StoreSectionInstance
from services import presets as preset_service
from services.global_sections import find_global_section
from services.sections import add_section
from services.templates import create_template, find_default_template, section_tree
from services.themes import get_customization, update_theme_settings


@pytest.fixture
def custom_homepage(db, store):
    template = create_template(db, store.id, "homepage", name="My homepage", is_default=True)
    for section_type in ("custom-a", "custom-b", "custom-c"):
        add_section(db, template.id, section_type)
    return template


def _section_types(db, store_id, template_type):
    template = find_default_template(db, store_id, template_type)
    return [s.section_type for s in template.sections]


def test_destructive_apply_replaces_existing_layout(db, store, custom_homepage):
    result = preset_service.apply_preset(db, store.id, "fashion", preserve_existing=False)

    assert result["templatesRemoved"] == 1
    assert sorted(result["templatesCreated"]) == ["homepage", "product"]
    assert _section_types(db, store.id, "homepage") == ["hero", "featured-products", "newsletter"]
    leftovers = db.query(StoreSectionInstance).filter(StoreSectionInstance.section_type.like("custom-%")).count()
    assert leftovers == 0
    assert db.query(StoreTemplate).filter(StoreTemplate.store_id == store.id).count() == 2


def test_preserving_apply_only_fills_missing_types(db, store, custom_homepage):
    update_theme_settings(db, store.id, {"colors": {"primary": "#abcdef"}})

    result = preset_service.apply_preset(db, store.id, "fashion", preserve_existing=True)

    assert result["templatesSkipped"] == ["homepage"]
    assert result["templatesCreated"] == ["product"]
    assert _section_types(db, store.id, "homepage") == ["custom-a", "custom-b", "custom-c"]
    settings = get_customization(db, store.id, "base").settings
    assert settings["colors"]["primary"] == "#abcdef"
    assert settings["colors"]["accent"] == "#e4572e"


def test_failed_apply_rolls_back_everything(db, store, custom_homepage, monkeypatch):
    calls = []
    real_seed = preset_service.seed_sections

    def failing_seed(db_, template_id, definitions):
        calls.append(template_id)
        if len(calls) == 2:
            raise RuntimeError("disk full")
        return real_seed(db_, template_id, definitions)

    monkeypatch.setattr(preset_service, "seed_sections", failing_seed)

    with pytest.raises(RuntimeError):
        preset_service.apply_preset(db, store.id, "fashion")

    templates = db.query(StoreTemplate).filter(StoreTemplate.store_id == store.id).all()
    assert [t.name for t in templates] == ["My homepage"]
    assert _section_types(db, store.id, "homepage") == ["custom-a", "custom-b", "custom-c"]


def test_styles_are_written_as_theme_settings(db, store):
    preset_service.apply_preset(db, store.id, "modern-fashion")

    settings = get_customization(db, store.id, "base").settings
    assert settings["colors"]["primary"] == "#000000"
    assert settings["typography"] == {"headingFont": "Playfair Display", "bodyFont": "Inter"}
    header = find_global_section(db, store.id, "base", "header")
    assert [b["type"] for b in header.blocks] == ["logo", "menu"]


def test_legacy_container_children_become_rows(db, store):
    preset_service.apply_preset(db, store.id, "luxury-fashion")

    template = find_default_template(db, store.id, "homepage")
    image_with_text = template.sections[1]
    tree = section_tree(image_with_text)
    assert tree[0]["type"] == "container"
    assert "blocks" not in tree[0]["settings"]
    assert [c["type"] for c in tree[0]["children"]] == ["text", "button"]


def test_preset_ids_are_validated(db, store):
    with pytest.raises(ValidationError):
        preset_service.apply_preset(db, store.id, "Bad_ID")
    with pytest.raises(NotFoundError):
        preset_service.apply_preset(db, store.id, "no-such-preset")


def test_incompatible_theme_is_rejected(db, store):
    with pytest.raises(ValidationError):
        preset_service.apply_preset(db, store.id, "tech-electronics", theme_code="minimal")


def test_list_filters_by_theme(db):
    ids = {p.id for p in preset_service.list_presets("minimal")}
    assert ids == {"modern-fashion", "fashion"}
    assert len(preset_service.list_presets()) == 4
    summary = preset_service.get_preset("fashion").summary()
    assert summary["templateTypes"] == ["homepage", "product"]
