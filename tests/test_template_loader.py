import json

import pytest

from core.errors import NotFoundError
from models.template import StoreTemplate, SectionBlock
from services.sections import delete_section
from services.template_loader import HybridTemplateLoader
from services.templates import find_default_template, section_tree


def _json_section_types(themes_dir, theme_code, template_type):
    with open(themes_dir / theme_code / "templates" / f"{template_type}.json") as f:
        return [s["type"] for s in json.load(f)["sections"]]


def test_without_rows_compiled_template_is_the_json_default(db, store, reader, themes_dir):
    compiled = HybridTemplateLoader(reader).get_compiled_template(db, store.id, "base", "homepage")

    assert compiled["source"] == "theme-default"
    assert compiled["templateId"] is None
    assert [s["type"] for s in compiled["sections"]] == _json_section_types(themes_dir, "base", "homepage")
    assert [s["id"] for s in compiled["sections"]] == [
        "homepage-hero-0", "homepage-featured-collection-1", "homepage-rich-text-2",
    ]
    assert all(s["persisted"] is False for s in compiled["sections"])
    column = compiled["sections"][2]["blocks"][0]
    assert [c["type"] for c in column["children"]] == ["text", "image"]
    assert db.query(StoreTemplate).count() == 0


def test_materialize_is_idempotent_and_persists_block_trees(db, store, reader):
    loader = HybridTemplateLoader(reader)
    first = loader.materialize_template(db, store.id, "base", "homepage")
    second = loader.materialize_template(db, store.id, "base", "homepage")

    assert first.id == second.id
    assert db.query(StoreTemplate).count() == 1
    assert first.is_default is True
    rich_text = first.sections[2]
    tree = section_tree(rich_text)
    assert tree[0]["type"] == "column"
    assert [c["type"] for c in tree[0]["children"]] == ["text", "image"]
    children = db.query(SectionBlock).filter(SectionBlock.parent_block_id == tree[0]["id"]).count()
    assert children == 2


def test_database_is_authoritative_after_materialization(db, store, reader):
    loader = HybridTemplateLoader(reader)
    template = loader.materialize_template(db, store.id, "base", "homepage")
    delete_section(db, template.sections[0].id)

    compiled = loader.get_compiled_template(db, store.id, "base", "homepage")

    assert compiled["source"] == "database"
    assert [s["type"] for s in compiled["sections"]] == ["featured-collection", "rich-text"]
    assert [s["position"] for s in compiled["sections"]] == [0, 1]


def test_reset_reseeds_from_json(db, store, reader):
    loader = HybridTemplateLoader(reader)
    template = loader.materialize_template(db, store.id, "base", "product")
    delete_section(db, template.sections[1].id)

    loader.reset_template(db, store.id, "base", "product")

    template = find_default_template(db, store.id, "product")
    assert [s.section_type for s in template.sections] == ["product-main", "related-products"]


def test_reset_without_json_default_is_not_found(db, store, reader):
    with pytest.raises(NotFoundError):
        HybridTemplateLoader(reader).reset_template(db, store.id, "base", "blog")


def test_malformed_theme_json_means_no_default(db, store, reader, themes_dir):
    (themes_dir / "base" / "templates" / "page.json").write_text("{not json")
    loader = HybridTemplateLoader(reader)

    warnings = []
    assert loader.load_template_definition("base", "page", warnings) is None
    assert warnings and "Malformed" in warnings[0]
    assert loader.get_compiled_template(db, store.id, "base", "page") is None


def test_global_slots_are_included_unless_opted_out(db, store, reader):
    loader = HybridTemplateLoader(reader)
    compiled = loader.get_compiled_template(db, store.id, "base", "homepage")

    slots = compiled["globalSections"]
    assert slots["header"]["source"] == "theme-default"
    assert slots["footer"]["blocks"][0]["children"][0]["type"] == "link"
    # Disabled in the theme package
    assert slots["announcementBar"] is None

    with_disabled = loader.get_compiled_template(db, store.id, "base", "homepage",
                                                 include_global=True, include_disabled=True)
    assert with_disabled["globalSections"]["announcementBar"]["enabled"] is False

    bare = loader.get_compiled_template(db, store.id, "base", "homepage", include_global=False)
    assert "globalSections" not in bare


def test_initialize_store_templates_materializes_every_type(db, store, reader):
    loader = HybridTemplateLoader(reader)
    assert loader.list_theme_templates("base") == ["collection", "homepage", "product"]

    templates = loader.initialize_store_templates(db, store.id, "base")
    assert sorted(t.template_type for t in templates) == ["collection", "homepage", "product"]
    assert all(t.is_default for t in templates)


def test_initialize_store_templates_is_all_or_nothing(db, store, reader, monkeypatch):
    import services.template_loader as loader_module

    real_seed = loader_module.seed_sections
    calls = []

    def failing_seed(*args, **kwargs):
        calls.append(1)
        if len(calls) == 2:
            raise RuntimeError("disk full")
        return real_seed(*args, **kwargs)

    monkeypatch.setattr(loader_module, "seed_sections", failing_seed)
    with pytest.raises(RuntimeError):
        HybridTemplateLoader(reader).initialize_store_templates(db, store.id, "base")

    assert db.query(StoreTemplate).count() == 0
