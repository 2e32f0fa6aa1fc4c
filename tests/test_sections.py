import pytest

from core.errors import ValidationError, NotFoundError
from services import sections as section_service
from services.templates import create_template, section_tree, get_template


@pytest.fixture
def template(db, store):
    return create_template(db, store.id, "homepage", is_default=True)


def _layout(db, template_id):
    template = get_template(db, template_id)
    db.refresh(template)
    return [(s.section_type, s.position) for s in sorted(template.sections, key=lambda s: s.position)]


def test_delete_compacts_positions_and_keeps_order(db, template):
    created = [section_service.add_section(db, template.id, t) for t in ("hero", "text", "grid", "newsletter")]

    section_service.delete_section(db, created[1].id)

    assert _layout(db, template.id) == [("hero", 0), ("grid", 1), ("newsletter", 2)]


def test_insert_at_position_shifts_later_sections(db, template):
    section_service.add_section(db, template.id, "hero")
    section_service.add_section(db, template.id, "grid")
    section_service.add_section(db, template.id, "banner", position=1)

    assert _layout(db, template.id) == [("hero", 0), ("banner", 1), ("grid", 2)]


def test_update_section_moves_it(db, template):
    a = section_service.add_section(db, template.id, "a")
    section_service.add_section(db, template.id, "b")
    section_service.add_section(db, template.id, "c")

    section_service.update_section(db, a.id, position=2, enabled=False)

    assert _layout(db, template.id) == [("b", 0), ("c", 1), ("a", 2)]


def test_reorder_requires_exact_section_ids(db, template):
    a = section_service.add_section(db, template.id, "a")
    b = section_service.add_section(db, template.id, "b")

    with pytest.raises(ValidationError):
        section_service.reorder_sections(db, template.id, [a.id])
    with pytest.raises(ValidationError):
        section_service.reorder_sections(db, template.id, [a.id, a.id])

    ordered = section_service.reorder_sections(db, template.id, [b.id, a.id])
    assert [(s.id, s.position) for s in ordered] == [(b.id, 0), (a.id, 1)]


def test_replace_blocks_keeps_known_ids_and_persists_nesting(db, template):
    section = section_service.add_section(db, template.id, "hero", blocks=[{"type": "text"}])
    existing_id = section_tree(section)[0]["id"]

    tree = section_service.replace_blocks(db, section.id, [
        {"id": "not-from-here", "type": "container", "children": [
            {"type": "text", "settings": {"text": "a"}},
            {"id": existing_id, "type": "text", "settings": {"text": "b"}},
        ]},
    ])

    assert tree[0]["id"] != "not-from-here"
    assert [c["settings"]["text"] for c in tree[0]["children"]] == ["a", "b"]
    assert tree[0]["children"][1]["id"] == existing_id


def test_replace_blocks_rejects_an_id_reused_inside_the_tree(db, template):
    section = section_service.add_section(db, template.id, "hero", blocks=[{"type": "text", "settings": {"text": "keep"}}])
    existing_id = section_tree(section)[0]["id"]

    with pytest.raises(ValidationError):
        section_service.replace_blocks(db, section.id, [
            {"id": existing_id, "type": "container", "children": [{"id": existing_id, "type": "text"}]},
        ])

    tree = section_service.get_section_blocks(db, section.id)
    assert [(n["id"], n["settings"]["text"]) for n in tree] == [(existing_id, "keep")]


def test_rekey_hands_an_existing_id_to_one_node_only():
    tree = section_service._rekey(
        [{"id": "known", "type": "container", "children": [{"id": "child", "type": "text", "children": []}]},
         {"id": "known", "type": "text", "children": []}],
        {"known", "child"},
    )

    assert tree[0]["id"] == "known"
    assert tree[0]["children"][0]["id"] == "child"
    assert tree[1]["id"] != "known"


def test_replace_blocks_rejects_blocks_without_type(db, template):
    section = section_service.add_section(db, template.id, "hero")
    with pytest.raises(ValidationError):
        section_service.replace_blocks(db, section.id, [{"settings": {}}])


def test_delete_block_removes_subtree_and_compacts_siblings(db, template):
    section = section_service.add_section(db, template.id, "hero")
    first = section_service.add_block(db, section.id, "container", children=[{"type": "text"}, {"type": "image"}])
    section_service.add_block(db, section.id, "button")
    section_service.add_block(db, section.id, "badge", position=0)
    first_id = first.id

    section_service.delete_block(db, first_id, section.id)

    tree = section_service.get_section_blocks(db, section.id)
    assert [(n["type"], n["position"]) for n in tree] == [("badge", 0), ("button", 1)]
    with pytest.raises(NotFoundError):
        section_service.get_block(db, first_id)


def test_disabled_blocks_can_be_hidden(db, template):
    section = section_service.add_section(db, template.id, "hero")
    hidden = section_service.add_block(db, section.id, "text")
    section_service.add_block(db, section.id, "image")
    section_service.update_block(db, hidden.id, enabled=False)

    visible = section_service.get_section_blocks(db, section.id, include_disabled=False)
    assert [n["type"] for n in visible] == ["image"]


def test_import_sections_collects_errors_and_keeps_going(db, template):
    result = section_service.import_sections(db, template.id, [
        {"type": "hero"},
        "not a section",
        {"type": "Bad Type!"},
        {"sectionType": "rich-text", "blocks": [{"type": "container", "blocks": [{"type": "text"}]}]},
    ])

    assert [c["index"] for c in result["created"]] == [0, 3]
    assert [e["index"] for e in result["errors"]] == [1, 2]
    assert _layout(db, template.id) == [("hero", 0), ("rich-text", 1)]
    rich = section_service.get_section(db, result["created"][1]["id"])
    assert section_tree(rich)[0]["children"][0]["type"] == "text"
