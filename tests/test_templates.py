import pytest

from core.errors import ConflictError, NotFoundError, ValidationError
from models.template import StoreTemplate
from services import templates as template_service
from services.sections import add_section, add_block


def _defaults(db, store_id, template_type):
    return db.query(StoreTemplate).filter(
        StoreTemplate.store_id == store_id,
        StoreTemplate.template_type == template_type,
        StoreTemplate.is_default.is_(True),
    ).all()


def test_new_default_unsets_previous_default(db, store):
    first = template_service.create_template(db, store.id, "homepage", name="Spring", is_default=True)
    second = template_service.create_template(db, store.id, "homepage", name="Summer", is_default=True)

    defaults = _defaults(db, store.id, "homepage")
    assert [t.id for t in defaults] == [second.id]
    db.refresh(first)
    assert first.is_default is False


def test_set_default_switches_atomically(db, store):
    a = template_service.create_template(db, store.id, "product", is_default=True)
    b = template_service.create_template(db, store.id, "product")
    template_service.set_default_template(db, b.id, store.id)
    template_service.update_template(db, a.id, store.id, is_default=True)

    assert [t.id for t in _defaults(db, store.id, "product")] == [a.id]


def test_default_template_cannot_be_deleted(db, store):
    template = template_service.create_template(db, store.id, "homepage", is_default=True)
    with pytest.raises(ConflictError):
        template_service.delete_template(db, template.id, store.id)

    other = template_service.create_template(db, store.id, "homepage", name="Draft")
    template_service.delete_template(db, other.id, store.id)
    with pytest.raises(NotFoundError):
        template_service.get_template(db, other.id, store.id)


def test_duplicate_copies_sections_and_block_trees(db, store):
    source = template_service.create_template(db, store.id, "homepage", name="Main", is_default=True)
    section = add_section(db, source.id, "hero", settings={"heading": "Hi"})
    container = add_block(db, section.id, "container")
    add_block(db, section.id, "text", settings={"text": "inside"}, parent_block_id=container.id)

    copy_row = template_service.duplicate_template(db, source.id, "Main copy", store.id)

    assert copy_row.is_default is False
    assert copy_row.name == "Main copy"
    assert len(copy_row.sections) == 1
    copied_section = copy_row.sections[0]
    assert copied_section.id != section.id
    tree = template_service.section_tree(copied_section)
    assert tree[0]["type"] == "container"
    assert tree[0]["id"] != container.id
    assert tree[0]["children"][0]["settings"] == {"text": "inside"}


def test_list_templates_orders_by_type_then_default_then_name(db, store):
    template_service.create_template(db, store.id, "product", name="B product")
    template_service.create_template(db, store.id, "homepage", name="Zeta", is_default=True)
    template_service.create_template(db, store.id, "homepage", name="Alpha")

    names = [t.name for t in template_service.list_templates(db, store.id)]
    assert names == ["Zeta", "Alpha", "B product"]
    assert len(template_service.list_templates(db, store.id, template_type="homepage")) == 2


def test_update_rejects_unknown_fields_and_bad_settings(db, store):
    template = template_service.create_template(db, store.id, "homepage")
    with pytest.raises(ValidationError):
        template_service.update_template(db, template.id, store.id, color="red")
    with pytest.raises(ValidationError):
        template_service.update_template(db, template.id, store.id, settings=["not", "a", "dict"])


def test_create_for_unknown_store_is_not_found(db, store):
    with pytest.raises(NotFoundError):
        template_service.create_template(db, "missing-store", "homepage")
