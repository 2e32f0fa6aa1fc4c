"""
Store template service
CRUD for StoreTemplate rows; keeps at most one default per (store, template type)
"""
import copy
from typing import Optional, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import logger
from core.database import atomic
from core.errors import NotFoundError, ConflictError, ValidationError
from models.store import Store
from models.template import StoreTemplate, StoreSectionInstance, SectionBlock
from utils.block_tree import nest, flatten, strip_ids, normalize_definitions
from utils.theme_package import validate_name

TEMPLATE_FIELDS = ("name", "description", "enabled", "settings", "seo_settings", "is_default")


def default_template_name(template_type: str) -> str:
    return template_type.replace("-", " ").replace(".", " ").title()


def get_store(db: Session, store_id: str) -> Store:
    store = db.query(Store).filter(Store.id == store_id).first()
    if not store:
        raise NotFoundError("Store not found", storeId=store_id)
    return store


def get_template(db: Session, template_id: str, store_id: Optional[str] = None) -> StoreTemplate:
    query = db.query(StoreTemplate).filter(StoreTemplate.id == template_id)
    if store_id:
        query = query.filter(StoreTemplate.store_id == store_id)
    template = query.first()
    if not template:
        raise NotFoundError("Template not found", templateId=template_id)
    return template


def find_default_template(db: Session, store_id: str, template_type: str) -> Optional[StoreTemplate]:
    return db.query(StoreTemplate).filter(
        StoreTemplate.store_id == store_id,
        StoreTemplate.template_type == template_type,
        StoreTemplate.is_default.is_(True),
    ).first()


def find_any_template(db: Session, store_id: str, template_type: str) -> Optional[StoreTemplate]:
    return db.query(StoreTemplate).filter(
        StoreTemplate.store_id == store_id,
        StoreTemplate.template_type == template_type,
    ).order_by(StoreTemplate.enabled.desc(), StoreTemplate.created_at.asc()).first()


def _check_dict(value, label: str):
    if value is not None and not isinstance(value, dict):
        raise ValidationError(f"{label} must be an object")


def _unset_defaults(db: Session, store_id: str, template_type: str, keep_id: Optional[str] = None):
    # Flushed on its own so the partial unique index never sees two defaults
    query = db.query(StoreTemplate).filter(
        StoreTemplate.store_id == store_id,
        StoreTemplate.template_type == template_type,
        StoreTemplate.is_default.is_(True),
    )
    if keep_id:
        query = query.filter(StoreTemplate.id != keep_id)
    for other in query.all():
        other.is_default = False
    db.flush()


def _new_template(db: Session, store_id: str, template_type: str, name: Optional[str] = None,
                  theme_id: Optional[str] = None, description: Optional[str] = None,
                  is_default: bool = False, enabled: bool = True,
                  settings: Optional[dict] = None, seo_settings: Optional[dict] = None) -> StoreTemplate:
    """Insert without committing; callers own the transaction."""
    template_type = validate_name(template_type, "template type")
    _check_dict(settings, "settings")
    _check_dict(seo_settings, "seoSettings")
    if is_default:
        _unset_defaults(db, store_id, template_type)
    template = StoreTemplate(
        store_id=store_id,
        theme_id=theme_id,
        template_type=template_type,
        name=(name or "").strip() or default_template_name(template_type),
        description=description,
        is_default=bool(is_default),
        enabled=bool(enabled),
        settings=copy.deepcopy(settings or {}),
        seo_settings=copy.deepcopy(seo_settings or {}),
    )
    db.add(template)
    db.flush()
    return template


def create_template(db: Session, store_id: str, template_type: str, **fields) -> StoreTemplate:
    get_store(db, store_id)
    try:
        with atomic(db):
            template = _new_template(db, store_id, template_type, **fields)
    except IntegrityError as ex:
        raise ConflictError("A default template of this type already exists", templateType=template_type) from ex
    logger.info(f"Created template {template.id} ({template.template_type}) for store {store_id}")
    return template


def update_template(db: Session, template_id: str, store_id: Optional[str] = None, **fields) -> StoreTemplate:
    template = get_template(db, template_id, store_id)
    unknown = set(fields) - set(TEMPLATE_FIELDS)
    if unknown:
        raise ValidationError("Unknown template fields", fields=sorted(unknown))
    _check_dict(fields.get("settings"), "settings")
    _check_dict(fields.get("seo_settings"), "seoSettings")
    try:
        with atomic(db):
            if fields.get("is_default") is True and not template.is_default:
                _unset_defaults(db, template.store_id, template.template_type, keep_id=template.id)
            for key, value in fields.items():
                if value is None:
                    continue
                if key in ("settings", "seo_settings"):
                    value = copy.deepcopy(value)
                setattr(template, key, value)
            db.flush()
    except IntegrityError as ex:
        raise ConflictError("A default template of this type already exists", templateType=template.template_type) from ex
    return template


def set_default_template(db: Session, template_id: str, store_id: Optional[str] = None) -> StoreTemplate:
    return update_template(db, template_id, store_id, is_default=True)


def delete_template(db: Session, template_id: str, store_id: Optional[str] = None) -> None:
    template = get_template(db, template_id, store_id)
    if template.is_default:
        raise ConflictError("Default templates cannot be deleted", templateId=template_id)
    with atomic(db):
        db.delete(template)
    logger.info(f"Deleted template {template_id}")


def section_tree(section: StoreSectionInstance, include_disabled: bool = True) -> List[dict]:
    blocks = [b.to_flat() for b in section.blocks]
    tree = nest(blocks)
    if include_disabled:
        return tree
    return _drop_disabled(tree)


def _drop_disabled(tree: List[dict]) -> List[dict]:
    out = []
    for node in tree:
        if not node.get("enabled", True):
            continue
        kept = dict(node)
        kept["children"] = _drop_disabled(node.get("children") or [])
        out.append(kept)
    return out


def persist_block_tree(db: Session, section_id: str, tree: List[dict], parent_id: Optional[str] = None) -> List[SectionBlock]:
    """Insert a nested block tree as flat rows (parents before children)"""
    rows = []
    for record in flatten(tree, parent_id):
        row = SectionBlock(
            id=record["id"],
            section_id=section_id,
            parent_block_id=record["parentId"],
            type=record["type"],
            position=record["position"],
            enabled=record["enabled"],
            settings=record["settings"],
        )
        db.add(row)
        rows.append(row)
    db.flush()
    return rows


def seed_sections(db: Session, template_id: str, definitions: List[dict]) -> int:
    """Insert section definitions (JSON default, preset or snapshot) with their block trees."""
    count = 0
    for index, definition in enumerate(definitions or []):
        section = StoreSectionInstance(
            template_id=template_id,
            section_type=definition.get("type") or definition.get("sectionType"),
            position=index,
            enabled=definition.get("enabled", True) is not False,
            settings=copy.deepcopy(definition.get("settings") or {}),
        )
        db.add(section)
        db.flush()
        persist_block_tree(db, section.id, normalize_definitions(definition.get("blocks") or []))
        count += 1
    return count


def duplicate_template(db: Session, template_id: str, new_name: str, store_id: Optional[str] = None) -> StoreTemplate:
    source = get_template(db, template_id, store_id)
    if not (new_name or "").strip():
        raise ValidationError("Template name is required")
    with atomic(db):
        copy_row = _new_template(
            db, source.store_id, source.template_type,
            name=new_name,
            theme_id=source.theme_id,
            description=source.description,
            is_default=False,
            enabled=True,
            settings=source.settings,
            seo_settings=source.seo_settings,
        )
        for section in source.sections:
            new_section = StoreSectionInstance(
                template_id=copy_row.id,
                section_type=section.section_type,
                position=section.position,
                enabled=section.enabled,
                settings=copy.deepcopy(section.settings or {}),
            )
            db.add(new_section)
            db.flush()
            persist_block_tree(db, new_section.id, strip_ids(section_tree(section)))
    db.refresh(copy_row)
    logger.info(f"Duplicated template {template_id} -> {copy_row.id}")
    return copy_row


def list_templates(db: Session, store_id: str, template_type: Optional[str] = None,
                   enabled: Optional[bool] = None, theme_id: Optional[str] = None) -> List[StoreTemplate]:
    query = db.query(StoreTemplate).filter(StoreTemplate.store_id == store_id)
    if template_type:
        query = query.filter(StoreTemplate.template_type == template_type)
    if enabled is not None:
        query = query.filter(StoreTemplate.enabled.is_(enabled))
    if theme_id:
        query = query.filter(StoreTemplate.theme_id == theme_id)
    return query.order_by(
        StoreTemplate.template_type.asc(),
        StoreTemplate.is_default.desc(),
        StoreTemplate.name.asc(),
    ).all()
