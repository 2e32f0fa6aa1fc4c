"""
Section and block editing for persisted templates.

Section positions within a template, and block positions within a sibling
group, are kept 0-based and contiguous after every write.
"""
import copy
import uuid
from typing import Optional, List

from sqlalchemy.orm import Session

from core.config import logger
from core.database import atomic
from core.errors import NotFoundError, ValidationError, EngineError
from models.template import StoreTemplate, StoreSectionInstance, SectionBlock
from services.templates import get_template, persist_block_tree, section_tree
from utils.block_tree import normalize_definitions
from utils.theme_package import validate_name


def get_section(db: Session, section_id: str, store_id: Optional[str] = None) -> StoreSectionInstance:
    query = db.query(StoreSectionInstance).filter(StoreSectionInstance.id == section_id)
    if store_id:
        query = query.join(StoreTemplate).filter(StoreTemplate.store_id == store_id)
    section = query.first()
    if not section:
        raise NotFoundError("Section not found", sectionId=section_id)
    return section


def get_block(db: Session, block_id: str, section_id: Optional[str] = None) -> SectionBlock:
    query = db.query(SectionBlock).filter(SectionBlock.id == block_id)
    if section_id:
        query = query.filter(SectionBlock.section_id == section_id)
    block = query.first()
    if not block:
        raise NotFoundError("Block not found", blockId=block_id)
    return block


def _ordered_sections(db: Session, template_id: str) -> List[StoreSectionInstance]:
    return db.query(StoreSectionInstance).filter(
        StoreSectionInstance.template_id == template_id,
    ).order_by(StoreSectionInstance.position.asc(), StoreSectionInstance.created_at.asc()).all()


def _compact_sections(sections: List[StoreSectionInstance]) -> None:
    for index, section in enumerate(sections):
        if section.position != index:
            section.position = index


def _siblings(db: Session, section_id: str, parent_block_id: Optional[str]) -> List[SectionBlock]:
    query = db.query(SectionBlock).filter(SectionBlock.section_id == section_id)
    if parent_block_id is None:
        query = query.filter(SectionBlock.parent_block_id.is_(None))
    else:
        query = query.filter(SectionBlock.parent_block_id == parent_block_id)
    return query.order_by(SectionBlock.position.asc(), SectionBlock.created_at.asc()).all()


def _check_settings(settings):
    if settings is not None and not isinstance(settings, dict):
        raise ValidationError("settings must be an object")


def _check_blocks(blocks, seen_ids=None):
    if blocks is None:
        return
    if not isinstance(blocks, list):
        raise ValidationError("blocks must be a list")
    seen_ids = set() if seen_ids is None else seen_ids
    for block in blocks:
        if not isinstance(block, dict) or not block.get("type"):
            raise ValidationError("Every block needs a type")
        block_id = block.get("id")
        if block_id is not None:
            if block_id in seen_ids:
                raise ValidationError("Duplicate block id", blockId=block_id)
            seen_ids.add(block_id)
        _check_settings(block.get("settings"))
        _check_blocks(block.get("children") if "children" in block else block.get("blocks"), seen_ids)


def _insert_section(db: Session, template_id: str, section_type: str, settings: Optional[dict],
                    position: Optional[int], enabled: bool, blocks: Optional[List[dict]]) -> StoreSectionInstance:
    sections = _ordered_sections(db, template_id)
    _compact_sections(sections)
    if position is None or position >= len(sections) or position < 0:
        position = len(sections)
    for section in sections[position:]:
        section.position += 1
    section = StoreSectionInstance(
        id=str(uuid.uuid4()),
        template_id=template_id,
        section_type=section_type,
        position=position,
        enabled=bool(enabled),
        settings=copy.deepcopy(settings or {}),
    )
    db.add(section)
    db.flush()
    if blocks:
        persist_block_tree(db, section.id, normalize_definitions(blocks))
    return section


def add_section(db: Session, template_id: str, section_type: str, settings: Optional[dict] = None,
                position: Optional[int] = None, enabled: bool = True,
                blocks: Optional[List[dict]] = None, store_id: Optional[str] = None) -> StoreSectionInstance:
    template = get_template(db, template_id, store_id)
    section_type = validate_name(section_type, "section type")
    _check_settings(settings)
    _check_blocks(blocks)
    with atomic(db):
        section = _insert_section(db, template.id, section_type, settings, position, enabled, blocks)
    return section


def update_section(db: Session, section_id: str, settings: Optional[dict] = None, enabled: Optional[bool] = None,
                   position: Optional[int] = None, store_id: Optional[str] = None) -> StoreSectionInstance:
    section = get_section(db, section_id, store_id)
    _check_settings(settings)
    with atomic(db):
        if settings is not None:
            section.settings = copy.deepcopy(settings)
        if enabled is not None:
            section.enabled = bool(enabled)
        if position is not None:
            sections = [s for s in _ordered_sections(db, section.template_id) if s.id != section.id]
            position = max(0, min(int(position), len(sections)))
            sections.insert(position, section)
            _compact_sections(sections)
        db.flush()
    return section


def delete_section(db: Session, section_id: str, store_id: Optional[str] = None) -> None:
    """Delete a section and shift-compact the remaining positions in one transaction."""
    section = get_section(db, section_id, store_id)
    template_id = section.template_id
    with atomic(db):
        db.delete(section)
        db.flush()
        _compact_sections(_ordered_sections(db, template_id))
    logger.info(f"Deleted section {section_id} from template {template_id}")


def reorder_sections(db: Session, template_id: str, ordered_ids: List[str], store_id: Optional[str] = None) -> List[StoreSectionInstance]:
    template = get_template(db, template_id, store_id)
    sections = _ordered_sections(db, template.id)
    by_id = {s.id: s for s in sections}
    if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(by_id):
        raise ValidationError("Section ids must match the template's sections exactly")
    with atomic(db):
        _compact_sections([by_id[i] for i in ordered_ids])
    return _ordered_sections(db, template.id)


def get_section_blocks(db: Session, section_id: str, include_disabled: bool = True, store_id: Optional[str] = None) -> List[dict]:
    return section_tree(get_section(db, section_id, store_id), include_disabled=include_disabled)


def _rekey(tree: List[dict], reusable_ids: set) -> List[dict]:
    """Keep ids that already belong to this section, mint new ones otherwise"""
    out = []
    for node in tree:
        node_id = node.get("id")
        kept_id = node_id if node_id in reusable_ids else str(uuid.uuid4())
        # Claimed before descending so no descendant can take it too
        reusable_ids.discard(node_id)
        if node.get("children") is None:
            # Inline container literal (blocks / settings.blocks)
            node = normalize_definitions([node])[0]
        out.append({
            "id": kept_id,
            "type": node.get("type"),
            "settings": copy.deepcopy(node.get("settings") or {}),
            "enabled": node.get("enabled", True) is not False,
            "children": _rekey(node.get("children") or [], reusable_ids),
        })
    return out


def replace_blocks(db: Session, section_id: str, nested_blocks: List[dict], store_id: Optional[str] = None) -> List[dict]:
    """Replace a section's whole block tree atomically; returns the stored tree."""
    section = get_section(db, section_id, store_id)
    _check_blocks(nested_blocks)
    with atomic(db):
        existing = db.query(SectionBlock).filter(SectionBlock.section_id == section.id).all()
        reusable = {b.id for b in existing}
        for block in existing:
            db.delete(block)
        db.flush()
        persist_block_tree(db, section.id, _rekey(nested_blocks or [], reusable))
    db.expire(section)
    return section_tree(section)


def add_block(db: Session, section_id: str, block_type: str, settings: Optional[dict] = None,
              parent_block_id: Optional[str] = None, position: Optional[int] = None,
              enabled: bool = True, children: Optional[List[dict]] = None,
              store_id: Optional[str] = None) -> SectionBlock:
    section = get_section(db, section_id, store_id)
    block_type = validate_name(block_type, "block type")
    _check_settings(settings)
    _check_blocks(children)
    if parent_block_id:
        get_block(db, parent_block_id, section.id)
    with atomic(db):
        siblings = _siblings(db, section.id, parent_block_id)
        if position is None or position < 0 or position >= len(siblings):
            position = len(siblings)
        for index, sibling in enumerate(siblings):
            sibling.position = index + 1 if index >= position else index
        block = SectionBlock(
            id=str(uuid.uuid4()),
            section_id=section.id,
            parent_block_id=parent_block_id,
            type=block_type,
            position=position,
            enabled=bool(enabled),
            settings=copy.deepcopy(settings or {}),
        )
        db.add(block)
        db.flush()
        if children:
            persist_block_tree(db, section.id, normalize_definitions(children), parent_id=block.id)
    return block


def update_block(db: Session, block_id: str, settings: Optional[dict] = None, enabled: Optional[bool] = None,
                 section_id: Optional[str] = None) -> SectionBlock:
    block = get_block(db, block_id, section_id)
    _check_settings(settings)
    with atomic(db):
        if settings is not None:
            block.settings = copy.deepcopy(settings)
        if enabled is not None:
            block.enabled = bool(enabled)
        db.flush()
    return block


def delete_block(db: Session, block_id: str, section_id: Optional[str] = None) -> None:
    """Delete a block with its whole subtree and compact its sibling group."""
    block = get_block(db, block_id, section_id)
    parent_id = block.parent_block_id
    owner_section_id = block.section_id
    with atomic(db):
        db.delete(block)
        db.flush()
        for index, sibling in enumerate(_siblings(db, owner_section_id, parent_id)):
            if sibling.position != index:
                sibling.position = index


def import_sections(db: Session, template_id: str, items: List[dict], store_id: Optional[str] = None) -> dict:
    """
    Append many sections at once. Invalid items are reported per index and
    skipped; the valid ones are written together in one transaction.
    """
    template = get_template(db, template_id, store_id)
    valid = []
    errors = []
    for index, item in enumerate(items or []):
        try:
            if not isinstance(item, dict):
                raise ValidationError("Section must be an object")
            section_type = validate_name(item.get("type") or item.get("sectionType") or "", "section type")
            _check_settings(item.get("settings"))
            _check_blocks(item.get("blocks"))
            valid.append((index, section_type, item))
        except EngineError as ex:
            logger.warning(f"Skipping imported section #{index}: {ex.message}")
            errors.append({"index": index, "error": ex.message})

    created = []
    with atomic(db):
        for index, section_type, item in valid:
            section = _insert_section(
                db, template.id, section_type, item.get("settings"), None,
                item.get("enabled", True) is not False, item.get("blocks"),
            )
            created.append({"index": index, "id": section.id, "sectionType": section_type, "position": section.position})
    return {"created": created, "errors": errors}
