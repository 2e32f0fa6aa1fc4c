"""
Global sections: header, footer and announcement bar shared by every template
of a theme for one store.

They live in their own table and are never copied into a template's section
list. `compose_render_sections` unions them with a compiled template at render
time: top slots first, the template body, then bottom slots.
"""
import copy
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session

from core.config import logger
from core.database import atomic
from core.errors import NotFoundError, ValidationError
from models.global_section import GlobalSection
from services.templates import get_store
from utils.block_tree import nest, flatten, normalize_definitions, assign_ephemeral_ids
from utils.theme_package import ThemePackageReader, validate_name

# slot name -> (section type, placement)
GLOBAL_SLOTS = {
    "announcementBar": ("announcement-bar", "top"),
    "header": ("header", "top"),
    "footer": ("footer", "bottom"),
}
SLOT_ORDER = ("announcementBar", "header", "footer")
GLOBAL_SECTION_TYPES = {section_type: slot for slot, (section_type, _) in GLOBAL_SLOTS.items()}


@dataclass
class GlobalSectionSet:
    store_id: str
    theme_code: str
    slots: Dict[str, Optional[Dict[str, Any]]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def get(self, slot: str) -> Optional[Dict[str, Any]]:
        return self.slots.get(slot)

    def filled_types(self) -> set:
        return {section["type"] for section in self.slots.values() if section}

    def to_dict(self) -> Dict[str, Any]:
        return {slot: self.slots.get(slot) for slot in SLOT_ORDER}


def _slot_for(section_type: str) -> str:
    section_type = validate_name(section_type, "section type")
    slot = GLOBAL_SECTION_TYPES.get(section_type)
    if not slot:
        raise ValidationError("Not a global section type", sectionType=section_type, allowed=sorted(GLOBAL_SECTION_TYPES))
    return slot


def _from_row(row: GlobalSection, slot: str) -> Dict[str, Any]:
    return {
        "id": row.id,
        "type": row.section_type,
        "sectionType": row.section_type,
        "slot": slot,
        "placement": GLOBAL_SLOTS[slot][1],
        "settings": copy.deepcopy(row.settings or {}),
        "enabled": bool(row.enabled),
        "blocks": copy.deepcopy(row.blocks or []),
        "source": "store",
        "global": True,
    }


def _from_definition(definition: Dict[str, Any], slot: str, section_type: str) -> Dict[str, Any]:
    section_id = f"global-{section_type}"
    return {
        "id": section_id,
        "type": section_type,
        "sectionType": section_type,
        "slot": slot,
        "placement": GLOBAL_SLOTS[slot][1],
        "settings": copy.deepcopy(definition.get("settings") or {}),
        "enabled": definition.get("enabled", True) is not False,
        "blocks": assign_ephemeral_ids(normalize_definitions(definition.get("blocks") or []), section_id),
        "source": "theme-default",
        "global": True,
    }


def get_global_sections(db: Session, store_id: str, theme_code: str,
                        reader: Optional[ThemePackageReader] = None,
                        include_disabled: bool = False) -> GlobalSectionSet:
    """Per slot: the store's row, else the theme's JSON default, else nothing."""
    reader = reader or ThemePackageReader()
    rows = db.query(GlobalSection).filter(
        GlobalSection.store_id == store_id,
        GlobalSection.theme_code == theme_code,
    ).all()
    by_type = {row.section_type: row for row in rows}

    result = GlobalSectionSet(store_id=store_id, theme_code=theme_code)
    for slot in SLOT_ORDER:
        section_type = GLOBAL_SLOTS[slot][0]
        row = by_type.get(section_type)
        if row is not None:
            section = _from_row(row, slot)
        else:
            definition = reader.load_global_section(theme_code, section_type, result.warnings)
            section = _from_definition(definition, slot, section_type) if definition else None
        if section is not None and not include_disabled and not section["enabled"]:
            section = None
        result.slots[slot] = section
    return result


def _blocks_with_ids(blocks: Optional[List[dict]]) -> List[dict]:
    # Round-trip through the flat form: keeps given ids, mints missing ones, folds legacy inline children
    return nest(flatten(blocks or []))


def find_global_section(db: Session, store_id: str, theme_code: str, section_type: str) -> Optional[GlobalSection]:
    return db.query(GlobalSection).filter(
        GlobalSection.store_id == store_id,
        GlobalSection.theme_code == theme_code,
        GlobalSection.section_type == section_type,
    ).first()


def _save_global_section(db: Session, store_id: str, theme_code: str, section_type: str,
                         settings: Optional[dict] = None, blocks: Optional[List[dict]] = None,
                         enabled: Optional[bool] = None) -> GlobalSection:
    """Insert or update without committing; callers own the transaction."""
    _slot_for(section_type)
    if settings is not None and not isinstance(settings, dict):
        raise ValidationError("settings must be an object")
    if blocks is not None and not isinstance(blocks, list):
        raise ValidationError("blocks must be a list")
    row = find_global_section(db, store_id, theme_code, section_type)
    if row is None:
        row = GlobalSection(
            store_id=store_id,
            theme_code=theme_code,
            section_type=section_type,
            enabled=True if enabled is None else bool(enabled),
            settings=copy.deepcopy(settings or {}),
            blocks=_blocks_with_ids(blocks),
        )
        db.add(row)
    else:
        if settings is not None:
            row.settings = copy.deepcopy(settings)
        if blocks is not None:
            row.blocks = _blocks_with_ids(blocks)
        if enabled is not None:
            row.enabled = bool(enabled)
    db.flush()
    return row


def upsert_global_section(db: Session, store_id: str, theme_code: str, section_type: str,
                          settings: Optional[dict] = None, blocks: Optional[List[dict]] = None,
                          enabled: Optional[bool] = None) -> GlobalSection:
    get_store(db, store_id)
    theme_code = validate_name(theme_code, "theme code")
    with atomic(db):
        row = _save_global_section(db, store_id, theme_code, section_type, settings, blocks, enabled)
    logger.info(f"Saved global section {section_type} for store {store_id} ({theme_code})")
    return row


def delete_global_section(db: Session, store_id: str, theme_code: str, section_type: str) -> None:
    """
    Remove the store's override from the shared pool. Template sections of the
    same type are untouched; the slot falls back to the theme default.
    """
    _slot_for(section_type)
    row = find_global_section(db, store_id, theme_code, section_type)
    if row is None:
        raise NotFoundError("Global section not found", sectionType=section_type, themeCode=theme_code)
    with atomic(db):
        db.delete(row)
    logger.info(f"Deleted global section {section_type} for store {store_id} ({theme_code})")


def compose_render_sections(compiled: Dict[str, Any], global_set) -> List[Dict[str, Any]]:
    """
    Full render list: top slots, template body, bottom slots.

    Body sections whose type is served by a resolved global slot are skipped
    here only; their rows stay in the template.
    """
    if isinstance(global_set, GlobalSectionSet):
        slots = global_set.to_dict()
    else:
        slots = global_set or {}

    top, bottom = [], []
    filled = set()
    for slot in SLOT_ORDER:
        section = slots.get(slot)
        if not section:
            continue
        filled.add(section["type"])
        (top if GLOBAL_SLOTS[slot][1] == "top" else bottom).append(section)

    body = [s for s in (compiled or {}).get("sections") or [] if s.get("type") not in filled]
    return top + body + bottom
