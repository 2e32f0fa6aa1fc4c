"""
Preset applicator.

A preset bundles a color palette, fonts and a section layout per template type.
Applying one destructively replaces every store template; with
`preserve_existing` it only fills template types the store does not have yet.
Either way the whole application runs in a single transaction.
"""
import re
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from core.config import logger
from core.database import atomic
from core.errors import NotFoundError, ValidationError
from models.template import StoreTemplate
from services.global_sections import _save_global_section, find_global_section
from services.templates import get_store, _new_template, seed_sections
from services.themes import find_theme, _customization_for_update
from utils.settings_migration import flatten_settings, unflatten_settings, merge_dotted
from utils.template_presets import PRESETS

_PRESET_ID_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class PresetSection(BaseModel):
    type: str
    enabled: bool = True
    settings: Dict[str, Any] = Field(default_factory=dict)
    blocks: List[Dict[str, Any]] = Field(default_factory=list)


class PresetTemplate(BaseModel):
    name: str
    sections: List[PresetSection] = Field(default_factory=list)


class PresetGlobalSection(BaseModel):
    enabled: bool = True
    settings: Dict[str, Any] = Field(default_factory=dict)
    blocks: List[Dict[str, Any]] = Field(default_factory=list)


class TemplatePreset(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    # Empty means any theme
    compatible_themes: List[str] = Field(default_factory=list)
    settings: Dict[str, Any] = Field(default_factory=dict)
    templates: Dict[str, PresetTemplate] = Field(default_factory=dict)
    global_sections: Dict[str, PresetGlobalSection] = Field(default_factory=dict)

    def is_compatible(self, theme_code: str) -> bool:
        return not self.compatible_themes or theme_code in self.compatible_themes

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "compatibleThemes": self.compatible_themes,
            "templateTypes": sorted(self.templates),
            "colors": self.settings.get("colors") or {},
            "fonts": self.settings.get("fonts") or {},
        }


def _load_presets() -> Dict[str, TemplatePreset]:
    loaded = {}
    for data in PRESETS:
        try:
            preset = TemplatePreset(**data)
        except PydanticValidationError as ex:
            logger.warning(f"Skipping invalid preset {data.get('id')}: {ex}")
            continue
        loaded[preset.id] = preset
    return loaded


_REGISTRY = _load_presets()


def get_preset(preset_id: str) -> TemplatePreset:
    if not isinstance(preset_id, str) or not _PRESET_ID_RE.match(preset_id):
        raise ValidationError("Malformed preset id", presetId=preset_id)
    preset = _REGISTRY.get(preset_id)
    if preset is None:
        raise NotFoundError("Preset not found", presetId=preset_id)
    return preset


def list_presets(theme_code: Optional[str] = None) -> List[TemplatePreset]:
    presets = list(_REGISTRY.values())
    if theme_code:
        presets = [p for p in presets if p.is_compatible(theme_code)]
    return presets


def preset_style_settings(preset: TemplatePreset) -> Dict[str, Any]:
    """Preset palette and fonts as theme settings (colors.*, typography.*)"""
    out: Dict[str, Any] = {}
    colors = preset.settings.get("colors") or {}
    if colors:
        out["colors"] = dict(colors)
    fonts = preset.settings.get("fonts") or {}
    if fonts:
        out["typography"] = {f"{key}Font": value for key, value in fonts.items()}
    return out


def apply_preset(db: Session, store_id: str, preset_id: str, preserve_existing: bool = False,
                 theme_code: Optional[str] = None) -> Dict[str, Any]:
    """
    preserve_existing=False deletes all of the store's templates (sections and
    blocks cascade) and recreates them from the preset. Not idempotent: every
    call throws away the current layout.
    """
    preset = get_preset(preset_id)
    store = get_store(db, store_id)
    theme_code = theme_code or store.active_theme_code
    if not preset.is_compatible(theme_code):
        raise ValidationError("Preset is not compatible with this theme", presetId=preset_id, themeCode=theme_code)
    with atomic(db):
        result = apply_preset_rows(db, store.id, preset, theme_code, preserve_existing)

    logger.info(
        f"Applied preset {preset_id} to store {store.id} ({theme_code}): "
        f"created={result['templatesCreated']} skipped={result['templatesSkipped']} "
        f"removed={result['templatesRemoved']} preserve={preserve_existing}"
    )
    return result


def apply_preset_rows(db: Session, store_id: str, preset: TemplatePreset, theme_code: str,
                      preserve_existing: bool = False) -> Dict[str, Any]:
    """Write a validated preset's templates, globals and styles. Flushes, never commits."""
    theme = find_theme(db, theme_code)
    created, skipped, removed = [], [], 0
    sections_created = 0
    globals_saved = []

    if not preserve_existing:
        for template in db.query(StoreTemplate).filter(StoreTemplate.store_id == store_id).all():
            db.delete(template)
            removed += 1
        db.flush()

    existing_types = {
        row[0] for row in db.query(StoreTemplate.template_type).filter(StoreTemplate.store_id == store_id).all()
    }
    for template_type, definition in preset.templates.items():
        if template_type in existing_types:
            skipped.append(template_type)
            continue
        template = _new_template(
            db, store_id, template_type,
            name=definition.name,
            theme_id=theme.id if theme else None,
            is_default=True,
        )
        sections_created += seed_sections(db, template.id, [s.dict() for s in definition.sections])
        created.append(template_type)

    for section_type, definition in preset.global_sections.items():
        if preserve_existing and find_global_section(db, store_id, theme_code, section_type) is not None:
            continue
        _save_global_section(
            db, store_id, theme_code, section_type,
            settings=definition.settings, blocks=definition.blocks, enabled=definition.enabled,
        )
        globals_saved.append(section_type)

    customization = _customization_for_update(db, store_id, theme_code)
    styles = preset_style_settings(preset)
    if preserve_existing:
        # Only fill keys the store has not set
        saved = flatten_settings(customization.settings)
        styles = unflatten_settings({k: v for k, v in flatten_settings(styles).items() if k not in saved})
    customization.settings = merge_dotted(customization.settings, styles)
    db.flush()

    return {
        "presetId": preset.id,
        "themeCode": theme_code,
        "preserveExisting": bool(preserve_existing),
        "templatesRemoved": removed,
        "templatesCreated": created,
        "templatesSkipped": skipped,
        "sectionsCreated": sections_created,
        "globalSectionsSaved": globals_saved,
    }
