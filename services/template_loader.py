"""
Hybrid template loader.

JSON default templates shipped in a theme package seed a store's template the
first time it is materialized. From then on the database rows are the only
source for the section list and ordering; JSON is merged in again only on an
explicit reset. Reads never write.
"""
import copy
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy.orm import Session

from core.config import logger
from core.database import atomic
from core.errors import NotFoundError
from models.template import StoreTemplate
from services.templates import (
    get_store, find_default_template, find_any_template, _new_template,
    seed_sections, section_tree,
)
from utils.block_tree import normalize_definitions, assign_ephemeral_ids
from utils.theme_package import ThemePackageReader, validate_name


def compile_json_sections(definition: Dict[str, Any], template_type: str) -> List[Dict[str, Any]]:
    """JSON default sections with deterministic ephemeral ids and nested blocks"""
    sections = []
    for index, section in enumerate(definition.get("sections") or []):
        section_id = section.get("id") or f"{template_type}-{section['type']}-{index}"
        blocks = assign_ephemeral_ids(normalize_definitions(section.get("blocks") or []), section_id)
        sections.append({
            "id": section_id,
            "type": section["type"],
            "sectionType": section["type"],
            "settings": copy.deepcopy(section.get("settings") or {}),
            "enabled": section.get("enabled", True) is not False,
            "position": index,
            "blocks": blocks,
            "persisted": False,
        })
    return sections


def compile_db_sections(template: StoreTemplate, include_disabled: bool = False) -> List[Dict[str, Any]]:
    sections = []
    for section in sorted(template.sections, key=lambda s: s.position):
        if not include_disabled and not section.enabled:
            continue
        sections.append({
            "id": section.id,
            "type": section.section_type,
            "sectionType": section.section_type,
            "settings": copy.deepcopy(section.settings or {}),
            "enabled": bool(section.enabled),
            "position": section.position,
            "blocks": section_tree(section, include_disabled=include_disabled),
            "persisted": True,
        })
    return sections


class HybridTemplateLoader:
    def __init__(self, reader: Optional[ThemePackageReader] = None):
        self.reader = reader or ThemePackageReader()

    def load_template_definition(self, theme_code: str, template_type: str,
                                 warnings: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
        return self.reader.load_template(theme_code, template_type, warnings)

    def list_theme_templates(self, theme_code: str) -> List[str]:
        return self.reader.list_template_types(theme_code)

    def get_compiled_template(self, db: Session, store_id: str, theme_code: str, template_type: str,
                              include_disabled: bool = False, include_global: bool = True) -> Optional[Dict[str, Any]]:
        """
        Compiled, render-ready template or None when neither the store nor the
        theme has anything for this template type.
        """
        template_type = validate_name(template_type, "template type")
        warnings: List[str] = []
        customized = find_default_template(db, store_id, template_type) or find_any_template(db, store_id, template_type)

        if customized is not None:
            compiled = {
                "templateType": template_type,
                "themeCode": theme_code,
                "templateId": customized.id,
                "name": customized.name,
                "settings": customized.settings or {},
                "seoSettings": customized.seo_settings or {},
                "source": "database",
                "sections": compile_db_sections(customized, include_disabled),
            }
        else:
            definition = self.load_template_definition(theme_code, template_type, warnings)
            if definition is None:
                logger.info(f"No template for {store_id}/{theme_code}/{template_type}")
                return None
            compiled = {
                "templateType": template_type,
                "themeCode": theme_code,
                "templateId": None,
                "name": definition["name"],
                "settings": {},
                "seoSettings": {},
                "source": "theme-default",
                "sections": compile_json_sections(definition, template_type),
            }

        if include_global:
            from services.global_sections import get_global_sections
            global_set = get_global_sections(db, store_id, theme_code, reader=self.reader, include_disabled=include_disabled)
            compiled["globalSections"] = global_set.to_dict()
            warnings.extend(global_set.warnings)
        compiled["warnings"] = warnings
        return compiled

    def materialize_template(self, db: Session, store_id: str, theme_code: str, template_type: str,
                             theme_id: Optional[str] = None) -> StoreTemplate:
        """
        Create the store's default template from the JSON default, once.
        Returns the existing row untouched when the store already has one.
        """
        get_store(db, store_id)
        template_type = validate_name(template_type, "template type")
        existing = find_default_template(db, store_id, template_type) or find_any_template(db, store_id, template_type)
        if existing is not None:
            return existing

        with atomic(db):
            template, seeded = self._materialize_rows(db, store_id, theme_code, template_type, theme_id)
        logger.info(f"Materialized {template_type} for store {store_id} from {theme_code} ({seeded} sections)")
        return template

    def _materialize_rows(self, db: Session, store_id: str, theme_code: str, template_type: str,
                          theme_id: Optional[str] = None) -> Tuple[StoreTemplate, int]:
        """Insert the default template and its seeded sections. Flushes, never commits."""
        definition = self.load_template_definition(theme_code, template_type)
        template = _new_template(
            db, store_id, template_type,
            name=definition["name"] if definition else None,
            theme_id=theme_id,
            is_default=True,
        )
        seeded = seed_sections(db, template.id, definition["sections"]) if definition else 0
        return template, seeded

    def reset_template(self, db: Session, store_id: str, theme_code: str, template_type: str) -> StoreTemplate:
        """Drop the store's sections for this template and re-seed from the JSON default."""
        get_store(db, store_id)
        template_type = validate_name(template_type, "template type")
        definition = self.load_template_definition(theme_code, template_type)
        if definition is None:
            raise NotFoundError("Theme has no default for this template type", themeCode=theme_code, templateType=template_type)

        with atomic(db):
            template = find_default_template(db, store_id, template_type)
            if template is None:
                template = _new_template(db, store_id, template_type, name=definition["name"], is_default=True)
            for section in list(template.sections):
                db.delete(section)
            db.flush()
            seeded = seed_sections(db, template.id, definition["sections"])
        db.expire(template)
        logger.info(f"Reset {template_type} for store {store_id} from {theme_code} ({seeded} sections)")
        return template

    def seed_store_templates(self, db: Session, store_id: str, theme_code: str) -> List[StoreTemplate]:
        """Every template type the theme ships, inserting the ones the store lacks. Caller commits."""
        templates = []
        for template_type in self.list_theme_templates(theme_code):
            existing = find_default_template(db, store_id, template_type) or find_any_template(db, store_id, template_type)
            if existing is None:
                existing, _ = self._materialize_rows(db, store_id, theme_code, template_type)
            templates.append(existing)
        return templates

    def initialize_store_templates(self, db: Session, store_id: str, theme_code: str) -> List[StoreTemplate]:
        """Materialize every template type the theme ships (new-store setup), all or nothing."""
        get_store(db, store_id)
        with atomic(db):
            templates = self.seed_store_templates(db, store_id, theme_code)
        logger.info(f"Initialized {len(templates)} templates for store {store_id} from {theme_code}")
        return templates


def get_compiled_template(db: Session, store_id: str, theme_code: str, template_type: str,
                          include_disabled: bool = False, include_global: bool = True) -> Optional[Dict[str, Any]]:
    return HybridTemplateLoader().get_compiled_template(
        db, store_id, theme_code, template_type,
        include_disabled=include_disabled, include_global=include_global,
    )
