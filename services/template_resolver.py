"""
Template resolver: pick the StoreTemplate a store renders for a template type.

First match wins:
  1. the store's default template of that type          -> "entity"
  2. any store template of that type (transitional)      -> "store-default"
  3. the active theme's JSON default, never persisted    -> "theme-default"
"""
from typing import Optional

from sqlalchemy.orm import Session

from services.templates import get_store, find_default_template, find_any_template
from services.template_loader import compile_json_sections
from utils.theme_package import ThemePackageReader, validate_name

SOURCE_ENTITY = "entity"
SOURCE_STORE_DEFAULT = "store-default"
SOURCE_THEME_DEFAULT = "theme-default"


def resolve_template(db: Session, store_id: str, template_type: str,
                     reader: Optional[ThemePackageReader] = None) -> Optional[dict]:
    """
    Returns {"template", "source", "warnings"} or None when neither the store
    nor its active theme has this template type. The caller decides whether to
    materialize one.
    """
    store = get_store(db, store_id)
    template_type = validate_name(template_type, "template type")

    template = find_default_template(db, store.id, template_type)
    if template is not None:
        return {"template": template.to_dict(include_sections=True), "source": SOURCE_ENTITY, "warnings": []}

    template = find_any_template(db, store.id, template_type)
    if template is not None:
        return {"template": template.to_dict(include_sections=True), "source": SOURCE_STORE_DEFAULT, "warnings": []}

    reader = reader or ThemePackageReader()
    warnings = []
    definition = reader.load_template(store.active_theme_code, template_type, warnings)
    if definition is None:
        return None
    return {
        "template": {
            "id": None,
            "storeId": store.id,
            "themeCode": store.active_theme_code,
            "templateType": template_type,
            "name": definition["name"],
            "isDefault": True,
            "enabled": True,
            "settings": {},
            "seoSettings": {},
            "sections": compile_json_sections(definition, template_type),
        },
        "source": SOURCE_THEME_DEFAULT,
        "warnings": warnings,
    }
