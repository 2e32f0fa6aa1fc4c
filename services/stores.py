"""
Store setup: register a tenant and give it its first layout, either from the
active theme's JSON defaults or from a preset.
"""
import re
from typing import Optional, Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core import config
from core.config import logger
from core.database import atomic
from core.errors import ConflictError, ValidationError, NotFoundError
from models.store import Store
from services.presets import get_preset, apply_preset_rows
from services.template_loader import HybridTemplateLoader
from utils.theme_package import ThemePackageReader, validate_name

_SUBDOMAIN_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


def create_store(db: Session, owner_uid: str, name: str, subdomain: str, theme_code: Optional[str] = None,
                 preset_id: Optional[str] = None, reader: Optional[ThemePackageReader] = None) -> Dict[str, Any]:
    reader = reader or ThemePackageReader()
    if not owner_uid:
        raise ValidationError("Owner is required")
    if not (name or "").strip():
        raise ValidationError("Store name is required")
    subdomain = (subdomain or "").strip().lower()
    if not _SUBDOMAIN_RE.match(subdomain):
        raise ValidationError("Invalid subdomain", subdomain=subdomain)
    theme_code = validate_name(theme_code or config.DEFAULT_THEME_CODE, "theme code")
    if not reader.has_package(theme_code):
        raise NotFoundError("Theme package not found", themeCode=theme_code)

    preset = None
    if preset_id:
        preset = get_preset(preset_id)
        if not preset.is_compatible(theme_code):
            raise ValidationError("Preset is not compatible with this theme", presetId=preset_id, themeCode=theme_code)

    # Row and first layout land together; a failed setup leaves the subdomain free
    with atomic(db):
        store = Store(owner_uid=owner_uid, name=name.strip(), subdomain=subdomain, active_theme_code=theme_code)
        db.add(store)
        try:
            db.flush()
        except IntegrityError as ex:
            raise ConflictError("Subdomain already taken", subdomain=subdomain) from ex

        if preset is not None:
            setup = apply_preset_rows(db, store.id, preset, theme_code)
        else:
            templates = HybridTemplateLoader(reader).seed_store_templates(db, store.id, theme_code)
            setup = {"templatesCreated": [t.template_type for t in templates]}
    logger.info(f"Created store {store.id} ({subdomain}) on theme {theme_code}")
    return {"store": store.to_dict(), "setup": setup}
