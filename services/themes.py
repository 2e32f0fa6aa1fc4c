"""
Theme registry, per-store theme settings and theme activation.

Activation is one transaction: snapshot the outgoing theme, migrate its
settings onto the incoming theme's schema, upsert the incoming theme's
customization and switch the store's active theme.
"""
import copy
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy.orm import Session

from core.config import logger
from core.database import atomic
from core.errors import NotFoundError, ConflictError, ValidationError
from models.theme import Theme, ThemeCustomization
from services.templates import get_store
from utils.settings_migration import (
    migrate_settings, schema_defaults, flatten_settings, unflatten_settings, merge_dotted,
)
from utils.theme_package import ThemePackageReader, validate_name

THEME_FIELDS = ("name", "version", "settings_schema")


def get_theme(db: Session, code: str) -> Theme:
    theme = db.query(Theme).filter(Theme.code == code).first()
    if not theme:
        raise NotFoundError("Theme not found", themeCode=code)
    return theme


def find_theme(db: Session, code: str) -> Optional[Theme]:
    return db.query(Theme).filter(Theme.code == code).first()


def list_themes(db: Session, published_only: bool = False) -> List[Theme]:
    query = db.query(Theme)
    if published_only:
        query = query.filter(Theme.is_published.is_(True))
    return query.order_by(Theme.code.asc()).all()


def register_theme(db: Session, code: str, reader: Optional[ThemePackageReader] = None) -> Theme:
    """Create or refresh the Theme row from its package manifest and settings schema."""
    reader = reader or ThemePackageReader()
    code = validate_name(code, "theme code")
    if not reader.has_package(code):
        raise NotFoundError("Theme package not found", themeCode=code)
    manifest = reader.load_manifest(code)
    schema = reader.load_settings_schema(code)

    theme = find_theme(db, code)
    if theme is not None and theme.is_published:
        return theme
    with atomic(db):
        if theme is None:
            theme = Theme(code=code)
            db.add(theme)
        theme.name = manifest["name"]
        theme.version = manifest["version"]
        theme.settings_schema = schema
        db.flush()
    logger.info(f"Registered theme {code} v{theme.version}")
    return theme


def duplicate_theme(db: Session, code: str, new_code: str, name: Optional[str] = None,
                    reader: Optional[ThemePackageReader] = None) -> Theme:
    """New unpublished theme under `new_code`, copied from `code` (row and package files)."""
    reader = reader or ThemePackageReader()
    source = get_theme(db, code)
    new_code = validate_name(new_code, "theme code")
    if find_theme(db, new_code) is not None:
        raise ConflictError("Theme code already in use", themeCode=new_code)
    if reader.has_package(code):
        reader.copy_package(code, new_code)
    with atomic(db):
        theme = Theme(
            code=new_code,
            name=(name or "").strip() or f"{source.name} (copy)",
            version=source.version,
            settings_schema=copy.deepcopy(source.settings_schema or []),
            is_published=False,
        )
        db.add(theme)
        db.flush()
    logger.info(f"Duplicated theme {code} -> {new_code}")
    return theme


def publish_theme(db: Session, code: str) -> Theme:
    theme = get_theme(db, code)
    if not theme.is_published:
        with atomic(db):
            theme.is_published = True
            db.flush()
        logger.info(f"Published theme {code}")
    return theme


def update_theme(db: Session, code: str, **fields) -> Theme:
    theme = get_theme(db, code)
    if theme.is_published:
        raise ConflictError("Published themes are immutable; duplicate it instead", themeCode=code)
    unknown = set(fields) - set(THEME_FIELDS)
    if unknown:
        raise ValidationError("Unknown theme fields", fields=sorted(unknown))
    if fields.get("settings_schema") is not None and not isinstance(fields["settings_schema"], list):
        raise ValidationError("settingsSchema must be a list")
    with atomic(db):
        for key, value in fields.items():
            if value is not None:
                setattr(theme, key, copy.deepcopy(value))
        db.flush()
    return theme


def theme_schema(db: Session, code: str, reader: Optional[ThemePackageReader] = None) -> Tuple[list, Dict[str, Any]]:
    """(settings schema, nested defaults) from the Theme row, else from the package"""
    theme = find_theme(db, code)
    if theme is not None and theme.settings_schema:
        schema = theme.settings_schema
    else:
        reader = reader or ThemePackageReader()
        if theme is None and not reader.has_package(code):
            raise NotFoundError("Theme not found", themeCode=code)
        schema = reader.load_settings_schema(code)
    return schema, unflatten_settings(schema_defaults(schema))


def get_customization(db: Session, store_id: str, theme_code: str) -> Optional[ThemeCustomization]:
    return db.query(ThemeCustomization).filter(
        ThemeCustomization.store_id == store_id,
        ThemeCustomization.theme_code == theme_code,
    ).first()


def _customization_for_update(db: Session, store_id: str, theme_code: str) -> ThemeCustomization:
    row = get_customization(db, store_id, theme_code)
    if row is None:
        row = ThemeCustomization(store_id=store_id, theme_code=theme_code, settings={})
        db.add(row)
        db.flush()
    return row


def get_theme_settings(db: Session, store_id: str, theme_code: Optional[str] = None,
                       reader: Optional[ThemePackageReader] = None) -> Dict[str, Any]:
    """Theme defaults overlaid with the store's saved values"""
    store = get_store(db, store_id)
    theme_code = theme_code or store.active_theme_code
    _, defaults = theme_schema(db, theme_code, reader)
    row = get_customization(db, store.id, theme_code)
    return {
        "themeCode": theme_code,
        "settings": merge_dotted(defaults, row.settings if row else {}),
        "customCss": row.custom_css if row else None,
        "customized": row is not None,
    }


def update_theme_settings(db: Session, store_id: str, settings: Optional[dict] = None,
                          theme_code: Optional[str] = None, custom_css: Optional[str] = None,
                          replace: bool = False) -> ThemeCustomization:
    store = get_store(db, store_id)
    theme_code = validate_name(theme_code or store.active_theme_code, "theme code")
    if settings is not None and not isinstance(settings, dict):
        raise ValidationError("settings must be an object")
    with atomic(db):
        row = _customization_for_update(db, store.id, theme_code)
        if settings is not None:
            merged = copy.deepcopy(settings) if replace else merge_dotted(row.settings, settings)
            # Stored nested however the caller spelled the keys
            row.settings = unflatten_settings(flatten_settings(merged))
        if custom_css is not None:
            row.custom_css = custom_css
        db.flush()
    return row


def activate_theme(db: Session, store_id: str, to_theme_code: str, create_backup: bool = True,
                   reader: Optional[ThemePackageReader] = None, created_by: Optional[str] = None) -> Dict[str, Any]:
    from services.backups import _create_backup_record, snapshot_customizations

    store = get_store(db, store_id)
    to_theme_code = validate_name(to_theme_code, "theme code")
    from_theme_code = store.active_theme_code
    schema, defaults = theme_schema(db, to_theme_code, reader)

    source = get_customization(db, store.id, from_theme_code)
    current = copy.deepcopy(source.settings) if source and source.settings else {}
    switching = from_theme_code != to_theme_code

    backup = None
    with atomic(db):
        if create_backup and switching:
            backup = _create_backup_record(
                db, store.id, from_theme_code,
                settings=current,
                customizations=snapshot_customizations(db, store.id, from_theme_code),
                name=f"Before switching to {to_theme_code}",
                description=f"Automatic backup taken when switching from {from_theme_code} to {to_theme_code}",
                created_by=created_by,
            )
        migrated = migrate_settings(current, defaults, from_theme_code, to_theme_code, schema)
        target = _customization_for_update(db, store.id, to_theme_code)
        target.settings = copy.deepcopy(migrated)
        store.active_theme_code = to_theme_code
        db.flush()

    logger.info(f"Store {store.id} switched theme {from_theme_code} -> {to_theme_code}")
    return {
        "store": store.to_dict(),
        "fromTheme": from_theme_code,
        "toTheme": to_theme_code,
        "settings": migrated,
        "backupId": backup.id if backup else None,
    }
