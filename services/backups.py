"""
Theme backup manager.

A backup is an immutable, versioned snapshot of a store's theme settings plus
its customizations:

    {
      "templates": {<template type>: [{name, isDefault, enabled, settings, seoSettings, sections: [...]}]},
      "sections":  {<global section type>: {enabled, settings, blocks}},
      "styles":    {"customCss": ...},
    }

The checksum is a SHA-256 over the canonical JSON of (settings, customizations).
Identical content gives identical checksums; a stored checksum that no longer
matches its content marks the backup as corrupted.
"""
import copy
import json
import hashlib
from typing import Optional, List, Dict, Any, Tuple

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core import config
from core.config import logger
from core.database import atomic
from core.errors import NotFoundError, ConflictError, ValidationError, IntegrityWarning
from models.backup import ThemeBackup
from models.global_section import GlobalSection
from models.template import StoreTemplate
from services.global_sections import GLOBAL_SECTION_TYPES, _save_global_section
from services.templates import get_store, _new_template, seed_sections, section_tree
from services.themes import find_theme, get_customization, _customization_for_update
from utils.block_tree import strip_ids
from utils.settings_migration import diff_settings, flatten_settings, unflatten_settings, merge_dotted
from utils.theme_package import validate_name

SENSITIVE_KEYS = ("apikey", "secret", "password", "token")
EXPORT_FORMAT = "theme-backup"
EXPORT_FORMAT_VERSION = 1


class BackupOptions(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    include_templates: bool = True
    include_sections: bool = True
    include_styles: bool = True


class BackupExport(BaseModel):
    format: str = EXPORT_FORMAT
    formatVersion: int = EXPORT_FORMAT_VERSION
    themeCode: str
    themeVersion: Optional[str] = None
    name: str
    description: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)
    customizations: Dict[str, Any] = Field(default_factory=dict)
    checksum: str


def _is_sensitive(key: str) -> bool:
    normalized = str(key).lower().replace("_", "").replace("-", "")
    return any(marker in normalized for marker in SENSITIVE_KEYS)


def sanitize_settings(settings: Any) -> Any:
    """Copy with credential-like keys removed at any depth"""
    if isinstance(settings, dict):
        return {k: sanitize_settings(v) for k, v in settings.items() if not _is_sensitive(k)}
    if isinstance(settings, list):
        return [sanitize_settings(v) for v in settings]
    return copy.deepcopy(settings)


def compute_checksum(settings: Optional[dict], customizations: Optional[dict]) -> str:
    payload = json.dumps(
        {"settings": settings or {}, "customizations": customizations or {}},
        sort_keys=True, separators=(",", ":"), default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def verify_backup(backup: ThemeBackup) -> bool:
    return compute_checksum(backup.settings, backup.customizations) == backup.checksum


def snapshot_customizations(db: Session, store_id: str, theme_code: str,
                            options: Optional[BackupOptions] = None) -> Dict[str, Any]:
    options = options or BackupOptions()
    snapshot: Dict[str, Any] = {}

    if options.include_templates:
        templates: Dict[str, List[dict]] = {}
        rows = db.query(StoreTemplate).filter(StoreTemplate.store_id == store_id).order_by(
            StoreTemplate.template_type.asc(), StoreTemplate.is_default.desc(), StoreTemplate.created_at.asc(),
        ).all()
        for template in rows:
            templates.setdefault(template.template_type, []).append({
                "name": template.name,
                "description": template.description,
                "isDefault": bool(template.is_default),
                "enabled": bool(template.enabled),
                "settings": copy.deepcopy(template.settings or {}),
                "seoSettings": copy.deepcopy(template.seo_settings or {}),
                "sections": [
                    {
                        "type": section.section_type,
                        "enabled": bool(section.enabled),
                        "settings": copy.deepcopy(section.settings or {}),
                        "blocks": strip_ids(section_tree(section)),
                    }
                    for section in template.sections
                ],
            })
        snapshot["templates"] = templates

    if options.include_sections:
        rows = db.query(GlobalSection).filter(
            GlobalSection.store_id == store_id,
            GlobalSection.theme_code == theme_code,
        ).order_by(GlobalSection.section_type.asc()).all()
        snapshot["sections"] = {
            row.section_type: {
                "enabled": bool(row.enabled),
                "settings": copy.deepcopy(row.settings or {}),
                "blocks": strip_ids(row.blocks or []),
            }
            for row in rows
        }

    if options.include_styles:
        customization = get_customization(db, store_id, theme_code)
        snapshot["styles"] = {"customCss": customization.custom_css if customization else None}

    return snapshot


def _next_version(db: Session, store_id: str, theme_code: str) -> int:
    current = db.query(func.max(ThemeBackup.version)).filter(
        ThemeBackup.store_id == store_id,
        ThemeBackup.theme_code == theme_code,
    ).scalar()
    return (current or 0) + 1


def _create_backup_record(db: Session, store_id: str, theme_code: str, settings: Optional[dict],
                          customizations: Optional[dict], name: Optional[str] = None,
                          description: Optional[str] = None, created_by: Optional[str] = None) -> ThemeBackup:
    """Insert without committing; callers own the transaction."""
    settings = sanitize_settings(settings or {})
    customizations = copy.deepcopy(customizations or {})
    theme = find_theme(db, theme_code)
    version = _next_version(db, store_id, theme_code)
    backup = ThemeBackup(
        store_id=store_id,
        theme_id=theme.id if theme else None,
        theme_code=theme_code,
        theme_version=theme.version if theme else None,
        version=version,
        name=(name or "").strip() or f"Backup v{version}",
        description=description,
        settings=settings,
        customizations=customizations,
        checksum=compute_checksum(settings, customizations),
        created_by=created_by,
    )
    db.add(backup)
    db.flush()
    return backup


def create_backup(db: Session, store_id: str, theme_code: Optional[str] = None,
                  settings: Optional[dict] = None, customizations: Optional[dict] = None,
                  options: Optional[BackupOptions] = None, created_by: Optional[str] = None) -> ThemeBackup:
    """
    Snapshot the store's theme. `settings` and `customizations` default to the
    store's current state for that theme.
    """
    store = get_store(db, store_id)
    theme_code = validate_name(theme_code or store.active_theme_code, "theme code")
    options = options or BackupOptions()
    if settings is not None and not isinstance(settings, dict):
        raise ValidationError("settings must be an object")
    if customizations is not None and not isinstance(customizations, dict):
        raise ValidationError("customizations must be an object")
    if settings is None:
        customization = get_customization(db, store.id, theme_code)
        settings = customization.settings if customization else {}
    if customizations is None:
        customizations = snapshot_customizations(db, store.id, theme_code, options)

    try:
        with atomic(db):
            backup = _create_backup_record(
                db, store.id, theme_code, settings, customizations,
                name=options.name, description=options.description, created_by=created_by,
            )
    except IntegrityError as ex:
        raise ConflictError("Another backup was created at the same time, retry", themeCode=theme_code) from ex
    logger.info(f"Created backup v{backup.version} ({backup.id}) for store {store.id} theme {theme_code}")
    return backup


def list_backups(db: Session, store_id: str, theme_code: Optional[str] = None,
                 limit: Optional[int] = None) -> List[ThemeBackup]:
    """Newest first, capped. Never prunes."""
    limit = config.BACKUP_LIST_LIMIT if limit is None else int(limit)
    limit = max(1, min(limit, config.BACKUP_LIST_MAX))
    query = db.query(ThemeBackup).filter(ThemeBackup.store_id == store_id)
    if theme_code:
        query = query.filter(ThemeBackup.theme_code == theme_code).order_by(ThemeBackup.version.desc())
    else:
        query = query.order_by(ThemeBackup.created_at.desc(), ThemeBackup.version.desc())
    return query.limit(limit).all()


def get_backup(db: Session, backup_id: str, store_id: Optional[str] = None) -> Tuple[ThemeBackup, List[str]]:
    query = db.query(ThemeBackup).filter(ThemeBackup.id == backup_id)
    if store_id:
        query = query.filter(ThemeBackup.store_id == store_id)
    backup = query.first()
    if not backup:
        raise NotFoundError("Backup not found", backupId=backup_id)
    warnings = []
    if not verify_backup(backup):
        message = f"Backup {backup.id} failed checksum verification"
        logger.warning(message)
        warnings.append(message)
    return backup, warnings


def diff_backups(db: Session, from_backup_id: str, to_backup_id: str, store_id: Optional[str] = None) -> Dict[str, Any]:
    old, old_warnings = get_backup(db, from_backup_id, store_id)
    new, new_warnings = get_backup(db, to_backup_id, store_id)
    return {
        "from": {"id": old.id, "version": old.version, "themeCode": old.theme_code},
        "to": {"id": new.id, "version": new.version, "themeCode": new.theme_code},
        "settings": diff_settings(old.settings, new.settings),
        "customizations": diff_settings(old.customizations, new.customizations),
        "warnings": old_warnings + new_warnings,
    }


def export_backup(db: Session, backup_id: str, store_id: Optional[str] = None) -> Dict[str, Any]:
    backup, warnings = get_backup(db, backup_id, store_id)
    if warnings:
        raise IntegrityWarning("Refusing to export a corrupted backup", backupId=backup.id)
    return BackupExport(
        themeCode=backup.theme_code,
        themeVersion=backup.theme_version,
        name=backup.name,
        description=backup.description,
        settings=backup.settings or {},
        customizations=backup.customizations or {},
        checksum=backup.checksum,
    ).dict()


def import_backup(db: Session, store_id: str, payload: Dict[str, Any], theme_code: Optional[str] = None,
                  created_by: Optional[str] = None) -> ThemeBackup:
    """Store an exported backup as the next version for this store."""
    store = get_store(db, store_id)
    try:
        data = BackupExport(**(payload or {}))
    except (PydanticValidationError, TypeError) as ex:
        raise ValidationError("Malformed backup export", reason=str(ex)) from ex
    if data.format != EXPORT_FORMAT:
        raise ValidationError("Unsupported backup format", format=data.format)
    if theme_code and data.themeCode != theme_code:
        raise ValidationError("Backup belongs to a different theme", themeCode=data.themeCode)
    validate_name(data.themeCode, "theme code")
    if compute_checksum(data.settings, data.customizations) != data.checksum:
        raise IntegrityWarning("Backup checksum does not match its content")

    try:
        with atomic(db):
            backup = _create_backup_record(
                db, store.id, data.themeCode, data.settings, data.customizations,
                name=data.name, description=data.description, created_by=created_by,
            )
    except IntegrityError as ex:
        raise ConflictError("Another backup was created at the same time, retry", themeCode=data.themeCode) from ex
    logger.info(f"Imported backup as v{backup.version} ({backup.id}) for store {store.id}")
    return backup


def _restore_templates(db: Session, store_id: str, templates: Dict[str, List[dict]]) -> int:
    for template in db.query(StoreTemplate).filter(StoreTemplate.store_id == store_id).all():
        db.delete(template)
    db.flush()
    count = 0
    for template_type, entries in templates.items():
        for entry in entries:
            template = _new_template(
                db, store_id, template_type,
                name=entry.get("name"),
                description=entry.get("description"),
                is_default=bool(entry.get("isDefault")),
                enabled=entry.get("enabled", True) is not False,
                settings=entry.get("settings"),
                seo_settings=entry.get("seoSettings"),
            )
            seed_sections(db, template.id, entry.get("sections") or [])
            count += 1
    return count


def _restore_global_sections(db: Session, store_id: str, theme_code: str, sections: Dict[str, dict]) -> int:
    for row in db.query(GlobalSection).filter(
        GlobalSection.store_id == store_id,
        GlobalSection.theme_code == theme_code,
    ).all():
        if row.section_type not in sections:
            db.delete(row)
    db.flush()
    count = 0
    for section_type, entry in sections.items():
        if section_type not in GLOBAL_SECTION_TYPES:
            logger.warning(f"Skipping unknown global section {section_type} in backup")
            continue
        _save_global_section(
            db, store_id, theme_code, section_type,
            settings=entry.get("settings") or {},
            blocks=entry.get("blocks") or [],
            enabled=entry.get("enabled", True) is not False,
        )
        count += 1
    return count


def restore_backup(db: Session, backup_id: str, store_id: Optional[str] = None, force: bool = False) -> Dict[str, Any]:
    """
    Replace the store's theme settings, templates, global sections and styles
    with the snapshot's, in one transaction. Parts the snapshot did not include
    are left alone. A corrupted backup is refused unless `force` is set.
    """
    backup, warnings = get_backup(db, backup_id, store_id)
    if warnings and not force:
        raise IntegrityWarning("Backup failed checksum verification", backupId=backup.id)

    customizations = backup.customizations or {}
    restored = ["settings"]
    with atomic(db):
        customization = _customization_for_update(db, backup.store_id, backup.theme_code)
        settings = copy.deepcopy(backup.settings or {})
        # Credentials were stripped at backup time; keep the live ones
        secrets = {k: v for k, v in flatten_settings(customization.settings).items() if any(_is_sensitive(part) for part in k.split("."))}
        if secrets:
            settings = merge_dotted(settings, unflatten_settings(secrets))
        customization.settings = settings

        if "templates" in customizations:
            _restore_templates(db, backup.store_id, customizations["templates"] or {})
            restored.append("templates")
        if "sections" in customizations:
            _restore_global_sections(db, backup.store_id, backup.theme_code, customizations["sections"] or {})
            restored.append("sections")
        if "styles" in customizations:
            customization.custom_css = (customizations["styles"] or {}).get("customCss")
            restored.append("styles")
        db.flush()

    logger.info(f"Restored backup v{backup.version} ({backup.id}) for store {backup.store_id}: {restored}")
    return {
        "backupId": backup.id,
        "version": backup.version,
        "themeCode": backup.theme_code,
        "restored": restored,
        "warnings": warnings,
    }
