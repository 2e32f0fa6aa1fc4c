"""
History for raw theme source files (not structured sections).

Every write appends a ThemeFileHistory row; nothing is ever updated or
deleted. Restoring appends the file's current content as a `pre-restore`
entry before writing the old content back, so a restore can itself be undone.
"""
import difflib
from typing import Optional, List, Dict, Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from core import config
from core.config import logger
from core.database import atomic
from core.errors import NotFoundError, ValidationError
from models.backup import ThemeFileHistory
from services.templates import get_store
from utils.storage import normalize_file_path, theme_file_key, read_text_key, write_text_key
from utils.theme_package import validate_name

CHANGE_CREATE = "create"
CHANGE_UPDATE = "update"
CHANGE_PRE_RESTORE = "pre-restore"
CHANGE_RESTORE = "restore"


def _latest(db: Session, store_id: str, theme_code: str, file_path: str) -> Optional[ThemeFileHistory]:
    return db.query(ThemeFileHistory).filter(
        ThemeFileHistory.store_id == store_id,
        ThemeFileHistory.theme_code == theme_code,
        ThemeFileHistory.file_path == file_path,
    ).order_by(ThemeFileHistory.version.desc()).first()


def _append(db: Session, store_id: str, theme_code: str, file_path: str, content: str, change_type: str,
            created_by: Optional[str] = None, restored_from_id: Optional[str] = None) -> ThemeFileHistory:
    current = db.query(func.max(ThemeFileHistory.version)).filter(
        ThemeFileHistory.store_id == store_id,
        ThemeFileHistory.theme_code == theme_code,
        ThemeFileHistory.file_path == file_path,
    ).scalar()
    entry = ThemeFileHistory(
        store_id=store_id,
        theme_code=theme_code,
        file_path=file_path,
        version=(current or 0) + 1,
        content=content or "",
        change_type=change_type,
        restored_from_id=restored_from_id,
        created_by=created_by,
    )
    db.add(entry)
    # Flushed so the next append in the same transaction sees this version
    db.flush()
    return entry


def read_file(store_id: str, theme_code: str, file_path: str) -> str:
    content = read_text_key(theme_file_key(store_id, theme_code, file_path))
    if content is None:
        raise NotFoundError("Theme file not found", filePath=file_path)
    return content


def save_file(db: Session, store_id: str, theme_code: str, file_path: str, content: str,
              created_by: Optional[str] = None) -> ThemeFileHistory:
    """
    Write a theme file and log it. A file that existed before it was ever
    tracked gets its prior content recorded first, so the first edit is
    undoable too.
    """
    store = get_store(db, store_id)
    theme_code = validate_name(theme_code, "theme code")
    file_path = normalize_file_path(file_path)
    if not isinstance(content, str):
        raise ValidationError("content must be a string")
    key = theme_file_key(store.id, theme_code, file_path)
    existing = read_text_key(key)
    latest = _latest(db, store.id, theme_code, file_path)

    with atomic(db):
        if existing is not None and latest is None:
            _append(db, store.id, theme_code, file_path, existing, CHANGE_CREATE, created_by)
        change_type = CHANGE_CREATE if existing is None and latest is None else CHANGE_UPDATE
        entry = _append(db, store.id, theme_code, file_path, content, change_type, created_by)
        write_text_key(key, content)
    logger.info(f"Saved theme file {theme_code}/{file_path} for store {store.id} (v{entry.version})")
    return entry


def list_file_history(db: Session, store_id: str, theme_code: str, file_path: str,
                      limit: Optional[int] = None) -> List[ThemeFileHistory]:
    file_path = normalize_file_path(file_path)
    limit = config.FILE_HISTORY_LIMIT if limit is None else int(limit)
    limit = max(1, min(limit, config.FILE_HISTORY_LIMIT))
    return db.query(ThemeFileHistory).filter(
        ThemeFileHistory.store_id == store_id,
        ThemeFileHistory.theme_code == theme_code,
        ThemeFileHistory.file_path == file_path,
    ).order_by(ThemeFileHistory.version.desc()).limit(limit).all()


def get_history_entry(db: Session, history_id: str, store_id: Optional[str] = None) -> ThemeFileHistory:
    query = db.query(ThemeFileHistory).filter(ThemeFileHistory.id == history_id)
    if store_id:
        query = query.filter(ThemeFileHistory.store_id == store_id)
    entry = query.first()
    if not entry:
        raise NotFoundError("History entry not found", historyId=history_id)
    return entry


def diff_file_versions(db: Session, from_history_id: str, to_history_id: str,
                       store_id: Optional[str] = None) -> Dict[str, Any]:
    old = get_history_entry(db, from_history_id, store_id)
    new = get_history_entry(db, to_history_id, store_id)
    if (old.store_id, old.theme_code, old.file_path) != (new.store_id, new.theme_code, new.file_path):
        raise ValidationError("History entries belong to different files")
    lines = difflib.unified_diff(
        (old.content or "").splitlines(keepends=True),
        (new.content or "").splitlines(keepends=True),
        fromfile=f"{old.file_path}@v{old.version}",
        tofile=f"{new.file_path}@v{new.version}",
    )
    return {
        "filePath": old.file_path,
        "fromVersion": old.version,
        "toVersion": new.version,
        "diff": "".join(lines),
    }


def restore_file(db: Session, store_id: str, theme_code: str, file_path: str, history_id: str,
                 created_by: Optional[str] = None) -> Dict[str, Any]:
    store = get_store(db, store_id)
    file_path = normalize_file_path(file_path)
    target = get_history_entry(db, history_id, store.id)
    if target.theme_code != theme_code or target.file_path != file_path:
        raise ValidationError("History entry belongs to a different file", historyId=history_id)
    key = theme_file_key(store.id, theme_code, file_path)
    current = read_text_key(key)

    with atomic(db):
        pre_restore = _append(db, store.id, theme_code, file_path, current or "", CHANGE_PRE_RESTORE, created_by)
        restored = _append(
            db, store.id, theme_code, file_path, target.content, CHANGE_RESTORE, created_by,
            restored_from_id=target.id,
        )
        write_text_key(key, target.content or "")
    logger.info(f"Restored {theme_code}/{file_path} for store {store.id} to v{target.version} (pre-restore v{pre_restore.version})")
    return {
        "filePath": file_path,
        "restoredFrom": target.to_dict(include_content=False),
        "preRestore": pre_restore.to_dict(include_content=False),
        "entry": restored.to_dict(include_content=False),
        "content": target.content,
    }
