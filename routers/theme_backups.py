"""
Theme Backups Router
Versioned theme backups and raw theme file history for a store
"""
from typing import Optional, Dict, Any

from fastapi import APIRouter, Request, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from core.auth import get_uid_from_request, can_manage_store
from core.database import get_db
from core.errors import EngineError
from core.responses import engine_error_response, unauthorized, forbidden, internal_error
from services import backups as backup_service
from services import file_history as history_service

router = APIRouter(prefix="/api/stores/{store_id}", tags=["theme-backups"])


class BackupCreate(BaseModel):
    theme_code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    include_templates: Optional[bool] = True
    include_sections: Optional[bool] = True
    include_styles: Optional[bool] = True


class BackupImport(BaseModel):
    backup: Dict[str, Any]
    theme_code: Optional[str] = None


class BackupRestore(BaseModel):
    force: Optional[bool] = False


class FileSave(BaseModel):
    theme_code: str
    file_path: str
    content: str


class FileRestore(BaseModel):
    theme_code: str
    file_path: str
    history_id: str


# ============ Backups ============

@router.post("/backups")
async def create(request: Request, store_id: str, data: BackupCreate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        options = backup_service.BackupOptions(
            name=data.name,
            description=data.description,
            include_templates=data.include_templates is not False,
            include_sections=data.include_sections is not False,
            include_styles=data.include_styles is not False,
        )
        backup = backup_service.create_backup(db, store_id, data.theme_code, options=options, created_by=uid)
        return backup.to_dict(include_payload=False)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("create_backup", ex)
    finally:
        db.close()


@router.get("/backups")
async def list_all(request: Request, store_id: str, theme_code: Optional[str] = Query(None),
                   limit: Optional[int] = Query(None)):
    """Newest first; older backups are never pruned here"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        backups = backup_service.list_backups(db, store_id, theme_code, limit)
        return {"backups": [b.to_dict(include_payload=False) for b in backups]}
    finally:
        db.close()


@router.get("/backups/diff")
async def diff(request: Request, store_id: str, from_id: str = Query(...), to_id: str = Query(...)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return backup_service.diff_backups(db, from_id, to_id, store_id)
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.post("/backups/import")
async def import_export(request: Request, store_id: str, data: BackupImport):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        backup = backup_service.import_backup(db, store_id, data.backup, data.theme_code, created_by=uid)
        return backup.to_dict(include_payload=False)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("import_backup", ex)
    finally:
        db.close()


@router.get("/backups/{backup_id}")
async def get_one(request: Request, store_id: str, backup_id: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        backup, warnings = backup_service.get_backup(db, backup_id, store_id)
        result = backup.to_dict()
        result["verified"] = not warnings
        result["warnings"] = warnings
        return result
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.get("/backups/{backup_id}/export")
async def export(request: Request, store_id: str, backup_id: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return backup_service.export_backup(db, backup_id, store_id)
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.post("/backups/{backup_id}/restore")
async def restore(request: Request, store_id: str, backup_id: str, data: BackupRestore):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return backup_service.restore_backup(db, backup_id, store_id, force=bool(data.force))
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("restore_backup", ex)
    finally:
        db.close()


# ============ Theme files ============

@router.get("/theme-files")
async def read_file(request: Request, store_id: str, theme_code: str = Query(...), file_path: str = Query(...)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return {"filePath": file_path, "content": history_service.read_file(store_id, theme_code, file_path)}
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.put("/theme-files")
async def save_file(request: Request, store_id: str, data: FileSave):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        entry = history_service.save_file(db, store_id, data.theme_code, data.file_path, data.content, created_by=uid)
        return entry.to_dict(include_content=False)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("save_file", ex)
    finally:
        db.close()


@router.get("/theme-files/history")
async def file_history(request: Request, store_id: str, theme_code: str = Query(...), file_path: str = Query(...),
                       limit: Optional[int] = Query(None)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        entries = history_service.list_file_history(db, store_id, theme_code, file_path, limit)
        return {"history": [e.to_dict(include_content=False) for e in entries]}
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.get("/theme-files/diff")
async def file_diff(request: Request, store_id: str, from_id: str = Query(...), to_id: str = Query(...)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return history_service.diff_file_versions(db, from_id, to_id, store_id)
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.post("/theme-files/restore")
async def file_restore(request: Request, store_id: str, data: FileRestore):
    """Snapshots the current content as a pre-restore entry before writing"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return history_service.restore_file(db, store_id, data.theme_code, data.file_path, data.history_id, created_by=uid)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("restore_file", ex)
    finally:
        db.close()
