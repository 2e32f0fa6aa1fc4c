"""
Theme Composition Router
Templates, sections, blocks, global sections, presets and theme switching for a store
"""
from typing import Optional, List, Dict, Any

from fastapi import APIRouter, Request, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from core.config import ADMIN_EMAILS
from core.auth import get_uid_from_request, get_user_email_from_uid, can_manage_store
from core.database import get_db
from core.errors import EngineError
from core.responses import engine_error_response, unauthorized, forbidden, internal_error
from services import templates as template_service
from services import sections as section_service
from services import themes as theme_service
from services.stores import create_store
from services.global_sections import (
    get_global_sections, upsert_global_section, delete_global_section, compose_render_sections,
)
from services.presets import list_presets, apply_preset
from services.template_loader import HybridTemplateLoader
from services.template_resolver import resolve_template

router = APIRouter(prefix="/api/stores/{store_id}", tags=["themes"])
catalog_router = APIRouter(prefix="/api/themes", tags=["themes"])
stores_router = APIRouter(prefix="/api/stores", tags=["stores"])


# ============ Pydantic Models ============

class StoreCreate(BaseModel):
    name: str
    subdomain: str
    theme_code: Optional[str] = None
    preset_id: Optional[str] = None


class TemplateCreate(BaseModel):
    template_type: str
    name: Optional[str] = None
    description: Optional[str] = None
    theme_id: Optional[str] = None
    is_default: Optional[bool] = False
    enabled: Optional[bool] = True
    settings: Optional[Dict[str, Any]] = None
    seo_settings: Optional[Dict[str, Any]] = None


class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_default: Optional[bool] = None
    enabled: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None
    seo_settings: Optional[Dict[str, Any]] = None


class TemplateDuplicate(BaseModel):
    name: str


class SectionCreate(BaseModel):
    section_type: str
    settings: Optional[Dict[str, Any]] = None
    position: Optional[int] = None
    enabled: Optional[bool] = True
    blocks: Optional[List[Dict[str, Any]]] = None


class SectionUpdate(BaseModel):
    settings: Optional[Dict[str, Any]] = None
    enabled: Optional[bool] = None
    position: Optional[int] = None


class SectionOrder(BaseModel):
    section_ids: List[str]


class SectionImport(BaseModel):
    sections: List[Any]


class BlockTree(BaseModel):
    blocks: List[Dict[str, Any]]


class BlockCreate(BaseModel):
    type: str
    settings: Optional[Dict[str, Any]] = None
    parent_block_id: Optional[str] = None
    position: Optional[int] = None
    enabled: Optional[bool] = True
    children: Optional[List[Dict[str, Any]]] = None


class BlockUpdate(BaseModel):
    settings: Optional[Dict[str, Any]] = None
    enabled: Optional[bool] = None


class GlobalSectionPayload(BaseModel):
    theme_code: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    blocks: Optional[List[Dict[str, Any]]] = None
    enabled: Optional[bool] = None


class PresetApply(BaseModel):
    preserve_existing: Optional[bool] = False
    theme_code: Optional[str] = None


class ThemeSettingsUpdate(BaseModel):
    theme_code: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    custom_css: Optional[str] = None
    replace: Optional[bool] = False


class ThemeActivate(BaseModel):
    theme_code: str
    create_backup: Optional[bool] = True


class ThemeRegister(BaseModel):
    code: str


class ThemeDuplicate(BaseModel):
    new_code: str
    name: Optional[str] = None


class ThemeUpdate(BaseModel):
    name: Optional[str] = None
    version: Optional[str] = None
    settings_schema: Optional[List[Dict[str, Any]]] = None


# ============ Store setup ============

@stores_router.post("")
async def create_new_store(request: Request, data: StoreCreate):
    """Create a store owned by the caller and seed its first layout"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        return create_store(db, uid, data.name, data.subdomain, data.theme_code, data.preset_id)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("create_store", ex)
    finally:
        db.close()


# ============ Compiled / resolved templates ============

@router.get("/templates/compiled/{template_type}")
async def get_compiled(
    request: Request,
    store_id: str,
    template_type: str,
    theme_code: Optional[str] = Query(None),
    include_global: bool = Query(True),
    include_disabled: bool = Query(False),
):
    """Render-ready template; with include_global also the composed render list"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        store = template_service.get_store(db, store_id)
        compiled = HybridTemplateLoader().get_compiled_template(
            db, store.id, theme_code or store.active_theme_code, template_type,
            include_disabled=include_disabled, include_global=include_global,
        )
        if compiled is None:
            return JSONResponse({"error": "Template not found"}, status_code=404)
        if include_global:
            compiled["renderSections"] = compose_render_sections(compiled, compiled.get("globalSections"))
        return compiled
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("get_compiled", ex)
    finally:
        db.close()


@router.get("/templates/resolve/{template_type}")
async def resolve(request: Request, store_id: str, template_type: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        result = resolve_template(db, store_id, template_type)
        if result is None:
            return JSONResponse({"error": "Template not found"}, status_code=404)
        return result
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("resolve", ex)
    finally:
        db.close()


@router.get("/theme-templates")
async def theme_templates(request: Request, store_id: str, theme_code: Optional[str] = Query(None)):
    """Template types shipped by a theme package"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        store = template_service.get_store(db, store_id)
        code = theme_code or store.active_theme_code
        return {"themeCode": code, "templateTypes": HybridTemplateLoader().list_theme_templates(code)}
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


# ============ Templates ============

@router.get("/templates")
async def list_store_templates(
    request: Request,
    store_id: str,
    template_type: Optional[str] = Query(None),
    enabled: Optional[bool] = Query(None),
    theme_id: Optional[str] = Query(None),
):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        templates = template_service.list_templates(db, store_id, template_type, enabled, theme_id)
        return {"templates": [t.to_dict() for t in templates]}
    finally:
        db.close()


@router.post("/templates")
async def create_store_template(request: Request, store_id: str, data: TemplateCreate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        fields = data.dict(exclude_unset=True)
        template_type = fields.pop("template_type")
        template = template_service.create_template(db, store_id, template_type, **fields)
        return template.to_dict(include_sections=True)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("create_store_template", ex)
    finally:
        db.close()


@router.get("/templates/{template_id}")
async def get_store_template(request: Request, store_id: str, template_id: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        template = template_service.get_template(db, template_id, store_id)
        result = template.to_dict(include_sections=True)
        for section, row in zip(result["sections"], template.sections):
            section["blocks"] = template_service.section_tree(row)
        return result
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.put("/templates/{template_id}")
async def update_store_template(request: Request, store_id: str, template_id: str, data: TemplateUpdate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        template = template_service.update_template(db, template_id, store_id, **data.dict(exclude_unset=True))
        return template.to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("update_store_template", ex)
    finally:
        db.close()


@router.delete("/templates/{template_id}")
async def delete_store_template(request: Request, store_id: str, template_id: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        template_service.delete_template(db, template_id, store_id)
        return {"ok": True}
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("delete_store_template", ex)
    finally:
        db.close()


@router.post("/templates/{template_id}/default")
async def make_default_template(request: Request, store_id: str, template_id: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return template_service.set_default_template(db, template_id, store_id).to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("make_default_template", ex)
    finally:
        db.close()


@router.post("/templates/{template_id}/duplicate")
async def duplicate_store_template(request: Request, store_id: str, template_id: str, data: TemplateDuplicate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return template_service.duplicate_template(db, template_id, data.name, store_id).to_dict(include_sections=True)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("duplicate_store_template", ex)
    finally:
        db.close()


@router.post("/templates/materialize/{template_type}")
async def materialize(request: Request, store_id: str, template_type: str, theme_code: Optional[str] = Query(None)):
    """Create the store's template from the theme default (no-op when one exists)"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        store = template_service.get_store(db, store_id)
        template = HybridTemplateLoader().materialize_template(db, store.id, theme_code or store.active_theme_code, template_type)
        return template.to_dict(include_sections=True)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("materialize", ex)
    finally:
        db.close()


@router.post("/templates/reset/{template_type}")
async def reset(request: Request, store_id: str, template_type: str, theme_code: Optional[str] = Query(None)):
    """Discard the store's sections for this template and re-seed from the theme default"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        store = template_service.get_store(db, store_id)
        template = HybridTemplateLoader().reset_template(db, store.id, theme_code or store.active_theme_code, template_type)
        return template.to_dict(include_sections=True)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("reset", ex)
    finally:
        db.close()


# ============ Sections ============

@router.post("/templates/{template_id}/sections")
async def create_section(request: Request, store_id: str, template_id: str, data: SectionCreate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        section = section_service.add_section(
            db, template_id, data.section_type,
            settings=data.settings,
            position=data.position,
            enabled=data.enabled is not False,
            blocks=data.blocks,
            store_id=store_id,
        )
        result = section.to_dict()
        result["blocks"] = template_service.section_tree(section)
        return result
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("create_section", ex)
    finally:
        db.close()


@router.put("/templates/{template_id}/sections/order")
async def order_sections(request: Request, store_id: str, template_id: str, data: SectionOrder):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        sections = section_service.reorder_sections(db, template_id, data.section_ids, store_id)
        return {"sections": [s.to_dict() for s in sections]}
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("order_sections", ex)
    finally:
        db.close()


@router.post("/templates/{template_id}/sections/import")
async def import_template_sections(request: Request, store_id: str, template_id: str, data: SectionImport):
    """Batch append; bad items are reported per index and skipped"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return section_service.import_sections(db, template_id, data.sections, store_id)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("import_template_sections", ex)
    finally:
        db.close()


@router.put("/sections/{section_id}")
async def edit_section(request: Request, store_id: str, section_id: str, data: SectionUpdate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        section = section_service.update_section(
            db, section_id, settings=data.settings, enabled=data.enabled, position=data.position, store_id=store_id,
        )
        return section.to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("edit_section", ex)
    finally:
        db.close()


@router.delete("/sections/{section_id}")
async def remove_section(request: Request, store_id: str, section_id: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        section_service.delete_section(db, section_id, store_id)
        return {"ok": True}
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("remove_section", ex)
    finally:
        db.close()


# ============ Blocks ============

@router.get("/sections/{section_id}/blocks")
async def section_blocks(request: Request, store_id: str, section_id: str, include_disabled: bool = Query(True)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return {"blocks": section_service.get_section_blocks(db, section_id, include_disabled, store_id)}
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.put("/sections/{section_id}/blocks")
async def save_section_blocks(request: Request, store_id: str, section_id: str, data: BlockTree):
    """Replace the whole nested block tree of a section"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return {"blocks": section_service.replace_blocks(db, section_id, data.blocks, store_id)}
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("save_section_blocks", ex)
    finally:
        db.close()


@router.post("/sections/{section_id}/blocks")
async def create_block(request: Request, store_id: str, section_id: str, data: BlockCreate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        block = section_service.add_block(
            db, section_id, data.type,
            settings=data.settings,
            parent_block_id=data.parent_block_id,
            position=data.position,
            enabled=data.enabled is not False,
            children=data.children,
            store_id=store_id,
        )
        return block.to_flat()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("create_block", ex)
    finally:
        db.close()


@router.put("/sections/{section_id}/blocks/{block_id}")
async def edit_block(request: Request, store_id: str, section_id: str, block_id: str, data: BlockUpdate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        section_service.get_section(db, section_id, store_id)
        block = section_service.update_block(db, block_id, settings=data.settings, enabled=data.enabled, section_id=section_id)
        return block.to_flat()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("edit_block", ex)
    finally:
        db.close()


@router.delete("/sections/{section_id}/blocks/{block_id}")
async def remove_block(request: Request, store_id: str, section_id: str, block_id: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        section_service.get_section(db, section_id, store_id)
        section_service.delete_block(db, block_id, section_id)
        return {"ok": True}
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("remove_block", ex)
    finally:
        db.close()


# ============ Global sections ============

@router.get("/global-sections")
async def global_sections(request: Request, store_id: str, theme_code: Optional[str] = Query(None),
                          include_disabled: bool = Query(True)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        store = template_service.get_store(db, store_id)
        result = get_global_sections(db, store.id, theme_code or store.active_theme_code, include_disabled=include_disabled)
        return {"themeCode": result.theme_code, "slots": result.to_dict(), "warnings": result.warnings}
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.put("/global-sections/{section_type}")
async def save_global_section(request: Request, store_id: str, section_type: str, data: GlobalSectionPayload):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        store = template_service.get_store(db, store_id)
        row = upsert_global_section(
            db, store.id, data.theme_code or store.active_theme_code, section_type,
            settings=data.settings, blocks=data.blocks, enabled=data.enabled,
        )
        return row.to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("save_global_section", ex)
    finally:
        db.close()


@router.delete("/global-sections/{section_type}")
async def remove_global_section(request: Request, store_id: str, section_type: str, theme_code: Optional[str] = Query(None)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        store = template_service.get_store(db, store_id)
        delete_global_section(db, store.id, theme_code or store.active_theme_code, section_type)
        return {"ok": True}
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("remove_global_section", ex)
    finally:
        db.close()


# ============ Presets ============

@router.get("/presets")
async def presets(request: Request, store_id: str, all_themes: bool = Query(False)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        store = template_service.get_store(db, store_id)
        found = list_presets(None if all_themes else store.active_theme_code)
        return {"presets": [p.summary() for p in found]}
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.post("/presets/{preset_id}/apply")
async def apply_store_preset(request: Request, store_id: str, preset_id: str, data: PresetApply):
    """Destructive unless preserve_existing is set; the dashboard confirms first"""
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return apply_preset(db, store_id, preset_id, preserve_existing=bool(data.preserve_existing), theme_code=data.theme_code)
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("apply_store_preset", ex)
    finally:
        db.close()


# ============ Theme settings / activation ============

@router.get("/theme/settings")
async def theme_settings(request: Request, store_id: str, theme_code: Optional[str] = Query(None)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return theme_service.get_theme_settings(db, store_id, theme_code)
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@router.put("/theme/settings")
async def save_theme_settings(request: Request, store_id: str, data: ThemeSettingsUpdate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        row = theme_service.update_theme_settings(
            db, store_id,
            settings=data.settings,
            theme_code=data.theme_code,
            custom_css=data.custom_css,
            replace=bool(data.replace),
        )
        return row.to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("save_theme_settings", ex)
    finally:
        db.close()


@router.post("/theme/activate")
async def activate(request: Request, store_id: str, data: ThemeActivate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        if not can_manage_store(db, uid, store_id):
            return forbidden()
        return theme_service.activate_theme(
            db, store_id, data.theme_code, create_backup=data.create_backup is not False, created_by=uid,
        )
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("activate", ex)
    finally:
        db.close()


# ============ Theme catalog (admin) ============

def _is_admin(uid: str) -> bool:
    email = get_user_email_from_uid(uid) or ""
    return bool(email) and email in ADMIN_EMAILS


@catalog_router.get("")
async def catalog(request: Request, published_only: bool = Query(False)):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()

    db: Session = next(get_db())
    try:
        return {"themes": [t.to_dict() for t in theme_service.list_themes(db, published_only)]}
    finally:
        db.close()


@catalog_router.post("")
async def register(request: Request, data: ThemeRegister):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()
    if not _is_admin(uid):
        return forbidden()

    db: Session = next(get_db())
    try:
        return theme_service.register_theme(db, data.code).to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("register", ex)
    finally:
        db.close()


@catalog_router.post("/{code}/duplicate")
async def duplicate(request: Request, code: str, data: ThemeDuplicate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()
    if not _is_admin(uid):
        return forbidden()

    db: Session = next(get_db())
    try:
        return theme_service.duplicate_theme(db, code, data.new_code, data.name).to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("duplicate", ex)
    finally:
        db.close()


@catalog_router.post("/{code}/publish")
async def publish(request: Request, code: str):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()
    if not _is_admin(uid):
        return forbidden()

    db: Session = next(get_db())
    try:
        return theme_service.publish_theme(db, code).to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    finally:
        db.close()


@catalog_router.put("/{code}")
async def update(request: Request, code: str, data: ThemeUpdate):
    uid = get_uid_from_request(request)
    if not uid:
        return unauthorized()
    if not _is_admin(uid):
        return forbidden()

    db: Session = next(get_db())
    try:
        return theme_service.update_theme(db, code, **data.dict(exclude_unset=True)).to_dict()
    except EngineError as ex:
        return engine_error_response(ex)
    except Exception as ex:
        return internal_error("update", ex)
    finally:
        db.close()
