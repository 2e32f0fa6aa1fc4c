"""
Theme package reader.

A theme package is a directory under THEMES_DIR:

    <code>/theme.json                 manifest (name, version)
    <code>/settings_schema.json       [{"key": "colors.primary", "type": "color", "default": "#000"}, ...]
    <code>/templates/<type>.json      {"name", "type", "sections": [{"type", "settings", "blocks"}]}
    <code>/sections/<type>.json       global section defaults (header, footer, announcement-bar)

Malformed JSON is reported as a warning and treated as "no default" so a store
can still render from its own customizations.
"""
import os
import re
import json
import shutil
from typing import Optional, List, Dict, Any

from core import config
from core.config import logger
from core.errors import ValidationError, NotFoundError, ConflictError

_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]{0,99}$")


def validate_name(value: str, label: str) -> str:
    value = (value or "").strip()
    if not _NAME_RE.match(value) or ".." in value:
        raise ValidationError(f"Invalid {label}", value=value)
    return value


class ThemePackageReader:
    def __init__(self, themes_dir: Optional[str] = None):
        self.themes_dir = os.path.abspath(themes_dir or config.THEMES_DIR)

    def package_dir(self, theme_code: str) -> str:
        return os.path.join(self.themes_dir, validate_name(theme_code, "theme code"))

    def has_package(self, theme_code: str) -> bool:
        return os.path.isdir(self.package_dir(theme_code))

    def _read_json(self, path: str, warnings: Optional[List[str]] = None):
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (ValueError, OSError) as ex:
            message = f"Malformed theme file {os.path.relpath(path, self.themes_dir)}: {ex}"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            return None

    def load_manifest(self, theme_code: str) -> Dict[str, Any]:
        data = self._read_json(os.path.join(self.package_dir(theme_code), "theme.json"))
        if not isinstance(data, dict):
            data = {}
        return {
            "code": theme_code,
            "name": data.get("name") or theme_code.replace("-", " ").title(),
            "version": str(data.get("version") or "1.0.0"),
            "description": data.get("description"),
        }

    def load_settings_schema(self, theme_code: str, warnings: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        data = self._read_json(os.path.join(self.package_dir(theme_code), "settings_schema.json"), warnings)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict) and item.get("key")]

    def load_template(self, theme_code: str, template_type: str, warnings: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
        """JSON default template, or None when absent or malformed"""
        path = os.path.join(self.package_dir(theme_code), "templates", f"{validate_name(template_type, 'template type')}.json")
        data = self._read_json(path, warnings)
        if data is None:
            return None
        if not isinstance(data, dict) or not isinstance(data.get("sections"), list):
            message = f"Theme template {theme_code}/{template_type} has no sections list"
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            return None
        sections = []
        for section in data["sections"]:
            if not isinstance(section, dict) or not section.get("type"):
                message = f"Skipping section without type in {theme_code}/{template_type}"
                logger.warning(message)
                if warnings is not None:
                    warnings.append(message)
                continue
            sections.append(section)
        return {
            "name": data.get("name") or template_type.replace("-", " ").title(),
            "type": data.get("type") or template_type,
            "sections": sections,
        }

    def load_global_section(self, theme_code: str, section_type: str, warnings: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
        path = os.path.join(self.package_dir(theme_code), "sections", f"{validate_name(section_type, 'section type')}.json")
        data = self._read_json(path, warnings)
        if not isinstance(data, dict):
            return None
        data.setdefault("type", section_type)
        return data

    def list_template_types(self, theme_code: str) -> List[str]:
        templates_dir = os.path.join(self.package_dir(theme_code), "templates")
        try:
            files = os.listdir(templates_dir)
        except OSError:
            return []
        return sorted(f[:-len(".json")] for f in files if f.endswith(".json"))

    def copy_package(self, source_code: str, new_code: str) -> None:
        src = self.package_dir(source_code)
        dst = self.package_dir(new_code)
        if not os.path.isdir(src):
            raise NotFoundError("Theme package not found", themeCode=source_code)
        if os.path.exists(dst):
            raise ConflictError("Theme package already exists", themeCode=new_code)
        shutil.copytree(src, dst)
