"""
Theme settings migration between themes.

Settings are compared as dotted key paths ("colors.primary"). Nested dicts and
already-dotted flat dicts are both accepted; the result keeps the shape of the
new theme's defaults.
"""
from typing import Any, Dict, List, Optional, Union

Schema = Union[List[Dict[str, Any]], List[str], Dict[str, Any], None]


def flatten_settings(settings: Optional[Dict[str, Any]], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in (settings or {}).items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            flat.update(flatten_settings(value, path))
        else:
            flat[path] = value
    return flat


def unflatten_settings(flat: Dict[str, Any]) -> Dict[str, Any]:
    nested: Dict[str, Any] = {}
    for path, value in flat.items():
        parts = path.split(".")
        cursor = nested
        for part in parts[:-1]:
            existing = cursor.get(part)
            if not isinstance(existing, dict):
                existing = {}
                cursor[part] = existing
            cursor = existing
        cursor[parts[-1]] = value
    return nested


def _is_nested(settings: Optional[Dict[str, Any]]) -> bool:
    return any(isinstance(v, dict) for v in (settings or {}).values())


def schema_keys(schema: Schema) -> List[str]:
    """Dotted keys declared by a settings schema ([{key,...}], [key, ...] or a defaults dict)."""
    if not schema:
        return []
    if isinstance(schema, dict):
        return list(flatten_settings(schema).keys())
    keys = []
    for item in schema:
        if isinstance(item, str):
            keys.append(item)
        elif isinstance(item, dict) and item.get("key"):
            keys.append(str(item["key"]))
    return keys


def schema_defaults(schema: Schema) -> Dict[str, Any]:
    """Flat dotted defaults from a settings schema"""
    if not schema:
        return {}
    if isinstance(schema, dict):
        return flatten_settings(schema)
    defaults = {}
    for item in schema:
        if isinstance(item, dict) and item.get("key"):
            defaults[str(item["key"])] = item.get("default")
    return defaults


def migrate_settings(
    current_settings: Optional[Dict[str, Any]],
    new_theme_defaults: Optional[Dict[str, Any]],
    from_theme_code: str,
    to_theme_code: str,
    schema: Schema = None,
) -> Optional[Dict[str, Any]]:
    """
    Same theme: `current_settings` is returned as-is.
    Different theme: start from the new defaults and keep the user's value for
    every key path the new theme declares. Keys unknown to the new theme are
    dropped; keys only the new theme has keep their default.
    """
    if from_theme_code == to_theme_code:
        return current_settings

    defaults_flat = flatten_settings(new_theme_defaults)
    current_flat = flatten_settings(current_settings)
    candidates = set(schema_keys(schema)) if schema else set(defaults_flat.keys())

    merged = dict(defaults_flat)
    for key, value in current_flat.items():
        if key in candidates:
            merged[key] = value

    if _is_nested(new_theme_defaults):
        return unflatten_settings(merged)
    return merged


def diff_settings(old: Optional[Dict[str, Any]], new: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    old_flat = flatten_settings(old)
    new_flat = flatten_settings(new)
    added = {k: new_flat[k] for k in new_flat if k not in old_flat}
    removed = {k: old_flat[k] for k in old_flat if k not in new_flat}
    changed = {
        k: {"from": old_flat[k], "to": new_flat[k]}
        for k in new_flat
        if k in old_flat and old_flat[k] != new_flat[k]
    }
    return {"added": added, "removed": removed, "changed": changed}


def merge_dotted(base: Optional[Dict[str, Any]], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay dotted overrides onto `base`, keeping base's shape"""
    flat = flatten_settings(base)
    flat.update(flatten_settings(overrides))
    return unflatten_settings(flat) if (_is_nested(base) or _is_nested(overrides)) else flat
