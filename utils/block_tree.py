"""
Block tree helpers.

Blocks are persisted flat (one row per block, `parentId` pointing at the
containing block, `position` within the sibling group) and edited/rendered as
a nested tree (`children` on every node). `nest` and `flatten` convert between
the two; `nest(flatten(tree))` reproduces `tree`.

Theme packages and presets describe container children inline, either as a
`blocks` list on the block or as `settings.blocks` / `settings.childBlocks`.
`normalize_definitions` turns those literals into the `children` form first.
"""
import copy
import uuid
from typing import Optional, List, Dict, Any

from core.config import logger
from core.errors import ValidationError

LEGACY_CHILD_KEYS = ("blocks", "childBlocks")


def _new_id() -> str:
    return str(uuid.uuid4())


def _node(block: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": block.get("id"),
        "type": block.get("type"),
        "settings": copy.deepcopy(block.get("settings") or {}),
        "enabled": block.get("enabled", True) is not False,
        "position": int(block.get("position") or 0),
        "children": [],
    }


def nest(flat_blocks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Build the nested tree from flat block records.

    Siblings are ordered by `position` with ties kept in input order. Blocks
    whose parent is missing, or that only reach each other through a cycle,
    are promoted to the top level instead of being dropped.
    """
    known_ids = {b.get("id") for b in flat_blocks if b.get("id") is not None}
    groups: Dict[Optional[str], List[Dict[str, Any]]] = {}
    for block in flat_blocks:
        parent_id = block.get("parentId")
        if parent_id is not None and parent_id not in known_ids:
            logger.warning(f"Block {block.get('id')} references missing parent {parent_id}; promoting to top level")
            parent_id = None
        groups.setdefault(parent_id, []).append(block)

    visited = set()

    def build(parent_id):
        out = []
        for block in sorted(groups.get(parent_id, []), key=lambda b: int(b.get("position") or 0)):
            block_id = block.get("id")
            if block_id is not None and block_id in visited:
                continue
            if block_id is not None:
                visited.add(block_id)
            node = _node(block)
            if block_id is not None:
                node["children"] = build(block_id)
            out.append(node)
        return out

    tree = build(None)

    # Cycles never hang off a root; surface them rather than lose them
    stranded = [b for b in flat_blocks if b.get("id") is not None and b.get("id") not in visited]
    for block in stranded:
        if block.get("id") in visited:
            continue
        logger.warning(f"Block {block.get('id')} is part of a parent cycle; promoting to top level")
        visited.add(block.get("id"))
        node = _node(block)
        node["children"] = build(block.get("id"))
        tree.append(node)
    return tree


def _children_of(node: Dict[str, Any]) -> List[Dict[str, Any]]:
    if "children" in node and node["children"] is not None:
        return node["children"]
    if isinstance(node.get("blocks"), list):
        return node["blocks"]
    settings = node.get("settings") or {}
    for key in LEGACY_CHILD_KEYS:
        if isinstance(settings.get(key), list):
            return settings[key]
    return []


def _clean_settings(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    cleaned = copy.deepcopy(settings or {})
    for key in LEGACY_CHILD_KEYS:
        if isinstance(cleaned.get(key), list):
            cleaned.pop(key)
    return cleaned


def flatten(nested_blocks: List[Dict[str, Any]], parent_id: Optional[str] = None,
            _seen: Optional[set] = None) -> List[Dict[str, Any]]:
    """
    Depth-first flatten. Each sibling group gets fresh positions from 0 and
    every record carries its parent's id, parents always before children.
    Nodes without an id get a new one; an id used twice is a ValidationError.
    """
    seen = set() if _seen is None else _seen
    out: List[Dict[str, Any]] = []
    for position, node in enumerate(nested_blocks or []):
        block_id = node.get("id") or _new_id()
        if block_id in seen:
            raise ValidationError("Duplicate block id", blockId=block_id)
        seen.add(block_id)
        children = _children_of(node)
        inline_children = "children" not in node or node["children"] is None
        out.append({
            "id": block_id,
            "parentId": parent_id,
            "type": node.get("type"),
            "position": position,
            "enabled": node.get("enabled", True) is not False,
            "settings": _clean_settings(node.get("settings")) if inline_children else copy.deepcopy(node.get("settings") or {}),
        })
        out.extend(flatten(children, block_id, seen))
    return out


def normalize_definitions(blocks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Convert block literals from a theme package or preset into id-less nested
    nodes with `children`, folding the legacy inline child keys away.
    """
    out = []
    for position, block in enumerate(blocks or []):
        children = _children_of(block)
        out.append({
            "id": None,
            "type": block.get("type"),
            "settings": _clean_settings(block.get("settings")),
            "enabled": block.get("enabled", True) is not False,
            "position": position,
            "children": normalize_definitions(children),
        })
    return out


def assign_ephemeral_ids(nested_blocks: List[Dict[str, Any]], prefix: str) -> List[Dict[str, Any]]:
    """Deterministic ids for blocks that were never persisted (JSON defaults)."""
    out = []
    for position, node in enumerate(nested_blocks or []):
        node_id = f"{prefix}-block-{position}"
        copied = dict(node)
        copied["id"] = node_id
        copied["position"] = position
        copied["children"] = assign_ephemeral_ids(node.get("children") or [], node_id)
        out.append(copied)
    return out


def strip_ids(nested_blocks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Tree copy without ids, used for snapshots and duplication."""
    return [
        {
            "type": node.get("type"),
            "settings": copy.deepcopy(node.get("settings") or {}),
            "enabled": node.get("enabled", True) is not False,
            "position": position,
            "children": strip_ids(_children_of(node)),
        }
        for position, node in enumerate(nested_blocks or [])
    ]


def count_blocks(nested_blocks: List[Dict[str, Any]]) -> int:
    return sum(1 + count_blocks(_children_of(node)) for node in nested_blocks or [])
