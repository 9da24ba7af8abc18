"""
Change detection between two images of a recipe.

Pure functions over plain dicts and lists: no session, no I/O, no exceptions
for well-typed input. Values that cannot be read as finite numbers fall back
to trimmed string comparison.

Usage:
    from rest_api.services.revisions.diff import diff_scalars, diff_children

    descriptors = diff_scalars(pre["recipe"], post["recipe"], RECIPE_WATCHED_FIELDS)
    descriptors += diff_children(pre["ingredients"], post["ingredients"], INGREDIENT_WATCHED_FIELDS)
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from shared.config.constants import INGREDIENT_FIELD, NUMERIC_TOLERANCE


# =============================================================================
# Change descriptors
# =============================================================================


class ChangeKind:
    """Kinds of detected change."""

    FIELD = "field"
    CHILD_ADDED = "child_added"
    CHILD_REMOVED = "child_removed"
    CHILD_MODIFIED = "child_modified"
    COLLECTION = "collection"


@dataclass(frozen=True)
class ChangeDescriptor:
    """
    One detected difference.

    For child_added / child_removed the whole serialized child is carried in
    old_value / new_value. For child_modified, ``child`` is the pre-image
    child, so a renamed ingredient is described by the name it had.
    """

    kind: str
    field: str
    old_value: Any = None
    new_value: Any = None
    child: Optional[Mapping[str, Any]] = None


# =============================================================================
# Value comparison
# =============================================================================


def is_absent(value: Any) -> bool:
    """None and blank strings are the same "no value" state."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_number(value: Any) -> Optional[float]:
    """
    Read a value as a finite float, or None if it is not numeric.

    Booleans count as 1/0. Strings are trimmed and may use a decimal comma.
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def values_differ(old: Any, new: Any) -> bool:
    """
    Compare two scalar values the way the audit trail does.

    Equal when both are absent, when both parse as numbers within
    NUMERIC_TOLERANCE, or when their trimmed text is identical.
    """
    old_absent, new_absent = is_absent(old), is_absent(new)
    if old_absent or new_absent:
        return old_absent != new_absent

    old_number, new_number = parse_number(old), parse_number(new)
    if old_number is not None and new_number is not None:
        return abs(old_number - new_number) > NUMERIC_TOLERANCE

    return _as_text(old) != _as_text(new)


def stringify_value(value: Any) -> Optional[str]:
    """Render a descriptor value for storage in the history table."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


# =============================================================================
# Scalars
# =============================================================================


def diff_scalars(
    pre: Mapping[str, Any],
    post: Mapping[str, Any],
    watched_fields: Iterable[str],
) -> list[ChangeDescriptor]:
    """One FIELD descriptor per watched field whose value changed."""
    changes = []
    for field in watched_fields:
        old, new = pre.get(field), post.get(field)
        if values_differ(old, new):
            changes.append(ChangeDescriptor(ChangeKind.FIELD, field, old, new))
    return changes


# =============================================================================
# Children (matched by natural key)
# =============================================================================


def ingredient_key(child: Mapping[str, Any]) -> str:
    """Natural key of an ingredient line: its trimmed SKU."""
    return str(child.get("sku") or "").strip()


def diff_children(
    pre_children: Sequence[Mapping[str, Any]],
    post_children: Sequence[Mapping[str, Any]],
    watched_fields: Iterable[str],
    key: Callable[[Mapping[str, Any]], str] = ingredient_key,
    prefix: str = INGREDIENT_FIELD,
) -> list[ChangeDescriptor]:
    """
    Diff two child lists by natural key.

    Output order: removed (pre order), added (post order), then modified
    (post order, one descriptor per changed field named ``<prefix>.<field>``,
    carrying the pre-image child).
    A child deleted and re-inserted under the same key is never reported as
    a remove/add pair.
    """
    watched = tuple(watched_fields)
    pre_by_key = {key(child): child for child in pre_children}
    post_by_key = {key(child): child for child in post_children}

    changes = []
    for child_key, child in pre_by_key.items():
        if child_key not in post_by_key:
            changes.append(
                ChangeDescriptor(ChangeKind.CHILD_REMOVED, prefix, old_value=dict(child), child=child)
            )
    for child_key, child in post_by_key.items():
        if child_key not in pre_by_key:
            changes.append(
                ChangeDescriptor(ChangeKind.CHILD_ADDED, prefix, new_value=dict(child), child=child)
            )
    for child_key, new_child in post_by_key.items():
        old_child = pre_by_key.get(child_key)
        if old_child is None:
            continue
        for field in watched:
            old, new = old_child.get(field), new_child.get(field)
            if values_differ(old, new):
                changes.append(
                    ChangeDescriptor(
                        ChangeKind.CHILD_MODIFIED, f"{prefix}.{field}", old, new, child=old_child
                    )
                )
    return changes


# =============================================================================
# Opaque structures
# =============================================================================


def normalize_structure(value: Any) -> Any:
    """Numbers become floats, recursively, so 180 and 180.0 compare equal."""
    if isinstance(value, Mapping):
        return {str(k): normalize_structure(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_structure(v) for v in value]
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float, Decimal)):
        try:
            return float(value)
        except OverflowError:
            return value
    return value


def project_steps(steps: Sequence[Mapping[str, Any]], keys: Sequence[str]) -> list[dict[str, Any]]:
    """Keep only the declared keys of each step, dropping surrogate ids."""
    return [{k: step.get(k) for k in keys} for step in steps]


def diff_opaque_collection(
    name: str,
    pre_list: Optional[Sequence[Any]],
    post_list: Optional[Sequence[Any]],
    keys: Optional[Sequence[str]] = None,
) -> list[ChangeDescriptor]:
    """
    Zero or one COLLECTION descriptor, by deep equality of the whole ordered list.
    """
    pre_items = list(pre_list or [])
    post_items = list(post_list or [])
    if keys is not None:
        pre_items = project_steps(pre_items, keys)
        post_items = project_steps(post_items, keys)
    if normalize_structure(pre_items) == normalize_structure(post_items):
        return []
    return [ChangeDescriptor(ChangeKind.COLLECTION, name, pre_items, post_items)]


def parse_settings(raw: Any) -> Any:
    """Parse a settings blob stored as JSON text; unparsable text is kept as trimmed text."""
    if is_absent(raw):
        return None
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw.strip()


def diff_settings(name: str, pre_raw: Any, post_raw: Any) -> list[ChangeDescriptor]:
    """Zero or one COLLECTION descriptor for a JSON settings blob (key order ignored)."""
    old, new = parse_settings(pre_raw), parse_settings(post_raw)
    if normalize_structure(old) == normalize_structure(new):
        return []
    return [ChangeDescriptor(ChangeKind.COLLECTION, name, old, new)]
