"""Channel-map generation and electrode group bookkeeping.

Each shank of a probe becomes one ntrode with its own channel map. Maps are
generated with an identity mapping (physical channel ``i`` -> logical channel
``i``), an empty bad-channel list and an ``ntrode_id`` taken from a running
counter, so ids are unique and sequential across every electrode group.

All functions here are pure: inputs are never mutated and every returned
record is freshly allocated.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Hashable
from typing import Any, Dict, Iterable, List, Optional

from .device_types import channels_per_shank, shank_count

logger = logging.getLogger(__name__)

CHANNEL_MAP_KEY = "ntrode_electrode_group_channel_map"
ELECTRODE_GROUPS_KEY = "electrode_groups"


def generate_channel_maps_for_group(group: Dict[str, Any], start_ntrode_id: int = 0) -> List[Dict[str, Any]]:
    """Return one channel map per shank of ``group``'s device type.

    An unknown or missing device type yields an empty list; new hardware is
    expected to show up in documents before it reaches the catalog.
    """
    device_type = group.get("device_type")
    shanks = shank_count(device_type)
    channels = channels_per_shank(device_type)
    if shanks is None or channels is None:
        logger.debug(f"No geometry for device type {device_type!r}; skipping group {group.get('id')!r}")
        return []

    return [
        {
            "ntrode_id": start_ntrode_id + shank_index,
            "electrode_group_id": group.get("id"),
            "electrode_id": 0,
            "bad_channels": [],
            "map": {channel: channel for channel in range(channels)},
        }
        for shank_index in range(shanks)
    ]


def generate_all_channel_maps(groups: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Concatenate the per-group maps, numbering ntrodes across all groups."""
    all_maps: List[Dict[str, Any]] = []
    next_id = 0
    for group in groups:
        group_maps = generate_channel_maps_for_group(group, next_id)
        all_maps.extend(group_maps)
        next_id += len(group_maps)
    return all_maps


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def get_next_ntrode_id(existing_maps: Iterable[Dict[str, Any]]) -> int:
    """Return one more than the largest ``ntrode_id``, or 0 for no maps.

    Ids stored as strings compare numerically; ids that are not numbers at
    all are ignored.
    """
    ids = [_as_int(m.get("ntrode_id")) for m in existing_maps]
    ids = [i for i in ids if i is not None]
    if not ids:
        return 0
    return max(ids) + 1


def _is_key(value: Any) -> bool:
    return isinstance(value, Hashable)


def _items(value: Any) -> List[Dict[str, Any]]:
    return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


def maps_for_group(maps: Iterable[Dict[str, Any]], electrode_group_id: Any) -> List[Dict[str, Any]]:
    return [m for m in maps if m.get("electrode_group_id") == electrode_group_id]


def orphaned_channel_maps(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Channel maps whose ``electrode_group_id`` matches no electrode group.

    Ids that are not scalars (a list or mapping from a malformed file) cannot
    be matched and are left for the schema pass to report.
    """
    group_ids = {g.get("id") for g in _items(document.get(ELECTRODE_GROUPS_KEY)) if _is_key(g.get("id"))}
    return [
        m
        for m in _items(document.get(CHANNEL_MAP_KEY))
        if _is_key(m.get("electrode_group_id")) and m.get("electrode_group_id") not in group_ids
    ]


def _order_by_group(maps: List[Dict[str, Any]], groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # Stable: maps keep their relative order within a group; orphans go last
    position = {g.get("id"): i for i, g in enumerate(groups) if _is_key(g.get("id"))}

    def rank(m):
        group_id = m.get("electrode_group_id")
        return position.get(group_id, len(groups)) if _is_key(group_id) else len(groups)

    return sorted(maps, key=rank)


def select_device_type(document: Dict[str, Any], group_index: int, device_type: str) -> Dict[str, Any]:
    """Set a group's device type and regenerate that group's channel maps.

    The group's previous maps are replaced, not merged. Afterwards every map
    is ordered by electrode group and ``ntrode_id`` is renumbered from 0, so
    edits made to other groups' maps survive while ids stay sequential.
    """
    form = copy.deepcopy(document)
    groups = form.setdefault(ELECTRODE_GROUPS_KEY, [])
    group = groups[group_index]
    group["device_type"] = device_type

    kept = [m for m in form.get(CHANNEL_MAP_KEY) or [] if m.get("electrode_group_id") != group.get("id")]
    maps = _order_by_group(kept + generate_channel_maps_for_group(group), groups)
    for ntrode_id, channel_map in enumerate(maps):
        channel_map["ntrode_id"] = ntrode_id

    form[CHANNEL_MAP_KEY] = maps
    return form


def remove_electrode_group(document: Dict[str, Any], group_index: int) -> Dict[str, Any]:
    """Remove an electrode group together with every channel map that references it."""
    form = copy.deepcopy(document)
    groups = form.get(ELECTRODE_GROUPS_KEY) or []
    if not 0 <= group_index < len(groups):
        return form

    removed = groups.pop(group_index)
    form[CHANNEL_MAP_KEY] = [
        m for m in form.get(CHANNEL_MAP_KEY) or [] if m.get("electrode_group_id") != removed.get("id")
    ]
    form[ELECTRODE_GROUPS_KEY] = groups
    return form


def duplicate_electrode_group(document: Dict[str, Any], group_index: int) -> Dict[str, Any]:
    """Clone a group and its channel maps, inserting the clone after the original.

    The clone gets ``max(id) + 1``; its maps get fresh ids starting at the
    next available ``ntrode_id``.
    """
    form = copy.deepcopy(document)
    groups = form.get(ELECTRODE_GROUPS_KEY) or []
    if not 0 <= group_index < len(groups):
        return form

    original = groups[group_index]
    clone = copy.deepcopy(original)
    clone["id"] = max(_as_int(g.get("id")) or 0 for g in groups) + 1

    existing = form.setdefault(CHANNEL_MAP_KEY, [])
    next_id = get_next_ntrode_id(existing)
    cloned_maps = copy.deepcopy(maps_for_group(existing, original.get("id")))
    for offset, channel_map in enumerate(cloned_maps):
        channel_map["electrode_group_id"] = clone["id"]
        channel_map["ntrode_id"] = next_id + offset

    existing.extend(cloned_maps)
    groups.insert(group_index + 1, clone)
    return form
