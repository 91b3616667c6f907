"""Interactive editing of one electrode group's channel maps.

Every physical channel of a shank has a selector whose value is a logical
channel number in ``0..C-1`` or ``UNASSIGNED``. A selector offers the numbers
no sibling selector holds, plus its own current value, plus ``UNASSIGNED``.
Changing a selector writes that one map entry and nothing else; option lists
are derived from the map on every call and never written back, so clearing
one channel cannot move its siblings onto a shared fallback value.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional

from .channel_maps import CHANNEL_MAP_KEY
from .errors import ChannelAssignmentError

UNASSIGNED = None

# Older documents and HTML selects encode "no channel" this way
_LEGACY_UNASSIGNED = (-1, "-1", "")


def as_channel(value: Any) -> Optional[int]:
    """Normalize a stored or submitted map value to ``int`` or ``UNASSIGNED``."""
    if value is None or value in _LEGACY_UNASSIGNED:
        return UNASSIGNED
    if isinstance(value, bool):
        raise ValueError(f"not a channel number: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if value in _LEGACY_UNASSIGNED:
            return UNASSIGNED
    return int(value)


def _physical(key: Any) -> Optional[int]:
    try:
        return int(key)
    except (TypeError, ValueError):
        return None


class ShankEditor:
    """Selectors for one ntrode (one shank). Edits the entry dict in place.

    Stored values that are not channel numbers (``"abc"``, a list) are kept
    as they are. They read as ``UNASSIGNED`` for option computation and are
    listed by ``malformed()``, until the user assigns a real number.
    """

    def __init__(self, entry: Dict[str, Any]):
        self.entry = entry
        self.entry.setdefault("map", {})
        self.entry.setdefault("bad_channels", [])

    @property
    def ntrode_id(self):
        return self.entry.get("ntrode_id")

    @property
    def channels(self) -> List[int]:
        return sorted(c for c in map(_physical, self.entry["map"]) if c is not None)

    def _key(self, channel: int):
        # Map keys are ints after decode but may be strings in hand-built documents
        for key in self.entry["map"]:
            if _physical(key) == channel:
                return key
        raise ChannelAssignmentError(channel, None, "no such physical channel in this shank")

    def raw(self, channel: int) -> Any:
        return self.entry["map"][self._key(channel)]

    def value(self, channel: int) -> Optional[int]:
        try:
            return as_channel(self.raw(channel))
        except (TypeError, ValueError):
            return UNASSIGNED

    def values(self) -> Dict[int, Optional[int]]:
        return {channel: self.value(channel) for channel in self.channels}

    def malformed(self) -> List[int]:
        """Physical channels whose stored value is not a channel number."""
        bad = []
        for channel in self.channels:
            try:
                as_channel(self.raw(channel))
            except (TypeError, ValueError):
                bad.append(channel)
        return bad

    def options(self, channel: int) -> List[Optional[int]]:
        own = self.value(channel)
        taken = {v for c, v in self.values().items() if c != channel and v is not UNASSIGNED}
        numbers = {n for n in range(len(self.entry["map"])) if n not in taken}
        if own is not UNASSIGNED:
            numbers.add(own)
        return [UNASSIGNED] + sorted(numbers)

    def assign(self, channel: int, value: Any) -> None:
        key = self._key(channel)
        try:
            logical = as_channel(value)
        except (TypeError, ValueError):
            raise ChannelAssignmentError(channel, value, "not a channel number") from None
        if logical not in self.options(channel):
            raise ChannelAssignmentError(channel, value, "already assigned to another channel or out of range")
        self.entry["map"][key] = logical

    def clear(self, channel: int) -> None:
        self.assign(channel, UNASSIGNED)

    def is_bad(self, channel: int) -> bool:
        return channel in set(map(_physical, self.entry["bad_channels"]))

    def toggle_bad_channel(self, channel: int) -> bool:
        """Flip a channel's bad flag and return the new state. ``map`` is untouched."""
        self._key(channel)
        bad = {int(c) for c in self.entry["bad_channels"]}
        bad.symmetric_difference_update({channel})
        self.entry["bad_channels"] = sorted(bad)
        return channel in bad

    def duplicates(self) -> List[int]:
        counts = Counter(v for v in self.values().values() if v is not UNASSIGNED)
        return sorted(v for v, n in counts.items() if n > 1)

    def unassigned(self) -> List[int]:
        return [c for c, v in self.values().items() if v is UNASSIGNED]


class ChannelMapEditor:
    """All shanks of one electrode group, in collection order."""

    def __init__(self, document: Dict[str, Any], electrode_group_id: Any):
        self.electrode_group_id = electrode_group_id
        self.shanks = [
            ShankEditor(entry)
            for entry in document.get(CHANNEL_MAP_KEY) or []
            if entry.get("electrode_group_id") == electrode_group_id
        ]

    def __len__(self) -> int:
        return len(self.shanks)

    def shank(self, index: int) -> ShankEditor:
        return self.shanks[index]
