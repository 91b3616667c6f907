"""Probe geometry catalog.

Maps a device type identifier to its per-shank channel count and number of
shanks. The catalog mirrors the probe metadata files shipped with the
trodes_to_nwb conversion package and is built once at import; nothing
mutates it afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, List, Mapping, Optional


@dataclass(frozen=True)
class DeviceGeometry:
    channels_per_shank: int
    shank_count: int


# Order matters: it is the order offered in device type selectors
_CATALOG = {
    "tetrode_12.5": DeviceGeometry(4, 1),
    "A1x32-6mm-50-177-H32_21mm": DeviceGeometry(32, 1),
    "128c-4s8mm6cm-20um-40um-sl": DeviceGeometry(32, 4),
    "128c-4s6mm6cm-15um-26um-sl": DeviceGeometry(32, 4),
    "128c-4s8mm6cm-15um-26um-sl": DeviceGeometry(32, 4),
    "128c-4s6mm6cm-20um-40um-sl": DeviceGeometry(32, 4),
    "128c-4s4mm6cm-20um-40um-sl": DeviceGeometry(32, 4),
    "128c-4s4mm6cm-15um-26um-sl": DeviceGeometry(32, 4),
    "32c-2s8mm6cm-20um-40um-dl": DeviceGeometry(16, 2),
    "64c-4s6mm6cm-20um-40um-dl": DeviceGeometry(16, 4),
    "64c-3s6mm6cm-20um-40um-sl": DeviceGeometry(20, 3),
    "NET-EBL-128ch-single-shank": DeviceGeometry(128, 1),
}

DEVICE_GEOMETRY: Mapping[str, DeviceGeometry] = MappingProxyType(_CATALOG)


def get_geometry(device_type: Any) -> Optional[DeviceGeometry]:
    if not isinstance(device_type, str):
        return None
    return DEVICE_GEOMETRY.get(device_type)


def shank_count(device_type: Any) -> Optional[int]:
    """Return the number of shanks, or ``None`` for an unknown device type."""
    geometry = get_geometry(device_type)
    return geometry.shank_count if geometry else None


def channels_per_shank(device_type: Any) -> Optional[int]:
    """Return the channel count of one shank, or ``None`` for an unknown device type."""
    geometry = get_geometry(device_type)
    return geometry.channels_per_shank if geometry else None


def get_device_types() -> List[str]:
    return list(DEVICE_GEOMETRY.keys())


def is_known_device_type(value: Any) -> bool:
    return get_geometry(value) is not None
