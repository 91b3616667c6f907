from __future__ import annotations

import csv
import io
from collections.abc import Hashable
from typing import Any, Dict, List, Optional

import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import Font, PatternFill

from .channel_map_editor import as_channel
from .errors import ChannelMapCsvError

# Channel maps as a flat table, one row per ntrode, so they can be
# bulk-edited in a spreadsheet and read back.

BASE_COLUMNS: List[str] = [
    "electrode_group_id",
    "device_type",
    "location",
    "ntrode_id",
    "electrode_id",
    "bad_channels",
]
REQUIRED_COLUMNS: List[str] = ["electrode_group_id", "ntrode_id", "electrode_id", "bad_channels"]


def _channel_count(channel_maps: List[Dict[str, Any]]) -> int:
    return max((len(m.get("map") or {}) for m in channel_maps), default=0)


def _key_number(key: Any) -> Any:
    try:
        return int(key)
    except (TypeError, ValueError):
        return key


def _cell(value: Any) -> Any:
    # Values that are not channel numbers are written as they are
    try:
        channel = as_channel(value)
    except (TypeError, ValueError):
        return value
    return "" if channel is None else channel


def channel_map_rows(channel_maps: List[Dict[str, Any]], electrode_groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    groups = {g.get("id"): g for g in electrode_groups if isinstance(g.get("id"), Hashable)}
    rows: List[Dict[str, Any]] = []
    for channel_map in channel_maps:
        group_id = channel_map.get("electrode_group_id")
        group = groups.get(group_id, {}) if isinstance(group_id, Hashable) else {}
        mapping = {_key_number(k): v for k, v in (channel_map.get("map") or {}).items()}
        row = {
            "electrode_group_id": channel_map.get("electrode_group_id"),
            "device_type": group.get("device_type", ""),
            "location": group.get("location", ""),
            "ntrode_id": channel_map.get("ntrode_id"),
            "electrode_id": channel_map.get("electrode_id", 0),
            "bad_channels": ",".join(str(c) for c in channel_map.get("bad_channels") or []),
        }
        for i in range(_channel_count(channel_maps)):
            row[f"channel_{i}"] = _cell(mapping.get(i))
        rows.append(row)
    return rows


def _columns(channel_maps: List[Dict[str, Any]]) -> List[str]:
    return BASE_COLUMNS + [f"channel_{i}" for i in range(_channel_count(channel_maps))]


def export_channel_maps_csv(channel_maps: List[Dict[str, Any]], electrode_groups: List[Dict[str, Any]]) -> str:
    if not channel_maps:
        return ""
    columns = _columns(channel_maps)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns)
    for r in channel_map_rows(channel_maps, electrode_groups):
        writer.writerow([r.get(c, "") for c in columns])
    return buf.getvalue()


def build_csv_bytes(channel_maps: List[Dict[str, Any]], electrode_groups: List[Dict[str, Any]]) -> io.BytesIO:
    return io.BytesIO(export_channel_maps_csv(channel_maps, electrode_groups).encode("utf-8"))


def _parse_int(value: str, what: str, row: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ChannelMapCsvError(f'Invalid numeric value for {what} at row {row}: "{value}"') from None


def import_channel_maps_csv(text: str) -> List[Dict[str, Any]]:
    """Parse channel maps exported by :func:`export_channel_maps_csv`.

    Blank channel cells (and ``-1``) read back as unassigned.
    """
    rows = [r for r in csv.reader(io.StringIO(text.strip())) if any(cell.strip() for cell in r)]
    if len(rows) < 2:
        raise ChannelMapCsvError("CSV must contain header and at least one data row")

    header = rows[0]
    missing = [c for c in REQUIRED_COLUMNS if c not in header]
    if missing:
        raise ChannelMapCsvError(f"Missing required columns: {', '.join(missing)}")
    channel_columns = [(i, h) for i, h in enumerate(header) if h.startswith("channel_")]
    if not channel_columns:
        raise ChannelMapCsvError("Missing required columns: No channel columns found")

    channel_maps: List[Dict[str, Any]] = []
    for row_number, cells in enumerate(rows[1:], start=2):
        cells = cells + [""] * (len(header) - len(cells))
        cell = dict(zip(header, cells))

        bad_channels = [
            _parse_int(v, "bad_channels", row_number) for v in cell["bad_channels"].split(",") if v.strip()
        ]
        mapping: Dict[int, Optional[int]] = {}
        for index, name in channel_columns:
            raw = cells[index].strip()
            try:
                mapping[int(name.split("_", 1)[1])] = as_channel(raw)
            except ValueError:
                raise ChannelMapCsvError(f'Invalid numeric value for channel at row {row_number}: "{raw}"') from None

        channel_maps.append(
            {
                "ntrode_id": _parse_int(cell["ntrode_id"], "ntrode_id", row_number),
                "electrode_group_id": _parse_int(cell["electrode_group_id"], "electrode_group_id", row_number),
                "electrode_id": _parse_int(cell["electrode_id"], "electrode_id", row_number),
                "bad_channels": bad_channels,
                "map": mapping,
            }
        )
    return channel_maps


def build_channel_map_workbook(
    channel_maps: List[Dict[str, Any]], electrode_groups: List[Dict[str, Any]]
) -> io.BytesIO:
    """Build an XLSX workbook in-memory with a frozen, highlighted header row."""
    columns = _columns(channel_maps)
    df = pd.DataFrame(channel_map_rows(channel_maps, electrode_groups), columns=columns)
    bio = io.BytesIO()
    df.to_excel(bio, index=False, engine="openpyxl", sheet_name="Channel maps")

    bio.seek(0)
    wb = load_workbook(bio)
    ws = wb.active
    ws.freeze_panes = "A2"
    header_fill = PatternFill(fill_type="solid", fgColor="FFFFFF00")  # yellow
    header_font = Font(bold=True)
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
    out = io.BytesIO()
    wb.save(out)
    out.seek(0)
    return out
