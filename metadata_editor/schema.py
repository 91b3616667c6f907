from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from . import config

# Explicitly loaded once; see init_schema()/load_schema()
_SCHEMA: Optional[Dict[str, Any]] = None
_SCHEMA_PATH: Path = config.SCHEMA_PATH


def init_schema(path: str | Path | None = None) -> Dict[str, Any]:
    """Load the JSON Schema from ``path`` (or the configured default) and keep it.

    Call before the first validation to point the editor at another copy of
    the schema, e.g. one checked out from the conversion pipeline.
    """
    global _SCHEMA, _SCHEMA_PATH
    if path is not None:
        _SCHEMA_PATH = Path(path)
    with open(_SCHEMA_PATH, "r", encoding="utf-8") as f:
        _SCHEMA = json.load(f)
    return _SCHEMA


def load_schema() -> Dict[str, Any]:
    if _SCHEMA is None:
        return init_schema()
    return _SCHEMA


# Top-level keys every form starts with (order matters: it is the export order)
EMPTY_DOCUMENT: Dict[str, Any] = {
    "experimenter_name": [],
    "lab": "",
    "institution": "",
    "experiment_description": "",
    "session_description": "",
    "session_id": "",
    "keywords": [],
    "subject": {
        "description": "",
        "genotype": "",
        "sex": "M",
        "species": "",
        "subject_id": "",
        "date_of_birth": "",
        "weight": 0,
    },
    "data_acq_device": [],
    "cameras": [],
    "tasks": [],
    "associated_files": [],
    "associated_video_files": [],
    "units": {"analog": "", "behavioral_events": ""},
    "times_period_multiplier": 0.0,
    "raw_data_to_volts": 0.0,
    "default_header_file_path": "",
    "behavioral_events": [],
    "device": {"name": []},
    "electrode_groups": [],
    "ntrode_electrode_group_channel_map": [],
    "opto_excitation_source": [],
    "virus_injection": [],
    "optical_fiber": [],
    "fs_gui_yamls": [],
}

# Frank lab defaults for a new form
DEFAULT_DOCUMENT: Dict[str, Any] = {
    **copy.deepcopy(EMPTY_DOCUMENT),
    "lab": "Loren Frank Lab",
    "institution": "University of California, San Francisco",
    "subject": {
        "description": "Long-Evans Rat",
        "genotype": "",
        "sex": "M",
        "species": "Rattus norvegicus",
        "subject_id": "",
        "date_of_birth": "",
        "weight": 100,
    },
    "times_period_multiplier": 1.0,
    "raw_data_to_volts": 1.0,
    "device": {"name": ["Trodes"]},
}

# New item templates for each array section
ARRAY_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "data_acq_device": {
        "name": "SpikeGadgets",
        "system": "SpikeGadgets",
        "amplifier": "Intan",
        "adc_circuit": "Intan",
    },
    "cameras": {
        "id": 0,
        "meters_per_pixel": 0,
        "manufacturer": "",
        "model": "",
        "lens": "",
        "camera_name": "",
    },
    "tasks": {
        "task_name": "",
        "task_description": "",
        "task_environment": "",
        "camera_id": [],
        "task_epochs": [],
    },
    "associated_files": {"name": "", "description": "", "path": "", "task_epochs": 0},
    "associated_video_files": {"name": "", "camera_id": 0, "task_epochs": []},
    "behavioral_events": {"description": "Din1", "name": ""},
    "electrode_groups": {
        "id": 0,
        "location": "",
        "device_type": "",
        "description": "",
        "targeted_location": "",
        "targeted_x": 0.0,
        "targeted_y": 0.0,
        "targeted_z": 0.0,
        "units": "μm",
    },
    "opto_excitation_source": {
        "name": "Omicron LuxX+ Blue",
        "model_name": "Omicron LuxX+ 488-100",
        "description": "Laser for optogenetic stimulation",
        "wavelength_in_nm": 488.0,
        "power_in_W": 0.077,
        "intensity_in_W_per_m2": 1e10,
    },
    "optical_fiber": {
        "name": "Optical fiber 1",
        "hardware_name": "",
        "implanted_fiber_description": "",
        "location": "",
        "hemisphere": "",
        "ap_in_mm": 0.0,
        "ml_in_mm": 0.0,
        "dv_in_mm": 0.0,
        "reference": "Bregma at the cortical surface",
        "excitation_source": "",
    },
    "virus_injection": {
        "name": "Injection 1",
        "description": "Viral injection for optogenetic stimulation",
        "hemisphere": "",
        "location": "",
        "ap_in_mm": 0.0,
        "ml_in_mm": 0.0,
        "dv_in_mm": 0.0,
        "reference": "Bregma at the cortical surface",
        "virus_name": "",
        "titer_in_vg_per_ml": 1e12,
        "volume_in_uL": 0.45,
    },
}

GENDERS: List[str] = ["M", "F", "U", "O"]
UNITS: List[str] = ["μm", "mm", "cm"]


def new_document(defaults: bool = True) -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_DOCUMENT if defaults else EMPTY_DOCUMENT)


def new_array_item(key: str, items: List[Dict[str, Any]] | None = None) -> Dict[str, Any]:
    """Return a fresh item for an array section; ids continue after ``items``."""
    item = copy.deepcopy(ARRAY_DEFAULTS.get(key, {}))
    if "id" in item and items:
        item["id"] = max(int(i.get("id") or 0) for i in items) + 1
    return item


# ---- Field descriptors ----
@dataclass
class FieldDescriptor:
    """One node of the schema tree, resolved once when the schema is loaded.

    ``kind`` is ``"scalar"``, ``"object"`` or ``"array"``. Objects carry
    ``children``, arrays carry ``item``; constraints used by the quick checks
    (``pattern``, ``minimum``, ``maximum``, ``format``, ``enum``) sit on
    scalars.
    """

    kind: str
    path: Tuple[str, ...]
    title: str
    required: bool = False
    json_type: Any = None
    enum: Optional[List[Any]] = None
    pattern: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    format: Optional[str] = None
    children: Dict[str, "FieldDescriptor"] = field(default_factory=dict)
    item: Optional["FieldDescriptor"] = None

    @property
    def name(self) -> str:
        return self.path[-1] if self.path else ""

    def walk(self) -> Iterator["FieldDescriptor"]:
        yield self
        for child in self.children.values():
            yield from child.walk()
        if self.item is not None:
            yield from self.item.walk()


def _resolve(node: Dict[str, Any], root: Dict[str, Any]) -> Dict[str, Any]:
    while "$ref" in node:
        target: Any = root
        for part in node["$ref"].lstrip("#/").split("/"):
            target = target[part]
        node = {**target, **{k: v for k, v in node.items() if k != "$ref"}}
    return node


def _kind(node: Dict[str, Any]) -> str:
    json_type = node.get("type")
    if json_type == "object":
        return "object"
    if json_type == "array":
        return "array"
    return "scalar"


def _build(node: Dict[str, Any], root: Dict[str, Any], path: Tuple[str, ...], required: bool) -> FieldDescriptor:
    node = _resolve(node, root)
    descriptor = FieldDescriptor(
        kind=_kind(node),
        path=path,
        title=node.get("title") or (path[-1].replace("_", " ").title() if path else ""),
        required=required,
        json_type=node.get("type"),
        enum=node.get("enum"),
        pattern=node.get("pattern"),
        minimum=node.get("minimum"),
        maximum=node.get("maximum"),
        format=node.get("format"),
    )
    if descriptor.kind == "object":
        required_keys = set(node.get("required", []))
        for key, child in node.get("properties", {}).items():
            descriptor.children[key] = _build(child, root, path + (key,), key in required_keys)
    elif descriptor.kind == "array" and isinstance(node.get("items"), dict):
        descriptor.item = _build(node["items"], root, path + ("[]",), False)
    return descriptor


def build_field_descriptors(schema: Dict[str, Any] | None = None) -> FieldDescriptor:
    """Resolve the schema into a tree of :class:`FieldDescriptor`."""
    schema = schema if schema is not None else load_schema()
    return _build(schema, schema, (), True)


def find_descriptor(root: FieldDescriptor, path: str) -> Optional[FieldDescriptor]:
    """Look up a descriptor by dotted path; array indices are ignored (``cameras[0].id``)."""
    node: Optional[FieldDescriptor] = root
    for part in path.replace("]", "").replace("[", ".").split("."):
        if node is None or part == "":
            continue
        if part.isdigit():
            node = node.item
        else:
            node = node.children.get(part)
    return node


# Mapping of top-level fields to sections for UI grouping
FIELD_CATEGORIES: Dict[str, str] = {
    "experimenter_name": "Session",
    "lab": "Institution",
    "institution": "Institution",
    "experiment_description": "Session",
    "session_description": "Session",
    "session_id": "Session",
    "keywords": "Session",
    "subject": "Subject",
    "data_acq_device": "Hardware",
    "device": "Hardware",
    "cameras": "Hardware",
    "units": "Technical",
    "times_period_multiplier": "Technical",
    "raw_data_to_volts": "Technical",
    "default_header_file_path": "Technical",
    "tasks": "Behavior",
    "behavioral_events": "Behavior",
    "associated_files": "Behavior",
    "associated_video_files": "Behavior",
    "electrode_groups": "Electrodes",
    "ntrode_electrode_group_channel_map": "Electrodes",
    "opto_excitation_source": "Optogenetics",
    "optical_fiber": "Optogenetics",
    "virus_injection": "Optogenetics",
    "optogenetic_stimulation_software": "Optogenetics",
    "fs_gui_yamls": "Optogenetics",
}


def get_field_category(field: str) -> str:
    """Return the UI section for a top-level field.

    Falls back to heuristics based on common prefixes if the field is not in
    :data:`FIELD_CATEGORIES`.
    """
    if field in FIELD_CATEGORIES:
        return FIELD_CATEGORIES[field]
    if field.startswith("subject"):
        return "Subject"
    if field.startswith("session_"):
        return "Session"
    if field.startswith("opto") or field.startswith("virus"):
        return "Optogenetics"
    return "Other"


def get_field_descriptions() -> Dict[str, str]:
    """Return help text for fields whose meaning is not obvious from the title."""
    return {
        "session_id": "Identifier of this recording session; kept as text even when it looks like a number.",
        "subject.date_of_birth": "Date of birth in ISO 8601 format (YYYY-MM-DDTHH:MM:SS).",
        "subject.weight": "Weight of the subject in grams.",
        "times_period_multiplier": "Multiplier applied to the timestamps period reported by Trodes.",
        "raw_data_to_volts": "Scale factor converting raw ADC values to volts.",
        "default_header_file_path": "Path to a .rec header used when the recording lacks one.",
        "electrode_groups.device_type": (
            "Probe model. Selecting it regenerates this group's channel maps, one ntrode per shank."
        ),
        "electrode_groups.targeted_x": "Medial-lateral coordinate from Bregma.",
        "electrode_groups.targeted_y": "Anterior-posterior coordinate to Bregma.",
        "electrode_groups.targeted_z": "Dorsal-ventral coordinate to the cortical surface.",
        "ntrode_electrode_group_channel_map.map": (
            "Electrode map. Left is the physical channel on the probe, right is the "
            "hardware channel it is wired to. Leave blank when not yet known."
        ),
        "ntrode_electrode_group_channel_map.bad_channels": "Physical channels to exclude from analysis.",
    }
