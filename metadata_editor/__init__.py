from importlib import metadata as _metadata

try:  # pragma: no cover - simple dynamic version helper
    __version__ = _metadata.version("nwb-metadata-editor")
except _metadata.PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "channel_maps",
    "channel_map_editor",
    "device_types",
    "export",
    "import_export",
    "quick_checks",
    "schema",
    "session",
    "validation",
    "yaml_io",
    "__version__",
]
