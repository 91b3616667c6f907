"""
Command-line interface for the metadata editor.

Commands:
    metadata-editor validate FILE               # Schema and rule check
    metadata-editor format FILE [-o OUT]        # Rewrite in canonical YAML form
    metadata-editor channel-maps FILE [--csv]   # Regenerate channel maps
    metadata-editor channel-maps FILE --from-csv MAPS.csv  # Replace maps with a CSV
    metadata-editor device-types                # List known probes
"""

import argparse
import logging
import sys
from pathlib import Path

from . import config
from .channel_maps import CHANNEL_MAP_KEY, ELECTRODE_GROUPS_KEY, generate_all_channel_maps
from .device_types import DEVICE_GEOMETRY
from .errors import ChannelMapCsvError, YamlParseError
from .export import export_channel_maps_csv, import_channel_maps_csv
from .validation import validate
from .yaml_io import decode, encode

logger = logging.getLogger(__name__)


def _read_document(path):
    """Return the decoded document, or None after printing why it could not be read."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        return None
    try:
        document = decode(text)
    except YamlParseError as e:
        print(f"Error: {path} is not valid YAML: {e}", file=sys.stderr)
        return None
    if not isinstance(document, dict):
        print(f"Error: {path} does not contain a mapping of fields", file=sys.stderr)
        return None
    return document


def _write(text, output):
    if output is None:
        sys.stdout.write(text)
        return
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    Path(output).write_text(text, encoding="utf-8")
    print(f"Wrote {output}")


def cmd_validate(args):
    """Validate a metadata file and list every issue."""
    document = _read_document(args.file)
    if document is None:
        return 1

    issues = validate(document)
    if not issues:
        print(f"{args.file}: OK")
        return 0

    print(f"{args.file}: {len(issues)} issue(s)")
    for issue in issues:
        print(f"  {issue.path or '(document)'}: {issue.message}")
    return 1


def cmd_format(args):
    """Rewrite a metadata file in canonical form."""
    document = _read_document(args.file)
    if document is None:
        return 1

    output = args.output
    if output is None and not args.stdout:
        output = config.OUTPUT_DIR / Path(args.file).name
    _write(encode(document), output)
    return 0


def cmd_channel_maps(args):
    """Regenerate channel maps from the electrode groups, or replace them with a CSV."""
    document = _read_document(args.file)
    if document is None:
        return 1

    groups = document.get(ELECTRODE_GROUPS_KEY) or []
    if args.from_csv:
        try:
            maps = import_channel_maps_csv(Path(args.from_csv).read_text(encoding="utf-8"))
        except OSError as e:
            print(f"Error: cannot read {args.from_csv}: {e}", file=sys.stderr)
            return 1
        except ChannelMapCsvError as e:
            print(f"Error: {args.from_csv}: {e}", file=sys.stderr)
            return 1
        logger.info(f"Read {len(maps)} channel map(s) from {args.from_csv}")
    else:
        maps = generate_all_channel_maps(groups)
        logger.info(f"Generated {len(maps)} channel map(s) for {len(groups)} electrode group(s)")

    if args.csv:
        _write(export_channel_maps_csv(maps, groups), args.output)
    else:
        document[CHANNEL_MAP_KEY] = maps
        _write(encode(document), args.output)
    return 0


def cmd_device_types(args):
    """List the probe types with known geometry."""
    width = max(len(name) for name in DEVICE_GEOMETRY)
    print(f"{'Device type':<{width}}  Shanks  Channels/shank")
    for name, geometry in DEVICE_GEOMETRY.items():
        print(f"{name:<{width}}  {geometry.shank_count:>6}  {geometry.channels_per_shank:>14}")
    return 0


def main(argv=None):
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="metadata-editor",
        description="Edit and check NWB session metadata YAML files",
    )
    parser.add_argument("--log-level", default=None, help=f"Logging level (default: {config.LOG_LEVEL})")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Validate a metadata file")
    validate_parser.add_argument("file", help="Metadata YAML file")
    validate_parser.set_defaults(func=cmd_validate)

    format_parser = subparsers.add_parser("format", help="Rewrite a metadata file in canonical form")
    format_parser.add_argument("file", help="Metadata YAML file")
    format_parser.add_argument("--output", "-o", help="Output file (default: same name in the output directory)")
    format_parser.add_argument("--stdout", action="store_true", help="Print instead of writing a file")
    format_parser.set_defaults(func=cmd_format)

    maps_parser = subparsers.add_parser("channel-maps", help="Regenerate or import channel maps")
    maps_parser.add_argument("file", help="Metadata YAML file")
    maps_parser.add_argument("--csv", action="store_true", help="Emit the channel maps as CSV")
    maps_parser.add_argument("--from-csv", metavar="CSV", help="Take the channel maps from a CSV file instead of regenerating them")
    maps_parser.add_argument("--output", "-o", help="Output file (default: stdout)")
    maps_parser.set_defaults(func=cmd_channel_maps)

    types_parser = subparsers.add_parser("device-types", help="List known device types")
    types_parser.set_defaults(func=cmd_device_types)

    args = parser.parse_args(argv)
    config.configure_logging(args.log_level)

    if args.command is None:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
