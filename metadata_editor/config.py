"""Runtime configuration, read from the environment once at import."""

import logging
import os
from pathlib import Path

PACKAGE_DIR = Path(__file__).parent
DATA_DIR = PACKAGE_DIR / "data"

# JSON Schema shared with the trodes_to_nwb conversion pipeline
DEFAULT_SCHEMA_PATH = DATA_DIR / "nwb_schema.json"
SCHEMA_PATH = Path(os.environ.get("METADATA_EDITOR_SCHEMA", str(DEFAULT_SCHEMA_PATH)))

LOG_LEVEL = os.environ.get("METADATA_EDITOR_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Where the CLI writes formatted YAML when no output path is given
OUTPUT_DIR = Path(os.environ.get("METADATA_EDITOR_OUTPUT_DIR", os.getcwd()))


def configure_logging(level: str | None = None) -> None:
    """Install a basic root handler. Library modules never call this."""
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
