"""
Build metadata persistence — read/write data/build.db.

The file is line-oriented key/value text so that it can be read
before any third-party module has been built:

    # written by distbuild
    platform "Debian6"
    perl "5.10.1"
    arch "x86_64-linux"
    dbplatforms MySQL,SQLite
    dev "0"

Comment lines start with ``#``; unrecognised lines are ignored.
Writes are atomic (write to temp file, then rename).
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path

from distbuild.core.models.metadata import BuildMetadata

logger = logging.getLogger(__name__)

# Default metadata path (relative to the distribution root)
DEFAULT_METADATA_FILE = "data/build.db"

_DIRECTIVE = re.compile(
    r"""^\s*(platform|perl|arch|dbplatforms|dev)\s+["']?([^"']+)["']?""",
    re.IGNORECASE,
)


def default_metadata_path(root: Path) -> Path:
    """Get the default build metadata path for a distribution root."""
    return root / DEFAULT_METADATA_FILE


def parse_build_metadata(text: str) -> BuildMetadata:
    """Parse build.db content into a BuildMetadata record."""
    fields: dict = {}
    for line in text.splitlines():
        if re.match(r"^\s*#", line):
            continue
        match = _DIRECTIVE.match(line)
        if not match:
            continue
        key = match.group(1).lower()
        value = match.group(2).strip()
        if key == "platform":
            fields["platform"] = value
        elif key == "perl":
            fields["runtime_version"] = value
        elif key == "arch":
            fields["architecture"] = value
        elif key == "dbplatforms":
            fields["db_platforms"] = [p.strip() for p in re.split(r",\s*", value)]
        elif key == "dev":
            fields["dev"] = value not in ("0", "")
    return BuildMetadata.model_validate(fields)


def load_build_metadata(path: Path) -> BuildMetadata | None:
    """Load build metadata, or None if the distribution was never built."""
    if not path.is_file():
        logger.debug("No build metadata at %s", path)
        return None

    raw = path.read_text(encoding="utf-8")
    metadata = parse_build_metadata(raw)
    logger.debug(
        "Loaded build metadata from %s (platform=%s, perl=%s)",
        path, metadata.platform, metadata.runtime_version,
    )
    return metadata


def format_build_metadata(metadata: BuildMetadata) -> str:
    """Render a BuildMetadata record in build.db syntax."""
    lines = ["# build metadata written by distbuild; do not edit"]
    if metadata.platform:
        lines.append(f'platform "{metadata.platform}"')
    if metadata.runtime_version:
        lines.append(f'perl "{metadata.runtime_version}"')
    if metadata.architecture:
        lines.append(f'arch "{metadata.architecture}"')
    if metadata.db_platforms:
        lines.append(f"dbplatforms {','.join(metadata.db_platforms)}")
    lines.append(f'dev "{1 if metadata.dev else 0}"')
    return "\n".join(lines) + "\n"


def save_build_metadata(metadata: BuildMetadata, path: Path) -> None:
    """Save build metadata (atomic write).

    Args:
        metadata: The record to save.
        path: Target path, usually ``<root>/data/build.db``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = format_build_metadata(metadata)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".build_", suffix=".tmp")
    os.close(fd)
    tmp = Path(tmp_path)
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.rename(path)
        logger.debug("Build metadata saved to %s", path)
    except Exception as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save build metadata to %s: %s", path, e)
        raise
