"""Zip archive extraction.

Extraction is blocking file I/O, so it runs in a worker thread to keep the
event loop free for sibling branch harvests.
"""

import asyncio
import logging
import zipfile
import zlib
from pathlib import Path

from harvester.errors import ExtractionError

logger = logging.getLogger(__name__)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def extract_zip(archive_path: Path, destination: Path) -> list[str]:
    """
    Expand *archive_path* into *destination*, preserving its directory layout.

    Args:
        archive_path: Zip file on disk
        destination: Directory to expand into (created if missing)

    Returns:
        Member names that were extracted

    Raises:
        ExtractionError: If the archive is malformed or a member would escape
            the destination directory
    """
    destination.mkdir(parents=True, exist_ok=True)
    root = destination.resolve()

    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = archive.namelist()
            for name in members:
                target = (root / name).resolve()
                if target != root and not _is_within(target, root):
                    raise ExtractionError(
                        f"Archive member escapes destination: {name}",
                        archive_path=str(archive_path),
                    )
            archive.extractall(root)
    except zipfile.BadZipFile as e:
        raise ExtractionError(
            f"Malformed archive {archive_path}: {e}", archive_path=str(archive_path)
        ) from e
    except (zlib.error, EOFError, NotImplementedError, RuntimeError) as e:
        # Damaged deflate stream, unsupported compression or encrypted member
        raise ExtractionError(
            f"Unreadable archive member in {archive_path}: {e}", archive_path=str(archive_path)
        ) from e

    return members


class ZipExtractor:
    """ArchiveExtractor backed by :mod:`zipfile`."""

    async def extract(self, archive_path: Path, destination: Path) -> list[str]:
        members = await asyncio.to_thread(extract_zip, archive_path, destination)
        logger.debug(f"Extracted {len(members)} entries from {archive_path} into {destination}")
        return members
