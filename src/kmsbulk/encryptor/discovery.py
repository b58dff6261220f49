"""Enumerate source files and ciphertext artifacts under a root directory."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _walk_regular_files(root: Path) -> list[Path]:
    files = []
    for path in root.rglob("*"):
        # Symlinks are neither followed nor encrypted
        if path.is_symlink() or not path.is_file():
            continue
        files.append(path)
    return sorted(files, key=lambda p: p.relative_to(root).as_posix())


def discover_files(root: Path, suffix: str) -> list[Path]:
    """Find every regular file under root that is not a ciphertext artifact.

    Args:
        root: Directory to scan recursively.
        suffix: Artifact suffix; files whose name ends with it are excluded.
            A file named exactly like the suffix is logged as skipped.

    Returns:
        Paths sorted by their root-relative POSIX path.
    """
    files = []
    for path in _walk_regular_files(root):
        if path.name == suffix:
            logger.warning(
                "Skipping %s: its name is the artifact suffix %r", path, suffix
            )
        elif not path.name.endswith(suffix):
            files.append(path)
    logger.debug("Discovered %d file(s) under %s", len(files), root)
    return files


def discover_artifacts(root: Path, suffix: str) -> list[Path]:
    """Find every ciphertext artifact under root.

    A file named exactly like the suffix is not an artifact of anything.

    Returns:
        Paths sorted by their root-relative POSIX path.
    """
    return [
        p
        for p in _walk_regular_files(root)
        if p.name.endswith(suffix) and len(p.name) > len(suffix)
    ]


def artifact_path_for(path: Path, suffix: str) -> Path:
    """<path><suffix>, e.g. inbox/1. -> inbox/1..encrypted."""
    return path.with_name(path.name + suffix)


def source_path_for(artifact: Path, suffix: str) -> Path:
    """Inverse of artifact_path_for.

    Raises:
        ValueError: If artifact does not end with suffix.
    """
    if not artifact.name.endswith(suffix) or len(artifact.name) <= len(suffix):
        raise ValueError(f"{artifact} does not end with {suffix!r}")
    return artifact.with_name(artifact.name[: -len(suffix)])
