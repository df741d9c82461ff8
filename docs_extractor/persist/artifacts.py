"""
Generated markdown documents on disk.

Each finished extraction is saved as one ``.md`` file; the API lists and
serves them by file name.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class ArtifactNotFoundError(LookupError):
    """No readable artifact with the requested name."""


@dataclass
class Artifact:
    """A generated document."""

    name: str
    path: str

    def to_dict(self) -> dict:
        return asdict(self)


def artifact_filename(now: Optional[datetime] = None) -> str:
    """
    File name for a document generated at ``now``.

    Example:
        >>> artifact_filename(datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc))
        'extraction-2025-01-02T03-04-05-678Z.md'
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    return "extraction-" + stamp.replace(":", "-").replace(".", "-") + ".md"


class ArtifactStore:
    """Directory of generated markdown documents."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def save(self, markdown: str, now: Optional[datetime] = None) -> str:
        """
        Write a document and return its file name.

        The directory is created on first save. An existing file is never
        replaced: a name already taken gets a ``-1``, ``-2``, ... suffix.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        base = artifact_filename(now)
        stem = base[: -len(".md")]

        name = base
        attempt = 0
        while True:
            try:
                with open(self.root / name, "x", encoding="utf-8") as f:
                    f.write(markdown)
                break
            except FileExistsError:
                attempt += 1
                name = f"{stem}-{attempt}.md"

        logger.info(f"Saved generated document {name}")
        return name

    def list(self) -> List[Artifact]:
        """All ``.md`` documents sorted by name; empty if the directory is missing."""
        if not self.root.is_dir():
            return []

        return [
            Artifact(name=p.name, path=_display_path(p))
            for p in sorted(self.root.iterdir())
            if p.is_file() and p.suffix == ".md"
        ]

    def read(self, name: str) -> str:
        """
        Read a document by file name.

        Bytes that are not valid UTF-8 are replaced with U+FFFD.

        Raises:
            ArtifactNotFoundError: for unknown names or names that are not a
                plain ``.md`` file inside the directory
        """
        if not _is_safe_name(name):
            raise ArtifactNotFoundError(name)

        path = self.root / name
        if not path.is_file():
            raise ArtifactNotFoundError(name)

        return path.read_text(encoding="utf-8", errors="replace")


def _display_path(path: Path) -> str:
    # Relative roots keep the "./generated-docs/<name>" form
    if path.is_absolute() or path.parts[0] == "..":
        return path.as_posix()
    return f"./{path.as_posix()}"


def _is_safe_name(name: str) -> bool:
    return (
        bool(name)
        and name.endswith(".md")
        and "/" not in name
        and "\\" not in name
        and name not in (".", "..")
        and not name.startswith(".")
    )
