"""Template bundle - the application source every pool instance is built from.

The version tag is what tells current instances from outdated ones. By
default it is a content hash of the template directory, so editing the
template and restarting the worker rolls the pool over to the new version.
"""

import hashlib
import io
import tarfile
from functools import cached_property
from pathlib import Path

from editorpool.core.errors import TemplateNotFoundError

# Directory names never shipped to the platform
_IGNORED_DIRS = frozenset({".git", "__pycache__", "node_modules"})

VERSION_LENGTH = 12


class TemplateBundle:
    """Template directory plus its version tag.

    Args:
        path: Template directory
        version: Explicit version tag (content hash when None)
    """

    def __init__(self, path: Path | str, version: str | None = None) -> None:
        self.path = Path(path)
        self._version = version

    def __repr__(self) -> str:
        return f"TemplateBundle(path={str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.is_dir()

    def ensure_exists(self) -> None:
        """Raise TemplateNotFoundError if the template directory is missing."""
        if not self.exists():
            raise TemplateNotFoundError(str(self.path))

    def files(self) -> list[Path]:
        """Template files in stable order, relative to the template root."""
        self.ensure_exists()
        result = []
        for file in self.path.rglob("*"):
            rel = file.relative_to(self.path)
            if any(part in _IGNORED_DIRS for part in rel.parts):
                continue
            if file.is_file():
                result.append(rel)
        return sorted(result, key=lambda p: p.as_posix())

    @cached_property
    def version(self) -> str:
        """Version tag stamped on every instance built from this template."""
        if self._version:
            return self._version

        digest = hashlib.sha256()
        for rel in self.files():
            digest.update(rel.as_posix().encode())
            digest.update(b"\0")
            digest.update((self.path / rel).read_bytes())
            digest.update(b"\0")
        return digest.hexdigest()[:VERSION_LENGTH]

    def archive(self) -> bytes:
        """Gzipped tarball of the template, paths relative to its root."""
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tar:
            for rel in self.files():
                tar.add(self.path / rel, arcname=rel.as_posix())
        return buf.getvalue()
