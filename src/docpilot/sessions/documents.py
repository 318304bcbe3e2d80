"""Document persistence: atomic, directory-tolerant reads and writes."""

import asyncio
import logging
import os
import re
import tempfile
from pathlib import Path

from docpilot.errors import PersistenceError

logger = logging.getLogger(__name__)


def slugify(title: str, max_length: int = 60) -> str:
    """Filesystem-safe slug for a document title."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:max_length].strip("-") or "document"


class DocumentWriter:
    """Reads and writes document bytes keyed by path."""

    encoding = "utf-8"

    async def read(self, path: str | Path) -> str:
        """Return the document text, or an empty string if it does not exist yet."""
        return await asyncio.to_thread(self._read_sync, Path(path))

    async def write(self, path: str | Path, content: str) -> None:
        """Replace the document atomically, creating parent directories."""
        await asyncio.to_thread(self._write_sync, Path(path), content)
        logger.debug("Wrote %d chars to %s", len(content), path)

    def exists(self, path: str | Path) -> bool:
        return Path(path).exists()

    def _read_sync(self, path: Path) -> str:
        try:
            with path.open("r", encoding=self.encoding) as fh:
                return fh.read()
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise PersistenceError(str(path), e) from e

    def _write_sync(self, path: Path, content: str) -> None:
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding=self.encoding,
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(str(path), e) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
