"""
Structured-document reader.

Reads project files relative to a root directory and looks up fields in
JSON documents by dotted path (``bugs.url``). Parsed documents and file
contents are cached for the lifetime of the reader.
"""

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, Union

from .base import FILE_MISSING, NOT_FOUND, PARSE_ERROR, ProbeError, ProbeResult, capture

_MISSING = object()


def lookup(data: Any, field_path: str) -> Any:
    """
    Resolve a dotted field path inside parsed JSON.

    Integer segments index into lists. Raises ProbeError(not found) when
    any segment is absent.
    """
    current = data
    for segment in field_path.split("."):
        if isinstance(current, dict):
            current = current.get(segment, _MISSING)
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            current = _MISSING
        if current is _MISSING:
            raise ProbeError(NOT_FOUND, f"field {field_path!r}")
    return current


class DocumentReader:
    """Read-only access to the files of one project directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser()
        self._text_cache: Dict[str, str] = {}
        self._json_cache: Dict[str, Any] = {}

    def resolve(self, relative: str) -> Path:
        return self.root / relative

    def exists(self, relative: str) -> ProbeResult[bool]:
        return ProbeResult.of(self.resolve(relative).exists())

    def _read(self, relative: str) -> str:
        if relative in self._text_cache:
            return self._text_cache[relative]
        path = self.resolve(relative)
        if not path.is_file():
            raise ProbeError(FILE_MISSING, str(path))
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ProbeError(PARSE_ERROR, f"{path}: {e}") from e
        except OSError as e:
            raise ProbeError(FILE_MISSING, f"{path}: {e.strerror}") from e
        self._text_cache[relative] = content
        return content

    def _load_json(self, relative: str) -> Any:
        if relative not in self._json_cache:
            content = self._read(relative)
            try:
                self._json_cache[relative] = json.loads(content)
            except json.JSONDecodeError as e:
                raise ProbeError(PARSE_ERROR, f"{self.resolve(relative)}: {e}") from e
        return self._json_cache[relative]

    def read_text(self, relative: str) -> ProbeResult[str]:
        return capture(lambda: self._read(relative))

    def read_json(self, relative: str) -> ProbeResult[Any]:
        return capture(lambda: self._load_json(relative))

    def field(self, relative: str, field_path: str) -> ProbeResult[Any]:
        """Look up ``field_path`` in the JSON document at ``relative``."""
        return capture(lambda: lookup(self._load_json(relative), field_path))

    def fingerprint(self, relative: str) -> ProbeResult[str]:
        """SHA-256 of the file as it is on disk now, bypassing the cache."""

        def digest() -> str:
            path = self.resolve(relative)
            if not path.is_file():
                raise ProbeError(FILE_MISSING, str(path))
            return hashlib.sha256(path.read_bytes()).hexdigest()

        return capture(digest)

    def contains(self, relative: str, needle: str) -> ProbeResult[bool]:
        return capture(lambda: needle in self._read(relative))

    def has_line(self, relative: str, prefix: str) -> ProbeResult[bool]:
        """Whether any line of the document starts with ``prefix``."""
        return capture(
            lambda: any(line.startswith(prefix) for line in self._read(relative).splitlines())
        )
