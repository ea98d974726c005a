"""
Source Loader

Resolves a scenes document from wherever it lives and parses it into a
VideoDocument.

Supported sources:
    - data:application/json;base64,<payload>
    - data:application/json,<url-encoded payload>
    - http:// and https:// URLs (fetched with requests)
    - file:// URLs and plain filesystem paths
    - an already-parsed mapping (inline payload)

Every failure (unreachable, not JSON, wrong shape) surfaces as LoadError.
"""

import base64
import json
from pathlib import Path
from typing import Any, Mapping, Optional, Union
from urllib.parse import unquote, urlparse

import requests

from .config import get_settings
from .core.models import VideoDocument
from .exceptions import LoadError
from .logger import logger

Source = Union[str, Path, Mapping[str, Any]]


class SourceLoader:
    def __init__(self, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.timeout = timeout if timeout is not None else get_settings().loader.request_timeout
        self.session = session or requests.Session()

    def load(self, source: Source) -> VideoDocument:
        """Fetch, decode and validate a document."""
        if isinstance(source, Mapping):
            return VideoDocument.from_dict(dict(source))

        label = str(source)
        raw = self.read(source)
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise LoadError(f"Source is not valid JSON: {e}", source=label[:120]) from e
        document = VideoDocument.from_dict(data)
        logger.debug(f"Loaded {len(document.scenes)} scenes from {label[:80]}")
        return document

    def read(self, source: Union[str, Path]) -> str:
        """Raw document text for a URI or path."""
        if isinstance(source, Path):
            return self._read_file(source)

        text = source.strip()
        if text.startswith("data:"):
            return self._read_data_uri(text)

        parsed = urlparse(text)
        if parsed.scheme in ("http", "https"):
            return self._fetch(text)
        if parsed.scheme == "file":
            return self._read_file(Path(unquote(parsed.path)))
        return self._read_file(Path(text))

    def _read_data_uri(self, uri: str) -> str:
        header, sep, payload = uri.partition(",")
        if not sep:
            raise LoadError("Malformed data URI (missing ',')", source=uri[:120])
        if header.endswith(";base64"):
            try:
                return base64.b64decode(payload, validate=False).decode("utf-8")
            except (ValueError, UnicodeDecodeError) as e:
                raise LoadError(f"Invalid base64 payload: {e}", source=uri[:120]) from e
        return unquote(payload)

    def _fetch(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise LoadError(f"Could not fetch {url}: {e}", source=url) from e
        return response.text

    @staticmethod
    def _read_file(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise LoadError(f"Could not read {path}: {e}", source=str(path)) from e
