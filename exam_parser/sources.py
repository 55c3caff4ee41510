"""
Text Sources
============
Pluggable acquisition of raw exam text. Every source answers the same
question: "given an identifier, produce the document's plain text".

    - PlainTextSource: UTF-8 text files
    - PdfFileSource:   local PDFs, text extracted page by page with PyMuPDF
    - UrlPdfSource:    PDFs fetched over HTTP(S), optionally cached on disk

The parsing core never touches these; it only receives the returned string.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import fitz  # PyMuPDF
import requests

from .exceptions import SourceError, UnsupportedSourceError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

TEXT_SUFFIXES = {".txt", ".text", ".md"}


class TextSource(ABC):
    """Produces plain text for a source identifier."""

    kind = "text"

    @abstractmethod
    def can_read(self, identifier: str) -> bool:
        ...

    @abstractmethod
    def read(
        self,
        identifier: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        ...

    def page_count(self, identifier: str) -> Optional[int]:
        return None


class PlainTextSource(TextSource):
    kind = "text"

    def can_read(self, identifier: str) -> bool:
        return Path(identifier).suffix.lower() in TEXT_SUFFIXES

    def read(self, identifier, progress_callback=None):
        path = Path(identifier)
        if not path.exists():
            raise FileNotFoundError(f"Text file not found: {identifier}")
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceError(f"Cannot read {identifier}: {e}") from e
        if progress_callback:
            progress_callback(1, 1)
        return text


class PdfFileSource(TextSource):
    """
    Extracts plain text from a local PDF.

    Args:
        page_range: Optional (start, end) 1-indexed inclusive page range.
    """

    kind = "pdf"

    def __init__(self, page_range: Optional[tuple[int, int]] = None):
        self.page_range = page_range
        self._page_count: Optional[int] = None

    def can_read(self, identifier: str) -> bool:
        return (
            not _is_url(identifier)
            and Path(identifier).suffix.lower() == ".pdf"
        )

    def read(self, identifier, progress_callback=None):
        if not os.path.exists(identifier):
            raise FileNotFoundError(f"PDF not found: {identifier}")
        try:
            doc = fitz.open(identifier)
        except Exception as e:
            raise SourceError(f"Cannot open PDF {identifier}: {e}") from e

        with doc:
            return self._extract(doc, identifier, progress_callback)

    def page_count(self, identifier: str) -> Optional[int]:
        return self._page_count

    def _extract(self, doc, identifier: str, progress_callback) -> str:
        total_pages = doc.page_count
        self._page_count = total_pages

        start_page = 1
        end_page = total_pages
        if self.page_range:
            start_page = max(1, self.page_range[0])
            end_page = min(total_pages, self.page_range[1])

        logger.info(
            f"Extracting text from {identifier} "
            f"(pages {start_page} to {end_page})"
        )

        pages: list[str] = []
        for page_idx in range(start_page - 1, end_page):
            pages.append(doc[page_idx].get_text("text"))
            if progress_callback:
                progress_callback(
                    page_idx - start_page + 2, end_page - start_page + 1
                )

        return "\n".join(pages)


class UrlPdfSource(PdfFileSource):
    """
    Downloads a PDF over HTTP(S) and extracts its text.

    If ``cache_path`` is given and already exists, the cached copy is parsed
    instead of downloading again; otherwise the download is saved there.
    """

    kind = "url"

    def __init__(
        self,
        page_range: Optional[tuple[int, int]] = None,
        cache_path: Optional[str] = None,
        timeout: float = 60,
    ):
        super().__init__(page_range=page_range)
        self.cache_path = cache_path
        self.timeout = timeout

    def can_read(self, identifier: str) -> bool:
        return _is_url(identifier)

    def read(self, identifier, progress_callback=None):
        if self.cache_path and Path(self.cache_path).exists():
            logger.info(f"Using cached PDF: {self.cache_path}")
            return super().read(self.cache_path, progress_callback)

        data = self.download(identifier)

        if self.cache_path:
            cache = Path(self.cache_path)
            cache.parent.mkdir(parents=True, exist_ok=True)
            cache.write_bytes(data)
            logger.info(f"Saved downloaded PDF: {cache}")

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise SourceError(f"Downloaded file is not a PDF: {e}") from e

        with doc:
            return self._extract(doc, identifier, progress_callback)

    def download(self, url: str) -> bytes:
        logger.info(f"Downloading PDF from {url}...")
        try:
            resp = requests.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SourceError(f"Download failed for {url}: {e}") from e

        logger.info(f"Downloaded {len(resp.content)} bytes")
        return resp.content


def _is_url(identifier: str) -> bool:
    return identifier.lower().startswith(("http://", "https://"))


def resolve_source(
    identifier: str,
    page_range: Optional[tuple[int, int]] = None,
    cache_path: Optional[str] = None,
    timeout: float = 60,
) -> TextSource:
    """Pick the first source able to read ``identifier``."""
    candidates: list[TextSource] = [
        UrlPdfSource(page_range=page_range, cache_path=cache_path, timeout=timeout),
        PdfFileSource(page_range=page_range),
        PlainTextSource(),
    ]
    for source in candidates:
        if source.can_read(identifier):
            return source
    raise UnsupportedSourceError(
        f"No text source can read '{identifier}' "
        f"(expected a .pdf/.txt path or an http(s) URL)"
    )
