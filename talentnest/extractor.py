"""Download resumes and extract plain text.

Supports PDF (via pypdf) and DOCX (via stdlib zipfile). The file extension
of the resume URL, or of the original upload name when the URL has none,
selects the decoder.
"""
from __future__ import annotations

import io
import re
import zipfile
from pathlib import PurePosixPath
from typing import Callable
from urllib.parse import unquote, urlparse
from xml.etree import ElementTree

import requests
from pypdf import PdfReader

from talentnest.config import PipelineConfig
from talentnest.errors import ExtractionFailed, UnsupportedFormat
from talentnest.log import get_logger
from talentnest.retry import RetryPolicy, call_with_retry

log = get_logger(__name__)

_CHUNK_SIZE = 64 * 1024

# ── Format detection ─────────────────────────────────────────────────────


def resume_extension(resume_url: str, original_name: str | None = None) -> str:
    """Lowercased extension of the URL path, ignoring query and fragment."""
    path = unquote(urlparse(resume_url).path)
    suffix = PurePosixPath(path).suffix.lower()
    if not suffix and original_name:
        suffix = PurePosixPath(original_name).suffix.lower()
    return suffix


# ── Decoders ─────────────────────────────────────────────────────────────


def _fix_spacing(text: str) -> str:
    """Re-insert spaces when PDF extraction merges words together.

    Detects the problem by checking if the space-to-character ratio is
    abnormally low, then applies heuristic space insertion.
    """
    if not text or len(text) < 50:
        return text
    space_ratio = text.count(" ") / len(text)
    if space_ratio > 0.08:
        return text

    log.debug("Low space ratio (%.2f%%) — applying spacing fix", space_ratio * 100)
    fixed = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    fixed = re.sub(r"([a-zA-Z])(\d)", r"\1 \2", fixed)
    fixed = re.sub(r"(\d)([a-zA-Z])", r"\1 \2", fixed)
    fixed = re.sub(r"([.!?,;:])([A-Za-z])", r"\1 \2", fixed)
    return fixed


def pdf_to_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    pages: list[str] = []
    for page in reader.pages:
        pages.append(_fix_spacing(page.extract_text() or ""))
    return "\n".join(pages)


def docx_to_text(data: bytes) -> str:
    """Paragraph text of ``word/document.xml``."""
    ns = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
    texts: list[str] = []
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        with zf.open("word/document.xml") as f:
            tree = ElementTree.parse(f)
            for para in tree.iter(f"{ns}p"):
                parts = [node.text for node in para.iter(f"{ns}t") if node.text]
                if parts:
                    texts.append("".join(parts))
    return "\n".join(texts)


_DECODERS: dict[str, Callable[[bytes], str]] = {
    ".pdf": pdf_to_text,
    ".docx": docx_to_text,
}


# ── Public API ───────────────────────────────────────────────────────────


class ResumeExtractor:
    """Fetches resume files over HTTP and decodes them to text."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.session = session or requests.Session()
        self.retry_policy = RetryPolicy(
            max_attempts=self.config.retry_attempts,
            base_delay=self.config.retry_base_delay,
        )

    def _get(self, resume_url: str) -> bytes:
        """Stream the body, giving up as soon as it passes the size cap."""
        cap = self.config.max_resume_bytes
        with self.session.get(resume_url, timeout=self.config.request_timeout, stream=True) as r:
            r.raise_for_status()
            declared = r.headers.get("Content-Length", "")
            if declared.isdigit() and int(declared) > cap:
                raise ExtractionFailed(resume_url, f"file is {declared} bytes, limit is {cap}")
            data = bytearray()
            for chunk in r.iter_content(chunk_size=_CHUNK_SIZE):
                data.extend(chunk)
                if len(data) > cap:
                    raise ExtractionFailed(resume_url, f"file exceeds the {cap} byte limit")
        return bytes(data)

    def download(self, resume_url: str) -> bytes:
        try:
            data = call_with_retry(
                self._get,
                resume_url,
                policy=self.retry_policy,
                retryable=(requests.ConnectionError, requests.Timeout),
            )
        except requests.RequestException as exc:
            raise ExtractionFailed(resume_url, f"download failed ({exc})") from exc
        return data

    def extract_text(self, resume_url: str, original_name: str | None = None) -> str:
        """Return plain text of the resume at *resume_url*.

        Raises ``UnsupportedFormat`` before any download when the extension
        has no decoder, and ``ExtractionFailed`` for network or decode errors.
        """
        suffix = resume_extension(resume_url, original_name)
        decoder = _DECODERS.get(suffix)
        if decoder is None:
            raise UnsupportedFormat(resume_url, suffix)

        data = self.download(resume_url)
        try:
            text = decoder(data)
        except Exception as exc:
            raise ExtractionFailed(resume_url, f"could not decode {suffix} ({exc})") from exc

        text = text.strip()
        if not text:
            raise ExtractionFailed(resume_url, "document contains no text")
        log.debug("Extracted %d chars from %s", len(text), resume_url)
        return text
