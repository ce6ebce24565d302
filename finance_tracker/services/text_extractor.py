"""Text extraction for uploaded statements.

PDF documents go through ``pdftotext`` (poppler-utils) and images through Tesseract OCR via pytesseract. The blob is
downloaded from its storage URL into a temporary file that is removed again whatever the outcome. Every failure is
reported as a single ExtractionError; there is no retry.
"""

import contextlib
import os
import subprocess
import tempfile
from pathlib import Path

import pytesseract
import requests
from PIL import Image

from finance_tracker.core.exceptions import ExtractionError
from finance_tracker.core.models import FileKind
from finance_tracker.core.settings import Settings
from finance_tracker.core.utils import get_logger

logger = get_logger("finance-tracker.extractor")


def _remove_quietly(*paths: Path | None) -> None:
    for path in paths:
        if path is not None:
            with contextlib.suppress(OSError):
                path.unlink(missing_ok=True)


class TextExtractor:
    """Turns a stored statement into a plain-text transcript."""

    def __init__(self, settings: Settings, http: requests.Session | None = None) -> None:
        """Initialize the extractor with settings and an optional HTTP session."""
        self.settings = settings
        self.http = http or requests.Session()

    def extract(self, address: str, kind: FileKind) -> str:
        """Return the transcript of the blob at ``address``."""
        if kind == FileKind.DOCUMENT:
            return self.extract_document(address)
        return self.extract_image(address)

    def _download(self, address: str, suffix: str) -> Path:
        response = self.http.get(address, timeout=self.settings.extraction_timeout_seconds)
        response.raise_for_status()
        fd, name = tempfile.mkstemp(prefix="statement-", suffix=suffix)
        with os.fdopen(fd, "wb") as fh:
            fh.write(response.content)
        return Path(name)

    def extract_document(self, address: str) -> str:
        """Extract the text layer of a PDF with pdftotext."""
        pdf_path: Path | None = None
        txt_path: Path | None = None
        try:
            pdf_path = self._download(address, ".pdf")
            txt_path = pdf_path.with_suffix(".txt")
            subprocess.run(  # noqa: S603
                [self.settings.pdftotext_cmd, str(pdf_path), str(txt_path)],
                check=True,
                capture_output=True,
                timeout=self.settings.extraction_timeout_seconds,
            )
            text = txt_path.read_text(encoding="utf-8", errors="replace").strip()
        except Exception as exc:
            detail = str(exc)
            if isinstance(exc, subprocess.CalledProcessError) and exc.stderr:
                detail = f"{detail}: {exc.stderr.decode('utf-8', errors='replace').strip()}"
            msg = f"Failed to extract text from PDF: {detail}"
            logger.exception(msg)
            raise ExtractionError(msg) from exc
        finally:
            _remove_quietly(pdf_path, txt_path)
        logger.info(f"Extracted {len(text)} characters from PDF")
        return text

    def extract_image(self, address: str) -> str:
        """Run OCR over a statement screenshot."""
        image_path: Path | None = None
        suffix = Path(address.split("?", 1)[0]).suffix or ".jpg"
        try:
            image_path = self._download(address, suffix)
            with Image.open(image_path) as image:
                text = pytesseract.image_to_string(
                    image,
                    lang=self.settings.ocr_languages,
                    timeout=self.settings.extraction_timeout_seconds,
                ).strip()
        except Exception as exc:
            msg = f"Failed to extract text from image: {exc}"
            logger.exception(msg)
            raise ExtractionError(msg) from exc
        finally:
            _remove_quietly(image_path)
        logger.info(f"OCR produced {len(text)} characters")
        return text
