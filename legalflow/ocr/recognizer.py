"""Text recognition boundary: scanned images and PDFs in, text out.

The pipeline only depends on :class:`TextRecognizer`; the Tesseract
implementation renders PDFs through pdf2image and reads images with
Pillow. Recognition confidence is reported, never acted on here.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pytesseract
from pdf2image import convert_from_path
from PIL import Image

from legalflow.utils.config import OCRConfig
from legalflow.utils.logger import get_logger

logger = get_logger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp"}
PDF_SUFFIXES = {".pdf"}
TEXT_SUFFIXES = {".txt"}
SUPPORTED_SUFFIXES = IMAGE_SUFFIXES | PDF_SUFFIXES | TEXT_SUFFIXES


@dataclass
class RecognizedText:
    """Text recovered from a document with its mean recognition confidence."""

    text: str
    confidence: float
    page_count: int = 1


class TextRecognizer(Protocol):
    def recognize(self, path: Path) -> RecognizedText: ...


class PlainTextLoader:
    """Reads already-digitised ``.txt`` files; confidence is always 1.0."""

    def recognize(self, path: Path) -> RecognizedText:
        text = Path(path).read_text(encoding="utf-8")
        return RecognizedText(text=text, confidence=1.0, page_count=1)


class TesseractRecognizer:
    """Tesseract-backed recognizer for images and PDFs.

    Args:
        config: OCR settings (binary path, languages, page segmentation
            mode, PDF rendering resolution).
    """

    def __init__(self, config: OCRConfig | None = None) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

    def recognize(self, path: Path) -> RecognizedText:
        """Recognize every page of a document.

        Args:
            path: Image or PDF file.

        Returns:
            Page texts joined with blank lines and the mean word confidence.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file type is not supported.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {path}")

        suffix = path.suffix.lower()
        if suffix in PDF_SUFFIXES:
            try:
                pages = convert_from_path(str(path), dpi=self.config.pdf_dpi)
            except Exception as exc:
                raise RuntimeError(f"PDF conversion failed: {exc}") from exc
            logger.info("Converted PDF to %d images at %d DPI", len(pages), self.config.pdf_dpi)
        elif suffix in IMAGE_SUFFIXES:
            pages = [Image.open(path)]
        else:
            raise ValueError(f"Unsupported file type: {suffix}")

        texts: list[str] = []
        confidences: list[float] = []
        for page in pages:
            text, confidence = self._recognize_page(page)
            texts.append(text.strip())
            confidences.append(confidence)

        mean = sum(confidences) / len(confidences) if confidences else 0.0
        return RecognizedText(text="\n\n".join(texts), confidence=mean, page_count=len(pages))

    def _recognize_page(self, image: Image.Image) -> tuple[str, float]:
        config = f"--psm {self.config.psm}"
        lang = self.config.default_lang
        text = pytesseract.image_to_string(image, lang=lang, config=config)
        data = pytesseract.image_to_data(
            image,
            lang=lang,
            config=config,
            output_type=pytesseract.Output.DICT,
        )

        scores = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"])
            if float(conf) > 0 and str(word).strip()
        ]
        confidence = sum(scores) / len(scores) / 100.0 if scores else 0.0
        logger.info("OCR extracted %d words with average confidence %.2f", len(scores), confidence)
        return text, confidence


def recognizer_for(path: Path, config: OCRConfig | None = None) -> TextRecognizer:
    """Pick the recognizer for a file by its extension."""
    if Path(path).suffix.lower() in TEXT_SUFFIXES:
        return PlainTextLoader()
    return TesseractRecognizer(config)
