"""
PDF loading and text fragment extraction using pdfplumber.
"""
import pdfplumber
from pathlib import Path
from typing import List, Optional
import logging

from .normalize import normalize_text

logger = logging.getLogger(__name__)

LIGATURES = {
    'ﬁ': 'fi',
    'ﬂ': 'fl',
    'ﬀ': 'ff',
    'ﬃ': 'ffi',
    'ﬄ': 'ffl',
    'ﬆ': 'st',
    'ﬅ': 'st'
}


class Fragment:
    """A text run with its page position."""
    def __init__(self, text: str, page_num: int, x0: float, top: float, x1: float, bottom: float):
        self.text = text
        self.page_num = page_num
        self.x0 = x0
        self.top = top
        self.x1 = x1
        self.bottom = bottom

    def __repr__(self):
        return f"Fragment('{self.text}', page={self.page_num}, x0={self.x0:.1f}, top={self.top:.1f})"


class PageFragments:
    """Fragments of one page, in reading order."""
    def __init__(self, page_num: int, width: float, height: float, fragments: List[Fragment]):
        self.page_num = page_num
        self.width = width
        self.height = height
        self.fragments = fragments

    @property
    def texts(self) -> List[str]:
        return [fragment.text for fragment in self.fragments]


class PDFLoader:
    """Handles PDF loading and fragment extraction."""

    def __init__(self, pdf_path: Path):
        self.pdf_path = pdf_path
        self._pdf = None
        self._pages = []

    def load(self) -> List[PageFragments]:
        """Load PDF and extract fragments from all pages."""
        if self._pages:
            return self._pages

        try:
            self._pdf = pdfplumber.open(self.pdf_path)
            logger.info(f"Loaded PDF with {len(self._pdf.pages)} pages")

            for i, page in enumerate(self._pdf.pages, 1):
                # Keep blanks so a multi-word description stays one run
                words_data = page.extract_words(
                    x_tolerance=1.5,
                    y_tolerance=2,
                    keep_blank_chars=True,
                    use_text_flow=True
                )

                fragments = []
                for word_data in words_data:
                    text = self._normalize_text(word_data.get('text', ''))
                    if text:
                        fragments.append(Fragment(
                            text=text,
                            page_num=i,
                            x0=word_data.get('x0', 0),
                            top=word_data.get('top', 0),
                            x1=word_data.get('x1', 0),
                            bottom=word_data.get('bottom', 0)
                        ))

                self._pages.append(PageFragments(
                    page_num=i,
                    width=page.width,
                    height=page.height,
                    fragments=fragments
                ))
                logger.debug(f"Page {i}: {len(fragments)} fragments extracted")

            return self._pages

        except Exception as e:
            logger.error(f"Error loading PDF: {e}")
            raise

    def _normalize_text(self, text: str) -> str:
        """Normalize text by handling ligatures and multiple spaces."""
        for ligature, replacement in LIGATURES.items():
            text = text.replace(ligature, replacement)
        return normalize_text(text)

    def fragments(self) -> List[Fragment]:
        """All fragments, pages concatenated in page order."""
        return [fragment for page in self.load() for fragment in page.fragments]

    def texts(self) -> List[str]:
        return [fragment.text for fragment in self.fragments()]

    def get_page(self, page_num: int) -> Optional[PageFragments]:
        """Get a specific page by number (1-indexed)."""
        if not self._pages:
            self.load()

        if 1 <= page_num <= len(self._pages):
            return self._pages[page_num - 1]
        return None

    def close(self):
        """Close the PDF file."""
        if self._pdf:
            self._pdf.close()
            self._pdf = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def load_fragments(pdf_path: Path) -> List[str]:
    """
    Extract the text fragments of a PDF in reading order.

    Args:
        pdf_path: Path to PDF file

    Returns:
        Trimmed, non-empty fragments of every page
    """
    with PDFLoader(pdf_path) as loader:
        return loader.texts()
