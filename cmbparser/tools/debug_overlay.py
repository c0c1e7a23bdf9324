"""
Debug overlay tool for visual QA of PDF parsing.
"""
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging
from PIL import Image, ImageDraw, ImageFont
import fitz  # PyMuPDF

from ..core.detectors import HEADER_KEYWORDS
from ..core.loader import Fragment, PDFLoader
from ..core.runner import StatementParser
from ..models.schema import ReferencePeriod

logger = logging.getLogger(__name__)

BLOCK_COLOUR = (0, 200, 0, 160)
ANCHOR_COLOUR = (255, 0, 0, 220)
ORIGINAL_AMOUNT_COLOUR = (0, 120, 255, 200)
HEADER_COLOUR = (230, 180, 0, 220)
ZOOM = 2.0


def _font(size: int):
    try:
        return ImageFont.truetype("arial.ttf", size)
    except OSError:
        return ImageFont.load_default()


class DebugOverlay:
    """Draws the recognized transaction blocks on top of the rendered pages."""

    def __init__(self, pdf_path: Path, default_period: Optional[ReferencePeriod] = None):
        self.pdf_path = pdf_path
        self.loader = PDFLoader(pdf_path)
        try:
            self.pages = self.loader.load()
            self.fragments = self.loader.fragments()

            parser = StatementParser(default_period)
            self.blocks = list(parser.scan([f.text for f in self.fragments]))
            logger.info(f"Found {len(self.blocks)} transaction blocks")

            # Load PDF with PyMuPDF for rendering
            self.pdf_doc = fitz.open(str(pdf_path))
        except Exception:
            self.loader.close()
            raise

    def _roles(self) -> Dict[int, Tuple[str, int]]:
        """Fragment index -> (role, transaction number)."""
        roles = {}
        for block in self.blocks:
            number = block.transaction.original_index
            for index in range(block.start, block.end + 1):
                roles[index] = ('block', number)
            roles[block.anchor] = ('anchor', number)
            if block.end > block.anchor:
                roles[block.end] = ('original_amount', number)
        return roles

    def page_roles(self) -> Dict[int, Dict[int, Tuple[str, int]]]:
        """Page number -> {fragment index within the page: (role, transaction number)}."""
        roles = self._roles()
        by_page = {}

        offset = 0
        for page_data in self.pages:
            by_page[page_data.page_num] = {
                i: roles[offset + i]
                for i in range(len(page_data.fragments))
                if offset + i in roles
            }
            offset += len(page_data.fragments)
        return by_page

    def create_overlays(self, output_dir: Path) -> List[Path]:
        """
        Create debug overlay images for all pages.

        Args:
            output_dir: Directory to save overlay images

        Returns:
            Paths of the images written
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        by_page = self.page_roles()
        written = []

        for page_data in self.pages:
            page_num = page_data.page_num
            pdf_page = self.pdf_doc[page_num - 1]
            pix = pdf_page.get_pixmap(matrix=fitz.Matrix(ZOOM, ZOOM))
            img = Image.frombytes("RGB", [pix.width, pix.height], pix.samples)

            overlay = self._create_page_overlay(page_data, by_page[page_num], img.size)
            combined = Image.alpha_composite(img.convert("RGBA"), overlay)

            output_path = output_dir / f"page_{page_num:02d}_overlay.png"
            combined.save(output_path)
            written.append(output_path)
            logger.info(f"Created overlay: {output_path}")

        return written

    def _create_page_overlay(self, page_data, page_roles: Dict[int, Tuple[str, int]],
                             img_size: Tuple[int, int]) -> Image.Image:
        overlay = Image.new("RGBA", img_size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)

        scale_x = img_size[0] / page_data.width
        scale_y = img_size[1] / page_data.height

        for i, fragment in enumerate(page_data.fragments):
            if i in page_roles:
                role, number = page_roles[i]
                self._draw_block_fragment(draw, fragment, role, number, scale_x, scale_y)
            elif any(keyword in fragment.text for keyword in HEADER_KEYWORDS):
                self._draw_box(draw, fragment, HEADER_COLOUR, 2, scale_x, scale_y)

        return overlay

    def _draw_box(self, draw: ImageDraw.ImageDraw, fragment: Fragment, colour, width: int,
                  scale_x: float, scale_y: float) -> Tuple[int, int]:
        x0 = int(fragment.x0 * scale_x)
        y0 = int(fragment.top * scale_y)
        x1 = int(fragment.x1 * scale_x)
        y1 = int(fragment.bottom * scale_y)
        draw.rectangle([x0, y0, x1, y1], outline=colour, width=width)
        return x0, y0

    def _draw_block_fragment(self, draw: ImageDraw.ImageDraw, fragment: Fragment, role: str,
                             number: int, scale_x: float, scale_y: float):
        if role == 'anchor':
            x0, y0 = self._draw_box(draw, fragment, ANCHOR_COLOUR, 3, scale_x, scale_y)
            draw.text((x0, y0 - 14), f"#{number}", fill=ANCHOR_COLOUR, font=_font(12))
        elif role == 'original_amount':
            self._draw_box(draw, fragment, ORIGINAL_AMOUNT_COLOUR, 2, scale_x, scale_y)
        else:
            self._draw_box(draw, fragment, BLOCK_COLOUR, 1, scale_x, scale_y)

    def close(self):
        """Close resources."""
        self.loader.close()
        self.pdf_doc.close()


def create_debug_overlay(pdf_path: Path, output_dir: Path,
                         default_period: Optional[ReferencePeriod] = None) -> List[Path]:
    """
    Create debug overlay images for a PDF.

    Args:
        pdf_path: Path to PDF file
        output_dir: Directory to save overlay images
        default_period: Period to assume when the statement prints none

    Returns:
        Paths of the images written
    """
    overlay = DebugOverlay(pdf_path, default_period)
    try:
        return overlay.create_overlays(output_dir)
    finally:
        overlay.close()
