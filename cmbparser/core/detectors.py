"""
Column header detection and statement template detection.
"""
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Sequence
from rapidfuzz import fuzz
import logging

from .loader import load_fragments

logger = logging.getLogger(__name__)

# Column labels as printed on the statement, in column order
HEADER_KEYWORDS = [
    '交易日',
    '记账日',
    '交易摘要',
    '人民币金额',
    '卡号末四位',
    '交易地金额',
]

DEFAULT_HEADERS = [
    'Transaction Date',
    'Post Date',
    'Description',
    'Amount (RMB)',
    'Card #',
    'Original Amount',
]


def detect_headers(fragments: Sequence[str]) -> List[str]:
    """
    Resolve the column headers of a statement.

    Every keyword has to occur inside some fragment; a partial set
    falls back to the defaults.

    Args:
        fragments: Fragment sequence

    Returns:
        List of 6 header labels
    """
    found = [
        keyword for keyword in HEADER_KEYWORDS
        if any(keyword in fragment for fragment in fragments)
    ]
    if len(found) == len(HEADER_KEYWORDS):
        return list(found)

    logger.debug(f"Found {len(found)}/{len(HEADER_KEYWORDS)} header keywords, using defaults")
    return list(DEFAULT_HEADERS)


class TemplateDetector:
    """Detects which template matches a statement."""

    def __init__(self, templates_dir: Path = None):
        self.templates_dir = templates_dir or Path(__file__).parent.parent / "templates"
        self.templates = {}
        self._load_templates()

    def _load_templates(self):
        """Load all available templates."""
        if not self.templates_dir.exists():
            logger.warning(f"Templates directory not found: {self.templates_dir}")
            return

        for yaml_file in sorted(self.templates_dir.glob("*.yaml")):
            try:
                with open(yaml_file, 'r', encoding='utf-8') as f:
                    template_data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Error loading template {yaml_file}: {e}")
                continue

            template_id = (template_data or {}).get('template_id')
            if template_id:
                self.templates[template_id] = template_data
                logger.debug(f"Loaded template: {template_id}")

    def detect_fragments(self, fragments: Sequence[str]) -> Optional[str]:
        """
        Detect which template matches a fragment sequence.

        Args:
            fragments: Fragment sequence of a whole statement

        Returns:
            Template ID if found, None otherwise
        """
        for template_id, template_config in self.templates.items():
            if self._matches_template(fragments, template_config):
                logger.info(f"Statement matches template: {template_id}")
                return template_id

        logger.warning("No matching template found")
        return None

    def detect_template(self, pdf_path: Path) -> Optional[str]:
        """
        Detect which template matches the PDF.

        Args:
            pdf_path: Path to PDF file

        Returns:
            Template ID if found, None otherwise
        """
        fragments = load_fragments(pdf_path)
        if not fragments:
            logger.error("No text found in PDF")
            return None
        return self.detect_fragments(fragments)

    def _matches_template(self, fragments: Sequence[str], template_config: Dict[str, Any]) -> bool:
        """
        Check if fragments contain every anchor of a template.

        Args:
            fragments: Fragment sequence
            template_config: Template configuration

        Returns:
            True if template matches, False otherwise
        """
        page_match = template_config.get('page_match', {})
        must_contain = page_match.get('must_contain', [])
        fuzzy_threshold = page_match.get('fuzzy_threshold', 85)

        if not must_contain:
            logger.warning("Template has no 'must_contain' requirements")
            return False

        found = [
            anchor for anchor in must_contain
            if find_anchor(fragments, anchor, fuzzy_threshold) is not None
        ]
        logger.debug(f"Template {template_config.get('template_id')}: "
                     f"found {len(found)}/{len(must_contain)} required anchors")
        return len(found) == len(must_contain)

    def get_template(self, template_id: str) -> Optional[Dict[str, Any]]:
        """Get template configuration by ID."""
        return self.templates.get(template_id)

    def list_templates(self) -> List[str]:
        """List all available template IDs."""
        return list(self.templates.keys())


def find_anchor(fragments: Sequence[str], target: str, fuzzy_threshold: float = 85) -> Optional[str]:
    """
    Find the fragment that best matches target.

    Args:
        fragments: Fragments to search through
        target: Target text to find
        fuzzy_threshold: Minimum confidence score (0-100)

    Returns:
        Best matching fragment, None if nothing reaches the threshold
    """
    best_match = None
    best_confidence = 0

    for fragment in fragments:
        if fragment.lower() == target.lower():
            return fragment

        # partial_ratio scores any short fragment inside the target as a hit
        scorer = fuzz.partial_ratio if len(fragment) >= len(target) else fuzz.ratio
        confidence = scorer(fragment.lower(), target.lower())
        if confidence > best_confidence and confidence >= fuzzy_threshold:
            best_confidence = confidence
            best_match = fragment

    return best_match


def detect_template(pdf_path: Path) -> Optional[str]:
    """
    Convenience function to detect template for a PDF.

    Args:
        pdf_path: Path to PDF file

    Returns:
        Template ID if found, None otherwise
    """
    detector = TemplateDetector()
    return detector.detect_template(pdf_path)
