"""
PDF Generation Module (WeasyPrint-backed)

Converts one mirrored HTML page to one PDF. WeasyPrint is the primary
engine; when it is unavailable a plain-text ReportLab rendering keeps the
page's text so the concatenated document is still complete.
"""

import logging
import os
from typing import Optional
from xml.sax.saxutils import escape

from bs4 import BeautifulSoup

from .pdf_engines.weasyprint_engine import WeasyPrintEngine


TEXT_BLOCKS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'p', 'pre', 'li', 'td']


def page_title(html_content: str, default: str = "") -> str:
    """Text of the page's <title>, or its first <h1>, or ``default``."""
    soup = BeautifulSoup(html_content, 'lxml')
    for tag in (soup.find('title'), soup.find('h1')):
        if tag and tag.get_text().strip():
            return ' '.join(tag.get_text().split())
    return default


class PDFGenerator:
    """Generates PDF files from local HTML pages."""

    def __init__(self, engine: Optional[WeasyPrintEngine] = None):
        self.logger = logging.getLogger(__name__)
        self.engine = engine or WeasyPrintEngine()

    def convert_file(self, html_path: str, pdf_path: str, allowed_base: Optional[str] = None) -> bool:
        """
        Convert a local HTML file to a PDF.

        Args:
            html_path: Source HTML file
            pdf_path: Target PDF path
            allowed_base: Directory that images/stylesheets may be read from

        Returns:
            True if a non-empty PDF was written
        """
        os.makedirs(os.path.dirname(os.path.abspath(pdf_path)), exist_ok=True)
        if self.engine.available():
            if self.engine.generate(html_path, pdf_path, allowed_base=allowed_base or os.path.dirname(html_path)):
                self.logger.debug(f"Generated PDF: {pdf_path}")
                return True
            return False

        self.logger.warning("WeasyPrint not available; using ReportLab text rendering")
        return self._reportlab_fallback(html_path, pdf_path)

    def _reportlab_fallback(self, html_path: str, pdf_path: str) -> bool:
        try:
            from reportlab.platypus import SimpleDocTemplate, Paragraph, Preformatted, Spacer
            from reportlab.lib.styles import getSampleStyleSheet
            from reportlab.lib.pagesizes import A4
        except ImportError:
            self.logger.error("WeasyPrint not available and ReportLab fallback missing.")
            return False

        try:
            with open(html_path, 'r', encoding='utf-8', errors='replace') as f:
                html_content = f.read()

            styles = getSampleStyleSheet()
            doc = SimpleDocTemplate(pdf_path, pagesize=A4)
            soup = BeautifulSoup(html_content, 'lxml')
            story = [Paragraph(escape(page_title(html_content, os.path.basename(html_path))), styles['Title']),
                     Spacer(1, 12)]
            body = soup.find('body') or soup
            for el in body.find_all(TEXT_BLOCKS):
                if el.find(TEXT_BLOCKS):
                    continue  # nested block; its children carry the text
                if el.name == 'pre':
                    story.append(Preformatted(el.get_text(), styles['Code']))
                    continue
                txt = ' '.join(el.get_text().split())
                if not txt:
                    continue
                style = styles['Heading2'] if el.name.startswith('h') else styles['Normal']
                story.append(Paragraph(escape(txt), style))
                story.append(Spacer(1, 6))
            doc.build(story)
            return os.path.exists(pdf_path) and os.path.getsize(pdf_path) > 0
        except Exception as e:
            self.logger.error(f"Failed to generate PDF {pdf_path}: {e}")
            return False
