"""
Multi-page HTML document to single PDF.

Mirrors the page tree into the scratch area, converts every page to its
own PDF, concatenates the pages that converted in page order and
removes the intermediate tree, whatever the outcome.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import ConversionError, FetchError
from ..manifest import ManifestEntry
from ..utils.file_manager import FileManager
from .context import FetchContext
from .mirror import MirroredPage, PageMirror
from .pdf_concat import PagePDF, concatenate, order_pages
from .pdf_generator import PDFGenerator, page_title


# (html_path, pdf_path, allowed_base) -> success
PageConverter = Callable[[str, str, Optional[str]], bool]


class HTMLBookBuilder:
    def __init__(self, mirror: PageMirror,
                 converter: Optional[PageConverter] = None,
                 page_order: str = "sequence"):
        """
        Args:
            mirror: Page mirror bound to the run's HTTP fetcher
            converter: Page converter; defaults to PDFGenerator.convert_file
            page_order: Concatenation order, ``sequence`` or ``mtime``
        """
        self.mirror = mirror
        self.converter = converter or PDFGenerator().convert_file
        self.page_order = page_order
        self.logger = logging.getLogger(__name__)

    def build(self, entry: ManifestEntry, ctx: FetchContext, files: FileManager) -> Path:
        """
        Produce ``entry.destination`` from the HTML tree rooted at ``entry.source``.

        Returns:
            Path of the concatenated PDF

        Raises:
            FetchError: The start page could not be mirrored
            ConversionError: No page converted, or concatenation failed
        """
        tree = ctx.scratch(entry.name)
        if tree.exists():
            shutil.rmtree(tree)
        try:
            pages = self.mirror.mirror(entry.source, tree)
            if not pages:
                raise FetchError(f"No HTML pages found at {entry.source}", url=entry.source)

            converted = self.convert_pages(order_pages(pages, self.page_order), tree)
            if not converted:
                raise ConversionError(f"None of the {len(pages)} pages of {entry.name} converted")

            destination = files.destination_path(entry.destination)
            concatenate(converted, destination, files)
            self.logger.info(f"{entry.name}: {len(converted)}/{len(pages)} pages -> {destination}")
            return destination
        finally:
            shutil.rmtree(tree, ignore_errors=True)

    def convert_pages(self, pages: List[MirroredPage], tree: Path) -> List[PagePDF]:
        """
        Convert each page, in the order given, to ``<page>.pdf`` beside it.
        Pages that fail are logged and left out; the batch always runs to
        the end.
        """
        converted: List[PagePDF] = []
        for page in pages:
            pdf_path = page.path.with_name(page.path.name + '.pdf')
            try:
                ok = self.converter(str(page.path), str(pdf_path), str(tree))
            except Exception as e:
                self.logger.warning(f"Converter raised for {page.path.name}: {e}")
                ok = False
            if not ok or not pdf_path.is_file():
                self.logger.warning(f"Failed to convert {page.path.name}")
                continue
            title = page_title(page.path.read_text(encoding='utf-8', errors='replace'), page.path.stem)
            converted.append(PagePDF(index=page.index, path=pdf_path, title=title))
        return converted
