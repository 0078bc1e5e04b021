"""
Ordering and concatenation of per-page PDFs.

Pages are ordered by the sequence they were discovered in. The older
"oldest modification time first" rule is still available; it reads the
mirrored pages' file times, which carry the server's Last-Modified date.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, TypeVar, Union

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from ..errors import ConversionError
from ..utils.file_manager import FileManager


logger = logging.getLogger(__name__)

PAGE_ORDERS = ("sequence", "mtime")

T = TypeVar("T")


@dataclass
class PagePDF:
    index: int
    path: Path
    title: Optional[str] = None


def order_pages(pages: Iterable[T], order: str = "sequence") -> List[T]:
    """
    Sort pages for conversion and concatenation.

    Works on anything with ``index`` and ``path`` (mirrored HTML pages or
    converted PDFs).

    Args:
        pages: Pages to order
        order: ``"sequence"`` (discovery index) or ``"mtime"`` (oldest
            modification of ``path`` first, file name breaking ties)
    """
    pages = list(pages)
    if order == "sequence":
        return sorted(pages, key=lambda p: p.index)
    if order == "mtime":
        return sorted(pages, key=lambda p: (os.stat(p.path).st_mtime_ns, p.path.name))
    raise ValueError(f"Unknown page order {order!r}; expected one of {', '.join(PAGE_ORDERS)}")


def concatenate(pages: List[PagePDF], output_path: Union[str, Path], files: FileManager) -> int:
    """
    Concatenate ``pages`` (already ordered) into ``output_path``.

    Each input document becomes one outline entry named after its title.

    Returns:
        Number of PDF pages in the output

    Raises:
        ConversionError: If there is nothing to concatenate or an input is unreadable
    """
    if not pages:
        raise ConversionError("No PDF pages to concatenate")

    writer = PdfWriter()
    try:
        for page in pages:
            reader = PdfReader(str(page.path))
            writer.append(reader, outline_item=page.title or page.path.stem)
        total = len(writer.pages)
        with files.open_for_replace(output_path) as f:
            writer.write(f)
    except (PyPdfError, OSError) as e:
        raise ConversionError(f"Failed to concatenate into {output_path}: {e}") from e

    logger.info(f"Concatenated {len(pages)} documents ({total} pages) into {output_path}")
    return total
