"""
WeasyPrint PDF Engine

Renders a mirrored HTML page to PDF. Sub-resources (images, stylesheets)
are only read from the local mirror: remote fetches are refused so the
rendering is offline and reproducible.
"""

import logging
import mimetypes
import os
from typing import Optional
from urllib.parse import unquote, urlparse

try:
    from weasyprint import HTML
except Exception:  # pragma: no cover - missing native libraries surface at runtime
    HTML = None


class WeasyPrintEngine:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _local_only_fetcher(self, allowed_base: Optional[str] = None):
        """
        Return a url_fetcher for WeasyPrint that only serves local files,
        optionally restricted to ``allowed_base``.
        """

        def fetch(url, *args, **kwargs):
            if url.startswith('http://') or url.startswith('https://'):
                raise RuntimeError(f"Remote fetch blocked: {url}")
            path = unquote(urlparse(url).path) if url.startswith('file://') else url
            abs_path = os.path.abspath(path)
            if allowed_base:
                base = os.path.abspath(allowed_base)
                if os.path.commonpath([base, abs_path]) != base:
                    raise RuntimeError(f"Access outside allowed base blocked: {url}")
            with open(abs_path, 'rb') as f:
                data = f.read()
            mime_type, _ = mimetypes.guess_type(abs_path)
            return {
                'string': data,
                'mime_type': mime_type,
                'redirected_url': url,
            }

        return fetch

    def available(self) -> bool:
        """Return True if WeasyPrint is importable."""
        return HTML is not None

    def generate(self, html_path: str, output_path: str, allowed_base: Optional[str] = None) -> bool:
        """
        Render an HTML file to PDF.

        Args:
            html_path: Local HTML file; relative links resolve against its directory
            output_path: Target PDF path
            allowed_base: Directory sub-resources must live in
        """
        if HTML is None:
            self.logger.error("WeasyPrint is not installed. Please install 'weasyprint'.")
            return False

        try:
            os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
            url_fetcher = self._local_only_fetcher(allowed_base=allowed_base)
            HTML(filename=html_path, url_fetcher=url_fetcher).write_pdf(output_path)
            return os.path.exists(output_path) and os.path.getsize(output_path) > 0
        except Exception as e:
            self.logger.error(f"WeasyPrint generation failed for {html_path}: {e}")
            return False
