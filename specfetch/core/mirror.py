"""
Recursive page retrieval.

Mirrors a tree of HTML pages, starting from one page and following links
breadth-first, without ever leaving the start page's directory (the
equivalent of ``wget -r -np``). Images and stylesheets the pages reference
are saved alongside so the local copy renders offline.

Like wget, a file that has to become a directory (``notes`` once ``notes/a.html``
turns up) is moved to ``notes/index.html``, and each saved file takes the
server's Last-Modified time.
"""

from __future__ import annotations

import logging
import os
import posixpath
from collections import deque
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Deque, Dict, List, Optional, Set
from urllib.parse import unquote, urljoin, urlparse

from bs4 import BeautifulSoup

from ..errors import FetchError
from ..utils.validators import is_below, parent_directory, strip_url
from .http_fetcher import HTTPFetcher


DEFAULT_MAX_FILES = 1000
HTML_SUFFIXES = ('.html', '.htm')


@dataclass
class MirroredPage:
    index: int     # discovery order, 0 for the start page
    url: str
    path: Path


class PageMirror:
    def __init__(self, fetcher: HTTPFetcher, max_files: int = DEFAULT_MAX_FILES):
        self.fetcher = fetcher
        self.max_files = max_files
        self.logger = logging.getLogger(__name__)

    def mirror(self, start_url: str, dest_dir: Path) -> List[MirroredPage]:
        """
        Mirror the pages reachable from ``start_url`` into ``dest_dir``.

        Files keep their path relative to the start page's directory, so
        relative links between pages keep working locally. URLs that map to
        a file already saved (``sub/`` and ``sub/index.html``) are fetched
        once.

        Returns:
            The saved HTML pages in discovery order.

        Raises:
            FetchError: If the start page itself cannot be retrieved or
                saved, or the tree holds more than ``max_files`` files.
        """
        base_dir = parent_directory(start_url)
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)

        start = strip_url(start_url)
        queue: Deque[str] = deque([start])
        seen: Set[str] = {start}
        pages: List[MirroredPage] = []
        saved: Dict[Path, Optional[MirroredPage]] = {}  # file -> page (None for requisites)

        while queue:
            url = queue.popleft()
            try:
                local = self._existing_target(self.local_path(url, base_dir, dest_dir))
            except FetchError as e:
                if url == start:
                    raise
                self.logger.warning(f"Skipping {url}: {e}")
                continue
            if local in saved:
                self.logger.debug(f"Skipping {url}: already saved as {local}")
                continue
            if len(saved) >= self.max_files:
                raise FetchError(f"Mirror of {base_dir} exceeds {self.max_files} files; "
                                 f"the document would be incomplete", url=url)

            try:
                response = self.fetcher.get(url)
            except FetchError as e:
                if url == start:
                    raise
                self.logger.warning(f"Skipping {url}: {e}")
                continue

            try:
                self._make_dirs(local.parent, dest_dir, saved)
                local.write_bytes(response.content)
            except OSError as e:
                if url == start:
                    raise FetchError(f"Cannot save {url} to {local}: {e}", url=url) from e
                self.logger.warning(f"Skipping {url}: cannot save to {local}: {e}")
                continue
            self._stamp(local, response.headers.get('Last-Modified'))

            if not self._is_html(url, response.headers.get('Content-Type', '')):
                saved[local] = None
                continue

            page = MirroredPage(index=len(pages), url=url, path=local)
            pages.append(page)
            saved[local] = page
            self.logger.debug(f"Mirrored page {len(pages)}: {url}")

            for link in self.extract_links(url, response.content):
                if link in seen or not is_below(link, base_dir):
                    continue
                seen.add(link)
                queue.append(link)

        self.logger.info(f"Mirrored {len(pages)} pages ({len(saved)} files) from {base_dir}")
        return pages

    @staticmethod
    def _existing_target(local: Path) -> Path:
        # a bare name already turned into a directory lives on as its index.html
        return local / 'index.html' if local.is_dir() else local

    def _make_dirs(self, directory: Path, dest_dir: Path, saved: Dict[Path, Optional[MirroredPage]]):
        current = dest_dir
        for part in directory.relative_to(dest_dir).parts:
            current = current / part
            if current.is_file():
                self._demote_file(current, saved)
        directory.mkdir(parents=True, exist_ok=True)

    def _demote_file(self, path: Path, saved: Dict[Path, Optional[MirroredPage]]):
        """Move the file at ``path`` to ``path/index.html`` so ``path`` can become a directory."""
        moved = path.with_name(path.name + '.specfetch-move')
        path.rename(moved)
        path.mkdir()
        target = path / 'index.html'
        moved.rename(target)

        page = saved.pop(path, None)
        saved[target] = page
        if page is not None:
            page.path = target
        self.logger.debug(f"Moved {path} to {target} to make room for a directory")

    def _stamp(self, local: Path, last_modified: Optional[str]):
        if not last_modified:
            return
        try:
            when = parsedate_to_datetime(last_modified).timestamp()
        except (TypeError, ValueError, IndexError):
            self.logger.debug(f"Ignoring bad Last-Modified {last_modified!r} for {local}")
            return
        os.utime(local, (when, when))

    def extract_links(self, page_url: str, content: bytes) -> List[str]:
        """
        Links and page requisites of one page, as absolute URLs without
        query or fragment, de-duplicated in document order.
        """
        soup = BeautifulSoup(content, 'lxml')
        found: List[str] = []

        for a in soup.find_all('a', href=True):
            found.append(a['href'])
        for img in soup.find_all('img', src=True):
            found.append(img['src'])
        for link in soup.find_all('link', rel=lambda v: v and 'stylesheet' in v):
            if link.get('href'):
                found.append(link['href'])

        links: List[str] = []
        for href in found:
            href = href.strip()
            if not href or href.startswith(('#', 'mailto:', 'javascript:', 'data:')):
                continue
            absolute = strip_url(urljoin(page_url, href))
            if urlparse(absolute).scheme not in ('http', 'https'):
                continue
            links.append(absolute)
        return list(dict.fromkeys(links))

    def local_path(self, url: str, base_dir: str, dest_dir: Path) -> Path:
        """
        Map a URL under ``base_dir`` to a file below ``dest_dir``.
        """
        base_path = urlparse(base_dir).path
        url_path = urlparse(url).path or '/'
        trailing = url_path.endswith('/')
        url_path = posixpath.normpath(url_path)
        relative = unquote(url_path[len(base_path.rstrip('/')):].lstrip('/'))
        if not relative or trailing:
            relative = posixpath.join(relative, 'index.html')
        parts = [p for p in relative.split('/') if p not in ('', '.')]
        if '..' in parts:
            raise FetchError(f"Refusing to map {url} outside of {dest_dir}", url=url)
        return dest_dir.joinpath(*parts)

    @staticmethod
    def _is_html(url: str, content_type: str) -> bool:
        if 'text/html' in content_type.lower():
            return True
        return urlparse(url).path.lower().endswith(HTML_SUFFIXES)
