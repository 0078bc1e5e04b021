"""
HTTP Retrieval Module

Plain GET-and-save for documents served at a fixed URL. Redirects are
followed; anything but a 2xx answer is a FetchError. There is no retry: a
failed fetch is reported once and the run moves on.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import requests

from .. import __version__
from ..errors import FetchError
from ..utils.file_manager import FileManager
from ..utils.rate_limiter import HostRateLimiter


DEFAULT_TIMEOUT = 60
CHUNK_SIZE = 64 * 1024
USER_AGENT = f"specfetch/{__version__} (ABI specification downloader)"


def build_session(user_agent: str = USER_AGENT) -> requests.Session:
    """Create a requests session with specfetch's identification headers."""
    session = requests.Session()
    session.headers.update({
        'User-Agent': user_agent,
        'Accept': '*/*',
    })
    return session


class HTTPFetcher:
    """
    Downloads single resources over HTTP(S).
    
    One fetcher (and its session) is shared by every manifest entry of a
    run; the optional rate limiter keeps requests to the same host spaced.
    """
    
    def __init__(self,
                 session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 rate_limiter: Optional[HostRateLimiter] = None):
        """
        Initialize the fetcher.
        
        Args:
            session: requests session to use (a new one is built if omitted)
            timeout: Per-request timeout in seconds
            rate_limiter: Shared per-host limiter, if any
        """
        self.session = session or build_session()
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.logger = logging.getLogger(__name__)
    
    def get(self, url: str, stream: bool = False, **kwargs) -> requests.Response:
        """
        Issue a GET, following redirects, and raise FetchError unless the
        final answer is 2xx.
        """
        if self.rate_limiter:
            self.rate_limiter.acquire(url)
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True,
                                        stream=stream, **kwargs)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Request failed for {url}: {e}", url=url) from e
        
        if not (200 <= response.status_code < 300):
            status = response.status_code
            response.close()
            raise FetchError(f"HTTP {status} for {url}", url=url, status_code=status)
        return response
    
    def download(self, url: str, path: Union[str, Path], files: FileManager, **kwargs) -> int:
        """
        Stream ``url`` into ``path`` (replacing it only on success).
        
        Returns:
            Number of bytes written
        """
        written = 0
        response = self.get(url, stream=True, **kwargs)
        try:
            with files.open_for_replace(path) as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Download interrupted for {url}: {e}", url=url) from e
        finally:
            response.close()
        
        self.logger.info(f"Saved {written} bytes from {url} -> {path}")
        return written
    
    def fetch_to(self, url: str, destination: str, files: FileManager) -> Path:
        """
        Simple URL fetch: write the body served at ``url`` to the manifest
        destination inside the output directory.
        
        Args:
            url: Source URL
            destination: Destination relative to the output directory
            files: File manager for the output directory
            
        Returns:
            Path of the written file
        """
        path = files.destination_path(destination)
        self.logger.info(f"Fetching {url}")
        self.download(url, path, files)
        return path
    
    def close(self):
        """Close the HTTP session."""
        self.session.close()
