"""
Validation Utilities

URL, destination and release-pattern checks used when the manifest is
built, plus the URL scoping helpers the page mirror relies on.
"""

import re
import posixpath
from pathlib import PurePosixPath, PureWindowsPath
from urllib.parse import urlparse, urlunparse
from typing import Tuple, Optional
import logging


class URLValidator:
    """
    Validates and normalizes source URLs for manifest entries.
    """
    
    def __init__(self):
        self.logger = logging.getLogger(__name__)
        
        self.domain_pattern = re.compile(
            r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$'
        )
        self.repo_pattern = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_.\-]*/[A-Za-z0-9_.\-]+$')
    
    def validate_and_normalize(self, url: str) -> Tuple[bool, str, str]:
        """
        Validate and normalize a source URL.
        
        Unlike a browser address bar, a missing scheme is an error: every
        manifest source must be an absolute http(s) URL.
        
        Args:
            url: The URL to validate and normalize
            
        Returns:
            Tuple of (is_valid, normalized_url, error_message)
        """
        if not url or not isinstance(url, str):
            return False, "", "URL cannot be empty"
        
        url = url.strip()
        
        try:
            parsed = urlparse(url)
            if parsed.scheme not in ['http', 'https']:
                return False, "", "URL must use HTTP or HTTPS protocol"
            
            if not parsed.netloc:
                return False, "", "URL must have a valid domain"
            
            domain = parsed.hostname or ""
            if not self.domain_pattern.match(domain):
                return False, "", "Invalid domain format"
            
            return True, self._normalize_url(parsed), ""
            
        except ValueError as e:
            return False, "", f"URL validation error: {str(e)}"
    
    def _normalize_url(self, parsed_url) -> str:
        """
        Lowercase scheme and host, drop the fragment, keep path and query.
        """
        scheme = parsed_url.scheme.lower()
        netloc = parsed_url.netloc.lower()
        path = parsed_url.path or '/'
        return urlunparse((scheme, netloc, path, parsed_url.params, parsed_url.query, ''))
    
    def validate_repo(self, repo: str) -> Tuple[bool, str]:
        """
        Check an ``owner/name`` GitHub repository identifier.
        
        Returns:
            Tuple of (is_valid, error_message)
        """
        if not repo or not self.repo_pattern.match(repo):
            return False, f"Invalid repository identifier: {repo!r} (expected owner/name)"
        return True, ""


def validate_destination(destination: str) -> Tuple[bool, str]:
    """
    Check that a destination is a relative path that stays inside the
    destination directory.
    
    Args:
        destination: Destination path from a manifest entry
        
    Returns:
        Tuple of (is_valid, error_message)
    """
    if not destination or not isinstance(destination, str):
        return False, "Destination cannot be empty"
    if PurePosixPath(destination).is_absolute() or PureWindowsPath(destination).is_absolute():
        return False, f"Destination must be relative: {destination}"
    parts = PurePosixPath(destination.replace('\\', '/')).parts
    if '..' in parts:
        return False, f"Destination escapes the output directory: {destination}"
    if destination.endswith(('/', '\\')):
        return False, f"Destination must name a file: {destination}"
    return True, ""


def validate_pattern(pattern: str) -> Tuple[bool, str]:
    """
    Check a release asset glob. Asset names never contain a path separator.
    """
    if not pattern or not pattern.strip():
        return False, "Asset pattern cannot be empty"
    if '/' in pattern or '\\' in pattern:
        return False, f"Asset pattern must not contain path separators: {pattern}"
    return True, ""


def parent_directory(url: str) -> str:
    """
    Return the directory URL a page lives in, with a trailing slash.
    
    ``https://host/a/b/contents.html`` -> ``https://host/a/b/``
    """
    parsed = urlparse(url)
    path = parsed.path or '/'
    if not path.endswith('/'):
        path = posixpath.dirname(path) + '/'
    if not path.startswith('/'):
        path = '/' + path
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, '', '', ''))


def strip_url(url: str) -> str:
    """Drop query string and fragment; lowercase scheme and host."""
    parsed = urlparse(url)
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), parsed.path or '/', '', '', ''))


def is_below(url: str, base_dir: str) -> bool:
    """
    True when ``url`` is on the same host as ``base_dir`` and its path does not
    ascend above it (wget's ``--no-parent``).
    """
    target = urlparse(strip_url(url))
    base = urlparse(base_dir)
    if target.scheme not in ('http', 'https'):
        return False
    if target.netloc != base.netloc.lower():
        return False
    return posixpath.normpath(target.path).startswith(base.path.rstrip('/') + '/') or \
        target.path == base.path


# Global validator instance
_validator_instance: Optional[URLValidator] = None


def get_validator() -> URLValidator:
    """
    Get the global URL validator instance.
    
    Returns:
        URLValidator instance
    """
    global _validator_instance
    if _validator_instance is None:
        _validator_instance = URLValidator()
    return _validator_instance
