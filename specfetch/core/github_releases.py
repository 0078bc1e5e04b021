"""
GitHub Releases Client

Looks up the latest release of a repository through the GitHub REST API and
downloads the release assets whose names match a glob, the way
``gh release download --pattern ... --clobber`` does.
"""

import os
import fnmatch
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import FetchError
from ..utils.file_manager import FileManager
from .http_fetcher import HTTPFetcher


class GitHubReleaseClient:
    """
    Client for the GitHub releases API.
    
    Asset downloads go through the shared HTTPFetcher so they honour the same
    timeout and per-host spacing as every other download.
    """
    
    API_BASE_URL = "https://api.github.com"
    
    def __init__(self, fetcher: HTTPFetcher, token: Optional[str] = None):
        """
        Initialize the client.
        
        Args:
            fetcher: Shared HTTP fetcher
            token: GitHub token; defaults to the GITHUB_TOKEN environment variable
        """
        self.fetcher = fetcher
        self.token = token if token is not None else os.environ.get("GITHUB_TOKEN")
        self.logger = logging.getLogger(__name__)
    
    def _api_headers(self) -> Dict[str, str]:
        headers = {
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
        }
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers
    
    def latest_release(self, repo: str) -> Dict[str, Any]:
        """
        Fetch metadata of the latest published release.
        
        Args:
            repo: Repository as ``owner/name``
            
        Returns:
            Release JSON as returned by the API
            
        Raises:
            FetchError: If the API call fails or returns something unexpected
        """
        url = f"{self.API_BASE_URL}/repos/{repo}/releases/latest"
        self.logger.debug(f"Querying latest release: {url}")
        
        response = self.fetcher.get(url, headers=self._api_headers())
        try:
            release = response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from GitHub for {repo}: {e}", url=url) from e
        
        if not isinstance(release, dict) or not isinstance(release.get('assets'), list):
            raise FetchError(f"Unexpected release payload for {repo}", url=url)
        
        self.logger.info(f"{repo}: latest release {release.get('tag_name', '?')} "
                         f"with {len(release['assets'])} assets")
        return release
    
    def matching_assets(self, release: Dict[str, Any], pattern: str) -> List[Dict[str, Any]]:
        """
        Select the assets whose name matches ``pattern`` (case-sensitive glob).
        """
        return [asset for asset in release.get('assets', [])
                if asset.get('name') and fnmatch.fnmatchcase(asset['name'], pattern)]
    
    def download_assets(self, repo: str, pattern: str, files: FileManager) -> List[Path]:
        """
        Download every asset of the latest release matching ``pattern`` into
        the output directory, overwriting same-named files.
        
        Args:
            repo: Repository as ``owner/name``
            pattern: Asset name glob
            files: File manager for the output directory
            
        Returns:
            Paths of the written files, in release order
            
        Raises:
            FetchError: If the release cannot be read, no asset matches, or a
                download fails
        """
        release = self.latest_release(repo)
        assets = self.matching_assets(release, pattern)
        if not assets:
            raise FetchError(f"No asset of {repo} {release.get('tag_name', '')} matches {pattern!r}")
        
        written: List[Path] = []
        for asset in assets:
            url = asset.get('browser_download_url')
            if not url:
                raise FetchError(f"Asset {asset['name']} of {repo} has no download URL")
            path = files.destination_path(asset['name'])
            self.fetcher.download(url, path, files)
            written.append(path)
        
        self.logger.info(f"{repo}: downloaded {len(written)} asset(s) matching {pattern!r}")
        return written
