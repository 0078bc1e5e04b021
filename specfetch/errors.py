"""
Exception hierarchy for specfetch.

Fetch operations raise these; the controller catches them at the
manifest-entry boundary and turns them into failed entry results.
"""

from typing import List, Optional, Sequence


class SpecFetchError(Exception):
    """Base class for all specfetch errors."""


class FetchError(SpecFetchError):
    """A remote resource could not be retrieved."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ConversionError(SpecFetchError):
    """HTML to PDF conversion or PDF concatenation failed."""


class BuildError(SpecFetchError):
    """A git or build command failed, or did not produce its artifact."""

    def __init__(self, message: str, command: Optional[Sequence[str]] = None, returncode: Optional[int] = None):
        super().__init__(message)
        self.command: List[str] = list(command or [])
        self.returncode = returncode


class ManifestError(SpecFetchError):
    """Invalid manifest entry or unknown entry name."""


class SetupError(SpecFetchError):
    """The run environment (destination or scratch directory) could not be prepared."""
