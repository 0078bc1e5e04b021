"""
File Management Utilities

Resolves manifest destinations inside the output directory and writes them
so that a failed fetch never leaves a truncated document behind: content
goes to a ``.part`` sibling first and replaces the destination only once it
is complete.
"""

import os
import shutil
import logging
import fnmatch
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, List, Union

from .paths import PART_SUFFIX


class FileManager:
    """
    Owns the output directory for one run.
    
    Every write overwrites the previous document of the same name; nothing
    is skipped because it already exists.
    """
    
    def __init__(self, output_dir: Union[str, Path]):
        """
        Initialize the file manager.
        
        Args:
            output_dir: Directory receiving the downloaded documents
        """
        self.output_dir = Path(output_dir)
        self.logger = logging.getLogger(__name__)
    
    def ensure_output_dir(self) -> Path:
        """Create the output directory (and parents) if missing."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir
    
    def destination_path(self, destination: str) -> Path:
        """
        Get the absolute path for a manifest destination.
        
        Args:
            destination: Path relative to the output directory
            
        Returns:
            Absolute destination path
        """
        return (self.output_dir / destination).resolve()
    
    @contextmanager
    def open_for_replace(self, path: Union[str, Path]) -> Iterator[BinaryIO]:
        """
        Open ``path`` for binary writing through a ``.part`` file.
        
        The destination is replaced when the block exits normally; on an
        exception the partial file is removed and the old destination (if
        any) stays untouched.
        """
        final = Path(path)
        final.parent.mkdir(parents=True, exist_ok=True)
        part = final.with_name(final.name + PART_SUFFIX)
        try:
            with open(part, 'wb') as f:
                yield f
            os.replace(part, final)
        except BaseException:
            part.unlink(missing_ok=True)
            raise
        self.logger.debug(f"Wrote {final} ({final.stat().st_size} bytes)")
    
    def copy_into(self, source: Union[str, Path], destination: str) -> Path:
        """
        Copy a local file (e.g. a build artifact) to a manifest destination.
        """
        path = self.destination_path(destination)
        with open(source, 'rb') as src, self.open_for_replace(path) as dst:
            shutil.copyfileobj(src, dst)
        self.logger.info(f"Copied {source} -> {path}")
        return path
    
    def describe(self, path: Path) -> Dict[str, Any]:
        """Existence, size and modification time of one output file."""
        if not path.is_file():
            return {'path': str(path), 'exists': False, 'size': 0, 'modified': None}
        st = path.stat()
        return {
            'path': str(path),
            'exists': True,
            'size': st.st_size,
            'modified': datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M:%S"),
        }
    
    def matching_files(self, pattern: str) -> List[Path]:
        """Files directly in the output directory whose name matches ``pattern``."""
        if not self.output_dir.is_dir():
            return []
        return sorted(p for p in self.output_dir.iterdir()
                      if p.is_file() and fnmatch.fnmatchcase(p.name, pattern))
    
    def get_output_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the output directory.
        
        Returns:
            Dictionary with file counts and sizes
        """
        stats = {
            'output_dir': str(self.output_dir),
            'files': 0,
            'total_size': 0,
            'partial_files': 0,
        }
        if not self.output_dir.is_dir():
            return stats
        for p in self.output_dir.rglob('*'):
            if not p.is_file():
                continue
            if p.name.endswith(PART_SUFFIX):
                stats['partial_files'] += 1
                continue
            stats['files'] += 1
            stats['total_size'] += p.stat().st_size
        return stats
