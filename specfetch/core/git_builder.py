"""
Clone-and-build fetch.

Keeps a checkout of a documentation repository in the scratch area
(cloning it the first time, pulling afterwards), runs its build command
and copies the produced artifact to the manifest destination.
"""

import logging
import subprocess
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..errors import BuildError
from ..manifest import ManifestEntry
from ..utils.file_manager import FileManager
from .context import FetchContext


STDERR_TAIL_LINES = 20


class GitBuilder:
    """
    Drives ``git`` and the repository's build tool through subprocess.
    """

    def __init__(self, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
                 git: str = "git", timeout: Optional[float] = None):
        """
        Args:
            runner: subprocess.run compatible callable (injectable for tests)
            git: git executable
            timeout: Per-command timeout in seconds (None: wait indefinitely)
        """
        self.runner = runner
        self.git = git
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def _run(self, command: Sequence[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
        command = [str(c) for c in command]
        self.logger.debug(f"Running {' '.join(command)}" + (f" in {cwd}" if cwd else ""))
        try:
            result = self.runner(command, cwd=str(cwd) if cwd else None, capture_output=True,
                                 text=True, check=False, timeout=self.timeout)
        except FileNotFoundError as e:
            raise BuildError(f"Command not found: {command[0]}", command=command) from e
        except subprocess.TimeoutExpired as e:
            raise BuildError(f"Command timed out after {e.timeout}s: {' '.join(command)}",
                             command=command) from e

        if result.returncode != 0:
            tail = "\n".join((result.stderr or "").strip().splitlines()[-STDERR_TAIL_LINES:])
            raise BuildError(f"{' '.join(command)} exited with status {result.returncode}"
                             + (f":\n{tail}" if tail else ""),
                             command=command, returncode=result.returncode)
        return result

    def prepare(self, repo_url: str, checkout: Path) -> str:
        """
        Clone ``repo_url`` into ``checkout``, or pull if a clone is already there.

        Returns:
            ``"clone"`` or ``"pull"``
        """
        checkout = Path(checkout)
        if (checkout / ".git").is_dir():
            self.logger.info(f"Updating existing checkout {checkout}")
            self._run([self.git, "-C", checkout, "pull"])
            return "pull"

        checkout.parent.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Cloning {repo_url} into {checkout}")
        self._run([self.git, "clone", repo_url, checkout])
        return "clone"

    def build(self, checkout: Path, command: Sequence[str]) -> None:
        """Run the build command inside the checkout."""
        self.logger.info(f"Building in {checkout}: {' '.join(command)}")
        self._run(list(command), cwd=checkout)

    def fetch(self, entry: ManifestEntry, ctx: FetchContext, files: FileManager) -> Path:
        """
        Clone or update, build, and copy the artifact to the destination.

        Raises:
            BuildError: A command failed or the artifact is missing
        """
        checkout = ctx.scratch(entry.name)
        self.prepare(entry.source, checkout)
        self.build(checkout, entry.build_command)

        artifact = checkout / entry.artifact
        if not artifact.is_file():
            raise BuildError(f"Build finished but {artifact} does not exist",
                             command=list(entry.build_command))
        return files.copy_into(artifact, entry.destination)
