"""
specfetch orchestrator: runs the manifest and reports one result per entry.

Entries are independent. A failing entry is recorded and the run carries on
(unless fail_fast is set); the run's exit status reflects every entry, not
just the last one.
"""

from __future__ import annotations

import logging
import tempfile
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from ..errors import SetupError
from ..manifest import DEFAULT_MANIFEST, Manifest, ManifestEntry, SourceKind
from ..utils.file_manager import FileManager
from ..utils.paths import DEFAULT_OUTPUT_DIR
from ..utils.rate_limiter import HostRateLimiter
from ..utils.run_log import RunLog, RunRecord
from .context import FetchContext
from .git_builder import GitBuilder
from .github_releases import GitHubReleaseClient
from .html_book import HTMLBookBuilder, PageConverter
from .http_fetcher import DEFAULT_TIMEOUT, HTTPFetcher
from .logger import ErrorTracker
from .mirror import PageMirror


MAX_WORKERS = 4

COMPLETED = "completed"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class RunConfig:
    output_dir: Path = DEFAULT_OUTPUT_DIR
    work_dir: Optional[Path] = None   # persistent scratch; None = temporary
    jobs: int = 1
    fail_fast: bool = False
    request_delay: float = 0.5
    timeout: float = DEFAULT_TIMEOUT
    page_order: str = "sequence"
    record_path: Optional[Path] = None


@dataclass
class EntryResult:
    name: str
    status: str
    outputs: List[Path] = field(default_factory=list)
    error: Optional[str] = None
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == COMPLETED


@dataclass
class RunReport:
    results: List[EntryResult] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        counts = {COMPLETED: 0, FAILED: 0, SKIPPED: 0}
        for r in self.results:
            counts[r.status] = counts.get(r.status, 0) + 1
        return counts

    @property
    def failed(self) -> List[EntryResult]:
        return [r for r in self.results if r.status == FAILED]

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def summary_lines(self) -> List[str]:
        lines = []
        for r in self.results:
            if r.status == COMPLETED:
                detail = ", ".join(p.name for p in r.outputs)
            else:
                detail = r.error or ""
            lines.append(f"{r.status.upper():9} {r.name:10} {detail}".rstrip())
        c = self.counts()
        lines.append(f"{c[COMPLETED]} completed, {c[FAILED]} failed, {c[SKIPPED]} skipped")
        return lines


class DocumentFetcher:
    def __init__(self, config: RunConfig,
                 manifest: Manifest = DEFAULT_MANIFEST,
                 http: Optional[HTTPFetcher] = None,
                 git: Optional[GitBuilder] = None,
                 converter: Optional[PageConverter] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.manifest = manifest
        self.logger = logger or logging.getLogger(__name__)
        self.rate_limiter = HostRateLimiter(delay=config.request_delay)
        self.http = http or HTTPFetcher(timeout=config.timeout, rate_limiter=self.rate_limiter)
        self.releases = GitHubReleaseClient(self.http)
        self.books = HTMLBookBuilder(PageMirror(self.http), converter=converter,
                                     page_order=config.page_order)
        self.git = git or GitBuilder()
        self.files = FileManager(config.output_dir)
        self.run_log = RunLog(str(config.record_path)) if config.record_path else None
        self.errors = ErrorTracker(self.logger)
        self._stop_event = threading.Event()
        self._log_lock = threading.Lock()

    @contextmanager
    def _scratch_dir(self) -> Iterator[Path]:
        """
        Scratch area for the run: the configured work dir (kept afterwards)
        or a temporary directory removed on every exit path.
        """
        if self.config.work_dir is not None:
            work = Path(self.config.work_dir)
            try:
                work.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise SetupError(f"Cannot create work directory {work}: {e}") from e
            yield work.resolve()
            return
        try:
            tmp = tempfile.TemporaryDirectory(prefix="specfetch-")
        except OSError as e:
            raise SetupError(f"Cannot create temporary directory: {e}") from e
        with tmp as name:
            yield Path(name)

    def run(self, names: Optional[Iterable[str]] = None,
            progress: Optional[Callable[[dict], None]] = None) -> RunReport:
        """
        Fetch the selected entries (all by default) and report each outcome.

        Raises:
            ManifestError: Unknown entry name
            SetupError: Output or scratch directory cannot be prepared
        """
        entries = self.manifest.select(names)
        try:
            output_dir = self.files.ensure_output_dir().resolve()
        except OSError as e:
            raise SetupError(f"Cannot create output directory {self.config.output_dir}: {e}") from e

        run_id = uuid.uuid4().hex[:12]
        self._stop_event.clear()
        self.logger.info(f"Run {run_id}: {len(entries)} entries -> {output_dir}")

        with self._scratch_dir() as scratch:
            ctx = FetchContext(output_dir=output_dir, scratch_dir=scratch)

            def process_one(entry: ManifestEntry) -> EntryResult:
                if self._stop_event.is_set():
                    result = EntryResult(name=entry.name, status=SKIPPED, error="skipped after earlier failure")
                else:
                    if progress:
                        progress({"type": "entry", "name": entry.name, "stage": "started"})
                    result = self.fetch_entry(entry, ctx)
                    if not result.ok and self.config.fail_fast:
                        self._stop_event.set()
                self._record(run_id, entry, result)
                if progress:
                    progress({"type": "entry", "name": entry.name, "stage": result.status})
                return result

            if self.config.jobs > 1 and len(entries) > 1:
                with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, self.config.jobs)) as ex:
                    results = list(ex.map(process_one, entries))
            else:
                results = [process_one(entry) for entry in entries]

        report = RunReport(results=results)
        c = report.counts()
        self.logger.info(f"Run {run_id} finished: {c[COMPLETED]} completed, "
                         f"{c[FAILED]} failed, {c[SKIPPED]} skipped")
        if progress:
            progress({"type": "counters", "stats": c})
        return report

    def fetch_entry(self, entry: ManifestEntry, ctx: FetchContext) -> EntryResult:
        """
        Run one manifest entry. Failures are caught here and returned as a
        failed result; they never reach the other entries.
        """
        started = time.time()
        self.logger.info(f"[{entry.name}] {entry.kind.value}: {entry.source}")
        try:
            if entry.kind is SourceKind.URL:
                outputs = [self.http.fetch_to(entry.source, entry.destination, self.files)]
            elif entry.kind is SourceKind.GITHUB_RELEASE:
                outputs = self.releases.download_assets(entry.source, entry.pattern, self.files)
            elif entry.kind is SourceKind.HTML_BOOK:
                outputs = [self.books.build(entry, ctx, self.files)]
            elif entry.kind is SourceKind.GIT_BUILD:
                outputs = [self.git.fetch(entry, ctx, self.files)]
            else:
                raise ValueError(f"Unsupported source kind: {entry.kind}")
        except Exception as e:
            self.errors.log_error(e, context=entry.name, url=entry.source)
            return EntryResult(name=entry.name, status=FAILED, error=str(e).splitlines()[0] if str(e) else type(e).__name__,
                               started_at=started, finished_at=time.time())

        self.logger.info(f"[{entry.name}] done: {', '.join(str(p) for p in outputs)}")
        return EntryResult(name=entry.name, status=COMPLETED, outputs=outputs,
                           started_at=started, finished_at=time.time())

    def _record(self, run_id: str, entry: ManifestEntry, result: EntryResult) -> None:
        if self.run_log is None:
            return
        with self._log_lock:
            self.run_log.append(RunRecord(run_id=run_id, name=entry.name, kind=entry.kind.value,
                                          source=entry.source, status=result.status,
                                          outputs=[str(p) for p in result.outputs],
                                          started_at=result.started_at, finished_at=result.finished_at,
                                          error=result.error))

    def entry_status(self, entry: ManifestEntry) -> List[Dict]:
        """Current state of an entry's output file(s) on disk."""
        if entry.kind is SourceKind.GITHUB_RELEASE:
            matches = self.files.matching_files(entry.pattern)
            return [self.files.describe(p) for p in matches] or \
                [{'path': str(self.files.destination_path(entry.pattern)), 'exists': False,
                  'size': 0, 'modified': None}]
        return [self.files.describe(self.files.destination_path(entry.destination))]

    def close(self):
        self.http.close()
