#!/usr/bin/env python3
"""
Tests for the supporting components: logging, validation, the manifest,
file management, rate limiting and the run log.
"""

import logging
import os

import pytest

from specfetch.core.logger import ErrorTracker, get_logger, initialize_logging
from specfetch.errors import FetchError, ManifestError
from specfetch.manifest import DEFAULT_MANIFEST, Manifest, ManifestEntry, SourceKind
from specfetch.utils.file_manager import FileManager
from specfetch.utils.rate_limiter import HostRateLimiter
from specfetch.utils.run_log import RunLog, RunRecord
from specfetch.utils.validators import (
    get_validator,
    is_below,
    parent_directory,
    validate_destination,
    validate_pattern,
)


def test_logging_writes_files_when_log_dir_given(tmp_path):
    initialize_logging(tmp_path / "logs", logging.INFO)
    logger = get_logger("test")
    logger.info("hello from the test")
    logger.error("an error line")
    for handler in logging.getLogger("specfetch").handlers:
        handler.flush()

    assert "hello from the test" in (tmp_path / "logs" / "specfetch.log").read_text()
    errors_log = (tmp_path / "logs" / "specfetch_errors.log").read_text()
    assert "an error line" in errors_log
    assert "hello from the test" not in errors_log


def test_initialize_logging_twice_does_not_stack_handlers(tmp_path):
    initialize_logging(None)
    initialize_logging(None)
    assert len(logging.getLogger("specfetch").handlers) == 1


def test_error_tracker_report(tmp_path):
    tracker = ErrorTracker(get_logger("test"))
    try:
        raise FetchError("HTTP 404 for https://example.org/x.pdf", url="https://example.org/x.pdf", status_code=404)
    except FetchError as e:
        error_id = tracker.log_error(e, context="mips", url=e.url)

    assert error_id.startswith("ERR_")
    assert len(tracker.errors) == 1
    assert tracker.errors[0]["type"] == "FetchError"

    report = tmp_path / "errors.txt"
    tracker.save_error_report(report)
    text = report.read_text()
    assert "Context: mips" in text
    assert "HTTP 404" in text
    assert "Total Errors: 1" in text


@pytest.mark.parametrize("url, expected_valid", [
    ("https://uclibc.org/docs/psABI-mips.pdf", True),
    ("HTTPS://UCLIBC.org/docs/psABI-mips.pdf", True),
    ("http://example.com/path?job=build", True),
    ("uclibc.org/docs/psABI-mips.pdf", False),
    ("ftp://example.com/file.pdf", False),
    ("https://invalid..domain/x", False),
    ("", False),
])
def test_url_validation(url, expected_valid):
    ok, normalized, error = get_validator().validate_and_normalize(url)
    assert ok == expected_valid
    if ok:
        assert normalized.startswith(("http://", "https://uclibc.org"))
    else:
        assert error


def test_url_normalization_keeps_query_drops_fragment():
    ok, normalized, _ = get_validator().validate_and_normalize("HTTPS://GitLab.com/a/abi.pdf?job=build#top")
    assert ok
    assert normalized == "https://gitlab.com/a/abi.pdf?job=build"


@pytest.mark.parametrize("destination, expected_valid", [
    ("gabi.pdf", True),
    ("out/doc.pdf", True),
    ("../gabi.pdf", False),
    ("a/../../gabi.pdf", False),
    ("/etc/passwd", False),
    ("docs/", False),
    ("", False),
])
def test_destination_validation(destination, expected_valid):
    ok, _ = validate_destination(destination)
    assert ok == expected_valid


def test_pattern_validation():
    assert validate_pattern("*elf*.pdf")[0]
    assert not validate_pattern("")[0]
    assert not validate_pattern("dir/*.pdf")[0]


def test_no_parent_scoping():
    base = parent_directory("https://www.sco.com/developers/gabi/latest/contents.html")
    assert base == "https://www.sco.com/developers/gabi/latest/"
    assert is_below("https://www.sco.com/developers/gabi/latest/ch4.intro.html", base)
    assert is_below("https://www.sco.com/developers/gabi/latest/img/fig1.gif#x", base)
    assert not is_below("https://www.sco.com/developers/gabi/", base)
    assert not is_below("https://www.sco.com/developers/gabi/latest/../2003/contents.html", base)
    assert not is_below("https://other.example/developers/gabi/latest/ch4.html", base)
    assert not is_below("https://www.sco.com/developers/gabi/latest-old/ch4.html", base)


def test_default_manifest_contract():
    names = DEFAULT_MANIFEST.names()
    assert len(names) == len(set(names))
    destinations = {e.destination for e in DEFAULT_MANIFEST if e.kind is not SourceKind.GITHUB_RELEASE}
    for expected in ("gabi.pdf", "elf.pdf", "m68k-abi.pdf", "mips.pdf", "ppc-abi.pdf", "ppc64-abi.pdf",
                     "s390-abi.pdf", "sparc-abi.pdf", "x86-64-abi.pdf", "i386-abi.pdf",
                     "ppc-tls.pdf", "ppc64-tls.pdf"):
        assert expected in destinations
    assert DEFAULT_MANIFEST.get("gabi").kind is SourceKind.HTML_BOOK
    assert DEFAULT_MANIFEST.get("i386").kind is SourceKind.GIT_BUILD
    assert DEFAULT_MANIFEST.get("arm").pattern == "*elf*.pdf"
    assert DEFAULT_MANIFEST.get("riscv").source == "riscv-non-isa/riscv-elf-psabi-doc"


def test_manifest_select_keeps_manifest_order():
    selected = DEFAULT_MANIFEST.select(["i386", "mips", "gabi", "mips"])
    assert [e.name for e in selected] == ["gabi", "mips", "i386"]
    assert len(DEFAULT_MANIFEST.select(None)) == len(DEFAULT_MANIFEST)


def test_manifest_rejects_unknown_and_invalid_entries():
    with pytest.raises(ManifestError):
        DEFAULT_MANIFEST.select(["vax"])
    with pytest.raises(ManifestError):
        Manifest([ManifestEntry("a", SourceKind.URL, "https://example.org/a.pdf", "a.pdf"),
                  ManifestEntry("a", SourceKind.URL, "https://example.org/b.pdf", "b.pdf")])
    with pytest.raises(ManifestError):
        Manifest([ManifestEntry("up", SourceKind.URL, "https://example.org/a.pdf", "../a.pdf")])
    with pytest.raises(ManifestError):
        Manifest([ManifestEntry("rel", SourceKind.GITHUB_RELEASE, "owner/repo")])
    with pytest.raises(ManifestError):
        Manifest([ManifestEntry("ftp", SourceKind.URL, "ftp://example.org/a.pdf", "a.pdf")])


def store(files, name, data):
    with files.open_for_replace(files.destination_path(name)) as f:
        f.write(data)


def test_file_manager_replace_is_all_or_nothing(tmp_path):
    files = FileManager(tmp_path)
    store(files, "doc.pdf", b"old")

    with pytest.raises(RuntimeError):
        with files.open_for_replace(files.destination_path("doc.pdf")) as f:
            f.write(b"half")
            raise RuntimeError("connection dropped")

    assert (tmp_path / "doc.pdf").read_bytes() == b"old"
    assert not (tmp_path / "doc.pdf.part").exists()

    store(files, "doc.pdf", b"new")
    assert (tmp_path / "doc.pdf").read_bytes() == b"new"


def test_file_manager_status_helpers(tmp_path):
    files = FileManager(tmp_path / "out")
    assert files.get_output_stats()["files"] == 0
    assert files.matching_files("*.pdf") == []

    store(files, "aaelf32.pdf", b"1234")
    store(files, "aaelf64.pdf", b"12")
    store(files, "notes.txt", b"x")
    (tmp_path / "out" / "stale.pdf.part").write_bytes(b"x")

    assert [p.name for p in files.matching_files("*elf*.pdf")] == ["aaelf32.pdf", "aaelf64.pdf"]
    stats = files.get_output_stats()
    assert stats["files"] == 3
    assert stats["total_size"] == 7
    assert stats["partial_files"] == 1
    info = files.describe(files.destination_path("aaelf32.pdf"))
    assert info["exists"] and info["size"] == 4
    assert not files.describe(files.destination_path("missing.pdf"))["exists"]


def test_rate_limiter_spaces_requests_per_host():
    now = [100.0]
    slept = []

    def sleep(seconds):
        slept.append(seconds)
        now[0] += seconds

    limiter = HostRateLimiter(delay=2.0, clock=lambda: now[0], sleep=sleep)
    assert limiter.acquire("https://uclibc.org/docs/a.pdf") == 0
    assert limiter.acquire("https://uclibc.org/docs/b.pdf") == pytest.approx(2.0)
    assert limiter.acquire("https://gitlab.com/x") == 0
    now[0] += 5
    assert limiter.acquire("https://uclibc.org/docs/c.pdf") == 0
    assert slept == [pytest.approx(2.0)]


def test_rate_limiter_disabled():
    limiter = HostRateLimiter(delay=0, sleep=lambda s: pytest.fail("must not sleep"))
    assert limiter.acquire("https://a.example/") == 0
    assert limiter.acquire("https://a.example/") == 0


def test_run_log_skips_corrupt_lines(tmp_path):
    log = RunLog(str(tmp_path / "runs" / "log.jsonl"))
    log.append(RunRecord(run_id="r1", name="mips", kind="url", source="https://x/mips.pdf", status="failed",
                         error="HTTP 500"))
    log.append(RunRecord(run_id="r2", name="mips", kind="url", source="https://x/mips.pdf", status="completed"))
    with open(log.path, "a", encoding="utf-8") as f:
        f.write("not json\n\n")
    log.append(RunRecord(run_id="r2", name="gabi", kind="html_book", source="https://x/c.html", status="failed"))

    assert len(list(log.iter_records())) == 3
    assert [(rec["name"], rec["status"]) for rec in log.iter_records()] == [
        ("mips", "failed"), ("mips", "completed"), ("gabi", "failed")]
    assert os.path.isfile(log.path)
