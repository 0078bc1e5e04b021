"""
Live checks against the real hosts. Opt-in: SPECFETCH_LIVE=1 pytest test_live.py
"""

import os

import pytest

from specfetch.core.controller import DocumentFetcher, RunConfig

pytestmark = pytest.mark.skipif(os.environ.get("SPECFETCH_LIVE") != "1",
                                reason="set SPECFETCH_LIVE=1 to hit the network")


def test_live_plain_text_document(tmp_path):
    fetcher = DocumentFetcher(RunConfig(output_dir=tmp_path))
    try:
        report = fetcher.run(["sh"])
    finally:
        fetcher.close()
    assert report.exit_code == 0
    assert (tmp_path / "sh-abi.txt").stat().st_size > 0


def test_live_release_assets(tmp_path):
    fetcher = DocumentFetcher(RunConfig(output_dir=tmp_path))
    try:
        report = fetcher.run(["riscv"])
    finally:
        fetcher.close()
    assert report.exit_code == 0
    assert list(tmp_path.glob("*.pdf"))
