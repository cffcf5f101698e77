"""Tests for the bounded claim log buffer."""

from __future__ import annotations

from datetime import datetime
import logging

import pytest

from territory_claim.claim_log import ClaimLogBuffer


@pytest.fixture
def claim_logger():
    logger = logging.getLogger("territory_claim.test_claim_log")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield logger
    logger.handlers.clear()
    logger.propagate = True


def test_buffer_keeps_only_the_newest_entries(claim_logger):
    buffer = ClaimLogBuffer.install(claim_logger, max_entries=200)
    for index in range(250):
        claim_logger.info("sample %d accepted", index)

    entries = buffer.entries
    assert len(buffer) == 200
    assert entries[0].message == "sample 50 accepted"
    assert entries[-1].message == "sample 249 accepted"


def test_level_filter_and_clear(claim_logger):
    buffer = ClaimLogBuffer.install(claim_logger, level=logging.WARNING)
    claim_logger.info("ignored")
    claim_logger.warning("Implausible speed %.0f km/h", 180.0)

    assert [entry.level for entry in buffer.entries] == ["WARNING"]
    assert buffer.text().endswith("[WARNING] Implausible speed 180 km/h")
    buffer.clear()
    assert len(buffer) == 0


def test_export_has_header_and_full_lines(claim_logger):
    buffer = ClaimLogBuffer.install(claim_logger)
    claim_logger.error("Claim failed: too_few_points")

    report = buffer.export(now=datetime(2025, 3, 1, 8, 30))
    lines = report.splitlines()

    assert lines[0] == "=== Territory claim log ==="
    assert lines[1] == "Exported: 2025-03-01 08:30:00"
    assert lines[2] == "Entries: 1"
    assert lines[3] == ""
    assert lines[4].endswith(
        "[ERROR] territory_claim.test_claim_log: Claim failed: too_few_points"
    )


def test_invalid_size_rejected():
    with pytest.raises(ValueError):
        ClaimLogBuffer(max_entries=0)
