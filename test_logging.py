"""Tests for the logging context helpers."""

import asyncio
import logging

import pytest

from rapid_claims.utils.logging import (
    ContextFilter,
    clear_context,
    get_context,
    set_context,
    setup_logging,
    with_context,
)


@pytest.fixture(autouse=True)
def reset_context():
    clear_context()
    yield
    clear_context()


def test_with_context_restores_previous_fields():
    set_context(session_id=1)

    @with_context(component="ingestion")
    def inner():
        return get_context()

    assert inner() == {"session_id": 1, "component": "ingestion"}
    assert get_context() == {"session_id": 1}


@pytest.mark.asyncio
async def test_with_context_wraps_coroutines():
    @with_context(component="handshake")
    async def inner():
        return get_context()

    assert await inner() == {"component": "handshake"}
    assert get_context() == {}


@pytest.mark.asyncio
async def test_with_context_restores_after_error():
    @with_context(component="handshake")
    async def failing():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await failing()
    assert get_context() == {}


def test_setup_logging_writes_context_to_file(tmp_path):
    log_file = tmp_path / "logs" / "claims.log"
    root = setup_logging(level="DEBUG", log_format="%(session_id)s %(message)s", log_file=str(log_file))
    try:
        set_context(session_id=42)
        logging.getLogger("rapid_claims.test").info("evidence received")
        for handler in root.handlers:
            handler.flush()

        assert "42 evidence received" in log_file.read_text()
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)


def test_filter_supplies_placeholders_outside_a_session():
    record = logging.LogRecord("rapid_claims", logging.INFO, __file__, 1, "idle", None, None)

    ContextFilter().filter(record)

    assert (record.session_id, record.step, record.component) == ("-", "-", "-")


@pytest.mark.asyncio
async def test_late_task_does_not_restore_over_newer_session_fields():
    release = asyncio.Event()

    @with_context(component="handshake")
    async def late_handshake():
        set_context(session_id=1)
        await release.wait()

    task = asyncio.create_task(late_handshake())
    await asyncio.sleep(0)
    set_context(session_id=2, step="UPLOADING")

    release.set()
    await task

    assert get_context() == {"session_id": 2, "step": "UPLOADING"}
