import json

import pytest

from pattern_categorizer.core.errors import (
    CategorizerError,
    RecategorizationError,
    RecategorizationInProgressError,
)
from pattern_categorizer.engine import CategorizationEngine
from pattern_categorizer.models import Transaction
from pattern_categorizer.services.recategorization import RecategorizationManager


@pytest.fixture
def manager() -> RecategorizationManager:
    return RecategorizationManager(engine=CategorizationEngine(), chunk_size=2)


@pytest.fixture
def store(make_transaction) -> list[Transaction]:
    payees = ["RIMI", "BOLT", "RIMI", "LIDL", "RIMI"]
    return [make_transaction(id=str(index), payee=payee) for index, payee in enumerate(payees)]


@pytest.fixture
def rules(make_rule, wordlist):
    return [make_rule("Groceries", wordlist("RIMI"))]


@pytest.mark.anyio
async def test_run_processes_every_chunk(manager, store, rules) -> None:
    written: list[list[str]] = []

    async def writer(chunk: list[Transaction]) -> None:
        written.append([t.id for t in chunk])

    result = await manager.run(store, rules, writer)

    assert written == [["0", "1"], ["2", "3"], ["4"]]
    assert result.count == 3
    assert [t.category for t in result.updated] == ["Groceries", None, "Groceries", None, "Groceries"]
    status = manager.get_status()
    assert status["stage"] == "complete"
    assert status["processed"] == 5
    assert not status["active"]


@pytest.mark.anyio
async def test_cancel_stops_at_chunk_boundary(manager, store, rules) -> None:
    async def writer(chunk: list[Transaction]) -> None:
        manager.request_cancel()

    result = await manager.run(store, rules, writer)

    assert result.count == 1
    assert [t.category for t in result.updated] == ["Groceries", None, None, None, None]
    assert manager.get_status()["stage"] == "cancelled"
    assert not manager.request_cancel()


@pytest.mark.anyio
async def test_writer_failure_reports_progress(manager, store, rules) -> None:
    calls = 0

    async def writer(chunk: list[Transaction]) -> None:
        nonlocal calls
        calls += 1
        if calls == 2:
            raise RuntimeError("disk full")

    with pytest.raises(RecategorizationError) as excinfo:
        await manager.run(store, rules, writer)

    assert excinfo.value.processed == 2
    status = manager.get_status()
    assert status["stage"] == "error"
    assert "disk full" in status["message"]
    assert not manager.active


@pytest.mark.anyio
async def test_rules_are_snapshotted(manager, store, rules, make_rule, wordlist) -> None:
    async def writer(chunk: list[Transaction]) -> None:
        rules.append(make_rule("Discount", wordlist("LIDL")))

    result = await manager.run(store, rules, writer)
    assert result.updated[3].category is None


@pytest.mark.anyio
async def test_second_run_is_rejected_while_active(manager, store, rules) -> None:
    manager.active = True
    with pytest.raises(RecategorizationInProgressError):
        await manager.run(store, rules)


@pytest.mark.anyio
async def test_stream_emits_progress_and_result(manager, store, rules) -> None:
    events = [event async for event in manager.stream(store, rules)]

    assert events[0] == 'data: {"stage": "start"}\n\n'
    progress = [json.loads(event[len("data: "):]) for event in events[1:-1]]
    assert [payload["processed"] for payload in progress] == [2, 4, 5, 5]
    assert progress[-1]["stage"] == "complete"

    assert events[-1].startswith("event: result\n")
    result = json.loads(events[-1].split("data: ", 1)[1])
    assert result["count"] == 3


@pytest.mark.anyio
async def test_stream_reports_writer_failure(manager, store, rules) -> None:
    async def writer(chunk: list[Transaction]) -> None:
        raise RuntimeError("offline")

    events = [event async for event in manager.stream(store, rules, writer)]
    error = json.loads(events[-1][len("data: "):])

    assert error["stage"] == "error"
    assert error["processed"] == 0


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RecategorizationManager(engine=CategorizationEngine(), chunk_size=0)


@pytest.mark.anyio
async def test_overlapping_stream_is_refused_before_any_frame(manager, store, rules) -> None:
    first = manager.stream(store, rules)
    assert await first.__anext__() == 'data: {"stage": "start"}\n\n'

    with pytest.raises(RecategorizationInProgressError):
        manager.stream(store, rules)
    with pytest.raises(RecategorizationInProgressError):
        await manager.run(store, rules)

    remaining = [event async for event in first]
    assert remaining[-1].startswith("event: result\n")
    assert not manager.active

    second = [event async for event in manager.stream(store, rules)]
    assert second[-1].startswith("event: result\n")


def test_stream_claims_manager_before_iteration(manager, store, rules) -> None:
    events = manager.stream(store, rules)
    assert manager.active
    with pytest.raises(RecategorizationInProgressError):
        manager.stream(store, rules)
    del events


@pytest.mark.anyio
async def test_run_without_result_raises(manager, store, rules, monkeypatch) -> None:
    async def no_chunks(*args):
        return
        yield

    monkeypatch.setattr(manager, "_process", no_chunks)
    with pytest.raises(CategorizerError):
        await manager.run(store, rules)
