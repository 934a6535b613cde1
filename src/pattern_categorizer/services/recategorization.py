import asyncio
import json
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from time import perf_counter
from typing import Any

from pattern_categorizer.core.errors import (
    CategorizerError,
    RecategorizationError,
    RecategorizationInProgressError,
)
from pattern_categorizer.engine import CategorizationEngine
from pattern_categorizer.logger import get_logger
from pattern_categorizer.models import CategoryRule, RecategorizeResult, Transaction

logger = get_logger(__name__)

Writer = Callable[[list[Transaction]], Awaitable[None]]


class RecategorizationManager:
    """Runs ``recategorize_all`` over large stores without blocking the loop.

    Transactions are processed in chunks of ``chunk_size``; each chunk is
    scored in a worker thread and the loop gets control back between
    chunks. A cancel request takes effect at the next chunk boundary, so a
    transaction is always either fully re-categorized or left as it was.
    """

    def __init__(self, engine: CategorizationEngine, chunk_size: int) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.engine = engine
        self.chunk_size = chunk_size
        self.cancel_event = asyncio.Event()
        self.active = False
        self.status: dict[str, Any] = {"stage": "idle", "active": False}
        self.last_result: RecategorizeResult | None = None

    def request_cancel(self) -> bool:
        if self.active:
            self.cancel_event.set()
            return True
        return False

    def get_status(self) -> dict[str, Any]:
        status = dict(self.status)
        status["active"] = self.active
        return status

    def reset_state(self) -> None:
        self.cancel_event.clear()
        self.status.clear()
        self.status.update({"stage": "idle", "active": False})
        self.active = False
        self.last_result = None

    def _claim(self) -> None:
        if self.active:
            raise RecategorizationInProgressError("A re-categorization is already running")
        self.active = True
        self.cancel_event.clear()
        self.last_result = None

    def _set_status(self, payload: dict[str, Any]) -> None:
        self.status.clear()
        self.status.update({**payload, "active": self.active})

    async def _process(
        self,
        transactions: Sequence[Transaction],
        rules: Sequence[CategoryRule],
        writer: Writer | None,
    ) -> AsyncGenerator[dict[str, Any], None]:
        # Callers claim the manager first; see run() and stream().
        # Rules edited after this point do not affect the running pass.
        snapshot = tuple(rules)
        total = len(transactions)
        updated = list(transactions)
        processed = 0
        changed = 0
        started = perf_counter()

        self._set_status({"stage": "start", "processed": 0, "changed": 0, "total": total, "percent": 0})
        logger.info("[RECATEGORIZE] Starting pass over %s transaction(s) with %s rule(s).", total, len(snapshot))

        try:
            for start in range(0, total, self.chunk_size):
                if self.cancel_event.is_set():
                    break

                chunk = list(transactions[start:start + self.chunk_size])
                chunk_result = await asyncio.to_thread(self.engine.recategorize_all, chunk, snapshot)

                if writer is not None:
                    try:
                        await writer(chunk_result.updated)
                    except Exception as exc:
                        logger.error(
                            "[RECATEGORIZE] Persisting chunk at offset %s failed after %s processed: %s",
                            start,
                            processed,
                            exc,
                        )
                        self._set_status({
                            "stage": "error",
                            "message": str(exc),
                            "processed": processed,
                            "changed": changed,
                            "total": total,
                        })
                        raise RecategorizationError(
                            f"Persisting re-categorized transactions failed: {exc}",
                            processed=processed,
                        ) from exc

                updated[start:start + len(chunk)] = chunk_result.updated
                processed += len(chunk)
                changed += chunk_result.count

                payload = {
                    "stage": "processing",
                    "processed": processed,
                    "changed": changed,
                    "total": total,
                    "percent": round(processed / total * 100, 1) if total else 100.0,
                }
                self._set_status(payload)
                yield payload

            self.last_result = RecategorizeResult(updated=updated, count=changed)
            stage = "cancelled" if processed < total else "complete"
            elapsed = perf_counter() - started
            logger.info(
                "[RECATEGORIZE] %s. Processed: %s/%s, changed: %s, elapsed: %.2f s",
                stage.capitalize(),
                processed,
                total,
                changed,
                elapsed,
            )
            payload = {
                "stage": stage,
                "processed": processed,
                "changed": changed,
                "total": total,
                "elapsed_seconds": round(elapsed, 3),
            }
            self.active = False
            self._set_status(payload)
            yield payload
        finally:
            self.active = False
            self.cancel_event.clear()
            self.status["active"] = False

    async def run(
        self,
        transactions: Sequence[Transaction],
        rules: Sequence[CategoryRule],
        writer: Writer | None = None,
    ) -> RecategorizeResult:
        """Re-categorize everything; returns the full set and the change count.

        Raises RecategorizationError (with ``processed``) when ``writer``
        fails. After a cancel the result holds the finished chunks plus the
        untouched remainder.
        """
        self._claim()
        async for _ in self._process(transactions, rules, writer):
            pass
        if self.last_result is None:
            raise CategorizerError("Re-categorization finished without a result")
        return self.last_result

    def stream(
        self,
        transactions: Sequence[Transaction],
        rules: Sequence[CategoryRule],
        writer: Writer | None = None,
    ) -> AsyncGenerator[str, None]:
        """SSE frames for a full pass.

        The manager is claimed before the generator is returned, so a second
        caller gets RecategorizationInProgressError before any response starts.
        """
        self._claim()
        return self._stream_events(transactions, rules, writer)

    async def _stream_events(
        self,
        transactions: Sequence[Transaction],
        rules: Sequence[CategoryRule],
        writer: Writer | None,
    ) -> AsyncGenerator[str, None]:
        try:
            yield "data: {\"stage\": \"start\"}\n\n"
            try:
                async for payload in self._process(transactions, rules, writer):
                    yield f"data: {json.dumps(payload)}\n\n"
            except RecategorizationError as exc:
                yield f"data: {json.dumps({'stage': 'error', 'message': str(exc), 'processed': exc.processed})}\n\n"
                return
            if self.last_result is not None:
                result = self.last_result.model_dump(mode="json")
                yield f"event: result\ndata: {json.dumps(result)}\n\n"
        finally:
            # Released even when the client disconnects mid-stream.
            self.active = False
