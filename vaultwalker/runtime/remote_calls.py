"""Background worker that runs remote store calls off the session thread.

Jobs run one at a time in submission order on a single daemon thread.
Results come back through a completion queue drained by the session loop.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from queue import Empty, Queue
from typing import TYPE_CHECKING

from ..errors import Cancelled, RemoteFailure, VaultwalkerError

if TYPE_CHECKING:
    from ..tree_model.path import SecretPath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteCall:
    """One queued remote operation."""

    request_id: int
    op: str
    path: SecretPath
    generation: int
    run: Callable[[], object]


@dataclass(frozen=True)
class RemoteCompletion:
    """Finished call: exactly one of ``value``/``error`` is meaningful."""

    call: RemoteCall
    value: object = None
    error: VaultwalkerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RemoteCallQueue:
    """Serial FIFO executor with a single-consumer completion queue.

    With ``run_inline`` the call executes synchronously inside ``submit``;
    its completion is still only visible through ``drain_completions``.
    """

    def __init__(self, run_inline: bool = False) -> None:
        self._run_inline = run_inline
        self._lock = threading.Lock()
        self._pending: deque[RemoteCall] = deque()
        self._cancelled: set[int] = set()
        self._running = False
        self._next_request_id = 1
        self._results: Queue[RemoteCompletion] = Queue()

    def _execute(self, call: RemoteCall) -> RemoteCompletion:
        try:
            value = call.run()
        except VaultwalkerError as exc:
            return RemoteCompletion(call=call, error=exc)
        except Exception as exc:
            logger.exception("remote %s %r raised unexpectedly", call.op, call.path.join())
            return RemoteCompletion(call=call, error=RemoteFailure(str(exc) or type(exc).__name__))
        return RemoteCompletion(call=call, value=value)

    def _worker(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._running = False
                    return
                call = self._pending.popleft()
                skipped = call.request_id in self._cancelled
                self._cancelled.discard(call.request_id)

            if skipped:
                completion = RemoteCompletion(call=call, error=Cancelled("superseded by navigation"))
            else:
                completion = self._execute(call)
            self._results.put(completion)

    def submit(
        self,
        op: str,
        path: SecretPath,
        run: Callable[[], object],
        *,
        generation: int = 0,
    ) -> int:
        """Queue ``run`` and return its request id."""
        with self._lock:
            request_id = self._next_request_id
            self._next_request_id += 1
            call = RemoteCall(request_id=request_id, op=op, path=path, generation=generation, run=run)
            if not self._run_inline:
                self._pending.append(call)
                if self._running:
                    return request_id
                self._running = True

        if self._run_inline:
            self._results.put(self._execute(call))
            return request_id

        worker = threading.Thread(
            target=self._worker,
            name="vaultwalker-remote-calls",
            daemon=True,
        )
        worker.start()
        return request_id

    def cancel(self, request_id: int) -> bool:
        """Mark a not-yet-started call as cancelled; return whether it was still queued."""
        with self._lock:
            if any(call.request_id == request_id for call in self._pending):
                self._cancelled.add(request_id)
                return True
        return False

    def uncancel(self, request_id: int) -> bool:
        """Revive a cancelled call that has not started yet."""
        with self._lock:
            if request_id in self._cancelled and any(call.request_id == request_id for call in self._pending):
                self._cancelled.discard(request_id)
                return True
        return False

    def idle(self) -> bool:
        with self._lock:
            return not self._pending and not self._running

    def drain_completions(self) -> list[RemoteCompletion]:
        """Drain all completed calls in completion order."""
        out: list[RemoteCompletion] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except Empty:
                break
        return out


__all__ = [
    "RemoteCall",
    "RemoteCallQueue",
    "RemoteCompletion",
]
