"""
Background task bridging.

Every public gateway operation runs as one detached background task. The
caller receives a PendingCall: an awaitable observer of the task's single
result, decoupled from the task's lifetime.
"""

import asyncio
import contextvars
import functools
import inspect
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Set, TypeVar, Union

from voyage_gateway.config import get_logger, bind_call_context
from voyage_gateway.errors import TaskCancelled

logger = get_logger(__name__)

T = TypeVar("T")

Work = Union[Callable[[], Awaitable[T]], Callable[[], T]]


class CallStatus(Enum):
    """Status of a background call."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PendingCall(Generic[T]):
    """
    Awaitable handle on a background call.

    Awaiting yields the work's result or raises its error. Cancelling the
    awaiting coroutine, or dropping the handle, leaves the background task
    running; its result is then discarded.
    """

    def __init__(self, call_id: str, operation: str, handoff: asyncio.Future):
        self.call_id = call_id
        self.operation = operation
        self._handoff = handoff
        self.created_time = time.time()

    def __await__(self):
        return asyncio.shield(self._handoff).__await__()

    def done(self) -> bool:
        return self._handoff.done()

    @property
    def status(self) -> CallStatus:
        if not self._handoff.done():
            return CallStatus.PENDING
        error = self._handoff.exception()
        if error is None:
            return CallStatus.COMPLETED
        if isinstance(error, TaskCancelled):
            return CallStatus.CANCELLED
        return CallStatus.FAILED

    def __repr__(self) -> str:
        return f"PendingCall(call_id={self.call_id}, operation={self.operation}, status={self.status.value})"


class TaskBridge:
    """
    Spawns units of work and hands their results back through PendingCall.

    Coroutine functions run as tasks on the running event loop; plain
    callables are treated as blocking and run on a thread pool.
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="voyage-gateway",
        )
        # Strong references keep detached tasks alive until they finish
        self._tasks: Set[asyncio.Task] = set()
        self._total_spawned = 0
        self._total_cancelled = 0

    def spawn(
        self,
        work: Work,
        operation: str = "task",
        on_abort: Optional[Callable[[BaseException], None]] = None,
    ) -> PendingCall[T]:
        """
        Start `work` immediately and return a handle on its result.

        Must be called from a running event loop.

        Args:
            work: Coroutine function or blocking callable taking no arguments
            operation: Name used in logs and in TaskCancelled messages
            on_abort: Called with the TaskCancelled error if the task ends
                      without producing a value (e.g. to end a stream it feeds)
        """
        loop = asyncio.get_running_loop()
        handoff = loop.create_future()
        handoff.add_done_callback(_mark_retrieved)

        call = PendingCall(str(uuid.uuid4()), operation, handoff)
        task = loop.create_task(
            self._run(work, call, handoff),
            name=f"{operation}-{call.call_id[:8]}",
        )
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._on_task_done, call, handoff, on_abort))
        self._total_spawned += 1

        logger.debug("call_spawned", call_id=call.call_id, operation=operation)
        return call

    async def _run(self, work: Work, call: PendingCall, handoff: asyncio.Future) -> None:
        bind_call_context(call_id=call.call_id, operation=call.operation)

        try:
            if inspect.iscoroutinefunction(work):
                result = await work()
            else:
                loop = asyncio.get_running_loop()
                ctx = contextvars.copy_context()
                result = await loop.run_in_executor(self._executor, ctx.run, work)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("call_failed", error_type=type(e).__name__, error=str(e))
            if not handoff.done():
                handoff.set_exception(e)
        else:
            if not handoff.done():
                handoff.set_result(result)

    def _on_task_done(
        self,
        call: PendingCall,
        handoff: asyncio.Future,
        on_abort: Optional[Callable[[BaseException], None]],
        task: asyncio.Task,
    ) -> None:
        self._tasks.discard(task)
        if not handoff.done():
            # Cancelled or terminated without producing a value
            self._total_cancelled += 1
            logger.warning("call_ended_without_result", call_id=call.call_id, operation=call.operation)
            error = TaskCancelled(call.operation)
            if on_abort is not None:
                on_abort(error)
            handoff.set_exception(error)

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    async def join(self, timeout: Optional[float] = None) -> None:
        """Wait for every in-flight background task to finish."""
        if not self._tasks:
            return
        await asyncio.wait(set(self._tasks), timeout=timeout)

    async def aclose(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight work, then release the thread pool. Never cancels tasks."""
        await self.join(timeout)
        self._executor.shutdown(wait=False)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_calls": self.active_count,
            "total_calls": self._total_spawned,
            "cancelled_calls": self._total_cancelled,
            "blocking_workers": self.max_workers,
        }


def _mark_retrieved(future: asyncio.Future) -> None:
    # Results of abandoned handles are discarded without "never retrieved" warnings
    if not future.cancelled():
        future.exception()
