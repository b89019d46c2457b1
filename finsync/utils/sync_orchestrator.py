"""
Sync Orchestrator
Drives bank-data synchronization: manual triggers, the periodic auto-sync, and the timeout
that guarantees the visible "syncing" state always resolves.

State machine: IDLE -> SYNCING -> (COMPLETED | FAILED) -> IDLE, plus SYNCING -> IDLE on timeout.
All transitions go through SyncEvent messages handled by `_dispatch`, and every event is
also published to listeners. Outbound requests are never cancelled; a timeout or teardown
only stops the orchestrator from acting on their outcome.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional, Set

from finsync.core.config import Settings
from finsync.core.errors import GatewayError
from finsync.models.sync import (
    SyncContext,
    SyncEvent,
    SyncEventKind,
    SyncResult,
    SyncState,
    SyncStatus,
)

logger = logging.getLogger(__name__)

AUTO_SYNC_JOB = "auto-sync"
SYNC_TIMEOUT_JOB = "sync-timeout"
STATUS_REFRESH_JOB = "sync-status-refresh"
RESULT_CLEAR_JOB = "sync-result-clear"

SYNC_FAILED_MESSAGE = "Sync failed"
INVESTMENT_SYNC_FAILED_MESSAGE = "Investment sync failed"
SYNC_STILL_RUNNING_MESSAGE = "Sync is still running in the background"
INVESTMENTS_SYNCED_MESSAGE = "Investments synced"
INVESTMENTS_SUFFIX = " and investments"


class SyncOrchestrator:
    def __init__(
        self,
        gateway,
        scheduler,
        *,
        auto_sync_interval: float = 300.0,
        sync_timeout: float = 10.0,
        status_refresh_delay: float = 5.0,
        result_clear_delay: float = 3.0,
        include_investments: bool = True,
        on_complete: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._gateway = gateway
        self._scheduler = scheduler
        self._auto_sync_interval = auto_sync_interval
        self._sync_timeout = sync_timeout
        self._status_refresh_delay = status_refresh_delay
        self._result_clear_delay = result_clear_delay
        self._include_investments = include_investments
        self._on_complete = on_complete

        self.context = SyncContext()
        self._listeners: List[asyncio.Queue] = []
        self._background: Set[asyncio.Task] = set()
        self._started = False
        self._disposed = False

    @classmethod
    def from_settings(cls, gateway, scheduler, settings: Settings, on_complete=None) -> "SyncOrchestrator":
        return cls(
            gateway,
            scheduler,
            auto_sync_interval=settings.AUTO_SYNC_INTERVAL_SECONDS,
            sync_timeout=settings.SYNC_TIMEOUT_SECONDS,
            status_refresh_delay=settings.STATUS_REFRESH_DELAY_SECONDS,
            result_clear_delay=settings.SYNC_RESULT_CLEAR_SECONDS,
            include_investments=settings.INCLUDE_INVESTMENT_SYNC,
            on_complete=on_complete,
        )

    # Read-only views

    @property
    def state(self) -> SyncState:
        return self.context.state

    @property
    def is_loading(self) -> bool:
        return self.context.is_loading

    @property
    def last_sync_result(self) -> Optional[str]:
        return self.context.last_result

    @property
    def status(self) -> Optional[SyncStatus]:
        return self.context.status

    # Lifecycle

    async def start(self, auto_sync: bool = True) -> None:
        """Fetch status once, then begin the recurring auto-sync."""
        if self._started:
            logger.warning("Sync orchestrator is already started")
            return
        self._started = True
        self._disposed = False
        await self.fetch_sync_status()
        if auto_sync:
            self._scheduler.every(AUTO_SYNC_JOB, self._auto_sync_interval, self._auto_sync_tick)

    async def stop(self) -> None:
        """Cancel every timer this orchestrator owns. In-flight requests are left to finish."""
        self._disposed = True
        self._started = False
        for job_id in (AUTO_SYNC_JOB, SYNC_TIMEOUT_JOB, STATUS_REFRESH_JOB, RESULT_CLEAR_JOB):
            self._scheduler.cancel(job_id)
        logger.info("Sync orchestrator stopped")

    def listen(self, maxsize: int = 100) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._listeners.append(queue)
        return queue

    def unlisten(self, queue: asyncio.Queue) -> None:
        if queue in self._listeners:
            self._listeners.remove(queue)

    # Operations

    async def fetch_sync_status(self) -> Optional[SyncStatus]:
        """Pull the backend's sync status. Failures are logged and the old status kept."""
        try:
            status = await self._gateway.get_sync_status()
        except GatewayError as e:
            logger.error(f"Failed to fetch sync status: {e}")
            return None
        self._dispatch(SyncEvent(SyncEventKind.STATUS_REFRESHED, self.context.attempt, status=status))
        return status

    async def trigger_manual_sync(self, investment_only: bool = False) -> SyncResult:
        attempt = self.context.attempt + 1
        self._dispatch(SyncEvent(SyncEventKind.STARTED, attempt))

        try:
            if investment_only:
                response = await self._gateway.sync_investments()
            else:
                response = await self._gateway.sync_all()
        except GatewayError as e:
            logger.error(f"Sync attempt {attempt} failed: {e}")
            return self._fail(attempt, INVESTMENT_SYNC_FAILED_MESSAGE if investment_only else SYNC_FAILED_MESSAGE)

        if not response.get("success"):
            logger.warning(f"Sync attempt {attempt} was rejected by the backend")
            return self._fail(attempt, INVESTMENT_SYNC_FAILED_MESSAGE if investment_only else SYNC_FAILED_MESSAGE)

        if investment_only:
            message = "Investment sync completed"
        else:
            message = f"Synced {response.get('transactionCount') or 0} transactions"
            if self._include_investments:
                self._spawn(self._run_investment_sync(attempt))

        logger.info(f"Sync attempt {attempt} accepted: {message}")
        await self.fetch_sync_status()
        self._dispatch(SyncEvent(SyncEventKind.COMPLETED, attempt, message=message))
        await self._notify_complete()
        if not self._disposed:
            # the backend finishes asynchronously; look again shortly
            self._scheduler.once(STATUS_REFRESH_JOB, self._status_refresh_delay, self.fetch_sync_status)
        return SyncResult(success=True, message=message)

    # Internals

    def _fail(self, attempt: int, message: str) -> SyncResult:
        self._dispatch(SyncEvent(SyncEventKind.FAILED, attempt, message=message))
        return SyncResult(success=False, message=message)

    async def _auto_sync_tick(self) -> None:
        # the tick returns at once so a hung request never holds back the next one
        self._spawn(self._run_auto_sync())

    async def _run_auto_sync(self) -> None:
        logger.info("Auto-syncing data...")
        try:
            result = await self.trigger_manual_sync(investment_only=False)
        except Exception:
            logger.exception("Auto-sync tick failed")
            return
        if result.success:
            logger.info(f"Auto-sync completed: {result.message}")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _run_investment_sync(self, attempt: int) -> None:
        try:
            response = await self._gateway.sync_investments()
        except GatewayError as e:
            logger.error(f"Investment sync for attempt {attempt} failed: {e}")
            self._dispatch(SyncEvent(SyncEventKind.INVESTMENT_FAILED, attempt, message=str(e)))
            return
        except Exception:
            logger.exception(f"Investment sync for attempt {attempt} failed")
            self._dispatch(SyncEvent(SyncEventKind.INVESTMENT_FAILED, attempt, message="error"))
            return
        if response.get("success"):
            self._dispatch(SyncEvent(SyncEventKind.INVESTMENT_SYNCED, attempt))
        else:
            self._dispatch(SyncEvent(SyncEventKind.INVESTMENT_FAILED, attempt, message="rejected"))

    async def _notify_complete(self) -> None:
        if self._on_complete is None or self._disposed:
            return
        try:
            outcome = self._on_complete()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Sync completion callback failed")

    # timer callbacks must be coroutines; plain callables run on an executor thread
    async def _on_timeout(self, attempt: int) -> None:
        self._dispatch(SyncEvent(SyncEventKind.TIMED_OUT, attempt, message=SYNC_STILL_RUNNING_MESSAGE))

    async def _on_result_clear(self, attempt: int) -> None:
        self._dispatch(SyncEvent(SyncEventKind.RESULT_CLEARED, attempt))

    def _schedule_result_clear(self, attempt: int) -> None:
        self._scheduler.once(RESULT_CLEAR_JOB, self._result_clear_delay, self._on_result_clear, attempt)

    def _dispatch(self, event: SyncEvent) -> None:
        if self._disposed:
            logger.debug(f"Ignoring {event.kind.value} after teardown")
            return

        ctx = self.context
        current = event.attempt == ctx.attempt

        if event.kind == SyncEventKind.STARTED:
            ctx.attempt = event.attempt
            ctx.state = SyncState.SYNCING
            ctx.last_result = None
            ctx.investment_result = None
            self._scheduler.cancel(RESULT_CLEAR_JOB)
            self._scheduler.once(SYNC_TIMEOUT_JOB, self._sync_timeout, self._on_timeout, event.attempt)

        elif event.kind in (SyncEventKind.COMPLETED, SyncEventKind.FAILED):
            if current and ctx.state == SyncState.SYNCING:
                ctx.state = SyncState.COMPLETED if event.kind == SyncEventKind.COMPLETED else SyncState.FAILED
                ctx.last_result = event.message
                if event.kind == SyncEventKind.COMPLETED and ctx.investment_result == INVESTMENTS_SYNCED_MESSAGE:
                    ctx.last_result += INVESTMENTS_SUFFIX
                self._scheduler.cancel(SYNC_TIMEOUT_JOB)
                self._schedule_result_clear(event.attempt)
            else:
                logger.info(f"Sync attempt {event.attempt} resolved after its visible state was reset")

        elif event.kind == SyncEventKind.TIMED_OUT:
            if current and ctx.state == SyncState.SYNCING:
                logger.warning(f"Sync attempt {event.attempt} exceeded {self._sync_timeout}s; resetting to idle")
                ctx.state = SyncState.IDLE
                ctx.last_result = event.message
                self._schedule_result_clear(event.attempt)

        elif event.kind == SyncEventKind.RESULT_CLEARED:
            if current:
                ctx.last_result = None
                if ctx.state in (SyncState.COMPLETED, SyncState.FAILED):
                    ctx.state = SyncState.IDLE

        elif event.kind == SyncEventKind.STATUS_REFRESHED:
            ctx.status = event.status

        elif event.kind == SyncEventKind.INVESTMENT_SYNCED:
            if current:
                ctx.investment_result = INVESTMENTS_SYNCED_MESSAGE
                if ctx.state == SyncState.COMPLETED and ctx.last_result:
                    ctx.last_result += INVESTMENTS_SUFFIX

        elif event.kind == SyncEventKind.INVESTMENT_FAILED:
            if current:
                ctx.investment_result = INVESTMENT_SYNC_FAILED_MESSAGE

        self._publish(event)

    def _publish(self, event: SyncEvent) -> None:
        for queue in self._listeners:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Sync listener queue full; dropping {event.kind.value} event")
