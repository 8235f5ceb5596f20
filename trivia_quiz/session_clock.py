"""
Countdown clock for trivia quiz sessions.
Drives once-per-second ticks toward the session deadline and fires expiry.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from .quiz_session import QuizSession

# Set up logger for clock operations
logger = logging.getLogger(__name__)


class ClockLifecycleLogger:
    """Structured logging for clock lifecycle events."""

    @staticmethod
    def log_clock_started(channel_id: Any, deadline: float) -> None:
        """Log a tick loop being scheduled for a deadline."""
        logger.info(
            f"Clock lifecycle: STARTED - Channel {channel_id}",
            extra={
                'event_type': 'clock_started',
                'channel_id': channel_id,
                'deadline': deadline,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_clock_tick(channel_id: Any, remaining_time: int) -> None:
        """Log tick events (throttled to avoid spam)."""
        if remaining_time % 5 == 0 or remaining_time <= 3:
            logger.debug(
                f"Clock lifecycle: TICK - Channel {channel_id}, Remaining {remaining_time}s",
                extra={
                    'event_type': 'clock_tick',
                    'channel_id': channel_id,
                    'remaining_time': remaining_time,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_clock_expired(channel_id: Any, deadline: float) -> None:
        """Log a deadline expiry being applied to the session."""
        logger.info(
            f"Clock lifecycle: EXPIRED - Channel {channel_id}",
            extra={
                'event_type': 'clock_expired',
                'channel_id': channel_id,
                'deadline': deadline,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_clock_state_transition(channel_id: Any, from_state: str, to_state: str, reason: str = None) -> None:
        """Log clock state transitions."""
        logger.info(
            f"Clock lifecycle: STATE_TRANSITION - Channel {channel_id}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'clock_state_transition',
                'channel_id': channel_id,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_clock_error(channel_id: Any, error_type: str, error_message: str, operation: str) -> None:
        """Log clock-related errors with context."""
        logger.error(
            f"Clock lifecycle: ERROR - Channel {channel_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'clock_error',
                'channel_id': channel_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_race_condition_detected(channel_id: Any, details: str) -> None:
        """Log race condition detection."""
        logger.warning(
            f"Clock lifecycle: RACE_CONDITION - Channel {channel_id}: {details}",
            extra={
                'event_type': 'clock_race_condition',
                'channel_id': channel_id,
                'details': details,
                'timestamp': time.time()
            }
        )


class SessionClock:
    """Ticks a quiz session's countdown and turns expiry into a timeout answer."""

    def __init__(
        self,
        session: QuizSession,
        on_tick: Optional[Callable[[int], Awaitable[Any]]] = None,
        on_expire: Optional[Callable[[], Awaitable[Any]]] = None,
        tick_interval: float = 1.0,
        channel_id: Any = None
    ):
        """
        Initialize the clock.

        Args:
            session: Session whose deadline drives the countdown
            on_tick: Awaited on every tick with the remaining whole seconds
            on_expire: Awaited after an expiry has been applied to the session
            tick_interval: Seconds between ticks
            channel_id: Identifier used in log records
        """
        self._session = session
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._tick_interval = tick_interval
        self._channel_id = channel_id
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._fired_deadline: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_ticking(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Subscribe to deadline resets and start ticking toward the current deadline."""
        if self._running:
            return
        self._running = True
        self._session.add_deadline_listener(self.restart)
        ClockLifecycleLogger.log_clock_state_transition(self._channel_id, "idle", "running", "start requested")
        if self._session.deadline is not None:
            self.restart(self._session.deadline)

    def restart(self, deadline: float) -> None:
        """
        Replace the tick loop with one keyed to a new deadline.

        The previous loop is cancelled before the new one is scheduled.
        """
        if not self._running:
            return
        self._cancel_task()
        self._task = asyncio.create_task(self._run(deadline))
        ClockLifecycleLogger.log_clock_started(self._channel_id, deadline)

    def stop(self) -> None:
        """Stop ticking and unsubscribe from the session. Safe to call repeatedly."""
        if self._running:
            ClockLifecycleLogger.log_clock_state_transition(self._channel_id, "running", "stopped", "stop requested")
        self._running = False
        self._session.remove_deadline_listener(self.restart)
        self._cancel_task()
        self._task = None

    def _cancel_task(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        # A restart triggered from inside the tick loop must not cancel itself
        if task is asyncio.current_task():
            return
        task.cancel()

    async def _run(self, deadline: float) -> None:
        try:
            while self._running and not self._session.is_finished:
                remaining = self._session.remaining_seconds()
                ClockLifecycleLogger.log_clock_tick(self._channel_id, remaining)
                if self._on_tick is not None:
                    await self._on_tick(remaining)
                if remaining <= 0:
                    if self._fire_expiry(deadline) and self._on_expire is not None:
                        await self._on_expire()
                    return
                await asyncio.sleep(self._tick_interval)
        except asyncio.CancelledError:
            ClockLifecycleLogger.log_clock_state_transition(
                self._channel_id, "ticking", "cancelled", "tick loop cancelled"
            )
            raise
        except Exception as e:
            ClockLifecycleLogger.log_clock_error(self._channel_id, type(e).__name__, str(e), "tick")
            raise

    def _fire_expiry(self, deadline: float) -> bool:
        if not self._running:
            return False
        if self._fired_deadline == deadline:
            ClockLifecycleLogger.log_race_condition_detected(
                self._channel_id, "expiry already fired for this deadline"
            )
            return False
        if self._session.deadline != deadline:
            ClockLifecycleLogger.log_race_condition_detected(
                self._channel_id, "stale deadline reached, session has a newer one"
            )
            return False

        self._fired_deadline = deadline
        ClockLifecycleLogger.log_clock_expired(self._channel_id, deadline)
        self._session.expire()
        return True
