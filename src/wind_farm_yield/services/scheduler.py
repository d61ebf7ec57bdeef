from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional, Set

from wind_farm_yield.logging_config import get_logger

logger = get_logger(__name__)


class RecalcScheduler:
    """Debounces "layout changed" signals into one action per quiet period.

    Each scenario has at most one pending timer. A new signal cancels the
    pending timer for that scenario and arms a fresh one; when a timer runs
    out it calls ``action(scenario_id)`` once. Failures in the action are
    logged (and handed to ``on_error`` when given) and never stop the
    scheduler from accepting further signals.
    """

    def __init__(
        self,
        action: Callable[[str], Any],
        delay_seconds: float = 0.3,
        on_error: Optional[Callable[[str, BaseException], None]] = None,
    ):
        self._action = action
        self.delay_seconds = delay_seconds
        self._on_error = on_error
        self._timers: Dict[str, threading.Timer] = {}
        self._running: Set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._closed = False

    def signal(self, scenario_id: str) -> None:
        with self._lock:
            if self._closed:
                logger.warning("Scheduler is shut down, ignoring signal for scenario %s", scenario_id)
                return
            previous = self._timers.pop(scenario_id, None)
            if previous is not None:
                previous.cancel()
                logger.debug("Superseded pending recalculation for scenario %s", scenario_id)

            timer = threading.Timer(self.delay_seconds, self._fire, args=(scenario_id,))
            timer.daemon = True
            timer.name = f"recalc-{scenario_id}"
            self._timers[scenario_id] = timer
            timer.start()

    def pending(self) -> List[str]:
        with self._lock:
            return sorted(self._timers)

    def _fire(self, scenario_id: str) -> None:
        me = threading.current_thread()
        with self._lock:
            # A superseding signal may have replaced us after cancel() lost the race
            if self._timers.get(scenario_id) is not me:
                return
            del self._timers[scenario_id]
            self._running.add(me)
        try:
            self._run(scenario_id)
        finally:
            with self._lock:
                self._running.discard(me)

    def _run(self, scenario_id: str) -> None:
        logger.debug("Quiet period elapsed, recalculating scenario %s", scenario_id)
        try:
            self._action(scenario_id)
        except Exception as exc:
            logger.exception("Scheduled recalculation failed for scenario %s", scenario_id)
            if self._on_error is not None:
                try:
                    self._on_error(scenario_id, exc)
                except Exception:
                    logger.exception("Error handler failed for scenario %s", scenario_id)

    def shutdown(self, run_pending: bool = False, timeout: Optional[float] = 5.0) -> None:
        with self._lock:
            self._closed = True
            pending = list(self._timers.items())
            self._timers.clear()
            running = list(self._running)

        for _, timer in pending:
            timer.cancel()
        if run_pending:
            for scenario_id, _ in pending:
                self._run(scenario_id)
        for thread in running:
            if thread is not threading.current_thread():
                thread.join(timeout)
        logger.debug(
            "Scheduler shut down (pending=%d, ran_pending=%s, in_flight=%d)",
            len(pending),
            run_pending,
            len(running),
        )
