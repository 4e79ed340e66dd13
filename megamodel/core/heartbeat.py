"""
Stage 3 Implementation - Heartbeat
Periodic task scheduler driving the staleness sweep and invariant audits.
"""

import time
import threading
from typing import Callable, Dict, List, Optional

from .config import validate_sweeper_config

from util.logging import logger


class Heartbeat:
    """
    Cooperative periodic scheduler.

    Tasks are plain callables registered with an interval. `tick()` runs
    every due task once and is what tests drive directly; `start()` runs
    the same loop on a daemon thread until `stop()` is called. The clock
    is injectable and must be monotonic.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, poll_interval: float = 0.1):
        self.tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run}
        self.running = False
        self.shutdown_event: Optional[threading.Event] = None
        self.poll_interval = poll_interval
        self._clock = clock
        self._thread: Optional[threading.Thread] = None
        self._tasks_lock = threading.Lock()

    def register_task(self, name: str, interval_sec: float, func: Callable):
        """
        Register a task to be executed periodically.

        Args:
            name: Unique task identifier
            interval_sec: How often to run this task in seconds
            func: Function to call (should be fast and not block)
        """
        if not callable(func):
            raise ValueError(f"Task function must be callable: {func}")

        if interval_sec <= 0:
            raise ValueError(f"Interval must be > 0 seconds: {interval_sec}")

        issues = validate_sweeper_config()
        if issues:
            raise ValueError(f"Heartbeat configuration invalid: {issues}")

        with self._tasks_lock:
            self.tasks[name] = {
                "func": func,
                "interval": interval_sec,
                "last_run": None
            }

        logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")

    def unregister_task(self, name: str):
        """Remove a task from the registry."""
        with self._tasks_lock:
            if name in self.tasks:
                del self.tasks[name]
                logger.info(f"Unregistered heartbeat task '{name}'")

    def list_tasks(self) -> List[str]:
        """Return list of registered task names."""
        return list(self.tasks.keys())

    def should_run_task(self, name: str, task_info: Dict, now: float = None) -> bool:
        """Check if a task should run this cycle."""
        if task_info["last_run"] is None:
            return True  # Run immediately if never run

        if now is None:
            now = self._clock()
        return now - task_info["last_run"] >= task_info["interval"]

    def run_task(self, name: str, task_info: Dict):
        """Execute a task and record timing."""
        start_time = self._clock()

        try:
            task_info["func"]()
        except Exception as e:
            end_time = self._clock()
            logger.log_heartbeat_task(name, start_time, end_time, status="failed", details={"error": str(e)})
            raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}") from e

        end_time = self._clock()
        task_info["last_run"] = end_time
        logger.log_heartbeat_task(name, start_time, end_time)

    def tick(self, now: float = None) -> List[str]:
        """Run every due task once. Returns the names of tasks that ran."""
        if now is None:
            now = self._clock()

        with self._tasks_lock:
            due = [(name, info) for name, info in self.tasks.items() if self.should_run_task(name, info, now)]

        ran = []
        for name, task_info in due:
            try:
                self.run_task(name, task_info)
                ran.append(name)
            except RuntimeError as e:
                # Error isolation - log error but keep the loop alive
                task_info["last_run"] = self._clock()
                logger.error(f"Heartbeat task '{name}' failed: {e}")
        return ran

    def _loop(self, shutdown_event: threading.Event):
        try:
            while not shutdown_event.is_set():
                self.tick()
                shutdown_event.wait(self.poll_interval)
        finally:
            # A loop outlived by a restart must not clear the new loop's flag
            if self.shutdown_event is shutdown_event:
                self.running = False
            logger.info("Heartbeat loop stopped")

    def start(self):
        """Start the heartbeat loop on a background daemon thread."""
        if self.running:
            raise RuntimeError("Heartbeat already running")

        issues = validate_sweeper_config()
        if issues:
            raise ValueError(f"Heartbeat configuration invalid: {issues}")

        self.running = True
        self.shutdown_event = threading.Event()
        self._thread = threading.Thread(target=self._loop, args=(self.shutdown_event,), name="megamodel-heartbeat", daemon=True)

        logger.info(f"Starting heartbeat loop, tasks: {self.list_tasks()}")
        self._thread.start()

    def stop(self, timeout: float = 2.0):
        """Stop the heartbeat loop. Task state is left untouched for a later restart."""
        if not self.running:
            logger.info("Heartbeat not running")
            return

        logger.info("Stopping heartbeat loop...")
        self.running = False

        if self.shutdown_event:
            self.shutdown_event.set()

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def reset_task(self, name: str):
        """Reset a task's last_run time to force immediate execution."""
        if name in self.tasks:
            self.tasks[name]["last_run"] = None

    def get_status(self) -> Dict:
        """Return current heartbeat status for monitoring."""
        return {
            "status": "running" if self.running else "stopped",
            "tasks": {
                name: {
                    "interval_sec": info["interval"],
                    "last_run": info["last_run"],
                    "next_run": info["last_run"] + info["interval"] if info["last_run"] is not None else None
                }
                for name, info in self.tasks.items()
            }
        }
