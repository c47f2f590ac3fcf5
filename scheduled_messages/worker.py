import datetime
import logging
import queue
import threading
import time
from dataclasses import dataclass, replace

from django.db import close_old_connections
from django.utils import timezone

logger = logging.getLogger(__name__)

STATE_STOPPED = 'stopped'
STATE_RUNNING = 'running'


@dataclass(frozen=True)
class SupervisorStatus:
    state: str = STATE_STOPPED
    interval: float = 60
    started_at: datetime.datetime = None
    last_run_at: datetime.datetime = None
    runs: int = 0
    last_execution_count: int = 0
    last_error_count: int = 0
    last_failure: str = None


class ExecutorSupervisor:
    """
    Periodic trigger for the executor.

    The loop thread owns its status; callers talk to it through a command
    queue (start/stop/status) and always get an immutable snapshot back.
    """

    def __init__(self, executor_factory, interval=60):
        self._executor_factory = executor_factory
        self._interval = interval
        self._commands = queue.Queue()
        self._thread = None
        self._last_status = SupervisorStatus(interval=interval)

    def start(self):
        if self.is_running():
            return self.status()
        self._thread = threading.Thread(target=self._run, name='scheduled-message-supervisor', daemon=True)
        self._thread.start()
        return self.status()

    def stop(self):
        if not self.is_running():
            return self._last_status
        self._last_status = self._ask('stop')
        self._thread.join()
        return self._last_status

    def status(self):
        if not self.is_running():
            return self._last_status
        self._last_status = self._ask('status')
        return self._last_status

    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout=None):
        """Block until the loop stops or ``timeout`` passes; True while still running."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self.is_running()

    def _ask(self, command):
        reply = queue.Queue(maxsize=1)
        self._commands.put((command, reply))
        return reply.get()

    def _run(self):
        status = replace(self._last_status, state=STATE_RUNNING, started_at=timezone.now())
        logger.info(f"Scheduled message supervisor started (interval: {self._interval}s)")
        next_tick = time.monotonic()
        while True:
            try:
                command, reply = self._commands.get(timeout=max(0, next_tick - time.monotonic()))
            except queue.Empty:
                status = self._tick(status)
                next_tick = time.monotonic() + self._interval
                continue
            if command == 'stop':
                status = replace(status, state=STATE_STOPPED)
                reply.put(status)
                break
            reply.put(status)
        logger.info(f"Scheduled message supervisor stopped after {status.runs} runs")

    def _tick(self, status):
        close_old_connections()
        try:
            result = self._executor_factory().execute_due_messages()
        except Exception as e:
            logger.exception("Scheduled message run failed")
            return replace(status, last_run_at=timezone.now(), runs=status.runs + 1, last_failure=str(e))
        finally:
            close_old_connections()

        executions = len(result['executions'])
        errors = len(result['errors'])
        if result['success']:
            logger.info(f"Scheduled message run completed. Executions: {executions}")
        else:
            logger.error(f"Scheduled message run completed with errors. Executions: {executions}, Errors: {errors}")
        return replace(
            status,
            last_run_at=timezone.now(),
            runs=status.runs + 1,
            last_execution_count=executions,
            last_error_count=errors,
            last_failure=None,
        )
