"""
Command dispatcher: one request in, exactly one terminal result out.

Runs each accepted command on a worker thread and tracks it through
PENDING -> EXECUTING -> {SUCCEEDED, REJECTED, ABORTED}. Callers get a
``concurrent.futures.Future`` that resolves with the terminal record.

Stop commands have their own worker pool so they are never queued behind
motions that may run for seconds.
"""

import logging
import threading
import time
import uuid
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from gripper.interface.device import GripperDevice

from .commands import Command, CommandResult, Stop
from .handlers import DEFAULT_SETTINGS, CommandSettings, execute_command

logger = logging.getLogger(__name__)

Executor = Callable[[GripperDevice, Command, CommandSettings], CommandResult]


class CommandStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (CommandStatus.SUCCEEDED, CommandStatus.REJECTED, CommandStatus.ABORTED)


@dataclass
class CommandRecord:
    """Lifecycle of one accepted command."""

    id: str
    command: Command
    status: CommandStatus = CommandStatus.PENDING
    result: Optional[CommandResult] = None
    submitted_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    @property
    def kind(self) -> str:
        return self.command.kind.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "status": self.status.value,
            "success": self.result.success if self.result else None,
            "error": self.result.error if self.result else None,
            "submitted_at": self.submitted_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


def status_for(result: CommandResult) -> CommandStatus:
    if result.success:
        return CommandStatus.SUCCEEDED
    if result.fault:
        return CommandStatus.ABORTED
    return CommandStatus.REJECTED


class CommandDispatcher:
    """Thread-backed request/response executor for gripper commands.

    The dispatcher does not serialise device access; concurrent commands
    reach the device concurrently and the device decides whether they queue.

    Usage::

        dispatcher = CommandDispatcher(device, settings)
        record, future = dispatcher.submit(Move(width=0.04, speed=0.1))
        final = future.result()
        assert final.status.is_terminal
    """

    def __init__(
        self,
        device: GripperDevice,
        settings: CommandSettings = DEFAULT_SETTINGS,
        command_workers: int = 4,
        stop_workers: int = 2,
        history_size: int = 200,
        executor: Executor = execute_command,
    ):
        if command_workers < 1 or stop_workers < 1:
            raise ValueError("Dispatcher needs at least one command and one stop worker")
        self._device = device
        self._settings = settings
        self._execute = executor
        self._history_size = history_size

        self._lock = threading.Lock()
        self._records: "OrderedDict[str, CommandRecord]" = OrderedDict()
        self._shutdown = False

        self._command_pool = ThreadPoolExecutor(
            max_workers=command_workers, thread_name_prefix="gripper-command"
        )
        self._stop_pool = ThreadPoolExecutor(max_workers=stop_workers, thread_name_prefix="gripper-stop")

    # -- Submission ------------------------------------------------------

    def submit(self, command: Command) -> Tuple[CommandRecord, Future]:
        """Accept *command*; returns a snapshot of its record and its future.

        Raises RuntimeError after shutdown.
        """
        pool = self._stop_pool if isinstance(command, Stop) else self._command_pool
        with self._lock:
            if self._shutdown:
                raise RuntimeError("Command dispatcher is shut down")
            record = CommandRecord(id=uuid.uuid4().hex, command=command)
            self._records[record.id] = record
            self._evict()
            future = pool.submit(self._run, record)
            snapshot = replace(record)
        logger.debug("Accepted %s command %s", record.kind, record.id)
        return snapshot, future

    def _run(self, record: CommandRecord) -> CommandRecord:
        with self._lock:
            record.status = CommandStatus.EXECUTING
            record.started_at = time.time()

        try:
            result = self._execute(self._device, record.command, self._settings)
        except Exception as e:
            logger.exception("%s command %s failed outside its handler", record.kind, record.id)
            result = CommandResult.aborted(str(e) or type(e).__name__)

        with self._lock:
            record.result = result
            record.status = status_for(result)
            record.finished_at = time.time()
            snapshot = replace(record)

        if snapshot.status is CommandStatus.SUCCEEDED:
            logger.info("%s command %s succeeded", snapshot.kind, snapshot.id)
        else:
            logger.info(
                "%s command %s %s: %s", snapshot.kind, snapshot.id, snapshot.status.value, result.error
            )
        return snapshot

    def _evict(self) -> None:
        """Drop the oldest finished records beyond the history size (must hold lock)."""
        excess = len(self._records) - self._history_size
        if excess <= 0:
            return
        for record_id in [rid for rid, r in self._records.items() if r.status.is_terminal][:excess]:
            del self._records[record_id]

    # -- Queries ---------------------------------------------------------

    def get(self, record_id: str) -> Optional[CommandRecord]:
        with self._lock:
            record = self._records.get(record_id)
            return replace(record) if record else None

    def recent(self, n: int = 50) -> List[CommandRecord]:
        if n <= 0:
            return []
        with self._lock:
            return [replace(r) for r in list(self._records.values())[-n:]]

    def in_flight(self) -> int:
        with self._lock:
            return sum(1 for r in self._records.values() if not r.status.is_terminal)

    # -- Lifecycle -------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        """Refuse new commands; queued commands still run to a terminal state."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
        self._stop_pool.shutdown(wait=wait)
        self._command_pool.shutdown(wait=wait)
        logger.info("Command dispatcher shut down")

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown
