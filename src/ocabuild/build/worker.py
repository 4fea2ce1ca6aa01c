"""Background checks — run a validation or build off the foreground thread."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ocabuild.build.facade import BuildFacade
from ocabuild.build.planner import BuildPlanner
from ocabuild.build.validate import validate_graph
from ocabuild.core.errors import OcaBuildError
from ocabuild.graph.store import MutableGraph

logger = logging.getLogger(__name__)


class Busy(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    BUILDING = "building"


@dataclass(frozen=True)
class Message:
    level: str  # "error" or "info"
    text: str
    path: Path | None = None

    @classmethod
    def error(cls, text: str, path: Path | None = None) -> Message:
        return cls("error", text, path)

    @classmethod
    def info(cls, text: str, path: Path | None = None) -> Message:
        return cls("info", text, path)


class MessageList:
    """Result list shared between one worker and the foreground poller.

    Every request takes a new generation number. Only the worker holding
    the current generation may publish; results of superseded requests are
    dropped, so a second check started while one is in flight wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[Message] = []
        self._busy = Busy.IDLE
        self._last_action = Busy.IDLE
        self._generation = 0

    def begin(self, kind: Busy) -> int:
        with self._lock:
            self._generation += 1
            self._busy = kind
            return self._generation

    def publish(self, generation: int, items: list[Message]) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.info("Discarding results of superseded check %d", generation)
                return False
            self._items = list(items)
            self._last_action = self._busy
            self._busy = Busy.IDLE
            return True

    @property
    def busy(self) -> Busy:
        with self._lock:
            return self._busy

    @property
    def last_action(self) -> Busy:
        with self._lock:
            return self._last_action

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def items(self) -> list[Message]:
        with self._lock:
            return list(self._items)

    def errors(self) -> list[Message]:
        return [m for m in self.items() if m.level == "error"]


class BackgroundChecker:
    """Starts one detached worker thread per request. No cancellation."""

    def __init__(self) -> None:
        self.messages = MessageList()
        self._thread: threading.Thread | None = None

    @property
    def busy(self) -> bool:
        return self.messages.busy is not Busy.IDLE

    def start(self, kind: Busy, task: Callable[[], list[Message]]) -> int:
        generation = self.messages.begin(kind)
        thread = threading.Thread(
            target=self._run,
            args=(generation, task),
            name=f"ocabuild-{kind.value}-{generation}",
            daemon=True,
        )
        self._thread = thread
        thread.start()
        return generation

    def _run(self, generation: int, task: Callable[[], list[Message]]) -> None:
        try:
            items = task()
        except OcaBuildError as e:
            items = [Message.error(str(e), getattr(e, "path", None))]
        except Exception as e:
            # A crashed worker must still clear the busy flag
            logger.exception("Background check %d crashed", generation)
            items = [Message.error(f"Unexpected error occurred: {e}")]
        self.messages.publish(generation, items)

    def wait(self, timeout: float | None = None) -> bool:
        """Join the most recent worker. Returns False if it is still running."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # -- Tasks --

    def validate(self, graph: MutableGraph, facade: BuildFacade) -> int:
        def task() -> list[Message]:
            result = validate_graph(graph, facade)
            items = [
                Message.error(text, issue.path)
                for issue in result.issues
                for text in issue.messages
            ]
            items.append(Message.info(f"{len(result.valid)} file(s) valid"))
            return items

        return self.start(Busy.VALIDATING, task)

    def build(
        self,
        planner: BuildPlanner,
        directory: Path | None = None,
        file: Path | None = None,
    ) -> int:
        def task() -> list[Message]:
            plan, report = planner.run(directory=directory, file=file)
            items = [Message.error(f.message, f.path) for f in plan.parse_failures]
            if report.failure is not None:
                items.extend(
                    Message.error(text, report.failure.path) for text in report.failure.errors
                )
            items.extend(Message.info(f"Built {name}: {artifact_id}") for name, artifact_id in report.built)
            return items

        return self.start(Busy.BUILDING, task)
