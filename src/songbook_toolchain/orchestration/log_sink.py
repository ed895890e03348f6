"""
Log sink for the orchestration module.

The sink is the single append-only, thread-safe transcript of everything the
external tools print. Each line is attributed to the task and process handle
that produced it and classified by severity as it is appended.
"""

import logging
import threading
import time
from collections import Counter
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from ..classification import classify_line
from ..models.config import RuleConfig
from ..models.runtime import LogLine
from ..models.states import LineSeverity

logger = logging.getLogger(__name__)

# Maps (text, tool) to a severity.
LineClassifier = Callable[[str, Optional[str]], LineSeverity]
Subscriber = Callable[[LogLine], None]


class LogSink:
    """
    Append-only transcript shared by all tasks of a session.

    Lines appended from one handle keep their relative order; lines from
    different handles may interleave. Subscribers are notified synchronously,
    in append order, while the sink lock is held, so they must be quick.
    """

    def __init__(self, classifier: Optional[LineClassifier] = None):
        self._classifier = classifier
        self._lines: List[LogLine] = []
        self._lock = threading.RLock()
        self._cursor = 0
        self._subscribers: List[Subscriber] = []

    @classmethod
    def with_rules(cls, rules: Sequence[RuleConfig]) -> "LogSink":
        """Create a sink classifying lines with an explicit rule list."""
        rules = list(rules)
        return cls(classifier=lambda text, tool: classify_line(text, tool, rules))

    def append(self, task_id: str, task_label: str, handle_id: str, stream: str,
               text: str, tool: Optional[str] = None) -> LogLine:
        """
        Record one line of output.

        Args:
            task_id: Task the line belongs to
            task_label: Display name of that task
            handle_id: Process handle that produced the line
            stream: "stdout" or "stderr"
            text: The line, without its trailing newline
            tool: Basename of the program, used by tool-specific rules

        Returns:
            The stored LogLine
        """
        severity = LineSeverity.INFO
        if self._classifier is not None:
            try:
                severity = self._classifier(text, tool)
            except Exception as e:
                logger.warning(f"Line classification failed, recording as info: {e}")

        with self._lock:
            line = LogLine(
                seq=len(self._lines),
                timestamp=time.time(),
                task_id=task_id,
                task_label=task_label,
                handle_id=handle_id,
                stream=stream,
                text=text,
                severity=severity,
            )
            self._lines.append(line)
            for subscriber in self._subscribers:
                try:
                    subscriber(line)
                except Exception as e:
                    logger.error(f"Log sink subscriber failed: {e}", exc_info=True)
        return line

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """
        Register a callback invoked for every line appended from now on.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def lines(self) -> List[LogLine]:
        """Snapshot of every recorded line, in append order."""
        with self._lock:
            return list(self._lines)

    def lines_for_task(self, task_id: str) -> List[LogLine]:
        with self._lock:
            return [line for line in self._lines if line.task_id == task_id]

    def lines_for_handle(self, handle_id: str) -> List[LogLine]:
        with self._lock:
            return [line for line in self._lines if line.handle_id == handle_id]

    def read_new(self) -> List[LogLine]:
        """Return the lines appended since the previous call."""
        with self._lock:
            new_lines = self._lines[self._cursor:]
            self._cursor = len(self._lines)
            return new_lines

    def severity_counts(self, task_id: Optional[str] = None) -> Dict[LineSeverity, int]:
        with self._lock:
            counts = Counter(line.severity for line in self._lines
                             if task_id is None or line.task_id == task_id)
        return {severity: counts.get(severity, 0) for severity in LineSeverity}

    def text(self, task_id: Optional[str] = None) -> str:
        """The transcript as plain text, optionally for a single task."""
        lines = self.lines() if task_id is None else self.lines_for_task(task_id)
        return "\n".join(line.text for line in lines)

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    def __iter__(self) -> Iterator[LogLine]:
        return iter(self.lines())
