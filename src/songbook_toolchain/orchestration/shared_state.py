"""
Shared data structures for the orchestration module.

This module defines the runtime state of a task runner and the timeout
constants used across the orchestration components.
"""

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from ..models.tasks import BuildTask

if TYPE_CHECKING:
    from .process_handle import ProcessHandle


@dataclass
class RuntimeState:
    """
    Runtime state of one TaskRunner.

    Guarded by ``lock``; ``cancel_requested`` may be set from any thread.
    """
    lock: threading.RLock = field(default_factory=threading.RLock)
    active_task: Optional[BuildTask] = None
    current_handle: Optional["ProcessHandle"] = None
    cancel_requested: threading.Event = field(default_factory=threading.Event)
    # Every handle this runner has created, in creation order
    handles: List["ProcessHandle"] = field(default_factory=list)


class TimeoutConstants:
    """
    Centralized timeout configuration.

    Termination timeouts are defaults; the engine configuration overrides them.
    """
    # Process termination timeouts
    TERMINATION_GRACEFUL_TIMEOUT = 3.0
    TERMINATION_FORCE_TIMEOUT = 2.0

    # Time allowed for output readers to drain after the process exits
    READER_DRAIN_TIMEOUT = 10.0

