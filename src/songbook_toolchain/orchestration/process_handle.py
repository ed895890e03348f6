"""
Process handle: one running (or finished) external program invocation.

A handle owns a single subprocess.Popen. Output is read incrementally on
background threads and forwarded line by line to a callback, so the caller
sees progress while the tool runs. A watcher thread waits for the process to
exit, lets the readers drain the pipes and then fixes the terminal state.
"""

import logging
import os
import subprocess
import threading
import time
import uuid
from typing import Callable, List, Optional

from ..models.runtime import Invocation
from ..models.states import ProcessState, TerminalState
from ..system.commands import resolve_program
from ..validation import handle_subprocess_error
from .process_tree import (
    collect_process_tree,
    is_process_alive,
    kill_process_group,
    signal_processes,
    wait_for_descendants,
)
from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)

# Called with (handle, stream_name, text) for each complete output line.
LineCallback = Callable[["ProcessHandle", str, str], None]
DoneCallback = Callable[["ProcessHandle"], None]


class ProcessHandle:
    """
    Handle to a single external process.

    The state moves NOT_STARTED -> RUNNING -> terminal, or directly from
    NOT_STARTED to TOOL_NOT_FOUND when the program cannot be spawned.
    Terminal states never change.
    """

    def __init__(
        self,
        invocation: Invocation,
        on_line: Optional[LineCallback] = None,
        merge_stderr: bool = True,
        encoding: str = "utf-8",
        cancel_grace_timeout: float = TimeoutConstants.TERMINATION_GRACEFUL_TIMEOUT,
        kill_timeout: float = TimeoutConstants.TERMINATION_FORCE_TIMEOUT,
    ):
        self.invocation = invocation
        self.handle_id = uuid.uuid4().hex[:8]
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.lines_emitted = 0

        self._on_line = on_line
        self._merge_stderr = merge_stderr
        self._encoding = encoding
        self._cancel_grace_timeout = cancel_grace_timeout
        self._kill_timeout = kill_timeout

        self._lock = threading.RLock()
        self._emit_lock = threading.Lock()
        self._output_closed = False
        self._done = threading.Event()
        self._cancel_requested = threading.Event()
        self._state = ProcessState.NOT_STARTED
        self._terminal: Optional[TerminalState] = None
        self._process: Optional[subprocess.Popen] = None
        self._readers: List[threading.Thread] = []
        self._callbacks: List[DoneCallback] = []

    def __repr__(self) -> str:
        return f"<ProcessHandle {self.handle_id} {self.invocation.command_line()!r} {self._state.value}>"

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def terminal(self) -> Optional[TerminalState]:
        return self._terminal

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def is_running(self) -> bool:
        return self._state is ProcessState.RUNNING

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def start(self) -> ProcessState:
        """
        Spawn the process.

        Returns:
            RUNNING on success, TOOL_NOT_FOUND if the program is missing or
            cannot be executed

        Raises:
            RuntimeError: If the handle was already started
        """
        invocation = self.invocation

        with self._lock:
            if self._state is not ProcessState.NOT_STARTED:
                raise RuntimeError(f"Process handle {self.handle_id} was already started")

            env = None
            if invocation.env:
                env = os.environ.copy()
                env.update(invocation.env)

            executable = resolve_program(invocation.program, invocation.cwd, env)
            if executable is None:
                logger.error(f"Program '{invocation.program}' not found")
                self._finish_locked(TerminalState(
                    ProcessState.TOOL_NOT_FOUND,
                    message=f"'{invocation.program}' is not installed or not on PATH",
                ))
                tool_not_found = True
            else:
                tool_not_found = False
                try:
                    self._process = subprocess.Popen(
                        [executable, *invocation.args],
                        cwd=invocation.cwd,
                        env=env,
                        stdin=subprocess.DEVNULL,
                        stdout=subprocess.PIPE,
                        stderr=subprocess.STDOUT if self._merge_stderr else subprocess.PIPE,
                        text=True,
                        encoding=self._encoding,
                        errors="replace",
                        bufsize=1,
                        start_new_session=(os.name == "posix"),
                    )
                except OSError as e:
                    handle_subprocess_error(e, invocation.command_line(), reraise=False, logger=logger)
                    self._finish_locked(TerminalState(ProcessState.TOOL_NOT_FOUND, message=str(e)))
                    tool_not_found = True
                else:
                    self._state = ProcessState.RUNNING
                    self.started_at = time.time()

        if tool_not_found:
            self._run_callbacks()
            return self._state

        logger.info(f"Started '{invocation.command_line()}' in {invocation.cwd} (PID {self._process.pid})")

        streams = [("stdout", self._process.stdout)]
        if not self._merge_stderr:
            streams.append(("stderr", self._process.stderr))
        for name, stream in streams:
            reader = threading.Thread(
                target=self._read_stream,
                args=(name, stream),
                name=f"handle-{self.handle_id}-{name}",
                daemon=True,
            )
            self._readers.append(reader)
            reader.start()

        threading.Thread(target=self._watch, name=f"handle-{self.handle_id}-watch", daemon=True).start()
        return ProcessState.RUNNING

    def wait(self, timeout: Optional[float] = None) -> Optional[TerminalState]:
        """
        Block until the handle reaches a terminal state.

        Returns:
            The terminal state, or None if the timeout expired first

        Raises:
            RuntimeError: If the handle was never started
        """
        if self._state is ProcessState.NOT_STARTED:
            raise RuntimeError(f"Process handle {self.handle_id} has not been started")
        self._done.wait(timeout)
        return self._terminal

    def cancel(self) -> bool:
        """
        Request termination of the process and its children.

        The process tree is sent SIGTERM, then SIGKILL after the grace timeout.
        Termination runs in the background; use `wait` to observe the result,
        which is FAILED with ``cancelled=True``.

        Returns:
            True if the process was running and termination was requested
        """
        with self._lock:
            if self._state is not ProcessState.RUNNING or self._cancel_requested.is_set():
                return False
            self._cancel_requested.set()
            pid = self._process.pid

        logger.warning(f"Cancelling '{self.invocation.command_line()}' (PID {pid})")
        threading.Thread(
            target=self._terminate_tree,
            args=(pid,),
            name=f"handle-{self.handle_id}-cancel",
            daemon=True,
        ).start()
        return True

    def add_done_callback(self, callback: DoneCallback) -> None:
        """Call ``callback(handle)`` once the terminal state is known."""
        with self._lock:
            if self._terminal is None:
                self._callbacks.append(callback)
                return
        callback(self)

    def _read_stream(self, stream_name: str, stream) -> None:
        try:
            for raw_line in iter(stream.readline, ""):
                self._emit(stream_name, raw_line.rstrip("\r\n"))
        except (OSError, ValueError) as e:
            logger.warning(f"Reading {stream_name} of handle {self.handle_id} stopped: {e}")
        finally:
            stream.close()

    def _emit(self, stream_name: str, text: str) -> None:
        with self._emit_lock:
            if self._output_closed:
                logger.debug(f"Dropping output of handle {self.handle_id} after exit: {text!r}")
                return
            self.lines_emitted += 1
            if self._on_line is None:
                return
            try:
                self._on_line(self, stream_name, text)
            except Exception as e:
                logger.error(f"Line callback failed for handle {self.handle_id}: {e}", exc_info=True)

    def _watch(self) -> None:
        return_code = self._process.wait()

        for reader in self._readers:
            reader.join(TimeoutConstants.READER_DRAIN_TIMEOUT)

        if any(reader.is_alive() for reader in self._readers):
            # Orphaned descendants in our session still hold the pipe
            logger.warning(
                f"Output of handle {self.handle_id} still open {TimeoutConstants.READER_DRAIN_TIMEOUT}s "
                "after exit, killing the leftover process group"
            )
            kill_process_group(self._process.pid)
            for reader in self._readers:
                reader.join(self._kill_timeout)

        # Lines arriving after this point are not part of the transcript
        with self._emit_lock:
            self._output_closed = True

        terminal = self._resolve_terminal(return_code)
        with self._lock:
            self._finish_locked(terminal)
        logger.info(f"'{self.invocation.command_line()}' {terminal.describe()}")
        self._run_callbacks()

    def _resolve_terminal(self, return_code: int) -> TerminalState:
        if self._cancel_requested.is_set():
            return TerminalState(ProcessState.FAILED, exit_code=return_code, cancelled=True)
        if return_code == 0:
            return TerminalState(ProcessState.SUCCEEDED, exit_code=0)
        if return_code < 0:
            return TerminalState(ProcessState.CRASHED, signal=-return_code)
        return TerminalState(ProcessState.FAILED, exit_code=return_code)

    def _finish_locked(self, terminal: TerminalState) -> None:
        if self._terminal is not None:
            return
        self._terminal = terminal
        self._state = terminal.state
        self.finished_at = time.time()
        self._done.set()

    def _run_callbacks(self) -> None:
        with self._lock:
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Done callback failed for handle {self.handle_id}: {e}", exc_info=True)

    def _terminate_tree(self, pid: int) -> None:
        """Phased termination: SIGTERM the tree, then SIGKILL what is left."""
        tree = collect_process_tree(pid)
        descendants = tree[1:]

        # Phase 1: graceful termination
        signal_processes(tree, force=False)
        if self._done.wait(self._cancel_grace_timeout):
            leftovers = wait_for_descendants(descendants, timeout=0.1)
            if leftovers:
                logger.debug(f"Killing {len(leftovers)} orphaned children of PID {pid}")
                signal_processes(leftovers, force=True)
            return

        # Phase 2: force kill
        logger.warning(f"PID {pid} did not exit within {self._cancel_grace_timeout}s, sending SIGKILL")
        remaining = [process for process in collect_process_tree(pid) or tree if is_process_alive(process)]
        signal_processes(remaining, force=True)
        if os.name == "posix" and not self._done.is_set():
            kill_process_group(pid)

        if not self._done.wait(self._kill_timeout):
            logger.error(f"PID {pid} still running after SIGKILL")
