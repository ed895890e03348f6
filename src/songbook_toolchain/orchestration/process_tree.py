"""
Process tree signalling helpers.

A toolchain invocation often spawns children of its own (make runs the LaTeX
engine, git runs its transport helpers), so cancellation has to reach the
whole tree. These helpers collect a tree with psutil and signal it, handling
the races of processes exiting while they are being enumerated.
"""

import logging
import os
import signal
from typing import List

import psutil

logger = logging.getLogger(__name__)


def is_process_alive(process: psutil.Process) -> bool:
    """Safely check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def collect_process_tree(pid: int) -> List[psutil.Process]:
    """
    Return the process and its live descendants, parent first.

    Returns an empty list when the process no longer exists.
    """
    if pid <= 0:
        logger.warning(f"Invalid PID {pid}, no process tree to collect")
        return []

    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return []
    except psutil.AccessDenied:
        logger.warning(f"Access denied to process {pid}")
        return []

    tree = [parent]
    try:
        tree.extend(child for child in parent.children(recursive=True) if is_process_alive(child))
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        # The parent or some children exited during enumeration
        pass
    return tree


def signal_processes(processes: List[psutil.Process], force: bool) -> List[psutil.Process]:
    """
    Send SIGTERM (or SIGKILL when ``force``) to each live process.

    Returns:
        The processes that were signalled
    """
    signalled = []
    signal_name = "SIGKILL" if force else "SIGTERM"

    for process in processes:
        if not is_process_alive(process):
            continue
        try:
            if force:
                process.kill()
            else:
                process.terminate()
            signalled.append(process)
            logger.debug(f"Sent {signal_name} to PID {process.pid}")
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending {signal_name} to PID {process.pid}")

    return signalled


def wait_for_descendants(processes: List[psutil.Process], timeout: float) -> List[psutil.Process]:
    """
    Wait for processes that are *not* our direct children to exit.

    Direct children must be reaped by their subprocess.Popen owner, so callers
    pass descendants only. Returns the processes still alive after the timeout.
    """
    if not processes:
        return []
    try:
        _, still_alive = psutil.wait_procs(processes, timeout=timeout)
    except psutil.Error as e:
        logger.warning(f"Error waiting for process termination: {e}")
        still_alive = processes
    return [process for process in still_alive if is_process_alive(process)]


def kill_process_group(pgid: int) -> None:
    """SIGKILL a whole process group, ignoring groups that are already gone."""
    if not hasattr(os, "killpg"):
        return
    try:
        os.killpg(pgid, signal.SIGKILL)
        logger.debug(f"Sent SIGKILL to process group {pgid}")
    except ProcessLookupError:
        pass
    except PermissionError:
        logger.debug(f"No permission to kill process group {pgid}")
