# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Remote (SSH) session detection.

A conversion started over SSH streams the archive to standard output so the
caller can redirect it on the local side::

    ssh host docker2lxc alpine:3.20 > alpine.tar.gz

Detection looks at the command name of the parent process.  When the tool
is run as an SSH remote command, the parent is ``sshd`` (or the shell
``sshd`` spawned, which execs the command directly).
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable


logger = logging.getLogger(__name__)

#: Signature of a function returning the command name of a process.
ProcessInspector = Callable[[int], str | None]

_SSH_DAEMON = "sshd"


def process_command_name(pid: int) -> str | None:
    """Return the command name of a process, as reported by ``ps``.

    Args:
        pid: Process ID to inspect.

    Returns:
        The command name, or None if it cannot be determined.
    """
    try:
        result = subprocess.run(
            ["ps", "-o", "comm=", "-p", str(pid)],
            capture_output=True,
            text=True,
        )
    except OSError as e:
        logger.debug("Cannot inspect process %d: %s", pid, e)
        return None

    if result.returncode != 0:
        logger.debug("ps exited with %d for pid %d", result.returncode, pid)
        return None
    name = result.stdout.strip()
    return name or None


def is_remote_session(
    inspector: ProcessInspector = process_command_name,
    parent_pid: int | None = None,
) -> bool:
    """Check whether this process was launched by the SSH daemon.

    Args:
        inspector: Function mapping a PID to its command name.
        parent_pid: PID to inspect.  Defaults to this process's parent.

    Returns:
        True if the parent command name contains ``sshd``.  Any failure to
        inspect the parent counts as a local session.
    """
    pid = os.getppid() if parent_pid is None else parent_pid
    name = inspector(pid)
    remote = name is not None and _SSH_DAEMON in name
    logger.debug("Parent process %d is %r (remote=%s)", pid, name, remote)
    return remote
