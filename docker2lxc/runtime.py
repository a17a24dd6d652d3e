# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Container runtime wrapper for docker2lxc.

Drives the runtime command-line tool (``docker`` or ``podman``) through the
four operations a conversion needs: pull, run, export and kill.  Every
operation shells out; no runtime API or socket is used.

Failures that end a conversion are raised as subclasses of
:class:`ConversionError`, each carrying the process exit code the CLI reports.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import sys
from typing import IO


logger = logging.getLogger(__name__)

EXIT_RUNTIME_MISSING = 1
EXIT_PULL_FAILED = 2
EXIT_START_FAILED = 3


class ConversionError(Exception):
    """Base exception for failures that abort a conversion.

    Attributes:
        exit_code: Process exit status the CLI reports for this failure.
    """

    exit_code = 1


class RuntimeNotFoundError(ConversionError):
    """Raised when the container runtime binary is not on PATH."""

    exit_code = EXIT_RUNTIME_MISSING


class ImagePullError(ConversionError):
    """Raised when the image cannot be pulled."""

    exit_code = EXIT_PULL_FAILED


class ContainerStartError(ConversionError):
    """Raised when a container cannot be started from the image."""

    exit_code = EXIT_START_FAILED


def format_command(cmd: list[str]) -> str:
    """Render a command list as a shell-quoted string for log output."""
    return " ".join(shlex.quote(part) for part in cmd)


_WRAPPERS = frozenset({"sudo", "doas", "env"})


class ContainerRuntime:
    """Thin wrapper around a container runtime CLI.

    Attributes:
        command: Runtime command line (e.g. ``docker`` or ``sudo docker``).
        argv: ``command`` split into arguments, prepended to every
            runtime invocation.
    """

    def __init__(
        self,
        command: str = "docker",
        progress_stream: IO[str] | None = None,
    ) -> None:
        """Initialize runtime wrapper.

        Args:
            command: Runtime command line, split with shell quoting rules.
            progress_stream: Where pull progress is forwarded.  Defaults to
                ``sys.stderr`` so standard output stays free for the
                archive stream.

        Raises:
            ValueError: If ``command`` is empty or cannot be parsed.
        """
        argv = shlex.split(command)
        if not argv:
            raise ValueError("Runtime command must not be empty")
        self.command = command
        self.argv = argv
        self._progress_stream = progress_stream

    @property
    def display_name(self) -> str:
        """Human-readable runtime name used in error messages.

        Leading privilege wrappers such as ``sudo`` are skipped, so
        ``sudo docker`` is still reported as Docker.
        """
        names = [part.rsplit("/", 1)[-1] for part in self.argv]
        for name in names:
            if name not in _WRAPPERS:
                return name.capitalize()
        return names[0].capitalize()

    def is_available(self) -> bool:
        """Check whether the runtime executable can be found on PATH."""
        return shutil.which(self.argv[0]) is not None

    def ensure_available(self, remote: bool = False) -> None:
        """Verify the runtime is installed.

        Args:
            remote: Whether the invocation came in over SSH.  Only changes
                the wording of the error message.

        Raises:
            RuntimeNotFoundError: If the runtime binary is missing.
        """
        path = shutil.which(self.argv[0])
        if path is not None:
            logger.debug("Found %s at %s", self.argv[0], path)
            return
        where = " on the remote machine" if remote else ""
        raise RuntimeNotFoundError(
            f"{self.display_name} is not installed{where}, aborting."
        )

    def pull(self, image: str) -> None:
        """Pull an image, forwarding runtime progress to stderr.

        Raises:
            ImagePullError: If the runtime fails to pull the image.
        """
        cmd = [*self.argv, "pull", image]
        logger.debug("Running: %s", format_command(cmd))
        stream = self._progress_stream
        if stream is None:
            stream = sys.stderr
        try:
            subprocess.run(cmd, check=True, stdout=stream)
        except (subprocess.CalledProcessError, OSError) as e:
            logger.debug("Pull failed: %s", e)
            raise ImagePullError(
                f"Image '{image}' not found, aborting."
            ) from e

    def start(self, image: str) -> str:
        """Start a detached, auto-removed container that idles on ``sh``.

        The container exists only to give ``export`` a filesystem to read;
        its entrypoint is replaced so images with long-running or failing
        entrypoints still work.

        Returns:
            The container ID printed by the runtime.

        Raises:
            ContainerStartError: If the container cannot be started.
        """
        cmd = [*self.argv, "run", "--rm", "--entrypoint", "sh", "-id", image]
        logger.debug("Running: %s", format_command(cmd))
        try:
            result = subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
            )
        except (subprocess.CalledProcessError, OSError) as e:
            stderr = getattr(e, "stderr", None)
            detail = stderr.strip() if stderr else str(e)
            logger.debug("Container start failed: %s", detail)
            raise ContainerStartError(
                f"Incompatible container '{image}', aborting."
            ) from e

        container_id = result.stdout.strip()
        if not container_id:
            raise ContainerStartError(
                f"Incompatible container '{image}', aborting."
            )
        logger.debug("Started container %s", container_id)
        return container_id

    def export_command(self, container_id: str) -> list[str]:
        """Build the command that streams a container's filesystem as tar."""
        return [*self.argv, "export", container_id]

    def kill(self, container_id: str) -> bool:
        """Stop a running container.

        The container was started with ``--rm`` so the runtime removes it
        once killed.  Failures are logged, never raised.

        Returns:
            True if the runtime reported success.
        """
        cmd = [*self.argv, "kill", container_id]
        logger.debug("Running: %s", format_command(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            logger.warning("Failed to stop container %s: %s", container_id, e)
            return False

        if result.returncode != 0:
            detail = result.stderr.strip() if result.stderr else ""
            logger.warning(
                "Failed to stop container %s: %s",
                container_id,
                detail or f"exit code {result.returncode}",
            )
            return False
        return True
