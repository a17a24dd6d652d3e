# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Filesystem export pipeline.

Streams ``<runtime> export <container>`` through a compressor into the
output target::

    docker export <container> | gzip > template.tar.gz

The output target is chosen once per invocation: a ``.tar.gz`` file for
local sessions, standard output for remote ones.
"""

from __future__ import annotations

import contextlib
import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from docker2lxc.runtime import (
    ContainerRuntime,
    ConversionError,
    format_command,
)


logger = logging.getLogger(__name__)

EXIT_EXPORT_FAILED = 4

DEFAULT_OUTPUT_NAME = "template"
ARCHIVE_SUFFIX = ".tar.gz"


class ExportError(ConversionError):
    """Raised when the export pipeline fails."""

    exit_code = EXIT_EXPORT_FAILED


@dataclass(frozen=True)
class OutputTarget:
    """Where the compressed archive is written.

    Attributes:
        path: Output file path, or None for standard output.
    """

    path: Path | None = None

    @property
    def is_stdout(self) -> bool:
        return self.path is None

    def describe(self) -> str:
        """Return a short description for log messages."""
        if self.path is None:
            return "stdout"
        return f"'{self.path}'"


def normalize_output_name(name: str | None) -> str:
    """Return the archive file name for a user-supplied output name.

    A trailing ``.tar.gz`` is stripped once and added back, so ``custom`` and
    ``custom.tar.gz`` both map to ``custom.tar.gz``.  An empty or missing
    name falls back to ``template.tar.gz``.
    """
    if not name:
        name = DEFAULT_OUTPUT_NAME
    if name.endswith(ARCHIVE_SUFFIX):
        name = name[: -len(ARCHIVE_SUFFIX)]
    return name + ARCHIVE_SUFFIX


def resolve_output_target(name: str | None, remote: bool) -> OutputTarget:
    """Pick the output target for this invocation.

    Remote sessions always stream to standard output; the requested name is
    ignored.
    """
    if remote:
        if name:
            logger.debug("Remote session, ignoring output name %r", name)
        return OutputTarget()
    return OutputTarget(path=Path(normalize_output_name(name)))


def _compressor_command(compressor: str) -> list[str]:
    cmd = shlex.split(compressor)
    if not cmd:
        raise ExportError("Empty compressor command, aborting.")
    return cmd


def _stop(process: subprocess.Popen[bytes]) -> None:
    """Kill a pipeline process if it is still running and reap it."""
    if process.poll() is None:
        process.kill()
    process.wait()


@contextlib.contextmanager
def _open_sink(target: OutputTarget, stdout: IO[bytes] | None):
    if target.path is None:
        sink = stdout if stdout is not None else sys.stdout.buffer
        sys.stdout.flush()
        yield sink
        sink.flush()
        return
    try:
        handle = target.path.open("wb")
    except OSError as e:
        raise ExportError(f"Cannot write '{target.path}': {e}") from e
    # Only a file this run created or truncated is removed on failure.
    try:
        with handle:
            yield handle
    except BaseException:
        target.path.unlink(missing_ok=True)
        raise


def stream_export(
    runtime: ContainerRuntime,
    container_id: str,
    target: OutputTarget,
    compressor: str = "gzip",
    stdout: IO[bytes] | None = None,
) -> None:
    """Export a container filesystem through a compressor.

    Args:
        runtime: Runtime that owns the container.
        container_id: Container to export.
        target: Output file or standard output.
        compressor: Compression command line, read from stdin and written
            to stdout (e.g. ``gzip`` or ``pigz -p 4``).
        stdout: Binary stream used when ``target`` is standard output.
            Defaults to ``sys.stdout.buffer``.

    Raises:
        ExportError: If the output file cannot be opened, or either side of
            the pipeline cannot be started or exits non-zero.  A partially
            written output file is removed.
    """
    export_cmd = runtime.export_command(container_id)
    compress_cmd = _compressor_command(compressor)
    logger.debug(
        "Running: %s | %s",
        format_command(export_cmd),
        format_command(compress_cmd),
    )

    with _open_sink(target, stdout) as sink:
        _run_pipeline(export_cmd, compress_cmd, sink)


def _run_pipeline(
    export_cmd: list[str],
    compress_cmd: list[str],
    sink: IO[bytes],
) -> None:
    try:
        exporter = subprocess.Popen(export_cmd, stdout=subprocess.PIPE)
    except OSError as e:
        raise ExportError(f"Cannot run {export_cmd[0]}: {e}") from e

    try:
        compressor = subprocess.Popen(
            compress_cmd, stdin=exporter.stdout, stdout=sink
        )
    except OSError as e:
        _stop(exporter)
        raise ExportError(f"Cannot run {compress_cmd[0]}: {e}") from e

    # Drop our copy of the pipe so the exporter sees SIGPIPE if the
    # compressor exits early.
    if exporter.stdout is not None:
        exporter.stdout.close()

    try:
        compress_rc = compressor.wait()
        export_rc = exporter.wait()
    except BaseException:
        _stop(compressor)
        _stop(exporter)
        raise

    # A failed compressor makes the exporter die of SIGPIPE, so its status
    # is the one worth reporting.
    if compress_rc != 0:
        raise ExportError(
            f"{compress_cmd[0]} exited with code {compress_rc}, aborting."
        )
    if export_rc != 0:
        raise ExportError(
            f"{export_cmd[0]} export exited with code {export_rc}, aborting."
        )
