# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Image-to-tarball conversion.

Runs the fixed stage sequence:

1. Probe: the runtime binary must be installed.
2. Pull: fetch the image.
3. Run: start a detached container with ``sh`` as entrypoint.
4. Export: stream the container filesystem through the compressor.
5. Teardown: kill the container (removed automatically via ``--rm``).

The first failing stage raises and later stages are skipped, except that a
started container is always killed.
"""

from __future__ import annotations

import logging
from typing import IO

from docker2lxc.config import ConvertOptions
from docker2lxc.export import (
    OutputTarget,
    resolve_output_target,
    stream_export,
)
from docker2lxc.runtime import ContainerRuntime


logger = logging.getLogger(__name__)


def convert(
    options: ConvertOptions,
    runtime: ContainerRuntime | None = None,
    stdout: IO[bytes] | None = None,
) -> OutputTarget:
    """Convert an image into a compressed root filesystem archive.

    Args:
        options: Conversion settings.
        runtime: Runtime wrapper to use.  Built from
            ``options.runtime_command`` when omitted.
        stdout: Binary stream for remote sessions (defaults to the process
            standard output).

    Returns:
        The output target that received the archive.

    Raises:
        ConversionError: A subclass identifying the failing stage.
    """
    if runtime is None:
        runtime = ContainerRuntime(options.runtime_command)

    runtime.ensure_available(remote=options.remote)
    target = resolve_output_target(options.output_name, options.remote)

    logger.info(
        "Pulling %s image: '%s'...", runtime.display_name, options.image
    )
    runtime.pull(options.image)

    container_id = runtime.start(options.image)
    try:
        logger.info("Exporting root filesystem to %s...", target.describe())
        stream_export(
            runtime,
            container_id,
            target,
            compressor=options.compressor,
            stdout=stdout,
        )
    finally:
        logger.info("Stopping the running container...")
        runtime.kill(container_id)

    return target
