# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Run options for a conversion.

There is no configuration file.  Each setting is taken from the command
line if given, otherwise from an environment variable, otherwise from its
default.  Environment variables may be placed in a ``.env`` file in the
working directory; it is loaded once and never overrides variables that are
already set.

Environment variables:

* ``DOCKER2LXC_RUNTIME`` — container runtime command (default ``docker``)
* ``DOCKER2LXC_COMPRESSOR`` — compression command (default ``gzip``)
* ``DOCKER2LXC_REMOTE`` — ``auto``, or a boolean forcing stdout output
* ``DOCKER2LXC_DEBUG`` — boolean enabling debug logging
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from docker2lxc.remote import is_remote_session


logger = logging.getLogger(__name__)

ENV_RUNTIME = "DOCKER2LXC_RUNTIME"
ENV_COMPRESSOR = "DOCKER2LXC_COMPRESSOR"
ENV_REMOTE = "DOCKER2LXC_REMOTE"
ENV_DEBUG = "DOCKER2LXC_DEBUG"

DEFAULT_RUNTIME = "docker"
DEFAULT_COMPRESSOR = "gzip"

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off"})
_AUTO = "auto"

_dotenv_loaded = False


class ConfigError(Exception):
    """Raised for invalid command-line or environment settings."""


def load_dotenv_once() -> None:
    """Load ``.env`` from the working directory, once per process."""
    global _dotenv_loaded
    if _dotenv_loaded:
        return

    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        load_dotenv(cwd_env)
        logger.debug("Loaded .env from %s", cwd_env)
    _dotenv_loaded = True


def reset_dotenv_state() -> None:
    """Reset the dotenv loaded state. For testing only."""
    global _dotenv_loaded
    _dotenv_loaded = False


def _coerce_bool(name: str, value: str) -> bool:
    """Coerce an environment value to bool."""
    s = value.lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ConfigError(f"Invalid value for {name}: {value!r}")


def _env(environ: Mapping[str, str], name: str) -> str | None:
    """Return a stripped environment value, or None if unset or empty."""
    value = environ.get(name, "").strip()
    return value or None


def resolve_debug(
    flag: bool, environ: Mapping[str, str] | None = None
) -> bool:
    """Return whether debug logging is enabled.

    The ``--debug`` flag wins; otherwise ``DOCKER2LXC_DEBUG`` decides.
    """
    if flag:
        return True
    environ = os.environ if environ is None else environ
    value = _env(environ, ENV_DEBUG)
    return _coerce_bool(ENV_DEBUG, value) if value else False


def resolve_remote_mode(
    flag: bool | None, environ: Mapping[str, str] | None = None
) -> bool | None:
    """Return a forced remote mode, or None to auto-detect.

    Args:
        flag: True for ``--remote``, False for ``--local``, None if neither
            was given.
        environ: Environment mapping (defaults to ``os.environ``).
    """
    if flag is not None:
        return flag
    environ = os.environ if environ is None else environ
    value = _env(environ, ENV_REMOTE)
    if value is None or value.lower() == _AUTO:
        return None
    return _coerce_bool(ENV_REMOTE, value)


@dataclass(frozen=True)
class ConvertOptions:
    """Settings for a single image conversion.

    Attributes:
        image: Image reference to convert.
        output_name: Requested output file name, or None for the default.
            Ignored for remote sessions.
        runtime_command: Container runtime command line, e.g. ``docker`` or
            ``sudo docker``.
        compressor: Compression command line.
        remote: Whether the archive is streamed to standard output.
    """

    image: str
    output_name: str | None = None
    runtime_command: str = DEFAULT_RUNTIME
    compressor: str = DEFAULT_COMPRESSOR
    remote: bool = False

    def __post_init__(self) -> None:
        """Validate options.

        Raises:
            ConfigError: If a required setting is empty.
        """
        if not self.image.strip():
            raise ConfigError("Image reference must not be empty")
        try:
            runtime_argv = shlex.split(self.runtime_command)
        except ValueError as e:
            raise ConfigError(f"Invalid runtime command: {e}") from e
        if not runtime_argv:
            raise ConfigError("Runtime command must not be empty")
        if not self.compressor.strip():
            raise ConfigError("Compressor command must not be empty")


def build_options(
    image: str,
    output_name: str | None = None,
    *,
    runtime: str | None = None,
    compressor: str | None = None,
    remote: bool | None = None,
    environ: Mapping[str, str] | None = None,
    detect_remote: Callable[[], bool] = is_remote_session,
) -> ConvertOptions:
    """Merge command-line values with the environment into options.

    Args:
        image: Image reference from the command line.
        output_name: Optional output file name from the command line.
        runtime: ``--runtime`` value, if given.
        compressor: ``--compressor`` value, if given.
        remote: ``--remote``/``--local`` value, if given.
        environ: Environment mapping (defaults to ``os.environ``).
        detect_remote: Called when neither flag nor environment forces
            the remote mode.

    Raises:
        ConfigError: If a value is invalid.
    """
    environ = os.environ if environ is None else environ

    mode = resolve_remote_mode(remote, environ)
    if mode is None:
        mode = detect_remote()

    return ConvertOptions(
        image=image,
        output_name=output_name,
        runtime_command=runtime
        or _env(environ, ENV_RUNTIME)
        or DEFAULT_RUNTIME,
        compressor=compressor
        or _env(environ, ENV_COMPRESSOR)
        or DEFAULT_COMPRESSOR,
        remote=mode,
    )
