# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across test modules."""

import io
import logging
import subprocess
from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest

from docker2lxc.config import ConvertOptions, reset_dotenv_state
from docker2lxc.logging import ColorFormatter
from docker2lxc.runtime import ContainerRuntime


@pytest.fixture(autouse=True)
def _isolate_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[None]:
    """Clear docker2lxc settings and reset .env loading for each test."""
    for name in (
        "DOCKER2LXC_RUNTIME",
        "DOCKER2LXC_COMPRESSOR",
        "DOCKER2LXC_REMOTE",
        "DOCKER2LXC_DEBUG",
    ):
        # setenv first so monkeypatch restores vars set by load_dotenv
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("NO_COLOR", "1")
    reset_dotenv_state()

    root_logger = logging.getLogger()
    saved_level = root_logger.level
    yield
    # Drop handlers installed by configure_logging()
    for handler in root_logger.handlers[:]:
        if isinstance(handler.formatter, ColorFormatter):
            root_logger.removeHandler(handler)
    root_logger.setLevel(saved_level)
    reset_dotenv_state()


@pytest.fixture
def progress_stream() -> io.StringIO:
    """Stream standing in for stderr during pulls."""
    return io.StringIO()


@pytest.fixture
def runtime(progress_stream: io.StringIO) -> ContainerRuntime:
    """Docker runtime wrapper with pull progress captured."""
    return ContainerRuntime("docker", progress_stream=progress_stream)


@pytest.fixture
def options() -> ConvertOptions:
    """Local conversion of alpine with default settings."""
    return ConvertOptions(image="alpine:3.20")


def completed(
    args: list[str] | None = None,
    returncode: int = 0,
    stdout: str = "",
    stderr: str = "",
) -> subprocess.CompletedProcess[str]:
    """Build a CompletedProcess as returned by subprocess.run."""
    return subprocess.CompletedProcess(
        args=args or [],
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
    )


def create_mock_popen(returncode: int = 0) -> MagicMock:
    """Create a mock Popen object for one side of the export pipeline."""
    mock = MagicMock()
    mock.returncode = returncode
    mock.stdout = MagicMock()
    mock.wait.return_value = returncode
    mock.poll.return_value = returncode
    return mock
