# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Export Docker images as LXC-compatible root filesystem tarballs."""

from importlib.metadata import PackageNotFoundError, version


try:
    __version__ = version("docker2lxc")
except PackageNotFoundError:  # pragma: no cover
    # Running from a source checkout without an install
    __version__ = "0.0.0+unknown"
