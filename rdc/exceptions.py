# -*- coding: utf-8 -*-
"""
RDC Exception Hierarchy - Domain-specific exceptions for container I/O.

Provides a small exception hierarchy that lets callers catch container
errors distinctly from Python built-in exceptions. All RDC exceptions
subclass both ``RdcError`` and the appropriate built-in exception for
compatibility with code that catches ``ValueError`` or ``IOError``.

Author
------
Steven Siebert

License
-------
MIT License
Copyright (c) 2024 geoint.org
See LICENSE file for full text.

Created
-------
2026-10-19

Modified
--------
2026-10-19
"""

from typing import List, Optional, Tuple


class RdcError(Exception):
    """Base exception for all RDC errors."""


class ValidationError(RdcError, ValueError):
    """Invalid input data, parameters, or configuration.

    Raised for shape mismatches, out-of-extent tiles, duplicate node
    names, and unsupported element types.
    """


class DependencyError(RdcError, ImportError):
    """Missing optional dependency required by a codec.

    Raised when a codec requires an optional package (rasterio, h5py)
    that is not installed.
    """


class ContainerStateError(RdcError, RuntimeError):
    """Operation called in the wrong writer or reader lifecycle state."""


class ContainerExistsError(RdcError, FileExistsError):
    """Output container already exists and overwriting is not allowed."""


class MalformedContainerError(RdcError, ValueError):
    """Container structure or metadata is missing or unreadable.

    Fatal for the whole read; no partial product is returned.
    """


class UnsupportedCodecError(RdcError, ValueError):
    """Binary format identifier has no registered codec."""


class RasterWriteError(RdcError, IOError):
    """A band's codec failed while writing.

    Parameters
    ----------
    band_name : str
        Name of the band (or tie-point grid) being written.
    message : str
        Description of the failure.
    """

    def __init__(self, band_name: str, message: str) -> None:
        super().__init__(f"Band '{band_name}': {message}")
        self.band_name = band_name


class RasterReadError(RdcError, IOError):
    """A band's codec failed while reading, or its data file is missing.

    Parameters
    ----------
    band_name : str
        Name of the band (or tie-point grid) being read.
    message : str
        Description of the failure.
    """

    def __init__(self, band_name: str, message: str) -> None:
        super().__init__(f"Band '{band_name}': {message}")
        self.band_name = band_name


class ResourceReleaseError(RdcError, IOError):
    """One or more handles failed to close cleanly.

    Raised only after every handle was given a chance to close.

    Parameters
    ----------
    errors : List[Tuple[str, BaseException]]
        ``(resource_name, exception)`` pairs, in close order.
    """

    def __init__(
        self,
        errors: List[Tuple[str, BaseException]],
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            names = ', '.join(name for name, _ in errors)
            message = f"Failed to release {len(errors)} resource(s): {names}"
        super().__init__(message)
        self.errors = list(errors)
