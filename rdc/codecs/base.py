# -*- coding: utf-8 -*-
"""
Codec Base Classes - Abstract interfaces for pluggable raster codecs.

A raster codec encodes the pixels of one band (or tie-point grid) to
disk. The container engine only talks to codecs through the interfaces
defined here: a ``RasterCodec`` describes its file shape and extensions
and opens ``TileWriter`` / ``TileReader`` handles that move rectangular
tiles in and out of the encoded file(s).

Author
------
Duane Smalley, PhD
duane.d.smalley@gmail.com

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

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from rdc.exceptions import ValidationError
from rdc.vocabulary import CodecShape


@dataclass(frozen=True)
class RasterDescriptor:
    """Structural description of the raster a codec handle works on.

    Parameters
    ----------
    name : str
        Band or tie-point grid name.
    dtype : str
        NumPy element type name.
    width : int
        Number of columns.
    height : int
        Number of rows.
    no_data_value : float, optional
        No-data sentinel, for codecs that can record one.
    geocoding : Dict[str, Any], optional
        Product geo-referencing block, for geo-aware codecs.
    """

    name: str
    dtype: str
    width: int
    height: int
    no_data_value: Optional[float] = None
    geocoding: Optional[Dict[str, Any]] = None

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)


def check_tile_bounds(
    descriptor: RasterDescriptor, x: int, y: int, width: int, height: int,
) -> None:
    """Validate that a tile lies inside the raster extent.

    Raises
    ------
    ValidationError
        If the tile is empty or extends past the raster extent.
    """
    if x < 0 or y < 0:
        raise ValidationError("Tile origin must be non-negative")
    if width <= 0 or height <= 0:
        raise ValidationError(
            f"Tile size must be positive, got {width} x {height}"
        )
    if x + width > descriptor.width or y + height > descriptor.height:
        raise ValidationError(
            f"Tile ({x}, {y}, {width}, {height}) exceeds raster extent "
            f"{descriptor.width} x {descriptor.height} of "
            f"'{descriptor.name}'"
        )


class TileWriter(ABC):
    """
    Abstract base class for an open codec write handle.

    Attributes
    ----------
    paths : Tuple[Path, ...]
        Files the handle writes, as planned by the container layout.
    descriptor : RasterDescriptor
        Raster being written.
    options : Dict[str, Any]
        Codec-specific options.

    Notes
    -----
    Handles are not thread-safe. ``close()`` is idempotent and must not
    raise on a handle that is already closed.
    """

    def __init__(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.paths = tuple(Path(p) for p in paths)
        self.descriptor = descriptor
        self.options: Dict[str, Any] = dict(options or {})
        self.closed = False

    def write_tile(self, x: int, y: int, data: np.ndarray) -> None:
        """
        Write a rectangular tile at column *x*, row *y*.

        Parameters
        ----------
        x : int
            Starting column in the raster.
        y : int
            Starting row in the raster.
        data : np.ndarray
            Tile pixels with shape ``(rows, cols)``.

        Raises
        ------
        ValidationError
            If the tile is out of bounds or has the wrong element type.
        IOError
            If the underlying file write fails.
        """
        if self.closed:
            raise IOError(f"Write handle for '{self.descriptor.name}' is closed")
        data = np.asarray(data)
        if data.ndim != 2:
            raise ValidationError(
                f"Tile must be 2-D, got shape {data.shape}"
            )
        if data.dtype.name != self.descriptor.dtype:
            raise ValidationError(
                f"Tile element type {data.dtype.name} does not match "
                f"raster type {self.descriptor.dtype}"
            )
        rows, cols = data.shape
        check_tile_bounds(self.descriptor, x, y, cols, rows)
        self._write_tile(x, y, data)

    @abstractmethod
    def _write_tile(self, x: int, y: int, data: np.ndarray) -> None:
        """Codec-specific tile write; arguments are already validated."""
        pass

    def close(self) -> None:
        """Flush and release the handle. Safe to call repeatedly."""
        if self.closed:
            return
        self.closed = True
        self._close()

    def _close(self) -> None:
        """Release codec resources. Called at most once."""
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False


class TileReader(ABC):
    """
    Abstract base class for an open codec read handle.

    Attributes
    ----------
    paths : Tuple[Path, ...]
        Files the handle reads.
    descriptor : RasterDescriptor
        Raster declared by the container metadata.
    """

    def __init__(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
    ) -> None:
        self.paths = tuple(Path(p) for p in paths)
        for path in self.paths:
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")
        self.descriptor = descriptor
        self.closed = False
        self._open()

    def _open(self) -> None:
        """Open codec resources. Called once from the constructor."""
        pass

    def read_tile(self, x: int, y: int, width: int, height: int) -> np.ndarray:
        """
        Read a rectangular tile.

        Parameters
        ----------
        x : int
            Starting column (inclusive).
        y : int
            Starting row (inclusive).
        width : int
            Number of columns.
        height : int
            Number of rows.

        Returns
        -------
        np.ndarray
            Tile with shape ``(height, width)`` and the declared element
            type.

        Raises
        ------
        ValidationError
            If the tile is out of bounds.
        IOError
            If the underlying read fails or the decoded data does not
            match the declared raster.
        """
        if self.closed:
            raise IOError(f"Read handle for '{self.descriptor.name}' is closed")
        check_tile_bounds(self.descriptor, x, y, width, height)
        data = np.asarray(self._read_tile(x, y, width, height))
        if data.shape != (height, width):
            raise IOError(
                f"Codec returned shape {data.shape} for a "
                f"{height} x {width} tile"
            )
        if data.dtype.name != self.descriptor.dtype:
            raise IOError(
                f"Codec returned element type {data.dtype.name}, "
                f"expected {self.descriptor.dtype}"
            )
        return data

    @abstractmethod
    def _read_tile(
        self, x: int, y: int, width: int, height: int,
    ) -> np.ndarray:
        """Codec-specific tile read; arguments are already validated."""
        pass

    def close(self) -> None:
        """Release the handle. Safe to call repeatedly."""
        if self.closed:
            return
        self.closed = True
        self._close()

    def _close(self) -> None:
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False


class RasterCodec(ABC):
    """
    Abstract base class for a pluggable raster codec.

    Class Attributes
    ----------------
    name : str
        Codec identifier recorded in container metadata.
    shape : CodecShape
        Whether the codec writes one file or a header/data pair.
    extensions : Tuple[str, ...]
        One extension for single-file codecs, or
        ``(header_ext, data_ext)`` for header/data codecs. Extensions
        are given without the leading dot.
    """

    name: str = ''
    shape: CodecShape = CodecShape.SINGLE_FILE
    extensions: Tuple[str, ...] = ()

    def describe_shape(self) -> CodecShape:
        return self.shape

    def file_extensions(self) -> Tuple[str, ...]:
        return self.extensions

    @abstractmethod
    def open_for_write(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
    ) -> TileWriter:
        """
        Create the codec file(s) and return a write handle.

        Parameters
        ----------
        paths : Tuple[Path, ...]
            Planned file paths, ordered like ``extensions``.
        descriptor : RasterDescriptor
            Raster to be written.
        options : Mapping[str, Any], optional
            Codec-specific options. Unknown keys are ignored.
        """
        pass

    @abstractmethod
    def open_for_read(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
    ) -> TileReader:
        """
        Open existing codec file(s) and return a read handle.

        Raises
        ------
        FileNotFoundError
            If any planned file is missing.
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
