# -*- coding: utf-8 -*-
"""
NumPy Codec - ``.npy`` data file with a JSON header sidecar.

Pixels go to ``data.npy`` through a writable memory map so tiles can be
written in any order without holding the raster in memory. The
``data.json`` header records shape, dtype and band properties, and is
checked against the container metadata on read.

Dependencies
------------
numpy

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

# Standard library
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

# Third-party
import numpy as np

# RDC internal
from rdc.codecs.base import RasterCodec, RasterDescriptor, TileReader, TileWriter
from rdc.vocabulary import BinaryFormat, CodecShape


def _header(descriptor: RasterDescriptor) -> Dict[str, Any]:
    header: Dict[str, Any] = {
        'name': descriptor.name,
        'shape': [descriptor.height, descriptor.width],
        'dtype': descriptor.dtype,
    }
    if descriptor.no_data_value is not None:
        header['no_data_value'] = descriptor.no_data_value
    if descriptor.geocoding:
        header['geolocation'] = descriptor.geocoding
    return header


class NumpyTileWriter(TileWriter):
    """Tile writes into a memory-mapped ``.npy`` file."""

    def __init__(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(paths, descriptor, options)
        header_path, data_path = self.paths
        with open(header_path, 'w') as f:
            json.dump(_header(descriptor), f, indent=2, default=str)
        self._array = np.lib.format.open_memmap(
            str(data_path), mode='w+',
            dtype=np.dtype(descriptor.dtype), shape=descriptor.shape,
        )

    def _write_tile(self, x: int, y: int, data: np.ndarray) -> None:
        rows, cols = data.shape
        self._array[y:y + rows, x:x + cols] = data

    def _close(self) -> None:
        self._array.flush()
        self._array = None


class NumpyTileReader(TileReader):
    """Tile reads from a read-only memory map of a ``.npy`` file."""

    def _open(self) -> None:
        header_path, data_path = self.paths
        try:
            with open(header_path) as f:
                header = json.load(f)
        except json.JSONDecodeError as e:
            raise IOError(f"Corrupt NumPy header {header_path}: {e}") from e

        expected = [self.descriptor.height, self.descriptor.width]
        if header.get('shape') != expected or \
                header.get('dtype') != self.descriptor.dtype:
            raise IOError(
                f"Header {header_path} declares shape {header.get('shape')} "
                f"and dtype {header.get('dtype')}, expected {expected} and "
                f"{self.descriptor.dtype}"
            )
        self._array = np.load(str(data_path), mmap_mode='r')
        if self._array.shape != tuple(expected):
            raise IOError(
                f"{data_path} holds shape {self._array.shape}, "
                f"expected {tuple(expected)}"
            )

    def _read_tile(
        self, x: int, y: int, width: int, height: int,
    ) -> np.ndarray:
        return np.array(self._array[y:y + height, x:x + width])

    def _close(self) -> None:
        self._array = None


class NumpyCodec(RasterCodec):
    """NumPy codec: ``<band>/<band>/data.json`` + ``data.npy``.

    Examples
    --------
    >>> from rdc.codecs import get_codec
    >>> get_codec('numpy').file_extensions()
    ('json', 'npy')
    """

    name = BinaryFormat.NUMPY.value
    shape = CodecShape.HEADER_AND_DATA
    extensions = ('json', 'npy')

    def open_for_write(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
    ) -> TileWriter:
        return NumpyTileWriter(paths, descriptor, options)

    def open_for_read(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
    ) -> TileReader:
        return NumpyTileReader(paths, descriptor)
