# -*- coding: utf-8 -*-
"""
HDF5 Codec - Self-describing single-file band encoding.

Stores one band as a 2-D dataset in ``<band>.h5`` using h5py. The
dataset carries its own shape and dtype, plus band properties and the
product geocoding as attributes. Readers locate the dataset by name,
falling back to the first 2-D numeric dataset in the file.

Dependencies
------------
h5py

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

# Standard library
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

# Third-party
import numpy as np

try:
    import h5py
    _HAS_H5PY = True
except ImportError:
    _HAS_H5PY = False

# RDC internal
from rdc.codecs.base import RasterCodec, RasterDescriptor, TileReader, TileWriter
from rdc.exceptions import DependencyError
from rdc.vocabulary import BinaryFormat, CodecShape

DEFAULT_DATASET_NAME = 'data'


def _find_datasets(
    group: "h5py.Group",
    min_ndim: int = 2,
) -> List[Tuple[str, Tuple[int, ...], str]]:
    """Walk an HDF5 group and collect numeric datasets.

    Returns
    -------
    List[Tuple[str, Tuple[int, ...], str]]
        List of ``(path, shape, dtype)`` for each matching dataset.
    """
    results: List[Tuple[str, Tuple[int, ...], str]] = []

    def _visitor(name: str, obj: Any) -> None:
        if isinstance(obj, h5py.Dataset):
            if obj.ndim >= min_ndim and np.issubdtype(obj.dtype, np.number):
                results.append((f"/{name}", obj.shape, str(obj.dtype)))

    group.visititems(_visitor)
    return results


class HDF5TileWriter(TileWriter):
    """Hyperslab writes into a pre-allocated HDF5 dataset."""

    def __init__(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(paths, descriptor, options)
        dataset_name = self.options.get('dataset_name', DEFAULT_DATASET_NAME)
        compression = self.options.get('compression')
        compression_opts = self.options.get('compression_opts')

        kwargs: Dict[str, Any] = {}
        if compression:
            kwargs['compression'] = compression
        if compression_opts is not None:
            kwargs['compression_opts'] = compression_opts
        if descriptor.no_data_value is not None:
            kwargs['fillvalue'] = descriptor.no_data_value

        self._file = h5py.File(str(self.paths[0]), 'w')
        ds = self._file.create_dataset(
            dataset_name, shape=descriptor.shape,
            dtype=np.dtype(descriptor.dtype), **kwargs,
        )
        ds.attrs['name'] = descriptor.name
        if descriptor.no_data_value is not None:
            ds.attrs['no_data_value'] = descriptor.no_data_value
        if descriptor.geocoding:
            for key, val in descriptor.geocoding.items():
                ds.attrs[f'geo_{key}'] = str(val)
        self._dataset = ds

    def _write_tile(self, x: int, y: int, data: np.ndarray) -> None:
        rows, cols = data.shape
        self._dataset[y:y + rows, x:x + cols] = data

    def _close(self) -> None:
        self._dataset = None
        self._file.flush()
        self._file.close()


class HDF5TileReader(TileReader):
    """Hyperslab reads from the band dataset of an HDF5 file."""

    def _open(self) -> None:
        self._file = h5py.File(str(self.paths[0]), 'r')
        if DEFAULT_DATASET_NAME in self._file:
            path = DEFAULT_DATASET_NAME
        else:
            candidates = _find_datasets(self._file)
            if not candidates:
                self._file.close()
                raise IOError(f"No 2-D numeric dataset in {self.paths[0]}")
            path = candidates[0][0]
        self._dataset = self._file[path]
        if self._dataset.shape != self.descriptor.shape:
            shape = self._dataset.shape
            self._file.close()
            raise IOError(
                f"Dataset {path} holds shape {shape}, "
                f"expected {self.descriptor.shape}"
            )

    def _read_tile(
        self, x: int, y: int, width: int, height: int,
    ) -> np.ndarray:
        return self._dataset[y:y + height, x:x + width]

    def _close(self) -> None:
        self._dataset = None
        self._file.close()


class HDF5Codec(RasterCodec):
    """HDF5 codec: ``<band>/<band>.h5``.

    Recognized options
    ------------------
    ``'dataset_name'``
        Name of the band dataset (default ``'data'``).
    ``'compression'``
        ``'gzip'`` or ``'lzf'``.
    ``'compression_opts'``
        Compression level for gzip (1-9).
    """

    name = BinaryFormat.HDF5.value
    shape = CodecShape.SINGLE_FILE
    extensions = ('h5',)

    def __init__(self) -> None:
        if not _HAS_H5PY:
            raise DependencyError(
                "h5py is required for the HDF5 codec. "
                "Install with: pip install h5py"
            )

    def open_for_write(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
    ) -> TileWriter:
        return HDF5TileWriter(paths, descriptor, options)

    def open_for_read(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
    ) -> TileReader:
        return HDF5TileReader(paths, descriptor)
