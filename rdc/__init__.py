# -*- coding: utf-8 -*-
"""
RDC - Raster Data Container.

Persists raster data products (bands, tie-point grids, attributes and
geocoding) to a directory-based container, optionally zipped, while
delegating each band's pixel encoding to a pluggable raster codec
(ENVI, NumPy, GeoTIFF, BigTIFF, HDF5).

Dependencies
------------
numpy
rasterio
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

__version__ = "0.1.0"
__author__ = "Duane Smalley"

# Standard library
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from rdc.exceptions import (
    RdcError,
    ValidationError,
    DependencyError,
    ContainerStateError,
    ContainerExistsError,
    MalformedContainerError,
    UnsupportedCodecError,
    RasterWriteError,
    RasterReadError,
    ResourceReleaseError,
)
from rdc.vocabulary import (
    BinaryFormat,
    CodecShape,
    ExistingFilePolicy,
    RasterState,
    WriterState,
)
from rdc.config import ReaderConfig, WriterConfig
from rdc.model import Band, Product, ProductSubset, TiePointGrid
from rdc.container import (
    ContainerReader,
    ContainerWriter,
    archive_container,
)


def write_product(
    product: Product,
    path: Union[str, Path],
    config: Optional[Union[WriterConfig, Mapping[str, Any]]] = None,
) -> Path:
    """Write a product whose bands all hold in-memory pixels.

    Parameters
    ----------
    product : Product
        Product to write.
    path : str or Path
        Output location; ``.rdc`` is appended when missing.
    config : WriterConfig or Mapping[str, Any], optional
        Writer options (``binary_format``, ``use_zip_archive``, ...).

    Returns
    -------
    Path
        Container directory, or archive file when zipping.

    Examples
    --------
    >>> from rdc import Band, Product, write_product
    >>> product = Product('name', 'type')
    >>> product.add_band(Band('band', 'int32', 2, 2, data=[12, 13, 14, 15]))
    >>> write_product(product, 'out/filename', {'binary_format': 'GeoTIFF'})
    PosixPath('out/filename.rdc')
    """
    with ContainerWriter(config) as writer:
        return writer.write_product(product, path)


def read_product(
    path: Union[str, Path],
    subset: Optional[ProductSubset] = None,
    config: Optional[Union[ReaderConfig, Mapping[str, Any]]] = None,
) -> Product:
    """Read a container and load all band pixels eagerly.

    The returned product does not depend on any open resource.

    Parameters
    ----------
    path : str or Path
        Container directory or archive.
    subset : ProductSubset, optional
        Nodes and region to keep.
    config : ReaderConfig or Mapping[str, Any], optional
        Reader options.

    Returns
    -------
    Product
    """
    with ContainerReader(config) as reader:
        product = reader.read_product_nodes(path, subset)
        reader.load_all()
    return product


__all__ = [
    'RdcError',
    'ValidationError',
    'DependencyError',
    'ContainerStateError',
    'ContainerExistsError',
    'MalformedContainerError',
    'UnsupportedCodecError',
    'RasterWriteError',
    'RasterReadError',
    'ResourceReleaseError',
    'BinaryFormat',
    'CodecShape',
    'ExistingFilePolicy',
    'RasterState',
    'WriterState',
    'ReaderConfig',
    'WriterConfig',
    'Band',
    'Product',
    'ProductSubset',
    'TiePointGrid',
    'ContainerReader',
    'ContainerWriter',
    'archive_container',
    'write_product',
    'read_product',
]
