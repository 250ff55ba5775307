# -*- coding: utf-8 -*-
"""
GeoTIFF Codec - Single-file GeoTIFF and BigTIFF band encoding.

Stores one band per ``<band>.tif`` file using rasterio (GDAL) as the
backend. When the product carries a geocoding block with ``crs`` and
``transform`` entries they are embedded in the file so the band stays
usable by GIS tools outside the container.

Dependencies
------------
rasterio

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
import logging
from numbers import Real
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

# Third-party
import numpy as np

try:
    import rasterio
    from rasterio.crs import CRS
    from rasterio.errors import CRSError
    from rasterio.transform import Affine
    from rasterio.windows import Window
    _HAS_RASTERIO = True
except ImportError:
    _HAS_RASTERIO = False

# RDC internal
from rdc.codecs.base import RasterCodec, RasterDescriptor, TileReader, TileWriter
from rdc.exceptions import DependencyError
from rdc.vocabulary import BinaryFormat, CodecShape

logger = logging.getLogger(__name__)


def require_rasterio(format_name: str) -> None:
    """Raise ``DependencyError`` if rasterio is not importable."""
    if not _HAS_RASTERIO:
        raise DependencyError(
            f"rasterio is required for the {format_name} codec. "
            "Install with: pip install rasterio"
        )


def geo_profile(geocoding: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Translate a product geocoding block into rasterio profile keys.

    The block itself is opaque to the container. Only a CRS that
    rasterio understands together with a six-coefficient affine
    transform is embedded; any other block is left out of the file and
    survives in the container metadata only.

    Parameters
    ----------
    geocoding : Dict[str, Any], optional
        Block with ``'crs'`` (any rasterio-accepted CRS string) and
        ``'transform'`` (affine coefficients ``[a, b, c, d, e, f]``).

    Returns
    -------
    Dict[str, Any]
        ``crs`` / ``transform`` profile entries, or an empty dict when
        the block does not carry both in a usable form.
    """
    if not geocoding:
        return {}
    crs = geocoding.get('crs')
    transform = geocoding.get('transform')
    if crs is None or transform is None:
        return {}
    if not isinstance(transform, (list, tuple)) or len(transform) != 6 or \
            not all(isinstance(v, Real) and not isinstance(v, bool)
                    for v in transform):
        logger.debug("Not embedding geocoding: transform %r is not 6 numbers",
                     transform)
        return {}
    try:
        crs = CRS.from_user_input(crs)
    except CRSError as e:
        logger.debug("Not embedding geocoding: CRS %r not recognized: %s", crs, e)
        return {}
    return {'crs': crs, 'transform': Affine(*[float(v) for v in transform])}


class RasterioTileWriter(TileWriter):
    """Window writes into a single-band rasterio dataset."""

    def __init__(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
        driver: str = 'GTiff',
        creation_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(paths, descriptor, options)
        profile: Dict[str, Any] = {
            'driver': driver,
            'width': descriptor.width,
            'height': descriptor.height,
            'count': 1,
            'dtype': descriptor.dtype,
        }
        profile.update(geo_profile(descriptor.geocoding))
        if descriptor.no_data_value is not None:
            profile['nodata'] = descriptor.no_data_value
        profile.update(creation_options or {})
        self.dataset = rasterio.open(str(self.paths[-1]), 'w', **profile)

    def _write_tile(self, x: int, y: int, data: np.ndarray) -> None:
        rows, cols = data.shape
        self.dataset.write(data, 1, window=Window(x, y, cols, rows))

    def _close(self) -> None:
        self.dataset.close()


class RasterioTileReader(TileReader):
    """Window reads from band 1 of a rasterio dataset."""

    def _open(self) -> None:
        self.dataset = rasterio.open(str(self.paths[-1]))
        if (self.dataset.width, self.dataset.height) != (
            self.descriptor.width, self.descriptor.height,
        ):
            size = (self.dataset.width, self.dataset.height)
            self.dataset.close()
            raise IOError(
                f"{self.paths[-1]} holds a {size[0]} x {size[1]} raster, "
                f"expected {self.descriptor.width} x {self.descriptor.height}"
            )

    def _read_tile(
        self, x: int, y: int, width: int, height: int,
    ) -> np.ndarray:
        data = self.dataset.read(1, window=Window(x, y, width, height))
        # Some GDAL drivers (ENVI) hand signed bytes back as Byte
        if self.descriptor.dtype == 'int8' and data.dtype == np.uint8:
            data = data.view(np.int8)
        return data

    def _close(self) -> None:
        self.dataset.close()


class GeoTiffCodec(RasterCodec):
    """GeoTIFF codec: ``<band>/<band>.tif``.

    Recognized options
    ------------------
    ``'compression'``
        GDAL compression name, e.g. ``'deflate'`` or ``'lzw'``.
    ``'tiled'``
        Write a tiled GeoTIFF instead of strips.

    Examples
    --------
    >>> from rdc.codecs import get_codec
    >>> codec = get_codec('GeoTIFF')
    >>> codec.file_extensions()
    ('tif',)
    """

    name = BinaryFormat.GEOTIFF.value
    shape = CodecShape.SINGLE_FILE
    extensions = ('tif',)

    def __init__(self) -> None:
        require_rasterio(self.name)

    def creation_options(self, options: Mapping[str, Any]) -> Dict[str, Any]:
        """GDAL creation options derived from codec options."""
        creation: Dict[str, Any] = {}
        if options.get('compression'):
            creation['compress'] = str(options['compression'])
        if options.get('tiled'):
            creation['tiled'] = True
        return creation

    def open_for_write(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
    ) -> TileWriter:
        return RasterioTileWriter(
            paths, descriptor, options, driver='GTiff',
            creation_options=self.creation_options(options or {}),
        )

    def open_for_read(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
    ) -> TileReader:
        return RasterioTileReader(paths, descriptor)


class BigTiffCodec(GeoTiffCodec):
    """GeoTIFF codec forcing the BigTIFF (64-bit offset) variant."""

    name = BinaryFormat.GEOTIFF_BIGTIFF.value

    def creation_options(self, options: Mapping[str, Any]) -> Dict[str, Any]:
        creation = super().creation_options(options)
        creation['BIGTIFF'] = 'YES'
        return creation
