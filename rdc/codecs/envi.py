# -*- coding: utf-8 -*-
"""
ENVI Codec - Header plus flat binary band encoding.

Writes ``data.hdr`` (ENVI text header) and ``data.img`` (band
sequential raw pixels) through the GDAL ENVI driver. GDAL derives the
header name from the data file name, so the data path is the one
handed to rasterio.

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
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

# RDC internal
from rdc.codecs.base import RasterCodec, RasterDescriptor, TileReader, TileWriter
from rdc.codecs.geotiff import (
    RasterioTileReader,
    RasterioTileWriter,
    require_rasterio,
)
from rdc.vocabulary import BinaryFormat, CodecShape


class EnviCodec(RasterCodec):
    """ENVI codec: ``<band>/<band>/data.hdr`` + ``data.img``.

    Recognized options
    ------------------
    ``'interleave'``
        ``'bsq'`` (default), ``'bil'`` or ``'bip'``. With a single band
        all three produce the same byte stream.
    """

    name = BinaryFormat.ENVI.value
    shape = CodecShape.HEADER_AND_DATA
    extensions = ('hdr', 'img')

    def __init__(self) -> None:
        require_rasterio(self.name)

    def open_for_write(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
        options: Optional[Mapping[str, Any]] = None,
    ) -> TileWriter:
        options = options or {}
        creation = {'interleave': str(options.get('interleave', 'bsq')).upper()}
        return RasterioTileWriter(
            paths, descriptor, options, driver='ENVI',
            creation_options=creation,
        )

    def open_for_read(
        self,
        paths: Tuple[Path, ...],
        descriptor: RasterDescriptor,
    ) -> TileReader:
        return RasterioTileReader(paths, descriptor)
