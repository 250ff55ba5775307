# -*- coding: utf-8 -*-
"""
RDC Vocabulary - Enumerations shared across the container engine.

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

from enum import Enum


class CodecShape(Enum):
    """On-disk file shape a raster codec produces for one band.

    ``SINGLE_FILE`` codecs store pixels and their own metadata in one
    file named after the band. ``HEADER_AND_DATA`` codecs need a header
    file and a flat binary data file side by side.
    """

    SINGLE_FILE = "single_file"
    HEADER_AND_DATA = "header_and_data"


class WriterState(Enum):
    """Lifecycle states of a ``ContainerWriter``."""

    CREATED = "created"
    METADATA_WRITTEN = "metadata_written"
    CLOSED = "closed"
    FAILED = "failed"


class RasterState(Enum):
    """Load state of a band's in-memory raster buffer."""

    UNLOADED = "unloaded"
    LOADED = "loaded"


class ExistingFilePolicy(Enum):
    """What the writer does when an output path already exists."""

    ERROR = "error"
    OVERWRITE = "overwrite"


class BinaryFormat(Enum):
    """Identifiers of the built-in raster codecs."""

    ENVI = "ENVI"
    NUMPY = "NumPy"
    GEOTIFF = "GeoTIFF"
    GEOTIFF_BIGTIFF = "GeoTIFF-BigTIFF"
    HDF5 = "HDF5"
