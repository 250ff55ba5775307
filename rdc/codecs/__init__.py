# -*- coding: utf-8 -*-
"""
Codecs Module - Pluggable raster codecs and their registry.

Each codec encodes the pixels of one band into a single self-describing
file (GeoTIFF, BigTIFF, HDF5) or a header/data file pair (ENVI, NumPy).
Codecs are looked up by identifier, case-insensitively. Built-in codecs
are imported lazily so that optional backends are only required when
the corresponding codec is requested.

Dependencies
------------
numpy
rasterio (ENVI, GeoTIFF, GeoTIFF-BigTIFF)
h5py (HDF5)

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
import importlib
from typing import Dict, List

# RDC internal
from rdc.codecs.base import (
    RasterCodec,
    RasterDescriptor,
    TileReader,
    TileWriter,
    check_tile_bounds,
)
from rdc.exceptions import UnsupportedCodecError, ValidationError
from rdc.vocabulary import CodecShape


# Codec registry: maps lower-case identifiers to (module_path, class_name)
_CODEC_REGISTRY: Dict[str, tuple] = {
    'envi': ('rdc.codecs.envi', 'EnviCodec'),
    'numpy': ('rdc.codecs.numpy_io', 'NumpyCodec'),
    'geotiff': ('rdc.codecs.geotiff', 'GeoTiffCodec'),
    'geotiff-bigtiff': ('rdc.codecs.geotiff', 'BigTiffCodec'),
    'hdf5': ('rdc.codecs.hdf5', 'HDF5Codec'),
}

# Codec instances registered at runtime, keyed by lower-case identifier
_CUSTOM_CODECS: Dict[str, RasterCodec] = {}


def get_codec(name: str) -> RasterCodec:
    """Resolve a codec identifier to a codec instance.

    Parameters
    ----------
    name : str
        Codec identifier, e.g. ``'ENVI'``, ``'GeoTIFF'``. Matching is
        case-insensitive.

    Returns
    -------
    RasterCodec

    Raises
    ------
    UnsupportedCodecError
        If no codec is registered under *name*.
    DependencyError
        If the codec's backend library is not installed.

    Examples
    --------
    >>> from rdc.codecs import get_codec
    >>> codec = get_codec('numpy')
    >>> codec.name
    'NumPy'
    """
    key = str(name).lower()
    if key in _CUSTOM_CODECS:
        return _CUSTOM_CODECS[key]
    if key not in _CODEC_REGISTRY:
        raise UnsupportedCodecError(
            f"Unknown binary format: {name!r}. "
            f"Supported formats: {available_codecs()}"
        )
    module_path, class_name = _CODEC_REGISTRY[key]
    module = importlib.import_module(module_path)
    codec_cls = getattr(module, class_name)
    return codec_cls()


def register_codec(codec: RasterCodec, replace: bool = False) -> None:
    """Make a codec instance resolvable by its ``name``.

    Parameters
    ----------
    codec : RasterCodec
        Codec to register.
    replace : bool
        Allow replacing an existing registration. Default is False.

    Raises
    ------
    ValidationError
        If the codec is malformed or the identifier is already taken
        and *replace* is False.
    """
    if not isinstance(codec, RasterCodec):
        raise ValidationError(
            f"Expected a RasterCodec, got {type(codec).__name__}"
        )
    if not codec.name:
        raise ValidationError("Codec name must not be empty")
    expected = 1 if codec.shape is CodecShape.SINGLE_FILE else 2
    if len(codec.extensions) != expected:
        raise ValidationError(
            f"Codec {codec.name!r} with shape {codec.shape.value} needs "
            f"{expected} extension(s), got {codec.extensions}"
        )
    key = codec.name.lower()
    if not replace and (key in _CUSTOM_CODECS or key in _CODEC_REGISTRY):
        raise ValidationError(f"Codec {codec.name!r} is already registered")
    _CUSTOM_CODECS[key] = codec


def unregister_codec(name: str) -> None:
    """Remove a runtime registration. Built-in codecs cannot be removed."""
    _CUSTOM_CODECS.pop(str(name).lower(), None)


def available_codecs() -> List[str]:
    """Sorted lower-case identifiers of all known codecs."""
    return sorted(set(_CODEC_REGISTRY) | set(_CUSTOM_CODECS))


__all__ = [
    'RasterCodec',
    'RasterDescriptor',
    'TileReader',
    'TileWriter',
    'check_tile_bounds',
    'get_codec',
    'register_codec',
    'unregister_codec',
    'available_codecs',
]
