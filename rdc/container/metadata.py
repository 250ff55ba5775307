# -*- coding: utf-8 -*-
"""
Metadata Serializer - Product structure to and from ``product.json``.

Encodes the product tree (product identity, band and tie-point grid
declarations with their codec identifiers, attributes and geocoding)
as deterministic JSON, independent of any pixel codec. Parsing is
strict about required fields and ignores unknown ones.

Attribute values may be JSON scalars, lists, dicts, or NumPy arrays
and scalars. NumPy values are tagged with their dtype so they come back
as NumPy values of the same type.

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
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

# Third-party
import numpy as np

# RDC internal
from rdc.exceptions import MalformedContainerError, ValidationError
from rdc.model import Band, Product, TiePointGrid, validate_dtype

logger = logging.getLogger(__name__)

FORMAT_NAME = 'RDC'
FORMAT_VERSION = '1.0'

_NDARRAY_TAG = '__ndarray__'
_NPSCALAR_TAG = '__npscalar__'
_ENCODABLE_KINDS = "biufU"


# ----------------------------------------------------------------
# Attribute value encoding
# ----------------------------------------------------------------

def encode_value(value: Any) -> Any:
    """Convert an attribute value into a JSON-compatible structure."""
    if isinstance(value, (np.ndarray, np.generic)) and \
            value.dtype.kind not in _ENCODABLE_KINDS:
        raise ValidationError(
            f"Attribute values of dtype {value.dtype} are not serializable"
        )
    if isinstance(value, np.ndarray):
        return {
            _NDARRAY_TAG: {
                'dtype': value.dtype.str,
                'shape': list(value.shape),
                'data': value.ravel().tolist(),
            }
        }
    if isinstance(value, np.generic):
        return {_NPSCALAR_TAG: {'dtype': value.dtype.str, 'data': value.item()}}
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    raise ValidationError(
        f"Attribute value of type {type(value).__name__} is not serializable"
    )


def decode_value(value: Any) -> Any:
    """Inverse of ``encode_value``.

    Raises
    ------
    MalformedContainerError
        If a tagged NumPy value has an unusable payload.
    """
    if isinstance(value, dict):
        if set(value) == {_NDARRAY_TAG}:
            payload = value[_NDARRAY_TAG]
            try:
                arr = np.array(payload['data'], dtype=np.dtype(payload['dtype']))
                return arr.reshape(payload['shape'])
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedContainerError(
                    f"Invalid {_NDARRAY_TAG} value {payload!r}: {e}"
                ) from e
        if set(value) == {_NPSCALAR_TAG}:
            payload = value[_NPSCALAR_TAG]
            try:
                return np.dtype(payload['dtype']).type(payload['data'])
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedContainerError(
                    f"Invalid {_NPSCALAR_TAG} value {payload!r}: {e}"
                ) from e
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def _encode_attributes(attributes: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(k): encode_value(v) for k, v in attributes.items()}


# ----------------------------------------------------------------
# Parsed document
# ----------------------------------------------------------------

@dataclass
class NodeEntry:
    """A band or tie-point grid declaration read from metadata."""

    name: str
    binary_format: str
    node: Union[Band, TiePointGrid, None] = None
    dtype: str = 'float32'
    width: int = 0
    height: int = 0
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProductDocument:
    """Parsed ``product.json``: the product shell plus node declarations.

    ``product`` has no bands or tie-point grids attached; the reader
    attaches them after locating their codec files.
    """

    product: Product
    bands: List[NodeEntry]
    tie_point_grids: List[NodeEntry]
    format_version: Optional[str] = None


# ----------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------

def _band_entry(band: Band, binary_format: str) -> Dict[str, Any]:
    return {
        'name': band.name,
        'dtype': band.dtype,
        'width': band.width,
        'height': band.height,
        'binary_format': binary_format,
        'description': band.description,
        'unit': band.unit,
        'scaling_factor': band.scaling_factor,
        'scaling_offset': band.scaling_offset,
        'no_data_value': encode_value(band.no_data_value),
        'no_data_value_used': band.no_data_value_used,
        'spectral_wavelength': band.spectral_wavelength,
        'attributes': _encode_attributes(band.attributes),
    }


def _grid_entry(grid: TiePointGrid, binary_format: str) -> Dict[str, Any]:
    return {
        'name': grid.name,
        'dtype': grid.dtype,
        'width': grid.width,
        'height': grid.height,
        'binary_format': binary_format,
        'offset_x': grid.offset_x,
        'offset_y': grid.offset_y,
        'sub_sampling_x': grid.sub_sampling_x,
        'sub_sampling_y': grid.sub_sampling_y,
        'description': grid.description,
        'unit': grid.unit,
        'attributes': _encode_attributes(grid.attributes),
    }


def to_document(
    product: Product, binary_formats: Mapping[str, str],
) -> Dict[str, Any]:
    """Build the JSON document for *product*.

    Parameters
    ----------
    product : Product
        Product to describe.
    binary_formats : Mapping[str, str]
        Codec identifier per node name.

    Returns
    -------
    Dict[str, Any]
    """
    return {
        'format': FORMAT_NAME,
        'format_version': FORMAT_VERSION,
        'product': {
            'name': product.name,
            'type': product.product_type,
            'description': product.description,
            'start_time': product.start_time,
            'end_time': product.end_time,
            'attributes': _encode_attributes(product.attributes),
            'geocoding': encode_value(product.geocoding),
        },
        'bands': [
            _band_entry(b, binary_formats[b.name]) for b in product.bands
        ],
        'tie_point_grids': [
            _grid_entry(g, binary_formats[g.name])
            for g in product.tie_point_grids
        ],
    }


def dumps(product: Product, binary_formats: Mapping[str, str]) -> str:
    """Serialize *product* to deterministic JSON text."""
    return json.dumps(
        to_document(product, binary_formats),
        indent=2, sort_keys=True, allow_nan=True,
    )


def write_metadata(
    path: Union[str, Path],
    product: Product,
    binary_formats: Mapping[str, str],
) -> None:
    """Serialize *product* and write it to *path*."""
    text = dumps(product, binary_formats)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(text)
        f.write('\n')


# ----------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------

def _require(mapping: Any, key: str, where: str) -> Any:
    if not isinstance(mapping, dict):
        raise MalformedContainerError(f"{where} must be an object")
    value = mapping.get(key)
    if value is None or value == '':
        raise MalformedContainerError(f"{where} is missing required field '{key}'")
    return mapping[key]


def _node_header(entry: Any, where: str) -> Dict[str, Any]:
    name = str(_require(entry, 'name', where))
    where = f"{where} '{name}'"
    raw = {
        key: _require(entry, key, where)
        for key in ('binary_format', 'dtype', 'width', 'height')
    }
    try:
        header = {
            'name': name,
            'binary_format': str(raw['binary_format']),
            'dtype': validate_dtype(raw['dtype']),
            'width': int(raw['width']),
            'height': int(raw['height']),
        }
    except (TypeError, ValueError) as e:
        raise MalformedContainerError(f"{where}: {e}") from e
    if header['width'] <= 0 or header['height'] <= 0:
        raise MalformedContainerError(
            f"{where} declares non-positive dimensions"
        )
    return header


def _parse_band(entry: Dict[str, Any], index: int) -> NodeEntry:
    header = _node_header(entry, f"bands[{index}]")
    try:
        band = Band(
            header['name'], header['dtype'],
            header['width'], header['height'],
            description=entry.get('description'),
            unit=entry.get('unit'),
            scaling_factor=entry.get('scaling_factor', 1.0),
            scaling_offset=entry.get('scaling_offset', 0.0),
            no_data_value=decode_value(entry.get('no_data_value')),
            no_data_value_used=entry.get('no_data_value_used', False),
            spectral_wavelength=entry.get('spectral_wavelength'),
            attributes=decode_value(entry.get('attributes') or {}),
        )
    except (TypeError, ValueError) as e:
        raise MalformedContainerError(
            f"bands[{index}] '{header['name']}': {e}"
        ) from e
    return NodeEntry(node=band, **header)


def _parse_grid(entry: Dict[str, Any], index: int) -> NodeEntry:
    header = _node_header(entry, f"tie_point_grids[{index}]")
    if header['dtype'] != 'float32':
        raise MalformedContainerError(
            f"Tie-point grid '{header['name']}' must be float32, "
            f"got {header['dtype']}"
        )
    try:
        properties = {
            'offset_x': float(entry.get('offset_x', 0.5)),
            'offset_y': float(entry.get('offset_y', 0.5)),
            'sub_sampling_x': float(entry.get('sub_sampling_x', 1.0)),
            'sub_sampling_y': float(entry.get('sub_sampling_y', 1.0)),
            'description': entry.get('description'),
            'unit': entry.get('unit'),
            'attributes': dict(decode_value(entry.get('attributes') or {})),
        }
    except (TypeError, ValueError) as e:
        raise MalformedContainerError(
            f"tie_point_grids[{index}] '{header['name']}': {e}"
        ) from e
    return NodeEntry(properties=properties, **header)


def parse_document(document: Any) -> ProductDocument:
    """Validate a decoded JSON document and build a ``ProductDocument``.

    Raises
    ------
    MalformedContainerError
        If a required field is missing or has an invalid value.
    """
    info = _require(document, 'product', 'Metadata document')
    name = str(_require(info, 'name', 'product'))
    product_type = str(_require(info, 'type', 'product'))
    bands = _require(document, 'bands', 'Metadata document')
    grids = document.get('tie_point_grids', [])
    if not isinstance(bands, list) or not isinstance(grids, list):
        raise MalformedContainerError(
            "'bands' and 'tie_point_grids' must be lists"
        )

    attributes = decode_value(info.get('attributes') or {})
    if not isinstance(attributes, dict):
        raise MalformedContainerError("product attributes must be an object")
    product = Product(
        name=name,
        product_type=product_type,
        description=info.get('description'),
        start_time=info.get('start_time'),
        end_time=info.get('end_time'),
        attributes=attributes,
        geocoding=decode_value(info.get('geocoding')),
    )

    band_entries = [_parse_band(e, i) for i, e in enumerate(bands)]
    grid_entries = [_parse_grid(e, i) for i, e in enumerate(grids)]

    seen = set()
    for entry in band_entries + grid_entries:
        if entry.name in seen:
            raise MalformedContainerError(
                f"Duplicate node name '{entry.name}' in metadata"
            )
        seen.add(entry.name)

    version = document.get('format_version')
    if version is not None and version != FORMAT_VERSION:
        logger.debug("Reading metadata format version %s", version)
    return ProductDocument(
        product=product,
        bands=band_entries,
        tie_point_grids=grid_entries,
        format_version=version,
    )


def loads(text: str) -> ProductDocument:
    """Parse ``product.json`` text.

    Raises
    ------
    MalformedContainerError
        If the text is not valid JSON or misses required fields.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedContainerError(f"Metadata is not valid JSON: {e}") from e
    return parse_document(document)


def read_metadata(path: Union[str, Path]) -> ProductDocument:
    """Read and parse the metadata file at *path*.

    Raises
    ------
    MalformedContainerError
        If the file is missing, unreadable, or malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise MalformedContainerError(f"Metadata file not found: {path}")
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedContainerError(f"Cannot read {path}: {e}") from e
    return loads(text)
