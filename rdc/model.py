# -*- coding: utf-8 -*-
"""
Product Model - In-memory product tree persisted by the container engine.

A ``Product`` owns an ordered list of ``Band`` rasters, an ordered list
of ``TiePointGrid`` auxiliary grids, a free-form attribute mapping and an
optional geo-referencing block. Bands reconstructed by a
``ContainerReader`` carry a deferred binding to that reader and load
their pixels only when ``read_raster_data_fully()`` is called.

Dependencies
------------
numpy

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
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Union,
)

# Third-party
import numpy as np

# RDC internal
from rdc.codecs.base import RasterDescriptor, check_tile_bounds
from rdc.exceptions import ContainerStateError, ValidationError
from rdc.vocabulary import RasterState

if TYPE_CHECKING:
    from rdc.container.reader import ContainerReader

ProgressCallback = Callable[[float], None]

SUPPORTED_DTYPES: Tuple[str, ...] = (
    'int8', 'uint8', 'int16', 'uint16', 'int32', 'uint32',
    'float32', 'float64',
)


def validate_dtype(dtype: Union[str, np.dtype, type]) -> str:
    """Normalize an element type to its canonical NumPy name.

    Parameters
    ----------
    dtype : str, np.dtype, or type
        Element type, e.g. ``'int32'``, ``np.float32``.

    Returns
    -------
    str
        Canonical dtype name from ``SUPPORTED_DTYPES``.

    Raises
    ------
    ValidationError
        If the element type is not a supported fixed-width kind.
    """
    try:
        name = np.dtype(dtype).name
    except TypeError as e:
        raise ValidationError(f"Invalid element type: {dtype!r}") from e
    if name not in SUPPORTED_DTYPES:
        raise ValidationError(
            f"Unsupported element type: {name!r}. "
            f"Supported: {list(SUPPORTED_DTYPES)}"
        )
    return name


def _coerce_raster(
    data: Any, dtype: str, width: int, height: int, name: str,
) -> np.ndarray:
    """Return *data* as a ``(height, width)`` array of *dtype*.

    Flat buffers of the right length are reshaped. Arrays must already
    have the declared element type; plain sequences are converted to it.
    """
    if isinstance(data, np.ndarray):
        arr = data
    else:
        arr = np.asarray(data, dtype=dtype)
    if arr.dtype.name != dtype:
        raise ValidationError(
            f"'{name}': buffer element type {arr.dtype.name} does not "
            f"match declared type {dtype}"
        )
    if arr.size != width * height:
        raise ValidationError(
            f"'{name}': buffer holds {arr.size} elements, expected "
            f"{width} x {height} = {width * height}"
        )
    return arr.reshape(height, width)


class Band:
    """A named 2-D raster layer.

    Parameters
    ----------
    name : str
        Band name, unique within its product.
    dtype : str or np.dtype
        Element type, one of ``SUPPORTED_DTYPES``.
    width : int
        Number of columns.
    height : int
        Number of rows.
    data : array-like, optional
        Pixel buffer, flat or ``(height, width)``.

    Attributes
    ----------
    raster_state : RasterState
        ``LOADED`` once the pixel buffer is in memory.
    read_count : int
        Number of full-raster loads performed through a reader.

    Examples
    --------
    >>> band = Band('band', 'int32', 2, 2, data=[12, 13, 14, 15])
    >>> band.data.shape
    (2, 2)
    """

    def __init__(
        self,
        name: str,
        dtype: Union[str, np.dtype, type],
        width: int,
        height: int,
        data: Any = None,
        description: Optional[str] = None,
        unit: Optional[str] = None,
        scaling_factor: float = 1.0,
        scaling_offset: float = 0.0,
        no_data_value: Optional[float] = None,
        no_data_value_used: bool = False,
        spectral_wavelength: Optional[float] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not name:
            raise ValidationError("Band name must not be empty")
        if int(width) <= 0 or int(height) <= 0:
            raise ValidationError(
                f"Band '{name}': dimensions must be positive, "
                f"got {width} x {height}"
            )
        self.name = name
        self.dtype = validate_dtype(dtype)
        self.width = int(width)
        self.height = int(height)
        self.description = description
        self.unit = unit
        self.scaling_factor = float(scaling_factor)
        self.scaling_offset = float(scaling_offset)
        self.no_data_value = no_data_value
        self.no_data_value_used = bool(no_data_value_used)
        self.spectral_wavelength = spectral_wavelength
        self.attributes: Dict[str, Any] = dict(attributes or {})

        self.raster_state = RasterState.UNLOADED
        self.read_count = 0
        self._data: Optional[np.ndarray] = None
        self._reader: Optional['ContainerReader'] = None
        if data is not None:
            self.set_data(data)

    @property
    def data(self) -> Optional[np.ndarray]:
        """In-memory pixel buffer, or None while unloaded."""
        return self._data

    def set_data(self, data: Any) -> None:
        """Attach a pixel buffer and mark the band as loaded.

        Raises
        ------
        ValidationError
            If the element type or element count does not match the
            band declaration.
        """
        self._data = _coerce_raster(
            data, self.dtype, self.width, self.height, self.name,
        )
        self.raster_state = RasterState.LOADED

    def unload(self) -> None:
        """Drop the pixel buffer; a bound band can load it again."""
        self._data = None
        self.raster_state = RasterState.UNLOADED

    @property
    def is_loaded(self) -> bool:
        return self.raster_state is RasterState.LOADED

    def bind_reader(self, reader: 'ContainerReader') -> None:
        """Attach the reader that supplies this band's pixels."""
        self._reader = reader

    def read_raster_data_fully(
        self, progress_callback: Optional[ProgressCallback] = None,
    ) -> np.ndarray:
        """Load the full raster into memory, at most once.

        Parameters
        ----------
        progress_callback : callable, optional
            Called with a completion fraction in ``[0, 1]``.

        Returns
        -------
        np.ndarray
            The ``(height, width)`` pixel buffer.

        Raises
        ------
        ContainerStateError
            If the band is unloaded and has no bound reader.
        """
        if self.is_loaded:
            return self._data
        if self._reader is None:
            raise ContainerStateError(
                f"Band '{self.name}' has no data and no bound reader"
            )
        data = self._reader.read_band_raster_data(
            self, 0, 0, self.width, self.height,
            progress_callback=progress_callback,
        )
        self.read_count += 1
        self.set_data(data)
        return self._data

    def read_raster_data(
        self,
        x: int,
        y: int,
        width: int,
        height: int,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> np.ndarray:
        """Read a tile without changing the band's load state.

        Raises
        ------
        ValidationError
            If the tile is empty or extends past the band extent.
        """
        if self.is_loaded:
            check_tile_bounds(
                RasterDescriptor(self.name, self.dtype, self.width, self.height),
                x, y, width, height,
            )
            return self._data[y:y + height, x:x + width].copy()
        if self._reader is None:
            raise ContainerStateError(
                f"Band '{self.name}' has no data and no bound reader"
            )
        return self._reader.read_band_raster_data(
            self, x, y, width, height, progress_callback=progress_callback,
        )

    def scaled_data(self) -> np.ndarray:
        """Geophysical values: ``data * scaling_factor + scaling_offset``.

        No-data pixels become NaN when ``no_data_value_used`` is set.
        """
        raw = self.read_raster_data_fully()
        scaled = raw.astype(np.float64) * self.scaling_factor
        scaled += self.scaling_offset
        if self.no_data_value_used and self.no_data_value is not None:
            scaled[raw == self.no_data_value] = np.nan
        return scaled

    def __repr__(self) -> str:
        return (
            f"Band(name={self.name!r}, dtype={self.dtype!r}, "
            f"width={self.width}, height={self.height}, "
            f"state={self.raster_state.value})"
        )


@dataclass(eq=False)
class TiePointGrid:
    """Sparse grid of float32 control points.

    Pixel ``(i, j)`` of the grid maps to scene pixel
    ``(offset_x + i * sub_sampling_x, offset_y + j * sub_sampling_y)``.
    """

    name: str
    width: int
    height: int
    data: Any
    offset_x: float = 0.5
    offset_y: float = 0.5
    sub_sampling_x: float = 1.0
    sub_sampling_y: float = 1.0
    description: Optional[str] = None
    unit: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("Tie-point grid name must not be empty")
        self.width = int(self.width)
        self.height = int(self.height)
        self.data = _coerce_raster(
            np.asarray(self.data, dtype=np.float32),
            'float32', self.width, self.height, self.name,
        )

    @property
    def dtype(self) -> str:
        return 'float32'


@dataclass
class ProductSubset:
    """Restriction applied while reading a container.

    Parameters
    ----------
    node_names : List[str], optional
        Bands and tie-point grids to keep. None keeps all.
    region : Tuple[int, int, int, int], optional
        ``(x, y, width, height)`` window applied to every band.
    """

    node_names: Optional[List[str]] = None
    region: Optional[Tuple[int, int, int, int]] = None

    def includes(self, name: str) -> bool:
        return self.node_names is None or name in self.node_names


@dataclass(eq=False)
class Product:
    """Root of the product tree.

    Parameters
    ----------
    name : str
        Product identifier.
    product_type : str
        Product type tag.
    attributes : Dict[str, Any]
        String-keyed scalar or array metadata.
    geocoding : Dict[str, Any], optional
        Opaque geo-referencing block, e.g. ``{'crs': 'EPSG:4326',
        'transform': [a, b, c, d, e, f]}``.

    Examples
    --------
    >>> product = Product('name', 'type')
    >>> product.add_band(Band('band', 'int32', 2, 2, data=[12, 13, 14, 15]))
    >>> product.band_names
    ['band']
    """

    name: str
    product_type: str
    description: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    bands: List[Band] = field(default_factory=list)
    tie_point_grids: List[TiePointGrid] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)
    geocoding: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("Product name must not be empty")

    def _check_unique(self, name: str) -> None:
        if name in self.band_names or name in self.tie_point_grid_names:
            raise ValidationError(
                f"Product '{self.name}' already contains a node named "
                f"'{name}'"
            )

    def add_band(self, band: Band) -> Band:
        self._check_unique(band.name)
        self.bands.append(band)
        return band

    def add_tie_point_grid(self, grid: TiePointGrid) -> TiePointGrid:
        self._check_unique(grid.name)
        self.tie_point_grids.append(grid)
        return grid

    def get_band(self, name: str) -> Optional[Band]:
        for band in self.bands:
            if band.name == name:
                return band
        return None

    def get_tie_point_grid(self, name: str) -> Optional[TiePointGrid]:
        for grid in self.tie_point_grids:
            if grid.name == name:
                return grid
        return None

    @property
    def band_names(self) -> List[str]:
        return [b.name for b in self.bands]

    @property
    def tie_point_grid_names(self) -> List[str]:
        return [g.name for g in self.tie_point_grids]

    @property
    def scene_raster_size(self) -> Tuple[int, int]:
        """``(width, height)`` of the largest band, or ``(0, 0)``."""
        if not self.bands:
            return (0, 0)
        return (
            max(b.width for b in self.bands),
            max(b.height for b in self.bands),
        )
