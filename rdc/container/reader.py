# -*- coding: utf-8 -*-
"""
Container Reader - Reconstruct a product tree from an RDC container.

``read_product_nodes`` parses ``product.json`` and rebuilds the product
without touching band pixels. Each band is bound to this reader and to
the codec recorded for it in the metadata; its pixels are read through
that codec when ``Band.read_raster_data_fully()`` (or a tile read) is
called. Tie-point grids are small and are read eagerly.

Zip archives are extracted to a scratch directory that lives until the
reader is closed.

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
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

# Third-party
import numpy as np

# RDC internal
from rdc.codecs import RasterCodec, RasterDescriptor, TileReader, get_codec
from rdc.codecs.base import check_tile_bounds
from rdc.config import ReaderConfig
from rdc.container.archive import extract_container, is_archive
from rdc.container.layout import (
    ContainerLayout,
    NodeLayout,
    archive_path_for,
    container_root,
)
from rdc.container.metadata import NodeEntry, read_metadata
from rdc.container.resources import (
    ResourceScope,
    make_scratch_directory,
    remove_tree,
)
from rdc.exceptions import (
    ContainerStateError,
    MalformedContainerError,
    RasterReadError,
    ResourceReleaseError,
    ValidationError,
)
from rdc.model import Band, Product, ProductSubset, ProgressCallback, TiePointGrid

logger = logging.getLogger(__name__)


@dataclass
class _BandBinding:
    """Where and how a reconstructed band's pixels are read."""

    codec: RasterCodec
    node: NodeLayout
    descriptor: RasterDescriptor
    offset: Tuple[int, int] = (0, 0)


def resolve_container_path(path: Union[str, Path]) -> Path:
    """Find the container directory or archive referred to by *path*.

    Accepts the root directory, the archive file, or the bare output
    path given to the writer (``.rdc`` / ``.rdc.zip`` appended).

    Raises
    ------
    MalformedContainerError
        If nothing matching exists.
    """
    path = Path(path)
    if path.exists():
        return path
    root = container_root(path)
    for candidate in (root, archive_path_for(root)):
        if candidate.exists():
            return candidate
    raise MalformedContainerError(f"No container found at {path}")


class ContainerReader:
    """Read an RDC container into a ``Product``.

    Parameters
    ----------
    config : ReaderConfig or Mapping[str, Any], optional
        Reader options.
    best_effort : bool, optional
        Shortcut for ``ReaderConfig(best_effort=...)``.

    Attributes
    ----------
    product : Product or None
        Product reconstructed by ``read_product_nodes``.
    root_dir : Path or None
        Container directory being read (inside the scratch directory
        for archives).
    tile_read_count : int
        Number of codec tile reads performed for bands.

    Examples
    --------
    >>> reader = ContainerReader()
    >>> try:
    ...     product = reader.read_product_nodes(tmp / 'filename.rdc')
    ...     band = product.get_band('band')
    ...     band.read_raster_data_fully()
    ... finally:
    ...     reader.close()
    """

    def __init__(
        self,
        config: Optional[Union[ReaderConfig, Mapping[str, Any]]] = None,
        best_effort: Optional[bool] = None,
    ) -> None:
        if isinstance(config, ReaderConfig):
            self.config = config
        else:
            self.config = ReaderConfig.from_mapping(config)
        if best_effort is not None:
            self.config.best_effort = bool(best_effort)

        self.product: Optional[Product] = None
        self.root_dir: Optional[Path] = None
        self.tile_read_count = 0
        self.closed = False

        self._bindings: Dict[str, _BandBinding] = {}
        self._handles: Dict[str, TileReader] = {}
        self._scope = ResourceScope()

    # ----------------------------------------------------------------
    # Structure
    # ----------------------------------------------------------------

    def read_product_nodes(
        self,
        path: Union[str, Path],
        subset: Optional[ProductSubset] = None,
    ) -> Product:
        """Parse a container and rebuild its product tree.

        Parameters
        ----------
        path : str or Path
            Container directory, container archive, or the output path
            originally given to the writer.
        subset : ProductSubset, optional
            Nodes and region to keep.

        Returns
        -------
        Product
            Product with unloaded bands bound to this reader.

        Raises
        ------
        MalformedContainerError
            If the container or its metadata is missing or malformed.
        UnsupportedCodecError
            If a node's recorded binary format is not registered.
        RasterReadError
            If a node's data file is missing (unless best effort) or a
            tie-point grid cannot be read.
        """
        if self.closed:
            raise ContainerStateError("Reader is closed")
        if self.product is not None:
            raise ContainerStateError(
                "read_product_nodes already called on this reader"
            )
        subset = subset or ProductSubset()

        try:
            self.root_dir = self._open_container(path)
            product = self._build_product(ContainerLayout(self.root_dir), subset)
        except Exception as e:
            for name, error in self._scope.close_all():
                logger.error(
                    "Failed to release %s while handling %s: %s",
                    name, type(e).__name__, error,
                )
            raise
        self.product = product
        logger.debug(
            "Read product '%s' from %s: %d band(s), %d tie-point grid(s)",
            product.name, self.root_dir, len(product.bands),
            len(product.tie_point_grids),
        )
        return product

    def _open_container(self, path: Union[str, Path]) -> Path:
        path = resolve_container_path(path)
        if path.is_dir():
            return path
        if not is_archive(path):
            raise MalformedContainerError(
                f"{path} is neither a container directory nor a zip archive"
            )
        scratch = make_scratch_directory()
        self._scope.callback('scratch directory', lambda: remove_tree(scratch))
        return extract_container(path, scratch)

    def _locate(
        self, entry: NodeEntry, layout: ContainerLayout,
    ) -> Optional[Tuple[RasterCodec, NodeLayout]]:
        """Codec and files for *entry*; None if dropped in best effort."""
        codec = get_codec(entry.binary_format)
        node = layout.node(entry.name, codec)
        missing = [str(p) for p in node.files if not p.is_file()]
        if not missing:
            return codec, node
        error = RasterReadError(entry.name, f"missing data file(s) {missing}")
        if self.config.best_effort:
            logger.warning("Skipping node: %s", error)
            return None
        raise error

    def _build_product(
        self, layout: ContainerLayout, subset: ProductSubset,
    ) -> Product:
        document = read_metadata(layout.metadata_path)
        product = document.product
        region = subset.region

        for entry in document.bands:
            if not subset.includes(entry.name):
                continue
            located = self._locate(entry, layout)
            if located is None:
                continue
            codec, node = located
            band = entry.node
            descriptor = RasterDescriptor(
                name=band.name, dtype=band.dtype,
                width=band.width, height=band.height,
                no_data_value=band.no_data_value if band.no_data_value_used else None,
                geocoding=product.geocoding,
            )
            offset = (0, 0)
            if region is not None:
                offset = self._apply_region(band, region)
            self._bindings[band.name] = _BandBinding(
                codec=codec, node=node, descriptor=descriptor, offset=offset,
            )
            band.bind_reader(self)
            product.add_band(band)

        for entry in document.tie_point_grids:
            if not subset.includes(entry.name):
                continue
            located = self._locate(entry, layout)
            if located is None:
                continue
            codec, node = located
            product.add_tie_point_grid(self._read_tie_point_grid(entry, codec, node))
        return product

    @staticmethod
    def _apply_region(
        band: Band, region: Tuple[int, int, int, int],
    ) -> Tuple[int, int]:
        """Shrink *band* to *region*, clipped to its extent."""
        x, y, width, height = (int(v) for v in region)
        if x < 0 or y < 0 or width <= 0 or height <= 0:
            raise ValidationError(f"Invalid subset region {region}")
        if x >= band.width or y >= band.height:
            raise ValidationError(
                f"Subset region {region} lies outside band '{band.name}' "
                f"({band.width} x {band.height})"
            )
        band.width = min(width, band.width - x)
        band.height = min(height, band.height - y)
        return (x, y)

    def _read_tie_point_grid(
        self, entry: NodeEntry, codec: RasterCodec, node: NodeLayout,
    ) -> TiePointGrid:
        descriptor = RasterDescriptor(
            name=entry.name, dtype=entry.dtype,
            width=entry.width, height=entry.height,
        )
        try:
            with ResourceScope() as scope:
                handle = scope.push(
                    entry.name, codec.open_for_read(node.files, descriptor),
                )
                data = handle.read_tile(0, 0, entry.width, entry.height)
        except Exception as e:
            raise RasterReadError(entry.name, f"tie-point grid read failed: {e}") from e
        return TiePointGrid(
            name=entry.name, width=entry.width, height=entry.height,
            data=data, **entry.properties,
        )

    # ----------------------------------------------------------------
    # Pixels
    # ----------------------------------------------------------------

    def _open_band_reader(self, name: str) -> TileReader:
        binding = self._bindings[name]
        handle = binding.codec.open_for_read(binding.node.files, binding.descriptor)
        logger.debug("Opened %s reader for band '%s'", binding.codec.name, name)
        self._handles[name] = self._scope.push(name, handle)
        return handle

    def read_band_raster_data(
        self,
        band: Union[Band, str],
        x: int,
        y: int,
        width: int,
        height: int,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> np.ndarray:
        """Read one tile of a band through its recorded codec.

        Coordinates are relative to the band as reconstructed, i.e.
        after any subset region was applied.

        Returns
        -------
        np.ndarray
            ``(height, width)`` tile of the band's element type.

        Raises
        ------
        ContainerStateError
            If the reader is closed.
        ValidationError
            If the band is unknown or the tile does not fit it.
        RasterReadError
            If the codec fails.
        """
        if self.closed:
            raise ContainerStateError("Reader is closed")
        name = band if isinstance(band, str) else band.name
        binding = self._bindings.get(name)
        if binding is None:
            raise ValidationError(f"Band '{name}' is not bound to this reader")
        visible = self.product.get_band(name)
        check_tile_bounds(
            RasterDescriptor(name, visible.dtype, visible.width, visible.height),
            x, y, width, height,
        )

        if progress_callback is not None:
            progress_callback(0.0)
        ox, oy = binding.offset
        try:
            handle = self._handles.get(name)
            if handle is None:
                handle = self._open_band_reader(name)
            data = handle.read_tile(ox + x, oy + y, width, height)
        except Exception as e:
            raise RasterReadError(name, str(e)) from e
        self.tile_read_count += 1
        if progress_callback is not None:
            progress_callback(1.0)
        return data

    def load_band(
        self,
        band: Union[Band, str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> np.ndarray:
        """Load one band fully; later calls return the loaded buffer."""
        if self.product is None:
            raise ContainerStateError("read_product_nodes has not been called")
        name = band if isinstance(band, str) else band.name
        target = self.product.get_band(name)
        if target is None:
            raise ValidationError(f"Band '{name}' is not part of the product")
        return target.read_raster_data_fully(progress_callback)

    def load_all(self, progress_callback: Optional[ProgressCallback] = None) -> None:
        """Load every band of the product into memory."""
        if self.product is None:
            raise ContainerStateError("read_product_nodes has not been called")
        bands: List[Band] = self.product.bands
        for i, band in enumerate(bands):
            self.load_band(band)
            if progress_callback is not None:
                progress_callback((i + 1) / len(bands))

    # ----------------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------------

    def close(self) -> None:
        """Release codec handles and any scratch directory.

        Bands already loaded keep their pixels. Safe to call repeatedly.

        Raises
        ------
        ResourceReleaseError
            If a handle failed to close; raised after all handles and
            the scratch directory were released.
        """
        if self.closed:
            return
        self.closed = True
        self._handles.clear()
        self._scope.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit; an in-flight error is never replaced."""
        if exc_type is None:
            self.close()
            return False
        try:
            self.close()
        except ResourceReleaseError as e:
            logger.error("Failed to release reader resources: %s", e)
        return False
