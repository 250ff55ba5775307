# -*- coding: utf-8 -*-
"""
Container Writer - Write a product tree into an RDC container.

The writer follows a strict lifecycle::

    CREATED --write_product_nodes--> METADATA_WRITTEN
            --write_band_raster_data (any number)--> METADATA_WRITTEN
            --close--> CLOSED

``write_product_nodes`` resolves the codec, writes ``product.json`` and
the tie-point grids. Band pixels arrive tile by tile afterwards; each
band's codec handle is opened on its first tile. ``close`` releases
every handle and, when configured, zips the finished container.

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
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

# Third-party
import numpy as np

# RDC internal
from rdc.codecs import RasterCodec, RasterDescriptor, TileWriter, get_codec
from rdc.codecs.base import check_tile_bounds
from rdc.config import WriterConfig
from rdc.container import metadata
from rdc.container.archive import archive_container
from rdc.container.layout import (
    ContainerLayout,
    NodeLayout,
    archive_path_for,
    container_root,
)
from rdc.container.resources import (
    ResourceScope,
    make_scratch_directory,
    remove_tree,
)
from rdc.exceptions import (
    ContainerExistsError,
    ContainerStateError,
    RasterWriteError,
    ResourceReleaseError,
    ValidationError,
)
from rdc.model import Band, Product, ProgressCallback, TiePointGrid
from rdc.vocabulary import ExistingFilePolicy, WriterState

logger = logging.getLogger(__name__)


def _notify(callback: Optional[ProgressCallback], fraction: float) -> None:
    if callback is not None:
        callback(fraction)


class ContainerWriter:
    """Write a ``Product`` into a directory (or zip) container.

    Parameters
    ----------
    config : WriterConfig or Mapping[str, Any], optional
        Writer options. Plain mappings go through
        ``WriterConfig.from_mapping``.

    Attributes
    ----------
    state : WriterState
        Current lifecycle state.
    output_path : Path or None
        Final container path: the root directory, or the archive file
        when ``use_zip_archive`` is set.

    Examples
    --------
    >>> writer = ContainerWriter({'binary_format': 'ENVI'})
    >>> try:
    ...     writer.write_product_nodes(product, tmp / 'filename')
    ...     writer.write_band_raster_data(band, 0, 0, 2, 2, band.data)
    ... finally:
    ...     writer.close()
    """

    def __init__(
        self,
        config: Optional[Union[WriterConfig, Mapping[str, Any]]] = None,
    ) -> None:
        if isinstance(config, WriterConfig):
            self.config = config
        else:
            self.config = WriterConfig.from_mapping(config)
        self.state = WriterState.CREATED
        self.product: Optional[Product] = None
        self.output_path: Optional[Path] = None
        self.layout: Optional[ContainerLayout] = None

        self._codecs: Dict[str, RasterCodec] = {}
        self._nodes: Dict[str, NodeLayout] = {}
        self._descriptors: Dict[str, RasterDescriptor] = {}
        self._handles: Dict[str, TileWriter] = {}
        self._coverage: Dict[str, np.ndarray] = {}
        self._scope = ResourceScope()
        self._scratch_dir: Optional[Path] = None

    # ----------------------------------------------------------------
    # Setup
    # ----------------------------------------------------------------

    def _resolve_codecs(self, product: Product) -> Dict[str, RasterCodec]:
        """Codec per node name, resolved once for the whole container."""
        default = get_codec(self.config.binary_format)
        overrides = {
            name: get_codec(fmt)
            for name, fmt in self.config.band_binary_formats.items()
        }
        codecs: Dict[str, RasterCodec] = {}
        for band in product.bands:
            codecs[band.name] = overrides.get(band.name, default)
        for grid in product.tie_point_grids:
            codecs[grid.name] = default
        return codecs

    def _validate_product(self, product: Product) -> None:
        if not isinstance(product, Product):
            raise ValidationError(
                f"Expected a Product, got {type(product).__name__}"
            )
        names = product.band_names + product.tie_point_grid_names
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValidationError(
                f"Product '{product.name}' has duplicate node names: "
                f"{duplicates}"
            )
        unknown = set(self.config.band_binary_formats) - set(product.band_names)
        if unknown:
            raise ValidationError(
                f"band_binary_formats names unknown bands: {sorted(unknown)}"
            )

    def _prepare_destination(self, final_path: Path) -> None:
        if not final_path.exists():
            return
        if self.config.existing_file_policy is ExistingFilePolicy.ERROR:
            raise ContainerExistsError(f"Container already exists: {final_path}")
        logger.debug("Removing existing container %s", final_path)
        if final_path.is_dir():
            remove_tree(final_path)
        else:
            final_path.unlink()

    def _descriptor(
        self, node: Union[Band, TiePointGrid], product: Product,
    ) -> RasterDescriptor:
        no_data = None
        if isinstance(node, Band) and node.no_data_value_used:
            no_data = node.no_data_value
        return RasterDescriptor(
            name=node.name,
            dtype=node.dtype,
            width=node.width,
            height=node.height,
            no_data_value=no_data,
            geocoding=product.geocoding,
        )

    def write_product_nodes(
        self, product: Product, output_path: Union[str, Path],
    ) -> Path:
        """Create the container and write its structure.

        Resolves the codec(s) before anything is created, writes
        ``product.json`` and all tie-point grids. If any of this fails
        the partial container is removed.

        Parameters
        ----------
        product : Product
            Product to write. Band pixels are written separately.
        output_path : str or Path
            Output location; ``.rdc`` is appended when missing.

        Returns
        -------
        Path
            Final container path (directory, or archive when zipping).

        Raises
        ------
        ContainerStateError
            If called more than once.
        UnsupportedCodecError
            If the configured binary format is not registered.
        ContainerExistsError
            If the output exists and the policy is ``'error'``.
        RasterWriteError
            If a tie-point grid cannot be written.
        """
        if self.state is not WriterState.CREATED:
            raise ContainerStateError(
                f"write_product_nodes called in state {self.state.value}"
            )
        self._validate_product(product)
        codecs = self._resolve_codecs(product)
        binary_formats = {name: codec.name for name, codec in codecs.items()}
        # Attribute encoding errors surface before anything is created
        metadata.dumps(product, binary_formats)

        root = container_root(output_path)
        if self.config.use_zip_archive:
            final_path = archive_path_for(root)
        else:
            final_path = root
        self._prepare_destination(final_path)

        if self.config.use_zip_archive:
            self._scratch_dir = make_scratch_directory()
            layout = ContainerLayout(self._scratch_dir / root.name)
        else:
            layout = ContainerLayout(root)
        nodes = {name: layout.node(name, codec) for name, codec in codecs.items()}

        logger.debug(
            "Writing product '%s' to %s (binary format %s)",
            product.name, final_path, self.config.binary_format,
        )
        try:
            layout.root_dir.mkdir(parents=True)
            metadata.write_metadata(layout.metadata_path, product, binary_formats)
            for grid in product.tie_point_grids:
                self._write_tie_point_grid(
                    grid, codecs[grid.name], nodes[grid.name],
                    self._descriptor(grid, product),
                )
        except Exception:
            self.state = WriterState.FAILED
            remove_tree(layout.root_dir)
            remove_tree(self._scratch_dir)
            self._scratch_dir = None
            raise

        self.product = product
        self.layout = layout
        self.output_path = final_path
        self._codecs = codecs
        self._nodes = nodes
        self._descriptors = {
            band.name: self._descriptor(band, product) for band in product.bands
        }
        self._coverage = {
            band.name: np.zeros((band.height, band.width), dtype=bool)
            for band in product.bands
        }
        self.state = WriterState.METADATA_WRITTEN
        return final_path

    def _write_tie_point_grid(
        self,
        grid: TiePointGrid,
        codec: RasterCodec,
        node: NodeLayout,
        descriptor: RasterDescriptor,
    ) -> None:
        node.file_dir.mkdir(parents=True, exist_ok=True)
        try:
            with ResourceScope() as scope:
                handle = scope.push(grid.name, codec.open_for_write(
                    node.files, descriptor, self.config.codec_options,
                ))
                handle.write_tile(0, 0, grid.data)
        except Exception as e:
            raise RasterWriteError(grid.name, f"tie-point grid write failed: {e}") from e

    # ----------------------------------------------------------------
    # Band pixels
    # ----------------------------------------------------------------

    def _open_band_writer(self, name: str) -> TileWriter:
        node = self._nodes[name]
        existing = [p for p in node.files if p.exists()]
        if existing:
            if self.config.existing_file_policy is ExistingFilePolicy.ERROR:
                raise ContainerExistsError(
                    f"Codec file(s) already exist: {[str(p) for p in existing]}"
                )
            for path in existing:
                path.unlink()
        node.file_dir.mkdir(parents=True, exist_ok=True)
        handle = self._codecs[name].open_for_write(
            node.files, self._descriptors[name], self.config.codec_options,
        )
        logger.debug("Opened %s writer for band '%s'", self._codecs[name].name, name)
        self._handles[name] = self._scope.push(name, handle)
        return handle

    def write_band_raster_data(
        self,
        band: Union[Band, str],
        x: int,
        y: int,
        width: int,
        height: int,
        data: Any,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        """Write one tile of a band's pixels.

        Parameters
        ----------
        band : Band or str
            Band of the product passed to ``write_product_nodes``.
        x, y : int
            Tile origin (column, row).
        width, height : int
            Tile size.
        data : array-like
            ``width * height`` pixels, flat or ``(height, width)``.
            Arrays must have the band's element type; sequences are
            converted to it.
        progress_callback : callable, optional
            Called with ``0.0`` before and ``1.0`` after the tile.

        Raises
        ------
        ContainerStateError
            If the nodes were not written yet, or the writer is closed.
        ValidationError
            If the tile does not fit the band or has the wrong type.
        RasterWriteError
            If the codec fails. Every open handle is closed before this
            is raised and the writer becomes unusable.
        """
        if self.state is not WriterState.METADATA_WRITTEN:
            raise ContainerStateError(
                f"write_band_raster_data called in state {self.state.value}"
            )
        name = band if isinstance(band, str) else band.name
        if name not in self._descriptors:
            raise ValidationError(
                f"Band '{name}' is not part of product '{self.product.name}'"
            )
        descriptor = self._descriptors[name]
        check_tile_bounds(descriptor, x, y, width, height)
        if isinstance(data, np.ndarray):
            tile = data
        else:
            tile = np.asarray(data, dtype=descriptor.dtype)
        if tile.size != width * height:
            raise ValidationError(
                f"Band '{name}': tile buffer holds {tile.size} elements, "
                f"expected {width} x {height}"
            )
        if tile.dtype.name != descriptor.dtype:
            raise ValidationError(
                f"Band '{name}': tile element type {tile.dtype.name} does "
                f"not match band type {descriptor.dtype}"
            )
        tile = tile.reshape(height, width)

        _notify(progress_callback, 0.0)
        try:
            handle = self._handles.get(name)
            if handle is None:
                handle = self._open_band_writer(name)
            handle.write_tile(x, y, tile)
        except Exception as e:
            self._abort()
            raise RasterWriteError(name, str(e)) from e
        self._coverage[name][y:y + height, x:x + width] = True
        _notify(progress_callback, 1.0)

    def write_product(
        self,
        product: Product,
        output_path: Union[str, Path],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        """Write nodes and every band's in-memory pixels.

        Raises
        ------
        ValidationError
            If a band has no pixel buffer.
        """
        empty = [b.name for b in product.bands if b.data is None]
        if empty:
            raise ValidationError(f"Bands without pixel data: {empty}")
        path = self.write_product_nodes(product, output_path)
        n = len(product.bands)
        for i, band in enumerate(product.bands):
            self.write_band_raster_data(
                band, 0, 0, band.width, band.height, band.data,
            )
            _notify(progress_callback, (i + 1) / n)
        return path

    # ----------------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------------

    def _abort(self) -> None:
        """Close every handle after a failure; release errors are logged."""
        for name, error in self._scope.close_all():
            logger.error("Failed to close writer for '%s': %s", name, error)
        self._handles.clear()
        remove_tree(self._scratch_dir)
        self._scratch_dir = None
        self.state = WriterState.FAILED

    def close(self) -> None:
        """Flush and close all codec handles, then archive if configured.

        Safe to call repeatedly. After a failed write the writer is
        already closed and this is a no-op.

        Raises
        ------
        ResourceReleaseError
            If any handle failed to close; raised after all handles
            were attempted.
        RasterWriteError
            If any pixel of a band was never written.
        """
        if self.state in (WriterState.CLOSED, WriterState.FAILED):
            return
        if self.state is WriterState.CREATED:
            self.state = WriterState.CLOSED
            return

        failures = self._scope.close_all()
        self._handles.clear()
        if failures:
            self._fail()
            raise ResourceReleaseError(failures) from failures[0][1]

        incomplete = [n for n, mask in self._coverage.items() if not mask.all()]
        if incomplete:
            self._fail()
            raise RasterWriteError(
                incomplete[0],
                f"raster data incomplete for band(s) {incomplete}",
            )

        if self.config.use_zip_archive:
            try:
                archive_container(
                    self.layout.root_dir, self.output_path, remove_source=True,
                )
            except Exception:
                self._fail()
                raise
            remove_tree(self._scratch_dir)
            self._scratch_dir = None
        self.state = WriterState.CLOSED
        logger.debug("Closed container %s", self.output_path)

    def _fail(self) -> None:
        remove_tree(self._scratch_dir)
        self._scratch_dir = None
        self.state = WriterState.FAILED

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit; an in-flight error is never replaced."""
        if exc_type is None:
            self.close()
        elif self.state is WriterState.METADATA_WRITTEN:
            self._abort()
        return False
