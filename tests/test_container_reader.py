# -*- coding: utf-8 -*-
"""
Container Reader Tests - Unit tests for ContainerReader.

Tests deferred loading, idempotent full reads, subsets, best-effort mode and
malformed container handling.

Dependencies
------------
pytest

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

import json

import numpy as np
import pytest

from rdc.container import reader as reader_module
from rdc.container.archive import archive_container
from rdc.container.reader import ContainerReader, resolve_container_path
from rdc.container.resources import make_scratch_directory, remove_tree
from rdc.container.writer import ContainerWriter
from rdc.exceptions import (
    ContainerStateError,
    MalformedContainerError,
    RasterReadError,
    ResourceReleaseError,
    UnsupportedCodecError,
    ValidationError,
)
from rdc.model import Band, Product, ProductSubset, TiePointGrid
from rdc.vocabulary import RasterState


@pytest.fixture
def container(tmp_path):
    """NumPy-coded container with two bands and one tie-point grid."""
    product = Product('name', 'type')
    product.add_band(Band('band', 'int32', 2, 2, data=[12, 13, 14, 15]))
    product.add_band(Band(
        'wide', 'float32', 4, 3,
        data=np.arange(12, dtype=np.float32).reshape(3, 4),
    ))
    product.add_tie_point_grid(TiePointGrid('lat', 2, 2, [1.0, 2.0, 3.0, 4.0]))
    with ContainerWriter({'binary_format': 'NumPy'}) as writer:
        return writer.write_product(product, tmp_path / 'filename')


class TestDeferredLoading:
    """Tests for lazy band pixel loading."""

    def test_structure_without_pixels(self, container):
        with ContainerReader() as reader:
            product = reader.read_product_nodes(container)
            assert product.band_names == ['band', 'wide']
            assert product.tie_point_grid_names == ['lat']
            band = product.get_band('band')
            assert band.raster_state is RasterState.UNLOADED
            assert band.data is None
            assert reader.tile_read_count == 0

    def test_tie_point_grid_loaded_eagerly(self, container):
        with ContainerReader() as reader:
            grid = reader.read_product_nodes(container).get_tie_point_grid('lat')
            np.testing.assert_array_equal(
                grid.data, np.array([[1, 2], [3, 4]], dtype=np.float32),
            )

    def test_full_read_is_idempotent(self, container):
        with ContainerReader() as reader:
            band = reader.read_product_nodes(container).get_band('band')
            first = band.read_raster_data_fully()
            second = band.read_raster_data_fully()
            assert reader.tile_read_count == 1
            assert band.read_count == 1
            assert second is first
            np.testing.assert_array_equal(first.ravel(), [12, 13, 14, 15])
            assert first.dtype == np.int32

    def test_tile_read_does_not_load(self, container):
        with ContainerReader() as reader:
            band = reader.read_product_nodes(container).get_band('wide')
            tile = band.read_raster_data(1, 1, 2, 2)
            np.testing.assert_array_equal(tile, [[5, 6], [9, 10]])
            assert not band.is_loaded

    def test_progress_callback(self, container):
        seen = []
        with ContainerReader() as reader:
            band = reader.read_product_nodes(container).get_band('band')
            band.read_raster_data_fully(progress_callback=seen.append)
        assert seen == [0.0, 1.0]

    def test_load_all(self, container):
        seen = []
        with ContainerReader() as reader:
            product = reader.read_product_nodes(container)
            reader.load_all(seen.append)
        assert all(b.is_loaded for b in product.bands)
        assert seen == [0.5, 1.0]

    def test_loaded_data_survives_close(self, container):
        reader = ContainerReader()
        band = reader.read_product_nodes(container).get_band('band')
        band.read_raster_data_fully()
        reader.close()
        np.testing.assert_array_equal(band.data.ravel(), [12, 13, 14, 15])

    def test_unloaded_band_after_close(self, container):
        reader = ContainerReader()
        band = reader.read_product_nodes(container).get_band('band')
        reader.close()
        with pytest.raises(ContainerStateError):
            band.read_raster_data_fully()


class TestReaderState:
    """Tests for reader lifecycle checks."""

    def test_read_twice_rejected(self, container):
        with ContainerReader() as reader:
            reader.read_product_nodes(container)
            with pytest.raises(ContainerStateError):
                reader.read_product_nodes(container)

    def test_closed_reader_rejected(self, container):
        reader = ContainerReader()
        reader.close()
        reader.close()
        with pytest.raises(ContainerStateError):
            reader.read_product_nodes(container)

    def test_load_all_before_read(self):
        with pytest.raises(ContainerStateError):
            ContainerReader().load_all()

    def test_tile_out_of_bounds(self, container):
        with ContainerReader() as reader:
            reader.read_product_nodes(container)
            with pytest.raises(ValidationError):
                reader.read_band_raster_data('band', 1, 1, 2, 2)

    def test_unknown_band(self, container):
        with ContainerReader() as reader:
            reader.read_product_nodes(container)
            with pytest.raises(ValidationError):
                reader.read_band_raster_data('nope', 0, 0, 1, 1)


class TestPathResolution:
    """Tests for locating a container from a user-supplied path."""

    def test_bare_output_path(self, container, tmp_path):
        assert resolve_container_path(tmp_path / 'filename') == container

    def test_missing(self, tmp_path):
        with pytest.raises(MalformedContainerError):
            resolve_container_path(tmp_path / 'nothing')

    def test_read_from_bare_path(self, container, tmp_path):
        with ContainerReader() as reader:
            assert reader.read_product_nodes(tmp_path / 'filename').name == 'name'
            assert reader.root_dir == container


class TestSubset:
    """Tests for ProductSubset handling."""

    def test_node_names(self, container):
        subset = ProductSubset(node_names=['wide'])
        with ContainerReader() as reader:
            product = reader.read_product_nodes(container, subset)
            assert product.band_names == ['wide']
            assert product.tie_point_grid_names == []

    def test_region(self, container):
        subset = ProductSubset(region=(1, 1, 2, 5))
        with ContainerReader() as reader:
            product = reader.read_product_nodes(container, subset)
            wide = product.get_band('wide')
            assert (wide.width, wide.height) == (2, 2)
            np.testing.assert_array_equal(
                wide.read_raster_data_fully(), [[5, 6], [9, 10]],
            )
            band = product.get_band('band')
            assert (band.width, band.height) == (1, 1)
            assert band.read_raster_data_fully()[0, 0] == 15

    def test_region_outside(self, container):
        with ContainerReader() as reader:
            with pytest.raises(ValidationError):
                reader.read_product_nodes(
                    container, ProductSubset(region=(3, 0, 1, 1)),
                )


class TestMissingAndMalformed:
    """Tests for damaged containers."""

    def test_missing_metadata(self, container):
        (container / 'product.json').unlink()
        with pytest.raises(MalformedContainerError):
            ContainerReader().read_product_nodes(container)

    def test_invalid_metadata(self, container):
        (container / 'product.json').write_text('{"product": ')
        with pytest.raises(MalformedContainerError):
            ContainerReader().read_product_nodes(container)

    def test_unknown_codec_in_metadata(self, container):
        path = container / 'product.json'
        doc = json.loads(path.read_text())
        doc['bands'][0]['binary_format'] = 'FooFormat'
        path.write_text(json.dumps(doc))
        with pytest.raises(UnsupportedCodecError):
            ContainerReader().read_product_nodes(container)

    def test_missing_data_file(self, container):
        (container / 'band' / 'band' / 'data.npy').unlink()
        with pytest.raises(RasterReadError) as info:
            ContainerReader().read_product_nodes(container)
        assert info.value.band_name == 'band'

    def test_missing_data_file_best_effort(self, container, caplog):
        (container / 'band' / 'band' / 'data.npy').unlink()
        with ContainerReader(best_effort=True) as reader:
            product = reader.read_product_nodes(container)
            assert product.band_names == ['wide']
            product.get_band('wide').read_raster_data_fully()
        assert any('band' in r.getMessage() for r in caplog.records)

    def test_best_effort_from_mapping(self, container):
        (container / 'wide' / 'wide' / 'data.json').unlink()
        with ContainerReader({'bestEffort': 'true'}) as reader:
            assert reader.read_product_nodes(container).band_names == ['band']

    def test_corrupt_codec_file(self, container):
        (container / 'band' / 'band' / 'data.json').write_text('{broken')
        with ContainerReader() as reader:
            band = reader.read_product_nodes(container).get_band('band')
            with pytest.raises(RasterReadError) as info:
                band.read_raster_data_fully()
            assert info.value.band_name == 'band'
            assert not band.is_loaded

    def test_corrupt_tie_point_grid(self, container):
        (container / 'lat' / 'lat' / 'data.json').write_text('{broken')
        with pytest.raises(RasterReadError) as info:
            ContainerReader().read_product_nodes(container)
        assert info.value.band_name == 'lat'


class TestLoadBand:
    """Tests for ContainerReader.load_band."""

    def test_by_name_once(self, container):
        with ContainerReader() as reader:
            product = reader.read_product_nodes(container)
            data = reader.load_band('wide')
            assert reader.load_band(product.get_band('wide')) is data
            assert reader.tile_read_count == 1
            assert data.shape == (3, 4)

    def test_unknown(self, container):
        with ContainerReader() as reader:
            reader.read_product_nodes(container)
            with pytest.raises(ValidationError):
                reader.load_band('missing')


class TestScratchRelease:
    """Scratch space of archived containers is released on every path."""

    @pytest.fixture
    def scratch_dirs(self, monkeypatch):
        created = []

        def make(prefix='rdc-'):
            path = make_scratch_directory(prefix)
            created.append(path)
            return path

        monkeypatch.setattr(reader_module, 'make_scratch_directory', make)
        return created

    def test_removed_after_failed_read(self, container, scratch_dirs):
        (container / 'product.json').write_text('{"product": ')
        archive = archive_container(container, remove_source=True)
        with pytest.raises(MalformedContainerError):
            ContainerReader().read_product_nodes(archive)
        assert len(scratch_dirs) == 1
        assert not scratch_dirs[0].exists()

    def test_removed_after_handles(self, container, scratch_dirs):
        archive = archive_container(container, remove_source=True)
        reader = ContainerReader()
        reader.read_product_nodes(archive).get_band('band').read_raster_data(
            0, 0, 1, 1,
        )
        reader.close()
        assert not scratch_dirs[0].exists()

    def test_removal_failure_reported(self, container, scratch_dirs,
                                      monkeypatch):
        archive = archive_container(container, remove_source=True)
        reader = ContainerReader()
        reader.read_product_nodes(archive)

        def fail(path):
            raise OSError("device busy")

        monkeypatch.setattr(reader_module, 'remove_tree', fail)
        with pytest.raises(ResourceReleaseError) as info:
            reader.close()
        assert [name for name, _ in info.value.errors] == ['scratch directory']
        reader.close()
        remove_tree(scratch_dirs[0])
