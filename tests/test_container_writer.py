# -*- coding: utf-8 -*-
"""
Container Writer Tests - Unit tests for ContainerWriter.

Tests the write lifecycle, codec resolution, existing-file policy, failure
cleanup and progress reporting.

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
import zipfile

import numpy as np
import pytest

from rdc.codecs import (
    RasterCodec,
    TileWriter,
    register_codec,
    unregister_codec,
)
from rdc.config import WriterConfig
from rdc.container import metadata
from rdc.container.writer import ContainerWriter
from rdc.exceptions import (
    ContainerExistsError,
    ContainerStateError,
    RasterWriteError,
    ResourceReleaseError,
    UnsupportedCodecError,
    ValidationError,
)
from rdc.model import Band, Product, TiePointGrid
from rdc.vocabulary import CodecShape, WriterState


def _product(**band_kwargs):
    product = Product('name', 'type')
    product.add_band(Band('band', 'int32', 2, 2, data=[12, 13, 14, 15], **band_kwargs))
    return product


class _FailingWriter(TileWriter):
    def __init__(self, paths, descriptor, options=None):
        super().__init__(paths, descriptor, options)
        self.paths[0].touch()

    def _write_tile(self, x, y, data):
        if self.options.get('fail_write'):
            raise IOError("disk full")

    def _close(self):
        if self.options.get('fail_close'):
            raise IOError("flush failed")


class _FailingCodec(RasterCodec):
    name = 'Failing'
    shape = CodecShape.SINGLE_FILE
    extensions = ('bin',)

    def open_for_write(self, paths, descriptor, options=None):
        return _FailingWriter(paths, descriptor, options)

    def open_for_read(self, paths, descriptor):
        raise NotImplementedError


@pytest.fixture
def failing_codec():
    register_codec(_FailingCodec(), replace=True)
    yield
    unregister_codec('Failing')


class TestWriterLifecycle:
    """Tests for state transitions."""

    def test_full_write(self, tmp_path):
        product = _product()
        band = product.get_band('band')
        writer = ContainerWriter({'binary_format': 'NumPy'})
        assert writer.state is WriterState.CREATED

        root = writer.write_product_nodes(product, tmp_path / 'filename')
        assert root == tmp_path / 'filename.rdc'
        assert writer.state is WriterState.METADATA_WRITTEN
        assert (root / 'product.json').is_file()

        writer.write_band_raster_data(band, 0, 0, 2, 2, band.data)
        writer.close()
        assert writer.state is WriterState.CLOSED
        stored = np.load(str(root / 'band' / 'band' / 'data.npy'))
        np.testing.assert_array_equal(stored.ravel(), [12, 13, 14, 15])

    def test_metadata_document_written(self, tmp_path):
        product = _product()
        writer = ContainerWriter({'binary_format': 'NumPy'})
        root = writer.write_product_nodes(product, tmp_path / 'filename')
        assert (root / 'product.json').read_text(encoding='utf-8') == (
            metadata.dumps(product, {'band': 'NumPy'}) + '\n'
        )
        writer.write_band_raster_data('band', 0, 0, 2, 2, [12, 13, 14, 15])
        writer.close()

    def test_unserializable_attribute_creates_nothing(self, tmp_path):
        product = _product()
        product.attributes['bad'] = object()
        writer = ContainerWriter({'binary_format': 'NumPy'})
        with pytest.raises(ValidationError):
            writer.write_product_nodes(product, tmp_path / 'filename')
        assert list(tmp_path.iterdir()) == []
        assert writer.state is WriterState.CREATED

    def test_tiles_in_any_order(self, tmp_path):
        product = Product('name', 'type')
        band = product.add_band(Band('band', 'uint8', 4, 2))
        data = np.arange(8, dtype=np.uint8).reshape(2, 4)
        with ContainerWriter({'binary_format': 'NumPy'}) as writer:
            root = writer.write_product_nodes(product, tmp_path / 'tiles')
            writer.write_band_raster_data('band', 2, 1, 2, 1, data[1, 2:])
            writer.write_band_raster_data(band, 0, 0, 4, 1, data[0])
            writer.write_band_raster_data(band, 0, 1, 2, 1, data[1, :2])
        stored = np.load(str(root / 'band' / 'band' / 'data.npy'))
        np.testing.assert_array_equal(stored, data)

    def test_nodes_twice_rejected(self, tmp_path):
        writer = ContainerWriter({'binary_format': 'NumPy'})
        writer.write_product_nodes(_product(), tmp_path / 'a')
        with pytest.raises(ContainerStateError):
            writer.write_product_nodes(_product(), tmp_path / 'b')
        writer._abort()

    def test_raster_before_nodes_rejected(self):
        writer = ContainerWriter()
        with pytest.raises(ContainerStateError):
            writer.write_band_raster_data('band', 0, 0, 1, 1, [1])

    def test_raster_after_close_rejected(self, tmp_path):
        product = _product()
        writer = ContainerWriter({'binary_format': 'NumPy'})
        writer.write_product(product, tmp_path / 'filename')
        writer.close()
        with pytest.raises(ContainerStateError):
            writer.write_band_raster_data('band', 0, 0, 2, 2, product.bands[0].data)

    def test_close_idempotent(self, tmp_path):
        writer = ContainerWriter({'binary_format': 'NumPy'})
        writer.write_product(_product(), tmp_path / 'filename')
        writer.close()
        writer.close()
        assert writer.state is WriterState.CLOSED

    def test_close_unused_writer(self):
        writer = ContainerWriter()
        writer.close()
        assert writer.state is WriterState.CLOSED

    def test_unwritten_band_reported(self, tmp_path):
        writer = ContainerWriter({'binary_format': 'NumPy'})
        writer.write_product_nodes(_product(), tmp_path / 'filename')
        with pytest.raises(RasterWriteError) as info:
            writer.close()
        assert info.value.band_name == 'band'
        assert writer.state is WriterState.FAILED

    def test_partially_written_band_reported(self, tmp_path):
        writer = ContainerWriter({'binary_format': 'NumPy'})
        writer.write_product_nodes(_product(), tmp_path / 'filename')
        writer.write_band_raster_data('band', 0, 0, 1, 1, [12])
        with pytest.raises(RasterWriteError) as info:
            writer.close()
        assert info.value.band_name == 'band'
        assert 'incomplete' in str(info.value)
        assert writer.state is WriterState.FAILED

    def test_overlapping_tiles_need_full_coverage(self, tmp_path):
        writer = ContainerWriter({'binary_format': 'NumPy'})
        writer.write_product_nodes(_product(), tmp_path / 'filename')
        writer.write_band_raster_data('band', 0, 0, 2, 1, [12, 13])
        writer.write_band_raster_data('band', 0, 0, 2, 1, [12, 13])
        with pytest.raises(RasterWriteError):
            writer.close()

    def test_accepts_writer_config(self, tmp_path):
        cfg = WriterConfig(binary_format='NumPy')
        writer = ContainerWriter(cfg)
        assert writer.config is cfg


class TestCodecResolution:
    """Tests for fail-fast codec resolution."""

    def test_unknown_codec_creates_nothing(self, tmp_path):
        writer = ContainerWriter({'binary_format': 'FooFormat'})
        with pytest.raises(UnsupportedCodecError):
            writer.write_product_nodes(_product(), tmp_path / 'filename')
        assert not (tmp_path / 'filename.rdc').exists()
        assert list(tmp_path.iterdir()) == []

    def test_unknown_band_override_creates_nothing(self, tmp_path):
        writer = ContainerWriter({
            'binary_format': 'NumPy',
            'band_binary_formats': {'band': 'FooFormat'},
        })
        with pytest.raises(UnsupportedCodecError):
            writer.write_product_nodes(_product(), tmp_path / 'filename')
        assert list(tmp_path.iterdir()) == []

    def test_override_for_missing_band(self, tmp_path):
        writer = ContainerWriter({
            'binary_format': 'NumPy',
            'band_binary_formats': {'other': 'NumPy'},
        })
        with pytest.raises(ValidationError, match="unknown bands"):
            writer.write_product_nodes(_product(), tmp_path / 'filename')

    def test_per_band_codec_recorded(self, tmp_path, failing_codec):
        product = _product()
        product.add_band(Band('second', 'uint8', 1, 1, data=[7]))
        writer = ContainerWriter({
            'binary_format': 'NumPy',
            'band_binary_formats': {'second': 'Failing'},
        })
        root = writer.write_product(product, tmp_path / 'mixed')
        writer.close()
        doc = json.loads((root / 'product.json').read_text())
        formats = {b['name']: b['binary_format'] for b in doc['bands']}
        assert formats == {'band': 'NumPy', 'second': 'Failing'}
        assert (root / 'second' / 'second.bin').is_file()


class TestTileValidation:
    """Tests for tile argument checks."""

    @pytest.fixture
    def writer(self, tmp_path):
        w = ContainerWriter({'binary_format': 'NumPy'})
        w.write_product_nodes(_product(), tmp_path / 'filename')
        yield w
        w._abort()

    def test_out_of_bounds(self, writer):
        with pytest.raises(ValidationError):
            writer.write_band_raster_data('band', 1, 1, 2, 2, np.zeros(4, np.int32))

    def test_wrong_size(self, writer):
        with pytest.raises(ValidationError, match="elements"):
            writer.write_band_raster_data('band', 0, 0, 2, 2, np.zeros(3, np.int32))

    def test_wrong_dtype(self, writer):
        with pytest.raises(ValidationError, match="element type"):
            writer.write_band_raster_data('band', 0, 0, 2, 2, np.zeros(4, np.float32))

    def test_unknown_band(self, writer):
        with pytest.raises(ValidationError):
            writer.write_band_raster_data('nope', 0, 0, 1, 1, np.zeros(1, np.int32))

    def test_validation_leaves_writer_usable(self, writer):
        with pytest.raises(ValidationError):
            writer.write_band_raster_data('band', 0, 0, 2, 2, np.zeros(3, np.int32))
        assert writer.state is WriterState.METADATA_WRITTEN


class TestExistingFilePolicy:
    """Tests for the output collision policy."""

    def test_error_policy(self, tmp_path):
        with ContainerWriter({'binary_format': 'NumPy'}) as writer:
            writer.write_product(_product(), tmp_path / 'filename')
        with pytest.raises(ContainerExistsError):
            ContainerWriter({'binary_format': 'NumPy'}).write_product_nodes(
                _product(), tmp_path / 'filename',
            )

    def test_error_policy_is_file_exists_error(self, tmp_path):
        (tmp_path / 'filename.rdc').mkdir()
        with pytest.raises(FileExistsError):
            ContainerWriter({'binary_format': 'NumPy'}).write_product_nodes(
                _product(), tmp_path / 'filename',
            )

    def test_overwrite_policy(self, tmp_path):
        root = tmp_path / 'filename.rdc'
        root.mkdir()
        (root / 'stale.txt').write_text('old')
        cfg = {'binary_format': 'NumPy', 'existing_file_policy': 'overwrite'}
        with ContainerWriter(cfg) as writer:
            writer.write_product(_product(), tmp_path / 'filename')
        assert not (root / 'stale.txt').exists()
        assert (root / 'band' / 'band' / 'data.npy').is_file()


class TestFailureHandling:
    """Tests for codec failures and cleanup."""

    def test_write_failure_tagged_with_band(self, tmp_path, failing_codec):
        writer = ContainerWriter({
            'binary_format': 'Failing',
            'codec_options': {'fail_write': True},
        })
        writer.write_product_nodes(_product(), tmp_path / 'filename')
        with pytest.raises(RasterWriteError) as info:
            writer.write_band_raster_data('band', 0, 0, 2, 2, np.zeros(4, np.int32))
        assert info.value.band_name == 'band'
        assert 'disk full' in str(info.value)
        assert isinstance(info.value.__cause__, IOError)
        assert writer.state is WriterState.FAILED
        writer.close()

    def test_primary_error_not_masked_by_close(self, tmp_path, failing_codec):
        writer = ContainerWriter({
            'binary_format': 'Failing',
            'codec_options': {'fail_write': True, 'fail_close': True},
        })
        writer.write_product_nodes(_product(), tmp_path / 'filename')
        with pytest.raises(RasterWriteError):
            try:
                writer.write_band_raster_data(
                    'band', 0, 0, 2, 2, np.zeros(4, np.int32),
                )
            finally:
                writer.close()

    def test_close_failure_aggregated(self, tmp_path, failing_codec):
        product = _product()
        product.add_band(Band('second', 'int32', 1, 1, data=[1]))
        writer = ContainerWriter({
            'binary_format': 'Failing',
            'codec_options': {'fail_close': True},
        })
        writer.write_product(product, tmp_path / 'filename')
        with pytest.raises(ResourceReleaseError) as info:
            writer.close()
        assert sorted(name for name, _ in info.value.errors) == ['band', 'second']
        assert writer.state is WriterState.FAILED

    def test_context_manager_keeps_primary_error(self, tmp_path, failing_codec):
        cfg = {'binary_format': 'Failing', 'codec_options': {'fail_close': True}}
        with pytest.raises(KeyError):
            with ContainerWriter(cfg) as writer:
                writer.write_product(_product(), tmp_path / 'filename')
                raise KeyError('primary')

    def test_tie_point_grid_failure_removes_root(self, tmp_path, failing_codec):
        product = _product()
        product.add_tie_point_grid(TiePointGrid('lat', 2, 2, np.zeros(4)))
        writer = ContainerWriter({
            'binary_format': 'Failing',
            'codec_options': {'fail_write': True},
        })
        with pytest.raises(RasterWriteError) as info:
            writer.write_product_nodes(product, tmp_path / 'filename')
        assert info.value.band_name == 'lat'
        assert not (tmp_path / 'filename.rdc').exists()
        assert writer.state is WriterState.FAILED

    def test_write_product_requires_pixels(self, tmp_path):
        product = Product('name', 'type')
        product.add_band(Band('band', 'int32', 2, 2))
        with pytest.raises(ValidationError, match="without pixel data"):
            ContainerWriter({'binary_format': 'NumPy'}).write_product(
                product, tmp_path / 'filename',
            )
        assert not (tmp_path / 'filename.rdc').exists()


class TestZipOutput:
    """Tests for archive output."""

    def test_archive_only(self, tmp_path):
        cfg = {'binary_format': 'NumPy', 'use_zip_archive': True}
        with ContainerWriter(cfg) as writer:
            path = writer.write_product(_product(), tmp_path / 'filename')
        assert path == tmp_path / 'filename.rdc.zip'
        assert path.is_file()
        assert not (tmp_path / 'filename.rdc').exists()
        with zipfile.ZipFile(path) as zf:
            assert 'filename.rdc/product.json' in zf.namelist()
            assert 'filename.rdc/band/band/data.npy' in zf.namelist()

    def test_failure_leaves_no_archive(self, tmp_path, failing_codec):
        cfg = {
            'binary_format': 'Failing', 'use_zip_archive': True,
            'codec_options': {'fail_write': True},
        }
        writer = ContainerWriter(cfg)
        writer.write_product_nodes(_product(), tmp_path / 'filename')
        with pytest.raises(RasterWriteError):
            writer.write_band_raster_data('band', 0, 0, 2, 2, np.zeros(4, np.int32))
        writer.close()
        assert list(tmp_path.iterdir()) == []


class TestProgress:
    """Tests for progress callbacks."""

    def test_tile_progress(self, tmp_path):
        seen = []
        product = _product()
        with ContainerWriter({'binary_format': 'NumPy'}) as writer:
            writer.write_product_nodes(product, tmp_path / 'filename')
            writer.write_band_raster_data(
                'band', 0, 0, 2, 2, product.bands[0].data,
                progress_callback=seen.append,
            )
        assert seen == [0.0, 1.0]

    def test_product_progress(self, tmp_path):
        seen = []
        product = _product()
        product.add_band(Band('b2', 'uint8', 1, 1, data=[1]))
        with ContainerWriter({'binary_format': 'NumPy'}) as writer:
            writer.write_product(product, tmp_path / 'filename', seen.append)
        assert seen == [0.5, 1.0]
