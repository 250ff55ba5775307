# -*- coding: utf-8 -*-
"""
Container Module - Directory-based product container engine.

Writes a product tree to ``<name>.rdc/`` (optionally zipped to
``<name>.rdc.zip``) and reads it back. Structure and attributes live in
``product.json``; each band's pixels are delegated to a raster codec
from ``rdc.codecs``.

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

from rdc.container.archive import archive_container, extract_container, is_archive
from rdc.container.layout import (
    ARCHIVE_EXTENSION,
    CONTAINER_EXTENSION,
    METADATA_FILENAME,
    ContainerLayout,
    NodeLayout,
    archive_path_for,
    container_root,
    plan_node,
)
from rdc.container.reader import ContainerReader
from rdc.container.resources import ResourceScope
from rdc.container.writer import ContainerWriter

__all__ = [
    'ARCHIVE_EXTENSION',
    'CONTAINER_EXTENSION',
    'METADATA_FILENAME',
    'ContainerLayout',
    'ContainerReader',
    'ContainerWriter',
    'NodeLayout',
    'ResourceScope',
    'archive_container',
    'archive_path_for',
    'container_root',
    'extract_container',
    'is_archive',
    'plan_node',
]
