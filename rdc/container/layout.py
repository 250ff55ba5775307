# -*- coding: utf-8 -*-
"""
Container Layout - Pure path derivation for container directories.

Both the writer and the reader derive every on-disk path through this
module, so the two sides agree on the layout by construction::

    <name>.rdc/product.json
    <name>.rdc/<band>/<band>.<ext>              single-file codecs
    <name>.rdc/<band>/<band>/data.<hdr_ext>     header/data codecs
    <name>.rdc/<band>/<band>/data.<data_ext>

Nothing here touches the filesystem.

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
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

# RDC internal
from rdc.codecs.base import RasterCodec
from rdc.exceptions import ValidationError
from rdc.vocabulary import CodecShape

CONTAINER_EXTENSION = '.rdc'
ARCHIVE_EXTENSION = '.zip'
METADATA_FILENAME = 'product.json'
SPLIT_BASENAME = 'data'


def container_root(output_path: Union[str, Path]) -> Path:
    """Root directory of the container written to *output_path*.

    Parameters
    ----------
    output_path : str or Path
        Requested output location, with or without the container
        extension.

    Returns
    -------
    Path
        ``output_path`` with ``.rdc`` appended unless already present.

    Examples
    --------
    >>> container_root('/tmp/filename')
    PosixPath('/tmp/filename.rdc')
    >>> container_root('/tmp/filename.rdc')
    PosixPath('/tmp/filename.rdc')
    """
    path = Path(output_path)
    if path.name.endswith(CONTAINER_EXTENSION + ARCHIVE_EXTENSION):
        path = path.with_name(path.name[:-len(ARCHIVE_EXTENSION)])
    if path.name.endswith(CONTAINER_EXTENSION):
        return path
    return path.with_name(path.name + CONTAINER_EXTENSION)


def archive_path_for(root_dir: Union[str, Path]) -> Path:
    """Archive file that wraps *root_dir*: ``<name>.rdc.zip``."""
    root_dir = Path(root_dir)
    return root_dir.with_name(root_dir.name + ARCHIVE_EXTENSION)


def _check_node_name(name: str) -> None:
    if not name or name in ('.', '..') or '/' in name or '\\' in name:
        raise ValidationError(
            f"Node name {name!r} cannot be used as a directory name"
        )


@dataclass(frozen=True)
class NodeLayout:
    """Planned location of one band or tie-point grid.

    Attributes
    ----------
    node_dir : Path
        ``<root>/<name>``.
    files : Tuple[Path, ...]
        Codec file(s), ordered like the codec's extensions.
    shape : CodecShape
        Codec file shape the plan was derived for.
    """

    node_dir: Path
    files: Tuple[Path, ...]
    shape: CodecShape

    @property
    def file_dir(self) -> Path:
        """Directory that directly contains the codec file(s)."""
        return self.files[0].parent

    @property
    def header_path(self) -> Path:
        if self.shape is not CodecShape.HEADER_AND_DATA:
            raise ValidationError("Single-file layouts have no header path")
        return self.files[0]

    @property
    def data_path(self) -> Path:
        return self.files[-1]


def plan_node(
    root_dir: Union[str, Path],
    node_name: str,
    shape: CodecShape,
    extensions: Tuple[str, ...],
) -> NodeLayout:
    """Derive the paths of one node's codec file(s).

    Parameters
    ----------
    root_dir : str or Path
        Container root directory.
    node_name : str
        Band or tie-point grid name.
    shape : CodecShape
        File shape of the codec.
    extensions : Tuple[str, ...]
        ``(ext,)`` for single-file codecs, ``(header_ext, data_ext)``
        for header/data codecs.

    Returns
    -------
    NodeLayout

    Raises
    ------
    ValidationError
        If the node name is not a usable directory name or the
        extensions do not fit the shape.
    """
    _check_node_name(node_name)
    node_dir = Path(root_dir) / node_name
    if shape is CodecShape.SINGLE_FILE:
        if len(extensions) != 1:
            raise ValidationError(
                f"Single-file codecs take one extension, got {extensions}"
            )
        files = (node_dir / f"{node_name}.{extensions[0]}",)
    else:
        if len(extensions) != 2:
            raise ValidationError(
                f"Header/data codecs take two extensions, got {extensions}"
            )
        split_dir = node_dir / node_name
        files = tuple(split_dir / f"{SPLIT_BASENAME}.{ext}" for ext in extensions)
    return NodeLayout(node_dir=node_dir, files=files, shape=shape)


class ContainerLayout:
    """Layout of one container rooted at *root_dir*.

    Parameters
    ----------
    root_dir : str or Path
        Container root directory (``<name>.rdc``).

    Examples
    --------
    >>> from rdc.codecs import get_codec
    >>> layout = ContainerLayout('/tmp/filename.rdc')
    >>> layout.node('band', get_codec('numpy')).files
    (PosixPath('/tmp/filename.rdc/band/band/data.json'), PosixPath('/tmp/filename.rdc/band/band/data.npy'))
    """

    def __init__(self, root_dir: Union[str, Path]) -> None:
        self.root_dir = Path(root_dir)

    @property
    def metadata_path(self) -> Path:
        return self.root_dir / METADATA_FILENAME

    @property
    def archive_path(self) -> Path:
        return archive_path_for(self.root_dir)

    def node(self, name: str, codec: RasterCodec) -> NodeLayout:
        return plan_node(
            self.root_dir, name, codec.describe_shape(),
            codec.file_extensions(),
        )

    def __repr__(self) -> str:
        return f"ContainerLayout(root_dir={str(self.root_dir)!r})"
