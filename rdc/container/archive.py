# -*- coding: utf-8 -*-
"""
Archive Wrapper - Package a finished container into one zip file.

Archiving is an all-or-nothing step: it runs after the container
directory is complete and before a read starts. Entries are stored
under the root directory name (``filename.rdc/product.json``, ...) in
sorted order so that archiving the same tree twice yields the same
entry list.

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
import shutil
import zipfile
from pathlib import Path
from typing import Optional, Union

# RDC internal
from rdc.container.layout import METADATA_FILENAME, archive_path_for
from rdc.exceptions import MalformedContainerError

logger = logging.getLogger(__name__)


def is_archive(path: Union[str, Path]) -> bool:
    """True if *path* is a regular file holding a zip archive."""
    path = Path(path)
    return path.is_file() and zipfile.is_zipfile(path)


def archive_container(
    root_dir: Union[str, Path],
    archive_path: Optional[Union[str, Path]] = None,
    remove_source: bool = False,
) -> Path:
    """Zip a container directory.

    Parameters
    ----------
    root_dir : str or Path
        Container root directory.
    archive_path : str or Path, optional
        Output archive. Defaults to ``<root_dir>.zip`` beside the root.
    remove_source : bool
        Delete *root_dir* after the archive is complete.

    Returns
    -------
    Path
        The archive file.

    Raises
    ------
    MalformedContainerError
        If *root_dir* is not a container directory.
    """
    root_dir = Path(root_dir)
    if not (root_dir / METADATA_FILENAME).is_file():
        raise MalformedContainerError(
            f"{root_dir} is not a container: no {METADATA_FILENAME}"
        )
    archive_path = Path(archive_path) if archive_path else archive_path_for(root_dir)
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    partial = archive_path.with_name(archive_path.name + '.part')
    try:
        with zipfile.ZipFile(partial, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(root_dir.rglob('*')):
                if path.is_file():
                    arcname = Path(root_dir.name) / path.relative_to(root_dir)
                    zf.write(path, arcname.as_posix())
        partial.replace(archive_path)
    except BaseException:
        if partial.exists():
            partial.unlink()
        raise

    logger.debug("Archived %s to %s", root_dir, archive_path)
    if remove_source:
        shutil.rmtree(root_dir)
    return archive_path


def extract_container(
    archive_path: Union[str, Path], scratch_dir: Union[str, Path],
) -> Path:
    """Unzip a container archive and locate its root directory.

    Parameters
    ----------
    archive_path : str or Path
        Zip file produced by ``archive_container`` (or any zip whose
        metadata file sits at the top level or one directory down).
    scratch_dir : str or Path
        Existing empty directory to extract into.

    Returns
    -------
    Path
        Directory that contains the metadata file.

    Raises
    ------
    MalformedContainerError
        If the archive is corrupt, unsafe, or holds no metadata file.
    """
    archive_path = Path(archive_path)
    scratch_dir = Path(scratch_dir)
    try:
        with zipfile.ZipFile(archive_path, 'r') as zf:
            for info in zf.infolist():
                target = (scratch_dir / info.filename).resolve()
                if scratch_dir.resolve() not in target.parents and \
                        target != scratch_dir.resolve():
                    raise MalformedContainerError(
                        f"Archive entry escapes extraction root: "
                        f"{info.filename}"
                    )
            zf.extractall(scratch_dir)
    except zipfile.BadZipFile as e:
        raise MalformedContainerError(
            f"Corrupt container archive {archive_path}: {e}"
        ) from e

    if (scratch_dir / METADATA_FILENAME).is_file():
        return scratch_dir
    candidates = sorted(
        p.parent for p in scratch_dir.glob(f'*/{METADATA_FILENAME}')
    )
    if len(candidates) != 1:
        raise MalformedContainerError(
            f"Archive {archive_path} does not hold exactly one container "
            f"(found {len(candidates)})"
        )
    logger.debug("Extracted %s to %s", archive_path, candidates[0])
    return candidates[0]
