# -*- coding: utf-8 -*-
"""
Resource Lifecycle - Scoped release of codec handles and scratch space.

``ResourceScope`` tracks everything a writer or reader opens and closes
all of it on every exit path. Every handle gets a chance to close even
when earlier closes fail; failures are collected and raised once as a
``ResourceReleaseError``. When a primary error is already propagating
the release failures are logged instead, so they never replace it.

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
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

# RDC internal
from rdc.exceptions import ResourceReleaseError

logger = logging.getLogger(__name__)


class ResourceScope:
    """Ordered set of named closeables released together.

    Examples
    --------
    >>> with ResourceScope() as scope:
    ...     handle = scope.push('band', codec.open_for_write(...))
    ...     handle.write_tile(0, 0, tile)
    """

    def __init__(self) -> None:
        self._resources: Dict[str, Callable[[], Any]] = {}

    def push(self, name: str, resource: Any) -> Any:
        """Track *resource* (anything with ``close()``) under *name*."""
        self._resources[name] = resource.close
        return resource

    def callback(self, name: str, func: Callable[[], Any]) -> None:
        """Track a release callable under *name*."""
        self._resources[name] = func

    def __len__(self) -> int:
        return len(self._resources)

    def close_all(self) -> List[Tuple[str, BaseException]]:
        """Release every resource in reverse acquisition order.

        Returns
        -------
        List[Tuple[str, BaseException]]
            Failures, in release order. Empty when all closed cleanly.
        """
        failures: List[Tuple[str, BaseException]] = []
        for name in reversed(list(self._resources)):
            func = self._resources.pop(name)
            try:
                func()
            except Exception as e:
                logger.debug("Release of %s failed: %s", name, e)
                failures.append((name, e))
        return failures

    def close(self) -> None:
        """Release everything, raising one aggregate error on failure.

        Raises
        ------
        ResourceReleaseError
            After all resources were attempted, if any failed.
        """
        failures = self.close_all()
        if failures:
            raise ResourceReleaseError(failures) from failures[0][1]

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit; never masks an in-flight exception."""
        if exc_type is None:
            self.close()
            return False
        for name, error in self.close_all():
            logger.error(
                "Failed to release %s while handling %s: %s",
                name, exc_type.__name__, error,
            )
        return False


def make_scratch_directory(prefix: str = 'rdc-') -> Path:
    """Create a private temporary directory."""
    return Path(tempfile.mkdtemp(prefix=prefix))


def remove_tree(path: Optional[Path]) -> None:
    """Delete a directory tree if it exists."""
    if path is not None and path.exists():
        shutil.rmtree(path)

