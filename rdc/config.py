# -*- coding: utf-8 -*-
"""
RDC Configuration - Writer and reader option sets.

Typed option containers built from plain mappings (``dict``, parsed
properties files, CLI keyword arguments). Only recognized keys are
read; anything else is ignored so that option sets can be shared with
other tools.

Recognized writer keys
----------------------
``binary_format`` / ``binaryFormat``
    Codec identifier for band pixels (default ``'ENVI'``).
``use_zip_archive`` / ``useZipArchive``
    Package the finished container into ``<name>.rdc.zip``.
``existing_file_policy`` / ``existingFilePolicy``
    ``'error'`` (default) or ``'overwrite'``.
``codec_options`` / ``codecOptions``
    Mapping passed through unchanged to the codec.
``band_binary_formats`` / ``bandBinaryFormats``
    Per-band codec identifiers overriding ``binary_format``.

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
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

# RDC internal
from rdc.exceptions import ValidationError
from rdc.vocabulary import BinaryFormat, ExistingFilePolicy

DEFAULT_BINARY_FORMAT = BinaryFormat.ENVI.value

_TRUE_STRINGS = ('true', 'yes', '1', 'on')
_FALSE_STRINGS = ('false', 'no', '0', 'off', '')


def _lookup(mapping: Mapping[str, Any], *keys: str) -> Any:
    """Return the value of the first key present in *mapping*, else None."""
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def parse_bool(value: Any) -> bool:
    """Interpret a bool or a properties-style string as a boolean.

    Parameters
    ----------
    value : Any
        ``bool``, ``int``, or string such as ``'true'`` / ``'false'``.

    Returns
    -------
    bool

    Raises
    ------
    ValidationError
        If *value* cannot be interpreted as a boolean.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValidationError(f"Cannot interpret {value!r} as a boolean")


@dataclass
class WriterConfig:
    """Options consumed by ``ContainerWriter``.

    Parameters
    ----------
    binary_format : str
        Codec identifier used for every band and tie-point grid.
    use_zip_archive : bool
        Archive the container into a single zip file on close.
    existing_file_policy : ExistingFilePolicy
        Behavior when the container or a codec file already exists.
    codec_options : Dict[str, Any]
        Codec-specific options, opaque to the engine.
    band_binary_formats : Dict[str, str]
        Codec identifier per band name, overriding *binary_format*.

    Examples
    --------
    >>> cfg = WriterConfig.from_mapping({'binaryFormat': 'GeoTIFF',
    ...                                  'useZipArchive': 'false'})
    >>> cfg.binary_format
    'GeoTIFF'
    """

    binary_format: str = DEFAULT_BINARY_FORMAT
    use_zip_archive: bool = False
    existing_file_policy: ExistingFilePolicy = ExistingFilePolicy.ERROR
    codec_options: Dict[str, Any] = field(default_factory=dict)
    band_binary_formats: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.existing_file_policy, ExistingFilePolicy):
            try:
                self.existing_file_policy = ExistingFilePolicy(
                    str(self.existing_file_policy).lower()
                )
            except ValueError as e:
                raise ValidationError(
                    f"Unknown existing_file_policy: "
                    f"{self.existing_file_policy!r}. Supported: "
                    f"{[p.value for p in ExistingFilePolicy]}"
                ) from e
        if not self.binary_format:
            raise ValidationError("binary_format must not be empty")

    @classmethod
    def from_mapping(
        cls, mapping: Optional[Mapping[str, Any]] = None,
    ) -> 'WriterConfig':
        """Build a config from a mapping, ignoring unrecognized keys.

        Parameters
        ----------
        mapping : Mapping[str, Any], optional
            Option mapping. Snake case and camel case keys are both
            accepted.

        Returns
        -------
        WriterConfig
        """
        mapping = mapping or {}
        kwargs: Dict[str, Any] = {}

        binary_format = _lookup(mapping, 'binary_format', 'binaryFormat')
        if binary_format is not None:
            kwargs['binary_format'] = str(binary_format)

        use_zip = _lookup(mapping, 'use_zip_archive', 'useZipArchive')
        if use_zip is not None:
            kwargs['use_zip_archive'] = parse_bool(use_zip)

        policy = _lookup(
            mapping, 'existing_file_policy', 'existingFilePolicy',
        )
        if policy is not None:
            kwargs['existing_file_policy'] = policy

        codec_options = _lookup(mapping, 'codec_options', 'codecOptions')
        if codec_options is not None:
            kwargs['codec_options'] = dict(codec_options)

        band_formats = _lookup(
            mapping, 'band_binary_formats', 'bandBinaryFormats',
        )
        if band_formats is not None:
            kwargs['band_binary_formats'] = {
                str(k): str(v) for k, v in dict(band_formats).items()
            }

        return cls(**kwargs)


@dataclass
class ReaderConfig:
    """Options consumed by ``ContainerReader``.

    Parameters
    ----------
    best_effort : bool
        Drop bands whose data files are missing instead of failing the
        whole read.
    """

    best_effort: bool = False

    @classmethod
    def from_mapping(
        cls, mapping: Optional[Mapping[str, Any]] = None,
    ) -> 'ReaderConfig':
        """Build a config from a mapping, ignoring unrecognized keys."""
        mapping = mapping or {}
        best_effort = _lookup(mapping, 'best_effort', 'bestEffort')
        if best_effort is None:
            return cls()
        return cls(best_effort=parse_bool(best_effort))
