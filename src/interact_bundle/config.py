"""Configuration for packing and verification.

Defaults can be overridden from a YAML file (:func:`load_config`) or
from ``INTERACT_BUNDLE_*`` environment variables
(:meth:`BundleConfig.from_env`).

Example YAML
------------
.. code-block:: yaml

    size_warning_mb: 50
    compression_level: 9
    default_license: CC-BY-4.0
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping, Union

import yaml

_MIB = 1024 * 1024

_ENV_PREFIX = "INTERACT_BUNDLE_"


@dataclass(frozen=True)
class BundleConfig:
    """Tunable behaviour shared by the packer and the verifier.

    Attributes
    ----------
    size_warning_bytes:
        Archives larger than this produce a ``SIZE_WARNING``.
    compression_level:
        DEFLATE level (0-9) used when writing the archive.
    default_language:
        Language applied when a draft does not name one.
    default_license:
        License identifier applied when a draft does not name one.
    default_access:
        Access tier applied when a draft does not name one.
    default_version:
        Version applied when a draft does not name one.
    """

    size_warning_bytes: int = 100 * _MIB
    compression_level: int = 6
    default_language: str = "en"
    default_license: str = "Apache-2.0"
    default_access: str = "public"
    default_version: str = "1.0.0"

    def __post_init__(self) -> None:
        if self.size_warning_bytes <= 0:
            raise ValueError(
                f"size_warning_bytes must be > 0, got {self.size_warning_bytes}"
            )
        if not 0 <= self.compression_level <= 9:
            raise ValueError(
                f"compression_level must be between 0 and 9, got {self.compression_level}"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "BundleConfig":
        """Build a config from a plain mapping.

        ``size_warning_mb`` is accepted as a convenience alias for
        ``size_warning_bytes``.  Unknown keys raise ``ValueError``.
        """
        values = dict(data)
        if "size_warning_mb" in values:
            values["size_warning_bytes"] = int(float(values.pop("size_warning_mb")) * _MIB)

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")

        for int_field in ("size_warning_bytes", "compression_level"):
            if int_field in values:
                values[int_field] = int(values[int_field])  # type: ignore[arg-type]
        return cls(**values)  # type: ignore[arg-type]

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        base: "BundleConfig | None" = None,
    ) -> "BundleConfig":
        """Apply ``INTERACT_BUNDLE_<FIELD>`` environment overrides.

        Parameters
        ----------
        environ:
            Mapping to read from.  Defaults to ``os.environ``.
        base:
            Config to override.  Defaults to the built-in defaults.
        """
        env = os.environ if environ is None else environ
        config = base if base is not None else cls()
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(_ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = int(raw) if f.type in ("int", int) else raw
        mb = env.get(_ENV_PREFIX + "SIZE_WARNING_MB")
        if mb is not None and "size_warning_bytes" not in overrides:
            overrides["size_warning_bytes"] = int(float(mb) * _MIB)
        return replace(config, **overrides) if overrides else config


def load_config(source: Union[str, Path]) -> BundleConfig:
    """Load a :class:`BundleConfig` from a YAML file.

    Raises
    ------
    FileNotFoundError
        If *source* does not exist.
    ValueError
        If the YAML document is not a mapping or has unknown keys.
    """
    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return BundleConfig()
    if not isinstance(data, dict):
        raise ValueError(
            f"Config file must contain a mapping, got {type(data).__name__}"
        )
    return BundleConfig.from_mapping(data)


DEFAULT_CONFIG = BundleConfig()

__all__ = [
    "BundleConfig",
    "DEFAULT_CONFIG",
    "load_config",
]
