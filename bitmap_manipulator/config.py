"""
Pipeline settings.

Defaults live in module constants; `PipelineConfig.from_env()` lets a deployment
override the tunable ones through environment variables.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

# ── Output ──
FILE_PREFIX = "bitmapmanipulator_"
FILE_EXTENSION = ".jpeg"
JPEG_QUALITY = 100

# ── Decode ──
MAX_DIMENSION = 1024

# ── Cleanup ──
DELETE_PARTIAL_OUTPUT = True

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
	value = raw.strip().lower()
	if value in _TRUE_VALUES:
		return True
	if value in _FALSE_VALUES:
		return False
	raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
	try:
		return int(raw.strip())
	except ValueError:
		raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class PipelineConfig:
	max_dimension: int = MAX_DIMENSION
	jpeg_quality: int = JPEG_QUALITY
	file_prefix: str = FILE_PREFIX
	file_extension: str = FILE_EXTENSION
	delete_partial_output: bool = DELETE_PARTIAL_OUTPUT

	def __post_init__(self) -> None:
		if self.max_dimension <= 0:
			raise ValueError(f"max_dimension must be positive, got {self.max_dimension}")
		if not 0 <= self.jpeg_quality <= 100:
			raise ValueError(f"jpeg_quality must be within 0-100, got {self.jpeg_quality}")

	@classmethod
	def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
		env = os.environ if environ is None else environ
		kwargs = {}
		if env.get("BITMAP_MAX_DIMENSION"):
			kwargs["max_dimension"] = _parse_int("BITMAP_MAX_DIMENSION", env["BITMAP_MAX_DIMENSION"])
		if env.get("BITMAP_JPEG_QUALITY"):
			kwargs["jpeg_quality"] = _parse_int("BITMAP_JPEG_QUALITY", env["BITMAP_JPEG_QUALITY"])
		if env.get("BITMAP_DELETE_PARTIAL"):
			kwargs["delete_partial_output"] = _parse_bool("BITMAP_DELETE_PARTIAL", env["BITMAP_DELETE_PARTIAL"])
		return cls(**kwargs)
