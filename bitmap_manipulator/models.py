from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from bitmap_manipulator.errors import PipelineError


Source = Union[str, bytes, os.PathLike]


@dataclass(frozen=True)
class Location:
	"""
	Geographic fix attached to an output image.
	Only latitude and longitude are required; the rest are written when known.
	"""
	latitude: float
	longitude: float
	altitude: Optional[float] = None # metres above sea level
	timestamp: Optional[datetime] = None
	speed: Optional[float] = None # metres per second
	provider: Optional[str] = None

	def __post_init__(self) -> None:
		if not -90.0 <= self.latitude <= 90.0:
			raise ValueError(f"latitude out of range: {self.latitude}")
		if not -180.0 <= self.longitude <= 180.0:
			raise ValueError(f"longitude out of range: {self.longitude}")
		if self.speed is not None and self.speed < 0:
			raise ValueError(f"speed must be non-negative: {self.speed}")
		if self.timestamp is not None:
			# GPS time is always UTC; naive values are taken as UTC already
			if self.timestamp.tzinfo is None:
				ts = self.timestamp.replace(tzinfo=timezone.utc)
			else:
				ts = self.timestamp.astimezone(timezone.utc)
			object.__setattr__(self, "timestamp", ts)


@dataclass(frozen=True)
class ImageRequest:
	source: Source
	output_directory: str
	note: str
	location: Location


@dataclass(frozen=True)
class ProbeResult:
	width: int
	height: int


@dataclass(frozen=True)
class StoredMetadata:
	description: Optional[str]
	latitude: Optional[float]
	longitude: Optional[float]
	altitude: Optional[float] = None


class PipelineState(str, Enum):
	IDLE = "idle"
	PROBING = "probing"
	DECODING = "decoding"
	TRANSFORMING = "transforming"
	ENCODING = "encoding"
	DONE = "done"
	WRITING_METADATA = "writing_metadata"
	FAILED = "failed"


@dataclass(frozen=True)
class PipelineOutcome:
	"""Success carries the output path, failure carries the error that ended the run."""
	path: Optional[str] = None
	error: Optional[PipelineError] = None

	@property
	def succeeded(self) -> bool:
		return self.path is not None

	@classmethod
	def success(cls, path: str) -> "PipelineOutcome":
		return cls(path=path)

	@classmethod
	def failure(cls, error: Optional[PipelineError] = None) -> "PipelineOutcome":
		return cls(error=error)
