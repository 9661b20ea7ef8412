from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
	"""Base error for a failed step of an image pipeline run."""

	def __init__(self, message: str, path: Optional[str] = None) -> None:
		super().__init__(message)
		self.message = message
		self.path = path

	def __str__(self) -> str:
		if self.path:
			return f"{self.message} ({self.path})"
		return self.message


class ProbeError(PipelineError):
	pass


class DecodeError(PipelineError):
	pass


class EncodeError(PipelineError):
	pass


class MetadataError(PipelineError):
	pass
