from __future__ import annotations

import os
from io import BytesIO
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse
from urllib.request import url2pathname

from bitmap_manipulator.models import Source


class ContentResolver:
	"""
	Turns a source locator into a readable binary stream.
	Each call opens a new, independent stream; callers own and close it.
	"""

	def open_stream(self, source: Source) -> BinaryIO:
		if isinstance(source, (bytes, bytearray, memoryview)):
			return BytesIO(bytes(source))
		return self.resolve_path(source).open("rb")

	@staticmethod
	def resolve_path(source: Source) -> Path:
		if isinstance(source, os.PathLike):
			return Path(source)
		if not isinstance(source, str):
			raise TypeError(f"unsupported source type: {type(source).__name__}")
		parsed = urlparse(source)
		if parsed.scheme == "file":
			if parsed.netloc not in ("", "localhost"):
				raise ValueError(f"remote file URIs are not supported: {source}")
			return Path(url2pathname(parsed.path))
		# Single-letter schemes are Windows drive letters
		if parsed.scheme and len(parsed.scheme) > 1:
			raise ValueError(f"unsupported URI scheme {parsed.scheme!r}: {source}")
		return Path(source)
