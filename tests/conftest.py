from __future__ import annotations

import threading
from io import BytesIO
from pathlib import Path
from typing import Any, List, Optional, Tuple

import numpy as np
import pytest
from PIL import Image

from bitmap_manipulator.models import Location


def make_image_bytes(width: int, height: int, fmt: str = "JPEG", color: Tuple[int, ...] = (200, 40, 90)) -> bytes:
	mode = {1: "L", 3: "RGB", 4: "RGBA"}[len(color)]
	img = Image.new(mode, (width, height), color[0] if mode == "L" else color)
	buf = BytesIO()
	img.save(buf, format=fmt)
	return buf.getvalue()


def write_image(path: Path, width: int, height: int, fmt: str = "JPEG", color: Tuple[int, ...] = (200, 40, 90)) -> Path:
	path.write_bytes(make_image_bytes(width, height, fmt, color))
	return path


def random_rgba(height: int, width: int, seed: int = 0) -> np.ndarray:
	rng = np.random.default_rng(seed)
	return rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)


class RecordingCallback:
	"""Collects outcome notifications into a shared event list."""

	def __init__(self, events: Optional[List[Any]] = None, tag: Any = None) -> None:
		self.events = events if events is not None else []
		self.tag = tag
		self.threads: List[int] = []

	def on_success(self, output_path: str) -> None:
		self.threads.append(threading.get_ident())
		self.events.append((self.tag, "success", output_path))

	def on_failure(self) -> None:
		self.threads.append(threading.get_ident())
		self.events.append((self.tag, "failure", None))


@pytest.fixture
def location() -> Location:
	return Location(latitude=52.229676, longitude=-21.012229, altitude=110.5)


@pytest.fixture
def jpeg_path(tmp_path: Path) -> Path:
	return write_image(tmp_path / "source.jpg", 640, 480)
