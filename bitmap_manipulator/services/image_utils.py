from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Tuple, Union

import numpy as np
from PIL import Image

from bitmap_manipulator.models import ProbeResult

_PIXEL_LIMIT_LOCK = threading.Lock()


@contextmanager
def _open_unbounded(stream: BinaryIO) -> Iterator[Tuple[Image.Image, Optional[int]]]:
	"""
	Open without Pillow's source-size bomb check; the caller checks the size it
	will actually decode to against the returned limit instead.
	"""
	with _PIXEL_LIMIT_LOCK:
		limit = Image.MAX_IMAGE_PIXELS
		Image.MAX_IMAGE_PIXELS = None
		try:
			img = Image.open(stream)
		finally:
			Image.MAX_IMAGE_PIXELS = limit
	with img:
		yield img, limit


def _check_pixel_limit(size: Tuple[int, int], limit: Optional[int]) -> None:
	pixels = size[0] * size[1]
	# Same threshold at which Pillow turns its warning into an error
	if limit and pixels > 2 * limit:
		raise Image.DecompressionBombError(
			f"Decoded size ({pixels} pixels) exceeds limit of {2 * limit} pixels"
		)


def probe_bounds(stream: BinaryIO) -> ProbeResult:
	# Image.open parses the header only; pixel data is read lazily.
	with _open_unbounded(stream) as (img, _):
		width, height = img.size
	return ProbeResult(width=width, height=height)


def sampled_size(width: int, height: int, sample_size: int) -> Tuple[int, int]:
	return (max(1, width // sample_size), max(1, height // sample_size))


def decode_sampled(stream: BinaryIO, sample_size: int) -> np.ndarray:
	"""
	Decode a stream into an (H, W, 4) RGBA uint8 buffer, downsampled by sample_size.
	JPEG sources are scaled inside the codec; everything is then box-reduced to the exact target.
	The pixel limit applies to the sampled size, not the source size.
	"""
	with _open_unbounded(stream) as (img, limit):
		target = sampled_size(img.width, img.height, sample_size)
		_check_pixel_limit(target, limit)
		if sample_size > 1:
			img.draft("RGB", target)
		img.load()
		if img.size != target:
			img = img.resize(target, Image.BOX)
		if img.mode != "RGBA":
			img = img.convert("RGBA")
		return np.asarray(img, dtype=np.uint8).copy()


def encode_jpeg(pixels: np.ndarray, out_path: Union[str, Path], quality: int) -> str:
	"""
	Save an RGB or RGBA buffer as JPEG. JPEG has no alpha channel, so RGBA
	pixels are composited over black (color scaled by alpha).
	"""
	if pixels.ndim == 3 and pixels.shape[2] == 4:
		alpha = pixels[..., 3:4].astype(np.float32) / 255.0
		rgb = np.rint(pixels[..., :3].astype(np.float32) * alpha).astype(np.uint8)
	else:
		rgb = pixels
	img = Image.fromarray(np.ascontiguousarray(rgb))
	try:
		if img.mode != "RGB":
			img = img.convert("RGB")
		img.save(out_path, format="JPEG", quality=quality)
	finally:
		img.close()
	return str(out_path)
