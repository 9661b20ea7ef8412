from __future__ import annotations

import numpy as np

# Luminance weights of a zero-saturation color matrix.
LUMA_WEIGHTS = np.array([0.213, 0.715, 0.072], dtype=np.float32)


def _check_pixels(pixels: np.ndarray) -> None:
	if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
		raise ValueError(f"expected an (H, W, 3|4) pixel buffer, got shape {pixels.shape}")


def _to_u8(arr: np.ndarray) -> np.ndarray:
	return np.clip(np.rint(arr), 0.0, 255.0).astype(np.uint8)


def grayscale(pixels: np.ndarray) -> np.ndarray:
	"""Project RGB(A) pixels onto their luminance. Returns an (H, W) uint8 array."""
	_check_pixels(pixels)
	rgb = pixels[..., :3].astype(np.float32)
	return _to_u8(rgb @ LUMA_WEIGHTS)


def invert(pixels: np.ndarray) -> np.ndarray:
	"""
	Desaturate, then invert each color channel (255 - gray).
	Alpha, when present, is copied through. The input buffer is left untouched.
	"""
	_check_pixels(pixels)
	gray = pixels[..., :3].astype(np.float32) @ LUMA_WEIGHTS
	inverted = _to_u8(255.0 - gray)

	out = np.empty(pixels.shape, dtype=np.uint8)
	out[..., 0] = inverted
	out[..., 1] = inverted
	out[..., 2] = inverted
	if pixels.shape[2] == 4:
		out[..., 3] = pixels[..., 3]
	return out
