from __future__ import annotations


def compute_sample_size(width: int, height: int, max_dimension: int) -> int:
	"""
	Largest power-of-two decode divisor that keeps both halved dimensions at or
	above max_dimension. Images already within max_dimension are not sampled.
	"""
	if max_dimension <= 0:
		raise ValueError(f"max_dimension must be positive, got {max_dimension}")
	if width < 0 or height < 0:
		raise ValueError(f"dimensions must be non-negative, got {width}x{height}")

	sample_size = 1
	if height > max_dimension or width > max_dimension:
		half_height = height // 2
		half_width = width // 2
		while (half_height // sample_size) >= max_dimension and (half_width // sample_size) >= max_dimension:
			sample_size *= 2
	return sample_size
