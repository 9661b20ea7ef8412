from __future__ import annotations

import logging
from datetime import timezone
from typing import Any, Dict, Optional, Tuple

import piexif

from bitmap_manipulator.errors import MetadataError
from bitmap_manipulator.models import Location, StoredMetadata

logger = logging.getLogger(__name__)

Rational = Tuple[int, int]

_GPS_VERSION = (2, 2, 0, 0)
_ASCII_CHARSET = b"ASCII\x00\x00\x00"
_MS_TO_KMH = 3.6


def _rational_to_float(x: Any) -> Optional[float]:
	if x is None:
		return None
	if isinstance(x, tuple) and len(x) == 2:
		num, den = x
		if not den:
			return None
		return float(num) / float(den)
	try:
		return float(x)
	except Exception:
		return None


def _bytes_to_str(v: Any) -> Optional[str]:
	if v is None:
		return None
	if isinstance(v, bytes):
		return v.decode("utf-8", errors="ignore")
	if isinstance(v, str):
		return v
	return str(v)


def _altitude_below_sea_level(ref: Any) -> bool:
	try:
		return int(ref) == 1
	except (TypeError, ValueError):
		return False


def _to_rational(value: float, denominator: int = 1000) -> Rational:
	return (int(round(abs(value) * denominator)), denominator)


def _degrees_to_dms(value: float) -> Tuple[Rational, Rational, Rational]:
	value = abs(value)
	degrees = int(value)
	minutes = int((value - degrees) * 60)
	seconds = (value - degrees - minutes / 60.0) * 3600
	return ((degrees, 1), (minutes, 1), _to_rational(seconds))


def _dms_to_degrees(dms: Any, ref: Any) -> Optional[float]:
	if not dms or len(dms) != 3:
		return None
	parts = [_rational_to_float(p) for p in dms]
	if any(p is None for p in parts):
		return None
	degrees = parts[0] + parts[1] / 60.0 + parts[2] / 3600.0
	if _bytes_to_str(ref) in ("S", "W"):
		degrees = -degrees
	return degrees


def build_gps_ifd(location: Location) -> Dict[int, Any]:
	gps: Dict[int, Any] = {
		piexif.GPSIFD.GPSVersionID: _GPS_VERSION,
		piexif.GPSIFD.GPSLatitudeRef: b"N" if location.latitude >= 0 else b"S",
		piexif.GPSIFD.GPSLatitude: _degrees_to_dms(location.latitude),
		piexif.GPSIFD.GPSLongitudeRef: b"E" if location.longitude >= 0 else b"W",
		piexif.GPSIFD.GPSLongitude: _degrees_to_dms(location.longitude),
	}
	if location.altitude is not None:
		gps[piexif.GPSIFD.GPSAltitudeRef] = 0 if location.altitude >= 0 else 1
		gps[piexif.GPSIFD.GPSAltitude] = _to_rational(location.altitude)
	if location.timestamp is not None:
		ts = location.timestamp.astimezone(timezone.utc)
		gps[piexif.GPSIFD.GPSTimeStamp] = ((ts.hour, 1), (ts.minute, 1), (ts.second, 1))
		gps[piexif.GPSIFD.GPSDateStamp] = ts.strftime("%Y:%m:%d").encode("ascii")
	if location.speed is not None:
		gps[piexif.GPSIFD.GPSSpeedRef] = b"K"
		gps[piexif.GPSIFD.GPSSpeed] = _to_rational(location.speed * _MS_TO_KMH, 100)
	if location.provider:
		gps[piexif.GPSIFD.GPSProcessingMethod] = _ASCII_CHARSET + location.provider.encode("ascii", errors="replace")
	return gps


def apply_metadata(path: str, note: str, location: Location) -> None:
	"""
	Write the note into ImageDescription and the location into the GPS IFD
	of an existing JPEG, in place.
	"""
	try:
		exif = piexif.load(path)
		exif["0th"][piexif.ImageIFD.ImageDescription] = note.encode("utf-8")
		exif["GPS"] = build_gps_ifd(location)
		piexif.insert(piexif.dump(exif), path)
	except Exception as exc:
		raise MetadataError(f"could not write metadata: {exc}", path=path) from exc
	logger.debug("Wrote description and GPS tags to %s", path)


def read_metadata(path: str) -> StoredMetadata:
	try:
		exif = piexif.load(path)
	except Exception as exc:
		raise MetadataError(f"could not read metadata: {exc}", path=path) from exc
	zeroth = exif.get("0th", {})
	gps = exif.get("GPS", {})

	altitude = _rational_to_float(gps.get(piexif.GPSIFD.GPSAltitude))
	if altitude is not None and _altitude_below_sea_level(gps.get(piexif.GPSIFD.GPSAltitudeRef)):
		altitude = -altitude
	return StoredMetadata(
		description=_bytes_to_str(zeroth.get(piexif.ImageIFD.ImageDescription)),
		latitude=_dms_to_degrees(gps.get(piexif.GPSIFD.GPSLatitude), gps.get(piexif.GPSIFD.GPSLatitudeRef)),
		longitude=_dms_to_degrees(gps.get(piexif.GPSIFD.GPSLongitude), gps.get(piexif.GPSIFD.GPSLongitudeRef)),
		altitude=altitude,
	)
