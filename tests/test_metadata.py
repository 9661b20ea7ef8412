"""Tests for writing and reading back the description and GPS tags."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import piexif
import pytest

from bitmap_manipulator.errors import MetadataError
from bitmap_manipulator.models import Location
from bitmap_manipulator.services.metadata import apply_metadata, build_gps_ifd, read_metadata
from conftest import write_image


def test_round_trip_description_and_coordinates(jpeg_path: Path, location: Location) -> None:
	apply_metadata(str(jpeg_path), "Holiday snap", location)
	stored = read_metadata(str(jpeg_path))
	assert stored.description == "Holiday snap"
	assert stored.latitude == pytest.approx(location.latitude, abs=1e-6)
	assert stored.longitude == pytest.approx(location.longitude, abs=1e-6)
	assert stored.altitude == pytest.approx(110.5)


def test_southern_hemisphere_and_below_sea_level(jpeg_path: Path) -> None:
	loc = Location(latitude=-33.8688, longitude=151.2093, altitude=-12.0)
	apply_metadata(str(jpeg_path), "Sydney", loc)
	stored = read_metadata(str(jpeg_path))
	assert stored.latitude == pytest.approx(-33.8688, abs=1e-6)
	assert stored.longitude == pytest.approx(151.2093, abs=1e-6)
	assert stored.altitude == pytest.approx(-12.0)


def test_non_ascii_note_survives(jpeg_path: Path, location: Location) -> None:
	apply_metadata(str(jpeg_path), "Café ☕ Kraków", location)
	assert read_metadata(str(jpeg_path)).description == "Café ☕ Kraków"


def test_reapplying_is_stable(jpeg_path: Path, location: Location) -> None:
	apply_metadata(str(jpeg_path), "same", location)
	first = piexif.load(str(jpeg_path))
	apply_metadata(str(jpeg_path), "same", location)
	second = piexif.load(str(jpeg_path))
	assert first["0th"] == second["0th"]
	assert first["GPS"] == second["GPS"]


def test_image_stays_decodable(jpeg_path: Path, location: Location) -> None:
	from PIL import Image

	apply_metadata(str(jpeg_path), "note", location)
	with Image.open(jpeg_path) as img:
		img.load()
		assert img.size == (640, 480)


def test_optional_gps_fields_are_written() -> None:
	loc = Location(
		latitude=1.5,
		longitude=2.5,
		timestamp=datetime(2024, 5, 17, 13, 45, 30, tzinfo=timezone.utc),
		speed=10.0,
		provider="gps",
	)
	gps = build_gps_ifd(loc)
	assert gps[piexif.GPSIFD.GPSDateStamp] == b"2024:05:17"
	assert gps[piexif.GPSIFD.GPSTimeStamp] == ((13, 1), (45, 1), (30, 1))
	assert gps[piexif.GPSIFD.GPSSpeedRef] == b"K"
	assert gps[piexif.GPSIFD.GPSSpeed] == (3600, 100)
	assert gps[piexif.GPSIFD.GPSProcessingMethod].endswith(b"gps")
	assert piexif.GPSIFD.GPSAltitude not in gps


def test_gps_time_is_written_in_utc() -> None:
	plus_two = timezone(timedelta(hours=2))
	loc = Location(latitude=1.5, longitude=2.5, timestamp=datetime(2024, 5, 18, 1, 30, tzinfo=plus_two))
	gps = build_gps_ifd(loc)
	assert gps[piexif.GPSIFD.GPSDateStamp] == b"2024:05:17"
	assert gps[piexif.GPSIFD.GPSTimeStamp] == ((23, 1), (30, 1), (0, 1))


def test_missing_file_raises_metadata_error(tmp_path: Path, location: Location) -> None:
	with pytest.raises(MetadataError):
		apply_metadata(str(tmp_path / "gone.jpeg"), "note", location)


def test_non_jpeg_raises_metadata_error(tmp_path: Path, location: Location) -> None:
	png = write_image(tmp_path / "image.png", 10, 10, fmt="PNG")
	with pytest.raises(MetadataError):
		apply_metadata(str(png), "note", location)


def test_read_without_tags(jpeg_path: Path) -> None:
	stored = read_metadata(str(jpeg_path))
	assert stored.description is None
	assert stored.latitude is None
	assert stored.longitude is None
