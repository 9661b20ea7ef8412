from __future__ import annotations

import logging
import time
from concurrent.futures import Future
from dataclasses import replace
from pathlib import Path
from typing import Optional, Protocol

from bitmap_manipulator.config import PipelineConfig
from bitmap_manipulator.errors import DecodeError, EncodeError, MetadataError, PipelineError, ProbeError
from bitmap_manipulator.models import ImageRequest, Location, PipelineOutcome, PipelineState, ProbeResult, Source
from bitmap_manipulator.services.color_inverter import invert
from bitmap_manipulator.services.content import ContentResolver
from bitmap_manipulator.services.dispatch import BackgroundWorker, Dispatcher, InlineDispatcher
from bitmap_manipulator.services.image_utils import decode_sampled, encode_jpeg, probe_bounds
from bitmap_manipulator.services.metadata import apply_metadata
from bitmap_manipulator.services.sample_size import compute_sample_size

logger = logging.getLogger(__name__)


class ProcessImageCallback(Protocol):
	def on_success(self, output_path: str) -> None: ...

	def on_failure(self) -> None: ...


def _enter(state: PipelineState, request: ImageRequest) -> None:
	logger.debug("%s: %s", state.value, _describe(request.source))


def _describe(source: Source) -> str:
	if isinstance(source, (bytes, bytearray, memoryview)):
		return f"<{len(source)} bytes>"
	return str(source)


def _output_path(directory: Path, config: PipelineConfig) -> Path:
	millis = int(time.time() * 1000)
	while True:
		candidate = directory / f"{config.file_prefix}{millis}{config.file_extension}"
		if not candidate.exists():
			return candidate
		millis += 1


def _probe(request: ImageRequest, resolver: ContentResolver) -> ProbeResult:
	try:
		with resolver.open_stream(request.source) as stream:
			return probe_bounds(stream)
	except Exception as exc:
		raise ProbeError(f"could not read image bounds: {exc}", path=_describe(request.source)) from exc


def _decode(request: ImageRequest, resolver: ContentResolver, sample_size: int):
	# A fresh stream; the probe stream is never reused.
	try:
		with resolver.open_stream(request.source) as stream:
			return decode_sampled(stream, sample_size)
	except Exception as exc:
		raise DecodeError(f"could not decode image: {exc}", path=_describe(request.source)) from exc


def _encode(pixels, request: ImageRequest, config: PipelineConfig) -> str:
	directory = Path(request.output_directory)
	try:
		directory.mkdir(parents=True, exist_ok=True)
	except OSError as exc:
		raise EncodeError(f"could not create output directory: {exc}", path=str(directory)) from exc

	out_path = _output_path(directory, config)
	try:
		return encode_jpeg(pixels, out_path, config.jpeg_quality)
	except Exception as exc:
		if config.delete_partial_output and out_path.exists():
			try:
				out_path.unlink()
				logger.warning("Removed partial output %s", out_path)
			except OSError:
				logger.exception("Could not remove partial output %s", out_path)
		raise EncodeError(f"could not encode image: {exc}", path=str(out_path)) from exc


def _notify(dispatcher: Dispatcher, callback: Optional[ProcessImageCallback], outcome: PipelineOutcome) -> None:
	if callback is None:
		return
	try:
		if outcome.succeeded:
			dispatcher.post(callback.on_success, outcome.path)
		else:
			dispatcher.post(callback.on_failure)
	except Exception:
		logger.exception("Could not post outcome to callback context")


def run_pipeline(
	request: ImageRequest,
	config: PipelineConfig,
	resolver: ContentResolver,
	dispatcher: Dispatcher,
	callback: Optional[ProcessImageCallback] = None,
) -> PipelineOutcome:
	"""
	Probe, decode, invert and encode one image, post the outcome to the callback
	context, then (on success only) write the note and location into the file.
	"""
	_enter(PipelineState.IDLE, request)
	try:
		# 1) Bounds only
		_enter(PipelineState.PROBING, request)
		probe = _probe(request, resolver)

		# 2) Decode at the sample size
		_enter(PipelineState.DECODING, request)
		sample_size = compute_sample_size(probe.width, probe.height, config.max_dimension)
		logger.debug("Source %dx%d, sample size %d", probe.width, probe.height, sample_size)
		decoded = _decode(request, resolver, sample_size)

		# 3) Grayscale + invert; the decoded buffer is dropped right away
		_enter(PipelineState.TRANSFORMING, request)
		inverted = invert(decoded)
		del decoded

		# 4) JPEG out
		_enter(PipelineState.ENCODING, request)
		try:
			output_path = _encode(inverted, request, config)
		finally:
			del inverted
		outcome = PipelineOutcome.success(output_path)
		_enter(PipelineState.DONE, request)
	except PipelineError as exc:
		logger.exception("Image pipeline failed")
		outcome = PipelineOutcome.failure(exc)
	except Exception as exc:
		logger.exception("Image pipeline failed unexpectedly")
		error = PipelineError(f"unexpected failure: {exc}", path=_describe(request.source))
		error.__cause__ = exc
		outcome = PipelineOutcome.failure(error)

	# 5) Exactly one notification, always before metadata
	_notify(dispatcher, callback, outcome)
	if not outcome.succeeded:
		_enter(PipelineState.FAILED, request)
		return outcome

	# 6) Best effort; never changes the delivered outcome
	_enter(PipelineState.WRITING_METADATA, request)
	try:
		apply_metadata(outcome.path, request.note, request.location)
	except MetadataError:
		logger.exception("Metadata write failed for %s", outcome.path)
	logger.info("Processed %s -> %s", _describe(request.source), outcome.path)
	return outcome


class ImageProcessor:
	"""
	Owns a single background worker; every process_image() call is queued on it
	and runs start to finish before the next one begins.
	"""

	def __init__(
		self,
		max_dimension: Optional[int] = None,
		resolver: Optional[ContentResolver] = None,
		dispatcher: Optional[Dispatcher] = None,
		config: Optional[PipelineConfig] = None,
	) -> None:
		config = config or PipelineConfig()
		if max_dimension is not None:
			config = replace(config, max_dimension=max_dimension)
		self.config = config
		self.resolver = resolver or ContentResolver()
		self.dispatcher = dispatcher or InlineDispatcher()
		self._worker = BackgroundWorker()

	def process_image(
		self,
		source: Source,
		output_directory: str,
		note: str,
		location: Location,
		callback: Optional[ProcessImageCallback] = None,
	) -> "Future[PipelineOutcome]":
		request = ImageRequest(source=source, output_directory=str(output_directory), note=note, location=location)
		return self.submit(request, callback)

	def submit(self, request: ImageRequest, callback: Optional[ProcessImageCallback] = None) -> "Future[PipelineOutcome]":
		return self._worker.submit(run_pipeline, request, self.config, self.resolver, self.dispatcher, callback)

	def shutdown(self, wait: bool = True) -> None:
		self._worker.shutdown(wait=wait)

	def __enter__(self) -> "ImageProcessor":
		return self

	def __exit__(self, *exc_info) -> None:
		self.shutdown(wait=True)
