from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class BackgroundWorker:
	"""
	One sequential worker thread. Submitted jobs run one at a time in FIFO order.
	"""

	def __init__(self, name: str = "bitmap-worker") -> None:
		self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
		self._closed = False
		self._lock = threading.Lock()

	def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
		with self._lock:
			if self._closed:
				raise RuntimeError("worker has been shut down")
			return self._executor.submit(fn, *args)

	def shutdown(self, wait: bool = True) -> None:
		with self._lock:
			self._closed = True
		self._executor.shutdown(wait=wait)

	@property
	def closed(self) -> bool:
		return self._closed


class Dispatcher:
	"""Execution context that outcome notifications are posted to."""

	def post(self, fn: Callable[..., Any], *args: Any) -> None:
		raise NotImplementedError


class InlineDispatcher(Dispatcher):
	"""Runs notifications on the posting thread."""

	def post(self, fn: Callable[..., Any], *args: Any) -> None:
		fn(*args)


class MainThreadDispatcher(Dispatcher):
	"""
	Queue drained by the thread that owns it, in the manner of a UI event loop.
	Nothing runs until the owner calls run_pending() or run_until().
	"""

	def __init__(self) -> None:
		self._jobs: "queue.Queue[tuple]" = queue.Queue()

	def post(self, fn: Callable[..., Any], *args: Any) -> None:
		self._jobs.put((fn, args))

	def _run(self, fn: Callable[..., Any], args: tuple) -> None:
		try:
			fn(*args)
		except Exception:
			logger.exception("Callback %r raised", fn)

	def run_pending(self) -> int:
		ran = 0
		while True:
			try:
				fn, args = self._jobs.get_nowait()
			except queue.Empty:
				return ran
			self._run(fn, args)
			ran += 1

	def run_until(self, predicate: Callable[[], bool], timeout: Optional[float] = None) -> bool:
		"""Process posted jobs until predicate() holds. Returns False on timeout."""
		deadline = None if timeout is None else time.monotonic() + timeout
		while not predicate():
			remaining = None if deadline is None else deadline - time.monotonic()
			if remaining is not None and remaining <= 0:
				return False
			try:
				fn, args = self._jobs.get(timeout=remaining)
			except queue.Empty:
				return predicate()
			self._run(fn, args)
		return True


class LoopDispatcher(Dispatcher):
	"""Delivers notifications on an asyncio event loop."""

	def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
		self._loop = loop

	def post(self, fn: Callable[..., Any], *args: Any) -> None:
		self._loop.call_soon_threadsafe(fn, *args)
