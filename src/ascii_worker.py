import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from conversion_pipeline import ConversionPipeline, ConversionResult


class RunStatus(Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class StateSnapshot:
    done_fraction: float
    cancel_requested: bool
    finished: bool
    status: RunStatus
    result: Optional[ConversionResult]


class ConversionState:
    """Progress and outcome of the current run, shared by worker and observer.

    Every read and write goes through one lock, taken per field-group update
    and never held while decoding or resampling.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._done_fraction = 0.0
        self._cancel_requested = False
        self._finished = False
        self._status = RunStatus.IDLE
        self._result = None

    def reset(self):
        with self._lock:
            self._done_fraction = 0.0
            self._cancel_requested = False
            self._finished = False
            self._status = RunStatus.RUNNING
            self._result = None

    def add_progress(self, step):
        with self._lock:
            self._done_fraction = min(1.0, self._done_fraction + step)
            return self._done_fraction

    def request_cancel(self):
        with self._lock:
            self._cancel_requested = True

    def mark_cancelled(self):
        with self._lock:
            self._finished = True
            self._status = RunStatus.CANCELLED
            self._result = None

    def complete(self, result):
        with self._lock:
            self._done_fraction = 1.0
            self._finished = True
            self._status = RunStatus.COMPLETED
            self._result = result

    def fail(self, result):
        with self._lock:
            self._finished = True
            self._status = RunStatus.FAILED
            self._result = result

    @property
    def done_fraction(self):
        with self._lock:
            return self._done_fraction

    @property
    def cancel_requested(self):
        with self._lock:
            return self._cancel_requested

    @property
    def finished(self):
        with self._lock:
            return self._finished

    @property
    def status(self):
        with self._lock:
            return self._status

    @property
    def result(self):
        with self._lock:
            return self._result

    def snapshot(self):
        with self._lock:
            return StateSnapshot(self._done_fraction, self._cancel_requested, self._finished,
                                 self._status, self._result)


class ConversionObserver:
    """Receives notifications on the worker thread; override what you need."""

    def on_progress(self, done_fraction):
        pass

    def on_complete(self, text, is_error):
        pass

    def on_cancelled(self):
        pass


class ConversionWorker:
    def __init__(self, raster_source=None, observer=None):
        if raster_source is None:
            from raster_sources import default_raster_source
            raster_source = default_raster_source()
        self.pipeline = ConversionPipeline(raster_source)
        self.observer = observer or ConversionObserver()
        self.state = ConversionState()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='ascii-worker')
        self._future = None
        self._start_lock = threading.Lock()

    def start(self, request):
        """Submit a run. Returns False without queuing if one is already in flight."""
        with self._start_lock:
            if self._future is not None and not self._future.done():
                print("Warning: conversion already running")
                return False
            self.state.reset()
            self._future = self._executor.submit(self._work, request)
            return True

    def _work(self, request):
        try:
            return self.pipeline.run(request, self.state, self.observer, reset=False)
        except Exception as e:
            print(f"Error: conversion failed: {e}")
            self.state.fail(None)
            self.observer.on_complete(str(e), True)
            raise

    def cancel(self):
        self.state.request_cancel()

    def is_running(self):
        with self._start_lock:
            return self._future is not None and not self._future.done()

    def wait(self, timeout=None):
        """Block until the current run ends and return its result (None if cancelled)."""
        future = self._future
        if future is None:
            return None
        return future.result(timeout=timeout)

    def snapshot(self):
        return self.state.snapshot()

    def shutdown(self, cancel=True):
        if cancel:
            self.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False
