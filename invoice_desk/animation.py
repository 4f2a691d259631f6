"""Path morph animation driven by an explicit frame scheduler.

The animator is a two-state machine. ``start_animation`` is called whenever
the chart's path changes and ``tick`` once per frame while a transition is
running. A transition interrupted by a new path restarts from whatever is on
screen at that moment, never from the old start.
"""
import enum
import logging
import math

from .path_morph import interpolate_path

logger = logging.getLogger(__name__)

DEFAULT_RATE = 0.02


class Phase(enum.Enum):
    WAITING = "waiting"
    TRANSITIONING = "transitioning"


class ManualFrameScheduler:
    """Frame scheduler that only runs frames when ``advance`` is called."""

    def __init__(self):
        self._callbacks = {}
        self._next_handle = 1

    def request_frame(self, callback):
        handle = self._next_handle
        self._next_handle += 1
        self._callbacks[handle] = callback
        return handle

    def cancel_frame(self, handle):
        self._callbacks.pop(handle, None)

    @property
    def pending(self):
        return len(self._callbacks)

    def advance(self):
        callbacks = list(self._callbacks.values())
        self._callbacks.clear()
        for callback in callbacks:
            callback()
        return len(callbacks)


class PathMorphAnimator:
    def __init__(self, initial_path, scheduler, rate=DEFAULT_RATE, on_change=None, interpolate=interpolate_path):
        if not 0 < rate <= 1:
            raise ValueError(f"rate must be in (0, 1], got {rate!r}")
        self.phase = Phase.WAITING
        self.current_path = initial_path
        self.target_path = initial_path
        self.progress = 0.0
        self.rate = rate
        self.interpolator = None

        self._scheduler = scheduler
        self._on_change = on_change
        self._interpolate = interpolate
        self._steps = 0
        self._total_steps = math.ceil(1 / rate)
        self._frame_handle = None
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def start_animation(self, next_path):
        if self._closed:
            raise RuntimeError("Cannot animate a path after the animator was closed")
        if next_path == self.target_path:
            return

        if self.phase is Phase.TRANSITIONING:
            logger.debug("Interrupting path animation at progress %.2f", self.progress)

        # The start is whatever is displayed now: the last frame of an
        # interrupted transition, or the settled path when waiting.
        self.interpolator = self._interpolate(self.current_path, next_path)
        self.target_path = next_path
        self.progress = 0.0
        self._steps = 0

        if self.phase is Phase.WAITING:
            self.phase = Phase.TRANSITIONING
            self._request_frame()

    def tick(self):
        if self.phase is not Phase.TRANSITIONING:
            return

        self._steps += 1
        if self._steps >= self._total_steps:
            self.progress = 1.0
        else:
            self.progress = min(self._steps * self.rate, 1.0)

        if self.progress >= 1.0:
            self.phase = Phase.WAITING
            self._set_current(self.target_path)
        else:
            self._set_current(self.interpolator(self.progress))

    def close(self):
        if self._frame_handle is not None:
            self._scheduler.cancel_frame(self._frame_handle)
            self._frame_handle = None
        self._closed = True

    def _set_current(self, path):
        self.current_path = path
        if self._on_change is not None:
            self._on_change(path)

    def _request_frame(self):
        if self._frame_handle is not None:
            return
        self._frame_handle = self._scheduler.request_frame(self._on_frame)

    def _on_frame(self):
        self._frame_handle = None
        if self._closed:
            return
        self.tick()
        if self.phase is Phase.TRANSITIONING:
            self._request_frame()


def render_morph_frames(previous_path, next_path, rate=DEFAULT_RATE):
    """Run a morph to completion and return every displayed path in order."""
    frames = []
    scheduler = ManualFrameScheduler()
    animator = PathMorphAnimator(previous_path, scheduler, rate=rate, on_change=frames.append)
    try:
        animator.start_animation(next_path)
        while scheduler.pending:
            scheduler.advance()
    finally:
        animator.close()
    return frames
