import math
import asyncio
from typing import Awaitable, Callable, Optional

FrameCallback = Callable[[float], Awaitable[None]]

class Generation:
    """Monotonic counter; advancing it invalidates every token issued before."""

    def __init__(self):
        self._value = 0

    @property
    def current(self) -> int:
        return self._value

    def advance(self) -> "GenerationToken":
        self._value += 1
        return GenerationToken(self, self._value)

class GenerationToken:
    def __init__(self, generation: Generation, value: int):
        self._generation = generation
        self.value = value

    @property
    def is_current(self) -> bool:
        return self._generation.current == self.value

class FrameRequest:
    """A pending frame callback. Cancelling it before it fires makes it a no-op."""

    def __init__(self):
        self.cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    def cancel(self):
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()

class FrameScheduler:
    """requestAnimationFrame for asyncio.

    Callbacks run on the next boundary of a fixed refresh clock, so a loop that
    re-requests after each awaited tick is paced by the refresh rate and never
    runs two ticks at once.
    """

    def __init__(self, config: dict):
        self.config = config
        self._period = 1.0 / float(config.get('refresh_hz', 60))

    def request_frame(self, callback: FrameCallback) -> FrameRequest:
        loop = asyncio.get_running_loop()
        due = (math.floor(loop.time() / self._period) + 1) * self._period
        request = FrameRequest()
        request._handle = loop.call_at(due, self._fire, request, callback, due)
        return request

    @staticmethod
    def _fire(request: FrameRequest, callback: FrameCallback, timestamp: float):
        if request.cancelled:
            return
        request._task = asyncio.ensure_future(callback(timestamp))
