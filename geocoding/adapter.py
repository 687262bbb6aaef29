from __future__ import annotations

"""
Reverse-geocoding adapter.

Geocoding services come in two shapes:

  - polling:    service.reverse(lat, lon) -> Placemark        (blocks the caller)
  - completion: service.reverse_geocode(coord, completion) -> handle
                completion(placemark, error) fires later, possibly on another thread

Both are normalized to `await backend.resolve(coordinate) -> Placemark`, and the
adapter on top enforces "one request in flight, newest wins".

Usage:
    adapter = GeocodingAdapter(NominatimService())          # capability probe
    adapter = GeocodingAdapter(svc, strategy="polling")     # force a shape
    result = await adapter.resolve(Coordinate(38.87, -77.05))   # Placemark | GeocodingError
    adapter.submit(coord, on_placemark, on_error)           # supersedes any earlier submit
"""

import asyncio
import contextlib
import inspect
from concurrent.futures import Executor
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from common.errors import GeocodingError
from common.logging_setup import get_logger
from common.types import Coordinate, Placemark


log = get_logger("geocoding")

STRATEGIES = ("auto", "polling", "completion")


@runtime_checkable
class GeocodingBackend(Protocol):
    async def resolve(self, coordinate: Coordinate) -> Placemark:
        """Resolve or raise; the adapter turns failures into GeocodingError values."""
        ...


class PollingBackend:
    """Runs a blocking `reverse(latitude, longitude)` on an executor thread."""

    def __init__(self, service: Any, executor: Optional[Executor] = None):
        if not callable(getattr(service, "reverse", None)):
            raise ValueError(f"{type(service).__name__} has no reverse(latitude, longitude)")
        self.service = service
        self._executor = executor

    async def resolve(self, coordinate: Coordinate) -> Placemark:
        loop = asyncio.get_running_loop()
        # Cancelling the await abandons the thread's result; the call itself runs to completion.
        return await loop.run_in_executor(
            self._executor, self.service.reverse, coordinate.latitude, coordinate.longitude
        )


class CompletionBackend:
    """Bridges `reverse_geocode(coordinate, completion)` onto an asyncio future."""

    def __init__(self, service: Any):
        if not callable(getattr(service, "reverse_geocode", None)):
            raise ValueError(f"{type(service).__name__} has no reverse_geocode(coordinate, completion)")
        self.service = service

    async def resolve(self, coordinate: Coordinate) -> Placemark:
        loop = asyncio.get_running_loop()
        fut: asyncio.Future = loop.create_future()

        def _settle(placemark: Optional[Placemark], error: Optional[BaseException]) -> None:
            if fut.done():
                return
            if error is not None:
                fut.set_exception(GeocodingError.wrap(error) if isinstance(error, BaseException)
                                  else GeocodingError(str(error)))
            elif placemark is None:
                fut.set_exception(GeocodingError("geocoder returned no placemark"))
            else:
                fut.set_result(placemark)

        def completion(placemark: Optional[Placemark], error: Optional[BaseException] = None) -> None:
            try:
                loop.call_soon_threadsafe(_settle, placemark, error)
            except RuntimeError:
                log.debug("Completion arrived after event loop closed",
                          extra={"extra": {"lat": coordinate.latitude, "lon": coordinate.longitude}})

        handle = self.service.reverse_geocode(coordinate, completion)
        try:
            return await fut
        except asyncio.CancelledError:
            cancel = getattr(handle, "cancel", None)
            if callable(cancel):
                cancel()
            raise


Backend = Union[PollingBackend, CompletionBackend, GeocodingBackend]


def select_backend(service: Any, strategy: str = "auto") -> Backend:
    """
    Pick the backend for `service`.

    "auto" uses a ready backend (anything with an async `resolve`) as is, and
    otherwise prefers the completion shape, then polling. A forced strategy
    accepts a backend of that kind or wraps a service exposing that shape.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"unknown geocoding strategy {strategy!r}; expected one of {STRATEGIES}")
    if strategy == "polling":
        return service if isinstance(service, PollingBackend) else PollingBackend(service)
    if strategy == "completion":
        return service if isinstance(service, CompletionBackend) else CompletionBackend(service)
    if inspect.iscoroutinefunction(getattr(service, "resolve", None)):
        return service
    if callable(getattr(service, "reverse_geocode", None)):
        return CompletionBackend(service)
    if callable(getattr(service, "reverse", None)):
        return PollingBackend(service)
    raise ValueError(f"{type(service).__name__} exposes neither reverse_geocode() nor reverse()")


class GeocodingAdapter:
    """
    Single-flight reverse geocoder.

    `resolve` returns a Placemark or a GeocodingError value, never raises for a
    backend failure. `submit` runs `resolve` as a task on the running loop and
    delivers only the newest submission's outcome.
    """

    def __init__(self, service: Any, strategy: str = "auto"):
        self.backend = select_backend(service, strategy)
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def resolve(self, coordinate: Coordinate) -> Union[Placemark, GeocodingError]:
        try:
            placemark = await self.backend.resolve(coordinate)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            err = GeocodingError.wrap(e)
            log.warning("Reverse geocoding failed",
                        extra={"extra": {"lat": coordinate.latitude, "lon": coordinate.longitude,
                                         "error": err.message}})
            return err
        if not isinstance(placemark, Placemark):
            return GeocodingError(f"geocoder returned {type(placemark).__name__}, expected Placemark")
        return placemark

    def submit(
        self,
        coordinate: Coordinate,
        on_placemark: Callable[[Placemark], None],
        on_error: Callable[[GeocodingError], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> asyncio.Task:
        """
        Start resolving `coordinate`, superseding whatever is in flight.
        Runs on `loop`, or on the running loop when none is given (RuntimeError if there is none).
        """
        loop = loop or asyncio.get_running_loop()
        self.cancel()
        gen = self._generation
        self._task = loop.create_task(self._run(gen, coordinate, on_placemark, on_error))
        return self._task

    def cancel(self) -> None:
        """Supersede the in-flight request (if any) without starting a new one."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def aclose(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(
        self,
        gen: int,
        coordinate: Coordinate,
        on_placemark: Callable[[Placemark], None],
        on_error: Callable[[GeocodingError], None],
    ) -> None:
        result = await self.resolve(coordinate)
        if gen != self._generation:
            log.debug("Dropping superseded geocoding result",
                      extra={"extra": {"lat": coordinate.latitude, "lon": coordinate.longitude}})
            return
        self._task = None
        if isinstance(result, GeocodingError):
            on_error(result)
        else:
            on_placemark(result)
