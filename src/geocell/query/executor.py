"""Spatial query executor.

Turns a radius or box query into a covering, reads every cell (or range) of
the covering from the secondary index, drops duplicate items, applies the
exact distance or containment filter and returns pages.

Two draining modes:

- Without ``page_size`` every key is drained to the end, concurrently up to
  ``max_concurrent_reads``, and the merged results are sorted by distance.
- With ``page_size`` keys are drained in covering order, one read at a time,
  and each page carries a continuation token holding the covering position
  and the index's own token. Concatenated pages hold every matching item
  exactly once; ordering is only guaranteed within a page.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine, Hashable
from dataclasses import dataclass
from typing import Any

from geocell.cells import CoveringResult, ReadKey, SchemeType, check_disjoint
from geocell.config import ABSOLUTE_MAX_CELLS, Settings, settings as default_settings
from geocell.errors import (
    CellLimitExceededError,
    GeoCellError,
    IndexReadError,
    InvalidArgumentError,
    MalformedContinuationTokenError,
    QueryCancelledError,
)
from geocell.geometry.spherical import distances_meters
from geocell.geometry.types import GeoBoundingBox, GeoLocation
from geocell.precision.selector import select_precision, select_precision_for_box
from geocell.query.index import IndexPage, SpatialIndexReader
from geocell.query.types import ContinuationToken, QueryPage, QueryResultItem, QueryState
from geocell.schemes import get_scheme
from geocell.schemes.covering import check_radius

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ExactFilter:
    """Distance origin plus the exact region an item must fall in."""

    origin: GeoLocation
    radius_meters: float | None = None
    box: GeoBoundingBox | None = None

    def apply(self, reader: SpatialIndexReader, items: list[Any]) -> list[QueryResultItem]:
        if not items:
            return []
        try:
            locations = [reader.location_of(item) for item in items]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise IndexReadError(f"cannot read a stored location: {e}") from e

        distances = distances_meters(
            self.origin,
            [loc.latitude for loc in locations],
            [loc.longitude for loc in locations],
        )
        results = []
        for item, location, distance in zip(items, locations, distances):
            if self.radius_meters is not None and distance > self.radius_meters:
                continue
            if self.box is not None and not self.box.contains(location):
                continue
            results.append(QueryResultItem(item, reader.key_of(item), location, float(distance)))
        return results


class _SeenKeys:
    """Primary keys already emitted; shared by concurrent cell drains."""

    def __init__(self) -> None:
        self._keys: set[Hashable] = set()
        self._lock = asyncio.Lock()

    async def add(self, key: Hashable) -> bool:
        """Record a key, returning False when it was already present."""
        async with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True


class _QueryRun:
    """State and counters for one executor call."""

    def __init__(self) -> None:
        self.state = QueryState.INITIALIZED
        self.covering: CoveringResult | None = None
        self.items_scanned = 0

    def transition(self, state: QueryState) -> None:
        logger.debug("Query %s -> %s", self.state.value, state.value)
        self.state = state


def _sort_key(result: QueryResultItem) -> tuple[float, str]:
    return (result.distance_meters, str(result.key))


class SpatialQueryExecutor:
    """Runs spatial queries against one secondary-index reader.

    Keeps no state between calls; everything a later page needs travels in
    the continuation token.
    """

    def __init__(self, reader: SpatialIndexReader, settings: Settings | None = None):
        self._reader = reader
        self._settings = settings or default_settings

    async def query_radius(
        self,
        center: GeoLocation,
        radius_meters: float,
        scheme: SchemeType | str,
        *,
        precision: int | None = None,
        max_cells: int | None = None,
        page_size: int | None = None,
        continuation_token: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> QueryPage:
        """Items within ``radius_meters`` of ``center``, nearest first."""
        check_radius(radius_meters)
        impl = get_scheme(scheme)

        def cover() -> CoveringResult:
            level = precision
            if level is None:
                level = select_precision(impl.scheme, radius_meters)
            return impl.cells_for_radius(center, radius_meters, level, self._max_cells(max_cells))

        exact = _ExactFilter(origin=center, radius_meters=radius_meters)
        return await self._run(cover, exact, page_size, continuation_token, cancel_event)

    async def query_box(
        self,
        box: GeoBoundingBox,
        scheme: SchemeType | str,
        *,
        precision: int | None = None,
        max_cells: int | None = None,
        page_size: int | None = None,
        continuation_token: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> QueryPage:
        """Items inside ``box``; distances are measured from the box center."""
        impl = get_scheme(scheme)

        def cover() -> CoveringResult:
            level = precision
            if level is None:
                level = select_precision_for_box(impl.scheme, box)
            return impl.cells_for_bounding_box(box, level, self._max_cells(max_cells))

        exact = _ExactFilter(origin=box.center, box=box)
        return await self._run(cover, exact, page_size, continuation_token, cancel_event)

    async def query_cells(
        self,
        covering: CoveringResult,
        center: GeoLocation,
        *,
        radius_meters: float | None = None,
        page_size: int | None = None,
        continuation_token: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> QueryPage:
        """Items in a caller-built covering, optionally limited to a radius.

        The covering must hold distinct, non-overlapping keys at one precision.
        """
        if radius_meters is not None:
            check_radius(radius_meters)
        check_disjoint(covering)
        if len(covering) > ABSOLUTE_MAX_CELLS:
            raise CellLimitExceededError(
                covering.scheme.value, covering.precision, len(covering), ABSOLUTE_MAX_CELLS
            )
        exact = _ExactFilter(origin=center, radius_meters=radius_meters)
        return await self._run(lambda: covering, exact, page_size, continuation_token, cancel_event)

    def _max_cells(self, max_cells: int | None) -> int:
        return max_cells if max_cells is not None else self._settings.default_max_cells

    async def _run(
        self,
        cover: Callable[[], CoveringResult],
        exact: _ExactFilter,
        page_size: int | None,
        continuation_token: str | None,
        cancel_event: asyncio.Event | None,
    ) -> QueryPage:
        if page_size is not None and (
            isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1
        ):
            raise InvalidArgumentError(f"page_size must be a positive integer, got {page_size!r}")
        if continuation_token is not None and page_size is None:
            raise InvalidArgumentError("resuming from a continuation token requires a page_size")

        run = _QueryRun()
        try:
            run.transition(QueryState.COVERING)
            covering = cover()
            run.covering = covering

            start, inner = 0, None
            if continuation_token is not None:
                token = ContinuationToken.decode(continuation_token)
                if not token.matches(covering):
                    raise MalformedContinuationTokenError(
                        "continuation token does not belong to this query's covering"
                    )
                start, inner = token.cell_index, token.inner_token

            run.transition(QueryState.DRAINING)
            if page_size is None:
                work = self._drain_all(run, exact, cancel_event)
            else:
                work = self._drain_page(run, exact, page_size, start, inner, cancel_event)
            page = await self._cancellable(work, cancel_event)
        except BaseException:
            run.transition(QueryState.FAILED)
            raise

        logger.info(
            "%s query read %d keys, scanned %d items, returned %d%s",
            covering.scheme.value,
            page.cells_queried,
            page.items_scanned,
            len(page.items),
            " (more pages)" if page.has_more else "",
        )
        return page

    async def _cancellable(
        self,
        work: Coroutine[Any, Any, QueryPage],
        cancel_event: asyncio.Event | None,
    ) -> QueryPage:
        """Await ``work`` unless the caller's cancel event fires first."""
        if cancel_event is None:
            return await work

        task = asyncio.ensure_future(work)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task.cancelled():
            logger.info("Query cancelled by caller")
            raise QueryCancelledError("query cancelled by caller")
        return task.result()

    async def _read(
        self,
        key: ReadKey,
        limit: int,
        inner_token: str | None,
        cancel_event: asyncio.Event | None,
    ) -> IndexPage:
        if cancel_event is not None and cancel_event.is_set():
            raise QueryCancelledError(f"query cancelled before reading {key}")

        timeout = self._settings.read_timeout_seconds
        logger.debug("Reading %s (limit=%d)", key, limit)
        try:
            async with asyncio.timeout(timeout):
                return await self._reader.read(key, limit, inner_token)
        except TimeoutError as e:
            logger.warning("Index read for %s timed out after %.1fs", key, timeout)
            raise IndexReadError(f"index read for {key} timed out after {timeout}s") from e
        except GeoCellError:
            raise
        except Exception as e:
            logger.warning("Index read for %s failed: %s", key, e)
            raise IndexReadError(f"index read for {key} failed: {e}") from e

    async def _drain_page(
        self,
        run: _QueryRun,
        exact: _ExactFilter,
        page_size: int,
        index: int,
        inner: str | None,
        cancel_event: asyncio.Event | None,
    ) -> QueryPage:
        covering = run.covering
        keys = covering.keys
        results: list[QueryResultItem] = []
        seen: set[Hashable] = set()
        touched: set[int] = set()

        while index < len(keys) and len(results) < page_size:
            touched.add(index)
            page = await self._read(keys[index], page_size - len(results), inner, cancel_event)
            run.items_scanned += len(page.items)
            for result in exact.apply(self._reader, page.items):
                if result.key not in seen:
                    seen.add(result.key)
                    results.append(result)
            if page.next_token is None:
                index += 1
                inner = None
            else:
                inner = page.next_token

        if len(results) > page_size:
            logger.warning("Index returned more items than requested; page holds %d", len(results))

        next_token = None
        if index < len(keys):
            next_token = ContinuationToken.for_covering(covering, index, inner).encode()
        else:
            run.transition(QueryState.EXHAUSTED)

        results.sort(key=_sort_key)
        return QueryPage(
            items=results,
            continuation_token=next_token,
            precision=covering.precision,
            cells_queried=len(touched),
            items_scanned=run.items_scanned,
            state=run.state,
        )

    async def _drain_all(
        self,
        run: _QueryRun,
        exact: _ExactFilter,
        cancel_event: asyncio.Event | None,
    ) -> QueryPage:
        covering = run.covering
        semaphore = asyncio.Semaphore(self._settings.max_concurrent_reads)
        batch = self._settings.read_batch_size
        seen = _SeenKeys()
        results: list[QueryResultItem] = []

        async def drain(key: ReadKey) -> None:
            inner = None
            while True:
                async with semaphore:
                    page = await self._read(key, batch, inner, cancel_event)
                run.items_scanned += len(page.items)
                for result in exact.apply(self._reader, page.items):
                    if await seen.add(result.key):
                        results.append(result)
                if page.next_token is None:
                    return
                inner = page.next_token

        tasks = [asyncio.create_task(drain(key)) for key in covering.keys]
        try:
            if tasks:
                done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
                for task in done:
                    # re-raises the first read failure
                    task.result()
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        run.transition(QueryState.EXHAUSTED)
        results.sort(key=_sort_key)
        return QueryPage(
            items=results,
            continuation_token=None,
            precision=covering.precision,
            cells_queried=len(tasks),
            items_scanned=run.items_scanned,
            state=run.state,
        )
