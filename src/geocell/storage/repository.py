"""Spatial item repository and the SQL-backed index reader."""

import logging
from collections.abc import Sequence

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from geocell.cells import CellRange, ReadKey
from geocell.errors import IndexReadError, InvalidArgumentError, MalformedContinuationTokenError
from geocell.geometry.types import GeoLocation
from geocell.query.index import IndexPage, SpatialIndexDefinition
from geocell.schemes import get_scheme
from geocell.storage.models import SpatialItem as SpatialItemModel
from geocell.storage.models import SpatialItemCell
from geocell.storage.schemas import StoredItem

logger = logging.getLogger(__name__)

# Separates token and item id in range-read cursors; not in the geohash alphabet
_CURSOR_SEPARATOR = "|"


def _to_schema(model: SpatialItemModel) -> StoredItem:
    return StoredItem(
        id=model.id,
        location=GeoLocation(latitude=model.latitude, longitude=model.longitude),
        data=model.data or {},
    )


def _check_index_names(indexes: Sequence[SpatialIndexDefinition]) -> None:
    names = [index.name for index in indexes]
    if len(set(names)) != len(names):
        raise InvalidArgumentError(f"duplicate spatial index names: {names}")


async def put_item(
    db: AsyncSession,
    item: StoredItem,
    indexes: Sequence[SpatialIndexDefinition],
) -> StoredItem:
    """Insert or replace an item and its cell token in every index."""
    _check_index_names(indexes)
    model = await db.get(SpatialItemModel, item.id)
    if model is None:
        model = SpatialItemModel(id=item.id)
        db.add(model)
    model.latitude = item.location.latitude
    model.longitude = item.location.longitude
    model.data = dict(item.data)

    await db.execute(delete(SpatialItemCell).where(SpatialItemCell.item_id == item.id))
    for index in indexes:
        token = get_scheme(index.scheme).cell_for_location(item.location, index.precision)
        db.add(SpatialItemCell(item_id=item.id, index_name=index.name, token=token.value))

    await db.commit()
    await db.refresh(model)
    return _to_schema(model)


async def get_item(db: AsyncSession, item_id: str) -> StoredItem | None:
    """Get an item by ID."""
    model = await db.get(SpatialItemModel, item_id)
    if model is None:
        return None
    return _to_schema(model)


async def delete_item(db: AsyncSession, item_id: str) -> bool:
    """Delete an item and its cells. Returns True if it existed."""
    await db.execute(delete(SpatialItemCell).where(SpatialItemCell.item_id == item_id))
    result = await db.execute(delete(SpatialItemModel).where(SpatialItemModel.id == item_id))
    await db.commit()
    return result.rowcount > 0


class SqlSpatialIndex:
    """Index reader over the spatial tables.

    Each read picks the index definition matching the key's scheme and
    precision, so one reader serves several precisions of the same data.
    Reads use keyset pagination: the inner token is the last item id (or
    ``token|item_id`` for range reads).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        indexes: Sequence[SpatialIndexDefinition],
    ):
        _check_index_names(indexes)
        self._session_factory = session_factory
        self._indexes = list(indexes)

    def _index_for(self, key: ReadKey) -> SpatialIndexDefinition:
        for index in self._indexes:
            if index.serves(key):
                return index
        raise IndexReadError(
            f"no spatial index for {key.scheme.value} at precision {key.precision}"
        )

    async def read(self, key: ReadKey, limit: int, inner_token: str | None) -> IndexPage:
        index = self._index_for(key)
        query = (
            select(SpatialItemModel, SpatialItemCell.token)
            .join(SpatialItemCell, SpatialItemCell.item_id == SpatialItemModel.id)
            .where(SpatialItemCell.index_name == index.name)
        )
        if isinstance(key, CellRange):
            query = query.where(SpatialItemCell.token.between(key.min_token, key.max_token))
            if inner_token is not None:
                last_token, separator, last_id = inner_token.partition(_CURSOR_SEPARATOR)
                if not separator:
                    raise MalformedContinuationTokenError(
                        f"malformed range cursor {inner_token!r}"
                    )
                query = query.where(
                    or_(
                        SpatialItemCell.token > last_token,
                        and_(
                            SpatialItemCell.token == last_token,
                            SpatialItemCell.item_id > last_id,
                        ),
                    )
                )
            query = query.order_by(SpatialItemCell.token, SpatialItemCell.item_id)
        else:
            query = query.where(SpatialItemCell.token == key.value)
            if inner_token is not None:
                query = query.where(SpatialItemCell.item_id > inner_token)
            query = query.order_by(SpatialItemCell.item_id)

        async with self._session_factory() as db:
            rows = (await db.execute(query.limit(limit + 1))).all()

        has_more = len(rows) > limit
        rows = rows[:limit]
        next_token = None
        if has_more:
            last_model, last_token = rows[-1]
            if isinstance(key, CellRange):
                next_token = f"{last_token}{_CURSOR_SEPARATOR}{last_model.id}"
            else:
                next_token = last_model.id
        logger.debug("Read %d items from %s for %s", len(rows), index.name, key)
        return IndexPage(items=[_to_schema(model) for model, _ in rows], next_token=next_token)

    def location_of(self, item: StoredItem) -> GeoLocation:
        return item.location

    def key_of(self, item: StoredItem) -> str:
        return item.id
