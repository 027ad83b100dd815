"""Tests for the column types the models map to."""

from datetime import datetime

import pytest
from sqlalchemy import DateTime
from sqlmodel import SQLModel

from marketplace.models import ProviderAvailability

DATETIME_COLUMNS = [
    (table.name, column.name)
    for table in SQLModel.metadata.sorted_tables
    for column in table.columns
    if isinstance(column.type, DateTime)
]


class TestDatetimeColumns:
    def test_every_timestamp_is_mapped(self):
        names = {f"{table}.{column}" for table, column in DATETIME_COLUMNS}
        assert {
            "bookings.start_datetime",
            "bookings.end_datetime",
            "bookings.cancelled_at",
            "bookings.completed_at",
            "provider_availabilities.start_datetime",
            "provider_availabilities.end_datetime",
        } <= names

    @pytest.mark.parametrize("table,column", DATETIME_COLUMNS)
    def test_columns_store_naive_utc(self, table, column):
        assert SQLModel.metadata.tables[table].c[column].type.timezone is False

    async def test_naive_values_round_trip(self, session_maker, marketplace):
        start, end = datetime(2030, 1, 7, 8), datetime(2030, 1, 7, 12)
        async with session_maker() as session:
            window = ProviderAvailability(provider_id=marketplace.provider.id, start_datetime=start, end_datetime=end)
            session.add(window)
            await session.commit()
            window_id = window.id

        async with session_maker() as session:
            stored = await session.get(ProviderAvailability, window_id)
            assert stored.start_datetime == start
            assert stored.start_datetime.tzinfo is None
            assert stored.end_datetime == end
