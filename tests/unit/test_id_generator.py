"""Unit tests for pe_common.id_generator."""

import re

import pytest

from src.pe_common.id_generator import SnowflakeIdGenerator, generate_id, generate_order_no


class TestSnowflake:
    def test_ids_are_unique_and_increasing(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = [gen.next_id() for _ in range(2000)]
        assert len(set(ids)) == len(ids)
        assert ids == sorted(ids)

    def test_fixed_width(self) -> None:
        assert len(generate_id()) == 20

    def test_invalid_machine_id(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)


class TestOrderNo:
    def test_format(self) -> None:
        order_no = generate_order_no(generate_id())
        assert re.fullmatch(r"ORD\d{8}\d{8}\d{7}", order_no)

    def test_unique_for_unique_ids(self) -> None:
        ids = [generate_id() for _ in range(500)]
        numbers = {generate_order_no(i) for i in ids}
        assert len(numbers) == len(ids)

    def test_encodes_utc_date(self) -> None:
        # 2026-01-15 00:00:01 UTC
        unix_ms = 1_768_435_201_000
        id_int = (unix_ms - SnowflakeIdGenerator.EPOCH_MS) << SnowflakeIdGenerator.LOW_BITS
        order_no = generate_order_no(f"{id_int:020d}")
        assert order_no == "ORD20260115" + "00001000" + "0000000"

    def test_split_recovers_machine_and_time(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=3)
        unix_ms, low = SnowflakeIdGenerator.split(gen.next_id())
        assert low >> 12 == 3
        assert unix_ms > SnowflakeIdGenerator.EPOCH_MS
