"""Tests for snowflake trade id generation."""

import pytest

from journal_app.snowflake import (CUSTOM_EPOCH_MS, SnowflakeError, SnowflakeGenerator,
                                   generate_snowflake_id, is_valid_snowflake_id)


class FixedClock:
    """Returns the same millisecond for the first `repeat` calls, then advances"""

    def __init__(self, start, repeat=None):
        self.start = start
        self.repeat = repeat
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.repeat is not None and self.calls > self.repeat:
            return self.start + 1
        return self.start


def test_id_layout():
    """12-digit timestamp, 1 node digit, 2-digit sequence"""
    generator = SnowflakeGenerator(node_id=7, clock=FixedClock(CUSTOM_EPOCH_MS + 1234))
    trade_id = generator.generate()

    assert len(trade_id) == 15
    assert trade_id[:12] == '000000001234'
    assert trade_id[12] == '7'
    assert trade_id[13:] == '00'


def test_sequence_increments_within_same_millisecond():
    generator = SnowflakeGenerator(clock=FixedClock(CUSTOM_EPOCH_MS + 50))
    first, second, third = generator.generate(), generator.generate(), generator.generate()

    assert first[13:] == '00'
    assert second[13:] == '01'
    assert third[13:] == '02'
    assert first < second < third


def test_sequence_overflow_waits_for_next_millisecond():
    clock = FixedClock(CUSTOM_EPOCH_MS + 500, repeat=101)
    generator = SnowflakeGenerator(clock=clock)
    ids = [generator.generate() for _ in range(101)]

    assert ids[99][13:] == '99'
    assert ids[100][:12] == '000000000501'
    assert ids[100][13:] == '00'
    assert len(set(ids)) == 101


def test_clock_moving_backwards_keeps_ids_increasing():
    times = iter([CUSTOM_EPOCH_MS + 100, CUSTOM_EPOCH_MS + 90])
    generator = SnowflakeGenerator(clock=lambda: next(times))
    first = generator.generate()
    second = generator.generate()

    assert second > first
    assert second[:12] == first[:12]


def test_clock_before_epoch_raises():
    generator = SnowflakeGenerator(clock=lambda: CUSTOM_EPOCH_MS - 1)
    with pytest.raises(SnowflakeError):
        generator.generate()


@pytest.mark.parametrize('node_id', [-1, 10, 'abc', None])
def test_invalid_node_id(node_id):
    with pytest.raises(SnowflakeError):
        SnowflakeGenerator(node_id=node_id)


def test_generate_snowflake_id_outside_app_context():
    trade_id = generate_snowflake_id(node_id=3)
    assert is_valid_snowflake_id(trade_id)
    assert trade_id[12] == '3'


@pytest.mark.parametrize('value,expected', [
    ('123456789012345', True),
    ('12345678901234', False),
    ('1234567890123456', False),
    ('12345678901234a', False),
    (123456789012345, False),
    (None, False),
])
def test_is_valid_snowflake_id(value, expected):
    assert is_valid_snowflake_id(value) is expected
