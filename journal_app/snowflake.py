"""
Snowflake-style trade ids.

Ids are 15-digit decimal strings so they sort chronologically and stay
readable in URLs and exported file names:

    12 digits  milliseconds since 2025-01-01T00:00:00Z
     1 digit   node id (0-9)
     2 digits  per-millisecond sequence (0-99)
"""

import re
import threading
import time
from datetime import datetime, timezone
from typing import Optional

CUSTOM_EPOCH_MS = int(datetime(2025, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)
TIMESTAMP_WIDTH = 12
NODE_WIDTH = 1
SEQUENCE_WIDTH = 2
SEQUENCE_MAX = 10 ** SEQUENCE_WIDTH - 1

_SNOWFLAKE_RE = re.compile(r'^[0-9]{15}$')


class SnowflakeError(Exception):
    """Raised when an id cannot be generated"""


def _now_ms() -> int:
    return int(time.time() * 1000)


class SnowflakeGenerator:
    """Monotonic id generator; safe to share between request threads."""

    def __init__(self, node_id=0, clock=_now_ms):
        self.node = self._resolve_node_id(node_id)
        self._clock = clock
        self._lock = threading.Lock()
        self._last_timestamp = -1
        self._sequence = 0

    @staticmethod
    def _resolve_node_id(raw) -> str:
        try:
            node = int(str(raw).strip())
        except (TypeError, ValueError):
            raise SnowflakeError('SNOWFLAKE_NODE_ID must be an integer between 0 and 9')
        if node < 0 or node > 9:
            raise SnowflakeError('SNOWFLAKE_NODE_ID must be an integer between 0 and 9')
        return str(node).rjust(NODE_WIDTH, '0')

    def _wait_next_millisecond(self, current: int) -> int:
        now = self._clock() - CUSTOM_EPOCH_MS
        while now <= current:
            time.sleep(0.001)
            now = self._clock() - CUSTOM_EPOCH_MS
        return now

    def generate(self) -> str:
        with self._lock:
            timestamp = self._clock() - CUSTOM_EPOCH_MS
            if timestamp < 0:
                raise SnowflakeError('System clock is before custom epoch')

            # Clock moved backwards: stay on the last timestamp
            if timestamp < self._last_timestamp:
                timestamp = self._last_timestamp

            if timestamp == self._last_timestamp:
                self._sequence += 1
                if self._sequence > SEQUENCE_MAX:
                    timestamp = self._wait_next_millisecond(self._last_timestamp)
                    self._sequence = 0
            else:
                self._sequence = 0

            self._last_timestamp = timestamp
            return (
                str(timestamp).rjust(TIMESTAMP_WIDTH, '0')
                + self.node
                + str(self._sequence).rjust(SEQUENCE_WIDTH, '0')
            )


_generator: Optional[SnowflakeGenerator] = None
_generator_lock = threading.Lock()


def generate_snowflake_id(node_id=None) -> str:
    """Generate an id using the process-wide generator"""
    global _generator
    with _generator_lock:
        if _generator is None or (node_id is not None and _generator.node != str(node_id)):
            if node_id is None:
                try:
                    from flask import current_app
                    node_id = current_app.config.get('SNOWFLAKE_NODE_ID', '0')
                except RuntimeError:
                    node_id = '0'
            _generator = SnowflakeGenerator(node_id)
        generator = _generator
    return generator.generate()


def is_valid_snowflake_id(value) -> bool:
    return isinstance(value, str) and bool(_SNOWFLAKE_RE.match(value))
