from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.refresh",
        level=logging.DEBUG,
        pathname=__file__,
        lineno=1,
        msg="Dropped reading row",
        args=(),
        exc_info=None,
    )
    record.created = 0.0
    record.__dict__.update(extra)
    return record


def test_contextual_suffix_includes_room_id_and_skips_missing_keys() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(row_number=4, room_id="A-101", reason="negative count", status=None))

    assert line == "Dropped reading row | room_id=A-101 row_number=4 reason=negative count"


def test_asctime_is_rendered_in_utc() -> None:
    formatter = ContextualFormatter(fmt="%(asctime)sZ %(message)s", datefmt="%Y-%m-%dT%H:%M:%S")

    assert formatter.format(_record()) == "1970-01-01T00:00:00Z Dropped reading row"
