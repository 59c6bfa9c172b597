from __future__ import annotations

import json
import logging

from parley.core.logging import (
    CorrelationFilter,
    _JsonFormatter,
    correlation_scope,
    get_correlation_context,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="hello",
        args=(),
        exc_info=None,
    )


def test_correlation_filter_injects_fields() -> None:
    correlation_filter = CorrelationFilter()
    record = _record()

    with correlation_scope(actor_id="u1", conversation_id="c1", turn_id="t1"):
        assert correlation_filter.filter(record) is True

    assert record.actor_id == "u1"
    assert record.conversation_id == "c1"
    assert record.turn_id == "t1"


def test_correlation_scope_sets_and_clears_context() -> None:
    baseline = get_correlation_context()

    with correlation_scope(actor_id="u2", conversation_id="c2"):
        current = get_correlation_context()
        assert current.actor_id == "u2"
        assert current.conversation_id == "c2"
        assert current.turn_id is None

    assert get_correlation_context() == baseline


def test_correlation_scope_nested_inherits_and_restores() -> None:
    with correlation_scope(actor_id="outer", conversation_id="c-outer"):
        with correlation_scope(turn_id="t-inner"):
            inner = get_correlation_context()
            assert inner.actor_id == "outer"
            assert inner.conversation_id == "c-outer"
            assert inner.turn_id == "t-inner"
        assert get_correlation_context().turn_id is None


def test_json_formatter_includes_correlation_fields() -> None:
    record = _record()
    with correlation_scope(actor_id="u1", conversation_id="c1", turn_id="t1"):
        CorrelationFilter().filter(record)

    payload = json.loads(_JsonFormatter().format(record))
    assert payload["message"] == "hello"
    assert payload["actor_id"] == "u1"
    assert payload["conversation_id"] == "c1"
    assert payload["turn_id"] == "t1"
