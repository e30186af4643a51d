import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from xray.analytics.funnel import build_funnel, decision_counts, drop_rate_percent, read_count
from xray.exceptions import NoDecisionEventsError, NotFoundError
from tests.test_helpers import custom_record, decision_record


class TestDropRate:
    def test_basic(self):
        assert drop_rate_percent(100, 60) == 40.0
        assert drop_rate_percent(60, 15) == 75.0

    def test_rounds_to_two_decimals(self):
        assert drop_rate_percent(3, 1) == 66.67

    def test_zero_input_is_zero_not_error(self):
        assert drop_rate_percent(0, 0) == 0


class TestDecisionCounts:
    def test_reads_counts(self):
        assert decision_counts({"decision": {"input_count": 10, "output_count": 3}}) == (10, 3)

    def test_missing_counts_read_as_zero(self):
        assert decision_counts({}) == (0, 0)
        assert decision_counts({"decision": {"input_count": "ten"}}) == (0, 0)

    def test_output_clamped_to_input(self):
        assert decision_counts({"decision": {"input_count": 5, "output_count": 9}}) == (5, 5)

    def test_negative_counts_clamped_to_zero(self):
        assert decision_counts({"decision": {"input_count": 5, "output_count": -2}}) == (5, 0)

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_non_finite_counts_read_as_zero(self, value):
        assert read_count(value) == 0
        assert decision_counts({"decision": {"input_count": value, "output_count": 3}}) == (0, 0)
        assert decision_counts({"decision": {"input_count": 10, "output_count": value}}) == (10, 0)


class TestBuildFunnel:
    def test_two_stage_funnel(self):
        events = [
            decision_record("X", 100, 60, minutes=0),
            decision_record("X", 60, 15, minutes=1),
        ]

        stats = build_funnel("X", events)

        assert stats.decision_count == 2
        assert stats.initial_input == 100
        assert stats.final_output == 15
        assert stats.cumulative_drop_rate == 85.0
        assert [s.drop_rate_percent for s in stats.funnel] == [40.0, 75.0]

    def test_sorts_by_timestamp_not_input_order(self):
        events = [
            decision_record("X", 60, 15, minutes=5),
            decision_record("X", 100, 60, minutes=0),
        ]

        stats = build_funnel("X", events)

        assert stats.initial_input == 100
        assert stats.final_output == 15
        assert [s.input_count for s in stats.funnel] == [100, 60]

    def test_timestamp_ties_keep_ingestion_order(self):
        events = [
            decision_record("X", 50, 10, minutes=0, span_id="second", sequence=2),
            decision_record("X", 100, 50, minutes=0, span_id="first", sequence=1),
        ]

        stats = build_funnel("X", events)

        assert [s.span_id for s in stats.funnel] == ["first", "second"]
        assert stats.cumulative_drop_rate == 90.0

    def test_ignores_other_event_kinds_and_traces(self):
        events = [
            custom_record("X", minutes=0),
            decision_record("X", 10, 5, minutes=1),
            decision_record("Y", 1000, 1, minutes=2),
        ]

        stats = build_funnel("X", events)

        assert stats.decision_count == 1
        assert stats.cumulative_drop_rate == 50.0

    def test_zero_initial_input(self):
        stats = build_funnel("X", [decision_record("X", 0, 0)])

        assert stats.cumulative_drop_rate == 0
        assert stats.funnel[0].drop_rate_percent == 0

    def test_no_decision_events_is_not_found(self):
        with pytest.raises(NoDecisionEventsError) as exc_info:
            build_funnel("X", [custom_record("X")])

        assert exc_info.value.trace_id == "X"
        assert isinstance(exc_info.value, NotFoundError)

    def test_idempotent(self):
        events = [
            decision_record("X", 100, 60, minutes=0),
            decision_record("X", 60, 15, minutes=1),
        ]

        assert build_funnel("X", events) == build_funnel("X", events)
        assert build_funnel("X", events).to_wire() == build_funnel("X", events).to_wire()

    def test_to_wire_shape(self):
        dropped = [{"count": 40, "reason": "price_too_high"}]
        stats = build_funnel("X", [decision_record("X", 100, 60, dropped=dropped)])

        wire = stats.to_wire()

        assert set(wire) == {
            "trace_id",
            "decision_count",
            "cumulative_drop_rate",
            "initial_input",
            "final_output",
            "funnel",
        }
        stage = wire["funnel"][0]
        assert stage["dropped"] == dropped
        assert stage["kept"] == [{"count": 60, "reason": "ok"}]
        assert stage["span_id"] == "X-0-0"


count_values = st.one_of(
    st.integers(min_value=-1000, max_value=10**9),
    st.floats(allow_nan=True, allow_infinity=True),
    st.booleans(),
    st.text(max_size=5),
    st.none(),
)

stages = st.lists(
    st.tuples(
        st.integers(min_value=0, max_value=10**6),
        st.integers(min_value=0, max_value=10**6),
        st.integers(min_value=0, max_value=30),
    ),
    min_size=1,
    max_size=8,
)


def funnel_records(stage_list):
    return [
        decision_record("X", input_count, output_count, minutes=minutes, sequence=i)
        for i, (input_count, output_count, minutes) in enumerate(stage_list)
    ]


class TestFunnelProperties:
    @given(count_values, count_values)
    def test_counts_always_ordered(self, input_count, output_count):
        read_in, read_out = decision_counts(
            {"decision": {"input_count": input_count, "output_count": output_count}}
        )

        assert 0 <= read_out <= read_in

    @given(st.integers(min_value=0, max_value=10**9), st.integers(min_value=0, max_value=10**9))
    def test_drop_rate_bounded(self, input_count, output_count):
        output_count = min(output_count, input_count)

        rate = drop_rate_percent(input_count, output_count)

        assert 0 <= rate <= 100
        if input_count == 0:
            assert rate == 0

    @given(stages)
    def test_stage_rates_bounded(self, stage_list):
        stats = build_funnel("X", funnel_records(stage_list))

        assert stats.decision_count == len(stage_list)
        assert stats.cumulative_drop_rate <= 100
        for stage in stats.funnel:
            assert 0 <= stage.output_count <= stage.input_count
            assert 0 <= stage.drop_rate_percent <= 100

    @given(stages, st.randoms())
    def test_independent_of_input_order(self, stage_list, rnd):
        records = funnel_records(stage_list)
        shuffled = list(records)
        rnd.shuffle(shuffled)

        assert build_funnel("X", shuffled).to_wire() == build_funnel("X", records).to_wire()

    @given(stages)
    def test_idempotent_over_same_events(self, stage_list):
        records = funnel_records(stage_list)

        assert build_funnel("X", records) == build_funnel("X", records)
