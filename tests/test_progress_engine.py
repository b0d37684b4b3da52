from datetime import datetime, timezone

import pytest

from shiptrace.errors import AlreadyAtFinalCheckpoint
from shiptrace.models.domain import Checkpoint, GeoPoint, ShipmentRecord
from shiptrace.services.progress.engine import (
    MutationIntent,
    advance_status_hint,
    apply_mutation,
    compute_progress_pct,
    round_half_up,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
LATER = datetime(2024, 5, 2, 9, 30, tzinfo=timezone.utc)


def _route(count: int) -> list[Checkpoint]:
    return [
        Checkpoint(city=f"City {i}", location=GeoPoint(longitude=-97.0 + i, latitude=32.0 + i / 10))
        for i in range(count)
    ]


def _record(count: int = 5, **overrides) -> ShipmentRecord:
    return ShipmentRecord(tracking_id="TRK123", route=_route(count), **overrides)


def test_advance_one_moves_to_next_checkpoint():
    record = _record(5)

    result = apply_mutation(record, MutationIntent(advance_one=True), now=NOW)

    assert result.current_index == 1
    assert result.progress_pct == 25
    assert result.current_location == record.route[1].location
    assert len(result.location_history) == 1
    entry = result.location_history[0]
    assert entry.city == "City 1"
    assert entry.note == "Arrived checkpoint"
    assert entry.timestamp == NOW.isoformat()


def test_advance_one_at_final_checkpoint_raises():
    record = _record(5, current_index=4)

    with pytest.raises(AlreadyAtFinalCheckpoint):
        apply_mutation(record, MutationIntent(advance_one=True), now=NOW)


def test_advance_one_on_empty_route_raises():
    record = ShipmentRecord(tracking_id="TRK123", progress_pct=40)

    with pytest.raises(AlreadyAtFinalCheckpoint):
        apply_mutation(record, MutationIntent(advance_one=True), now=NOW)


@pytest.mark.parametrize("start_index", [0, 2, 4])
def test_delivered_forces_final_index_and_full_progress(start_index):
    record = _record(5, current_index=start_index, status="Shipped")

    result = apply_mutation(record, MutationIntent(status_hint="delivered"), now=NOW)

    assert result.status == "Delivered"
    assert result.current_index == 4
    assert result.progress_pct == 100
    assert result.current_location == record.route[4].location


def test_delivered_ignores_explicit_index_and_progress_override():
    record = _record(5)

    intent = MutationIntent(explicit_index=1, status_hint="Delivered", explicit_progress_pct=10)
    result = apply_mutation(record, intent, now=NOW)

    assert result.current_index == 4
    assert result.progress_pct == 100


def test_empty_route_keeps_previous_progress():
    record = ShipmentRecord(tracking_id="TRK123", progress_pct=37)

    result = apply_mutation(record, MutationIntent(explicit_index=3, status_hint="On Hold"), now=NOW)

    assert result.current_index == 0
    assert result.progress_pct == 37
    assert result.status == "On Hold"


def test_single_checkpoint_route_keeps_previous_progress():
    record = _record(1, progress_pct=12)

    result = apply_mutation(record, MutationIntent(explicit_index=0), now=NOW)

    assert result.current_index == 0
    assert result.progress_pct == 12


def test_city_hint_matches_checkpoint_prefix():
    route = [
        Checkpoint(city=city)
        for city in ("Austin, TX", "Waco, TX", "Fort Worth, TX", "Dallas, TX", "Plano, TX")
    ]
    record = ShipmentRecord(tracking_id="TRK123", route=route)

    result = apply_mutation(record, MutationIntent(destination_city_hint="dallas"), now=NOW)

    assert result.current_index == 3
    assert result.progress_pct == 75


def test_city_hint_without_match_keeps_index():
    record = _record(5, current_index=2)

    result = apply_mutation(record, MutationIntent(destination_city_hint="Nowhere"), now=NOW)

    assert result.current_index == 2
    assert result.progress_pct == 50


def test_explicit_index_wins_over_city_hint():
    record = _record(5)

    intent = MutationIntent(explicit_index=1, destination_city_hint="City 3")
    result = apply_mutation(record, intent, now=NOW)

    assert result.current_index == 1


def test_city_hint_suppresses_advance():
    record = _record(5)

    intent = MutationIntent(advance_one=True, destination_city_hint="City 3")
    result = apply_mutation(record, intent, now=NOW)

    assert result.current_index == 3


@pytest.mark.parametrize(
    ("explicit", "expected"),
    [(-3, 0), (99, 4), (2.0, 2), ("3", 3), (float("nan"), 1), (float("inf"), 1), ("abc", 1)],
)
def test_explicit_index_is_clamped_or_ignored(explicit, expected):
    record = _record(5, current_index=1)

    result = apply_mutation(record, MutationIntent(explicit_index=explicit), now=NOW)

    assert result.current_index == expected
    assert 0 <= result.progress_pct <= 100


def test_progress_override_is_clamped():
    record = _record(5, current_index=1)

    assert apply_mutation(record, MutationIntent(explicit_progress_pct=60), now=NOW).progress_pct == 60
    assert apply_mutation(record, MutationIntent(explicit_progress_pct=150), now=NOW).progress_pct == 100
    assert apply_mutation(record, MutationIntent(explicit_progress_pct=-5), now=NOW).progress_pct == 0
    assert apply_mutation(record, MutationIntent(explicit_progress_pct=float("nan")), now=NOW).progress_pct == 25


def test_diverging_progress_override_is_logged(caplog):
    record = _record(5, current_index=1)

    with caplog.at_level("WARNING"):
        apply_mutation(record, MutationIntent(explicit_progress_pct=90), now=NOW)

    assert any("diverges" in message for message in caplog.messages)


def test_shipment_date_set_once_on_shipped():
    record = _record(5)

    shipped = apply_mutation(record, MutationIntent(status_hint="Shipped"), now=NOW)
    assert shipped.shipment_date == NOW.isoformat()

    again = apply_mutation(shipped, MutationIntent(status_hint="shipped"), now=LATER)
    assert again.shipment_date == NOW.isoformat()
    assert again.updated_at == LATER.isoformat()
    assert again.last_updated == LATER.isoformat()


def test_non_shipped_status_leaves_shipment_date_unset():
    record = _record(5)

    result = apply_mutation(record, MutationIntent(status_hint="On Hold"), now=NOW)

    assert result.shipment_date is None


def test_new_location_is_preferred_and_recorded():
    record = _record(5)
    point = {"type": "Point", "coordinates": [-96.8, 32.78]}

    result = apply_mutation(record, MutationIntent(new_destination_location=point), now=NOW)

    assert result.current_location == GeoPoint(longitude=-96.8, latitude=32.78)
    assert result.location_history[-1].note == "Admin updated destination location"
    assert result.location_history[-1].location == result.current_location


def test_malformed_location_falls_back_to_checkpoint_without_history():
    record = _record(5, current_index=2)

    intent = MutationIntent(new_destination_location={"type": "Point", "coordinates": ["x", 1]})
    result = apply_mutation(record, intent, now=NOW)

    assert result.current_location == record.route[2].location
    assert result.location_history == []


def test_location_falls_back_to_origin_when_checkpoint_has_none():
    origin = GeoPoint(longitude=-97.7, latitude=30.3)
    record = ShipmentRecord(
        tracking_id="TRK123",
        route=[Checkpoint(city="Austin"), Checkpoint(city="Dallas")],
        origin_location=origin,
    )

    result = apply_mutation(record, MutationIntent(), now=NOW)

    assert result.current_location == origin


def test_location_unchanged_without_any_source():
    current = GeoPoint(longitude=1.0, latitude=2.0)
    record = ShipmentRecord(tracking_id="TRK123", current_location=current)

    result = apply_mutation(record, MutationIntent(status_hint="On Hold"), now=NOW)

    assert result.current_location == current


def test_city_for_history_appends_entry():
    record = _record(5)

    intent = MutationIntent(destination_city_hint="City 2", new_destination_city_for_history="City 2")
    result = apply_mutation(record, intent, now=NOW)

    assert [entry.note for entry in result.location_history] == ["Admin updated destination city"]
    assert result.location_history[0].city == "City 2"


def test_custom_history_note_and_actor():
    record = _record(5)

    intent = MutationIntent(
        new_destination_location={"type": "Point", "coordinates": [-96.0, 33.0]},
        history_note="Picked up by courier",
        actor="dispatcher",
    )
    result = apply_mutation(record, intent, now=NOW)

    assert result.location_history[-1].note == "Picked up by courier"
    assert result.location_history[-1].by == "dispatcher"


def test_status_only_change_does_not_append_history():
    record = _record(5)

    result = apply_mutation(record, MutationIntent(status_hint="Out for Delivery"), now=NOW)

    assert result.location_history == []


def test_same_intent_twice_yields_same_fields():
    record = _record(5)
    intent = MutationIntent(explicit_index=2, status_hint="Shipped")

    first = apply_mutation(record, intent, now=NOW)
    second = apply_mutation(first, intent, now=NOW)

    assert second.progress_fields() == first.progress_fields()
    assert second.location_history == first.location_history


def test_apply_mutation_does_not_modify_input():
    record = _record(5)

    apply_mutation(record, MutationIntent(advance_one=True, status_hint="Shipped"), now=NOW)

    assert record.current_index == 0
    assert record.status == "Pending"
    assert record.location_history == []


def test_exception_status_keeps_checkpoint_progress():
    record = _record(5, current_index=2)

    result = apply_mutation(record, MutationIntent(status_hint="exception"), now=NOW)

    assert result.status == "Exception"
    assert result.progress_pct == 50


def test_round_half_up_and_progress_ratio():
    assert round_half_up(12.5) == 13
    assert round_half_up(12.49) == 12
    assert compute_progress_pct(1, 3) == 50
    assert compute_progress_pct(1, 7) == 17
    assert compute_progress_pct(0, 1, fallback=40) == 40
    assert compute_progress_pct(0, 0) == 0


def test_advance_status_hint():
    assert advance_status_hint(_record(5, current_index=0)) == "Shipped"
    assert advance_status_hint(_record(5, current_index=3, status="Shipped")) == "Delivered"
    assert advance_status_hint(_record(5, current_index=1, status="Shipped")) is None
    assert advance_status_hint(ShipmentRecord(tracking_id="TRK123", status="Shipped")) is None
