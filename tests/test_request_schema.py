import pytest
from pydantic import ValidationError as PayloadValidationError

from trip_optimizer.schemas import OptimizeRequest, Strategy

SAMPLE_PAYLOAD = {
    "trip": {
        "id": "trip-9",
        "start_date": "2025-07-10",
        "end_date": "2025-07-12",
        "owner": "ignored",
        "days": [
            {"id": "a", "date": "2025-07-10", "day_type": "arrival", "items": []},
            {"id": "b", "date": "2025-07-11", "destination_id": "epcot", "is_locked": True},
        ],
    },
    "ratings": [
        {"activity_id": "ep-1", "destination_id": "epcot", "must_do_count": 2, "consensus_level": "low"},
    ],
    "options": {"strategy": "group_consensus", "constraints": [{"day_id": "b", "is_locked": False}]},
}


def test_optimize_request_round_trip():
    request = OptimizeRequest.model_validate(SAMPLE_PAYLOAD)

    assert request.options.strategy is Strategy.GROUP_CONSENSUS
    assert request.trip.days[1].is_locked is True
    assert request.ratings[0].average_rating is None
    assert request.forecast is None

    dumped = request.model_dump(mode="json")
    assert dumped["options"]["strategy"] == "group_consensus"
    assert "owner" not in dumped["trip"]
    assert dumped["trip"]["days"][0]["items"] == []


def test_optimize_request_defaults_to_every_strategy():
    payload = {**SAMPLE_PAYLOAD}
    payload.pop("options")

    request = OptimizeRequest.model_validate(payload)

    assert request.options.strategy is None
    assert request.options.constraints == []


def test_forecast_entries_must_stay_on_scale():
    payload = {**SAMPLE_PAYLOAD, "forecast": [{"destination_id": "epcot", "date": "2025-07-11", "crowd_level": 12}]}

    with pytest.raises(PayloadValidationError):
        OptimizeRequest.model_validate(payload)


def test_unknown_day_type_is_rejected():
    payload = {
        **SAMPLE_PAYLOAD,
        "trip": {**SAMPLE_PAYLOAD["trip"], "days": [{"id": "x", "date": "2025-07-10", "day_type": "pool-day"}]},
    }

    with pytest.raises(PayloadValidationError):
        OptimizeRequest.model_validate(payload)
