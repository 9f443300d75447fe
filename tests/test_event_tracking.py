import pytest
from sqlalchemy import select

from slotbook.data.preferences_repository import find_preferences
from slotbook.db.tables import EventLogRecord, RecommendationLogRecord
from slotbook.errors import NotFound
from slotbook.schemas.events import RecommendationSelectedRequest, RecommendationViewedRequest
from slotbook.services.events.tracking import record_selected, record_viewed


def _viewed(catalog, **overrides) -> RecommendationViewedRequest:
    values = {
        "sessionId": "sess-1",
        "merchantId": catalog.domain,
        "customerId": "cust-1",
        "recommendations": [
            {"type": "slot", "id": catalog.slots["north_mon"], "recommendationScore": 0.7},
            {"type": "location", "id": catalog.north_id, "recommendationScore": 0.85},
        ],
    }
    values.update(overrides)
    return RecommendationViewedRequest(**values)


def _selected(catalog, item_type: str, item_id: str, **overrides) -> RecommendationSelectedRequest:
    values = {
        "sessionId": "sess-1",
        "merchantId": catalog.domain,
        "customerId": "cust-1",
        "selected": {"type": item_type, "id": item_id, "recommendationScore": 0.7, "wasRecommended": True},
        "alternativesShown": ["a", "b"],
    }
    values.update(overrides)
    return RecommendationSelectedRequest(**values)


def test_viewed_creates_log_and_event(session_factory, catalog):
    response = record_viewed(_viewed(catalog))

    assert response.success
    with session_factory() as session:
        log = session.get(RecommendationLogRecord, response.logId)
        events = session.scalars(select(EventLogRecord)).all()
    assert log.recommended_slot_ids == [catalog.slots["north_mon"]]
    assert log.recommended_location_ids == [catalog.north_id]
    assert log.merchant_domain == "shop.example.com"
    assert [event.event_type for event in events] == ["recommendation.viewed"]


def test_selected_updates_existing_log_and_preferences(session_factory, catalog):
    viewed = record_viewed(_viewed(catalog))

    selected = record_selected(_selected(catalog, "slot", catalog.slots["north_tue"]))

    assert selected.logId == viewed.logId
    with session_factory() as session:
        log = session.get(RecommendationLogRecord, viewed.logId)
        preferences = find_preferences(session, customer_id="cust-1")
    assert log.selected_slot_id == catalog.slots["north_tue"]
    assert log.was_recommended is True
    assert log.alternatives_shown == ["a", "b"]
    assert log.selected_at is not None
    assert preferences.preferred_days == ["Tuesday"]
    assert preferences.preferred_times == ["13:00-15:00"]
    assert preferences.preferred_location_ids == [catalog.north_id]
    assert preferences.total_orders == 1


def test_selected_without_prior_view_creates_log(session_factory, catalog):
    response = record_selected(_selected(catalog, "location", catalog.south_id, sessionId="fresh", customerId=None, customerEmail="ada@example.com"))

    with session_factory() as session:
        log = session.get(RecommendationLogRecord, response.logId)
        preferences = find_preferences(session, customer_email="ada@example.com")
    assert log.session_id == "fresh"
    assert log.selected_location_id == catalog.south_id
    assert preferences.preferred_days == []
    assert preferences.preferred_location_ids == [catalog.south_id]


def test_repeat_selections_merge_unique_values(session_factory, catalog):
    record_selected(_selected(catalog, "slot", catalog.slots["north_mon"]))
    record_selected(_selected(catalog, "slot", catalog.slots["south_mon"]))

    with session_factory() as session:
        preferences = find_preferences(session, customer_id="cust-1")
    assert preferences.preferred_days == ["Monday"]
    assert preferences.preferred_times == ["09:00-11:00"]
    assert preferences.preferred_location_ids == [catalog.north_id, catalog.south_id]
    assert preferences.total_orders == 2


def test_anonymous_selection_leaves_preferences_alone(session_factory, catalog):
    record_selected(_selected(catalog, "slot", catalog.slots["north_mon"], customerId=None))

    with session_factory() as session:
        assert find_preferences(session, customer_id="cust-1") is None


def test_unknown_merchant_is_not_found(catalog):
    with pytest.raises(NotFound):
        record_viewed(_viewed(catalog, merchantId="nobody.example.com"))
