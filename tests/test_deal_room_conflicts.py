"""Tests for the pure conflict helpers in dealroom.models.deal_room_draft.

Coverage:
  1. detect_conflicts only reports fields set on both sides that differ
  2. List items compare on name / link-or-url / order, never on ids
  3. merge_data for every strategy
  4. draft_expiry honours the TTL
"""

from datetime import datetime, timedelta, timezone

from dealroom.models.deal_room_draft import detect_conflicts, draft_expiry, merge_data


SERVER = {
    "showcasePhoto": None,
    "investmentBlurb": "Server blurb",
    "investmentSummary": "Server summary",
    "keyInfo": [{"name": "Deck", "link": "https://example.com/deck", "order": 0}],
    "externalLinks": [],
}


class TestDetectConflicts:

    def test_differing_field_is_reported(self):
        assert detect_conflicts({"investmentBlurb": "Mine"}, SERVER) == ["investmentBlurb"]

    def test_equal_field_is_not_reported(self):
        assert detect_conflicts({"investmentBlurb": "Server blurb"}, SERVER) == []

    def test_field_missing_on_one_side_never_conflicts(self):
        assert detect_conflicts({"showcasePhoto": {"filename": "a.png"}}, SERVER) == []
        assert detect_conflicts({}, SERVER) == []

    def test_item_ids_are_ignored(self):
        local = {"keyInfo": [
            {"id": "item_abc", "name": "Deck", "link": "https://example.com/deck", "order": 0},
        ]}
        assert detect_conflicts(local, SERVER) == []

    def test_item_order_change_conflicts(self):
        local = {"keyInfo": [{"name": "Deck", "link": "https://example.com/deck", "order": 3}]}
        assert detect_conflicts(local, SERVER) == ["keyInfo"]

    def test_fields_reported_in_display_order(self):
        local = {"keyInfo": [], "investmentBlurb": "Mine"}
        assert detect_conflicts(local, SERVER) == ["investmentBlurb", "keyInfo"]


class TestMergeData:

    def test_merge_combines_disjoint_edits(self):
        merged = merge_data({"investmentBlurb": "A"}, {"investmentSummary": "B"}, "merge")
        assert merged == {"investmentBlurb": "A", "investmentSummary": "B"}

    def test_merge_prefers_local_where_both_set(self):
        merged = merge_data({"investmentBlurb": "A"}, SERVER, "merge")
        assert merged["investmentBlurb"] == "A"
        assert merged["investmentSummary"] == "Server summary"
        assert merged["keyInfo"] == SERVER["keyInfo"]

    def test_use_server_takes_server_side(self):
        merged = merge_data({"investmentBlurb": "A"}, SERVER, "use_server")
        assert merged["investmentBlurb"] == "Server blurb"
        assert "showcasePhoto" not in merged

    def test_use_local_takes_only_local_fields(self):
        assert merge_data({"investmentBlurb": "A"}, SERVER, "use_local") == {"investmentBlurb": "A"}

    def test_none_values_are_dropped(self):
        merged = merge_data({"investmentBlurb": None}, {"investmentSummary": None}, "merge")
        assert merged == {}


class TestDraftExpiry:

    def test_default_is_24_hours_ahead(self):
        expected = datetime.now(timezone.utc) + timedelta(hours=24)
        assert abs((draft_expiry() - expected).total_seconds()) < 5

    def test_custom_ttl(self):
        expected = datetime.now(timezone.utc) + timedelta(hours=2)
        assert abs((draft_expiry(2) - expected).total_seconds()) < 5
