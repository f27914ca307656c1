"""Tests for the touchpoint ledger and attribution models."""

import pytest
from pixelbridge.tracking.campaigns import (
    MAX_TOUCHPOINTS,
    AttributionModel,
    AttributionResult,
    CampaignParams,
    Touchpoint,
    TouchpointLedger,
    get_utm_params,
)
from pixelbridge.tracking.storage import InMemoryStore


class TestCampaignParams:
    """Test CampaignParams dataclass."""

    def test_from_mapping_utm_names(self):
        """Test building from utm_* keys."""
        params = CampaignParams.from_mapping({
            "utm_source": "google",
            "utm_medium": "cpc",
            "utm_campaign": "spring",
        })

        assert params.source == "google"
        assert params.medium == "cpc"
        assert params.campaign == "spring"
        assert params.term is None

    def test_from_mapping_bare_names(self):
        """Test building from bare field names."""
        params = CampaignParams.from_mapping({"source": "newsletter"})

        assert params.source == "newsletter"

    def test_empty_strings_are_absent(self):
        """Test that empty values do not count as campaign data."""
        params = CampaignParams.from_mapping({"utm_source": "", "utm_medium": None})

        assert params.has_campaign_data is False

    def test_id_alone_is_campaign_data(self):
        """Test that utm_id alone marks a campaign visit."""
        assert CampaignParams(id="42").has_campaign_data is True

    def test_to_utm_dict(self):
        """Test utm_* serialization drops empty fields."""
        params = CampaignParams(source="fb", content="ad-1")

        assert params.to_utm_dict() == {"utm_source": "fb", "utm_content": "ad-1"}


class TestGetUtmParams:
    """Test get_utm_params URL parsing."""

    def test_parse_landing_url(self):
        """Test parsing all UTM fields from a URL."""
        params = get_utm_params(
            "https://shop.example/p?utm_source=tiktok&utm_medium=paid&utm_campaign=launch"
            "&utm_term=shoes&utm_content=video&utm_id=99&other=1"
        )

        assert params == CampaignParams(
            source="tiktok",
            medium="paid",
            campaign="launch",
            term="shoes",
            content="video",
            id="99",
        )

    def test_url_without_query(self):
        """Test a URL without campaign parameters."""
        assert get_utm_params("https://shop.example/").has_campaign_data is False

    def test_empty_url(self):
        """Test an empty URL."""
        assert get_utm_params("").has_campaign_data is False


class TestTouchpoint:
    """Test Touchpoint dataclass."""

    def test_key_with_fallbacks(self):
        """Test missing fields render as direct/none."""
        assert Touchpoint(timestamp=0).key == "direct/none/none"
        assert Touchpoint(timestamp=0, source="google").key == "google/none/none"
        assert (
            Touchpoint(timestamp=0, source="google", medium="cpc", campaign="x").key
            == "google/cpc/x"
        )

    def test_dict_round_trip(self):
        """Test stored form restores the same touchpoint."""
        touchpoint = Touchpoint(timestamp=123, source="a", term="t")

        assert Touchpoint.from_dict(touchpoint.to_dict()) == touchpoint


class TestRecordArrivalParams:
    """Test TouchpointLedger.record_arrival_params."""

    def test_direct_visit_records_nothing(self, ledger, store):
        """Test that direct/organic visits leave the ledger untouched."""
        assert ledger.record_arrival_params({}) is None
        assert ledger.get_first_touch() is None
        assert ledger.get_touchpoints() == []
        assert len(store) == 0

    def test_first_touch_is_immutable(self, ledger, now_ms):
        """Test first touch a, then b: first stays a, last becomes b."""
        ledger.record_arrival_params({"utm_source": "a"}, now=now_ms)
        ledger.record_arrival_params({"utm_source": "b"}, now=now_ms + 1)

        assert ledger.get_first_touch().source == "a"
        assert ledger.get_last_touch().source == "b"

    def test_accepts_campaign_params(self, ledger, now_ms):
        """Test recording a CampaignParams instance."""
        touchpoint = ledger.record_arrival_params(CampaignParams(source="x"), now=now_ms)

        assert touchpoint == Touchpoint(timestamp=now_ms, source="x")

    def test_ledger_is_bounded(self, ledger, now_ms):
        """Test that only the most recent touchpoints are kept, oldest evicted."""
        for i in range(MAX_TOUCHPOINTS + 3):
            ledger.record_arrival_params({"utm_source": f"s{i}"}, now=now_ms + i)

        touchpoints = ledger.get_touchpoints()
        assert len(touchpoints) == MAX_TOUCHPOINTS
        assert touchpoints[0].source == "s3"
        assert touchpoints[-1].source == f"s{MAX_TOUCHPOINTS + 2}"
        assert ledger.get_first_touch().source == "s0"

    def test_custom_bound(self, store, now_ms):
        """Test a custom max_touchpoints."""
        ledger = TouchpointLedger(store, max_touchpoints=2)
        for source in ("a", "b", "c"):
            ledger.record_arrival_params({"utm_source": source}, now=now_ms)

        assert [tp.source for tp in ledger.get_touchpoints()] == ["b", "c"]


class TestGetAttribution:
    """Test TouchpointLedger.get_attribution."""

    def test_no_touchpoints_returns_none(self, ledger):
        """Test every model returns None on an empty ledger."""
        for model in AttributionModel:
            assert ledger.get_attribution(model) is None

    def test_first_touch(self, ledger, now_ms):
        """Test full credit to the first touchpoint."""
        ledger.record_arrival_params({"utm_source": "a", "utm_medium": "cpc"}, now=now_ms)
        ledger.record_arrival_params({"utm_source": "b"}, now=now_ms)

        result = ledger.get_attribution(AttributionModel.FIRST_TOUCH)

        assert isinstance(result, AttributionResult)
        assert result.weights == {"a/cpc/none": 1.0}

    def test_last_touch(self, ledger, now_ms):
        """Test full credit to the last touchpoint."""
        ledger.record_arrival_params({"utm_source": "a"}, now=now_ms)
        ledger.record_arrival_params({"utm_source": "b"}, now=now_ms)

        result = ledger.get_attribution("last_touch")

        assert result.model == AttributionModel.LAST_TOUCH
        assert result.weights == {"b/none/none": 1.0}

    def test_linear_four_unique(self, ledger, now_ms):
        """Test four unique touchpoints get 0.25 each."""
        for source in ("a", "b", "c", "d"):
            ledger.record_arrival_params({"utm_source": source}, now=now_ms)

        weights = ledger.get_attribution(AttributionModel.LINEAR).weights

        assert weights == {
            "a/none/none": 0.25,
            "b/none/none": 0.25,
            "c/none/none": 0.25,
            "d/none/none": 0.25,
        }

    def test_linear_accumulates_duplicate_keys(self, ledger, now_ms):
        """Test duplicate keys accumulate their shares and weights sum to 1."""
        for source in ("a", "a", "a", "b"):
            ledger.record_arrival_params({"utm_source": source}, now=now_ms)

        weights = ledger.get_attribution(AttributionModel.LINEAR).weights

        assert weights["a/none/none"] == pytest.approx(0.75)
        assert weights["b/none/none"] == pytest.approx(0.25)
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_time_decay_favours_recent(self, ledger, now_ms, day_ms):
        """Test a 0-day touchpoint outweighs a 14-day touchpoint."""
        ledger.record_arrival_params({"utm_source": "old"}, now=now_ms - 14 * day_ms)
        ledger.record_arrival_params({"utm_source": "new"}, now=now_ms)

        weights = ledger.get_attribution(AttributionModel.TIME_DECAY, now=now_ms).weights

        assert weights["new/none/none"] > weights["old/none/none"]
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_time_decay_equal_ages_split_evenly(self, ledger, now_ms):
        """Test touchpoints of equal age share credit equally."""
        ledger.record_arrival_params({"utm_source": "a"}, now=now_ms)
        ledger.record_arrival_params({"utm_source": "b"}, now=now_ms)

        weights = ledger.get_attribution(AttributionModel.TIME_DECAY, now=now_ms).weights

        assert weights["a/none/none"] == pytest.approx(0.5)

    def test_time_decay_very_old_touchpoints_split_evenly(self, ledger, now_ms, day_ms):
        """Test touchpoints whose decay weights underflow fall back to equal credit."""
        ledger.record_arrival_params({"utm_source": "a"}, now=now_ms - 6000 * day_ms)
        ledger.record_arrival_params({"utm_source": "b"}, now=now_ms - 6001 * day_ms)

        result = ledger.get_attribution(AttributionModel.TIME_DECAY, now=now_ms)

        assert result.model == AttributionModel.TIME_DECAY
        assert result.weights == {
            "a/none/none": pytest.approx(0.5),
            "b/none/none": pytest.approx(0.5),
        }

    def test_result_to_dict(self, ledger, now_ms):
        """Test AttributionResult serialization."""
        ledger.record_arrival_params({"utm_source": "a"}, now=now_ms)

        data = ledger.get_attribution(AttributionModel.LINEAR).to_dict()

        assert data["model"] == "linear"
        assert data["attribution"] == {"a/none/none": 1.0}
        assert data["touchpoints"][0]["timestamp"] == now_ms


class TestLedgerHelpers:
    """Test clear_attribution and get_campaign_data."""

    def test_clear_attribution(self, ledger, now_ms):
        """Test clearing removes first, last and touchpoints."""
        ledger.record_arrival_params({"utm_source": "a"}, now=now_ms)
        ledger.clear_attribution()

        assert ledger.get_first_touch() is None
        assert ledger.get_last_touch() is None
        assert ledger.get_touchpoints() == []

    def test_get_campaign_data(self, ledger, now_ms):
        """Test the combined attribution snapshot."""
        ledger.record_arrival_params({"utm_source": "a"}, now=now_ms)

        data = ledger.get_campaign_data("https://shop.example/?utm_source=b")

        assert data["first_touch"]["source"] == "a"
        assert data["last_touch"]["source"] == "a"
        assert data["current_utm"] == {"utm_source": "b"}
        assert data["attribution"]["model"] == "linear"

    def test_get_campaign_data_empty(self):
        """Test the snapshot for a visitor without touchpoints."""
        data = TouchpointLedger(InMemoryStore()).get_campaign_data()

        assert data == {
            "first_touch": None,
            "last_touch": None,
            "current_utm": {},
            "attribution": None,
        }
