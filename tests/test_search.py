import pytest
import requests

from place_finder.core.config import ConfigError, Settings
from place_finder.jobs import search
from place_finder.models import FormattedResult, QueryOverride, RawCandidate
from place_finder.vendors import google_places


class FakePlaces:
    """Scripted stand-in for the Google Places module functions."""

    def __init__(self, text=None, find=None, details=None, failing=()):
        self.text = text or {}
        self.find = find or {}
        self.details = details or {}
        self.failing = set(failing)
        self.calls = []

    def _maybe_fail(self, key):
        if key in self.failing:
            raise google_places.TransportError(f"boom: {key}")

    def text_search(self, query, api_key, *, timeout=10):
        self.calls.append(("text", query))
        self._maybe_fail(("text", query))
        return [RawCandidate(place_id=pid, name=name) for pid, name in self.text.get(query, [])]

    def find_candidates(self, query, api_key, *, timeout=10):
        self.calls.append(("find", query))
        self._maybe_fail(("find", query))
        return [RawCandidate(place_id=pid) for pid in self.find.get(query, [])]

    def place_details(self, place_id, api_key, *, timeout=10):
        self.calls.append(("details", place_id))
        self._maybe_fail(("details", place_id))
        name = self.details.get(place_id)
        if name is None:
            return None
        return RawCandidate(place_id=place_id, name=name, website=f"https://{place_id}.test")


@pytest.fixture
def fake_places(monkeypatch):
    def install(**kwargs):
        fake = FakePlaces(**kwargs)
        monkeypatch.setattr(search.google_places, "text_search", fake.text_search)
        monkeypatch.setattr(search.google_places, "find_candidates", fake.find_candidates)
        monkeypatch.setattr(search.google_places, "place_details", fake.place_details)
        return fake

    return install


def test_strategies_run_in_fixed_order_per_term(fake_places):
    fake = fake_places(
        text={"acme": [("t1", "Acme"), ("t2", "Acme Two"), ("t3", "Acme Three")]},
        find={"acme": ["d1"]},
        details={"d1": "Acme Detail"},
    )

    candidates = search.collect_candidates(["acme"], "key")

    assert fake.calls == [("text", "acme"), ("find", "acme"), ("details", "d1")]
    assert [c.place_id for c in candidates] == ["t1", "t2", "t3", "d1"]


def test_broad_search_uses_first_word_when_few_results(fake_places):
    fake = fake_places(text={"blue bottle coffee": [("t1", "Blue Bottle")], "blue": [("b1", "Blue Bar")]})

    candidates = search.collect_candidates(["blue bottle coffee"], "key")

    assert ("text", "blue") in fake.calls
    assert [c.place_id for c in candidates] == ["t1", "b1"]


def test_broad_threshold_counts_whole_run(fake_places):
    fake = fake_places(
        text={
            "first": [("a", "A"), ("b", "B"), ("c", "C")],
            "second term": [],
        }
    )

    search.collect_candidates(["first", "second term"], "key")

    assert ("text", "second") not in fake.calls


def test_detail_fetches_are_capped(fake_places):
    fake = fake_places(
        text={"acme": [("t1", "A"), ("t2", "B"), ("t3", "C")]},
        find={"acme": ["d1", "d2", "d3", "d4", "d5"]},
        details={pid: pid.upper() for pid in ["d1", "d2", "d3", "d4", "d5"]},
    )

    candidates = search.collect_candidates(["acme"], "key", max_detail_fetches=2)

    detail_calls = [call for call in fake.calls if call[0] == "details"]
    assert detail_calls == [("details", "d1"), ("details", "d2")]
    assert [c.place_id for c in candidates][-2:] == ["d1", "d2"]


def test_failures_are_swallowed_and_other_strategies_continue(fake_places, caplog):
    fake = fake_places(
        text={"acme": [("t1", "A"), ("t2", "B"), ("t3", "C")]},
        find={"acme": ["d1", "d2"]},
        details={"d2": "Second"},
        failing={("details", "d1"), ("text", "acme company")},
    )

    with caplog.at_level("WARNING"):
        candidates = search.collect_candidates(["acme", "acme company"], "key")

    assert [c.place_id for c in candidates] == ["t1", "t2", "t3", "d2"]
    assert ("find", "acme company") in fake.calls
    assert "place_details failed for d1" in " ".join(caplog.messages)


def test_find_candidates_failure_still_allows_broad_search(fake_places):
    fake = fake_places(text={"acme": [], "foo": []}, failing={("find", "acme corp")})

    candidates = search.collect_candidates(["acme corp"], "key")

    assert candidates == []
    assert fake.calls == [("text", "acme corp"), ("find", "acme corp"), ("text", "acme")]


def test_override_search_when_trigger_missing_from_results(fake_places):
    fake = fake_places(text={"AgentFire web development": [("af", "AgentFire")]})
    overrides = [QueryOverride("agentfire", "AgentFire web development")]

    candidates = search.collect_candidates(["agentfire.com"], "key", query="agentfire.com", overrides=overrides)

    assert fake.calls[-1] == ("text", "AgentFire web development")
    assert candidates[-1].place_id == "af"


def test_override_uses_business_name_derived_from_url(fake_places):
    fake = fake_places()
    overrides = [QueryOverride("agentfire", "AgentFire web development")]

    search.collect_candidates(["x"], "key", query="https://www.agentfire.com/", overrides=overrides)

    assert ("text", "AgentFire web development") in fake.calls


def test_override_skipped_when_result_already_matches(fake_places):
    fake = fake_places(
        text={"agentfire": [("af", "AgentFire Inc"), ("x", "X"), ("y", "Y")]},
    )
    overrides = [QueryOverride("agentfire", "AgentFire web development")]

    search.collect_candidates(["agentfire"], "key", overrides=overrides)

    assert ("text", "AgentFire web development") not in fake.calls


def test_override_not_triggered_for_unrelated_query(fake_places):
    fake = fake_places()
    overrides = [QueryOverride("agentfire", "AgentFire web development")]

    search.collect_candidates(["starbucks"], "key", query="starbucks", overrides=overrides)

    assert ("text", "AgentFire web development") not in fake.calls


def test_search_places_end_to_end_deduplicates(fake_places):
    fake = fake_places(
        text={
            "starbucks.com": [("sb1", "Starbucks")],
            "starbucks": [("sb1", "Starbucks"), ("sb2", "Starbucks Reserve")],
            "starbucks company": [("sb2", "Starbucks Reserve")],
            "starbucks business": [("sb3", "Starbucks Pike")],
        },
        find={"starbucks.com": ["sb1"], "starbucks": ["sb2"]},
        details={"sb1": "Starbucks", "sb2": "Starbucks Reserve"},
    )
    settings = Settings(google_api_key="key")

    results = search.search_places("starbucks.com", settings=settings)

    text_terms = [query for kind, query in fake.calls if kind == "text"]
    assert text_terms[:1] == ["starbucks.com"]
    for term in ["starbucks.com", "starbucks", "starbucks company", "starbucks business"]:
        assert ("find", term) in fake.calls
    assert [r.place_id for r in results] == ["sb1", "sb2", "sb3"]
    assert all(isinstance(r, FormattedResult) for r in results)


def test_search_places_requires_api_key(fake_places):
    fake_places()
    with pytest.raises(ConfigError):
        search.search_places("acme", settings=Settings(google_api_key=""))


def test_search_places_rejects_blank_query(fake_places):
    fake_places()
    with pytest.raises(ValueError):
        search.search_places("   ", settings=Settings(google_api_key="key"))


def test_search_places_returns_empty_list_when_everything_fails(fake_places):
    fake = fake_places()
    fake.failing = {("text", t) for t in ["acme", "acme company", "acme business"]}

    results = search.search_places("acme", settings=Settings(google_api_key="key"))

    assert results == []


def test_search_places_runs_vendor_detection_when_enabled(fake_places):
    fake_places(text={"acme": [("a1", "Acme"), ("a2", "Acme 2"), ("a3", "Acme 3")]})

    class RecordingDetector:
        def __init__(self):
            self.seen = None

        def enrich(self, results):
            self.seen = [r.place_id for r in results]
            return results

    detector = RecordingDetector()
    settings = Settings(google_api_key="key", vendor_detection_enabled=True)

    search.search_places("acme", settings=settings, detector=detector)

    assert detector.seen == ["a1", "a2", "a3"]


def test_search_places_skips_vendor_detection_by_default(fake_places):
    fake_places(text={"acme": [("a1", "Acme")]})

    class ExplodingDetector:
        def enrich(self, results):
            raise AssertionError("vendor detection should be off")

    search.search_places("acme", settings=Settings(google_api_key="key"), detector=ExplodingDetector())


def test_non_finite_numbers_in_api_payload_do_not_break_collection(monkeypatch):
    class InfinitySession:
        def get(self, url, params=None, timeout=None):
            response = requests.Response()
            response.status_code = 200
            response._content = (
                b'{"status": "OK", "results": [{"place_id": "p", "name": "Acme", "user_ratings_total": Infinity}],'
                b' "candidates": []}'
            )
            return response

    monkeypatch.setattr(google_places, "_SESSION", InfinitySession())

    candidates = search.collect_candidates(["acme"], "key")
    results = search.format_and_deduplicate(candidates, "key")

    assert candidates[0].user_ratings_total is None
    assert [(r.place_id, r.review_count) for r in results] == [("p", 0)]
