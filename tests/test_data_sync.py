from datetime import datetime

import pytest
import requests

from tipping.models import Race
from tipping.utils import data_sync
from tipping.utils.data_sync import DataSync, parse_calendar, parse_session_time

CALENDAR = {
    "MRData": {
        "RaceTable": {
            "season": "2026",
            "Races": [
                {
                    "season": "2026",
                    "round": "1",
                    "raceName": "Australian Grand Prix",
                    "Circuit": {"Location": {"locality": "Melbourne", "country": "Australia"}},
                    "date": "2026-03-08",
                    "time": "04:00:00Z",
                    "FirstPractice": {"date": "2026-03-06", "time": "01:30:00Z"},
                },
                {
                    "season": "2026",
                    "round": "2",
                    "raceName": "Chinese Grand Prix",
                    "Circuit": {"Location": {"locality": "Shanghai", "country": "China"}},
                    "date": "2026-03-15",
                    "time": "07:00:00Z",
                    "FirstPractice": {"date": "2026-03-13", "time": "03:30:00Z"},
                    "Sprint": {"date": "2026-03-14", "time": "03:00:00Z"},
                },
            ],
        }
    }
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.headers = headers or {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append(url)
        return self.responses.pop(0)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr(data_sync.time, "sleep", sleeps.append)
    return sleeps


def make_sync(*responses):
    sync = DataSync(api_base_url="https://example.test/f1/")
    sync.session = FakeSession(*responses)
    return sync


class TestParsing:
    def test_session_time_is_naive_utc(self):
        assert parse_session_time({"date": "2026-03-06", "time": "01:30:00Z"}) == datetime(
            2026, 3, 6, 1, 30
        )

    def test_session_without_time_starts_at_midnight(self):
        assert parse_session_time({"date": "2026-03-06"}) == datetime(2026, 3, 6)
        assert parse_session_time(None) is None

    def test_parse_calendar(self):
        calendar = parse_calendar(CALENDAR)

        assert [race["round_number"] for race in calendar] == [1, 2]
        assert calendar[0]["location"] == "Melbourne, Australia"
        assert calendar[0]["fp1_start"] == datetime(2026, 3, 6, 1, 30)
        assert calendar[0]["is_sprint_weekend"] is False
        assert calendar[1]["is_sprint_weekend"] is True

    def test_empty_payload(self):
        assert parse_calendar({}) == []


class TestDataSync:
    def test_sync_creates_then_updates_races(self, app_ctx, make_season):
        season = make_season()

        sync = make_sync(FakeResponse(payload=CALENDAR), FakeResponse(payload=CALENDAR))
        success, message = sync.sync_calendar(2026)
        assert success
        assert message == "2026 calendar synced: 2 created, 0 updated"

        success, message = sync.sync_calendar(2026)
        assert message == "2026 calendar synced: 0 created, 2 updated"

        races = season.get_races()
        assert [race.name for race in races] == ["Australian Grand Prix", "Chinese Grand Prix"]
        assert Race.query.filter_by(is_sprint_weekend=True).count() == 1
        assert sync.session.calls[0] == "https://example.test/f1/2026.json"

    def test_unknown_season(self, app_ctx):
        success, message = make_sync().sync_calendar(1999)

        assert not success
        assert message == "Season 1999 does not exist"

    def test_server_errors_are_retried(self, app_ctx, make_season, no_sleep):
        make_season()
        sync = make_sync(FakeResponse(status_code=503), FakeResponse(payload=CALENDAR))

        success, _ = sync.sync_calendar(2026)

        assert success
        assert len(sync.session.calls) == 2
        assert 2.0 in no_sleep

    def test_gives_up_after_max_retries(self, app_ctx, make_season):
        make_season()
        sync = make_sync(*(FakeResponse(status_code=503) for _ in range(3)))

        success, message = sync.sync_calendar(2026)

        assert not success
        assert message.startswith("Failed to fetch calendar")
        assert Race.query.count() == 0
