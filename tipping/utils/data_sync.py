import logging
import time
from datetime import datetime, timezone
from functools import wraps

import requests
from flask import current_app

from tipping import db
from tipping.models import Race, Season

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.jolpi.ca/ergast/f1"


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    response = func(self, *args, **kwargs)

                    if response.status_code == 429:
                        retry_after = float(
                            response.headers.get(
                                "Retry-After", base_delay * (backoff_factor**attempt)
                            )
                        )
                        logger.warning(
                            f"Rate limited. Waiting {retry_after}s before retry {attempt + 1}/{max_retries}"
                        )
                        time.sleep(retry_after)
                        continue
                    elif response.status_code >= 500:
                        delay = base_delay * (backoff_factor**attempt)
                        logger.warning(
                            f"Server error {response.status_code}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                        )
                        time.sleep(delay)
                        continue

                    return response

                except requests.exceptions.RequestException as e:
                    delay = base_delay * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(delay)
                    else:
                        raise

            raise requests.exceptions.RetryError(f"Max retries ({max_retries}) exceeded")

        return wrapper

    return decorator


def parse_session_time(session):
    """UTC datetime of a Jolpica session dict ({"date": ..., "time": ...})"""
    if not session or not session.get("date"):
        return None
    time_part = (session.get("time") or "00:00:00Z").rstrip("Z")
    parsed = datetime.fromisoformat(f"{session['date']}T{time_part}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_calendar(payload):
    """Turn a Jolpica season schedule response into race dicts"""
    races = payload.get("MRData", {}).get("RaceTable", {}).get("Races", [])
    calendar = []
    for race in races:
        location = race.get("Circuit", {}).get("Location", {})
        calendar.append(
            {
                "round_number": int(race["round"]),
                "name": race.get("raceName"),
                "location": ", ".join(
                    part for part in (location.get("locality"), location.get("country")) if part
                )
                or None,
                "race_date": parse_session_time(race),
                "fp1_start": parse_session_time(race.get("FirstPractice")),
                "is_sprint_weekend": "Sprint" in race,
            }
        )
    return calendar


class DataSync:
    """
    Keeps the race calendar in step with the Jolpica (Ergast compatible) API

    Only the schedule is imported; results are always entered by an admin.
    """

    def __init__(self, api_base_url=None):
        if api_base_url is None:
            api_base_url = current_app.config.get("JOLPICA_API_BASE_URL", DEFAULT_API_BASE_URL)
        self.api_base_url = api_base_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "F1-Tipping-App/1.0"})

        self.request_count = 0
        self.last_request_time = 0
        self.min_request_interval = 0.5  # Jolpica asks for at most 4 requests/second

    def _enforce_rate_limit(self):
        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)

        self.last_request_time = time.time()
        self.request_count += 1

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, url, params=None):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()
        return self.session.get(url, params=params, timeout=30)

    def fetch_calendar(self, year):
        """Race calendar for one season as a list of race dicts"""
        response = self._make_api_request(f"{self.api_base_url}/{year}.json")
        response.raise_for_status()
        return parse_calendar(response.json())

    def sync_calendar(self, year):
        """Upsert the Race rows of a season from the API

        Returns (success, message) like the rest of the sync layer.
        """
        season = Season.get_by_year(year)
        if season is None:
            return False, f"Season {year} does not exist"

        try:
            calendar = self.fetch_calendar(year)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Failed to fetch {year} calendar: {e}")
            return False, f"Failed to fetch calendar: {e}"

        if not calendar:
            return False, f"No races published for {year}"

        created = updated = 0
        for entry in calendar:
            race = Race.query.filter_by(
                season_id=season.id, round_number=entry["round_number"]
            ).first()
            if race is None:
                race = Race(season_id=season.id, round_number=entry["round_number"])
                db.session.add(race)
                created += 1
            else:
                updated += 1

            race.name = entry["name"]
            race.location = entry["location"]
            race.race_date = entry["race_date"]
            race.fp1_start = entry["fp1_start"]
            race.is_sprint_weekend = entry["is_sprint_weekend"]

        db.session.commit()
        message = f"{year} calendar synced: {created} created, {updated} updated"
        logger.info(message)
        return True, message
