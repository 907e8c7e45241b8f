"""
Standings aggregation

Turns persisted prediction totals into a ranked league table. Ordering is
total points (descending), then season points (descending), then display
name and user id, so recomputing never reshuffles tied users. Ranks use
competition ranking: users level on total share a rank and the next rank
skips (1, 1, 3).
"""

from dataclasses import asdict, dataclass


@dataclass
class LeaderboardEntry:
    user_id: int
    display_name: str
    season_points: int
    race_points: int
    total_points: int
    rank: int = 0

    def to_dict(self):
        return asdict(self)


def _sort_key(entry):
    return (
        -entry.total_points,
        -entry.season_points,
        (entry.display_name or "").casefold(),
        entry.user_id,
    )


def build_leaderboard(members, season_totals, race_totals):
    """Rank league members

    Args:
        members: iterable of (user_id, display_name)
        season_totals: {user_id: season prediction points or None}
        race_totals: {user_id: iterable of race prediction points (None = unjudged)}

    Returns:
        list of LeaderboardEntry, best first
    """
    entries = []
    for user_id, display_name in members:
        season_points = season_totals.get(user_id) or 0
        race_points = sum(points or 0 for points in race_totals.get(user_id, ()))
        entries.append(
            LeaderboardEntry(
                user_id=user_id,
                display_name=display_name,
                season_points=season_points,
                race_points=race_points,
                total_points=season_points + race_points,
            )
        )

    entries.sort(key=_sort_key)

    previous_total = None
    for position, entry in enumerate(entries, start=1):
        if entry.total_points != previous_total:
            rank = position
            previous_total = entry.total_points
        entry.rank = rank

    return entries
