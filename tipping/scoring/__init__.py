from tipping.scoring.categories import (
    NO_NEW_WINNERS,
    SACKING_MATCH_POLICY,
    PredictionType,
    RaceCategory,
    SackingPolicy,
    SeasonCategory,
)
from tipping.scoring.engine import (
    ScoreCard,
    compare_grid_pairings,
    score_race_prediction,
    score_season_prediction,
)
from tipping.scoring.standings import LeaderboardEntry, build_leaderboard
from tipping.scoring.validation import (
    ValidationState,
    Vote,
    crazy_point_verdict,
    resolve_crazy_prediction_state,
    validation_state,
)

__all__ = [
    "NO_NEW_WINNERS",
    "SACKING_MATCH_POLICY",
    "PredictionType",
    "RaceCategory",
    "SackingPolicy",
    "SeasonCategory",
    "ScoreCard",
    "compare_grid_pairings",
    "score_race_prediction",
    "score_season_prediction",
    "LeaderboardEntry",
    "build_leaderboard",
    "ValidationState",
    "Vote",
    "crazy_point_verdict",
    "resolve_crazy_prediction_state",
    "validation_state",
]
