from tipping import db  # noqa: F401 - imported for model imports

from .admin_action import AdminAction
from .crazy_prediction import CrazyPredictionOverride, CrazyPredictionValidation
from .league import League
from .league_member import LeagueMember
from .race import Race
from .race_prediction import RacePrediction
from .race_result import RaceResult
from .season import Season
from .season_prediction import SeasonPrediction
from .season_result import SeasonResult
from .user import User

__all__ = [
    "User",
    "Season",
    "Race",
    "League",
    "LeagueMember",
    "SeasonPrediction",
    "SeasonResult",
    "RacePrediction",
    "RaceResult",
    "CrazyPredictionValidation",
    "CrazyPredictionOverride",
    "AdminAction",
]
