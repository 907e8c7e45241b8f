from datetime import datetime, timezone

from tipping import db
from tipping.scoring.categories import PredictionType

# Fields a user may set on a season prediction
SUBMITTABLE_FIELDS = (
    "drivers_championship_order",
    "constructors_championship_order",
    "mid_season_sackings",
    "new_team_choice",
    "crazy_prediction",
    "first_career_race_winners",
    "grid_2027",
    "grid_2028",
)


class SeasonPrediction(db.Model):
    __tablename__ = "season_predictions"

    prediction_type = PredictionType.SEASON

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)

    # Championship orderings: lists of driver / constructor ids, P1 first
    drivers_championship_order = db.Column(db.JSON, default=list)
    constructors_championship_order = db.Column(db.JSON, default=list)

    # Drivers / team principals removed mid-season; empty list = "no sackings"
    mid_season_sackings = db.Column(db.JSON, default=list)

    # Which of the two new teams finishes higher
    new_team_choice = db.Column(db.String(20))

    crazy_prediction = db.Column(db.Text)

    # Driver ids, or [NO_NEW_WINNERS]
    first_career_race_winners = db.Column(db.JSON, default=list)

    # Future grids: lists of {"driver_id": ..., "team_id": ...}; never scored
    grid_2027 = db.Column(db.JSON, default=list)
    grid_2028 = db.Column(db.JSON, default=list)

    # Scoring output; NULL until a season result exists
    points_earned = db.Column(db.Integer)
    score_breakdown = db.Column(db.JSON)
    scored_at = db.Column(db.DateTime)

    submitted_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "season_id", name="unique_user_season_prediction"),
        db.Index("idx_season_prediction_season", "season_id"),
    )

    def __repr__(self):
        return f"<SeasonPrediction user_id={self.user_id} season_id={self.season_id}>"

    @property
    def is_scored(self):
        return self.points_earned is not None

    def crazy_validation_state(self):
        """Peer validation state of this prediction's crazy prediction"""
        from .crazy_prediction import CrazyPredictionOverride, CrazyPredictionValidation
        from tipping.scoring.validation import validation_state

        return validation_state(
            CrazyPredictionValidation.votes_for(self.prediction_type, self.id),
            admin_override=CrazyPredictionOverride.override_for(
                self.prediction_type, self.id
            ),
        )

    def update_score(self):
        """Score against the season result and store the outcome

        Raises NotFoundError while the season has no result.
        """
        from tipping.scoring.engine import score_season_prediction

        card = score_season_prediction(
            self, self.season.result, self.crazy_validation_state()
        )
        self.points_earned = card.total
        self.score_breakdown = card.to_dict()["per_category"]
        self.scored_at = datetime.now(timezone.utc)
        return card

    def clear_score(self):
        self.points_earned = None
        self.score_breakdown = None
        self.scored_at = None

    @staticmethod
    def submit(user, season, data):
        """Create or overwrite the user's prediction for a season

        ``data`` is already validated (see SeasonPredictionForm).
        """
        from tipping.errors import ValidationError
        from tipping.utils.timezone_utils import format_deadline

        if season.result is not None:
            raise ValidationError("Season results are in; predictions are closed")
        if not season.is_prediction_open():
            raise ValidationError(
                f"Prediction deadline passed ({format_deadline(season.prediction_deadline)})"
            )

        prediction = SeasonPrediction.query.filter_by(
            user_id=user.id, season_id=season.id
        ).first()
        created = prediction is None
        if created:
            prediction = SeasonPrediction(user_id=user.id, season_id=season.id)
            db.session.add(prediction)

        for name in SUBMITTABLE_FIELDS:
            if name in data:
                setattr(prediction, name, data[name])
        prediction.submitted_at = datetime.now(timezone.utc)
        prediction.clear_score()

        return prediction, created

    def to_dict(self, include_owner=False):
        """Convert prediction to dictionary for API responses"""
        data = {
            "id": self.id,
            "prediction_type": self.prediction_type.value,
            "user_id": self.user_id,
            "season_id": self.season_id,
            "drivers_championship_order": self.drivers_championship_order or [],
            "constructors_championship_order": self.constructors_championship_order or [],
            "mid_season_sackings": self.mid_season_sackings or [],
            "new_team_choice": self.new_team_choice,
            "crazy_prediction": self.crazy_prediction,
            "first_career_race_winners": self.first_career_race_winners or [],
            "grid_2027": self.grid_2027 or [],
            "grid_2028": self.grid_2028 or [],
            "points_earned": self.points_earned,
            "score_breakdown": self.score_breakdown,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }
        if include_owner:
            data["display_name"] = self.user.full_name if self.user else None
        return data
