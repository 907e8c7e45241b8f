from datetime import datetime, timezone

from tipping import db
from tipping.scoring.categories import PODIUM_FIELDS, SPRINT_FIELDS, PredictionType

SUBMITTABLE_FIELDS = (
    "pole_position_driver_id",
    *PODIUM_FIELDS,
    "midfield_hero_driver_id",
    *SPRINT_FIELDS.values(),
    "crazy_prediction",
)


class RacePrediction(db.Model):
    __tablename__ = "race_predictions"

    prediction_type = PredictionType.RACE

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    race_id = db.Column(db.Integer, db.ForeignKey("races.id"), nullable=False)

    pole_position_driver_id = db.Column(db.String(50))
    podium_first_driver_id = db.Column(db.String(50))
    podium_second_driver_id = db.Column(db.String(50))
    podium_third_driver_id = db.Column(db.String(50))
    midfield_hero_driver_id = db.Column(db.String(50))

    # Sprint weekends only
    sprint_pole_driver_id = db.Column(db.String(50))
    sprint_winner_driver_id = db.Column(db.String(50))
    sprint_midfield_hero_driver_id = db.Column(db.String(50))

    crazy_prediction = db.Column(db.Text)

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
        db.UniqueConstraint("user_id", "race_id", name="unique_user_race_prediction"),
        db.Index("idx_race_prediction_race", "race_id"),
        db.Index("idx_race_prediction_user", "user_id"),
    )

    def __repr__(self):
        return f"<RacePrediction user_id={self.user_id} race_id={self.race_id}>"

    @property
    def is_scored(self):
        return self.points_earned is not None

    @property
    def podium(self):
        return [getattr(self, name) for name in PODIUM_FIELDS]

    def crazy_validation_state(self):
        from .crazy_prediction import CrazyPredictionOverride, CrazyPredictionValidation
        from tipping.scoring.validation import validation_state

        return validation_state(
            CrazyPredictionValidation.votes_for(self.prediction_type, self.id),
            admin_override=CrazyPredictionOverride.override_for(
                self.prediction_type, self.id
            ),
        )

    def update_score(self):
        """Score against the race result; raises NotFoundError without one"""
        from tipping.scoring.engine import score_race_prediction

        card = score_race_prediction(self, self.race.result, self.crazy_validation_state())
        self.points_earned = card.total
        self.score_breakdown = card.to_dict()["per_category"]
        self.scored_at = datetime.now(timezone.utc)
        return card

    def clear_score(self):
        self.points_earned = None
        self.score_breakdown = None
        self.scored_at = None

    @staticmethod
    def submit(user, race, data):
        """Create or overwrite the user's prediction for a race"""
        from tipping.errors import ValidationError
        from tipping.utils.timezone_utils import format_deadline

        if race.result is not None:
            raise ValidationError("Race results are in; predictions are closed")
        if not race.is_prediction_open():
            raise ValidationError(
                f"Prediction deadline passed ({format_deadline(race.prediction_deadline)})"
            )

        prediction = RacePrediction.query.filter_by(user_id=user.id, race_id=race.id).first()
        created = prediction is None
        if created:
            prediction = RacePrediction(user_id=user.id, race_id=race.id)
            db.session.add(prediction)

        for name in SUBMITTABLE_FIELDS:
            if name in SPRINT_FIELDS.values() and not race.is_sprint_weekend:
                setattr(prediction, name, None)
                continue
            setattr(prediction, name, data.get(name))
        prediction.submitted_at = datetime.now(timezone.utc)
        prediction.clear_score()

        return prediction, created

    def to_dict(self, include_owner=False):
        data = {
            "id": self.id,
            "prediction_type": self.prediction_type.value,
            "user_id": self.user_id,
            "race_id": self.race_id,
            "crazy_prediction": self.crazy_prediction,
            "points_earned": self.points_earned,
            "score_breakdown": self.score_breakdown,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }
        for name in SUBMITTABLE_FIELDS:
            data.setdefault(name, getattr(self, name))
        if include_owner:
            data["display_name"] = self.user.full_name if self.user else None
        return data
