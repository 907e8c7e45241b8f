from datetime import datetime, timezone

from tipping import db
from tipping.scoring.categories import PredictionType
from tipping.scoring.validation import Vote


def _prediction_type_value(prediction_type):
    return PredictionType(prediction_type).value


class CrazyPredictionValidation(db.Model):
    """One peer's vote on one crazy prediction

    A vote is either an accept or a reject. The unique constraint keeps one
    row per (validator, prediction); changing a vote updates that row.
    """

    __tablename__ = "crazy_prediction_validations"

    id = db.Column(db.Integer, primary_key=True)
    validator_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # 'season' or 'race'; prediction_id points into the matching table
    prediction_type = db.Column(db.String(10), nullable=False)
    prediction_id = db.Column(db.Integer, nullable=False)

    is_validated = db.Column(db.Boolean, nullable=False)
    validated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    validator = db.relationship("User", foreign_keys=[validator_user_id])

    __table_args__ = (
        db.UniqueConstraint(
            "validator_user_id",
            "prediction_type",
            "prediction_id",
            name="unique_validator_prediction",
        ),
        db.Index("idx_validation_prediction", "prediction_type", "prediction_id"),
    )

    def __repr__(self):
        verdict = "accept" if self.is_validated else "reject"
        return f"<CrazyPredictionValidation {self.prediction_type}:{self.prediction_id} {verdict}>"

    @staticmethod
    def for_prediction(prediction_type, prediction_id):
        return (
            CrazyPredictionValidation.query.filter_by(
                prediction_type=_prediction_type_value(prediction_type),
                prediction_id=prediction_id,
            )
            .order_by(CrazyPredictionValidation.validated_at)
            .all()
        )

    @staticmethod
    def votes_for(prediction_type, prediction_id):
        """Votes in the shape the validation state machine expects"""
        return [
            Vote(row.validator_user_id, row.is_validated)
            for row in CrazyPredictionValidation.for_prediction(prediction_type, prediction_id)
        ]

    def to_dict(self):
        return {
            "validator_user_id": self.validator_user_id,
            "validator": self.validator.full_name if self.validator else None,
            "prediction_type": self.prediction_type,
            "prediction_id": self.prediction_id,
            "is_validated": self.is_validated,
            "validated_at": self.validated_at.isoformat() if self.validated_at else None,
        }


class CrazyPredictionOverride(db.Model):
    """Admin decision that replaces the peer vote for one crazy prediction"""

    __tablename__ = "crazy_prediction_overrides"

    id = db.Column(db.Integer, primary_key=True)
    prediction_type = db.Column(db.String(10), nullable=False)
    prediction_id = db.Column(db.Integer, nullable=False)

    is_accepted = db.Column(db.Boolean, nullable=False)
    admin_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("prediction_type", "prediction_id", name="unique_override_prediction"),
    )

    def __repr__(self):
        return f"<CrazyPredictionOverride {self.prediction_type}:{self.prediction_id} {self.is_accepted}>"

    @staticmethod
    def get(prediction_type, prediction_id):
        return CrazyPredictionOverride.query.filter_by(
            prediction_type=_prediction_type_value(prediction_type),
            prediction_id=prediction_id,
        ).first()

    @staticmethod
    def override_for(prediction_type, prediction_id):
        """True/False when an admin has decided, None otherwise"""
        override = CrazyPredictionOverride.get(prediction_type, prediction_id)
        return override.is_accepted if override else None

    def to_dict(self):
        return {
            "prediction_type": self.prediction_type,
            "prediction_id": self.prediction_id,
            "is_accepted": self.is_accepted,
            "admin_user_id": self.admin_user_id,
        }
