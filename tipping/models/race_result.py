from datetime import datetime, timezone

from tipping import db
from tipping.scoring.categories import PODIUM_FIELDS, SPRINT_FIELDS

RESULT_FIELDS = (
    "pole_position_driver_id",
    *PODIUM_FIELDS,
    "midfield_hero_driver_id",
    *SPRINT_FIELDS.values(),
)


class RaceResult(db.Model):
    __tablename__ = "race_results"

    id = db.Column(db.Integer, primary_key=True)
    race_id = db.Column(db.Integer, db.ForeignKey("races.id"), nullable=False, unique=True)

    pole_position_driver_id = db.Column(db.String(50))
    podium_first_driver_id = db.Column(db.String(50))
    podium_second_driver_id = db.Column(db.String(50))
    podium_third_driver_id = db.Column(db.String(50))
    midfield_hero_driver_id = db.Column(db.String(50))

    sprint_pole_driver_id = db.Column(db.String(50))
    sprint_winner_driver_id = db.Column(db.String(50))
    sprint_midfield_hero_driver_id = db.Column(db.String(50))

    # RacePrediction ids whose crazy prediction came true
    crazy_predictions_happened = db.Column(db.JSON, default=list)

    entered_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    entered_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    entered_by = db.relationship("User", foreign_keys=[entered_by_id])

    def __repr__(self):
        return f"<RaceResult race_id={self.race_id}>"

    @property
    def has_sprint(self):
        """A sprint was run: the weekend is a sprint weekend and a sprint outcome is recorded"""
        if self.race is not None and not self.race.is_sprint_weekend:
            return False
        return any(getattr(self, name) for name in SPRINT_FIELDS.values())

    @staticmethod
    def record(race, data, admin):
        """Create or replace the result for a race"""
        result = race.result
        if result is None:
            result = RaceResult(race_id=race.id)
            db.session.add(result)
            race.result = result

        for name in RESULT_FIELDS:
            setattr(result, name, data.get(name))
        if "crazy_predictions_happened" in data:
            result.crazy_predictions_happened = data["crazy_predictions_happened"]
        result.entered_by_id = admin.id
        result.entered_at = datetime.now(timezone.utc)
        return result

    def to_dict(self):
        data = {name: getattr(self, name) for name in RESULT_FIELDS}
        data.update(
            {
                "id": self.id,
                "race_id": self.race_id,
                "has_sprint": self.has_sprint,
                "crazy_predictions_happened": self.crazy_predictions_happened or [],
                "entered_by": self.entered_by.username if self.entered_by else None,
                "entered_at": self.entered_at.isoformat() if self.entered_at else None,
            }
        )
        return data
