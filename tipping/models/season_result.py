from datetime import datetime, timezone

from tipping import db

RESULT_FIELDS = (
    "drivers_championship_order",
    "constructors_championship_order",
    "mid_season_sackings",
    "new_team_winner",
    "first_career_race_winners",
    "actual_grid_2027",
    "actual_grid_2028",
    "crazy_predictions_happened",
)


class SeasonResult(db.Model):
    """Authoritative end-of-season outcome, entered by an admin"""

    __tablename__ = "season_results"

    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(
        db.Integer, db.ForeignKey("seasons.id"), nullable=False, unique=True
    )

    drivers_championship_order = db.Column(db.JSON, default=list)
    constructors_championship_order = db.Column(db.JSON, default=list)
    mid_season_sackings = db.Column(db.JSON, default=list)
    new_team_winner = db.Column(db.String(20))

    # Empty list = nobody won their first race this season
    first_career_race_winners = db.Column(db.JSON, default=list)

    actual_grid_2027 = db.Column(db.JSON, default=list)
    actual_grid_2028 = db.Column(db.JSON, default=list)

    # SeasonPrediction ids whose crazy prediction came true
    crazy_predictions_happened = db.Column(db.JSON, default=list)

    entered_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    entered_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    entered_by = db.relationship("User", foreign_keys=[entered_by_id])

    def __repr__(self):
        return f"<SeasonResult season_id={self.season_id}>"

    @staticmethod
    def record(season, data, admin):
        """Create or replace the result for a season"""
        result = season.result
        if result is None:
            result = SeasonResult(season_id=season.id)
            db.session.add(result)
            season.result = result

        for name in RESULT_FIELDS:
            if name in data:
                setattr(result, name, data[name])
        result.entered_by_id = admin.id
        result.entered_at = datetime.now(timezone.utc)
        return result

    def to_dict(self):
        data = {name: getattr(self, name) or [] for name in RESULT_FIELDS}
        data.update(
            {
                "id": self.id,
                "season_id": self.season_id,
                "new_team_winner": self.new_team_winner,
                "entered_by": self.entered_by.username if self.entered_by else None,
                "entered_at": self.entered_at.isoformat() if self.entered_at else None,
            }
        )
        return data
