from datetime import datetime, timezone

from tipping import db


class Race(db.Model):
    __tablename__ = "races"

    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    round_number = db.Column(db.Integer, nullable=False)

    name = db.Column(db.String(100), nullable=False)
    location = db.Column(db.String(100))

    # Race predictions lock at the start of first practice
    fp1_start = db.Column(db.DateTime)
    race_date = db.Column(db.DateTime, nullable=False)
    is_sprint_weekend = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    predictions = db.relationship(
        "RacePrediction", backref="race", lazy="dynamic", cascade="all, delete-orphan"
    )
    result = db.relationship(
        "RaceResult", backref="race", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("season_id", "round_number", name="unique_season_round"),
        db.Index("idx_race_date", "race_date"),
    )

    def __repr__(self):
        return f"<Race {self.name} R{self.round_number}>"

    @property
    def prediction_deadline(self):
        """FP1 start, or the race itself when the schedule has no FP1 time"""
        return self.fp1_start or self.race_date

    def is_prediction_open(self, now=None):
        from tipping.utils.timezone_utils import has_passed

        return not has_passed(self.prediction_deadline, now) and self.result is None

    def to_dict(self):
        """Convert race to dictionary for API responses"""
        return {
            "id": self.id,
            "season_id": self.season_id,
            "round_number": self.round_number,
            "name": self.name,
            "location": self.location,
            "fp1_start": self.fp1_start.isoformat() if self.fp1_start else None,
            "race_date": self.race_date.isoformat() if self.race_date else None,
            "is_sprint_weekend": self.is_sprint_weekend,
            "is_prediction_open": self.is_prediction_open(),
            "has_results": self.result is not None,
        }
