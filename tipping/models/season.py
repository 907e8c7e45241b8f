from datetime import datetime, timezone

from tipping import db


class Season(db.Model):
    __tablename__ = "seasons"

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False, unique=True, index=True)
    name = db.Column(db.String(50), nullable=False)  # e.g., "2026 Formula 1 Season"

    # Season predictions lock at this moment (UTC)
    prediction_deadline = db.Column(db.DateTime, nullable=False)

    # Expected length of the championship order lists
    driver_count = db.Column(db.Integer, default=22, nullable=False)
    constructor_count = db.Column(db.Integer, default=11, nullable=False)

    # Status
    is_active = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    races = db.relationship(
        "Race", backref="season", lazy="dynamic", cascade="all, delete-orphan"
    )
    predictions = db.relationship(
        "SeasonPrediction", backref="season", lazy="dynamic", cascade="all, delete-orphan"
    )
    result = db.relationship(
        "SeasonResult", backref="season", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (db.Index("idx_season_active", "is_active"),)

    def __repr__(self):
        return f"<Season {self.year}>"

    @staticmethod
    def get_current_season():
        """Get the currently active season"""
        return Season.query.filter_by(is_active=True).first()

    @staticmethod
    def get_by_year(year):
        return Season.query.filter_by(year=year).first()

    @staticmethod
    def create_season(year, prediction_deadline, driver_count=22, constructor_count=11):
        """Create a new season"""
        season = Season(
            year=year,
            name=f"{year} Formula 1 Season",
            prediction_deadline=prediction_deadline,
            driver_count=driver_count,
            constructor_count=constructor_count,
        )
        db.session.add(season)
        return season

    def activate(self):
        """Activate this season (deactivates all others)"""
        Season.query.update({"is_active": False})
        self.is_active = True
        db.session.commit()

    def is_prediction_open(self, now=None):
        """Season predictions are open until the deadline and before results exist"""
        from tipping.utils.timezone_utils import has_passed

        return not has_passed(self.prediction_deadline, now) and self.result is None

    def get_races(self):
        from .race import Race

        return self.races.order_by(Race.round_number).all()

    def to_dict(self):
        """Convert season to dictionary for API responses"""
        return {
            "id": self.id,
            "year": self.year,
            "name": self.name,
            "prediction_deadline": (
                self.prediction_deadline.isoformat() if self.prediction_deadline else None
            ),
            "driver_count": self.driver_count,
            "constructor_count": self.constructor_count,
            "is_active": self.is_active,
            "has_results": self.result is not None,
        }
