from datetime import datetime, timezone

from tipping import db


class LeagueMember(db.Model):
    __tablename__ = "league_members"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)

    is_active = db.Column(db.Boolean, default=True)
    is_default = db.Column(db.Boolean, default=False)  # League shown first to the user

    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    left_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("user_id", "league_id", name="unique_user_league"),
        db.Index("idx_league_members_active", "league_id", "is_active"),
        db.Index("idx_league_members_user", "user_id", "is_active"),
    )

    def __repr__(self):
        return f"<LeagueMember user_id={self.user_id} league_id={self.league_id}>"

    @staticmethod
    def get_default(user_id):
        return LeagueMember.query.filter_by(
            user_id=user_id, is_active=True, is_default=True
        ).first()

    def deactivate(self):
        """Deactivate membership"""
        self.is_active = False
        self.is_default = False
        self.left_at = datetime.now(timezone.utc)

    def reactivate(self):
        """Reactivate membership"""
        self.is_active = True
        self.left_at = None
        self.joined_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "league_id": self.league_id,
            "display_name": self.user.full_name if self.user else None,
            "is_default": bool(self.is_default),
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
