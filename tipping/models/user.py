from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from tipping import db, login_manager


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(100))

    # Account status
    is_active = db.Column(db.Boolean, default=True)
    is_admin = db.Column(db.Boolean, default=False)  # May enter results

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    last_login = db.Column(db.DateTime)

    # Relationships
    league_memberships = db.relationship(
        "LeagueMember", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    season_predictions = db.relationship(
        "SeasonPrediction", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    race_predictions = db.relationship(
        "RacePrediction", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (db.Index("idx_user_active_status", "is_active"),)

    def __repr__(self):
        return f"<User {self.username}>"

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    def set_display_name(self, display_name):
        """Set display name with sanitization"""
        import html

        if display_name:
            self.display_name = html.escape(display_name.strip())
        else:
            self.display_name = display_name

    @property
    def full_name(self):
        """Return display name or username"""
        return self.display_name or self.username

    def get_memberships(self):
        """Active memberships of active leagues, default league first"""
        from .league import League
        from .league_member import LeagueMember

        return (
            LeagueMember.query.filter_by(user_id=self.id, is_active=True)
            .join(League)
            .filter(League.is_active.is_(True))
            .order_by(LeagueMember.is_default.desc(), League.name)
            .all()
        )

    def get_leagues(self):
        """Get all active leagues this user belongs to"""
        return [membership.league for membership in self.get_memberships()]

    def set_default_league(self, league):
        """Make ``league`` the one shown first; False if not a member"""
        from .league_member import LeagueMember

        membership = LeagueMember.query.filter_by(
            user_id=self.id, league_id=league.id, is_active=True
        ).first()
        if membership is None:
            return False

        LeagueMember.query.filter_by(user_id=self.id).update({"is_default": False})
        membership.is_default = True
        return True

    def update_last_login(self):
        """Update last login timestamp"""
        self.last_login = datetime.now(timezone.utc)
        db.session.commit()

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.full_name,
            "is_admin": self.is_admin,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))
