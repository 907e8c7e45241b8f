import secrets
from datetime import datetime, timezone

from tipping import db


class League(db.Model):
    __tablename__ = "leagues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    # League settings
    is_world_league = db.Column(db.Boolean, default=False)  # Open to all, joined explicitly
    is_active = db.Column(db.Boolean, default=True)
    max_members = db.Column(db.Integer, default=100)

    # Code for easy joining
    invite_code = db.Column(db.String(12), unique=True, nullable=False, index=True)

    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    members = db.relationship(
        "LeagueMember", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )
    creator = db.relationship("User", foreign_keys=[creator_id])

    __table_args__ = (
        db.Index("idx_league_creator", "creator_id"),
        db.Index("idx_league_active", "is_active"),
    )

    def __repr__(self):
        return f"<League {self.name}>"

    def __init__(self, **kwargs):
        super(League, self).__init__(**kwargs)
        if not self.invite_code:
            self.invite_code = self.generate_invite_code()

    @staticmethod
    def generate_invite_code():
        """Generate a unique 12-character hex invite code"""
        while True:
            code = secrets.token_hex(6).upper()
            if not League.query.filter_by(invite_code=code).first():
                return code

    @staticmethod
    def get_by_invite_code(code):
        return League.query.filter_by(invite_code=(code or "").strip().upper()).first()

    def get_active_members(self):
        """Get all active memberships of the league"""
        from sqlalchemy.orm import joinedload

        from .league_member import LeagueMember

        return (
            self.members.filter_by(is_active=True)
            .options(joinedload(LeagueMember.user))
            .all()
        )

    @staticmethod
    def get_world_league():
        return League.query.filter_by(is_world_league=True, is_active=True).first()

    def get_member_ids(self):
        """User ids whose predictions are ranked in this league"""
        return {membership.user_id for membership in self.get_active_members()}

    def get_member_count(self):
        return self.members.filter_by(is_active=True).count()

    def is_full(self):
        return not self.is_world_league and self.get_member_count() >= self.max_members

    def is_user_member(self, user_id):
        """Check if user is an active member"""
        return (
            self.members.filter_by(user_id=user_id, is_active=True).first() is not None
        )

    def add_member(self, user):
        """Add a user to the league

        The first league a user belongs to becomes their default.
        """
        from .league_member import LeagueMember

        existing = self.members.filter_by(user_id=user.id).first()
        if existing and existing.is_active:
            return False, "User is already a member"

        if not existing and self.is_full():
            return False, "League is full"

        first_league = LeagueMember.get_default(user.id) is None

        if existing:
            existing.reactivate()
            existing.is_default = first_league
            return True, "Membership reactivated"

        membership = LeagueMember(user_id=user.id, league_id=self.id, is_default=first_league)
        db.session.add(membership)
        return True, "User added successfully"

    def remove_member(self, user_id):
        """Remove a user from the league, handing their default to another league"""
        from .league_member import LeagueMember

        member = self.members.filter_by(user_id=user_id, is_active=True).first()
        if not member:
            return False, "User is not a member"

        was_default = member.is_default
        member.deactivate()
        if was_default:
            replacement = (
                LeagueMember.query.filter(
                    LeagueMember.user_id == user_id,
                    LeagueMember.is_active.is_(True),
                    LeagueMember.id != member.id,
                )
                .order_by(LeagueMember.joined_at, LeagueMember.id)
                .first()
            )
            if replacement:
                replacement.is_default = True
        return True, "User removed successfully"

    def get_leaderboard(self, season_year):
        """Ranked table of this league's members for one season"""
        from tipping.services.scoring_service import compute_leaderboard

        return compute_leaderboard(self.get_member_ids(), season_year)

    def to_dict(self, is_default=None):
        """Convert league to dictionary for API responses"""
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_world_league": self.is_world_league,
            "is_active": self.is_active,
            "invite_code": self.invite_code,
            "member_count": self.get_member_count(),
            "max_members": self.max_members,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "creator": self.creator.username if self.creator else None,
        }
        if is_default is not None:
            data["is_default"] = is_default
        return data
