from datetime import datetime, timezone

from tipping import db


class AdminAction(db.Model):
    """Audit trail of everything a site admin changes"""

    __tablename__ = "admin_actions"

    id = db.Column(db.Integer, primary_key=True)

    admin_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # 'season_result', 'race_result', 'crazy_override', 'recalculate'
    action_type = db.Column(db.String(50), nullable=False)
    action_description = db.Column(db.String(500), nullable=False)

    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=True)
    race_id = db.Column(db.Integer, db.ForeignKey("races.id"), nullable=True)

    action_metadata = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    admin_user = db.relationship(
        "User", foreign_keys=[admin_user_id], backref="admin_actions_performed"
    )

    __table_args__ = (
        db.Index("idx_admin_action_admin", "admin_user_id"),
        db.Index("idx_admin_action_type", "action_type"),
        db.Index("idx_admin_action_created", "created_at"),
    )

    def __repr__(self):
        return f'<AdminAction {self.action_type} by {self.admin_user.username if self.admin_user else "Unknown"}>'

    @staticmethod
    def log_action(
        admin_user_id,
        action_type,
        description,
        season_id=None,
        race_id=None,
        action_metadata=None,
    ):
        """Log an admin action"""
        action = AdminAction(
            admin_user_id=admin_user_id,
            action_type=action_type,
            action_description=description,
            season_id=season_id,
            race_id=race_id,
            action_metadata=action_metadata or {},
        )

        db.session.add(action)
        return action

    @staticmethod
    def log_season_result(admin_user, season, rescored):
        return AdminAction.log_action(
            admin_user_id=admin_user.id,
            action_type="season_result",
            description=f"Entered season results for {season.year}",
            season_id=season.id,
            action_metadata={"rescored": rescored},
        )

    @staticmethod
    def log_race_result(admin_user, race, rescored):
        return AdminAction.log_action(
            admin_user_id=admin_user.id,
            action_type="race_result",
            description=f"Entered results for {race.name} (R{race.round_number})",
            season_id=race.season_id,
            race_id=race.id,
            action_metadata={"rescored": rescored},
        )

    @staticmethod
    def log_crazy_override(admin_user, prediction_type, prediction_id, is_accepted):
        if is_accepted is None:
            verdict = "cleared override on"
        else:
            verdict = "accepted" if is_accepted else "rejected"
        return AdminAction.log_action(
            admin_user_id=admin_user.id,
            action_type="crazy_override",
            description=f"{verdict.capitalize()} {prediction_type.value} crazy prediction {prediction_id}",
            action_metadata={
                "prediction_type": prediction_type.value,
                "prediction_id": prediction_id,
                "is_accepted": is_accepted,
            },
        )

    @staticmethod
    def log_recalculation(admin_user, report):
        return AdminAction.log_action(
            admin_user_id=admin_user.id,
            action_type="recalculate",
            description=(
                f"Recalculated scores: {report.rescored} rescored, "
                f"{report.skipped} skipped, {len(report.failures)} failed"
            ),
            action_metadata=report.to_dict(),
        )

    def to_dict(self):
        """Convert action to dictionary for API responses"""
        return {
            "id": self.id,
            "admin_user": self.admin_user.username if self.admin_user else None,
            "action_type": self.action_type,
            "description": self.action_description,
            "season_id": self.season_id,
            "race_id": self.race_id,
            "metadata": self.action_metadata or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
