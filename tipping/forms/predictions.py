from flask import current_app
from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, SelectField, StringField
from wtforms.validators import DataRequired, Length, Optional, ValidationError

from tipping.forms.fields import GridField, IdField, IdListField
from tipping.scoring.categories import NO_NEW_WINNERS, PODIUM_FIELDS, SPRINT_FIELDS, PredictionType


def validate_order_length(field, expected, noun):
    if len(field.data) != expected:
        raise ValidationError(f"Must list exactly {expected} {noun} (got {len(field.data)})")


def validate_new_team(field):
    choices = current_app.config.get("NEW_TEAM_CHOICES", ())
    if field.data not in choices:
        raise ValidationError(f"Must be one of: {', '.join(choices)}")


def validate_distinct_podium(form):
    """Podium drivers must be three different drivers"""
    podium = [getattr(form, name).data for name in PODIUM_FIELDS]
    picked = [driver_id for driver_id in podium if driver_id]
    if len(set(picked)) != len(picked):
        form.podium_third_driver_id.errors.append("Podium drivers must all be different")
        return False
    return True


class SeasonPredictionForm(FlaskForm):
    class Meta:
        csrf = False  # CSRFProtect already checks the X-CSRFToken header

    drivers_championship_order = IdListField("Drivers' Championship")
    constructors_championship_order = IdListField("Constructors' Championship")
    mid_season_sackings = IdListField("Mid-season Sackings")
    new_team_choice = IdField("New Team Duel", validators=[DataRequired()])
    first_career_race_winners = IdListField("First Career Race Winners")
    grid_2027 = GridField("2027 Grid")
    grid_2028 = GridField("2028 Grid")
    crazy_prediction = StringField("Crazy Prediction", validators=[Optional(), Length(max=500)])

    def __init__(self, season, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.season = season

    def validate_drivers_championship_order(self, field):
        validate_order_length(field, self.season.driver_count, "drivers")

    def validate_constructors_championship_order(self, field):
        validate_order_length(field, self.season.constructor_count, "constructors")

    def validate_new_team_choice(self, field):
        validate_new_team(field)

    def validate_first_career_race_winners(self, field):
        if NO_NEW_WINNERS in field.data and len(field.data) > 1:
            raise ValidationError("'No new winners' cannot be combined with drivers")

    def prediction_data(self):
        crazy = (self.crazy_prediction.data or "").strip()
        return {
            "drivers_championship_order": self.drivers_championship_order.data,
            "constructors_championship_order": self.constructors_championship_order.data,
            "mid_season_sackings": self.mid_season_sackings.data,
            "new_team_choice": self.new_team_choice.data,
            "first_career_race_winners": self.first_career_race_winners.data,
            "grid_2027": self.grid_2027.data,
            "grid_2028": self.grid_2028.data,
            "crazy_prediction": crazy or None,
        }


class RacePredictionForm(FlaskForm):
    class Meta:
        csrf = False

    pole_position_driver_id = IdField("Pole Position", validators=[DataRequired()])
    podium_first_driver_id = IdField("P1", validators=[DataRequired()])
    podium_second_driver_id = IdField("P2", validators=[DataRequired()])
    podium_third_driver_id = IdField("P3", validators=[DataRequired()])
    midfield_hero_driver_id = IdField("Midfield Hero", validators=[DataRequired()])
    sprint_pole_driver_id = IdField("Sprint Pole", validators=[Optional()])
    sprint_winner_driver_id = IdField("Sprint Winner", validators=[Optional()])
    sprint_midfield_hero_driver_id = IdField("Sprint Midfield Hero", validators=[Optional()])
    crazy_prediction = StringField("Crazy Prediction", validators=[Optional(), Length(max=500)])

    def __init__(self, race, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.race = race

    def validate(self, extra_validators=None):
        valid = super().validate(extra_validators=extra_validators)
        valid = validate_distinct_podium(self) and valid

        if not self.race.is_sprint_weekend:
            for name in SPRINT_FIELDS.values():
                field = getattr(self, name)
                if field.data:
                    field.errors.append("Not a sprint weekend")
                    valid = False
        return valid

    def prediction_data(self):
        data = {
            name: getattr(self, name).data
            for name in ("pole_position_driver_id", *PODIUM_FIELDS, "midfield_hero_driver_id")
        }
        for name in SPRINT_FIELDS.values():
            data[name] = getattr(self, name).data
        data["crazy_prediction"] = (self.crazy_prediction.data or "").strip() or None
        return data


class ValidationVoteForm(FlaskForm):
    class Meta:
        csrf = False

    prediction_type = SelectField(
        "Prediction Type",
        choices=[(member.value, member.value) for member in PredictionType],
        validators=[DataRequired()],
    )
    prediction_id = IntegerField("Prediction", validators=[DataRequired()])
    is_validated = BooleanField("Valid")

    def validate_is_validated(self, field):
        if not field.raw_data:
            raise ValidationError("Validation status is required")
