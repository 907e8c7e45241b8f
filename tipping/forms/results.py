from flask_wtf import FlaskForm
from wtforms.validators import DataRequired, Optional, ValidationError

from tipping.forms.fields import GridField, IdField, IdListField, IntegerListField, OptionalBooleanField
from tipping.forms.predictions import (
    validate_distinct_podium,
    validate_new_team,
    validate_order_length,
)
from tipping.scoring.categories import NO_NEW_WINNERS, PODIUM_FIELDS, SPRINT_FIELDS


class SeasonResultForm(FlaskForm):
    class Meta:
        csrf = False

    drivers_championship_order = IdListField("Drivers' Championship")
    constructors_championship_order = IdListField("Constructors' Championship")
    mid_season_sackings = IdListField("Mid-season Sackings")
    new_team_winner = IdField("New Team Duel Winner", validators=[DataRequired()])
    first_career_race_winners = IdListField("First Career Race Winners")
    actual_grid_2027 = GridField("2027 Grid")
    actual_grid_2028 = GridField("2028 Grid")
    crazy_predictions_happened = IntegerListField("Crazy Predictions That Happened")

    def __init__(self, season, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.season = season

    def validate_drivers_championship_order(self, field):
        validate_order_length(field, self.season.driver_count, "drivers")

    def validate_constructors_championship_order(self, field):
        validate_order_length(field, self.season.constructor_count, "constructors")

    def validate_new_team_winner(self, field):
        validate_new_team(field)

    def validate_first_career_race_winners(self, field):
        if NO_NEW_WINNERS in field.data:
            raise ValidationError("List the winners; leave empty when nobody won a first race")

    def validate_crazy_predictions_happened(self, field):
        from tipping.models import SeasonPrediction

        if not field.data or field.errors:
            return
        known = {
            prediction_id
            for (prediction_id,) in SeasonPrediction.query.with_entities(SeasonPrediction.id)
            .filter(
                SeasonPrediction.season_id == self.season.id,
                SeasonPrediction.id.in_(field.data),
            )
            .all()
        }
        unknown = sorted(set(field.data) - known)
        if unknown:
            raise ValidationError(f"Not predictions of this season: {unknown}")

    def result_data(self):
        return {name: field.data for name, field in self._fields.items()}


class RaceResultForm(FlaskForm):
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
    crazy_predictions_happened = IntegerListField("Crazy Predictions That Happened")

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

    def validate_crazy_predictions_happened(self, field):
        from tipping.models import RacePrediction

        if not field.data or field.errors:
            return
        known = {
            prediction_id
            for (prediction_id,) in RacePrediction.query.with_entities(RacePrediction.id)
            .filter(RacePrediction.race_id == self.race.id, RacePrediction.id.in_(field.data))
            .all()
        }
        unknown = sorted(set(field.data) - known)
        if unknown:
            raise ValidationError(f"Not predictions of this race: {unknown}")

    def result_data(self):
        data = {
            name: getattr(self, name).data
            for name in ("pole_position_driver_id", *PODIUM_FIELDS, "midfield_hero_driver_id")
        }
        for name in SPRINT_FIELDS.values():
            data[name] = getattr(self, name).data
        data["crazy_predictions_happened"] = self.crazy_predictions_happened.data
        return data


class OverrideForm(FlaskForm):
    class Meta:
        csrf = False

    is_accepted = OptionalBooleanField("Accepted")

    def validate_is_accepted(self, field):
        if not field.raw_data:
            raise ValidationError("is_accepted is required (true, false or null)")
