"""
Scoring categories and rule constants

Categories are closed enumerations per prediction type. The engine fills
every member of the relevant enum, so adding a member here without a rule
in engine.py fails loudly in the tests instead of silently scoring zero.
"""

import enum


class PredictionType(str, enum.Enum):
    SEASON = "season"
    RACE = "race"


class SeasonCategory(str, enum.Enum):
    DRIVERS_CHAMPIONSHIP = "drivers_championship"
    CONSTRUCTORS_CHAMPIONSHIP = "constructors_championship"
    SACKINGS = "sackings"
    NEW_TEAM_DUEL = "new_team_duel"
    FIRST_CAREER_WINNERS = "first_career_winners"
    CRAZY_PREDICTION = "crazy_prediction"


class RaceCategory(str, enum.Enum):
    POLE_POSITION = "pole_position"
    PODIUM = "podium"
    MIDFIELD_HERO = "midfield_hero"
    SPRINT_POLE = "sprint_pole"
    SPRINT_WINNER = "sprint_winner"
    SPRINT_MIDFIELD_HERO = "sprint_midfield_hero"
    CRAZY_PREDICTION = "crazy_prediction"


class SackingPolicy(str, enum.Enum):
    ANY_OVERLAP = "any_overlap"  # flat point when at least one sacking is right
    EXACT_SET = "exact_set"  # flat point only when the sets are identical


SACKING_MATCH_POLICY = SackingPolicy.ANY_OVERLAP

# Stored in first_career_race_winners when the user predicts nobody wins
# a first race this season
NO_NEW_WINNERS = "__no_new_winners__"

# Race prediction fields, in the order they are shown and scored
PODIUM_FIELDS = (
    "podium_first_driver_id",
    "podium_second_driver_id",
    "podium_third_driver_id",
)
SPRINT_FIELDS = {
    RaceCategory.SPRINT_POLE: "sprint_pole_driver_id",
    RaceCategory.SPRINT_WINNER: "sprint_winner_driver_id",
    RaceCategory.SPRINT_MIDFIELD_HERO: "sprint_midfield_hero_driver_id",
}
