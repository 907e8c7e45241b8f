"""
Leaderboard spreadsheet export

Builds an .xlsx workbook for one league and season: the ranked table, every
member's season prediction and one sheet per race with the members' picks.
"""

import logging
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from tipping.models import RacePrediction, SeasonPrediction, User
from tipping.services.scoring_service import get_season, league_leaderboard

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_FONT = Font(bold=True, color="FFFFFFFF")
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FFE10600")

# Sheet titles: at most 31 characters, none of \ / ? * : [ ]
SHEET_TITLE_LENGTH = 31


def _add_sheet(workbook, title, columns, rows):
    """Append a sheet with a styled header row

    columns is a list of (header, width) pairs.
    """
    sheet = workbook.create_sheet(title=title[:SHEET_TITLE_LENGTH])
    sheet.append([header for header, _ in columns])
    for cell in sheet[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
    for index, (_, width) in enumerate(columns):
        sheet.column_dimensions[get_column_letter(index + 1)].width = width
    for row in rows:
        sheet.append(row)
    sheet.freeze_panes = "A2"
    return sheet



def _joined(values, limit=None):
    values = list(values or [])
    if limit is not None and len(values) > limit:
        return ", ".join(values[:limit]) + ", ..."
    return ", ".join(values)


def race_sheet_title(race):
    name = "".join(char for char in race.name if char not in '\\/?*:[]')
    return f"R{race.round_number} {name}"


def build_leaderboard_workbook(league, season_year):
    """Workbook with the league's standings and picks for one season"""
    season = get_season(season_year)
    member_ids = league.get_member_ids()
    names = {user.id: user.full_name for user in User.query.filter(User.id.in_(member_ids))}

    workbook = Workbook()
    workbook.remove(workbook.active)

    _add_sheet(
        workbook,
        "Leaderboard",
        [("Rank", 8), ("Player", 25), ("Total Points", 14), ("Season Points", 14), ("Race Points", 14)],
        [
            [
                entry["rank"],
                entry["display_name"],
                entry["total_points"],
                entry["season_points"],
                entry["race_points"],
            ]
            for entry in league_leaderboard(league.id, season.year)
        ],
    )

    season_predictions = SeasonPrediction.query.filter(
        SeasonPrediction.season_id == season.id,
        SeasonPrediction.user_id.in_(member_ids),
    ).all()
    season_predictions.sort(key=lambda prediction: names[prediction.user_id].casefold())
    _add_sheet(
        workbook,
        "Season Predictions",
        [
            ("Player", 25),
            ("Drivers Championship", 40),
            ("Constructors Championship", 40),
            ("Sackings", 30),
            ("New Team", 12),
            ("Crazy Prediction", 50),
            ("Points", 10),
        ],
        [
            [
                names[prediction.user_id],
                _joined(prediction.drivers_championship_order, limit=5),
                _joined(prediction.constructors_championship_order, limit=5),
                _joined(prediction.mid_season_sackings) or "None",
                prediction.new_team_choice,
                prediction.crazy_prediction or "",
                prediction.points_earned,
            ]
            for prediction in season_predictions
        ],
    )

    for race in season.get_races():
        predictions = RacePrediction.query.filter(
            RacePrediction.race_id == race.id,
            RacePrediction.user_id.in_(member_ids),
        ).all()
        predictions.sort(key=lambda prediction: names[prediction.user_id].casefold())
        _add_sheet(
            workbook,
            race_sheet_title(race),
            [
                ("Player", 25),
                ("Pole", 18),
                ("Podium", 40),
                ("Midfield Hero", 18),
                ("Crazy Prediction", 50),
                ("Points", 10),
            ],
            [
                [
                    names[prediction.user_id],
                    prediction.pole_position_driver_id,
                    _joined(
                        driver
                        for driver in (
                            prediction.podium_first_driver_id,
                            prediction.podium_second_driver_id,
                            prediction.podium_third_driver_id,
                        )
                        if driver
                    ),
                    prediction.midfield_hero_driver_id,
                    prediction.crazy_prediction or "",
                    prediction.points_earned,
                ]
                for prediction in predictions
            ],
        )

    logger.info(f"Built leaderboard export for league {league.id}, season {season.year}")
    return workbook


def export_leaderboard(league, season_year):
    """Serialised .xlsx bytes of build_leaderboard_workbook"""
    buffer = BytesIO()
    build_leaderboard_workbook(league, season_year).save(buffer)
    return buffer.getvalue()
