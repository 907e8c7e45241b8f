# Eventlet monkey patching MUST be first before any other imports
import eventlet

eventlet.monkey_patch()

import os  # noqa: E402

from tipping import create_app, db, socketio  # noqa: E402
from tipping.models import (  # noqa: E402
    League,
    Race,
    RacePrediction,
    RaceResult,
    Season,
    SeasonPrediction,
    SeasonResult,
    User,
)

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "League": League,
        "Season": Season,
        "Race": Race,
        "SeasonPrediction": SeasonPrediction,
        "SeasonResult": SeasonResult,
        "RacePrediction": RacePrediction,
        "RaceResult": RaceResult,
    }


if __name__ == "__main__":
    socketio.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 5000)),
        debug=app.config.get("DEBUG", False),
    )
