from pickpool import create_app, db
from pickpool.models import GameResult, Pick, Player, Week

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Player": Player,
        "Week": Week,
        "Pick": Pick,
        "GameResult": GameResult,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
