from datetime import datetime, timezone

from pickpool import db


class GameResult(db.Model):
    """Cached scoreboard data. The feed owns the truth; rows are refreshed on sync."""

    __tablename__ = "game_results"

    event_id = db.Column(db.String(40), primary_key=True)
    league = db.Column(db.String(40), nullable=False, index=True)

    home_team = db.Column(db.String(120), nullable=False)
    away_team = db.Column(db.String(120), nullable=False)
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    kickoff = db.Column(db.DateTime, index=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return (
            f"<GameResult {self.event_id} {self.away_team} {self.away_score} @ "
            f"{self.home_team} {self.home_score}{' F' if self.completed else ''}>"
        )

    @staticmethod
    def for_window(start, end, league=None):
        query = GameResult.query.filter(
            GameResult.kickoff >= start, GameResult.kickoff <= end
        )
        if league:
            query = query.filter(GameResult.league == league)
        return query.order_by(GameResult.kickoff).all()

    @staticmethod
    def upsert(game):
        """Insert or refresh a row from a normalized feed game.

        Returns:
            True when anything changed
        """
        row = db.session.get(GameResult, str(game.event_id))
        if row is None:
            row = GameResult(event_id=str(game.event_id))
            db.session.add(row)

        changed = False
        for attr in (
            "league",
            "home_team",
            "away_team",
            "home_score",
            "away_score",
            "kickoff",
            "completed",
        ):
            value = getattr(game, attr)
            if getattr(row, attr) != value:
                setattr(row, attr, value)
                changed = True
        return changed
