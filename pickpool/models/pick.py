from datetime import datetime, timezone

from pickpool import db
from pickpool.utils.team_matching import claim_key
from pickpool.utils.tokens import BonusCombo

SLOTS = ("A", "B")


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    week_id = db.Column(db.Integer, db.ForeignKey("weeks.id"), nullable=False)
    player_id = db.Column(db.String(40), db.ForeignKey("players.id"), nullable=False)
    slot = db.Column(db.String(1), nullable=False)  # "A" college, "B" pro
    league = db.Column(db.String(40), nullable=False)

    # Pick details
    team = db.Column(db.String(120), nullable=False)
    team_key = db.Column(db.String(120), nullable=False)
    spread = db.Column(db.Float, nullable=False, default=0.0)
    odds = db.Column(db.Integer)  # Informational American odds
    bonus = db.Column(db.String(20))  # "LOY+LOQ+DOG" or NULL
    pressed = db.Column(db.Boolean, nullable=False, default=False)

    # Steal bookkeeping
    steal = db.Column(db.Boolean, nullable=False, default=False)
    stolen = db.Column(db.Boolean, nullable=False, default=False)
    stolen_by = db.Column(db.String(40), db.ForeignKey("players.id"), nullable=True)

    # Scoreboard event pinned at claim time
    event_id = db.Column(db.String(40), nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # One active claim per owner slot and per team; stolen rows are history
    __table_args__ = (
        db.Index(
            "uq_active_pick_owner",
            "week_id",
            "player_id",
            "slot",
            unique=True,
            sqlite_where=db.text("NOT stolen"),
            postgresql_where=db.text("NOT stolen"),
        ),
        db.Index(
            "uq_active_pick_team",
            "week_id",
            "slot",
            "team_key",
            unique=True,
            sqlite_where=db.text("NOT stolen"),
            postgresql_where=db.text("NOT stolen"),
        ),
        db.Index("idx_pick_player_week", "player_id", "week_id"),
        db.CheckConstraint("slot IN ('A', 'B')", name="valid_pick_slot"),
    )

    def __init__(self, **kwargs):
        combo = kwargs.pop("combo", None)
        super().__init__(**kwargs)
        if combo is not None:
            self.combo = combo
        if self.team is not None:
            self.team_key = claim_key(self.team)

    def __repr__(self):
        state = " stolen" if self.stolen else ""
        return f"<Pick week={self.week_id} {self.player_id}/{self.slot} {self.team} {self.spread:+g}{state}>"

    @property
    def combo(self):
        return BonusCombo.parse(self.bonus)

    @combo.setter
    def combo(self, value):
        self.bonus = BonusCombo.parse(value).to_db()

    @property
    def quarter(self):
        return self.week.quarter if self.week else None

    @property
    def is_active(self):
        return not self.stolen

    def to_dict(self):
        return {
            "id": self.id,
            "week_id": self.week_id,
            "player_id": self.player_id,
            "slot": self.slot,
            "league": self.league,
            "team": self.team,
            "spread": self.spread,
            "odds": self.odds,
            "bonus": str(self.combo),
            "pressed": self.pressed,
            "steal": self.steal,
            "stolen": self.stolen,
            "stolen_by": self.stolen_by,
            "event_id": self.event_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
