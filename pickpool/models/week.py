from datetime import datetime, timezone

from flask import current_app

from pickpool import db

OPEN = "OPEN"
LOCKED = "LOCKED"


class Week(db.Model):
    __tablename__ = "weeks"

    id = db.Column(db.Integer, primary_key=True)
    season = db.Column(db.Integer, nullable=False, index=True)
    quarter = db.Column(db.String(4), nullable=False)  # "Q1".."Q4"
    label = db.Column(db.String(8), nullable=False)  # "W1", "W2", ...

    # Window in which this week's games are played
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(10), nullable=False, default=OPEN)

    # "Two college picks" week: slot B drawn from the slot A league
    same_league_slots = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    picks = db.relationship(
        "Pick", backref="week", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("season", "quarter", "label", name="unique_season_week"),
        db.Index("idx_week_window", "start_time", "end_time"),
        db.CheckConstraint("status IN ('OPEN', 'LOCKED')", name="valid_week_status"),
    )

    def __repr__(self):
        return f"<Week {self.season} {self.full_label} {self.status}>"

    @property
    def full_label(self):
        return f"{self.quarter}-{self.label}"

    @property
    def is_locked(self):
        return self.status == LOCKED

    def lock(self):
        self.status = LOCKED

    def unlock(self):
        self.status = OPEN

    def league_for_slot(self, slot):
        college = current_app.config.get("SLOT_A_LEAGUE", "college-football")
        pro = current_app.config.get("SLOT_B_LEAGUE", "nfl")
        if slot == "A" or self.same_league_slots:
            return college
        return pro

    def slot_labels(self):
        """Display label per slot for bonus names"""
        short = {"college-football": "CFB", "nfl": "NFL"}
        labels = {}
        for slot in ("A", "B"):
            league = self.league_for_slot(slot)
            labels[slot] = short.get(league, league.upper())
        if self.same_league_slots:
            labels = {slot: f"{label} {slot}" for slot, label in labels.items()}
        return labels

    @staticmethod
    def season_weeks(season):
        return (
            Week.query.filter_by(season=season)
            .order_by(Week.start_time, Week.id)
            .all()
        )

    @staticmethod
    def weeks_before(week):
        """Weeks of the same season that started before ``week``"""
        return (
            Week.query.filter(Week.season == week.season, Week.start_time < week.start_time)
            .order_by(Week.start_time, Week.id)
            .all()
        )

    @staticmethod
    def in_window(now):
        """Weeks whose game window contains ``now`` (naive UTC)"""
        return Week.query.filter(Week.start_time <= now, Week.end_time >= now).all()

    def to_dict(self):
        return {
            "id": self.id,
            "season": self.season,
            "quarter": self.quarter,
            "label": self.label,
            "full_label": self.full_label,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
            "same_league_slots": self.same_league_slots,
        }
