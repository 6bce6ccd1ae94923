from datetime import datetime, timezone

from pickpool import db


class Player(db.Model):
    __tablename__ = "players"

    # Stable lowercase handle, e.g. "joey"
    id = db.Column(db.String(40), primary_key=True)
    display_name = db.Column(db.String(100), nullable=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    picks = db.relationship(
        "Pick",
        backref="player",
        lazy="dynamic",
        foreign_keys="Pick.player_id",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Player {self.id}>"

    @staticmethod
    def normalize_id(player_id):
        return (player_id or "").strip().lower()

    @staticmethod
    def get(player_id):
        return db.session.get(Player, Player.normalize_id(player_id))

    @staticmethod
    def roster_ids():
        """All player ids in a stable order"""
        return [p.id for p in Player.query.order_by(Player.id).all()]

    @staticmethod
    def create_player(player_id, display_name=None):
        player_id = Player.normalize_id(player_id)
        player = Player(id=player_id, display_name=display_name or player_id.title())
        db.session.add(player)
        return player

    def to_dict(self):
        return {"id": self.id, "display_name": self.display_name}
