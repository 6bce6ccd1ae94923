"""
Pick Store: the CRUD contract the rule engine reads and writes picks through.

Methods flush but never commit; the caller owns the transaction.
"""

import logging

from pickpool import db
from pickpool.errors import DataIntegrityError
from pickpool.models import Pick, Week
from pickpool.utils.scoring import assert_active_integrity
from pickpool.utils.team_matching import claim_key

logger = logging.getLogger(__name__)


class PickStore:
    def list_picks(self, week_id):
        """Every pick of the week, active and stolen.

        Raises:
            DataIntegrityError: two active picks share an owner slot or a team
        """
        picks = Pick.query.filter_by(week_id=week_id).order_by(Pick.id).all()
        assert_active_integrity(picks)
        return picks

    def active_picks(self, week_id):
        return [p for p in self.list_picks(week_id) if not p.stolen]

    def season_picks(self, season):
        return (
            Pick.query.join(Week, Pick.week_id == Week.id)
            .filter(Week.season == season)
            .order_by(Week.start_time, Pick.id)
            .all()
        )

    def find_owner(self, week_id, slot, team, for_update=False):
        """The active pick holding ``team`` in ``slot`` for the week, or None."""
        query = Pick.query.filter_by(
            week_id=week_id, slot=slot, team_key=claim_key(team), stolen=False
        )
        if for_update:
            query = query.with_for_update()
        rows = query.all()
        if len(rows) > 1:
            owners = ", ".join(sorted(r.player_id for r in rows))
            logger.error(
                f"Week {week_id} slot {slot}: '{team}' actively held by {owners}"
            )
            raise DataIntegrityError(
                "Team is actively held by more than one player",
                week_id=week_id,
                slot=slot,
                team=team,
            )
        return rows[0] if rows else None

    def active_pick_for(self, week_id, player_id, slot, for_update=False):
        query = Pick.query.filter_by(
            week_id=week_id, player_id=player_id, slot=slot, stolen=False
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def upsert_pick(self, pick):
        """Make ``pick`` the player's active pick for its (week, player, slot).

        A previous active row for the same key is deleted: a changed pick is
        an erase plus a new claim.
        """
        existing = self.active_pick_for(pick.week_id, pick.player_id, pick.slot)
        if existing is not None and existing is not pick:
            db.session.delete(existing)
            db.session.flush()
        db.session.add(pick)
        db.session.flush()
        return pick

    def mark_stolen(self, week_id, victim_id, slot, stolen_by):
        """Deactivate the victim's active pick for the slot. Returns the row or None."""
        row = self.active_pick_for(week_id, victim_id, slot)
        if row is None:
            return None
        row.stolen = True
        row.stolen_by = stolen_by
        db.session.flush()
        return row

    def delete_pick(self, week_id, player_id, slot):
        """Delete the player's active pick for the slot. Returns True if one existed."""
        row = self.active_pick_for(week_id, player_id, slot)
        if row is None:
            return False
        db.session.delete(row)
        db.session.flush()
        return True


pick_store = PickStore()
