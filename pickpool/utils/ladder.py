"""
Priority ladder for steal arbitration.

Ranks are 0-based: 0 is the best cumulative dollar standing. The ladder is a
value built from standings that callers pass around explicitly.
"""

UNRANKED = 999


class PriorityLadder:
    """Map players to ranks from cumulative standings, or from the seed order
    when nothing has been scored yet."""

    def __init__(self, standings=None, seed=None, roster=None):
        """
        Args:
            standings: mapping of player id -> cumulative dollars (or an object
                with a ``dollars`` attribute). Empty/None means no results yet.
            seed: configured priority list used as the fallback order and as
                the tie-break between equal standings.
            roster: all player ids in the pool; players missing from the seed
                are appended in id order.
        """
        self.seed = [p.lower() for p in (seed or [])]
        roster_ids = [p.lower() for p in (roster or [])]
        standings = {
            str(pid).lower(): _dollars_of(value)
            for pid, value in (standings or {}).items()
        }

        players = list(dict.fromkeys(roster_ids or list(standings) or self.seed))
        for pid in standings:
            if pid not in players:
                players.append(pid)

        if standings:
            players.sort(key=lambda pid: (-standings.get(pid, 0.0), self._seed_index(pid)))
            self.from_seed = False
        else:
            players.sort(key=self._seed_index)
            self.from_seed = True

        self.order = players
        self._ranks = {pid: idx for idx, pid in enumerate(players)}

    def _seed_index(self, player_id):
        if player_id in self.seed:
            return (0, self.seed.index(player_id), player_id)
        return (1, 0, player_id)

    @property
    def size(self):
        return len(self.order)

    def rank_of(self, player_id):
        """Rank of a player, ``UNRANKED`` for players outside the pool."""
        if not player_id:
            return UNRANKED
        return self._ranks.get(str(player_id).lower(), UNRANKED)

    def __repr__(self):
        source = "seed" if self.from_seed else "standings"
        return f"<PriorityLadder {source} {self.order}>"


def _dollars_of(value):
    if hasattr(value, "dollars"):
        return float(value.dollars)
    return float(value or 0.0)
