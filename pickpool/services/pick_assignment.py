"""
Pick Assignment: validate, authorize and apply a claim in one transaction.

Authorization denials come back from ``authorize_claim`` as data; this is the
one place that turns them into an exception, so the HTTP layer can answer 403
with the reason code.
"""

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError

from pickpool import db
from pickpool.errors import (
    ClaimDenied,
    PoolError,
    StoreUnavailableError,
    TeamUnavailableError,
    ValidationError,
)
from pickpool.models import Pick, Player, Week
from pickpool.models.pick import SLOTS
from pickpool.services import standings_service
from pickpool.services.pick_store import pick_store
from pickpool.utils.authorization import authorize_claim, requires_steal_confirmation
from pickpool.utils.bonus_usage import bonus_usage, vetoed_tokens
from pickpool.utils.cache_utils import invalidate_standings
from pickpool.utils.logging_config import ContextualLogger
from pickpool.utils.standings import press_allowed
from pickpool.utils.tokens import BonusCombo

logger = logging.getLogger(__name__)

# Sentinel: the caller did not say who it believed owned the team
UNCHECKED = object()


def _require(value, field):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required field: {field}", code="MISSING_FIELD", field=field)
    return value


def _load_week(week_id):
    week = db.session.get(Week, week_id)
    if week is None:
        raise ValidationError(f"Unknown week {week_id}", code="UNKNOWN_WEEK")
    return week


def _load_player(player_id):
    player = Player.get(player_id)
    if player is None:
        raise ValidationError(f"Unknown player {player_id}", code="UNKNOWN_PLAYER")
    return player


def _check_slot(slot):
    slot = str(slot).strip().upper()
    if slot not in SLOTS:
        raise ValidationError(f"Slot must be one of {', '.join(SLOTS)}", code="INVALID_SLOT")
    return slot


def _check_open(week):
    if week.is_locked:
        raise ValidationError(f"Week {week.full_label} is locked", code="WEEK_LOCKED")


def _parse_spread(spread):
    try:
        return float(spread)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid spread: {spread}", code="INVALID_SPREAD")


def _parse_odds(odds):
    if odds in (None, ""):
        return None
    try:
        return int(odds)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid odds: {odds}", code="INVALID_ODDS")


def _check_tokens(player_id, week, slot, combo, spread):
    config = current_app.config
    if combo.dog and spread < config.get("DOG_MIN_SPREAD", 7.0):
        raise ValidationError(
            f"DOG needs an underdog of at least +{config.get('DOG_MIN_SPREAD', 7.0):g}",
            code="DOG_SPREAD_TOO_SMALL",
        )

    if combo.is_empty:
        return
    usage = bonus_usage(
        player_id,
        pick_store.season_picks(week.season),
        week.quarter,
        ignore=(week.id, slot),
    )
    vetoed = vetoed_tokens(usage, combo)
    if vetoed:
        raise ValidationError(
            f"Token already used: {'+'.join(vetoed)}",
            code="TOKEN_ALREADY_USED",
            tokens=list(vetoed),
        )


def _check_press(player_id, week):
    threshold = current_app.config.get("PRESS_MAX_STANDING", -100.0)
    standing = standings_service.standing_for(player_id, week)
    if not press_allowed(standing, threshold):
        raise ValidationError(
            f"Press is only available at or below ${threshold:.2f} (currently ${standing.dollars:.2f})",
            code="PRESS_NOT_ALLOWED",
        )


def preview_claim(week_id, player_id, slot, team, bonus=None):
    """Dry-run authorization against the current owner. Nothing is written."""
    _require(team, "team")
    slot = _check_slot(_require(slot, "slot"))
    combo = BonusCombo.parse(bonus)

    try:
        week = _load_week(week_id)
        player = _load_player(_require(player_id, "player_id"))
        owner = pick_store.find_owner(week.id, slot, team)
        ladder = standings_service.ladder_for_week(week)
    except OperationalError as e:
        db.session.rollback()
        logger.error(f"Pick store unavailable during preview: {e}")
        raise StoreUnavailableError("Pick store unavailable")

    victim_id = owner.player_id if owner else None
    verdict = authorize_claim(
        player.id, victim_id, owner.combo if owner else None, combo, ladder
    )

    result = verdict.to_dict()
    result.update(
        {
            "victim_id": victim_id,
            "victim_bonus": str(owner.combo) if owner else None,
            "requires_confirmation": requires_steal_confirmation(player.id, victim_id, combo),
        }
    )
    return result


def assign_pick(
    week_id,
    player_id,
    slot,
    team,
    spread,
    odds=None,
    bonus=None,
    pressed=False,
    steal_confirmed=False,
    expected_victim_id=UNCHECKED,
    event_id=None,
):
    """
    Claim ``team`` for ``player_id`` in ``slot`` of the week

    The current owner is re-read under a row lock inside the transaction and
    the claim is re-authorized against that owner. If the caller passes
    ``expected_victim_id`` and the owner has changed, the claim is refused as
    a lost race.

    Returns:
        dict with the new pick and the displaced player, if any

    Raises:
        ValidationError: caller-fixable input problem
        ClaimDenied: authorization denial, carries the reason code
        TeamUnavailableError: someone else got the team first
        StoreUnavailableError: the database failed; nothing was applied
    """
    _require(week_id, "week_id")
    _require(player_id, "player_id")
    slot = _check_slot(_require(slot, "slot"))
    team = _require(team, "team").strip()
    spread = _parse_spread(_require(spread, "spread"))
    odds = _parse_odds(odds)
    combo = BonusCombo.parse(bonus)
    log = ContextualLogger(
        __name__, {"week": week_id, "player": player_id, "slot": slot, "team": team}
    )

    try:
        week = _load_week(week_id)
        player = _load_player(player_id)
        _check_open(week)
        _check_tokens(player.id, week, slot, combo, spread)
        if pressed:
            _check_press(player.id, week)

        ladder = standings_service.ladder_for_week(week)

        owner = pick_store.find_owner(week.id, slot, team, for_update=True)
        victim_id = owner.player_id if owner else None

        if expected_victim_id is not UNCHECKED:
            expected = Player.normalize_id(expected_victim_id) or None
            if expected != victim_id:
                log.warning(
                    f"Lost race: expected owner {expected or 'none'}, found {victim_id or 'none'}"
                )
                raise TeamUnavailableError(
                    "Team ownership changed, reload and try again",
                    owner=victim_id,
                )

        verdict = authorize_claim(
            player.id, victim_id, owner.combo if owner else None, combo, ladder
        )
        if not verdict.ok:
            log.info(f"Claim denied: {verdict.reason} (owner {victim_id})")
            raise ClaimDenied(verdict.reason, verdict.message)

        if requires_steal_confirmation(player.id, victim_id, combo) and not steal_confirmed:
            raise ValidationError(
                f"Stealing from {victim_id} without LOY or LOQ needs confirmation",
                code="STEAL_CONFIRMATION_REQUIRED",
                victim_id=victim_id,
            )

        is_steal = bool(victim_id and victim_id != player.id)
        if is_steal:
            pick_store.mark_stolen(week.id, victim_id, slot, player.id)

        pick = Pick(
            week_id=week.id,
            player_id=player.id,
            slot=slot,
            league=week.league_for_slot(slot),
            team=team,
            spread=spread,
            odds=odds,
            combo=combo,
            pressed=bool(pressed),
            steal=is_steal,
            event_id=str(event_id) if event_id else None,
        )
        pick_store.upsert_pick(pick)
        db.session.commit()

    except IntegrityError as e:
        db.session.rollback()
        log.warning(f"Lost race on commit: {e.orig}")
        raise TeamUnavailableError("Team was claimed by another player")
    except OperationalError as e:
        db.session.rollback()
        log.error(f"Pick store unavailable: {e}")
        raise StoreUnavailableError("Pick store unavailable, nothing was changed")
    except PoolError:
        db.session.rollback()
        raise

    invalidate_standings()
    if is_steal:
        log.info(f"Steal applied: took {team} from {victim_id} with {combo}")
    else:
        log.info(f"Claim granted with {combo}")

    return {"pick": pick.to_dict(), "victim_id": victim_id if is_steal else None, "steal": is_steal}


def erase_pick(week_id, player_id, slot):
    """Delete a player's active pick. Returns False when there was none."""
    slot = _check_slot(slot)

    try:
        week = _load_week(week_id)
        player = _load_player(player_id)
        _check_open(week)
        deleted = pick_store.delete_pick(week.id, player.id, slot)
        db.session.commit()
    except OperationalError as e:
        db.session.rollback()
        logger.error(f"Pick store unavailable while erasing: {e}")
        raise StoreUnavailableError("Pick store unavailable, nothing was changed")

    if deleted:
        invalidate_standings()
        logger.info(f"Erased pick week={week.full_label} player={player.id} slot={slot}")
    return deleted
