"""
Team-name resolution between stored picks and feed results.

Sportsbooks and the scoreboard feed spell teams differently
("Miami (OH) RedHawks" vs "Miami OH"), so picks are matched to results by a
normalized-name similarity unless the pick carries a pinned event id.
"""

import re
import unicodedata
from difflib import SequenceMatcher

MATCH_THRESHOLD = 0.65
STRONG_MATCH = 0.82

_NOISE_WORDS = re.compile(r"\b(?:univ(?:ersity)?|the|men(?:s)?|football|of)\b")


def _strip(name):
    text = unicodedata.normalize("NFKD", name or "")
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.lower().replace("&", " and ")
    text = re.sub(r"['’`()]", "", text)
    text = re.sub(r"[.\-]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def normalize_name(name):
    """Lowercase, accent-free, noise-free team name with plurals trimmed."""
    text = re.sub(r"\bst\b", "state", _strip(name))
    text = _NOISE_WORDS.sub("", text)
    words = []
    for word in text.split():
        if len(word) > 4 and word.endswith("s") and not word.endswith("ss"):
            word = word[:-1]
        words.append(word)
    return " ".join(words)


def name_tokens(name):
    return set(normalize_name(name).split())


def jaccard(a, b):
    ta, tb = name_tokens(a), name_tokens(b)
    if not ta and not tb:
        return 1.0
    union = ta | tb
    return len(ta & tb) / len(union) if union else 0.0


def similarity(a, b):
    """Blend of token overlap and character sequence ratio, in [0, 1]."""
    ratio = SequenceMatcher(None, normalize_name(a), normalize_name(b)).ratio()
    return 0.6 * jaccard(a, b) + 0.4 * ratio


def side_of(team, result):
    """Return ``"home"`` or ``"away"`` for the side of ``result`` that ``team`` plays."""
    away = similarity(team, result.away_team)
    home = similarity(team, result.home_team)
    return "away" if away > home else "home"


def match_score(team, result):
    return max(similarity(team, result.home_team), similarity(team, result.away_team))


def resolve_result(pick, results):
    """Find the result a pick refers to.

    A pinned ``event_id`` wins outright. Otherwise the best name match is
    taken when it shares two tokens with a side or clears the strong
    similarity bar, and its score is at least ``MATCH_THRESHOLD``.

    Returns:
        The matching result, or None when nothing resolves.
    """
    event_id = getattr(pick, "event_id", None)
    if event_id:
        for result in results:
            if str(result.event_id) == str(event_id):
                return result

    team = pick.team or ""
    pick_tokens = name_tokens(team)
    if not pick_tokens:
        return None

    # Exact normalized name wins before fuzzy matching
    wanted = normalize_name(team)
    for result in results:
        if wanted in (normalize_name(result.home_team), normalize_name(result.away_team)):
            return result

    best, best_score = None, -1.0
    for result in results:
        overlap = max(
            len(pick_tokens & name_tokens(result.home_team)),
            len(pick_tokens & name_tokens(result.away_team)),
        )
        score = match_score(team, result)
        if overlap < 2 and score < STRONG_MATCH:
            continue
        if score > best_score:
            best, best_score = result, score

    if best is not None and best_score >= MATCH_THRESHOLD:
        return best
    return None


def claim_key(team):
    """Key under which a team is claimed.

    Spellings that normalize alike ("Ohio St." and "Ohio State") share a key,
    so one active claim blocks the other.
    """
    return normalize_name(team) or " ".join((team or "").lower().split())
