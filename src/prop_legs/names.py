"""Canonical-key normalization applied once at ingestion."""

from __future__ import annotations

import re
import unicodedata

TEAM_ABBREVIATIONS = {
    "atlanta hawks": "ATL",
    "boston celtics": "BOS",
    "brooklyn nets": "BKN",
    "charlotte hornets": "CHA",
    "chicago bulls": "CHI",
    "cleveland cavaliers": "CLE",
    "dallas mavericks": "DAL",
    "denver nuggets": "DEN",
    "detroit pistons": "DET",
    "golden state warriors": "GSW",
    "houston rockets": "HOU",
    "indiana pacers": "IND",
    "los angeles clippers": "LAC",
    "la clippers": "LAC",
    "los angeles lakers": "LAL",
    "la lakers": "LAL",
    "memphis grizzlies": "MEM",
    "miami heat": "MIA",
    "milwaukee bucks": "MIL",
    "minnesota timberwolves": "MIN",
    "new orleans pelicans": "NOP",
    "new york knicks": "NYK",
    "oklahoma city thunder": "OKC",
    "orlando magic": "ORL",
    "philadelphia 76ers": "PHI",
    "philadelphia sixers": "PHI",
    "phoenix suns": "PHX",
    "portland trail blazers": "POR",
    "sacramento kings": "SAC",
    "san antonio spurs": "SAS",
    "toronto raptors": "TOR",
    "utah jazz": "UTA",
    "washington wizards": "WAS",
    "hawks": "ATL",
    "celtics": "BOS",
    "nets": "BKN",
    "hornets": "CHA",
    "bulls": "CHI",
    "cavaliers": "CLE",
    "mavericks": "DAL",
    "nuggets": "DEN",
    "pistons": "DET",
    "warriors": "GSW",
    "rockets": "HOU",
    "pacers": "IND",
    "clippers": "LAC",
    "lakers": "LAL",
    "grizzlies": "MEM",
    "heat": "MIA",
    "bucks": "MIL",
    "timberwolves": "MIN",
    "pelicans": "NOP",
    "knicks": "NYK",
    "thunder": "OKC",
    "magic": "ORL",
    "76ers": "PHI",
    "suns": "PHX",
    "trail blazers": "POR",
    "blazers": "POR",
    "kings": "SAC",
    "spurs": "SAS",
    "raptors": "TOR",
    "jazz": "UTA",
    "wizards": "WAS",
}

# Alternate abbreviations seen across providers.
ABBREVIATION_ALIASES = {
    "BRK": "BKN",
    "CHO": "CHA",
    "GS": "GSW",
    "NO": "NOP",
    "NOR": "NOP",
    "NY": "NYK",
    "PHO": "PHX",
    "SA": "SAS",
    "UTAH": "UTA",
    "WSH": "WAS",
}

KNOWN_ABBREVIATIONS = frozenset(TEAM_ABBREVIATIONS.values())

# Longest names first so "trail blazers" wins over "blazers".
_NAMES_BY_LENGTH = sorted(TEAM_ABBREVIATIONS.items(), key=lambda item: (-len(item[0]), item[0]))


def normalize_person_name(name: str) -> str:
    """Normalize person names for joins ("P.J. Washington" == "PJ Washington")."""
    lowered = name.lower().strip()
    normalized = unicodedata.normalize("NFKD", lowered)
    ascii_only = "".join(ch for ch in normalized if ord(ch) < 128)
    cleaned = re.sub(r"[^a-z0-9]+", "", ascii_only)
    return cleaned


def canonical_team(name: str) -> str:
    """Resolve a full name, nickname or abbreviation to one uppercase abbreviation.

    Names outside the table are kept whole so two unknown teams never share a key.
    """
    collapsed = " ".join(name.strip().split())
    if not collapsed:
        return ""
    upper = collapsed.upper()
    if upper in KNOWN_ABBREVIATIONS:
        return upper
    if upper in ABBREVIATION_ALIASES:
        return ABBREVIATION_ALIASES[upper]
    lower = collapsed.lower()
    direct = TEAM_ABBREVIATIONS.get(lower)
    if direct:
        return direct
    for team_name, abbreviation in _NAMES_BY_LENGTH:
        if team_name in lower:
            return abbreviation
    return upper


def normalize_stat(value: str | None) -> str:
    """Strip a prop type down to letters ("Points + Rebounds" -> "pointsrebounds")."""
    return re.sub(r"[^a-z]", "", (value or "").lower())


def stat_family(value: str | None) -> str:
    """Map a prop type onto the edge-threshold family it belongs to."""
    normalized = normalize_stat(value)
    if "three" in normalized or normalized in {"pt", "pm", "tpm"}:
        return "threes"
    has_points = "point" in normalized or normalized == "pts"
    has_rebounds = "rebound" in normalized or normalized == "reb"
    has_assists = "assist" in normalized or normalized == "ast"
    if has_points and has_rebounds and has_assists:
        return "pra"
    if has_points and has_rebounds:
        return "pr"
    if has_points and has_assists:
        return "pa"
    if has_rebounds and has_assists:
        return "ra"
    if has_points:
        return "points"
    if has_rebounds:
        return "rebounds"
    if has_assists:
        return "assists"
    if "block" in normalized:
        return "blocks"
    if "steal" in normalized:
        return "steals"
    return normalized


def normalize_side(value: str | None) -> str:
    """Return `over`/`under`, or an empty string for anything else."""
    side = (value or "").strip().lower()
    if side in {"o", "over"}:
        return "over"
    if side in {"u", "under"}:
        return "under"
    return ""


PACE_CLASSES = ("SLOW", "MEDIUM", "FAST")
SCRIPT_CLASSES = ("SHOOTOUT", "GRIND_OUT", "COMPETITIVE", "BLOWOUT", "HARD_BLOWOUT")


def normalize_pace(value: str | None) -> str:
    """Map pace vocab onto SLOW/MEDIUM/FAST (older tables say LOW/HIGH)."""
    pace = (value or "MEDIUM").strip().upper()
    if pace == "LOW":
        return "SLOW"
    if pace == "HIGH":
        return "FAST"
    return pace if pace in PACE_CLASSES else "MEDIUM"


def normalize_script(value: str | None) -> str:
    script = (value or "COMPETITIVE").strip().upper().replace("-", "_").replace(" ", "_")
    return script if script in SCRIPT_CLASSES else "COMPETITIVE"
