from __future__ import annotations

import re
from typing import Dict, List

UNKNOWN_STATE = "Unknown"

STATE_ABBREVIATIONS: Dict[str, str] = {
    "AL": "Alabama",
    "AK": "Alaska",
    "AZ": "Arizona",
    "AR": "Arkansas",
    "CA": "California",
    "CO": "Colorado",
    "CT": "Connecticut",
    "DE": "Delaware",
    "FL": "Florida",
    "GA": "Georgia",
    "HI": "Hawaii",
    "ID": "Idaho",
    "IL": "Illinois",
    "IN": "Indiana",
    "IA": "Iowa",
    "KS": "Kansas",
    "KY": "Kentucky",
    "LA": "Louisiana",
    "ME": "Maine",
    "MD": "Maryland",
    "MA": "Massachusetts",
    "MI": "Michigan",
    "MN": "Minnesota",
    "MS": "Mississippi",
    "MO": "Missouri",
    "MT": "Montana",
    "NE": "Nebraska",
    "NV": "Nevada",
    "NH": "New Hampshire",
    "NJ": "New Jersey",
    "NM": "New Mexico",
    "NY": "New York",
    "NC": "North Carolina",
    "ND": "North Dakota",
    "OH": "Ohio",
    "OK": "Oklahoma",
    "OR": "Oregon",
    "PA": "Pennsylvania",
    "RI": "Rhode Island",
    "SC": "South Carolina",
    "SD": "South Dakota",
    "TN": "Tennessee",
    "TX": "Texas",
    "UT": "Utah",
    "VT": "Vermont",
    "VA": "Virginia",
    "WA": "Washington",
    "WV": "West Virginia",
    "WI": "Wisconsin",
    "WY": "Wyoming",
    "DC": "District of Columbia",
}

# Alphabetical, with the federal district last.
ALL_STATE_NAMES: List[str] = sorted(v for v in STATE_ABBREVIATIONS.values() if v != "District of Columbia") + [
    "District of Columbia"
]

INVALID_TOKENS = {"", "unknown", "n/a", "na", "none", "null", "undefined", "nan", "-", "--"}


def _state_token(value: str) -> str:
    return re.sub(r"[^a-z]", "", value.lower())


_NAME_LOOKUP: Dict[str, str] = {_state_token(name): name for name in ALL_STATE_NAMES}


def normalize_state(value: object) -> str:
    """Map a raw state value (abbreviation or name, any casing) to its canonical name."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return UNKNOWN_STATE
    s = str(value).strip()
    if s.lower() in INVALID_TOKENS:
        return UNKNOWN_STATE
    abbrev = s.upper().replace(".", "")
    if abbrev in STATE_ABBREVIATIONS:
        return STATE_ABBREVIATIONS[abbrev]
    return _NAME_LOOKUP.get(_state_token(s), UNKNOWN_STATE)


def is_unknown_state(state: str) -> bool:
    return state == UNKNOWN_STATE
