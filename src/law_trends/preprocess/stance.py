from __future__ import annotations

import re
from enum import Enum
from typing import Any


class CanonicalStance(str, Enum):
    STRENGTHEN = "strengthen"
    WEAKEN = "weaken"
    OPPOSE = "oppose"
    UNKNOWN = "unknown"


KNOWN_STANCES = (CanonicalStance.STRENGTHEN, CanonicalStance.WEAKEN, CanonicalStance.OPPOSE)

STANCE_ALIASES = {
    "개정강화": CanonicalStance.STRENGTHEN,
    "강화": CanonicalStance.STRENGTHEN,
    "strengthen": CanonicalStance.STRENGTHEN,
    "favorstrengthen": CanonicalStance.STRENGTHEN,
    "폐지약화": CanonicalStance.WEAKEN,
    "폐지완화": CanonicalStance.WEAKEN,
    "약화": CanonicalStance.WEAKEN,
    "완화": CanonicalStance.WEAKEN,
    "weaken": CanonicalStance.WEAKEN,
    "favorweaken": CanonicalStance.WEAKEN,
    "반대": CanonicalStance.OPPOSE,
    "강한반대": CanonicalStance.OPPOSE,
    "oppose": CanonicalStance.OPPOSE,
    "disagree": CanonicalStance.OPPOSE,
}

_SEPARATORS = re.compile(r"[\s_\-·]+")


def _alias_key(raw_label: str) -> str:
    return _SEPARATORS.sub("", raw_label.strip()).lower()


def normalize_stance(raw_label: Any) -> CanonicalStance:
    if isinstance(raw_label, CanonicalStance):
        return raw_label
    if not isinstance(raw_label, str):
        return CanonicalStance.UNKNOWN
    return STANCE_ALIASES.get(_alias_key(raw_label), CanonicalStance.UNKNOWN)
