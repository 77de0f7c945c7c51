#!/usr/bin/env python3
"""
matcher.py - Loose device-name matching between the OS and IL-2 vocabularies

IL-2 stores e.g. "VKBsim Gladiator EVO R" while Windows reports
"VKB Gladiator EVO R". Tiers, first hit wins:
    EXACT        identifiers (GUID / unique id) equal, case-insensitive
    CONTAINS     one normalized name contains the other
    FUZZY_TOKEN  at least half of the target's significant words occur
Permissive on purpose: two identical models are indistinguishable by name.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from joyorder.file.settings import DEFAULT_ALIASES

TOKEN_SPLIT_RE = re.compile(r"[ \-_]")
MIN_TOKEN_LEN = 3


class MatchTier(Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    FUZZY_TOKEN = "fuzzy_token"
    NO_MATCH = "no_match"


@dataclass
class MatchResult:
    candidate: Optional[Any]
    tier: MatchTier

    def __bool__(self):
        return self.tier is not MatchTier.NO_MATCH


def normalize_name(name: str, aliases=None) -> str:
    aliases = DEFAULT_ALIASES if aliases is None else aliases
    name = name or ""
    for src, dst in aliases.items():
        name = name.replace(src, dst)
    return name.strip()


def significant_tokens(name: str) -> list[str]:
    return [t for t in TOKEN_SPLIT_RE.split(name) if len(t) >= MIN_TOKEN_LEN]


def _ids_equal(a, b) -> bool:
    return bool(a) and bool(b) and a.lower() == b.lower()


def _contains(a: str, b: str) -> bool:
    if not a or not b:
        return False
    a, b = a.lower(), b.lower()
    return a in b or b in a


def _fuzzy(target_tokens, candidate: str) -> bool:
    if not target_tokens:
        return False
    candidate = candidate.lower()
    hits = sum(1 for t in target_tokens if t.lower() in candidate)
    return hits >= math.ceil(len(target_tokens) / 2)


def match_tier(target_name: str, candidate_name: str,
               target_id: Optional[str] = None, candidate_id: Optional[str] = None,
               aliases=None, fuzzy: bool = True) -> MatchTier:
    """Classify a single (target, candidate) pair."""
    if _ids_equal(target_id, candidate_id):
        return MatchTier.EXACT
    target = normalize_name(target_name, aliases)
    candidate = normalize_name(candidate_name, aliases)
    if _contains(target, candidate):
        return MatchTier.CONTAINS
    if fuzzy and _fuzzy(significant_tokens(target), candidate):
        return MatchTier.FUZZY_TOKEN
    return MatchTier.NO_MATCH


def equivalent(name_a: str, name_b: str, aliases=None) -> bool:
    return match_tier(name_a, name_b, aliases=aliases) is not MatchTier.NO_MATCH


def best_match(target_name: str, candidates, name_of: Callable[[Any], str],
               target_id: Optional[str] = None,
               id_of: Optional[Callable[[Any], str]] = None,
               aliases=None, fuzzy: bool = True) -> MatchResult:
    """Pick one candidate for `target_name`.

    Each tier is tried across all candidates before falling through to the
    next one; within a tier the first candidate (input order) wins."""
    candidates = list(candidates)

    if target_id and id_of is not None:
        for c in candidates:
            if _ids_equal(target_id, id_of(c)):
                return MatchResult(c, MatchTier.EXACT)

    target = normalize_name(target_name, aliases)
    normalized = [(c, normalize_name(name_of(c), aliases)) for c in candidates]

    for c, name in normalized:
        if _contains(target, name):
            return MatchResult(c, MatchTier.CONTAINS)

    if fuzzy:
        tokens = significant_tokens(target)
        for c, name in normalized:
            if _fuzzy(tokens, name):
                return MatchResult(c, MatchTier.FUZZY_TOKEN)

    return MatchResult(None, MatchTier.NO_MATCH)
