#!/usr/bin/env python3
"""
initializer.py - Builds the saved mapping from IL-2's current devices.txt

Every devices.txt row is paired with a connected device (GUID, then name,
then fuzzy name tokens); the row's index becomes the expected index.
"""

from dataclasses import dataclass, field

from joyorder.controller.devices import DeviceIdentity
from joyorder.controller.matcher import MatchResult, MatchTier, best_match
from joyorder.file.appconfig import DeviceMapping
from joyorder.file.il2config import ExternalDevice

TIER_RANK = {tier: rank for rank, tier in enumerate(MatchTier)}


@dataclass
class InitResult:
    mappings: list[DeviceMapping] = field(default_factory=list)
    unmatched: list[ExternalDevice] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def build_mappings(log, external: list[ExternalDevice], connected: list[DeviceIdentity],
                   aliases=None) -> InitResult:
    """Pair rows with devices. A device claimed by several rows keeps the
    strongest claim (earliest row on a tie); the other rows count as unmatched."""
    result = InitResult()
    claims: dict[str, tuple[ExternalDevice, MatchResult]] = {}
    matches = []

    for record in external:
        match = best_match(
            record.model, connected, name_of=lambda d: d.name,
            target_id=record.guid, id_of=lambda d: d.guid,
            aliases=aliases,
        )
        if not match:
            log.warning(f"[INIT] Could not match {record}")
            result.unmatched.append(record)
            continue

        device = match.candidate
        log.info(f"[INIT] Matched [joy{record.index}] {record.model} -> "
                 f"{device.stable_key} ({match.tier.value})")
        matches.append((record, match))

        prev = claims.get(device.stable_key)
        if prev is None or TIER_RANK[match.tier] < TIER_RANK[prev[1].tier]:
            claims[device.stable_key] = (record, match)

    for record, match in matches:
        device = match.candidate
        winner = claims[device.stable_key][0]
        if winner is not record:
            result.warnings.append(
                f"{device.name} matched both joy{winner.index} ({winner.model}) and "
                f"joy{record.index} ({record.model}); keeping joy{winner.index}")
            result.unmatched.append(record)
            continue
        result.mappings.append(DeviceMapping(
            unique_identifier=device.stable_key,
            name=record.model,
            expected_index=record.index,
            guid=record.guid,
        ))

    for w in result.warnings:
        log.warning(f"[INIT] {w}")
    return result
