"""
modules/missions/evaluator.py

Purpose
-------
Recompute mission progress against a data snapshot and hand out rewards.

- ``evaluate`` skips claimed missions, recomputes ``progress`` for the rest and
  reports only the missions whose ``is_complete`` flipped false -> true on this
  pass. Completion is sticky: a completed mission stays completed even if its
  measured progress later drops (e.g. stock sold off after "Full Shelf").
- ``claim`` is one-way and idempotent: the reward comes back exactly once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..state.models import Mission, MissionSnapshot

_log = logging.getLogger(__name__)

__all__ = ["Reward", "evaluate", "claim"]


@dataclass(frozen=True)
class Reward:
    mission_id: str
    rep: int
    sp: int


def evaluate(
    missions: Sequence[Mission],
    snapshot: MissionSnapshot,
) -> Tuple[Tuple[Mission, ...], List[Mission]]:
    """Return (updated missions, newly completed missions)."""
    updated: List[Mission] = []
    newly_completed: List[Mission] = []
    for mission in missions:
        if mission.is_claimed or mission.check is None:
            updated.append(mission)
            continue
        progress = float(mission.check(snapshot))
        complete = mission.is_complete or progress >= mission.goal
        new_mission = replace(mission, progress=progress, is_complete=complete)
        if complete and not mission.is_complete:
            newly_completed.append(new_mission)
            _log.info("mission %s complete (progress=%s goal=%s)", mission.id, progress, mission.goal)
        updated.append(new_mission)
    return tuple(updated), newly_completed


def claim(missions: Sequence[Mission], mission_id: str) -> Tuple[Tuple[Mission, ...], Optional[Reward]]:
    """
    Mark a completed mission as claimed.

    Returns the unchanged missions and ``None`` when there is nothing to claim
    (unknown id, not complete yet, or already claimed).
    """
    target = next((m for m in missions if m.id == mission_id), None)
    if target is None or not target.is_complete or target.is_claimed:
        return tuple(missions), None

    reward = Reward(mission_id=target.id, rep=target.reward_rep, sp=target.reward_sp)
    out = tuple(replace(m, is_claimed=True) if m.id == mission_id else m for m in missions)
    return out, reward
