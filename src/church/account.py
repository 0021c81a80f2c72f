"""Derive per-actor account state and CHURCH mint eligibility from the ledger.

Everything here is a pure function of (ledger contents, actor, now): the
same inputs always yield the same ChurchAccountState. "now" is passed in
explicitly so scoring never reads the wall clock.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from .config import ScoringPolicy
from .ledger import Ledger
from .models.account import AccountPhase, ChurchAccountState
from .models.deed import DeedCategory, DeedEvent

logger = logging.getLogger(__name__)

QUORUM_ROLES = frozenset({"host", "organiccpuowner", "regulator", "sovereignkernel"})

_ROLE_STRIP_RE = re.compile(r"[^a-z0-9]")


def _normalize_role(role: str) -> str:
    return _ROLE_STRIP_RE.sub("", role.lower())


def roles_quorum(roles: Iterable[str], required: int) -> bool:
    """True if at least `required` distinct recognized quorum roles signed off."""
    present = {_normalize_role(str(role)) for role in roles}
    return len(present & QUORUM_ROLES) >= required


def decay(age_seconds: float, half_life_seconds: float) -> float:
    """Exponential half-life discount; future-dated events count as age 0."""
    age = max(0.0, float(age_seconds))
    return 0.5 ** (age / half_life_seconds)


@dataclass
class _Tally:
    event_count: int = 0
    positive_total: float = 0.0
    good_total: float = 0.0
    harm_count: int = 0
    harm_weight: float = 0.0
    forgiveness_count: int = 0
    forgiveness_weight: float = 0.0


class AccountStateDeriver:
    """Folds an actor's event history into a bounded ChurchAccountState."""

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    def decay(self, age_seconds: float) -> float:
        return decay(age_seconds, self.policy.half_life_seconds)

    def contribution(self, event: DeedEvent, now: int) -> float:
        """Time-discounted positive weight of a single deed (0 for harm or unrecognized)."""
        if event.is_harmful:
            return 0.0
        weight = self.policy.base_weight(event.category)
        if weight <= 0:
            return 0.0
        return weight * self.decay(now - event.timestamp)

    def penalty(self, event: DeedEvent) -> float:
        if event.life_harm_flag:
            return self.policy.life_harm_penalty
        if event.harm_flags:
            return self.policy.flag_penalty
        return 0.0

    def _qualifies_for_forgiveness(self, event: DeedEvent) -> bool:
        if event.is_harmful or event.category is not DeedCategory.FORGIVENESS:
            return False
        roles = event.context_json.get("roles")
        if isinstance(roles, list):
            return roles_quorum(roles, self.policy.role_quorum)
        return True

    def compute(self, ledger: Ledger, actor_id: str, *, now: int) -> Optional[ChurchAccountState]:
        """Derive the account state for actor_id as of `now`.

        Args:
            ledger: Ledger to read (a snapshot is taken)
            actor_id: Actor to evaluate
            now: Evaluation time in epoch seconds

        Returns:
            ChurchAccountState, or None if the actor has no events
        """
        tally = _Tally()

        for event in ledger.events_for(actor_id):
            tally.event_count += 1
            if event.actor_id != actor_id:
                # Being the target of a deed neither earns nor costs anything.
                continue

            if event.is_harmful:
                penalty = self.penalty(event)
                tally.positive_total -= penalty
                tally.harm_count += 1
                tally.harm_weight += penalty
                # Forgiveness only counts after the most recent harm.
                tally.forgiveness_count = 0
                tally.forgiveness_weight = 0.0
                continue

            contribution = self.contribution(event, now)
            tally.positive_total += contribution
            tally.good_total += contribution
            if self._qualifies_for_forgiveness(event):
                tally.forgiveness_count += 1
                tally.forgiveness_weight += contribution

        if tally.event_count == 0:
            return None

        return self._build_state(actor_id, now, tally)

    def _build_state(self, actor_id: str, now: int, tally: _Tally) -> ChurchAccountState:
        policy = self.policy
        eco_score = min(1.0, max(0.0, tally.positive_total))

        quorum_met = (
            tally.harm_weight > 0
            and tally.forgiveness_count >= policy.forgiveness_quorum
            and tally.forgiveness_weight > tally.harm_weight
        )
        mint_eligible = eco_score >= policy.mint_threshold and (tally.harm_weight == 0 or quorum_met)
        harm_norm = min(tally.harm_count / policy.harm_cap, 1.0)

        if mint_eligible:
            phase = AccountPhase.MINT_ELIGIBLE
        elif quorum_met:
            phase = AccountPhase.FORGIVEN
        elif tally.harm_weight > 0 and tally.forgiveness_count > 0:
            phase = AccountPhase.AWAITING_FORGIVENESS
        elif tally.harm_weight > 0:
            phase = AccountPhase.HARM_FLAGGED
        else:
            phase = AccountPhase.ACCUMULATING

        logger.debug(
            f"Derived state for {actor_id}: eco={eco_score:.4f} harm={tally.harm_weight:.2f} "
            f"forgiveness={tally.forgiveness_count} phase={phase.value}"
        )

        return ChurchAccountState(
            actor_id=actor_id,
            evaluated_at=now,
            event_count=tally.event_count,
            cumulative_good_deeds=tally.good_total,
            eco_score=eco_score,
            harm_count=tally.harm_count,
            harm_weight=tally.harm_weight,
            forgiveness_count=tally.forgiveness_count,
            forgiveness_weight=tally.forgiveness_weight,
            forgiveness_quorum_met=quorum_met,
            debt_ceiling=1.0 - harm_norm,
            mint_eligible=mint_eligible,
            phase=phase,
        )

    def can_mint_church(self, state: ChurchAccountState) -> bool:
        return state.mint_eligible

    def compute_mint_amount(self, state: ChurchAccountState) -> float:
        """Symbolic CHURCH amount: linear in eco_score, 0 when not eligible."""
        if not state.mint_eligible:
            return 0.0
        return round(self.policy.mint_scale * state.eco_score, 6)
