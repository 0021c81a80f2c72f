"""Pydantic models for derived account state."""

from enum import Enum

from pydantic import BaseModel, Field


class AccountPhase(str, Enum):
    """Per-actor classification, recomputed from the ledger on every query."""

    ACCUMULATING = "accumulating"
    HARM_FLAGGED = "harm_flagged"
    AWAITING_FORGIVENESS = "awaiting_forgiveness"
    FORGIVEN = "forgiven"
    MINT_ELIGIBLE = "mint_eligible"


class ChurchAccountState(BaseModel):
    """Transient view of an actor's standing.

    Never stored; AccountStateDeriver.compute rebuilds it from the full
    event history.
    """

    actor_id: str
    evaluated_at: int = Field(description="The 'now' the state was derived for (epoch seconds)")
    event_count: int = Field(ge=0, description="Events involving the actor, as actor or target")
    cumulative_good_deeds: float = Field(ge=0.0, description="Time-discounted positive total before penalties")
    eco_score: float = Field(ge=0.0, le=1.0)
    harm_count: int = Field(ge=0)
    harm_weight: float = Field(ge=0.0)
    forgiveness_count: int = Field(ge=0, description="Qualifying forgiveness events after the latest harm")
    forgiveness_weight: float = Field(ge=0.0)
    forgiveness_quorum_met: bool
    debt_ceiling: float = Field(ge=0.0, le=1.0)
    mint_eligible: bool
    phase: AccountPhase

    model_config = {"frozen": True}
