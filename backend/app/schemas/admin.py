from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class OnboardingStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_barangays: int
    total_captains: int
    active_captains: int
    total_users: int
    pending_setup: int
