"""
Link Eligibility Service

Decides whether a link may receive redirect traffic.

Eligibility is an allow-list: only `active` links are eligible. `inactive`,
`pending` and any status added later are all reported as ineligible, so a new
lifecycle state never starts receiving traffic by accident.

Only the tracked redirect uses this check. Recording a client-side click
requires the link to exist, not to be eligible.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from app.db.interface import LinkStore
from app.db.models import LinkStatus


class Eligibility(Enum):
    NOT_FOUND = "not_found"
    INELIGIBLE = "ineligible"
    ELIGIBLE = "eligible"


@dataclass(frozen=True)
class EligibilityResult:
    outcome: Eligibility
    destination: Optional[str] = None  # Set only when ELIGIBLE

    @property
    def is_eligible(self) -> bool:
        return self.outcome is Eligibility.ELIGIBLE


class LinkEligibilityService:
    """Applies the redirect eligibility rule to links from a LinkStore."""

    def __init__(self, link_store: LinkStore):
        self.link_store = link_store

    async def check(self, link_id: UUID) -> EligibilityResult:
        link = await self.link_store.find_by_id(link_id)

        if link is None:
            return EligibilityResult(Eligibility.NOT_FOUND)

        if link.status != LinkStatus.active.value:
            return EligibilityResult(Eligibility.INELIGIBLE)

        return EligibilityResult(Eligibility.ELIGIBLE, destination=link.affiliate_url)
