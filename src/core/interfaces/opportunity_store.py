"""Abstract interface for opportunity storage."""

from abc import ABC, abstractmethod

from src.core.entities.opportunity import Opportunity, OpportunityStage


class IOpportunityStore(ABC):
    """Interface for opportunity and proposal line item persistence."""

    @abstractmethod
    async def create_opportunity(self, opportunity: Opportunity) -> Opportunity:
        """Create an opportunity with its line items."""
        pass

    @abstractmethod
    async def get_opportunity(self, opportunity_id: int) -> Opportunity | None:
        """Get opportunity by ID with items."""
        pass

    @abstractmethod
    async def update_opportunity(self, opportunity: Opportunity) -> Opportunity:
        """Update the opportunity row and replace its item set."""
        pass

    @abstractmethod
    async def delete_opportunity(self, opportunity_id: int) -> bool:
        """Delete opportunity and its items."""
        pass

    @abstractmethod
    async def list_opportunities(
        self,
        limit: int = 100,
        offset: int = 0,
        seller_id: str | None = None,
        client_id: str | None = None,
        stage: OpportunityStage | None = None,
    ) -> list[Opportunity]:
        """List opportunities, newest first."""
        pass
