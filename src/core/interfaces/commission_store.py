"""Abstract interfaces for commission rules and the commission ledger."""

from abc import ABC, abstractmethod

from src.core.entities.commission import Commission, CommissionPayStatus, CommissionRule


class ICommissionStore(ABC):
    """Interface for commission persistence."""

    @abstractmethod
    async def create_commission(self, commission: Commission) -> Commission:
        """
        Insert a commission.

        Raises DuplicateCommissionError when the sale already has an
        active (non-canceled) commission.
        """
        pass

    @abstractmethod
    async def get_commission(self, commission_id: int) -> Commission | None:
        """Get commission by ID."""
        pass

    @abstractmethod
    async def get_active_commission(self, sale_id: int) -> Commission | None:
        """Get the non-canceled commission of a sale, if any."""
        pass

    @abstractmethod
    async def list_sale_commissions(self, sale_id: int) -> list[Commission]:
        """All commissions ever recorded for a sale, canceled included."""
        pass

    @abstractmethod
    async def update_commission(self, commission: Commission) -> Commission:
        """Update pay status, notes and receipt."""
        pass

    @abstractmethod
    async def list_commissions(
        self,
        limit: int = 100,
        offset: int = 0,
        seller_id: str | None = None,
        pay_status: CommissionPayStatus | None = None,
    ) -> list[Commission]:
        """List commissions, newest first."""
        pass


class ICommissionRuleStore(ABC):
    """Interface for commission rule configuration."""

    @abstractmethod
    async def list_active_rules(self) -> list[CommissionRule]:
        """Active rules in creation order."""
        pass

    @abstractmethod
    async def list_rules(self) -> list[CommissionRule]:
        """All rules in creation order."""
        pass

    @abstractmethod
    async def get_rule(self, rule_id: int) -> CommissionRule | None:
        """Get rule by ID."""
        pass

    @abstractmethod
    async def create_rule(self, rule: CommissionRule) -> CommissionRule:
        """Create a rule."""
        pass

    @abstractmethod
    async def update_rule(self, rule: CommissionRule) -> CommissionRule:
        """Update a rule (percent, base, active flag)."""
        pass
