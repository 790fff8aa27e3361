# File: smartpark/domain/strategies.py
"""
Pricing Strategies for the SmartPark Allocation Engine

The fee computation is encapsulated behind PricingStrategy so the service
never hard-codes billing arithmetic. The facility charges a flat hourly
rate; monthly pass holders park for free.
"""

from abc import ABC, abstractmethod
import logging

from .models import Money, ParkingDuration


# ============================================================================
# STRATEGY INTERFACES
# ============================================================================

class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    Defines the interface for fee calculation algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def calculate_parking_fee(
        self,
        duration: ParkingDuration,
        has_monthly_pass: bool = False
    ) -> Money:
        """
        Calculate the fee for a completed stay
        Returns: Calculated fee
        """
        pass

    def get_strategy_name(self) -> str:
        """Get human-readable strategy name"""
        return self.__class__.__name__.replace("PricingStrategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Pricing"


# ============================================================================
# PRICING STRATEGIES
# ============================================================================

class FlatHourlyPricingStrategy(PricingStrategy):
    """
    Strategy: flat hourly rate
    - Every started hour is billed in full (ceiling)
    - A zero-length stay costs nothing
    - Monthly pass holders are exempt
    """

    def __init__(self, hourly_rate: Money):
        super().__init__()
        self.hourly_rate = hourly_rate

    def calculate_parking_fee(
        self,
        duration: ParkingDuration,
        has_monthly_pass: bool = False
    ) -> Money:
        if has_monthly_pass:
            self.logger.debug("Monthly pass holder, no charge")
            return Money.zero(self.hourly_rate.currency)

        fee = self.hourly_rate * duration.billable_hours
        self.logger.debug(
            f"Billed {duration.billable_hours} hour(s) at {self.hourly_rate.format()}: {fee.format()}"
        )
        return fee
