import math
from decimal import ROUND_HALF_UP, Decimal

from config import PRICE_TYPE_DAY, PRICE_TYPE_MONTH
from parking.utils.time_utils import calculate_days, calculate_hours


class BillingService:
    DAYS_PER_MONTH = 30

    @staticmethod
    def billable_units(price_type, start, end):
        """Started hours, days or 30-day months between `start` and `end`."""
        if price_type == PRICE_TYPE_DAY:
            return calculate_days(start, end)
        if price_type == PRICE_TYPE_MONTH:
            return math.ceil(calculate_days(start, end) / BillingService.DAYS_PER_MONTH)
        return calculate_hours(start, end)

    @staticmethod
    def calculate_total(spot, start, end):
        units = BillingService.billable_units(spot.price_type, start, end)
        total = Decimal(spot.price) * units
        return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
