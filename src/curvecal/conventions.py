"""
Day count conventions, business day adjustments and rate indices.

Supported Day Counts:
- ACT/360: Actual days / 360 (money markets, OIS, Libor)
- ACT/365: Actual days / 365 (curve time axis)
- ACT/ACT: Actual days / actual days in year
- 30/360: 30 days per month / 360 (fixed legs of Libor swaps)

Business Day Conventions:
- Modified Following: Move to next business day, unless it falls in next month (then previous)
- Following: Move to next business day
- Preceding: Move to previous business day

Rate Indices:
- IborIndex: term rate with a fixed tenor (USD-LIBOR-3M, EUR-EURIBOR-3M)
- OvernightIndex: overnight rate compounded over an accrual period (USD-FED-FUND)
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Union
import calendar


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    ACT_ACT = "ACT/ACT"
    THIRTY_360 = "30/360"
    
    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse day count from string representation."""
        mapping = {
            "ACT/360": cls.ACT_360,
            "ACT360": cls.ACT_360,
            "ACT/365": cls.ACT_365,
            "ACT/365F": cls.ACT_365,
            "ACT365": cls.ACT_365,
            "ACT/ACT": cls.ACT_ACT,
            "ACTACT": cls.ACT_ACT,
            "30/360": cls.THIRTY_360,
            "30360": cls.THIRTY_360,
        }
        key = s.upper().replace(" ", "")
        if key in mapping:
            return mapping[key]
        raise ValueError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    FOLLOWING = "Following"
    PRECEDING = "Preceding"
    UNADJUSTED = "Unadjusted"


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates using specified day count convention.
    
    Args:
        start: Start date
        end: End date
        day_count: Day count convention
        
    Returns:
        Year fraction as float (0.0 when end is not after start)
    """
    if start >= end:
        return 0.0
    
    actual_days = (end - start).days
    
    if day_count == DayCount.ACT_360:
        return actual_days / 360.0
    
    elif day_count == DayCount.ACT_365:
        return actual_days / 365.0
    
    elif day_count == DayCount.ACT_ACT:
        # ISDA ACT/ACT: split by year boundaries
        total = 0.0
        current = start
        while current < end:
            year_end = date(current.year + 1, 1, 1)
            period_end = min(year_end, end)
            days_in_year = 366 if calendar.isleap(current.year) else 365
            total += (period_end - current).days / days_in_year
            current = period_end
        return total
    
    elif day_count == DayCount.THIRTY_360:
        # 30/360 US convention
        d1 = min(start.day, 30)
        d2 = end.day
        if d2 == 31 and d1 == 30:
            d2 = 30
        return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0
    
    else:
        raise ValueError(f"Unknown day count: {day_count}")


def is_business_day(d: date, holidays: Optional[set] = None) -> bool:
    """
    Check if a date is a business day.
    
    Uses weekend-only calendar by default (Saturday/Sunday are non-business days).
    """
    if d.weekday() >= 5:
        return False
    if holidays and d in holidays:
        return False
    return True


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[set] = None
) -> date:
    """
    Adjust a date according to business day convention.
    
    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates
        
    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED or is_business_day(d, holidays):
        return d
    
    if convention == BusinessDayConvention.PRECEDING:
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted -= timedelta(days=1)
        return adjusted
    
    adjusted = d
    while not is_business_day(adjusted, holidays):
        adjusted += timedelta(days=1)
    
    # Modified following stays in the same month
    if convention == BusinessDayConvention.MODIFIED_FOLLOWING and adjusted.month != d.month:
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted -= timedelta(days=1)
    
    return adjusted


@dataclass(frozen=True)
class IborIndex:
    """
    Term rate index fixing for a fixed tenor.
    
    Attributes:
        name: Index identifier, also the key for forward curves and fixings
        currency: Currency of the index
        tenor: Index tenor (e.g. "3M")
        day_count: Accrual day count of the index
    """
    name: str
    currency: str
    tenor: str
    day_count: DayCount = DayCount.ACT_360
    
    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class OvernightIndex:
    """Overnight rate index, compounded over each accrual period."""
    name: str
    currency: str
    day_count: DayCount = DayCount.ACT_360
    
    def __str__(self) -> str:
        return self.name


RateIndex = Union[IborIndex, OvernightIndex]


# Standard indices
USD_FED_FUND = OvernightIndex("USD-FED-FUND", "USD", DayCount.ACT_360)
USD_LIBOR_3M = IborIndex("USD-LIBOR-3M", "USD", "3M", DayCount.ACT_360)
USD_LIBOR_6M = IborIndex("USD-LIBOR-6M", "USD", "6M", DayCount.ACT_360)
EUR_EONIA = OvernightIndex("EUR-EONIA", "EUR", DayCount.ACT_360)
EUR_EURIBOR_3M = IborIndex("EUR-EURIBOR-3M", "EUR", "3M", DayCount.ACT_360)


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "year_fraction",
    "is_business_day",
    "adjust_business_day",
    "IborIndex",
    "OvernightIndex",
    "RateIndex",
    "USD_FED_FUND",
    "USD_LIBOR_3M",
    "USD_LIBOR_6M",
    "EUR_EONIA",
    "EUR_EURIBOR_3M",
]
