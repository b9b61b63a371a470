"""
Date utilities for rates calculations.

Provides:
- Tenor parsing and date arithmetic
- Schedule generation for swap legs
- Accrual schedules with year fractions
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple
import calendar
import re

from .conventions import (
    BusinessDayConvention,
    DayCount,
    adjust_business_day,
    is_business_day,
    year_fraction
)


class DateUtils:
    """Utility class for date manipulation in rates contexts."""
    
    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)
    
    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).
        
        Args:
            tenor: Tenor string like "1D", "3M", "2Y"
            
        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y
            
        Raises:
            ValueError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")
        
        return int(match.group(1)), match.group(2).upper()
    
    @staticmethod
    def add_tenor(start: date, tenor: str, holidays: Optional[set] = None) -> date:
        """
        Add a tenor to a date.
        
        Day tenors count business days; week, month and year tenors are
        calendar arithmetic and are not adjusted.
        
        Args:
            start: Starting date
            tenor: Tenor string (e.g., "2D", "3M", "2Y")
            holidays: Optional holiday calendar
            
        Returns:
            End date
        """
        amount, unit = DateUtils.parse_tenor(tenor)
        
        if unit == 'D':
            result = start
            days_added = 0
            while days_added < amount:
                result += timedelta(days=1)
                if is_business_day(result, holidays):
                    days_added += 1
            return result
        
        if unit == 'W':
            return start + timedelta(weeks=amount)
        
        if unit == 'M':
            return _add_months(start, amount)
        
        return _add_months(start, 12 * amount)
    
    @staticmethod
    def tenor_to_years(tenor: str) -> float:
        """Convert tenor to approximate year fraction."""
        amount, unit = DateUtils.parse_tenor(tenor)
        
        if unit == 'D':
            return amount / 365.0
        elif unit == 'W':
            return amount * 7 / 365.0
        elif unit == 'M':
            return amount / 12.0
        return float(amount)
    
    @staticmethod
    def generate_schedule(
        start: date,
        end: date,
        frequency: int,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[set] = None
    ) -> List[date]:
        """
        Generate a payment schedule between start and end dates.
        
        Dates are rolled backward from the end date, so any stub sits at the
        front of the schedule.
        
        Args:
            start: Schedule start (accrual start)
            end: Schedule end (maturity)
            frequency: Payments per year (1=annual, 2=semi, 4=quarterly, 12=monthly)
            convention: Business day adjustment
            holidays: Holiday calendar
            
        Returns:
            List of payment dates (adjusted for business days), excluding start
        """
        if frequency <= 0 or 12 % frequency != 0:
            raise ValueError(f"Unsupported payment frequency: {frequency}")
        
        months_per_period = 12 // frequency
        
        unadjusted = [end]
        periods = 1
        while True:
            prev_date = _add_months(end, -months_per_period * periods)
            if prev_date <= start:
                break
            unadjusted.insert(0, prev_date)
            periods += 1
        
        return [adjust_business_day(d, convention, holidays) for d in unadjusted]


@dataclass
class ScheduleInfo:
    """Container for schedule with accrual information."""
    payment_dates: List[date]
    accrual_starts: List[date]
    accrual_ends: List[date]
    year_fractions: List[float]
    day_count: DayCount
    
    def __len__(self) -> int:
        return len(self.payment_dates)


def generate_accrual_schedule(
    start: date,
    end: date,
    frequency: int,
    day_count: DayCount,
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
    holidays: Optional[set] = None
) -> ScheduleInfo:
    """
    Generate an accrual schedule for one swap leg.
    
    Each period accrues from the previous adjusted date to the next and pays
    on its adjusted end date.
    
    Args:
        start: Effective date of the leg
        end: Maturity of the leg
        frequency: Payments per year
        day_count: Accrual day count
        convention: Business day adjustment
        holidays: Holiday calendar
        
    Returns:
        ScheduleInfo with payment dates and accrual fractions
    """
    if end <= start:
        raise ValueError(f"Schedule end {end} must be after start {start}")
    
    payment_dates = DateUtils.generate_schedule(start, end, frequency, convention, holidays)
    
    accrual_starts = []
    accrual_ends = []
    yfs = []
    prev = start
    for pmt_date in payment_dates:
        accrual_starts.append(prev)
        accrual_ends.append(pmt_date)
        yfs.append(year_fraction(prev, pmt_date, day_count))
        prev = pmt_date
    
    return ScheduleInfo(
        payment_dates=payment_dates,
        accrual_starts=accrual_starts,
        accrual_ends=accrual_ends,
        year_fractions=yfs,
        day_count=day_count
    )


def _add_months(d: date, months: int) -> date:
    """Add calendar months, clipping the day to the end of the target month."""
    total = d.month - 1 + months
    year = d.year + total // 12
    month = total % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


__all__ = [
    "DateUtils",
    "ScheduleInfo",
    "generate_accrual_schedule",
]
