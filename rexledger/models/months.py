"""
Month Span

Maps calendar months onto snapshot row indexes.

With a span starting in January of `start_year` and covering `years`
years there are M = 12 * years month rows, indexed 1..M, plus the
terminal all-time row at M + 1. Index 0 is the opening balance before
the first month; it is never stored and always reads as zero.
"""

import calendar
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from rexledger.exceptions import OutOfRangeError

OPENING_INDEX = 0


class MonthSpan(BaseModel):
    """The fixed range of months materialized when the ledger was created."""
    model_config = ConfigDict(frozen=True)

    start_year: int = Field(..., ge=1, le=9000)
    years: int = Field(..., ge=1, le=100)

    @property
    def total_months(self) -> int:
        """M: number of month rows."""
        return self.years * 12

    @property
    def terminal_index(self) -> int:
        """Index of the all-time row (M + 1)."""
        return self.total_months + 1

    @property
    def end_year(self) -> int:
        """Last calendar year covered (inclusive)."""
        return self.start_year + self.years - 1

    @property
    def year_labels(self) -> list[str]:
        return [str(year) for year in range(self.start_year, self.end_year + 1)]

    def contains(self, day: date) -> bool:
        return self.start_year <= day.year <= self.end_year

    def month_index(self, year: int, month: int) -> int:
        """
        Row index for a calendar month.

        Raises OutOfRangeError for months outside the span.
        """
        if not 1 <= month <= 12:
            raise OutOfRangeError(f"Month must be between 1 and 12, got {month}")
        if not self.start_year <= year <= self.end_year:
            raise OutOfRangeError(
                f"Year {year} is outside the ledger range "
                f"{self.start_year}-{self.end_year}"
            )
        return (year - self.start_year) * 12 + month

    def index_for(self, day: date) -> int:
        """Row index of the month a date falls in."""
        return self.month_index(day.year, day.month)

    def check_index(self, index: int) -> int:
        """Validate a row index; 0 (opening) and M + 1 (all time) are allowed."""
        if not OPENING_INDEX <= index <= self.terminal_index:
            raise OutOfRangeError(
                f"Month index {index} is outside 0..{self.terminal_index}"
            )
        return index

    def is_terminal(self, index: int) -> bool:
        return index == self.terminal_index

    def year_month(self, index: int) -> tuple[int, int]:
        """Inverse of month_index for month rows 1..M."""
        if not 1 <= index <= self.total_months:
            raise OutOfRangeError(f"Index {index} is not a month row")
        year_offset, month_offset = divmod(index - 1, 12)
        return self.start_year + year_offset, month_offset + 1

    def bounds(self, index: int) -> tuple[date, date]:
        """First and last day of a month row."""
        year, month = self.year_month(index)
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day)

    def label(self, index: int) -> str:
        """Human label, e.g. 'July 2022' or 'All time'."""
        self.check_index(index)
        if index == OPENING_INDEX:
            return "Opening"
        if self.is_terminal(index):
            return "All time"
        year, month = self.year_month(index)
        return f"{calendar.month_name[month]} {year}"
