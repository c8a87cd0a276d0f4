# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/timing.py
# DESCRIPTION:    Time unit conversion, gap computation and report number formatting
# CREATED:        17.10.2026
#
# The contents of this file are subject to the MIT License
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
# Copyright (c) 2020 Firebird Project (www.firebirdsql.org)
# All Rights Reserved.
#
# Contributor(s): Pavel Císař (original code)
#                 ______________________________________

"""oratrace.timing - Time unit conversion, gap computation and report number formatting.

All times inside oratrace are kept in centiseconds as `~decimal.Decimal` values.
Oracle releases before 9i write centiseconds to the trace, later releases write
microseconds. Conversion is exact fixed-point arithmetic, so large `tim` values
never lose precision.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

#: Divisor for traces that record times in centiseconds
CENTISECONDS = 1
#: Divisor for traces that record times in microseconds
MICROSECONDS = 10000
#: Gaps and unaccounted times below this value (centiseconds) are rounding noise
NOISE_CS = 2
#: Timing Gap Error is significant above this share of total time
GAP_THRESHOLD = Decimal('0.2')
#: Unaccounted-for time is significant above this share of total time
UNACCOUNTED_THRESHOLD = Decimal('0.1')

_ZERO = Decimal(0)

def to_internal_time(raw: str | int, divisor: int = CENTISECONDS) -> Decimal:
    """Converts raw trace time value to centiseconds.

    Arguments:
        raw: Time value as written in trace file.
        divisor: `CENTISECONDS` or `MICROSECONDS`.

    Returns:
        Time in centiseconds. Malformed values convert to zero.
    """
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return _ZERO
    if divisor == MICROSECONDS:
        return value.scaleb(-4)
    return value if divisor == CENTISECONDS else value / divisor

def compute_gap(tim: Decimal, prev_time: Decimal, elapsed: Decimal = _ZERO,
                waits: Decimal = _ZERO, carried: int = 0) -> int:
    """Returns timing gap in whole centiseconds.

    The gap is the time between end of previous call (`prev_time`) and start of this
    call that is not explained by this call's elapsed time or by waits recorded
    since previous call. No gap is computed when previous timestamp is unknown.

    Arguments:
        tim: Timestamp of this call.
        prev_time: Timestamp of previous call, zero when unknown.
        elapsed: Elapsed time of this call.
        waits: Total wait time recorded since previous call.
        carried: Gap carried over from cursor introduction.
    """
    gap = carried
    if prev_time > 0:
        gap = int(carried + tim - (prev_time + elapsed + waits))
    return gap if gap >= NOISE_CS else 0

class TimeTracker:
    """Tracks trace time baseline and the highest timestamp seen.

    When additional trace header is found in the middle of the file (several trace
    files appended together), timestamps of the appended part start from an unrelated
    value. Tracker then shifts the baseline by the discontinuity, so wall clock
    elapsed time spans the whole file.
    """
    def __init__(self):
        #: Time unit divisor
        self.divisor: int = CENTISECONDS
        #: Timestamp of first parsed cursor
        self.first_time: Decimal = _ZERO
        #: Highest timestamp seen
        self.last_tim: Decimal = _ZERO
        self.__offset_pending: bool = False
    def convert(self, raw: str) -> Decimal:
        """Converts raw time value using current time unit.
        """
        return to_internal_time(raw, self.divisor)
    def start(self, tim: Decimal) -> None:
        """Sets time baseline if it's not set yet.
        """
        if self.first_time == 0:
            self.first_time = tim
    def observe(self, tim: Decimal) -> None:
        """Registers timestamp from trace record.
        """
        if tim > self.last_tim:
            if self.__offset_pending:
                self.first_time += tim - self.last_tim
                self.__offset_pending = False
            self.last_tim = tim
    def new_header(self) -> None:
        """Registers additional trace header found in the middle of the file.
        """
        if self.first_time != 0:
            self.__offset_pending = True
    @property
    def grand_elapsed(self) -> int:
        """Wall clock time in whole centiseconds.
        """
        if self.first_time == 0:
            return 0
        return int(self.last_tim - self.first_time)

def wall_clock(start: datetime | None, first_time: Decimal, tim: Decimal) -> str:
    """Returns `mm/dd/yy hh:mm:ss` wall clock time of trace timestamp.

    Arguments:
        start: Session start date and time, None if not known.
        first_time: Trace time baseline.
        tim: Timestamp to convert.

    Returns:
        Formatted stamp, or empty string when session start is not known.
    """
    if start is None:
        return ''
    return (start + timedelta(seconds=int((tim - first_time) / 100))).strftime('%m/%d/%y %H:%M:%S')

def kmc(value: int | float | Decimal, width: int) -> str:
    """Formats number to fit into `width` characters, with K/M/G/T suffix if needed.

    Numbers that fit are right aligned. Larger numbers are scaled by powers of 1024.
    For width 3, values between 100K and 999K are shown as `.nM` (and similarly `.nG`).
    Values that cannot fit at all are replaced by `*` characters.

    Example::

        kmc(12, 4)       # '  12'
        kmc(123456, 4)   # '120K'
        kmc(150000, 3)   # '.1M'
    """
    if len(str(int(value))) <= width:
        return f'{int(value):>{width}}'
    kilo = int(value / 1024)
    if width == 3 and 100 <= kilo <= 999: # noqa: PLR2004
        return f'.{int(value / 102400)}M'
    if kilo <= 9999 and len(str(kilo)) < width: # noqa: PLR2004
        return f'{kilo:>{width - 1}}K'
    mega = int(value / 1048576)
    if width == 3 and 100 <= mega <= 999: # noqa: PLR2004
        return f'.{int(value / 104857600)}G'
    if len(str(mega)) < width:
        return f'{mega:>{width - 1}}M'
    giga = int(value / 1073741824)
    if len(str(giga)) < width:
        return f'{giga:>{width - 1}}G'
    tera = int(value / 1099511627776)
    if len(str(tera)) < width:
        return f'{tera:>{width - 1}}T'
    return '*' * width

def percent(part: int | Decimal, whole: int | Decimal) -> int:
    """Returns `part` as whole percent of `whole`, truncated to one decimal place first.

    Returns zero when `whole` is zero.
    """
    if not whole:
        return 0
    return int(1000 * part / whole) // 10
