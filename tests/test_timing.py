# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           tests/test_timing.py
# DESCRIPTION:    Tests for oratrace.timing module
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

"""oratrace - Tests for oratrace.timing module
"""

from datetime import datetime
from decimal import Decimal

from oratrace.timing import *

def test_01_microseconds_to_centiseconds():
    """Microsecond values are converted to centiseconds without precision loss."""
    assert to_internal_time('12345678', MICROSECONDS) == Decimal('1234.5678')
    assert to_internal_time('123456789012345678', MICROSECONDS) == Decimal('12345678901234.5678')

def test_02_units_agree():
    """Same duration written in both time units converts to the same value."""
    assert to_internal_time('12340000', MICROSECONDS) == to_internal_time('1234', CENTISECONDS)
    assert to_internal_time(1234) == Decimal(1234)

def test_03_malformed_time():
    """Malformed time values convert to zero."""
    assert to_internal_time('', MICROSECONDS) == 0
    assert to_internal_time('abc') == 0

def test_04_gap():
    """Timing gap is the unexplained time between calls."""
    assert compute_gap(Decimal(200), Decimal(100), Decimal(50), Decimal(10)) == 40
    # Unknown previous timestamp
    assert compute_gap(Decimal(200), Decimal(0), Decimal(50)) == 0
    assert compute_gap(Decimal(200), Decimal(0), carried=5) == 5

def test_05_gap_noise_and_negative():
    """Gaps below noise floor and negative gaps are clamped to zero."""
    assert compute_gap(Decimal(101), Decimal(100)) == 0
    assert compute_gap(Decimal(102), Decimal(100)) == NOISE_CS
    assert compute_gap(Decimal(100), Decimal(200), Decimal(10)) == 0

def test_06_tracker():
    """Time tracker keeps baseline and highest timestamp."""
    tracker = TimeTracker()
    assert tracker.grand_elapsed == 0
    tracker.divisor = MICROSECONDS
    tim = tracker.convert('1000000')
    assert tim == 100
    tracker.observe(tim)
    tracker.start(tim)
    tracker.start(Decimal(500))
    assert tracker.first_time == 100
    tracker.observe(Decimal(150))
    tracker.observe(Decimal(120))
    assert tracker.last_tim == 150
    assert tracker.grand_elapsed == 50

def test_07_tracker_appended_header():
    """Discontinuity after extra trace header shifts the baseline."""
    tracker = TimeTracker()
    tracker.start(Decimal(100))
    tracker.observe(Decimal(100))
    tracker.observe(Decimal(300))
    tracker.new_header()
    tracker.observe(Decimal(10000))
    tracker.observe(Decimal(10200))
    assert tracker.first_time == Decimal(100) + Decimal(10000) - Decimal(300)
    assert tracker.grand_elapsed == 400

def test_08_wall_clock():
    """Trace timestamps are converted to wall clock stamps."""
    start = datetime(2024, 3, 1, 10, 0, 0)
    assert wall_clock(start, Decimal(100), Decimal(100)) == '03/01/24 10:00:00'
    assert wall_clock(start, Decimal(100), Decimal(6100)) == '03/01/24 10:01:00'
    assert wall_clock(None, Decimal(100), Decimal(6100)) == ''

def test_09_kmc():
    """Large numbers are scaled to fit into column."""
    assert kmc(12, 4) == '  12'
    assert kmc(9999, 4) == '9999'
    assert kmc(123456, 4) == '120K'
    assert kmc(150000, 3) == '.1M'
    assert kmc(5 * 1048576, 4) == '  5M'
    assert kmc(10 ** 20, 2) == '**'

def test_10_percent():
    """Percentages are truncated to whole numbers."""
    assert percent(1, 3) == 33
    assert percent(2, 3) == 66
    assert percent(5, 0) == 0
    assert percent(Decimal(10), Decimal(10)) == 100
