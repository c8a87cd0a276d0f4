# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           tests/test_cursors.py
# DESCRIPTION:    Tests for oratrace.cursors module
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

"""oratrace - Tests for oratrace.cursors module
"""

from decimal import Decimal

from oratrace.cursors import *
from oratrace.records import RecordKind, Wait

def make_wait(line: int, ela: int=2) -> Wait:
    return Wait('db file sequential read', 4, 100, 1, Decimal(ela), line, 0)

def test_01_introduce():
    """New identity allocates new cursor with sequential index."""
    registry = CursorRegistry()
    first, is_new = registry.introduce('7', '300')
    assert is_new
    assert first.index == 1
    second, is_new = registry.introduce('8', '400')
    assert is_new
    assert second.index == 2
    assert len(registry) == 2
    assert registry.last is second
    assert registry.get(1) is first

def test_02_reuse():
    """Same cursor number with different hash value is a different cursor."""
    registry = CursorRegistry()
    first, _ = registry.introduce('7', '300')
    second, is_new = registry.introduce('7', '400')
    assert is_new
    assert first.index != second.index
    assert registry.resolve('7') is second
    again, is_new = registry.introduce('7', '300')
    assert not is_new
    assert again is first
    assert registry.resolve('7') is first

def test_03_resolve_unknown():
    """Cursor number that was never introduced resolves to None."""
    registry = CursorRegistry()
    assert registry.resolve('12') is None

def test_04_zero_cursor():
    """Cursor #0 is created on first use."""
    registry = CursorRegistry()
    cursor = registry.resolve('0')
    assert cursor.index == ZERO_CURSOR
    assert registry.resolve('0') is cursor
    assert registry.cursors[0] is cursor

def test_05_unaccounted_cursor():
    """Unaccounted sentinel is shared."""
    registry = CursorRegistry()
    cursor = registry.unaccounted_cursor()
    assert cursor.index == UNACCOUNTED_CURSOR
    assert cursor.curno == '0'
    assert cursor.hv == '1'
    assert registry.unaccounted_cursor() is cursor

def test_06_pending():
    """Pending waits are claimed by cursor number in trace order."""
    registry = CursorRegistry()
    registry.defer('12', RecordKind.WAIT, make_wait(10))
    registry.defer('5', RecordKind.WAIT, make_wait(11))
    registry.defer('12', RecordKind.WAIT, make_wait(12))
    claimed = registry.claim_pending('12')
    assert [p.wait.line for p in claimed] == [10, 12]
    assert registry.claim_pending('12') == []
    rest = registry.drain_pending()
    assert [p.curno for p in rest] == ['5']
    assert registry.drain_pending() == []
