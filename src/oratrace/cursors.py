# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/cursors.py
# DESCRIPTION:    Cursor model, cursor identity resolution and pending waits
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

"""oratrace.cursors - Cursor model, cursor identity resolution and pending waits.

Oracle reuses small cursor numbers for different statements over the lifetime of
a session. `CursorRegistry` maps the cursor number written in the trace together
with the SQL hash value to a stable internal cursor index. Lookups that carry only
the cursor number always return the most recently introduced cursor with that
number.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal

from firebird.base.collections import DataList

from .records import RecordKind, Wait

log = logging.getLogger(__name__)

#: Internal index of the cursor #0 sentinel
ZERO_CURSOR = 0
#: Internal index of the sentinel for activity on cursors that were never introduced
UNACCOUNTED_CURSOR = 9999

@dataclass
class Cursor:
    """Parsed SQL statement instance as tracked by the trace file.
    """
    #: Internal cursor index
    index: int
    #: Cursor number used in trace file
    curno: str
    #: SQL hash value
    hv: str
    #: Oracle command type code
    oct: int | None = None
    #: Parsing user id
    uid: int | None = None
    #: Recursive depth
    dep: int = 0
    #: Timestamp of last introduction
    parsing_tim: Decimal = Decimal(0)
    #: Gap carried to next PARSE call (whole centiseconds)
    gap: int = 0
    #: Parse error code
    err: int | None = None
    #: SQL ID
    sqlid: str | None = None
    #: Trace line of first introduction
    line: int = 0
    #: Number of bind variables, continuation lines of long values are not counted
    bind_count: int = 0

@dataclass(frozen=True)
class PendingWait:
    """Wait recorded for a cursor number that was not introduced yet.
    """
    #: Cursor number used in trace file
    curno: str
    #: `RecordKind.WAIT` or `RecordKind.OBJECT_WAIT`
    kind: RecordKind
    #: Wait data
    wait: Wait

class CursorRegistry:
    """Cursor Identity Resolver.

    Holds all cursors seen in the trace, the cursor number bindings in order of
    introduction, and the buffer of pending waits.
    """
    def __init__(self):
        #: All cursors, keyed by internal index
        self.cursors: DataList[Cursor] = DataList(type_spec=Cursor, key_expr='item.index')
        #: Most recently introduced cursor
        self.last: Cursor | None = None
        self.__by_number: dict[str, list[Cursor]] = {}
        self.__by_identity: dict[tuple[str, str], Cursor] = {}
        self.__pending: deque[PendingWait] = deque()
        self.__next_index: int = 1
    def __len__(self) -> int:
        return len(self.cursors)
    def __iter__(self) -> Iterator[Cursor]:
        return iter(self.cursors)
    def get(self, index: int) -> Cursor | None:
        """Returns cursor with internal index, or None.
        """
        return self.cursors.get(index)
    def introduce(self, curno: str, hv: str) -> tuple[Cursor, bool]:
        """Binds trace cursor number and hash value to cursor.

        Arguments:
            curno: Cursor number used in trace file.
            hv: SQL hash value.

        Returns:
            Tuple with cursor and flag that is True when new cursor was allocated.
        """
        cursor = self.__by_identity.get((curno, hv))
        is_new = cursor is None
        if is_new:
            cursor = Cursor(self.__next_index, curno, hv)
            self.__next_index += 1
            self.cursors.append(cursor)
            self.__by_identity[(curno, hv)] = cursor
            log.debug("Storing cursor #%s in %d", curno, cursor.index)
        bindings = self.__by_number.setdefault(curno, [])
        if cursor in bindings:
            bindings.remove(cursor)
        bindings.append(cursor)
        self.last = cursor
        return cursor, is_new
    def resolve(self, curno: str) -> Cursor | None:
        """Returns most recently introduced cursor for trace cursor number.

        Cursor number `0` that was never introduced resolves to the zero cursor sentinel,
        which is created on first use.

        Returns:
            Cursor, or None when cursor number was never introduced.
        """
        if bindings := self.__by_number.get(curno):
            return bindings[-1]
        if curno == '0':
            return self.zero_cursor()
        return None
    def zero_cursor(self) -> Cursor:
        """Returns cursor #0 sentinel.
        """
        cursor = self.cursors.get(ZERO_CURSOR)
        if cursor is None:
            cursor = Cursor(ZERO_CURSOR, '0', '0', oct=0)
            self.cursors.insert(0, cursor)
        return cursor
    def unaccounted_cursor(self) -> Cursor:
        """Returns sentinel cursor for activity without a matching cursor.
        """
        cursor = self.cursors.get(UNACCOUNTED_CURSOR)
        if cursor is None:
            cursor = Cursor(UNACCOUNTED_CURSOR, '0', '1', oct=0)
            self.cursors.append(cursor)
        return cursor
    def defer(self, curno: str, kind: RecordKind, wait: Wait) -> None:
        """Buffers wait for cursor number that was not introduced yet.
        """
        self.__pending.append(PendingWait(curno, kind, wait))
    def claim_pending(self, curno: str) -> list[PendingWait]:
        """Removes and returns pending waits for cursor number, in trace order.

        Pending waits for other cursor numbers stay buffered.
        """
        claimed = [p for p in self.__pending if p.curno == curno]
        if claimed:
            self.__pending = deque(p for p in self.__pending if p.curno != curno)
        return claimed
    def drain_pending(self) -> list[PendingWait]:
        """Removes and returns all pending waits.
        """
        result = list(self.__pending)
        self.__pending.clear()
        return result
