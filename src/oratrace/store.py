# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/store.py
# DESCRIPTION:    Ordered record store and side tables filled by trace parser
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

"""oratrace.store - Ordered record store and side tables filled by the trace parser.

The ingest phase appends records in trace order. The report phase consumes them
sorted by (cursor index, record kind, trace line, sequence) and grouped by cursor.
Data that is not scoped to a single record run (bind values, RPC calls, session
header and end-of-file metrics) lives in side tables of `TraceStore`.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from itertools import groupby
from operator import attrgetter

from firebird.base.collections import DataList

from .cursors import Cursor
from .records import PAYLOAD_TYPES, OpKind, Operation, Record, RecordKind

#: Bind value text for binds that have no bind buffer (binding by name)
NO_BIND_BUFFER = '(No separate bind buffer exists)'

@dataclass(frozen=True)
class BindValue:
    """Bind variable value captured for a cursor.
    """
    #: `Peek` for peeked values, otherwise spaces
    marker: str
    #: Bind variable number (1-based)
    number: int
    #: Value text
    value: str
    #: Trace line number
    line: int

@dataclass(frozen=True)
class RpcBind:
    """Bind variable of remote procedure call.
    """
    #: Bind number
    number: int
    #: Value text
    value: str
    #: Trace line number
    line: int

@dataclass
class RpcCall:
    """Distinct remote procedure call.
    """
    #: Call text
    text: str
    #: Number of executions
    count: int = 0
    #: CPU time (centiseconds)
    cpu: Decimal = Decimal(0)
    #: Elapsed time (centiseconds)
    elapsed: Decimal = Decimal(0)
    #: Bind values
    binds: list[RpcBind] = field(default_factory=list)

@dataclass
class CallTotals:
    """Call statistics summed over a group of database calls.
    """
    count: int = 0
    cpu: Decimal = Decimal(0)
    elapsed: Decimal = Decimal(0)
    disk: int = 0
    query: int = 0
    current: int = 0
    rows: int = 0
    def add(self, op: Operation) -> None:
        """Adds database call to totals.
        """
        self.count += 1
        self.cpu += op.cpu
        self.elapsed += op.elapsed
        self.disk += op.disk
        self.query += op.query
        self.current += op.current
        self.rows += op.rows
    def merge(self, other: CallTotals) -> None:
        self.count += other.count
        self.cpu += other.cpu
        self.elapsed += other.elapsed
        self.disk += other.disk
        self.query += other.query
        self.current += other.current
        self.rows += other.rows

@dataclass
class OpTotals:
    """CPU time and call count for one database call type.
    """
    cpu: Decimal = Decimal(0)
    count: int = 0

@dataclass
class TraceSummary:
    """Session header and end-of-file metrics.
    """
    #: Trace file name
    trace_name: str = ''
    #: Session header lines in order of appearance
    header: list[str] = field(default_factory=list)
    #: Session start date and time
    start: datetime | None = None
    #: Time unit divisor used by the trace
    divisor: int = 1
    #: Trace time baseline (centiseconds)
    first_time: Decimal = Decimal(0)
    #: Highest timestamp (centiseconds)
    last_tim: Decimal = Decimal(0)
    #: Wall clock elapsed time (whole centiseconds)
    grand_elapsed: int = 0
    #: Total Timing Gap Error (centiseconds)
    gap_time: Decimal = Decimal(0)
    #: Number of calls with Timing Gap Error
    gap_count: int = 0
    #: Wait time that could not be attributed to any cursor
    unmatched_wait: Decimal = Decimal(0)
    #: CPU time and counts by call type
    op_totals: dict[OpKind, OpTotals] = field(default_factory=lambda: defaultdict(OpTotals))
    #: RPC EXEC CPU total
    rpc_cpu: Decimal = Decimal(0)
    #: RPC EXEC call count
    rpc_count: int = 0
    #: True if trace has `*** DUMP FILE` marker
    truncated: bool = False
    #: Trace lines with additional trace headers
    duplicate_headers: list[int] = field(default_factory=list)
    #: Wait times by (module, event)
    module_waits: dict[tuple[str, str], Decimal] = field(default_factory=lambda: defaultdict(Decimal))
    #: Wait times by (action, event)
    action_waits: dict[tuple[str, str], Decimal] = field(default_factory=lambda: defaultdict(Decimal))
    #: Call totals by module
    module_totals: dict[str, CallTotals] = field(default_factory=lambda: defaultdict(CallTotals))
    #: Call totals by action
    action_totals: dict[str, CallTotals] = field(default_factory=lambda: defaultdict(CallTotals))
    #: Call totals by (command type, recursive, SYS user)
    command_totals: dict[tuple[int, bool, bool], CallTotals] = field(
        default_factory=lambda: defaultdict(CallTotals))

class TraceStore:
    """In-memory record store with side tables.
    """
    def __init__(self):
        self.__records: list[Record] = []
        self.__last_line: int = -1
        self.__seq: int = 0
        #: Bind values by internal cursor index
        self.binds: dict[int, list[BindValue]] = defaultdict(list)
        #: Distinct RPC calls in order of appearance
        self.rpc_calls: list[RpcCall] = []
        #: Session summary
        self.summary: TraceSummary = TraceSummary()
        #: All cursors known to the trace, keyed by internal index
        self.cursors: DataList[Cursor] = DataList(type_spec=Cursor, key_expr='item.index')
    def __len__(self) -> int:
        return len(self.__records)
    def add(self, cursor: Cursor, kind: RecordKind, line: int, data) -> Record:
        """Appends new record.

        Arguments:
            cursor: Owning cursor.
            kind: Record kind.
            line: Trace line number that produced the record.
            data: Payload, must be an instance of the type registered for `kind`.

        Raises:
            TypeError: When payload type does not match record kind.
        """
        if not isinstance(data, PAYLOAD_TYPES[kind]):
            raise TypeError(f"Payload {type(data).__name__} is not valid for {kind.name}")
        if line != self.__last_line:
            self.__last_line = line
            self.__seq = 0
        else:
            self.__seq += 1
        record = Record(cursor.index, cursor.curno, cursor.hv, kind, line, self.__seq, data)
        self.__records.append(record)
        return record
    def records(self) -> list[Record]:
        """Returns records in report order.
        """
        return sorted(self.__records, key=attrgetter('sort_key'))
    def by_cursor(self) -> Iterator[tuple[int, list[Record]]]:
        """Yields (cursor index, records) pairs in report order.
        """
        for index, group in groupby(self.records(), key=attrgetter('cursor')):
            yield index, list(group)
    def kinds(self, kind: RecordKind) -> Iterator[Record]:
        """Yields records of given kind in trace order.
        """
        return (r for r in self.__records if r.kind == kind)
