# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/records.py
# DESCRIPTION:    Normalized trace record kinds and payloads
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

"""oratrace.records - Normalized record kinds and payloads written by the ingest phase.

Every significant trace event is stored as one `Record` tagged with a `RecordKind`.
The record payload is a frozen dataclass specific to the kind, so the report phase
can dispatch on the kind and rely on the payload shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import IntEnum


class RecordKind(IntEnum):
    """Record kind. Values define the report order of records within one cursor.
    """
    CURSOR = 0
    PARAMS = 1
    SQL_TEXT = 2
    OPERATION = 3
    WAIT = 4
    OBJECT_WAIT = 6
    ERROR = 7
    MODULE = 8
    ACTION = 9
    TRANSACTION = 10
    STAT = 11
    SEGMENT_STAT = 12

class OpKind(IntEnum):
    """Database call type.
    """
    PARSE = 1
    EXEC = 2
    FETCH = 3
    UNMAP = 4
    SORT_UNMAP = 5
    CLOSE = 6
    LOBREAD = 7
    LOBPGSIZE = 8
    LOBWRITE = 9
    LOBGETLEN = 10
    LOBAPPEND = 11
    LOBARRREAD = 12
    LOBARRTMPFRE = 13
    LOBARRWRITE = 14
    LOBTMPFRE = 15
    @property
    def label(self) -> str:
        "Name used in call tables."
        return _OP_LABELS[self]
    @property
    def timing_name(self) -> str:
        "Name used in Oracle Timing Analysis."
        return _OP_TIMING_NAMES[self]
    @property
    def is_lob(self) -> bool:
        return self >= OpKind.LOBREAD

_OP_LABELS: dict[OpKind, str] = {
    OpKind.PARSE: 'Parse', OpKind.EXEC: 'Execute', OpKind.FETCH: 'Fetch',
    OpKind.UNMAP: 'Unmap', OpKind.SORT_UNMAP: 'Srt Unm', OpKind.CLOSE: 'Close',
    OpKind.LOBREAD: 'Lobread', OpKind.LOBPGSIZE: 'Lobpgsiz', OpKind.LOBWRITE: 'Lobwrite',
    OpKind.LOBGETLEN: 'Lobgetlen', OpKind.LOBAPPEND: 'Lobappend',
    OpKind.LOBARRREAD: 'Lobarrread', OpKind.LOBARRTMPFRE: 'Lobarrtmpfr',
    OpKind.LOBARRWRITE: 'Lobarrwrite', OpKind.LOBTMPFRE: 'Lobtmpfre',
    }

_OP_TIMING_NAMES: dict[OpKind, str] = {
    OpKind.PARSE: 'CPU PARSE Calls', OpKind.EXEC: 'CPU EXEC Calls',
    OpKind.FETCH: 'CPU FETCH Calls', OpKind.UNMAP: 'CPU UNMAP Calls',
    OpKind.SORT_UNMAP: 'CPU SORT UNMAP Calls', OpKind.CLOSE: 'CPU CLOSE Calls',
    OpKind.LOBREAD: 'LOBREAD Calls', OpKind.LOBPGSIZE: 'LOBPGSIZE Calls',
    OpKind.LOBWRITE: 'LOBWRITE Calls', OpKind.LOBGETLEN: 'LOBGETLEN Calls',
    OpKind.LOBAPPEND: 'LOBAPPEND Calls', OpKind.LOBARRREAD: 'LOBARRREAD Calls',
    OpKind.LOBARRTMPFRE: 'LOBARRTMPFRE Calls', OpKind.LOBARRWRITE: 'LOBARRWRITE Calls',
    OpKind.LOBTMPFRE: 'LOBTMPFRE Calls',
    }

#: Operation kinds by leading token of trace line
OP_TOKENS: dict[str, OpKind] = {
    'PARSE': OpKind.PARSE, 'EXEC': OpKind.EXEC, 'FETCH': OpKind.FETCH,
    'UNMAP': OpKind.UNMAP, 'SORT UNMAP': OpKind.SORT_UNMAP, 'CLOSE': OpKind.CLOSE,
    'LOBREAD:': OpKind.LOBREAD, 'LOBPGSIZE:': OpKind.LOBPGSIZE,
    'LOBWRITE:': OpKind.LOBWRITE, 'LOBGETLEN:': OpKind.LOBGETLEN,
    'LOBAPPEND:': OpKind.LOBAPPEND, 'LOBARRREAD:': OpKind.LOBARRREAD,
    'LOBARRTMPFRE:': OpKind.LOBARRTMPFRE, 'LOBARRWRITE:': OpKind.LOBARRWRITE,
    'LOBTMPFRE:': OpKind.LOBTMPFRE,
    }

@dataclass(frozen=True)
class CursorInfo:
    """Payload of `RecordKind.CURSOR` record, written when cursor is introduced.
    """
    #: Oracle command type code (None for sentinel cursors)
    oct: int | None
    #: Parsing user id (None for sentinel cursors)
    uid: int | None
    #: Recursive depth
    dep: int
    #: Parsing timestamp in centiseconds
    parsing_tim: Decimal
    #: Oracle error code for PARSE ERROR, or None
    err: int | None
    #: Trace line number
    line: int
    #: SQL ID, or None
    sqlid: str | None

@dataclass(frozen=True)
class TextLine:
    """Payload of `RecordKind.PARAMS` and `RecordKind.SQL_TEXT` records.
    """
    #: Text chunk (up to 80 characters)
    text: str

@dataclass(frozen=True)
class Operation:
    """Payload of `RecordKind.OPERATION` record. Times are in centiseconds.
    """
    #: Database call type
    op: OpKind
    #: CPU time, corrected for recursive calls
    cpu: Decimal
    #: Elapsed time, corrected for recursive calls
    elapsed: Decimal
    #: Physical reads
    disk: int
    #: Consistent reads
    query: int
    #: Current mode reads
    current: int
    #: Rows processed
    rows: int
    #: Library cache misses
    misses: int
    #: Optimizer goal code
    goal: int
    #: Timestamp
    tim: Decimal
    #: Timing gap in whole centiseconds
    gap: int
    #: SQL ID, or None
    sqlid: str | None
    #: Recursive depth
    dep: int
    #: Trace line number
    line: int

@dataclass(frozen=True)
class Wait:
    """Payload of `RecordKind.WAIT` and `RecordKind.OBJECT_WAIT` records.
    """
    #: Event name, possibly annotated with parameter value
    name: str
    #: First event parameter
    p1: int
    #: Second event parameter
    p2: int
    #: Third event parameter
    p3: int
    #: Elapsed time in centiseconds
    ela: Decimal
    #: Trace line number
    line: int
    #: Object number (0 if not present)
    obj: int

@dataclass(frozen=True)
class OracleError:
    """Payload of `RecordKind.ERROR` record.
    """
    #: Oracle error code
    err: int
    #: Trace line number
    line: int
    #: Timestamp in centiseconds
    tim: Decimal

@dataclass(frozen=True)
class Annotation:
    """Payload of `RecordKind.MODULE`, `RecordKind.ACTION` and `RecordKind.TRANSACTION`.
    """
    text: str

@dataclass(frozen=True)
class Stat:
    """Payload of `RecordKind.STAT` and `RecordKind.SEGMENT_STAT` records (row source step).
    """
    #: STAT set number (grows with each new set of STAT lines)
    set_no: int = field(compare=False)
    #: Step id
    id: int
    #: Parent step id
    pid: int
    #: Row count
    rows: int
    #: Object id
    obj: int
    #: Operation description
    desc: str
    #: Consistent reads
    cr: int = 0
    #: Physical reads
    pr: int = 0
    #: Physical writes
    pw: int = 0
    #: Elapsed time in microseconds
    time: int = 0
    #: Partition start
    part_start: str = '0'
    #: Partition stop
    part_stop: str = '0'
    #: Optimizer cost, or None
    cost: int | None = None
    #: Optimizer size estimate, or None
    size: int | None = None
    #: Optimizer cardinality estimate, or None
    card: int | None = None
    #: Trace line number
    line: int = field(default=0, compare=False)

#: Payload type by record kind
PAYLOAD_TYPES: dict[RecordKind, type] = {
    RecordKind.CURSOR: CursorInfo, RecordKind.PARAMS: TextLine,
    RecordKind.SQL_TEXT: TextLine, RecordKind.OPERATION: Operation,
    RecordKind.WAIT: Wait, RecordKind.OBJECT_WAIT: Wait, RecordKind.ERROR: OracleError,
    RecordKind.MODULE: Annotation, RecordKind.ACTION: Annotation,
    RecordKind.TRANSACTION: Annotation, RecordKind.STAT: Stat,
    RecordKind.SEGMENT_STAT: Stat,
    }

@dataclass(frozen=True)
class Record:
    """Normalized trace record.

    Records are ordered by (cursor index, kind, trace line, sequence), which is the
    order in which the report phase consumes them.
    """
    #: Internal cursor index
    cursor: int
    #: Cursor number used in trace file
    curno: str
    #: SQL hash value
    hv: str
    #: Record kind
    kind: RecordKind
    #: Trace line number
    line: int
    #: Sequence number for records produced from the same trace line
    seq: int
    #: Kind-specific payload
    data: CursorInfo | TextLine | Operation | Wait | OracleError | Annotation | Stat
    @property
    def sort_key(self) -> tuple[int, int, int, int]:
        return (self.cursor, self.kind, self.line, self.seq)
