# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/report.py
# DESCRIPTION:    Aggregate and report phase
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

"""oratrace.report - Aggregate and report phase.

`ReportBuilder` consumes records from `.TraceStore` grouped by cursor and record
kind, writes one report block per cursor, and accumulates `.ReportTotals` that are
used for cross-cursor sections written by `.summary.write_summary`.

Example::

    parser = load_trace('orcl_ora_1234.trc')
    write_report(parser.store, 'orcl_ora_1234.lst', ReportConfig())
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from itertools import groupby
from operator import attrgetter
from pathlib import Path
from typing import TextIO

from .config import ReportConfig
from .cursors import UNACCOUNTED_CURSOR
from .oracle import OPTIMIZER_GOALS
from .plans import write_plans, write_segment_stats
from .records import CursorInfo, OpKind, Operation, Record, RecordKind
from .store import BindValue, CallTotals, TraceStore
from .summary import (ElapsedRow, ReportTotals, TopEntry, write_call_header, write_call_row,
                      write_summary)
from .timing import NOISE_CS, wall_clock
from .waits import CursorWaits, write_disk_reads, write_object_waits, write_revisits, write_waits

log = logging.getLogger(__name__)

#: Report title and legend
REPORT_HEADER: tuple[str, ...] = (
    'Oracle Trace Dump File Report',
    '',
    'NOTE:  SEE THE TEXT AT THE TOP OF THE TRACE_REPORT SCRIPT FOR INSTRUCTIONS',
    '       REGARDING HOW TO INTERPRET THIS REPORT!',
    '',
    'count       = Number of times OCI procedure was executed',
    'cpu         = CPU time executing, in seconds',
    'elapsed     = Elapsed time executing, in seconds',
    'disk        = Number of physical reads of buffers from disk',
    'query       = Number of buffers gotten for consistent read',
    'current     = Number of buffers gotten in current mode (usually for update)',
    'rows        = Number of rows processed by the fetch or execute call',
    '',
    )

def bind_lines(bind: BindValue) -> list[str]:
    """Returns report lines for bind value.

    Rows longer than 75 characters are wrapped. Continuation lines are indented
    by 20 characters, and the trace line number stays right aligned on the last line.
    """
    row = '%4s %11d    %-44s %10d' % (bind.marker, bind.number, bind.value, bind.line)
    if len(row) <= 75: # noqa: PLR2004
        return [row]
    lines = [row[:64]]
    rest = row[64:]
    while rest:
        size = len(rest)
        if size > 55: # noqa: PLR2004
            lines.append(' ' * 20 + rest[:44])
            rest = rest[44:]
        else:
            if size < 55: # noqa: PLR2004
                lines.append(' ' * 20 + rest[:size - 10] + ' ' * (55 - size) + rest[size - 10:])
            else:
                lines.append(' ' * 20 + rest)
            rest = ''
    return lines

class ReportBuilder:
    """Builder of trace report.

    Arguments:
        store: Record store filled by trace parser.
        config: Report configuration.
        out: Report stream.
    """
    def __init__(self, store: TraceStore, config: ReportConfig, out: TextIO):
        #: Record store
        self.store: TraceStore = store
        #: Report configuration
        self.config: ReportConfig = config
        #: Report stream
        self.out: TextIO = out
        #: Accumulated totals
        self.totals: ReportTotals = ReportTotals()
    def _print(self, *lines: str) -> None:
        for line in lines:
            print(line, file=self.out)
    def write_header(self) -> None:
        """Writes report title, legend and session header lines.
        """
        self._print(*REPORT_HEADER)
        self._print(*self.store.summary.header)
    def write_cursor_title(self, index: int, curno: str, info: CursorInfo | None) -> None:
        self._print('', '#' * 80, '')
        if index == UNACCOUNTED_CURSOR:
            return
        summary = self.store.summary
        dep = info.dep if info is not None else 0
        stamp = ''
        if info is not None and info.parsing_tim != 0:
            if stamp := wall_clock(summary.start, summary.first_time, info.parsing_tim):
                stamp = f' at {stamp}'
        depth = f' (RECURSIVE DEPTH {dep})' if dep else ''
        self._print(f'ID #{index}{depth}{stamp} (Cursor {curno}):', '')
        if info is not None and info.err is not None:
            self._print('Oracle Parse Error: ORA-%05d on trace line %d' % (info.err, info.line), '')
    def write_sql_text(self, hv: str, info: CursorInfo | None, lines: list[Record]) -> None:
        """Writes SQL text lines followed by hash value and SQL ID.
        """
        self._print(*(record.data.text for record in lines), '')
        sqlid = info.sqlid if info is not None else None
        if hv == '0':
            if sqlid:
                self._print(f'SQL ID: {sqlid}')
        elif sqlid:
            self._print(f'SQL Hash Value: {hv}   SQL ID: {sqlid}')
        else:
            self._print(f'SQL Hash Value: {hv}')
        self._print('')
    def write_binds(self, index: int) -> None:
        """Writes bind variable values of cursor.
        """
        binds = self.store.binds.get(index)
        if not binds:
            return
        limit = self.config.bind_limit.value
        self._print(f'          First {limit} Bind Variable Values (Including any peeked values)', '',
                    '     Bind Number    Bind Value                                   Trace line',
                    '     -----------    ------------------------------------------------ ----------')
        for bind in binds[:limit]:
            self._print(*bind_lines(bind))
        cursor = self.store.cursors.get(index)
        count = cursor.bind_count if cursor is not None else len(binds)
        self._print(f"                         Total of {count} bind variable{'s' if count > 1 else ''}",
                    '')
    def write_operations(self, cursor: Record, info: CursorInfo | None,
                         records: list[Record]) -> CallTotals:
        """Writes call statistics table of cursor.

        Returns:
            Totals of all calls.
        """
        ops: list[Operation] = [record.data for record in records]
        overall = self.totals.nonrec if info is None or info.dep == 0 else self.totals.rec
        total = CallTotals()
        write_call_header(self.out)
        by_kind: dict[OpKind, CallTotals] = defaultdict(CallTotals)
        for op in ops:
            by_kind[op.op].add(op)
            if (ela := int(op.elapsed * 10000)) > 0:
                self.totals.top_entries.append(TopEntry(op.op.label, cursor.hv, cursor.curno, ela))
        for kind in sorted(by_kind):
            kind_totals = by_kind[kind]
            write_call_row(self.out, kind.label, kind_totals)
            total.merge(kind_totals)
            overall[kind].merge(kind_totals)
        self._print('----------- ------ -------- ---------- --------- --------- --------- ---------')
        write_call_row(self.out, 'total', total)
        gap = sum(op.gap for op in ops)
        if gap >= 1:
            self._print('', '  Timing Gap error (secs): %7.2f' % (Decimal(gap) / 100))
        fetch = by_kind.get(OpKind.FETCH)
        if fetch is not None and fetch.disk > 0:
            avg_read = int(1000 * ((fetch.elapsed - fetch.cpu) / 100) / fetch.disk)
            if avg_read > 0:
                self._print('', 'Avg time to read one disk block(ms): %8d' % avg_read)
        return total
    def write_waits(self, index: int, hv: str, curno: str, waits: list[Record],
                    objects: list[Record]) -> Decimal:
        """Writes wait sections of cursor.

        Returns:
            Total wait time of cursor.
        """
        analysis = CursorWaits([record.data for record in waits],
                               [record.data for record in objects])
        for wait in analysis.waits:
            if (ela := int(wait.ela * 10000)) > 0:
                self.totals.top_entries.append(TopEntry(wait.name[:50], hv, curno, ela))
        for subtotal in analysis.subtotals.values():
            self.totals.cursor_waits.append((index, subtotal.key, subtotal.total))
        unaccounted = index == UNACCOUNTED_CURSOR
        limit = self.config.wait_detail_limit.value
        if analysis.total > 0:
            if analysis.listed:
                self._print('')
            write_waits(self.out, analysis, unaccounted=unaccounted, limit=limit)
            if write_revisits(self.out, analysis, explain=self.totals.explain_revisits):
                self.totals.explain_revisits = False
            write_disk_reads(self.out, analysis)
        write_object_waits(self.out, analysis, unaccounted=unaccounted, limit=limit)
        return analysis.total
    def finish_cursor(self, index: int, info: CursorInfo | None, ops: list[Operation]) -> None:
        """Writes library cache misses, optimizer goal, parsing user and SQL ID of cursor.
        """
        if index == UNACCOUNTED_CURSOR:
            return
        misses = {kind: sum(op.misses for op in ops if op.op is kind)
                  for kind in (OpKind.PARSE, OpKind.EXEC, OpKind.FETCH)}
        goal = ops[0].goal if ops else 0
        uid = info.uid if info is not None else None
        sqlid = info.sqlid if info is not None else None
        if sqlid is None:
            sqlid = next((op.sqlid for op in ops if op.sqlid), None)
        lines = []
        for kind, label in ((OpKind.PARSE, 'parse'), (OpKind.EXEC, 'execute'),
                            (OpKind.FETCH, 'fetch')):
            if misses[kind]:
                lines.append(f'Misses in library cache during {label}: {misses[kind]}')
        if goal in OPTIMIZER_GOALS:
            lines.append(f'Optimizer goal: {OPTIMIZER_GOALS[goal]}')
        elif goal:
            log.warning("Unexpected optimizer goal of %d in cursor #%d", goal, index)
        if uid == 0:
            lines.append('Parsing user id: SYS')
        elif uid is not None:
            lines.append(f'Parsing user id: {uid}')
        if sqlid:
            lines.append(f'SQL ID: {sqlid}')
        if lines:
            self._print('', *lines)
    def write_unaccounted(self, info: CursorInfo | None, total: CallTotals,
                          waited: Decimal) -> None:
        """Writes Unaccounted-for time of cursor and adds it to totals.
        """
        unaccounted = int(total.elapsed - waited - total.cpu)
        if unaccounted < NOISE_CS:
            return
        totals = self.totals
        totals.unaccounted += unaccounted
        totals.unaccounted_count += 1
        if info is None or info.dep == 0:
            totals.nonrec_unaccounted += unaccounted
        else:
            totals.rec_unaccounted += unaccounted
        self._print('', '  Unaccounted-for time:    %7.2f' % (Decimal(unaccounted) / 100))
    def write_cursor(self, index: int, records: list[Record]) -> None:
        """Writes report block for one cursor.

        Arguments:
            index: Internal cursor index.
            records: Records of cursor in report order.
        """
        by_kind: dict[RecordKind, list[Record]] = {
            kind: list(group) for kind, group in groupby(records, key=attrgetter('kind'))}
        first = records[0]
        info = by_kind[RecordKind.CURSOR][0].data if RecordKind.CURSOR in by_kind else None
        log.debug("Processing cursor #%s (ID #%d)", first.curno, index)
        self.write_cursor_title(index, first.curno, info)
        if params := by_kind.get(RecordKind.PARAMS):
            self._print(*(record.data.text for record in params), '')
        if text := by_kind.get(RecordKind.SQL_TEXT):
            self.write_sql_text(first.hv, info, text)
            self.write_binds(index)
        ops: list[Operation] = [record.data for record in by_kind.get(RecordKind.OPERATION, [])]
        total = CallTotals()
        if ops:
            total = self.write_operations(first, info, by_kind[RecordKind.OPERATION])
        waited = self.write_waits(index, first.hv, first.curno,
                                  by_kind.get(RecordKind.WAIT, []),
                                  by_kind.get(RecordKind.OBJECT_WAIT, []))
        for record in by_kind.get(RecordKind.ERROR, []):
            self._print('Oracle Error ORA-%05d on trace line %d' % (record.data.err,
                                                                    record.data.line))
        for record in by_kind.get(RecordKind.MODULE, []):
            self._print(f'Module: {record.data.text}')
        for record in by_kind.get(RecordKind.ACTION, []):
            self._print(f'Action: {record.data.text}')
        for record in by_kind.get(RecordKind.TRANSACTION, []):
            self._print(record.data.text)
        if stats := by_kind.get(RecordKind.STAT):
            write_plans(self.out, (record.data for record in stats))
        if segments := by_kind.get(RecordKind.SEGMENT_STAT):
            write_segment_stats(self.out, (record.data for record in segments))
        self.finish_cursor(index, info, ops)
        self.write_unaccounted(info, total, waited)
        self.totals.cpu += total.cpu
        self.totals.elapsed += total.elapsed
        if ops:
            uid = info.uid if info is not None and info.uid is not None else ''
            self.totals.elapsed_rows.append(ElapsedRow(index, str(uid), total.count, total.cpu,
                                                       total.elapsed, waited, total.disk,
                                                       total.query, total.current))
    def write(self) -> ReportTotals:
        """Writes complete report.

        Returns:
            Totals accumulated from cursor blocks.
        """
        self.write_header()
        log.info("Processing cursors...")
        for index, records in self.store.by_cursor():
            self.write_cursor(index, records)
        write_summary(self.out, self.store, self.totals, self.config)
        return self.totals

def write_report(store: TraceStore, path: Path | str, config: ReportConfig | None=None) -> Path:
    """Writes report for parsed trace into file.

    Arguments:
        store: Record store filled by trace parser.
        path: Report file.
        config: Report configuration. Defaults are used when None.

    Returns:
        Path to report file.
    """
    path = Path(path)
    with path.open('w', encoding='utf-8') as out:
        ReportBuilder(store, config or ReportConfig(), out).write()
    return path
