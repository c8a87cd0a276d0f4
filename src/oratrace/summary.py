# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/summary.py
# DESCRIPTION:    Cross-cursor report sections
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

"""oratrace.summary - Cross-cursor report sections.

Sections written after all cursor blocks: RPC call summary, top statements per event,
totals by module, action and command type, overall totals, per-cursor elapsed time
summary, wait event summaries, Oracle timing analysis and grand totals.

Values collected while cursor blocks are written are passed in `ReportTotals`,
everything else comes from `.TraceSummary` filled by the trace parser.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from itertools import groupby
from operator import attrgetter, itemgetter
from typing import TextIO

from .config import ReportConfig
from .oracle import (TIMED_IDLE_EVENTS, command_type_name, is_idle_event, is_scattered_read,
                     is_segment_hint_event)
from .records import OpKind, RecordKind, Wait
from .store import NO_BIND_BUFFER, CallTotals, RpcCall, TraceStore
from .timing import GAP_THRESHOLD, UNACCOUNTED_THRESHOLD, percent

log = logging.getLogger(__name__)

_ZERO = Decimal(0)
_SEPARATOR = '#' * 80

@dataclass(frozen=True)
class TopEntry:
    """Elapsed time of one database call or wait, attributed to statement.
    """
    #: Wait event name or call type label
    event: str
    #: SQL hash value
    hv: str
    #: Cursor number used in trace file
    curno: str
    #: Elapsed time in microseconds
    ela: int

@dataclass(frozen=True)
class ElapsedRow:
    """One row of per-cursor elapsed time summary. Times are in centiseconds.
    """
    index: int
    uid: str
    count: int
    cpu: Decimal
    elapsed: Decimal
    wait: Decimal
    disk: int
    query: int
    current: int

@dataclass
class ReportTotals:
    """Values accumulated while cursor blocks are written.
    """
    #: Calls and waits for `Top N Statements per Event`
    top_entries: list[TopEntry] = field(default_factory=list)
    #: (cursor index, wait sub-total key, centiseconds) for `TOTAL WAIT EVENTS BY CURSOR`
    cursor_waits: list[tuple[int, str, Decimal]] = field(default_factory=list)
    #: Call totals of non-recursive statements by call type
    nonrec: dict[OpKind, CallTotals] = field(default_factory=lambda: defaultdict(CallTotals))
    #: Call totals of recursive statements by call type
    rec: dict[OpKind, CallTotals] = field(default_factory=lambda: defaultdict(CallTotals))
    #: Unaccounted-for time of non-recursive statements
    nonrec_unaccounted: Decimal = _ZERO
    #: Unaccounted-for time of recursive statements
    rec_unaccounted: Decimal = _ZERO
    #: Rows of per-cursor elapsed time summary
    elapsed_rows: list[ElapsedRow] = field(default_factory=list)
    #: Unaccounted-for time of all cursors
    unaccounted: Decimal = _ZERO
    #: Number of cursors with unaccounted-for time
    unaccounted_count: int = 0
    #: CPU time of all cursors
    cpu: Decimal = _ZERO
    #: Elapsed time of all cursors
    elapsed: Decimal = _ZERO
    #: Explanatory text of block revisit report was not written yet
    explain_revisits: bool = True

def _header(out: TextIO, *titles: str) -> None:
    print('', file=out)
    print(_SEPARATOR, file=out)
    print('', file=out)
    for title in titles:
        print(title, file=out)
    print('', file=out)

def _wrap(text: str, width: int) -> list[str]:
    return [text[i:i + width] for i in range(0, len(text), width)] or ['']

def write_rpc_summary(out: TextIO, calls: list[RpcCall], limit: int) -> None:
    """Writes `Remote Procedure Call Summary` section.

    Arguments:
        out: Report stream.
        calls: Distinct RPC calls.
        limit: Number of bind values printed per call.
    """
    if not calls:
        return
    print('', file=out)
    print(_SEPARATOR, file=out)
    print('                         Remote Procedure Call Summary', file=out)
    print('', file=out)
    print('         (The total elapsed time for all RPC EXEC calls is shown in the', file=out)
    print('       ORACLE TIMING ANALYSIS section of this report as "RPC EXEC Calls")', file=out)
    print('', file=out)
    print('RPC Text:                                            Execs CPU secs Elapsed secs',
          file=out)
    print('---------------------------------------------------- ----- -------- ------------',
          file=out)
    for call in calls:
        *head, last = _wrap(call.text, 52)
        for line in head:
            print(line, file=out)
        print('%-52s %5d %8.2f %12.2f' % (last, call.count, call.cpu / 100, call.elapsed / 100),
              file=out)
        for bind in call.binds[:limit]:
            if bind.value == NO_BIND_BUFFER:
                print('    Bind Number: %4d%-38s Trace line: %8d'
                      % (bind.number, '   ' + bind.value, bind.line), file=out)
            else:
                print('    Bind Number: %4d Bind Value: %-25s Trace line: %8d'
                      % (bind.number, bind.value, bind.line), file=out)
        if call.binds:
            print(f'     Total of {len(call.binds)} RPC bind variables', file=out)

def _top_row(out: TextIO, label: str, curno: str, pct: float, ela: int, calls: int) -> None:
    print('%-16s %18s %7.1f%% %14.4f %8d' % (label, curno, pct, Decimal(ela) / 1000000, calls),
          file=out)

def write_top_statements(out: TextIO, entries: Iterable[TopEntry], limit: int) -> None:
    """Writes `Top N Statements per Event` section.

    For each event, statements are listed by descending elapsed time. Statements
    beyond `limit` are summed into single `N others` row.
    """
    per_statement: dict[tuple[str, str], list] = {}
    per_event: dict[str, int] = defaultdict(int)
    for entry in entries:
        event = entry.event[:50]
        per_event[event] += entry.ela
        item = per_statement.setdefault((event, entry.hv), [0, 0, entry.curno])
        item[0] += entry.ela
        item[1] += 1
        item[2] = entry.curno
    rows = sorted(((event, hv, curno, ela, calls)
                   for (event, hv), (ela, calls, curno) in per_statement.items()
                   if ela >= 1 and per_event[event] >= 1),
                  key=lambda row: (row[0], -row[3], row[1]))
    if not rows:
        return
    print('', file=out)
    title = f'Top {limit} Statements per Event'
    print(title, file=out)
    print('=' * len(title), file=out)
    print('', file=out)
    for event, group in groupby(rows, key=itemgetter(0)):
        stmts = list(group)
        total = per_event[event]
        indent = ' ' * ((80 - len(event)) // 2)
        print(indent + event, file=out)
        print(indent + '#' * len(event), file=out)
        print('', file=out)
        print('SQL Hash Value               Cursor   % Time Elapsed secs    Calls', file=out)
        print('---------------- ------------------ -------- -------------- --------', file=out)
        for _, hv, curno, ela, calls in stmts[:limit]:
            _top_row(out, hv, curno, int(1000 * ela / total) / 10, ela, calls)
        others = stmts[limit:]
        if others:
            other_ela = sum(row[3] for row in others)
            _top_row(out, f"{len(others)} {'other' if len(others) == 1 else 'others'}", ' ',
                     int(1000 * other_ela / total) / 10, other_ela, sum(row[4] for row in others))
        print('---------------- ------------------ -------- -------------- --------', file=out)
        _top_row(out, 'Total', ' ', 100, total, sum(row[4] for row in stmts))
        print('', file=out)

def _totals_row(out: TextIO, label: str, totals: CallTotals) -> None:
    print('%-8s%6d %8.2f %10.2f %10d %10d %10d %10d'
          % (label, totals.count, totals.cpu / 100, totals.elapsed / 100, totals.disk,
             totals.query, totals.current, totals.rows), file=out)

def write_group_totals(out: TextIO, kind: str, groups: dict[str, CallTotals]) -> None:
    """Writes `TOTALS FOR ALL STATEMENTS BY MODULE` or `BY ACTION` section.

    Arguments:
        out: Report stream.
        kind: `Module` or `Action`.
        groups: Call totals by module or action name.
    """
    if not groups:
        return
    _header(out, f'                      TOTALS FOR ALL STATEMENTS BY {kind.upper()}')
    print(f'{kind:<7}   count      cpu    elapsed       disk      query    current       rows',
          file=out)
    print('------- ------ -------- ---------- ---------- ---------- ---------- ----------',
          file=out)
    grand = CallTotals()
    for name in sorted(groups):
        print(name, file=out)
        _totals_row(out, ' ', groups[name])
        print(' ', file=out)
        grand.merge(groups[name])
    print('        ------ -------- ---------- ---------- ---------- ---------- ----------',
          file=out)
    _totals_row(out, 'total', grand)

def write_cursor_waits(out: TextIO, cursor_waits: Iterable[tuple[int, str, Decimal]]) -> None:
    """Writes `TOTAL WAIT EVENTS BY CURSOR` section.
    """
    totals: dict[tuple[int, str], Decimal] = defaultdict(Decimal)
    for index, key, ela in cursor_waits:
        totals[(index, key)] += ela
    rows = [(index, key, ela) for (index, key), ela in sorted(totals.items()) if ela >= 1]
    if not rows:
        return
    _header(out, '                          TOTAL WAIT EVENTS BY CURSOR')
    print('                                                                         Wait',
          file=out)
    print('Cursor               Wait Event                                         Seconds',
          file=out)
    print('-------------------- ----------------------------------------------- ----------',
          file=out)
    for index, key, ela in rows:
        print('%20s %-47s %10.4f' % (index, key[:47], ela / 100), file=out)
        if len(key) > 47: # noqa: PLR2004
            print(' ' * 21 + key[47:94], file=out)

def write_group_waits(out: TextIO, kind: str, waits: dict[tuple[str, str], Decimal]) -> None:
    """Writes `TOTAL WAIT EVENTS BY MODULE` or `BY ACTION` section.

    Arguments:
        out: Report stream.
        kind: `Module` or `Action`.
        waits: Wait time by (module or action name, wait event).
    """
    rows = [(name, event, ela) for (name, event), ela in sorted(waits.items()) if ela >= 1]
    if not rows:
        return
    _header(out, f'                          TOTAL WAIT EVENTS BY {kind.upper()}')
    print(f'{kind:<32} Wait Event                       Wait Seconds', file=out)
    print('-------------------------------- ------------------------------ --------------',
          file=out)
    for name, group in groupby(rows, key=itemgetter(0)):
        for i, (_, event, ela) in enumerate(group):
            label = name if i == 0 else ''
            print('%-32s %-30s %14.4f' % (label[:32], event[:30], ela / 100), file=out)
            if len(label) > 32 or len(event) > 30: # noqa: PLR2004
                print(('%-32s %-30s' % (label[32:64], event[30:60])).rstrip(), file=out)

_COMMAND_TITLES: tuple[tuple[str, bool, bool], ...] = (
    ('       TOTALS FOR ALL NON-RECURSIVE STATEMENTS BY COMMAND TYPE FOR USERS', False, False),
    ('         TOTALS FOR ALL RECURSIVE STATEMENTS BY COMMAND TYPE FOR USERS', True, False),
    ('          TOTALS FOR ALL RECURSIVE STATEMENTS BY COMMAND TYPE FOR SYS', True, True),
    )

def write_command_totals(out: TextIO, commands: dict[tuple[int, bool, bool], CallTotals]) -> None:
    """Writes totals by command type for non-recursive user, recursive user and recursive
    SYS statements.

    Non-recursive statements of all users are reported together.
    """
    for title, recursive, sys_user in _COMMAND_TITLES:
        merged: dict[int, CallTotals] = defaultdict(CallTotals)
        for (oct_code, is_recursive, is_sys), totals in commands.items():
            if is_recursive != recursive or (recursive and is_sys != sys_user):
                continue
            merged[oct_code].merge(totals)
        if not merged:
            continue
        _header(out, title)
        print('cmdtyp   count      cpu    elapsed       disk      query    current       rows',
              file=out)
        print('------- ------ -------- ---------- ---------- ---------- ---------- ----------',
              file=out)
        grand = CallTotals()
        for oct_code in sorted(merged):
            name = command_type_name(oct_code)
            _totals_row(out, name[:7], merged[oct_code])
            for i in range(7, len(name), 7):
                print(name[i:i + 7], file=out)
            grand.merge(merged[oct_code])
        print('------- ------ -------- ---------- ---------- ---------- ---------- ----------',
              file=out)
        _totals_row(out, 'total', grand)

def write_call_row(out: TextIO, label: str, totals: CallTotals) -> None:
    """Writes one row of call statistics table.
    """
    print('%-12s%6d %8.2f %10.2f %9d %9d %9d %9d'
          % (label, totals.count, totals.cpu / 100, totals.elapsed / 100, totals.disk,
             totals.query, totals.current, totals.rows), file=out)

def write_call_header(out: TextIO) -> None:
    print('call         count      cpu    elapsed      disk     query   current      rows',
          file=out)
    print('----------- ------ -------- ---------- --------- --------- --------- ---------',
          file=out)

def _unaccounted_note(out: TextIO) -> None:
    print('  Large amounts of unaccounted-for time can indicate excessive context', file=out)
    print('  switching, paging, swapping, CPU run queues, or uninstrumented Oracle code.',
          file=out)

def write_overall_totals(out: TextIO, title: str, calls: dict[OpKind, CallTotals],
                         unaccounted: Decimal) -> None:
    """Writes `OVERALL TOTALS FOR ALL ... STATEMENTS` section.

    Arguments:
        out: Report stream.
        title: Section title.
        calls: Call totals by call type.
        unaccounted: Unaccounted-for time of these statements.
    """
    if not calls:
        return
    _header(out, title)
    write_call_header(out)
    grand = CallTotals()
    for op in sorted(calls):
        write_call_row(out, op.label, calls[op])
        grand.merge(calls[op])
    print('----------- ------ -------- ---------- --------- --------- --------- ---------',
          file=out)
    write_call_row(out, 'total', grand)
    if unaccounted != 0:
        print(' ', file=out)
        print('  Unaccounted-for time: %10.2f' % (unaccounted / 100), file=out)
        print(' ', file=out)
        _unaccounted_note(out)

def write_elapsed_summary(out: TextIO, rows: Iterable[ElapsedRow]) -> None:
    """Writes per-cursor summary sorted by descending elapsed time.

    Cursors without noticeable CPU, elapsed or wait time are omitted.
    """
    listed = sorted((row for row in rows
                     if int(row.cpu) != 0 or int(row.elapsed) != 0 or int(row.wait) != 0),
                    key=lambda row: (-row.elapsed, row.index))
    if not listed:
        return
    _header(out, '       SUMMARY OF TOTAL CPU TIME, ELAPSED TIME, WAITS, AND I/O PER CURSOR',
            '                       (SORTED BY DESCENDING ELAPSED TIME)')
    print(' Cur User  Total     CPU     Elapsed      Wait   Physical Consistent    Current',
          file=out)
    print(' ID#  ID   Calls     Time      Time       Time     Reads     Reads       Reads',
          file=out)
    print('---- ---- ------ -------- ---------- --------- ---------- ---------- ----------',
          file=out)
    for row in listed:
        print('%4d %4s %6d %8.2f %10.2f %9.2f %10d %10d %10d'
              % (row.index, row.uid, row.count, row.cpu / 100, row.elapsed / 100,
                 row.wait / 100, row.disk, row.query, row.current), file=out)
    print('               ---------- ----------', file=out)
    print('               %10.2f %10.2f Total elapsed time for all cursors'
          % (sum((row.cpu for row in listed), _ZERO) / 100,
             sum((row.elapsed for row in listed), _ZERO) / 100), file=out)

def event_totals(waits: Iterable[Wait]) -> list[tuple[str, Decimal, int]]:
    """Returns (event name, total wait time, number of waits) ordered by event name.
    """
    totals: dict[str, list] = {}
    for wait in waits:
        item = totals.setdefault(wait.name, [_ZERO, 0])
        item[0] += wait.ela
        item[1] += 1
    return [(name, ela, count) for name, (ela, count) in sorted(totals.items())]

def write_wait_summary(out: TextIO, title: str, rows: list[tuple[str, Decimal, int]],
                       total_label: str, *, timing: bool=False) -> Decimal:
    """Writes wait event summary table.

    Arguments:
        out: Report stream.
        title: Section title.
        rows: (name, elapsed time, number of calls) in print order. Rows with elapsed
              time below one centisecond are skipped.
        total_label: Label of total row.
        timing: Table lists Oracle processes as well as wait events.

    Returns:
        Total elapsed time of listed rows.
    """
    listed = [row for row in rows if row[2] > 0 and row[1] >= 1]
    total = sum((row[1] for row in listed), _ZERO)
    if not listed:
        return total
    _header(out, title)
    print('                                                    Elapsed             Seconds',
          file=out)
    if timing:
        print('Oracle Process/Wait Event                          Seconds  Pct  Calls  /Call',
              file=out)
    else:
        print('Oracle Wait Event Name                             Seconds  Pct  Calls  /Call',
              file=out)
    print('-------------------------------------------------- -------- ---- ------ -------',
          file=out)
    calls = 0
    for name, ela, count in listed:
        print('%-50s %8.2f %3d%% %6d %7.2f'
              % (name[:50], ela / 100, percent(ela, total), count, ela / (count * 100)),
              file=out)
        if len(name) > 50: # noqa: PLR2004
            print(f'  {name[50:]}', file=out)
        calls += count
    print('-------------------------------------------------- -------- ---- ------ -------',
          file=out)
    print('%-50s %8.2f %3d%% %6d %7.2f' % (total_label, total / 100, 100, calls,
                                          total / (calls * 100)), file=out)
    return total

def _segment_hint(out: TextIO) -> None:
    print('', file=out)
    print('To determine which segment is causing a specific wait, issue the following',
          file=out)
    print('query:', file=out)
    print('   SELECT OWNER, SEGMENT_NAME FROM DBA_EXTENTS', file=out)
    print('   WHERE FILE_ID = <File-ID-from-above> AND', file=out)
    print('   <Block-Number-from-above> BETWEEN BLOCK_ID AND BLOCK_ID+BLOCKS-1;', file=out)

def _scattered_note(out: TextIO) -> None:
    print('', file=out)
    print('Note:  For db file scattered read, the number of blocks read may be less', file=out)
    print('       than db_file_multiblock_read_count, if Oracle is able to locate the',
          file=out)
    print('       block it needs from cache and therefore does not need to read in', file=out)
    print('       the block(s) from disk.', file=out)

def _gap_note(out: TextIO) -> None:
    print('', file=out)
    print('A significant portion of the total elapsed time is due to Timing Gap', file=out)
    print("Error.  This measurement accumulates the differences in the trace file's", file=out)
    print('timing values when there is an unexplained increase of time.  When Timing', file=out)
    print('Gap Error time is a large amount of the total elapsed time, this usually', file=out)
    print('indicates that a process has spent a significant amount of time in a', file=out)
    print("preempted state.  The operating system's scheduler will preempt a process",
          file=out)
    print("if there is contention for the CPU's run queue.  The best way to reduce", file=out)
    print('this time is to reduce the demand for the CPUs, typically by optimizing', file=out)
    print('the application code to reduce the number of I/O and/or parsing operations.',
          file=out)
    print('', file=out)
    print('Note that excessive parsing will show up in this report as "CPU PARSE Calls".',
          file=out)
    print('Programs which parse too much will typically have a CPU PARSE Calls', file=out)
    print('value near the value of CPU EXEC Calls.', file=out)

def timing_contributors(store: TraceStore, totals: ReportTotals,
                        events: list[tuple[str, Decimal, int]]) -> list[tuple[str, Decimal, int]]:
    """Returns Oracle Timing Analysis rows sorted by descending elapsed time.

    Rows are CPU time by call type, RPC executions, Timing Gap Error, Unaccounted-for
    time and all wait events except idle events that are not issued by clients.
    """
    summary = store.summary
    rows: list[tuple[str, Decimal, int]] = []
    for op in sorted(summary.op_totals):
        op_totals = summary.op_totals[op]
        if op_totals.count > 0:
            rows.append((op.timing_name, op_totals.cpu, op_totals.count))
    if summary.rpc_count > 0:
        rows.append(('RPC EXEC Calls', summary.rpc_cpu, summary.rpc_count))
    if summary.gap_count > 0:
        rows.append(('Timing Gap Error', summary.gap_time, summary.gap_count))
    if totals.unaccounted_count > 0:
        rows.append(('Unaccounted-for time', totals.unaccounted, totals.unaccounted_count))
    rows.extend(row for row in events
                if not is_idle_event(row[0]) or row[0] in TIMED_IDLE_EVENTS)
    rows = [row for row in rows if row[1] >= 1]
    rows.sort(key=lambda row: -row[1])
    return rows

def write_grand_totals(out: TextIO, wall_clock: int, elapsed: Decimal, cpu: Decimal,
                       non_idle: Decimal, idle: Decimal, scans: Decimal) -> None:
    """Writes `GRAND TOTAL SECS` and `PCT OF WALL CLOCK` lines.

    Arguments:
        out: Report stream.
        wall_clock: Wall clock elapsed time of the trace (whole centiseconds).
        elapsed: Elapsed time of all cursors.
        cpu: CPU time of all cursors and RPC executions.
        non_idle: Non-idle wait time.
        idle: Idle wait time.
        scans: Multi block read (table scan) wait time.
    """
    print('', file=out)
    print(_SEPARATOR, file=out)
    print('', file=out)
    if wall_clock == 0:
        print('GRAND TOTAL SECS:  %12.2f' % 0, file=out)
        return
    columns = [int(elapsed), int(cpu), int(non_idle), int(idle), int(scans)]
    print('                   Elapsed Wall  Elapsed          Non-Idle     Idle    Table', file=out)
    print('                    Clock Time    Time   CPU Time   Waits     Waits    Scans', file=out)
    print('                   ------------ -------- -------- -------- -------- --------', file=out)
    print('GRAND TOTAL SECS:  %12.2f %8.2f %8.2f %8.2f %8.2f %8.2f'
          % (Decimal(wall_clock) / 100, *(Decimal(value) / 100 for value in columns)), file=out)
    print('PCT OF WALL CLOCK:                 '
          + '%    '.join(' %3d' % int(100 * value / wall_clock) for value in columns) + '%',
          file=out)

def write_warnings(out: TextIO, store: TraceStore) -> None:
    summary = store.summary
    if summary.truncated:
        print('', file=out)
        print('WARNING:  THIS DUMP FILE HAS BEEN TRUNCATED!', file=out)
    if summary.duplicate_headers:
        print('', file=out)
        print('*** Warning: Multiple trace file headings are in the trace file!', file=out)
        print('', file=out)
        for line in summary.duplicate_headers:
            print(f'             An extra trace header starts on trace line {line}', file=out)

def write_summary(out: TextIO, store: TraceStore, totals: ReportTotals,
                  config: ReportConfig) -> None:
    """Writes all cross-cursor report sections.

    Arguments:
        out: Report stream.
        store: Record store filled by trace parser.
        totals: Values accumulated while cursor blocks were written.
        config: Report configuration.
    """
    summary = store.summary
    log.debug("Print RPC summary...")
    write_rpc_summary(out, store.rpc_calls, config.rpc_bind_limit.value)
    log.debug("Print top statements...")
    write_top_statements(out, totals.top_entries, config.top_statements.value)
    log.info("Creating report totals...")
    write_group_totals(out, 'Module', summary.module_totals)
    write_group_totals(out, 'Action', summary.action_totals)
    log.debug("Print wait time totals by cursor, module and action...")
    write_cursor_waits(out, totals.cursor_waits)
    write_group_waits(out, 'Module', summary.module_waits)
    write_group_waits(out, 'Action', summary.action_waits)
    log.debug("Print totals by command type...")
    write_command_totals(out, summary.command_totals)
    write_overall_totals(out, '                OVERALL TOTALS FOR ALL NON-RECURSIVE STATEMENTS',
                         totals.nonrec, totals.nonrec_unaccounted)
    write_overall_totals(out, '                  OVERALL TOTALS FOR ALL RECURSIVE STATEMENTS',
                         totals.rec, totals.rec_unaccounted)
    log.debug("Print elapsed summary totals...")
    write_elapsed_summary(out, totals.elapsed_rows)
    # Wait summaries
    waits = [record.data for record in store.kinds(RecordKind.WAIT)]
    waits.sort(key=attrgetter('name'))
    events = event_totals(waits)
    write_wait_summary(out, '                    WAIT EVENTS FOR ALL STATEMENTS FOR USERS',
                       events, 'Total Wait Events:')
    if any(ela >= 1 and is_segment_hint_event(name) for name, ela, _ in events):
        _segment_hint(out)
    busy = [row for row in events if not is_idle_event(row[0])]
    idle = sum((row[1] for row in events if is_idle_event(row[0])), _ZERO)
    scans = sum((row[1] for row in busy if is_scattered_read(row[0])), _ZERO)
    non_idle = write_wait_summary(out, '                   **** GRAND TOTAL NON-IDLE WAIT EVENTS ****',
                                  busy, 'Grand Total Non-Idle Wait Events:')
    if sum(1 for row in busy if is_scattered_read(row[0])) > 1:
        _scattered_note(out)
    log.debug("Print Oracle timing analysis...")
    contributors = timing_contributors(store, totals, events)
    timed = write_wait_summary(out, '                         *** ORACLE TIMING ANALYSIS ***',
                               contributors, 'Total Oracle Timings:', timing=True)
    if contributors:
        print('', file=out)
        print('(Note that these timings may differ from the following grand totals, due to',
              file=out)
        print(' overlapping wall clock time for simultaneously-executed processes, as well as',
              file=out)
        print(' omitted RPC times.)', file=out)
        shares = {name: ela for name, ela, _ in contributors}
        if shares.get('Unaccounted-for time', _ZERO) > UNACCOUNTED_THRESHOLD * timed:
            print('', file=out)
            print('  Unaccounted-for time is any remaining time after subtracting wait time',
                  file=out)
            print('  and cpu time from total elapsed time.', file=out)
            _unaccounted_note(out)
        if shares.get('Timing Gap Error', _ZERO) > GAP_THRESHOLD * timed:
            _gap_note(out)
    if summary.unmatched_wait >= 1:
        print('', file=out)
        print('%-50s %8.2f' % ('Total Wait Time without a matching cursor:',
                               summary.unmatched_wait / 100), file=out)
    write_grand_totals(out, summary.grand_elapsed, totals.elapsed,
                       totals.cpu + summary.rpc_cpu, non_idle, idle, scans)
    write_warnings(out, store)
