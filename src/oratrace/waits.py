# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/waits.py
# DESCRIPTION:    Per-cursor wait event analysis and report sections
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

"""oratrace.waits - Per-cursor wait event analysis and report sections.

`CursorWaits` collects wait records of one cursor and computes sub-totals by wait
event (split by file number for block-addressed events), response time histograms
and block revisit counts. The `write_*` functions print the wait sections of the
per-cursor report block.
"""

from __future__ import annotations

from bisect import bisect_left
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from itertools import groupby
from operator import attrgetter
from typing import TextIO

from .oracle import is_block_event, is_disk_read_event
from .records import Wait
from .timing import kmc, percent

#: Upper bounds (milliseconds) of histogram buckets, the last bucket is unbounded
BUCKET_LIMITS: tuple[int, ...] = (1, 2, 4, 8, 16, 32, 64, 128, 256)
#: Number of histogram buckets
BUCKET_COUNT = len(BUCKET_LIMITS) + 1

_ZERO = Decimal(0)

def bucket_index(ms: int | Decimal) -> int:
    """Returns index of histogram bucket for wait time in milliseconds.
    """
    return bisect_left(BUCKET_LIMITS, ms)

def wait_location(wait: Wait) -> tuple[str, str]:
    """Returns (file, block) columns for wait, empty strings for events without them.
    """
    if is_block_event(wait.name):
        return str(wait.p1), str(wait.p2)
    return '', ''

@dataclass
class WaitSubtotal:
    """Wait times summed by wait event.
    """
    #: Event name, followed by `(File n)` for block-addressed events
    key: str
    #: File number for `db file` events, None otherwise
    file: int | None = None
    #: Object number (waits by object only)
    obj: int = 0
    #: Total wait time (centiseconds)
    total: Decimal = _ZERO
    #: Number of waits
    count: int = 0
    #: Longest wait (centiseconds)
    longest: Decimal = _ZERO
    #: Number of waits per histogram bucket
    buckets: list[int] = field(default_factory=lambda: [0] * BUCKET_COUNT)
    def add(self, ela: Decimal) -> None:
        self.total += ela
        self.count += 1
        self.longest = max(self.longest, ela)
        self.buckets[bucket_index(ela * 10)] += 1
    @property
    def avg_ms(self) -> Decimal:
        "Average wait time in milliseconds."
        return 10 * self.total / self.count if self.count else _ZERO

class CursorWaits:
    """Wait analysis for one cursor.

    Arguments:
        waits: Wait records of the cursor.
        objects: Wait records of the cursor with object number.
    """
    def __init__(self, waits: Iterable[Wait], objects: Iterable[Wait]=()):
        #: Waits ordered by event name and trace line
        self.waits: list[Wait] = sorted(waits, key=attrgetter('name', 'line'))
        #: Waits with object number, ordered by event name, object and trace line
        self.objects: list[Wait] = sorted((w for w in objects if w.obj > 0),
                                          key=attrgetter('name', 'obj', 'line'))
        #: Total wait time (centiseconds)
        self.total: Decimal = sum((w.ela for w in self.waits), _ZERO)
        #: Sub-totals by wait event in order of appearance
        self.subtotals: dict[str, WaitSubtotal] = {}
        #: Sub-totals by wait event and object
        self.object_subtotals: dict[tuple[str, int], WaitSubtotal] = {}
        for wait in self.waits:
            file, _ = wait_location(wait)
            key = f'{wait.name} (File {file})' if file else wait.name
            if (subtotal := self.subtotals.get(key)) is None:
                subtotal = WaitSubtotal(key, wait.p1 if file and wait.name.startswith('db file')
                                        else None)
                self.subtotals[key] = subtotal
            subtotal.add(wait.ela)
        for wait in self.objects:
            if (subtotal := self.object_subtotals.get((wait.name, wait.obj))) is None:
                subtotal = WaitSubtotal(wait.name, obj=wait.obj)
                self.object_subtotals[(wait.name, wait.obj)] = subtotal
            subtotal.add(wait.ela)
    def __bool__(self) -> bool:
        return bool(self.waits)
    @property
    def listed(self) -> list[Wait]:
        "Waits long enough to be listed individually."
        return [w for w in self.waits if 100 * w.ela >= 1]
    def revisits(self) -> list[tuple[int, int, int]]:
        """Returns (visits, file, block) for disk blocks read more than once.

        List is sorted by descending number of visits.
        """
        visits = Counter((w.p1, w.p2) for w in self.waits if is_disk_read_event(w.name))
        return sorted(((count, file, block) for (file, block), count in visits.items()
                       if count > 1), reverse=True)
    def disk_reads(self) -> list[Wait]:
        "Disk read waits that carry number of blocks read."
        return [w for w in self.waits if is_disk_read_event(w.name) and w.p3 > 0]

def _write_fold(out: TextIO, run: list[Wait], limit: int, text: str) -> None:
    print(f'     {len(run) - limit} more {text} wait events...', file=out)
    total = sum((w.ela for w in run), _ZERO)
    print('Min Wait Time=%9.3f Avg Wait Time=%9.3f Max Wait Time=%9.3f'
          % (min(w.ela for w in run) / 100, total / len(run) / 100, max(w.ela for w in run) / 100),
          file=out)

def _write_runs(out: TextIO, waits: list[Wait], key: Callable[[Wait], object], limit: int,
                row: Callable[[Wait], None], fold_text: Callable[[Wait], str]) -> None:
    for _, group in groupby(waits, key=key):
        run = list(group)
        for wait in run[:limit]:
            row(wait)
        if len(run) > limit:
            _write_fold(out, run, limit, fold_text(run[0]))

def write_waits(out: TextIO, analysis: CursorWaits, *, unaccounted: bool, limit: int) -> bool:
    """Writes `Significant Wait Events` section with sub-totals, maximums and histograms.

    Arguments:
        out: Report stream.
        analysis: Wait analysis of cursor.
        unaccounted: True for waits without a matching cursor.
        limit: Number of waits listed for one event before the rest is folded.

    Returns:
        True if anything was written.
    """
    listed = analysis.listed
    if not listed:
        return False
    total = analysis.total
    if unaccounted:
        print('                    Unaccounted Wait Events for all cursors', file=out)
    else:
        print('                         Significant Wait Events', file=out)
    print(' ', file=out)
    print('                   ' '                 ' '       Total', file=out)
    print('                   ' '                 ' '       Wait      ' '   Trace', file=out)
    print('                    ' '                  ' '     Time         ' ' File File   Block',
          file=out)
    print('Oracle Event Name' '               ' '          (secs)' '  Pct    Line Numb' '  Number',
          file=out)
    print('-----------------' '---------------' '------- --------' ' ---- ------- ----' ' -------',
          file=out)
    def row(wait: Wait) -> None:
        file, block = wait_location(wait)
        print('%-39s%9.3f %3d%% %7d %4s%8s' % (wait.name[:39], wait.ela / 100,
                                              percent(wait.ela, total), wait.line, file, block),
              file=out)
        if len(wait.name) > 39: # noqa: PLR2004
            print(f'  {wait.name[39:]}', file=out)
        if wait.name.startswith('enqueue (Na'):
            print(f'  Rollback segment #{wait.p2 // 65536}, Slot #{wait.p2 % 65536}', file=out)
    _write_runs(out, listed, attrgetter('name'), limit, row, attrgetter('name'))
    print('-----------------------------' '---------- -------- ----', file=out)
    print('%-39s%9.3f %3d%%' % ('Total', total / 100, 100), file=out)
    print('', file=out)
    write_subtotals(out, analysis)
    write_max_waits(out, analysis)
    write_histograms(out, analysis)
    return True

def write_subtotals(out: TextIO, analysis: CursorWaits) -> None:
    """Writes `Sub-Totals by Wait Event` table.
    """
    print('                           Sub-Totals by Wait Event:', file=out)
    print('', file=out)
    print('                            ' '                        Total', file=out)
    print('                            ' '                        Wait ' '       Number', file=out)
    print('                            ' '                        Time ' '         of    Avg ms',
          file=out)
    print('Oracle Event Name           ' '                       ' '(secs)  Pct   Waits'
          ' per Wait', file=out)
    print('----------------------------' '-------------------- --' '------ ---- -------'
          ' --------', file=out)
    waited = _ZERO
    count = 0
    for subtotal in analysis.subtotals.values():
        print('%-48s%9.3f %3d%% %7d%9.2f' % (subtotal.key[:48], subtotal.total / 100,
                                            percent(subtotal.total, analysis.total),
                                            subtotal.count, subtotal.avg_ms), file=out)
        if len(subtotal.key) > 48: # noqa: PLR2004
            print(f'  {subtotal.key[48:]}', file=out)
        waited += subtotal.total
        count += subtotal.count
    print('----------------------------' '-------------------- --------' ' ---- ------- --------',
          file=out)
    print('%40s  Total %9.3f %3d%% %7d%9.2f' % ('', waited / 100, 100, count,
                                               10 * waited / count if count else 0), file=out)
    print('', file=out)

def write_max_waits(out: TextIO, analysis: CursorWaits) -> None:
    print('                            ' '                          Max ms', file=out)
    print('Oracle Event Name           ' '                         per Wait', file=out)
    print('----------------------------' '-------------------- ------------', file=out)
    for subtotal in analysis.subtotals.values():
        print('%-48s%13.2f' % (subtotal.key[:48], 10 * subtotal.longest), file=out)
        if len(subtotal.key) > 48: # noqa: PLR2004
            print(f'  {subtotal.key[48:]}', file=out)
    print('', file=out)

def write_histograms(out: TextIO, analysis: CursorWaits) -> None:
    """Writes `Wait Event Histograms` table.

    Counts are formatted with `.kmc` to fit four characters.
    """
    print('                             Wait Event Histograms', file=out)
    print('', file=out)
    print('                               <<<<' '<< Count of Wait Events that waited'
          ' for >>>>>', file=out)
    print('                                   ' '                       16   32  64 ' '  128  >',
          file=out)
    print('                                0-1' '  1-2  2-4  4-8 8-16  -32  -64 -128' ' -256 256+',
          file=out)
    print('Oracle Event Name               ms ' '  ms   ms   ms   ms   ms   ms   ms ' '  ms   ms',
          file=out)
    print('------------------------------ ----' ' ---- ---- ---- ---- ---- ---- ----' ' ---- ----',
          file=out)
    totals = [0] * BUCKET_COUNT
    for subtotal in analysis.subtotals.values():
        print('%-30s' % subtotal.key[:30] + ''.join(' ' + kmc(n, 4) for n in subtotal.buckets),
              file=out)
        if len(subtotal.key) > 30: # noqa: PLR2004
            print(f'  {subtotal.key[30:]}', file=out)
        totals = [a + b for a, b in zip(totals, subtotal.buckets)]
    grand = sum(totals)
    if grand > 0:
        print('-----------------------------' '- ---- ---- ---- ---- ----'
              ' ---- ---- ---- ---- ----', file=out)
        print('%-30s' % ' Histogram Bucket Sub-Totals  ' + ''.join(' ' + kmc(n, 4) for n in totals),
              file=out)
        print('%-30s' % ' Percent of Total Wait Events '
              + ''.join('%4d%%' % (100 * n // grand) for n in totals), file=out)

def write_revisits(out: TextIO, analysis: CursorWaits, *, explain: bool) -> bool:
    """Writes `Report of Frequently Visited Blocks` and per-file summary.

    Arguments:
        out: Report stream.
        analysis: Wait analysis of cursor.
        explain: Include explanatory text.

    Returns:
        True if anything was written.
    """
    revisits = analysis.revisits()
    if not revisits:
        return False
    print('', file=out)
    print('                      Report of Frequently Visited Blocks', file=out)
    print(' ', file=out)
    if explain:
        print('           This shows which blocks have been re-read multiple times.', file=out)
        print(' ', file=out)
        print('           Processes with a significant number of frequently visited', file=out)
        print('                blocks may offer the largest improvement gain.', file=out)
        print(' ', file=out)
    print('                  Block Visits     File Number    Block Number', file=out)
    print('                 ------' '------- ---------------' ' ---------------', file=out)
    files: dict[int, list[int]] = {}
    for visits, file, block in revisits:
        print('                 %13d %15d %15d' % (visits, file, block), file=out)
        per_file = files.setdefault(file, [0, 0])
        per_file[0] += 1
        per_file[1] += visits
    print(' ', file=out)
    print('                      Summary of Frequently Visited Blocks', file=out)
    if explain:
        print(' ', file=out)
        print('         Processes with a significant Revisit Wait Time and a % Revisit', file=out)
        print('               Wait Time may offer the largest improvement gain.', file=out)
    print(' ', file=out)
    print('      File   Total Number  Total Block  Total Wait  Revisit Wait  % Revisit', file=out)
    print('     Number    of Blocks     Visits     Time (secs)  Time (secs)  Wait Time', file=out)
    print('     ------  ------------  -----------  ----------  ------------  ---------', file=out)
    for file, (blocks, visits) in files.items():
        waited = sum((s.total for s in analysis.subtotals.values() if s.file == file), _ZERO)
        count = sum(s.count for s in analysis.subtotals.values() if s.file == file)
        if waited == 0 or count == 0:
            print('    %7d  %12d  %11d' % (file, blocks, visits), file=out)
        else:
            share = Decimal(visits) / count
            print('    %7d  %12d  %11d  %10.3f  %12.3f    %3d%%'
                  % (file, blocks, visits, waited / 100, waited / 100 * share, int(100 * share)),
                  file=out)
    return True

def _throughput(count: int, ela: Decimal) -> int:
    return int(count / (ela / 100)) if ela else 0

def write_disk_reads(out: TextIO, analysis: CursorWaits) -> bool:
    """Writes `Disk Read Time Histogram Summary for this cursor`.

    Returns:
        True if anything was written.
    """
    reads = analysis.disk_reads()
    if analysis.total <= 0 or not reads:
        return False
    counts = [0] * BUCKET_COUNT
    blocks = [0] * BUCKET_COUNT
    times = [_ZERO] * BUCKET_COUNT
    for wait in reads:
        index = bucket_index(int(wait.ela * 10))
        counts[index] += 1
        blocks[index] += wait.p3
        times[index] += wait.ela
    total_reads = sum(counts)
    total_blocks = sum(blocks)
    total_time = sum(times, _ZERO)
    print(' ', file=out)
    print('                Disk Read Time Histogram Summary for this cursor', file=out)
    print(' ', file=out)
    print('Millisecond          ' '              I/O  ' '  Pct of Pct of' ' Throughput'
          ' Throughput', file=out)
    print(' Range per    Number ' '  Number   Read Tim' 'e  Total  Total' '  (Reads/'
          '   (DBblocks/', file=out)
    print('   Read      of Reads' ' of Blocks  in secs' '   Reads Blocks' '  second)'
          '     second)', file=out)
    print('-----------  --------' ' ---------' ' --------- ------' ' ------ ----------'
          ' ----------', file=out)
    lower = (0, *BUCKET_LIMITS)
    upper = (*(str(n) for n in BUCKET_LIMITS), '+')
    for i in range(BUCKET_COUNT):
        if counts[i] == 0:
            continue
        print('%4d - %4s%10d%10d%10.2f%6d%%%6d%%%11d%11d'
              % (lower[i], upper[i], counts[i], blocks[i], times[i] / 100,
                 100 * counts[i] // total_reads,
                 100 * blocks[i] // total_blocks if total_blocks else 0,
                 _throughput(counts[i], times[i]), _throughput(blocks[i], times[i])), file=out)
    print('-----------  -------- ---------' ' --------- ------ ------ ----------' ' ----------',
          file=out)
    print('   Total   %10d%10d%10.2f%6d%%%6d%%%11d%11d'
          % (total_reads, total_blocks, total_time / 100, 100, 100,
             _throughput(total_reads, total_time), _throughput(total_blocks, total_time)),
          file=out)
    print(' ', file=out)
    return True

def write_object_waits(out: TextIO, analysis: CursorWaits, *, unaccounted: bool,
                       limit: int) -> bool:
    """Writes `Significant Wait Events by Object` section.

    Arguments:
        out: Report stream.
        analysis: Wait analysis of cursor.
        unaccounted: True for waits without a matching cursor.
        limit: Number of waits listed for one event and object before the rest is folded.

    Returns:
        True if anything was written.
    """
    listed = [w for w in analysis.objects if 100 * w.ela >= 1]
    if not listed:
        return False
    total = analysis.total
    print(' ', file=out)
    if unaccounted:
        print('                    Unaccounted Wait Events for all cursors', file=out)
    else:
        print('                    Significant Wait Events by Object', file=out)
    print(' ', file=out)
    print('                 ' '               ' '               ' '     Total', file=out)
    print('                 ' '               ' '               ' '     Wait', file=out)
    print('                 ' '               ' '          Objec' 't    Time      '
          ' File   Block', file=out)
    print('Oracle Event Name' '               ' '          Numbe' 'r   (secs)  Pct'
          ' Numb  Number', file=out)
    print('-----------------' '---------------' '------- -------' '- -------- ----'
          ' ---- -------', file=out)
    def row(wait: Wait) -> None:
        file, block = wait_location(wait)
        print('%-39s %8d %8.3f %3d%% %4s%8s' % (wait.name[:39], wait.obj, wait.ela / 100,
                                               percent(wait.ela, total), file, block), file=out)
        if len(wait.name) > 39: # noqa: PLR2004
            print(f'  {wait.name[39:]}', file=out)
    _write_runs(out, listed, attrgetter('name', 'obj'), limit, row,
                lambda wait: f'{wait.name}, Object #{wait.obj}')
    print('-----------------------------' '----------' '          -------- ----', file=out)
    print('%-48s%9.3f %3d%%' % ('Total', total / 100, 100), file=out)
    print('', file=out)
    print('                       Sub-Totals by Wait Event/Object:', file=out)
    print('', file=out)
    print('                            ' '                        Total', file=out)
    print('                            ' '                        Wait ' '       Number', file=out)
    print('                            ' '              Object    Time ' '         of    Avg ms',
          file=out)
    print('Oracle Event Name           ' '              Number' '   (secs)'
          '  Pct   Waits per Wait', file=out)
    print('----------------------------' '----------- --------' ' --------'
          ' ---- ------- --------', file=out)
    waited = _ZERO
    count = 0
    for subtotal in analysis.object_subtotals.values():
        print('%-39s %8d %8.3f %3d%% %7d%9.2f' % (subtotal.key[:39], subtotal.obj,
                                                 subtotal.total / 100,
                                                 percent(subtotal.total, total), subtotal.count,
                                                 subtotal.avg_ms), file=out)
        if len(subtotal.key) > 39: # noqa: PLR2004
            print(f'  {subtotal.key[39:]}', file=out)
        waited += subtotal.total
        count += subtotal.count
    print('----------------------------' '-----------          --------' ' ---- ------- --------',
          file=out)
    print('%-48s %8.3f %3d%% %7d%9.2f' % ('Total', waited / 100, 100, count,
                                         10 * waited / count if count else 0), file=out)
    print('', file=out)
    print('                            ' '              Object   Max ms', file=out)
    print('Oracle Event Name           ' '              Number  per Wait', file=out)
    print('----------------------------' '----------- -------- ---------', file=out)
    for subtotal in analysis.object_subtotals.values():
        print('%-39s %8d %9.2f' % (subtotal.key[:39], subtotal.obj, 10 * subtotal.longest),
              file=out)
        if len(subtotal.key) > 39: # noqa: PLR2004
            print(f'  {subtotal.key[39:]}', file=out)
    print('', file=out)
    return True
