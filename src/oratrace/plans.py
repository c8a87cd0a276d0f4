# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/plans.py
# DESCRIPTION:    Row source plan and segment-level statistics sections
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

"""oratrace.plans - Row source plan and segment-level statistics sections.

STAT lines are dumped by Oracle either once when a cursor is closed, or after every
execution, depending on version. Each group of STAT lines with the same set number
is one plan. Consecutive identical plans are printed only once.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from itertools import groupby
from operator import attrgetter
from typing import TextIO

from .records import Stat
from .timing import kmc

def distinct_sets(stats: Iterable[Stat]) -> list[list[Stat]]:
    """Returns STAT sets in trace order, without consecutive duplicates.

    Sets are compared by content, set number and trace line are ignored. From a run
    of identical sets the last one is kept.
    """
    sets = [list(group) for _, group in groupby(stats, key=attrgetter('set_no'))]
    return [stat_set for i, stat_set in enumerate(sets)
            if i == len(sets) - 1 or stat_set != sets[i + 1]]

def write_plan(out: TextIO, plan: list[Stat]) -> None:
    """Writes one row source plan.

    Steps are indented one position deeper than their parent step.
    """
    print('', file=out)
    print('      Rows  Row Source Operation', file=out)
    print('----------  ---------------------------------------------------', file=out)
    indents: dict[int, int] = {}
    for stat in plan:
        link = indents[stat.pid] + 1 if stat.pid in indents else 0
        indents.setdefault(stat.id, link)
        print('%10d%s%s' % (stat.rows, ' ' * (2 + link), stat.desc), file=out)
        if stat.part_start != '0' or stat.part_stop != '0':
            print(f'            Partition Start: {stat.part_start}  Partition End: {stat.part_stop}',
                  file=out)

def write_plans(out: TextIO, stats: Iterable[Stat]) -> int:
    """Writes all distinct row source plans of a cursor.

    Returns:
        Number of plans written.
    """
    plans = distinct_sets(stats)
    for i, plan in enumerate(plans):
        if i > 0:
            print('', file=out)
            print('                        (Multiple Plans For This Cursor)', file=out)
        write_plan(out, plan)
    return len(plans)

def write_segment_stats(out: TextIO, stats: Iterable[Stat]) -> int:
    """Writes `Segment-Level Statistics` of a cursor.

    When optimizer cost is present, the table carries cost, size and cardinality
    columns and large numbers are scaled with `.kmc`.

    Returns:
        Number of statistic sets written.
    """
    sets = distinct_sets(stats)
    if not sets:
        return 0
    with_cost = sets[0][0].cost is not None
    print('', file=out)
    print('                            Segment-Level Statistics', file=out)
    print('', file=out)
    if with_cost:
        print('                                Phys   Phys  Elapsed Time', file=out)
        print('   Object ID   Logical I/Os     Reads Writes  (seconds)     Cost     Size   Card',
              file=out)
        print('   ----------- ------------ --------- ------ ------------ ------ -------- ------',
              file=out)
    else:
        print('                                                                 Elapsed Time',
              file=out)
        print('   Object ID        Logical I/Os      Phys Reads     Phys Writes  (seconds)',
              file=out)
        print('   ------------- --------------- --------------- --------------- ------------',
              file=out)
    cr = pr = pw = time = cost = 0
    for i, stat_set in enumerate(sets):
        if i > 0:
            print('              (Multiple Segment-Level Statistics For This Cursor)', file=out)
            print('', file=out)
        for stat in stat_set:
            if with_cost:
                print('   %11s %12s %9s %6s %12.6f %6s %8s %6s'
                      % (kmc(stat.obj, 11), kmc(stat.cr, 12), kmc(stat.pr, 9), kmc(stat.pw, 6),
                         Decimal(stat.time) / 1000000, kmc(stat.cost or 0, 6),
                         kmc(stat.size or 0, 8), kmc(stat.card or 0, 6)), file=out)
            else:
                print('   %13d %15d %15d %15d %12.6f'
                      % (stat.obj, stat.cr, stat.pr, stat.pw, Decimal(stat.time) / 1000000),
                      file=out)
            cr += stat.cr
            pr += stat.pr
            pw += stat.pw
            time += stat.time
            cost += stat.cost or 0
    if cr != 0 or time != 0:
        if with_cost:
            print('   ----------- ------------ --------- ------ ------------ ------', file=out)
            print('         Total %12s %9s %6s %12.6f %6s'
                  % (kmc(cr, 12), kmc(pr, 9), kmc(pw, 6), Decimal(time) / 1000000, kmc(cost, 6)),
                  file=out)
        else:
            print('   ------------- --------------- --------------- --------------- ------------',
                  file=out)
            print('       Total %19d %15d %15d %12.6f'
                  % (cr, pr, pw, Decimal(time) / 1000000), file=out)
    print('', file=out)
    return len(sets)
