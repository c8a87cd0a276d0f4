# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           tests/test_report.py
# DESCRIPTION:    Tests for oratrace.report and oratrace.summary modules
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

"""oratrace - Tests for oratrace.report and oratrace.summary modules
"""

from decimal import Decimal
from io import StringIO
from re import finditer

from oratrace.config import ReportConfig
from oratrace.ingest import TraceParser
from oratrace.records import OpKind
from oratrace.report import *
from oratrace.store import BindValue, CallTotals
from oratrace.summary import (ElapsedRow, TopEntry, write_elapsed_summary, write_grand_totals,
                              write_top_statements)

HEADER = """Trace file /u01/app/oracle/diag/rdbms/orcl/orcl/trace/orcl_ora_1234.trc
Oracle Database 11g Enterprise Edition Release 11.2.0.4.0 - 64bit Production
Node name: dbhost
Instance name: orcl

*** 2024-03-01 10:00:00.000
*** SESSION ID:(45.123) 2024-03-01 10:00:00.000
*** MODULE NAME:(SQL*Plus) 2024-03-01 10:00:00.000

=====================
"""

MINIMAL = HEADER + """PARSING IN CURSOR #1 len=18 dep=0 uid=5 oct=3 lid=5 tim=1000000 hv=100 ad='abc' sqlid='abcd1234'
select * from dual
END OF STMT
PARSE #1:c=0,e=5000,p=0,cr=0,cu=0,mis=1,r=0,dep=0,og=1,plh=0,tim=1005000
EXEC #1:c=0,e=5000,p=0,cr=0,cu=0,mis=0,r=0,dep=0,og=1,plh=0,tim=1010000
"""

RECURSIVE = HEADER + """PARSING IN CURSOR #1 len=24 dep=0 uid=5 oct=2 lid=5 tim=1000000 hv=500 ad='b1' sqlid='ins500'
insert into t values (1)
END OF STMT
PARSING IN CURSOR #2 len=21 dep=1 uid=0 oct=3 lid=0 tim=1000100 hv=600 ad='b2' sqlid='sel600'
select obj# from obj$
END OF STMT
EXEC #2:c=100000,e=200000,p=0,cr=3,cu=0,mis=0,r=0,dep=1,og=4,plh=0,tim=1200100
FETCH #2:c=0,e=100000,p=0,cr=1,cu=0,mis=0,r=1,dep=1,og=4,plh=0,tim=1300100
EXEC #1:c=500000,e=800000,p=0,cr=4,cu=3,mis=0,r=1,dep=0,og=1,plh=0,tim=2100100
"""

def linesplit_iter(string):
    """Iterates over lines in a string, handling different line endings."""
    return (m.group(2) or m.group(3) or ''
            for m in finditer('((.*)\n|(.+)$)', string))

def build_report(text: str, config: ReportConfig | None=None) -> tuple[TraceParser, ReportTotals, str]:
    parser = TraceParser()
    for _ in parser.parse(linesplit_iter(text)):
        pass
    out = StringIO()
    totals = ReportBuilder(parser.store, config or ReportConfig(), out).write()
    return parser, totals, out.getvalue()

def grand_total_fields(report: str) -> list[Decimal]:
    line = [line for line in report.splitlines() if line.startswith('GRAND TOTAL SECS:')][0]
    return [Decimal(value) for value in line.split()[3:]]

def test_01_minimal_report():
    """Minimal trace gives one cursor block with two calls."""
    parser, totals, report = build_report(MINIMAL)
    lines = report.splitlines()
    assert lines[:3] == ['Oracle Trace Dump File Report', '',
                         'NOTE:  SEE THE TEXT AT THE TOP OF THE TRACE_REPORT SCRIPT FOR INSTRUCTIONS']
    assert 'Trace File  = /u01/app/oracle/diag/rdbms/orcl/orcl/trace/orcl_ora_1234.trc' in lines
    assert [line for line in lines if line.startswith('ID #')] == \
           ['ID #1 at 03/01/24 10:00:00 (Cursor 1):']
    assert 'SQL Hash Value: 100   SQL ID: abcd1234' in lines
    assert '%-12s%6d %8.2f %10.2f %9d %9d %9d %9d' % ('total', 2, 0, Decimal('0.01'), 0, 0, 0, 0) \
           in lines
    start = lines.index('Misses in library cache during parse: 1')
    assert lines[start:start + 4] == ['Misses in library cache during parse: 1',
                                      'Optimizer goal: All_Rows',
                                      'Parsing user id: 5',
                                      'SQL ID: abcd1234']
    assert 'Module: SQL*Plus' in lines
    assert 'Unaccounted-for time' not in report
    assert totals.elapsed == 1
    assert totals.nonrec[OpKind.PARSE].count == 1
    assert totals.nonrec[OpKind.EXEC].count == 1
    assert [row.index for row in totals.elapsed_rows] == [1]
    wall, elapsed, *_ = grand_total_fields(report)
    assert wall == Decimal('0.01')
    assert elapsed >= Decimal('0.01')

def test_02_idempotent():
    """Same trace always gives the same report."""
    assert build_report(RECURSIVE)[2] == build_report(RECURSIVE)[2]

def test_03_recursive_report():
    """Recursive cursors are reported with depth and SYS parsing user."""
    parser, totals, report = build_report(RECURSIVE)
    lines = report.splitlines()
    assert [line for line in lines if line.startswith('ID #')] == \
           ['ID #1 at 03/01/24 10:00:00 (Cursor 1):',
            'ID #2 (RECURSIVE DEPTH 1) at 03/01/24 10:00:00 (Cursor 2):']
    assert 'Parsing user id: SYS' in lines
    assert 'Optimizer goal: Choose' in lines
    assert totals.nonrec[OpKind.EXEC].cpu == 40
    assert totals.rec[OpKind.EXEC].cpu == 10
    assert totals.nonrec_unaccounted == 10
    assert totals.rec_unaccounted == 20
    assert totals.unaccounted_count == 2
    # Cursor block and overall totals
    assert lines.count('  Unaccounted-for time:    %7.2f' % Decimal('0.10')) == 2
    assert lines.count('  Unaccounted-for time:    %7.2f' % Decimal('0.20')) == 2
    assert '                OVERALL TOTALS FOR ALL NON-RECURSIVE STATEMENTS' in lines
    assert '                  OVERALL TOTALS FOR ALL RECURSIVE STATEMENTS' in lines
    assert [(row.index, row.uid) for row in totals.elapsed_rows] == [(1, '5'), (2, '0')]

def test_04_grand_total_consistency():
    """CPU Time of grand totals equals sum of per-call CPU totals."""
    parser, totals, report = build_report(RECURSIVE)
    summary = parser.store.summary
    calls_cpu = sum((t.cpu for t in totals.nonrec.values()), Decimal(0)) \
        + sum((t.cpu for t in totals.rec.values()), Decimal(0))
    assert calls_cpu == totals.cpu
    assert sum((t.cpu for t in summary.op_totals.values()), Decimal(0)) == calls_cpu
    wall, elapsed, cpu, non_idle, idle, scans = grand_total_fields(report)
    assert cpu == round((calls_cpu + summary.rpc_cpu) / 100, 2)
    assert wall == Decimal('1.10')
    assert elapsed == Decimal('0.80')
    assert (non_idle, idle, scans) == (0, 0, 0)

def test_05_wait_before_cursor():
    """Wait recorded before cursor introduction counts to that cursor."""
    text = MINIMAL + """WAIT #5: nam='db file sequential read' ela= 20000 file#=4 block#=100 blocks=1 obj#=-1 tim=1020000
PARSING IN CURSOR #5 len=18 dep=0 uid=5 oct=3 lid=5 tim=1030000 hv=200 ad='def' sqlid='efgh5678'
select 1 from dual
END OF STMT
EXEC #5:c=1000,e=30000,p=1,cr=3,cu=0,mis=0,r=1,dep=0,og=1,plh=0,tim=1060000
"""
    parser, totals, report = build_report(text)
    assert totals.cursor_waits == [(2, 'db file sequential read (File 4)', Decimal(2))]
    assert 'Significant Wait Events' in report
    assert 'Unaccounted Wait Events for all cursors' not in report
    assert 'Total Wait Time without a matching cursor:' not in report
    rows = {row.index: row for row in totals.elapsed_rows}
    assert rows[2].wait == 2

def test_06_wait_without_cursor():
    """Waits for unknown cursors are reported as unaccounted."""
    text = MINIMAL + """WAIT #9: nam='db file sequential read' ela= 50000 file#=4 block#=120 blocks=1 obj#=-1 tim=1100000
"""
    parser, totals, report = build_report(text)
    lines = report.splitlines()
    assert [line for line in lines if line.startswith('ID #')] == \
           ['ID #1 at 03/01/24 10:00:00 (Cursor 1):']
    assert 'Unaccounted Wait Events for all cursors' in report
    assert '%-50s %8.2f' % ('Total Wait Time without a matching cursor:', Decimal('0.05')) \
           in lines
    assert (9999, 'db file sequential read (File 4)', Decimal(5)) in totals.cursor_waits

def test_07_binds():
    """Bind values are listed up to configured limit."""
    text = MINIMAL + """BINDS #1:
 Bind#0
  oacdty=02 mxl=22(22) mxlc=00 mal=00 scl=00 pre=00
  oacflg=08 fl2=0001 frm=00 csi=00 siz=24 off=0
  kxsbbbfp=7f2a1c2b3d48  bln=22  avl=02  flg=05
  value=10
 Bind#1
  oacdty=01 mxl=32(05) mxlc=00 mal=00 scl=00 pre=00
  oacflg=03 fl2=1000000 frm=01 csi=873 siz=32 off=0
  kxsbbbfp=7f2a1c2b3d10  bln=32  avl=05  flg=05
  value="SMITH"
EXEC #1:c=0,e=5000,p=0,cr=0,cu=0,mis=0,r=0,dep=0,og=1,plh=0,tim=1020000
"""
    config = ReportConfig()
    config.bind_limit.value = 1
    _, _, report = build_report(text, config)
    lines = report.splitlines()
    assert 'First 1 Bind Variable Values (Including any peeked values)' in report
    assert '%4s %11d    %-44s %10d' % ('', 1, '10', len(MINIMAL.splitlines()) + 6) in lines
    assert 'SMITH' not in report
    assert 'Total of 2 bind variables' in report

def test_08_bind_lines():
    """Long bind values are wrapped."""
    assert bind_lines(BindValue('Peek', 2, '10', 55)) == \
           ['%4s %11d    %-44s %10d' % ('Peek', 2, '10', 55)]
    row = '%4s %11d    %-44s %10d' % ('    ', 1, 'x' * 60, 123)
    assert bind_lines(BindValue('    ', 1, 'x' * 60, 123)) == \
           [row[:64], ' ' * 20 + 'x' * 16 + ' ' * 29 + '       123']

def test_09_error_and_plan():
    """Errors, transactions and row source plans are written in cursor block."""
    text = MINIMAL + """ERROR #1:err=942 tim=1011000
STAT #1 id=1 cnt=1 pid=0 pos=1 obj=20 op='TABLE ACCESS FULL EMP (cr=7 pr=6 pw=0 time=300 us cost=3 size=87 card=1)'
XCTEND rlbk=1, rd_only=0, tim=1012000
"""
    line = len(MINIMAL.splitlines()) + 1
    _, _, report = build_report(text)
    lines = report.splitlines()
    assert f'Oracle Error ORA-00942 on trace line {line}' in lines
    assert f'ROLLBACK UPDATE transaction on trace line {line + 2} at 03/01/24 10:00:00' in lines
    assert '%10d  %s' % (1, 'TABLE ACCESS FULL EMP (object id 20)') in lines
    assert 'Segment-Level Statistics' in report

def test_10_elapsed_summary():
    """Cursors are sorted by descending elapsed time."""
    out = StringIO()
    rows = [ElapsedRow(1, '5', 2, Decimal(10), Decimal(20), Decimal(0), 0, 0, 0),
            ElapsedRow(2, '', 1, Decimal(0), Decimal(0), Decimal(0), 0, 0, 0),
            ElapsedRow(3, '0', 4, Decimal(30), Decimal(90), Decimal(50), 1, 2, 3)]
    write_elapsed_summary(out, rows)
    lines = out.getvalue().splitlines()
    listed = [line for line in lines if line[:4].strip().isdigit()]
    assert [int(line[:4]) for line in listed] == [3, 1]
    assert lines[-1].split()[:2] == ['0.40', '1.10']

def test_11_grand_totals_without_time():
    """Grand totals of trace without timestamps."""
    out = StringIO()
    write_grand_totals(out, 0, Decimal(0), Decimal(0), Decimal(0), Decimal(0), Decimal(0))
    assert out.getvalue().splitlines()[-1] == 'GRAND TOTAL SECS:  %12.2f' % 0

def test_12_write_report(tmp_path):
    """Report is written into file."""
    parser = TraceParser()
    for _ in parser.parse(linesplit_iter(MINIMAL)):
        pass
    path = write_report(parser.store, tmp_path / 'report.lst')
    assert path.read_text(encoding='utf-8').startswith('Oracle Trace Dump File Report\n')

def test_13_call_totals():
    """Call totals merge."""
    first = CallTotals(1, Decimal(1), Decimal(2), 3, 4, 5, 6)
    first.merge(CallTotals(1, Decimal(1), Decimal(2), 3, 4, 5, 6))
    assert first == CallTotals(2, Decimal(2), Decimal(4), 6, 8, 10, 12)

def test_14_bind_count():
    """Continuation lines of long bind values are not counted as bind variables."""
    text = MINIMAL + """BINDS #1:
 Bind#0
  oacdty=01 mxl=128(60) mxlc=00 mal=00 scl=00 pre=00
  oacflg=03 fl2=1000000 frm=01 csi=873 siz=128 off=0
  kxsbbbfp=7f2a1c2b3e10  bln=128  avl=60  flg=05
  value=
""" + 'x' * 60 + """
EXEC #1:c=0,e=5000,p=0,cr=0,cu=0,mis=0,r=0,dep=0,og=1,plh=0,tim=1020000
"""
    parser, _, report = build_report(text)
    assert len(parser.store.binds[1]) == 2
    assert '%25sTotal of 1 bind variable' % '' in report.splitlines()
    assert 'Total of 2 bind variables' not in report

def test_15_lob_and_rpc():
    """LOB calls and RPC executions appear in call table, RPC summary and timing analysis."""
    text = MINIMAL + """LOBREAD: c=20000,e=30000,p=0,cr=1,cu=0,tim=1030000
RPC CALL:BEGIN scott.get_name(:1); END;
RPC BINDS:
 bind 0: dty=2 bfp=7f2a1c2b3d48 flg=08 avl=02 mxl=22 val=10
RPC EXEC:c=10000,e=20000
"""
    line = len(MINIMAL.splitlines()) + 4
    _, _, report = build_report(text)
    lines = report.splitlines()
    assert '%-12s%6d %8.2f %10.2f %9d %9d %9d %9d' \
           % ('Lobread', 1, Decimal('0.02'), Decimal('0.03'), 0, 1, 0, 0) in lines
    assert 'Remote Procedure Call Summary' in report
    assert '%-52s %5d %8.2f %12.2f' % ('BEGIN scott.get_name(:1); END;', 1, Decimal('0.01'),
                                       Decimal('0.02')) in lines
    assert '    Bind Number: %4d Bind Value: %-25s Trace line: %8d' % (1, '10', line) in lines
    assert '     Total of 1 RPC bind variables' in lines
    assert any(line.startswith('LOBREAD Calls ') for line in lines)
    assert any(line.startswith('RPC EXEC Calls ') for line in lines)

def test_16_top_statements():
    """Statements beyond the limit are summed into single row."""
    out = StringIO()
    entries = [TopEntry('Execute', str(hv), '1', ela)
               for hv, ela in ((1, 400), (2, 300), (3, 200), (4, 100))]
    write_top_statements(out, entries, 2)
    lines = out.getvalue().splitlines()
    assert lines[1:3] == ['Top 2 Statements per Event', '=' * 26]
    rows = [line for line in lines if line[:1].isdigit()]
    assert rows == ['%-16s %18s %7.1f%% %14.4f %8d' % ('1', '1', 40.0, Decimal('0.0004'), 1),
                    '%-16s %18s %7.1f%% %14.4f %8d' % ('2', '1', 30.0, Decimal('0.0003'), 1),
                    '%-16s %18s %7.1f%% %14.4f %8d' % ('2 others', ' ', 30.0, Decimal('0.0003'), 2)]
    assert lines[-2] == '%-16s %18s %7.1f%% %14.4f %8d' % ('Total', ' ', 100, Decimal('0.001'), 4)

def test_17_configured_headings():
    """Section headings follow configured limits."""
    config = ReportConfig()
    config.top_statements.value = 1
    _, _, report = build_report(MINIMAL, config)
    assert 'Top 1 Statements per Event' in report.splitlines()
    assert 'Top 5 Statements per Event' not in report

def test_18_duplicate_header():
    """Additional trace headers are listed at the end of report."""
    text = MINIMAL + """/u01/app/oracle/diag/rdbms/orcl/orcl/trace/orcl_ora_1234.trc
Oracle Database 11g Enterprise Edition Release 11.2.0.4.0 - 64bit Production
PARSING IN CURSOR #2 len=8 dep=0 uid=5 oct=3 lid=5 tim=5000000 hv=200 ad='d' sqlid='sel2'
select 2
END OF STMT
EXEC #2:c=0,e=5000,p=0,cr=0,cu=0,mis=0,r=0,dep=0,og=1,plh=0,tim=5010000
"""
    line = len(MINIMAL.splitlines()) + 1
    _, _, report = build_report(text)
    lines = report.splitlines()
    assert '*** Warning: Multiple trace file headings are in the trace file!' in lines
    assert lines[-1] == f'             An extra trace header starts on trace line {line}'
