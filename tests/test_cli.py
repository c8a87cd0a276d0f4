# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           tests/test_cli.py
# DESCRIPTION:    Tests for oratrace.cli module
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

"""oratrace - Tests for oratrace.cli module
"""

import logging
from pathlib import Path

import pytest

from oratrace.cli import *

TRACE = """Trace file /u01/app/oracle/diag/rdbms/orcl/orcl/trace/orcl_ora_1234.trc
Oracle Database 11g Enterprise Edition Release 11.2.0.4.0 - 64bit Production

*** 2024-03-01 10:00:00.000
=====================
PARSING IN CURSOR #1 len=18 dep=0 uid=5 oct=3 lid=5 tim=1000000 hv=100 ad='abc' sqlid='abcd1234'
select * from dual
END OF STMT
PARSE #1:c=0,e=5000,p=0,cr=0,cu=0,mis=1,r=0,dep=0,og=1,plh=0,tim=1005000
EXEC #1:c=0,e=5000,p=0,cr=0,cu=0,mis=0,r=0,dep=0,og=1,plh=0,tim=1010000
"""

def test_01_report_path():
    """Default report file is derived from trace file name."""
    assert str(report_path('/tmp/orcl_ora_1234.trc', '.lst')) == 'orcl_ora_1234.lst'
    assert str(report_path('trace.txt', '.lst')) == 'trace.txt.lst'

def test_02_usage():
    """Trace file argument is required."""
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2

def test_03_success(tmp_path, monkeypatch, caplog):
    """Report is written into current directory."""
    trace = tmp_path / 'orcl_ora_1234.trc'
    trace.write_text(TRACE, encoding='utf-8')
    monkeypatch.chdir(tmp_path)
    with caplog.at_level(logging.INFO):
        assert main([str(trace)]) == 0
    report = tmp_path / 'orcl_ora_1234.lst'
    assert report.is_file()
    assert 'ID #1 at 03/01/24 10:00:00 (Cursor 1):' in report.read_text(encoding='utf-8')
    assert 'Trace output file is orcl_ora_1234.lst' in caplog.messages

def test_04_output_option(tmp_path):
    """Report file can be given explicitly."""
    trace = tmp_path / 'orcl_ora_1234.trc'
    trace.write_text(TRACE, encoding='utf-8')
    output = tmp_path / 'out' / 'report.txt'
    output.parent.mkdir()
    assert main([str(trace), '--output', str(output)]) == 0
    assert output.read_text(encoding='utf-8').startswith('Oracle Trace Dump File Report')

def test_05_rejected(tmp_path, monkeypatch, caplog):
    """Missing file and file that is not 10046 trace are rejected without report."""
    monkeypatch.chdir(tmp_path)
    assert main([str(tmp_path / 'missing.trc')]) == 2
    other = tmp_path / 'alert.trc'
    other.write_text("Trace file alert.trc\nnothing to see here\n", encoding='utf-8')
    assert main([str(other)]) == 2
    assert [path.name for path in tmp_path.iterdir()] == ['alert.trc']
    assert any('is not from a 10046 trace' in message for message in caplog.messages)

def test_06_debug(tmp_path, monkeypatch, caplog):
    """Line trace mode logs classification of every line."""
    trace = tmp_path / 'orcl_ora_1234.trc'
    trace.write_text(TRACE, encoding='utf-8')
    monkeypatch.chdir(tmp_path)
    with caplog.at_level(logging.DEBUG):
        assert main([str(trace), 'T']) == 0
    assert 'parsing in cursor 6' in caplog.messages

def test_07_unreadable(tmp_path, monkeypatch, caplog):
    """Trace file that can't be read is rejected with one-line message."""
    trace = tmp_path / 'orcl_ora_1234.trc'
    trace.write_text(TRACE, encoding='utf-8')
    monkeypatch.chdir(tmp_path)
    def deny(self, *args, **kwargs):
        raise PermissionError(13, 'Permission denied', str(self))
    monkeypatch.setattr(Path, 'open', deny)
    assert main([str(trace)]) == 2
    assert f"Error - Can't read file: {trace} - Aborting..." in caplog.messages
    assert not (tmp_path / 'orcl_ora_1234.lst').exists()
