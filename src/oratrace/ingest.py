# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/ingest.py
# DESCRIPTION:    Trace file parser producing normalized records
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

"""oratrace.ingest - Trace file parser producing normalized records.

This module provides the `TraceParser` class that reads Oracle 10046 SQL trace
lines, classifies each line by its leading token, and writes normalized records
into a `.TraceStore`. Use the `push()` method for incremental parsing or the
`parse()` method to process an entire iterable of lines. The `load_trace()`
function validates and parses a trace file in one call.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Generator, Iterable
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from firebird.base.types import STOP, Error, Sentinel

from .cursors import ZERO_CURSOR, Cursor, CursorRegistry
from .oracle import decode_enqueue
from .records import (
    OP_TOKENS,
    Annotation,
    CursorInfo,
    OpKind,
    Operation,
    OracleError,
    Record,
    RecordKind,
    Stat,
    TextLine,
    Wait,
)
from .store import NO_BIND_BUFFER, BindValue, RpcBind, RpcCall, TraceStore
from .timing import MICROSECONDS, TimeTracker, compute_gap, wall_clock

log = logging.getLogger(__name__)

#: Marker line that identifies 10046 trace file
TRACE_MARKER = 'PARSING IN CURSOR'
#: Width of SQL text and optimizer parameter chunks
TEXT_WIDTH = 80
#: Width of bind value chunks for values continued on next line
BIND_WIDTH = 44

_NOT_MARKER = '    '
_PEEK_MARKER = 'Peek'
_HEADER_NOISE = frozenset(['adbdrv:', 'With', 'ORACLE_HOME', 'System', 'Release:', 'Version:',
                           'Machine:', 'VM', 'Redo', 'Oracle', 'JServer'])
_IGNORED_TOKENS = frozenset(['kkscoacd', 'COLUMN:', 'Size:', 'Histogram:'])
_OP_KEYS = frozenset(['c', 'e', 'p', 'cr', 'cu', 'mis', 'r', 'dep', 'og', 'plh', 'type', 'tim',
                      'sqlid', 'bytes'])
_CURSOR_KEYS = frozenset(['len', 'lid', 'ad'])
_VERSION_PREFIXES = ('Oracle9', 'Oracle1', 'Oracle Database 9', 'Oracle Database 1')
_LOB_PREFIXES = tuple(token for token in OP_TOKENS if token.endswith(':'))
_NAM_PATTERN = re.compile(r"nam='(.*)' ela=")
_STAMP_PATTERN = re.compile(r'^\*\*\* (\d{4}-\d\d-\d\d \d\d:\d\d:\d\d)')

def safe_int(str_value: str) -> int:
    """Returns integer value of leading digits in string, 0 if there are none.
    """
    if match := re.match(r'-?\d+', str_value.strip()):
        return int(match.group())
    return 0

def _paren_text(line: str) -> str:
    "Returns text between first '(' and last ')' in line."
    start = line.find('(')
    end = line.rfind(')')
    return line[start + 1:end] if end > start + 1 else ''

def _chunks(text: str, width: int) -> list[str]:
    return [text[i:i + width] for i in range(0, len(text), width)] or ['']

@dataclass
class ParserState:
    """Parse state carried across trace lines.

    Values persist until a trace line explicitly changes them.
    """
    #: Active module name
    module: str = ''
    #: Active action name
    action: str = ''
    #: Cursor number of last line that carried one (LOB lines reuse it)
    curno: str = ''
    #: Cursor used by bind, RPC and optimizer parameter lines
    cursor: Cursor | None = None
    #: SQL text lines follow
    parsing: bool = False
    #: SQL text lines belong to newly allocated cursor and are stored
    parsing_new: bool = False
    #: Timestamp of last cursor introduction
    parsing_tim: Decimal = Decimal(0)
    #: Optimizer parameter lines follow
    parameters: bool = False
    #: Inside bind block
    binds: bool = False
    #: Inside RPC bind block
    rpc_binds: bool = False
    #: Collecting RPC call text
    rpc_call: bool = False
    #: RPC call text collected so far
    rpc_text: str = ''
    #: RPC call that owns following RPC binds and executions
    rpc: RpcCall | None = None
    #: Bind marker (`Peek` for peeked values)
    peeked: str = _NOT_MARKER
    #: Current bind variable number (0-based as in trace)
    varno: int = 0
    #: Current bind has no bind buffer
    oacdef: bool = False
    #: Bind value is expected on next line
    next_line_bind_value: bool = False
    #: Value continued on next line: 0 = no, 1 = plain, 2 = quoted, 9 = already stored
    multi_line_value: int = 0
    #: Quoted bind value collected so far
    value: str = ''
    #: Inside memory dump
    skip_dump: bool = False
    #: Skip lines until next `==============` line
    skip_to_equal: bool = False
    #: Collecting quoted value until closing quote
    skip_to_nonquo: bool = False
    #: Number of lines to skip after `toid ptr`
    toid: int = 0
    #: Trace file title was seen
    printed_head: bool = False
    #: Session header is complete
    header_done: bool = False
    #: Truncation hint was already issued
    truncation_hint: bool = False
    #: Timestamp of previous call, zero when unknown
    prev_time: Decimal = Decimal(0)
    #: Wait time since previous call
    all_wait_tot: Decimal = Decimal(0)
    #: Next STAT line starts new STAT set
    new_stat_set: bool = True
    #: Number of STAT sets seen
    stat_set: int = 0
    #: CPU time of deeper recursive calls by depth
    rec_cpu: dict[int, Decimal] = field(default_factory=dict)
    #: Elapsed time of deeper recursive calls by depth
    rec_ela: dict[int, Decimal] = field(default_factory=dict)
    def reset_binds(self) -> None:
        """Leaves any bind block.
        """
        self.binds = False
        self.rpc_binds = False
        self.peeked = _NOT_MARKER
        self.oacdef = False
        self.multi_line_value = 0

class TraceParser:
    """Parser for Oracle 10046 SQL trace files.

    Produces normalized `.Record` instances stored in `store`. Structural problems
    found in the trace never raise. They are logged as warnings and collected in
    `warnings`.
    """
    def __init__(self, *, line_trace: bool=False):
        #: Cursor identity resolver
        self.registry: CursorRegistry = CursorRegistry()
        #: Record store filled by parser
        self.store: TraceStore = TraceStore()
        self.store.cursors = self.registry.cursors
        #: Time unit normalizer
        self.tracker: TimeTracker = TimeTracker()
        #: Parse state
        self.state: ParserState = ParserState()
        #: Warnings issued while parsing
        self.warnings: list[str] = []
        #: Log classification of every trace line at DEBUG level
        self.line_trace: bool = line_trace
        #: Number of last processed trace line
        self.line_no: int = 0
        self.__produced: list[Record] = []
        self.__line_map: list[tuple[str, str, Callable[[str], None]]] = [
            ('Trace file', 'trace file', self.__parse_trace_file),
            ('Dump file', 'dump file', self.__parse_trace_file),
            ('Oracle9', 'version', self.__parse_version),
            ('Oracle1', 'version', self.__parse_version),
            ('Oracle Database 9', 'version', self.__parse_version),
            ('Oracle Database 1', 'version', self.__parse_version),
            ('Node name:', 'node name', self.__parse_node_name),
            ('Instance name:', 'instance name', self.__parse_instance_name),
            ('Unix process pid:', 'process', self.__parse_process),
            ('******', 'asterisks', self.__parse_separator),
            ('==============', 'equals', self.__parse_equals),
            ('Dump of memory', 'dump of memory', self.__parse_memory_dump),
            ('*** ACTION NAME:', 'action name', self.__parse_action_name),
            ('*** CLIENT DRIVER:', 'client driver', self.__parse_ignored),
            ('*** CONTAINER ID:', 'container id', self.__parse_container),
            ('*** MODULE NAME:', 'module name', self.__parse_module_name),
            ('*** SERVICE NAME:', 'service name', self.__parse_service),
            ('*** SESSION ID:', 'session id', self.__parse_session),
            ('*** CLIENT ID:', 'client id', self.__parse_client),
            ('APPNAME', 'appname', self.__parse_appname),
            ('PARSING IN CURSOR', 'parsing in cursor', self.__parse_cursor),
            ('QUERY BLOCK SIGNAGE', 'query block signage', self.__parse_skip_block),
            ('QUERY', 'query', self.__parse_query),
            ('Column Usage Monitoring', 'column usage monitoring', self.__parse_skip_block),
            ('BASE STATISTICAL INFORMATION', 'base statistical information',
             self.__parse_skip_block),
            ('SINGLE TABLE ACCESS PATH', 'single table access path', self.__parse_skip_block),
            ('Peeked values', 'peeked values', self.__parse_peeked),
            ('PARAMETERS', 'parameters', self.__parse_parameters),
            ('RPC CALL:', 'rpc call', self.__parse_rpc_call),
            ('RPC BINDS:', 'rpc binds', self.__parse_rpc_binds),
            ('BINDS', 'binds', self.__parse_binds),
            (' bind ', 'bind', self.__parse_bind),
            ('   bfp', 'bfp', self.__parse_bind_detail),
            (' Bind#', 'bind#', self.__parse_bind_number),
            ('  No oacdef for this bind.', 'no oacdef', self.__parse_no_oacdef),
            ('  oacdty=', 'oacdty', self.__parse_bind_detail),
            ('  oacflg=', 'oacflg', self.__parse_bind_detail),
            ('toid ptr', 'toid ptr', self.__parse_toid),
            ('  kxsbbbfp=', 'kxsbbbfp', self.__parse_kxsbbbfp),
            ('PARSE ERROR #', 'parse error', self.__parse_cursor),
            ('==', 'equal', self.__parse_end_of_stmt),
            ('END OF STMT', 'end of statement', self.__parse_end_of_stmt),
            ('PARSE #', 'parse', self.__parse_operation),
            ('EXEC #', 'exec', self.__parse_operation),
            ('RPC EXEC:', 'rpc exec', self.__parse_rpc_exec),
            ('FETCH #', 'fetch', self.__parse_operation),
            ('UNMAP #', 'unmap', self.__parse_operation),
            ('SORT UNMAP #', 'sort unmap', self.__parse_operation),
            ('CLOSE #', 'close', self.__parse_operation),
            (_LOB_PREFIXES, 'lob', self.__parse_operation),
            ('ERROR #', 'error', self.__parse_error),
            ('WAIT', 'wait', self.__parse_wait),
            ('XCTEND', 'xctend', self.__parse_xctend),
            ('***', 'asterisks', self.__parse_asterisks),
            ('STAT', 'stat', self.__parse_stat),
            ]
    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        log.warning(message)
    def _add(self, cursor: Cursor, kind: RecordKind, data) -> None:
        self.__produced.append(self.store.add(cursor, kind, self.line_no, data))
    def _find_cursor(self, curno: str) -> Cursor | None:
        """Returns active cursor for trace cursor number, None if it was never introduced.
        """
        is_new_zero = curno == '0' and self.registry.get(ZERO_CURSOR) is None
        cursor = self.registry.resolve(curno)
        if is_new_zero and cursor is not None and cursor.index == ZERO_CURSOR:
            self._add(cursor, RecordKind.CURSOR, CursorInfo(0, None, 0, Decimal(0), None, 0, None))
            self._annotate(cursor)
        return cursor
    def _annotate(self, cursor: Cursor) -> None:
        if self.state.module:
            self._add(cursor, RecordKind.MODULE, Annotation(self.state.module))
        if self.state.action:
            self._add(cursor, RecordKind.ACTION, Annotation(self.state.action))
    def _store_bind(self, value: str, *, marker: str | None=None, counted: bool=True) -> None:
        cursor = self.state.cursor
        if cursor is None:
            return
        self.store.binds[cursor.index].append(BindValue(self.state.peeked if marker is None
                                                        else marker, self.state.varno + 1,
                                                        value, self.line_no))
        if counted:
            cursor.bind_count += 1
    def _store_rpc_bind(self, value: str) -> None:
        if self.state.rpc is None:
            return
        self.state.rpc.binds.append(RpcBind(self.state.varno + 1, value, self.line_no))
    def _check_null_bind(self) -> None:
        """Stores `<null>` bind when bind buffer announced by `kxsbbbfp` has no value.
        """
        state = self.state
        if state.next_line_bind_value:
            state.next_line_bind_value = False
            if state.binds and not state.oacdef:
                self._store_bind('<null>')
    def _write_text(self, kind: RecordKind, line: str) -> None:
        if (cursor := self.registry.last) is not None:
            for chunk in _chunks(line, TEXT_WIDTH):
                self._add(cursor, kind, TextLine(chunk))
    def __parse_trace_file(self, line: str) -> None:
        items = line.split()
        if not self.state.printed_head:
            self.__start_header(items[2] if len(items) > 2 else '') # noqa: PLR2004
    def __start_header(self, name: str) -> None:
        self.store.summary.trace_name = name
        self.store.summary.header.append(f'Trace File  = {name}')
        self.state.printed_head = True
    def __parse_path(self, line: str) -> None:
        state = self.state
        if not state.printed_head:
            self.__start_header(line.split()[0])
            return
        self._warn("*** Warning: Multiple trace file headings are in the trace file!")
        self._warn(f"             The extra trace header starts on trace line {self.line_no}")
        state.prev_time = Decimal(0)
        self.tracker.new_header()
        self.store.summary.duplicate_headers.append(self.line_no)
    def __parse_version(self, line: str) -> None:
        self.tracker.divisor = MICROSECONDS
    def __header(self, text: str) -> None:
        if not self.state.header_done:
            self.store.summary.header.append(text)
    def __parse_node_name(self, line: str) -> None:
        items = line.split()
        if len(items) > 2: # noqa: PLR2004
            self.__header(f'Node Name   = {items[2]}')
    def __parse_instance_name(self, line: str) -> None:
        items = line.split()
        if len(items) > 2: # noqa: PLR2004
            self.__header(f'Instance    = {items[2]}')
    def __parse_process(self, line: str) -> None:
        self.store.summary.header.append(f"Image       = {' '.join(line.split()[5:])}")
    def __parse_separator(self, line: str) -> None:
        self.state.skip_dump = False
        self.state.skip_to_nonquo = False
    def __parse_equals(self, line: str) -> None:
        state = self.state
        state.header_done = True
        state.skip_to_equal = False
        state.skip_dump = False
        state.skip_to_nonquo = False
        self._check_null_bind()
    def __parse_memory_dump(self, line: str) -> None:
        self.state.skip_dump = True
        self.state.skip_to_nonquo = False
    def __parse_action_name(self, line: str) -> None:
        if text := _paren_text(line):
            self.__header(f'Action      = {text}')
            self.state.action = text
            log.debug("Found Action %s on line %d", text, self.line_no)
    def __parse_module_name(self, line: str) -> None:
        if text := _paren_text(line):
            self.__header(f'Module      = {text}')
            self.state.module = text
            log.debug("Found Module %s on line %d", text, self.line_no)
    def __parse_container(self, line: str) -> None:
        if text := _paren_text(line):
            self.__header(f'Container   = {text}')
    def __parse_ignored(self, line: str) -> None:
        pass
    def __parse_service(self, line: str) -> None:
        items = line.split()
        if len(items) > 2 and (text := _paren_text(items[2])): # noqa: PLR2004
            self.__header(f'Service     = {text}')
    def __parse_client(self, line: str) -> None:
        items = line.split()
        if len(items) > 2: # noqa: PLR2004
            self.__header(f'Client ID  = {_paren_text(items[2])}')
    def __parse_session(self, line: str) -> None:
        if self.state.header_done:
            return
        items = line.split()
        if len(items) < 5: # noqa: PLR2004
            return
        self.store.summary.header.append(f'Session ID  = {_paren_text(items[2])}')
        self.store.summary.header.append(f'Date/Time   = {items[3]} {items[4]}')
        with suppress(ValueError):
            self.store.summary.start = datetime.strptime(f'{items[3]} {items[4][:8]}', # noqa: DTZ007
                                                         '%Y-%m-%d %H:%M:%S')
    def __parse_appname(self, line: str) -> None:
        values = line.split("'")[1::2]
        if values and values[0]:
            self.__header(f'Application = {values[0]}')
        if len(values) > 1 and values[1]:
            self.__header(f'Action      = {values[1]}')
    def __parse_cursor(self, line: str) -> None:
        state = self.state
        items = line.split()
        if line.startswith('PARSE ERROR'):
            curno = items[2].lstrip('#').partition(':')[0] if len(items) > 2 else '' # noqa: PLR2004
            fields = items[3:]
        else:
            curno = items[3].lstrip('#') if len(items) > 3 else '' # noqa: PLR2004
            fields = items[4:]
        state.peeked = _NOT_MARKER
        state.parameters = False
        state.parsing = True
        state.new_stat_set = True
        state.skip_dump = False
        state.skip_to_nonquo = False
        state.reset_binds()
        state.curno = curno
        dep = 0
        uid = oct_code = err = None
        hv = raw_tim = ''
        sqlid = None
        parsing_tim = Decimal(0)
        for item in fields:
            key, sep, value = item.partition('=')
            if not sep or key in _CURSOR_KEYS:
                continue
            if key == 'dep':
                dep = safe_int(value)
            elif key == 'uid':
                uid = safe_int(value)
            elif key == 'oct':
                oct_code = safe_int(value)
            elif key == 'tim':
                raw_tim = value
                parsing_tim = self.tracker.convert(value)
                self.tracker.observe(parsing_tim)
                self.tracker.start(parsing_tim)
            elif key == 'hv':
                hv = value
            elif key == 'err':
                err = safe_int(value)
            elif key == 'sqlid':
                sqlid = value.strip("'")
            else:
                self._warn(f"Unexpected keyword of {key} in {line} (line {self.line_no})")
        if hv in ('', '0'):
            hv = raw_tim or '0'
        gap = compute_gap(parsing_tim, state.prev_time, waits=state.all_wait_tot)
        state.prev_time = parsing_tim
        state.parsing_tim = parsing_tim
        state.all_wait_tot = Decimal(0)
        cursor, is_new = self.registry.introduce(curno, hv)
        state.cursor = cursor
        state.parsing_new = is_new
        if not is_new:
            log.debug("Use cursor #%s from %d", curno, cursor.index)
            cursor.gap += gap
            return
        cursor.oct = oct_code
        cursor.uid = uid
        cursor.dep = dep
        cursor.err = err
        cursor.sqlid = sqlid
        cursor.line = self.line_no
        cursor.parsing_tim = parsing_tim
        cursor.gap = gap
        self._add(cursor, RecordKind.CURSOR, CursorInfo(oct_code, uid, dep, parsing_tim, err,
                                                         self.line_no, sqlid))
        self._annotate(cursor)
        for pending in self.registry.claim_pending(curno):
            self._add(cursor, pending.kind, pending.wait)
    def __parse_query(self, line: str) -> None:
        self.state.skip_dump = False
        self.state.skip_to_nonquo = False
        self.state.parsing = True
    def __parse_skip_block(self, line: str) -> None:
        self.state.skip_dump = False
        self.state.skip_to_nonquo = False
        self.state.skip_to_equal = True
    def __parse_peeked(self, line: str) -> None:
        state = self.state
        state.binds = True
        state.peeked = _PEEK_MARKER
        state.oacdef = False
        state.next_line_bind_value = False
        state.multi_line_value = 0
        state.skip_dump = False
        state.skip_to_nonquo = False
    def __parse_parameters(self, line: str) -> None:
        self.state.parameters = True
        self.state.skip_dump = False
        self.state.skip_to_nonquo = False
    def __parse_rpc_call(self, line: str) -> None:
        state = self.state
        state.cursor = self._find_cursor(state.curno)
        if state.skip_to_equal:
            return
        state.rpc_text = line[9:]
        state.rpc_call = True
    def __parse_rpc_binds(self, line: str) -> None:
        state = self.state
        for call in self.store.rpc_calls:
            if call.text == state.rpc_text:
                state.rpc = call
                break
        else:
            state.rpc = RpcCall(state.rpc_text)
            self.store.rpc_calls.append(state.rpc)
        state.rpc_call = False
        state.cursor = self._find_cursor(state.curno)
        if state.skip_to_equal:
            return
        state.reset_binds()
        state.rpc_binds = True
        state.next_line_bind_value = False
        state.skip_dump = False
        state.skip_to_nonquo = False
    def __parse_binds(self, line: str) -> None:
        state = self.state
        state.rpc_call = False
        state.rpc_binds = False
        items = line.split()
        state.curno = items[1].strip('#:') if len(items) > 1 else ''
        state.cursor = self._find_cursor(state.curno)
        if state.skip_to_equal:
            return
        state.reset_binds()
        state.binds = True
        state.next_line_bind_value = False
        state.skip_dump = False
        state.skip_to_nonquo = False
    def __parse_bind(self, line: str) -> None:
        state = self.state
        items = line.split()
        state.varno = safe_int(items[1].rstrip(':')) if len(items) > 1 else 0
        state.oacdef = False
        state.skip_dump = False
        state.skip_to_nonquo = False
        if state.rpc_binds:
            if '(No oacdef for this bind)' in line:
                self._store_rpc_bind(NO_BIND_BUFFER)
                state.oacdef = True
                return
            pos = line.find('val=')
            if pos < 0:
                self._warn(f"No rpc bind value found on trace line {self.line_no}: {line}")
                return
            self.__take_value(line[pos + 4:])
            return
        if not state.binds:
            self._warn(f"Unprocessed bind line near trace line {self.line_no}: {line}")
            return
        if '(No oacdef for this bind)' in line:
            self._store_bind(NO_BIND_BUFFER, marker=_NOT_MARKER)
            state.oacdef = True
    def __take_value(self, value: str) -> None:
        """Processes bind value text that follows `value=` or `val=`.
        """
        state = self.state
        if not value:
            state.multi_line_value = 1
            return
        if value == '"':
            state.multi_line_value = 2
            return
        if value.startswith('"'):
            quote = value.find('"', 1)
            if quote < 0:
                state.value = value[1:]
                state.skip_to_nonquo = True
                return
            value = value[1:quote]
        if state.rpc_binds:
            self._store_rpc_bind(value)
        else:
            self._store_bind(value)
    def __parse_bind_detail(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        if not (state.binds or state.rpc_binds):
            self._warn(f"Unprocessed {line.split()[0].partition('=')[0]} line near trace line "
                       f"{self.line_no}: {line}")
    def __parse_bind_number(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        self._check_null_bind()
        if not (state.binds or state.rpc_binds):
            self._warn(f"Unprocessed Bind# line near trace line {self.line_no}: {line}")
            return
        state.varno = safe_int(line.split()[0].partition('#')[2])
        state.oacdef = False
        state.multi_line_value = 0
    def __parse_no_oacdef(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        if state.rpc_binds:
            self._store_rpc_bind(NO_BIND_BUFFER)
        elif state.binds:
            self._store_bind(NO_BIND_BUFFER, marker=_NOT_MARKER)
        else:
            self._warn(f"Unprocessed no oacdef line near trace line {self.line_no}: {line}")
            return
        state.oacdef = True
    def __parse_toid(self, line: str) -> None:
        self.state.toid = 1
    def __parse_kxsbbbfp(self, line: str) -> None:
        self.__parse_bind_detail(line)
        self.state.next_line_bind_value = True
    def __parse_end_of_stmt(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        state.parsing = False
        state.parameters = False
    def __parse_operation(self, line: str) -> None:
        state = self.state
        self._check_null_bind()
        state.skip_dump = False
        state.skip_to_nonquo = False
        state.reset_binds()
        head, _, body = line.partition(':')
        if line.startswith(_LOB_PREFIXES):
            op = OP_TOKENS[f'{head}:']
        else:
            name, _, curno = head.rpartition(' #')
            op = OP_TOKENS[name]
            state.curno = curno
        cursor = self._find_cursor(state.curno)
        if cursor is None:
            return
        convert = self.tracker.convert
        cpu = elapsed = tim = Decimal(0)
        disk = query = current = rows = misses = goal = dep = 0
        sqlid = None
        for item in body.split(','):
            key, _, value = item.strip().partition('=')
            if key not in _OP_KEYS:
                self._warn(f"Unexpected parameter for {op.name.lower()} found near line "
                           f"{self.line_no}: {item}")
            elif key == 'c':
                cpu = convert(value)
            elif key == 'e':
                elapsed = convert(value)
            elif key == 'p':
                disk = safe_int(value)
            elif key == 'cr':
                query = safe_int(value)
            elif key == 'cu':
                current = safe_int(value)
            elif key == 'mis':
                misses = safe_int(value)
            elif key == 'r':
                rows = safe_int(value)
            elif key == 'dep':
                dep = safe_int(value)
                cursor.dep = max(dep, cursor.dep)
            elif key == 'og':
                goal = safe_int(value)
            elif key == 'tim':
                tim = convert(value)
                self.tracker.observe(tim)
            elif key == 'sqlid':
                sqlid = value.strip("'")
        carried = 0
        if op is OpKind.PARSE:
            carried = cursor.gap
            cursor.gap = 0
        gap = compute_gap(tim, state.prev_time, elapsed, state.all_wait_tot, carried)
        summary = self.store.summary
        if gap:
            summary.gap_time += gap
            summary.gap_count += 1
        state.prev_time = tim
        state.all_wait_tot = Decimal(0)
        cpu, elapsed = self.__remove_recursive(dep, cpu, elapsed)
        data = Operation(op, cpu, elapsed, disk, query, current, rows, misses, goal, tim, gap,
                         sqlid, dep, self.line_no)
        self._add(cursor, RecordKind.OPERATION, data)
        totals = summary.op_totals[op]
        totals.cpu += cpu
        totals.count += 1
        summary.command_totals[(cursor.oct or 0, cursor.dep > 0, cursor.uid == 0)].add(data)
        if state.module:
            summary.module_totals[state.module].add(data)
        if state.action:
            summary.action_totals[state.action].add(data)
    def __remove_recursive(self, dep: int, cpu: Decimal, elapsed: Decimal) -> tuple[Decimal, Decimal]:
        """Returns cpu and elapsed time without time of enclosed recursive calls.

        Time of calls at deeper levels is accumulated per depth, and subtracted from the
        first call at a shallower level.
        """
        state = self.state
        deeper = [d for d in state.rec_cpu if d > dep]
        raw_cpu, raw_elapsed = cpu, elapsed
        if deeper:
            rec_cpu = sum((state.rec_cpu.pop(d) for d in deeper), Decimal(0))
            rec_ela = sum((state.rec_ela.pop(d) for d in deeper), Decimal(0))
            if cpu >= rec_cpu:
                cpu -= rec_cpu
            if elapsed >= rec_ela:
                elapsed -= rec_ela
        if dep > 0:
            state.rec_cpu[dep] = state.rec_cpu.get(dep, Decimal(0)) + raw_cpu
            state.rec_ela[dep] = state.rec_ela.get(dep, Decimal(0)) + raw_elapsed
        return cpu, elapsed
    def __parse_rpc_exec(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        state.reset_binds()
        state.rpc_call = False
        cursor = self._find_cursor(state.curno)
        if state.skip_to_equal or cursor is None:
            return
        cpu = elapsed = Decimal(0)
        for item in line.partition(':')[2].split(','):
            key, _, value = item.partition('=')
            if key == 'c':
                cpu = self.tracker.convert(value)
            elif key == 'e':
                elapsed = self.tracker.convert(value)
        summary = self.store.summary
        summary.rpc_cpu += cpu
        summary.rpc_count += 1
        if state.rpc is not None:
            state.rpc.count += 1
            state.rpc.cpu += cpu
            state.rpc.elapsed += elapsed
    def __parse_error(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        state.curno = line.split()[1].lstrip('#').partition(':')[0]
        cursor = self._find_cursor(state.curno)
        if state.skip_to_equal or cursor is None:
            return
        text = line.replace('= ', '=')
        err = tim = ''
        for item in text.partition(':')[2].split():
            key, _, value = item.partition('=')
            if key == 'err':
                err = value
            elif key == 'tim':
                tim = value
        error_tim = self.tracker.convert(tim) if tim else state.parsing_tim
        self._add(cursor, RecordKind.ERROR, OracleError(safe_int(err), self.line_no, error_tim))
    def __parse_wait(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        text = line.replace('= ', '=')
        curno = text.split()[1].lstrip('#').partition(':')[0]
        state.curno = curno
        cursor = self._find_cursor(curno)
        if (match := _NAM_PATTERN.search(text)) is None:
            self._warn(f"Unexpected WAIT parameter found on line {self.line_no}: {line}")
            return
        name = match.group(1)
        ela = Decimal(0)
        params: list[int] = []
        obj = 0
        for item in text[match.end() - 4:].split():
            key, sep, value = item.partition('=')
            if not sep:
                continue
            if key == 'ela':
                ela = self.tracker.convert(value)
                continue
            params.append(safe_int(value))
            if key == 'obj#':
                obj = safe_int(value)
            elif key == 'tim':
                self.tracker.observe(self.tracker.convert(value))
        p1, p2, p3 = (params + [0, 0, 0])[:3]
        if ela == 0:
            return
        if name == 'buffer busy waits':
            name = f'{name} (code={p3})'
        elif name == 'db file scattered read':
            name = f'{name} (blocks={p3})'
        elif name in ('latch activity', 'latch free', 'latch wait'):
            name = f'{name} (latch#={p2})'
        elif name == 'enqueue':
            name = f'{name} ({decode_enqueue(p1)})'
        wait = Wait(name, p1, p2, p3, ela, self.line_no, obj)
        if cursor is None:
            self.registry.defer(curno, RecordKind.WAIT, wait)
            if obj > 0:
                self.registry.defer(curno, RecordKind.OBJECT_WAIT, wait)
        else:
            self._add(cursor, RecordKind.WAIT, wait)
            if obj > 0:
                self._add(cursor, RecordKind.OBJECT_WAIT, wait)
        state.all_wait_tot += ela
        summary = self.store.summary
        if state.module:
            summary.module_waits[(state.module, name)] += ela
        if state.action:
            summary.action_waits[(state.action, name)] += ela
    def __parse_xctend(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        if (cursor := self.registry.last) is None:
            self._warn(f"No hash value found for XCTEND on line {self.line_no}")
            return
        state.parsing = False
        state.parameters = False
        rollback = read_only = False
        for item in line.split()[1:]:
            key, _, value = item.partition('=')
            if key == 'rlbk':
                rollback = value.rstrip(',') != '0'
            elif key == 'rd_only':
                read_only = value.rstrip(',') != '0'
        summary = self.store.summary
        stamp = wall_clock(summary.start, self.tracker.first_time, state.parsing_tim)
        text = (f"{'ROLLBACK' if rollback else 'COMMIT'} {'READ-ONLY' if read_only else 'UPDATE'} "
                f"transaction on trace line {self.line_no} at {stamp}")
        self._add(cursor, RecordKind.TRANSACTION, Annotation(text))
    def __parse_asterisks(self, line: str) -> None:
        self.state.skip_dump = False
        self.state.skip_to_nonquo = False
        if line.startswith('*** DU'):
            self.store.summary.truncated = True
            return
        if line.startswith('*** 2'):
            if self.store.summary.start is None and (match := _STAMP_PATTERN.match(line)):
                self.store.summary.start = datetime.strptime(match.group(1), # noqa: DTZ007
                                                             '%Y-%m-%d %H:%M:%S')
            return
        if line.split()[1:3] == ['Undo', 'Segment']:
            return
        self._warn(f"Unprocessed *** line near trace line {self.line_no}: {line}")
        if 'TRACE DUMP CONTINUES IN FILE' in line or 'TRACE DUMP CONTINUED FROM FILE' in line:
            self._warn(">>> Trace dump is split into several files, parse each file separately!")
    def __parse_stat(self, line: str) -> None:
        state = self.state
        state.skip_dump = False
        state.skip_to_nonquo = False
        state.reset_binds()
        state.rpc_call = False
        if state.new_stat_set:
            state.stat_set += 1
            state.new_stat_set = False
        items = line.split()
        state.curno = items[1].lstrip('#') if len(items) > 1 else ''
        cursor = self._find_cursor(state.curno)
        if state.skip_to_equal or cursor is None:
            return
        state.parsing = False
        state.parameters = False
        rows = None
        stat_id = pid = obj = 0
        desc = ''
        seg: dict[str, int] = {'cr': 0, 'pr': 0, 'pw': 0, 'time': 0}
        extra: dict[str, int | None] = {'cost': None, 'size': None, 'card': None}
        part_start = part_stop = '0'
        in_desc = False
        for item in items[2:]:
            item = item.replace("'", '')
            key, sep, value = item.partition('=')
            if in_desc:
                if not sep:
                    if item not in ('us', 'us)'):
                        desc = f'{desc} {item}'
                    continue
                if obj == 0:
                    continue
                value = value.rstrip(')')
                if key == '(cr':
                    seg['cr'] = safe_int(value)
                elif key in ('r', 'pr'):
                    seg['pr'] = safe_int(value)
                elif key in ('w', 'pw'):
                    seg['pw'] = safe_int(value)
                elif key == 'time':
                    seg['time'] = safe_int(value)
                elif key == 'START':
                    part_start = value
                elif key == 'STOP':
                    part_stop = value
                elif key in extra:
                    extra[key] = safe_int(value)
                else:
                    self._warn(f"Unexpected parameter for stat found near line {self.line_no}: {item}")
                continue
            if key == 'id':
                stat_id = safe_int(value)
            elif key == 'cnt':
                rows = safe_int(value)
            elif key == 'pid':
                pid = safe_int(value)
            elif key == 'pos':
                pass
            elif key == 'obj':
                obj = safe_int(value)
            elif key == 'op':
                in_desc = True
                desc = value
            else:
                self._warn(f"Unexpected parameter for stat found near line {self.line_no}: {item}")
        if obj != 0:
            desc = f'{desc} (object id {obj})'
        if rows is None:
            return
        stat = Stat(state.stat_set, stat_id, pid, rows, obj, desc, seg['cr'], seg['pr'], seg['pw'],
                    seg['time'], part_start, part_stop, extra['cost'], extra['size'],
                    extra['card'], self.line_no)
        self._add(cursor, RecordKind.STAT, stat)
        if stat.cr != 0 or stat.time != 0:
            self._add(cursor, RecordKind.SEGMENT_STAT, stat)
    def __parse_default(self, line: str) -> None:
        state = self.state
        items = line.split()
        if not items:
            return
        if state.skip_dump:
            if items[-1].endswith(']') or (items[0] == 'Repeat' and items[2:3] == ['times']):
                return
            state.skip_dump = False
        if state.toid > 0:
            state.toid -= 1
            return
        if state.skip_to_equal:
            return
        if state.skip_to_nonquo:
            quote = line.find('"')
            if quote < 0:
                state.value = f'{state.value} {line}'
                return
            state.value = f'{state.value} {line[:quote]}'
            state.skip_to_nonquo = False
            if state.rpc_binds:
                self._store_rpc_bind(state.value)
            else:
                self._store_bind(state.value)
            return
        if state.rpc_call:
            state.rpc_text += line
            return
        if items[0].startswith('value='):
            state.next_line_bind_value = False
            state.skip_dump = False
            if not state.binds:
                self._warn(f"Unprocessed value line near trace line {self.line_no}: {line}")
            elif not state.oacdef:
                self.__take_value(line[line.find('value=') + 6:])
            return
        if items[0] in _IGNORED_TOKENS or items[:3] == ['No', 'bind', 'buffers']:
            return
        if state.parameters:
            self._write_text(RecordKind.PARAMS, line)
            return
        if state.parsing and state.parsing_new:
            self._write_text(RecordKind.SQL_TEXT, line)
            return
        if state.multi_line_value in (1, 2) and (state.rpc_binds or state.binds):
            self.__take_continued_value(line)
            return
        if state.multi_line_value == 9 and (state.rpc_binds or state.binds): # noqa: PLR2004
            return
        if state.parsing or self.line_no < 10: # noqa: PLR2004
            return
        if items[0] in _HEADER_NOISE or items[:5] == ['An', 'invalid', 'number', 'has', 'been']:
            return
        if items[0].startswith('WARNING:'):
            self._warn(f"The following warning message is in the trace file: {line}")
            return
        self._warn(f"Unprocessed line on trace line {self.line_no}: {line}")
        if not state.truncation_hint:
            self._warn("Ensure that the dump file has not been truncated!!!!")
            self._warn("Set MAX_DUMP_FILE_SIZE=UNLIMITED to avoid truncation.")
            state.truncation_hint = True
    def __take_continued_value(self, line: str) -> None:
        """Stores bind value written on the line that follows bare `value=`.
        """
        state = self.state
        quoted = state.multi_line_value == 2 # noqa: PLR2004
        if state.rpc_binds:
            self._store_rpc_bind(f'"{line}' if quoted else line)
        else:
            if quoted:
                chunks = [f'"{line[:BIND_WIDTH - 1]}']
                if len(line) > BIND_WIDTH:
                    chunks.append(f'"{line[BIND_WIDTH - 1:]}')
            else:
                chunks = [line[:BIND_WIDTH]]
                if len(line) > BIND_WIDTH:
                    chunks.append(line[BIND_WIDTH:])
            for i, chunk in enumerate(chunks):
                self._store_bind(chunk, marker=_NOT_MARKER, counted=i == 0)
        state.multi_line_value = 9
    def classify(self, line: str) -> tuple[str, Callable[[str], None]]:
        """Returns (label, handler) for trace line.
        """
        if line[:1] == '/' and line[1:2].isalpha():
            return 'path', self.__parse_path
        for prefix, label, handler in self.__line_map:
            if line.startswith(prefix):
                return label, handler
        return 'rest', self.__parse_default
    def finish(self) -> list[Record]:
        """Finalizes parsing at end of input.

        Pending waits whose cursor was never introduced are attributed to the
        unaccounted cursor. Their time is counted as wait time without a matching
        cursor and removed from Timing Gap Error.

        Returns:
            List of records produced by finalization.
        """
        self.__produced = []
        summary = self.store.summary
        for pending in self.registry.drain_pending():
            if pending.kind != RecordKind.WAIT:
                continue
            cursor = self.registry.unaccounted_cursor()
            if not self.__produced:
                self._add(cursor, RecordKind.CURSOR, CursorInfo(0, None, 0, Decimal(0), None,
                                                                 pending.wait.line, None))
            log.debug("Storing non-matching cursor %s as unaccounted", pending.curno)
            self.__produced.append(self.store.add(cursor, RecordKind.WAIT, pending.wait.line,
                                                  pending.wait))
            summary.unmatched_wait += pending.wait.ela
            summary.gap_time -= pending.wait.ela
        summary.gap_time = max(summary.gap_time, Decimal(0))
        summary.divisor = self.tracker.divisor
        summary.first_time = self.tracker.first_time
        summary.last_tim = self.tracker.last_tim
        summary.grand_elapsed = self.tracker.grand_elapsed
        return self.__produced
    def push(self, line: str | Sentinel) -> list[Record] | None:
        """Push parser.

        Arguments:
            line: Single trace line, or `~firebird.base.types.STOP` sentinel to signal
                  the end of input.

        Returns:
            None, or list of records produced by this line.
        """
        if line is STOP:
            return self.finish() or None
        self.__produced = []
        self.line_no += 1
        line = line.rstrip('\r\n').replace(' . ', '.').replace(' ,', ',')
        label, handler = self.classify(line)
        if self.line_trace:
            log.debug("%s %d", label, self.line_no)
        handler(line)
        return self.__produced or None
    def parse(self, lines: Iterable[str]) -> Generator[Record, None, None]:
        """Parses Oracle trace lines from an iterable source.

        Arguments:
            lines: Iterable that returns lines from trace file.

        Yields:
            `.Record` instances in the order they were produced.
        """
        for line in lines:
            if (result := self.push(line)) is not None:
                yield from result
        if (result := self.push(STOP)) is not None:
            yield from result

def _parse_file(path: Path, encoding: str, line_trace: bool) -> TraceParser:
    with path.open(encoding=encoding, newline='') as file:
        total = 0
        found = False
        for line in file:
            total += 1
            found = found or line.startswith(TRACE_MARKER)
    if not found:
        raise Error(f"Error - File {path} is not from a 10046 trace - Skipping...")
    parser = TraceParser(line_trace=line_trace)
    step = max(total // 10, 1)
    with path.open(encoding=encoding, newline='') as file:
        for line in file:
            parser.push(line)
            if parser.line_no % step == 0 and parser.line_no < total:
                log.info("Processed %d%% of all trace file data...", 100 * parser.line_no // total)
        parser.push(STOP)
    return parser

def load_trace(path: Path | str, *, line_trace: bool=False) -> TraceParser:
    """Validates and parses trace file.

    The file is read as UTF-8. When it contains bytes that are not valid UTF-8, the
    whole file is parsed again as raw Latin-1 bytes.

    Arguments:
        path: Trace file.
        line_trace: Log classification of every trace line at DEBUG level.

    Returns:
        Parser with filled record store.

    Raises:
        firebird.base.types.Error: When file does not exist, can't be read or it's not
                                   a 10046 trace.
    """
    path = Path(path)
    if not path.is_file():
        raise Error(f"Error - Can't find file: {path} - Aborting...")
    log.info("Parsing trace file %s...", path)
    try:
        try:
            return _parse_file(path, 'utf-8', line_trace)
        except UnicodeDecodeError:
            log.warning("Trace file %s is not valid UTF-8, reading it as raw bytes", path)
            return _parse_file(path, 'latin-1', line_trace)
    except OSError as exc:
        raise Error(f"Error - Can't read file: {path} - Aborting...") from exc
