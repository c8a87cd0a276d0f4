# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/oracle.py
# DESCRIPTION:    Fixed Oracle vocabulary shared by trace parser and report builder
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

"""oratrace.oracle - Fixed Oracle vocabulary shared by the trace parser and report builder.

Tables in this module are lookups keyed by values found in 10046 trace files:
command type codes (`oct=`), optimizer goals (`og=`), enqueue lock modes, and
wait event classes that drive attribution in the report.
"""

from __future__ import annotations

#: Command type names by `oct=` code
COMMAND_TYPES: dict[int, str] = {
    0: 'UNKNOWN', 1: 'create table', 2: 'insert', 3: 'select', 4: 'create cluster',
    5: 'alter cluster', 6: 'update', 7: 'delete', 8: 'drop cluster', 9: 'create index',
    10: 'drop index', 11: 'alter index', 12: 'drop table', 13: 'create sequence',
    14: 'alter sequence', 15: 'alter table', 16: 'drop sequence', 17: 'grant',
    18: 'revoke', 19: 'create synonym', 20: 'drop synonym', 21: 'create view',
    22: 'drop view', 23: 'validate index', 24: 'create procedure', 25: 'alter procedure',
    26: 'lock table', 27: 'no operation', 28: 'rename', 29: 'comment', 30: 'audit',
    31: 'noaudit', 32: 'create database link', 33: 'drop database link',
    34: 'create database', 35: 'alter database', 36: 'create rollback segment',
    37: 'alter rollback segment', 38: 'drop rollback segment', 39: 'create tablespace',
    40: 'alter tablespace', 41: 'drop tablespace', 42: 'alter session', 43: 'alter user',
    44: 'commit', 45: 'rollback', 46: 'savepoint', 47: 'pl/sql execute',
    48: 'set transaction', 49: 'alter system switch log', 50: 'explain',
    51: 'create user', 52: 'create role', 53: 'drop user', 54: 'drop role',
    55: 'set role', 56: 'create schema', 57: 'create control file', 58: 'alter tracing',
    59: 'create trigger', 60: 'alter trigger', 61: 'drop trigger', 62: 'analyze table',
    63: 'analyze index', 64: 'analyze cluster', 65: 'create profile', 66: 'drop profile',
    67: 'alter profile', 68: 'drop procedure', 69: 'drop procedure',
    70: 'alter resource cost', 71: 'create snapshot log', 72: 'alter snapshot log',
    73: 'drop snapshot log', 74: 'create snapshot', 75: 'alter snapshot',
    76: 'drop snapshot', 79: 'alter role', 85: 'truncate table', 86: 'truncate cluster',
    88: 'alter view', 91: 'create function', 92: 'alter function', 93: 'drop function',
    94: 'create package', 95: 'alter package', 96: 'drop package',
    97: 'create package body', 98: 'alter package body', 99: 'drop package body',
    }

#: Optimizer goal names by `og=` code
OPTIMIZER_GOALS: dict[int, str] = {1: 'All_Rows', 2: 'First_Rows', 3: 'Rule', 4: 'Choose'}

#: Enqueue lock mode names by the low 16 bits of P1
ENQUEUE_MODES: dict[int, str] = {1: 'Null', 2: 'RowS', 3: 'RowX', 4: 'Share', 5: 'SRowX',
                                 6: 'Excl'}

#: Wait events issued between database calls
IDLE_EVENTS: frozenset[str] = frozenset([
    'smon timer', 'pmon timer', 'rdbms ipc message', 'pipe get', 'client message',
    'single-task message', 'SQL*Net message from client', 'SQL*Net more data from client',
    'dispatcher timer', 'virtual circuit status', 'lock manager wait for remote message',
    'wakeup time manager', 'PX Deq: Execute Reply', 'PX Deq: Execution Message',
    'PX Deq: Table Q Normal', 'PX Idle Wait', 'slave wait', 'i/o slave wait',
    'jobq slave wait'])

#: Idle events that still count as Oracle process time in the timing analysis
TIMED_IDLE_EVENTS: frozenset[str] = frozenset([
    'SQL*Net message from client', 'SQL*Net more data from client',
    'PX Deq: Execute Reply', 'PX Deq: Execution Message', 'PX Deq: Table Q Normal',
    'PX Idle Wait'])

_BLOCK_EVENTS: frozenset[str] = frozenset([
    'free buffer waits', 'write complete waits', 'buffer busy global cache',
    'buffer busy global CR', 'buffer read retry', 'control file sequential read',
    'control file single write', 'conversion file read', 'db file single write',
    'global cache lock busy', 'global cache lock cleanup', 'global cache lock null to s',
    'global cache lock null to x', 'global cache lock open null', 'global cache lock open s',
    'global cache lock open x', 'global cache lock s to x', 'local write wait'])

_BLOCK_PREFIXES: tuple[str, ...] = ('buffer busy waits', 'direct path read', 'direct path write',
                                    'db file scat', 'db file seq')

#: Wait events whose P1/P2 identify a file/block reported in segment lookups
_SEGMENT_HINT_PREFIXES: tuple[str, ...] = ('buffer busy waits', 'direct path read',
                                           'direct path write', 'db file scat', 'db file seq')

def is_idle_event(name: str) -> bool:
    """Returns True if wait event is issued between database calls.
    """
    return name in IDLE_EVENTS

def is_block_event(name: str) -> bool:
    """Returns True if P1 and P2 of wait event are file and block numbers.
    """
    return name in _BLOCK_EVENTS or name.startswith(_BLOCK_PREFIXES)

def is_segment_hint_event(name: str) -> bool:
    return (name in ('free buffer waits', 'write complete waits')
            or name.startswith(_SEGMENT_HINT_PREFIXES))

def is_disk_read_event(name: str) -> bool:
    """Returns True for single and multi block disk read events.
    """
    return name == 'db file sequential read' or name.startswith('db file scat')

def is_scattered_read(name: str) -> bool:
    return name.startswith('db file scat')

def command_type_name(oct_code: int) -> str:
    """Returns command type name for `oct=` code, or code as string for unknown ones.
    """
    return COMMAND_TYPES.get(oct_code, str(oct_code))

def decode_enqueue(p1: int) -> str:
    """Returns `Name=XX Mode=M` description for enqueue wait P1 parameter.

    The two high bytes of P1 hold the lock name as letters, the low 16 bits hold
    the requested mode.
    """
    name = chr((p1 >> 24) & 0xFF) + chr((p1 >> 16) & 0xFF)
    mode = ENQUEUE_MODES.get(p1 & 0xFFFF, 'null')
    return f'Name={name} Mode={mode}'
