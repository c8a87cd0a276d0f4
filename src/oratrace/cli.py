# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/cli.py
# DESCRIPTION:    Command-line entry point
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

"""oratrace.cli - Command-line entry point.

Usage::

    oratrace TRACEFILE [DEBUG] [--config INI] [--output PATH]

Any value of DEBUG switches logging to DEBUG level. DEBUG value `T` also logs the
classification of every trace line.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

from firebird.base.types import Error

from .config import load_config
from .ingest import load_trace
from .report import write_report

log = logging.getLogger(__name__)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='oratrace',
                                     description="Oracle 10046 SQL trace file report generator")
    parser.add_argument('tracefile', help="Oracle trace file")
    parser.add_argument('debug', nargs='?', default=None,
                        help="Enable debug output, 'T' also traces every trace line")
    parser.add_argument('--config', default=None, help="INI file with [oratrace] section")
    parser.add_argument('--output', default=None, help="Report file")
    return parser

def report_path(tracefile: str, suffix: str) -> Path:
    """Returns default report file for trace file, placed in current directory.
    """
    name = Path(tracefile).name
    if name.endswith('.trc'):
        name = name[:-4]
    return Path(name + suffix)

def main(argv: Sequence[str] | None=None) -> int:
    """Runs trace report generator.

    Returns:
        Exit status, 0 on success, 2 on fatal error.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(format='%(message)s',
                        level=logging.INFO if args.debug is None else logging.DEBUG)
    try:
        config = load_config(args.config)
        parser = load_trace(args.tracefile, line_trace=args.debug == 'T')
        output = Path(args.output) if args.output else \
            report_path(args.tracefile, config.output_suffix.value)
        write_report(parser.store, output, config)
    except Error as exc:
        log.error(str(exc))
        return 2
    log.info("Trace output file is %s", output)
    return 0
