# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           oratrace/config.py
# DESCRIPTION:    Report configuration
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

"""oratrace.config - Report configuration.

Limits that control how much detail is printed in the report. Values may be
loaded from the `[oratrace]` section of an INI file::

    [oratrace]
    bind_limit = 50
    wait_detail_limit = 20
"""

from __future__ import annotations

from configparser import ConfigParser
from pathlib import Path

from firebird.base.config import Config, IntOption, StrOption
from firebird.base.types import Error

#: Name of configuration file section
SECTION = 'oratrace'

class ReportConfig(Config):
    """Oracle trace report configuration.
    """
    def __init__(self, name: str=SECTION):
        super().__init__(name, optional=True)
        #: Number of bind values printed per cursor
        self.bind_limit: IntOption = \
            IntOption('bind_limit', "Number of bind values printed per cursor", default=100)
        #: Number of bind values printed per RPC call
        self.rpc_bind_limit: IntOption = \
            IntOption('rpc_bind_limit', "Number of bind values printed per RPC call", default=100)
        #: Number of waits listed for one wait event before the rest is summarized
        self.wait_detail_limit: IntOption = \
            IntOption('wait_detail_limit',
                      "Number of waits listed for one wait event before the rest is summarized",
                      default=10)
        #: Number of statements listed for each event in Top Statements per Event
        self.top_statements: IntOption = \
            IntOption('top_statements', "Number of statements listed for each event", default=5)
        #: Suffix of default report file name
        self.output_suffix: StrOption = \
            StrOption('output_suffix', "Suffix of default report file name", default='.lst')

def load_config(path: Path | str | None=None) -> ReportConfig:
    """Returns report configuration, optionally updated from INI file.

    Arguments:
        path: Configuration file. Defaults are used when None.

    Raises:
        firebird.base.types.Error: When configuration file does not exist or holds
                                   invalid values.
    """
    config = ReportConfig()
    if path is None:
        return config
    path = Path(path)
    if not path.is_file():
        raise Error(f"Error - Can't find configuration file: {path} - Aborting...")
    parser = ConfigParser()
    parser.read(path, encoding='utf-8')
    config.load_config(parser)
    config.validate()
    return config
