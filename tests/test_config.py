# SPDX-FileCopyrightText: 2020-present The Firebird Projects <www.firebirdsql.org>
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: oratrace
# FILE:           tests/test_config.py
# DESCRIPTION:    Tests for oratrace.config module
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

"""oratrace - Tests for oratrace.config module
"""

import pytest
from firebird.base.types import Error

from oratrace.config import *

def test_01_defaults():
    """Configuration defaults."""
    config = load_config()
    assert config.name == SECTION
    assert config.bind_limit.value == 100
    assert config.rpc_bind_limit.value == 100
    assert config.wait_detail_limit.value == 10
    assert config.top_statements.value == 5
    assert config.output_suffix.value == '.lst'

def test_02_load(tmp_path):
    """Values are loaded from [oratrace] section."""
    path = tmp_path / 'oratrace.ini'
    path.write_text("[oratrace]\nbind_limit = 50\noutput_suffix = .txt\n", encoding='utf-8')
    config = load_config(path)
    assert config.bind_limit.value == 50
    assert config.output_suffix.value == '.txt'
    assert config.wait_detail_limit.value == 10

def test_03_missing_section(tmp_path):
    """File without [oratrace] section keeps defaults."""
    path = tmp_path / 'other.ini'
    path.write_text("[other]\nbind_limit = 50\n", encoding='utf-8')
    assert load_config(path).bind_limit.value == 100

def test_04_errors(tmp_path):
    """Missing file and invalid values are reported as Error."""
    with pytest.raises(Error, match="Can't find configuration file"):
        load_config(tmp_path / 'missing.ini')
    path = tmp_path / 'bad.ini'
    path.write_text("[oratrace]\nbind_limit = many\n", encoding='utf-8')
    with pytest.raises(Error):
        load_config(path)
