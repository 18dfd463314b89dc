"""Tests for autotest.extractors.dependencies."""

from __future__ import annotations

import textwrap

from autotest.extractors import extract_dependencies, is_relative


def test_collects_targets_in_order_with_duplicates() -> None:
    source = textwrap.dedent(
        """
        import { a } from './a';
        import type { B } from "../b";
        import * as fs from 'fs';
        import './side-effect';
        const x = require('y');
          import { c } from './a';
        """
    )

    assert extract_dependencies(source) == ("./a", "../b", "fs", "./a")


def test_ignores_lines_not_starting_with_import() -> None:
    source = "export { thing } from './thing';\n// import { z } from './z';\n"

    assert extract_dependencies(source) == ()


def test_is_relative() -> None:
    assert is_relative("./a")
    assert is_relative("../lib/b")
    assert not is_relative("react")
    assert not is_relative("@scope/pkg")
