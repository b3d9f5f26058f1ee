"""
Tests for macro syntax helpers.
"""

import pytest

from docx_templater.engine.macros import (
    block_close_macro,
    block_open_macro,
    ensure_macro_completed,
    find_variables,
    fix_broken_macros,
    suffix_macros,
)


class TestFixBrokenMacros:
    """Test repair of macros split over runs."""

    def test_split_after_dollar(self):
        """Test that a macro split right after ``$`` is stuck back together."""
        text = '<w:r><w:t>$</w:t></w:r><w:r><w:t>{name}</w:t></w:r>'
        assert fix_broken_macros(text) == '<w:r><w:t>${name}</w:t></w:r>'

    def test_tag_inside_delimiters(self):
        """Test a tag wrapping the opening brace."""
        assert fix_broken_macros('$<b>{</b>x}') == '${x}'

    def test_split_inside_name(self):
        """Test a macro name split over two text runs."""
        text = '<w:t>${cust</w:t></w:r><w:r><w:t>omer}</w:t>'
        assert fix_broken_macros(text) == '<w:t>${customer}</w:t>'

    @pytest.mark.parametrize("text", [
        '$<b>{</b>x}',
        '<w:t>$</w:t><w:t>{a}</w:t> and <w:t>${b}</w:t>',
        '<w:t>price: $5 {approx}</w:t>',
    ])
    def test_idempotent(self, text):
        """Test that repairing twice equals repairing once."""
        once = fix_broken_macros(text)
        assert fix_broken_macros(once) == once

    def test_clean_markup_untouched(self):
        """Test that markup without macros is left alone."""
        text = '<w:p><w:r><w:t>Hello</w:t></w:r></w:p>'
        assert fix_broken_macros(text) == text


class TestFindVariables:
    """Test variable discovery."""

    def test_order_and_duplicates(self):
        """Test that names come in order of appearance, repeats included."""
        assert find_variables('<w:t>${a}</w:t><w:t>${b}</w:t><w:t>${a}</w:t>') == ['a', 'b', 'a']

    def test_clone_and_block_names(self):
        """Test that suffixed and closing names are reported verbatim."""
        assert find_variables('${row#2} ${/sec}') == ['row#2', '/sec']

    def test_no_variables(self):
        assert find_variables('<w:t>plain</w:t>') == []


class TestEnsureMacroCompleted:
    """Test macro name normalization."""

    def test_bare_name_wrapped(self):
        assert ensure_macro_completed('name') == '${name}'

    def test_wrapped_name_untouched(self):
        assert ensure_macro_completed('${name}') == '${name}'

    def test_partially_delimited_untouched(self):
        """Test that a term with either delimiter is taken as given."""
        assert ensure_macro_completed('${name') == '${name'
        assert ensure_macro_completed('name}') == 'name}'


class TestBlockMacros:
    """Test block delimiters and clone renaming."""

    def test_block_delimiters(self):
        assert block_open_macro('sec') == '${sec}'
        assert block_close_macro('sec') == '${/sec}'

    def test_suffix_macros(self):
        """Test that every macro in the fragment gets the clone suffix."""
        fragment = '<w:t>${a}</w:t><w:t>${b}</w:t>'
        assert suffix_macros(fragment, 2) == '<w:t>${a#2}</w:t><w:t>${b#2}</w:t>'

    def test_suffix_leaves_text_alone(self):
        assert suffix_macros('<w:t>$ {not a macro}</w:t>', 1) == '<w:t>$ {not a macro}</w:t>'
