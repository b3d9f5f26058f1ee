"""
Tests for row and block operations.
"""

import pytest

from docx_templater.engine.block_operations import (
    clone_block,
    clone_row,
    collapse_rewrites,
    delete_block,
    delete_white_lines,
    insert_line_breaks,
    make_clones,
    replace_block,
)
from docx_templater.exceptions import MacroNotFoundError, TemplateConfigurationError
from docx_templater.settings import LINE_BREAK_PARAGRAPH, PAGE_BREAK_RUN
from tests.docx_builders import document, p, tbl, tc, tr

RESTART = '<w:vMerge w:val="restart"/>'
CONTINUE = '<w:vMerge/>'


def row_count(part):
    return part.count('<w:tr>') + part.count('<w:tr ')


class TestMakeClones:
    """Test clone generation."""

    def test_suffixes(self):
        assert make_clones('${a}', 3) == ['${a#1}', '${a#2}', '${a#3}']

    def test_page_breaks_stripped(self):
        assert make_clones('${a}' + PAGE_BREAK_RUN, 1, (PAGE_BREAK_RUN,)) == ['${a#1}']

    def test_negative_count(self):
        with pytest.raises(TemplateConfigurationError):
            make_clones('${a}', -1)


class TestCloneRow:
    """Test table row cloning."""

    def test_clone_three_times(self):
        """Test that clones are suffixed in document order and the table grows by two rows."""
        part = document(tbl(tr(tc('head')), tr(tc('${row}'), tc('${price}'))) + p('${total}'))
        result = clone_row(part, 'row', 3)

        assert row_count(result) == row_count(part) + 2
        positions = [result.find('${row#%d}' % i) for i in (1, 2, 3)]
        assert -1 not in positions
        assert positions == sorted(positions)
        assert '${price#3}' in result
        assert '${row}' not in result
        assert '${total}' in result

    def test_wrapped_name_accepted(self):
        part = document(tbl(tr(tc('${row}'))))
        assert '${row#1}' in clone_row(part, '${row}', 1)

    def test_merged_group_cloned_as_unit(self):
        """Test that a three-row merge group cloned twice yields six rows."""
        group = (
            tr(tc('${row}', RESTART), tc('a'))
            + tr(tc('', CONTINUE), tc('b'))
            + tr(tc('', CONTINUE), tc('c'))
        )
        part = document(tbl(group))
        result = clone_row(part, 'row', 2)

        assert row_count(result) == 6
        assert result.count(RESTART) == 2
        assert result.count(CONTINUE) == 4

    def test_page_break_stripped_from_clones(self):
        row = '<w:tr><w:tc><w:p><w:r><w:t>${row}</w:t></w:r>' + PAGE_BREAK_RUN + '</w:p></w:tc></w:tr>'
        result = clone_row(document(tbl(row)), 'row', 2, (PAGE_BREAK_RUN,))
        assert PAGE_BREAK_RUN not in result

    def test_zero_clones_removes_row(self):
        part = document(tbl(tr(tc('head')), tr(tc('${row}'))))
        result = clone_row(part, 'row', 0)
        assert row_count(result) == 1
        assert '${row' not in result

    def test_missing_macro(self):
        with pytest.raises(MacroNotFoundError):
            clone_row(document(tbl(tr(tc('x')))), 'row', 2)

    def test_macro_outside_table(self):
        with pytest.raises(MacroNotFoundError):
            clone_row(document(p('${row}')), 'row', 2)

    def test_macro_between_tables(self):
        part = document(tbl(tr(tc('a'))) + p('${row}') + tbl(tr(tc('b'))))
        with pytest.raises(MacroNotFoundError):
            clone_row(part, 'row', 2)


class TestCloneBlock:
    """Test block cloning."""

    def setup_method(self):
        self.part = document(p('intro') + p('${sec}') + p('item ${x}') + p('${/sec}') + p('outro ${y}'))

    def test_clone_twice(self):
        """Test that the block is replaced by two suffixed copies."""
        result, last_clone = clone_block(self.part, 'sec', 2)

        assert '${sec}' not in result
        assert '${/sec}' not in result
        assert result.find('${x#1}') < result.find('${x#2}')
        assert '${y}' in result
        assert last_clone == p('item ${x#2}')

    def test_without_replace(self):
        """Test that the part is unchanged and the last clone is returned."""
        result, last_clone = clone_block(self.part, 'sec', 3, auto_replace=False)
        assert result == self.part
        assert last_clone == p('item ${x#3}')

    def test_missing_block(self):
        result, last_clone = clone_block(self.part, 'missing', 2)
        assert result == self.part
        assert last_clone is None

    def test_zero_clones(self):
        result, last_clone = clone_block(self.part, 'sec', 0)
        assert '${x' not in result
        assert last_clone == p('item ${x}')


class TestReplaceBlock:
    """Test block replacement and deletion."""

    def test_replace(self):
        part = document(p('${sec}') + p('old') + p('${/sec}') + p('outro'))
        result = replace_block(part, 'sec', p('new'))
        assert p('new') + p('outro') in result
        assert 'old' not in result
        assert '${sec}' not in result

    def test_delete(self):
        part = document(p('intro') + p('${sec}') + p('old') + p('${/sec}'))
        result = delete_block(part, 'sec')
        assert result.endswith('<w:body>' + p('intro') + '</w:body></w:document>')

    def test_delete_missing_is_no_op(self):
        part = document(p('intro'))
        assert delete_block(part, 'missing') == part


class TestLineBreaks:
    """Test line-break insertion and blank line deletion."""

    def test_paragraphs_become_line_breaks(self):
        part = document(p('${br}') + p('text') + p('${br}'))
        result = insert_line_breaks(part, ['br'], LINE_BREAK_PARAGRAPH)
        assert result.count(LINE_BREAK_PARAGRAPH) == 2
        assert '${br}' not in result

    def test_adjacent_breaks_collapsed(self):
        """Test that neighbouring breaks collapse to a single one."""
        part = document(p('${a}') + p('${b}') + p('${a}') + p('text'))
        result = insert_line_breaks(part, ['a', 'b'], LINE_BREAK_PARAGRAPH, (LINE_BREAK_PARAGRAPH * 2,))
        assert result.count(LINE_BREAK_PARAGRAPH) == 1
        assert p('text') in result

    def test_rewrites_applied_without_matches(self):
        part = document(LINE_BREAK_PARAGRAPH * 2)
        result = insert_line_breaks(part, ['none'], LINE_BREAK_PARAGRAPH, (LINE_BREAK_PARAGRAPH * 2,))
        assert result == document(LINE_BREAK_PARAGRAPH)

    def test_collapse_repeats(self):
        text = 'x' + 'AB' * 5 + 'y'
        assert collapse_rewrites(text, 'A', ('AB',)) == 'xAAAAAy'
        assert collapse_rewrites('AAAA', 'A', ('AA',)) == 'A'

    def test_delete_white_lines(self):
        part = document(p('${gap}') + p('text') + p('${gap}'))
        result = delete_white_lines(part, ['gap'])
        assert result.endswith('<w:body>' + p('text') + '</w:body></w:document>')

    def test_delete_white_lines_no_match(self):
        part = document(p('text'))
        assert delete_white_lines(part, ['gap']) == part
