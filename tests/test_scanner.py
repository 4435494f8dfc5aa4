"""
Block scanner tests

Tests fence recognition, fence widths, indented blocks and the
unterminated-fence error.
"""

import pytest

from mdsh.lib.scanner import blocks_scan
from mdsh.lib.errors import ScanError
from mdsh.models.blocks import FenceKind


class TestFencedBlocks:
    """Test backtick and tilde fences"""

    def test_empty_document(self):
        """Empty document has no blocks"""
        assert list(blocks_scan("")) == []

    def test_prose_only(self):
        """Prose without fences has no blocks"""
        assert list(blocks_scan("# Title\n\nJust words.\n")) == []

    def test_single_tagged_block(self):
        """Tagged block keeps its tag, content and line"""
        blocks = list(blocks_scan("intro\n```shell\necho hi\n```\n"))

        assert len(blocks) == 1
        assert blocks[0].tag == "shell"
        assert blocks[0].content == "echo hi\n"
        assert blocks[0].fence_kind is FenceKind.FENCED
        assert blocks[0].fence_width == 3
        assert blocks[0].start_line == 2
        assert blocks[0].emittable

    def test_tilde_fence(self):
        """Tilde fences work like backtick fences"""
        blocks = list(blocks_scan("~~~json\n{}\n~~~\n"))

        assert blocks[0].tag == "json"
        assert blocks[0].content == "{}\n"

    def test_untagged_block_not_emittable(self):
        """A fence without a tag is scanned but never emitted"""
        blocks = list(blocks_scan("```\nplain\n```\n"))

        assert len(blocks) == 1
        assert blocks[0].tag == ""
        assert not blocks[0].emittable

    def test_raw_tag_keeps_directive_text(self):
        """Everything after the fence is the tag"""
        blocks = list(blocks_scan('```yaml !conv "$1" | x\na: 1\n```\n'))

        assert blocks[0].tag == 'yaml !conv "$1" | x'

    def test_indented_fence_opens(self):
        """Fences are recognized on stripped lines"""
        blocks = list(blocks_scan("  ```shell\n  echo hi\n  ```\n"))

        assert len(blocks) == 1
        assert blocks[0].tag == "shell"
        assert blocks[0].content == "  echo hi\n"

    def test_empty_block(self):
        """Block with no lines has empty content"""
        blocks = list(blocks_scan("```shell\n```\n"))

        assert blocks[0].content == ""

    def test_multiple_blocks_in_order(self):
        """Blocks come out in document order"""
        source = "```a\n1\n```\ntext\n```b\n2\n```\n~~~c\n3\n~~~\n"
        blocks = list(blocks_scan(source))

        assert [b.tag for b in blocks] == ["a", "b", "c"]
        assert [b.start_line for b in blocks] == [1, 5, 8]


class TestFenceMatching:
    """Test which lines close a block"""

    def test_other_fence_char_is_content(self):
        """A tilde line doesn't close a backtick block"""
        blocks = list(blocks_scan("```shell\n~~~\necho\n```\n"))

        assert blocks[0].content == "~~~\necho\n"

    def test_backticks_inside_tilde_block(self):
        """A backtick fence line inside a tilde block is content"""
        blocks = list(blocks_scan("~~~md\n```shell\nx\n```\n~~~\n"))

        assert len(blocks) == 1
        assert blocks[0].content == "```shell\nx\n```\n"

    def test_wide_fence_not_emittable(self):
        """Fences wider than three are scanned but excluded"""
        blocks = list(blocks_scan("````shell\necho hi\n````\n"))

        assert len(blocks) == 1
        assert blocks[0].fence_width == 4
        assert not blocks[0].emittable

    def test_shorter_fence_inside_wide_block(self):
        """A three-char fence doesn't close a four-char block"""
        blocks = list(blocks_scan("````md\n```shell\necho\n```\n````\n"))

        assert len(blocks) == 1
        assert blocks[0].content == "```shell\necho\n```\n"

    def test_longer_closing_fence(self):
        """A closing run longer than the opener still closes"""
        blocks = list(blocks_scan("```shell\necho\n`````\nafter\n"))

        assert blocks[0].content == "echo\n"

    def test_fence_with_text_does_not_close(self):
        """A fence line carrying a tag is content inside a block"""
        blocks = list(blocks_scan("```md\n```shell\n```\n"))

        assert blocks[0].content == "```shell\n"


class TestIndentedBlocks:
    """Test indented blocks"""

    def test_indented_block(self):
        """Contiguous indented lines form one block"""
        blocks = list(blocks_scan("text\n\n    $ echo hi\n    hi\n\nafter\n"))

        assert len(blocks) == 1
        assert blocks[0].fence_kind is FenceKind.INDENTED
        assert blocks[0].content == "    $ echo hi\n    hi\n"
        assert blocks[0].start_line == 3
        assert not blocks[0].emittable

    def test_indented_block_at_end(self):
        """Indented block at end of document is still yielded"""
        blocks = list(blocks_scan("\tcode"))

        assert blocks[0].content == "\tcode"


class TestErrors:
    """Test unterminated fences"""

    def test_unterminated_fence(self):
        """A fence never closed is a ScanError naming its line"""
        with pytest.raises(ScanError, match="line 3") as info:
            list(blocks_scan("a\nb\n```shell\necho\n"))

        assert info.value.line == 3

    def test_blocks_before_error_are_yielded(self):
        """Scanning is lazy: earlier blocks come out before the error"""
        scan = blocks_scan("```a\n1\n```\n```b\n2\n")

        assert next(scan).tag == "a"
        with pytest.raises(ScanError):
            next(scan)

    def test_each_call_restarts(self):
        """Two scans of one text give the same blocks"""
        source = "```a\n1\n```\n"

        assert list(blocks_scan(source)) == list(blocks_scan(source))


class TestLineEndings:
    """Test that only \\n ends a line"""

    def test_form_feed_in_prose(self):
        """Other line separators don't shift block line numbers"""
        blocks = list(blocks_scan("page one\x0cpage two\n```json\n{}\n```\n"))

        assert blocks[0].start_line == 2

    def test_unicode_separators_in_block(self):
        """A fence after U+2028 or U+0085 is content, not a closing fence"""
        blocks = list(blocks_scan("```json\na\u2028```\nb\x85\n```\n"))

        assert len(blocks) == 1
        assert blocks[0].content == "a\u2028```\nb\x85\n"

    def test_separator_before_fence_does_not_close(self):
        with pytest.raises(ScanError):
            list(blocks_scan("```json\n\u2028```\n"))

    def test_crlf(self):
        """CRLF documents keep their content byte for byte"""
        blocks = list(blocks_scan("```json\r\n{}\r\n```\r\n"))

        assert blocks[0].tag == "json"
        assert blocks[0].content == "{}\r\n"
