"""
Tag parser tests

Tests language extraction and the | and ! command directives.
"""

import pytest

from mdsh.lib.tags import tag_parse
from mdsh.models.blocks import DirectiveKind


class TestLanguage:
    """Test the language token"""

    def test_language_only(self):
        """Single token is the language"""
        tag = tag_parse("python")

        assert tag.language == "python"
        assert tag.directive is None
        assert tag.code == ""

    def test_case_preserved(self):
        """Language case is kept as written"""
        assert tag_parse("JSON").language == "JSON"

    def test_blank_tag(self):
        """Blank tag has no language"""
        assert tag_parse("   ").language == ""

    def test_extra_words(self):
        """Words after the language are kept when there is no directive"""
        tag = tag_parse("shell @main extra")

        assert tag.directive is None
        assert tag.words == ["@main", "extra"]


class TestDirectives:
    """Test | and ! markers"""

    def test_run_directive(self):
        """| makes a RUN directive"""
        tag = tag_parse("json |jq .a")

        assert tag.language == "json"
        assert tag.directive is DirectiveKind.RUN
        assert tag.code == "jq .a"

    def test_compile_directive(self):
        """! makes a COMPILE directive"""
        tag = tag_parse('yaml !emitConvertedJSON "$1"')

        assert tag.directive is DirectiveKind.COMPILE
        assert tag.code == 'emitConvertedJSON "$1"'

    def test_directive_keeps_rest_of_line(self):
        """Pipes, substitutions and later tokens stay in the code"""
        tag = tag_parse('csv |cut -d, -f1 | sort | uniq -c "$(date)"')

        assert tag.code == 'cut -d, -f1 | sort | uniq -c "$(date)"'

    def test_marker_with_space(self):
        """Code may start after a space following the marker"""
        assert tag_parse("txt | wc -l").code == " wc -l"

    @pytest.mark.parametrize("raw", ["a b |x", "a b !x"])
    def test_only_second_token_inspected(self, raw):
        """Markers on a third token are not directives"""
        tag = tag_parse(raw)

        assert tag.directive is None
        assert tag.words == raw.split()[1:]
