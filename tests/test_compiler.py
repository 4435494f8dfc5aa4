"""
Compiler emission tests

Tests the bash text produced for each policy with bindings made in
Python. None of these documents run compile-time shell code.
"""

import pytest

from mdsh.lib.compiler import Compiler
from mdsh.lib.errors import DirectiveInvocationError, ScanError
from mdsh.lib.hooks import MAIN_GUARD
from mdsh.models.hooks import CompileFn, Environment, Template


TRAILER = "__status=$? eval 'return $__status || exit $__status' 2>/dev/null\n"


def compile_text(source: str, env: Environment = None, **kwargs) -> str:
    return Compiler(env=env, search_path=[]).compile(source, **kwargs)


class TestTemplates:
    """Test run-time wrappers"""

    def test_run_directive(self):
        """| code reads the block from a quoted heredoc"""
        output = compile_text("```python |python3\nprint(1)\n```\n")

        assert output == "{\npython3\n} <<'```'\nprint(1)\n```\n"

    def test_bound_template(self):
        """A bound template produces the same wrapper"""
        env = Environment(templates={"python": Template(body="python3")})

        assert compile_text("```python\nprint(1)\n```\n", env) == (
            "{\npython3\n} <<'```'\nprint(1)\n```\n"
        )

    def test_delimiter_collision(self):
        """Content holding the delimiter gets a suffixed one"""
        output = compile_text("~~~md |cat\n```\n~~~\n")

        assert output == "{\ncat\n} <<'```_1'\n```\n```_1\n"

    def test_empty_template_body(self):
        """An empty body still makes a valid group"""
        env = Environment(templates={"doc": Template(body="")})

        assert compile_text("```doc\ntext\n```\n", env) == "{\n:\n} <<'```'\ntext\n```\n"

    def test_directive_beats_template(self):
        """A directive on the tag bypasses the bound template"""
        env = Environment(templates={"json": Template(body="cat")})

        assert compile_text("```json |jq .\n{}\n```\n", env).startswith("{\njq .\n}")


class TestFallback:
    """Test unhandled-language blocks"""

    def test_collected_in_array(self):
        """Content is appended to mdsh_raw_<language>"""
        output = compile_text('```json\n{"a":1}\n```\n')

        assert output == "mdsh_raw_json+=($'{\"a\":1}\\n')\n"

    def test_language_sanitized(self):
        """Array names use the sanitized language"""
        output = compile_text("```objective-c\nx\n```\n")

        assert output.startswith("mdsh_raw_objective_c+=(")

    def test_case_sensitive(self):
        """A template for python doesn't apply to Python"""
        env = Environment(templates={"python": Template(body="python3")})

        assert compile_text("```Python\nx\n```\n", env) == "mdsh_raw_Python+=($'x\\n')\n"

    def test_data_collection_order(self):
        """Collected contents are kept per language in document order"""
        compiler = Compiler(search_path=[])
        compiler.compile("```csv\n1\n```\n```json\n{}\n```\n```csv\n2\n```\n")

        assert compiler.data.get("csv") == ["1\n", "2\n"]
        assert compiler.data.get("json") == ["{}\n"]
        assert compiler.data.get("yaml") == []

    def test_nul_content(self):
        """Content with a NUL character can't be collected and fails its block"""
        with pytest.raises(DirectiveInvocationError) as info:
            compile_text("# Data\n\n```json\n\"a\x00b\"\n```\n")

        assert info.value.language == "json"
        assert info.value.line == 3
        assert "NUL" in str(info.value)

    def test_python_misc_hook(self):
        """A misc hook replaces the array append"""
        env = Environment(misc=lambda language, content: f"# {language}: {content}")

        assert compile_text("```json\n{}\n```\n", env) == "# json: {}\n"


class TestCompileHooks:
    """Test Python compile hooks"""

    def test_output_verbatim(self):
        """The hook's return value is the fragment"""
        env = Environment(
            compilers={"upper": CompileFn(fn=lambda content, tag: f"echo {content.upper()}")}
        )

        assert compile_text("```upper\nhi\n```\n", env) == "echo HI\n"

    def test_hook_sees_tag(self):
        """Hooks receive the parsed tag"""
        env = Environment(
            compilers={"x": CompileFn(fn=lambda content, tag: f"# {' '.join(tag.words)}\n")}
        )

        assert compile_text("```x one two\n\n```\n", env) == "# one two\n"

    def test_exception_attributed_to_block(self):
        """A failing hook names the block's language and line"""
        def broken(content, tag):
            raise RuntimeError("boom")

        env = Environment(compilers={"bad": CompileFn(fn=broken)})

        with pytest.raises(DirectiveInvocationError, match="boom") as info:
            compile_text("text\n\n```bad\nx\n```\n", env)

        assert info.value.language == "bad"
        assert info.value.line == 3

    def test_non_string_result(self):
        """Hooks must return text"""
        env = Environment(compilers={"bad": CompileFn(fn=lambda content, tag: None)})

        with pytest.raises(DirectiveInvocationError, match="NoneType"):
            compile_text("```bad\nx\n```\n", env)


class TestShellBlocks:
    """Test the built-in shell hooks"""

    @pytest.mark.parametrize("language", ["shell", "sh", "bash"])
    def test_passthrough(self, language):
        """Shell blocks are copied into the script"""
        assert compile_text(f"```{language}\necho hi\n```\n") == "echo hi\n"

    def test_main_guard(self):
        """@main blocks only run when executed directly"""
        assert compile_text("```shell @main\nmain\n```\n") == f"{MAIN_GUARD}main\nfi\n"

    def test_caller_binding_overrides_builtin(self):
        """A caller's template for shell replaces the passthrough"""
        env = Environment(templates={"shell": Template(body="bash")})

        assert compile_text("```shell\necho\n```\n", env).startswith("{\nbash\n}")


class TestDocumentAssembly:
    """Test ordering, skipping and file-level hooks"""

    def test_empty_document(self):
        assert compile_text("") == ""

    def test_non_emittable_blocks_skipped(self):
        """Untagged, wide-fenced and indented blocks produce nothing"""
        source = "```\nuntagged\n```\n````shell\necho wide\n````\n\n    echo indented\n"
        compiler = Compiler(search_path=[])

        assert compiler.compile(source) == ""
        assert compiler.block_count == 0

    def test_fragments_in_document_order(self):
        """Fragments follow the blocks' order"""
        output = compile_text("```shell\necho 1\n```\ntext\n```sh\necho 2\n```\n")

        assert output == "echo 1\necho 2\n"

    def test_after_template(self):
        """An after template follows every block of its language"""
        env = Environment(after={"json": Template(body="echo done")})
        output = compile_text("```json\n1\n```\n```json\n2\n```\n", env)

        assert output == (
            "mdsh_raw_json+=($'1\\n')\necho done\n"
            "mdsh_raw_json+=($'2\\n')\necho done\n"
        )

    def test_header_footer_and_trailer(self):
        """Header, fragments, footer and eval trailer, in that order"""
        env = Environment(
            file_header=lambda: "#!/usr/bin/env bash\n",
            file_footer=lambda: "# end\n",
        )
        output = compile_text("```shell\necho hi\n```\n", env, eval_mode=True)

        assert output == "#!/usr/bin/env bash\necho hi\n# end\n" + TRAILER

    def test_bytes_document(self):
        """Bytes are decoded, keeping invalid sequences"""
        output = compile_text(b"```txt\n\xff\n```\n")

        assert output == "mdsh_raw_txt+=($'\\xff\\n')\n"

    def test_unterminated_fence(self):
        """An unterminated fence fails the whole compile"""
        with pytest.raises(ScanError):
            compile_text("```shell\necho hi\n```\n```shell\necho\n")

    def test_caller_environment_untouched(self):
        """Compiling doesn't add built-in hooks to the caller's bindings"""
        env = Environment()
        compile_text("```shell\necho\n```\n", env)

        assert env.compilers == {}
