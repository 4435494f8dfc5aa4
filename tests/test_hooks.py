"""
Policy resolution tests

Tests the precedence of directives, templates, compile hooks and the
fallback, and the built-in shell hooks.
"""

import pytest

from mdsh.lib.errors import AdviceTargetMissing, MdshError
from mdsh.lib.hooks import MAIN_GUARD, policy_resolve, shell_passthrough
from mdsh.lib.tags import tag_parse
from mdsh.models.hooks import CompileFn, Environment, PolicyKind, ShellFunction, Template


@pytest.fixture
def env():
    """Environment with a template and a compile hook for different languages"""
    return Environment(
        templates={"python": Template(body="python3")},
        compilers={
            "yaml": ShellFunction("toJSON"),
            "python": CompileFn(fn=lambda content, tag: content),
        },
    )


class TestPolicyResolve:
    """Test policy_resolve()"""

    def test_run_directive_bypasses_bindings(self, env):
        """| wins over a bound template"""
        policy = policy_resolve(tag_parse("python |python2"), env)

        assert policy.kind is PolicyKind.COMMAND_RUN
        assert policy.code == "python2"

    def test_compile_directive_bypasses_bindings(self, env):
        """! wins over a bound compile hook"""
        policy = policy_resolve(tag_parse("yaml !cat"), env)

        assert policy.kind is PolicyKind.COMMAND_COMPILE
        assert policy.code == "cat"

    def test_template_before_compile_hook(self, env):
        """A template wins over a compile hook for the same language"""
        policy = policy_resolve(tag_parse("python"), env)

        assert policy.kind is PolicyKind.TEMPLATE
        assert policy.template.body == "python3"

    def test_compile_hook(self, env):
        """A compile hook applies when no template is bound"""
        policy = policy_resolve(tag_parse("yaml"), env)

        assert policy.kind is PolicyKind.COMPILE_FN
        assert policy.hook == ShellFunction("toJSON")

    def test_fallback(self, env):
        """Unbound languages fall back"""
        assert policy_resolve(tag_parse("json"), env).kind is PolicyKind.FALLBACK

    def test_case_sensitive(self, env):
        """Lookups are exact"""
        assert policy_resolve(tag_parse("Python"), env).kind is PolicyKind.FALLBACK


class TestEnvironment:
    """Test Environment copying and advice"""

    def test_copy_isolated(self, env):
        """Mutating a copy leaves the original alone"""
        clone = env.copy()
        clone.templates["ruby"] = Template(body="ruby")
        clone.functions["f"] = "f() { :; }"

        assert "ruby" not in env.templates
        assert env.functions == {}

    def test_advise_template(self, env):
        """Advice is placed inside the template body"""
        env.advise("python", before="echo in", after="echo out")

        assert env.templates["python"].body == "echo in\npython3\necho out"

    def test_advise_compile_fn(self):
        """Advice frames a Python compile hook's output"""
        env = Environment(compilers={"up": CompileFn(fn=lambda content, tag: content.upper())})
        env.advise("up", before="# in\n", after="# out\n")

        assert env.compilers["up"]("x\n", tag_parse("up")) == "# in\nX\n# out\n"

    def test_advise_unbound(self, env):
        """Advising an unbound language is an mdsh error"""
        with pytest.raises(AdviceTargetMissing) as info:
            env.advise("json", before="x")

        assert isinstance(info.value, MdshError)
        assert info.value.language == "json"


class TestShellPassthrough:
    """Test the built-in shell hook"""

    def test_verbatim(self):
        """Shell code is copied unchanged"""
        assert shell_passthrough("echo hi\n", tag_parse("shell")) == "echo hi\n"

    def test_main_guard(self):
        """@main wraps code in a run-directly guard"""
        result = shell_passthrough("main \"$@\"", tag_parse("shell @main"))

        assert result == f"{MAIN_GUARD}main \"$@\"\nfi\n"
