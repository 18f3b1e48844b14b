"""Tests for agents_config module."""

import pytest

from squadboard.lib.agents_config import DEFAULT_AGENT_COMMAND, build_agent_command


class TestBuildAgentCommand:
    """Tests for build_agent_command()."""

    def test_prompt_as_argument(self):
        result = build_agent_command("claude -p {prompt}", {"prompt": "do stuff"})
        assert result.cmd == ["claude", "-p", "do stuff"]
        assert result.prompt_via_stdin is False
        assert result.get_stdin_input("do stuff") is None

    def test_prompt_via_stdin(self):
        result = build_agent_command("codex exec --full-auto -", {"prompt": "do stuff"})
        assert result.cmd == ["codex", "exec", "--full-auto", "-"]
        assert result.prompt_via_stdin is True
        assert result.get_stdin_input("do stuff") == "do stuff"

    def test_prompt_with_quotes_and_newlines(self):
        prompt = 'Fix the "login" bug\nand don\'t break `make test`'
        result = build_agent_command("claude -p {prompt}", {"prompt": prompt})
        assert result.cmd[-1] == prompt

    def test_other_variables_substituted(self):
        result = build_agent_command(
            "agent --cwd {worktree} --session {session_id} {prompt}",
            {"prompt": "go", "worktree": "/tmp/my tree", "session_id": "abc"},
        )
        assert result.cmd == ["agent", "--cwd", "/tmp/my tree", "--session", "abc", "go"]

    def test_unknown_variable_logged(self, caplog):
        build_agent_command("agent {model} {prompt}", {"prompt": "go"})
        assert "unsubstituted variables: ['model']" in caplog.text

    def test_default_command(self):
        result = build_agent_command(DEFAULT_AGENT_COMMAND, {"prompt": "hi"})
        assert result.cmd[0] == "claude"
        assert result.cmd[-1] == "hi"

    @pytest.mark.parametrize("template", ["", "   "])
    def test_empty_template(self, template):
        with pytest.raises(ValueError):
            build_agent_command(template, {"prompt": "hi"})
