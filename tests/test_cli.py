"""
Tests for the moraine CLI.
"""

import json

import pytest
import yaml
from click.testing import CliRunner
from moraine.cli.main import cli

STACK_FILE = '''
from moraine import Function, Stack, User, table

stack = Stack(name="cli-test")
t1 = stack.register_resource(table("T1", "name"))
u1 = stack.register_principal(User("U1"))
stack.grant_read(u1, t1)
f1 = stack.register_resource(Function("F1", entry_point="dist/f1.zip"))
stack.bind_schedule("0 12 * * *", "Asia/Tokyo", f1)
'''


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def stack_file(tmp_path):
    path = tmp_path / "app.py"
    path.write_text(STACK_FILE)
    return str(path)


class TestCli:

    def test_plan(self, runner, stack_file):
        result = runner.invoke(cli, ["plan", stack_file])

        assert result.exit_code == 0
        assert "Stack: cli-test" in result.output
        assert "1. Table T1" in result.output
        assert "3. grant(U1, T1, Read)" in result.output
        assert "5. Schedule F1Schedule" in result.output

    def test_synth_yaml(self, runner, stack_file):
        result = runner.invoke(cli, ["synth", stack_file])

        assert result.exit_code == 0
        data = yaml.safe_load(result.output)
        assert data["plan"] == ["T1", "U1", "grant:U1:T1:Read", "F1", "F1Schedule"]

    def test_synth_json(self, runner, stack_file):
        result = runner.invoke(cli, ["synth", stack_file, "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["stack"] == "cli-test"

    def test_template(self, runner, stack_file, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text(
            "name: cli-test\n"
            "description: From CLI\n"
            "aws:\n"
            "  account_id: '123456789012'\n"
            "  region: ap-northeast-1\n"
        )

        result = runner.invoke(cli, ["template", stack_file, "--config", str(config)])

        assert result.exit_code == 0
        template = json.loads(result.output)
        assert template["Description"] == "From CLI"
        assert template["Resources"]["T1"]["Properties"]["Replicas"] == [
            {"Region": "ap-northeast-1"}
        ]

    def test_validate(self, runner, stack_file):
        result = runner.invoke(cli, ["validate", stack_file])

        assert result.exit_code == 0
        assert "✓ Stack 'cli-test' is valid" in result.output

    def test_select_stack_by_name(self, runner, stack_file):
        result = runner.invoke(cli, ["plan", stack_file, "--stack", "cli-test"])

        assert result.exit_code == 0

    def test_no_stack(self, runner, tmp_path):
        path = tmp_path / "empty.py"
        path.write_text("x = 1\n")

        result = runner.invoke(cli, ["plan", str(path)])

        assert result.exit_code == 1
        assert "Could not find a stack" in result.output

    def test_broken_stack_file(self, runner, tmp_path):
        path = tmp_path / "broken.py"
        path.write_text(
            "from moraine import Stack, User\n"
            "stack = Stack(name='broken')\n"
            "stack.register_principal(User('U1'))\n"
            "stack.register_principal(User('U1'))\n"
        )

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "already registered" in result.output

    def test_unknown_log_level_falls_back(self, runner, stack_file):
        result = runner.invoke(cli, ["plan", stack_file], env={"MORAINE_LOG_LEVEL": "foo"})

        assert result.exit_code == 0
        assert "Unknown MORAINE_LOG_LEVEL 'FOO', using WARNING" in result.output
        assert "Stack: cli-test" in result.output
