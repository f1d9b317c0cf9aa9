"""Tests for the eval command."""

import pytest
from shmy import Shell, Status


class NopeCommand:
    """Always fails."""

    name = "nope"

    async def execute(self, args, ctx):
        return Status.failure("no way", exit_code=4)


class TestEval:
    """Test evaluating expressions."""

    @pytest.mark.asyncio
    async def test_prints_values(self):
        shell = Shell()
        result = await shell.exec('eval "2 + 3"')
        assert result.stdout == "5\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_quiet(self):
        shell = Shell()
        result = await shell.exec('eval -q "2 + 3"')
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_several_expressions(self):
        shell = Shell()
        result = await shell.exec('eval "x = 1" "$x + 1"')
        assert result.stdout == "1\n2\n"

    @pytest.mark.asyncio
    async def test_commands_write_output(self):
        shell = Shell()
        result = await shell.exec('eval "echo hi"')
        assert result.stdout == "hi\n"

    @pytest.mark.asyncio
    async def test_variables_stay_local(self):
        shell = Shell()
        result = await shell.exec('eval -q "shmy_local = 1"; defined shmy_local')
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_export(self):
        shell = Shell()
        result = await shell.exec('eval --export "shmy_exported = 100"; $shmy_exported')
        assert result.value == 100

    @pytest.mark.asyncio
    async def test_sees_caller_scope(self):
        shell = Shell()
        result = await shell.exec('x = 7; eval "$x * 2"')
        assert result.stdout == "14\n"

    @pytest.mark.asyncio
    async def test_missing_expression(self):
        shell = Shell()
        result = await shell.exec("eval")
        assert "Missing expression" in result.stderr

    @pytest.mark.asyncio
    async def test_syntax_error(self):
        shell = Shell()
        result = await shell.exec('eval "1 +"')
        assert result.exit_code == 1
        assert "Error evaluating '1 +': Expecting right hand-side expression" in result.stderr

    @pytest.mark.asyncio
    async def test_failing_command(self):
        shell = Shell(commands=[NopeCommand()])
        result = await shell.exec('eval "nope"')
        assert result.exit_code == 4
        assert "no way" in result.stderr

    @pytest.mark.asyncio
    async def test_in_condition(self):
        shell = Shell(commands=[NopeCommand()])
        result = await shell.exec('if (eval "nope; echo after") (ran) else (failed)')
        assert result.value == "failed"
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_help(self):
        shell = Shell()
        result = await shell.exec("eval --help")
        assert "Usage: eval" in result.stdout


class TestSource:
    """Test running script files with --source."""

    @pytest.mark.asyncio
    async def test_source_with_arguments(self, tmp_path):
        (tmp_path / "script.my").write_text('echo $1 $2 "$#"\n')
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("eval --source script.my a b")
        assert result.stdout == "a b 2\n"

    @pytest.mark.asyncio
    async def test_source_runs_in_current_scope(self, tmp_path):
        (tmp_path / "lib.my").write_text("shmy_from_lib = 3")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("eval -s lib.my; $shmy_from_lib")
        assert result.value == 3

    @pytest.mark.asyncio
    async def test_source_is_quiet(self, tmp_path):
        (tmp_path / "values.my").write_text("1 + 1")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("eval -s values.my")
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_grouped_flags(self, tmp_path):
        (tmp_path / "lib.my").write_text("shmy_grouped = 5")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("(eval -xs lib.my); $shmy_grouped")
        assert result.value == 5

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("eval -s nope.my")
        assert "nope.my: No such file or directory" in result.stderr
