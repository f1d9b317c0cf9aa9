"""Tests for `=>` and `=>>` redirects."""

import pytest
from shmy import Shell


class TestRedirect:
    """Test writing output to files."""

    @pytest.mark.asyncio
    async def test_command_output(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo hello => out.txt")
        assert result.stdout == ""
        assert result.exit_code == 0
        assert (tmp_path / "out.txt").read_text() == "hello\n"

    @pytest.mark.asyncio
    async def test_append(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("echo a => log.txt; echo b =>> log.txt")
        assert (tmp_path / "log.txt").read_text() == "a\nb\n"

    @pytest.mark.asyncio
    async def test_expression_value(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("5 + 1 => n.txt")
        assert result.value == 6
        assert (tmp_path / "n.txt").read_text() == "6\n"

    @pytest.mark.asyncio
    async def test_pipeline(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("echo abc | cat => out.txt")
        assert (tmp_path / "out.txt").read_text() == "abc\n"

    @pytest.mark.asyncio
    async def test_block(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("(echo a; echo b) => out.txt")
        assert (tmp_path / "out.txt").read_text() == "a\nb\n"

    @pytest.mark.asyncio
    async def test_variable_target(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("f = out.txt; echo hi => $f")
        assert (tmp_path / "out.txt").read_text() == "hi\n"

    @pytest.mark.asyncio
    async def test_ambiguous_target(self, tmp_path):
        (tmp_path / "a.txt").write_text("")
        (tmp_path / "b.txt").write_text("")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo x =>> *.txt")
        assert result.exit_code == 1
        assert "Ambiguous redirect target" in result.stderr

    @pytest.mark.asyncio
    async def test_unopenable_target(self, tmp_path):
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo x => missing/out.txt")
        assert result.exit_code == 1
        assert "missing/out.txt: No such file or directory" in result.stderr


class TestOverwriteConfirmation:
    """Test confirmation before truncating an existing file."""

    @pytest.mark.asyncio
    async def test_declined_without_callback(self, tmp_path):
        (tmp_path / "out.txt").write_text("keep\n")
        shell = Shell(cwd=str(tmp_path))
        result = await shell.exec("echo new => out.txt")
        assert result.exit_code == 1
        assert "Cancelled by user" in result.stderr
        assert (tmp_path / "out.txt").read_text() == "keep\n"

    @pytest.mark.asyncio
    async def test_confirmed(self, tmp_path):
        (tmp_path / "out.txt").write_text("old\n")
        prompts = []

        def confirm(prompt):
            prompts.append(prompt)
            return True

        shell = Shell(cwd=str(tmp_path), confirm=confirm)
        await shell.exec("echo new => out.txt")
        assert prompts == ["out.txt exists, overwrite?"]
        assert (tmp_path / "out.txt").read_text() == "new\n"

    @pytest.mark.asyncio
    async def test_declined(self, tmp_path):
        (tmp_path / "out.txt").write_text("old\n")
        shell = Shell(cwd=str(tmp_path), confirm=lambda prompt: False)
        result = await shell.exec("if (echo new => out.txt) (done) else (kept)")
        assert result.value == "kept"
        assert (tmp_path / "out.txt").read_text() == "old\n"

    @pytest.mark.asyncio
    async def test_no_confirm_variable(self, tmp_path):
        (tmp_path / "out.txt").write_text("old\n")
        shell = Shell(cwd=str(tmp_path), env={"NO_CONFIRM": "1"})
        await shell.exec("echo new => out.txt")
        assert (tmp_path / "out.txt").read_text() == "new\n"

    @pytest.mark.asyncio
    async def test_append_needs_no_confirmation(self, tmp_path):
        (tmp_path / "out.txt").write_text("old\n")
        shell = Shell(cwd=str(tmp_path))
        await shell.exec("echo new =>> out.txt")
        assert (tmp_path / "out.txt").read_text() == "old\nnew\n"

    @pytest.mark.asyncio
    async def test_declined_command_keeps_target(self, tmp_path):
        (tmp_path / "out.txt").write_text("precious\n")
        (tmp_path / "victim").write_text("")
        prompts = []

        def confirm(prompt):
            prompts.append(prompt)
            return prompt.endswith("overwrite?")

        shell = Shell(cwd=str(tmp_path), confirm=confirm)
        result = await shell.exec("rm victim => out.txt")
        assert prompts == ["out.txt exists, overwrite?", "rm victim: are you sure?"]
        assert result.exit_code == 1
        assert (tmp_path / "victim").exists()
        assert (tmp_path / "out.txt").read_text() == "precious\n"

    @pytest.mark.asyncio
    async def test_confirmed_command_truncates_target(self, tmp_path):
        (tmp_path / "out.txt").write_text("old\n")
        (tmp_path / "victim").write_text("")
        shell = Shell(cwd=str(tmp_path), confirm=lambda prompt: True)
        result = await shell.exec("rm victim => out.txt")
        assert result.exit_code == 0
        assert not (tmp_path / "victim").exists()
        assert (tmp_path / "out.txt").read_text() == ""
