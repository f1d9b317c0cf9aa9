"""Tests for hooks."""

import pytest
from shmy import Hooks, Shell, Status, script_hook


class TestHooks:
    """Test registering and running hooks."""

    def test_unknown_event(self):
        with pytest.raises(ValueError, match="Unknown hook event"):
            Hooks().register("on_exit", lambda ctx: None)

    @pytest.mark.asyncio
    async def test_change_dir(self, tmp_path):
        (tmp_path / "sub").mkdir()
        calls = []
        hooks = Hooks()
        hooks.register("change_dir", lambda ctx, path: calls.append((ctx.name, path)))
        shell = Shell(cwd=str(tmp_path), hooks=hooks)
        result = await shell.exec("cd sub")
        assert result.exit_code == 0
        assert calls == [("cd", str(tmp_path / "sub"))]

    @pytest.mark.asyncio
    async def test_async_handler(self, tmp_path):
        calls = []

        async def handler(ctx, path):
            calls.append(path)

        hooks = Hooks()
        hooks.register("change_dir", handler)
        shell = Shell(cwd=str(tmp_path), hooks=hooks)
        await shell.exec("cd ..")
        assert calls == [str(tmp_path.parent)]

    @pytest.mark.asyncio
    async def test_failing_handler_is_reported(self, tmp_path):
        def handler(ctx, path):
            raise RuntimeError("boom")

        hooks = Hooks()
        hooks.register("change_dir", handler)
        shell = Shell(cwd=str(tmp_path), hooks=hooks)
        result = await shell.exec("cd ..; echo still here")
        assert "change_dir hook: boom" in result.stderr
        assert result.stdout == "still here\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_failing_status_is_reported(self, tmp_path):
        hooks = Hooks()
        hooks.register("change_dir", lambda ctx, path: Status.failure("not a repository", "git"))
        shell = Shell(cwd=str(tmp_path), hooks=hooks)
        result = await shell.exec("cd ..")
        assert "change_dir hook: git: not a repository" in result.stderr

    @pytest.mark.asyncio
    async def test_start_eval_loop(self):
        calls = []
        hooks = Hooks()
        hooks.register("start_eval_loop", lambda ctx: calls.append(ctx.name))
        shell = Shell(hooks=hooks)
        await shell.start_eval_loop()
        assert calls == ["start_eval_loop"]


class TestScriptHook:
    """Test hooks written as shmy scripts."""

    @pytest.mark.asyncio
    async def test_script_receives_arguments(self, tmp_path):
        (tmp_path / "sub").mkdir()
        hook = tmp_path / "on_cd.my"
        hook.write_text("echo entered $1")
        hooks = Hooks()
        hooks.register("change_dir", script_hook(str(hook)))
        shell = Shell(cwd=str(tmp_path), hooks=hooks)
        result = await shell.exec("cd sub")
        assert result.stdout == f"entered {tmp_path / 'sub'}\n"

    @pytest.mark.asyncio
    async def test_script_sets_variables(self, tmp_path):
        hook = tmp_path / "branch.my"
        hook.write_text("GIT_BRANCH = main")
        hooks = Hooks()
        hooks.register("change_dir", script_hook(str(hook)))
        shell = Shell(cwd=str(tmp_path), hooks=hooks)
        result = await shell.exec("cd .; $GIT_BRANCH")
        assert result.value == "main"

    @pytest.mark.asyncio
    async def test_missing_script(self, tmp_path):
        hooks = Hooks()
        hooks.register("change_dir", script_hook(str(tmp_path / "missing.my")))
        shell = Shell(cwd=str(tmp_path), hooks=hooks)
        result = await shell.exec("cd .")
        assert "change_dir hook:" in result.stderr
        assert "No such file or directory" in result.stderr
