"""Tests for the command-line entry point."""

import pytest
from shmy import __version__
from shmy import Shell
from shmy.cli import ReadlineCompletion, main
from shmy.completion import Completer


class TestMain:
    """Test running commands and scripts."""

    def test_command(self, capfd):
        assert main(["-c", "echo", "hi"]) == 0
        assert capfd.readouterr().out == "hi\n"

    def test_command_error(self, capfd):
        assert main(["-c", "x", "*", "y"]) == 1
        assert "Cannot multiply strings" in capfd.readouterr().err

    def test_syntax_error(self, capfd):
        assert main(["-c", "else"]) == 2
        assert "ELSE without IF" in capfd.readouterr().err

    def test_exit_code(self):
        assert main(["-c", "exit", "5"]) == 5

    def test_script(self, tmp_path, capfd):
        script = tmp_path / "hello.my"
        script.write_text('echo hello $1 "$#"\n')
        assert main([str(script), "world"]) == 0
        assert capfd.readouterr().out == "hello world 1\n"

    def test_missing_script(self, tmp_path, capfd):
        assert main([str(tmp_path / "missing.my")]) == 2
        assert "missing.my" in capfd.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert __version__ in capsys.readouterr().out


class FakeReadline:
    """Records what the completion adapter asks of readline."""

    def __init__(self, line, history=()):
        self.line = line
        self.entries = list(history)
        self.delims = None
        self.completer = None
        self.bindings = []

    def get_line_buffer(self):
        return self.line

    def get_endidx(self):
        return len(self.line)

    def get_current_history_length(self):
        return len(self.entries)

    def get_history_item(self, index):
        return self.entries[index - 1]

    def set_completer_delims(self, delims):
        self.delims = delims

    def set_completer(self, completer):
        self.completer = completer

    def parse_and_bind(self, binding):
        self.bindings.append(binding)


def collect(complete):
    matches = []
    while True:
        match = complete("", len(matches))
        if match is None:
            return matches
        matches.append(match)


class TestReadlineCompletion:
    """Test the readline adapter used by the interactive loop."""

    def test_install(self):
        backend = FakeReadline("")
        adapter = ReadlineCompletion(Completer(Shell().scope), backend)
        adapter.install()
        assert backend.delims == ""
        assert backend.completer == adapter.complete
        assert backend.bindings == ["tab: complete"]

    def test_history_expansion(self):
        backend = FakeReadline("!ec", ["echo one", "cd /tmp", "echo two"])
        adapter = ReadlineCompletion(Completer(Shell().scope), backend)
        assert collect(adapter.complete) == ["echo two", "echo one"]

    def test_command_names(self, tmp_path):
        backend = FakeReadline("pw")
        completer = Completer(Shell().scope, ["pwd", "echo"], cwd=lambda: str(tmp_path))
        adapter = ReadlineCompletion(completer, backend)
        assert collect(adapter.complete) == ["pwd "]

    def test_no_match(self):
        backend = FakeReadline("!zz", ["echo one"])
        adapter = ReadlineCompletion(Completer(Shell().scope), backend)
        assert adapter.complete("", 0) is None
