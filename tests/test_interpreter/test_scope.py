"""Tests for the scope chain."""

import pytest
from shmy import Shell, Status
from shmy.interpreter.errors import EvalError
from shmy.interpreter.scope import Scope, define_arguments


class TestScope:
    """Test definition, lookup and erasure."""

    def test_define_and_get(self):
        scope = Scope.root({})
        scope.define("x", 5)
        assert scope.get("x") == 5
        assert scope.get("y") is None

    def test_child_sees_parent(self):
        root = Scope.root({})
        root.define("x", 1)
        child = root.new_child()
        assert child.get("x") == 1
        assert child.lookup("x") is root

    def test_child_shadows_parent(self):
        root = Scope.root({})
        root.define("x", 1)
        child = root.new_child()
        child.define("x", 2)
        assert child.get("x") == 2
        assert root.get("x") == 1

    def test_assign_updates_defining_scope(self):
        root = Scope.root({})
        root.define("x", 1)
        child = root.new_child()
        child.assign("x", 2)
        assert root.get("x") == 2
        assert not child.has_local("x")

    def test_assign_undefined(self):
        with pytest.raises(EvalError, match="Variable not found: \\$x"):
            Scope.root({}).assign("x", 1)

    def test_erase(self):
        root = Scope.root({})
        root.define("x", 1)
        assert root.erase("x") == 1
        assert root.get("x") is None
        assert root.erase("x") is None

    def test_global_scope(self):
        root = Scope.root({})
        assert root.new_child().new_child().global_scope() is root

    def test_names(self):
        root = Scope.root({"PATH": "/bin"})
        root.define("abc", 1)
        child = root.new_child()
        child.define("abd", 2)
        assert child.names() == ["PATH", "abc", "abd"]
        assert child.names_starting_with("ab") == ["abc", "abd"]


class TestEnvironment:
    """Test the root scope's environment cache."""

    def test_env_values_are_inferred(self):
        root = Scope.root({"N": "42", "S": "hello"})
        assert root.get("N") == 42
        assert root.get("S") == "hello"

    def test_globals_are_written_through(self):
        env = {}
        root = Scope.root(env)
        root.define("x", 2.5)
        assert env["x"] == "2.5"

    def test_locals_stay_private(self):
        env = {}
        root = Scope.root(env)
        root.new_child().define("x", 1)
        assert "x" not in env

    def test_reserved_names_stay_private(self):
        env = {}
        root = Scope.root(env)
        root.define("__errors", "oops")
        root.define("__stdout", "NULL")
        assert env == {}

    def test_erase_removes_from_env(self):
        env = {"X": "1"}
        root = Scope.root(env)
        root.erase("X")
        assert "X" not in env

    def test_environ(self):
        root = Scope.root({"A": "1"})
        root.define("b", 2)
        assert root.new_child().environ() == {"A": "1", "b": "2"}


class TestSpecialVariables:
    """Test validation of reserved variables."""

    def test_limit_must_be_positive_integer(self):
        scope = Scope.root({})
        scope.define("__limit_proc_count", 10)
        with pytest.raises(EvalError, match="must be a positive integer"):
            scope.define("__limit_proc_count", 0)
        with pytest.raises(EvalError, match="must be a positive integer"):
            scope.define("__limit_job_memory", "lots")

    def test_stream_target_rejects_status(self):
        scope = Scope.root({})
        with pytest.raises(EvalError, match="expects a file name"):
            scope.define("__stdout", Status.success())

    def test_errors_marks_status_checked(self):
        scope = Scope.root({})
        status = Status.failure("bad")
        scope.define("__errors", status)
        assert status.checked

    @pytest.mark.asyncio
    async def test_validation_in_scripts(self):
        shell = Shell()
        result = await shell.exec("__limit_proc_memory = -1")
        assert result.exit_code == 1
        assert "must be a positive integer" in result.stderr


class TestArguments:
    """Test script argument binding."""

    def test_define_arguments(self):
        scope = Scope.root({})
        define_arguments(scope, "script.my", ["a", "2"])
        assert scope.get("0") == "script.my"
        assert scope.get("1") == "a"
        assert scope.get("2") == "2"
        assert scope.get("#") == 2
        assert scope.get("@") == "script.my a 2"

    @pytest.mark.asyncio
    async def test_arguments_in_scripts(self):
        shell = Shell()
        shell.set_arguments("test.my", ["x", "y"])
        result = await shell.exec('echo $0 $1 $2 "$#" $@')
        assert result.stdout == "test.my x y 2 test.my x y\n"
