"""Scope chain: hierarchical variable bindings.

Each parenthesized block gets a child scope whose bindings disappear when
the block ends. Lookup walks the chain towards the root; the root scope is
a read/write-through cache over the host environment, which is also the
environment handed to child processes.

Reserved names have validators that run whenever they are bound.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, MutableMapping, Optional

from .errors import EvalError
from .types import Status, Value, format_value, infer_value

logger = logging.getLogger(__name__)

CASE_INSENSITIVE = os.name == "nt"

ERRORS = "__errors"
STDOUT = "__stdout"
STDERR = "__stderr"
PROMPT = "__prompt"
NO_COLOR = "NO_COLOR"
NO_CONFIRM = "NO_CONFIRM"
LIMIT_PROC_COUNT = "__limit_proc_count"
LIMIT_PROC_MEMORY = "__limit_proc_memory"
LIMIT_JOB_MEMORY = "__limit_job_memory"


def _positive_int(name: str) -> Callable[[Value], Value]:
    def validate(value: Value) -> Value:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise EvalError(f"${name} must be a positive integer, got: {format_value(value)}")
        return value

    return validate


def _stream_target(name: str) -> Callable[[Value], Value]:
    def validate(value: Value) -> Value:
        if isinstance(value, Status):
            raise EvalError(f"${name} expects a file name, NULL, or a stream name")
        return value

    return validate


def _check_errors(value: Value) -> Value:
    if isinstance(value, Status):
        value.checked = True
    return value


SPECIAL_VARIABLES: dict[str, Callable[[Value], Value]] = {
    ERRORS: _check_errors,
    STDOUT: _stream_target(STDOUT),
    STDERR: _stream_target(STDERR),
    LIMIT_PROC_COUNT: _positive_int(LIMIT_PROC_COUNT),
    LIMIT_PROC_MEMORY: _positive_int(LIMIT_PROC_MEMORY),
    LIMIT_JOB_MEMORY: _positive_int(LIMIT_JOB_MEMORY),
}

# Never written through to the host environment
PRIVATE_VARIABLES = frozenset({ERRORS, STDOUT, STDERR, PROMPT})


def fold(name: str) -> str:
    """Normalize a name for comparison."""
    return name.lower() if CASE_INSENSITIVE else name


VALIDATORS = {fold(name): validate for name, validate in SPECIAL_VARIABLES.items()}

RESERVED_NAMES = frozenset(fold(name) for name in (*SPECIAL_VARIABLES, *PRIVATE_VARIABLES))


def is_special(name: str) -> bool:
    return fold(name) in RESERVED_NAMES


class Scope:
    """A frame of name -> value bindings with a parent link."""

    def __init__(
        self,
        parent: Optional["Scope"] = None,
        env: Optional[MutableMapping[str, str]] = None,
    ):
        self.parent = parent
        self.env = env if parent is None else None
        # folded name -> (display name, value)
        self.vars: dict[str, tuple[str, Value]] = {}

    @classmethod
    def root(cls, env: Optional[MutableMapping[str, str]] = None) -> "Scope":
        """Create a root scope over a host environment (a copy of os.environ by default)."""
        return cls(None, dict(os.environ) if env is None else env)

    def new_child(self) -> "Scope":
        return Scope(self)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def global_scope(self) -> "Scope":
        """Return the root of the chain."""
        scope = self
        while scope.parent is not None:
            scope = scope.parent
        return scope

    def _env_key(self, name: str) -> Optional[str]:
        if self.env is None:
            return None
        if name in self.env:
            return name
        if CASE_INSENSITIVE:
            wanted = fold(name)
            for key in self.env:
                if fold(key) == wanted:
                    return key
        return None

    def has_local(self, name: str) -> bool:
        return fold(name) in self.vars or self._env_key(name) is not None

    def lookup(self, name: str) -> Optional["Scope"]:
        """Find the scope that binds name, walking towards the root."""
        scope: Optional[Scope] = self
        while scope is not None:
            if scope.has_local(name):
                return scope
            scope = scope.parent
        return None

    def get(self, name: str) -> Optional[Value]:
        """Get the value bound to name, or None if undefined."""
        scope = self.lookup(name)
        if scope is None:
            return None
        entry = scope.vars.get(fold(name))
        if entry is not None:
            return entry[1]
        key = scope._env_key(name)
        assert scope.env is not None and key is not None
        return infer_value(scope.env[key])

    def define(self, name: str, value: Value) -> None:
        """Bind name in this scope."""
        validate = VALIDATORS.get(fold(name))
        if validate is not None:
            value = validate(value)

        self.vars[fold(name)] = (name, value)
        if self.env is not None and not isinstance(value, Status) and not is_special(name):
            key = self._env_key(name) or name
            self.env[key] = format_value(value)
        logger.debug("define %s in %s scope", name, "global" if self.is_root else "local")

    def assign(self, name: str, value: Value) -> None:
        """Rebind an existing variable in the scope that defines it."""
        scope = self.lookup(name)
        if scope is None:
            raise EvalError(f"Variable not found: ${name}")
        display = scope.vars.get(fold(name), (name, None))[0]
        scope.define(display, value)

    def erase(self, name: str) -> Optional[Value]:
        """Remove the nearest binding of name and return its value."""
        scope = self.lookup(name)
        if scope is None:
            return None
        value = self.get(name)
        scope.vars.pop(fold(name), None)
        key = scope._env_key(name)
        if key is not None and scope.env is not None:
            del scope.env[key]
        return value

    def names(self) -> list[str]:
        """All visible variable names (display case), sorted."""
        seen: dict[str, str] = {}
        scope: Optional[Scope] = self
        while scope is not None:
            for folded, (display, _) in scope.vars.items():
                seen.setdefault(folded, display)
            if scope.env is not None:
                for key in scope.env:
                    seen.setdefault(fold(key), key)
            scope = scope.parent
        return sorted(seen.values())

    def names_starting_with(self, prefix: str) -> list[str]:
        """Visible variable names that start with prefix."""
        wanted = fold(prefix)
        return [name for name in self.names() if fold(name).startswith(wanted)]

    def environ(self) -> dict[str, str]:
        """The environment for child processes: the root's bindings."""
        root = self.global_scope()
        assert root.env is not None
        return {key: str(value) for key, value in root.env.items()}


def define_arguments(scope: Scope, name: str, args: list[str]) -> None:
    """Bind script arguments: $0 (the script), $1.., $# (count) and $@ (all, space-joined)."""
    scope.define("0", name)
    for n, arg in enumerate(args, start=1):
        scope.define(str(n), arg)
    scope.define("#", len(args))
    scope.define("@", " ".join([name, *args]))
