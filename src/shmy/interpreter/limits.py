"""Process resource limits.

The limits are read from special variables when a pipeline starts and are
applied to each child process at spawn time with setrlimit, so the
operating system enforces them:
- $__limit_proc_count: maximum number of processes (RLIMIT_NPROC)
- $__limit_proc_memory: address space of each process, in bytes (RLIMIT_AS)
- $__limit_job_memory: address space of the whole pipeline, in bytes,
  divided evenly between its external processes
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from .scope import LIMIT_JOB_MEMORY, LIMIT_PROC_COUNT, LIMIT_PROC_MEMORY

if TYPE_CHECKING:
    from .scope import Scope

logger = logging.getLogger(__name__)

SUPPORTED = os.name == "posix"


@dataclass
class ResourceLimits:
    """Limits applied to the processes of one pipeline."""

    proc_count: Optional[int] = None
    proc_memory: Optional[int] = None
    job_memory: Optional[int] = None

    @classmethod
    def from_scope(cls, scope: "Scope") -> "ResourceLimits":
        def lookup(name: str) -> Optional[int]:
            value = scope.get(name)
            return value if isinstance(value, int) and not isinstance(value, bool) else None

        return cls(
            proc_count=lookup(LIMIT_PROC_COUNT),
            proc_memory=lookup(LIMIT_PROC_MEMORY),
            job_memory=lookup(LIMIT_JOB_MEMORY),
        )

    @property
    def is_set(self) -> bool:
        return any(v is not None for v in (self.proc_count, self.proc_memory, self.job_memory))

    def memory_per_process(self, process_count: int) -> Optional[int]:
        """Address space ceiling for one process of a pipeline with process_count processes."""
        ceilings = []
        if self.proc_memory is not None:
            ceilings.append(self.proc_memory)
        if self.job_memory is not None:
            ceilings.append(self.job_memory // max(process_count, 1))
        return min(ceilings) if ceilings else None

    def preexec_fn(self, process_count: int) -> Optional[Callable[[], None]]:
        """Build the function run in each child before exec, or None if no limit is set."""
        if not SUPPORTED or not self.is_set:
            return None

        import resource

        memory = self.memory_per_process(process_count)
        proc_count = self.proc_count
        logger.debug("limits: processes=%s memory=%s", proc_count, memory)

        def lower(kind: int, value: int) -> None:
            _, hard = resource.getrlimit(kind)
            if hard != resource.RLIM_INFINITY:
                value = min(value, hard)
            resource.setrlimit(kind, (value, value))

        def apply_limits() -> None:
            if proc_count is not None:
                lower(resource.RLIMIT_NPROC, proc_count)
            if memory is not None:
                lower(resource.RLIMIT_AS, memory)

        return apply_limits
