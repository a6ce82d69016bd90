"""
Compiler invocation interception.

Every rustc invocation made by a build is turned into a CompilerInvocation
and handed to an InvocationHook. The recording hook accumulates source roots
and output directories in an InterceptorContext, which is shared between
worker threads through an ownership-tracked ContextHandle.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from crate_safety_audit.errors import ContextLockAbandonedError, ContextOwnershipError

logger = logging.getLogger(__name__)


class CompilerInvocation(BaseModel):
    """A single rustc invocation observed during the build."""

    cwd: Path = Field(description="Working directory of the invocation")
    source_roots: list[Path] = Field(
        default_factory=list,
        description="Canonical .rs files passed on the command line",
    )
    out_dir: Optional[Path] = Field(
        default=None,
        description="Value of --out-dir, if any",
    )
    crate_name: Optional[str] = Field(default=None, description="Value of --crate-name")
    crate_types: list[str] = Field(default_factory=list, description="Values of --crate-type")
    is_test: bool = Field(default=False, description="Whether --test was passed")

    class Config:
        frozen = True

    @property
    def is_probe(self) -> bool:
        """Invocations such as ``rustc -vV`` that compile nothing."""
        return not self.source_roots and self.out_dir is None

    @classmethod
    def from_rustc_args(
        cls,
        args: Sequence[str],
        cwd: Path,
    ) -> "CompilerInvocation":
        """
        Build an invocation record from rustc's command line.

        Args:
            args: Arguments passed to rustc (without the rustc path itself).
            cwd: Working directory of the invocation.

        Returns:
            CompilerInvocation for the command line.
        """
        source_roots: list[Path] = []
        out_dir: Optional[Path] = None
        crate_name: Optional[str] = None
        crate_types: list[str] = []
        is_test = False

        def option_value(index: int, arg: str, name: str) -> tuple[Optional[str], int]:
            if arg == name:
                if index + 1 < len(args):
                    return args[index + 1], index + 2
                return None, index + 1
            return arg[len(name) + 1:], index + 1

        i = 0
        while i < len(args):
            arg = args[i]
            if arg == "--out-dir" or arg.startswith("--out-dir="):
                value, i = option_value(i, arg, "--out-dir")
                if value:
                    out_dir = _absolute(Path(value), cwd)
                continue
            if arg == "--crate-name" or arg.startswith("--crate-name="):
                crate_name, i = option_value(i, arg, "--crate-name")
                continue
            if arg == "--crate-type" or arg.startswith("--crate-type="):
                value, i = option_value(i, arg, "--crate-type")
                if value:
                    crate_types.extend(t for t in value.split(",") if t)
                continue
            if arg == "--test":
                is_test = True
            elif not arg.startswith("-") and arg.endswith(".rs"):
                source_roots.append(_canonical(Path(arg), cwd))
            i += 1

        return cls(
            cwd=cwd,
            source_roots=source_roots,
            out_dir=out_dir,
            crate_name=crate_name,
            crate_types=crate_types,
            is_test=is_test,
        )


def _absolute(path: Path, cwd: Path) -> Path:
    return path if path.is_absolute() else cwd / path


def _canonical(path: Path, cwd: Path) -> Path:
    return _absolute(path, cwd).resolve()


class InterceptorContext:
    """Source roots and output directories collected during one build."""

    def __init__(self) -> None:
        self.rs_file_args: set[Path] = set()
        self.out_dir_args: set[Path] = set()
        self.invocation_count = 0

    def record(self, invocation: CompilerInvocation) -> None:
        """Record one compiler invocation."""
        self.invocation_count += 1
        self.rs_file_args.update(invocation.source_roots)
        if invocation.out_dir is not None:
            self.out_dir_args.add(invocation.out_dir)


class _SharedCell:
    """Context, lock and owner count shared by all handles."""

    def __init__(self, context: InterceptorContext) -> None:
        self.context: Optional[InterceptorContext] = context
        self.lock = threading.Lock()
        self.owners_lock = threading.Lock()
        self.owners = 0
        self.poisoned_by: Optional[BaseException] = None


class ContextHandle:
    """
    Ownership-tracked handle to a shared InterceptorContext.

    Each handle counts as one owner until released. The context can only
    be drained through into_inner() once every other handle has been
    released. An exception raised while the lock is held poisons the
    context, after which it can no longer be locked or drained.
    """

    def __init__(self, context: Optional[InterceptorContext] = None) -> None:
        self._cell = _SharedCell(context or InterceptorContext())
        self._register()

    @classmethod
    def _from_cell(cls, cell: _SharedCell) -> "ContextHandle":
        handle = cls.__new__(cls)
        handle._cell = cell
        handle._register()
        return handle

    def _register(self) -> None:
        with self._cell.owners_lock:
            self._cell.owners += 1
        self._released = False

    @property
    def owner_count(self) -> int:
        """Number of live handles sharing the context."""
        with self._cell.owners_lock:
            return self._cell.owners

    @property
    def is_poisoned(self) -> bool:
        """Whether an exception was raised while the lock was held."""
        return self._cell.poisoned_by is not None

    def clone(self) -> "ContextHandle":
        """Create another owner of the same context."""
        if self._released:
            raise ContextOwnershipError("Cannot clone a released context handle")
        return ContextHandle._from_cell(self._cell)

    def release(self) -> None:
        """Give up this handle's ownership. Releasing twice is a no-op."""
        if self._released:
            return
        with self._cell.owners_lock:
            self._cell.owners -= 1
        self._released = True

    def __enter__(self) -> "ContextHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def _check_poison(self) -> None:
        if self._cell.poisoned_by is not None:
            raise ContextLockAbandonedError(
                f"Interceptor context lock was abandoned: {self._cell.poisoned_by!r}"
            )

    @contextmanager
    def lock(self) -> Iterator[InterceptorContext]:
        """
        Lock the context for mutation.

        Raises:
            ContextOwnershipError: If this handle was released or the context drained.
            ContextLockAbandonedError: If the context was poisoned.
        """
        if self._released:
            raise ContextOwnershipError("Cannot lock through a released context handle")
        with self._cell.lock:
            self._check_poison()
            if self._cell.context is None:
                raise ContextOwnershipError("Interceptor context was already drained")
            try:
                yield self._cell.context
            except BaseException as e:
                self._cell.poisoned_by = e
                raise

    def into_inner(self) -> InterceptorContext:
        """
        Drain the context. This handle must be its only owner.

        Returns:
            The accumulated InterceptorContext.

        Raises:
            ContextOwnershipError: If other handles are still live, or the
                context was already drained.
            ContextLockAbandonedError: If the context was poisoned.
        """
        if self._released:
            raise ContextOwnershipError("Cannot drain through a released context handle")
        with self._cell.owners_lock:
            owners = self._cell.owners
        if owners != 1:
            raise ContextOwnershipError(
                f"Interceptor context still has {owners} owners; expected exactly one"
            )
        with self._cell.lock:
            self._check_poison()
            context = self._cell.context
            if context is None:
                raise ContextOwnershipError("Interceptor context was already drained")
            self._cell.context = None
        self.release()
        return context


class InvocationHook(Protocol):
    """Callback notified of every compiler invocation."""

    def on_invocation(self, invocation: CompilerInvocation) -> None:
        ...


class InvocationRecorder:
    """InvocationHook that records invocations into a shared context."""

    def __init__(self, handle: ContextHandle) -> None:
        self.handle = handle

    def on_invocation(self, invocation: CompilerInvocation) -> None:
        logger.debug(
            "rustc %s [%s%s]: %d source root(s), out-dir %s",
            invocation.crate_name or "?",
            ",".join(invocation.crate_types),
            " test" if invocation.is_test else "",
            len(invocation.source_roots),
            invocation.out_dir,
        )
        with self.handle.lock() as context:
            context.record(invocation)
