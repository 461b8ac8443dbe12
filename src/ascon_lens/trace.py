"""
Trace emitter: an optional observer that records every state transition.

A tracer is activated per context (thread or asyncio task) with
``begin_trace()`` and collected with ``end_trace()``. While none is active,
``emit()`` costs a single context variable lookup and records nothing.

A trace is secret material. Every snapshot holds the full 320-bit state, so
the initial snapshot contains the key and the rate words before each data
block are the keystream for that block. A decryption trace therefore reveals
the plaintext even when the tag check fails; only the data fragments
(``output_fragment``) withhold it.
"""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, Optional, Tuple, TypeVar

from ascon_lens.errors import AsconError
from ascon_lens.state import AsconState
from ascon_lens.state_snapshot import Phase, StateSnapshot, Substep

T = TypeVar("T")

type Trace = Tuple[StateSnapshot, ...]

_active_tracer: ContextVar[Optional["Tracer"]] = ContextVar("ascon_lens_tracer", default=None)


class Tracer:
    """Append-only recorder of state snapshots for one traced run."""

    def __init__(self) -> None:
        self._snapshots: list[StateSnapshot] = []
        self._token: Optional[Token] = None
        self._closed = False

    def record(
        self,
        state: AsconState,
        phase: Phase,
        substep: Substep,
        *,
        round_index: Optional[int] = None,
        block_index: Optional[int] = None,
        input_fragment: bytes = b"",
        output_fragment: bytes = b"",
    ) -> StateSnapshot:
        if self._closed:
            raise RuntimeError("Trace already ended")
        # Copy on append: the snapshot holds a tuple of ints and immutable bytes.
        snapshot = state.snapshot(
            len(self._snapshots) + 1,
            phase,
            substep,
            round_index=round_index,
            block_index=block_index,
            input_fragment=bytes(input_fragment),
            output_fragment=bytes(output_fragment),
        )
        self._snapshots.append(snapshot)
        return snapshot

    @property
    def snapshots(self) -> Trace:
        return tuple(self._snapshots)

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._snapshots)

    def __getitem__(self, index: int) -> StateSnapshot:
        return self._snapshots[index]

    def __iter__(self) -> Iterator[StateSnapshot]:
        return iter(self.snapshots)


@dataclass(frozen=True, slots=True)
class TracedResult(Generic[T]):
    """Outcome of a traced run: either a result or the cipher error that stopped it, plus the trace."""

    result: Optional[T]
    trace: Trace
    error: Optional[AsconError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def current_tracer() -> Optional[Tracer]:
    return _active_tracer.get()


def begin_trace() -> Tracer:
    """Start recording snapshots in the current context. Nested traces shadow outer ones."""
    tracer = Tracer()
    tracer._token = _active_tracer.set(tracer)
    return tracer


def end_trace(tracer: Tracer) -> Trace:
    """Stop recording and return the finished, immutable snapshot sequence."""
    if tracer._token is not None:
        _active_tracer.reset(tracer._token)
        tracer._token = None
    tracer._closed = True
    return tracer.snapshots


@contextmanager
def tracing() -> Iterator[Tracer]:
    tracer = begin_trace()
    try:
        yield tracer
    finally:
        end_trace(tracer)


def with_trace(run: Callable[..., T], *args: Any, **kwargs: Any) -> TracedResult[T]:
    """Call run(*args, **kwargs) with tracing enabled and return its result and trace.

    A cipher error (AsconError) is returned in ``error`` alongside the partial
    trace, so a rejected decryption can still be replayed. Any other exception
    propagates.
    """
    with tracing() as tracer:
        try:
            result = run(*args, **kwargs)
        except AsconError as e:
            return TracedResult(result=None, trace=tracer.snapshots, error=e)
    return TracedResult(result=result, trace=tracer.snapshots)


def emit(
    state: AsconState,
    phase: Phase,
    substep: Substep,
    **metadata,
) -> None:
    """Record a snapshot on the active tracer, if any."""
    tracer = _active_tracer.get()
    if tracer is not None:
        tracer.record(state, phase, substep, **metadata)
