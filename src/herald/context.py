"""Per-execution-context tag stack and context store.

Both live in contextvars and only ever hold immutable values: the stack is
a tuple of frames, the store is replaced with a fresh dict on every write.
That gives each thread its own empty state, and each asyncio task a
snapshot of its parent taken at creation time whose later writes never
leak back.

Tags are short-lived and scoped to a block:

    with tagged("graphql", section="admin"):
        notify("user.signup", {"id": 7})   # tags == {"graphql": True, "section": "admin"}

Context is longer-lived and merged explicitly:

    set_context(request_id="r1")
    set_context(user_id=7)                 # {"request_id": "r1", "user_id": 7}
    reset_context()                        # called by the request/job boundary
"""

from __future__ import annotations

import contextvars
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from herald.errors import ContextError

T = TypeVar("T")

_Frame = Mapping[str, Any]

_tag_stack: contextvars.ContextVar[tuple[_Frame, ...]] = contextvars.ContextVar(
    "herald_tag_stack", default=()
)
_context_store: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar(
    "herald_context_store", default={}
)


@dataclass(frozen=True)
class FrameHandle:
    """Returned by push_tags(); identifies the frame for pop_tags()."""

    depth: int
    frame: _Frame = field(repr=False)
    _token: contextvars.Token = field(repr=False, compare=False)


def normalize_tags(*tags: str | Mapping[str, Any], **kwtags: Any) -> dict[str, Any]:
    """Flatten positional and keyword tags into one frame.

    Strings become boolean flags, mappings are merged in order, keyword
    tags are merged last.
    """
    frame: dict[str, Any] = {}
    for tag in tags:
        if isinstance(tag, str):
            frame[tag] = True
        elif isinstance(tag, Mapping):
            for key, value in tag.items():
                if not isinstance(key, str):
                    raise TypeError(f"Tag keys must be strings, got {key!r}")
                frame[key] = value
        else:
            raise TypeError(f"Tags must be strings or mappings, got {type(tag).__name__}")
    frame.update(kwtags)
    return frame


# ---------------------------------------------------------------------------
# Tag stack
# ---------------------------------------------------------------------------


def push_tags(tags: Mapping[str, Any]) -> FrameHandle:
    frame = dict(tags)
    stack = _tag_stack.get()
    token = _tag_stack.set((*stack, frame))
    return FrameHandle(depth=len(stack) + 1, frame=frame, _token=token)


def pop_tags(handle: FrameHandle) -> None:
    """Pop the innermost frame. Popping any other frame is a usage error."""
    stack = _tag_stack.get()
    if len(stack) != handle.depth or stack[-1] is not handle.frame:
        raise ContextError(
            f"Tag frame at depth {handle.depth} is not the innermost frame "
            f"(current depth {len(stack)})"
        )
    try:
        _tag_stack.reset(handle._token)
    except ValueError:
        # Token came from a copied context (e.g. a task); drop the frame directly
        _tag_stack.set(stack[:-1])


def current_tags() -> dict[str, Any]:
    """Merge active frames outer-to-inner; inner frames win on collision."""
    merged: dict[str, Any] = {}
    for frame in _tag_stack.get():
        merged.update(frame)
    return merged


@contextmanager
def tagged(*tags: str | Mapping[str, Any], **kwtags: Any) -> Iterator[dict[str, Any]]:
    """Push a tag frame for the duration of the block."""
    handle = push_tags(normalize_tags(*tags, **kwtags))
    try:
        yield current_tags()
    finally:
        pop_tags(handle)


# ---------------------------------------------------------------------------
# Context store
# ---------------------------------------------------------------------------


def set_context(values: Mapping[str, Any] | None = None, **kw: Any) -> None:
    """Shallow-merge into the store, last write wins per key."""
    merged = dict(_context_store.get())
    if values:
        merged.update(values)
    merged.update(kw)
    _context_store.set(merged)


def current_context() -> dict[str, Any]:
    return dict(_context_store.get())


def reset_context() -> None:
    _context_store.set({})


@contextmanager
def with_context(values: Mapping[str, Any] | None = None, **kw: Any) -> Iterator[dict[str, Any]]:
    """Merge into the store for the block, then restore the previous store."""
    merged = dict(_context_store.get())
    if values:
        merged.update(values)
    merged.update(kw)
    token = _context_store.set(merged)
    try:
        yield dict(merged)
    finally:
        try:
            _context_store.reset(token)
        except ValueError:
            pass  # block exited in a different context; nothing of ours to restore


# ---------------------------------------------------------------------------
# Explicit propagation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContextSnapshot:
    """Tags and context captured in one execution context for use in another.

    Propagation is opt-in: hand the snapshot to the child and call run().

        snap = capture()
        pool.submit(snap.run, work, item)
    """

    frames: tuple[_Frame, ...]
    store: Mapping[str, Any]

    @property
    def tags(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for frame in self.frames:
            merged.update(frame)
        return merged

    @property
    def context(self) -> dict[str, Any]:
        return dict(self.store)

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run fn with this snapshot installed, in a fresh copy of the current context."""
        def _installed() -> T:
            _tag_stack.set(self.frames)
            _context_store.set(dict(self.store))
            return fn(*args, **kwargs)

        return contextvars.copy_context().run(_installed)


def capture() -> ContextSnapshot:
    return ContextSnapshot(frames=_tag_stack.get(), store=dict(_context_store.get()))


def clear() -> None:
    """Drop all tags and context in the current execution context (tests)."""
    _tag_stack.set(())
    _context_store.set({})
