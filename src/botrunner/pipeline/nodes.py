"""Pipeline nodes and the continuation protocol.

A middleware is ``async def mw(ctx, next)``. Awaiting ``next()`` runs
the rest of the pipeline; returning without calling it ends the
pipeline for this update. ``next`` may be called at most once per
invocation.

Composed pipelines are trees of the node types below. Nodes are frozen
once built; :func:`run_node` evaluates any of them.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Tuple, Union

from ..errors import ContinuationError, PipelineError

if TYPE_CHECKING:
    from ..context import Context

NextFn = Callable[[], Awaitable[None]]
MiddlewareFn = Callable[["Context", NextFn], Any]
Predicate = Callable[["Context"], Any]
ErrorHandler = Callable[[PipelineError, NextFn], Any]


async def leaf() -> None:
    """Terminal continuation; lets the last unit call ``next`` safely."""
    return None


@dataclass(frozen=True)
class Leaf:
    """A single middleware function."""

    fn: MiddlewareFn


@dataclass(frozen=True)
class Sequence:
    """Children run in order, each one's ``next`` starting the following."""

    children: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class Branch:
    """Picks one of two subtrees per update."""

    predicate: Predicate
    if_true: "Node"
    if_false: "Node"


@dataclass(frozen=True)
class Fork:
    """Runs a subtree concurrently with the rest of the pipeline."""

    child: "Node"


@dataclass(frozen=True)
class Lazy:
    """Builds the middleware to run from the context, per update."""

    factory: Callable[["Context"], Any]


@dataclass(frozen=True)
class ErrorBoundary:
    """Catches errors raised by a subtree and hands them to a handler."""

    handler: ErrorHandler
    child: "Node"


Node = Union[Leaf, Sequence, Branch, Fork, Lazy, ErrorBoundary]

PASS = Sequence()


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def flatten(middleware: Any) -> Node:
    """Turn anything accepted as middleware into a node.

    Nodes pass through. Lists and tuples become a sequence. Callables,
    including composers, become leaves; a composer is looked up again at
    every dispatch, so units registered on it later still run.
    """
    if isinstance(middleware, (Leaf, Sequence, Branch, Fork, Lazy, ErrorBoundary)):
        return middleware
    if isinstance(middleware, (list, tuple)):
        return sequence(*middleware)
    if callable(middleware):
        return Leaf(middleware)
    raise TypeError(f"Not a middleware: {middleware!r}")


def sequence(*middleware: Any) -> Node:
    """Compose middleware in order. No middleware gives a pass-through."""
    nodes = tuple(flatten(mw) for mw in middleware)
    if len(nodes) == 1:
        return nodes[0]
    return Sequence(nodes)


def once(fn: NextFn) -> NextFn:
    """Guard a continuation so a second call fails loudly."""
    called = False

    async def guarded() -> None:
        nonlocal called
        if called:
            raise ContinuationError("`next` already called before!")
        called = True
        await fn()

    return guarded


async def run_node(node: Node, ctx: "Context", next_: NextFn) -> None:
    """Evaluate ``node`` for one update, continuing with ``next_``."""
    if isinstance(node, Leaf):
        await maybe_await(node.fn(ctx, next_))
    elif isinstance(node, Sequence):
        await _run_sequence(node.children, 0, ctx, next_)
    elif isinstance(node, Branch):
        chosen = node.if_true if await maybe_await(node.predicate(ctx)) else node.if_false
        await run_node(chosen, ctx, next_)
    elif isinstance(node, Fork):
        await _run_fork(node, ctx, next_)
    elif isinstance(node, Lazy):
        produced = await maybe_await(node.factory(ctx))
        items: List[Any] = list(produced) if isinstance(produced, (list, tuple)) else [produced]
        await run_node(sequence(*items), ctx, next_)
    elif isinstance(node, ErrorBoundary):
        await _run_error_boundary(node, ctx, next_)
    else:
        raise TypeError(f"Unknown pipeline node: {node!r}")


async def run(middleware: Any, ctx: "Context") -> None:
    """Run middleware for ``ctx`` with the terminal continuation."""
    await run_node(flatten(middleware), ctx, once(leaf))


async def _run_sequence(children: Tuple[Node, ...], index: int, ctx: "Context", next_: NextFn) -> None:
    if index == len(children):
        await next_()
        return

    async def rest() -> None:
        await _run_sequence(children, index + 1, ctx, next_)

    await run_node(children[index], ctx, once(rest))


async def _run_fork(node: Fork, ctx: "Context", next_: NextFn) -> None:
    tasks = [
        asyncio.ensure_future(next_()),
        asyncio.ensure_future(run_node(node.child, ctx, once(leaf))),
    ]
    errors: List[BaseException] = []
    try:
        # Both sides run to completion; a protocol violation outranks any
        # other failure, otherwise the first failure to surface wins
        for finished in asyncio.as_completed(tasks):
            try:
                await finished
            except Exception as e:
                errors.append(e)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise
    for error in errors:
        if isinstance(error, ContinuationError):
            raise error
    if errors:
        raise errors[0]


async def _run_error_boundary(node: ErrorBoundary, ctx: "Context", next_: NextFn) -> None:
    next_called = False

    async def cont() -> None:
        nonlocal next_called
        next_called = True

    try:
        await run_node(node.child, ctx, once(cont))
    except ContinuationError:
        raise
    except Exception as e:
        next_called = False
        error = e if isinstance(e, PipelineError) else PipelineError(e, ctx)
        await maybe_await(node.handler(error, once(cont)))

    if next_called:
        await next_()
