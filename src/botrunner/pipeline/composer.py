"""Composition engine: builds middleware pipelines."""

from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Optional, Union

from .nodes import (
    PASS,
    Branch,
    ErrorBoundary,
    ErrorHandler,
    Fork,
    Lazy,
    Leaf,
    NextFn,
    Node,
    Predicate,
    Sequence,
    flatten,
    maybe_await,
    run_node,
    sequence,
)

if TYPE_CHECKING:
    from ..context import Context


class Composer:
    """A mutable handle on a middleware pipeline.

    Every combinator appends to the end of this composer's pipeline and
    returns a new composer scoped to what was just added, so calls can be
    chained::

        bot = Bot(client)
        bot.filter(is_private).register(greet)
        bot.on("callback_query").error_boundary(on_error, answer_query)

    The tree built from nodes is immutable. Only :meth:`register` replaces
    this composer's root, and it is meant for setup, not for use while
    updates are being handled.

    A composer is itself a middleware and can be mounted on another one.
    """

    def __init__(self, *middleware: Any) -> None:
        self._node: Node = sequence(*middleware) if middleware else PASS

    def middleware(self) -> Node:
        """Current root node of this pipeline."""
        return self._node

    async def __call__(self, ctx: "Context", next_: NextFn) -> None:
        await run_node(self._node, ctx, next_)

    def register(self, *middleware: Any) -> "Composer":
        """Append middleware; returns a composer for the appended part."""
        composer = Composer(*middleware)
        if isinstance(self._node, Sequence):
            self._node = Sequence(self._node.children + (Leaf(composer),))
        else:
            self._node = Sequence((self._node, Leaf(composer)))
        return composer

    def on(self, update_types: Union[str, Iterable[str]], *middleware: Any) -> "Composer":
        """Run middleware only for updates of the given top-level type(s)."""
        wanted = frozenset([update_types] if isinstance(update_types, str) else update_types)
        return self.filter(lambda ctx: ctx.update_type in wanted, *middleware)

    def filter(self, predicate: Predicate, *middleware: Any) -> "Composer":
        """Run middleware only when ``predicate(ctx)`` holds.

        Otherwise the update skips straight to what follows.
        """
        composer = Composer(*middleware)
        self.branch(predicate, composer, PASS)
        return composer

    def drop(self, predicate: Predicate, *middleware: Any) -> "Composer":
        """Inverse of :meth:`filter`."""

        async def negated(ctx: "Context") -> bool:
            return not await maybe_await(predicate(ctx))

        return self.filter(negated, *middleware)

    def branch(self, predicate: Predicate, if_true: Any, if_false: Any) -> "Composer":
        """Choose between two middleware per update.

        The predicate is evaluated once per update.
        """
        return self.register(Branch(predicate, flatten(if_true), flatten(if_false)))

    def fork(self, *middleware: Any) -> "Composer":
        """Run middleware concurrently with the rest of the pipeline.

        The update is done only when both sides are done. If either side
        fails, the first error to surface is raised after both finished,
        except that a :class:`ContinuationError` from either side always wins.
        """
        composer = Composer(*middleware)
        self.register(Fork(Leaf(composer)))
        return composer

    def lazy(self, factory: Callable[["Context"], Any]) -> "Composer":
        """Build the middleware to run from the context on every update.

        ``factory`` may return a middleware or a list of them; an empty
        list passes the update on untouched.
        """
        return self.register(Lazy(factory))

    def route(
        self,
        router: Callable[["Context"], Any],
        routes: Dict[Any, Any],
        fallback: Any = None,
    ) -> "Composer":
        """Pick middleware from ``routes`` by the key ``router(ctx)`` returns.

        Unknown or ``None`` keys use ``fallback``; without a fallback the
        update passes on.
        """

        async def select(ctx: "Context") -> Any:
            key = await maybe_await(router(ctx))
            handler: Optional[Any] = routes.get(key) if key is not None else None
            if handler is None:
                handler = fallback
            return handler if handler is not None else []

        return self.lazy(select)

    def error_boundary(self, handler: ErrorHandler, *middleware: Any) -> "Composer":
        """Protect middleware with an error handler.

        ``handler(error, next)`` receives a :class:`PipelineError`. The
        rest of the outer pipeline runs only if the handler calls
        ``next``. Raising from the handler passes the error outwards.
        """
        composer = Composer(*middleware)
        self.register(ErrorBoundary(handler, Leaf(composer)))
        return composer
