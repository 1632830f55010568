"""Bottom-up symbol binding with constant folding."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .ast import Literal, Node, SymbolEvaluator, SymbolNode
from .symbols import Symbol

logger = logging.getLogger(__name__)

ImpureResolver = Callable[[Symbol], Optional[SymbolEvaluator]]
PureResolver = Callable[[Symbol], SymbolEvaluator]


def _bind_symbol(symbol: Symbol, args: tuple[Node, ...], impure: ImpureResolver, pure: PureResolver) -> Node:
    fn = impure(symbol)
    if fn is not None:
        return SymbolNode(symbol, args, fn)

    fn = pure(symbol)
    if not all(isinstance(arg, Literal) for arg in args):
        return SymbolNode(symbol, args, fn)
    try:
        value = fn([arg.value for arg in args])
    except Exception as err:
        logger.debug("Not folding %s: %s", symbol, err)
        return SymbolNode(symbol, args, fn)
    return Literal(float(value))


def bind(node: Node, impure: ImpureResolver, pure: PureResolver) -> Node:
    """Attach an evaluator to every symbol node below ``node``.

    Arguments are bound first. An evaluator from ``impure`` is attached as
    is; one from ``pure`` is invoked immediately when every argument is
    already a literal and the node is replaced by the result. A pure
    evaluator that raises on literal arguments stays attached so the error
    surfaces at evaluation time.

    The walk keeps its own stack, so long operator chains never hit the
    interpreter recursion limit.
    """
    bound: list[Node] = []
    pending: list[tuple[Node, bool]] = [(node, False)]
    while pending:
        current, ready = pending.pop()
        if not isinstance(current, SymbolNode):
            bound.append(current)
            continue
        if not ready:
            pending.append((current, True))
            pending.extend((arg, False) for arg in reversed(current.args))
            continue
        split = len(bound) - len(current.args)
        args = tuple(bound[split:])
        del bound[split:]
        bound.append(_bind_symbol(current.symbol, args, impure, pure))
    return bound[0]
