"""
Systems - a small language for stock and flow models.

Specs describe stocks (numeric containers) and flows (transfer rules between
them). This package compiles specs into models and simulates them round by
round.
"""

__version__ = "0.1.0"

from typing import Union
from pathlib import Path

from .errors import (
    SystemsError,
    SystemsParseError,
    IllegalSystemError,
    SystemsRuntimeError,
    IllegalStockName,
    IllegalSourceStock,
    InvalidFormula,
    UnresolvedReference,
    CircularReferences,
    ParseError,
    DeferLineInfo,
    InvalidParameters,
    ConflictingValues,
    UnknownFlowType,
    ErrorCode,
    error_code_to_string,
)
from .analysis import (
    LinkKind,
    Link,
    CycleResult,
    find_cycles,
)
from .formula import Formula
from .rates import FlowKind, RateRule
from .types import (
    Stock,
    Flow,
    ModelIssue,
    RunSpec,
)
from .run import Run
from .model import Model, ModelBuilder
from .sim import State
from .parse import parse


def load(path: Union[str, Path]) -> Model:
    """
    Load a model from a spec file.

    Args:
        path: Path to the spec file

    Returns:
        The parsed model, named after the file

    Example:
        >>> import systems
        >>> model = systems.load("hiring.txt")
        >>> print(model.render(model.run(5)))
    """
    path = Path(path)
    return parse(path.read_text(encoding="utf-8"), name=path.stem)


__all__ = [
    # Top-level functions
    "load",
    "parse",
    "find_cycles",
    # Main classes
    "Model",
    "ModelBuilder",
    "State",
    "Run",
    "Formula",
    # Errors
    "SystemsError",
    "SystemsParseError",
    "IllegalSystemError",
    "SystemsRuntimeError",
    "IllegalStockName",
    "IllegalSourceStock",
    "InvalidFormula",
    "UnresolvedReference",
    "CircularReferences",
    "ParseError",
    "DeferLineInfo",
    "InvalidParameters",
    "ConflictingValues",
    "UnknownFlowType",
    "ErrorCode",
    "error_code_to_string",
    # Analysis types
    "LinkKind",
    "Link",
    "CycleResult",
    # Model structure types
    "FlowKind",
    "RateRule",
    "Stock",
    "Flow",
    "ModelIssue",
    "RunSpec",
]
