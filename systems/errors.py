"""Error handling for the systems package."""

from enum import IntEnum
from typing import Any, Optional


class ErrorCode(IntEnum):
    """Error codes for failures while building or running a model."""

    ILLEGAL_NAME = 1
    INVALID_PARAMETERS = 2
    ILLEGAL_SOURCE_STOCK = 3
    INVALID_FORMULA = 4
    UNRESOLVED_REFERENCE = 5
    CIRCULAR_REFERENCES = 6
    CONFLICTING_VALUES = 7
    UNKNOWN_FLOW_TYPE = 8
    PARSE_FAILURE = 9
    DOES_NOT_EXIST = 10


class SystemsError(Exception):
    """Base exception for all systems errors."""

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code


class SystemsParseError(SystemsError):
    """Exception raised when a spec cannot be turned into a model."""
    pass


class IllegalSystemError(SystemsError):
    """Exception raised when a model is structurally invalid."""
    pass


class SystemsRuntimeError(SystemsError):
    """Exception raised when querying or driving a simulation fails."""
    pass


class IllegalStockName(SystemsError):
    """A stock or flow label does not match the identifier grammar."""

    def __init__(self, stock_name: str, allowed: str):
        super().__init__(
            f"name '{stock_name}' is not a legal stock name, must be of format {allowed}",
            ErrorCode.ILLEGAL_NAME,
        )
        self.stock_name = stock_name
        self.allowed = allowed


class IllegalSourceStock(IllegalSystemError):
    """A percentage based rate was attached to an infinite source stock."""

    def __init__(self, rate: Any, source: Any):
        super().__init__(
            f"stock '{source}' cannot be used as source for rate '{rate}'",
            ErrorCode.ILLEGAL_SOURCE_STOCK,
        )
        self.rate = rate
        self.source = source


class CircularReferences(IllegalSystemError):
    """Initial values reference each other in a cycle."""

    def __init__(self, cycle: dict[str, list[str]], graph: dict[str, list[str]]):
        super().__init__(
            f"found cycle '{cycle}' in references '{graph}'",
            ErrorCode.CIRCULAR_REFERENCES,
        )
        self.cycle = cycle
        self.graph = graph


class InvalidFormula(IllegalSystemError):
    """A formula is malformed."""

    def __init__(self, formula: Any, msg: str, code: ErrorCode = ErrorCode.INVALID_FORMULA):
        super().__init__(f"illegal formula '{formula}' due to '{msg}'", code)
        self.formula = formula
        self.msg = msg


class UnresolvedReference(InvalidFormula):
    """A formula references a stock that is not part of the model."""

    def __init__(self, formula: Any, reference: str):
        super().__init__(
            formula,
            f"reference to non-existent stock '{reference}'",
            ErrorCode.UNRESOLVED_REFERENCE,
        )
        self.reference = reference


class ParseError(SystemsParseError):
    """
    A single line of a spec could not be processed.

    The message is derived when the error is rendered, so the line text and
    number may be filled in after the error was raised.
    """

    def __init__(
        self,
        line: str = "",
        line_number: int = 0,
        exception: Optional[BaseException] = None,
    ):
        super().__init__("", ErrorCode.PARSE_FAILURE)
        self.line = line
        self.line_number = line_number
        self.exception = exception

    def annotate(self, line: str, line_number: int) -> None:
        """Attach the offending line to this error."""
        self.line = line
        self.line_number = line_number

    def __str__(self) -> str:
        message = f'line {self.line_number} could not be parsed: "{self.line}"'
        if self.exception is not None:
            message += "\n" + str(self.exception)
        return message


class DeferLineInfo(ParseError):
    """A parse error raised before the line it belongs to is known."""
    pass


class InvalidParameters(DeferLineInfo):
    """A parameter list is not wrapped in matching parentheses."""

    def __init__(self, txt: str, line: str = "", line_number: int = 0):
        super().__init__(line, line_number)
        self.code = ErrorCode.INVALID_PARAMETERS
        self.txt = txt

    def __str__(self) -> str:
        return f"line {self.line_number} specifies invalid parameters '{self.txt}': \"{self.line}\""


class ConflictingValues(DeferLineInfo):
    """A stock was redeclared with a different non-default value."""

    def __init__(self, stock_name: str, first: Any, second: Any, line: str = "", line_number: int = 0):
        super().__init__(line, line_number)
        self.code = ErrorCode.CONFLICTING_VALUES
        self.stock_name = stock_name
        self.first = first
        self.second = second

    def __str__(self) -> str:
        if self.line_number or self.line:
            return (
                f"line {self.line_number} initializes {self.stock_name} with conflicting "
                f"value {self.second} (was {self.first}): \"{self.line}\""
            )
        return f"'{self.stock_name}' initialized with conflicting value {self.second} (was {self.first})"


class UnknownFlowType(DeferLineInfo):
    """A labeled flow names something other than Rate, Conversion or Leak."""

    def __init__(self, flow_type: str, line: str = "", line_number: int = 0):
        super().__init__(line, line_number)
        self.code = ErrorCode.UNKNOWN_FLOW_TYPE
        self.flow_type = flow_type

    def __str__(self) -> str:
        return f"line {self.line_number} has invalid flow type \"{self.flow_type}\": \"{self.line}\""


def error_code_to_string(code: int) -> str:
    """Convert an error code to a human-readable string."""
    try:
        error = ErrorCode(code)
        return error.name.replace("_", " ").title()
    except ValueError:
        return f"Unknown Error Code ({code})"
