"""Tests for the scanner."""

import pytest

from systems import IllegalStockName, InvalidFormula, InvalidParameters, ParseError
from systems.lexer import (
    Comment,
    Decimal,
    FlowDelimiter,
    FlowDirection,
    FlowToken,
    FormulaToken,
    Infinity,
    Line,
    Lines,
    Operation,
    Params,
    Reference,
    StockToken,
    TokenKind,
    Whole,
    lex,
    lex_flow,
    lex_formula,
    lex_parameters,
    lex_stock,
    lex_value,
    readable,
)


def ft(*tokens) -> FormulaToken:
    return FormulaToken(tuple(tokens))


class TestLexValue:
    """Test classification of single values."""

    def test_infinity(self) -> None:
        """The inf keyword is infinity."""
        assert lex_value("inf") == Infinity()

    def test_whole(self) -> None:
        """Digits, with an optional leading minus, are whole numbers."""
        assert lex_value("10") == Whole("10")
        assert lex_value("-3") == Whole("-3")

    def test_decimal(self) -> None:
        """Digits around a dot are decimals."""
        assert lex_value("0.5") == Decimal("0.5")

    def test_reference(self) -> None:
        """Anything else is a reference."""
        assert lex_value("Engineers") == Reference("Engineers")
        assert lex_value(".2") == Reference(".2")
        assert lex_value("0..2") == Reference("0..2")

    def test_strips_whitespace(self) -> None:
        """Surrounding whitespace is ignored."""
        assert lex_value("  7 ") == Whole("7")


class TestLexFormula:
    """Test formula scanning."""

    def test_flat_formula(self) -> None:
        """Operands and operations alternate."""
        assert lex_formula("10 + 5 * 2") == ft(
            Whole("10"), Operation("+"), Whole("5"), Operation("*"), Whole("2")
        )

    def test_no_whitespace_needed(self) -> None:
        """Operations close off the preceding value."""
        assert lex_formula("a*3") == ft(Reference("a"), Operation("*"), Whole("3"))

    def test_parenthesized_group(self) -> None:
        """Parentheses produce nested formulas."""
        assert lex_formula("(a + 1) * 2") == ft(
            ft(Reference("a"), Operation("+"), Whole("1")),
            Operation("*"),
            Whole("2"),
        )

    def test_deep_nesting(self) -> None:
        """Groups nest to any depth."""
        assert lex_formula("((1))") == ft(ft(ft(Whole("1"))))

    def test_empty(self) -> None:
        """An empty expression has no leaves."""
        assert lex_formula("") == ft()

    def test_unclosed_parenthesis(self) -> None:
        """An unclosed group is an invalid formula."""
        with pytest.raises(InvalidFormula, match="unclosed parenthesis"):
            lex_formula("(1 + 2")

    def test_unmatched_closing_parenthesis(self) -> None:
        """A stray closing parenthesis is an invalid formula."""
        with pytest.raises(InvalidFormula, match="unmatched closing parenthesis"):
            lex_formula("1 + 2)")


class TestLexParameters:
    """Test parameter list scanning."""

    def test_empty(self) -> None:
        assert lex_parameters("") == Params()

    def test_two_parameters(self) -> None:
        """Parameters are comma separated formulas."""
        assert lex_parameters("(1, b * 2)") == Params(
            (ft(Whole("1")), ft(Reference("b"), Operation("*"), Whole("2")))
        )

    def test_missing_parentheses(self) -> None:
        """Parameters must be wrapped in parentheses."""
        with pytest.raises(InvalidParameters) as exc_info:
            lex_parameters("1, 2")
        assert exc_info.value.txt == "1, 2"


class TestLexStock:
    """Test stock declaration scanning."""

    def test_bare_stock(self) -> None:
        token = lex_stock("Engineers")
        assert token == StockToken("Engineers")
        assert token.kind == TokenKind.STOCK

    def test_stock_with_parameters(self) -> None:
        """Initial and maximum values follow the name."""
        assert lex_stock("a(10, 15)") == StockToken("a", Params((ft(Whole("10")), ft(Whole("15")))))

    def test_infinite_stock(self) -> None:
        """Square brackets declare an infinite stock."""
        token = lex_stock("[Candidates]")
        assert token == StockToken("Candidates", Params(), infinite=True)
        assert token.kind == TokenKind.INFINITE_STOCK

    def test_illegal_name(self) -> None:
        """Names must start with a letter."""
        with pytest.raises(IllegalStockName) as exc_info:
            lex_stock("1abc")
        assert exc_info.value.stock_name == "1abc"

    def test_illegal_infinite_name(self) -> None:
        with pytest.raises(IllegalStockName):
            lex_stock("[a-b]")

    def test_malformed_tail(self) -> None:
        """Text after the name must be a parameter list."""
        with pytest.raises(IllegalStockName):
            lex_stock("a(1")
        with pytest.raises(IllegalStockName):
            lex_stock("a b")


class TestLexFlow:
    """Test flow declaration scanning."""

    def test_labeled_flow(self) -> None:
        assert lex_flow("Rate(5)") == FlowToken("Rate", Params((ft(Whole("5")),)))

    def test_unlabeled_whole(self) -> None:
        """Bare text becomes the single parameter of an unlabeled flow."""
        assert lex_flow("5") == FlowToken("", Params((ft(Whole("5")),)))

    def test_unlabeled_decimal(self) -> None:
        assert lex_flow("0.5") == FlowToken("", Params((ft(Decimal("0.5")),)))

    def test_unlabeled_formula(self) -> None:
        """A reference not followed by parameters is a formula, not a label."""
        assert lex_flow("Recruiters*3") == FlowToken(
            "", Params((ft(Reference("Recruiters"), Operation("*"), Whole("3")),))
        )

    def test_unknown_label_is_still_labeled(self) -> None:
        """Labels are checked when the flow is built."""
        assert lex_flow("Fake(3)").label == "Fake"


class TestLex:
    """Test scanning of whole specs."""

    def test_flow_line(self) -> None:
        lines = lex("a(10) > b @ 5")
        assert lines == Lines((
            Line(
                1,
                (
                    StockToken("a", Params((ft(Whole("10")),))),
                    FlowDirection(),
                    StockToken("b"),
                    FlowDelimiter(),
                    FlowToken("", Params((ft(Whole("5")),))),
                ),
                "a(10) > b @ 5",
            ),
        ))

    def test_blank_lines_dropped(self) -> None:
        """Blank lines are dropped but line numbers still count them."""
        lines = lex("\n\na > b @ 1\n   \n")
        assert len(lines.lines) == 1
        assert lines.lines[0].number == 3

    def test_comment_line(self) -> None:
        """A leading comment marker turns the whole line into a comment."""
        lines = lex("  # a > b @ 1")
        assert lines.lines[0].tokens == (Comment(" a > b @ 1"),)

    def test_trailing_comment(self) -> None:
        """Code before a comment marker is flushed first."""
        tokens = lex("a > b @ 5 # five a round").lines[0].tokens
        assert tokens[-2] == FlowToken("", Params((ft(Whole("5")),)))
        assert tokens[-1] == Comment(" five a round")

    def test_trailing_comment_after_stock(self) -> None:
        tokens = lex("Recruiter(5) # seed").lines[0].tokens
        assert tokens == (StockToken("Recruiter", Params((ft(Whole("5")),))), Comment(" seed"))

    def test_whitespace_is_transparent(self) -> None:
        """Whitespace inside a declaration is ignored."""
        spaced = lex("a( 10 , 15 ) > b @ Rate( 2 )").lines[0]
        compact = lex("a(10,15)>b@Rate(2)").lines[0]
        assert spaced.tokens == compact.tokens
        assert spaced.text != compact.text

    def test_error_carries_line(self) -> None:
        """Failures are wrapped with the offending line."""
        with pytest.raises(ParseError) as exc_info:
            lex("a > b @ 1\n1a > b @ 1")
        err = exc_info.value
        assert err.line_number == 2
        assert err.line == "1a > b @ 1"
        assert isinstance(err.exception, IllegalStockName)
        assert isinstance(err.__cause__, IllegalStockName)

    def test_formula_error_carries_line(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            lex("a > b @ Rate(1")
        assert isinstance(exc_info.value.exception, InvalidFormula)
        assert "line 1 could not be parsed" in str(exc_info.value)


class TestReadable:
    """Test rendering tokens back to text."""

    def test_formula(self) -> None:
        assert readable(lex_formula("(a + 1) * 2")) == "(a + 1) * 2"

    def test_stocks(self) -> None:
        assert readable(lex_stock("a(10, 15)")) == "a(10, 15)"
        assert readable(lex_stock("b")) == "b"
        assert readable(lex_stock("[Candidates]")) == "[Candidates]"

    def test_flows(self) -> None:
        assert readable(lex_flow("Rate(5)")) == "Rate(5)"
        assert readable(lex_flow("0.5")) == "0.5"

    def test_line(self) -> None:
        assert readable(lex("a(10) > b @ 5").lines[0]) == "a(10) > b @ 5"

    def test_lines_and_comments(self) -> None:
        text = "# funnel\n[C] > b @ Leak(0.2)"
        assert readable(lex(text)) == "# funnel\n[C] > b @ Leak(0.2)"
