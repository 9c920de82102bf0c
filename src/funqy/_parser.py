"""Parser from FunQy source text to the AST.

Example program::

    data Bool = F | T
    fn had { F => sup(F, T), T => sup(F, phf(T)) }
    fn cnot { (F, y) => (F, y), (T, F) => (T, T), (T, T) => (T, F) }
    assert cnot(had(F), F) == sup((F, F), (T, T))
    print measure(had(F))

Lowercase names are variables, capitalized names are data constructors. An
argument list must follow the function without whitespace (``f(x)``); ``f (x)``
is ``f`` followed by a separate parenthesized expression.
"""

from __future__ import annotations

import ast
import math
from typing import TYPE_CHECKING

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedEOF, UnexpectedInput, UnexpectedToken

from ._ast import (
    AltPattern,
    Apply,
    AssertDecl,
    Block,
    Case,
    Cond,
    ConstructorPattern,
    DataDecl,
    ExprDecl,
    Extract,
    FnDecl,
    ImportDecl,
    Invert,
    Lambda,
    LetDecl,
    Measure,
    PhaseFlip,
    PhasePattern,
    PrintDecl,
    Program,
    Scaled,
    Sup,
    TupleExpr,
    TuplePattern,
    Var,
    VarPattern,
    WildcardPattern,
    case_table,
)
from ._values import from_polar

if TYPE_CHECKING:
    from ._ast import Decl, Expr, Pattern

GRAMMAR = r"""
    start: _statement*

    _statement: decl
              | expr_stmt

    expr_stmt: expr

    ?decl: data_decl
         | let_decl
         | fn_decl
         | assert_decl
         | print_decl
         | import_decl

    data_decl: "data" CONSTRUCTOR "=" CONSTRUCTOR ("|" CONSTRUCTOR)*
    let_decl: "let" pattern "=" expr
    fn_decl: "fn" NAME "=" expr                          -> fn_value_decl
           | "fn" NAME _open _patterns? ")" "=" expr     -> fn_params_decl
           | "fn" NAME "{" case_list "}"                 -> fn_table_decl
    assert_decl: "assert" expr "==" expr
    print_decl: "print" expr
    import_decl: "import" ESCAPED_STRING

    case_list: (case ","?)*
    case: pattern "=>" expr

    ?expr: "fn" pattern "=>" expr                        -> lambda_expr
         | "fn" "{" case_list "}"                        -> table_expr
         | "if" expr "then" expr "else" expr             -> if_expr
         | "extract" expr "{" case_list "}"              -> extract_expr
         | scaled_expr

    ?scaled_expr: "@" "[" phase ("," NUMBER)? "]" scaled_expr  -> scaled
                | postfix

    phase: MINUS? NUMBER                                 -> phase_radians
         | MINUS? NUMBER? "pi" (SLASH NUMBER)?           -> phase_pi

    ?postfix: primary
            | postfix _CALL_LPAREN _exprs? ")"           -> call

    ?primary: NAME                                       -> var
            | CONSTRUCTOR                                -> var
            | "(" ")"                                    -> unit
            | "(" expr ")"
            | "(" expr ("," expr)+ ")"                   -> tuple_expr
            | "{" decl* expr "}"                         -> block
            | "sup" _open _exprs? ")"                    -> sup
            | "phf" _open expr ")"                       -> phf
            | "measure" _open expr ")"                   -> measure
            | "inv" _open expr ")"                       -> inv

    _exprs: expr ("," expr)*
    _patterns: pattern ("," pattern)*
    _open: _CALL_LPAREN | "("

    ?pattern: phase_pattern ("|" phase_pattern)*         -> alt_pattern
    ?phase_pattern: "~" phase_pattern                    -> flipped
                  | simple_pattern
    ?simple_pattern: "_"                                 -> wildcard
                   | NAME                                -> var_pattern
                   | CONSTRUCTOR                         -> constructor_pattern
                   | "(" ")"                             -> unit_pattern
                   | "(" pattern ")"
                   | "(" pattern ("," pattern)+ ")"      -> tuple_pattern

    NAME: /[a-z_][A-Za-z0-9_']*/
    CONSTRUCTOR: /[A-Z][A-Za-z0-9_']*/
    _CALL_LPAREN.2: /(?<=[A-Za-z0-9_')\]])\(/
    MINUS: "-"
    SLASH: "/"
    COMMENT: /#[^\n]*/

    %import common.NUMBER
    %import common.ESCAPED_STRING
    %import common.WS
    %ignore WS
    %ignore COMMENT
"""


class ParseError(Exception):
    """Source text is not a well-formed program."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        self.line = line
        self.column = column
        location = f" at line {line}, column {column}" if line is not None else ""
        super().__init__(f"{message}{location}")


def _argument(items: tuple[Expr, ...]) -> Expr:
    """Several arguments form one tuple argument; none is the unit value."""
    if len(items) == 1:
        return items[0]
    return TupleExpr(items)


def _parameter(patterns: tuple[Pattern, ...]) -> Pattern:
    if len(patterns) == 1:
        return patterns[0]
    return TuplePattern(patterns)


@v_args(inline=True)
class _AstBuilder(Transformer):
    """Turns the Lark parse tree into AST nodes."""

    # Declarations

    def start(self, *statements: Decl) -> Program:
        return Program(tuple(statements))

    def expr_stmt(self, expr: Expr) -> ExprDecl:
        return ExprDecl(expr)

    def data_decl(self, name: Token, *variants: Token) -> DataDecl:
        return DataDecl(str(name), tuple(str(variant) for variant in variants))

    def let_decl(self, pattern: Pattern, expr: Expr) -> LetDecl:
        return LetDecl(pattern, expr)

    def fn_value_decl(self, name: Token, expr: Expr) -> FnDecl:
        return FnDecl(str(name), expr)

    def fn_params_decl(self, name: Token, *rest: Pattern | Expr) -> FnDecl:
        *params, body = rest
        return FnDecl(str(name), Lambda(_parameter(tuple(params)), body))  # type: ignore[arg-type]

    def fn_table_decl(self, name: Token, cases: tuple[Case, ...]) -> FnDecl:
        return FnDecl(str(name), case_table(cases))

    def assert_decl(self, expected: Expr, actual: Expr) -> AssertDecl:
        return AssertDecl(expected, actual)

    def print_decl(self, expr: Expr) -> PrintDecl:
        return PrintDecl(expr)

    def import_decl(self, path: Token) -> ImportDecl:
        return ImportDecl(ast.literal_eval(str(path)))

    def case_list(self, *cases: Case) -> tuple[Case, ...]:
        return cases

    def case(self, pattern: Pattern, body: Expr) -> Case:
        return Case(pattern, body)

    # Expressions

    def lambda_expr(self, pattern: Pattern, body: Expr) -> Lambda:
        return Lambda(pattern, body)

    def table_expr(self, cases: tuple[Case, ...]) -> Lambda:
        return case_table(cases)

    def if_expr(self, condition: Expr, then: Expr, orelse: Expr) -> Cond:
        return Cond(condition, then, orelse)

    def extract_expr(self, scrutinee: Expr, cases: tuple[Case, ...]) -> Extract:
        return Extract(scrutinee, cases)

    def scaled(self, phase: float, *rest: Token | Expr) -> Scaled:
        magnitude = float(rest[0]) if len(rest) == 2 else 1.0  # type: ignore[arg-type]  # noqa: PLR2004
        return Scaled(rest[-1], from_polar(phase, magnitude))  # type: ignore[arg-type]

    def phase_radians(self, *tokens: Token) -> float:
        sign = -1.0 if tokens[0].type == "MINUS" else 1.0
        return sign * float(tokens[-1])

    def phase_pi(self, *tokens: Token) -> float:
        sign = 1.0
        coefficient = 1.0
        denominator = 1.0
        after_slash = False
        for token in tokens:
            if token.type == "MINUS":
                sign = -1.0
            elif token.type == "SLASH":
                after_slash = True
            elif after_slash:
                denominator = float(token)
            else:
                coefficient = float(token)
        return sign * coefficient * math.pi / denominator

    def call(self, function: Expr, *args: Expr) -> Apply:
        return Apply(function, _argument(args))

    def var(self, name: Token) -> Var:
        return Var(str(name))

    def unit(self) -> TupleExpr:
        return TupleExpr(())

    def tuple_expr(self, *items: Expr) -> TupleExpr:
        return TupleExpr(items)

    def block(self, *children: Decl | Expr) -> Block:
        *decls, result = children
        return Block(tuple(decls), result)  # type: ignore[arg-type]

    def sup(self, *items: Expr) -> Sup:
        return Sup(items)

    def phf(self, expr: Expr) -> PhaseFlip:
        return PhaseFlip(expr)

    def measure(self, expr: Expr) -> Measure:
        return Measure(expr)

    def inv(self, expr: Expr) -> Invert:
        return Invert(expr)

    # Patterns

    def alt_pattern(self, *options: Pattern) -> Pattern:
        if len(options) == 1:
            return options[0]
        return AltPattern(options)

    def flipped(self, inner: Pattern) -> PhasePattern:
        return PhasePattern(inner)

    def wildcard(self) -> WildcardPattern:
        return WildcardPattern()

    def var_pattern(self, name: Token) -> VarPattern:
        return VarPattern(str(name))

    def constructor_pattern(self, name: Token) -> ConstructorPattern:
        return ConstructorPattern(str(name))

    def unit_pattern(self) -> TuplePattern:
        return TuplePattern(())

    def tuple_pattern(self, *items: Pattern) -> TuplePattern:
        return TuplePattern(items)


# Keywords such as `pi` only lex as keywords where the grammar accepts them
_parser = Lark(GRAMMAR, parser="lalr", lexer="contextual", transformer=_AstBuilder(), maybe_placeholders=False)


def parse_program(source: str) -> Program:
    """Parse program text into a ``Program``.

    Raises:
        ParseError: If the text is not a well-formed program.

    """
    try:
        return _parser.parse(source)
    except UnexpectedInput as e:
        line = e.line if (e.line or 0) > 0 else None
        column = e.column if (e.column or 0) > 0 else None
        if isinstance(e, UnexpectedEOF) or (isinstance(e, UnexpectedToken) and e.token.type == "$END"):
            msg = "Unexpected end of input"
            raise ParseError(msg, line=line, column=column) from e
        context = e.get_context(source).rstrip()
        msg = f"Syntax error:\n{context}\n"
        raise ParseError(msg, line=line, column=column) from e
