"""
Parser for the store's pseudo-SQL.

The store accepts a deliberately small SQL dialect over one implicit table:

    SELECT [DISTINCT] * | col, ... | COUNT(*) [AS a], SUM(col), COUNT(DISTINCT col)
        FROM t [WHERE ...] [ORDER BY col [ASC|DESC], ...]
    INSERT INTO t [(col, ...)] [VALUES (?, ...)]
    UPDATE t SET col = ?, ... WHERE id = ?
    DELETE FROM t WHERE id = ?

WHERE is a conjunction of:
    col = ? | col != ? | col = <literal> | LOWER(col) = LOWER(?) | col LIKE ?
    ( col LIKE ? OR col LIKE ? ... )
    1 = 1

Design:
- Text is parsed once into a small tagged AST (`Select`, `Insert`, `Update`,
  `Delete`); results are cached per query text.
- `?` placeholders are numbered in textual order; `Param(n)` binds `params[n]`.
- Anything outside the vocabulary raises `UnrecognizedQueryError`. Whether
  that surfaces to callers is the store's decision, not the parser's.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Sequence, Union

from albumshelf.core import UnrecognizedQueryError
from albumshelf.core.store.models import ALBUM_FIELDS, MUTABLE_FIELDS
from albumshelf.core.store.ordering import ORDERABLE_FIELDS

# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Param:
    """Positional placeholder (the n-th `?` in the text)."""

    index: int

    def bind(self, params: Sequence[Any]) -> Any:
        return params[self.index] if self.index < len(params) else None


@dataclass(frozen=True, slots=True)
class Literal:
    value: Any

    def bind(self, params: Sequence[Any]) -> Any:
        return self.value


Operand = Union[Param, Literal]


@dataclass(frozen=True, slots=True)
class Compare:
    """`field = x`, `field != x`, or `LOWER(field) = LOWER(x)` when fold_case."""

    field: str
    op: str
    operand: Operand
    fold_case: bool = False


@dataclass(frozen=True, slots=True)
class Like:
    field: str
    operand: Operand


@dataclass(frozen=True, slots=True)
class AnyOf:
    """Parenthesized OR group of LIKE predicates."""

    terms: tuple[Like, ...]


@dataclass(frozen=True, slots=True)
class Constant:
    """Literal comparison such as `1 = 1`."""

    value: bool


Predicate = Union[Compare, Like, AnyOf, Constant]


@dataclass(frozen=True, slots=True)
class Aggregate:
    func: str  # "count", "sum" or "count_distinct"
    field: str | None
    alias: str


@dataclass(frozen=True, slots=True)
class Select:
    table: str
    columns: tuple[str, ...] | None = None  # None means `*`
    distinct: bool = False
    aggregates: tuple[Aggregate, ...] = ()
    where: tuple[Predicate, ...] = ()
    order: tuple[tuple[str, bool], ...] = ()  # (field, descending)


@dataclass(frozen=True, slots=True)
class Insert:
    table: str
    columns: tuple[str, ...] | None = None
    values: tuple[Operand, ...] | None = None  # None: bind every param positionally


@dataclass(frozen=True, slots=True)
class Update:
    table: str
    assignments: tuple[tuple[str, Operand], ...]
    id: Operand


@dataclass(frozen=True, slots=True)
class Delete:
    table: str
    id: Operand


Query = Union[Select, Insert, Update, Delete]

STATEMENT_KEYWORDS: tuple[str, ...] = ("select", "insert", "update", "delete")

# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>'(?:[^']|'')*')
  | (?P<number>\d+)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>!=|<>|=|\(|\)|,|\*|\?|;)
    """,
    re.VERBOSE,
)


@dataclass(frozen=True, slots=True)
class Token:
    kind: str  # "ident", "number", "string", "op", "eof"
    value: str
    pos: int

    def is_keyword(self, *words: str) -> bool:
        return self.kind == "ident" and self.value.lower() in words

    def is_op(self, *ops: str) -> bool:
        return self.kind == "op" and self.value in ops


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise UnrecognizedQueryError(f"Unexpected character {text[pos]!r} at {pos}")
        kind = m.lastgroup or ""
        if kind != "ws":
            tokens.append(Token(kind, m.group(), pos))
        pos = m.end()
    tokens.append(Token("eof", "", len(text)))
    return tokens


def leading_keyword(text: str) -> str | None:
    """Return the statement keyword ("select", ...) the text starts with, if any."""
    head = text.lstrip().split(None, 1)
    if not head:
        return None
    word = head[0].lower()
    return word if word in STATEMENT_KEYWORDS else None


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens = tokenize(text)
        self._pos = 0
        self._param_count = 0

    # ---- token helpers ----

    @property
    def _tok(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.kind != "eof":
            self._pos += 1
        return tok

    def _error(self, expected: str) -> UnrecognizedQueryError:
        tok = self._tok
        found = tok.value or "end of query"
        return UnrecognizedQueryError(
            f"Expected {expected} but found {found!r} at {tok.pos}: {self._text!r}"
        )

    def _accept_keyword(self, *words: str) -> bool:
        if self._tok.is_keyword(*words):
            self._advance()
            return True
        return False

    def _expect_keyword(self, word: str) -> None:
        if not self._accept_keyword(word):
            raise self._error(word.upper())

    def _accept_op(self, op: str) -> bool:
        if self._tok.is_op(op):
            self._advance()
            return True
        return False

    def _expect_op(self, op: str) -> None:
        if not self._accept_op(op):
            raise self._error(repr(op))

    def _identifier(self) -> str:
        if self._tok.kind != "ident":
            raise self._error("identifier")
        return self._advance().value

    def _field(self, allowed: Sequence[str] | frozenset[str] = ALBUM_FIELDS) -> str:
        pos = self._tok.pos
        name = self._identifier().lower()
        if name not in allowed:
            raise UnrecognizedQueryError(f"Unsupported column {name!r} at {pos}: {self._text!r}")
        return name

    def _operand(self) -> Operand:
        tok = self._tok
        if tok.is_op("?"):
            self._advance()
            param = Param(self._param_count)
            self._param_count += 1
            return param
        if tok.kind == "number":
            self._advance()
            return Literal(int(tok.value))
        if tok.kind == "string":
            self._advance()
            return Literal(tok.value[1:-1].replace("''", "'"))
        if tok.is_keyword("null"):
            self._advance()
            return Literal(None)
        if tok.is_keyword("true", "false"):
            self._advance()
            return Literal(1 if tok.value.lower() == "true" else 0)
        raise self._error("a value or '?'")

    def _finish(self) -> None:
        self._accept_op(";")
        if self._tok.kind != "eof":
            raise self._error("end of query")

    # ---- statements ----

    def parse(self) -> Query:
        tok = self._tok
        if tok.is_keyword("select"):
            query: Query = self._select()
        elif tok.is_keyword("insert"):
            query = self._insert()
        elif tok.is_keyword("update"):
            query = self._update()
        elif tok.is_keyword("delete"):
            query = self._delete()
        else:
            raise self._error("SELECT, INSERT, UPDATE or DELETE")
        self._finish()
        return query

    def _select(self) -> Select:
        self._expect_keyword("select")

        distinct = self._accept_keyword("distinct")
        columns: tuple[str, ...] | None = None
        aggregates: tuple[Aggregate, ...] = ()

        if self._accept_op("*"):
            if distinct:
                raise UnrecognizedQueryError(f"DISTINCT * is not supported: {self._text!r}")
        elif distinct:
            columns = (self._field(),)
            if self._tok.is_op(","):
                raise UnrecognizedQueryError(
                    f"DISTINCT supports a single column: {self._text!r}"
                )
        elif self._tok.is_keyword("count", "sum"):
            aggregates = self._aggregate_list()
        else:
            names = [self._field()]
            while self._accept_op(","):
                names.append(self._field())
            columns = tuple(names)

        self._expect_keyword("from")
        table = self._identifier()

        where: tuple[Predicate, ...] = ()
        if self._accept_keyword("where"):
            where = self._where()

        order: tuple[tuple[str, bool], ...] = ()
        if self._accept_keyword("order"):
            self._expect_keyword("by")
            order = self._order_list()

        return Select(
            table=table,
            columns=columns,
            distinct=distinct,
            aggregates=aggregates,
            where=where,
            order=order,
        )

    def _aggregate_list(self) -> tuple[Aggregate, ...]:
        items = [self._aggregate()]
        while self._accept_op(","):
            items.append(self._aggregate())
        return tuple(items)

    def _aggregate(self) -> Aggregate:
        if self._accept_keyword("count"):
            self._expect_op("(")
            if self._accept_op("*"):
                func, field, default_alias = "count", None, "count(*)"
            elif self._accept_keyword("distinct"):
                field = self._field()
                func, default_alias = "count_distinct", f"count(distinct {field})"
            else:
                field = self._field()
                func, default_alias = "count", f"count({field})"
            self._expect_op(")")
        elif self._accept_keyword("sum"):
            self._expect_op("(")
            field = self._field()
            self._expect_op(")")
            func, default_alias = "sum", f"sum({field})"
        else:
            raise self._error("COUNT or SUM")

        alias = self._identifier() if self._accept_keyword("as") else default_alias
        return Aggregate(func=func, field=field, alias=alias)

    def _insert(self) -> Insert:
        self._expect_keyword("insert")
        self._expect_keyword("into")
        table = self._identifier()

        columns: tuple[str, ...] | None = None
        if self._accept_op("("):
            names = [self._field(MUTABLE_FIELDS)]
            while self._accept_op(","):
                names.append(self._field(MUTABLE_FIELDS))
            self._expect_op(")")
            columns = tuple(names)

        values: tuple[Operand, ...] | None = None
        if self._accept_keyword("values"):
            self._expect_op("(")
            items = [self._operand()]
            while self._accept_op(","):
                items.append(self._operand())
            self._expect_op(")")
            values = tuple(items)

        if columns is not None and values is not None and len(columns) != len(values):
            raise UnrecognizedQueryError(
                f"INSERT has {len(columns)} columns but {len(values)} values: {self._text!r}"
            )
        if columns is None and values is not None and len(values) > len(MUTABLE_FIELDS):
            raise UnrecognizedQueryError(f"INSERT has too many values: {self._text!r}")

        return Insert(table=table, columns=columns, values=values)

    def _update(self) -> Update:
        self._expect_keyword("update")
        table = self._identifier()
        self._expect_keyword("set")

        assignments = [self._assignment()]
        while self._accept_op(","):
            assignments.append(self._assignment())

        return Update(table=table, assignments=tuple(assignments), id=self._where_id())

    def _assignment(self) -> tuple[str, Operand]:
        name = self._field(MUTABLE_FIELDS)
        self._expect_op("=")
        return name, self._operand()

    def _delete(self) -> Delete:
        self._expect_keyword("delete")
        self._expect_keyword("from")
        table = self._identifier()
        return Delete(table=table, id=self._where_id())

    def _where_id(self) -> Operand:
        """Writes address exactly one record: `WHERE id = ?`."""
        self._expect_keyword("where")
        self._field(("id",))
        self._expect_op("=")
        return self._operand()

    # ---- WHERE ----

    def _where(self) -> tuple[Predicate, ...]:
        predicates = [self._predicate()]
        while self._accept_keyword("and"):
            predicates.append(self._predicate())
        return tuple(predicates)

    def _predicate(self) -> Predicate:
        if self._accept_op("("):
            first = self._predicate()
            terms = [first]
            while self._accept_keyword("or"):
                terms.append(self._predicate())
            self._expect_op(")")
            if len(terms) == 1:
                return first
            if not all(isinstance(t, Like) for t in terms):
                raise UnrecognizedQueryError(
                    f"OR is only supported between LIKE predicates: {self._text!r}"
                )
            return AnyOf(terms=tuple(t for t in terms if isinstance(t, Like)))

        if self._tok.kind == "number":
            left = int(self._advance().value)
            op = self._comparison_op()
            right = self._operand()
            if not isinstance(right, Literal):
                raise self._error("a literal")
            equal = left == right.value
            return Constant(value=equal if op == "=" else not equal)

        if self._accept_keyword("lower"):
            self._expect_op("(")
            field = self._field()
            self._expect_op(")")
            self._expect_op("=")
            self._expect_keyword("lower")
            self._expect_op("(")
            operand = self._operand()
            self._expect_op(")")
            return Compare(field=field, op="=", operand=operand, fold_case=True)

        field = self._field()
        if self._accept_keyword("like"):
            return Like(field=field, operand=self._operand())
        op = self._comparison_op()
        return Compare(field=field, op=op, operand=self._operand())

    def _comparison_op(self) -> str:
        tok = self._tok
        if tok.is_op("="):
            self._advance()
            return "="
        if tok.is_op("!=", "<>"):
            self._advance()
            return "!="
        raise self._error("'=' or '!='")

    # ---- ORDER BY ----

    def _order_list(self) -> tuple[tuple[str, bool], ...]:
        items = [self._order_item()]
        while self._accept_op(","):
            items.append(self._order_item())
        return tuple(items)

    def _order_item(self) -> tuple[str, bool]:
        field = self._field(ORDERABLE_FIELDS)
        if self._accept_keyword("desc"):
            return field, True
        self._accept_keyword("asc")
        return field, False


@lru_cache(maxsize=256)
def parse_query(text: str) -> Query:
    """
    Parse `text` into a query AST.

    Raises:
        UnrecognizedQueryError: if the text is outside the supported dialect.
    """
    return _Parser(text).parse()
