"""
Tests for albumshelf.core.store.query.

These tests verify:
- The statement shapes the collection model relies on parse to the right AST
- Placeholders are numbered in textual order
- Text outside the dialect is rejected with UnrecognizedQueryError
"""

from __future__ import annotations

import pytest

from albumshelf.core import UnrecognizedQueryError
from albumshelf.core.store.query import (
    Aggregate,
    AnyOf,
    Compare,
    Constant,
    Delete,
    Insert,
    Like,
    Literal,
    Param,
    Select,
    Update,
    leading_keyword,
    parse_query,
    tokenize,
)

# =============================================================================
# SELECT
# =============================================================================


class TestSelect:
    """Tests for SELECT parsing."""

    def test_select_star(self) -> None:
        stmt = parse_query("SELECT * FROM music_collection")
        assert stmt == Select(table="music_collection")

    def test_where_and_order(self) -> None:
        stmt = parse_query(
            "SELECT * FROM music_collection WHERE 1=1 AND is_owned = 1 "
            "AND (artist_name LIKE ? OR album_name LIKE ?) "
            "ORDER BY artist_name ASC, release_year DESC"
        )

        assert isinstance(stmt, Select)
        assert stmt.where == (
            Constant(True),
            Compare("is_owned", "=", Literal(1)),
            AnyOf((Like("artist_name", Param(0)), Like("album_name", Param(1)))),
        )
        assert stmt.order == (("artist_name", False), ("release_year", True))

    def test_case_folded_comparison(self) -> None:
        stmt = parse_query(
            "SELECT id FROM music_collection "
            "WHERE LOWER(artist_name) = LOWER(?) AND LOWER(album_name) = LOWER(?) AND id != ?"
        )

        assert isinstance(stmt, Select)
        assert stmt.columns == ("id",)
        assert stmt.where == (
            Compare("artist_name", "=", Param(0), fold_case=True),
            Compare("album_name", "=", Param(1), fold_case=True),
            Compare("id", "!=", Param(2)),
        )

    def test_distinct(self) -> None:
        stmt = parse_query("SELECT DISTINCT artist_name FROM music_collection ORDER BY artist_name")
        assert isinstance(stmt, Select)
        assert stmt.distinct
        assert stmt.columns == ("artist_name",)

    def test_aggregates_with_aliases(self) -> None:
        stmt = parse_query(
            "SELECT COUNT(*) AS total_albums, SUM(is_owned) AS owned_count, "
            "COUNT(DISTINCT artist_name) AS unique_artists, SUM(want_to_own) "
            "FROM music_collection"
        )

        assert isinstance(stmt, Select)
        assert stmt.aggregates == (
            Aggregate("count", None, "total_albums"),
            Aggregate("sum", "is_owned", "owned_count"),
            Aggregate("count_distinct", "artist_name", "unique_artists"),
            Aggregate("sum", "want_to_own", "sum(want_to_own)"),
        )

    def test_keywords_are_case_insensitive(self) -> None:
        stmt = parse_query("select * from music_collection where id = ? order by id desc;")
        assert isinstance(stmt, Select)
        assert stmt.where == (Compare("id", "=", Param(0)),)
        assert stmt.order == (("id", True),)

    def test_string_literal_unescapes_quotes(self) -> None:
        stmt = parse_query("SELECT * FROM music_collection WHERE artist_name = 'Guns N'' Roses'")
        assert isinstance(stmt, Select)
        assert stmt.where == (Compare("artist_name", "=", Literal("Guns N' Roses")),)

    def test_parse_is_cached(self) -> None:
        text = "SELECT * FROM music_collection WHERE id = ?"
        assert parse_query(text) is parse_query(text)


# =============================================================================
# Writes
# =============================================================================


class TestWrites:
    """Tests for INSERT / UPDATE / DELETE parsing."""

    def test_insert_with_columns(self) -> None:
        stmt = parse_query(
            "INSERT INTO music_collection (artist_name, album_name) VALUES (?, ?)"
        )
        assert stmt == Insert(
            table="music_collection",
            columns=("artist_name", "album_name"),
            values=(Param(0), Param(1)),
        )

    def test_insert_without_values(self) -> None:
        stmt = parse_query("INSERT INTO music_collection")
        assert stmt == Insert(table="music_collection")

    def test_insert_column_value_mismatch(self) -> None:
        with pytest.raises(UnrecognizedQueryError):
            parse_query("INSERT INTO music_collection (artist_name, album_name) VALUES (?)")

    def test_insert_rejects_store_managed_fields(self) -> None:
        with pytest.raises(UnrecognizedQueryError):
            parse_query("INSERT INTO music_collection (id, artist_name) VALUES (?, ?)")

    def test_update(self) -> None:
        stmt = parse_query(
            "UPDATE music_collection SET artist_name = ?, is_owned = ? WHERE id = ?"
        )
        assert stmt == Update(
            table="music_collection",
            assignments=(("artist_name", Param(0)), ("is_owned", Param(1))),
            id=Param(2),
        )

    def test_update_requires_id_predicate(self) -> None:
        with pytest.raises(UnrecognizedQueryError):
            parse_query("UPDATE music_collection SET artist_name = ? WHERE album_name = ?")

    def test_delete(self) -> None:
        stmt = parse_query("DELETE FROM music_collection WHERE id = ?")
        assert stmt == Delete(table="music_collection", id=Param(0))


# =============================================================================
# Rejections / helpers
# =============================================================================


class TestRejections:
    """Text outside the dialect is rejected."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "DROP TABLE music_collection",
            "SELECT * FROM music_collection WHERE release_year > 1990",
            "SELECT * FROM music_collection WHERE is_owned = 1 OR want_to_own = 1",
            "SELECT * FROM music_collection WHERE (is_owned = 1 OR want_to_own = 1)",
            "SELECT * FROM music_collection ORDER BY style",
            "SELECT DISTINCT * FROM music_collection",
            "SELECT DISTINCT artist_name, album_name FROM music_collection",
            "SELECT nope FROM music_collection",
            "SELECT * FROM music_collection LIMIT 5",
            "DELETE FROM music_collection",
        ],
    )
    def test_unrecognized(self, text: str) -> None:
        with pytest.raises(UnrecognizedQueryError):
            parse_query(text)

    def test_error_mentions_position(self) -> None:
        with pytest.raises(UnrecognizedQueryError, match="at 31"):
            parse_query("SELECT * FROM music_collection LIMIT 5")

    def test_tokenize_rejects_unknown_characters(self) -> None:
        with pytest.raises(UnrecognizedQueryError):
            tokenize("SELECT * FROM t WHERE a > 1")

    def test_leading_keyword(self) -> None:
        assert leading_keyword("  select * from t") == "select"
        assert leading_keyword("UPDATE t SET a = ?") == "update"
        assert leading_keyword("VACUUM") is None
        assert leading_keyword("") is None
