from pathlib import Path

from src.attendance_sync.attendance_sync.database.bootstrap import iter_sql_statements, strip_create_db_and_use

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_schema_file_has_a_single_table_once_database_lines_are_stripped():
    sql = strip_create_db_and_use(SCHEMA.read_text(encoding="utf-8"))

    statements = list(iter_sql_statements(sql))

    assert len(statements) == 1
    assert statements[0].startswith("CREATE TABLE IF NOT EXISTS attendance")
    assert "USE " not in sql


def test_semicolons_inside_quotes_do_not_split():
    sql = "-- seed\nINSERT INTO t VALUES ('a;b');\nINSERT INTO t VALUES (\"c\");"

    assert list(iter_sql_statements(sql)) == ["INSERT INTO t VALUES ('a;b')", 'INSERT INTO t VALUES ("c")']


def test_trailing_statement_without_semicolon_is_kept():
    assert list(iter_sql_statements("SELECT 1;\nSELECT 2")) == ["SELECT 1", "SELECT 2"]
