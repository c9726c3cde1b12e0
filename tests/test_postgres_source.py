"""
Tests de PostgresSource sin servidor real.

El pool de psycopg2 se reemplaza por MagicMock; se valida la composición
de consultas (psycopg2.sql), los parámetros LIMIT/OFFSET, la conversión de
filas a dict plano y la traducción de errores del driver.
"""

import sys
import os
from unittest import mock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import psycopg2
from psycopg2 import sql

from migrators.errors import MigrationConnectionError, SourceQueryError
from migrators.postgres_source import PostgresSource
from tests.helpers import run_standalone


class DriverRow(dict):
    """Simula RealDictRow: un dict con tipo propio del driver."""


def make_source(rows=None, execute_error=None, schema="public"):
    pool = mock.MagicMock()
    conn = pool.getconn.return_value
    cur = conn.cursor.return_value.__enter__.return_value
    cur.fetchall.return_value = rows or []
    if execute_error is not None:
        cur.execute.side_effect = execute_error
    return PostgresSource(pool, schema=schema), pool, conn, cur


def flatten(composable):
    """Recorre un sql.Composed y devuelve sus hojas (SQL, Identifier, ...)."""
    if isinstance(composable, sql.Composed):
        leaves = []
        for part in composable.seq:
            leaves.extend(flatten(part))
        return leaves
    return [composable]


def sql_text(query):
    return "".join(leaf.string for leaf in flatten(query) if isinstance(leaf, sql.SQL))


def identifiers(query):
    return [leaf.strings for leaf in flatten(query) if isinstance(leaf, sql.Identifier)]


def test_read_rows_returns_plain_dicts():
    print("\n🔍 Test 1: read_rows devuelve dict planos")

    source, pool, conn, cur = make_source(rows=[DriverRow(id=1), DriverRow(id=2)])
    chunk = source.read_rows("users", 0, 1000)

    assert chunk == [{"id": 1}, {"id": 2}]
    assert all(type(row) is dict for row in chunk)
    # Conversión en el lugar: no se arma una segunda lista del chunk
    assert chunk is cur.fetchall.return_value
    pool.putconn.assert_called_once_with(conn)
    assert conn.autocommit is True
    print("   ✅ metadata del driver removida")


def test_read_rows_query_and_params():
    print("\n🔍 Test 2: LIMIT/OFFSET sin ORDER BY por defecto")

    source, _, _, cur = make_source(schema="ventas")
    source.read_rows("events", 2_000_000, 1_000_000)

    query, params = cur.execute.call_args[0]
    assert params == (1_000_000, 2_000_000)
    assert ("ventas", "events") in identifiers(query)
    text = sql_text(query)
    assert "LIMIT %s OFFSET %s" in text
    assert "ORDER BY" not in text
    print(f"   ✅ {text.strip()}")


def test_read_rows_with_order_by():
    print("\n🔍 Test 3: ORDER BY por columnas de primary key")

    source, _, _, cur = make_source()
    source.read_rows("orders", 0, 10, order_by=["tenant", "id"])

    query, _ = cur.execute.call_args[0]
    assert "ORDER BY" in sql_text(query)
    assert ("tenant",) in identifiers(query)
    assert ("id",) in identifiers(query)
    print("   ✅ ORDER BY compuesto")


def test_driver_errors_become_source_query_error():
    print("\n🔍 Test 4: psycopg2.Error → SourceQueryError")

    source, pool, conn, _ = make_source(execute_error=psycopg2.OperationalError("timeout"))

    for call in (
        lambda: source.read_rows("users", 0, 10),
        lambda: source.count_rows("users"),
        lambda: source.primary_key_columns("users"),
    ):
        try:
            call()
            assert False, "Debería lanzar SourceQueryError"
        except SourceQueryError as e:
            assert e.table == "users"
            assert isinstance(e.__cause__, psycopg2.OperationalError)

    try:
        source.list_tables()
        assert False, "Debería lanzar SourceQueryError"
    except SourceQueryError:
        pass

    # La conexión vuelve al pool aunque falle la consulta
    assert pool.putconn.call_count == 4
    print("   ✅ errores traducidos y conexiones devueltas")


def test_count_and_metadata_queries():
    print("\n🔍 Test 5: count_rows / list_tables / primary_key_columns")

    source, _, _, cur = make_source(rows=[("id",), ("tenant",)])
    cur.fetchone.return_value = (42,)

    assert source.count_rows("users") == 42
    assert source.list_tables() == ["id", "tenant"]
    assert source.primary_key_columns("users") == ["id", "tenant"]

    _, params = cur.execute.call_args[0]
    assert params == ("public", "users")
    print("   ✅ consultas auxiliares")


def test_connect_failure_and_close():
    print("\n🔍 Test 6: connect() y close()")

    with mock.patch(
        "migrators.postgres_source.ThreadedConnectionPool",
        side_effect=psycopg2.OperationalError("refused"),
    ):
        try:
            PostgresSource.connect({"host": "nowhere", "port": "1", "dbname": "x"})
            assert False, "Debería lanzar MigrationConnectionError"
        except MigrationConnectionError as e:
            assert "refused" in str(e)

    with mock.patch("migrators.postgres_source.ThreadedConnectionPool") as pool_class:
        source = PostgresSource.connect({"host": "db", "dbname": "x"}, max_connections=5)
        args, kwargs = pool_class.call_args
        assert args == (1, 5)
        assert kwargs["host"] == "db"

    source.close()
    source.close()
    source.pool.closeall.assert_called_once_with()
    print("   ✅ error de conexión y cierre idempotente")


if __name__ == "__main__":
    run_standalone(
        [
            test_read_rows_returns_plain_dicts,
            test_read_rows_query_and_params,
            test_read_rows_with_order_by,
            test_driver_errors_become_source_query_error,
            test_count_and_metadata_queries,
            test_connect_failure_and_close,
        ]
    )
