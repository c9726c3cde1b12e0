"""
Origen PostgreSQL del motor de migración.

Implementa SourceStore sobre un ThreadedConnectionPool de psycopg2: cada
tabla que se migra en paralelo toma una conexión del pool solo durante
la consulta y la devuelve enseguida.

Las filas se leen con RealDictCursor y se convierten a dict plano antes de
entregarlas, así el destino nunca recibe tipos propios del driver.

LIMITACIÓN CONOCIDA:
    Sin order_by la paginación LIMIT/OFFSET depende de que PostgreSQL
    devuelva el mismo orden en lecturas sucesivas de una tabla sin cambios.
    Con escrituras concurrentes en el origen pueden saltearse o duplicarse
    filas entre chunks. Usar --stable-order para ordenar por primary key.
"""

import logging
from contextlib import contextmanager
from typing import List, Sequence

import psycopg2
from psycopg2 import sql
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from migrators.base import DEFAULT_CONCURRENCY_LIMIT, Chunk, SourceStore
from migrators.errors import MigrationConnectionError, SourceQueryError

LOG = logging.getLogger(__name__)

CONNECT_TIMEOUT_S = 5


class PostgresSource(SourceStore):
    """
    Attributes:
        pool: Pool de conexiones psycopg2 compartido por todos los hilos
        schema (str): Schema PostgreSQL donde viven las tablas a migrar
    """

    def __init__(self, pool, schema: str = "public"):
        self.pool = pool
        self.schema = schema
        self._closed = False

    @classmethod
    def connect(
        cls,
        source_config: dict,
        schema: str = "public",
        max_connections: int = DEFAULT_CONCURRENCY_LIMIT + 1,
    ) -> "PostgresSource":
        """
        Abre el pool de conexiones y verifica que el servidor responda.

        Args:
            source_config: kwargs de psycopg2.connect() (ver config.py)
            schema: Schema a migrar
            max_connections: Tope del pool; una por tabla en vuelo + margen

        Raises:
            MigrationConnectionError: Si no puede conectar
        """
        LOG.info(
            "🔌 Conectando a PostgreSQL %s:%s/%s...",
            source_config.get("host"),
            source_config.get("port"),
            source_config.get("dbname"),
        )
        try:
            pool = ThreadedConnectionPool(
                1, max_connections, connect_timeout=CONNECT_TIMEOUT_S, **source_config
            )
        except psycopg2.Error as e:
            raise MigrationConnectionError(f"Error de conexión a PostgreSQL: {e}") from e
        LOG.info("✅ Conexión a PostgreSQL exitosa (pool máx. %d)", max_connections)
        return cls(pool, schema=schema)

    @contextmanager
    def _cursor(self, cursor_factory=None):
        conn = self.pool.getconn()
        try:
            # Solo lecturas: autocommit evita transacciones abiertas en el pool
            conn.autocommit = True
            with conn.cursor(cursor_factory=cursor_factory) as cur:
                yield cur
        finally:
            self.pool.putconn(conn)

    def _table(self, table: str):
        return sql.Identifier(self.schema, table)

    def list_tables(self) -> List[str]:
        try:
            with self._cursor() as cur:
                cur.execute(
                    """
                    SELECT table_name
                    FROM information_schema.tables
                    WHERE table_schema = %s AND table_type = 'BASE TABLE'
                    ORDER BY table_name
                    """,
                    (self.schema,),
                )
                tables = [row[0] for row in cur.fetchall()]
        except psycopg2.Error as e:
            raise SourceQueryError(
                f"Error listando tablas del schema '{self.schema}': {e}"
            ) from e
        LOG.debug("Tablas en %s: %s", self.schema, tables)
        return tables

    def read_rows(
        self, table: str, offset: int, limit: int, order_by: Sequence[str] = ()
    ) -> Chunk:
        query = sql.SQL("SELECT * FROM {}").format(self._table(table))
        if order_by:
            query += sql.SQL(" ORDER BY {}").format(
                sql.SQL(", ").join(sql.Identifier(col) for col in order_by)
            )
        query += sql.SQL(" LIMIT %s OFFSET %s")

        try:
            with self._cursor(RealDictCursor) as cur:
                cur.execute(query, (limit, offset))
                rows = cur.fetchall()
        except psycopg2.Error as e:
            raise SourceQueryError(
                f"Error leyendo '{table}' (offset {offset:,}): {e}", table
            ) from e
        # En el lugar: cada RealDictRow se libera al reemplazarla
        for i, row in enumerate(rows):
            rows[i] = dict(row)
        return rows

    def count_rows(self, table: str) -> int:
        query = sql.SQL("SELECT COUNT(*) FROM {}").format(self._table(table))
        try:
            with self._cursor() as cur:
                cur.execute(query)
                return int(cur.fetchone()[0])
        except psycopg2.Error as e:
            raise SourceQueryError(f"Error contando filas de '{table}': {e}", table) from e

    def primary_key_columns(self, table: str) -> List[str]:
        try:
            with self._cursor() as cur:
                cur.execute(
                    """
                    SELECT kcu.column_name
                    FROM information_schema.table_constraints tc
                    JOIN information_schema.key_column_usage kcu
                      ON tc.constraint_name = kcu.constraint_name
                     AND tc.table_schema    = kcu.table_schema
                    WHERE tc.constraint_type = 'PRIMARY KEY'
                      AND tc.table_schema = %s
                      AND tc.table_name   = %s
                    ORDER BY kcu.ordinal_position
                    """,
                    (self.schema, table),
                )
                return [row[0] for row in cur.fetchall()]
        except psycopg2.Error as e:
            raise SourceQueryError(
                f"Error obteniendo primary key de '{table}': {e}", table
            ) from e

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.pool.closeall()
