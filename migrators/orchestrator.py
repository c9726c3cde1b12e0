"""
Orquestador de la migración PostgreSQL → MongoDB.

Dos modos:
- Bulk: descubre todas las tablas del schema origen y las migra a
  colecciones del mismo nombre, con hasta concurrency_limit en paralelo.
- Single-table: migra un único par tabla origen → colección destino.

En ambos modos el setup del destino (base y colecciones) se hace antes de
lanzar cualquier tabla; un error ahí aborta la corrida. Una vez lanzadas,
las tablas son independientes: un FAILED queda en el resumen pero no
cancela al resto.

Ejemplo:
    orchestrator = MigrationOrchestrator(source, destination, concurrency_limit=4)
    summary = orchestrator.run()                      # bulk
    summary = orchestrator.run(TableSpec('a', 'b'))   # single-table
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional

from migrators.base import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONCURRENCY_LIMIT,
    DestinationStore,
    MigrationOutcome,
    MigrationSummary,
    ProgressEvent,
    SourceStore,
    TableSpec,
    TableState,
)
from migrators.chunks import ChunkReader, ChunkWriter
from migrators.errors import ErrorKind
from migrators.table import TableMigrator, log_progress
from migrators.validator import Validator

LOG = logging.getLogger(__name__)


class MigrationOrchestrator:
    """
    Args:
        source: Store de origen (conexión compartida por todas las tablas)
        destination: Store de destino (idem)
        chunk_size: Filas por chunk
        concurrency_limit: Máximo de tablas migrando a la vez
        stable_order: Paginar ordenando por primary key
        drop_existing: Eliminar colecciones destino antes de recrearlas
        on_progress: Callback por chunk escrito (None para silenciar)
    """

    def __init__(
        self,
        source: SourceStore,
        destination: DestinationStore,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        stable_order: bool = False,
        drop_existing: bool = False,
        on_progress: Optional[Callable[[ProgressEvent], None]] = log_progress,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size debe ser mayor a 0 (recibido {chunk_size})")
        if concurrency_limit <= 0:
            raise ValueError(
                f"concurrency_limit debe ser mayor a 0 (recibido {concurrency_limit})"
            )
        self.source = source
        self.destination = destination
        self.chunk_size = chunk_size
        self.concurrency_limit = concurrency_limit
        self.stable_order = stable_order
        self.drop_existing = drop_existing
        self.on_progress = on_progress
        self.validator = Validator(source, destination)
        self.remaining = 0
        self._lock = threading.Lock()
        self._closed = False

    def discover_tables(self) -> List[TableSpec]:
        """Lista las tablas origen como pares espejo (mismo nombre en destino)."""
        return [TableSpec.mirror(name) for name in self.source.list_tables()]

    def prepare_destination(self, tables: List[TableSpec]):
        """
        Crea la base destino y una colección vacía por tabla.

        Raises:
            DestinationSetupError: Fatal para toda la corrida
        """
        self.destination.ensure_database()
        for table in tables:
            if self.drop_existing:
                LOG.info("🗑️  Eliminando colección existente '%s'", table.dest_name)
                self.destination.drop_collection(table.dest_name)
            self.destination.create_collection(table.dest_name)

    def _build_migrator(self, table: TableSpec) -> TableMigrator:
        return TableMigrator(
            table=table,
            reader=ChunkReader(self.source, stable_order=self.stable_order),
            writer=ChunkWriter(self.destination),
            validator=self.validator,
            chunk_size=self.chunk_size,
            collection_ready=True,
            on_progress=self.on_progress,
        )

    def _table_finished(self, outcome: MigrationOutcome, total: int):
        with self._lock:
            self.remaining -= 1
            remaining = self.remaining
        position = f"[{total - remaining}/{total}]"

        if outcome.failed:
            LOG.error(
                "❌ %s %s FALLÓ (%s): %s",
                position,
                outcome.table,
                outcome.error.value,
                outcome.message,
            )
        elif outcome.mismatched:
            LOG.warning(
                "⚠️  %s %s migrada con diferencias: %s filas",
                position,
                outcome.table,
                f"{outcome.rows_migrated:,}",
            )
        else:
            LOG.info(
                "✅ %s %s completada: %s filas",
                position,
                outcome.table,
                f"{outcome.rows_migrated:,}",
            )

    def run_tables(self, tables: List[TableSpec]) -> MigrationSummary:
        """
        Migra las tablas dadas con concurrencia acotada.

        La colección destino de cada tabla debe existir (ver
        prepare_destination). Espera a que todas terminen.
        """
        summary = MigrationSummary()
        total = len(tables)
        with self._lock:
            self.remaining = total

        LOG.info(
            "📦 %d tabla(s), chunk de %s filas, hasta %d en paralelo",
            total,
            f"{self.chunk_size:,}",
            self.concurrency_limit,
        )

        with ThreadPoolExecutor(
            max_workers=self.concurrency_limit, thread_name_prefix="table"
        ) as executor:
            future_to_migrator = {}
            for table in tables:
                migrator = self._build_migrator(table)
                future_to_migrator[executor.submit(migrator.run)] = migrator

            for future in as_completed(future_to_migrator):
                migrator = future_to_migrator[future]
                table = migrator.table
                try:
                    outcome = future.result()
                except Exception as e:
                    # Aislar la tabla: el resto sigue en vuelo
                    LOG.exception("❌ %s: error inesperado", table)
                    outcome = MigrationOutcome(
                        table=table,
                        state=TableState.FAILED,
                        rows_migrated=migrator.rows_migrated,
                        error=ErrorKind.UNEXPECTED,
                        message=f"{type(e).__name__}: {e}",
                    )
                summary.outcomes.append(outcome)
                self._table_finished(outcome, total)

        return summary

    def run(self, table: Optional[TableSpec] = None) -> MigrationSummary:
        """
        Ejecuta la corrida completa y cierra las conexiones al terminar.

        Args:
            table: Par explícito para modo single-table; None = modo bulk

        Returns:
            MigrationSummary: Resultado por tabla

        Raises:
            DestinationSetupError: Si falla la creación de base/colecciones
            SourceQueryError: Si no se pueden listar las tablas (modo bulk)
        """
        try:
            if table is None:
                tables = self.discover_tables()
                if not tables:
                    LOG.warning(
                        "⚠️  No se encontraron tablas en el origen, nada para migrar"
                    )
            else:
                LOG.info("🎯 Modo single-table: %s", table)
                tables = [table]

            self.prepare_destination(tables)
            return self.run_tables(tables)
        finally:
            self.close()

    def close(self):
        """Cierra origen y destino. Llamadas repetidas no hacen nada."""
        if self._closed:
            return
        self._closed = True
        LOG.info("🔒 Cerrando conexiones...")
        try:
            self.source.close()
        finally:
            self.destination.close()


def summary_lines(summary: MigrationSummary) -> List[str]:
    """
    Arma una línea de cierre por tabla: filas migradas y si los conteos
    coinciden.

    Ejemplo:
        ✅ users: 3 filas migradas, conteos coinciden (3/3)
        ⚠️  logs: 1,000 filas migradas, conteos NO coinciden (PostgreSQL=1,000, MongoDB=995)
        ❌ events: FALLÓ tras 2,000 filas (dest_insert)
    """
    lines = []
    for outcome in sorted(summary.outcomes, key=lambda o: o.table.source_name):
        migrated = f"{outcome.rows_migrated:,}"
        validation = outcome.validation
        if outcome.failed:
            lines.append(f"❌ {outcome.table}: FALLÓ tras {migrated} filas ({outcome.error.value})")
        elif validation.ok:
            lines.append(
                f"✅ {outcome.table}: {migrated} filas migradas, conteos coinciden "
                f"({validation.source_count:,}/{validation.dest_count:,})"
            )
        else:
            lines.append(
                f"⚠️  {outcome.table}: {migrated} filas migradas, conteos NO coinciden "
                f"(PostgreSQL={validation.source_count:,}, MongoDB={validation.dest_count:,})"
            )
    return lines
