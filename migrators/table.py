"""
Migración de una tabla completa.

TableMigrator es una máquina de estados explícita:

    INIT → READING → WRITING → READING → ... → VALIDATING → DONE
                 ↘           ↘                          ↘
                  FAILED      FAILED                     FAILED

- INIT: crea la colección destino (salvo que el orquestador ya lo hizo)
- READING: lee el chunk en el offset actual; vacío → VALIDATING
- WRITING: insert masivo; avanza offset en chunk_size y notifica progreso
- VALIDATING: compara conteos; un mismatch se reporta pero termina en DONE
- FAILED: terminal, solo afecta a esta tabla

El loop de lectura/escritura es secuencial: el chunk N se confirma antes
de leer el N+1, así cada tabla tiene como máximo un chunk en memoria.
"""

import logging
from typing import Callable, Optional

from migrators.base import (
    MigrationCursor,
    MigrationOutcome,
    ProgressEvent,
    TableSpec,
    TableState,
)
from migrators.chunks import ChunkReader, ChunkWriter
from migrators.errors import ErrorKind, MigrationError
from migrators.validator import Validator

LOG = logging.getLogger(__name__)


def log_progress(event: ProgressEvent):
    """Callback de progreso por defecto: una línea INFO por chunk."""
    LOG.info(
        "⏳ %s: +%s documentos (total %s)",
        event.table,
        f"{event.inserted:,}",
        f"{event.total:,}",
    )


class TableMigrator:
    """
    Args:
        table: Par tabla origen → colección destino
        reader: ChunkReader de esta tabla
        writer: ChunkWriter de esta tabla
        validator: Validator compartido
        chunk_size: Filas por chunk
        collection_ready: True si el llamador ya creó la colección
        on_progress: Callback por cada chunk escrito
    """

    def __init__(
        self,
        table: TableSpec,
        reader: ChunkReader,
        writer: ChunkWriter,
        validator: Validator,
        chunk_size: int,
        collection_ready: bool = False,
        on_progress: Optional[Callable[[ProgressEvent], None]] = log_progress,
    ):
        self.table = table
        self.reader = reader
        self.writer = writer
        self.validator = validator
        self.collection_ready = collection_ready
        self.on_progress = on_progress
        self.cursor = MigrationCursor(table=table, chunk_size=chunk_size)
        self.state = TableState.INIT
        self.rows_migrated = 0

    def _transition(self, state: TableState):
        LOG.debug("%s: %s → %s", self.table, self.state.name, state.name)
        self.state = state

    def _fail(self, error: MigrationError):
        self._transition(TableState.FAILED)
        LOG.error("❌ %s: %s", self.table, error)
        return MigrationOutcome(
            table=self.table,
            state=TableState.FAILED,
            rows_migrated=self.rows_migrated,
            error=error.kind,
            message=str(error),
        )

    def run(self) -> MigrationOutcome:
        """
        Ejecuta la migración completa de la tabla.

        Los MigrationError terminan en un outcome FAILED; cualquier otra
        excepción se propaga al orquestador.

        Returns:
            MigrationOutcome: Resultado final (DONE o FAILED)
        """
        LOG.info("🚚 Iniciando migración de '%s'", self.table)

        if not self.collection_ready:
            try:
                self.writer.prepare(self.table.dest_name)
            except MigrationError as e:
                return self._fail(e)

        while True:
            self._transition(TableState.READING)
            try:
                chunk = self.reader.read(self.table, self.cursor.offset, self.cursor.chunk_size)
            except MigrationError as e:
                return self._fail(e)

            if not chunk:
                self.cursor.exhaust()
                break

            self._transition(TableState.WRITING)
            try:
                inserted = self.writer.write(self.table.dest_name, chunk)
            except MigrationError as e:
                return self._fail(e)

            self.rows_migrated += inserted
            offset = self.cursor.offset
            self.cursor.advance()
            if self.on_progress is not None:
                self.on_progress(
                    ProgressEvent(
                        table=self.table,
                        inserted=inserted,
                        total=self.rows_migrated,
                        offset=offset,
                    )
                )

        self._transition(TableState.VALIDATING)
        try:
            validation = self.validator.compare(self.table)
        except MigrationError as e:
            return self._fail(e)

        self._transition(TableState.DONE)
        return MigrationOutcome(
            table=self.table,
            state=TableState.DONE,
            rows_migrated=self.rows_migrated,
            validation=validation,
            error=None if validation.ok else ErrorKind.VALIDATION_MISMATCH,
        )
