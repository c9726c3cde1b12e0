"""
Lectura y escritura de chunks.

ChunkReader pagina una tabla origen con LIMIT/OFFSET; ChunkWriter vuelca
cada chunk en su colección con un único insert masivo. Ninguno guarda
estado entre tablas: el TableMigrator crea un par por tabla.
"""

import logging
from typing import List, Optional

from migrators.base import Chunk, DestinationStore, SourceStore, TableSpec

LOG = logging.getLogger(__name__)


class ChunkReader:
    """
    Args:
        source: Store de origen
        stable_order: Si es True ordena cada página por la primary key
    """

    def __init__(self, source: SourceStore, stable_order: bool = False):
        self.source = source
        self.stable_order = stable_order
        self._order_by: Optional[List[str]] = None

    def _resolve_order(self, table: TableSpec) -> List[str]:
        if self._order_by is None:
            if not self.stable_order:
                self._order_by = []
            else:
                self._order_by = self.source.primary_key_columns(table.source_name)
                if not self._order_by:
                    LOG.warning(
                        "⚠️  '%s' no tiene primary key: se pagina sin orden explícito",
                        table.source_name,
                    )
        return self._order_by

    def read(self, table: TableSpec, offset: int, chunk_size: int) -> Chunk:
        """
        Lee la ventana [offset, offset + chunk_size) de la tabla.

        Returns:
            list: Filas leídas; vacía cuando la tabla se agotó

        Raises:
            SourceQueryError: Si la consulta falla
        """
        order_by = self._resolve_order(table)
        chunk = self.source.read_rows(table.source_name, offset, chunk_size, order_by)
        LOG.debug("📥 %s: %d filas desde offset %d", table.source_name, len(chunk), offset)
        return chunk


class ChunkWriter:
    def __init__(self, destination: DestinationStore):
        self.destination = destination

    def prepare(self, dest_table: str) -> bool:
        """Crea la colección destino vacía. Devuelve True si no existía."""
        created = self.destination.create_collection(dest_table)
        if created:
            LOG.debug("🆕 Colección '%s' creada", dest_table)
        return created

    def write(self, dest_table: str, chunk: Chunk) -> int:
        """
        Inserta el chunk completo en una sola operación.

        El chunk se vacía al terminar, haya funcionado o no, para liberar
        las filas antes de leer el siguiente.

        Returns:
            int: Documentos aceptados por el destino

        Raises:
            DestInsertError: Si el insert masivo falla
        """
        try:
            return self.destination.insert_rows(dest_table, chunk)
        finally:
            chunk.clear()
