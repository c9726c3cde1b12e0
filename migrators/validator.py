"""
Validación post-migración: compara filas en origen contra documentos en
destino para una tabla.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from migrators.base import DestinationStore, SourceStore, TableSpec, ValidationResult

LOG = logging.getLogger(__name__)


class Validator:
    def __init__(self, source: SourceStore, destination: DestinationStore):
        self.source = source
        self.destination = destination

    def compare(self, table: TableSpec) -> ValidationResult:
        """
        Cuenta en origen y destino en paralelo y compara.

        Debe llamarse cuando todos los writes de la tabla ya fueron
        confirmados; no hay muestreo a mitad de migración.

        Raises:
            SourceQueryError: Si falla el conteo en PostgreSQL
            DestQueryError: Si falla el conteo en MongoDB
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="count") as pool:
            source_future = pool.submit(self.source.count_rows, table.source_name)
            dest_future = pool.submit(self.destination.count_documents, table.dest_name)
            source_count = source_future.result()
            dest_count = dest_future.result()

        result = ValidationResult(table=table, source_count=source_count, dest_count=dest_count)
        if result.ok:
            LOG.info("✅ %s: %s filas coinciden", table, f"{source_count:,}")
        else:
            LOG.warning(
                "⚠️  %s: conteos NO coinciden (PostgreSQL=%s, MongoDB=%s)",
                table,
                f"{source_count:,}",
                f"{dest_count:,}",
            )
        return result
