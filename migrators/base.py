"""
Módulo base del motor de migración PostgreSQL → MongoDB.

Define el modelo de datos compartido (TableSpec, MigrationCursor,
ValidationResult, MigrationOutcome) y la interfaz común (contrato) que
deben cumplir los stores de origen y destino. Esto permite que el motor
(chunks.py, table.py, validator.py, orchestrator.py) funcione sin conocer
los detalles del driver de cada base.

Patrón de diseño: Strategy Pattern
- MigrationOrchestrator / TableMigrator = Contexto
- SourceStore, DestinationStore = Estrategias abstractas
- PostgresSource, MongoDestination = Estrategias concretas

Flujo de uso:
1. El orquestador lista tablas con SourceStore.list_tables()
2. Crea colecciones con DestinationStore.create_collection()
3. Cada TableMigrator pagina con SourceStore.read_rows()
4. Inserta cada chunk con DestinationStore.insert_rows()
5. El Validator compara count_rows() contra count_documents()
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from migrators.errors import ErrorKind

# Un chunk es una lista de filas; cada fila es un dict columna → valor
Row = Dict[str, object]
Chunk = List[Row]

DEFAULT_CHUNK_SIZE = 1_000_000
DEFAULT_CONCURRENCY_LIMIT = 10


class TableState(Enum):
    INIT = "init"
    READING = "reading"
    WRITING = "writing"
    VALIDATING = "validating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class TableSpec:
    """
    Identifica una unidad de migración: tabla origen → colección destino.

    En modo bulk ambos nombres son iguales (ver mirror()). Solo difieren
    cuando se pide explícitamente un par en modo single-table.
    """

    source_name: str
    dest_name: str

    @classmethod
    def mirror(cls, name: str) -> "TableSpec":
        """
        Ejemplo:
            >>> TableSpec.mirror('users')
            TableSpec(source_name='users', dest_name='users')
        """
        return cls(source_name=name, dest_name=name)

    def __str__(self):
        if self.source_name == self.dest_name:
            return self.source_name
        return f"{self.source_name} → {self.dest_name}"


@dataclass
class MigrationCursor:
    """
    Estado de paginación de una tabla (offset/limit).

    Solo TableMigrator lo muta. El offset nunca retrocede y el cursor queda
    terminal cuando una lectura devuelve cero filas.
    """

    table: TableSpec
    chunk_size: int
    offset: int = 0
    exhausted: bool = False

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size debe ser > 0 (recibido {self.chunk_size})")
        if self.offset < 0:
            raise ValueError(f"offset debe ser >= 0 (recibido {self.offset})")

    def advance(self):
        if self.exhausted:
            raise RuntimeError(f"Cursor de '{self.table}' ya está agotado")
        self.offset += self.chunk_size

    def exhaust(self):
        self.exhausted = True


@dataclass(frozen=True)
class ValidationResult:
    table: TableSpec
    source_count: int
    dest_count: int

    @property
    def ok(self) -> bool:
        return self.source_count == self.dest_count


@dataclass(frozen=True)
class ProgressEvent:
    """Notificación emitida tras cada chunk escrito con éxito."""

    table: TableSpec
    inserted: int
    total: int
    offset: int


@dataclass(frozen=True)
class MigrationOutcome:
    """
    Resultado final de una tabla. Se construye una sola vez, cuando el
    TableMigrator termina (DONE o FAILED).

    Attributes:
        rows_migrated: Filas aceptadas por el destino (suma de inserts)
        validation: None si la tabla falló antes de validar
        error: Tipo de error; VALIDATION_MISMATCH con state DONE indica
               que la copia terminó pero los conteos no coinciden
        message: Detalle del error, si hubo
    """

    table: TableSpec
    state: TableState
    rows_migrated: int = 0
    validation: Optional[ValidationResult] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.state is TableState.FAILED

    @property
    def mismatched(self) -> bool:
        return self.validation is not None and not self.validation.ok


@dataclass
class MigrationSummary:
    """Agregado de resultados de una corrida completa."""

    outcomes: List[MigrationOutcome] = field(default_factory=list)

    @property
    def done(self) -> List[MigrationOutcome]:
        return [o for o in self.outcomes if o.state is TableState.DONE]

    @property
    def failed(self) -> List[MigrationOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def mismatched(self) -> List[MigrationOutcome]:
        return [o for o in self.outcomes if o.mismatched]

    @property
    def rows_migrated(self) -> int:
        return sum(o.rows_migrated for o in self.outcomes)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.mismatched


class SourceStore(ABC):
    """
    Interfaz del origen relacional.

    Las implementaciones deben ser seguras para uso concurrente desde
    varios hilos (una tabla por hilo) y traducir los errores del driver a
    SourceQueryError.
    """

    @abstractmethod
    def list_tables(self) -> List[str]:
        """
        Lista las tablas de la base origen.

        Returns:
            list: Nombres de tabla, en orden estable
        """
        pass

    @abstractmethod
    def read_rows(
        self, table: str, offset: int, limit: int, order_by: Sequence[str] = ()
    ) -> Chunk:
        """
        Lee un rango de filas con semántica LIMIT/OFFSET.

        Args:
            table: Nombre de la tabla origen
            offset: Filas a saltear
            limit: Máximo de filas a devolver
            order_by: Columnas de orden; vacío = orden implícito del origen

        Returns:
            list: Filas como dict planos (sin metadata del driver).
                  Lista vacía cuando offset >= cantidad de filas.

        Raises:
            SourceQueryError: Si la consulta falla
        """
        pass

    @abstractmethod
    def count_rows(self, table: str) -> int:
        """Cuenta filas de la tabla. Lanza SourceQueryError si falla."""
        pass

    @abstractmethod
    def primary_key_columns(self, table: str) -> List[str]:
        """
        Columnas de la primary key, en orden. Lista vacía si no tiene.

        Se usa para paginar con orden estable (--stable-order).
        """
        pass

    @abstractmethod
    def close(self):
        pass


class DestinationStore(ABC):
    """
    Interfaz del destino documental.

    Las implementaciones deben ser seguras para uso concurrente y traducir
    errores del driver a DestinationSetupError, DestInsertError o
    DestQueryError según la operación.
    """

    @abstractmethod
    def ensure_database(self) -> bool:
        """
        Crea la base destino si no existe (idempotente).

        Returns:
            bool: True si la base no existía
        """
        pass

    @abstractmethod
    def create_collection(self, name: str) -> bool:
        """
        Crea una colección vacía (idempotente).

        Returns:
            bool: True si se creó, False si ya existía
        """
        pass

    @abstractmethod
    def drop_collection(self, name: str):
        pass

    @abstractmethod
    def insert_rows(self, name: str, rows: Chunk) -> int:
        """
        Inserta un chunk completo en una sola operación masiva.

        Sin upsert: cada fila es un documento nuevo.

        Returns:
            int: Cantidad de documentos aceptados

        Raises:
            DestInsertError: Si el insert masivo falla
        """
        pass

    @abstractmethod
    def count_documents(self, name: str) -> int:
        """Cuenta documentos. Lanza DestQueryError si falla."""
        pass

    @abstractmethod
    def close(self):
        pass
