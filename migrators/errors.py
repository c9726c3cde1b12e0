"""
Tipos de error del motor de migración PostgreSQL → MongoDB.

Todos heredan de MigrationError y llevan un ErrorKind, que es lo que
termina guardado en MigrationOutcome. La severidad depende del tipo:

- CONNECTION, DEST_SETUP (en el orquestador): fatales para toda la corrida
- SOURCE_QUERY, DEST_INSERT, DEST_QUERY: fatales solo para su tabla
- VALIDATION_MISMATCH: diagnóstico, la copia ya se completó
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    CONNECTION = "connection"
    DEST_SETUP = "dest_setup"
    SOURCE_QUERY = "source_query"
    DEST_INSERT = "dest_insert"
    DEST_QUERY = "dest_query"
    VALIDATION_MISMATCH = "validation_mismatch"
    UNEXPECTED = "unexpected"


class MigrationError(Exception):
    """
    Error base del motor.

    Args:
        message: Descripción legible del error
        table: Tabla/colección afectada (None si es un error global)
    """

    kind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.table = table


class MigrationConnectionError(MigrationError):
    """No se pudo conectar al origen o al destino. Aborta la corrida."""

    kind = ErrorKind.CONNECTION


class DestinationSetupError(MigrationError):
    """Falló la creación de la base o de una colección destino."""

    kind = ErrorKind.DEST_SETUP


class SourceQueryError(MigrationError):
    """Falló una lectura o un conteo en PostgreSQL."""

    kind = ErrorKind.SOURCE_QUERY


class DestInsertError(MigrationError):
    """Falló el insert masivo de un chunk en MongoDB."""

    kind = ErrorKind.DEST_INSERT


class DestQueryError(MigrationError):
    """Falló el conteo de documentos en MongoDB."""

    kind = ErrorKind.DEST_QUERY
