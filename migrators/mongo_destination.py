"""
Destino MongoDB del motor de migración.

Implementa DestinationStore sobre un MongoClient (thread-safe, con pool
interno), compartido por todas las tablas que se migran en paralelo.

Cada tabla PostgreSQL se vuelca en una colección del mismo nombre (modo
bulk) y cada fila pasa a ser un documento nuevo vía insert_many. No hay
upsert: volver a migrar sobre una colección con datos duplica documentos.

Los valores que BSON no sabe codificar (Decimal, date, time, timedelta,
memoryview) se convierten con un fallback_encoder del TypeRegistry (un
Decimal que no entra exacto en Decimal128 se guarda como string); los
UUID se guardan como binario estándar (subtipo 4). Es
solo codificación: nombres de campo y estructura no se tocan.
"""

import datetime
import logging
from decimal import Decimal, DecimalException
from typing import List

from bson.binary import UuidRepresentation
from bson.codec_options import CodecOptions, TypeRegistry
from bson.decimal128 import Decimal128
from bson.errors import InvalidDocument
from pymongo import MongoClient
from pymongo.errors import (
    BulkWriteError,
    CollectionInvalid,
    ConfigurationError,
    ConnectionFailure,
    PyMongoError,
)

from migrators.base import Chunk, DestinationStore
from migrators.errors import (
    DestinationSetupError,
    DestInsertError,
    DestQueryError,
    MigrationConnectionError,
)

LOG = logging.getLogger(__name__)


def _fallback_encoder(value):
    if isinstance(value, Decimal):
        try:
            return Decimal128(value)
        except DecimalException:
            # Más de 34 dígitos significativos: Decimal128 no es exacto
            return str(value)
    if isinstance(value, datetime.date):
        # datetime.datetime ya es nativo de BSON; acá solo llegan fechas puras
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, (datetime.time, datetime.timedelta)):
        return str(value)
    if isinstance(value, memoryview):
        return bytes(value)
    return value


CODEC_OPTIONS = CodecOptions(
    type_registry=TypeRegistry(fallback_encoder=_fallback_encoder),
    uuid_representation=UuidRepresentation.STANDARD,
)


class MongoDestination(DestinationStore):
    """
    Attributes:
        client: MongoClient compartido
        database_name (str): Base destino
        db: Handle de la base con CODEC_OPTIONS aplicadas
    """

    def __init__(self, client, database_name: str):
        self.client = client
        self.database_name = database_name
        self.db = client.get_database(database_name, codec_options=CODEC_OPTIONS)
        self._closed = False

    @classmethod
    def connect(
        cls, uri: str, database_name: str, server_selection_timeout_ms: int = 5000
    ) -> "MongoDestination":
        """
        Conecta a MongoDB y hace ping al servidor.

        Raises:
            MigrationConnectionError: Si no puede conectar, la URI es inválida
                o no se indicó base destino
        """
        if not database_name:
            raise MigrationConnectionError("No se indicó base destino (DEST_DB)")
        LOG.info("🔌 Conectando a MongoDB %s...", uri)
        try:
            client = MongoClient(uri, serverSelectionTimeoutMS=server_selection_timeout_ms)
            client.admin.command("ping")
        except (ConnectionFailure, ConfigurationError) as e:
            raise MigrationConnectionError(f"Error de conexión a MongoDB: {e}") from e
        LOG.info("✅ Conexión a MongoDB exitosa")
        return cls(client, database_name)

    def ensure_database(self) -> bool:
        try:
            existing = self.database_name in self.client.list_database_names()
        except PyMongoError as e:
            raise DestinationSetupError(
                f"Error verificando base '{self.database_name}': {e}"
            ) from e
        if not existing:
            # MongoDB crea la base junto con su primera colección
            LOG.info("🆕 Base '%s' no existe, se crea con la primera colección", self.database_name)
        return not existing

    def create_collection(self, name: str) -> bool:
        try:
            self.db.create_collection(name)
        except CollectionInvalid:
            return False
        except PyMongoError as e:
            raise DestinationSetupError(f"Error creando colección '{name}': {e}", name) from e
        return True

    def drop_collection(self, name: str):
        try:
            self.db.drop_collection(name)
        except PyMongoError as e:
            raise DestinationSetupError(f"Error eliminando colección '{name}': {e}", name) from e

    def drop_database(self):
        try:
            self.client.drop_database(self.database_name)
        except PyMongoError as e:
            raise DestinationSetupError(
                f"Error eliminando base '{self.database_name}': {e}"
            ) from e

    def list_collections(self) -> List[str]:
        try:
            return sorted(self.db.list_collection_names())
        except PyMongoError as e:
            raise DestQueryError(f"Error listando colecciones: {e}") from e

    def insert_rows(self, name: str, rows: Chunk) -> int:
        if not rows:
            return 0
        try:
            result = self.db[name].insert_many(rows, ordered=True)
        except BulkWriteError as e:
            inserted = e.details.get("nInserted", 0)
            raise DestInsertError(
                f"Insert masivo en '{name}' falló tras {inserted:,} documentos: "
                f"{e.details.get('writeErrors', [])[:1]}",
                name,
            ) from e
        except (PyMongoError, InvalidDocument) as e:
            raise DestInsertError(f"Insert masivo en '{name}' falló: {e}", name) from e
        return len(result.inserted_ids)

    def count_documents(self, name: str) -> int:
        try:
            return self.db[name].count_documents({})
        except PyMongoError as e:
            raise DestQueryError(f"Error contando documentos de '{name}': {e}", name) from e

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.client.close()
