"""
Configuración centralizada para el sistema de migración PostgreSQL → MongoDB.

ARQUITECTURA:
- Origen: PostgreSQL, se lee tabla por tabla en chunks LIMIT/OFFSET
- Destino: MongoDB, una colección por tabla (mismo nombre en modo bulk)

Todos los valores por defecto salen de variables de entorno (archivo .env).
Los flags de pgmigra.py tienen prioridad sobre el entorno.

USO DE LAS FUNCIONES HELPER:
    # Conexión PostgreSQL con overrides de CLI
    source = build_source_config(host='db1', database='ventas')
    conn = psycopg2.connect(**source)

    # URI de MongoDB
    uri = build_mongo_uri(build_dest_config(port=27018))

    # Modo single-table
    table = resolve_table_pair('users', 'usuarios')
"""

import os
from dotenv import load_dotenv

from migrators.base import DEFAULT_CHUNK_SIZE, DEFAULT_CONCURRENCY_LIMIT, TableSpec

# Carga las variables del archivo .env en las variables de entorno del sistema
load_dotenv(override=True)

# --- Configuración de PostgreSQL (Origen) ---
SOURCE_CONFIG = {
    "host": os.getenv("SOURCE_HOST") or "localhost",
    "port": os.getenv("SOURCE_PORT") or "5432",
    "user": os.getenv("SOURCE_USER") or "",
    "password": os.getenv("SOURCE_PASSWORD") or "",
    "dbname": os.getenv("SOURCE_DB") or "",
}
SOURCE_SCHEMA = os.getenv("SOURCE_SCHEMA") or "public"

# --- Configuración de MongoDB (Destino) ---
DEST_CONFIG = {
    "host": os.getenv("DEST_HOST") or "localhost",
    "port": os.getenv("DEST_PORT") or "27017",
    "dbname": os.getenv("DEST_DB") or "",
}
SERVER_SELECTION_TIMEOUT_MS = 5000

# --- Configuración de Migración ---
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE") or DEFAULT_CHUNK_SIZE)  # Filas por lectura/insert
CONCURRENCY_LIMIT = int(
    os.getenv("CONCURRENCY_LIMIT") or DEFAULT_CONCURRENCY_LIMIT
)  # Tablas en paralelo


# --- Funciones Helper ---


def build_source_config(
    host=None, port=None, user=None, password=None, database=None
) -> dict:
    """
    Combina los valores de SOURCE_CONFIG con overrides explícitos.

    Los argumentos en None conservan el valor del entorno.

    Returns:
        dict: kwargs listos para psycopg2.connect()

    Ejemplo:
        >>> cfg = build_source_config(host='db1', port=6543)
        >>> cfg['host'], cfg['port']
        ('db1', '6543')
    """
    overrides = {
        "host": host,
        "port": port,
        "user": user,
        "password": password,
        "dbname": database,
    }
    cfg = dict(SOURCE_CONFIG)
    for key, value in overrides.items():
        if value is not None:
            cfg[key] = str(value)
    return cfg


def build_dest_config(host=None, port=None, database=None) -> dict:
    """
    Combina DEST_CONFIG con overrides explícitos.

    Ejemplo:
        >>> build_dest_config(database='archivo')['dbname']
        'archivo'
    """
    cfg = dict(DEST_CONFIG)
    for key, value in (("host", host), ("port", port), ("dbname", database)):
        if value is not None:
            cfg[key] = str(value)
    return cfg


def build_mongo_uri(dest_config: dict) -> str:
    """
    Construye la URI de conexión a MongoDB (sin credenciales).

    Ejemplo:
        >>> build_mongo_uri({'host': 'mongo', 'port': '27017', 'dbname': 'x'})
        'mongodb://mongo:27017/?directConnection=true'
    """
    return (
        f"mongodb://{dest_config['host']}:{dest_config['port']}/"
        f"?directConnection=true"
    )


def resolve_table_pair(source_table=None, dest_table=None):
    """
    Determina si la corrida es single-table y con qué par de nombres.

    Args:
        source_table: Tabla origen pedida (--source-table)
        dest_table: Colección destino pedida (--dest-table)

    Returns:
        TableSpec | None: None significa modo bulk (todas las tablas)

    Raises:
        ValueError: Si se pide colección destino sin tabla origen

    Ejemplo:
        >>> resolve_table_pair('users')
        TableSpec(source_name='users', dest_name='users')
        >>> resolve_table_pair() is None
        True
    """
    if not source_table:
        if dest_table:
            raise ValueError(
                f"Se indicó colección destino '{dest_table}' sin tabla origen.\n"
                f"Usar --source-table junto con --dest-table"
            )
        return None
    return TableSpec(source_name=source_table, dest_name=dest_table or source_table)


def validate_limits(chunk_size: int, concurrency_limit: int):
    """
    Verifica que tamaño de chunk y concurrencia sean positivos.

    Raises:
        ValueError: Si alguno es <= 0
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size debe ser mayor a 0 (recibido {chunk_size})")
    if concurrency_limit <= 0:
        raise ValueError(
            f"concurrency_limit debe ser mayor a 0 (recibido {concurrency_limit})"
        )
