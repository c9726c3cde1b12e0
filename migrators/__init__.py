"""
Motor de migración de tablas PostgreSQL a colecciones MongoDB.

Estructura:
    base.py: Modelo de datos e interfaces SourceStore / DestinationStore
    errors.py: Jerarquía de errores (MigrationError y ErrorKind)
    postgres_source.py: Origen PostgreSQL (psycopg2, pool de conexiones)
    mongo_destination.py: Destino MongoDB (pymongo)
    chunks.py: ChunkReader (LIMIT/OFFSET) y ChunkWriter (insert_many)
    validator.py: Comparación de conteos origen vs destino
    table.py: TableMigrator, máquina de estados por tabla
    orchestrator.py: MigrationOrchestrator, modos bulk y single-table

pgmigra.py construye los stores a partir de config.py y delega todo el
trabajo en MigrationOrchestrator.
"""
