r"""
Script principal de migración de tablas PostgreSQL a colecciones MongoDB.

Arquitectura:
- pgmigra.py: Entrada por línea de comandos, conexiones y resumen final
- migrators/*.py: Motor (paginación, escritura, validación, orquestación)
- config.py: Valores por defecto desde .env

Flujo de ejecución:
1. Se leen flags (con defaults de config.py / .env)
2. Se conecta a PostgreSQL y a MongoDB (error → exit 1)
3. Modo bulk: se descubren todas las tablas del schema origen
   Modo single-table: --source-table [--dest-table]
4. Se crean base y colecciones destino (error → exit 1)
5. Cada tabla se copia en chunks y se valida por conteo
6. Se imprime una línea de resumen por tabla y se cierran conexiones

Código de salida:
    0: Corrida completa (en bulk, aun con tablas FALLIDAS salvo --strict)
    1: Error de conexión, de configuración o de setup del destino;
       tabla FALLIDA en modo single-table

Uso:
    python pgmigra.py --source-database ventas --dest-database ventas
    python pgmigra.py --source-table users --dest-table usuarios --silent
"""

import argparse
import logging
import sys

import config
from migrators.base import MigrationSummary
from migrators.errors import MigrationConnectionError, MigrationError
from migrators.mongo_destination import MongoDestination
from migrators.orchestrator import MigrationOrchestrator, summary_lines
from migrators.postgres_source import PostgresSource
from migrators.table import log_progress


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgmigra",
        description="Migra tablas PostgreSQL a colecciones MongoDB en chunks.",
    )

    source = parser.add_argument_group("origen (PostgreSQL)")
    source.add_argument("--source-host")
    source.add_argument("--source-port", type=int)
    source.add_argument("--source-user")
    source.add_argument("--source-pass")
    source.add_argument("--source-database")
    source.add_argument("--source-schema", default=config.SOURCE_SCHEMA)
    source.add_argument("--source-table", help="Migrar solo esta tabla")

    dest = parser.add_argument_group("destino (MongoDB)")
    dest.add_argument("--dest-host")
    dest.add_argument("--dest-port", type=int)
    dest.add_argument("--dest-database")
    dest.add_argument(
        "--dest-table", help="Colección destino (por defecto, el nombre de la tabla)"
    )

    run = parser.add_argument_group("ejecución")
    run.add_argument("--silent", action="store_true", help="Sin líneas de progreso")
    run.add_argument("--concurrency-limit", type=int, default=config.CONCURRENCY_LIMIT)
    run.add_argument("--chunk-size", type=int, default=config.CHUNK_SIZE)
    run.add_argument(
        "--stable-order",
        action="store_true",
        help="Paginar ordenando por primary key",
    )
    run.add_argument(
        "--drop-existing",
        action="store_true",
        help="Eliminar colecciones destino antes de migrar (full refresh)",
    )
    run.add_argument(
        "--strict",
        action="store_true",
        help="Salir con código 1 si alguna tabla falla en modo bulk",
    )
    return parser


def setup_logging(silent: bool):
    logging.basicConfig(
        level=logging.WARNING if silent else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        force=True,
    )


def connect_to_postgres(args) -> PostgresSource:
    """
    Abre el pool de PostgreSQL con los flags de origen.

    Raises:
        MigrationConnectionError: Si no puede conectar
    """
    source_config = config.build_source_config(
        host=args.source_host,
        port=args.source_port,
        user=args.source_user,
        password=args.source_pass,
        database=args.source_database,
    )
    return PostgresSource.connect(
        source_config,
        schema=args.source_schema,
        max_connections=args.concurrency_limit + 1,
    )


def connect_to_mongo(args) -> MongoDestination:
    """
    Conecta a MongoDB con los flags de destino.

    Raises:
        MigrationConnectionError: Si no puede conectar
    """
    dest_config = config.build_dest_config(
        host=args.dest_host, port=args.dest_port, database=args.dest_database
    )
    if not dest_config["dbname"]:
        raise MigrationConnectionError("No se indicó base destino (--dest-database / DEST_DB)")
    return MongoDestination.connect(
        config.build_mongo_uri(dest_config),
        dest_config["dbname"],
        server_selection_timeout_ms=config.SERVER_SELECTION_TIMEOUT_MS,
    )


def print_summary(summary: MigrationSummary):
    print("\n" + "=" * 70)
    print("📊 RESUMEN DE MIGRACIÓN")
    print("=" * 70)
    for line in summary_lines(summary):
        print(f"   {line}")
    print("=" * 70)
    print(
        f"   Tablas: {len(summary.outcomes)} | OK: {len(summary.done)} | "
        f"Fallidas: {len(summary.failed)} | Con diferencias: {len(summary.mismatched)}"
    )
    print(f"   Filas migradas: {summary.rows_migrated:,}")
    print("=" * 70)


def main(argv=None) -> int:
    """
    Coordina el flujo completo de migración.

    Returns:
        int: Código de salida del proceso
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.silent)

    try:
        config.validate_limits(args.chunk_size, args.concurrency_limit)
        table = config.resolve_table_pair(args.source_table, args.dest_table)
    except ValueError as e:
        print(f"❌ Configuración inválida: {e}", file=sys.stderr)
        return 1

    if not args.silent:
        print("=" * 70)
        print("🚀 SISTEMA DE MIGRACIÓN POSTGRESQL → MONGODB")
        print("=" * 70)

    source = None
    try:
        source = connect_to_postgres(args)
        destination = connect_to_mongo(args)
    except MigrationConnectionError as e:
        print(f"❌ {e}", file=sys.stderr)
        if source is not None:
            source.close()
        return 1

    orchestrator = MigrationOrchestrator(
        source,
        destination,
        chunk_size=args.chunk_size,
        concurrency_limit=args.concurrency_limit,
        stable_order=args.stable_order,
        drop_existing=args.drop_existing,
        on_progress=None if args.silent else log_progress,
    )

    try:
        summary = orchestrator.run(table)
    except MigrationError as e:
        print(f"\n❌ Error durante la migración: {e}", file=sys.stderr)
        return 1

    print_summary(summary)

    if summary.failed and (table is not None or args.strict):
        return 1
    return 0


def cli():
    # Forzar UTF-8 en stdout/stderr para emojis en Windows
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")
    sys.exit(main())


if __name__ == "__main__":
    cli()
