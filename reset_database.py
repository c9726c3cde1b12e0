# reset_database.py
"""
Script para eliminar completamente la base MongoDB destino antes de migrar.

La migración nunca hace upsert: volver a correr pgmigra.py sobre una base
con datos duplica documentos. Este script deja el destino vacío para una
recreación completa.

ADVERTENCIA: Esto destruye TODOS los datos migrados.
"""

import sys

import config
from migrators.errors import MigrationError
from migrators.mongo_destination import MongoDestination


def reset_database(destination: MongoDestination):
    """Elimina la base destino completa (todas sus colecciones)."""

    print("=" * 70)
    print("🗑️  LIMPIEZA COMPLETA DE BASE DE DATOS")
    print("=" * 70)

    collections = destination.list_collections()
    for name in collections:
        print(f"   • {name}")

    print(f"\n🗑️  Eliminando base '{destination.database_name}'...")
    destination.drop_database()
    print(f"   ✅ Base '{destination.database_name}' eliminada ({len(collections)} colecciones)")

    print("\n" + "=" * 70)
    print("✅ LIMPIEZA COMPLETA FINALIZADA")
    print("=" * 70)
    print("\nAhora ejecutar:")
    print("  python pgmigra.py (migrar datos)")


if __name__ == "__main__":
    dest_config = config.build_dest_config()
    if not dest_config["dbname"]:
        print("❌ No se indicó base destino (DEST_DB en .env)", file=sys.stderr)
        sys.exit(1)

    # Seguridad: pedir confirmación
    print(f"\n⚠️  ADVERTENCIA: Esto eliminará la base MongoDB '{dest_config['dbname']}'.")
    response = input("¿Continuar? (escribir 'SI' en mayúsculas): ")

    if response != "SI":
        print("\n❌ Operación cancelada")
        sys.exit(0)

    try:
        destination = MongoDestination.connect(
            config.build_mongo_uri(dest_config),
            dest_config["dbname"],
            server_selection_timeout_ms=config.SERVER_SELECTION_TIMEOUT_MS,
        )
    except MigrationError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    try:
        reset_database(destination)
    except MigrationError as e:
        print(f"\n❌ {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        destination.close()
