"""
export_sample.py - Exporta muestra de una colección migrada a JSON

Sirve para revisar a mano cómo quedaron las filas PostgreSQL convertidas en
documentos MongoDB (tipos Decimal128, fechas, etc.).

Uso:
    python export_sample.py <collection_name> [limit]

Ejemplo:
    python export_sample.py users 200
"""

import sys
from pathlib import Path

from bson.json_util import dumps

import config
from migrators.errors import MigrationError
from migrators.mongo_destination import MongoDestination


def export_collection_sample(collection, limit=200, samples_dir=Path("samples")):
    """
    Exporta muestra de una colección a JSON en formato Extended JSON.

    Args:
        collection: Colección pymongo a muestrear
        limit: Número de documentos a exportar
        samples_dir: Directorio de salida

    Returns:
        Path | None: Archivo generado, None si la colección está vacía
    """
    print(f"📥 Obteniendo {limit} documentos de '{collection.name}'...")
    docs = list(collection.find().limit(limit))

    if not docs:
        print(f"⚠️  La colección '{collection.name}' está vacía o no existe")
        return None

    samples_dir.mkdir(exist_ok=True)

    # Serializar usando bson.json_util (mantiene tipos de MongoDB)
    json_output = dumps(docs, indent=2, ensure_ascii=False)

    filename = samples_dir / f"{collection.name}_sample.json"
    with open(filename, "w", encoding="utf-8") as f:
        f.write(json_output)

    print(f"✅ Exportados {len(docs)} documentos")
    print(f"📄 Archivo: {filename}")
    print(f"📊 Tamaño: {len(json_output) / 1024:.2f} KB")
    return filename


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Uso: python export_sample.py <collection_name> [limit]")
        print("Ejemplo: python export_sample.py users 200")
        sys.exit(1)

    collection_name = sys.argv[1]
    limit = int(sys.argv[2]) if len(sys.argv) > 2 else 200

    dest_config = config.build_dest_config()
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
        export_collection_sample(destination.db[collection_name], limit)
    finally:
        destination.close()
