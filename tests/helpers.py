"""
Funciones helper compartidas para todos los tests.

Proporciona stores en memoria que implementan SourceStore y
DestinationStore, para ejercitar el motor sin PostgreSQL ni MongoDB.
Cada fake registra sus llamadas (con un número de secuencia global) para
que los tests puedan verificar orden y concurrencia.
"""

import itertools
import os
import sys
import threading
import time
from contextlib import contextmanager, nullcontext

# Agregar directorio raíz al path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from migrators.base import DestinationStore, SourceStore
from migrators.errors import (
    DestinationSetupError,
    DestInsertError,
    DestQueryError,
    SourceQueryError,
)

_sequence = itertools.count()
_sequence_lock = threading.Lock()


def next_sequence():
    with _sequence_lock:
        return next(_sequence)


class ConcurrencyProbe:
    """
    Cuenta tablas con una operación de I/O en vuelo y guarda el máximo.

    Un mismo probe se comparte entre FakeSource y FakeDestination.
    """

    def __init__(self, delay=0.0):
        self.delay = delay
        self.active = {}
        self.max_active = 0
        self._lock = threading.Lock()

    @contextmanager
    def track(self, table):
        with self._lock:
            self.active[table] = self.active.get(table, 0) + 1
            self.max_active = max(self.max_active, len(self.active))
        try:
            if self.delay:
                time.sleep(self.delay)
            yield
        finally:
            with self._lock:
                self.active[table] -= 1
                if self.active[table] == 0:
                    del self.active[table]


class FakeSource(SourceStore):
    """
    Origen en memoria.

    Args:
        tables: dict nombre → lista de filas, o entero (cantidad de filas
                virtuales, todas el mismo dict para no gastar memoria)
        fail_reads: dict nombre → offset a partir del cual read_rows falla
        fail_counts: nombres cuyo count_rows falla
        primary_keys: dict nombre → columnas de la primary key
        probe: ConcurrencyProbe compartido (opcional)
        count_barrier: threading.Barrier que count_rows espera (opcional)
    """

    VIRTUAL_ROW = {"virtual": True}

    def __init__(
        self,
        tables,
        fail_reads=None,
        fail_counts=(),
        primary_keys=None,
        probe=None,
        count_barrier=None,
        fail_list=False,
    ):
        self.tables = tables
        self.fail_reads = fail_reads or {}
        self.fail_counts = set(fail_counts)
        self.primary_keys = primary_keys or {}
        self.probe = probe
        self.count_barrier = count_barrier
        self.fail_list = fail_list
        self.reads = []
        self.counts = []
        self.pk_lookups = []
        self.close_calls = 0
        self._lock = threading.Lock()

    def _track(self, table):
        return self.probe.track(table) if self.probe else nullcontext()

    def _size(self, table):
        rows = self.tables[table]
        return rows if isinstance(rows, int) else len(rows)

    def list_tables(self):
        if self.fail_list:
            raise SourceQueryError("listado de tablas falló")
        return sorted(self.tables)

    def read_rows(self, table, offset, limit, order_by=()):
        with self._track(table):
            with self._lock:
                self.reads.append(
                    {
                        "table": table,
                        "offset": offset,
                        "limit": limit,
                        "order_by": list(order_by),
                        "seq": next_sequence(),
                    }
                )
            if table in self.fail_reads and offset >= self.fail_reads[table]:
                raise SourceQueryError(f"lectura de '{table}' falló", table)

            rows = self.tables[table]
            if isinstance(rows, int):
                size = max(0, min(limit, rows - offset))
                return [self.VIRTUAL_ROW] * size
            return [dict(row) for row in rows[offset : offset + limit]]

    def count_rows(self, table):
        if self.count_barrier is not None:
            self.count_barrier.wait()
        with self._lock:
            self.counts.append({"table": table, "seq": next_sequence()})
        if table in self.fail_counts:
            raise SourceQueryError(f"conteo de '{table}' falló", table)
        return self._size(table)

    def primary_key_columns(self, table):
        with self._lock:
            self.pk_lookups.append(table)
        return list(self.primary_keys.get(table, []))

    def reads_for(self, table):
        return [r for r in self.reads if r["table"] == table]

    def close(self):
        self.close_calls += 1


class FakeDestination(DestinationStore):
    """
    Destino en memoria.

    Args:
        fail_writes: nombres cuyo insert_rows falla
        drop_per_write: documentos que cada insert "pierde" en silencio
                        (reporta el chunk completo como insertado)
        fail_setup: create_collection falla
        keep_documents: guardar copia de los documentos insertados
        probe: ConcurrencyProbe compartido (opcional)
        count_barrier: threading.Barrier que count_documents espera
    """

    def __init__(
        self,
        fail_writes=(),
        drop_per_write=0,
        fail_setup=False,
        fail_counts=(),
        keep_documents=False,
        probe=None,
        count_barrier=None,
        existing=None,
    ):
        self.fail_writes = set(fail_writes)
        self.drop_per_write = drop_per_write
        self.fail_setup = fail_setup
        self.fail_counts = set(fail_counts)
        self.keep_documents = keep_documents
        self.probe = probe
        self.count_barrier = count_barrier
        self.collections = dict(existing or {})
        self.documents = {}
        self.writes = []
        self.counts = []
        self.created = []
        self.dropped = []
        self.ensure_calls = 0
        self.close_calls = 0
        self._lock = threading.Lock()

    def _track(self, table):
        return self.probe.track(table) if self.probe else nullcontext()

    def ensure_database(self):
        self.ensure_calls += 1
        return True

    def create_collection(self, name):
        if self.fail_setup:
            raise DestinationSetupError(f"no se pudo crear '{name}'", name)
        with self._lock:
            if name in self.collections:
                return False
            self.collections[name] = 0
            self.created.append(name)
        return True

    def drop_collection(self, name):
        with self._lock:
            self.collections.pop(name, None)
            self.documents.pop(name, None)
            self.dropped.append(name)

    def insert_rows(self, name, rows):
        with self._track(name):
            if name not in self.collections:
                raise DestInsertError(f"colección '{name}' no existe", name)
            if name in self.fail_writes:
                raise DestInsertError(f"insert en '{name}' falló", name)
            stored = max(0, len(rows) - self.drop_per_write)
            with self._lock:
                self.collections[name] += stored
                if self.keep_documents:
                    self.documents.setdefault(name, []).extend(dict(r) for r in rows[:stored])
                self.writes.append({"table": name, "rows": len(rows), "seq": next_sequence()})
            return len(rows)

    def count_documents(self, name):
        if self.count_barrier is not None:
            self.count_barrier.wait()
        with self._lock:
            self.counts.append({"table": name, "seq": next_sequence()})
        if name in self.fail_counts:
            raise DestQueryError(f"conteo de '{name}' falló", name)
        return self.collections.get(name, 0)

    def writes_for(self, table):
        return [w for w in self.writes if w["table"] == table]

    def close(self):
        self.close_calls += 1


def make_rows(count, prefix="row"):
    """Filas chicas y distinguibles: [{'id': 0, 'name': 'row-0'}, ...]"""
    return [{"id": i, "name": f"{prefix}-{i}"} for i in range(count)]


def run_standalone(tests):
    """
    Ejecuta una lista de funciones test_* sin pytest y sale con código 0/1.

    Uso al final de cada módulo:
        if __name__ == "__main__":
            run_standalone([test_a, test_b])
    """
    failed = 0

    for test_func in tests:
        try:
            test_func()
        except AssertionError as e:
            print(f"\n❌ FALLO: {test_func.__name__}")
            print(f"   {e}")
            failed += 1
        except Exception as e:
            print(f"\n❌ ERROR: {test_func.__name__}")
            print(f"   {type(e).__name__}: {e}")
            failed += 1

    print("\n" + "=" * 70)

    if failed == 0:
        print("✅ TODOS LOS TESTS PASARON")
        print("=" * 70)
        sys.exit(0)
    else:
        print(f"❌ {failed} TEST(S) FALLARON")
        print("=" * 70)
        sys.exit(1)
