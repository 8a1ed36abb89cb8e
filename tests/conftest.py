# tests/conftest.py
from collections import namedtuple
from collections.abc import Mapping

import psycopg
import pytest
from psycopg._queries import PostgresQuery
from psycopg.adapt import Transformer

from tablesync.models.sync_job import ConnectionTarget, SyncJob
from tablesync.services import postgres_service
from tablesync.services.sync_log import SyncLog

FakeColumn = namedtuple('FakeColumn', 'name type_code')

TYPE_OIDS = {
    'bool': 16,
    'int4': 23,
    'text': 25,
    'float8': 701,
    'varchar': 1043,
    'geometry': 17001,
}

SOURCE_URL = 'postgresql://source.example/gis'
DEST_URL = 'postgresql://dest.example/gis'

SOURCE_MAX = 'SELECT COALESCE(max(id), 0) FROM parcels'
DEST_MAX = 'SELECT COALESCE(max(id), 0) FROM parcels_copy'
SELECT = 'SELECT id, name, area, active, geom FROM parcels WHERE id > %s ORDER BY id'
INSERT = 'INSERT INTO parcels_copy (id, name, area, active, geom) VALUES (%s, %s, %s, %s, %s)'

PARCEL_COLUMNS = [
    ('id', 'int4'),
    ('name', 'varchar'),
    ('area', 'float8'),
    ('active', 'bool'),
    ('geom', 'geometry'),
]


def make_columns(specs):
    return [FakeColumn(name, TYPE_OIDS[type_name]) for name, type_name in specs]


def parcel_rows(first, last):
    return [
        (i, f'parcel {i}', i * 1.5, i % 2 == 0, f'0101000020E6100000{i:016X}')
        for i in range(first, last + 1)
    ]


def _literal(value):
    # psycopg's Int4/Float4 wrappers repr as e.g. Int4(7)
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return int.__repr__(value)
    if isinstance(value, float):
        return float.__repr__(value)
    return repr(value)


def _recorded(params):
    if params is None:
        return None
    if isinstance(params, Mapping):
        return dict(params)
    return list(params)


class FakeCursor:
    def __init__(self, conn, name=None, scrollable=None):
        self.conn = conn
        self.name = name
        self.scrollable = scrollable
        self.itersize = 100
        self.description = None
        self._rows = []
        self.closed = False

    def execute(self, query, params=None):
        # same placeholder/parameter checks psycopg runs before sending a query
        PostgresQuery(Transformer()).convert(query, params)
        self.conn.executed.append((query, _recorded(params)))
        self.description, self._rows = self.conn.respond(query, params)
        return self

    def __iter__(self):
        for row in self._rows:
            self.conn.rows_read += 1
            yield row

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)

    def mogrify(self, query, params):
        return query % tuple(_literal(p) for p in params)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeConnection:
    """Stands in for a psycopg connection; answers queries from a dict"""

    def __init__(self, results=None, fail_insert_at=None):
        self.results = results or {}
        self.fail_insert_at = fail_insert_at
        self.executed = []
        self.inserted = []
        self.cursors = []
        self.rows_read = 0
        self.read_only = False
        self.close_calls = 0

    def cursor(self, name=None, scrollable=None):
        cur = FakeCursor(self, name=name, scrollable=scrollable)
        self.cursors.append(cur)
        return cur

    def respond(self, query, params):
        if query.startswith('SELECT oid, typname'):
            names = {oid: name for name, oid in TYPE_OIDS.items()}
            return ([FakeColumn('oid', 26), FakeColumn('typname', 19)],
                    [(oid, names[oid]) for oid in params[0] if oid in names])
        if query.lstrip().upper().startswith('INSERT'):
            if self.fail_insert_at == len(self.inserted) + 1:
                raise psycopg.errors.UniqueViolation('duplicate key value violates unique constraint')
            self.inserted.append(list(params))
            return None, []
        return self.results[query]

    @property
    def server_cursors(self):
        return [c for c in self.cursors if c.name]

    def close(self):
        self.close_calls += 1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeDatabases:
    """Replaces postgres_service.connect; hands out fakes by connection url"""

    def __init__(self):
        self.by_url = {}
        self.opened = []

    def add(self, url, conn):
        self.by_url[url] = conn
        return conn

    def connect(self, target, **kwargs):
        self.opened.append((target.url, kwargs))
        return self.by_url[target.url]


@pytest.fixture
def fake_dbs(monkeypatch):
    dbs = FakeDatabases()
    monkeypatch.setattr(postgres_service, 'connect', dbs.connect)
    return dbs


@pytest.fixture
def parcels_source():
    def _make(rows, source_max=None, columns=PARCEL_COLUMNS):
        if source_max is None:
            source_max = rows[-1][0] if rows else 0
        return FakeConnection({
            SOURCE_MAX: ([FakeColumn('coalesce', 20)], [(source_max,)]),
            SELECT: (make_columns(columns), rows),
        })
    return _make


@pytest.fixture
def parcels_dest():
    def _make(dest_max=0, fail_insert_at=None):
        return FakeConnection({
            DEST_MAX: ([FakeColumn('coalesce', 20)], [(dest_max,)]),
        }, fail_insert_at=fail_insert_at)
    return _make


@pytest.fixture
def make_job():
    def _make(**overrides):
        fields = dict(
            label='parcels',
            source=ConnectionTarget(SOURCE_URL, 'reader', 'secret'),
            source_max_query=SOURCE_MAX,
            source_select_query=SELECT,
            destination=ConnectionTarget(DEST_URL, 'writer', 'secret'),
            dest_max_query=DEST_MAX,
            dest_insert_query=INSERT,
            source_paging_size=50,
        )
        fields.update(overrides)
        return SyncJob(**fields)
    return _make


@pytest.fixture
def sync_log():
    return SyncLog(debug=False)


@pytest.fixture
def debug_log():
    return SyncLog(debug=True)


@pytest.fixture
def history_db(tmp_path, monkeypatch):
    from tablesync.db import session
    path = tmp_path / 'history.db'
    monkeypatch.setattr(session, 'DB_PATH', path)
    return path
