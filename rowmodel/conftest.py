import pytest

from rowmodel import Registry, Settings, SqliteRowStore

SCHEMA = """
CREATE TABLE Owner (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name VARCHAR(10),
    city TEXT,
    tags TEXT
);
CREATE TABLE Pet (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    age INTEGER,
    fkOwner INTEGER
);
CREATE TABLE Visit (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fkPet INTEGER,
    day TEXT
);
CREATE TABLE Toy (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fkPet INTEGER,
    name TEXT
);
CREATE TABLE Procedure (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT
);
CREATE TABLE VisitProcedure (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fkVisit INTEGER,
    fkProcedure INTEGER,
    position INTEGER
);
CREATE TABLE Folder (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT
);
CREATE TABLE Doc (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fkFolder INTEGER,
    obj TEXT,
    arr TEXT,
    pair TEXT
);
CREATE VIEW PetSummary AS SELECT id, name, fkOwner FROM Pet;
"""


@pytest.fixture
def row_store():
    store = SqliteRowStore()
    store.executescript(SCHEMA)
    yield store
    store.close()


@pytest.fixture
def registry(row_store):
    """The clinic models: Owner -> Pet (cascade) -> Visit (restrict), Toy (set-null)"""
    reg = Registry(row_store, Settings(cache_ttl=0))
    reg.create_factory("Owner", {
        "json_attrs": "tags",
        "compare": "name",
        "has_many": [
            {"remote_name": "pets", "remote_model": "Pet", "on_delete": "cascade"},
            {"remote_name": "summaries", "remote_model": "PetSummary", "on_delete": "cascade"},
        ],
    })
    reg.create_factory("Pet", {
        "compare": ["age DESC", "name"],
        "has_many": [
            {"remote_name": "visits", "remote_model": "Visit"},
            {"remote_name": "toys", "remote_model": "Toy", "on_delete": "set-null"},
        ],
        "belongs_to": [{"remote_name": "Owner"}],
    })
    reg.create_factory("Visit", {
        "compare": "day",
        "has_many": [{"remote_name": "procedures", "remote_model": "Procedure",
                      "through": "VisitProcedure"}],
        "belongs_to": [{"remote_name": "Pet"}],
    })
    reg.create_factory("Toy")
    reg.create_factory("Procedure", {"compare": "name"})
    reg.create_factory("VisitProcedure", {"compare": "position"})
    reg.create_factory("PetSummary", {"view": True})
    return reg


@pytest.fixture
def stored():
    """Create and store an instance, failing the test if store() reports errors"""
    return _stored


def _stored(factory, **params):
    instance = factory.create(params)
    errors = instance.store()
    assert errors == []
    return instance
