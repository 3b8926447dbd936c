"""Shared test fixtures for dictionary-ingest."""

import copy

import pytest

from dictionary_ingest import DictionaryIngester
from dictionary_ingest import db


WALK_DEFINITION = "to move with your legs at a speed that is slower than running"

_WALK = {
    "meta": {
        "id": "walk",
        "uuid": "4d3c7c6a-walk",
        "src": "learners",
        "stems": ["walk", "walked", "walking", "walks"],
        "syns": [["stroll"]],
        "app-shortdef": {"hw": "walk", "fl": "verb", "def": [WALK_DEFINITION]},
    },
    "hwi": {
        "hw": "walk",
        "prs": [{"ipa": "ˈwɑːk", "sound": {"audio": "walk0001"}}],
    },
    "fl": "verb",
    "ins": [{"if": "walked", "il": "past"}],
    "def": [
        {
            "sseq": [
                [
                    [
                        "sense",
                        {
                            "sn": "1",
                            "dt": [
                                ["text", "{bc}" + WALK_DEFINITION],
                                ["vis", [{"t": "We {it}walked{/it} to the park."}]],
                            ],
                        },
                    ]
                ]
            ]
        }
    ],
}


@pytest.fixture
def ingester():
    """Create an in-memory ingester for testing."""
    with DictionaryIngester(":memory:") as ing:
        yield ing


@pytest.fixture
def db_conn():
    """Create an in-memory database connection for testing."""
    conn = db.connect(":memory:")
    db.init_db(conn)
    yield conn
    conn.close()


@pytest.fixture
def walk_document():
    """Provider document for 'walk': one inflection, one synonym, one definition."""
    return copy.deepcopy(_WALK)


@pytest.fixture
def make_document():
    """Factory for minimal provider documents."""

    def make(hw, fl="verb", *, definitions=(), uuid=None, **sections):
        doc = {
            "meta": {"id": hw, "uuid": uuid or f"uuid-{hw}", "src": "learners"},
            "hwi": {"hw": hw},
            "fl": fl,
        }
        if definitions:
            doc["def"] = [{
                "sseq": [
                    [["sense", {"dt": [["text", "{bc}" + text]]}]]
                    for text in definitions
                ]
            }]
        meta_keys = ("syns", "ants", "stems", "id", "highlight", "src")
        for key, value in sections.items():
            if key in meta_keys:
                doc["meta"][key] = value
            else:
                doc[key] = value
        return doc

    return make
