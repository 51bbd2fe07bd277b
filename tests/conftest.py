"""
Pytest configuration and fixtures for the test suite.

Defines markers for selective test execution:
    pytest -m unit          # Fast unit tests
    pytest -m integration   # End-to-end tests through the session and CLI
    pytest -m resilience    # Cancellation, batch failures, rollback
"""

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from rdflpg.config import ImportConfig
from rdflpg.mapping.mappings import MappingRegistry
from rdflpg.mapping.prefixes import PrefixRegistry
from rdflpg.mapping.resource_cache import ResourceCache
from rdflpg.session import GraphSession
from rdflpg.store.memory import InMemoryGraphStore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: End-to-end tests through the session and CLI")
    config.addinivalue_line("markers", "resilience: Cancellation, batch failure and rollback tests")


@pytest.fixture
def store():
    """Empty store with the Resource(uri) uniqueness constraint."""
    graph_store = InMemoryGraphStore(name="test")
    graph_store.create_unique_constraint("Resource", ("uri",))
    return graph_store


@pytest.fixture
def quad_store():
    """Empty store with the Resource(uri, graphUri) uniqueness constraint."""
    graph_store = InMemoryGraphStore(name="test-quad")
    graph_store.create_unique_constraint("Resource", ("uri", "graphUri"))
    return graph_store


@pytest.fixture
def bare_store():
    """Store without any constraint."""
    return InMemoryGraphStore(name="bare")


@pytest.fixture
def prefixes(store):
    return PrefixRegistry(store)


@pytest.fixture
def cache():
    return ResourceCache(max_size=100)


@pytest.fixture
def mappings(store):
    return MappingRegistry(store)


@pytest.fixture
def default_config():
    return ImportConfig()


@pytest.fixture
def session():
    """Session over a fresh store with the uri constraint in place."""
    graph_session = GraphSession()
    graph_session.init()
    return graph_session


@pytest.fixture
def people_ttl():
    """Two people, a friendship and a handful of typed literals."""
    return '''
        @prefix ex: <http://example.org/people/> .
        @prefix schema: <http://schema.org/> .
        @prefix xsd: <http://www.w3.org/2001/XMLSchema#> .

        ex:alice a schema:Person ;
            schema:name "Alice" ;
            schema:age 42 ;
            schema:height "1.68"^^xsd:double ;
            schema:member true ;
            schema:birthDate "1982-03-04"^^xsd:date ;
            schema:knows ex:bob .

        ex:bob a schema:Person ;
            schema:name "Bob" .
    '''


@pytest.fixture
def multilingual_ttl():
    """One subject with the same predicate in three languages."""
    return '''
        @prefix ex: <http://example.org/> .

        ex:thing ex:title "X"@en, "Y"@fr, "Z"@fr-be .
    '''


@pytest.fixture
def sample_trig():
    """Two named graphs describing the same resource."""
    return '''
        @prefix ex: <http://example.org/> .

        ex:g1 { ex:s ex:p "one" . ex:s a ex:Thing . }
        ex:g2 { ex:s ex:p "two" . }
    '''


@pytest.fixture
def ttl_file(tmp_path, people_ttl):
    """The people fixture written to a .ttl file."""
    path = tmp_path / "people.ttl"
    path.write_text(people_ttl, encoding="utf-8")
    return path
