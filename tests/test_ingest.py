"""
Tests for the ingest engine.

Tests cover the index precondition, vocabulary policies, multivalued
properties, language handling, blank nodes, quads, batching and
aborted calls.
"""

import datetime

import pytest
from rdflib import RDF, XSD, BNode, Literal, URIRef

from rdflpg.cancellation import CancellationToken
from rdflpg.config import ImportConfig
from rdflpg.engine.batch import BatchWriter, StoreBatchWriter
from rdflpg.engine.ingest import IngestEngine, IngestState
from rdflpg.formats.rdf_parser import RDFGraphParser
from rdflpg.mapping.prefixes import PrefixRegistry
from rdflpg.models.results import TerminationStatus
from rdflpg.models.statement import Statement


EX = "http://example.org/"
THING = URIRef(EX + "thing")
TITLE = URIRef(EX + "title")


def ingest(store, statements, config=None, quad=False, **kwargs):
    engine = IngestEngine(store, PrefixRegistry(store), config=config, **kwargs)
    return engine.run(statements, quad=quad)


def titles():
    """The three language variants in a fixed order."""
    return [
        Statement(THING, TITLE, Literal("X", lang="en")),
        Statement(THING, TITLE, Literal("Y", lang="fr")),
        Statement(THING, TITLE, Literal("Z", lang="fr-be")),
    ]


class FailingWriter(BatchWriter):
    """Commits through a store writer until the n-th batch, which fails."""

    def __init__(self, store, fail_on: int):
        self.inner = StoreBatchWriter(store)
        self.fail_on = fail_on
        self.calls = 0

    def write(self, batch):
        self.calls += 1
        if self.calls == self.fail_on:
            raise RuntimeError("disk full")
        return self.inner.write(batch)


@pytest.mark.unit
class TestIndexPrecondition:
    """Tests for the uniqueness constraint check."""

    def test_missing_index(self, bare_store):
        """Test that a store without the constraint gives KO and loads nothing."""
        result = ingest(bare_store, titles())
        assert result.termination_status is TerminationStatus.KO
        assert result.triples_loaded == 0
        assert result.triples_parsed == 0
        assert result.extra_info == "The required index on :Resource(uri) could not be found"
        assert bare_store.node_count() == 0

    def test_quad_requires_compound_index(self, store):
        """Test that quad imports need the (uri, graphUri) constraint."""
        result = ingest(store, titles(), quad=True)
        assert not result.ok
        assert "(uri, graphUri)" in result.extra_info


@pytest.mark.unit
class TestIngestBasics:
    """Tests for a plain Turtle import."""

    def test_people(self, store, people_ttl):
        """Test labels, typed properties and relationships."""
        result = ingest(store, RDFGraphParser.statements_from_text(people_ttl, "Turtle"))
        assert result.ok
        assert result.triples_parsed == 9
        assert result.triples_loaded == 9
        assert result.resources_created == 2
        assert result.relationships_created == 1

        alice = store.find_resource("http://example.org/people/alice")
        prefix = {v: k for k, v in result.namespaces.items()}["http://schema.org/"]
        assert f"{prefix}__Person" in alice.labels
        assert alice.properties[f"{prefix}__name"] == "Alice"
        assert alice.properties[f"{prefix}__age"] == 42
        assert alice.properties[f"{prefix}__height"] == 1.68
        assert alice.properties[f"{prefix}__member"] is True
        assert alice.properties[f"{prefix}__birthDate"] == datetime.date(1982, 3, 4)
        rels = store.relationships_of(alice.id, "out")
        assert [r.type for r in rels] == [f"{prefix}__knows"]

    def test_reimport_is_idempotent(self, store, people_ttl):
        """Test that importing twice creates nothing new."""
        ingest(store, RDFGraphParser.statements_from_text(people_ttl, "Turtle"))
        nodes = store.node_count()
        result = ingest(store, RDFGraphParser.statements_from_text(people_ttl, "Turtle"))
        assert result.resources_created == 0
        assert result.relationships_created == 0
        assert store.node_count() == nodes

    def test_state_reaches_done(self, store):
        engine = IngestEngine(store, PrefixRegistry(store))
        engine.run(titles())
        assert engine.state is IngestState.DONE

    def test_keep_policy(self, store):
        """Test that KEEP uses full IRIs and defines no prefixes."""
        result = ingest(store, titles()[:1], ImportConfig(handle_vocab_uris="KEEP"))
        node = store.find_resource(str(THING))
        assert node.properties[str(TITLE)] == "X"
        assert result.namespaces == {}

    def test_ignore_policy(self, store):
        ingest(store, [Statement(THING, RDF.type, URIRef(EX + "Doc"))] + titles()[:1],
               ImportConfig(handle_vocab_uris="IGNORE"))
        node = store.find_resource(str(THING))
        assert "Doc" in node.labels
        assert node.properties["title"] == "X"

    def test_ignore_policy_keeps_resource_key(self, store):
        """Test that a predicate named like the uri key does not overwrite it."""
        result = ingest(store, [
            Statement(THING, URIRef("http://schema.org/name"), Literal("A")),
            Statement(THING, URIRef("http://other.org/uri"), Literal("oops")),
        ], ImportConfig(handle_vocab_uris="IGNORE"))
        assert result.ok
        assert result.triples_parsed == 2
        assert result.triples_loaded == 1
        node = store.find_resource(str(THING))
        assert node.properties == {"uri": str(THING), "name": "A"}

    def test_types_as_relationships(self, store):
        """Test that typesToLabels=false links the subject to the class resource."""
        ingest(store, [Statement(THING, RDF.type, URIRef(EX + "Doc"))],
               ImportConfig(types_to_labels=False, handle_vocab_uris="IGNORE"))
        node = store.find_resource(str(THING))
        assert node.labels == frozenset({"Resource"})
        assert store.find_resource(EX + "Doc") is not None
        assert store.relationship_count("type") == 1


@pytest.mark.unit
class TestLanguages:
    """Tests for language filtering and tags."""

    @pytest.mark.parametrize("language,expected", [("fr", "Y"), ("fr-be", "Z"), ("en", "X")])
    def test_language_filter(self, store, language, expected):
        """Test that only the exactly matching tag is loaded."""
        result = ingest(store, titles(), ImportConfig(language_filter=language,
                                                      handle_vocab_uris="IGNORE"))
        assert result.triples_parsed == 3
        assert result.triples_loaded == 1
        assert store.find_resource(str(THING)).properties["title"] == expected

    def test_no_filter_last_value_wins(self, store):
        """Test that without a filter every value is applied and the last stays."""
        result = ingest(store, titles(), ImportConfig(handle_vocab_uris="IGNORE"))
        assert result.triples_loaded == 3
        assert store.find_resource(str(THING)).properties["title"] == "Z"

    def test_keep_lang_tag(self, store):
        ingest(store, titles()[1:2], ImportConfig(keep_lang_tag=True, handle_vocab_uris="IGNORE"))
        assert store.find_resource(str(THING)).properties["title"] == "Y@fr"

    def test_untagged_passes_filter(self, store):
        ingest(store, [Statement(THING, TITLE, Literal("plain"))],
               ImportConfig(language_filter="fr", handle_vocab_uris="IGNORE"))
        assert store.find_resource(str(THING)).properties["title"] == "plain"


@pytest.mark.unit
class TestMultivalued:
    """Tests for ARRAY accumulation."""

    def test_array_accumulates(self, store):
        config = ImportConfig(handle_multival="ARRAY", handle_vocab_uris="IGNORE")
        ingest(store, titles(), config)
        assert store.find_resource(str(THING)).properties["title"] == ["X", "Y", "Z"]

    def test_array_accumulates_across_calls(self, store):
        """Test that a later call appends to values committed earlier."""
        config = ImportConfig(handle_multival="ARRAY", handle_vocab_uris="IGNORE")
        ingest(store, titles()[:2], config)
        ingest(store, titles()[2:], config)
        assert store.find_resource(str(THING)).properties["title"] == ["X", "Y", "Z"]

    def test_array_only_for_listed_predicates(self, store):
        config = ImportConfig(handle_multival="ARRAY", multival_prop_list=[EX + "tag"],
                              handle_vocab_uris="IGNORE")
        tag = URIRef(EX + "tag")
        ingest(store, titles() + [Statement(THING, tag, Literal("a")),
                                  Statement(THING, tag, Literal("b"))], config)
        props = store.find_resource(str(THING)).properties
        assert props["title"] == "Z"
        assert props["tag"] == ["a", "b"]

    def test_array_keeps_native_types(self, store):
        config = ImportConfig(handle_multival="ARRAY", handle_vocab_uris="IGNORE")
        score = URIRef(EX + "score")
        ingest(store, [Statement(THING, score, Literal(1)), Statement(THING, score, Literal(2.5))],
               config)
        assert store.find_resource(str(THING)).properties["score"] == [1, 2.5]


@pytest.mark.unit
class TestCustomDatatypes:
    """Tests for custom datatype preservation."""

    def test_dropped_by_default(self, store):
        literal = Literal("10", datatype=URIRef("http://example.org/units#cm"))
        ingest(store, [Statement(THING, TITLE, literal)], ImportConfig(handle_vocab_uris="IGNORE"))
        assert store.find_resource(str(THING)).properties["title"] == "10"

    def test_kept_and_shortened(self, store):
        literal = Literal("10", datatype=URIRef("http://example.org/units#cm"))
        result = ingest(store, [Statement(THING, TITLE, literal)],
                        ImportConfig(keep_custom_data_types=True))
        assert result.namespaces == {"ns0": EX, "ns1": "http://example.org/units#"}
        assert store.find_resource(str(THING)).properties["ns0__title"] == "10^^ns1__cm"

    def test_native_xsd_is_not_custom(self, store):
        ingest(store, [Statement(THING, TITLE, Literal("7", datatype=XSD.integer))],
               ImportConfig(keep_custom_data_types=True, handle_vocab_uris="IGNORE"))
        assert store.find_resource(str(THING)).properties["title"] == 7


@pytest.mark.unit
class TestBlankNodes:
    """Tests for blank node identities."""

    def test_blank_node_reused_within_call(self, store):
        node = BNode("b1")
        ingest(store, [
            Statement(THING, URIRef(EX + "part"), node),
            Statement(node, TITLE, Literal("inner")),
        ], ImportConfig(handle_vocab_uris="IGNORE"))
        blank = [n for n in store.nodes_with_label("Resource") if n.uri.startswith("_:")]
        assert len(blank) == 1
        assert blank[0].properties["title"] == "inner"
        assert store.relationship_count("part") == 1

    def test_blank_node_not_reused_across_calls(self, store):
        """Test that the same blank node label in two calls gives two nodes."""
        statements = [Statement(BNode("b1"), TITLE, Literal("x"))]
        ingest(store, statements)
        ingest(store, statements)
        blank = [n for n in store.nodes_with_label("Resource") if n.uri.startswith("_:")]
        assert len(blank) == 2
        assert blank[0].uri != blank[1].uri


@pytest.mark.unit
class TestQuads:
    """Tests for quad imports."""

    def test_trig_import(self, quad_store, sample_trig):
        """Test that each graph gets its own resource."""
        result = ingest(quad_store, RDFGraphParser.statements_from_text(sample_trig, "TriG"),
                        ImportConfig(handle_vocab_uris="IGNORE"), quad=True)
        assert result.ok
        assert result.triples_loaded == 3
        g1 = quad_store.find_resource(EX + "s", EX + "g1")
        g2 = quad_store.find_resource(EX + "s", EX + "g2")
        assert g1.properties["p"] == "one"
        assert "Thing" in g1.labels
        assert g2.properties["p"] == "two"
        assert "Thing" not in g2.labels

    def test_default_graph_has_no_graph_uri(self, quad_store):
        ingest(quad_store, [Statement(THING, TITLE, Literal("x"))],
               ImportConfig(handle_vocab_uris="IGNORE"), quad=True)
        node = quad_store.find_resource(str(THING))
        assert "graphUri" not in node.properties


@pytest.mark.resilience
class TestAbortedCalls:
    """Tests for batching, failures and cancellation."""

    def test_commit_batches(self, store):
        """Test that a stream is committed in batches of commitSize."""
        calls = []

        class CountingWriter(StoreBatchWriter):
            def write(self, batch):
                calls.append(batch.statements)
                return super().write(batch)

        config = ImportConfig(commit_size=2, handle_vocab_uris="IGNORE")
        result = ingest(store, titles() + titles()[:2], config, writer=CountingWriter(store))
        assert result.ok
        assert calls == [2, 2, 1]
        assert result.triples_loaded == 5

    def test_failed_batch_keeps_earlier_batches(self, store):
        """Test that a failing commit gives KO with the first batch kept."""
        config = ImportConfig(commit_size=1, handle_vocab_uris="IGNORE")
        engine = IngestEngine(store, PrefixRegistry(store), config=config,
                              writer=FailingWriter(store, fail_on=2))
        result = engine.run(titles())
        assert result.termination_status is TerminationStatus.KO
        assert result.extra_info == "disk full"
        assert result.triples_loaded == 1
        assert result.triples_parsed == 2
        assert engine.state is IngestState.ABORTED
        assert store.find_resource(str(THING)).properties["title"] == "X"

    def test_stream_error_rolls_back_in_flight_batch(self, store):
        """Test that an error while reading discards the uncommitted batch."""
        def broken():
            yield from titles()
            raise ValueError("unexpected end of input")

        config = ImportConfig(commit_size=2, handle_vocab_uris="IGNORE")
        result = ingest(store, broken(), config)
        assert not result.ok
        assert result.triples_parsed == 3
        assert result.triples_loaded == 2
        assert store.find_resource(str(THING)).properties["title"] == "Y"

    def test_parse_error_gives_ko(self, store):
        result = ingest(store, RDFGraphParser.statements_from_text("this is not turtle", "Turtle"))
        assert not result.ok
        assert result.triples_loaded == 0
        assert "Invalid RDF syntax" in result.extra_info

    def test_cancelled_before_start(self, store):
        token = CancellationToken()
        token.cancel("shutdown")
        engine = IngestEngine(store, PrefixRegistry(store))
        result = engine.run(titles(), cancellation_token=token)
        assert not result.ok
        assert result.extra_info == "Operation was cancelled: shutdown (operation: import)"
        assert store.node_count("Resource") == 0

    def test_cancelled_midway(self, store):
        """Test that batches committed before cancellation stay."""
        token = CancellationToken()

        def stream():
            for i, statement in enumerate(titles()):
                if i == 2:
                    token.cancel()
                yield statement

        config = ImportConfig(commit_size=1, handle_vocab_uris="IGNORE")
        result = IngestEngine(store, PrefixRegistry(store), config=config).run(
            stream(), cancellation_token=token
        )
        assert not result.ok
        assert result.triples_loaded == 2
        assert store.find_resource(str(THING)).properties["title"] == "Y"

    def test_limit_truncates(self, store):
        engine = IngestEngine(store, PrefixRegistry(store))
        result = engine.run(titles(), limit=2)
        assert result.ok
        assert result.triples_parsed == 2
        assert engine.truncated
