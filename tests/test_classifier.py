"""
Tests for statement classification, vocabulary naming and schema mappings.
"""

import pytest
from rdflib import RDF, XSD, BNode, Literal, URIRef

from rdflpg.config import HandleVocabUris, ImportConfig
from rdflpg.mapping.classifier import (
    Dropped,
    LiteralProperty,
    ObjectRelationship,
    StatementClassifier,
    TypeAssertion,
    VocabularyNamer,
)
from rdflpg.mapping.mappings import MappingRegistry
from rdflpg.mapping.prefixes import PrefixRegistry
from rdflpg.models.statement import Statement


ALICE = URIRef("http://example.org/people/alice")
BOB = URIRef("http://example.org/people/bob")
NAME = URIRef("http://schema.org/name")
KNOWS = URIRef("http://schema.org/knows")
PERSON = URIRef("http://schema.org/Person")


def make_classifier(config=None, prefixes=None, mappings=None, allocate=True):
    config = config or ImportConfig()
    namer = VocabularyNamer(
        config.handle_vocab_uris, prefixes or PrefixRegistry(), mappings, allocate=allocate
    )
    return StatementClassifier(config, namer)


@pytest.mark.unit
class TestVocabularyNamer:
    """Tests for each naming policy."""

    def test_shorten(self):
        namer = VocabularyNamer(HandleVocabUris.SHORTEN, PrefixRegistry())
        assert namer.name(NAME) == "ns0__name"

    def test_shorten_without_allocation(self):
        """Test that a non-allocating namer gives None for unknown namespaces."""
        namer = VocabularyNamer(HandleVocabUris.SHORTEN, PrefixRegistry(), allocate=False)
        assert namer.name(NAME) is None

    def test_keep(self):
        namer = VocabularyNamer(HandleVocabUris.KEEP, PrefixRegistry())
        assert namer.name(NAME) == "http://schema.org/name"

    def test_ignore(self):
        namer = VocabularyNamer(HandleVocabUris.IGNORE, PrefixRegistry())
        assert namer.name(NAME) == "name"

    def test_map_with_and_without_mapping(self):
        """Test that MAP uses the mapping and falls back to the local name."""
        mappings = MappingRegistry()
        mappings.add_schema("http://schema.org/", "sch")
        mappings.add_mapping("http://schema.org/", "name", "fullName")
        namer = VocabularyNamer(HandleVocabUris.MAP, PrefixRegistry(), mappings)
        assert namer.name(NAME) == "fullName"
        assert namer.name(KNOWS) == "knows"

    def test_datatype_name(self):
        """Test that custom datatypes are only shortened under SHORTEN."""
        datatype = "http://example.org/units#cm"
        assert VocabularyNamer(HandleVocabUris.SHORTEN, PrefixRegistry()).datatype_name(datatype) == "ns0__cm"
        assert VocabularyNamer(HandleVocabUris.IGNORE, PrefixRegistry()).datatype_name(datatype) == datatype


@pytest.mark.unit
class TestStatementClassifier:
    """Tests for classification of statements."""

    def test_type_becomes_label(self):
        result = make_classifier().classify(Statement(ALICE, RDF.type, PERSON))
        assert result == TypeAssertion(ALICE, "ns0__Person")

    def test_type_as_relationship(self):
        """Test that typesToLabels=false keeps rdf:type as a relationship."""
        config = ImportConfig(types_to_labels=False)
        result = make_classifier(config).classify(Statement(ALICE, RDF.type, PERSON))
        assert isinstance(result, ObjectRelationship)
        assert result.rel_type == "ns0__type"
        assert result.object == PERSON

    def test_resource_object(self):
        result = make_classifier().classify(Statement(ALICE, KNOWS, BOB))
        assert result == ObjectRelationship(ALICE, "ns0__knows", BOB)

    def test_blank_node_object(self):
        node = BNode()
        result = make_classifier().classify(Statement(ALICE, KNOWS, node))
        assert isinstance(result, ObjectRelationship)
        assert result.object == node

    def test_literal(self):
        result = make_classifier().classify(Statement(ALICE, NAME, Literal("Alice")))
        assert result == LiteralProperty(ALICE, "ns0__name", "Alice", multivalued=False)

    def test_typed_literal(self):
        result = make_classifier().classify(
            Statement(ALICE, URIRef("http://schema.org/age"), Literal("42", datatype=XSD.integer))
        )
        assert result.value == 42

    def test_multivalued_flag(self):
        config = ImportConfig(handle_multival="ARRAY", multival_prop_list=[str(NAME)])
        result = make_classifier(config).classify(Statement(ALICE, NAME, Literal("Alice")))
        assert result.multivalued

    def test_excluded_predicate(self):
        """Test that excluded predicates are dropped whatever the object."""
        config = ImportConfig(predicate_exclusion_list=[str(KNOWS), str(RDF.type)])
        classifier = make_classifier(config)
        assert isinstance(classifier.classify(Statement(ALICE, KNOWS, BOB)), Dropped)
        assert isinstance(classifier.classify(Statement(ALICE, RDF.type, PERSON)), Dropped)

    @pytest.mark.parametrize("language,accepted", [
        ("fr", True),
        ("FR", True),
        ("fr-be", False),
        ("en", False),
        (None, True),
    ])
    def test_language_filter(self, language, accepted):
        """Test exact, case-insensitive tag matching; untagged literals pass."""
        classifier = make_classifier(ImportConfig(language_filter="fr"))
        literal = Literal("chat", lang=language) if language else Literal("chat")
        result = classifier.classify(Statement(ALICE, NAME, literal))
        assert isinstance(result, LiteralProperty) is accepted

    def test_keep_lang_tag(self):
        classifier = make_classifier(ImportConfig(keep_lang_tag=True))
        result = classifier.classify(Statement(ALICE, NAME, Literal("chat", lang="fr")))
        assert result.value == "chat@fr"

    def test_custom_datatype_shortened(self):
        """Test that a kept custom datatype is shortened under SHORTEN."""
        prefixes = PrefixRegistry()
        classifier = make_classifier(ImportConfig(keep_custom_data_types=True), prefixes)
        literal = Literal("10", datatype=URIRef("http://example.org/units#cm"))
        result = classifier.classify(Statement(ALICE, URIRef("http://schema.org/height"), literal))
        assert result.key == "ns0__height"
        assert result.value == "10^^ns1__cm"

    def test_custom_datatype_kept_in_full(self):
        config = ImportConfig(handle_vocab_uris="IGNORE", keep_custom_data_types=True)
        literal = Literal("10", datatype=URIRef("http://example.org/units#cm"))
        result = make_classifier(config).classify(
            Statement(ALICE, URIRef("http://schema.org/height"), literal)
        )
        assert result.key == "height"
        assert result.value == "10^^http://example.org/units#cm"

    def test_unknown_namespace_without_allocation(self):
        """Test that a non-allocating classifier drops unseen vocabulary."""
        classifier = make_classifier(allocate=False)
        assert isinstance(classifier.classify(Statement(ALICE, NAME, Literal("x"))), Dropped)
        assert isinstance(classifier.classify(Statement(ALICE, RDF.type, PERSON)), Dropped)

    @pytest.mark.parametrize("policy", ["IGNORE", "MAP"])
    @pytest.mark.parametrize("local_name", ["uri", "graphUri"])
    def test_literal_named_like_resource_key(self, policy, local_name):
        """Test that a property whose name collides with a resource key is dropped."""
        classifier = make_classifier(ImportConfig(handle_vocab_uris=policy), mappings=MappingRegistry())
        predicate = URIRef(f"http://other.org/{local_name}")
        result = classifier.classify(Statement(ALICE, predicate, Literal("oops")))
        assert result == Dropped("reserved key")

    def test_resource_key_name_kept_when_prefixed(self):
        """Test that SHORTEN names never collide with resource keys."""
        predicate = URIRef("http://other.org/uri")
        result = make_classifier().classify(Statement(ALICE, predicate, Literal("fine")))
        assert isinstance(result, LiteralProperty)
        assert result.key == "ns0__uri"


@pytest.mark.unit
class TestMappingRegistry:
    """Tests for schema mappings."""

    def test_mapping_requires_schema(self, mappings):
        with pytest.raises(ValueError):
            mappings.add_mapping("http://schema.org/", "Person", "Individual")

    def test_schema_prefix_conflict(self, mappings):
        mappings.add_schema("http://schema.org/", "sch")
        mappings.add_schema("http://schema.org/", "sch")
        with pytest.raises(ValueError):
            mappings.add_schema("http://schema.org/", "other")

    def test_mapping_lookup_both_ways(self, mappings):
        mappings.add_schema("http://schema.org/", "sch")
        mappings.add_mapping("http://schema.org/", "Person", "Individual")
        assert mappings.vocabulary_uri_for("Individual") == "http://schema.org/Person"
        assert mappings.graph_name_for("http://schema.org/Person") == "Individual"
        assert mappings.graph_name_for("http://schema.org/Thing") is None

    def test_mapping_replaced(self, mappings):
        """Test that remapping a graph element replaces the old mapping."""
        mappings.add_schema("http://schema.org/", "sch")
        mappings.add_mapping("http://schema.org/", "Person", "Individual")
        mappings.add_mapping("http://schema.org/", "Agent", "Individual")
        assert [m.vocabulary_uri for m in mappings.mappings()] == ["http://schema.org/Agent"]

    def test_persisted_and_reloaded(self, store, mappings):
        """Test that a second registry over the same store sees the mappings."""
        mappings.add_schema("http://schema.org/", "sch")
        mappings.add_mapping("http://schema.org/", "name", "fullName")
        other = MappingRegistry(store)
        assert other.schemas() == {"http://schema.org/": "sch"}
        assert other.vocabulary_uri_for("fullName") == "http://schema.org/name"
        assert other.mappings()[0].to_dict() == {
            "schemaNs": "http://schema.org/",
            "schemaElement": "http://schema.org/name",
            "elemName": "fullName",
        }

    def test_drop_mapping(self, store, mappings):
        mappings.add_schema("http://schema.org/", "sch")
        mappings.add_mapping("http://schema.org/", "name", "fullName")
        assert mappings.drop_mapping("fullName")
        assert not mappings.drop_mapping("fullName")
        assert MappingRegistry(store).mappings() == []
