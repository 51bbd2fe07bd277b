"""
Tests for the namespace prefix registry.
"""

import pytest

from rdflpg.constants import NAMESPACE_RECORD_LABEL
from rdflpg.exceptions import PrefixConflictError, UnknownPrefixError
from rdflpg.mapping.prefixes import PrefixRegistry, next_auto_prefix


SCHEMA = "http://schema.org/"
EX = "http://example.org/"


@pytest.mark.unit
class TestNextAutoPrefix:
    """Tests for auto prefix allocation."""

    def test_first_prefix(self):
        assert next_auto_prefix(set()) == "ns0"

    def test_max_plus_one(self):
        """Test that the index continues after the highest one in use."""
        assert next_auto_prefix({"ns0", "ns4", "sch"}) == "ns5"

    def test_ignores_user_prefixes(self):
        """Test that user prefixes do not affect the index."""
        assert next_auto_prefix({"sch", "nsx", "ns"}) == "ns0"


@pytest.mark.unit
class TestPrefixRegistry:
    """Tests for a registry backed by a store."""

    def test_ensure_binding_is_idempotent(self, prefixes):
        """Test that a namespace keeps the prefix it was given."""
        assert prefixes.ensure_binding(SCHEMA) == "ns0"
        assert prefixes.ensure_binding(EX) == "ns1"
        assert prefixes.ensure_binding(SCHEMA) == "ns0"

    def test_shorten_and_expand(self, prefixes):
        """Test that expand undoes shorten."""
        key = prefixes.shorten("http://schema.org/name")
        assert key == "ns0__name"
        assert prefixes.expand(key) == "http://schema.org/name"

    def test_local_name_with_separator(self, prefixes):
        """Test that a local name containing the separator expands back."""
        uri = "http://example.org/has__part"
        assert prefixes.expand(prefixes.shorten(uri)) == uri

    def test_binding_is_persisted(self, store, prefixes):
        """Test that the binding lands in the namespace record node."""
        prefixes.ensure_binding(SCHEMA)
        records = store.nodes_with_label(NAMESPACE_RECORD_LABEL)
        assert len(records) == 1
        assert records[0].properties == {SCHEMA: "ns0"}

    def test_other_registry_sees_binding(self, store, prefixes):
        """Test that a second registry over the same store resolves the prefix."""
        prefixes.ensure_binding(SCHEMA)
        other = PrefixRegistry(store)
        assert other.expand("ns0__name") == "http://schema.org/name"
        assert other.ensure_binding(EX) == "ns1"

    def test_miss_rereads_record(self, store, prefixes):
        """Test that a binding added by another registry is found on a miss."""
        prefixes.bindings()
        PrefixRegistry(store).add_binding(SCHEMA, "sch")
        assert prefixes.namespace_for("sch") == SCHEMA

    def test_refresh_drops_bindings_removed_from_record(self, store, prefixes):
        """Test that a binding deleted from the record does not survive a refresh."""
        prefixes.ensure_binding(SCHEMA)
        prefixes.ensure_binding(EX)
        with store.transaction() as tx:
            record = tx.nodes_with_label(NAMESPACE_RECORD_LABEL)[0]
            tx.remove_property(record.id, SCHEMA)
        prefixes.refresh()
        assert prefixes.bindings() == {"ns1": EX}
        with pytest.raises(UnknownPrefixError):
            prefixes.expand("ns0__name")

    def test_try_shorten_does_not_allocate(self, prefixes):
        """Test that try_shorten leaves unknown namespaces alone."""
        assert prefixes.try_shorten("http://schema.org/name") is None
        assert prefixes.bindings() == {}

    def test_unknown_prefix(self, prefixes):
        """Test that expanding an unbound prefix raises UnknownPrefixError."""
        with pytest.raises(UnknownPrefixError) as exc_info:
            prefixes.expand("zz__name")
        assert exc_info.value.message == (
            "Prefix zz in use but not defined in the 'NamespacePrefixDefinition' node"
        )

    def test_expand_requires_shortened_key(self, prefixes):
        with pytest.raises(ValueError):
            prefixes.expand("name")


@pytest.mark.unit
class TestUserBindings:
    """Tests for add_binding and remove_binding."""

    def test_add_binding(self, prefixes):
        """Test that a user prefix is used for shortening."""
        prefixes.add_binding(SCHEMA, "sch")
        assert prefixes.shorten("http://schema.org/name") == "sch__name"
        assert prefixes.bindings() == {"sch": SCHEMA}

    def test_add_same_binding_twice(self, prefixes):
        """Test that re-adding an identical binding is accepted."""
        prefixes.add_binding(SCHEMA, "sch")
        assert prefixes.add_binding(SCHEMA, "sch") == "sch"

    def test_conflicting_prefix(self, prefixes):
        """Test that a prefix cannot be bound to two namespaces."""
        prefixes.add_binding(SCHEMA, "sch")
        with pytest.raises(PrefixConflictError):
            prefixes.add_binding(EX, "sch")

    def test_conflicting_namespace(self, prefixes):
        """Test that a namespace cannot get a second prefix."""
        prefixes.ensure_binding(SCHEMA)
        with pytest.raises(PrefixConflictError):
            prefixes.add_binding(SCHEMA, "sch")

    @pytest.mark.parametrize("prefix,namespace", [
        ("a__b", SCHEMA),
        ("1abc", SCHEMA),
        ("sch", "not an iri"),
    ])
    def test_invalid_binding(self, prefixes, prefix, namespace):
        """Test that invalid tokens and namespaces are rejected."""
        with pytest.raises(PrefixConflictError):
            prefixes.add_binding(namespace, prefix)

    def test_auto_prefix_skips_user_token(self, prefixes):
        """Test that a user-chosen nsN token is not handed out again."""
        prefixes.add_binding(SCHEMA, "ns0")
        assert prefixes.ensure_binding(EX) == "ns1"

    def test_remove_binding(self, store, prefixes):
        """Test that keys using a removed prefix no longer expand."""
        prefixes.add_binding(SCHEMA, "sch")
        assert prefixes.remove_binding("sch")
        assert not prefixes.remove_binding("sch")
        with pytest.raises(UnknownPrefixError):
            PrefixRegistry(store).expand("sch__name")


@pytest.mark.unit
class TestTransientRegistry:
    """Tests for registries without a store."""

    def test_transient_allocation(self):
        """Test that a transient registry allocates in memory."""
        registry = PrefixRegistry()
        assert registry.is_transient
        assert registry.shorten("http://schema.org/name") == "ns0__name"
        assert registry.expand("ns0__name") == "http://schema.org/name"

    def test_detached_copy_does_not_persist(self, store, prefixes):
        """Test that bindings made on a detached copy stay out of the store."""
        prefixes.ensure_binding(SCHEMA)
        detached = prefixes.detached()
        assert detached.shorten("http://schema.org/name") == "ns0__name"
        assert detached.ensure_binding(EX) == "ns1"
        assert prefixes.prefix_for(EX) is None
        records = store.nodes_with_label(NAMESPACE_RECORD_LABEL)
        assert records[0].properties == {SCHEMA: "ns0"}
