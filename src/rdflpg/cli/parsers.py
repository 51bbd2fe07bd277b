"""
Argument parsing configuration for the rdflpg CLI.
"""

import argparse

from .. import __version__
from .helpers import DEFAULT_STORE_PATH

FORMAT_HELP = "RDF format: Turtle, RDF/XML, JSON-LD, TriG, N-Quads, N-Triples (or ttl, rdf, jsonld, nq, nt)"


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--store', default=DEFAULT_STORE_PATH,
                        help=f"Graph snapshot file (default: {DEFAULT_STORE_PATH})")
    common.add_argument('--config', help="JSON file with the import configuration")
    common.add_argument('--log-level', default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Log level (default: WARNING)")
    common.add_argument('--log-file', help="Also write logs to this file")
    return common


def _source_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('source', help="URL, file://URL, file or directory; '-' reads stdin")
    parser.add_argument('--format', '-f', help=f"{FORMAT_HELP}; inferred from the extension if omitted")
    parser.add_argument('--inline', action='store_true', help="Treat SOURCE as RDF text")
    parser.add_argument('--quad', action='store_true',
                        help="Keep named graphs (resources keyed by uri and graphUri)")
    parser.add_argument('--param', '-p', action='append', metavar="KEY=VALUE",
                        help="Override a configuration key, e.g. -p handleVocabUris=KEEP")
    parser.add_argument('--json', action='store_true', help="Print the result as JSON")


def _output_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--format', '-f', default="Turtle", help=f"{FORMAT_HELP} (default: Turtle)")
    parser.add_argument('--mode', choices=["rdf", "lpg"], default="rdf",
                        help="rdf for imported graphs, lpg for arbitrary graphs (default: rdf)")
    parser.add_argument('--output', '-o', help="Write to this file instead of stdout")


def create_argument_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with one sub-command per operation."""
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="rdflpg",
        description="Map RDF to a labeled property graph and back.",
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest='command', help="Available commands")

    init_parser = subparsers.add_parser('init', parents=[common],
                                        help="Create the constraint imports depend on")
    init_parser.add_argument('--quad', action='store_true',
                             help="Create the (uri, graphUri) constraint for quad imports")

    import_parser = subparsers.add_parser('import', parents=[common], help="Import RDF into the graph")
    _source_options(import_parser)
    import_parser.add_argument('--no-progress', action='store_true', help="Hide the progress bar")

    delete_parser = subparsers.add_parser('delete', parents=[common],
                                          help="Delete RDF statements from the graph")
    _source_options(delete_parser)
    delete_parser.add_argument('--no-progress', action='store_true', help="Hide the progress bar")

    preview_parser = subparsers.add_parser('preview', parents=[common],
                                           help="Show what an import would create")
    _source_options(preview_parser)
    preview_parser.add_argument('--output', '-o', help="Write the preview JSON to this file")

    export_parser = subparsers.add_parser('export', parents=[common], help="Serialize the graph as RDF")
    _output_options(export_parser)
    export_parser.add_argument('--label', help="Only export nodes with this label")
    export_parser.add_argument('--mapped-only', action='store_true',
                               help="Suppress labels, properties and types without a mapping")

    describe_parser = subparsers.add_parser('describe', parents=[common],
                                            help="Serialize one resource and its relationships")
    describe_parser.add_argument('uri', help="uri of the resource")
    describe_parser.add_argument('--graph-uri', help="Named graph of the resource (quad imports)")
    describe_parser.add_argument('--exclude-context', action='store_true',
                                 help="Leave out the relationships of the resource")
    _output_options(describe_parser)

    find_parser = subparsers.add_parser('find', parents=[common],
                                        help="Serialize the nodes with a label and property value")
    find_parser.add_argument('label', help="Node label as stored (e.g. ns0__Person)")
    find_parser.add_argument('key', help="Property name as stored (e.g. ns0__name)")
    find_parser.add_argument('value', help="Property value to match")
    find_parser.add_argument('--type', dest='value_type', default=None,
                             help="Value type: String (default), Integer, Double, Boolean, Date, DateTime")
    find_parser.add_argument('--exclude-context', action='store_true',
                             help="Leave out the relationships of the matched nodes")
    _output_options(find_parser)

    ontology_parser = subparsers.add_parser('ontology', parents=[common],
                                            help="Serialize an OWL outline of the graph schema")
    _output_options(ontology_parser)

    prefixes_parser = subparsers.add_parser('prefixes', parents=[common],
                                            help="Manage namespace prefixes")
    prefix_actions = prefixes_parser.add_subparsers(dest='prefix_action')
    prefix_actions.add_parser('list', help="List prefix bindings")
    add_prefix = prefix_actions.add_parser('add', help="Bind a prefix to a namespace")
    add_prefix.add_argument('prefix')
    add_prefix.add_argument('namespace')
    remove_prefix = prefix_actions.add_parser('remove', help="Remove a prefix binding")
    remove_prefix.add_argument('prefix')

    mappings_parser = subparsers.add_parser('mappings', parents=[common],
                                            help="Manage schema mappings")
    mapping_actions = mappings_parser.add_subparsers(dest='mapping_action')
    mapping_actions.add_parser('list', help="List schemas and mappings")
    add_schema = mapping_actions.add_parser('add-schema', help="Register a schema namespace")
    add_schema.add_argument('namespace')
    add_schema.add_argument('prefix')
    add_mapping = mapping_actions.add_parser('add', help="Map a graph name to a vocabulary element")
    add_mapping.add_argument('namespace')
    add_mapping.add_argument('element', help="Local name of the vocabulary element")
    add_mapping.add_argument('graph_element', help="Label, property key or relationship type")
    drop_mapping = mapping_actions.add_parser('drop', help="Remove a mapping")
    drop_mapping.add_argument('graph_element')

    return parser
