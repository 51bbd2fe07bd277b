"""
Call result data types.

Ingest, preview and delete calls always return one of these, whether they
complete or abort; an aborted call carries the counts reached before the
failure together with the reason in ``extra_info``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .graph import Subgraph


class TerminationStatus(str, Enum):
    """Outcome of an ingest or delete call."""
    OK = "OK"
    KO = "KO"

    def __str__(self) -> str:
        return self.value


@dataclass
class ImportResult:
    """
    Outcome of an ingest call.

    Attributes:
        termination_status: OK when the whole stream was committed.
        triples_parsed: Statements read from the source.
        triples_loaded: Statements applied in committed batches.
        resources_created: Resource nodes created by this call.
        resources_touched: Distinct resources written by this call.
        relationships_created: Relationships created by this call.
        namespaces: Prefix bindings in use, as prefix -> namespace.
        extra_info: Failure reason, empty when OK.
        config_summary: The effective configuration (camelCase keys).
    """
    termination_status: TerminationStatus = TerminationStatus.OK
    triples_parsed: int = 0
    triples_loaded: int = 0
    resources_created: int = 0
    resources_touched: int = 0
    relationships_created: int = 0
    namespaces: Dict[str, str] = field(default_factory=dict)
    extra_info: str = ""
    config_summary: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.termination_status is TerminationStatus.OK

    def fail(self, reason: str) -> "ImportResult":
        """Mark the result as aborted with ``reason`` and return it."""
        self.termination_status = TerminationStatus.KO
        self.extra_info = reason
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used in call responses."""
        return {
            "terminationStatus": self.termination_status.value,
            "triplesLoaded": self.triples_loaded,
            "triplesParsed": self.triples_parsed,
            "resourcesCreated": self.resources_created,
            "resourcesTouched": self.resources_touched,
            "relationshipsCreated": self.relationships_created,
            "namespaces": dict(self.namespaces),
            "extraInfo": self.extra_info,
            "configSummary": dict(self.config_summary),
        }

    def get_summary(self) -> str:
        """Human-readable summary for CLI output."""
        lines = [
            "Import Summary:",
            f"  Status: {self.termination_status.value}",
            f"  Triples parsed: {self.triples_parsed}",
            f"  Triples loaded: {self.triples_loaded}",
            f"  Resources created: {self.resources_created}",
            f"  Relationships created: {self.relationships_created}",
        ]
        if self.namespaces:
            lines.append(f"  Namespaces: {len(self.namespaces)}")
            for prefix, namespace in sorted(self.namespaces.items()):
                lines.append(f"      {prefix}: {namespace}")
        if self.extra_info:
            lines.append(f"  Info: {self.extra_info}")
        return "\n".join(lines)


@dataclass
class PreviewResult:
    """
    Outcome of a preview call: the transient graph plus the call counters.

    Attributes:
        subgraph: Nodes and relationships that an import would write.
        result: Counters and status of the preview run.
        truncated: True when the statement cap stopped the preview early.
    """
    subgraph: Subgraph = field(default_factory=Subgraph)
    result: ImportResult = field(default_factory=ImportResult)
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = self.subgraph.to_dict()
        data["truncated"] = self.truncated
        data["result"] = self.result.to_dict()
        return data


@dataclass
class DeleteResult:
    """
    Outcome of a delete call.

    Attributes:
        termination_status: OK when the whole stream was processed.
        triples_parsed: Statements read from the source.
        triples_deleted: Statements whose graph counterpart was removed.
        skipped_blank_nodes: Statements skipped for containing a blank node.
        resources_removed: Resource nodes removed because nothing was left.
        namespaces: Prefix bindings in use, as prefix -> namespace.
        extra_info: Failure reason or blank node notice.
    """
    termination_status: TerminationStatus = TerminationStatus.OK
    triples_parsed: int = 0
    triples_deleted: int = 0
    skipped_blank_nodes: int = 0
    resources_removed: int = 0
    namespaces: Dict[str, str] = field(default_factory=dict)
    extra_info: str = ""

    @property
    def ok(self) -> bool:
        return self.termination_status is TerminationStatus.OK

    def fail(self, reason: str) -> "DeleteResult":
        self.termination_status = TerminationStatus.KO
        self.extra_info = reason
        return self

    def blank_node_notice(self) -> Optional[str]:
        """The notice reported when blank node statements were skipped."""
        if not self.skipped_blank_nodes:
            return None
        return (
            f"{self.skipped_blank_nodes} of the statements could not be deleted, "
            f"due to containing a blank node."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "terminationStatus": self.termination_status.value,
            "triplesDeleted": self.triples_deleted,
            "triplesParsed": self.triples_parsed,
            "resourcesRemoved": self.resources_removed,
            "namespaces": dict(self.namespaces),
            "extraInfo": self.extra_info,
        }

    def get_summary(self) -> str:
        lines = [
            "Delete Summary:",
            f"  Status: {self.termination_status.value}",
            f"  Triples parsed: {self.triples_parsed}",
            f"  Triples deleted: {self.triples_deleted}",
        ]
        if self.resources_removed:
            lines.append(f"  Resources removed: {self.resources_removed}")
        if self.extra_info:
            lines.append(f"  Info: {self.extra_info}")
        return "\n".join(lines)
