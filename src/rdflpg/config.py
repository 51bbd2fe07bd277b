"""
Import configuration.

The policy that shapes how statements become graph elements. The same
policy must be supplied to the delete call that retracts what an import
created. Keys accepted by ``ImportConfig.from_dict`` are camelCase, as in
the JSON configuration files and request payloads.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .constants import ImportDefaults
from .exceptions import InvalidConfigError

logger = logging.getLogger(__name__)


class HandleVocabUris(str, Enum):
    """How vocabulary IRIs (predicates, types) become graph names."""
    SHORTEN = "SHORTEN"
    KEEP = "KEEP"
    IGNORE = "IGNORE"
    MAP = "MAP"

    def __str__(self) -> str:
        return self.value


class HandleMultival(str, Enum):
    """What happens when a property receives more than one value."""
    OVERWRITE = "OVERWRITE"
    ARRAY = "ARRAY"

    def __str__(self) -> str:
        return self.value


def _parse_enum(enum_cls, key: str, value: Any):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidConfigError(key, f"'{value}' is not one of {allowed}")


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise InvalidConfigError(key, f"expected a boolean, got {value!r}")


def _parse_positive_int(key: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidConfigError(key, f"expected an integer, got {value!r}")
    if isinstance(value, bool) or number <= 0:
        raise InvalidConfigError(key, f"must be a positive integer, got {value!r}")
    return number


def _parse_str_list(key: str, value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value]
    raise InvalidConfigError(key, f"expected a list of IRIs, got {value!r}")


@dataclass
class ImportConfig:
    """
    Policy for ingest, delete and preview calls.

    Attributes:
        handle_vocab_uris: Naming policy for vocabulary IRIs.
        types_to_labels: Map rdf:type statements to node labels.
        handle_multival: OVERWRITE keeps the last value, ARRAY accumulates.
        multival_prop_list: When set (ARRAY only), predicates that accumulate.
        keep_custom_data_types: Keep non-native datatypes as ``lex^^dt``.
        custom_data_typed_prop_list: When set, predicates whose custom
            datatypes are kept.
        language_filter: Keep only literals with this language tag.
        keep_lang_tag: Store tagged literals as ``value@lang``.
        predicate_exclusion_list: Predicates whose statements are ignored.
        commit_size: Statements per committed batch.
        node_cache_size: Capacity of the resource cache.
        preview_limit: Statement cap for preview calls.
        header_params: Extra HTTP headers when the source is a URL.
    """
    handle_vocab_uris: HandleVocabUris = HandleVocabUris.SHORTEN
    types_to_labels: bool = True
    handle_multival: HandleMultival = HandleMultival.OVERWRITE
    multival_prop_list: List[str] = field(default_factory=list)
    keep_custom_data_types: bool = False
    custom_data_typed_prop_list: List[str] = field(default_factory=list)
    language_filter: Optional[str] = None
    keep_lang_tag: bool = False
    predicate_exclusion_list: List[str] = field(default_factory=list)
    commit_size: int = ImportDefaults.COMMIT_SIZE
    node_cache_size: int = ImportDefaults.NODE_CACHE_SIZE
    preview_limit: int = ImportDefaults.PREVIEW_LIMIT
    header_params: Dict[str, str] = field(default_factory=dict)

    # camelCase key -> attribute name
    _KEY_MAP = {
        "handleVocabUris": "handle_vocab_uris",
        "typesToLabels": "types_to_labels",
        "handleMultival": "handle_multival",
        "multivalPropList": "multival_prop_list",
        "keepCustomDataTypes": "keep_custom_data_types",
        "customDataTypedPropList": "custom_data_typed_prop_list",
        "languageFilter": "language_filter",
        "keepLangTag": "keep_lang_tag",
        "predicateExclusionList": "predicate_exclusion_list",
        "commitSize": "commit_size",
        "nodeCacheSize": "node_cache_size",
        "previewLimit": "preview_limit",
        "headerParams": "header_params",
    }

    def __post_init__(self):
        self.handle_vocab_uris = _parse_enum(
            HandleVocabUris, "handleVocabUris", self.handle_vocab_uris
        )
        self.handle_multival = _parse_enum(
            HandleMultival, "handleMultival", self.handle_multival
        )
        self.commit_size = _parse_positive_int("commitSize", self.commit_size)
        self.node_cache_size = _parse_positive_int("nodeCacheSize", self.node_cache_size)
        self.preview_limit = _parse_positive_int("previewLimit", self.preview_limit)
        if self.language_filter is not None:
            self.language_filter = str(self.language_filter).strip() or None
        if not isinstance(self.header_params, dict):
            raise InvalidConfigError("headerParams", "expected an object of header values")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ImportConfig":
        """
        Build a configuration from camelCase keys.

        The legacy ``shortenUrls`` flag maps to SHORTEN (true) or KEEP
        (false) unless ``handleVocabUris`` is also given. Unknown keys are
        logged and ignored.

        Args:
            data: Mapping of configuration keys, or None for defaults.

        Returns:
            The validated configuration.

        Raises:
            InvalidConfigError: If a value has the wrong type or range.
        """
        if not data:
            return cls()

        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "shortenUrls":
                if "handleVocabUris" not in data:
                    shorten = _parse_bool(key, value)
                    kwargs["handle_vocab_uris"] = (
                        HandleVocabUris.SHORTEN if shorten else HandleVocabUris.KEEP
                    )
                continue
            attr = cls._KEY_MAP.get(key)
            if attr is None:
                logger.warning(f"Ignoring unknown configuration key '{key}'")
                continue
            if attr in ("types_to_labels", "keep_custom_data_types", "keep_lang_tag"):
                value = _parse_bool(key, value)
            elif attr in ("multival_prop_list", "custom_data_typed_prop_list",
                          "predicate_exclusion_list"):
                value = _parse_str_list(key, value)
            kwargs[attr] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase form accepted by from_dict."""
        result = {}
        for key, attr in self._KEY_MAP.items():
            value = getattr(self, attr)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, list):
                value = list(value)
            elif isinstance(value, dict):
                value = dict(value)
            result[key] = value
        return result

    def is_multivalued(self, predicate: str) -> bool:
        """Return True when values of ``predicate`` accumulate into arrays."""
        if self.handle_multival is not HandleMultival.ARRAY:
            return False
        if not self.multival_prop_list:
            return True
        return predicate in self.multival_prop_list

    def keeps_custom_data_type(self, predicate: str) -> bool:
        """Return True when custom datatypes on ``predicate`` are preserved."""
        if not self.keep_custom_data_types:
            return False
        if not self.custom_data_typed_prop_list:
            return True
        return predicate in self.custom_data_typed_prop_list

    def is_excluded(self, predicate: str) -> bool:
        """Return True when statements with ``predicate`` are ignored."""
        return predicate in self.predicate_exclusion_list


def load_config(config_path: Union[str, Path]) -> ImportConfig:
    """
    Load an import configuration from a JSON file.

    The file may hold the keys at top level or under an ``"import"`` key.

    Args:
        config_path: Path to the JSON file.

    Returns:
        The parsed configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfigError: If the JSON is malformed or a value is invalid.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(str(path), f"invalid JSON: {e}")
    if not isinstance(data, dict):
        raise InvalidConfigError(str(path), "top-level JSON value must be an object")
    if isinstance(data.get("import"), dict):
        data = data["import"]
    logger.debug(f"Loaded configuration from {path}")
    return ImportConfig.from_dict(data)
