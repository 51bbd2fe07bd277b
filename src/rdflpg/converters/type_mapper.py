"""
Type Mapper - RDF literals to native property values and back.

Literal datatypes are narrowed to a closed set of native kinds. Anything
outside that set is either kept as an encoded ``lexical^^datatype`` string
(when the import policy asks for it) or degraded to its lexical form.
"""

import datetime
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional

from rdflib import RDF, XSD, Literal, URIRef

from ..constants import DATATYPE_SEPARATOR, LANGUAGE_SEPARATOR
from ..exceptions import InvalidConfigError
from .uri_utils import URIUtils

logger = logging.getLogger(__name__)


class ValueKind(str, Enum):
    """Native kinds a literal value can be stored as."""
    STRING = "String"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    DOUBLE = "Double"
    DATE = "Date"
    DATETIME = "DateTime"
    CUSTOM = "CustomTyped"

    def __str__(self) -> str:
        return self.value


# XSD type to native kind mapping; datatypes not listed here are custom.
XSD_TO_VALUE_KIND: Dict[str, ValueKind] = {
    str(XSD.string): ValueKind.STRING,
    str(RDF.langString): ValueKind.STRING,
    str(XSD.boolean): ValueKind.BOOLEAN,
    str(XSD.integer): ValueKind.INTEGER,
    str(XSD.int): ValueKind.INTEGER,
    str(XSD.long): ValueKind.INTEGER,
    str(XSD.short): ValueKind.INTEGER,
    str(XSD.byte): ValueKind.INTEGER,
    str(XSD.nonNegativeInteger): ValueKind.INTEGER,
    str(XSD.nonPositiveInteger): ValueKind.INTEGER,
    str(XSD.positiveInteger): ValueKind.INTEGER,
    str(XSD.negativeInteger): ValueKind.INTEGER,
    str(XSD.unsignedLong): ValueKind.INTEGER,
    str(XSD.unsignedInt): ValueKind.INTEGER,
    str(XSD.unsignedShort): ValueKind.INTEGER,
    str(XSD.unsignedByte): ValueKind.INTEGER,
    str(XSD.double): ValueKind.DOUBLE,
    str(XSD.float): ValueKind.DOUBLE,
    str(XSD.decimal): ValueKind.DOUBLE,
    str(XSD.date): ValueKind.DATE,
    str(XSD.dateTime): ValueKind.DATETIME,
    str(XSD.dateTimeStamp): ValueKind.DATETIME,
}

_DATATYPED_VALUE = re.compile(r"^(.*)\^\^(\S+)$", re.DOTALL)
_LANGUAGE_TAGGED_VALUE = re.compile(
    r"^(.*)@([A-Za-z]{1,8}(?:-[A-Za-z0-9]{1,8})*)$", re.DOTALL
)


@dataclass(frozen=True)
class TypedValue:
    """
    A literal narrowed to a native kind.

    Attributes:
        kind: The native kind.
        value: Native Python value (the lexical form for STRING/CUSTOM).
        datatype: Datatype IRI for CUSTOM values.
        language: Language tag of a tagged string.
    """
    kind: ValueKind
    value: Any
    datatype: Optional[str] = None
    language: Optional[str] = None

    def to_property(
        self,
        datatype_key: Optional[str] = None,
        keep_lang_tag: bool = False
    ) -> Any:
        """
        Return the value as it is stored on a node.

        Args:
            datatype_key: Name of the datatype under the vocabulary policy;
                only used for CUSTOM values.
            keep_lang_tag: Append ``@lang`` to tagged strings.

        Returns:
            A native scalar or an encoded string.
        """
        if self.kind is ValueKind.CUSTOM:
            return f"{self.value}{DATATYPE_SEPARATOR}{datatype_key or self.datatype}"
        if self.kind is ValueKind.STRING and keep_lang_tag and self.language:
            return f"{self.value}{LANGUAGE_SEPARATOR}{self.language}"
        return self.value


class TypeMapper:
    """
    Maps RDF literals to native values and native values back to literals.

    Example:
        >>> TypeMapper.kind_for_datatype(XSD.integer)
        <ValueKind.INTEGER: 'Integer'>
        >>> TypeMapper.to_literal(42)
        rdflib.term.Literal('42', datatype=rdflib.term.URIRef('http://www.w3.org/2001/XMLSchema#integer'))
    """

    @staticmethod
    def kind_for_datatype(datatype: Optional[str], keep_custom: bool = False) -> ValueKind:
        """
        Choose the native kind for a datatype IRI.

        Args:
            datatype: Datatype IRI, or None for plain literals.
            keep_custom: Whether non-native datatypes are preserved.

        Returns:
            The native kind; non-native datatypes give CUSTOM when kept and
            STRING otherwise.
        """
        if datatype is None:
            return ValueKind.STRING
        kind = XSD_TO_VALUE_KIND.get(str(datatype))
        if kind is not None:
            return kind
        return ValueKind.CUSTOM if keep_custom else ValueKind.STRING

    @staticmethod
    def to_typed_value(literal: Literal, keep_custom: bool = False) -> TypedValue:
        """
        Narrow an rdflib literal to a TypedValue.

        Ill-typed lexical forms (e.g. "abc"^^xsd:integer) fall back to a
        STRING holding the lexical form.

        Args:
            literal: The literal to convert.
            keep_custom: Whether non-native datatypes are preserved.

        Returns:
            The typed value.
        """
        lexical = str(literal)
        datatype = str(literal.datatype) if literal.datatype is not None else None
        kind = TypeMapper.kind_for_datatype(datatype, keep_custom)

        if kind is ValueKind.STRING:
            return TypedValue(ValueKind.STRING, lexical, language=literal.language)
        if kind is ValueKind.CUSTOM:
            return TypedValue(ValueKind.CUSTOM, lexical, datatype=datatype)

        native = TypeMapper._native_value(kind, literal.value)
        if native is None:
            logger.debug(f"Ill-typed literal '{lexical}' for {datatype}, keeping lexical form")
            return TypedValue(ValueKind.STRING, lexical)
        return TypedValue(kind, native)

    @staticmethod
    def _native_value(kind: ValueKind, value: Any) -> Any:
        if value is None:
            return None
        if kind is ValueKind.BOOLEAN:
            return value if isinstance(value, bool) else None
        if kind is ValueKind.INTEGER:
            if isinstance(value, bool) or not isinstance(value, int):
                return None
            return value
        if kind is ValueKind.DOUBLE:
            if isinstance(value, (float, int, Decimal)) and not isinstance(value, bool):
                return float(value)
            return None
        if kind is ValueKind.DATETIME:
            return value if isinstance(value, datetime.datetime) else None
        if kind is ValueKind.DATE:
            if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
                return value
            return None
        return None

    @staticmethod
    def to_literal(
        value: Any,
        expand_datatype: Optional[Callable[[str], str]] = None,
        decode_language: bool = True,
        decode_datatype: bool = True
    ) -> Literal:
        """
        Turn a stored property value back into an RDF literal.

        Strings encoded as ``lexical^^datatype`` become typed literals (the
        datatype is expanded through ``expand_datatype`` when it is a
        shortened key) and strings encoded as ``value@lang`` become tagged
        literals.

        Args:
            value: A native scalar.
            expand_datatype: Callable expanding a shortened datatype key.
            decode_language: Decode ``value@lang`` strings.
            decode_datatype: Decode ``lexical^^datatype`` strings.

        Returns:
            The literal.

        Raises:
            UnknownPrefixError: If a shortened datatype uses an unknown prefix.
        """
        if isinstance(value, bool):
            return Literal(value)
        if isinstance(value, int):
            return Literal(value, datatype=XSD.integer)
        if isinstance(value, float):
            return Literal(value, datatype=XSD.double)
        if isinstance(value, datetime.datetime):
            return Literal(value, datatype=XSD.dateTime)
        if isinstance(value, datetime.date):
            return Literal(value, datatype=XSD.date)
        if not isinstance(value, str):
            return Literal(str(value))

        if decode_datatype:
            match = _DATATYPED_VALUE.match(value)
            if match:
                lexical, datatype = match.group(1), match.group(2)
                if URIUtils.is_shortened_key(datatype) and expand_datatype is not None:
                    return Literal(lexical, datatype=URIRef(expand_datatype(datatype)))
                if URIUtils.is_absolute_iri(datatype):
                    return Literal(lexical, datatype=URIRef(datatype))
        if decode_language:
            match = _LANGUAGE_TAGGED_VALUE.match(value)
            if match:
                return Literal(match.group(1), lang=match.group(2))
        return Literal(value)

    @staticmethod
    def parse_value(text: str, value_type: Optional[str] = None) -> Any:
        """
        Parse a command-line value into the native kind named by ``value_type``.

        Args:
            text: The value as typed by the user.
            value_type: A ValueKind name (case-insensitive) or one of the
                aliases int, long, float; None means String.

        Returns:
            The native value.

        Raises:
            InvalidConfigError: For an unknown type or a value that does not parse.
        """
        name = (value_type or ValueKind.STRING.value).strip().lower()
        kind = _VALUE_TYPE_NAMES.get(name)
        if kind is None:
            raise InvalidConfigError(
                "valType", f"'{value_type}' is not one of {', '.join(sorted(_VALUE_TYPE_NAMES))}"
            )
        try:
            if kind is ValueKind.STRING:
                return text
            if kind is ValueKind.INTEGER:
                return int(text)
            if kind is ValueKind.DOUBLE:
                return float(text)
            if kind is ValueKind.BOOLEAN:
                if text.strip().lower() not in ("true", "false"):
                    raise ValueError(text)
                return text.strip().lower() == "true"
            if kind is ValueKind.DATE:
                return datetime.date.fromisoformat(text)
            return datetime.datetime.fromisoformat(text)
        except ValueError:
            raise InvalidConfigError("valType", f"'{text}' is not a valid {kind.value}") from None


_VALUE_TYPE_NAMES: Dict[str, ValueKind] = {
    kind.value.lower(): kind for kind in ValueKind if kind is not ValueKind.CUSTOM
}
_VALUE_TYPE_NAMES.update({"int": ValueKind.INTEGER, "long": ValueKind.INTEGER, "float": ValueKind.DOUBLE})
