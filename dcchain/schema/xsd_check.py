# dcchain/schema/xsd_check.py
"""
Validate an XML document against an XSD and report in plain lines.

Takes exactly two paths in any order; whichever file has a root element
named ``schema`` is the schema, the other is the document. Typical use is
checking CPL/PKL documents against the SMPTE schemas:

    xsd-check SMPTE-429-7-2006-CPL.xsd cpl.xml

Both files are parsed with a recovering parser so every syntax error is
listed, not just the first one. Schema imports are resolved by libxml2,
which honours XML_CATALOG_FILES.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from lxml import etree

logger = logging.getLogger(__name__)

__all__ = [
    "XsdStatus",
    "XsdCheckReport",
    "XsdChecker",
    "MSG_USAGE",
    "MSG_IDENTICAL",
    "MSG_CATALOG_HINT",
    "MSG_WRONG_XSD",
    "MSG_VALID",
    "MSG_NOT_VALID",
]

MSG_USAGE = "2 arguments required: 1 XML file, 1 XSD file (Order doesn't matter)"
MSG_IDENTICAL = "Identical files provided"
MSG_CATALOG_HINT = "Consider using XML Catalogs and set env XML_CATALOG_FILES to point at your catalog"
MSG_WRONG_XSD = "Wrong XSD file?"
MSG_VALID = "XML document is valid"
MSG_NOT_VALID = "XML document is not valid"

_WRONG_XSD_RE = re.compile(r"Element.*No matching global declaration available")


class XsdStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    USAGE = "usage"
    PARSE_ERROR = "parse_error"

    @property
    def exit_code(self) -> int:
        return {"valid": 0, "invalid": 1, "parse_error": 1, "usage": 2}[self.value]


@dataclass
class XsdCheckReport:
    status: XsdStatus
    lines: List[str] = field(default_factory=list)
    schema_path: Optional[str] = None
    document_path: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is XsdStatus.VALID

    @property
    def exit_code(self) -> int:
        return self.status.exit_code

    def text(self) -> str:
        return "".join(line + "\n" for line in self.lines)


def _format_entry(entry) -> str:
    return f"{entry.line}:{entry.column}: {entry.level_name}: {entry.message}"


def _same_file(a: str, b: str) -> bool:
    if a == b:
        return True
    try:
        return Path(a).resolve() == Path(b).resolve()
    except OSError:
        return False


class XsdChecker:
    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def _parse(self, path: str, lines: List[str]) -> Tuple[Optional[etree._ElementTree], bool]:
        """Parse one file; returns (tree, had_syntax_errors). Raises OSError when unreadable."""
        parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
        try:
            tree = etree.parse(path, parser)
        except etree.XMLSyntaxError as e:
            entries = list(e.error_log) or list(parser.error_log)
            if entries:
                lines.extend(f"Syntax error: {path}: {_format_entry(x)}" for x in entries)
            else:
                lines.append(f"Syntax error: {path}: {e}")
            return None, True

        had_errors = False
        for entry in parser.error_log:
            lines.append(f"Syntax error: {path}: {_format_entry(entry)}")
            had_errors = True
        if tree.getroot() is None:
            lines.append(f"Syntax error: {path}: no root element")
            return None, True
        return tree, had_errors

    def check(self, paths: Sequence[str]) -> XsdCheckReport:
        lines: List[str] = []
        if len(paths) != 2:
            return XsdCheckReport(XsdStatus.USAGE, [MSG_USAGE])
        first, second = (str(p) for p in paths)
        if _same_file(first, second):
            return XsdCheckReport(XsdStatus.USAGE, [MSG_IDENTICAL])

        if not self._environ.get("XML_CATALOG_FILES"):
            lines.append(MSG_CATALOG_HINT)

        trees = {}
        syntax_errors = False
        for path in (first, second):
            try:
                tree, had_errors = self._parse(path, lines)
            except OSError as e:
                lines.append(str(e))
                return XsdCheckReport(XsdStatus.PARSE_ERROR, lines)
            syntax_errors = syntax_errors or had_errors
            if tree is not None:
                trees[path] = tree
        if syntax_errors:
            return XsdCheckReport(XsdStatus.PARSE_ERROR, lines)

        schemas = [p for p, t in trees.items() if etree.QName(t.getroot()).localname == "schema"]
        if len(schemas) != 1:
            lines.append(
                "Exactly one of the files must be an XSD schema, found "
                f"{len(schemas)}: {', '.join(schemas) or 'none'}"
            )
            return XsdCheckReport(XsdStatus.USAGE, lines)
        schema_path = schemas[0]
        doc_path = second if schema_path == first else first

        try:
            schema = etree.XMLSchema(trees[schema_path])
        except etree.XMLSchemaParseError as e:
            entries = list(e.error_log)
            if entries:
                lines.extend(f"Schema error: {schema_path}: {x.message}" for x in entries)
            else:
                lines.append(f"Schema error: {schema_path}: {e}")
            return XsdCheckReport(XsdStatus.PARSE_ERROR, lines, schema_path, doc_path)

        if schema.validate(trees[doc_path]):
            lines.append(MSG_VALID)
            logger.debug("%s is valid against %s", doc_path, schema_path)
            return XsdCheckReport(XsdStatus.VALID, lines, schema_path, doc_path)

        messages = [entry.message for entry in schema.error_log]
        lines.extend(f"Validation: {doc_path}: {m}" for m in messages)
        lines.extend(MSG_WRONG_XSD for m in messages if _WRONG_XSD_RE.search(m))
        lines.append(MSG_NOT_VALID)
        logger.debug("%s failed validation with %d error(s)", doc_path, len(messages))
        return XsdCheckReport(XsdStatus.INVALID, lines, schema_path, doc_path)
