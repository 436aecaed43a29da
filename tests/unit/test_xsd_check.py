# tests/unit/test_xsd_check.py
# -*- coding: utf-8 -*-

import pytest

from dcchain.schema.xsd_check import (
    MSG_CATALOG_HINT,
    MSG_IDENTICAL,
    MSG_NOT_VALID,
    MSG_USAGE,
    MSG_VALID,
    MSG_WRONG_XSD,
    XsdChecker,
    XsdStatus,
)

SCHEMA = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="CompositionPlaylist">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="Id" type="xs:string"/>
        <xs:element name="ContentTitleText" type="xs:string"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""

BROKEN_SCHEMA = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
  <xs:element name="CompositionPlaylist" type="xs:noSuchType"/>
</xs:schema>
"""

VALID_CPL = "<CompositionPlaylist><Id>urn:uuid:1</Id><ContentTitleText>Test</ContentTitleText></CompositionPlaylist>\n"
INCOMPLETE_CPL = "<CompositionPlaylist><Id>urn:uuid:1</Id></CompositionPlaylist>\n"
PKL = "<PackingList><Id>urn:uuid:2</Id></PackingList>\n"
MALFORMED = "<CompositionPlaylist><Id>urn:uuid:1</CompositionPlaylist>\n"


# -----------------------
# HELPERS
# -----------------------

@pytest.fixture
def files(tmp_path):
    def _write(name, content):
        p = tmp_path / name
        p.write_text(content, encoding="utf-8")
        return str(p)

    return _write


@pytest.fixture
def checker():
    # Pretend a catalog is configured so reports start with the real output
    return XsdChecker(environ={"XML_CATALOG_FILES": "catalog.xml"})


# -----------------------
# ARGUMENTS
# -----------------------

@pytest.mark.parametrize("count", [0, 1, 3])
def test_wrong_argument_count(checker, count):
    report = checker.check(["a.xml"] * count)
    assert report.status is XsdStatus.USAGE
    assert report.lines == [MSG_USAGE]
    assert report.exit_code == 2


def test_identical_strings(checker):
    report = checker.check(["cpl.xml", "cpl.xml"])
    assert report.status is XsdStatus.USAGE
    assert report.lines == [MSG_IDENTICAL]


def test_identical_after_resolution(checker, files, tmp_path):
    path = files("cpl.xml", VALID_CPL)
    alias = str(tmp_path / "sub" / ".." / "cpl.xml")
    (tmp_path / "sub").mkdir()
    assert checker.check([path, alias]).lines == [MSG_IDENTICAL]


def test_catalog_hint_when_unset(files):
    xsd, xml = files("cpl.xsd", SCHEMA), files("cpl.xml", VALID_CPL)
    report = XsdChecker(environ={}).check([xsd, xml])
    assert report.lines == [MSG_CATALOG_HINT, MSG_VALID]


# -----------------------
# VALIDATION
# -----------------------

@pytest.mark.parametrize("order", ["schema_first", "document_first"])
def test_valid_document_in_any_order(checker, files, order):
    xsd, xml = files("cpl.xsd", SCHEMA), files("cpl.xml", VALID_CPL)
    paths = [xsd, xml] if order == "schema_first" else [xml, xsd]
    report = checker.check(paths)
    assert report.status is XsdStatus.VALID
    assert report.lines == [MSG_VALID]
    assert report.schema_path == xsd and report.document_path == xml
    assert report.exit_code == 0


def test_missing_required_element(checker, files):
    xsd, xml = files("cpl.xsd", SCHEMA), files("cpl.xml", INCOMPLETE_CPL)
    report = checker.check([xml, xsd])
    assert report.status is XsdStatus.INVALID
    assert report.lines[0].startswith(f"Validation: {xml}: ")
    assert "ContentTitleText" in report.lines[0]
    assert MSG_WRONG_XSD not in report.lines
    assert report.lines[-1] == MSG_NOT_VALID
    assert report.exit_code == 1


def test_wrong_schema_hint(checker, files):
    xsd, xml = files("cpl.xsd", SCHEMA), files("pkl.xml", PKL)
    report = checker.check([xsd, xml])
    assert report.status is XsdStatus.INVALID
    assert "No matching global declaration available" in report.lines[0]
    assert report.lines[-2:] == [MSG_WRONG_XSD, MSG_NOT_VALID]


# -----------------------
# PARSE FAILURES
# -----------------------

def test_syntax_error_stops_before_validation(checker, files):
    xsd, xml = files("cpl.xsd", SCHEMA), files("bad.xml", MALFORMED)
    report = checker.check([xsd, xml])
    assert report.status is XsdStatus.PARSE_ERROR
    assert report.lines
    assert all(line.startswith(f"Syntax error: {xml}: ") for line in report.lines)
    assert MSG_VALID not in report.lines and MSG_NOT_VALID not in report.lines


def test_unreadable_file(checker, files, tmp_path):
    xsd = files("cpl.xsd", SCHEMA)
    report = checker.check([xsd, str(tmp_path / "missing.xml")])
    assert report.status is XsdStatus.PARSE_ERROR
    assert "missing.xml" in "\n".join(report.lines)


def test_schema_compile_error(checker, files):
    xsd, xml = files("broken.xsd", BROKEN_SCHEMA), files("cpl.xml", VALID_CPL)
    report = checker.check([xsd, xml])
    assert report.status is XsdStatus.PARSE_ERROR
    assert report.lines[0].startswith(f"Schema error: {xsd}: ")


@pytest.mark.parametrize("pair", [(SCHEMA, SCHEMA), (VALID_CPL, PKL)])
def test_exactly_one_schema_required(checker, files, pair):
    a, b = files("a.xml", pair[0]), files("b.xml", pair[1])
    report = checker.check([a, b])
    assert report.status is XsdStatus.USAGE
    assert report.exit_code == 2
