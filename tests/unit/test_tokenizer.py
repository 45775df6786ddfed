"""Unit tests for the XML tokenizer."""

import pytest

from ev3diagram.errors import ErrorKind, MalformedXmlError
from ev3diagram.events import (
    CData,
    Comment,
    Declaration,
    DocType,
    EmptyTag,
    EndOfStream,
    EndTag,
    ProcessingInstruction,
    RawAttribute,
    StartTag,
    Text,
)
from ev3diagram.tokenizer import tokenize


class TestTagEvents:
    """Test start, end and empty tag events."""

    def test_empty_tag(self):
        """Test a self-closing tag yields a single EmptyTag."""
        assert tokenize(b'<Wire Id="w1" />') == [
            EmptyTag(b"Wire", None, (RawAttribute(b"Id", None, b"w1"),)),
            EndOfStream(),
        ]

    def test_empty_tag_without_space(self):
        """Test ``<a/>`` is recognized as empty."""
        assert tokenize(b"<a/>") == [EmptyTag(b"a"), EndOfStream()]

    def test_open_close_pair_is_not_empty(self):
        """Test ``<a></a>`` yields start and end tags."""
        assert tokenize(b"<a></a>") == [StartTag(b"a"), EndTag(b"a"), EndOfStream()]

    def test_nesting_order(self):
        """Test events keep document order."""
        events = tokenize(b"<a><b/><c></c></a>")
        assert events == [
            StartTag(b"a"),
            EmptyTag(b"b"),
            StartTag(b"c"),
            EndTag(b"c"),
            EndTag(b"a"),
            EndOfStream(),
        ]

    def test_gt_inside_attribute_value(self):
        """Test ``>`` in a quoted value does not end the tag early."""
        events = tokenize(b"<a x='1>2' y=\"/\"/>")
        assert events[0] == EmptyTag(
            b"a", None, (RawAttribute(b"x", None, b"1>2"), RawAttribute(b"y", None, b"/"))
        )

    def test_slash_value_before_close_is_not_empty(self):
        """Test a value ending in ``/`` does not make the tag empty."""
        events = tokenize(b'<a x="/"></a>')
        assert isinstance(events[0], StartTag)
        assert events[1] == EndTag(b"a")

    def test_prefixes_split(self):
        """Test tag and attribute prefixes are split from local names."""
        events = tokenize(b'<p:Canvas xmlns:p="urn:x" p:Width="5" />')
        assert events[0] == EmptyTag(
            b"Canvas",
            b"p",
            (RawAttribute(b"p", b"xmlns", b"urn:x"), RawAttribute(b"Width", b"p", b"5")),
        )

    def test_attribute_order_kept(self):
        """Test attributes are reported in document order."""
        events = tokenize(b'<a z="1" a="2" m="3"/>')
        assert [attr.name for attr in events[0].attributes] == [b"z", b"a", b"m"]

    def test_non_ascii_values(self):
        """Test attribute values are UTF-8 bytes."""
        events = tokenize('<a n="Motör"/>'.encode("utf-8"))
        assert events[0].attributes[0].value == "Motör".encode("utf-8")


class TestTextEvents:
    """Test character data handling."""

    def test_whitespace_dropped(self):
        """Test whitespace-only text produces no events."""
        events = tokenize(b"<a>\n    <b />\n</a>")
        assert not any(isinstance(event, Text) for event in events)

    def test_text_trimmed(self):
        """Test other text is trimmed."""
        events = tokenize(b"<a>  hello  </a>")
        assert events[1] == Text(b"hello")

    def test_entity_references_resolved(self):
        """Test predefined entities are resolved into text."""
        events = tokenize(b"<a>x &amp; y</a>")
        assert events[1] == Text(b"x & y")


class TestOtherEvents:
    """Test prolog, comment and miscellaneous events."""

    def test_declaration(self):
        """Test the XML declaration is reported first."""
        events = tokenize(b'<?xml version="1.0" encoding="utf-8"?>\n<a/>')
        assert events[0] == Declaration(b"1.0", b"utf-8", None)

    def test_declaration_standalone(self):
        """Test standalone is reported as a boolean."""
        events = tokenize(b'<?xml version="1.0" standalone="yes"?><a/>')
        assert events[0] == Declaration(b"1.0", None, True)

    def test_comment(self):
        """Test comments are reported with their content."""
        events = tokenize(b"<a><!-- note --></a>")
        assert events[1] == Comment(b" note ")

    def test_cdata(self):
        """Test CDATA sections are reported whole."""
        events = tokenize(b"<a><![CDATA[x < y]]></a>")
        assert events[1] == CData(b"x < y")

    def test_processing_instruction(self):
        """Test processing instructions are reported."""
        events = tokenize(b"<a><?render fast?></a>")
        assert events[1] == ProcessingInstruction(b"render", b"fast")

    def test_doctype(self):
        """Test a doctype without entities is reported."""
        events = tokenize(b"<!DOCTYPE a><a/>")
        assert events[0] == DocType(b"a")

    def test_end_of_stream_terminates(self):
        """Test the event list always ends with EndOfStream."""
        assert tokenize(b"<a/>")[-1] == EndOfStream()


class TestMalformedInput:
    """Test rejection of malformed or unsafe XML."""

    @pytest.mark.parametrize("data", [
        b"<a><b></a>",
        b"<a>",
        b"",
        b"<a/><b/>",
        b'<a x="1" x="2"/>',
    ])
    def test_not_well_formed(self, data):
        """Test input expat rejects fails with MalformedXml."""
        with pytest.raises(MalformedXmlError, match="XML parse error") as excinfo:
            tokenize(data)
        assert excinfo.value.kind == ErrorKind.MALFORMED_XML

    def test_declared_non_utf8_encoding(self):
        """Test a document declaring another encoding is rejected."""
        data = b'<?xml version="1.0" encoding="ISO-8859-1"?><a/>'
        with pytest.raises(MalformedXmlError, match="Unsupported encoding"):
            tokenize(data)

    def test_utf16_input(self):
        """Test UTF-16 input fails instead of losing empty tags."""
        data = '<?xml version="1.0" encoding="utf-16"?><a><b x="1"/></a>'.encode("utf-16")
        with pytest.raises(MalformedXmlError):
            tokenize(data)

    def test_declared_utf8_spellings(self):
        """Test common spellings of UTF-8 are accepted."""
        for name in (b"UTF-8", b"utf8"):
            events = tokenize(b'<?xml version="1.0" encoding="' + name + b'"?><a/>')
            assert events[0].encoding == name

    def test_entity_declaration_forbidden(self):
        """Test internal entity declarations are rejected."""
        data = b'<!DOCTYPE a [<!ENTITY e "boom">]><a>&e;</a>'
        with pytest.raises(MalformedXmlError, match="Forbidden XML construct"):
            tokenize(data)

    def test_external_entity_forbidden(self):
        """Test external entities are rejected."""
        data = b'<!DOCTYPE a [<!ENTITY e SYSTEM "file:///etc/passwd">]><a>&e;</a>'
        with pytest.raises(MalformedXmlError, match="Forbidden XML construct"):
            tokenize(data)
