"""Unit tests for .proto rendering."""

from __future__ import annotations

import pytest

from protowire import EnumDefinition, Message, SchemaError, to_proto_schema

STATUS = EnumDefinition("demo.Status", [("OK", 0), ("SUCCESS", 0), ("FAILED", 1)])


class Point(Message):
    full_name = "demo.Point"


Point.required("sint32", "x", 1)
Point.required("sint32", "y", 2)
Point.finalize()


class Report(Message):
    """Message with an enum, embedded messages and defaults."""

    full_name = "demo.Report"


Report.optional(STATUS, "status", 1, default="FAILED")
Report.optional(Point, "where", 2)
Report.repeated(Point, "track", 3)
Report.optional("string", "note", 4, default='a"b')
Report.optional("bytes", "magic", 5, default=b"\x01A")
Report.optional("bool", "on", 6, default=True)
Report.optional("double", "limit", 7, default=float("inf"))
Report.finalize()


class Tree(Message):
    full_name = "demo.Tree"


Tree.optional("float", "height", 1, default=1.5)
Tree.repeated(Tree, "branches", 2)
Tree.finalize()


class Caption(Message):
    full_name = "demo.Caption"


Caption.optional("string", "text", 1, default="a\nb\\é")
Caption.finalize()


class TestToProtoSchema:
    """Test proto2 text generation."""

    def test_simple_message(self) -> None:
        """Test a message of scalar fields."""
        assert to_proto_schema(Point, package="demo") == (
            'syntax = "proto2";\n'
            "package demo;\n"
            "\n"
            "message Point {\n"
            "  required sint32 x = 1;\n"
            "  required sint32 y = 2;\n"
            "}"
        )

    def test_without_package(self) -> None:
        """Test the package line is optional."""
        text = to_proto_schema(Point.schema)

        assert "package" not in text
        assert text.startswith('syntax = "proto2";\n\nmessage Point {')

    def test_enums_defaults_and_references(self) -> None:
        """Test enums come first and referenced messages follow."""
        assert to_proto_schema(Report, package="demo") == (
            'syntax = "proto2";\n'
            "package demo;\n"
            "\n"
            "enum Status {\n"
            "  option allow_alias = true;\n"
            "  OK = 0;\n"
            "  SUCCESS = 0;\n"
            "  FAILED = 1;\n"
            "}\n"
            "\n"
            "message Report {\n"
            "  optional Status status = 1 [default = FAILED];\n"
            "  optional Point where = 2;\n"
            "  repeated Point track = 3;\n"
            '  optional string note = 4 [default = "a\\"b"];\n'
            '  optional bytes magic = 5 [default = "\\001A"];\n'
            "  optional bool on = 6 [default = true];\n"
            "  optional double limit = 7 [default = inf];\n"
            "}\n"
            "\n"
            "message Point {\n"
            "  required sint32 x = 1;\n"
            "  required sint32 y = 2;\n"
            "}"
        )

    def test_self_reference_rendered_once(self) -> None:
        """Test recursive schemas terminate."""
        text = to_proto_schema(Tree)

        assert text.count("message Tree {") == 1
        assert "  optional float height = 1 [default = 1.5];" in text
        assert "  repeated Tree branches = 2;" in text

    def test_rejects_non_schema(self) -> None:
        """Test arguments that are not schemas."""
        with pytest.raises(SchemaError):
            to_proto_schema(42)  # type: ignore[arg-type]
        with pytest.raises(SchemaError):
            to_proto_schema(int)

    def test_string_default_escaped(self) -> None:
        """Test control characters and non-ASCII text in string defaults."""
        text = to_proto_schema(Caption)

        assert '  optional string text = 1 [default = "a\\012b\\\\\\303\\251"];' in text
