"""End-to-end integration tests."""

from __future__ import annotations

import enum
import io

import pytest

from protowire import (
    CodecConfig,
    EnumDefinition,
    Message,
    MissingRequiredField,
    decode,
    encode,
    encoded_size,
    field_sizes,
    to_proto_schema,
)


class MissionPhase(enum.IntEnum):
    """Mission phase enum."""

    STARTUP = 1
    TRANSIT = 2
    SURVEY = 3
    RETURN = 4
    SHUTDOWN = 5


PHASE = EnumDefinition.from_enum(MissionPhase, "vehicle.MissionPhase")


class Position(Message):
    """Vehicle position."""

    full_name = "vehicle.Position"


Position.required("double", "lat", 1)
Position.required("double", "lon", 2)
Position.optional("float", "depth_m", 3)
Position.finalize()


class StatusReport(Message):
    """Vehicle status report."""

    full_name = "vehicle.StatusReport"


StatusReport.required("uint32", "vehicle_id", 1)
StatusReport.optional(PHASE, "mission_phase", 2)
StatusReport.optional(Position, "position", 3)
StatusReport.optional("uint32", "battery_pct", 4, default=100)
StatusReport.optional("bool", "emergency", 5)
StatusReport.repeated("sint32", "temperatures", 6)
StatusReport.repeated(Position, "waypoints", 7)
StatusReport.finalize()


class StatusReportV2(Message):
    """Later revision of the status report with an extra field."""

    full_name = "vehicle.v2.StatusReport"


StatusReportV2.required("uint32", "vehicle_id", 1)
StatusReportV2.optional(PHASE, "mission_phase", 2)
StatusReportV2.optional(Position, "position", 3)
StatusReportV2.optional("uint32", "battery_pct", 4, default=100)
StatusReportV2.optional("bool", "emergency", 5)
StatusReportV2.repeated("sint32", "temperatures", 6)
StatusReportV2.repeated(Position, "waypoints", 7)
StatusReportV2.optional("string", "operator", 8)
StatusReportV2.optional("fixed64", "timestamp_us", 9)
StatusReportV2.finalize()


class Sample1(Message):
    full_name = "interop.Sample1"


Sample1.optional("int32", "a", 1)
Sample1.finalize()


class Sample2(Message):
    full_name = "interop.Sample2"


Sample2.optional("string", "b", 2)
Sample2.finalize()


class Sample3(Message):
    full_name = "interop.Sample3"


Sample3.optional(Sample1, "c", 3)
Sample3.finalize()


class Sample4(Message):
    full_name = "interop.Sample4"


Sample4.repeated("int32", "d", 4)
Sample4.finalize()


class TestEndToEndWorkflow:
    """Test complete end-to-end workflows."""

    def test_status_report_workflow(self) -> None:
        """Test complete status report workflow."""
        # 1. Create message
        status = StatusReport(
            vehicle_id=42,
            mission_phase=MissionPhase.SURVEY,
            position={"lat": 43.5, "lon": -7.25, "depth_m": 120.5},
            emergency=False,
            temperatures=[12, -3, 8],
        )
        status.waypoints.append(Position(lat=43.6, lon=-7.2))

        # 2. Check encoded size
        size = encoded_size(status)
        sizes = field_sizes(status)
        assert "position" in sizes
        assert "battery_pct" not in sizes
        assert sum(sizes.values()) == size

        # 3. Encode to a stream
        stream = io.BytesIO()
        written = status.serialize(stream)
        assert written == size

        # 4. Decode
        decoded = StatusReport.parse(stream.getvalue())

        # 5. Verify all fields
        assert decoded == status
        assert decoded.vehicle_id == 42
        assert decoded.mission_phase == MissionPhase.SURVEY
        assert decoded.position.lat == 43.5
        assert decoded.position.depth_m == 120.5
        assert decoded.battery_pct == 100
        assert not decoded.is_set("battery_pct")
        assert decoded.emergency is False
        assert decoded.temperatures == [12, -3, 8]
        assert decoded.waypoints[0].lon == -7.2

    def test_version_skew(self) -> None:
        """Test a relay built on the older schema forwards newer data intact."""
        # Newer sender
        sent = StatusReportV2(
            vehicle_id=7,
            operator="ops",
            timestamp_us=1_700_000_000_000_000,
            temperatures=[1],
        )
        wire = encode(sent)

        # Older relay decodes, edits a known field, re-encodes
        relay = decode(wire, StatusReport)
        assert len(relay.unknown_fields()) == 2
        relay.emergency = True
        forwarded = encode(relay)

        # Newer receiver sees the relay's change and the original extras
        received = decode(forwarded, StatusReportV2)
        assert received.emergency is True
        assert received.operator == "ops"
        assert received.timestamp_us == 1_700_000_000_000_000
        assert received.temperatures == [1]

    def test_incomplete_nested_message(self) -> None:
        """Test a missing required field in an embedded message blocks encoding."""
        status = StatusReport(vehicle_id=1, position={"lat": 1.0})

        with pytest.raises(MissingRequiredField) as exc_info:
            encode(status)
        assert exc_info.value.field_number == 2

    def test_shallow_decoder(self) -> None:
        """Test a tight recursion limit still handles one level of nesting."""
        status = StatusReport(vehicle_id=1, position={"lat": 1.0, "lon": 2.0})
        config = CodecConfig(recursion_limit=1, discard_unknown_fields=True)

        assert decode(encode(status), StatusReport, config) == status

    def test_proto_schema_generation(self) -> None:
        """Test .proto generation for the status report."""
        proto = to_proto_schema(StatusReport, package="vehicle")

        assert 'syntax = "proto2";' in proto
        assert "package vehicle;" in proto
        assert "enum MissionPhase {" in proto
        assert "message StatusReport {" in proto
        assert "message Position {" in proto
        assert "  optional MissionPhase mission_phase = 2;" in proto
        assert "  optional uint32 battery_pct = 4 [default = 100];" in proto
        assert "  repeated sint32 temperatures = 6;" in proto


class TestInteroperability:
    """Test byte-for-byte agreement with the reference Protocol Buffers encodings."""

    def test_varint_field(self) -> None:
        """Test a = 150."""
        assert encode(Sample1(a=150)) == b"\x08\x96\x01"
        assert decode(b"\x08\x96\x01", Sample1).a == 150

    def test_string_field(self) -> None:
        """Test b = "testing"."""
        assert encode(Sample2(b="testing")) == b"\x12\x07testing"

    def test_embedded_message(self) -> None:
        """Test c { a = 150 }."""
        assert encode(Sample3(c=Sample1(a=150))) == b"\x1a\x03\x08\x96\x01"
        assert decode(b"\x1a\x03\x08\x96\x01", Sample3).c.a == 150

    def test_repeated_unpacked(self) -> None:
        """Test d = [3, 270, 86942] without packing."""
        data = b"\x20\x03\x20\x8e\x02\x20\x9e\xa7\x05"

        assert encode(Sample4(d=[3, 270, 86942])) == data
        assert decode(data, Sample4).d == [3, 270, 86942]
