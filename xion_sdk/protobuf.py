# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Protocol Buffers wire-format encoding for Cosmos SDK transactions.

Cosmos chains such as XION sign and broadcast transactions as protobuf-encoded
``TxRaw`` envelopes. Only a handful of message shapes are ever produced by this
SDK (bank sends, CosmWasm execute/instantiate and the transaction envelope
itself), so rather than shipping generated code for the full Cosmos proto tree
this module provides a small field-oriented serializer in the same spirit as a
hand-written canonical encoder.

Wire types used:
    0 (VARINT): unsigned integers and enums
    2 (LEN): strings, bytes, embedded messages and their repeated forms

Encoding rules follow proto3:
    - Scalar fields equal to their default (0, "", b"") are omitted.
    - Embedded messages are written whenever they are present, even if empty.
    - Every element of a repeated field is written, including empty ones.

Examples:
    Encoding a ``cosmos.base.v1beta1.Coin``::

        ser = Serializer()
        ser.string(1, "uxion")
        ser.string(2, "1000")
        ser.output().hex()  # '0a057578696f6e120431303030'

    Custom messages implement ``serialize``::

        class Coin:
            def serialize(self, serializer: Serializer):
                serializer.string(1, self.denom)
                serializer.string(2, self.amount)
"""

from __future__ import annotations

import io
import typing
import unittest
from typing import Dict, List, Tuple

from typing_extensions import Protocol

MAX_U64 = 2**64 - 1

WIRE_VARINT = 0
WIRE_I64 = 1
WIRE_LEN = 2
WIRE_I32 = 5


class Serializable(Protocol):
    """Structures that can be written as an embedded protobuf message."""

    def to_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def serialize(self, serializer: Serializer):
        ...


class Serializer:
    """Accumulates protobuf fields into a byte buffer.

    Each writer takes the field number first, mirroring how fields are declared
    in a ``.proto`` file, so a message's ``serialize`` reads like its schema.
    """

    _output: io.BytesIO

    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        return self._output.getvalue()

    def uint64(self, field: int, value: int):
        """Write a varint field. Zero is the proto3 default and is skipped."""
        if value == 0:
            return
        self._key(field, WIRE_VARINT)
        self.varint(value)

    def enum(self, field: int, value: int):
        self.uint64(field, value)

    def bool(self, field: int, value: bool):
        self.uint64(field, int(value))

    def string(self, field: int, value: str):
        if not value:
            return
        self.bytes(field, value.encode("utf-8"))

    def bytes(self, field: int, value: bytes):
        if not value:
            return
        self._key(field, WIRE_LEN)
        self._length_delimited(value)

    def message(self, field: int, value: typing.Any):
        """Write an embedded message. ``None`` means the field is absent."""
        if value is None:
            return
        self._key(field, WIRE_LEN)
        self._length_delimited(encoder(value, Serializer.struct))

    def repeated_message(self, field: int, values: typing.Sequence[typing.Any]):
        for value in values:
            self._key(field, WIRE_LEN)
            self._length_delimited(encoder(value, Serializer.struct))

    def repeated_bytes(self, field: int, values: typing.Sequence[bytes]):
        for value in values:
            self._key(field, WIRE_LEN)
            self._length_delimited(value)

    def struct(self, value: typing.Any):
        value.serialize(self)

    def varint(self, value: int):
        if value < 0 or value > MAX_U64:
            raise ValueError(f"Cannot encode {value} into uint64")
        while value >= 0x80:
            # Write 7 (lowest) bits of data and set the 8th bit to 1.
            self._output.write(bytes([(value & 0x7F) | 0x80]))
            value >>= 7
        self._output.write(bytes([value & 0x7F]))

    def _key(self, field: int, wire_type: int):
        self.varint((field << 3) | wire_type)

    def _length_delimited(self, value: bytes):
        self.varint(len(value))
        self._output.write(value)


class Deserializer:
    """Reads protobuf fields back out of a byte buffer.

    Only the wire types the Serializer produces are decoded; fixed-width fields
    are returned as raw bytes.
    """

    _input: io.BytesIO
    _length: int

    def __init__(self, data: bytes):
        self._length = len(data)
        self._input = io.BytesIO(data)

    def remaining(self) -> int:
        return self._length - self._input.tell()

    def varint(self) -> int:
        value = 0
        shift = 0
        while True:
            byte = self._read(1)[0]
            value |= (byte & 0x7F) << shift
            if byte & 0x80 == 0:
                break
            shift += 7
            if shift > 63:
                raise ValueError("Unexpectedly large varint")
        return value

    def field(self) -> Tuple[int, int, typing.Union[int, bytes]]:
        key = self.varint()
        field, wire_type = key >> 3, key & 0x07
        if wire_type == WIRE_VARINT:
            return (field, wire_type, self.varint())
        if wire_type == WIRE_LEN:
            return (field, wire_type, self._read(self.varint()))
        if wire_type == WIRE_I64:
            return (field, wire_type, self._read(8))
        if wire_type == WIRE_I32:
            return (field, wire_type, self._read(4))
        raise ValueError(f"Unsupported wire type {wire_type} for field {field}")

    def fields(self) -> Dict[int, List[typing.Union[int, bytes]]]:
        """Decode every remaining field, grouping values by field number."""
        result: Dict[int, List[typing.Union[int, bytes]]] = {}
        while self.remaining() > 0:
            field, _, value = self.field()
            result.setdefault(field, []).append(value)
        return result

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if value is None or len(value) < length:
            actual_length = 0 if value is None else len(value)
            raise ValueError(
                f"Unexpected end of input. Requested: {length}, found: {actual_length}"
            )
        return value


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], typing.Any]
) -> bytes:
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


class Test(unittest.TestCase):
    def test_varint(self):
        ser = Serializer()
        ser.varint(300)
        self.assertEqual(ser.output().hex(), "ac02")
        self.assertEqual(Deserializer(ser.output()).varint(), 300)

    def test_varint_out_of_range(self):
        ser = Serializer()
        with self.assertRaises(ValueError):
            ser.varint(MAX_U64 + 1)
        with self.assertRaises(ValueError):
            ser.varint(-1)

    def test_uint64_field(self):
        ser = Serializer()
        ser.uint64(4, 300)
        self.assertEqual(ser.output().hex(), "20ac02")

    def test_defaults_are_omitted(self):
        ser = Serializer()
        ser.uint64(1, 0)
        ser.string(2, "")
        ser.bytes(3, b"")
        self.assertEqual(ser.output(), b"")

    def test_string_fields(self):
        ser = Serializer()
        ser.string(1, "uxion")
        ser.string(2, "1000")
        self.assertEqual(ser.output().hex(), "0a057578696f6e120431303030")

    def test_empty_message_is_written(self):
        class Empty:
            def serialize(self, serializer: Serializer):
                pass

        ser = Serializer()
        ser.message(1, Empty())
        ser.message(2, None)
        self.assertEqual(ser.output().hex(), "0a00")

    def test_repeated_bytes_keeps_empty_elements(self):
        ser = Serializer()
        ser.repeated_bytes(3, [b"", b"\x01"])
        self.assertEqual(ser.output().hex(), "1a001a0101")

    def test_fields(self):
        ser = Serializer()
        ser.string(1, "a")
        ser.uint64(2, 7)
        ser.string(1, "b")
        self.assertEqual(
            Deserializer(ser.output()).fields(), {1: [b"a", b"b"], 2: [7]}
        )

    def test_truncated_input(self):
        with self.assertRaises(ValueError):
            Deserializer(bytes.fromhex("0a05757869")).fields()


if __name__ == "__main__":
    unittest.main()
