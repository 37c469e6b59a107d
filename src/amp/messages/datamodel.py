# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

import hashlib
from io import BytesIO
from typing import ClassVar, Protocol, Self, runtime_checkable

__all__ = 'WireData', 'DataWireProtocol', 'DataWireAdapter', 'UInt32Adapter', 'FixedSize', 'SHA256Digest'  # noqa: RUF022


type WireData = bytes | bytearray | memoryview | BytesIO


@runtime_checkable
class DataWireProtocol(Protocol):
    """Objects that can be read from and written to the wire"""

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self: ...

    def to_wire(self) -> bytes: ...

    def wire_length(self) -> int: ...


@runtime_checkable
class DataWireAdapter[T](Protocol):
    """Wire codec for values of a type that does not know how to encode itself"""

    @staticmethod
    def from_wire(buffer: WireData) -> T: ...

    @staticmethod
    def to_wire(value: T, /) -> bytes: ...

    @staticmethod
    def wire_length(value: T, /) -> int: ...

    @staticmethod
    def validate(value: T, /) -> T: ...


def read_exactly(buffer: WireData, size: int) -> bytes:
    """Read up to size bytes from buffer (a stream is advanced, other buffers are sliced from the start)"""
    if isinstance(buffer, BytesIO):
        return buffer.read(size)
    return bytes(buffer[:size])


class UInt32Adapter:
    size: ClassVar[int] = 4

    @classmethod
    def from_wire(cls, buffer: WireData) -> int:
        data = read_exactly(buffer, cls.size)
        if len(data) < cls.size:
            raise ValueError('Insufficient data in buffer to extract an unsigned 32-bit integer')
        return int.from_bytes(data, byteorder='big')

    @classmethod
    def to_wire(cls, value: int, /) -> bytes:
        return value.to_bytes(cls.size, byteorder='big')

    @classmethod
    def wire_length(cls, _: int, /) -> int:
        return cls.size

    @staticmethod
    def validate(value: int, /) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f'Expected an integer value, got {value.__class__.__qualname__!r}')
        if not 0 <= value <= 0xFFFF_FFFF:
            raise ValueError(f'Value is out of range for unsigned 32-bits integer: {value!r}')
        return int(value)


class FixedSize(bytes):
    """Bytes of a length fixed by the subclass (an empty constructor call gives all zero bytes)"""

    _size_: ClassVar[int] = NotImplemented

    def __init_subclass__(cls, *, size: int, **kw: object) -> None:
        cls._size_ = size
        super().__init_subclass__(**kw)

    def __new__(cls, value: bytes | bytearray | memoryview | None = None, /) -> Self:
        if cls._size_ is NotImplemented:
            raise TypeError(f'Cannot instantiate fixed size bytes type {cls.__qualname__!r} that does not define its size')
        if value is None:
            return super().__new__(cls, cls._size_)
        if len(value) != cls._size_:
            raise ValueError(f'{cls.__qualname__!r} objects must have {cls._size_} bytes')
        return super().__new__(cls, value)

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        data = read_exactly(buffer, cls._size_)
        if len(data) < cls._size_:
            raise ValueError(f'Insufficient data in buffer to extract {cls.__qualname__!r}')
        return cls(data)

    def to_wire(self) -> bytes:
        return bytes(self)

    def wire_length(self) -> int:
        return self._size_


class SHA256Digest(FixedSize, size=hashlib.sha256().digest_size):
    def __repr__(self) -> str:
        return f'<{self.__class__.__qualname__}: {self.hex()}>'

    @classmethod
    def for_data(cls, data: bytes | bytearray | memoryview) -> Self:
        return cls(hashlib.sha256(data).digest())
