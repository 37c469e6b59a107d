# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Application Messaging Protocol (AMP) message structure

   Peers exchange self contained messages.  Each message is made of a fixed
   size header followed by a variable length payload.  All integers are
   represented in network byte order.

     +-------------------------+
     |         Header          |  48 bytes
     +-------------------------+
     |         Payload         |  size bytes
     +-------------------------+

   The header has the following layout:

     Offset  Length  Field
     0       4       magic    (identifies the protocol family)
     4       4       version  (the protocol version)
     8       4       type     (the message type code)
     12      4       size     (the payload length in bytes)
     16      32      hash     (the SHA-256 digest of the payload)

   The payload is opaque to this layer.  Its integrity is bound into the
   header by the hash, and a message is identified by the SHA-256 digest of
   the complete message (header followed by payload).

"""

import hashlib
import logging
from collections.abc import Sequence
from io import BytesIO
from typing import Self

from amp.configuration import HEADER_SIZE, Configuration, current_configuration

from .datamodel import SHA256Digest, UInt32Adapter, WireData, read_exactly
from .elements import AnnotatedStructure, Element
from .exceptions import IncompleteMessageError, InvalidMessageError, OversizedMessageError, TruncatedHeaderError, TruncatedPayloadError, UnknownTypeError
from .types import GENERIC_MESSAGE, TypeCode, TypeName, code_for_name, name_for_code

__all__ = (  # noqa: RUF022
    # Header codec
    'Header',
    'encode_header',
    'decode_header',

    # Envelope
    'Payload',
    'Message',
    'PayloadData',
)


logger = logging.getLogger(__name__)


type PayloadData = str | bytes | bytearray | memoryview


# Header codec

class Header(AnnotatedStructure):
    """
    Message header structure:

        uint32   magic
        uint32   version
        uint32   type
        uint32   size
        opaque   hash[32]
    """

    magic: Element[int] = Element(int, adapter=UInt32Adapter)
    version: Element[int] = Element(int, adapter=UInt32Adapter)
    type: Element[int] = Element(int, adapter=UInt32Adapter)
    size: Element[int] = Element(int, adapter=UInt32Adapter)
    hash: Element[SHA256Digest] = Element(SHA256Digest)

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        data = read_exactly(buffer, HEADER_SIZE)
        if len(data) < HEADER_SIZE:
            raise TruncatedHeaderError(f'Insufficient data in buffer to extract {cls.__qualname__!r} ({len(data)} < {HEADER_SIZE} bytes)')
        return super().from_wire(data)


def encode_header(*, magic: int, version: int, type_code: TypeCode, size: int, hash: bytes) -> bytes:  # noqa: A002
    return Header(magic=magic, version=version, type=type_code, size=size, hash=hash).to_wire()


def decode_header(data: WireData) -> Header:
    # The magic and version are not validated here, that is up to the caller
    return Header.from_wire(data)


# Envelope

class Payload:
    """The payload of a message, together with its derived size and hash"""

    __slots__ = '_data', '_hash'

    _data: bytes | None
    _hash: SHA256Digest

    def __init__(self, data: PayloadData | None = None, /) -> None:
        self._data = None
        self._hash = SHA256Digest()
        if data is not None:
            self.set_data(data)

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({self._data!r})'

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Payload):
            return self._data == other._data
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    @property
    def is_set(self) -> bool:
        return self._data is not None

    @property
    def payload(self) -> bytes:
        return self._data if self._data is not None else b''

    @property
    def size(self) -> int:
        return len(self._data) if self._data is not None else 0

    @property
    def hash(self) -> SHA256Digest:
        return self._hash

    def get_data(self) -> str:
        if not self._data:
            return ''
        return self._data.decode('utf-8', errors='replace')

    def set_data(self, value: PayloadData | None, /, *, max_size: int | None = None) -> None:
        match value:
            case None:
                data = b''
            case str():
                data = value.encode()
            case bytes() | bytearray() | memoryview():
                data = bytes(value)
            case _:
                raise TypeError(f'Payload data must be bytes or str, not {value.__class__.__qualname__!r}')
        if max_size is None:
            max_size = current_configuration().max_payload_size
        if len(data) > max_size:
            raise OversizedMessageError(f'Payload is too big ({len(data)} > {max_size} bytes)')
        self._hash = SHA256Digest.for_data(data)
        self._data = data


class Message:  # noqa: PLW1641
    """
    An AMP message envelope.

    A message is created either empty and populated later by setting its
    type and data, by parsing the raw bytes received from a peer with
    from_raw(), or directly from a (type, data) pair.

    The payload size and hash are derived from the payload and are updated
    every time the data is set. The message id is derived from the complete
    message and is computed every time it is requested.

    Messages implement the DataWireProtocol, so they can be used wherever
    a wire element is expected.
    """

    configuration: Configuration

    def __init__(self, *, type: TypeName | None = None, data: PayloadData | None = None, configuration: Configuration | None = None) -> None:  # noqa: A002
        self.configuration = configuration if configuration is not None else current_configuration()
        self._magic = self.configuration.magic
        self._version = self.configuration.version
        self._type_code = 0
        self._payload = Payload()
        if type is not None:
            self.set_type(type)
        if data is not None:
            self.set_data(data)

    def __repr__(self) -> str:
        return f'<{self.__class__.__qualname__}: {name_for_code(self._type_code)} (0x{self._type_code:08x}), {self.size} bytes>'

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Message):
            return self.header == other.header and self._payload == other._payload
        return NotImplemented

    # Header fields

    @property
    def magic(self) -> int:
        return self._magic

    @property
    def version(self) -> int:
        return self._version

    @property
    def type_code(self) -> TypeCode:
        return self._type_code

    @property
    def size(self) -> int:
        return self._payload.size

    @property
    def hash(self) -> SHA256Digest:
        return self._payload.hash

    @property
    def header(self) -> bytes:
        return encode_header(magic=self._magic, version=self._version, type_code=self._type_code, size=self._payload.size, hash=self._payload.hash)

    # Type and data

    def get_type(self) -> TypeName:
        name = name_for_code(self._type_code)
        if name == GENERIC_MESSAGE:
            logger.warning('Unhandled message type: 0x%08x', self._type_code)
        return name

    def set_type(self, name: TypeName) -> Self:
        self._type_code = code_for_name(name).value
        return self

    def get_data(self) -> str:
        return self._payload.get_data()

    def set_data(self, value: PayloadData | None) -> Self:
        self._payload.set_data(value, max_size=self.configuration.max_payload_size)
        return self

    type = property(get_type, set_type)
    data = property(get_data, set_data)

    @property
    def payload(self) -> bytes:
        return self._payload.payload

    # Identity and serialization

    @property
    def id(self) -> str:
        if not self._payload.is_set:
            raise IncompleteMessageError('Cannot compute the id of a message that has no payload')
        return hashlib.sha256(self.header + self._payload.payload).hexdigest()

    def as_raw(self) -> bytes:
        if not self._payload.is_set:
            raise IncompleteMessageError('Cannot serialize a message that has no payload')
        if name_for_code(self._type_code) == GENERIC_MESSAGE:
            raise UnknownTypeError(f'Cannot serialize a message with an unregistered type code: 0x{self._type_code:08x}')
        if self.wire_length() > self.configuration.max_message_size:
            raise OversizedMessageError(f'Message is too big ({self.wire_length()} > {self.configuration.max_message_size} bytes)')
        return self.header + self._payload.payload

    def to_wire(self) -> bytes:
        return self.as_raw()

    def wire_length(self) -> int:
        return HEADER_SIZE + self._payload.size

    @classmethod
    def from_wire(cls, buffer: WireData, *, verify: bool = False, configuration: Configuration | None = None) -> Self:
        if not isinstance(buffer, BytesIO):
            buffer = BytesIO(buffer)
        if configuration is None:
            configuration = current_configuration()
        header = Header.from_wire(buffer)
        if header.size > configuration.max_payload_size:
            raise OversizedMessageError(f'Declared payload size is too big ({header.size} > {configuration.max_payload_size} bytes)')
        payload = buffer.read(header.size)
        if len(payload) < header.size:
            raise TruncatedPayloadError(f'Insufficient data in buffer to extract the payload ({len(payload)} < {header.size} bytes)')
        if verify:
            cls._verify(header, payload, configuration)
        message = cls(configuration=configuration)
        message._magic = header.magic
        message._version = header.version
        message._type_code = header.type
        message.set_data(payload)
        return message

    @classmethod
    def from_raw(cls, data: bytes | bytearray | memoryview | None, *, verify: bool = False, configuration: Configuration | None = None) -> Self | None:
        if data is None or len(data) == 0:
            return None
        return cls.from_wire(data, verify=verify, configuration=configuration)

    @classmethod
    def from_vector(cls, vector: Sequence[TypeName | PayloadData | None], *, configuration: Configuration | None = None) -> Self:
        try:
            type_name, data = vector
        except (TypeError, ValueError) as exc:
            raise ValueError(f'Expected a (type, data) pair, got {vector!r}') from exc
        message = cls(configuration=configuration)
        message.set_type(type_name)  # type: ignore[arg-type]
        message.set_data(data)  # type: ignore[arg-type]
        return message

    @staticmethod
    def _verify(header: Header, payload: bytes, configuration: Configuration) -> None:
        if header.magic != configuration.magic:
            raise InvalidMessageError(f'Unexpected magic bytes: 0x{header.magic:08x} (expected 0x{configuration.magic:08x})')
        if header.version != configuration.version:
            raise InvalidMessageError(f'Unsupported protocol version: {header.version} (expected {configuration.version})')
        if header.hash != SHA256Digest.for_data(payload):
            raise InvalidMessageError('The payload does not match the hash in the message header')
