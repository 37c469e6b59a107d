# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

# The message types form a closed registry that maps the symbolic names used
# by applications to the numeric codes carried in the message header. Names
# are resolved strictly when writing (a producer must never emit a payload
# tagged with a meaningless type), while codes are resolved leniently when
# reading, so that messages coming from peers that speak a newer revision of
# the protocol can still be handled as generic messages.


from collections.abc import Mapping
from enum import IntEnum, unique
from types import MappingProxyType
from typing import Final

from .exceptions import UnknownTypeError

__all__ = 'GENERIC_MESSAGE', 'MessageType', 'TypeCode', 'TypeName', 'code_for_name', 'name_for_code', 'registered_types'


type TypeCode = int
type TypeName = str


GENERIC_MESSAGE: Final[TypeName] = 'GenericMessage'


@unique
class MessageType(IntEnum):
    # 0x00000000 is reserved for messages that have no type set

    IdentityRequest = 0x01
    IdentityResponse = 0x11
    Ping = 0x12
    Pong = 0x13
    PeerInstruction = 0x20
    StateRoot = 0x30
    StateCommitment = 0x31
    StateChange = 0x32
    PeerMessage = 0x64


_name_map: Final[Mapping[TypeName, TypeCode]] = MappingProxyType({member.name: member.value for member in MessageType})


def code_for_name(name: TypeName) -> MessageType:
    """Return the message type registered under name or raise UnknownTypeError"""
    if isinstance(name, MessageType):
        return name
    if not isinstance(name, str) or name not in MessageType.__members__:
        raise UnknownTypeError(f'Unknown message type: {name!r}')
    return MessageType[name]


def name_for_code(code: TypeCode) -> TypeName:
    """Return the name registered for code or GENERIC_MESSAGE if code is not registered"""
    if not isinstance(code, int) or isinstance(code, bool):
        return GENERIC_MESSAGE
    try:
        return MessageType(code).name
    except ValueError:
        return GENERIC_MESSAGE


def registered_types() -> Mapping[TypeName, TypeCode]:
    return _name_map
