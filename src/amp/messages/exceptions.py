# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later


__all__ = (  # noqa: RUF022
    'MessageError',
    'UnknownTypeError',
    'TruncatedHeaderError',
    'TruncatedPayloadError',
    'OversizedMessageError',
    'IncompleteMessageError',
    'InvalidMessageError',
)


class MessageError(ValueError):
    """Base class for the errors raised while building or parsing messages."""


class UnknownTypeError(MessageError):
    """Raised when a message references a type that is not registered."""


class TruncatedHeaderError(MessageError):
    """Raised when there is not enough data to extract the message header."""


class TruncatedPayloadError(MessageError):
    """Raised when there is less payload data than the header declares."""


class OversizedMessageError(MessageError):
    """Raised when a message exceeds the maximum message size."""


class IncompleteMessageError(MessageError):
    """Raised when serializing a message that has no payload set."""


class InvalidMessageError(MessageError):
    """Raised when a received message fails verification."""
