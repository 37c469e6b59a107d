# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from contextvars import ContextVar, Token
from dataclasses import dataclass
from os import PathLike
from typing import ClassVar, Final, Self

from lxml import etree

from .schema import ETreeElement, configuration_validator

__all__ = (  # noqa: RUF022
    'MAGIC_BYTES',
    'VERSION_NUMBER',
    'HEADER_SIZE',
    'MAX_MESSAGE_SIZE',
    'NAMESPACE',

    'ConfigurationError',
    'Configuration',
    'ConfigurationContext',

    'configuration',
    'current_configuration',
)


MAGIC_BYTES: Final[int] = 0xC0D3F33D
VERSION_NUMBER: Final[int] = 1
HEADER_SIZE: Final[int] = 48  # magic, version, type and size (4 bytes each) followed by the SHA-256 payload hash
MAX_MESSAGE_SIZE: Final[int] = 4096  # header included

NAMESPACE: Final[str] = 'urn:amp:params:xml:ns:configuration'


class ConfigurationError(ValueError):
    """Raised when a configuration has invalid values or cannot be loaded."""


@dataclass(frozen=True, kw_only=True, slots=True)
class Configuration:
    magic: int = MAGIC_BYTES
    version: int = VERSION_NUMBER
    max_message_size: int = MAX_MESSAGE_SIZE

    # XML element name -> attribute name
    _elements_: ClassVar[dict[str, str]] = {
        'magic': 'magic',
        'version': 'version',
        'max-message-size': 'max_message_size',
    }

    _parser_: ClassVar[etree.XMLParser] = etree.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)

    def __post_init__(self) -> None:
        for name in self._elements_.values():
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigurationError(f'Invalid {name} value: expected an integer, got {value.__class__.__qualname__!r}')
            if not 0 <= value <= 0xFFFF_FFFF:
                raise ConfigurationError(f'Invalid {name} value: {value!r} is out of range for unsigned 32-bits integer')
        if self.max_message_size < HEADER_SIZE:
            raise ConfigurationError(f'The maximum message size cannot be smaller than the header size ({self.max_message_size} < {HEADER_SIZE})')

    @property
    def max_payload_size(self) -> int:
        return self.max_message_size - HEADER_SIZE

    @classmethod
    def from_string(cls, data: str | bytes) -> Self:
        if isinstance(data, str):
            data = data.encode()
        try:
            element = etree.fromstring(data, parser=cls._parser_)
        except etree.XMLSyntaxError as exc:
            raise ConfigurationError(f'Cannot parse the configuration document: {exc}') from exc
        return cls.from_element(element)

    @classmethod
    def from_file(cls, path: str | PathLike[str]) -> Self:
        try:
            element = etree.parse(str(path), parser=cls._parser_).getroot()
        except etree.XMLSyntaxError as exc:
            raise ConfigurationError(f'Cannot parse the configuration document {str(path)!r}: {exc}') from exc
        return cls.from_element(element)

    @classmethod
    def from_element(cls, element: ETreeElement) -> Self:
        validator = configuration_validator()
        if not validator.validate(element):
            raise ConfigurationError(f'Invalid configuration document: {validator.last_error}')
        values = {}
        for child in element.iterchildren(tag=etree.Element):
            name = cls._elements_[etree.QName(child).localname]
            try:
                values[name] = int((child.text or '').strip(), 0)
            except ValueError as exc:
                raise ConfigurationError(f'Invalid {name} value in the configuration document: {child.text!r}') from exc
        return cls(**values)


configuration: ContextVar[Configuration] = ContextVar('configuration')

_default_configuration: Final[Configuration] = Configuration()


def current_configuration() -> Configuration:
    return configuration.get(_default_configuration)


class ConfigurationContext:
    """
    Activate a configuration for the code that runs inside the context.

    The previously active configuration is restored when the context exits.
    Since the configuration is stored in a context variable, different tasks
    and threads can use different configurations at the same time.
    """

    configuration: Configuration
    reset_token: Token[Configuration] | None

    def __init__(self, config: Configuration, /) -> None:
        self.configuration = config
        self.reset_token = None

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({self.configuration!r})'

    def __enter__(self) -> Self:
        if self.reset_token is not None:
            raise RuntimeError(f'{self.__class__.__qualname__} is already active')
        self.reset_token = configuration.set(self.configuration)
        return self

    def __exit__(self, *_: object) -> None:
        if self.reset_token is not None:
            configuration.reset(self.reset_token)
            self.reset_token = None
