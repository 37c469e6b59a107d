# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from io import BytesIO
from typing import ClassVar, Self, dataclass_transform, overload

from .datamodel import DataWireAdapter, DataWireProtocol, WireData

__all__ = 'Structure', 'AnnotatedStructure', 'Element'  # noqa: RUF022


class Structure:  # noqa: PLW1641
    """A sequence of elements that are laid out on the wire in the order they are defined"""

    _fields_: ClassVar[dict[str, 'Element']] = {}

    def __init_subclass__(cls, **kw: object) -> None:
        super().__init_subclass__(**kw)
        cls._fields_ = cls._fields_ | {name: value for name, value in cls.__dict__.items() if isinstance(value, Element)}

    def __init__(self, **kw: object) -> None:
        if unexpected := kw.keys() - self._fields_.keys():
            raise TypeError(f'Got an unexpected keyword argument {min(unexpected)!r}')
        for name, field in self._fields_.items():
            if name in kw:
                setattr(self, name, kw[name])
            elif field.default is not NotImplemented:
                setattr(self, name, field.default)
            else:
                raise TypeError(f'Missing a required keyword argument {name!r}')

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}({', '.join(f'{name}={getattr(self, name)!r}' for name in self._fields_)})'

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Structure):
            return self._fields_.keys() == other._fields_.keys() and all(getattr(self, name) == getattr(other, name) for name in self._fields_)
        return NotImplemented

    @classmethod
    def from_wire(cls, buffer: WireData) -> Self:
        if not isinstance(buffer, BytesIO):
            buffer = BytesIO(buffer)
        instance = cls.__new__(cls)
        for field in cls._fields_.values():
            field.from_wire(instance, buffer)
        return instance

    def to_wire(self) -> bytes:
        return b''.join(field.to_wire(self) for field in self._fields_.values())

    def wire_length(self) -> int:
        return sum(field.wire_length(self) for field in self._fields_.values())


class Element[T]:
    """
    A structure field of type T.

    The type either implements the DataWireProtocol itself, or an adapter
    that knows how to encode, decode and validate its values is provided.
    """

    name: str | None
    type: type[T]
    default: T
    adapter: type[DataWireAdapter[T]] | None

    def __init__(self, element_type: type[T], /, *, default: T = NotImplemented, adapter: type[DataWireAdapter[T]] | None = None) -> None:
        if adapter is None and not issubclass(element_type, DataWireProtocol):
            raise TypeError('Either the element type must implement the DataWireProtocol or an adapter must be provided')
        self.name = None
        self.type = element_type
        self.default = default
        self.adapter = adapter

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.type.__qualname__}, name={self.name!r})'

    def __set_name__(self, owner: type[Structure], name: str) -> None:
        if self.name is not None and name != self.name:
            raise TypeError(f'Cannot assign the same {self.__class__.__qualname__!r} to two different names: {self.name!r} and {name!r}')
        self.name = name

    @overload
    def __get__(self, instance: None, owner: type[Structure]) -> Self: ...

    @overload
    def __get__(self, instance: Structure, owner: type[Structure] | None = None) -> T: ...

    def __get__(self, instance: Structure | None, owner: type[Structure] | None = None) -> Self | T:
        if instance is None:
            return self
        try:
            return instance.__dict__[self.name]
        except KeyError as exc:
            raise AttributeError(f'Attribute {self.name!r} of object {instance.__class__.__qualname__!r} is not set') from exc

    def __set__(self, instance: Structure, value: T) -> None:
        if self.adapter is not None:
            value = self.adapter.validate(value)
        elif not isinstance(value, self.type):
            value = self.type(value)  # type: ignore[call-arg]
        instance.__dict__[self.name] = value

    def __delete__(self, instance: Structure) -> None:
        raise AttributeError(f'Attribute {self.name!r} of {instance.__class__.__qualname__!r} object cannot be deleted')

    def from_wire(self, instance: Structure, buffer: WireData) -> None:
        codec = self.adapter if self.adapter is not None else self.type
        try:
            instance.__dict__[self.name] = codec.from_wire(buffer)  # type: ignore[attr-defined]
        except ValueError as exc:
            raise ValueError(f'Failed to read the {instance.__class__.__qualname__}.{self.name} element from wire: {exc}') from exc

    def to_wire(self, instance: Structure) -> bytes:
        value = self.__get__(instance)
        return self.adapter.to_wire(value) if self.adapter is not None else value.to_wire()  # type: ignore[attr-defined]

    def wire_length(self, instance: Structure) -> int:
        value = self.__get__(instance)
        return self.adapter.wire_length(value) if self.adapter is not None else value.wire_length()  # type: ignore[attr-defined]


@dataclass_transform(kw_only_default=True, field_specifiers=(Element,))
class AnnotatedStructure(Structure):
    pass
