# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp
import functools
from enum import Enum
from . import errors


X = tp.TypeVar("X")
E = tp.TypeVar("E", bound=Enum)


def to_enum(enum_cls: tp.Type[E], value: tp.Union[str, E]) -> E:
    """Converts a string (enum value or member name, case insensitive) to the member
    of the enum class, raising a ConfigurationError for unknown values
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.lower()
        for member in enum_cls:
            if key in (str(member.value).lower(), member.name.lower()):
                return member
    choices = ", ".join(str(m.value) for m in enum_cls)
    raise errors.UnknownStrategyError(f'Unknown {enum_cls.__name__} "{value}" (choose among: {choices})')


# pylint does not understand Dict[str, X],
# so we reimplement the MutableMapping interface
class Registry(tp.MutableMapping[str, X]):
    """Registers strategy classes or configured algorithms as a dict.
    Enum members are accepted as keys and converted to their value.
    """

    def __init__(self, kind: str = "object") -> None:
        super().__init__()
        self.kind = kind
        self.data: tp.Dict[str, X] = {}

    @staticmethod
    def _key(key: tp.Any) -> str:
        return str(key.value) if isinstance(key, Enum) else str(key)

    def register(self, obj: X) -> X:
        """Decorator method for registering functions/classes under their name"""
        name = getattr(obj, "__name__", obj.__class__.__name__)
        self.register_name(name, obj)
        return obj

    def register_as(self, key: tp.Any) -> tp.Callable[[X], X]:
        """Decorator for registering an object under the provided key (typically an enum member)"""
        return functools.partial(self._register_and_return, key)

    def _register_and_return(self, key: tp.Any, obj: X) -> X:
        self.register_name(key, obj)
        return obj

    def register_name(self, name: tp.Any, obj: X) -> None:
        """Register an object with a provided name"""
        name = self._key(name)
        if name in self.data:
            raise errors.SwarmevoRuntimeError(f'Encountered a name collision "{name}"')
        self.data[name] = obj

    def unregister(self, name: tp.Any) -> None:
        """Remove a previously-registered object (no-op if it does not exist)"""
        self.data.pop(self._key(name), None)

    def __getitem__(self, key: tp.Any) -> X:
        name = self._key(key)
        if name not in self.data:
            raise errors.UnknownStrategyError(
                f'No {self.kind} registered as "{name}" (choose among: {", ".join(sorted(self.data))})'
            )
        return self.data[name]

    def __setitem__(self, key: tp.Any, value: X) -> None:
        self.data[self._key(key)] = value

    def __delitem__(self, key: tp.Any) -> None:
        del self.data[self._key(key)]

    def __contains__(self, key: tp.Any) -> bool:
        return self._key(key) in self.data

    def __iter__(self) -> tp.Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)
