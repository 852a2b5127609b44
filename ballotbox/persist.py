'''JSON-ready serialization of election records.

Records decorated with :func:`simple_serialization` gain a ``to_dict()``
method; :func:`to_dict` serializes any combination of such records, enums,
atomic values and containers. Identities that are not atomic are serialized
by their ``repr()``.
'''

import enum
import dataclasses
from typing import Any, List, Dict


def simple_serialization(class_: type) -> type:
    '''A decorator to provide a simple to_dict() serialization method.

    The resulting method will serialize all dataclass fields of the record,
    or the attributes listed in the ``serialize_params`` class attribute if
    there is one, plus any read-only properties named in
    ``serialize_extra``.

    :param class_: The class to add the method to.
    '''
    if hasattr(class_, 'serialize_params'):
        param_names = list(class_.serialize_params)
    else:
        param_names = [field.name for field in dataclasses.fields(class_)]
    param_names += list(getattr(class_, 'serialize_extra', []))

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {}
        for attr in param_names:
            out_dict[attr] = serialize_value(getattr(self, attr))
        return out_dict

    class_.to_dict = to_dict
    return class_


def serialize_value(value: Any) -> Any:
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    elif isinstance(value, enum.Enum):
        return value.name
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif hasattr(value, '__iter__'):
        if hasattr(value, 'items') and hasattr(value, 'keys'):
            return {
                (key if isinstance(key, str) else repr(key)): serialize_value(val)
                for key, val in value.items()
            }
        elif isinstance(value, (set, frozenset)):
            return [serialize_value(val) for val in sorted(value, key=repr)]
        else:
            return [serialize_value(val) for val in value]
    else:
        return repr(value)


def to_dict(obj: Any) -> Any:
    """Serialize an election record to a JSON-ready structure.

    :param obj: A record (it should provide a `to_dict()` method, courtesy
        of the simple_serialization decorator), or a container of records.
    """
    return serialize_value(obj)


ATOMIC_TYPES: List[type] = [
    str, int, float, bool, type(None),
]
