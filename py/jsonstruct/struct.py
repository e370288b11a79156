# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: shared utilities
# =============================
#
# Small helpers used by every engine to classify and handle in-memory
# JSON-like data (None, bool, int/float, str, list, dict).
#
# - isnode, ismap, islist, iskey, isfunc: identify value kinds.
# - typify: name the JSON type of a value.
# - getprop: safely get a property value by key.
# - delprop: delete a property, shifting list elements down.
# - items: list entries of a map or list as (key, value) pairs.
# - size: length of a list/string, key count of a map.
# - clone: deep copy of a JSON-like structure, optionally depth bounded.
# - stringify: human-friendly string version of a value (NOT JSON!).
# - jsonify: JSON text, with circular references replaced.
# - strval: string form of a scalar, as interpolated into text.
# - eqkey: hashable structural-equality key.
# - walk: walk a node tree, applying a function after each node's children.
# - parsetime, isotime: read and write UTC instants.


from typing import *
import json
import math
from datetime import datetime, timezone

from .errors import JsonStructError


# The standard undefined value for this language.
UNDEF = None

# Maximum nesting depth accepted by the recursive engines.
MAXDEPTH = 100

# General strings.
S_array = 'array'
S_boolean = 'boolean'
S_function = 'function'
S_number = 'number'
S_object = 'object'
S_string = 'string'
S_null = 'null'
S_MT = ''
S_DT = '.'
S_CIRCULAR = '[Circular Reference]'


def isnode(val: Any = UNDEF) -> bool:
    "Value is a node - defined, and a map (hash) or list (array)."
    return isinstance(val, (dict, list))


def ismap(val: Any = UNDEF) -> bool:
    "Value is a defined map (hash) with string keys."
    return isinstance(val, dict)


def islist(val: Any = UNDEF) -> bool:
    "Value is a defined list (array) with integer keys (indexes)."
    return isinstance(val, list)


def iskey(key: Any = UNDEF) -> bool:
    "Value is a defined string (non-empty) or integer key."
    if isinstance(key, str):
        return len(key) > 0
    # Exclude bool (which is a subclass of int)
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return True
    return False


def isnumber(val: Any = UNDEF) -> bool:
    "Value is an int or float, but not a bool."
    return isinstance(val, (int, float)) and not isinstance(val, bool)


def isfunc(val: Any = UNDEF) -> bool:
    "Value is a function."
    return callable(val)


def typify(value: Any = UNDEF) -> str:
    if value is UNDEF:
        return S_null
    if isinstance(value, bool):
        return S_boolean
    if isinstance(value, (int, float)):
        return S_number
    if isinstance(value, str):
        return S_string
    if isinstance(value, list):
        return S_array
    if isinstance(value, dict):
        return S_object
    if callable(value):
        return S_function
    return S_object


def size(val: Any = UNDEF) -> int:
    """Determine the size of a value (length for lists/strings, count for maps)"""
    if islist(val) or isinstance(val, str):
        return len(val)
    elif ismap(val):
        return len(val.keys())
    return 0


def getprop(val: Any = UNDEF, key: Any = UNDEF, alt: Any = UNDEF) -> Any:
    """
    Safely get a property of a node. Undefined arguments return the
    alternative. Keys present with a None value also return the
    alternative, as None is undefined.
    """
    if UNDEF == val or UNDEF == key:
        return alt

    out = alt

    if ismap(val):
        out = val.get(key, alt)

    elif islist(val):
        if not iskey(key):
            return alt
        try:
            key = int(key)
        except ValueError:
            return alt

        if 0 <= key < len(val):
            out = val[key]

    if UNDEF == out:
        return alt

    return out


def delprop(parent: Any, key: Any):
    """
    Delete a property from a dictionary or list.
    For arrays, the element at the index is removed and remaining elements are shifted down.
    """
    if not iskey(key):
        return parent

    if ismap(parent):
        parent.pop(key, UNDEF)

    elif islist(parent):
        try:
            key_i = int(key)
        except ValueError:
            return parent

        if 0 <= key_i < len(parent):
            del parent[key_i]

    return parent


def items(val: Any = UNDEF):
    "List the entries of a map or list as an array of (key, value) tuples, in order."
    if ismap(val):
        return list(val.items())
    elif islist(val):
        return list(enumerate(val))
    else:
        return []


def clone(val: Any = UNDEF, maxdepth: int = UNDEF):
    """
    Clone a JSON-like data structure.
    NOTE: function value references are copied, *not* cloned.
    Containers nested deeper than maxdepth raise JsonStructError.
    """
    if not ismap(val) and not isinstance(val, (list, tuple)):
        return val

    out = {} if ismap(val) else []

    # Iterative, so deep values cannot exhaust the interpreter stack.
    stack = [(val, out, 0)]
    while stack:
        src, dst, depth = stack.pop()

        if maxdepth is not UNDEF and maxdepth < depth:
            raise JsonStructError(f"Maximum depth exceeded: {maxdepth}")

        for key, child in (src.items() if ismap(src) else enumerate(src)):
            if ismap(child):
                copy = {}
            elif isinstance(child, (list, tuple)):
                copy = []
            else:
                copy = child

            if ismap(dst):
                dst[key] = copy
            else:
                dst.append(copy)

            if copy is not child:
                stack.append((child, copy, depth + 1))

    return out


def stringify(val: Any, maxlen: int = UNDEF):
    "Safely stringify a value for printing (NOT JSON!)."

    valstr = S_MT

    if UNDEF == val:
        return valstr

    if isinstance(val, str):
        valstr = val
    else:
        try:
            valstr = json.dumps(val, sort_keys=True, separators=(',', ':'))
            valstr = valstr.replace('"', '')
        except (TypeError, ValueError):
            valstr = str(val)

    if maxlen is not UNDEF:
        json_len = len(valstr)
        valstr = valstr[:maxlen]

        if 3 < maxlen < json_len:
            valstr = valstr[:maxlen - 3] + '...'

    return valstr


def jsonify(val: Any = UNDEF, flags: Dict[str, Any] = None) -> str:
    """
    Convert a value to JSON text.
    Container values already being serialized (circular references) are
    replaced by a marker string, and unserializable leaves become null.
    """
    flags = flags or {}
    indent = getprop(flags, 'indent', 2)

    def replace(item, seen):
        if isnode(item):
            if id(item) in seen:
                return S_CIRCULAR
            seen = seen | {id(item)}
            if ismap(item):
                return {str(k): replace(v, seen) for k, v in item.items()}
            return [replace(v, seen) for v in item]
        if item is UNDEF or isinstance(item, (str, bool, int)):
            return item
        if isinstance(item, float):
            return item if math.isfinite(item) else UNDEF
        return UNDEF

    return json.dumps(
        replace(val, frozenset()),
        indent=indent if indent else None,
        separators=(',', ': ') if indent else (',', ':'),
    )


def strval(val: Any = UNDEF) -> str:
    """
    String form of a value when interpolated into text: null, true and
    false are spelled as in JSON, whole floats lose their fraction, and
    nodes become compact JSON.
    """
    if UNDEF == val:
        return S_null
    if isinstance(val, str):
        return val
    if isinstance(val, bool):
        return 'true' if val else 'false'
    if isinstance(val, float) and math.isfinite(val) and val == int(val):
        return str(int(val))
    if isnode(val):
        return jsonify(val, {'indent': 0})
    return str(val)


def eqkey(val: Any = UNDEF) -> Hashable:
    """
    Hashable key such that two values have equal keys exactly when they
    are structurally equal. Map key order is ignored; 1 and 1.0 are the
    same number, but True is not 1.
    """
    if isinstance(val, bool):
        return (S_boolean, val)
    if isnumber(val):
        return (S_number, val)
    if ismap(val):
        return (S_object, frozenset((k, eqkey(v)) for k, v in val.items()))
    if islist(val):
        return (S_array, tuple(eqkey(v) for v in val))
    if UNDEF == val:
        return (S_null,)
    if isinstance(val, str):
        return (S_string, val)
    return (S_function, id(val))


def walk(
        # These arguments are the public interface.
        val: Any,
        apply: Any,

        # These arguments are used for recursive state.
        key: Any = UNDEF,
        parent: Any = UNDEF,
        path: Any = UNDEF
):
    """
    Walk a data structure depth-first, calling apply at each node (after children).
    The path is the list of keys and indexes from the root.
    """
    if path is UNDEF:
        path = []
    if isnode(val):
        for (ckey, child) in items(val):
            val[ckey] = walk(child, apply, ckey, val, path + [ckey])

    # Nodes are applied *after* their children.
    # For the root node, key and parent will be UNDEF.
    return apply(key, val, parent, path)


def parsetime(val: Any) -> datetime:
    """
    Parse an instant: an ISO 8601 string (a trailing Z is UTC, and no
    offset means UTC) or unix seconds. Raises ValueError if invalid.
    """
    if isinstance(val, datetime):
        out = val
    elif isnumber(val):
        return datetime.fromtimestamp(val, timezone.utc)
    elif isinstance(val, str):
        text = val.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        out = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Invalid time value: {val!r}")

    if out.tzinfo is None:
        return out.replace(tzinfo=timezone.utc)
    return out.astimezone(timezone.utc)


def isotime(dt: datetime) -> str:
    "UTC ISO 8601 text with milliseconds, as in 2025-01-02T03:04:05.678Z."
    dt = dt.astimezone(timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt.microsecond // 1000:03d}Z"


__all__ = [
    'MAXDEPTH',
    'UNDEF',
    'clone',
    'delprop',
    'eqkey',
    'getprop',
    'isotime',
    'isfunc',
    'iskey',
    'islist',
    'ismap',
    'isnode',
    'isnumber',
    'items',
    'jsonify',
    'parsetime',
    'size',
    'stringify',
    'strval',
    'typify',
    'walk',
]
