# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: transform engine
# =============================
#
# Reshape JSON-like values.
#
# transform runs, in order, a map function over every node, a filter
# function that prunes nodes, and a list of declarative rules (set,
# delete, rename, transform) that address values by path expression.
#
# The remaining utilities are single purpose:
# - mapjson, filterjson, reducejson: array callbacks with error context.
# - flatten, unflatten: nested objects to and from delimited keys.
# - groupby: partition an array by field or key function.
# - pickkeys, omitkeys, renamekeys: reshape the top level of an object.
# - deeptransform: apply a function to every node, parents first.
# - castvalues: convert values of named keys to a type.
# - sortbykeys: reorder the keys of an object.


from typing import *
import functools
import logging
import re

from .struct import (
    MAXDEPTH,
    S_DT,
    S_MT,
    S_boolean,
    S_number,
    S_string,
    UNDEF,
    clone,
    getprop,
    isfunc,
    islist,
    isnode,
    ismap,
    isnumber,
    isotime,
    parsetime,
    strval,
    typify,
)
from .path import (
    evaluate,
    getpath,
    haspath,
    movepath,
    pathjoin,
    setpath,
)
from .errors import JsonPathError, JsonStructError, JsonTransformError


log = logging.getLogger(__name__)


S_undefined = 'undefined'
S_date = 'date'

# Rule operations.
S_SET = 'set'
S_DELETE = 'delete'
S_RENAME = 'rename'
S_TRANSFORM = 'transform'


def _ordered(compare):
    "Ordering operators are False, not an error, for unorderable values."
    def op(a, b):
        try:
            return compare(a, b)
        except TypeError:
            return False
    return op


def _looseeq(a, b):
    if typify(a) == typify(b):
        return a == b
    if not isnode(a) and not isnode(b):
        return strval(a) == strval(b)
    return False


def _stricteq(a, b):
    return typify(a) == typify(b) and a == b


# Condition operators, by name.
OPERATORS = {
    '==': _looseeq,
    '!=': lambda a, b: not _looseeq(a, b),
    '===': _stricteq,
    '!==': lambda a, b: not _stricteq(a, b),
    '>': _ordered(lambda a, b: a > b),
    '>=': _ordered(lambda a, b: a >= b),
    '<': _ordered(lambda a, b: a < b),
    '<=': _ordered(lambda a, b: a <= b),
    'includes': lambda a, b: strval(b) in strval(a),
    'startsWith': lambda a, b: strval(a).startswith(strval(b)),
    'endsWith': lambda a, b: strval(a).endswith(strval(b)),
    'matches': lambda a, b: re.search(strval(b), strval(a)) is not None,
}


def _wrap(err, what, path, value):
    return JsonTransformError(
        f"Error in {what} at path {path or '<root>'}: {err}", path, value)


def _map(val, fn, deep, path, depth, maxdepth, what='map function'):
    if depth > maxdepth:
        raise JsonTransformError(
            f"Maximum transform depth exceeded: {maxdepth}", path, val)

    try:
        out = fn(val, path)
    except JsonTransformError:
        raise
    except Exception as err:
        raise _wrap(err, what, path, val) from err

    if not deep:
        return out

    if islist(out):
        return [_map(v, fn, deep, pathjoin(path, i), depth + 1, maxdepth, what)
                for i, v in enumerate(out)]

    if ismap(out):
        return {k: _map(v, fn, deep, pathjoin(path, k), depth + 1, maxdepth, what)
                for k, v in out.items()}

    return out


# Returns keep, value: pruned nodes are dropped from their parent.
def _filter(val, fn, deep, path, depth, maxdepth):
    if depth > maxdepth:
        raise JsonTransformError(
            f"Maximum transform depth exceeded: {maxdepth}", path, val)

    try:
        keep = fn(val, path)
    except Exception as err:
        raise _wrap(err, 'filter function', path, val) from err

    if not keep:
        return False, UNDEF

    if not deep:
        return True, val

    if islist(val):
        out = []
        for i, v in enumerate(val):
            ckeep, cval = _filter(v, fn, deep, pathjoin(path, i), depth + 1, maxdepth)
            if ckeep:
                out.append(cval)
        return True, out

    if ismap(val):
        out = {}
        for k, v in val.items():
            ckeep, cval = _filter(v, fn, deep, pathjoin(path, k), depth + 1, maxdepth)
            if ckeep:
                out[k] = cval
        return True, out

    return True, val


def _condition(json, condition):
    if condition is UNDEF:
        return True

    if isfunc(condition):
        return bool(condition(json))

    if ismap(condition):
        path = getprop(condition, 'path')
        operator = getprop(condition, 'operator')
        if path is UNDEF or operator is UNDEF or 'value' not in condition:
            return True
        if operator not in OPERATORS:
            raise JsonTransformError(f"Unknown condition operator: {operator}", path)
        return OPERATORS[operator](getpath(json, path), condition['value'])

    return bool(condition)


def _rule(json, rule):
    path = getprop(rule, 'path', S_MT)
    operation = getprop(rule, 'operation')
    value = rule.get('value') if ismap(rule) else UNDEF

    try:
        applies = _condition(json, getprop(rule, 'condition'))
    except JsonTransformError:
        raise
    except Exception as err:
        raise _wrap(err, 'rule condition', path, json) from err

    if not applies:
        log.debug('transform rule %s %r skipped by condition', operation, path)
        return json

    log.debug('transform rule %s %r', operation, path)

    try:
        if S_SET == operation:
            return setpath(json, path, clone(value))

        if S_DELETE == operation:
            if haspath(json, path):
                return evaluate(json, path, {'delete': True})['target']
            return json

        if S_RENAME == operation:
            if ismap(json) and isinstance(value, str) and haspath(json, path):
                return movepath(json, path, value)
            return json

        if S_TRANSFORM == operation:
            if isfunc(value) and haspath(json, path):
                current = getpath(json, path)
                try:
                    out = value(current, path)
                except Exception as err:
                    raise _wrap(err, 'transform rule', path, current) from err
                return evaluate(json, path, {'value': out})['target']
            return json

    except JsonPathError as err:
        raise JsonTransformError(
            f"Cannot apply {operation} rule at path {path}: {err}", path, json) from err

    raise JsonTransformError(f"Unknown transform operation: {operation}", path, json)


def transform(json: Any, options: Dict[str, Any] = UNDEF) -> Any:
    """
    Transform a value. Options:
    - mapFunction(value, path): replace each node, parents first.
    - filterFunction(value, path): keep nodes for which it is true.
    - rules: list of {path, operation, value, condition}, applied in order.
    - deep: map and filter descend into children (default True).
    - inPlace: work on json directly rather than on a clone (default False).
    - defaultValue: returned when the result is None.
    - maxDepth: nesting limit, default 100.
    """
    mapfn = getprop(options, 'mapFunction')
    filterfn = getprop(options, 'filterFunction')
    rules = getprop(options, 'rules', [])
    deep = getprop(options, 'deep', True)
    inplace = getprop(options, 'inPlace', False)
    maxdepth = getprop(options, 'maxDepth', MAXDEPTH)

    try:
        out = json if inplace else clone(json, maxdepth)
    except JsonStructError as err:
        raise JsonTransformError(
            f"Maximum transform depth exceeded: {maxdepth}", S_MT, json) from err

    if mapfn is not UNDEF:
        out = _map(out, mapfn, deep, S_MT, 0, maxdepth)

    if filterfn is not UNDEF:
        _keep, out = _filter(out, filterfn, deep, S_MT, 0, maxdepth)

    for rule in rules:
        out = _rule(out, rule)

    if out is UNDEF:
        return getprop(options, 'defaultValue')

    return out


def _requirelist(json, what):
    if not islist(json):
        raise JsonTransformError(f"Input to {what} must be an array", S_MT, json)


def _requiremap(json, what):
    if not ismap(json):
        raise JsonTransformError(f"Input to {what} must be an object", S_MT, json)


def mapjson(json: List[Any], callback: Callable[[Any, int], Any]) -> List[Any]:
    "Map callback(item, index) over an array."
    _requirelist(json, 'mapjson')
    out = []
    for i, item in enumerate(json):
        try:
            out.append(callback(item, i))
        except Exception as err:
            raise JsonTransformError(
                f"Error in map callback at index {i}: {err}", pathjoin(S_MT, i), item) from err
    return out


def filterjson(json: List[Any], predicate: Callable[[Any, int], bool]) -> List[Any]:
    "Keep the items of an array for which predicate(item, index) is true."
    _requirelist(json, 'filterjson')
    out = []
    for i, item in enumerate(json):
        try:
            keep = predicate(item, i)
        except Exception as err:
            raise JsonTransformError(
                f"Error in filter predicate at index {i}: {err}", pathjoin(S_MT, i), item) from err
        if keep:
            out.append(item)
    return out


def reducejson(json: List[Any], reducer: Callable[[Any, Any, int], Any], initial: Any) -> Any:
    "Fold an array with reducer(accumulator, item, index), starting from initial."
    _requirelist(json, 'reducejson')
    acc = initial
    for i, item in enumerate(json):
        try:
            acc = reducer(acc, item, i)
        except Exception as err:
            raise JsonTransformError(
                f"Error in reducer at index {i}: {err}", pathjoin(S_MT, i), item) from err
    return acc


def _flatten(json, delimiter, prefix, top, out, exclude=()):
    for key, val in json.items():
        if key in exclude:
            continue
        fkey = str(key) if top else f"{prefix}{delimiter}{key}"
        if ismap(val) and 0 < len(val):
            _flatten(val, delimiter, fkey, False, out, exclude)
        else:
            out[fkey] = val
    return out


def flatten(json: Dict[str, Any], delimiter: str = S_DT, prefix: str = S_MT) -> Dict[str, Any]:
    """
    Flatten nested objects into a single object with delimited keys.
    Arrays and empty objects are leaves.
    """
    _requiremap(json, 'flatten')
    return _flatten(json, delimiter, prefix, S_MT == prefix, {})


def unflatten(json: Dict[str, Any], delimiter: str = S_DT) -> Dict[str, Any]:
    "Rebuild nested objects from delimited keys."
    _requiremap(json, 'unflatten')

    out = {}
    for key, val in json.items():
        parts = key.split(delimiter)
        node = out
        for part in parts[:-1]:
            if not ismap(node.get(part)):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = val
    return out


def groupby(json: List[Any], key: Union[str, Callable[[Any], Any]]) -> Dict[str, List[Any]]:
    """
    Partition an array into lists keyed by the string form of a field
    value, or of key(item). Items lacking the field are grouped under
    'undefined'.
    """
    _requirelist(json, 'groupby')

    groups = {}
    for i, item in enumerate(json):
        if isfunc(key):
            try:
                gkey = strval(key(item))
            except Exception as err:
                raise JsonTransformError(
                    f"Error in group key at index {i}: {err}", pathjoin(S_MT, i), item) from err
        elif ismap(item) and key in item:
            gkey = strval(item[key])
        else:
            gkey = S_undefined
        groups.setdefault(gkey, []).append(item)
    return groups


def pickkeys(json: Dict[str, Any], keys: List[str]) -> Dict[str, Any]:
    _requiremap(json, 'pickkeys')
    return {k: json[k] for k in keys if k in json}


def omitkeys(json: Dict[str, Any], keys: List[str]) -> Dict[str, Any]:
    _requiremap(json, 'omitkeys')
    return {k: v for k, v in json.items() if k not in keys}


def renamekeys(json: Dict[str, Any], keymap: Dict[str, str]) -> Dict[str, Any]:
    "Rename top level keys. Keys not in keymap are kept."
    _requiremap(json, 'renamekeys')
    return {keymap.get(k) or k: v for k, v in json.items()}


def deeptransform(json: Any, fn: Callable[[Any, str], Any]) -> Any:
    "Replace every node with fn(value, path), parents before their children."
    return _map(json, fn, True, S_MT, 0, MAXDEPTH, 'deep transform')


def _cast(val, totype):
    if val is UNDEF:
        return val

    if S_string == totype:
        return strval(val)

    if S_number == totype:
        if isnumber(val):
            return val
        if isinstance(val, bool):
            return int(val)
        try:
            text = str(val).strip()
            return int(text) if re.match(r'^[-+]?\d+$', text) else float(text)
        except ValueError:
            return 0

    if S_boolean == totype:
        return bool(val)

    if S_date == totype:
        try:
            return isotime(parsetime(val))
        except (ValueError, OverflowError, OSError):
            return val

    return val


def castvalues(json: Any, typemap: Dict[str, str]) -> Any:
    """
    Convert the values of the keys named in typemap, at any depth, to
    'string', 'number', 'boolean' or 'date' (ISO text). Values that
    cannot be read as a date are kept.
    """
    if islist(json):
        return [castvalues(v, typemap) for v in json]

    if not ismap(json):
        return json

    return {
        k: _cast(v, typemap[k]) if k in typemap else castvalues(v, typemap)
        for k, v in json.items()
    }


def sortbykeys(json: Dict[str, Any], order: Any = 'asc') -> Dict[str, Any]:
    """
    Reorder the top level keys of an object: 'asc', 'desc', or a
    comparison function cmp(a, b) returning a negative, zero or
    positive number.
    """
    _requiremap(json, 'sortbykeys')

    if isfunc(order):
        keys = sorted(json.keys(), key=functools.cmp_to_key(order))
    else:
        keys = sorted(json.keys(), reverse='desc' == order)

    return {k: json[k] for k in keys}


__all__ = [
    'castvalues',
    'deeptransform',
    'filterjson',
    'flatten',
    'groupby',
    'mapjson',
    'omitkeys',
    'pickkeys',
    'reducejson',
    'renamekeys',
    'sortbykeys',
    'transform',
    'unflatten',
]
