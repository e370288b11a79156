# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: extract utilities
# ==============================
#
# Pull values out of JSON-like data into new shapes. Selections are
# path expressions, optionally with wildcards: * matches any run of
# characters in a path, ? matches one character. So users[*].name
# selects the name of every user.
#
# - extractvalues: many patterns into one object keyed by pattern or alias.
# - extractbypath: the value (or values) selected by one pattern.
# - extractkeys: chosen top level keys, with renaming.
# - extractbypredicate, extractbytype, extractbyregex: search every node.
# - extractandflatten: the selection as a flat object of delimited keys.
# - extractandgroup: array items grouped by a field.
# - extractandpivot: array items pivoted into a rows by columns table.
# - extractwithtemplate: build a new value from "$.path" references.
#
# Returned values are clones: nothing returned aliases the input.


from typing import *
import re

from .struct import (
    MAXDEPTH,
    S_DT,
    S_MT,
    UNDEF,
    clone,
    eqkey,
    getprop,
    isfunc,
    islist,
    ismap,
    isnumber,
    items,
    strval,
    typify,
)
from .path import (
    _entries,
    evaluate,
    pathjoin,
)
from .transform import _flatten
from .errors import JsonExtractError, JsonPathError


S_WILDCARDS = '*?'
S_REF = '$.'

# Pivot aggregates.
S_SUM = 'sum'
S_AVG = 'avg'
S_COUNT = 'count'
S_FIRST = 'first'
S_LAST = 'last'

AGGREGATES = (S_SUM, S_AVG, S_COUNT, S_FIRST, S_LAST)


def _wildcard(pattern):
    regex = re.escape(pattern).replace(r'\*', '.*').replace(r'\?', '.')
    return re.compile(f"^{regex}$")


def _select(json, pattern, filterfn=UNDEF):
    "The (path, value) pairs selected by pattern, in document order."
    if not isinstance(pattern, str):
        raise JsonExtractError(f"Invalid extract pattern: {pattern!r}", S_MT, pattern)

    if any(c in pattern for c in S_WILDCARDS):
        regex = _wildcard(pattern)
        found = [(path, val) for path, val in _entries(json) if regex.match(path)]
    else:
        try:
            res = evaluate(json, pattern)
        except JsonPathError:
            return []
        found = [(pattern, res['value'])] if res['exists'] else []

    if filterfn is not UNDEF:
        found = [(path, val) for path, val in found if filterfn(val, path)]

    return found


def _patterns(patterns):
    for pattern in patterns:
        if ismap(pattern):
            yield (getprop(pattern, 'pattern'),
                   getprop(pattern, 'alias'),
                   getprop(pattern, 'filter'))
        else:
            yield pattern, UNDEF, UNDEF


def extractvalues(
        json: Any,
        patterns: List[Union[str, Dict[str, Any]]],
        options: Dict[str, Any] = UNDEF
) -> Dict[str, Any]:
    """
    Extract the values selected by each pattern into one object, keyed by
    the pattern's alias, or by the pattern itself. A pattern is a path
    expression, or {pattern, alias, filter} where filter(value, path)
    keeps a selected value. One match gives the value, several give a
    list, and none omits the key.

    Options:
    - includeMissing: key patterns without a match to defaultValue.
    - defaultValue: value for missing patterns (default None).
    - transform(value, pattern, key): applied to every extracted value.
    - flatten: flatten nested objects in the result (default True).
    """
    include = getprop(options, 'includeMissing', False)
    default = getprop(options, 'defaultValue')
    transform = getprop(options, 'transform')
    flat = getprop(options, 'flatten', True)

    out = {}
    for pattern, alias, filterfn in _patterns(patterns):
        key = pattern if alias is UNDEF else alias
        values = [clone(val) for _path, val in _select(json, pattern, filterfn)]

        if isfunc(transform):
            values = [transform(val, pattern, key) for val in values]

        if 0 == len(values):
            if include:
                out[key] = clone(default)
        elif 1 == len(values):
            out[key] = values[0]
        else:
            out[key] = values

    return _flatten(out, S_DT, S_MT, True, {}) if flat else out


def extractbypath(json: Any, path: str, options: Dict[str, Any] = UNDEF) -> Any:
    """
    The value selected by a plain path, or the list of values selected by
    a wildcard path. None when nothing is selected.

    Options:
    - filter(value, path): keep only the selected values it accepts.
    - unique: drop structurally equal duplicates from a list result.
    - flatten: flatten object results into delimited keys (default False).
    """
    values = [clone(val) for _path, val in
              _select(json, path, getprop(options, 'filter'))]

    if getprop(options, 'unique', False):
        seen = set()
        unique = []
        for val in values:
            key = eqkey(val)
            if key not in seen:
                seen.add(key)
                unique.append(val)
        values = unique

    if getprop(options, 'flatten', False):
        values = [_flatten(val, S_DT, S_MT, True, {}) if ismap(val) else val
                  for val in values]

    if 0 == len(values):
        return UNDEF
    if 1 == len(values) and not any(c in path for c in S_WILDCARDS):
        return values[0]
    return values


def extractkeys(json: Dict[str, Any], keys: List[str], options: Dict[str, Any] = UNDEF) -> Dict[str, Any]:
    """
    Copy the named top level keys of an object. Options: rename maps old
    to new key names; includeMissing and defaultValue fill absent keys.
    """
    if not ismap(json):
        raise JsonExtractError(f"Input to extractkeys must be an object, got: {typify(json)}",
                               S_MT, json)

    rename = getprop(options, 'rename', {})
    include = getprop(options, 'includeMissing', False)
    default = getprop(options, 'defaultValue')

    out = {}
    for key in keys:
        if key in json:
            out[rename.get(key, key)] = clone(json[key])
        elif include:
            out[rename.get(key, key)] = clone(default)
    return out


def _search(json, maxdepth):
    yield S_MT, json
    yield from _entries(json, maxdepth=maxdepth)


def extractbypredicate(
        json: Any,
        predicate: Callable[[Any, str], bool],
        options: Dict[str, Any] = UNDEF
) -> List[Any]:
    """
    Every node, root included, for which predicate(value, path) is true,
    parents before children. Options: includePath gives {path, value}
    entries; maxDepth stops the search below that depth (default 100).
    """
    include = getprop(options, 'includePath', False)
    maxdepth = getprop(options, 'maxDepth', MAXDEPTH)

    out = []
    for path, val in _search(json, maxdepth):
        if predicate(val, path):
            out.append({'path': path, 'value': clone(val)} if include else clone(val))
    return out


def extractbytype(
        json: Any,
        types: Union[str, List[str]],
        options: Dict[str, Any] = UNDEF
) -> List[Any]:
    """
    Every node whose type (as named by typify) is one of types. With
    includePath, entries are {path, value, type}.
    """
    types = [types] if isinstance(types, str) else list(types)
    found = extractbypredicate(json, lambda val, _path: typify(val) in types, options)

    if getprop(options, 'includePath', False):
        for entry in found:
            entry['type'] = typify(entry['value'])

    return found


def extractbyregex(
        json: Any,
        pattern: Any,
        options: Dict[str, Any] = UNDEF
) -> List[Dict[str, Any]]:
    """
    Search keys and string values with a regular expression. A matching
    string value gives {path, value}; a matching key gives {path, key,
    value}, reported before anything inside its value.

    Options: searchKeys, searchValues, caseSensitive (all True by
    default), and maxDepth.
    """
    search_keys = getprop(options, 'searchKeys', True)
    search_values = getprop(options, 'searchValues', True)
    maxdepth = getprop(options, 'maxDepth', MAXDEPTH)

    flags = 0 if getprop(options, 'caseSensitive', True) else re.IGNORECASE
    try:
        if isinstance(pattern, re.Pattern):
            regex = re.compile(pattern.pattern, pattern.flags | flags)
        else:
            regex = re.compile(pattern, flags)
    except (re.error, TypeError) as err:
        raise JsonExtractError(f"Invalid regular expression: {pattern!r}", S_MT, pattern) from err

    out = []

    def search(val, path, depth):
        if depth > maxdepth:
            return

        if search_values and isinstance(val, str) and regex.search(val):
            out.append({'path': path, 'value': val})

        for ckey, child in items(val):
            cpath = pathjoin(path, ckey)
            if search_keys and ismap(val) and regex.search(ckey):
                out.append({'path': cpath, 'key': ckey, 'value': clone(child)})
            search(child, cpath, depth + 1)

    search(json, S_MT, 0)
    return out


def extractandflatten(json: Any, path: str, options: Dict[str, Any] = UNDEF) -> Dict[str, Any]:
    """
    Flatten the object selected by path into delimited keys. When the
    selection is a list, each object in it is flattened under its index.

    Options: delimiter (default '.'), prefix for every key, and
    excludeKeys, which are skipped at every level.
    """
    delimiter = getprop(options, 'delimiter', S_DT)
    prefix = getprop(options, 'prefix', S_MT)
    exclude = set(getprop(options, 'excludeKeys', []))

    selected = extractbypath(json, path)

    if ismap(selected):
        return _flatten(selected, delimiter, prefix, S_MT == prefix, {}, exclude)

    out = {}
    if islist(selected):
        for i, item in enumerate(selected):
            if ismap(item):
                _flatten(item, delimiter, f"{prefix}{i}", False, out, exclude)
    return out


def _rows(json, path):
    selected = extractbypath(json, path)
    if not islist(selected):
        raise JsonExtractError(f"Path \"{path}\" must select an array", path, selected)
    return selected


def extractandgroup(
        json: Any,
        path: str,
        key: str,
        fields: List[str] = UNDEF,
        options: Dict[str, Any] = UNDEF
) -> Dict[str, List[Any]]:
    """
    Group the objects of the array at path by the string form of their
    key field. Each grouped entry holds the named fields only (or the
    whole object when fields is None). Objects lacking the key are
    skipped. Options: includeMissing and defaultValue fill absent fields.
    """
    include = getprop(options, 'includeMissing', False)
    default = getprop(options, 'defaultValue')

    groups = {}
    for item in _rows(json, path):
        if not ismap(item) or key not in item:
            continue

        if fields is UNDEF:
            entry = clone(item)
        else:
            entry = {}
            for field in fields:
                if field in item:
                    entry[field] = clone(item[field])
                elif include:
                    entry[field] = clone(default)

        groups.setdefault(strval(item[key]), []).append(entry)

    return groups


def extractandpivot(
        json: Any,
        path: str,
        rows: str,
        columns: str,
        values: str,
        options: Dict[str, Any] = UNDEF
) -> Dict[str, Dict[str, Any]]:
    """
    Pivot the objects of the array at path into {row: {column: value}}.
    Objects lacking any of the three fields are skipped. Every row gets
    every column seen, with defaultValue (default 0) where it has none.

    Options:
    - aggregate: how values for the same cell combine: 'sum' (default),
      'avg', 'count', 'first' or 'last'.
    - defaultValue: value for empty cells.
    """
    aggregate = getprop(options, 'aggregate', S_SUM)
    default = getprop(options, 'defaultValue', 0)

    if aggregate not in AGGREGATES:
        raise JsonExtractError(f"Unknown pivot aggregate: {aggregate}", path, aggregate)

    cells = {}
    colkeys = {}

    for i, item in enumerate(_rows(json, path)):
        if not ismap(item) or rows not in item or columns not in item or values not in item:
            continue

        value = item[values]
        if aggregate in (S_SUM, S_AVG) and not isnumber(value):
            raise JsonExtractError(
                f"Cannot {aggregate} non-numeric value: {value!r}",
                pathjoin(pathjoin(path, i), values), value)

        row = cells.setdefault(strval(item[rows]), {})
        col = strval(item[columns])
        colkeys[col] = True
        row.setdefault(col, []).append(value)

    pivot = {}
    for rowkey, row in cells.items():
        pivot[rowkey] = {}
        for col in colkeys:
            found = row.get(col)
            if found is UNDEF:
                pivot[rowkey][col] = clone(default)
            elif S_SUM == aggregate:
                pivot[rowkey][col] = sum(found)
            elif S_AVG == aggregate:
                pivot[rowkey][col] = sum(found) / len(found)
            elif S_COUNT == aggregate:
                pivot[rowkey][col] = len(found)
            elif S_FIRST == aggregate:
                pivot[rowkey][col] = clone(found[0])
            else:
                pivot[rowkey][col] = clone(found[-1])

    return pivot


def extractwithtemplate(json: Any, template: Any, options: Dict[str, Any] = UNDEF) -> Any:
    """
    Build a value shaped like template, where every string "$.path" is
    replaced by the value at path in json. Other strings and scalars are
    kept as they are.

    Options: defaultValue for paths that do not exist (default None);
    strict raises instead; maxDepth limits template nesting.
    """
    default = getprop(options, 'defaultValue')
    strict = getprop(options, 'strict', False)
    maxdepth = getprop(options, 'maxDepth', MAXDEPTH)

    missing = object()

    def build(tmpl, tpath, depth):
        if depth > maxdepth:
            raise JsonExtractError(f"Maximum template depth exceeded: {maxdepth}", tpath, tmpl)

        if isinstance(tmpl, str) and tmpl.startswith(S_REF):
            ref = tmpl[len(S_REF):]
            try:
                res = evaluate(json, ref)
                val = res['value'] if res['exists'] else missing
            except JsonPathError:
                val = missing

            if val is not missing:
                return clone(val)
            if strict:
                raise JsonExtractError(f"Missing value for template path: {ref}", tpath, tmpl)
            return clone(default)

        if islist(tmpl):
            return [build(v, pathjoin(tpath, i), depth + 1) for i, v in enumerate(tmpl)]

        if ismap(tmpl):
            return {k: build(v, pathjoin(tpath, k), depth + 1) for k, v in tmpl.items()}

        return tmpl

    return build(template, S_MT, 0)


__all__ = [
    'extractandflatten',
    'extractandgroup',
    'extractandpivot',
    'extractbypath',
    'extractbypredicate',
    'extractbyregex',
    'extractbytype',
    'extractkeys',
    'extractvalues',
    'extractwithtemplate',
]
