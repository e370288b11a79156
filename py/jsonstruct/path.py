# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: path engine
# ========================
#
# Path expressions address a location inside a JSON-like value:
#
#   a.b[0]["x.y"][-1]
#
# Plain segments are separated by dots and are always string keys.
# Bracket segments hold either an (optionally signed) integer index, a
# quoted key ('...' or "...", with backslash escapes), or an unquoted
# key. Negative indexes count from the end of the array.
#
# Main utilities
# - parsepath: expression to list of segments (str keys, int indexes).
# - formatpath: segments back to an expression.
# - pathjoin: extend a path expression by one key or index.
# - evaluate: resolve an expression, optionally creating, assigning or deleting.
#
# Derived utilities
# - getpath, setpath, delpath, haspath: the common evaluate calls.
# - allpaths, findpaths: enumerate the paths inside a value.
# - movepath, copypath: relocate a value.
# - extractpaths, updatepaths: operate on many paths at once.
# - parentpath, pathdepth, normalizepath: operate on expressions only.


from typing import *
import re

from .struct import (
    MAXDEPTH,
    S_DT,
    S_MT,
    S_array,
    S_object,
    UNDEF,
    clone,
    getprop,
    isnode,
    ismap,
    items,
    typify,
)
from .errors import (
    JsonPathError,
    PathNotFoundError,
    PathRangeError,
    PathSyntaxError,
    PathTypeError,
)


# Bracket content that is an array index.
R_INDEX = re.compile(r'^[-+]?\d+$')

# Key that can be written without brackets.
R_PLAINKEY = re.compile(r'^[^.\[\]]+$')

S_QUOTES = '"\''
S_OB = '['
S_CB = ']'
S_BS = '\\'


def _isindex(seg: Any) -> bool:
    return isinstance(seg, int) and not isinstance(seg, bool)


def parsepath(expression: str) -> List[Union[str, int]]:
    "Parse a path expression into a list of segments."
    if not isinstance(expression, str):
        raise PathSyntaxError(
            f"Path expression must be a string, got: {typify(expression)}",
            str(expression))

    segments = []
    current = S_MT
    pI = 0

    while pI < len(expression):
        c = expression[pI]

        if S_DT == c:
            if S_MT != current:
                segments.append(current)
                current = S_MT
            pI += 1

        elif S_OB == c:
            if S_MT != current:
                segments.append(current)
                current = S_MT
            pI = _parsebracket(expression, pI + 1, segments)

        else:
            current += c
            pI += 1

    if S_MT != current:
        segments.append(current)

    return segments


# Parse the body of a bracket starting just after the '['. The segment is
# appended to segments, and the index just after the ']' is returned.
def _parsebracket(expression, start, segments):
    end = len(expression)
    pI = start

    while pI < end and expression[pI].isspace():
        pI += 1

    if pI < end and expression[pI] in S_QUOTES:
        quote = expression[pI]
        chars = []
        pI += 1

        while pI < end and expression[pI] != quote:
            if S_BS == expression[pI] and pI + 1 < end:
                pI += 1
            chars.append(expression[pI])
            pI += 1

        if pI >= end:
            raise PathSyntaxError(
                f"Unterminated quoted key in path expression: {expression}", expression)

        pI += 1
        while pI < end and expression[pI].isspace():
            pI += 1

        if pI >= end or S_CB != expression[pI]:
            raise PathSyntaxError(
                f"Unclosed bracket in path expression: {expression}", expression)

        segments.append(S_MT.join(chars))
        return pI + 1

    close = expression.find(S_CB, pI)
    if close < 0:
        raise PathSyntaxError(
            f"Unclosed bracket in path expression: {expression}", expression)

    content = expression[pI:close].strip()
    if S_MT == content:
        raise PathSyntaxError(
            f"Empty bracket expression in path: {expression}", expression)

    segments.append(int(content) if R_INDEX.match(content) else content)
    return close + 1


def pathjoin(base: str, key: Union[str, int]) -> str:
    """
    Extend the path expression base by one key or index. The result parses
    back into the segments of base plus key.
    """
    if _isindex(key):
        return f"{base}[{key}]"

    key = str(key)
    if R_PLAINKEY.match(key):
        return key if S_MT == base else base + S_DT + key

    quoted = key.replace(S_BS, S_BS + S_BS).replace('"', S_BS + '"')
    return f'{base}["{quoted}"]'


def formatpath(segments: List[Union[str, int]]) -> str:
    "Format a list of segments as a path expression."
    path = S_MT
    for seg in segments:
        path = pathjoin(path, seg)
    return path


def _result(value, parent, key, exists, target):
    return {
        'value': value,
        'parent': parent,
        'key': key,
        'exists': exists,
        'target': target,
    }


def evaluate(root: Any, expression: str, options: Dict[str, Any] = UNDEF) -> Dict[str, Any]:
    """
    Resolve a path expression against root.

    Options:
    - create: materialize missing containers (and extend arrays with None)
      along the path.
    - delete: remove the resolved element; array elements after it shift down.
    - value: assign this value at the resolved location. The presence of the
      key is what matters, so None can be assigned.

    Returns a dict with the resolved value, its parent container and key
    within that parent, whether the location exists, and the (possibly
    replaced) root as target.

    A pure read reports exists False for any missing key or non-container
    intermediate. Out-of-bounds indexes raise PathRangeError unless create
    is set, and assigning through a missing intermediate without create
    raises PathNotFoundError.
    """
    create = bool(getprop(options, 'create', False))
    delete = bool(getprop(options, 'delete', False))
    assign = ismap(options) and 'value' in options
    newval = options['value'] if assign else UNDEF

    segments = parsepath(expression)

    # The empty path addresses the root itself.
    if 0 == len(segments):
        if delete:
            return _result(UNDEF, UNDEF, UNDEF, False, UNDEF)
        if assign:
            return _result(newval, UNDEF, UNDEF, True, newval)
        return _result(root, UNDEF, UNDEF, True, root)

    target = root
    parent = UNDEF
    key = UNDEF
    current = root
    exists = True
    last = len(segments) - 1

    for sI, seg in enumerate(segments):

        # Scalars and None cannot be descended into.
        if not isnode(current):
            if create:
                current = [] if _isindex(seg) else {}
                if parent is UNDEF:
                    target = current
                else:
                    parent[key] = current
            elif assign:
                raise PathNotFoundError(
                    f"Cannot traverse {typify(current)} at path: "
                    f"{formatpath(segments[:sI]) or '<root>'}",
                    expression, current)
            else:
                exists = False
                break

        parent = current

        if isinstance(current, list):
            if not _isindex(seg):
                raise PathTypeError(
                    f"Expected array index at path: {formatpath(segments[:sI])}"
                    f", got key: {seg}", expression, current)

            idx = len(current) + seg if seg < 0 else seg

            if idx < 0 or (len(current) <= idx and not create):
                raise PathRangeError(
                    f"Array index out of bounds: {seg} at path: "
                    f"{formatpath(segments[:sI + 1])}", expression, current)

            if len(current) <= idx:
                current.extend([UNDEF] * (1 + idx - len(current)))

            key = idx
            current = current[idx]

        else:
            if _isindex(seg):
                raise PathTypeError(
                    f"Expected object key at path: {formatpath(segments[:sI])}"
                    f", got index: {seg}", expression, current)

            key = seg

            if seg in current:
                current = current[seg]

            elif sI == last:
                exists = False
                current = UNDEF

            elif create:
                current[seg] = [] if _isindex(segments[sI + 1]) else {}
                current = current[seg]

            elif assign:
                raise PathNotFoundError(
                    f"Path not found: {formatpath(segments[:sI + 1])}",
                    expression, current)

            else:
                exists = False
                current = UNDEF
                break

    if delete:
        if exists:
            del parent[key]
        return _result(UNDEF, parent, key, False, target)

    if assign:
        parent[key] = newval
        return _result(newval, parent, key, True, target)

    return _result(current, parent, key, exists, target)


def getpath(json: Any, path: str, alt: Any = UNDEF) -> Any:
    "Get the value at path, or alt if it does not exist or the path is invalid."
    try:
        res = evaluate(json, path)
    except JsonPathError:
        return alt
    return res['value'] if res['exists'] else alt


def setpath(json: Any, path: str, value: Any) -> Any:
    "Set value at path, creating containers as needed. Returns the root."
    return evaluate(json, path, {'create': True, 'value': value})['target']


def delpath(json: Any, path: str) -> Any:
    "Delete the value at path, if it exists. Returns the root."
    return evaluate(json, path, {'delete': True})['target']


def haspath(json: Any, path: str) -> bool:
    try:
        return evaluate(json, path)['exists']
    except JsonPathError:
        return False


# Pre-order (path, value) entries of all descendants of val.
def _entries(val, path=S_MT, depth=0, maxdepth=MAXDEPTH):
    if depth >= maxdepth:
        return
    for ckey, child in items(val):
        cpath = pathjoin(path, ckey)
        yield cpath, child
        yield from _entries(child, cpath, depth + 1, maxdepth)


def allpaths(json: Any, options: Dict[str, Any] = UNDEF) -> List[str]:
    """
    List the paths of all values inside json (the root itself excluded),
    parents before children. Options select which kinds of value are
    listed: includeArrays, includeObjects, includePrimitives (all True by
    default); maxDepth limits the descent.
    """
    include = {
        S_array: getprop(options, 'includeArrays', True),
        S_object: getprop(options, 'includeObjects', True),
    }
    primitives = getprop(options, 'includePrimitives', True)
    maxdepth = getprop(options, 'maxDepth', MAXDEPTH)

    return [
        path for path, val in _entries(json, maxdepth=maxdepth)
        if include.get(typify(val), primitives)
    ]


def findpaths(json: Any, pattern: Any) -> List[Dict[str, Any]]:
    """
    Find the paths matching a pattern: a substring of the path, a compiled
    regular expression searched in the path, or a predicate called with
    (path, value).
    """
    if isinstance(pattern, str):
        def matches(path, _val): return pattern in path
    elif isinstance(pattern, re.Pattern):
        def matches(path, _val): return pattern.search(path) is not None
    elif callable(pattern):
        matches = pattern
    else:
        raise JsonPathError(f"Invalid path pattern: {pattern!r}")

    return [
        {'path': path, 'value': val}
        for path, val in _entries(json)
        if matches(path, val)
    ]


def movepath(json: Any, frompath: str, topath: str) -> Any:
    "Move the value at frompath to topath. Returns the root."
    res = evaluate(json, frompath)
    if not res['exists']:
        raise PathNotFoundError(f"Source path does not exist: {frompath}", frompath)

    value = res['value']
    json = delpath(json, frompath)
    return setpath(json, topath, value)


def copypath(json: Any, frompath: str, topath: str) -> Any:
    "Copy a deep clone of the value at frompath to topath. Returns the root."
    res = evaluate(json, frompath)
    if not res['exists']:
        raise PathNotFoundError(f"Source path does not exist: {frompath}", frompath)

    return setpath(json, topath, clone(res['value']))


def extractpaths(json: Any, paths: List[str]) -> Dict[str, Any]:
    "Map each existing path to its value."
    missing = object()
    out = {}
    for path in paths:
        val = getpath(json, path, missing)
        if val is not missing:
            out[path] = val
    return out


def updatepaths(json: Any, updates: Dict[str, Any]) -> Any:
    for path, value in updates.items():
        json = setpath(json, path, value)
    return json


def parentpath(path: str) -> str:
    return formatpath(parsepath(path)[:-1])


def pathdepth(path: str) -> int:
    return len(parsepath(path))


def normalizepath(path: str) -> str:
    "Rewrite a path expression in canonical form: a['b'][0] becomes a.b[0]."
    return formatpath(parsepath(path))


__all__ = [
    'allpaths',
    'copypath',
    'delpath',
    'evaluate',
    'extractpaths',
    'findpaths',
    'formatpath',
    'getpath',
    'haspath',
    'movepath',
    'normalizepath',
    'parentpath',
    'parsepath',
    'pathdepth',
    'pathjoin',
    'setpath',
    'updatepaths',
]
