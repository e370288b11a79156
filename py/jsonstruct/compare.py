# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: compare engine
# ===========================
#
# Deep comparison of JSON-like values.
#
# - compare: equality, the list of differences, and a similarity score.
# - deepequal: structural equality only.
# - finddifferences: differences, counted and grouped by type.
# - comparetolerance: numbers within a tolerance are equal.
# - compareignoring: compare with some keys removed at every level.
# - compareunordered: compare arrays as multisets.
# - issubset, contains: structural containment.
# - similarity: structural closeness score in [0, 1].
# - patchops, applypatch: JSON-Patch style add/remove/replace operations.
# - findcommon: the shared and the unique parts of two values.
#
# Difference paths use path engine syntax (a.b[0]), so they can be fed
# back into getpath. Patch paths use slash syntax (/a/b/0).


from typing import *

from .struct import (
    MAXDEPTH,
    S_MT,
    S_array,
    S_number,
    S_object,
    UNDEF,
    clone,
    eqkey,
    getprop,
    islist,
    ismap,
    typify,
)
from .path import pathjoin
from .errors import JsonCompareError


# Difference types.
S_TYPE_MISMATCH = 'type-mismatch'
S_VALUE_MISMATCH = 'value-mismatch'
S_LENGTH_MISMATCH = 'length-mismatch'
S_MISSING_IN_A = 'missing-in-a'
S_MISSING_IN_B = 'missing-in-b'
S_MISSING_ELEMENT = 'missing-element'
S_EXTRA_ELEMENT = 'extra-element'

# Patch operations.
S_ADD = 'add'
S_REMOVE = 'remove'
S_REPLACE = 'replace'
S_SEP = '/'


def _difference(path, kind, valueA, valueB, detail=UNDEF):
    diff = {
        'path': path,
        'type': kind,
        'valueA': valueA,
        'valueB': valueB,
    }
    if detail is not UNDEF:
        diff['detail'] = detail
    return diff


def _checkdepth(depth, maxdepth, path, a, b):
    if depth > maxdepth:
        raise JsonCompareError(
            f"Maximum compare depth exceeded: {maxdepth}", path, a, b)


def _unionkeys(a, b):
    return list(a.keys()) + [k for k in b.keys() if k not in a]


def _diff(a, b, path, diffs, depth, tolerance, maxdepth):
    """
    Append the differences between a and b to diffs, and return True if
    they are equal. If tolerance is defined, numbers within it are equal.
    """
    _checkdepth(depth, maxdepth, path, a, b)

    ta = typify(a)
    tb = typify(b)

    if ta != tb:
        diffs.append(_difference(path, S_TYPE_MISMATCH, a, b,
                                 f"Type A: {ta}, Type B: {tb}"))
        return False

    if S_array == ta:
        equal = True

        if len(a) != len(b):
            diffs.append(_difference(path, S_LENGTH_MISMATCH, len(a), len(b)))
            equal = False

        for i in range(max(len(a), len(b))):
            ipath = pathjoin(path, i)
            if len(a) <= i:
                diffs.append(_difference(ipath, S_MISSING_IN_A, UNDEF, b[i]))
                equal = False
            elif len(b) <= i:
                diffs.append(_difference(ipath, S_MISSING_IN_B, a[i], UNDEF))
                equal = False
            elif not _diff(a[i], b[i], ipath, diffs, depth + 1, tolerance, maxdepth):
                equal = False

        return equal

    if S_object == ta:
        equal = True

        for key in _unionkeys(a, b):
            kpath = pathjoin(path, key)
            if key not in a:
                diffs.append(_difference(kpath, S_MISSING_IN_A, UNDEF, b[key]))
                equal = False
            elif key not in b:
                diffs.append(_difference(kpath, S_MISSING_IN_B, a[key], UNDEF))
                equal = False
            elif not _diff(a[key], b[key], kpath, diffs, depth + 1, tolerance, maxdepth):
                equal = False

        return equal

    if S_number == ta and tolerance is not UNDEF:
        delta = abs(a - b)
        if delta > tolerance:
            diffs.append(_difference(path, S_VALUE_MISMATCH, a, b,
                                     f"Difference: {delta}, Tolerance: {tolerance}"))
            return False
        return True

    if a != b:
        diffs.append(_difference(path, S_VALUE_MISMATCH, a, b))
        return False

    return True


def _equal(a, b, depth=0, maxdepth=MAXDEPTH):
    _checkdepth(depth, maxdepth, S_MT, a, b)

    ta = typify(a)
    if ta != typify(b):
        return False

    if S_array == ta:
        return len(a) == len(b) and \
            all(_equal(x, y, depth + 1, maxdepth) for x, y in zip(a, b))

    if S_object == ta:
        return len(a) == len(b) and \
            all(k in b and _equal(v, b[k], depth + 1, maxdepth) for k, v in a.items())

    return a == b


def compare(a: Any, b: Any, options: Dict[str, Any] = UNDEF) -> Dict[str, Any]:
    """
    Compare two values. Returns a dict with equal (bool), differences (a
    list of {path, type, valueA, valueB, detail?}) and similarity.
    Options: maxDepth.
    """
    maxdepth = getprop(options, 'maxDepth', MAXDEPTH)
    diffs = []
    equal = _diff(a, b, S_MT, diffs, 0, UNDEF, maxdepth)
    return {
        'equal': equal,
        'differences': diffs,
        'similarity': similarity(a, b, maxdepth),
    }


def deepequal(a: Any, b: Any) -> bool:
    "Structural equality: same types, same array order, same key set."
    return _equal(a, b)


def finddifferences(a: Any, b: Any) -> Dict[str, Any]:
    "Differences from a to b, with a count and a grouping by difference type."
    diffs = []
    _diff(a, b, S_MT, diffs, 0, UNDEF, MAXDEPTH)

    bytype = {}
    for diff in diffs:
        bytype.setdefault(diff['type'], []).append({
            'path': diff['path'],
            'valueA': diff['valueA'],
            'valueB': diff['valueB'],
        })

    return {
        'count': len(diffs),
        'differences': diffs,
        'byType': bytype,
    }


def comparetolerance(a: Any, b: Any, tolerance: float) -> Dict[str, Any]:
    "As compare, but numbers at the same location are equal if within tolerance."
    diffs = []
    equal = _diff(a, b, S_MT, diffs, 0, tolerance, MAXDEPTH)
    return {
        'equal': equal,
        'differences': diffs,
        'similarity': similarity(a, b),
    }


def _withoutkeys(val, keys):
    if islist(val):
        return [_withoutkeys(v, keys) for v in val]
    if ismap(val):
        return {k: _withoutkeys(v, keys) for k, v in val.items() if k not in keys}
    return val


def compareignoring(a: Any, b: Any, keys: List[str]) -> Dict[str, Any]:
    "As compare, but the named keys are ignored at every level."
    return compare(_withoutkeys(a, keys), _withoutkeys(b, keys))


def compareunordered(a: List[Any], b: List[Any]) -> Dict[str, Any]:
    """
    Compare two arrays ignoring order. Each element of a is matched to
    the first unmatched equal element of b. Unmatched elements of a are
    missing-element differences, and unmatched elements of b are
    extra-element differences. Similarity is the fraction of a that was
    matched.
    """
    if not islist(a) or not islist(b):
        raise JsonCompareError('Both arguments must be arrays', S_MT, a, b)

    diffs = []

    if len(a) != len(b):
        diffs.append(_difference(S_MT, S_LENGTH_MISMATCH, len(a), len(b)))

    # Unmatched indexes of b, by structural equality.
    pool = {}
    for j, elem in enumerate(b):
        pool.setdefault(eqkey(elem), []).append(j)

    matched = set()
    for i, elem in enumerate(a):
        candidates = pool.get(eqkey(elem))
        if candidates:
            matched.add(candidates.pop(0))
        else:
            diffs.append(_difference(pathjoin(S_MT, i), S_MISSING_ELEMENT, elem, UNDEF))

    for j, elem in enumerate(b):
        if j not in matched:
            diffs.append(_difference(pathjoin(S_MT, j), S_EXTRA_ELEMENT, UNDEF, elem))

    if 0 < len(a):
        score = len(matched) / len(a)
    else:
        score = 1.0 if 0 == len(b) else 0.0

    return {
        'equal': 0 == len(diffs),
        'differences': diffs,
        'similarity': score,
    }


def _subset(a, b, depth):
    _checkdepth(depth, MAXDEPTH, S_MT, a, b)

    ta = typify(a)
    if ta != typify(b):
        return False

    if S_array == ta:
        if len(a) > len(b):
            return False
        pool = {}
        for elem in b:
            key = eqkey(elem)
            pool[key] = pool.get(key, 0) + 1
        for elem in a:
            key = eqkey(elem)
            if 0 == pool.get(key, 0):
                return False
            pool[key] -= 1
        return True

    if S_object == ta:
        return all(k in b and _subset(v, b[k], depth + 1) for k, v in a.items())

    return a == b


def issubset(a: Any, b: Any) -> bool:
    """
    Every key of a is in b with a subset value, and every element of an
    array in a has a distinct equal element in the corresponding array of
    b, in any order.
    """
    return _subset(a, b, 0)


def contains(a: Any, b: Any) -> bool:
    "a contains b: b is a subset of a."
    return _subset(b, a, 0)


def similarity(a: Any, b: Any, maxdepth: int = MAXDEPTH, _depth: int = 0) -> float:
    """
    Structural closeness in [0, 1]. Arrays average the similarity of
    elements aligned by index, and objects average over the union of keys.
    Unaligned elements and one-sided keys score 0.
    """
    _checkdepth(_depth, maxdepth, S_MT, a, b)

    ta = typify(a)
    if ta != typify(b):
        return 0.0

    if S_array == ta:
        if 0 == len(a) and 0 == len(b):
            return 1.0
        total = sum(similarity(x, y, maxdepth, _depth + 1) for x, y in zip(a, b))
        return total / max(len(a), len(b))

    if S_object == ta:
        keys = _unionkeys(a, b)
        if 0 == len(keys):
            return 1.0
        total = sum(
            similarity(a[k], b[k], maxdepth, _depth + 1)
            for k in keys if k in a and k in b
        )
        return total / len(keys)

    return 1.0 if a == b else 0.0


def _pointer(path, key):
    token = str(key).replace('~', '~0').replace('/', '~1')
    return path + S_SEP + token


def _patch(a, b, path, ops, depth):
    _checkdepth(depth, MAXDEPTH, path, a, b)

    ta = typify(a)

    if ta != typify(b):
        ops.append({'op': S_REPLACE, 'path': path, 'value': clone(b)})

    elif S_array == ta:
        common = min(len(a), len(b))

        # Arrays of very different length are replaced wholesale.
        if abs(len(a) - len(b)) > common / 2:
            ops.append({'op': S_REPLACE, 'path': path, 'value': clone(b)})
            return

        for i in range(common):
            _patch(a[i], b[i], _pointer(path, i), ops, depth + 1)

        for i in range(common, len(b)):
            ops.append({'op': S_ADD, 'path': _pointer(path, i), 'value': clone(b[i])})

        # Highest index first, so that each removal leaves earlier indexes valid.
        for i in reversed(range(common, len(a))):
            ops.append({'op': S_REMOVE, 'path': _pointer(path, i)})

    elif S_object == ta:
        for key in _unionkeys(a, b):
            kpath = _pointer(path, key)
            if key not in a:
                ops.append({'op': S_ADD, 'path': kpath, 'value': clone(b[key])})
            elif key not in b:
                ops.append({'op': S_REMOVE, 'path': kpath})
            else:
                _patch(a[key], b[key], kpath, ops, depth + 1)

    elif a != b:
        ops.append({'op': S_REPLACE, 'path': path, 'value': clone(b)})


def patchops(a: Any, b: Any) -> List[Dict[str, Any]]:
    """
    Operations ({op, path, value?}) that turn a into b when applied in
    order. Paths are JSON Pointers, and the root is ''.
    """
    ops = []
    _patch(a, b, S_MT, ops, 0)
    return ops


def applypatch(json: Any, ops: List[Dict[str, Any]]) -> Any:
    "Apply patch operations to a clone of json, returning the clone."
    out = clone(json)

    for op in ops:
        kind = getprop(op, 'op')
        path = getprop(op, 'path', S_MT)
        value = clone(getprop(op, 'value'))

        if kind not in (S_ADD, S_REMOVE, S_REPLACE):
            raise JsonCompareError(f"Unknown patch operation: {kind}", path)

        if S_MT == path:
            out = UNDEF if S_REMOVE == kind else value
            continue

        if not isinstance(path, str) or not path.startswith(S_SEP):
            raise JsonCompareError(f"Invalid patch path: {path}", path)

        tokens =[t.replace('~1', '/').replace('~0', '~') for t in path[1:].split(S_SEP)]

        try:
            parent = out
            for token in tokens[:-1]:
                parent = parent[int(token)] if islist(parent) else parent[token]

            last = tokens[-1]

            if islist(parent):
                idx = len(parent) if '-' == last else int(last)
                if S_ADD == kind:
                    parent.insert(idx, value)
                elif S_REMOVE == kind:
                    del parent[idx]
                else:
                    parent[idx] = value

            elif S_REMOVE == kind:
                del parent[last]

            else:
                parent[last] = value

        except (KeyError, IndexError, ValueError, TypeError) as err:
            raise JsonCompareError(
                f"Cannot apply patch operation {kind} at path: {path}", path) from err

    return out


def findcommon(a: Any, b: Any) -> Dict[str, Any]:
    """
    Split two values into their common part and the parts unique to each.
    Arrays are matched as multisets, objects key by key.
    """
    ta = typify(a)

    if ta != typify(b):
        return {'common': UNDEF, 'uniqueToA': a, 'uniqueToB': b}

    if S_array == ta:
        common = []
        uniqueA = []
        uniqueB = list(b)
        for elem in a:
            for j, other in enumerate(uniqueB):
                if _equal(elem, other):
                    common.append(elem)
                    del uniqueB[j]
                    break
            else:
                uniqueA.append(elem)
        return {'common': common, 'uniqueToA': uniqueA, 'uniqueToB': uniqueB}

    if S_object == ta:
        common = {}
        uniqueA = {}
        uniqueB = {}
        for key in _unionkeys(a, b):
            if key in a and key in b:
                if _equal(a[key], b[key]):
                    common[key] = a[key]
                else:
                    uniqueA[key] = a[key]
                    uniqueB[key] = b[key]
            elif key in a:
                uniqueA[key] = a[key]
            else:
                uniqueB[key] = b[key]
        return {'common': common, 'uniqueToA': uniqueA, 'uniqueToB': uniqueB}

    if a == b:
        return {'common': a, 'uniqueToA': UNDEF, 'uniqueToB': UNDEF}

    return {'common': UNDEF, 'uniqueToA': a, 'uniqueToB': b}


__all__ = [
    'applypatch',
    'compare',
    'compareignoring',
    'comparetolerance',
    'compareunordered',
    'contains',
    'deepequal',
    'findcommon',
    'finddifferences',
    'issubset',
    'patchops',
    'similarity',
]
