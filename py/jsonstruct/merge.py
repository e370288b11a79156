# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: merge engine
# =========================
#
# Combine JSON-like values. Inputs are never modified: both sides are
# cloned before merging.
#
# - deepmerge: merge source into target, with strategies for objects,
#   arrays and conflicts.
# - mergearrays: combine two arrays with a named array strategy.
# - mergepriority: earlier values win over later ones.
# - mergeresolver: a callback decides every conflict.
# - mergeconflicts: dry run listing the paths that would conflict.
# - mergejson: fold any number of sources into a target.
# - shallowmerge: top level keys only.
# - patchjson: merge-patch, where None deletes.
# - mergetransform: a callback combines the values of shared top level keys.
# - createmerger: a deepmerge with preset options.


from typing import *
import logging

from .struct import (
    MAXDEPTH,
    S_MT,
    S_array,
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
from .errors import JsonMergeError, JsonStructError


log = logging.getLogger(__name__)


# Object strategies.
S_DEEP = 'deep'
S_SHALLOW = 'shallow'

# Array strategies (and S_DEEP).
S_CONCAT = 'concat'
S_UNION = 'union'
S_INTERSECTION = 'intersection'
S_REPLACE = 'replace'

# Conflict strategies.
S_TARGET = 'target'
S_SOURCE = 'source'
S_THROW = 'throw'
S_PRIORITY = 'priority'

ARRAY_STRATEGIES = (S_CONCAT, S_UNION, S_INTERSECTION, S_REPLACE, S_DEEP)
CONFLICT_STRATEGIES = (S_TARGET, S_SOURCE, S_THROW, S_PRIORITY)


class _Merge:
    "Resolved deepmerge options, shared down the recursion."

    def __init__(self, options):
        self.strategy = getprop(options, 'strategy', S_DEEP)
        self.arrays = getprop(options, 'arrayStrategy', S_CONCAT)
        self.conflicts = getprop(options, 'conflictStrategy', S_SOURCE)
        self.custom = getprop(options, 'customMerge')
        self.maxdepth = getprop(options, 'maxDepth', MAXDEPTH)

        if self.strategy not in (S_DEEP, S_SHALLOW):
            raise JsonMergeError(f"Unknown merge strategy: {self.strategy}")
        if self.arrays not in ARRAY_STRATEGIES:
            raise JsonMergeError(f"Unknown array merge strategy: {self.arrays}")
        if self.conflicts not in CONFLICT_STRATEGIES:
            raise JsonMergeError(f"Unknown conflict strategy: {self.conflicts}")


def _conflict(ctx, path, target, source, ttype, stype):
    log.debug('merge conflict at %r resolved by %s', path, ctx.conflicts)

    if S_TARGET == ctx.conflicts:
        return target

    if S_THROW == ctx.conflicts:
        if ttype != stype:
            message = f"Type mismatch at path \"{path}\": {ttype} vs {stype}"
        else:
            message = f"Value conflict at path \"{path}\": {target!r} vs {source!r}"
        raise JsonMergeError(message, path, target, source)

    # Both source and priority prefer the defined source value, and the
    # source is always defined here.
    return source


def _merge(ctx, target, source, path, depth):
    if depth > ctx.maxdepth:
        raise JsonMergeError(f"Maximum merge depth exceeded: {ctx.maxdepth}", path)

    if source is UNDEF:
        return target

    if target is UNDEF:
        return source

    if ctx.custom is not UNDEF:
        out = ctx.custom(path, target, source)
        if out is not UNDEF:
            return out

    ttype = typify(target)
    stype = typify(source)

    if ttype != stype:
        return _conflict(ctx, path, target, source, ttype, stype)

    if S_array == ttype:
        return _mergearrays(target, source, ctx.arrays, ctx, path, depth)

    if S_object == ttype:
        if S_SHALLOW == ctx.strategy:
            return {**target, **source}

        for key, sval in source.items():
            if key in target:
                target[key] = _merge(ctx, target[key], sval,
                                     pathjoin(path, key), depth + 1)
            else:
                target[key] = sval
        return target

    if target != source:
        return _conflict(ctx, path, target, source, ttype, stype)

    return target


def _mergearrays(a, b, strategy, ctx, path, depth):
    if S_CONCAT == strategy:
        return a + b

    if S_UNION == strategy:
        seen = set()
        out = []
        for item in a + b:
            key = eqkey(item)
            if key not in seen:
                seen.add(key)
                out.append(item)
        return out

    if S_INTERSECTION == strategy:
        keys = {eqkey(item) for item in b}
        return [item for item in a if eqkey(item) in keys]

    if S_REPLACE == strategy:
        return list(b)

    if S_DEEP == strategy:
        out = []
        for i in range(max(len(a), len(b))):
            if len(a) <= i:
                out.append(b[i])
            elif len(b) <= i:
                out.append(a[i])
            elif ismap(a[i]) and ismap(b[i]):
                out.append(_merge(ctx, a[i], b[i], pathjoin(path, i), depth + 1))
            else:
                out.append(b[i])
        return out

    raise JsonMergeError(f"Unknown array merge strategy: {strategy}", path)


def deepmerge(target: Any, source: Any, options: Dict[str, Any] = UNDEF) -> Any:
    """
    Merge source into target and return the result.

    Options:
    - strategy: 'deep' (default) merges objects key by key, 'shallow'
      only at the top level.
    - arrayStrategy: 'concat' (default), 'union', 'intersection',
      'replace' or 'deep' (merge elements by index).
    - conflictStrategy: decides type mismatches and differing scalars:
      'source' (default), 'target', 'priority' or 'throw'.
    - customMerge: called as (path, target, source); a non-None result is
      used for that location without further merging.
    - maxDepth: nesting limit, default 100.
    """
    ctx = _Merge(options)
    try:
        target = clone(target, ctx.maxdepth)
        source = clone(source, ctx.maxdepth)
    except JsonStructError as err:
        raise JsonMergeError(f"Maximum merge depth exceeded: {ctx.maxdepth}") from err
    return _merge(ctx, target, source, S_MT, 0)


def mergearrays(a: List[Any], b: List[Any], strategy: str = S_CONCAT) -> List[Any]:
    "Combine two arrays with an array strategy. Objects at the same index are deep merged by 'deep'."
    if not islist(a) or not islist(b):
        raise JsonMergeError('Both arguments must be arrays', S_MT, a, b)
    ctx = _Merge({'arrayStrategy': strategy})
    return _mergearrays(clone(a), clone(b), strategy, ctx, S_MT, 0)


def mergepriority(*objs: Any) -> Any:
    """
    Merge values where the first defined value at each location wins.
    Objects still gain the keys they lack from later values.
    """
    if 0 == len(objs):
        return {}

    def keeparrays(_path, target, source):
        return target if islist(target) and islist(source) else UNDEF

    options = {'conflictStrategy': S_TARGET, 'customMerge': keeparrays}
    out = clone(objs[0])
    for obj in objs[1:]:
        out = deepmerge(out, obj, options)
    return out


def _resolve(resolver, target, source, path, depth):
    if depth > MAXDEPTH:
        raise JsonMergeError(f"Maximum merge depth exceeded: {MAXDEPTH}", path)

    if source is UNDEF:
        return target

    if target is UNDEF:
        return source

    ttype = typify(target)

    if ttype == typify(source):
        if S_object == ttype:
            for key, sval in source.items():
                if key in target:
                    target[key] = _resolve(resolver, target[key], sval,
                                           pathjoin(path, key), depth + 1)
                else:
                    target[key] = sval
            return target

        if S_array == ttype:
            common = min(len(target), len(source))
            return [
                _resolve(resolver, target[i], source[i], pathjoin(path, i), depth + 1)
                for i in range(common)
            ] + target[common:] + source[common:]

        if target == source:
            return target

    out = resolver(path, target, source)
    return source if out is UNDEF else out


def mergeresolver(target: Any, source: Any, resolver: Callable) -> Any:
    """
    Deep merge where resolver(path, target, source) decides each location
    where the values differ in type or scalar value. Arrays merge by
    index. A None result from the resolver selects the source value.
    """
    return _resolve(resolver, clone(target), clone(source), S_MT, 0)


def mergeconflicts(target: Any, source: Any) -> List[Dict[str, Any]]:
    """
    List the locations where merging source into target would meet a
    conflict, as {path, targetValue, sourceValue}, without merging.
    Arrays never conflict with each other.
    """
    conflicts = []

    def check(t, s, path, depth):
        if depth > MAXDEPTH:
            raise JsonMergeError(f"Maximum merge depth exceeded: {MAXDEPTH}", path)

        if t is UNDEF or s is UNDEF:
            return

        ttype = typify(t)
        stype = typify(s)

        if S_object == ttype and S_object == stype:
            for key, sval in s.items():
                if key in t:
                    check(t[key], sval, pathjoin(path, key), depth + 1)

        elif S_array == ttype and S_array == stype:
            pass

        elif ttype != stype or t != s:
            conflicts.append({
                'path': path,
                'targetValue': t,
                'sourceValue': s,
            })

    check(target, source, S_MT, 0)
    return conflicts


def mergejson(target: Any, *sources: Any) -> Any:
    "Deep merge each source in turn into target, using the default options."
    out = clone(target)
    for source in sources:
        out = deepmerge(out, source)
    return out


def shallowmerge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    return {**clone(target), **clone(source)}


def patchjson(target: Any, patch: Any) -> Any:
    """
    Apply a merge-patch: a None value deletes the key, an object patches
    recursively, and anything else replaces.
    """
    if not ismap(patch):
        return clone(patch)

    out = clone(target) if ismap(target) else {}

    for key, val in patch.items():
        if val is UNDEF:
            out.pop(key, UNDEF)
        elif ismap(val):
            out[key] = patchjson(out.get(key), val)
        else:
            out[key] = clone(val)

    return out


def mergetransform(
        target: Dict[str, Any],
        source: Dict[str, Any],
        transformer: Callable[[str, Any, Any], Any]
) -> Dict[str, Any]:
    """
    Merge the top level of source into target, where transformer(key,
    targetValue, sourceValue) gives the value of every key both share.
    """
    if not ismap(target) or not ismap(source):
        raise JsonMergeError('Both arguments must be objects', S_MT, target, source)

    out = clone(target)
    for key, sval in clone(source).items():
        if key in out:
            try:
                out[key] = transformer(key, out[key], sval)
            except Exception as err:
                raise JsonMergeError(
                    f"Error in merge transformer at key {key}: {err}",
                    pathjoin(S_MT, key), out[key], sval) from err
        else:
            out[key] = sval
    return out


def createmerger(options: Dict[str, Any]) -> Callable[[Any, Any], Any]:
    "Make a function that deep merges two values with these options."
    _Merge(options)

    def merger(target, source):
        return deepmerge(target, source, options)

    return merger


__all__ = [
    'createmerger',
    'deepmerge',
    'mergearrays',
    'mergeconflicts',
    'mergejson',
    'mergepriority',
    'mergeresolver',
    'mergetransform',
    'patchjson',
    'shallowmerge',
]
