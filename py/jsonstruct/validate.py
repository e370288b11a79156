# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: validate engine
# ============================
#
# Check JSON-like data against a JSON Schema subset:
#
#   type, properties, items, required, minItems, maxItems, uniqueItems,
#   minLength, maxLength, pattern, format, minimum, maximum,
#   exclusiveMinimum, exclusiveMaximum, multipleOf, enum, const,
#   additionalProperties, minProperties, maxProperties
#
# Validation collects every error rather than stopping at the first one.
# The exception is a type mismatch, which stops checks below that node.
# Each error is a dict {path, message, value?, expected?}, where path is
# a path expression that getpath accepts.
#
# Schema parts of the wrong shape (properties that is not an object, for
# example) add no checks. Only a top level schema that is not an object,
# or data nested beyond maxDepth, raises JsonValidateError.


from typing import *
from datetime import date
from urllib.parse import urlsplit
import math
import re

from .struct import (
    MAXDEPTH,
    S_MT,
    S_array,
    S_number,
    S_object,
    S_string,
    UNDEF,
    eqkey,
    getprop,
    isfunc,
    islist,
    ismap,
    isnumber,
    parsetime,
    stringify,
    typify,
)
from .path import evaluate, parsepath, pathjoin
from .errors import JsonPathError, JsonValidateError


S_integer = 'integer'

R_EMAIL = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
R_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
R_UUID = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$',
    re.IGNORECASE)

# Relative tolerance for multipleOf on floats.
MULTIPLE_EPSILON = 1e-9


def _format_email(val):
    return R_EMAIL.match(val) is not None


def _format_url(val):
    if re.search(r'\s', val):
        return False
    try:
        parts = urlsplit(val)
    except ValueError:
        return False
    return S_MT != parts.scheme and (S_MT != parts.netloc or S_MT != parts.path)


def _format_date(val):
    if R_DATE.match(val) is None:
        return False
    try:
        date.fromisoformat(val)
    except ValueError:
        return False
    return True


def _format_datetime(val):
    try:
        parsetime(val)
    except ValueError:
        return False
    return True


def _format_uuid(val):
    return R_UUID.match(val) is not None


FORMATS = {
    'email': _format_email,
    'url': _format_url,
    'date': _format_date,
    'date-time': _format_datetime,
    'uuid': _format_uuid,
}


def _typematch(val, name):
    if S_integer == name:
        return isnumber(val) and (isinstance(val, int) or val.is_integer())
    return typify(val) == name


def _ismultiple(val, multiple):
    # Exact for ints of any size.
    if isinstance(val, int) and isinstance(multiple, int):
        return 0 == val % multiple
    try:
        quotient = val / multiple
    except OverflowError:
        return False
    if not math.isfinite(quotient):
        return False
    return abs(quotient - round(quotient)) <= MULTIPLE_EPSILON * max(1.0, abs(quotient))


def _typenames(typ):
    if isinstance(typ, str):
        return [typ]
    if islist(typ):
        return [t for t in typ if isinstance(t, str)]
    return []


def _error(path, message, value=UNDEF, expected=UNDEF):
    err = {'path': path, 'message': message}
    if value is not UNDEF:
        err['value'] = value
    if expected is not UNDEF:
        err['expected'] = expected
    return err


def _typemsg(path, expected, val):
    return (
        'Expected ' +
        (f"field {path} to be " if S_MT != path else '') +
        f"{' or '.join(expected)}, but found {typify(val)}" +
        (f": {stringify(val, 33)}" if UNDEF != val else '') +
        '.'
    )


class _Validation:
    "Error list and limits for one validation run."

    def __init__(self, maxdepth):
        self.errs = []
        self.maxdepth = maxdepth

    def add(self, *args):
        self.errs.append(_error(*args))


def _check(state, val, schema, path, depth):
    if depth > state.maxdepth:
        raise JsonValidateError(
            f"Maximum validation depth exceeded: {state.maxdepth}", path)

    if not ismap(schema):
        return

    if 'type' in schema:
        expected = _typenames(schema['type'])
        if 0 < len(expected) and not any(_typematch(val, t) for t in expected):
            state.add(path, _typemsg(path, expected, val), val, schema['type'])
            return

    enum = schema.get('enum')
    if islist(enum) and eqkey(val) not in {eqkey(e) for e in enum}:
        state.add(path, f"Value {stringify(val)} is not one of the allowed values: "
                  f"{', '.join(stringify(e) for e in enum)}", val, enum)

    if 'const' in schema and eqkey(val) != eqkey(schema['const']):
        state.add(path, f"Value {stringify(val)} does not equal constant "
                  f"{stringify(schema['const'])}", val, schema['const'])

    vtype = typify(val)

    if S_array == vtype:
        _check_array(state, val, schema, path, depth)
    elif S_object == vtype:
        _check_object(state, val, schema, path, depth)
    elif S_string == vtype:
        _check_string(state, val, schema, path)
    elif S_number == vtype:
        _check_number(state, val, schema, path)


def _check_array(state, val, schema, path, depth):
    minitems = schema.get('minItems')
    if isnumber(minitems) and len(val) < minitems:
        state.add(path, f"Array length {len(val)} is less than minimum {minitems}",
                  val, f">= {minitems} items")

    maxitems = schema.get('maxItems')
    if isnumber(maxitems) and len(val) > maxitems:
        state.add(path, f"Array length {len(val)} exceeds maximum {maxitems}",
                  val, f"<= {maxitems} items")

    if True is schema.get('uniqueItems'):
        seen = set()
        for i, item in enumerate(val):
            key = eqkey(item)
            if key in seen:
                state.add(pathjoin(path, i), f"Duplicate item found at index {i}",
                          item, 'unique items')
            seen.add(key)

    items = schema.get('items')
    if ismap(items):
        for i, item in enumerate(val):
            _check(state, item, items, pathjoin(path, i), depth + 1)
    elif islist(items):
        for i, (item, ischema) in enumerate(zip(val, items)):
            _check(state, item, ischema, pathjoin(path, i), depth + 1)


def _check_object(state, val, schema, path, depth):
    required = schema.get('required')
    if islist(required):
        for name in required:
            if isinstance(name, str) and name not in val:
                state.add(pathjoin(path, name),
                          f"Required property \"{name}\" is missing", UNDEF, 'present')

    properties = schema.get('properties')
    if not ismap(properties):
        properties = {}

    for name, pschema in properties.items():
        if name in val:
            _check(state, val[name], pschema, pathjoin(path, name), depth + 1)

    additional = schema.get('additionalProperties')
    if False is additional or ismap(additional):
        for name, pval in val.items():
            if name in properties:
                continue
            if False is additional:
                state.add(pathjoin(path, name),
                          f"Additional property \"{name}\" is not allowed", pval)
            else:
                _check(state, pval, additional, pathjoin(path, name), depth + 1)

    minprops = schema.get('minProperties')
    if isnumber(minprops) and len(val) < minprops:
        state.add(path, f"Object has {len(val)} properties, less than minimum {minprops}",
                  val, f">= {minprops} properties")

    maxprops = schema.get('maxProperties')
    if isnumber(maxprops) and len(val) > maxprops:
        state.add(path, f"Object has {len(val)} properties, more than maximum {maxprops}",
                  val, f"<= {maxprops} properties")


def _check_string(state, val, schema, path):
    fmt = schema.get('format')
    check = FORMATS.get(fmt) if isinstance(fmt, str) else UNDEF
    if check is not UNDEF and not check(val):
        state.add(path, f"Value \"{val}\" is not a valid {fmt}", val, f"valid {fmt}")

    pattern = schema.get('pattern')
    if isinstance(pattern, str):
        try:
            matched = re.search(pattern, val) is not None
        except re.error:
            matched = True
        if not matched:
            state.add(path, f"Value \"{val}\" does not match pattern {pattern}",
                      val, f"matches {pattern}")

    minlen = schema.get('minLength')
    if isnumber(minlen) and len(val) < minlen:
        state.add(path, f"String length {len(val)} is less than minimum {minlen}",
                  val, f">= {minlen} characters")

    maxlen = schema.get('maxLength')
    if isnumber(maxlen) and len(val) > maxlen:
        state.add(path, f"String length {len(val)} exceeds maximum {maxlen}",
                  val, f"<= {maxlen} characters")


def _check_number(state, val, schema, path):
    minimum = schema.get('minimum')
    maximum = schema.get('maximum')
    exmin = schema.get('exclusiveMinimum')
    exmax = schema.get('exclusiveMaximum')

    # Boolean exclusive bounds modify minimum and maximum.
    if True is exmin and isnumber(minimum):
        exmin, minimum = minimum, UNDEF
    if True is exmax and isnumber(maximum):
        exmax, maximum = maximum, UNDEF

    if isnumber(minimum) and val < minimum:
        state.add(path, f"Value {val} is less than minimum {minimum}", val, f">= {minimum}")

    if isnumber(maximum) and val > maximum:
        state.add(path, f"Value {val} exceeds maximum {maximum}", val, f"<= {maximum}")

    if isnumber(exmin) and val <= exmin:
        state.add(path, f"Value {val} must be greater than {exmin}", val, f"> {exmin}")

    if isnumber(exmax) and val >= exmax:
        state.add(path, f"Value {val} must be less than {exmax}", val, f"< {exmax}")

    multiple = schema.get('multipleOf')
    if isnumber(multiple) and 0 < multiple:
        if not _ismultiple(val, multiple):
            state.add(path, f"Value {val} is not a multiple of {multiple}",
                      val, f"multiple of {multiple}")


def _result(errs):
    return {'valid': 0 == len(errs), 'errors': errs}


def _schemaerrors(json, schema, maxdepth=MAXDEPTH, path=S_MT):
    if not ismap(schema):
        raise JsonValidateError(
            f"Schema must be an object, got: {typify(schema)}", path)

    state = _Validation(maxdepth)
    _check(state, json, schema, path, 0)
    return state.errs


def validateschema(json: Any, schema: Dict[str, Any], options: Dict[str, Any] = UNDEF) -> Dict[str, Any]:
    """
    Validate json against schema, returning {valid, errors}.
    Options: maxDepth.
    """
    maxdepth = getprop(options, 'maxDepth', MAXDEPTH)
    return _result(_schemaerrors(json, schema, maxdepth))


def matchesschema(json: Any, schema: Dict[str, Any]) -> bool:
    return 0 == len(_schemaerrors(json, schema))


def createvalidator(schema: Dict[str, Any]) -> Callable[[Any], Dict[str, Any]]:
    "Make a function that validates its argument against schema."
    if not ismap(schema):
        raise JsonValidateError(f"Schema must be an object, got: {typify(schema)}")

    def validator(json):
        return validateschema(json, schema)

    return validator


def _constraint(val, constraint):
    if constraint is UNDEF:
        return True
    if isfunc(constraint):
        return bool(constraint(val))
    if isinstance(constraint, re.Pattern):
        return constraint.search(stringify(val)) is not None
    if islist(constraint):
        return eqkey(val) in {eqkey(c) for c in constraint}
    if ismap(constraint):
        try:
            if 'min' in constraint and val < constraint['min']:
                return False
            if 'max' in constraint and val > constraint['max']:
                return False
        except TypeError:
            return False
        pattern = constraint.get('pattern')
        if pattern is not UNDEF and re.search(pattern, stringify(val)) is None:
            return False
        return True
    return eqkey(val) == eqkey(constraint)


def validatejson(json: Any, options: Dict[str, Any] = UNDEF) -> Dict[str, Any]:
    """
    Validate json with any combination of:
    - schema: a schema, as for validateschema.
    - requiredFields: keys the object must have.
    - allowedFields: the only keys the object may have.
    - typeConstraints: key to type name.
    - valueConstraints: key to constraint. A constraint is a predicate,
      a compiled regular expression, a list of allowed values, a dict of
      min, max and pattern, or a value to equal.
    The field checks apply only when json is an object.
    """
    errs = []

    schema = getprop(options, 'schema')
    if schema is not UNDEF:
        errs.extend(_schemaerrors(json, schema))

    if ismap(json):
        for field in getprop(options, 'requiredFields', []):
            if field not in json:
                errs.append(_error(pathjoin(S_MT, field),
                                   f"Required field \"{field}\" is missing", UNDEF, 'present'))

        allowed = getprop(options, 'allowedFields')
        if islist(allowed):
            for field, val in json.items():
                if field not in allowed:
                    errs.append(_error(pathjoin(S_MT, field),
                                       f"Field \"{field}\" is not allowed", val, allowed))

        for field, expected in getprop(options, 'typeConstraints', {}).items():
            if field in json and not _typematch(json[field], expected):
                errs.append(_error(
                    pathjoin(S_MT, field),
                    f"Field \"{field}\" has type \"{typify(json[field])}\", expected \"{expected}\"",
                    json[field], expected))

        for field, constraint in getprop(options, 'valueConstraints', {}).items():
            if field in json and not _constraint(json[field], constraint):
                errs.append(_error(
                    pathjoin(S_MT, field),
                    f"Field \"{field}\" value {stringify(json[field])} does not meet constraint",
                    json[field], constraint))

    return _result(errs)


def validatetype(val: Any, expected: Union[str, List[str]]) -> Dict[str, Any]:
    "Check that val has one of the expected type names (integer included)."
    names = _typenames(expected)
    if any(_typematch(val, t) for t in names):
        return _result([])
    return _result([_error(S_MT, _typemsg(S_MT, names, val), val, names)])


def validatevalue(val: Any, constraints: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a single value against constraints: min and max (numbers),
    pattern (strings, a regular expression or its source), enum, format,
    and custom (a predicate).
    """
    errs = []

    schema = {}
    if 'min' in constraints:
        schema['minimum'] = constraints['min']
    if 'max' in constraints:
        schema['maximum'] = constraints['max']
    if 'enum' in constraints:
        schema['enum'] = constraints['enum']
    if 'format' in constraints:
        schema['format'] = constraints['format']

    pattern = getprop(constraints, 'pattern')
    if isinstance(pattern, re.Pattern):
        schema['pattern'] = pattern.pattern
    elif isinstance(pattern, str):
        schema['pattern'] = pattern

    errs.extend(_schemaerrors(val, schema))

    custom = getprop(constraints, 'custom')
    if isfunc(custom):
        try:
            if not custom(val):
                errs.append(_error(S_MT, 'Value failed custom validation',
                                   val, 'pass custom validation'))
        except Exception as err:
            errs.append(_error(S_MT, f"Custom validation error: {err}", val, 'valid value'))

    return _result(errs)


def validatepath(json: Any, path: str) -> Dict[str, Any]:
    "Check that path is a valid expression that exists in json."
    try:
        parsepath(path)
    except JsonPathError as err:
        return _result([_error(path, f"Invalid path: {err}", UNDEF, 'valid path')])

    try:
        exists = evaluate(json, path)['exists']
    except JsonPathError:
        exists = False

    if exists:
        return _result([])

    return _result([_error(path, f"Path \"{path}\" does not exist", UNDEF, 'existing path')])


__all__ = [
    'createvalidator',
    'matchesschema',
    'validatejson',
    'validatepath',
    'validateschema',
    'validatetype',
    'validatevalue',
]
