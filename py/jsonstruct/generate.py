# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: generate engine
# ============================
#
# Build JSON-like values from templates and data.
#
# A template is any JSON-like value. Strings may contain {{path}}
# placeholders, resolved against the data with getpath: a string that
# is exactly one placeholder becomes the typed value, otherwise each
# placeholder is interpolated as text. Objects with a $type key are
# directives, which compute a value:
#
#   ref        $path, $default
#   array      $items, $count (items see $index and $count in the data)
#   object     $properties
#   switch     $cases: [{$condition, $value}], $default
#   transform  $source, $transform(value, data)
#   concat     $parts, $separator
#   math       $operation (add, subtract, multiply, divide, modulo,
#              power), $operands
#   date       $value (now, today, ISO text, unix seconds), $offset,
#              $format (iso, date, time, timestamp, custom), $customFormat
#   random     $valueType (string, number, boolean, date, choice) and
#              its parameters
#   literal    $value, returned as is
#
# String conditions in switch are expressions over the data, such as
#
#   user.age >= 18 && (role == 'admin' || not banned)
#
# They are parsed, never executed as code.
#
# Randomness comes from a random.Random owned by the call (the random or
# seed options), and all times are UTC.


from typing import *
from datetime import datetime, timedelta, timezone
from enum import Enum
import calendar
import logging
import math
import random
import re

from .struct import (
    MAXDEPTH,
    S_MT,
    S_array,
    S_boolean,
    S_null,
    S_number,
    S_object,
    S_string,
    UNDEF,
    clone,
    getprop,
    isfunc,
    islist,
    ismap,
    isnumber,
    isotime,
    parsetime,
    strval,
    typify,
)
from .path import getpath, haspath, parsepath, pathjoin, setpath
from .merge import deepmerge
from .transform import OPERATORS
from .validate import validateschema
from .errors import JsonGeneratorError, JsonPathError, JsonStructError


log = logging.getLogger(__name__)


# Placeholder in template strings.
R_PLACEHOLDER = re.compile(r'\{\{([^}]+)\}\}')

# Tokens of a custom date format.
R_DATETOKEN = re.compile(r'YYYY|YY|MM|M|DD|D|HH|H|mm|m|ss|s')

# Tokens of a switch condition expression.
R_CONDTOKEN = re.compile(r'''
    (?P<num>-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)
  | (?P<str>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<op>\|\||&&|===|!==|==|!=|>=|<=|>|<|!|\(|\))
  | (?P<path>[A-Za-z_$][\w$]*(?:\.[\w$]+|\[[^\]]*\])*)
''', re.VERBOSE)

S_DEFAULT_CHARS = 'abcdefghijklmnopqrstuvwxyz0123456789'

S_undefined = 'undefined'

# onError modes.
S_THROW = 'throw'
S_DEFAULT = 'default'
S_IGNORE = 'ignore'

# Comparison operators allowed in switch conditions.
CONDITION_COMPARISONS = ('==', '!=', '===', '!==', '>', '>=', '<', '<=')

# Condition keywords, as operators or literals.
CONDITION_KEYWORDS = {
    'or': ('op', '||'),
    'and': ('op', '&&'),
    'not': ('op', '!'),
    'true': ('lit', True),
    'false': ('lit', False),
    'null': ('lit', None),
}

# Marks a missing value, as None is a valid value.
_MISSING = object()


class DirectiveType(Enum):
    REF = 'ref'
    ARRAY = 'array'
    OBJECT = 'object'
    SWITCH = 'switch'
    TRANSFORM = 'transform'
    CONCAT = 'concat'
    MATH = 'math'
    DATE = 'date'
    RANDOM = 'random'
    LITERAL = 'literal'


class _DepthError(JsonGeneratorError):
    "Nesting limit exceeded. Not subject to onError."


class _Generation:
    "Resolved options and owned resources of one generate call."

    def __init__(self, options):
        self.strict = bool(getprop(options, 'strict', False))
        self.default = getprop(options, 'defaultValue')
        self.onerror = getprop(options, 'onError', S_THROW)
        self.maxdepth = getprop(options, 'maxDepth', MAXDEPTH)

        if self.onerror not in (S_THROW, S_DEFAULT, S_IGNORE):
            raise JsonGeneratorError(f"Unknown onError mode: {self.onerror}")

        rng = getprop(options, 'random')
        if rng is UNDEF:
            rng = random.Random(getprop(options, 'seed'))
        self.random = rng

        now = getprop(options, 'now')
        self.now = datetime.now(timezone.utc) if now is UNDEF else parsetime(now)


def _guard(gen, node, data, fn):
    "Run fn for a template node, applying onError to its failures."
    try:
        return fn()
    except _DepthError:
        raise
    except Exception as err:
        if S_THROW == gen.onerror:
            if isinstance(err, JsonGeneratorError):
                raise
            raise JsonGeneratorError(
                f"Failed to generate JSON: {err}", node, data) from err

        log.warning('generate error handled by onError %s: %s', gen.onerror, err)
        return gen.default if S_DEFAULT == gen.onerror else node


def _process(gen, node, data, depth):
    if depth > gen.maxdepth:
        raise _DepthError(
            f"Maximum template depth exceeded: {gen.maxdepth}", node, data)

    if isinstance(node, str):
        return _guard(gen, node, data, lambda: _string(gen, node, data))

    if islist(node):
        return [_process(gen, item, data, depth + 1) for item in node]

    if ismap(node):
        if '$type' in node:
            return _guard(gen, node, data, lambda: _directive(gen, node, data, depth))
        return {k: _process(gen, v, data, depth + 1) for k, v in node.items()}

    return node


def _lookup(gen, path, node, data):
    path = path.strip()
    val = getpath(data, path, _MISSING)
    if val is _MISSING:
        if gen.strict:
            raise JsonGeneratorError(f"Missing data for path: {path}", node, data)
        return gen.default
    return clone(val)


def _string(gen, text, data):
    found = list(R_PLACEHOLDER.finditer(text))

    if 0 == len(found):
        return text

    if 1 == len(found) and found[0].group(0) == text:
        return _lookup(gen, found[0].group(1), text, data)

    return R_PLACEHOLDER.sub(
        lambda m: strval(_lookup(gen, m.group(1), text, data)), text)


def _directive(gen, node, data, depth):
    tag = node['$type']
    try:
        dtype = DirectiveType(tag)
    except ValueError:
        raise JsonGeneratorError(
            f"Unknown template directive: {tag}", node, data) from None

    log.debug('generate directive %s', dtype.value)
    return DIRECTIVES[dtype](gen, node, data, depth)


def _ref(gen, node, data, _depth):
    path = node.get('$path')
    if not isinstance(path, str) or S_MT == path:
        raise JsonGeneratorError('Missing $path in ref directive', node, data)

    val = getpath(data, path, _MISSING)
    if val is not _MISSING:
        return clone(val)

    if '$default' in node:
        return clone(node['$default'])

    if gen.strict:
        raise JsonGeneratorError(f"Missing data for path: {path}", node, data)

    return gen.default


def _array(gen, node, data, depth):
    items = node.get('$items')
    count = _process(gen, node.get('$count'), data, depth + 1)

    if items is UNDEF:
        return []

    if count is UNDEF:
        return _process(gen, items, data, depth + 1)

    if not isnumber(count):
        raise JsonGeneratorError(
            f"Array $count must be a number, got: {typify(count)}", node, data)

    count = int(count)
    base = data if ismap(data) else {}

    return [
        _process(gen, items, {**base, '$index': i, '$count': count}, depth + 1)
        for i in range(count)
    ]


def _object(gen, node, data, depth):
    properties = node.get('$properties')
    if ismap(properties):
        return _process(gen, properties, data, depth + 1)
    return {}


def _switch(gen, node, data, depth):
    cases = node.get('$cases')

    if islist(cases):
        for case in cases:
            if ismap(case) and condition(case.get('$condition'), data):
                return _process(gen, case.get('$value'), data, depth + 1)

    if '$default' in node:
        return _process(gen, node['$default'], data, depth + 1)

    return gen.default


def _transform(gen, node, data, depth):
    source = node.get('$source')
    fn = node.get('$transform')

    if source is UNDEF or not isfunc(fn):
        return gen.default

    return fn(_process(gen, source, data, depth + 1), data)


def _concat(gen, node, data, depth):
    parts = node.get('$parts')
    if not islist(parts):
        return S_MT

    separator = strval(getprop(node, '$separator', S_MT))
    return separator.join(strval(_process(gen, p, data, depth + 1)) for p in parts)


def _operand(val):
    if isnumber(val):
        return val
    try:
        return float(strval(val))
    except ValueError:
        return 0


def _math(gen, node, data, depth):
    operation = node.get('$operation')
    operands = [
        _operand(_process(gen, op, data, depth + 1))
        for op in getprop(node, '$operands', [])
    ]

    first = operands[0] if operands else 0
    rest = operands[1:]

    if 'add' == operation:
        return sum(operands)

    if 'multiply' == operation:
        return math.prod(operands)

    if 'subtract' == operation:
        return first - sum(rest)

    if 'divide' == operation:
        if 0 == len(rest):
            return first
        divisor = math.prod(rest)
        if 0 == divisor:
            raise JsonGeneratorError('Division by zero in math directive', node, data)
        return first / divisor

    if 'modulo' == operation:
        if 0 == len(rest):
            return first
        if 0 == rest[0]:
            raise JsonGeneratorError('Modulo by zero in math directive', node, data)
        out = math.fmod(first, rest[0])
        return int(out) if isinstance(first, int) and isinstance(rest[0], int) else out

    if 'power' == operation:
        if 0 == len(rest):
            return first
        out = first ** rest[0]
        if isinstance(out, complex):
            raise JsonGeneratorError(
                f"Power has no real value: {first} ** {rest[0]}", node, data)
        return out

    raise JsonGeneratorError(f"Unknown math operation: {operation}", node, data)


def _addmonths(dt, months):
    total = dt.month - 1 + months
    year = dt.year + total // 12
    month = total % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def _customdate(dt, fmt):
    tokens = {
        'YYYY': f"{dt.year:04d}",
        'YY': f"{dt.year % 100:02d}",
        'MM': f"{dt.month:02d}",
        'M': str(dt.month),
        'DD': f"{dt.day:02d}",
        'D': str(dt.day),
        'HH': f"{dt.hour:02d}",
        'H': str(dt.hour),
        'mm': f"{dt.minute:02d}",
        'm': str(dt.minute),
        'ss': f"{dt.second:02d}",
        's': str(dt.second),
    }
    return R_DATETOKEN.sub(lambda m: tokens[m.group(0)], fmt)


def _date(gen, node, data, depth):
    base = _process(gen, node.get('$value'), data, depth + 1)

    if UNDEF == base or 'now' == base:
        dt = gen.now
    elif 'today' == base:
        dt = gen.now.replace(hour=0, minute=0, second=0, microsecond=0)
    else:
        dt = parsetime(base)

    offset = node.get('$offset')
    if ismap(offset):
        months = 12 * getprop(offset, 'years', 0) + getprop(offset, 'months', 0)
        if months:
            dt = _addmonths(dt, int(months))
        dt = dt + timedelta(
            days=getprop(offset, 'days', 0),
            hours=getprop(offset, 'hours', 0),
            minutes=getprop(offset, 'minutes', 0),
            seconds=getprop(offset, 'seconds', 0),
        )

    fmt = getprop(node, '$format', 'iso')

    if 'date' == fmt:
        return dt.strftime('%Y-%m-%d')
    if 'time' == fmt:
        return dt.strftime('%H:%M:%S')
    if 'timestamp' == fmt:
        return str(math.floor(dt.timestamp()))
    if 'custom' == fmt:
        return _customdate(dt, getprop(node, '$customFormat', 'YYYY-MM-DD'))

    return isotime(dt)


def _random(gen, node, _data, _depth):
    rng = gen.random
    vtype = getprop(node, '$valueType', S_string)

    if S_string == vtype:
        chars = getprop(node, '$chars', S_DEFAULT_CHARS)
        length = int(getprop(node, '$length', 10))
        if S_MT == chars:
            return S_MT
        return S_MT.join(rng.choice(chars) for _ in range(length))

    if S_number == vtype:
        low = getprop(node, '$min', 0)
        high = getprop(node, '$max', 100)
        if False is node.get('$integer'):
            return round(rng.uniform(low, high), 2)
        return rng.randint(math.ceil(low), math.floor(high))

    if S_boolean == vtype:
        return rng.random() < 0.5

    if 'date' == vtype:
        start = node.get('$start')
        end = node.get('$end')
        start = gen.now - timedelta(days=365) if start is UNDEF else parsetime(start)
        end = gen.now if end is UNDEF else parsetime(end)
        return isotime(start + (end - start) * rng.random())

    if 'choice' == vtype:
        choices = getprop(node, '$choices', [])
        return clone(rng.choice(choices)) if choices else UNDEF

    return UNDEF


def _literal(_gen, node, _data, _depth):
    return clone(node.get('$value'))


DIRECTIVES = {
    DirectiveType.REF: _ref,
    DirectiveType.ARRAY: _array,
    DirectiveType.OBJECT: _object,
    DirectiveType.SWITCH: _switch,
    DirectiveType.TRANSFORM: _transform,
    DirectiveType.CONCAT: _concat,
    DirectiveType.MATH: _math,
    DirectiveType.DATE: _date,
    DirectiveType.RANDOM: _random,
    DirectiveType.LITERAL: _literal,
}

if set(DIRECTIVES) != set(DirectiveType):
    raise RuntimeError('Directive handlers do not match DirectiveType: ' +
                       ', '.join(sorted(t.value for t in set(DirectiveType) - set(DIRECTIVES))))


def _tokenize(text):
    tokens = []
    pos = 0
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue

        m = R_CONDTOKEN.match(text, pos)
        if m is None:
            raise JsonGeneratorError(
                f"Invalid condition expression at position {pos}: {text}", text)

        kind = m.lastgroup
        val = m.group(kind)

        if 'num' == kind:
            tokens.append(('lit', float(val) if re.search(r'[.eE]', val) else int(val)))
        elif 'str' == kind:
            tokens.append(('lit', re.sub(r'\\(.)', r'\1', val[1:-1])))
        elif 'path' == kind and val in CONDITION_KEYWORDS:
            tokens.append(CONDITION_KEYWORDS[val])
        else:
            tokens.append((kind, val))

        pos = m.end()

    return tokens


class _Condition:
    """
    Recursive descent evaluation of a condition expression:

      or      := and (('||' | 'or') and)*
      and     := not (('&&' | 'and') not)*
      not     := ('!' | 'not') not | cmp
      cmp     := operand (op operand)?
      operand := number | string | true | false | null | path | '(' or ')'
    """

    def __init__(self, text, data):
        self.text = text
        self.data = data
        self.tokens = _tokenize(text)
        self.pos = 0

    def fail(self, message):
        raise JsonGeneratorError(f"{message} in condition: {self.text}", self.text, self.data)

    def peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return (UNDEF, UNDEF)

    def take(self):
        tok = self.peek()
        if tok[0] is UNDEF:
            self.fail('Unexpected end')
        self.pos += 1
        return tok

    def evaluate(self):
        if 0 == len(self.tokens):
            self.fail('Empty expression')
        out = self.parse_or()
        if self.pos < len(self.tokens):
            self.fail(f"Unexpected token {self.tokens[self.pos][1]!r}")
        return bool(out)

    def parse_or(self):
        out = self.parse_and()
        while ('op', '||') == self.peek():
            self.take()
            right = self.parse_and()
            out = bool(out) or bool(right)
        return out

    def parse_and(self):
        out = self.parse_not()
        while ('op', '&&') == self.peek():
            self.take()
            right = self.parse_not()
            out = bool(out) and bool(right)
        return out

    def parse_not(self):
        if ('op', '!') == self.peek():
            self.take()
            return not self.parse_not()
        return self.parse_cmp()

    def parse_cmp(self):
        left = self.parse_operand()
        kind, val = self.peek()
        if 'op' == kind and val in CONDITION_COMPARISONS:
            self.take()
            right = self.parse_operand()
            return OPERATORS[val](left, right)
        return left

    def parse_operand(self):
        kind, val = self.take()

        if 'lit' == kind:
            return val

        if 'path' == kind:
            return getpath(self.data, val)

        if ('op', '(') == (kind, val):
            out = self.parse_or()
            if ('op', ')') != self.take():
                self.fail('Missing closing parenthesis')
            return out

        self.fail(f"Unexpected token {val!r}")


def condition(cond: Any, data: Any) -> bool:
    """
    Evaluate a switch condition against data: a predicate called with
    data, an expression string, or any other value by its truthiness.
    """
    if isfunc(cond):
        return bool(cond(data))
    if isinstance(cond, str):
        return _Condition(cond, data).evaluate()
    return bool(cond)


def generate(template: Any, data: Any = UNDEF, options: Dict[str, Any] = UNDEF) -> Any:
    """
    Generate a value from template and data. Options:
    - strict: missing data raises instead of using defaultValue.
    - defaultValue: value for missing data (default None).
    - onError: 'throw' (default), 'default' (use defaultValue) or
      'ignore' (keep the unprocessed template node).
    - validate, validationSchema: validate the result afterwards.
    - maxDepth: template nesting limit, default 100.
    - random: a random.Random to use, or seed: seed for a new one.
    - now: the instant used for 'now' and 'today' (default: current time).
    """
    gen = _Generation(options)
    data = {} if data is UNDEF else data

    try:
        owned = clone(template, gen.maxdepth)
    except JsonStructError as err:
        raise _DepthError(
            f"Maximum template depth exceeded: {gen.maxdepth}", template, data) from err

    out = _process(gen, owned, data, 0)

    if getprop(options, 'validate', False):
        schema = getprop(options, 'validationSchema', {})
        res = validateschema(out, schema)
        if not res['valid']:
            if not gen.strict:
                log.warning('generated JSON failed validation: %s',
                            '; '.join(e['message'] for e in res['errors']))
            elif S_THROW == gen.onerror:
                raise JsonGeneratorError(
                    'Generated JSON failed validation', template, data, res['errors'])
            else:
                log.warning('generated JSON failed validation, handled by onError %s',
                            gen.onerror)
                out = gen.default if S_DEFAULT == gen.onerror else template

    return out


def filltemplate(template: Any, defaults: Dict[str, Any]) -> Any:
    "Generate with missing values left as None."
    return generate(template, defaults, {'strict': False, 'defaultValue': UNDEF})


def templatestring(text: str, data: Any) -> str:
    "Interpolate {{path}} placeholders in text. Unresolved placeholders are left as they are."
    def replace(m):
        val = getpath(data, m.group(1).strip(), _MISSING)
        return m.group(0) if val is _MISSING else strval(val)

    return R_PLACEHOLDER.sub(replace, text)


def mergetemplates(templates: List[Any], strategy: str = 'deep') -> Any:
    """
    Merge templates in order, later ones winning. The strategy is 'deep',
    'shallow' (top level keys only) or 'union' (deep, with arrays
    deduplicated). Arrays are otherwise concatenated.
    """
    if 'shallow' == strategy:
        options = {'strategy': 'shallow'}
    elif 'union' == strategy:
        options = {'arrayStrategy': 'union'}
    elif 'deep' == strategy:
        options = {'arrayStrategy': 'concat'}
    else:
        raise JsonGeneratorError(f"Unknown template merge strategy: {strategy}", templates)

    if 0 == len(templates):
        return {}

    out = clone(templates[0])
    for template in templates[1:]:
        out = deepmerge(out, template, options)
    return out


def _templateitem(item):
    if isinstance(item, str):
        return {'$type': DirectiveType.REF.value, '$path': item}
    if ismap(item):
        return clone(item)
    return {'$type': DirectiveType.LITERAL.value, '$value': clone(item)}


def _fieldtemplate(field):
    if isinstance(field, str):
        return {'$type': DirectiveType.REF.value, '$path': field}

    if ismap(field) and 'type' in field:
        out = {'$type': field['type']}
        for name in ('source', 'default', 'transform'):
            if name in field:
                out['$' + name] = clone(field[name])
        # A ref reads its source from $path.
        if DirectiveType.REF.value == field['type'] and '$source' in out:
            out['$path'] = out.pop('$source')
        out.update(clone(getprop(field, 'options', {})))
        return out

    return clone(field)


def createtemplate(structure: Any, kind: str = S_object) -> Any:
    """
    Create a template from a simpler description:
    - a list of keys, as an object of ref directives to the same keys;
    - a list of items with kind 'array', as a list of ref directives
      (for strings), templates (for objects) or literals;
    - a config {type, fields, options}, where each field is a path, a
      field config {type, source, default, transform, options} or a
      template, and type 'array' repeats the fields options.count times;
    - any other object, which is already a template.
    """
    if kind not in (S_object, S_array):
        raise JsonGeneratorError(f"Unknown template kind: {kind}", structure)

    if islist(structure):
        if S_array == kind:
            return [_templateitem(item) for item in structure]
        return {key: {'$type': DirectiveType.REF.value, '$path': key} for key in structure}

    if ismap(structure):
        if 'type' in structure and 'fields' in structure:
            ctype = structure['type']
            fields = structure['fields']

            if S_object == ctype and ismap(fields):
                return {name: _fieldtemplate(f) for name, f in fields.items()}

            if S_array == ctype:
                items = ([_fieldtemplate(f) for f in fields] if islist(fields)
                         else _fieldtemplate(fields))
                return {
                    '$type': DirectiveType.ARRAY.value,
                    '$items': items,
                    '$count': getprop(getprop(structure, 'options', {}), 'count', 1),
                }

            raise JsonGeneratorError(f"Unknown template type: {ctype}", structure)

        return clone(structure)

    raise JsonGeneratorError('Invalid template structure', structure)


def generatefromtable(rows: List[Dict[str, Any]], options: Dict[str, Any] = UNDEF) -> Any:
    """
    Build JSON from table rows (a list of flat objects).

    Options:
    - transform: {column: fn(value)}, applied to the cells of each row.
    - groupBy: a column, or a list of columns, to group rows by. Groups
      are keyed by the string form of the cell; the last column holds the
      list of rows, and earlier columns nest objects.
    - nest: {group: path}, moving top level groups to a path.
    """
    if not islist(rows) or not all(ismap(row) for row in rows):
        raise JsonGeneratorError('Table rows must be a list of objects', rows)

    transforms = getprop(options, 'transform', {})
    groupby = getprop(options, 'groupBy')
    nest = getprop(options, 'nest')

    table = []
    for i, row in enumerate(rows):
        out = {}
        for col, val in row.items():
            fn = transforms.get(col)
            if isfunc(fn):
                try:
                    val = fn(val)
                except Exception as err:
                    raise JsonGeneratorError(
                        f"Error transforming column {col} of row {i}: {err}", row) from err
            out[col] = clone(val)
        table.append(out)

    if groupby is UNDEF:
        return table

    columns = [groupby] if isinstance(groupby, str) else list(groupby)
    if 0 == len(columns):
        raise JsonGeneratorError('groupBy needs at least one column', groupby)

    groups = {}
    for row in table:
        level = groups
        for col in columns[:-1]:
            level = level.setdefault(_cellkey(row, col), {})
        level.setdefault(_cellkey(row, columns[-1]), []).append(row)

    if not ismap(nest):
        return groups

    out = {}
    for key, group in groups.items():
        if key in nest:
            setpath(out, nest[key], group)
        else:
            out[key] = group
    return out


def _cellkey(row, col):
    return strval(row[col]) if col in row else S_undefined


def _references(template, tpath, depth, refs):
    if depth > MAXDEPTH:
        raise JsonGeneratorError(f"Maximum template depth exceeded: {MAXDEPTH}", template)

    if isinstance(template, str):
        for m in R_PLACEHOLDER.finditer(template):
            refs.append((tpath, m.group(1).strip(), False))

    elif ismap(template):
        if '$type' in template:
            dtype = template['$type']
            if DirectiveType.LITERAL.value == dtype:
                return
            if DirectiveType.REF.value == dtype and isinstance(template.get('$path'), str):
                refs.append((tpath, template['$path'], '$default' in template))

        for key, val in template.items():
            _references(val, pathjoin(tpath, key), depth + 1, refs)

    elif islist(template):
        for i, val in enumerate(template):
            _references(val, pathjoin(tpath, i), depth + 1, refs)

    return refs


def generatediff(template: Any, data: Dict[str, Any]) -> Dict[str, List[Any]]:
    """
    Check data against what template expects. Returns {missing, extra}:
    missing lists {path, ref} for each placeholder or ref directive
    (without a $default) at template path whose data path ref does not
    exist; extra lists the top level data keys no reference uses.
    References into the $index and $count values of array directives
    are not data references.
    """
    missing = []
    used = set()

    for tpath, ref, defaulted in _references(template, S_MT, 0, []):
        try:
            head = parsepath(ref)[:1]
        except JsonPathError:
            head = []

        if head and isinstance(head[0], str) and head[0].startswith('$'):
            continue

        used.update(head)

        if not defaulted and not haspath(data, ref):
            missing.append({'path': tpath, 'ref': ref})

    extra = [key for key in data if key not in used] if ismap(data) else []

    return {'missing': missing, 'extra': extra}


def _infer(data, examples, maxdepth, depth):
    if depth > maxdepth:
        return {}

    vtype = typify(data)

    if S_array == vtype:
        schema = {
            'type': S_array,
            'items': _infer(data[0], examples, maxdepth, depth + 1) if data else {},
        }
        if examples:
            schema['examples'] = clone(data[:3])
        return schema

    if S_object == vtype:
        schema = {
            'type': S_object,
            'properties': {
                k: _infer(v, examples, maxdepth, depth + 1) for k, v in data.items()
            },
        }
        if examples:
            schema['example'] = clone(data)
        return schema

    if S_number == vtype and isinstance(data, int):
        vtype = 'integer'

    schema = {'type': vtype}
    if examples:
        schema['example'] = data
    return schema


def inferschema(data: Any, options: Dict[str, Any] = UNDEF) -> Dict[str, Any]:
    """
    Infer a schema that data satisfies. Array items are inferred from the
    first element, and values deeper than the depth option (default 10)
    get the empty schema, which accepts anything. With includeExamples,
    the schema records example values.
    """
    examples = bool(getprop(options, 'includeExamples', False))
    maxdepth = getprop(options, 'depth', 10)
    return _infer(data, examples, maxdepth, 0)


def _randomvalue(rng, schema, minitems, maxitems, depth):
    if depth > MAXDEPTH:
        raise JsonGeneratorError(f"Maximum schema depth exceeded: {MAXDEPTH}", schema)

    if not ismap(schema):
        schema = {'type': S_string}

    vtype = getprop(schema, 'type', S_string)

    if S_array == vtype and ismap(schema.get('items')):
        count = rng.randint(minitems, maxitems)
        return [
            _randomobject(rng, schema['items'], 1, 5, depth + 1)
            for _ in range(count)
        ]

    if S_object == vtype and ismap(schema.get('properties')):
        return _randomobject(rng, schema['properties'], minitems, maxitems, depth + 1)

    enum = schema.get('enum')
    if islist(enum) and enum:
        return clone(rng.choice(enum))

    if S_string == vtype:
        return S_MT.join(rng.choice(S_DEFAULT_CHARS) for _ in range(8))

    if vtype in (S_number, 'integer'):
        low = getprop(schema, 'minimum', 0)
        high = getprop(schema, 'maximum', 100)
        if 'integer' == vtype:
            return rng.randint(math.ceil(low), math.floor(high))
        return round(rng.uniform(low, high), 2)

    if S_boolean == vtype:
        return rng.random() < 0.5

    if S_null == vtype:
        return UNDEF

    return UNDEF


def _randomobject(rng, fields, minitems, maxitems, depth):
    return {
        k: _randomvalue(rng, fschema, minitems, maxitems, depth)
        for k, fschema in fields.items()
    }


def generaterandom(schema: Dict[str, Any], options: Dict[str, Any] = UNDEF) -> Any:
    """
    Generate random data for a map of field name to field schema. Options:
    count (default 1; more gives a list), random or seed, and minItems,
    maxItems (default 1, 10) for the length of arrays.
    """
    if not ismap(schema):
        raise JsonGeneratorError(f"Schema must be an object, got: {typify(schema)}", schema)

    rng = getprop(options, 'random')
    if rng is UNDEF:
        rng = random.Random(getprop(options, 'seed'))

    count = getprop(options, 'count', 1)
    minitems = getprop(options, 'minItems', 1)
    maxitems = getprop(options, 'maxItems', 10)

    if 1 == count:
        return _randomobject(rng, schema, minitems, maxitems, 0)

    return [_randomobject(rng, schema, minitems, maxitems, 0) for _ in range(count)]


__all__ = [
    'DirectiveType',
    'condition',
    'createtemplate',
    'filltemplate',
    'generate',
    'generatediff',
    'generatefromtable',
    'generaterandom',
    'inferschema',
    'mergetemplates',
    'templatestring',
]
