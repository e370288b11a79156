# RUN: python -m unittest discover -s tests
# RUN-SOME: python -m unittest discover -s tests -k validateschema

import re
import unittest

try:
    from .runner import makeRunner
except ImportError:
    from runner import makeRunner

from jsonstruct import (
    JsonValidateError,
    createvalidator,
    getpath,
    matchesschema,
    validatejson,
    validatepath,
    validateschema,
    validatetype,
    validatevalue,
)


runner = makeRunner('test.json')
runparts = runner('validate')

spec = runparts["spec"]
runset = runparts["runset"]
runsetflags = runparts["runsetflags"]


USER = {
    'type': 'object',
    'required': ['name', 'email'],
    'properties': {
        'name': {'type': 'string', 'minLength': 2},
        'email': {'type': 'string', 'format': 'email'},
        'age': {'type': 'integer', 'minimum': 0, 'maximum': 150},
        'tags': {'type': 'array', 'items': {'type': 'string'}, 'maxItems': 2},
        'role': {'enum': ['admin', 'user']},
    },
    'additionalProperties': False,
}


class TestValidate(unittest.TestCase):

    def test_exists(self):
        self.assertTrue(callable(validateschema))
        self.assertTrue(callable(validatejson))
        self.assertTrue(callable(createvalidator))


    def test_validateschema(self):
        runset(spec["validateschema"], validateschema)


    def test_formats(self):
        runset(spec["formats"], matchesschema)


    def test_valid_user(self):
        user = {'name': 'Ada', 'email': 'ada@example.com', 'age': 36,
                'tags': ['a'], 'role': 'admin'}
        self.assertEqual(validateschema(user, USER), {'valid': True, 'errors': []})


    def test_all_errors_reported(self):
        user = {'name': 'A', 'age': -1.5, 'tags': ['a', 1, 'c'],
                'role': 'root', 'extra': True}
        res = validateschema(user, USER)
        self.assertFalse(res['valid'])
        self.assertEqual(
            sorted(e['path'] for e in res['errors']),
            ['age', 'email', 'extra', 'name', 'role', 'tags', 'tags[1]'])

        # Every error path except a missing property resolves in the data.
        for err in res['errors']:
            if 'present' != err.get('expected'):
                self.assertEqual(getpath(user, err['path']), err['value'])


    def test_valid_means_no_errors(self):
        for data in [{}, {'name': 'Bo', 'email': 'x'}, 'text', [1], None]:
            res = validateschema(data, USER)
            self.assertEqual(res['valid'], 0 == len(res['errors']))


    def test_large_numbers(self):
        big = 10 ** 400
        self.assertTrue(matchesschema(big, {'type': 'integer'}))
        self.assertTrue(matchesschema(big + 1, {'type': 'integer', 'minimum': 0}))
        self.assertTrue(matchesschema(big * 3, {'type': 'number', 'multipleOf': 3}))
        self.assertFalse(matchesschema(big + 1, {'type': 'number', 'multipleOf': 3}))
        self.assertFalse(matchesschema(big, {'multipleOf': 0.3}))
        self.assertFalse(matchesschema(float('inf'), {'type': 'integer'}))
        self.assertFalse(matchesschema(float('inf'), {'multipleOf': 2}))
        self.assertTrue(matchesschema(0.6, {'multipleOf': 0.2}))
        self.assertTrue(matchesschema(4.0, {'type': 'integer', 'multipleOf': 2}))


    def test_schema_not_mutated(self):
        schema = {'properties': {'a': {'type': 'number'}}}
        validateschema({'a': 'x'}, schema)
        self.assertEqual(schema, {'properties': {'a': {'type': 'number'}}})


    def test_matchesschema(self):
        self.assertTrue(matchesschema({'name': 'Ada', 'email': 'a@b.co'}, USER))
        self.assertFalse(matchesschema({'name': 'Ada'}, USER))


    def test_createvalidator(self):
        validator = createvalidator({'type': 'array', 'minItems': 1})
        self.assertTrue(validator([1])['valid'])
        self.assertEqual(validator([])['errors'][0]['message'],
                         'Array length 0 is less than minimum 1')
        with self.assertRaises(JsonValidateError):
            createvalidator([])


    def test_validatetype(self):
        runset(spec["validatetype"], validatetype)


    def test_validatepath(self):
        runset(spec["validatepath"], validatepath)


    def test_validatejson(self):
        runset(spec["validatejson"], validatejson)


    def test_validatejson_constraints(self):
        res = validatejson({'code': 'AB12', 'n': 3, 'kind': 'x'}, {
            'valueConstraints': {
                'code': re.compile(r'^[A-Z]+\d+$'),
                'n': lambda v: 0 == v % 2,
                'kind': 'x',
            },
        })
        self.assertEqual([e['path'] for e in res['errors']], ['n'])

        res = validatejson({'a': 'x'}, {'schema': {'properties': {'a': {'type': 'number'}}}})
        self.assertEqual([e['path'] for e in res['errors']], ['a'])


    def test_validatevalue(self):
        runset(spec["validatevalue"], validatevalue)


    def test_validatevalue_custom(self):
        self.assertTrue(validatevalue('a@b.co', {'format': 'email'})['valid'])
        self.assertTrue(validatevalue('abc', {'pattern': re.compile('^a')})['valid'])

        res = validatevalue(3, {'custom': lambda v: 0 == v % 2})
        self.assertEqual(res['errors'][0]['message'], 'Value failed custom validation')

        res = validatevalue('x', {'custom': lambda v: v > 1})
        self.assertTrue(res['errors'][0]['message'].startswith('Custom validation error'))


# If you want to run this file directly, add:
if __name__ == "__main__":
    unittest.main()
