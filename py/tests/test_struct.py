# RUN: python -m unittest discover -s tests
# RUN-SOME: python -m unittest discover -s tests -k typify

import unittest
from datetime import datetime, timezone

try:
    from .runner import makeRunner
except ImportError:
    from runner import makeRunner

from jsonstruct import (
    clone,
    delprop,
    eqkey,
    getprop,
    isotime,
    iskey,
    isnumber,
    items,
    jsonify,
    parsetime,
    size,
    strval,
    typify,
    walk,
)


runner = makeRunner('test.json')
runparts = runner('struct')

spec = runparts["spec"]
runset = runparts["runset"]
runsetflags = runparts["runsetflags"]


class TestStruct(unittest.TestCase):

    def test_exists(self):
        self.assertTrue(callable(clone))
        self.assertTrue(callable(eqkey))
        self.assertTrue(callable(jsonify))
        self.assertTrue(callable(parsetime))
        self.assertTrue(callable(strval))
        self.assertTrue(callable(typify))
        self.assertTrue(callable(walk))


    def test_typify(self):
        runsetflags(spec["typify"], {"null": False}, typify)


    def test_strval(self):
        runsetflags(spec["strval"], {"null": False}, strval)


    def test_jsonify(self):
        runset(spec["jsonify"], jsonify)


    def test_jsonify_circular(self):
        a = {'x': 1}
        a['self'] = a
        self.assertEqual(jsonify(a, {'indent': 0}), '{"x":1,"self":"[Circular Reference]"}')
        self.assertEqual(jsonify([float('nan'), 1], {'indent': 0}), '[null,1]')


    def test_size(self):
        runset(spec["size"], size)


    def test_iskey(self):
        self.assertTrue(iskey('a'))
        self.assertTrue(iskey(0))
        self.assertFalse(iskey(''))
        self.assertFalse(iskey(True))
        self.assertFalse(iskey(None))


    def test_isnumber(self):
        self.assertTrue(isnumber(1))
        self.assertTrue(isnumber(1.5))
        self.assertFalse(isnumber(True))
        self.assertFalse(isnumber('1'))


    def test_getprop(self):
        self.assertEqual(getprop({'a': 1}, 'a'), 1)
        self.assertEqual(getprop({'a': None}, 'a', 2), 2)
        self.assertEqual(getprop(['a', 'b'], '1'), 'b')
        self.assertEqual(getprop(['a', 'b'], 5, 'z'), 'z')
        self.assertEqual(getprop(None, 'a', 'z'), 'z')


    def test_delprop(self):
        self.assertEqual(delprop([2, 3, 5, 7], 2), [2, 3, 7])
        self.assertEqual(delprop({'a': 1, 'b': 2}, 'a'), {'b': 2})
        self.assertEqual(delprop({'a': 1}, 'x'), {'a': 1})


    def test_items(self):
        self.assertEqual(items({'a': 1}), [('a', 1)])
        self.assertEqual(items(['x']), [(0, 'x')])
        self.assertEqual(items(1), [])


    def test_clone(self):
        a = {'a': [1, {'b': 2}]}
        b = clone(a)
        self.assertEqual(a, b)
        b['a'][1]['b'] = 3
        self.assertEqual(a['a'][1]['b'], 2)


    def test_eqkey(self):
        self.assertEqual(eqkey({'a': 1, 'b': [1, 2]}), eqkey({'b': [1, 2.0], 'a': 1}))
        self.assertNotEqual(eqkey([1, 2]), eqkey([2, 1]))
        self.assertNotEqual(eqkey(True), eqkey(1))
        self.assertNotEqual(eqkey('1'), eqkey(1))
        self.assertEqual(eqkey(None), eqkey(None))


    def test_walk(self):
        seen = []

        def apply(key, val, parent, path):
            seen.append('.'.join(str(p) for p in path))
            return val * 2 if isinstance(val, int) else val

        out = walk({'a': 1, 'b': [2]}, apply)
        self.assertEqual(out, {'a': 2, 'b': [4]})
        self.assertEqual(seen, ['a', 'b.0', 'b', ''])


    def test_parsetime(self):
        utc = timezone.utc
        self.assertEqual(parsetime('2024-01-02T03:04:05Z'),
                         datetime(2024, 1, 2, 3, 4, 5, tzinfo=utc))
        self.assertEqual(parsetime('2024-01-02T05:04:05+02:00'),
                         datetime(2024, 1, 2, 3, 4, 5, tzinfo=utc))
        self.assertEqual(parsetime('2024-01-02'), datetime(2024, 1, 2, tzinfo=utc))
        self.assertEqual(parsetime(86400), datetime(1970, 1, 2, tzinfo=utc))
        with self.assertRaises(ValueError):
            parsetime('yesterday')
        with self.assertRaises(ValueError):
            parsetime([])


    def test_isotime(self):
        dt = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
        self.assertEqual(isotime(dt), '2025-01-02T03:04:05.678Z')


# If you want to run this file directly, add:
if __name__ == "__main__":
    unittest.main()
