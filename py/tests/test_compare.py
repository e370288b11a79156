# RUN: python -m unittest discover -s tests
# RUN-SOME: python -m unittest discover -s tests -k patch

import unittest

try:
    from .runner import makeRunner
except ImportError:
    from runner import makeRunner

from jsonstruct import (
    JsonCompareError,
    applypatch,
    compare,
    compareignoring,
    comparetolerance,
    compareunordered,
    contains,
    deepequal,
    findcommon,
    finddifferences,
    getpath,
    issubset,
    patchops,
    similarity,
)


runner = makeRunner('test.json')
runparts = runner('compare')

spec = runparts["spec"]
runset = runparts["runset"]
runsetflags = runparts["runsetflags"]


SAMPLES = [
    ({'a': 1, 'b': [1, 2, {'c': 3}]}, {'a': 1, 'b': [1, 2, {'c': 4}], 'd': 'x'}),
    ([1, 2, 3], [3, 2, 1]),
    ({'a': {'b': {'c': [1]}}}, {'a': {'b': 'c'}}),
    ({'x': [1, 2, 3, 4, 5, 6]}, {'x': [1, 2]}),
    ({'k/1': 1, 'k~2': [True]}, {'k/1': None, 'k~2': [False, True]}),
    ('a', {'a': 1}),
    ({}, {'a': []}),
    ({'': 1}, {'': 2}),
    ({'': {'': [1]}}, {'': {'': [1, 2]}, 'x': 0}),
]


class TestCompare(unittest.TestCase):

    def test_exists(self):
        self.assertTrue(callable(compare))
        self.assertTrue(callable(deepequal))
        self.assertTrue(callable(patchops))


    def test_deepequal(self):
        runset(spec["deepequal"], deepequal)


    def test_issubset(self):
        runset(spec["issubset"], issubset)


    def test_contains(self):
        runset(spec["contains"], contains)


    def test_compare(self):
        runset(spec["compare"], compare)


    def test_compare_equal(self):
        res = compare({'a': [1, {'b': None}]}, {'a': [1, {'b': None}]})
        self.assertEqual(res, {'equal': True, 'differences': [], 'similarity': 1.0})


    def test_compare_symmetry(self):
        for a, b in SAMPLES:
            ab = compare(a, b)
            ba = compare(b, a)
            self.assertEqual(ab['equal'], ba['equal'])
            self.assertEqual(ab['equal'], deepequal(a, b))
            self.assertEqual(ab['equal'], 0 == len(ab['differences']))
            self.assertEqual(similarity(a, b), similarity(b, a))
            self.assertTrue(0.0 <= ab['similarity'] <= 1.0)


    def test_compare_paths(self):
        a = {'a': {'x.y': [1, 2]}}
        b = {'a': {'x.y': [1, 3]}}
        res = compare(a, b)
        self.assertEqual(len(res['differences']), 1)
        path = res['differences'][0]['path']
        self.assertEqual(getpath(a, path), 2)
        self.assertEqual(getpath(b, path), 3)


    def test_compare_depth(self):
        deep = {'a': {'b': {'c': 1}}}
        with self.assertRaises(JsonCompareError):
            compare(deep, deep, {'maxDepth': 1})


    def test_finddifferences(self):
        res = finddifferences({'a': 1, 'b': 2}, {'a': 2, 'c': 3})
        self.assertEqual(res['count'], 3)
        self.assertEqual(sorted(res['byType'].keys()),
                         ['missing-in-a', 'missing-in-b', 'value-mismatch'])
        self.assertEqual(res['byType']['value-mismatch'],
                         [{'path': 'a', 'valueA': 1, 'valueB': 2}])


    def test_finddifferences_direction(self):
        a = {'a': 1, 'l': [1, 2]}
        b = {'b': 2, 'l': [1]}
        ab = finddifferences(a, b)
        ba = finddifferences(b, a)
        self.assertEqual(ab['count'], ba['count'])
        self.assertEqual([d['path'] for d in ab['byType']['missing-in-b']], ['a', 'l[1]'])
        self.assertEqual([d['path'] for d in ab['byType']['missing-in-a']], ['b'])
        self.assertEqual([d['path'] for d in ba['byType']['missing-in-a']], ['l[1]', 'a'])
        self.assertEqual([d['path'] for d in ba['byType']['missing-in-b']], ['b'])


    def test_comparetolerance(self):
        runset(spec["comparetolerance"], comparetolerance)


    def test_compareignoring(self):
        a = {'id': 1, 'v': {'id': 2, 'n': 'x'}, 'l': [{'id': 3, 'n': 'y'}]}
        b = {'id': 9, 'v': {'id': 8, 'n': 'x'}, 'l': [{'id': 7, 'n': 'y'}]}
        self.assertTrue(compareignoring(a, b, ['id'])['equal'])
        self.assertFalse(compareignoring(a, b, ['n'])['equal'])


    def test_compareunordered(self):
        runsetflags(spec["compareunordered"], {"null": False}, compareunordered)


    def test_compareunordered_symmetry(self):
        for a, b in [([1, 2, 2], [2, 1, 2]), ([1, {'a': 1}], [{'a': 1}, 2]), ([], [])]:
            self.assertEqual(compareunordered(a, b)['equal'],
                             compareunordered(b, a)['equal'])


    def test_patchops(self):
        runset(spec["patchops"], patchops)


    def test_applypatch_roundtrip(self):
        for a, b in SAMPLES:
            self.assertEqual(applypatch(a, patchops(a, b)), b, (a, b))
            self.assertEqual(applypatch(b, patchops(b, a)), a, (b, a))


    def test_patch_empty_key(self):
        ops = patchops({'': 1}, {'': 2})
        self.assertEqual(ops, [{'op': 'replace', 'path': '/', 'value': 2}])
        self.assertEqual(applypatch({'': 1}, ops), {'': 2})
        self.assertEqual(patchops(1, 2), [{'op': 'replace', 'path': '', 'value': 2}])
        self.assertEqual(applypatch(1, patchops(1, 2)), 2)


    def test_applypatch_clones(self):
        a = {'a': [1]}
        out = applypatch(a, [{'op': 'add', 'path': '/a/-', 'value': 2}])
        self.assertEqual(out, {'a': [1, 2]})
        self.assertEqual(a, {'a': [1]})


    def test_applypatch_errors(self):
        with self.assertRaises(JsonCompareError):
            applypatch({'a': 1}, [{'op': 'move', 'path': '/a'}])
        with self.assertRaises(JsonCompareError):
            applypatch({'a': 1}, [{'op': 'remove', 'path': '/b'}])
        with self.assertRaises(JsonCompareError):
            applypatch({'a': [1]}, [{'op': 'replace', 'path': '/a/x', 'value': 1}])
        with self.assertRaises(JsonCompareError):
            applypatch({'a': 1}, [{'op': 'replace', 'path': 'a', 'value': 2}])


    def test_similarity(self):
        runset(spec["similarity"], similarity)


    def test_findcommon(self):
        runset(spec["findcommon"], findcommon)


    def test_findcommon_scalars(self):
        self.assertEqual(findcommon(1, 1), {'common': 1, 'uniqueToA': None, 'uniqueToB': None})
        self.assertEqual(findcommon(1, 'a'), {'common': None, 'uniqueToA': 1, 'uniqueToB': 'a'})


# If you want to run this file directly, add:
if __name__ == "__main__":
    unittest.main()
