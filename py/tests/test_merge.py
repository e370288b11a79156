# RUN: python -m unittest discover -s tests
# RUN-SOME: python -m unittest discover -s tests -k deepmerge

import unittest

try:
    from .runner import makeRunner
except ImportError:
    from runner import makeRunner

from jsonstruct import (
    JsonMergeError,
    createmerger,
    deepequal,
    deepmerge,
    mergearrays,
    mergeconflicts,
    mergejson,
    mergepriority,
    mergeresolver,
    mergetransform,
    patchjson,
    shallowmerge,
)


runner = makeRunner('test.json')
runparts = runner('merge')

spec = runparts["spec"]
runset = runparts["runset"]
runsetflags = runparts["runsetflags"]


class TestMerge(unittest.TestCase):

    def test_exists(self):
        self.assertTrue(callable(deepmerge))
        self.assertTrue(callable(mergearrays))
        self.assertTrue(callable(createmerger))


    def test_deepmerge(self):
        runset(spec["deepmerge"], deepmerge)


    def test_deepmerge_inputs_unchanged(self):
        target = {'a': {'b': [1]}}
        source = {'a': {'b': [2], 'c': 3}}
        out = deepmerge(target, source)
        self.assertEqual(out, {'a': {'b': [1, 2], 'c': 3}})
        self.assertEqual(target, {'a': {'b': [1]}})
        self.assertEqual(source, {'a': {'b': [2], 'c': 3}})
        out['a']['c'] = 4
        self.assertEqual(source['a']['c'], 3)


    def test_deepmerge_none(self):
        self.assertEqual(deepmerge({'a': 1}, None), {'a': 1})
        self.assertEqual(deepmerge(None, {'a': 1}), {'a': 1})
        self.assertEqual(deepmerge({'a': 1}, {'a': None}), {'a': 1})


    def test_deepmerge_idempotent(self):
        for strategy in ['union', 'replace', 'deep', 'intersection']:
            x = {'a': [1, {'b': 2}], 'c': {'d': 'e'}}
            self.assertEqual(deepmerge(x, x, {'arrayStrategy': strategy}), x, strategy)


    def test_deepmerge_union_setlike(self):
        a = {'l': [1, 2, 2]}
        b = {'l': [2, 3]}
        c = {'l': [3, 4, 1]}
        options = {'arrayStrategy': 'union'}

        # Same members, first occurrence order.
        self.assertEqual(deepmerge(deepmerge(a, b, options), c, options), {'l': [1, 2, 3, 4]})
        self.assertEqual(deepmerge(b, a, options), {'l': [2, 3, 1]})

        # Intersection keeps target order and target duplicates.
        self.assertEqual(
            deepmerge(a, b, {'arrayStrategy': 'intersection'}), {'l': [2, 2]})
        self.assertEqual(
            deepmerge(b, a, {'arrayStrategy': 'intersection'}), {'l': [2]})


    def test_deepmerge_not_associative(self):
        b = {'l': 's'}
        for strategy, a, c, ab_c_out, a_bc_out in [
            ('union', {'l': [1]}, {'l': [2]}, {'l': [1, 2]}, {'l': [1]}),
            ('intersection', {'l': [1, 2]}, {'l': [2, 3]}, {'l': [2]}, {'l': [1, 2]}),
        ]:
            options = {'arrayStrategy': strategy, 'conflictStrategy': 'target'}

            ab_c = deepmerge(deepmerge(a, b, options), c, options)
            a_bc = deepmerge(a, deepmerge(b, c, options), options)

            self.assertEqual(ab_c, ab_c_out, strategy)
            self.assertEqual(a_bc, a_bc_out, strategy)
            self.assertNotEqual(ab_c, a_bc, strategy)


    def test_deepmerge_deep_input(self):
        deep = {}
        node = deep
        for _ in range(3000):
            node['a'] = {}
            node = node['a']

        with self.assertRaises(JsonMergeError):
            deepmerge(deep, {'a': 1})
        with self.assertRaises(JsonMergeError):
            deepmerge({'a': 1}, deep)


    def test_deepmerge_custom(self):
        def custom(path, target, source):
            if 'n' == path:
                return target + source
            return None

        out = deepmerge({'n': 1, 'm': 1}, {'n': 2, 'm': 2}, {'customMerge': custom})
        self.assertEqual(out, {'n': 3, 'm': 2})


    def test_deepmerge_options(self):
        with self.assertRaises(JsonMergeError):
            deepmerge({}, {}, {'strategy': 'sideways'})
        with self.assertRaises(JsonMergeError):
            deepmerge({}, {}, {'conflictStrategy': 'coin'})


    def test_mergearrays(self):
        runset(spec["mergearrays"], mergearrays)


    def test_mergepriority(self):
        runset(spec["mergepriority"], mergepriority)


    def test_mergeresolver(self):
        seen = []

        def resolver(path, target, source):
            seen.append(path)
            if 'keep' == path:
                return target
            if 'sum' == path:
                return target + source
            return None

        out = mergeresolver(
            {'keep': 1, 'sum': 1, 'take': 1, 'same': 1, 'o': {'x': [1, 2]}},
            {'keep': 2, 'sum': 2, 'take': 2, 'same': 1, 'o': {'x': [1, 3, 4]}, 'new': 1},
            resolver)

        self.assertEqual(out, {
            'keep': 1, 'sum': 3, 'take': 2, 'same': 1,
            'o': {'x': [1, 3, 4]}, 'new': 1,
        })
        self.assertEqual(seen, ['keep', 'sum', 'take', 'o.x[1]'])


    def test_mergeconflicts(self):
        runset(spec["mergeconflicts"], mergeconflicts)


    def test_mergeconflicts_predicts_throw(self):
        target = {'a': {'b': 1}, 'c': 'x'}
        source = {'a': {'b': 2}}
        conflicts = mergeconflicts(target, source)
        self.assertEqual([c['path'] for c in conflicts], ['a.b'])
        with self.assertRaises(JsonMergeError) as ctx:
            deepmerge(target, source, {'conflictStrategy': 'throw'})
        self.assertEqual(ctx.exception.path, 'a.b')

        self.assertEqual(mergeconflicts(target, {'c': 'x'}), [])
        deepmerge(target, {'c': 'x'}, {'conflictStrategy': 'throw'})


    def test_mergejson(self):
        runset(spec["mergejson"], mergejson)


    def test_shallowmerge(self):
        runset(spec["shallowmerge"], shallowmerge)


    def test_patchjson(self):
        runsetflags(spec["patchjson"], {"null": False}, patchjson)


    def test_createmerger(self):
        merger = createmerger({'arrayStrategy': 'replace'})
        self.assertEqual(merger({'a': [1]}, {'a': [2]}), {'a': [2]})
        with self.assertRaises(JsonMergeError):
            createmerger({'arrayStrategy': 'zip'})


    def test_mergetransform(self):
        target = {'n': 1, 'l': [1], 'only': {'t': 1}}
        source = {'n': 2, 'l': [2], 'new': {'s': 1}}

        out = mergetransform(target, source,
                             lambda key, t, s: t + s)
        self.assertEqual(out, {'n': 3, 'l': [1, 2], 'only': {'t': 1}, 'new': {'s': 1}})

        # Inputs are left alone, and the result shares nothing with them.
        out['only']['t'] = 9
        out['new']['s'] = 9
        self.assertEqual(target, {'n': 1, 'l': [1], 'only': {'t': 1}})
        self.assertEqual(source, {'n': 2, 'l': [2], 'new': {'s': 1}})

        # Only the top level is merged.
        out = mergetransform({'a': {'x': 1}}, {'a': {'y': 2}},
                             lambda key, t, s: s)
        self.assertEqual(out, {'a': {'y': 2}})

        keys = []
        mergetransform({'a': 1, 'b': 2}, {'b': 3, 'c': 4},
                       lambda key, t, s: keys.append(key))
        self.assertEqual(keys, ['b'])


    def test_mergetransform_errors(self):
        with self.assertRaises(JsonMergeError):
            mergetransform([1], {'a': 1}, lambda key, t, s: s)
        with self.assertRaises(JsonMergeError):
            mergetransform({'a': 1}, 'a', lambda key, t, s: s)

        def fail(key, t, s):
            raise ValueError('no')

        with self.assertRaises(JsonMergeError) as ctx:
            mergetransform({'a': 1}, {'a': 2}, fail)
        self.assertIn('key a', str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, ValueError)


    def test_merge_deepequal(self):
        a = {'a': [1, 2], 'b': {'c': 1}}
        self.assertTrue(deepequal(mergejson({}, a), a))


# If you want to run this file directly, add:
if __name__ == "__main__":
    unittest.main()
