# jsonstruct init

import logging

from .struct import (
    MAXDEPTH,
    UNDEF,
    clone,
    delprop,
    eqkey,
    getprop,
    isfunc,
    iskey,
    islist,
    ismap,
    isnode,
    isnumber,
    isotime,
    items,
    jsonify,
    parsetime,
    size,
    stringify,
    strval,
    typify,
    walk,
)

from .errors import (
    JsonCompareError,
    JsonExtractError,
    JsonGeneratorError,
    JsonMergeError,
    JsonPathError,
    JsonStructError,
    JsonTransformError,
    JsonValidateError,
    PathNotFoundError,
    PathRangeError,
    PathSyntaxError,
    PathTypeError,
)

from .path import (
    allpaths,
    copypath,
    delpath,
    evaluate,
    extractpaths,
    findpaths,
    formatpath,
    getpath,
    haspath,
    movepath,
    normalizepath,
    parentpath,
    parsepath,
    pathdepth,
    pathjoin,
    setpath,
    updatepaths,
)

from .compare import (
    applypatch,
    compare,
    compareignoring,
    comparetolerance,
    compareunordered,
    contains,
    deepequal,
    findcommon,
    finddifferences,
    issubset,
    patchops,
    similarity,
)

from .merge import (
    createmerger,
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

from .transform import (
    castvalues,
    deeptransform,
    filterjson,
    flatten,
    groupby,
    mapjson,
    omitkeys,
    pickkeys,
    reducejson,
    renamekeys,
    sortbykeys,
    transform,
    unflatten,
)

from .validate import (
    createvalidator,
    matchesschema,
    validatejson,
    validatepath,
    validateschema,
    validatetype,
    validatevalue,
)

from .extract import (
    extractandflatten,
    extractandgroup,
    extractandpivot,
    extractbypath,
    extractbypredicate,
    extractbyregex,
    extractbytype,
    extractkeys,
    extractvalues,
    extractwithtemplate,
)

from .generate import (
    DirectiveType,
    condition,
    createtemplate,
    filltemplate,
    generate,
    generatediff,
    generatefromtable,
    generaterandom,
    inferschema,
    mergetemplates,
    templatestring,
)


logging.getLogger(__name__).addHandler(logging.NullHandler())


__all__ = [
    'MAXDEPTH',
    'UNDEF',
    'DirectiveType',
    'JsonCompareError',
    'JsonExtractError',
    'JsonGeneratorError',
    'JsonMergeError',
    'JsonPathError',
    'JsonStructError',
    'JsonTransformError',
    'JsonValidateError',
    'PathNotFoundError',
    'PathRangeError',
    'PathSyntaxError',
    'PathTypeError',
    'allpaths',
    'applypatch',
    'castvalues',
    'clone',
    'compare',
    'compareignoring',
    'comparetolerance',
    'compareunordered',
    'condition',
    'contains',
    'copypath',
    'createtemplate',
    'createmerger',
    'createvalidator',
    'deepequal',
    'deepmerge',
    'deeptransform',
    'delpath',
    'delprop',
    'eqkey',
    'evaluate',
    'extractandflatten',
    'extractandgroup',
    'extractandpivot',
    'extractbypath',
    'extractbypredicate',
    'extractbyregex',
    'extractbytype',
    'extractkeys',
    'extractpaths',
    'extractvalues',
    'extractwithtemplate',
    'filltemplate',
    'filterjson',
    'findcommon',
    'finddifferences',
    'findpaths',
    'flatten',
    'formatpath',
    'generate',
    'generatediff',
    'generatefromtable',
    'generaterandom',
    'getpath',
    'getprop',
    'groupby',
    'haspath',
    'inferschema',
    'isfunc',
    'iskey',
    'islist',
    'ismap',
    'isnode',
    'isnumber',
    'isotime',
    'issubset',
    'items',
    'jsonify',
    'mapjson',
    'matchesschema',
    'mergearrays',
    'mergeconflicts',
    'mergejson',
    'mergepriority',
    'mergeresolver',
    'mergetemplates',
    'mergetransform',
    'movepath',
    'normalizepath',
    'omitkeys',
    'parentpath',
    'parsepath',
    'parsetime',
    'patchjson',
    'patchops',
    'pathdepth',
    'pathjoin',
    'pickkeys',
    'reducejson',
    'renamekeys',
    'setpath',
    'shallowmerge',
    'similarity',
    'size',
    'sortbykeys',
    'stringify',
    'strval',
    'templatestring',
    'transform',
    'typify',
    'unflatten',
    'updatepaths',
    'validatejson',
    'validatepath',
    'validateschema',
    'validatetype',
    'validatevalue',
    'walk',
]
