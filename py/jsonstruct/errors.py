# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# JSON Struct: errors
# ===================
#
# Every error raised by the engines is a JsonStructError, which is a
# ValueError, and carries enough structured context (path, values) for
# a caller to build its own message.


from typing import *


class JsonStructError(ValueError):
    "Base error for all JSON Struct engines."

    def __init__(self, message: str, path: str = '') -> None:
        super().__init__(message)
        self.message = message
        self.path = path


class JsonPathError(JsonStructError):
    "A path expression could not be parsed or resolved."

    def __init__(self, message: str, path: str = '', value: Any = None) -> None:
        super().__init__(message, path)
        self.value = value


class PathSyntaxError(JsonPathError):
    "Malformed path expression."


class PathNotFoundError(JsonPathError):
    "An intermediate segment does not exist, and create mode is off."


class PathRangeError(JsonPathError):
    "An array index is out of bounds, and create mode is off."


class PathTypeError(JsonPathError):
    "A segment does not match its container (key into array, index into object)."


class JsonCompareError(JsonStructError):
    def __init__(
            self,
            message: str,
            path: str = '',
            valueA: Any = None,
            valueB: Any = None
    ) -> None:
        super().__init__(message, path)
        self.valueA = valueA
        self.valueB = valueB


class JsonMergeError(JsonStructError):
    def __init__(
            self,
            message: str,
            path: str = '',
            valueA: Any = None,
            valueB: Any = None
    ) -> None:
        super().__init__(message, path)
        self.valueA = valueA
        self.valueB = valueB


class JsonTransformError(JsonStructError):
    def __init__(self, message: str, path: str = '', value: Any = None) -> None:
        super().__init__(message, path)
        self.value = value


class JsonValidateError(JsonStructError):
    "The schema itself cannot be used, or the data is nested too deeply."


class JsonExtractError(JsonStructError):
    def __init__(self, message: str, path: str = '', value: Any = None) -> None:
        super().__init__(message, path)
        self.value = value


class JsonGeneratorError(JsonStructError):
    def __init__(
            self,
            message: str,
            template: Any = None,
            data: Any = None,
            errors: Optional[List[Dict[str, Any]]] = None
    ) -> None:
        super().__init__(message)
        self.template = template
        self.data = data
        self.errors = errors or []


__all__ = [
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
]
