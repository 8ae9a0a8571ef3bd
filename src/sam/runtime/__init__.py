"""
Sam Runtime - Tree-walking interpreter for Sam programs.

This module provides:
- Interpreter: Evaluates a parsed program
- Value: Tagged runtime values and their operators
- Context: The scope stack of variable frames
- ffi: Interface manifests, foreign functions and the shell fallback
"""

from .values import (
    Value,
    ValueKind,
    FunctionData,
    Return,
    Signal,
    int_val,
    float_val,
    bool_val,
    string_val,
    array_val,
    object_val,
    function_val,
    foreign_val,
    undefined_val,
    value_from_python,
    binary_op,
    values_equal,
    get_attribute,
    render,
)

from .context import (
    Context,
    create_context,
)

from .ffi import (
    register,
    invoke_foreign,
    invoke_shell,
    json_to_value,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    execute,
    run_source,
)

__all__ = [
    # Values
    'Value',
    'ValueKind',
    'FunctionData',
    'Return',
    'Signal',
    'int_val',
    'float_val',
    'bool_val',
    'string_val',
    'array_val',
    'object_val',
    'function_val',
    'foreign_val',
    'undefined_val',
    'value_from_python',
    'binary_op',
    'values_equal',
    'get_attribute',
    'render',

    # Context
    'Context',
    'create_context',

    # FFI
    'register',
    'invoke_foreign',
    'invoke_shell',
    'json_to_value',

    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'execute',
    'run_source',
]
