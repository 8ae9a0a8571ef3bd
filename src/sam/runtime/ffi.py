"""
Foreign-function and shell bridge.

Interface manifests are JSON objects mapping exposed names to shell
command templates:

    {"weather": "python3 tools/weather.py", "bar": "printf '\"42\"'"}

`interface "tools.json" load weather;` installs `weather` in the global
frame as a foreign function. Calling it runs the template followed by the
rendered arguments through the configured shell and decodes stdout as JSON.

A call to a name that is neither bound nor registered runs that name as a
program and returns {stdout, stderr, status}.
"""

import json
import os
import subprocess
from typing import Dict, List, Optional

from .values import Value, ValueKind, foreign_val, int_val, object_val, render, string_val, value_from_python
from .context import Context
from ..config import SamConfig
from ..errors import (
    error_manifest_unreadable,
    error_manifest_invalid,
    error_interface_entry,
    error_foreign_output,
    error_spawn_failed,
)


def _environment(config: SamConfig) -> Optional[Dict[str, str]]:
    if not config.env:
        return None
    env = dict(os.environ)
    env.update(config.env)
    return env


def register(path: str, name: str, ctx: Context, config: SamConfig) -> Value:
    """
    Install the foreign function `name` from the manifest at `path`.

    The function always goes into the global frame, wherever the
    declaration is evaluated.

    Raises:
        FFIError: E501 if the manifest cannot be read, E502 if it is not
            valid JSON, E503 if `name` is missing or not a string
    """
    manifest_path = config.resolve_manifest(path)
    try:
        with manifest_path.open("r", encoding="utf-8") as fp:
            text = fp.read()
    except (OSError, UnicodeDecodeError) as e:
        raise error_manifest_unreadable(str(manifest_path), str(e)) from e

    try:
        manifest = json.loads(text)
    except json.JSONDecodeError as e:
        raise error_manifest_invalid(name, str(manifest_path)) from e

    command = manifest.get(name) if isinstance(manifest, dict) else None
    if not isinstance(command, str):
        raise error_interface_entry(name, str(manifest_path))

    function = foreign_val(command)
    ctx.global_scope()[name] = function
    return function


def json_to_value(text: str) -> Value:
    """Decode JSON text into a Value. Raises ValueError on malformed input."""
    return value_from_python(json.loads(text))


def invoke_foreign(function: Value, args: List[Value], config: SamConfig) -> Value:
    """
    Run a foreign function and decode its stdout as JSON.

    The exit status of the command is not inspected; only its output is.
    """
    if function.kind != ValueKind.FOREIGN_FUNCTION:
        raise TypeError(f"expected a foreign function, got {function.kind.value}")

    command = " ".join([function.data] + [render(arg) for arg in args])
    try:
        result = subprocess.run(
            [config.shell, "-c", command],
            capture_output=True,
            env=_environment(config),
        )
    except (OSError, ValueError) as e:
        raise error_spawn_failed(command, str(e)) from e

    stdout = result.stdout.decode(config.encoding, errors="replace")
    try:
        return json_to_value(stdout)
    except ValueError as e:
        raise error_foreign_output(command) from e


def invoke_shell(name: str, args: List[Value], config: SamConfig) -> Value:
    """
    Run `name` as a program with the rendered arguments.

    Returns an object with `stdout`, `stderr` and `status`. A nonzero exit
    is data, not an error; `status` is -1 when the process was killed by a
    signal. Only failing to start the process raises.
    """
    argv = [name] + [render(arg) for arg in args]
    try:
        result = subprocess.run(argv, capture_output=True, env=_environment(config))
    except (OSError, ValueError) as e:
        raise error_spawn_failed(" ".join(argv), str(e)) from e

    status = result.returncode if result.returncode >= 0 else -1
    return object_val({
        "stdout": string_val(result.stdout.decode(config.encoding, errors="replace")),
        "stderr": string_val(result.stderr.decode(config.encoding, errors="replace")),
        "status": int_val(status),
    })
