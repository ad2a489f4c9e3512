"""Run the generated validator against the generated parameter extractor.

The two snippets produced by :mod:`src.codegen` are untrusted text.  Before
anything is sent to the sandbox they are parsed with :mod:`ast` and checked
against the function contract the driver script relies on:

* ``validateCustomerSchedulingParameters`` takes the seven positional
  arguments ``year, month, day, hour, minute, duration_hours, frequency``;
* ``getCustomerSchedulingParameters`` can be called with no arguments;
* the only modules imported are ``datetime`` and ``calendar``;
* each snippet holds only function definitions, imports and docstrings at
  top level, and never rebinds the other snippet's functions or the names
  the driver relies on (``json``, ``print``, ``parameters``, ...).

The assembled script prints a single JSON envelope
``{"validation_errors": [...]}`` on stdout, which is parsed here.
"""

from __future__ import annotations

import ast
import json
import logging
from typing import Any

from src.services.sandbox_client import ExecutionResult, PistonClient

logger = logging.getLogger(__name__)

VALIDATOR_FUNCTION = "validateCustomerSchedulingParameters"
EXTRACTOR_FUNCTION = "getCustomerSchedulingParameters"
VALIDATOR_ARGUMENTS = ("year", "month", "day", "hour", "minute", "duration_hours", "frequency")
ALLOWED_IMPORTS = frozenset({"datetime", "calendar"})
# Names the snippets may neither use nor rebind: output, process control and
# namespace introspection.
FORBIDDEN_NAMES = frozenset(
    {
        "SystemExit", "__builtins__", "__import__", "breakpoint", "compile", "delattr",
        "eval", "exec", "exit", "getattr", "globals", "input", "json", "locals",
        "open", "print", "quit", "setattr", "sys", "vars",
    }
)
# Module-level names the driver assigns after both snippets.
DRIVER_NAMES = frozenset({"parameters", "validation_errors"})

SCRIPT_PREAMBLE = """import calendar
import json
import sys
from datetime import date, datetime, timedelta, timezone
"""

SCRIPT_DRIVER = f"""
parameters = {EXTRACTOR_FUNCTION}()

validation_errors = {VALIDATOR_FUNCTION}(
    parameters.get("appointment_year"),
    parameters.get("appointment_month"),
    parameters.get("appointment_date"),
    parameters.get("appointment_time_hour"),
    parameters.get("appointment_time_minute"),
    parameters.get("duration_hours"),
    parameters.get("frequency"),
)

print(json.dumps({{"validation_errors": validation_errors}}))
"""


class ValidationExecutionError(Exception):
    """Validation execution failed; the base of every executor error."""


class CodeContractError(ValidationExecutionError):
    """Generated code does not define the functions the driver calls."""


class SandboxExecutionError(ValidationExecutionError):
    """The script crashed, was killed, or exited with a non-zero status."""

    def __init__(self, message: str, result: ExecutionResult):
        self.result = result
        super().__init__(message)


class SandboxOutputError(ValidationExecutionError):
    """The script ran but its stdout is not a usable result envelope."""


# ── Contract checks ──────────────────────────────────────────────────


def _parse(source: str, label: str) -> ast.Module:
    try:
        return ast.parse(source)
    except SyntaxError as exc:
        raise CodeContractError(f"{label} is not valid Python: {exc.msg} (line {exc.lineno})") from exc


def _find_function(tree: ast.Module, name: str) -> ast.FunctionDef | None:
    for node in tree.body:
        if isinstance(node, ast.FunctionDef) and node.name == name:
            return node
    return None


def _required_keyword_only(args: ast.arguments) -> list[str]:
    return [arg.arg for arg, default in zip(args.kwonlyargs, args.kw_defaults) if default is None]


def _is_docstring(node: ast.stmt) -> bool:
    return isinstance(node, ast.Expr) and isinstance(node.value, ast.Constant) and isinstance(node.value.value, str)


def _check_top_level(tree: ast.Module, label: str) -> None:
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.Import, ast.ImportFrom)) or _is_docstring(node):
            continue
        raise CodeContractError(
            f"{label} has a top-level {type(node).__name__} statement (line {node.lineno}); "
            "only function definitions and imports are allowed"
        )


def _check_imports(tree: ast.Module, label: str) -> None:
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom):
            if any(alias.name == "*" for alias in node.names):
                raise CodeContractError(f"{label} uses a star import")
            modules = [node.module or "." * node.level]
        else:
            continue
        for module in modules:
            if module.split(".")[0] not in ALLOWED_IMPORTS:
                raise CodeContractError(f"{label} imports disallowed module {module!r}")


def _top_level_bindings(tree: ast.Module) -> list[str]:
    names = []
    for node in tree.body:
        if isinstance(node, ast.FunctionDef):
            names.append(node.name)
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            names.extend(alias.asname or alias.name.split(".")[0] for alias in node.names)
    return names


def _check_bindings(tree: ast.Module, label: str, other_function: str) -> None:
    functions = [node.name for node in tree.body if isinstance(node, ast.FunctionDef)]
    for name in functions:
        if functions.count(name) > 1:
            raise CodeContractError(f"{label} defines {name}() more than once")

    reserved = FORBIDDEN_NAMES | DRIVER_NAMES | {other_function}
    for name in _top_level_bindings(tree):
        if name in reserved:
            raise CodeContractError(f"{label} rebinds reserved name {name!r}")


def _check_names(tree: ast.Module, label: str) -> None:
    for node in ast.walk(tree):
        if isinstance(node, (ast.Global, ast.Nonlocal)):
            raise CodeContractError(f"{label} uses a {type(node).__name__.lower()} statement")
        if isinstance(node, ast.Name) and node.id in FORBIDDEN_NAMES:
            raise CodeContractError(f"{label} uses forbidden name {node.id!r}")
        if isinstance(node, ast.Attribute) and node.attr.startswith("__"):
            raise CodeContractError(f"{label} accesses dunder attribute {node.attr!r}")


def _check_snippet(source: str, label: str, function: str, other_function: str) -> tuple[ast.Module, ast.FunctionDef]:
    tree = _parse(source, label)
    _check_top_level(tree, label)
    _check_imports(tree, label)
    _check_bindings(tree, label, other_function)
    _check_names(tree, label)
    func = _find_function(tree, function)
    if func is None:
        raise CodeContractError(f"{label} does not define {function}()")
    return tree, func


def _check_validator(source: str) -> ast.Module:
    tree, func = _check_snippet(source, "Validation method", VALIDATOR_FUNCTION, EXTRACTOR_FUNCTION)

    args = func.args
    positional = args.posonlyargs + args.args
    required = len(positional) - len(args.defaults)
    if len(positional) < len(VALIDATOR_ARGUMENTS) and args.vararg is None:
        raise CodeContractError(
            f"{VALIDATOR_FUNCTION}() accepts {len(positional)} positional arguments, "
            f"expected {len(VALIDATOR_ARGUMENTS)}"
        )
    if required > len(VALIDATOR_ARGUMENTS) or _required_keyword_only(args):
        raise CodeContractError(f"{VALIDATOR_FUNCTION}() requires arguments the driver does not pass")
    return tree


def _check_extractor(source: str) -> ast.Module:
    tree, func = _check_snippet(source, "Parameters extraction method", EXTRACTOR_FUNCTION, VALIDATOR_FUNCTION)

    args = func.args
    required = len(args.posonlyargs + args.args) - len(args.defaults)
    if required > 0 or _required_keyword_only(args):
        raise CodeContractError(f"{EXTRACTOR_FUNCTION}() must be callable without arguments")
    return tree


def check_generated_code(validation_method: str, parameters_extraction_method: str) -> None:
    """Raise :class:`CodeContractError` unless both snippets honour the driver contract.

    Both snippets share one module namespace in the assembled script, so
    neither may redefine a function the other one defines.
    """
    validator_tree = _check_validator(validation_method)
    extractor_tree = _check_extractor(parameters_extraction_method)

    shared = {n.name for n in validator_tree.body if isinstance(n, ast.FunctionDef)} & {
        n.name for n in extractor_tree.body if isinstance(n, ast.FunctionDef)
    }
    if shared:
        raise CodeContractError(
            f"Both generated snippets define {', '.join(sorted(shared))}(); "
            "the extractor would replace the validator's definition"
        )


# ── Script assembly & execution ──────────────────────────────────────


def build_validation_script(validation_method: str, parameters_extraction_method: str) -> str:
    """Concatenate preamble, both generated snippets and the driver."""
    return "\n".join(
        [
            SCRIPT_PREAMBLE,
            validation_method,
            "",
            parameters_extraction_method,
            SCRIPT_DRIVER,
        ]
    )


def parse_validation_output(stdout: str) -> list[str]:
    """Extract the ``validation_errors`` list from the script's stdout."""
    text = stdout.strip()
    if not text:
        raise SandboxOutputError("Validation execution failed: sandbox produced no output")
    try:
        envelope: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SandboxOutputError(f"Validation execution failed: output is not JSON ({exc})") from exc

    if not isinstance(envelope, dict) or "validation_errors" not in envelope:
        raise SandboxOutputError("Validation execution failed: output has no 'validation_errors'")

    errors = envelope["validation_errors"]
    if not isinstance(errors, list) or not all(isinstance(e, str) for e in errors):
        raise SandboxOutputError("Validation execution failed: 'validation_errors' is not a list of strings")
    return errors


def execute_validation(
    sandbox: PistonClient,
    validation_method: str,
    parameters_extraction_method: str,
) -> dict[str, Any]:
    """Check, run and interpret the generated scheduling validation.

    Returns a partial scheduling state with ``validation_passed`` and
    ``validation_errors``.
    """
    check_generated_code(validation_method, parameters_extraction_method)
    script = build_validation_script(validation_method, parameters_extraction_method)

    result = sandbox.execute("python", script, args=[])
    if not result.succeeded:
        logger.warning(
            "Validation script failed in sandbox (exit=%s signal=%s): %s",
            result.exit_code, result.signal, result.stderr.strip()[:500],
        )
        raise SandboxExecutionError(
            f"Validation execution failed: script exited with code {result.exit_code}"
            + (f" (signal {result.signal})" if result.signal else ""),
            result,
        )

    errors = parse_validation_output(result.stdout)
    if errors:
        return {"validation_passed": False, "validation_errors": errors}
    return {"validation_passed": True, "validation_errors": []}
