"""
Child side of the sandbox.

Started as ``python -I -B _worker.py`` in a throwaway working directory, once
per test case. Reads one JSON payload from stdin::

    {"source": ..., "entry_point": ..., "args": [...], "token": ...,
     "allowed_modules": [...], "max_output_chars": 10000}

executes the candidate source in a scope that only sees allow-listed builtins,
calls the entry point and writes one JSON envelope as the last line of the
original stdout::

    {"status": "ok", "result": ..., "stdout": "...", "token": ...}
    {"status": "error", "kind": "runtime_error", "message": "...", "stdout": "...", "token": ...}

Candidate code is held back from the host in layers:
- source that names dunder or frame attributes is rejected before it runs
- builtins are an allow-list; getattr refuses the same attribute names
- imported modules are read-only views that hide private names and any
  module not on the allow-list
- file descriptor 1 points at the null device while candidate code runs;
  the envelope goes to a private duplicate and carries the host's token
- an audit hook refuses file, process, network and debugger operations

This file must only import the standard library: it runs with the isolated
interpreter flag, so the gradecore package is not importable here.
"""

import ast
import builtins
import io
import json
import os
import sys
import sysconfig
import types


SAFE_BUILTINS = [
    "abs", "all", "any", "ascii", "bin", "bool", "bytearray", "bytes",
    "callable", "chr", "classmethod", "complex", "dict", "divmod",
    "enumerate", "filter", "float", "format", "frozenset", "getattr",
    "hasattr", "hash", "hex", "int", "isinstance", "issubclass", "iter",
    "len", "list", "map", "max", "min", "next", "object", "oct", "ord",
    "pow", "print", "property", "range", "repr", "reversed", "round", "set",
    "slice", "sorted", "staticmethod", "str", "sum", "super", "tuple", "zip",
    "Ellipsis", "NotImplemented", "__build_class__",
    # exceptions candidates commonly raise or catch
    "ArithmeticError", "AssertionError", "AttributeError", "Exception",
    "IndexError", "KeyError", "LookupError", "NameError",
    "NotImplementedError", "OverflowError", "RecursionError", "RuntimeError",
    "StopIteration", "TypeError", "ValueError", "ZeroDivisionError",
]

# Dunder attributes that are ordinary protocol calls and lead nowhere
ALLOWED_DUNDERS = frozenset({
    "__init__", "__name__", "__doc__", "__len__", "__iter__", "__next__",
    "__contains__", "__getitem__", "__setitem__", "__delitem__",
    "__eq__", "__ne__", "__lt__", "__le__", "__gt__", "__ge__", "__hash__",
    "__repr__", "__str__", "__add__", "__sub__", "__mul__",
})

# Attributes that hand out interpreter frames or code objects
FRAME_ATTRIBUTES = frozenset({
    "gi_frame", "gi_code", "cr_frame", "cr_code", "ag_frame", "ag_code",
    "f_back", "f_globals", "f_locals", "f_builtins", "f_code",
    "tb_frame", "tb_next",
})

# Per-module public names: an include-list for typing, exclusions elsewhere
MODULE_INCLUDE = {
    "typing": frozenset({
        "Any", "Callable", "DefaultDict", "Deque", "Dict", "FrozenSet",
        "Generator", "Generic", "Hashable", "Iterable", "Iterator", "List",
        "Mapping", "MutableMapping", "MutableSequence", "MutableSet",
        "Optional", "Sequence", "Set", "Tuple", "TypeVar", "Union",
    }),
}
MODULE_EXCLUDE = {
    "operator": frozenset({"attrgetter", "methodcaller"}),
    "string": frozenset({"Formatter"}),
}

_ATTRIBUTE_BUILTINS = ("getattr", "hasattr", "setattr", "delattr")
_MATCH_CLASS = getattr(ast, "MatchClass", ())

# Events refused once candidate code may run
BLOCKED_EVENT_PREFIXES = (
    "os.", "subprocess.", "socket.", "ctypes.", "shutil.", "pty.", "signal.",
    "gc.", "mmap.", "fcntl.", "resource.", "syslog.", "sqlite3.",
    "urllib.", "http.", "ftplib.", "smtplib.", "poplib.", "imaplib.",
    "webbrowser.", "winreg.", "msvcrt.", "_winapi.",
    "sys.settrace", "sys.setprofile", "sys._current_frames", "sys.addaudithook",
    "builtins.input", "code.__new__", "function.__new__", "object.__getattr__",
)
# Events allowed when they only read below the standard library directory
READ_EVENTS = ("open", "os.listdir", "os.scandir")
_WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_CREAT | os.O_APPEND | os.O_TRUNC


# ===== ATTRIBUTE POLICY =====

def attribute_allowed(name):
    """False for names that lead from an object to the interpreter's internals."""
    if name in FRAME_ATTRIBUTES:
        return False
    if name.startswith("__") and name.endswith("__"):
        return name in ALLOWED_DUNDERS
    return True


def find_forbidden_access(tree):
    """
    Return a message for the first forbidden attribute access in a parsed
    submission, or None when there is none.
    """
    for node in ast.walk(tree):
        names = []
        if isinstance(node, ast.Attribute):
            names.append(node.attr)
        elif isinstance(node, _MATCH_CLASS):
            names.extend(node.kwd_attrs)
        elif (isinstance(node, ast.Call) and isinstance(node.func, ast.Name)
              and node.func.id in _ATTRIBUTE_BUILTINS and len(node.args) >= 2
              and isinstance(node.args[1], ast.Constant) and isinstance(node.args[1].value, str)):
            names.append(node.args[1].value)

        for name in names:
            if not attribute_allowed(name):
                return f"Access to attribute '{name}' is not allowed (line {node.lineno})"
    return None


def safe_getattr(obj, name, *default):
    if isinstance(name, str) and not attribute_allowed(name):
        raise AttributeError(f"Access to attribute '{name}' is not allowed")
    return getattr(obj, name, *default)


# ===== MODULE VIEWS =====

def restrict_module(module, allowed_modules, _memo=None):
    """
    Build a read-only view of a module for candidate code.

    Private names are dropped, and so is any module-valued attribute whose
    top-level package is not allowed; allowed submodules are viewed the same way.
    """
    memo = {} if _memo is None else _memo
    if module.__name__ in memo:
        return memo[module.__name__]

    view = types.ModuleType(module.__name__, getattr(module, "__doc__", None))
    memo[module.__name__] = view

    include = MODULE_INCLUDE.get(module.__name__)
    exclude = MODULE_EXCLUDE.get(module.__name__, frozenset())
    names = sorted(include) if include is not None else dir(module)

    for name in names:
        if name.startswith("_") or name in exclude:
            continue
        try:
            value = getattr(module, name)
        except AttributeError:
            continue
        if isinstance(value, types.ModuleType):
            if value.__name__.partition(".")[0] not in allowed_modules:
                continue
            value = restrict_module(value, allowed_modules, memo)
        setattr(view, name, value)
    return view


def make_import(allowed_modules):
    """Return an __import__ replacement that only loads allow-listed modules."""
    allowed = frozenset(allowed_modules)
    real_import = builtins.__import__

    def guarded_import(name, globals=None, locals=None, fromlist=(), level=0):
        if level != 0 or name.partition(".")[0] not in allowed:
            raise ImportError(f"Import of '{name}' is not allowed")
        module = real_import(name, globals, locals, fromlist, level)
        return restrict_module(module, allowed)

    return guarded_import


def build_scope(allowed_modules):
    """Globals for the candidate code: allow-listed builtins and nothing else."""
    safe = {name: getattr(builtins, name) for name in SAFE_BUILTINS}
    safe["getattr"] = safe_getattr
    safe["__import__"] = make_import(allowed_modules)
    return {"__builtins__": safe, "__name__": "submission"}


# ===== AUDIT HOOK =====

def read_roots():
    """Directories the import system may still read from."""
    roots = {os.path.dirname(os.__file__)}
    paths = sysconfig.get_paths()
    for key in ("stdlib", "platstdlib"):
        if paths.get(key):
            roots.add(paths[key])
    return tuple(os.path.normpath(os.path.abspath(root)) for root in roots)


def _is_stdlib_read(event, args, roots):
    path = args[0] if args else None
    if isinstance(path, bytes):
        path = os.fsdecode(path)
    if not isinstance(path, str):
        return False

    if event == "open":
        mode = args[1] if len(args) > 1 else None
        flags = args[2] if len(args) > 2 else 0
        if isinstance(mode, str):
            if any(c in mode for c in "wax+"):
                return False
        elif isinstance(flags, int) and flags & _WRITE_FLAGS:
            return False

    path = os.path.normpath(os.path.abspath(path))
    return any(path == root or path.startswith(root + os.sep) for root in roots)


def is_blocked_event(event, args, roots):
    """Decide whether an audit event is refused while candidate code runs."""
    if event in READ_EVENTS:
        return not _is_stdlib_read(event, args, roots)
    return event.startswith(BLOCKED_EVENT_PREFIXES)


def install_audit_hook(roots):
    """Refuse blocked events for the rest of this process; cannot be undone."""
    def hook(event, args):
        if is_blocked_event(event, args, roots):
            raise PermissionError(f"Operation '{event}' is not allowed")

    sys.addaudithook(hook)


# ===== EXECUTION =====

def _json_default(obj):
    if isinstance(obj, (set, frozenset)):
        try:
            return sorted(obj)
        except TypeError:
            return list(obj)
    if isinstance(obj, (bytes, bytearray)):
        return obj.decode("utf-8", errors="replace")
    return repr(obj)


def _describe(exc):
    if isinstance(exc, SyntaxError):
        return f"SyntaxError: {exc.msg} (line {exc.lineno})"
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


def run(payload):
    """Execute the payload and return the envelope dict."""
    max_chars = payload.get("max_output_chars", 10000)
    captured = io.StringIO()

    def envelope(**fields):
        fields["stdout"] = captured.getvalue()[:max_chars]
        return fields

    try:
        tree = ast.parse(payload["source"], "<submission>")
        code = compile(tree, "<submission>", "exec")
    except (SyntaxError, ValueError) as e:
        return envelope(status="error", kind="runtime_error", message=_describe(e))

    forbidden = find_forbidden_access(tree)
    if forbidden:
        return envelope(status="error", kind="runtime_error", message=forbidden)

    scope = build_scope(payload.get("allowed_modules", []))
    entry_point = payload["entry_point"]
    args = payload.get("args", [])

    real_stdout = sys.stdout
    sys.stdout = captured
    try:
        exec(code, scope)
        func = scope.get(entry_point)
        if not callable(func):
            return envelope(status="error", kind="runtime_error",
                            message=f"Function '{entry_point}' is not defined")
        result = func(*args)
        # in-place questions mutate their list or object argument and return nothing
        if result is None and args and isinstance(args[0], (list, dict)):
            result = args[0]
    except MemoryError:
        return envelope(status="error", kind="memory_error", message="Memory limit exceeded")
    except (Exception, SystemExit) as e:
        return envelope(status="error", kind="runtime_error", message=_describe(e))
    finally:
        sys.stdout = real_stdout

    return envelope(status="ok", result=result)


def dump(env):
    """Serialize an envelope; unserializable results degrade to their repr."""
    try:
        return json.dumps(env, default=_json_default)
    except (TypeError, ValueError, RecursionError):
        env["result"] = repr(env.get("result"))
        return json.dumps(env, default=_json_default)


def _write_all(fd, data):
    while data:
        written = os.write(fd, data)
        data = data[written:]


def main():
    payload = json.loads(sys.stdin.buffer.read().decode("utf-8"))
    token = payload.pop("token", None)

    for name in payload.get("allowed_modules", []):
        try:
            __import__(name)
        except ImportError:
            pass

    # the envelope goes to a private copy of stdout; fd 1 is silenced
    sys.stdout.flush()
    result_fd = os.dup(1)
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, 1)
    os.close(devnull)

    install_audit_hook(read_roots())

    env = run(payload)
    env["token"] = token
    _write_all(result_fd, b"\n" + dump(env).encode("ascii") + b"\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
