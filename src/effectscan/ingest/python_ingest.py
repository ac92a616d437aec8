from __future__ import annotations

import ast
import logging
import os
from pathlib import Path
from typing import Iterable

from effectscan.config import AnalysisConfig
from effectscan.ingest.adapter_contract import FunctionUnit, ParsedModule
from effectscan.ingest.visitors import ImportVisitor, ParentAnnotator

logger = logging.getLogger(__name__)

_INERT_TOP_LEVEL = (ast.Expr, ast.Pass)


def iter_python_paths(paths: Iterable[Path | str], *, config: AnalysisConfig) -> list[Path]:
    """Expand input paths to python files, pruning ignored directories early."""
    out: list[Path] = []
    for p in paths:
        path = Path(p)
        if path.is_dir():
            for root, dirnames, filenames in os.walk(path, topdown=True):
                if config.exclude_dirs:
                    dirnames[:] = [d for d in dirnames if d not in config.exclude_dirs]
                dirnames.sort()
                for filename in sorted(filenames):
                    if not filename.endswith(".py"):
                        continue
                    candidate = Path(root) / filename
                    if config.is_ignored_path(candidate):
                        continue
                    out.append(candidate)
        else:
            if config.is_ignored_path(path):
                continue
            out.append(path)
    return sorted(out)


def module_name(path: Path, project_root: Path | None = None) -> str:
    rel = path.with_suffix("")
    if project_root is not None:
        try:
            rel = rel.resolve().relative_to(project_root.resolve())
        except ValueError:
            rel = Path(rel.name)
    else:
        rel = Path(rel.name)
    parts = list(rel.parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def decorator_name(node: ast.AST) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parts: list[str] = []
        current: ast.AST = node
        while isinstance(current, ast.Attribute):
            parts.append(current.attr)
            current = current.value
        if isinstance(current, ast.Name):
            parts.append(current.id)
            return ".".join(reversed(parts))
        return None
    if isinstance(node, ast.Call):
        return decorator_name(node.func)
    return None


def _marker_kind(name: str, config: AnalysisConfig) -> str | None:
    last = name.split(".")[-1]
    if last in config.declare_markers:
        return "declare"
    if last in config.entrypoint_markers:
        return "entrypoint"
    if last in config.infer_markers:
        return "infer"
    return None


def _declaration_payload(decorator: ast.expr) -> tuple[str | None, str | None]:
    if not isinstance(decorator, ast.Call):
        return None, "declare marker requires a declaration payload"
    if len(decorator.args) != 1 or decorator.keywords:
        return None, "declare marker takes exactly one positional string payload"
    payload = decorator.args[0]
    if isinstance(payload, ast.Constant) and isinstance(payload.value, str):
        return payload.value, None
    return None, "declare payload must be a string literal"


def _enclosing_scopes(
    node: ast.AST, parents: dict[ast.AST, ast.AST]
) -> tuple[list[str], str | None, list[str]]:
    scopes: list[str] = []
    function_scopes: list[str] = []
    class_name: str | None = None
    current = parents.get(node)
    first = True
    while current is not None:
        if isinstance(current, ast.ClassDef):
            scopes.append(current.name)
            if first:
                class_name = current.name
        elif isinstance(current, (ast.FunctionDef, ast.AsyncFunctionDef)):
            scopes.append(current.name)
            function_scopes.append(current.name)
        if isinstance(current, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            first = False
        current = parents.get(current)
    return list(reversed(scopes)), class_name, list(reversed(function_scopes))


def _param_layout(
    fn: ast.FunctionDef | ast.AsyncFunctionDef,
) -> tuple[tuple[str, ...], int, dict[str, ast.expr]]:
    positional = [a.arg for a in (fn.args.posonlyargs + fn.args.args)]
    keyword_only = [a.arg for a in fn.args.kwonlyargs]
    defaults: dict[str, ast.expr] = {}
    if fn.args.defaults:
        for name, default in zip(positional[-len(fn.args.defaults):], fn.args.defaults):
            defaults[name] = default
    for name, default in zip(keyword_only, fn.args.kw_defaults):
        if default is not None:
            defaults[name] = default
    return tuple(positional + keyword_only), len(positional), defaults


def _binds_receiver(fn: ast.FunctionDef | ast.AsyncFunctionDef, class_name: str | None) -> bool:
    if class_name is None:
        return False
    for decorator in fn.decorator_list:
        if decorator_name(decorator) in {"staticmethod", "functools.staticmethod"}:
            return False
    return True


def collect_function_units(
    tree: ast.Module,
    *,
    path: Path,
    module: str,
    config: AnalysisConfig,
) -> list[FunctionUnit]:
    parent = ParentAnnotator()
    parent.visit(tree)
    parents = parent.parents
    units: list[FunctionUnit] = []
    for node in ast.walk(tree):
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        scopes, class_name, lexical_scope = _enclosing_scopes(node, parents)
        markers: set[str] = set()
        declaration_text: str | None = None
        declaration_error: str | None = None
        for decorator in node.decorator_list:
            name = decorator_name(decorator)
            if name is None:
                continue
            kind = _marker_kind(name, config)
            if kind is None:
                continue
            markers.add(kind)
            if kind == "declare" and declaration_text is None and declaration_error is None:
                declaration_text, declaration_error = _declaration_payload(decorator)
        params, positional_count, defaults = _param_layout(node)
        qual_parts = [module] if module else []
        qual_parts.extend(scopes)
        qual_parts.append(node.name)
        units.append(
            FunctionUnit(
                key=".".join(qual_parts),
                name=node.name,
                module=module,
                path=path,
                lineno=node.lineno,
                params=params,
                positional_count=positional_count,
                defaults=defaults,
                body=tuple(node.body),
                markers=frozenset(markers),
                declaration_text=declaration_text,
                declaration_error=declaration_error,
                class_name=class_name,
                lexical_scope=tuple(lexical_scope),
                binds_receiver=_binds_receiver(node, class_name),
            )
        )
    units.sort(key=lambda unit: (unit.lineno, unit.key))
    return units


def parse_python_source(
    source: str,
    *,
    path: Path,
    config: AnalysisConfig,
) -> ParsedModule:
    """Parse one file; raises ``SyntaxError`` for unparsable input."""
    tree = ast.parse(source, filename=str(path))
    module = module_name(path, config.project_root)
    imports = ImportVisitor(module, is_package=path.stem == "__init__")
    imports.visit(tree)
    functions = collect_function_units(tree, path=path, module=module, config=config)
    logger.debug("parsed %s: %d function(s)", path, len(functions))
    return ParsedModule(
        path=path,
        module=module,
        tree=tree,
        functions=tuple(functions),
        module_bindings=tuple(
            stmt for stmt in tree.body if not isinstance(stmt, _INERT_TOP_LEVEL)
        ),
        imports=dict(imports.imports),
    )
