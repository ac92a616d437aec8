from __future__ import annotations

import ast


class ParentAnnotator(ast.NodeVisitor):
    def __init__(self) -> None:
        self.parents: dict[ast.AST, ast.AST] = {}

    def generic_visit(self, node: ast.AST) -> None:
        for child in ast.iter_child_nodes(node):
            self.parents[child] = node
            self.visit(child)


class ImportVisitor(ast.NodeVisitor):
    """Record ``local name -> fully qualified name`` for a module's imports.

    ``is_package`` marks a package ``__init__`` module, which is its own base
    for a single-dot relative import.
    """

    def __init__(self, module_name: str, *, is_package: bool = False) -> None:
        self.module = module_name
        self.is_package = is_package
        self.imports: dict[str, str] = {}

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            if alias.asname:
                self.imports[alias.asname] = alias.name
            else:
                root = alias.name.split(".")[0]
                self.imports[root] = root

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if not node.module and node.level == 0:
            return
        if node.level > 0:
            parts = self.module.split(".")
            drop = node.level - 1 if self.is_package else node.level
            if drop > len(parts):
                return
            base = parts[: len(parts) - drop]
            if node.module:
                base.append(node.module)
            source = ".".join(base)
        else:
            source = node.module or ""
        for alias in node.names:
            if alias.name == "*":
                continue
            local = alias.asname or alias.name
            fqn = f"{source}.{alias.name}" if source else alias.name
            self.imports[local] = fqn
