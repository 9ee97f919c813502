#!/usr/bin/env python3
"""Concatenate the svcgen package into a single-file svcgen.py."""

import ast
import subprocess
import sys
from pathlib import Path

SRC = Path(__file__).parent / "src" / "svcgen"
OUTPUT = Path(__file__).parent / "svcgen.py"

# Module order respects the dependency graph (no forward references).
MODULES = [
    "core/constants.py",
    "pacts/types.py",
    "core/services.py",
    "io/config.py",
    "io/output.py",
    "io/git.py",
    "cli.py",
]

PACKAGE = "svcgen"
THIRDPARTY_MODULES = {"yaml"}

SHEBANG = "#!/usr/bin/env python3\n"
DOCSTRING = '"""svcgen — Kubernetes Service manifest generator (single file)."""\n'


def _is_internal(node: ast.stmt) -> bool:
    if isinstance(node, ast.ImportFrom):
        return (node.module or "").split(".")[0] == PACKAGE
    return any(alias.name.split(".")[0] == PACKAGE for alias in node.names)


def collect_imports_and_body(path: Path) -> tuple[list[str], list[str]]:
    """Split a module into its top-level external imports and the rest.

    The module docstring and imports of the package itself are dropped.
    """
    source = path.read_text(encoding="utf-8")
    lines = source.splitlines(keepends=True)
    tree = ast.parse(source)

    dropped: set[int] = set()
    imports = []
    for i, node in enumerate(tree.body):
        is_docstring = (i == 0 and isinstance(node, ast.Expr)
                        and isinstance(node.value, ast.Constant)
                        and isinstance(node.value.value, str))
        is_import = isinstance(node, (ast.Import, ast.ImportFrom))
        if not (is_docstring or is_import):
            continue
        dropped.update(range(node.lineno - 1, node.end_lineno))
        if is_import and not _is_internal(node):
            imports.append(ast.get_source_segment(source, node) + "\n")

    body = [line for n, line in enumerate(lines) if n not in dropped]
    return imports, body


def assemble(src: Path = SRC) -> str:
    """Return the single-file script source."""
    all_imports: dict[str, str] = {}  # dedup by stripped content
    all_bodies: list[str] = []

    for mod_path in MODULES:
        full_path = src / mod_path
        if not full_path.exists():
            raise FileNotFoundError(full_path)

        imports, body = collect_imports_and_body(full_path)
        for imp in imports:
            key = imp.strip()
            if key and key not in all_imports:
                all_imports[key] = imp

        section = mod_path.replace(".py", "").replace("/", ".")
        all_bodies.append(f"\n# --- {section} ---\n")
        all_bodies.extend(body)

    stdlib_imports = []
    thirdparty_imports = []
    for imp in all_imports.values():
        module = imp.strip().split()[1].split(".")[0]
        if module in THIRDPARTY_MODULES:
            thirdparty_imports.append(imp)
        else:
            stdlib_imports.append(imp)

    lines = [SHEBANG, DOCSTRING, "\n"]
    lines.extend(sorted(stdlib_imports))
    if thirdparty_imports:
        lines.append("\n")
        lines.extend(thirdparty_imports)
    lines.append("\n")
    lines.extend(all_bodies)
    lines.append('\n\nif __name__ == "__main__":\n')
    lines.append("    main()\n")
    return "".join(lines)


def main():
    try:
        source = assemble()
    except FileNotFoundError as exc:
        print(f"Error: {exc} not found", file=sys.stderr)
        sys.exit(1)
    OUTPUT.write_text(source, encoding="utf-8")
    print(f"Built {OUTPUT} ({sum(1 for l in source.splitlines() if l.strip())} non-empty lines)")

    # Smoke test
    result = subprocess.run(
        [sys.executable, str(OUTPUT), "--help"],
        capture_output=True, text=True,
    )
    if result.returncode != 0:
        print(f"Smoke test FAILED:\n{result.stderr}", file=sys.stderr)
        sys.exit(1)
    print("Smoke test passed (--help)")


if __name__ == "__main__":
    main()
