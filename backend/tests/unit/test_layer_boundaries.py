"""Import rules for the mecm_health package layers.

  domain/      stdlib + mecm_health.domain only
  use_cases/   stdlib + mecm_health.domain + mecm_health.use_cases
  schemas/     may not reach into infra/, wiring/ or interfaces/
  infra/       may not reach into wiring/ or interfaces/

Relative imports are resolved against the importing module's package
before the rules are applied.  SQLAlchemy, pyodbc and pydantic are also
banned by name from domain/ and use_cases/.
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path

import pytest

# ── Paths ────────────────────────────────────────────────────────────

PACKAGE = "mecm_health"
PACKAGE_ROOT = Path(__file__).resolve().parents[2] / PACKAGE

STDLIB: frozenset[str] = frozenset(sys.stdlib_module_names)
STORAGE_AND_VALIDATION = ("sqlalchemy", "pyodbc", "pydantic", "pydantic_settings")


# ── Helpers ──────────────────────────────────────────────────────────


def module_package(path: Path, root: Path = PACKAGE_ROOT) -> list[str]:
    """Dotted package of the module at *path*, as a list of parts."""
    rel = path.relative_to(root.parent).with_suffix("")
    # drops the module name, or "__init__" for a package
    return list(rel.parts[:-1])


def resolve(node: ast.ImportFrom, package: list[str]) -> str:
    """Absolute module name an ImportFrom refers to."""
    if node.level == 0:
        return node.module or ""
    if node.level - 1 > len(package):
        raise ValueError(f"relative import beyond top-level package (level {node.level})")
    base = package[: len(package) - (node.level - 1)]
    return ".".join(base + ([node.module] if node.module else []))


def imported_modules(path: Path, root: Path = PACKAGE_ROOT) -> list[tuple[int, str]]:
    """(line, absolute module) for every import in *path*."""
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    package = module_package(path, root)
    found: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            found.extend((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            found.append((node.lineno, resolve(node, package)))
    return found


def violations(
    layer: str,
    allowed: tuple[str, ...] = (),
    forbidden: tuple[str, ...] = (),
    root: Path = PACKAGE_ROOT,
) -> list[str]:
    """Imports in *layer* breaking its rule.

    With *allowed*, anything outside stdlib and those prefixes is
    reported; with *forbidden*, only those prefixes are.
    """
    found = []
    for path in sorted((root / layer).rglob("*.py")):
        rel = path.relative_to(root.parent)
        for lineno, module in imported_modules(path, root):
            top = module.split(".")[0]
            if allowed:
                ok = top in STDLIB or any(_under(module, p) for p in allowed)
            else:
                ok = not any(_under(module, p) for p in forbidden)
            if not ok:
                found.append(f"  {rel}:{lineno} imports '{module}'")
    return found


def _under(module: str, prefix: str) -> bool:
    return module == prefix or module.startswith(prefix + ".")


def _report(layer: str, found: list[str]) -> str:
    return f"{layer} layer boundary violations:\n" + "\n".join(found)


# ── Resolution ───────────────────────────────────────────────────────


class TestRelativeImportResolution:
    @pytest.fixture
    def tree(self, tmp_path):
        root = tmp_path / PACKAGE
        (root / "domain" / "health").mkdir(parents=True)
        return root

    def test_parent_relative_import_resolved(self, tree):
        module = tree / "domain" / "health" / "adapter.py"
        module.write_text(
            "from ..common.errors import SourceError\n"
            "from .queries import QueryOutcome\n"
            "from ...infra.source.sql_executor import SqlQueryExecutor\n",
            encoding="utf-8",
        )
        assert [m for _, m in imported_modules(module, tree)] == [
            "mecm_health.domain.common.errors",
            "mecm_health.domain.health.queries",
            "mecm_health.infra.source.sql_executor",
        ]

    def test_package_init_resolves_against_itself(self, tree):
        init = tree / "domain" / "health" / "__init__.py"
        init.write_text("from .findings import generate_findings\n", encoding="utf-8")
        assert imported_modules(init, tree) == [(1, "mecm_health.domain.health.findings")]

    def test_relative_escape_from_domain_is_a_violation(self, tree):
        (tree / "domain" / "health" / "adapter.py").write_text(
            "from ...infra.source.sql_executor import SqlQueryExecutor\n", encoding="utf-8"
        )
        found = violations("domain", allowed=(f"{PACKAGE}.domain",), root=tree)
        assert found == [
            "  mecm_health/domain/health/adapter.py:1 imports 'mecm_health.infra.source.sql_executor'"
        ]

    def test_third_party_in_domain_is_a_violation(self, tree):
        (tree / "domain" / "health" / "models.py").write_text(
            "import sqlalchemy\nfrom pydantic import BaseModel\n", encoding="utf-8"
        )
        found = violations("domain", allowed=(f"{PACKAGE}.domain",), root=tree)
        assert len(found) == 2


# ── Rules ────────────────────────────────────────────────────────────


class TestLayerBoundaries:
    def test_domain_imports_only_stdlib_and_domain(self):
        found = violations("domain", allowed=(f"{PACKAGE}.domain",))
        assert not found, _report("domain", found)

    def test_use_cases_import_only_stdlib_domain_and_use_cases(self):
        found = violations(
            "use_cases", allowed=(f"{PACKAGE}.domain", f"{PACKAGE}.use_cases")
        )
        assert not found, _report("use_cases", found)

    @pytest.mark.parametrize("layer", ["domain", "use_cases"])
    def test_inner_layers_free_of_storage_and_validation_libraries(self, layer):
        found = violations(layer, forbidden=STORAGE_AND_VALIDATION)
        assert not found, _report(layer, found)

    def test_schemas_do_not_reach_outward(self):
        found = violations(
            "schemas",
            forbidden=tuple(f"{PACKAGE}.{p}" for p in ("infra", "wiring", "interfaces")),
        )
        assert not found, _report("schemas", found)

    def test_infra_does_not_depend_on_entry_points(self):
        found = violations(
            "infra", forbidden=tuple(f"{PACKAGE}.{p}" for p in ("wiring", "interfaces"))
        )
        assert not found, _report("infra", found)

    def test_every_layer_is_scanned(self):
        for layer in ("domain", "use_cases", "schemas", "infra"):
            assert list((PACKAGE_ROOT / layer).rglob("*.py")), layer


# ── Importability ────────────────────────────────────────────────────


class TestPackagesImportable:
    def test_inner_layers(self):
        import mecm_health.domain.common.errors
        import mecm_health.domain.health
        import mecm_health.use_cases.health

    def test_outer_layers(self):
        import mecm_health.infra.snapshot.file_store
        import mecm_health.infra.source.catalog
        import mecm_health.interfaces.cli
        import mecm_health.schemas
        import mecm_health.wiring.bootstrap
