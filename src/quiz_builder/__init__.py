"""Top-level package for the Quiz Builder core.

Provides subpackages:
- quiz_builder.core – data models, schemas, errors and serialization
- quiz_builder.storage – manifest store, page cache and session assets
- quiz_builder.editor – active page buffer, reorder engine and session API
- quiz_builder.archive – zip archive export/import
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            for line in pyproject.read_text().splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.3.1"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    from importlib.metadata import PackageNotFoundError, version as pkg_version
    try:
        return pkg_version("quiz_builder")
    except PackageNotFoundError:
        return "0.0.0"

__version__ = _get_version()
__all__: list[str] = ["__version__"]
