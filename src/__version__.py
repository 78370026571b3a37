"""Version information for Merchantry."""
import tomllib
from pathlib import Path


def get_version():
    """Get version from pyproject.toml."""
    try:
        project_root = Path(__file__).parent.parent
        pyproject_path = project_root / "pyproject.toml"

        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
            return data["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "0.3.0"


__version__ = get_version()
