from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Build output and installed packages never belong in a fresh copy.
IGNORED_TEMPLATE_ENTRIES = ("node_modules", ".next", ".git")


class ScaffoldError(RuntimeError):
    pass


class PackageManagerMissing(ScaffoldError):
    def __init__(self, name: str):
        super().__init__(
            f"{name} is not installed. Please install it first:\n  npm install -g {name}"
        )
        self.name = name


class TargetExistsError(ScaffoldError):
    def __init__(self, target: Path):
        super().__init__(f"Directory {target} already exists.")
        self.target = target


def check_package_manager(name: str) -> str:
    """Resolve the package manager executable and make sure it runs."""
    executable = shutil.which(name)
    if executable is None:
        raise PackageManagerMissing(name)
    try:
        subprocess.run(
            [executable, "--version"],
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug("%s --version failed: %s", executable, e)
        raise PackageManagerMissing(name) from e
    return executable


def copy_template(template_dir: PathLike, target_dir: PathLike) -> Path:
    """Copy the starter template into a new directory and return its path."""
    source = Path(template_dir)
    target = Path(target_dir)
    if target.exists():
        raise TargetExistsError(target)
    if not source.is_dir():
        raise ScaffoldError(f"Template directory {source} not found.")

    logger.info("Copying template %s -> %s", source, target)
    shutil.copytree(source, target, ignore=shutil.ignore_patterns(*IGNORED_TEMPLATE_ENTRIES))
    return target


def install_dependencies(target_dir: PathLike, package_manager: str) -> None:
    """Run ``<package manager> install`` in the new project with inherited output."""
    cmd = [package_manager, "install"]
    logger.info("Running %s in %s", " ".join(cmd), target_dir)
    try:
        subprocess.run(cmd, cwd=str(target_dir), check=True)
    except subprocess.CalledProcessError as e:
        raise ScaffoldError(f"Dependency install failed with exit code {e.returncode}") from e
    except OSError as e:
        raise ScaffoldError(f"Could not run {package_manager}: {e}") from e
