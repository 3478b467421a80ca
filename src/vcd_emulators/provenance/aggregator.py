"""
Dependency provenance report.

Collects the resolved download URL of every dependency pinned in the
package-lock.json files of a repository and writes them, grouped by host, into
a software provenance document.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

LOCK_MANIFEST = "package-lock.json"
IGNORED_FOLDERS = frozenset({".github", ".gradle", ".idea", ".git", "node_modules"})
PROVENANCE_SCHEMA_ID = "http://vmware.com/schemas/software_provenance-0.2.0.json"
DEFAULT_COMPONENT_NAME = "cloud-director-ext-emulators"
DEFAULT_SOURCE_PATH = "/vmware/cloud-director-ext-emulators"

_DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21, "ws": 80, "wss": 443}

# Ordered set: dict keys keep first-insertion order.
Components = Dict[str, None]


def collect_components(current_dir: Union[str, Path], components: Optional[Components] = None) -> Components:
    """
    Walk ``current_dir`` and add every resolved dependency URL to ``components``.

    A failure inside a directory (unreadable listing, malformed manifest) is
    logged and ends the walk of that directory only; sibling and parent
    directories are still visited.
    """
    components = {} if components is None else components
    current_dir = Path(current_dir)
    try:
        for name in sorted(os.listdir(current_dir)):
            file_path = current_dir / name
            if name == LOCK_MANIFEST:
                with open(file_path, "r", encoding="utf-8") as f:
                    add_dependencies(json.load(f), components)
            elif file_path.is_dir() and name not in IGNORED_FOLDERS:
                collect_components(file_path, components)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.error(f"Could not generate dependencies for {current_dir}: {e}")
    return components


def add_dependencies(package_lock: Dict[str, Any], components: Components) -> Components:
    """Add the ``resolved`` URL of each entry of the manifest's ``dependencies``."""
    dependencies = package_lock.get("dependencies") or {}
    for name, value in dependencies.items():
        resolved = value.get("resolved")
        if resolved is None:
            logger.debug(f"Dependency {name} has no resolved URL")
            continue
        components[resolved] = None
    return components


def url_host(resolved_url: str) -> str:
    """Host of the URL, with the port only when it is not the scheme's default."""
    parts = urlsplit(resolved_url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if parts.port is not None and parts.port != _DEFAULT_PORTS.get(parts.scheme):
        host = f"{host}:{parts.port}"
    return host


def group_by_host(components: Components) -> Dict[str, List[str]]:
    """
    Map each host to the URL suffixes served from it.

    The suffix starts at the first occurrence of the host text in the URL, so
    it keeps the host itself and everything after it.
    """
    host_paths: Dict[str, List[str]] = {}
    for resolved_url in components:
        host = url_host(resolved_url)
        if not host:
            logger.warning(f"Skipping dependency without host: {resolved_url}")
            continue
        # TODO: confirm with the report owners whether the suffix should be the URL path alone
        start = max(resolved_url.lower().find(host), 0)
        host_paths.setdefault(host, []).append(resolved_url[start:])
    return host_paths


def generate_result(name: str = DEFAULT_COMPONENT_NAME,
                    source_path: str = DEFAULT_SOURCE_PATH) -> Dict[str, Any]:
    """Empty provenance document."""
    return {
        "id": PROVENANCE_SCHEMA_ID,
        "root": "latest",
        "all-components": {
            "name": name,
            "version": "latest",
            "source_repositories": [
                {
                    "content": "source",
                    "host": "github.com",
                    "protocol": "git",
                    "paths": [source_path],
                    "branch": "master"
                },
            ],
            "components": {},
            "artifact_repositories": []
        }
    }


def build_report(root_dir: Union[str, Path], name: str = DEFAULT_COMPONENT_NAME,
                 source_path: str = DEFAULT_SOURCE_PATH) -> Dict[str, Any]:
    components = collect_components(root_dir)
    logger.info(f"Found {len(components)} resolved dependencies under {root_dir}")

    result = generate_result(name, source_path)
    artifact_repos = result["all-components"]["artifact_repositories"]
    for host, paths in group_by_host(components).items():
        artifact_repos.append({
            "content": "binary",
            "host": host,
            "path": paths
        })
    return result


def default_output_path(root_dir: Union[str, Path]) -> Path:
    return Path(root_dir) / ".github" / "workflows" / "dependencies.json"


def generate_dependencies_file(root_dir: Union[str, Path],
                               output_path: Optional[Union[str, Path]] = None,
                               **report_kwargs) -> Path:
    """Build the report for ``root_dir`` and write it, replacing any previous one."""
    output_path = Path(output_path) if output_path else default_output_path(root_dir)
    result = build_report(root_dir, **report_kwargs)

    if output_path.exists():
        output_path.unlink()
    output_path.write_text(json.dumps(result, separators=(",", ":")), encoding="utf-8")
    logger.info(f"Wrote dependency provenance to {output_path}")
    return output_path
