"""Document validation and pre-flight checks.

Document validation runs after load and merge, before anything compiles.
Pre-flight checks cover the backend toolchain (version range, plugins) and,
on request, reachability of box URLs.

Check functions return lists of human-readable error messages so that
several problems can be reported together; callers decide when to halt.
"""

import logging
import re
from typing import Optional

import requests

from backends.base import VersionConstraintError
from config import ConfigError
from document import load_document

logger = logging.getLogger(__name__)


class NoNodesDefinedError(ConfigError):
    """Merged document defines no nodes."""


# -----------------------------------------------------------------------------
# Document Validation
# -----------------------------------------------------------------------------

def validate_document(document) -> list[str]:
    """Check structural preconditions of a merged document.

    Only the presence of at least one node is required; per-node content is
    not inspected.

    Args:
        document: ConfigDocument instance

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if not document.nodes:
        sources = ', '.join(str(p) for p in document.source_paths) or 'configuration'
        errors.append(
            f"No nodes defined in {sources}\n"
            f"  Add at least one entry under 'nodes:'"
        )

    return errors


def check_document(document) -> None:
    """Validate a document, raising on failure.

    Raises:
        NoNodesDefinedError: If the document defines no nodes
    """
    errors = validate_document(document)
    if errors:
        raise NoNodesDefinedError(errors[0].split('\n')[0])
    logger.debug(f"Document valid: {len(document.nodes)} nodes")


# -----------------------------------------------------------------------------
# Backend Version Validation
# -----------------------------------------------------------------------------

CONSTRAINT_RE = re.compile(r'^\s*(>=|<=|==|!=|>|<|=)?\s*(\d+(?:\.\d+)*)\s*$')


def parse_version(text: str) -> Optional[str]:
    """Extract a dotted version from tool output.

    Example: 'Vagrant 2.4.1' -> '2.4.1'

    Returns:
        Version string or None if not found
    """
    match = re.search(r'(\d+(?:\.\d+)+)', text or '')
    if match:
        return match.group(1)
    return None


def _version_tuple(version: str, width: int) -> tuple[int, ...]:
    parts = [int(p) for p in version.split('.')]
    return tuple(parts + [0] * (width - len(parts)))


def check_version_constraint(version: str, constraint: str) -> bool:
    """Check a version against a comma-separated constraint.

    Supported operators: >=, >, <=, <, = (or ==), !=. A bare version means =.
    Missing components compare as zero ('3' == '3.0.0').

    Example: check_version_constraint('2.4.1', '>= 2.2.0, < 3.0') -> True

    Raises:
        ConfigError: If the constraint cannot be parsed
    """
    for clause in constraint.split(','):
        if not clause.strip():
            continue
        match = CONSTRAINT_RE.match(clause)
        if not match:
            raise ConfigError(f"Invalid version constraint: '{clause.strip()}'")
        op, required = match.group(1) or '=', match.group(2)

        width = max(len(version.split('.')), len(required.split('.')))
        actual_t = _version_tuple(version, width)
        required_t = _version_tuple(required, width)

        satisfied = {
            '>=': actual_t >= required_t,
            '>': actual_t > required_t,
            '<=': actual_t <= required_t,
            '<': actual_t < required_t,
            '=': actual_t == required_t,
            '==': actual_t == required_t,
            '!=': actual_t != required_t,
        }[op]
        if not satisfied:
            return False
    return True


def validate_backend_version(backend, constraint: str) -> str:
    """Verify the backend version is within the supported range.

    Args:
        backend: Backend adapter
        constraint: Version constraint (e.g., '>= 2.2.0, < 3.0')

    Returns:
        The detected version

    Raises:
        VersionConstraintError: If the version is unknown or out of range
    """
    raw = backend.version()
    version = parse_version(raw)
    if not version:
        raise VersionConstraintError(
            f"Cannot determine {backend.name} version (got: {raw.strip() or 'no output'}); "
            f"required: {constraint}"
        )

    if not check_version_constraint(version, constraint):
        raise VersionConstraintError(
            f"{backend.name} {version} is not supported; required: {constraint}"
        )

    logger.info(f"{backend.name} {version} satisfies {constraint}")
    return version


# -----------------------------------------------------------------------------
# Box URL Validation
# -----------------------------------------------------------------------------

def validate_box_urls(boxes: dict, timeout: float = 10.0) -> list[str]:
    """Check that every box URL in the catalog answers an HTTP HEAD.

    Non-HTTP URLs (e.g., file paths) are skipped.

    Args:
        boxes: Box name -> URL catalog
        timeout: Per-request timeout in seconds

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    for box, url in boxes.items():
        url = str(url)
        if not url.startswith(('http://', 'https://')):
            logger.debug(f"Skipping non-HTTP box URL for {box}: {url}")
            continue

        try:
            resp = requests.head(url, allow_redirects=True, timeout=timeout)
            if resp.status_code >= 400:
                errors.append(
                    f"Box URL for '{box}' returned {resp.status_code}\n"
                    f"  URL: {url}"
                )
            else:
                logger.info(f"Box URL for {box} reachable ({resp.status_code})")
        except requests.exceptions.ConnectionError:
            errors.append(
                f"Cannot connect to box URL for '{box}'\n"
                f"  URL: {url}\n"
                f"  Check: host is online and reachable from this machine"
            )
        except requests.exceptions.Timeout:
            errors.append(f"Timeout fetching box URL for '{box}': {url}")
        except requests.exceptions.RequestException as e:
            errors.append(f"Error checking box URL for '{box}': {e}")

    return errors


# -----------------------------------------------------------------------------
# Combined Pre-flight
# -----------------------------------------------------------------------------

def run_preflight_checks(settings, backend, check_boxes: bool = False,
                         timeout: float = 10.0) -> tuple[bool, dict]:
    """Run standalone pre-flight checks.

    Args:
        settings: Settings instance
        backend: Backend adapter
        check_boxes: Also check box URL reachability
        timeout: Per-request timeout for box URL checks

    Returns:
        (success, results) tuple where results maps category to
        {'passed': [...], 'failed': [...]}
    """
    results: dict[str, dict[str, list[str]]] = {
        'config': {'passed': [], 'failed': []},
        'backend': {'passed': [], 'failed': []},
        'plugins': {'passed': [], 'failed': []},
        'boxes': {'passed': [], 'failed': []},
    }

    # Configuration checks
    document = None
    try:
        document = load_document(settings.config_file, settings.local_config_file)
        results['config']['passed'].append(f"{settings.config_file} loaded")
        if len(document.source_paths) > 1:
            results['config']['passed'].append(f"{settings.local_config_file} merged")
        doc_errors = validate_document(document)
        if doc_errors:
            results['config']['failed'].extend(doc_errors)
        else:
            results['config']['passed'].append(f"{len(document.nodes)} nodes defined")
    except ConfigError as e:
        results['config']['failed'].append(str(e))

    # Backend version
    try:
        version = validate_backend_version(backend, settings.version_constraint)
        results['backend']['passed'].append(
            f"{backend.name} {version} (required: {settings.version_constraint})"
        )
    except (VersionConstraintError, ConfigError) as e:
        results['backend']['failed'].append(str(e))

    # Plugins (reported, not installed)
    if document is not None and document.plugins:
        installed = set(backend.installed_plugins())
        for plugin in document.plugins:
            if plugin in installed:
                results['plugins']['passed'].append(f"{plugin} installed")
            else:
                results['plugins']['failed'].append(
                    f"{plugin} not installed\n"
                    f"  Installed automatically by: boxfile apply"
                )

    # Box URLs
    if check_boxes and document is not None:
        box_errors = validate_box_urls(document.boxes, timeout=timeout)
        results['boxes']['failed'].extend(box_errors)
        if document.boxes and not box_errors:
            results['boxes']['passed'].append(f"{len(document.boxes)} box URLs checked")

    all_failed = [item for category in results.values() for item in category['failed']]
    return len(all_failed) == 0, results


def format_preflight_results(results: dict) -> str:
    """Format pre-flight results for display.

    Args:
        results: Results dict from run_preflight_checks

    Returns:
        Formatted string for display
    """
    lines = ["\nPreflight checks:\n"]

    category_names = {
        'config': 'Configuration',
        'backend': 'Backend',
        'plugins': 'Plugins',
        'boxes': 'Box URLs',
    }

    for key, name in category_names.items():
        category = results.get(key, {'passed': [], 'failed': []})
        if category['passed'] or category['failed']:
            lines.append(f"{name}:")
            for item in category['passed']:
                lines.append(f"✓ {item}")
            for item in category['failed']:
                # Multi-line errors: first line marked, rest indented
                first_line = item.split('\n')[0]
                lines.append(f"✗ {first_line}")
                for line in item.split('\n')[1:]:
                    lines.append(f"  {line}")
            lines.append("")

    all_passed = all(len(cat['failed']) == 0 for cat in results.values())
    if all_passed:
        lines.append("All checks passed.")
    else:
        lines.append("Some checks failed. Fix issues before running apply.")

    return '\n'.join(lines)
