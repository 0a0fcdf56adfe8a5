#!/usr/bin/env python3
"""CLI entry point for boxfile.

Commands:
- validate: Load, merge and validate the configuration
- nodes: List nodes in definition order
- compile: Print compiled operations per node
- apply: Full run against the backend (or a dry-run preview)
- preflight: Check configuration, backend version, plugins and box URLs

Any fatal error prints a single 'ERROR: <message>' line and exits 1.
"""

import argparse
import json
import logging
import subprocess
import sys
from pathlib import Path

from backends import DryRunBackend, VagrantBackend
from common import FatalError
from compiler import compile_document
from config import load_settings
from hooks import load_hooks
from runner import Runner
from validation import format_preflight_results, run_preflight_checks

logger = logging.getLogger(__name__)


def get_version():
    """Get version from git tags (do not use hardcoded VERSION constant)."""
    try:
        result = subprocess.run(
            ['git', 'describe', '--tags', '--abbrev=0'],
            capture_output=True, text=True,
            cwd=Path(__file__).parent,
            check=False,
        )
        return result.stdout.strip() if result.returncode == 0 else 'dev'
    except OSError:
        return 'dev'


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--root',
        help='Project root (default: $BOXFILE_ROOT or current directory)',
    )
    parser.add_argument(
        '--config', '-c',
        dest='config_file',
        help='Primary configuration file (default: vagrant.yaml)',
    )
    parser.add_argument(
        '--local-config',
        dest='local_config_file',
        help='Local override file (default: vagrant.local.yaml)',
    )
    parser.add_argument(
        '--hooks-dir',
        help='Directory of hook definitions (default: hooks)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging',
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='boxfile',
        description='Compile layered YAML machine definitions into backend operations',
    )
    parser.add_argument('--version', action='version', version=f'boxfile {get_version()}')
    sub = parser.add_subparsers(dest='command', metavar='<command>')

    p = sub.add_parser('validate', help='Load, merge and validate the configuration')
    _add_common_options(p)

    p = sub.add_parser('nodes', help='List nodes in definition order')
    _add_common_options(p)

    p = sub.add_parser('compile', help='Print compiled operations')
    _add_common_options(p)
    p.add_argument('--node', '-n', help='Only print this node')
    p.add_argument(
        '--json-output',
        action='store_true',
        help='Output structured JSON to stdout (logs to stderr)',
    )

    p = sub.add_parser('apply', help='Compile all nodes and hand them to the backend')
    _add_common_options(p)
    p.add_argument('--dry-run', action='store_true',
                   help='Preview operations without executing')
    p.add_argument('--skip-preflight', action='store_true',
                   help='Skip backend version check and plugin installation')
    p.add_argument('--version-constraint',
                   help='Supported backend versions (default: ">= 2.2.0, < 3.0")')
    p.add_argument('--plan-file', help='Where to write the compiled plan')

    p = sub.add_parser('preflight', help='Run pre-flight checks')
    _add_common_options(p)
    p.add_argument('--check-boxes', action='store_true',
                   help='Also check that box URLs are reachable')
    p.add_argument('--version-constraint',
                   help='Supported backend versions (default: ">= 2.2.0, < 3.0")')

    return parser


def _setup_logging(verbose: bool, json_output: bool = False) -> None:
    """Configure logging based on flags."""
    stream = sys.stderr if json_output else sys.stdout
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    ))
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _settings_from_args(args):
    return load_settings(
        root=args.root,
        config_file=args.config_file,
        local_config_file=args.local_config_file,
        hooks_dir=args.hooks_dir,
        version_constraint=getattr(args, 'version_constraint', None),
        plan_file=getattr(args, 'plan_file', None),
    )


def cmd_validate(args) -> int:
    settings = _settings_from_args(args)
    document = Runner(settings, DryRunBackend()).load()
    print(f"OK: {len(document.nodes)} nodes defined ({', '.join(document.node_names)})")
    return 0


def cmd_nodes(args) -> int:
    settings = _settings_from_args(args)
    document = Runner(settings, DryRunBackend()).load()
    for name in document.node_names:
        print(name)
    return 0


def cmd_compile(args) -> int:
    settings = _settings_from_args(args)
    runner = Runner(settings, DryRunBackend())
    document = runner.load()
    nodes = compile_document(document, load_hooks(settings.hooks_dir))

    if args.node:
        nodes = [n for n in nodes if n.name == args.node]
        if not nodes:
            raise FatalError(f"Unknown node: {args.node}. Available: {', '.join(document.node_names)}")

    if args.json_output:
        print(json.dumps({'nodes': [n.to_dict() for n in nodes]}, indent=2))
    else:
        for node in nodes:
            print(f"{node.name}:")
            for op in node.operations:
                fields = {k: v for k, v in op.to_dict().items() if k != 'op'}
                print(f"  {op.kind} {json.dumps(fields)}")
    return 0


def cmd_apply(args) -> int:
    settings = _settings_from_args(args)
    if args.dry_run:
        backend = DryRunBackend()
        skip_preflight = True
    else:
        backend = VagrantBackend(plan_file=settings.plan_file, cwd=settings.root)
        skip_preflight = args.skip_preflight

    logger.info(f"Applying {settings.config_file} via {backend.name}")
    Runner(settings, backend, skip_preflight=skip_preflight).run()
    return 0


def cmd_preflight(args) -> int:
    settings = _settings_from_args(args)
    backend = VagrantBackend(plan_file=settings.plan_file, cwd=settings.root)
    success, results = run_preflight_checks(settings, backend, check_boxes=args.check_boxes)
    print(format_preflight_results(results))
    return 0 if success else 1


COMMANDS = {
    'validate': cmd_validate,
    'nodes': cmd_nodes,
    'compile': cmd_compile,
    'apply': cmd_apply,
    'preflight': cmd_preflight,
}


def main(argv=None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    _setup_logging(args.verbose, getattr(args, 'json_output', False))

    try:
        return COMMANDS[args.command](args)
    except FatalError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
