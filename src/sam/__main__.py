#!/usr/bin/env python3
"""
CLI for the Sam interpreter.

Usage:
    python -m sam run FILE.sam [--config FILE.yaml] [--json]
    python -m sam check FILE.sam [--json]
    python -m sam tree FILE.sam

Examples:
    # Run a program and print its global variables
    python -m sam run examples/hello.sam

    # Run with a shell and manifest directory taken from a config file
    python -m sam run examples/weather.sam --config sam.yaml

    # Check syntax only
    python -m sam check examples/hello.sam

    # Show the syntax tree
    python -m sam tree examples/hello.sam
"""

import argparse
import json
import sys
from pathlib import Path


def _read_source(path_str: str):
    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(encoding="utf-8")


def _report(diagnostic, as_json: bool) -> None:
    if as_json:
        print(json.dumps(diagnostic.to_json(), indent=2), file=sys.stderr)
    else:
        print(diagnostic.format(), file=sys.stderr)


def cmd_check(args):
    """Check a Sam file for syntax errors."""
    from . import parse, SamError

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        tree = parse(source, filename=args.file)
    except SamError as e:
        _report(e.diagnostic, args.json)
        return 1

    count = tree.root_node.named_child_count
    print(f"OK: {Path(args.file).name} - {count} top-level item(s), no errors")
    return 0


def cmd_tree(args):
    """Print the syntax tree of a Sam file."""
    from . import parse, format_tree, SamError

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        tree = parse(source, filename=args.file)
    except SamError as e:
        _report(e.diagnostic, False)
        return 1

    print(format_tree(tree.root_node))
    return 0


def cmd_run(args):
    """Run a Sam program and print its global bindings."""
    from . import run_source, render, SamConfig, SamError

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        config = SamConfig.load(args.config) if args.config else SamConfig()
    except SamError as e:
        _report(e.diagnostic, args.json)
        return 1

    result = run_source(source, config=config, filename=args.file)
    if not result.success:
        _report(result.diagnostic, args.json)
        return 1

    if args.json:
        print(json.dumps(result.globals, indent=2, default=str))
    else:
        for name, value in result.context.global_scope().items():
            print(f"{name} = {render(value)}")

    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='sam',
        description='Sam scripting language interpreter',
    )

    subparsers = parser.add_subparsers(dest='action', required=True)

    # run command
    run_parser = subparsers.add_parser('run', help='Run a Sam program')
    run_parser.add_argument('file', help='Sam source file')
    run_parser.add_argument('-c', '--config', metavar='FILE',
                            help='YAML interpreter configuration')
    run_parser.add_argument('--json', action='store_true',
                            help='Print bindings and diagnostics as JSON')

    # check command
    check_parser = subparsers.add_parser('check', help='Check a Sam file for syntax errors')
    check_parser.add_argument('file', help='Sam source file')
    check_parser.add_argument('--json', action='store_true',
                              help='Print diagnostics as JSON')

    # tree command
    tree_parser = subparsers.add_parser('tree', help='Print the syntax tree')
    tree_parser.add_argument('file', help='Sam source file')

    args = parser.parse_args(argv)

    if args.action == 'run':
        return cmd_run(args)
    elif args.action == 'check':
        return cmd_check(args)
    elif args.action == 'tree':
        return cmd_tree(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
